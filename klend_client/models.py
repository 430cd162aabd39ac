"""Data models: all frozen (immutable)."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from solders.pubkey import Pubkey


@dataclass(frozen=True)
class ReserveConfigParams:
    """Human-facing risk parameters for one reserve.

    Everything else in the on-chain record takes protocol defaults.
    """

    loan_to_value_pct: int = 75
    max_liquidation_bonus_bps: int = 500
    min_liquidation_bonus_bps: int = 200
    bad_debt_liquidation_bonus_bps: int = 10
    liquidation_threshold: int = 85
    borrow_fee_sf: int = 0
    flash_loan_fee_sf: int = 0
    protocol_take_rate: int = 0
    elevation_groups: tuple[int, ...] = (0,) * 20
    price_feed: Optional[Pubkey] = None
    borrow_limit: int = 10_000_000_000_000


@dataclass(frozen=True)
class MarketSetup:
    """Addresses created by a full market bootstrap."""

    lending_market: Pubkey
    reserve: Pubkey
    mint: Pubkey
    obligation: Pubkey
    signatures: tuple[str, ...] = field(default=())
