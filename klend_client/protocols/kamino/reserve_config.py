"""Build the reserve configuration record from a small parameter set.

Pure functions, no I/O. The oracle table is passed in explicitly so the
builder never reaches for global state.
"""
from __future__ import annotations

import logging
from typing import Mapping

from solders.pubkey import Pubkey

from ...errors import EncodingError
from ...models import ReserveConfigParams
from .constants import ELEVATION_GROUPS_LEN, TOKEN_NAME_LEN
from .types import (
    BorrowRateCurve,
    CurvePoint,
    PythConfiguration,
    ReserveConfig,
    ReserveFees,
    TokenInfo,
    WithdrawalCaps,
)

logger = logging.getLogger(__name__)

DEFAULT_DEPOSIT_LIMIT = 10_000_000_000_000
DEFAULT_BORROW_FACTOR_PCT = 100
DELEVERAGING_MARGIN_CALL_PERIOD_SECS = 259_200  # 3 days
DELEVERAGING_THRESHOLD_SLOTS_PER_BPS = 7_200  # 0.01% per hour
MAX_AGE_PRICE_SECONDS = 1_000_000_000
MULTIPLIER_SIDE_BOOST = (1, 1)
MULTIPLIER_TAG_BOOST = (1,) * 8

DEFAULT_CURVE_POINTS = (
    CurvePoint(utilization_rate_bps=0, borrow_rate_bps=1),
    CurvePoint(utilization_rate_bps=100, borrow_rate_bps=100),
    CurvePoint(utilization_rate_bps=10_000, borrow_rate_bps=100_000),
)


def encode_token_name(token_name: str) -> bytes:
    """UTF-8 encode and right-pad with zero bytes to the fixed name width.

    Raises:
        EncodingError: the encoded name is longer than the width.
    """
    encoded = token_name.encode("utf-8")
    if len(encoded) > TOKEN_NAME_LEN:
        raise EncodingError(
            f"Token name '{token_name}' is {len(encoded)} bytes (max {TOKEN_NAME_LEN})"
        )
    return encoded.ljust(TOKEN_NAME_LEN, b"\x00")


def resolve_oracle(
    token_symbol: str,
    oracles: Mapping[str, Pubkey],
    override: Pubkey | None = None,
) -> Pubkey:
    """Pick the price oracle: an explicit override wins over the table.

    Table keys are uppercase symbols; the lookup ignores the caller's case.
    """
    if override is not None:
        return override
    try:
        return oracles[token_symbol.upper()]
    except KeyError:
        raise EncodingError(
            f"No oracle configured for token '{token_symbol}'"
        ) from None


def build_reserve_config(
    token_symbol: str,
    params: ReserveConfigParams,
    oracles: Mapping[str, Pubkey],
) -> ReserveConfig:
    """Assemble a full ``ReserveConfig`` for ``token_symbol``.

    Args:
        token_symbol: Token symbol, used for the oracle lookup and as the
            on-chain token name.
        params: Risk parameters; all other fields take protocol defaults.
        oracles: Symbol -> oracle price account table.

    Raises:
        EncodingError: unknown symbol, oversized name or malformed params.
    """
    oracle = resolve_oracle(token_symbol, oracles, params.price_feed)
    name = encode_token_name(token_symbol)

    if len(params.elevation_groups) != ELEVATION_GROUPS_LEN:
        raise EncodingError(
            f"elevation_groups needs {ELEVATION_GROUPS_LEN} entries, "
            f"got {len(params.elevation_groups)}"
        )

    logger.debug("Reserve config for %s bound to oracle %s", token_symbol, oracle)

    return ReserveConfig(
        status=0,
        asset_tier=0,
        reserved0=(0, 0),
        multiplier_side_boost=MULTIPLIER_SIDE_BOOST,
        multiplier_tag_boost=MULTIPLIER_TAG_BOOST,
        protocol_take_rate_pct=params.protocol_take_rate,
        protocol_liquidation_fee_pct=0,
        loan_to_value_pct=params.loan_to_value_pct,
        liquidation_threshold_pct=params.liquidation_threshold,
        min_liquidation_bonus_bps=params.min_liquidation_bonus_bps,
        max_liquidation_bonus_bps=params.max_liquidation_bonus_bps,
        bad_debt_liquidation_bonus_bps=params.bad_debt_liquidation_bonus_bps,
        deleveraging_margin_call_period_secs=DELEVERAGING_MARGIN_CALL_PERIOD_SECS,
        deleveraging_threshold_slots_per_bps=DELEVERAGING_THRESHOLD_SLOTS_PER_BPS,
        fees=ReserveFees(
            borrow_fee_sf=params.borrow_fee_sf,
            flash_loan_fee_sf=params.flash_loan_fee_sf,
        ),
        borrow_rate_curve=BorrowRateCurve.from_points(DEFAULT_CURVE_POINTS),
        borrow_factor_pct=DEFAULT_BORROW_FACTOR_PCT,
        deposit_limit=DEFAULT_DEPOSIT_LIMIT,
        borrow_limit=params.borrow_limit,
        token_info=TokenInfo(
            name=name,
            max_age_price_seconds=MAX_AGE_PRICE_SECONDS,
            pyth_configuration=PythConfiguration(price=oracle),
        ),
        deposit_withdrawal_cap=WithdrawalCaps(),
        debt_withdrawal_cap=WithdrawalCaps(),
        elevation_groups=tuple(params.elevation_groups),
        reserved1=(0, 0, 0, 0),
    )
