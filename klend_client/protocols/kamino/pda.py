"""Program-derived addresses of the Kamino lending program.

Every protocol-owned account is found with ``Pubkey.find_program_address``
over a fixed seed layout:

    - Market authority:          ["lma", market]
    - Reserve liquidity supply:  ["reserve_liq_supply", market, mint]
    - Reserve collateral mint:   ["reserve_coll_mint", market, mint]
    - Reserve collateral supply: ["reserve_coll_supply", market, mint]
    - Reserve fee vault:         ["fee_receiver", market, mint]
    - User metadata:             ["user_meta", user]
    - Obligation:                [tag, id, user, market, seed1, seed2]

Nothing is cached; every call recomputes from the seeds.
"""
from __future__ import annotations

from typing import NamedTuple, Sequence

from solders.pubkey import Pubkey

from ...errors import DerivationError
from .constants import (
    ASSOCIATED_TOKEN_PROGRAM_ID,
    FEE_RECEIVER_SEED,
    LENDING_MARKET_AUTH_SEED,
    PROGRAM_ID,
    RESERVE_COLL_MINT_SEED,
    RESERVE_COLL_SUPPLY_SEED,
    RESERVE_LIQ_SUPPLY_SEED,
    TOKEN_PROGRAM_ID,
    USER_METADATA_SEED,
)

MAX_SEEDS = 16
MAX_SEED_LEN = 32

# Both obligation seeds default to the all-zero key: one obligation per
# (user, market) pair.
DEFAULT_OBLIGATION_SEED = Pubkey.default()


class ProgramAddress(NamedTuple):
    address: Pubkey
    bump: int


class ReservePdas(NamedTuple):
    liquidity_supply: Pubkey
    collateral_mint: Pubkey
    collateral_supply: Pubkey
    fee_vault: Pubkey


def derive(seeds: Sequence[bytes], program_id: Pubkey = PROGRAM_ID) -> ProgramAddress:
    """Derive the program address and bump for an ordered seed set.

    Raises:
        DerivationError: the seed set is outside what the runtime accepts.
    """
    if len(seeds) >= MAX_SEEDS:
        raise DerivationError(
            f"Too many seeds: {len(seeds)} (max {MAX_SEEDS - 1} plus bump)"
        )
    for i, seed in enumerate(seeds):
        if len(seed) > MAX_SEED_LEN:
            raise DerivationError(
                f"Seed {i} is {len(seed)} bytes (max {MAX_SEED_LEN})"
            )
    address, bump = Pubkey.find_program_address(list(seeds), program_id)
    return ProgramAddress(address, bump)


def market_authority(
    lending_market: Pubkey, program_id: Pubkey = PROGRAM_ID
) -> ProgramAddress:
    return derive([LENDING_MARKET_AUTH_SEED, bytes(lending_market)], program_id)


def reserve_liquidity_supply(
    lending_market: Pubkey, mint: Pubkey, program_id: Pubkey = PROGRAM_ID
) -> ProgramAddress:
    return derive(
        [RESERVE_LIQ_SUPPLY_SEED, bytes(lending_market), bytes(mint)], program_id
    )


def reserve_collateral_mint(
    lending_market: Pubkey, mint: Pubkey, program_id: Pubkey = PROGRAM_ID
) -> ProgramAddress:
    return derive(
        [RESERVE_COLL_MINT_SEED, bytes(lending_market), bytes(mint)], program_id
    )


def reserve_collateral_supply(
    lending_market: Pubkey, mint: Pubkey, program_id: Pubkey = PROGRAM_ID
) -> ProgramAddress:
    return derive(
        [RESERVE_COLL_SUPPLY_SEED, bytes(lending_market), bytes(mint)], program_id
    )


def reserve_fee_vault(
    lending_market: Pubkey, mint: Pubkey, program_id: Pubkey = PROGRAM_ID
) -> ProgramAddress:
    return derive([FEE_RECEIVER_SEED, bytes(lending_market), bytes(mint)], program_id)


def get_reserve_pdas(
    lending_market: Pubkey, mint: Pubkey, program_id: Pubkey = PROGRAM_ID
) -> ReservePdas:
    """All four reserve vaults for (market, liquidity mint)."""
    return ReservePdas(
        liquidity_supply=reserve_liquidity_supply(lending_market, mint, program_id).address,
        collateral_mint=reserve_collateral_mint(lending_market, mint, program_id).address,
        collateral_supply=reserve_collateral_supply(lending_market, mint, program_id).address,
        fee_vault=reserve_fee_vault(lending_market, mint, program_id).address,
    )


def user_metadata(user: Pubkey, program_id: Pubkey = PROGRAM_ID) -> ProgramAddress:
    return derive([USER_METADATA_SEED, bytes(user)], program_id)


def user_obligation(
    lending_market: Pubkey,
    user: Pubkey,
    tag: int = 0,
    obligation_id: int = 0,
    seed1: Pubkey = DEFAULT_OBLIGATION_SEED,
    seed2: Pubkey = DEFAULT_OBLIGATION_SEED,
    program_id: Pubkey = PROGRAM_ID,
) -> ProgramAddress:
    """Derive an obligation (position) address.

    ``tag`` and ``obligation_id`` are single bytes; ``seed1``/``seed2`` are free-form
    32-byte keys that tell several obligations of one user apart.
    """
    for label, value in (("tag", tag), ("id", obligation_id)):
        if not 0 <= value <= 255:
            raise DerivationError(f"Obligation {label} must fit in a u8, got {value}")
    return derive(
        [
            bytes([tag]),
            bytes([obligation_id]),
            bytes(user),
            bytes(lending_market),
            bytes(seed1),
            bytes(seed2),
        ],
        program_id,
    )


def associated_token_address(
    owner: Pubkey, mint: Pubkey, token_program: Pubkey = TOKEN_PROGRAM_ID
) -> Pubkey:
    """Associated token account of ``owner`` for ``mint``."""
    return derive(
        [bytes(owner), bytes(token_program), bytes(mint)], ASSOCIATED_TOKEN_PROGRAM_ID
    ).address
