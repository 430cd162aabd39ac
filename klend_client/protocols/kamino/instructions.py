"""Instruction builders for the Kamino lending program.

Each builder is a pure function: it derives the addresses it needs, lays
them out per ``accounts`` and prefixes the Borsh-encoded arguments with the
Anchor discriminator. No network access happens here.
"""
from __future__ import annotations

import logging
from typing import Optional, Sequence

import borsh_construct as borsh
from construct import Bytes
from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey
from solders.system_program import CreateAccountParams, create_account

from ...errors import EncodingError
from . import accounts, pda
from .constants import (
    PROGRAM_ID,
    SYSTEM_PROGRAM_ID,
    SYSVAR_INSTRUCTIONS_ID,
    SYSVAR_RENT_ID,
    TOKEN_PROGRAM_ID,
    UPDATE_ENTIRE_RESERVE_CONFIG_MODE,
    VALUE_BYTE_ARRAY_LEN_RESERVE,
    sighash,
)
from .pda import DEFAULT_OBLIGATION_SEED
from .types import ReserveConfig

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Discriminators and argument layouts
# ---------------------------------------------------------------------------

INIT_LENDING_MARKET_DISCRIMINATOR = sighash("init_lending_market")
INIT_RESERVE_DISCRIMINATOR = sighash("init_reserve")
UPDATE_ENTIRE_RESERVE_CONFIG_DISCRIMINATOR = sighash("update_entire_reserve_config")
INIT_USER_METADATA_DISCRIMINATOR = sighash("init_user_metadata")
INIT_OBLIGATION_DISCRIMINATOR = sighash("init_obligation")
REFRESH_RESERVE_DISCRIMINATOR = sighash("refresh_reserve")
REFRESH_OBLIGATION_DISCRIMINATOR = sighash("refresh_obligation")
DEPOSIT_RESERVE_LIQUIDITY_AND_OBLIGATION_COLLATERAL_DISCRIMINATOR = sighash(
    "deposit_reserve_liquidity_and_obligation_collateral"
)

init_lending_market_layout = borsh.CStruct("quote_currency" / Bytes(32))
update_entire_reserve_config_layout = borsh.CStruct(
    "mode" / borsh.U64,
    "value" / Bytes(VALUE_BYTE_ARRAY_LEN_RESERVE),
)
init_user_metadata_layout = borsh.CStruct("user_lookup_table" / Bytes(32))
init_obligation_layout = borsh.CStruct(
    "args" / borsh.CStruct("tag" / borsh.U8, "id" / borsh.U8),
)
deposit_layout = borsh.CStruct("liquidity_amount" / borsh.U64)

QUOTE_CURRENCY_USD = bytes(32)


def _instruction(
    program_id: Pubkey,
    discriminator: bytes,
    keys: list[AccountMeta],
    encoded_args: bytes = b"",
) -> Instruction:
    return Instruction(program_id, discriminator + encoded_args, keys)


# ---------------------------------------------------------------------------
# Account allocation
# ---------------------------------------------------------------------------


def create_program_account(
    payer: Pubkey,
    new_account: Pubkey,
    lamports: int,
    space: int,
    program_id: Pubkey = PROGRAM_ID,
) -> Instruction:
    """System-program allocation of a zeroed account owned by the program."""
    return create_account(
        CreateAccountParams(
            from_pubkey=payer,
            to_pubkey=new_account,
            lamports=lamports,
            space=space,
            owner=program_id,
        )
    )


# ---------------------------------------------------------------------------
# Market administration
# ---------------------------------------------------------------------------


def init_lending_market(
    owner: Pubkey,
    lending_market: Pubkey,
    quote_currency: bytes = QUOTE_CURRENCY_USD,
    program_id: Pubkey = PROGRAM_ID,
) -> Instruction:
    if len(quote_currency) != 32:
        raise EncodingError(
            f"Quote currency must be 32 bytes, got {len(quote_currency)}"
        )
    keys = accounts.build_account_metas(
        accounts.INIT_LENDING_MARKET,
        {
            "lending_market_owner": owner,
            "lending_market": lending_market,
            "lending_market_authority": pda.market_authority(
                lending_market, program_id
            ).address,
            "system_program": SYSTEM_PROGRAM_ID,
            "rent": SYSVAR_RENT_ID,
        },
        program_id,
    )
    logger.debug("init_lending_market market=%s owner=%s", lending_market, owner)
    return _instruction(
        program_id,
        INIT_LENDING_MARKET_DISCRIMINATOR,
        keys,
        init_lending_market_layout.build({"quote_currency": quote_currency}),
    )


def init_reserve(
    lending_market: Pubkey,
    reserve: Pubkey,
    reserve_liquidity_mint: Pubkey,
    lending_market_owner: Pubkey,
    token_program: Pubkey = TOKEN_PROGRAM_ID,
    program_id: Pubkey = PROGRAM_ID,
) -> Instruction:
    vaults = pda.get_reserve_pdas(lending_market, reserve_liquidity_mint, program_id)
    keys = accounts.build_account_metas(
        accounts.INIT_RESERVE,
        {
            "lending_market_owner": lending_market_owner,
            "lending_market": lending_market,
            "lending_market_authority": pda.market_authority(
                lending_market, program_id
            ).address,
            "reserve": reserve,
            "reserve_liquidity_mint": reserve_liquidity_mint,
            "reserve_liquidity_supply": vaults.liquidity_supply,
            "fee_receiver": vaults.fee_vault,
            "reserve_collateral_mint": vaults.collateral_mint,
            "reserve_collateral_supply": vaults.collateral_supply,
            "rent": SYSVAR_RENT_ID,
            "token_program": token_program,
            "system_program": SYSTEM_PROGRAM_ID,
        },
        program_id,
    )
    logger.debug(
        "init_reserve reserve=%s mint=%s market=%s",
        reserve, reserve_liquidity_mint, lending_market,
    )
    return _instruction(program_id, INIT_RESERVE_DISCRIMINATOR, keys)


def update_entire_reserve_config(
    reserve: Pubkey,
    lending_market_owner: Pubkey,
    lending_market: Pubkey,
    reserve_config: ReserveConfig,
    program_id: Pubkey = PROGRAM_ID,
) -> Instruction:
    """Replace a reserve's whole config in one instruction.

    Raises:
        EncodingError: the encoded config does not fill the payload slot
            exactly.
    """
    value = reserve_config.to_bytes()
    if len(value) != VALUE_BYTE_ARRAY_LEN_RESERVE:
        raise EncodingError(
            f"Encoded reserve config is {len(value)} bytes, "
            f"payload slot is {VALUE_BYTE_ARRAY_LEN_RESERVE}"
        )
    keys = accounts.build_account_metas(
        accounts.UPDATE_ENTIRE_RESERVE_CONFIG,
        {
            "lending_market_owner": lending_market_owner,
            "lending_market": lending_market,
            "reserve": reserve,
        },
        program_id,
    )
    logger.debug("update_entire_reserve_config reserve=%s", reserve)
    return _instruction(
        program_id,
        UPDATE_ENTIRE_RESERVE_CONFIG_DISCRIMINATOR,
        keys,
        update_entire_reserve_config_layout.build(
            {"mode": UPDATE_ENTIRE_RESERVE_CONFIG_MODE, "value": value}
        ),
    )


# ---------------------------------------------------------------------------
# User accounts
# ---------------------------------------------------------------------------


def init_user_metadata(
    user: Pubkey,
    referrer_user_metadata: Optional[Pubkey] = None,
    user_lookup_table: Pubkey = Pubkey.default(),
    fee_payer: Optional[Pubkey] = None,
    program_id: Pubkey = PROGRAM_ID,
) -> Instruction:
    keys = accounts.build_account_metas(
        accounts.INIT_USER_METADATA,
        {
            "owner": user,
            "fee_payer": fee_payer or user,
            "user_metadata": pda.user_metadata(user, program_id).address,
            "referrer_user_metadata": referrer_user_metadata,
            "rent": SYSVAR_RENT_ID,
            "system_program": SYSTEM_PROGRAM_ID,
        },
        program_id,
    )
    logger.debug("init_user_metadata user=%s", user)
    return _instruction(
        program_id,
        INIT_USER_METADATA_DISCRIMINATOR,
        keys,
        init_user_metadata_layout.build({"user_lookup_table": bytes(user_lookup_table)}),
    )


def init_obligation(
    owner: Pubkey,
    lending_market: Pubkey,
    token_program: Pubkey = TOKEN_PROGRAM_ID,
    tag: int = 0,
    obligation_id: int = 0,
    seed1: Pubkey = DEFAULT_OBLIGATION_SEED,
    seed2: Pubkey = DEFAULT_OBLIGATION_SEED,
    fee_payer: Optional[Pubkey] = None,
    program_id: Pubkey = PROGRAM_ID,
) -> Instruction:
    obligation = pda.user_obligation(
        lending_market, owner, tag, obligation_id, seed1, seed2, program_id
    ).address
    keys = accounts.build_account_metas(
        accounts.INIT_OBLIGATION,
        {
            "obligation_owner": owner,
            "fee_payer": fee_payer or owner,
            "obligation": obligation,
            "lending_market": lending_market,
            "seed1_account": seed1,
            "seed2_account": seed2,
            "owner_user_metadata": pda.user_metadata(owner, program_id).address,
            "token_program": token_program,
            "rent": SYSVAR_RENT_ID,
            "system_program": SYSTEM_PROGRAM_ID,
        },
        program_id,
    )
    logger.debug("init_obligation obligation=%s tag=%d id=%d", obligation, tag, obligation_id)
    return _instruction(
        program_id,
        INIT_OBLIGATION_DISCRIMINATOR,
        keys,
        init_obligation_layout.build({"args": {"tag": tag, "id": obligation_id}}),
    )


# ---------------------------------------------------------------------------
# Refresh
# ---------------------------------------------------------------------------


def refresh_reserve(
    reserve: Pubkey,
    lending_market: Pubkey,
    pyth_oracle: Optional[Pubkey] = None,
    switchboard_price_oracle: Optional[Pubkey] = None,
    switchboard_twap_oracle: Optional[Pubkey] = None,
    scope_prices: Optional[Pubkey] = None,
    program_id: Pubkey = PROGRAM_ID,
) -> Instruction:
    keys = accounts.build_account_metas(
        accounts.REFRESH_RESERVE,
        {
            "reserve": reserve,
            "lending_market": lending_market,
            "pyth_oracle": pyth_oracle,
            "switchboard_price_oracle": switchboard_price_oracle,
            "switchboard_twap_oracle": switchboard_twap_oracle,
            "scope_prices": scope_prices,
        },
        program_id,
    )
    return _instruction(program_id, REFRESH_RESERVE_DISCRIMINATOR, keys)


def refresh_obligation(
    owner: Pubkey,
    lending_market: Pubkey,
    deposit_reserves: Sequence[Pubkey] = (),
    borrow_reserves: Sequence[Pubkey] = (),
    obligation: Optional[Pubkey] = None,
    program_id: Pubkey = PROGRAM_ID,
) -> Instruction:
    """Refresh an obligation.

    The program expects the obligation's deposit reserves and then its
    borrow reserves as trailing accounts; both are empty for a fresh
    obligation. ``obligation`` defaults to the canonical one of ``owner``.
    """
    if obligation is None:
        obligation = pda.user_obligation(lending_market, owner, program_id=program_id).address
    keys = accounts.build_account_metas(
        accounts.REFRESH_OBLIGATION,
        {"lending_market": lending_market, "obligation": obligation},
        program_id,
    )
    keys += [
        AccountMeta(pubkey=r, is_signer=False, is_writable=False)
        for r in (*deposit_reserves, *borrow_reserves)
    ]
    return _instruction(program_id, REFRESH_OBLIGATION_DISCRIMINATOR, keys)


# ---------------------------------------------------------------------------
# Deposit
# ---------------------------------------------------------------------------


def deposit_reserve_liquidity_and_obligation_collateral(
    lending_market: Pubkey,
    owner: Pubkey,
    mint: Pubkey,
    reserve: Pubkey,
    liquidity_amount: int,
    token_program: Pubkey = TOKEN_PROGRAM_ID,
    obligation: Optional[Pubkey] = None,
    user_source_liquidity: Optional[Pubkey] = None,
    program_id: Pubkey = PROGRAM_ID,
) -> Instruction:
    """Deposit liquidity into ``reserve`` and post the collateral in one step.

    Must be preceded in the same transaction by ``refresh_reserve`` and
    ``refresh_obligation``; see ``deposit_liquidity_and_collateral``.
    """
    if not 0 <= liquidity_amount < 2**64:
        raise EncodingError(f"Deposit amount {liquidity_amount} does not fit in a u64")
    vaults = pda.get_reserve_pdas(lending_market, mint, program_id)
    if obligation is None:
        obligation = pda.user_obligation(lending_market, owner, program_id=program_id).address
    if user_source_liquidity is None:
        user_source_liquidity = pda.associated_token_address(owner, mint, token_program)
    keys = accounts.build_account_metas(
        accounts.DEPOSIT_RESERVE_LIQUIDITY_AND_OBLIGATION_COLLATERAL,
        {
            "owner": owner,
            "obligation": obligation,
            "lending_market": lending_market,
            "lending_market_authority": pda.market_authority(
                lending_market, program_id
            ).address,
            "reserve": reserve,
            "reserve_liquidity_supply": vaults.liquidity_supply,
            "reserve_collateral_mint": vaults.collateral_mint,
            "reserve_destination_deposit_collateral": vaults.collateral_supply,
            "user_source_liquidity": user_source_liquidity,
            "placeholder_user_destination_collateral": None,
            "token_program": token_program,
            "instruction_sysvar_account": SYSVAR_INSTRUCTIONS_ID,
        },
        program_id,
    )
    logger.debug(
        "deposit reserve=%s obligation=%s amount=%d", reserve, obligation, liquidity_amount
    )
    return _instruction(
        program_id,
        DEPOSIT_RESERVE_LIQUIDITY_AND_OBLIGATION_COLLATERAL_DISCRIMINATOR,
        keys,
        deposit_layout.build({"liquidity_amount": liquidity_amount}),
    )


def deposit_liquidity_and_collateral(
    lending_market: Pubkey,
    owner: Pubkey,
    mint: Pubkey,
    reserve: Pubkey,
    liquidity_amount: int,
    pyth_oracle: Optional[Pubkey],
    token_program: Pubkey = TOKEN_PROGRAM_ID,
    obligation: Optional[Pubkey] = None,
    deposit_reserves: Sequence[Pubkey] = (),
    borrow_reserves: Sequence[Pubkey] = (),
    program_id: Pubkey = PROGRAM_ID,
) -> list[Instruction]:
    """refresh_reserve, refresh_obligation, deposit: in exactly this order.

    The program rejects a deposit whose reserve and obligation were not
    refreshed earlier in the same transaction.
    """
    ixs: list[Instruction] = [
        refresh_reserve(reserve, lending_market, pyth_oracle, program_id=program_id),
        refresh_obligation(
            owner,
            lending_market,
            deposit_reserves,
            borrow_reserves,
            obligation=obligation,
            program_id=program_id,
        ),
        deposit_reserve_liquidity_and_obligation_collateral(
            lending_market,
            owner,
            mint,
            reserve,
            liquidity_amount,
            token_program,
            obligation=obligation,
            program_id=program_id,
        ),
    ]
    return ixs
