"""Fixed constants of the deployed Kamino lending program."""
from __future__ import annotations

import hashlib
from types import MappingProxyType
from typing import Mapping

from solders.pubkey import Pubkey
from solders.system_program import ID as SYSTEM_PROGRAM_ID
from solders.sysvar import INSTRUCTIONS as SYSVAR_INSTRUCTIONS_ID
from solders.sysvar import RENT as SYSVAR_RENT_ID
from spl.token.constants import ASSOCIATED_TOKEN_PROGRAM_ID, TOKEN_PROGRAM_ID

PROGRAM_ID = Pubkey.from_string("KLend2g3cP87fffoy8q1mQqGKjrxjC8boSyAYavgmjD")

# ---------------------------------------------------------------------------
# PDA seed literals
# ---------------------------------------------------------------------------

LENDING_MARKET_AUTH_SEED = b"lma"
RESERVE_LIQ_SUPPLY_SEED = b"reserve_liq_supply"
RESERVE_COLL_MINT_SEED = b"reserve_coll_mint"
RESERVE_COLL_SUPPLY_SEED = b"reserve_coll_supply"
FEE_RECEIVER_SEED = b"fee_receiver"
USER_METADATA_SEED = b"user_meta"

# ---------------------------------------------------------------------------
# Account sizes (8-byte Anchor discriminator included)
# ---------------------------------------------------------------------------

LENDING_MARKET_SIZE = 4664
RESERVE_SIZE = 8624

# ---------------------------------------------------------------------------
# Reserve config
# ---------------------------------------------------------------------------

VALUE_BYTE_ARRAY_LEN_RESERVE = 648
UPDATE_ENTIRE_RESERVE_CONFIG_MODE = 25
CURVE_POINTS_LEN = 11
TOKEN_NAME_LEN = 32
ELEVATION_GROUPS_LEN = 20

# Oracle price accounts keyed by token symbol.
PYTH_MSOL_PRICE = Pubkey.from_string("E4v1BBgoso9s64TQvmyownAVJbhbEPGyzA3qn4n46qj9")
PYTH_USDC_PRICE = Pubkey.from_string("Gnt27xtC473ZT2Mw5u8wZ68Z3gULkSTb5DuxJy7eJotD")

DEFAULT_ORACLES: Mapping[str, Pubkey] = MappingProxyType({
    "SOL": PYTH_MSOL_PRICE,
    "STSOL": PYTH_MSOL_PRICE,
    "MSOL": PYTH_MSOL_PRICE,
    "USDC": PYTH_USDC_PRICE,
    "USDH": PYTH_USDC_PRICE,
    "USDT": PYTH_USDC_PRICE,
    "UXD": PYTH_USDC_PRICE,
})


def sighash(name: str) -> bytes:
    """Anchor instruction discriminator: sha256("global:<name>")[:8]."""
    return hashlib.sha256(f"global:{name}".encode("utf-8")).digest()[:8]
