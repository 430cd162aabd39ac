"""Positional account contracts of the lending program.

One ordered tuple per instruction, mirroring the program's ``Accounts``
structs. The order and the signer/writable flags are part of the wire
contract; review them against the program's published IDL before changing
anything here.
"""
from __future__ import annotations

from typing import Mapping, NamedTuple, Optional

from solders.instruction import AccountMeta
from solders.pubkey import Pubkey

from ...errors import DerivationError


class AccountSpec(NamedTuple):
    name: str
    is_signer: bool = False
    is_writable: bool = False
    optional: bool = False


INIT_LENDING_MARKET = (
    AccountSpec("lending_market_owner", is_signer=True, is_writable=True),
    AccountSpec("lending_market", is_writable=True),
    AccountSpec("lending_market_authority"),
    AccountSpec("system_program"),
    AccountSpec("rent"),
)

INIT_RESERVE = (
    AccountSpec("lending_market_owner", is_signer=True, is_writable=True),
    AccountSpec("lending_market"),
    AccountSpec("lending_market_authority"),
    AccountSpec("reserve", is_writable=True),
    AccountSpec("reserve_liquidity_mint"),
    AccountSpec("reserve_liquidity_supply", is_writable=True),
    AccountSpec("fee_receiver", is_writable=True),
    AccountSpec("reserve_collateral_mint", is_writable=True),
    AccountSpec("reserve_collateral_supply", is_writable=True),
    AccountSpec("rent"),
    AccountSpec("token_program"),
    AccountSpec("system_program"),
)

UPDATE_ENTIRE_RESERVE_CONFIG = (
    AccountSpec("lending_market_owner", is_signer=True),
    AccountSpec("lending_market"),
    AccountSpec("reserve", is_writable=True),
)

INIT_USER_METADATA = (
    AccountSpec("owner", is_signer=True),
    AccountSpec("fee_payer", is_signer=True, is_writable=True),
    AccountSpec("user_metadata", is_writable=True),
    AccountSpec("referrer_user_metadata", optional=True),
    AccountSpec("rent"),
    AccountSpec("system_program"),
)

INIT_OBLIGATION = (
    AccountSpec("obligation_owner", is_signer=True),
    AccountSpec("fee_payer", is_signer=True, is_writable=True),
    AccountSpec("obligation", is_writable=True),
    AccountSpec("lending_market"),
    AccountSpec("seed1_account"),
    AccountSpec("seed2_account"),
    AccountSpec("owner_user_metadata"),
    AccountSpec("token_program"),
    AccountSpec("rent"),
    AccountSpec("system_program"),
)

REFRESH_RESERVE = (
    AccountSpec("reserve", is_writable=True),
    AccountSpec("lending_market"),
    AccountSpec("pyth_oracle", optional=True),
    AccountSpec("switchboard_price_oracle", optional=True),
    AccountSpec("switchboard_twap_oracle", optional=True),
    AccountSpec("scope_prices", optional=True),
)

REFRESH_OBLIGATION = (
    AccountSpec("lending_market"),
    AccountSpec("obligation", is_writable=True),
)

DEPOSIT_RESERVE_LIQUIDITY_AND_OBLIGATION_COLLATERAL = (
    AccountSpec("owner", is_signer=True, is_writable=True),
    AccountSpec("obligation", is_writable=True),
    AccountSpec("lending_market"),
    AccountSpec("lending_market_authority"),
    AccountSpec("reserve", is_writable=True),
    AccountSpec("reserve_liquidity_supply", is_writable=True),
    AccountSpec("reserve_collateral_mint", is_writable=True),
    AccountSpec("reserve_destination_deposit_collateral", is_writable=True),
    AccountSpec("user_source_liquidity", is_writable=True),
    AccountSpec("placeholder_user_destination_collateral", optional=True),
    AccountSpec("token_program"),
    AccountSpec("instruction_sysvar_account"),
)


def resolve_optional(address: Optional[Pubkey], program_id: Pubkey) -> Pubkey:
    """Map an absent optional account to its sentinel.

    Anchor reads the program's own id in an optional slot as "not
    supplied", so ``None`` becomes ``program_id``.
    """
    return program_id if address is None else address


def build_account_metas(
    contract: tuple[AccountSpec, ...],
    addresses: Mapping[str, Optional[Pubkey]],
    program_id: Pubkey,
) -> list[AccountMeta]:
    """Lay out ``addresses`` in contract order with the contract's flags.

    Raises:
        DerivationError: a required address is missing, or an address was
            given that the contract does not know.
    """
    unknown = set(addresses) - {spec.name for spec in contract}
    if unknown:
        raise DerivationError(f"Unexpected accounts: {sorted(unknown)}")

    metas: list[AccountMeta] = []
    for spec in contract:
        address = addresses.get(spec.name)
        if spec.optional:
            address = resolve_optional(address, program_id)
        elif address is None:
            raise DerivationError(f"Missing required account '{spec.name}'")
        metas.append(
            AccountMeta(
                pubkey=address, is_signer=spec.is_signer, is_writable=spec.is_writable
            )
        )
    return metas
