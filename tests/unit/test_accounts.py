"""Unit tests for the positional account contracts."""
from __future__ import annotations

import pytest
from solders.pubkey import Pubkey

from klend_client.errors import DerivationError
from klend_client.protocols.kamino import accounts
from klend_client.protocols.kamino.constants import PROGRAM_ID

A = Pubkey.from_string("7u3HeHxYDLhnCoErrtycNokbQYbWGzLs6JSDqGAv5PfF")
B = Pubkey.from_string("EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v")

CONTRACT = (
    accounts.AccountSpec("owner", is_signer=True, is_writable=True),
    accounts.AccountSpec("referrer", optional=True),
    accounts.AccountSpec("target", is_writable=True),
)


class TestResolveOptional:
    def test_absent_becomes_program_id(self) -> None:
        assert accounts.resolve_optional(None, PROGRAM_ID) == PROGRAM_ID

    def test_present_kept(self) -> None:
        assert accounts.resolve_optional(A, PROGRAM_ID) == A


class TestBuildAccountMetas:
    def test_contract_order_and_flags(self) -> None:
        metas = accounts.build_account_metas(
            CONTRACT, {"target": B, "owner": A, "referrer": B}, PROGRAM_ID
        )
        assert [m.pubkey for m in metas] == [A, B, B]
        assert [(m.is_signer, m.is_writable) for m in metas] == [
            (True, True),
            (False, False),
            (False, True),
        ]

    def test_optional_omitted_uses_sentinel(self) -> None:
        metas = accounts.build_account_metas(CONTRACT, {"owner": A, "target": B}, PROGRAM_ID)
        assert metas[1].pubkey == PROGRAM_ID
        assert not metas[1].is_signer
        assert not metas[1].is_writable

    def test_optional_none_uses_sentinel(self) -> None:
        metas = accounts.build_account_metas(
            CONTRACT, {"owner": A, "referrer": None, "target": B}, B
        )
        assert metas[1].pubkey == B

    def test_missing_required_raises(self) -> None:
        with pytest.raises(DerivationError, match="target"):
            accounts.build_account_metas(CONTRACT, {"owner": A}, PROGRAM_ID)

    def test_unknown_account_raises(self) -> None:
        with pytest.raises(DerivationError, match="Unexpected"):
            accounts.build_account_metas(
                CONTRACT, {"owner": A, "target": B, "extra": A}, PROGRAM_ID
            )


class TestContracts:
    @pytest.mark.parametrize(
        "contract, length",
        [
            (accounts.INIT_LENDING_MARKET, 5),
            (accounts.INIT_RESERVE, 12),
            (accounts.UPDATE_ENTIRE_RESERVE_CONFIG, 3),
            (accounts.INIT_USER_METADATA, 6),
            (accounts.INIT_OBLIGATION, 10),
            (accounts.REFRESH_RESERVE, 6),
            (accounts.REFRESH_OBLIGATION, 2),
            (accounts.DEPOSIT_RESERVE_LIQUIDITY_AND_OBLIGATION_COLLATERAL, 12),
        ],
    )
    def test_lengths_and_unique_names(self, contract, length) -> None:
        assert len(contract) == length
        assert len({spec.name for spec in contract}) == length

    def test_owner_signs_every_admin_instruction(self) -> None:
        for contract in (
            accounts.INIT_LENDING_MARKET,
            accounts.INIT_RESERVE,
            accounts.UPDATE_ENTIRE_RESERVE_CONFIG,
        ):
            assert contract[0].name == "lending_market_owner"
            assert contract[0].is_signer

    def test_refresh_reserve_oracles_optional(self) -> None:
        assert [spec.optional for spec in accounts.REFRESH_RESERVE] == [
            False, False, True, True, True, True,
        ]
