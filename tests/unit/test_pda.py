"""Unit tests for program address derivation: pure functions, no I/O."""
from __future__ import annotations

import pytest
from solders.pubkey import Pubkey
from spl.token.instructions import get_associated_token_address

from klend_client.errors import DerivationError
from klend_client.protocols.kamino import pda
from klend_client.protocols.kamino.constants import (
    ASSOCIATED_TOKEN_PROGRAM_ID,
    PROGRAM_ID,
    TOKEN_PROGRAM_ID,
)

# Deployed main market and its authority as read from the ledger.
MAIN_MARKET = Pubkey.from_string("7u3HeHxYDLhnCoErrtycNokbQYbWGzLs6JSDqGAv5PfF")
MAIN_MARKET_AUTHORITY = Pubkey.from_string("9DrvZvyWh1HuAoZxvYWMvkf2XCzryCpGgHqrMjyDWpmo")
USDC_MINT = Pubkey.from_string("EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v")


# ---------------------------------------------------------------------------
# derive
# ---------------------------------------------------------------------------


class TestDerive:
    def test_deterministic(self, market: Pubkey) -> None:
        seeds = [b"lma", bytes(market)]
        assert pda.derive(seeds) == pda.derive(seeds)

    def test_matches_find_program_address(self, market: Pubkey) -> None:
        seeds = [b"lma", bytes(market)]
        address, bump = Pubkey.find_program_address(seeds, PROGRAM_ID)
        result = pda.derive(seeds)
        assert result.address == address
        assert result.bump == bump

    def test_address_is_off_curve(self, market: Pubkey) -> None:
        assert not pda.derive([b"lma", bytes(market)]).address.is_on_curve()

    def test_program_id_scopes_result(self, market: Pubkey, mint: Pubkey) -> None:
        seeds = [b"lma", bytes(market)]
        assert pda.derive(seeds).address != pda.derive(seeds, program_id=mint).address

    def test_oversized_seed_raises(self) -> None:
        with pytest.raises(DerivationError, match="Seed 1"):
            pda.derive([b"lma", bytes(33)])

    def test_too_many_seeds_raises(self) -> None:
        with pytest.raises(DerivationError, match="Too many seeds"):
            pda.derive([b"x"] * 16)


# ---------------------------------------------------------------------------
# Market and reserve accounts
# ---------------------------------------------------------------------------


class TestMarketAuthority:
    def test_same_market_same_address(self, market: Pubkey) -> None:
        assert pda.market_authority(market) == pda.market_authority(market)

    def test_distinct_markets_differ(self, market: Pubkey) -> None:
        assert (
            pda.market_authority(market).address
            != pda.market_authority(MAIN_MARKET).address
        )

    def test_deployed_main_market(self) -> None:
        assert pda.market_authority(MAIN_MARKET).address == MAIN_MARKET_AUTHORITY


class TestReservePdas:
    def test_four_distinct_vaults(self, market: Pubkey, mint: Pubkey) -> None:
        vaults = pda.get_reserve_pdas(market, mint)
        assert len(set(vaults)) == 4

    def test_order_matches_role_functions(self, market: Pubkey, mint: Pubkey) -> None:
        vaults = pda.get_reserve_pdas(market, mint)
        assert vaults.liquidity_supply == pda.reserve_liquidity_supply(market, mint).address
        assert vaults.collateral_mint == pda.reserve_collateral_mint(market, mint).address
        assert vaults.collateral_supply == pda.reserve_collateral_supply(market, mint).address
        assert vaults.fee_vault == pda.reserve_fee_vault(market, mint).address

    def test_mint_scopes_vaults(self, market: Pubkey, mint: Pubkey) -> None:
        assert pda.get_reserve_pdas(market, mint) != pda.get_reserve_pdas(market, USDC_MINT)


# ---------------------------------------------------------------------------
# User accounts
# ---------------------------------------------------------------------------


class TestUserMetadata:
    def test_deterministic(self, market: Pubkey) -> None:
        assert pda.user_metadata(market) == pda.user_metadata(market)

    def test_uses_user_meta_seed(self, market: Pubkey) -> None:
        expected, _ = Pubkey.find_program_address([b"user_meta", bytes(market)], PROGRAM_ID)
        assert pda.user_metadata(market).address == expected


class TestUserObligation:
    def test_default_seeds_are_zero(self, market: Pubkey, mint: Pubkey) -> None:
        explicit = pda.user_obligation(
            market, mint, 0, 0, Pubkey.from_bytes(bytes(32)), Pubkey.from_bytes(bytes(32))
        )
        assert pda.user_obligation(market, mint) == explicit

    def test_same_arguments_same_address(self, market: Pubkey, mint: Pubkey) -> None:
        assert pda.user_obligation(market, mint, tag=0) == pda.user_obligation(
            market, mint, tag=0
        )

    def test_tag_changes_address(self, market: Pubkey, mint: Pubkey) -> None:
        assert (
            pda.user_obligation(market, mint, tag=0).address
            != pda.user_obligation(market, mint, tag=1).address
        )

    def test_seed_order(self, market: Pubkey, mint: Pubkey) -> None:
        zero = bytes(32)
        expected, _ = Pubkey.find_program_address(
            [b"\x00", b"\x00", bytes(mint), bytes(market), zero, zero], PROGRAM_ID
        )
        assert pda.user_obligation(market, mint).address == expected

    def test_tag_out_of_range_raises(self, market: Pubkey, mint: Pubkey) -> None:
        with pytest.raises(DerivationError, match="tag"):
            pda.user_obligation(market, mint, tag=256)


class TestAssociatedTokenAddress:
    def test_off_curve_and_mint_scoped(self, market: Pubkey, mint: Pubkey) -> None:
        ata = pda.associated_token_address(market, mint)
        assert not ata.is_on_curve()
        assert ata != pda.associated_token_address(market, USDC_MINT)

    def test_uses_associated_token_program_seeds(self, market: Pubkey, mint: Pubkey) -> None:
        expected, _ = Pubkey.find_program_address(
            [bytes(market), bytes(TOKEN_PROGRAM_ID), bytes(mint)],
            ASSOCIATED_TOKEN_PROGRAM_ID,
        )
        assert pda.associated_token_address(market, mint) == expected

    def test_matches_spl_helper(self, market: Pubkey, mint: Pubkey) -> None:
        assert pda.associated_token_address(market, mint) == get_associated_token_address(
            market, mint
        )
