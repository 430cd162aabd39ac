"""Unit tests for CLI argument parsing and the offline derive command."""
from __future__ import annotations

import json
from pathlib import Path

import pytest
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from klend_client.cli import build_parser, load_keypair, main, print_derived
from klend_client.protocols.kamino import pda
from klend_client.protocols.kamino.constants import PROGRAM_ID

MARKET = "7u3HeHxYDLhnCoErrtycNokbQYbWGzLs6JSDqGAv5PfF"
MINT = "So11111111111111111111111111111111111111112"


class TestBuildParser:
    def test_derive_command(self) -> None:
        args = build_parser().parse_args(["derive", "--market", MARKET, "--mint", MINT])
        assert args.command == "derive"
        assert args.market == Pubkey.from_string(MARKET)
        assert args.mint == Pubkey.from_string(MINT)
        assert args.user is None
        assert args.program_id == PROGRAM_ID

    def test_deposit_command(self) -> None:
        args = build_parser().parse_args(
            ["deposit", "--market", MARKET, "--reserve", MARKET,
             "--mint", MINT, "--symbol", "sol", "1000"]
        )
        assert args.command == "deposit"
        assert args.amount == 1000
        assert args.symbol == "sol"
        assert args.deposit_reserve == []
        assert args.borrow_reserve == []

    def test_deposit_existing_positions(self) -> None:
        args = build_parser().parse_args(
            ["deposit", "--market", MARKET, "--reserve", MARKET, "--mint", MINT,
             "--symbol", "SOL", "--deposit-reserve", MARKET, "--deposit-reserve", MINT,
             "--borrow-reserve", MINT, "1000"]
        )
        assert args.deposit_reserve == [Pubkey.from_string(MARKET), Pubkey.from_string(MINT)]
        assert args.borrow_reserve == [Pubkey.from_string(MINT)]

    def test_setup_command(self) -> None:
        args = build_parser().parse_args(["setup", "--mint", MINT, "--symbol", "SOL"])
        assert args.command == "setup"

    def test_invalid_address_rejected(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["derive", "--market", "not-an-address"])

    def test_config_flag(self) -> None:
        args = build_parser().parse_args(["--config", "/tmp/c.yaml", "create-market"])
        assert args.config == "/tmp/c.yaml"

    def test_log_level_flag(self) -> None:
        args = build_parser().parse_args(["--log-level", "DEBUG", "init-user"])
        assert args.log_level == "DEBUG"

    def test_no_command(self) -> None:
        args = build_parser().parse_args([])
        assert args.command is None


class TestPrintDerived:
    def test_market_only(self, capsys: pytest.CaptureFixture[str]) -> None:
        print_derived(build_parser().parse_args(["derive", "--market", MARKET]))
        out = capsys.readouterr().out
        expected = pda.market_authority(Pubkey.from_string(MARKET)).address
        assert f"market_authority:  {expected}" in out
        assert "fee_vault" not in out

    def test_mint_and_user(self, capsys: pytest.CaptureFixture[str]) -> None:
        print_derived(
            build_parser().parse_args(
                ["derive", "--market", MARKET, "--mint", MINT, "--user", MINT]
            )
        )
        out = capsys.readouterr().out
        vaults = pda.get_reserve_pdas(Pubkey.from_string(MARKET), Pubkey.from_string(MINT))
        assert str(vaults.fee_vault) in out
        assert "user_metadata:" in out
        assert "obligation:" in out


class TestMain:
    def test_no_command_exits(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("sys.argv", ["klend-client"])
        with pytest.raises(SystemExit) as excinfo:
            main()
        assert excinfo.value.code == 1

    def test_missing_config_exits_with_error(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(
            "sys.argv",
            ["klend-client", "--config", str(tmp_path / "missing.yaml"), "init-user"],
        )
        with pytest.raises(SystemExit) as excinfo:
            main()
        assert excinfo.value.code == 2


class TestLoadKeypair:
    def test_reads_solana_keygen_format(self, tmp_path: Path, payer: Keypair) -> None:
        path = tmp_path / "id.json"
        path.write_text(json.dumps(list(bytes(payer))))
        assert load_keypair(str(path)).pubkey() == payer.pubkey()
