"""Shared test fixtures and sample data."""
from __future__ import annotations

import textwrap
from pathlib import Path
from unittest.mock import AsyncMock

import pytest
from solders.hash import Hash
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from klend_client.config import AppConfig, ChainConfig, ProgramConfig, WalletConfig
from klend_client.models import ReserveConfigParams
from klend_client.protocols.kamino.constants import DEFAULT_ORACLES, PROGRAM_ID


# ---------------------------------------------------------------------------
# Keys
# ---------------------------------------------------------------------------


@pytest.fixture()
def payer() -> Keypair:
    return Keypair.from_seed(bytes([1] * 32))


@pytest.fixture()
def market_keypair() -> Keypair:
    return Keypair.from_seed(bytes([2] * 32))


@pytest.fixture()
def reserve_keypair() -> Keypair:
    return Keypair.from_seed(bytes([3] * 32))


@pytest.fixture()
def market(market_keypair: Keypair) -> Pubkey:
    return market_keypair.pubkey()


@pytest.fixture()
def reserve(reserve_keypair: Keypair) -> Pubkey:
    return reserve_keypair.pubkey()


@pytest.fixture()
def mint() -> Pubkey:
    return Pubkey.from_string("So11111111111111111111111111111111111111112")


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_chain_config() -> ChainConfig:
    return ChainConfig(
        rpc_endpoints=("https://rpc1.example.com", "https://rpc2.example.com"),
        rpc_timeout=10,
        commitment="confirmed",
        confirm_timeout=5,
    )


@pytest.fixture()
def sample_params() -> ReserveConfigParams:
    return ReserveConfigParams()


@pytest.fixture()
def sample_app_config(sample_chain_config: ChainConfig) -> AppConfig:
    return AppConfig(
        chain=sample_chain_config,
        program=ProgramConfig(program_id=PROGRAM_ID),
        wallet=WalletConfig(keypair_path="/tmp/id.json"),
        oracles=dict(DEFAULT_ORACLES),
        reserve_defaults=ReserveConfigParams(),
    )


# ---------------------------------------------------------------------------
# Chain client mock
# ---------------------------------------------------------------------------

BLOCKHASH = Hash(bytes([7] * 32))


@pytest.fixture()
def blockhash() -> Hash:
    return BLOCKHASH


@pytest.fixture()
def mock_chain_client() -> AsyncMock:
    client = AsyncMock()
    client.get_minimum_balance_for_rent_exemption.return_value = 1_000_000
    client.get_latest_blockhash.return_value = BLOCKHASH
    client.get_account_info.return_value = None
    client.send_transaction.return_value = "5sig"
    return client


# ---------------------------------------------------------------------------
# Config YAML fixture
# ---------------------------------------------------------------------------

SAMPLE_YAML = textwrap.dedent("""\
    chain:
      rpc_endpoints: ["https://rpc.example.com", "${TEST_RPC_URL}"]
      rpc_timeout: 10
      commitment: finalized
      confirm_timeout: 20
    program:
      program_id: "KLend2g3cP87fffoy8q1mQqGKjrxjC8boSyAYavgmjD"
    wallet:
      keypair_path: "/keys/id.json"
    oracles:
      BONK: "Gnt27xtC473ZT2Mw5u8wZ68Z3gULkSTb5DuxJy7eJotD"
    reserve_defaults:
      loan_to_value_pct: 60
      liquidation_threshold: 70
      elevation_groups: [1, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0]
""")


@pytest.fixture()
def sample_yaml_path(tmp_path: Path) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(SAMPLE_YAML)
    return cfg_file
