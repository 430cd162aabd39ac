"""Configuration loader: reads config.yaml, interpolates env vars, validates."""
from __future__ import annotations

import dataclasses
import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml
from dotenv import load_dotenv
from solders.pubkey import Pubkey

from .errors import KlendClientError
from .models import ReserveConfigParams
from .protocols.kamino.constants import DEFAULT_ORACLES, PROGRAM_ID

logger = logging.getLogger(__name__)


class ConfigError(KlendClientError, ValueError):
    """Invalid configuration file."""


# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ChainConfig:
    rpc_endpoints: tuple[str, ...] = ()
    rpc_timeout: int = 30
    commitment: str = "confirmed"
    confirm_timeout: int = 60


@dataclass(frozen=True)
class ProgramConfig:
    program_id: Pubkey = PROGRAM_ID


@dataclass(frozen=True)
class WalletConfig:
    keypair_path: str = "~/.config/solana/id.json"


@dataclass(frozen=True)
class AppConfig:
    chain: ChainConfig = field(default_factory=ChainConfig)
    program: ProgramConfig = field(default_factory=ProgramConfig)
    wallet: WalletConfig = field(default_factory=WalletConfig)
    oracles: Mapping[str, Pubkey] = field(default_factory=lambda: dict(DEFAULT_ORACLES))
    reserve_defaults: ReserveConfigParams = field(default_factory=ReserveConfigParams)


# ---------------------------------------------------------------------------
# Env interpolation
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)}")


def _interpolate_env(value: Any) -> Any:
    """Recursively replace ${VAR} references with environment variable values."""
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(item) for item in value]
    return value


# ---------------------------------------------------------------------------
# YAML → dataclass builders
# ---------------------------------------------------------------------------


def parse_pubkey(value: Any, what: str) -> Pubkey:
    """Parse a base58 address, naming the offending setting on failure."""
    try:
        return Pubkey.from_string(str(value))
    except ValueError as e:
        raise ConfigError(f"{what} is not a valid address: {value!r}") from e


def _build_chain(raw: dict[str, Any]) -> ChainConfig:
    return ChainConfig(
        rpc_endpoints=tuple(raw.get("rpc_endpoints", [])),
        rpc_timeout=int(raw.get("rpc_timeout", 30)),
        commitment=raw.get("commitment", "confirmed"),
        confirm_timeout=int(raw.get("confirm_timeout", 60)),
    )


def _build_program(raw: dict[str, Any]) -> ProgramConfig:
    if "program_id" not in raw:
        return ProgramConfig()
    return ProgramConfig(program_id=parse_pubkey(raw["program_id"], "program.program_id"))


def _build_wallet(raw: dict[str, Any]) -> WalletConfig:
    return WalletConfig(
        keypair_path=raw.get("keypair_path") or WalletConfig.keypair_path,
    )


def _build_oracles(raw: dict[str, Any]) -> dict[str, Pubkey]:
    oracles = dict(DEFAULT_ORACLES)
    for symbol, address in raw.items():
        oracles[symbol.upper()] = parse_pubkey(address, f"oracles.{symbol}")
    return oracles


def _build_reserve_defaults(raw: dict[str, Any]) -> ReserveConfigParams:
    known = {f.name for f in dataclasses.fields(ReserveConfigParams)}
    unknown = set(raw) - known
    if unknown:
        raise ConfigError(f"Unknown reserve_defaults keys: {sorted(unknown)}")

    values: dict[str, Any] = {}
    for key, value in raw.items():
        if key == "price_feed":
            values[key] = parse_pubkey(value, "reserve_defaults.price_feed") if value else None
        elif key == "elevation_groups":
            values[key] = tuple(int(v) for v in value)
        else:
            values[key] = int(value)
    return ReserveConfigParams(**values)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load and validate application configuration from YAML + .env.

    Args:
        config_path: Path to config.yaml. Defaults to ``config.yaml`` in the
            project root (one level up from this package).
    """
    load_dotenv()

    if config_path is None:
        config_path = Path(__file__).resolve().parent.parent / "config.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    raw = _interpolate_env(raw)

    cfg = AppConfig(
        chain=_build_chain(raw.get("chain", {})),
        program=_build_program(raw.get("program", {})),
        wallet=_build_wallet(raw.get("wallet", {})),
        oracles=_build_oracles(raw.get("oracles", {})),
        reserve_defaults=_build_reserve_defaults(raw.get("reserve_defaults", {})),
    )

    _validate(cfg)
    logger.info("Configuration loaded from %s", config_path)
    return cfg


def _validate(cfg: AppConfig) -> None:
    """Raise on invalid configuration."""
    if not cfg.chain.rpc_endpoints:
        raise ConfigError("At least one RPC endpoint must be configured")
    if cfg.chain.commitment not in ("processed", "confirmed", "finalized"):
        raise ConfigError(f"Unknown commitment level '{cfg.chain.commitment}'")
    if cfg.chain.rpc_timeout <= 0 or cfg.chain.confirm_timeout <= 0:
        raise ConfigError("Timeouts must be positive")
