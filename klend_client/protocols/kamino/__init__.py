"""Kamino lending program: addresses, config encoding and instructions."""
from . import accounts, instructions, pda
from .constants import DEFAULT_ORACLES, PROGRAM_ID
from .reserve_config import build_reserve_config
from .types import ReserveConfig

__all__ = [
    "DEFAULT_ORACLES",
    "PROGRAM_ID",
    "ReserveConfig",
    "accounts",
    "build_reserve_config",
    "instructions",
    "pda",
]
