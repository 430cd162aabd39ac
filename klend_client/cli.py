"""Command-line interface for the lending client."""
from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from solders.keypair import Keypair
from solders.pubkey import Pubkey

from .config import AppConfig, load_config, parse_pubkey
from .errors import KlendClientError
from .logging_setup import configure_logging
from .protocols.kamino import pda
from .protocols.kamino.constants import PROGRAM_ID
from .services import LendingService


def load_keypair(path: str) -> Keypair:
    """Read a JSON keypair file (the ``solana-keygen`` format)."""
    return Keypair.from_json(Path(path).expanduser().read_text())


def _pubkey(value: str) -> Pubkey:
    try:
        return parse_pubkey(value, "argument")
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse CLI parser."""
    parser = argparse.ArgumentParser(
        prog="klend-client",
        description="Kamino lending market administration and user actions",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yaml (default: config.yaml in project root)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )

    sub = parser.add_subparsers(dest="command")

    derive = sub.add_parser("derive", help="Print derived addresses (no network)")
    derive.add_argument("--market", type=_pubkey, required=True)
    derive.add_argument("--mint", type=_pubkey, default=None)
    derive.add_argument("--user", type=_pubkey, default=None)
    derive.add_argument("--program-id", type=_pubkey, default=PROGRAM_ID)

    sub.add_parser("create-market", help="Create and initialise a lending market")

    init_reserve = sub.add_parser("init-reserve", help="Create a reserve for a mint")
    init_reserve.add_argument("--market", type=_pubkey, required=True)
    init_reserve.add_argument("--mint", type=_pubkey, required=True)

    update = sub.add_parser("update-config", help="Replace a reserve's config")
    update.add_argument("--market", type=_pubkey, required=True)
    update.add_argument("--reserve", type=_pubkey, required=True)
    update.add_argument("--symbol", required=True, help="Token symbol, e.g. SOL")

    sub.add_parser("init-user", help="Create the wallet's user metadata")

    obligation = sub.add_parser("init-obligation", help="Open the wallet's obligation")
    obligation.add_argument("--market", type=_pubkey, required=True)

    deposit = sub.add_parser("deposit", help="Deposit liquidity as collateral")
    deposit.add_argument("--market", type=_pubkey, required=True)
    deposit.add_argument("--reserve", type=_pubkey, required=True)
    deposit.add_argument("--mint", type=_pubkey, required=True)
    deposit.add_argument("--symbol", required=True)
    deposit.add_argument(
        "--deposit-reserve", type=_pubkey, action="append", default=[],
        help="Reserve the obligation already deposits into (repeatable, in order)",
    )
    deposit.add_argument(
        "--borrow-reserve", type=_pubkey, action="append", default=[],
        help="Reserve the obligation already borrows from (repeatable, in order)",
    )
    deposit.add_argument("amount", type=int, help="Amount in base units")

    setup = sub.add_parser("setup", help="Market + configured reserve + obligation")
    setup.add_argument("--mint", type=_pubkey, required=True)
    setup.add_argument("--symbol", required=True)

    return parser


def print_derived(args: argparse.Namespace) -> None:
    """Print every address derivable from the given market/mint/user."""
    program_id = args.program_id
    print(f"market_authority:  {pda.market_authority(args.market, program_id).address}")
    if args.mint is not None:
        vaults = pda.get_reserve_pdas(args.market, args.mint, program_id)
        print(f"liquidity_supply:  {vaults.liquidity_supply}")
        print(f"collateral_mint:   {vaults.collateral_mint}")
        print(f"collateral_supply: {vaults.collateral_supply}")
        print(f"fee_vault:         {vaults.fee_vault}")
    if args.user is not None:
        print(f"user_metadata:     {pda.user_metadata(args.user, program_id).address}")
        obligation = pda.user_obligation(args.market, args.user, program_id=program_id)
        print(f"obligation:        {obligation.address}")


async def _run(args: argparse.Namespace, config: AppConfig) -> None:
    """Execute the selected network command."""
    service = LendingService(config)
    payer = load_keypair(config.wallet.keypair_path)

    if args.command == "create-market":
        market = Keypair()
        sig = await service.create_lending_market(payer, market)
        print(f"lending_market: {market.pubkey()}\nsignature: {sig}")
    elif args.command == "init-reserve":
        reserve = Keypair()
        sig = await service.init_reserve(payer, args.market, reserve, args.mint)
        print(f"reserve: {reserve.pubkey()}\nsignature: {sig}")
    elif args.command == "update-config":
        sig = await service.update_reserve_config(
            payer, args.market, args.reserve, args.symbol.upper()
        )
        print(f"signature: {sig}")
    elif args.command == "init-user":
        sig = await service.ensure_user_metadata(payer)
        print(f"signature: {sig}" if sig else "user metadata already exists")
    elif args.command == "init-obligation":
        sig = await service.init_obligation(payer, args.market)
        print(f"signature: {sig}")
    elif args.command == "deposit":
        sig = await service.deposit(
            payer,
            args.market,
            args.reserve,
            args.mint,
            args.amount,
            args.symbol.upper(),
            deposit_reserves=args.deposit_reserve,
            borrow_reserves=args.borrow_reserve,
        )
        print(f"signature: {sig}")
    elif args.command == "setup":
        result = await service.setup_market(payer, args.mint, args.symbol.upper())
        print(f"lending_market: {result.lending_market}")
        print(f"reserve:        {result.reserve}")
        print(f"obligation:     {result.obligation}")


def main() -> None:
    """Entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    configure_logging(args.log_level)

    if args.command == "derive":
        print_derived(args)
        return

    try:
        config = load_config(args.config)
        asyncio.run(_run(args, config))
    except (KlendClientError, FileNotFoundError) as e:
        print(f"error: {e}", file=sys.stderr)
        sys.exit(2)
