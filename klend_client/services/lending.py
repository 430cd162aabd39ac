"""Lending workflows: market administration and user actions."""
from __future__ import annotations

import logging
from typing import Optional, Sequence

from solders.keypair import Keypair
from solders.pubkey import Pubkey

from ..chains.solana import SolanaClient
from ..config import AppConfig
from ..interfaces.chain import ChainClient
from ..models import MarketSetup, ReserveConfigParams
from ..protocols.kamino import instructions as ix
from ..protocols.kamino import pda
from ..protocols.kamino.constants import (
    LENDING_MARKET_SIZE,
    RESERVE_SIZE,
    TOKEN_PROGRAM_ID,
)
from ..protocols.kamino.reserve_config import build_reserve_config, resolve_oracle
from .transactions import TransactionOrchestrator

logger = logging.getLogger(__name__)


class LendingService:
    """Builds each protocol action and submits it with the right signers.

    Every local error (derivation, encoding, missing signer) is raised
    before anything reaches the network.
    """

    def __init__(self, config: AppConfig, chain_client: ChainClient | None = None) -> None:
        self._config = config
        self._program_id = config.program.program_id
        self._client: ChainClient = chain_client or SolanaClient(config.chain)
        self._orchestrator = TransactionOrchestrator(self._client)

    def _params(self, params: Optional[ReserveConfigParams]) -> ReserveConfigParams:
        return params or self._config.reserve_defaults

    # ------------------------------------------------------------------
    # Market administration
    # ------------------------------------------------------------------

    async def create_lending_market(
        self,
        payer: Keypair,
        lending_market: Keypair,
        quote_currency: bytes = ix.QUOTE_CURRENCY_USD,
    ) -> str:
        """Allocate and initialise a lending market owned by ``payer``."""
        lamports = await self._client.get_minimum_balance_for_rent_exemption(
            LENDING_MARKET_SIZE
        )
        instructions = [
            ix.create_program_account(
                payer.pubkey(),
                lending_market.pubkey(),
                lamports,
                LENDING_MARKET_SIZE,
                self._program_id,
            ),
            ix.init_lending_market(
                payer.pubkey(), lending_market.pubkey(), quote_currency, self._program_id
            ),
        ]
        logger.info("Creating lending market %s", lending_market.pubkey())
        return await self._orchestrator.submit(instructions, payer, [lending_market])

    async def init_reserve(
        self,
        payer: Keypair,
        lending_market: Pubkey,
        reserve: Keypair,
        mint: Pubkey,
        token_program: Pubkey = TOKEN_PROGRAM_ID,
    ) -> str:
        """Allocate and initialise a reserve for ``mint`` under ``lending_market``."""
        lamports = await self._client.get_minimum_balance_for_rent_exemption(RESERVE_SIZE)
        instructions = [
            ix.create_program_account(
                payer.pubkey(), reserve.pubkey(), lamports, RESERVE_SIZE, self._program_id
            ),
            ix.init_reserve(
                lending_market,
                reserve.pubkey(),
                mint,
                payer.pubkey(),
                token_program,
                self._program_id,
            ),
        ]
        logger.info("Initialising reserve %s for mint %s", reserve.pubkey(), mint)
        return await self._orchestrator.submit(instructions, payer, [reserve])

    async def update_reserve_config(
        self,
        payer: Keypair,
        lending_market: Pubkey,
        reserve: Pubkey,
        token_symbol: str,
        params: Optional[ReserveConfigParams] = None,
    ) -> str:
        """Replace the reserve's entire config, built from ``params``."""
        reserve_config = build_reserve_config(
            token_symbol, self._params(params), self._config.oracles
        )
        instruction = ix.update_entire_reserve_config(
            reserve, payer.pubkey(), lending_market, reserve_config, self._program_id
        )
        logger.info("Updating config of reserve %s (%s)", reserve, token_symbol)
        return await self._orchestrator.submit([instruction], payer)

    # ------------------------------------------------------------------
    # User accounts
    # ------------------------------------------------------------------

    async def user_metadata_exists(self, user: Pubkey) -> bool:
        address = pda.user_metadata(user, self._program_id).address
        account = await self._client.get_account_info(address)
        return account is not None and account.get("owner") == str(self._program_id)

    async def init_user_metadata(
        self, payer: Keypair, referrer_user_metadata: Optional[Pubkey] = None
    ) -> str:
        instruction = ix.init_user_metadata(
            payer.pubkey(), referrer_user_metadata, program_id=self._program_id
        )
        logger.info("Initialising user metadata for %s", payer.pubkey())
        return await self._orchestrator.submit([instruction], payer)

    async def ensure_user_metadata(self, payer: Keypair) -> Optional[str]:
        """Initialise user metadata unless it already exists."""
        if await self.user_metadata_exists(payer.pubkey()):
            logger.info("User metadata for %s already exists", payer.pubkey())
            return None
        return await self.init_user_metadata(payer)

    async def init_obligation(
        self,
        payer: Keypair,
        lending_market: Pubkey,
        token_program: Pubkey = TOKEN_PROGRAM_ID,
    ) -> str:
        """Open the payer's canonical obligation under ``lending_market``."""
        instruction = ix.init_obligation(
            payer.pubkey(), lending_market, token_program, program_id=self._program_id
        )
        logger.info("Initialising obligation for %s", payer.pubkey())
        return await self._orchestrator.submit([instruction], payer)

    async def deposit(
        self,
        payer: Keypair,
        lending_market: Pubkey,
        reserve: Pubkey,
        mint: Pubkey,
        amount: int,
        token_symbol: str,
        token_program: Pubkey = TOKEN_PROGRAM_ID,
        params: Optional[ReserveConfigParams] = None,
        deposit_reserves: Sequence[Pubkey] = (),
        borrow_reserves: Sequence[Pubkey] = (),
    ) -> str:
        """Deposit ``amount`` of ``mint`` as collateral, refreshing first.

        The refresh reads the oracle the reserve config was built with, so
        ``params`` must match what ``update_reserve_config`` used.
        ``deposit_reserves`` and ``borrow_reserves`` list the reserves the
        obligation already holds, in its own order.
        """
        oracle = resolve_oracle(
            token_symbol, self._config.oracles, self._params(params).price_feed
        )
        instructions = ix.deposit_liquidity_and_collateral(
            lending_market,
            payer.pubkey(),
            mint,
            reserve,
            amount,
            pyth_oracle=oracle,
            token_program=token_program,
            deposit_reserves=deposit_reserves,
            borrow_reserves=borrow_reserves,
            program_id=self._program_id,
        )
        logger.info("Depositing %d into reserve %s", amount, reserve)
        return await self._orchestrator.submit(instructions, payer)

    # ------------------------------------------------------------------
    # Full bootstrap
    # ------------------------------------------------------------------

    async def setup_market(
        self,
        payer: Keypair,
        mint: Pubkey,
        token_symbol: str,
        params: Optional[ReserveConfigParams] = None,
        token_program: Pubkey = TOKEN_PROGRAM_ID,
    ) -> MarketSetup:
        """Create a market with one configured reserve and the payer's obligation."""
        # Surface encoding errors before the first transaction goes out.
        build_reserve_config(token_symbol, self._params(params), self._config.oracles)

        lending_market = Keypair()
        reserve = Keypair()
        signatures: list[str] = []

        signatures.append(await self.create_lending_market(payer, lending_market))
        signatures.append(
            await self.init_reserve(
                payer, lending_market.pubkey(), reserve, mint, token_program
            )
        )
        signatures.append(
            await self.update_reserve_config(
                payer, lending_market.pubkey(), reserve.pubkey(), token_symbol, params
            )
        )
        metadata_sig = await self.ensure_user_metadata(payer)
        if metadata_sig:
            signatures.append(metadata_sig)
        signatures.append(
            await self.init_obligation(payer, lending_market.pubkey(), token_program)
        )

        obligation = pda.user_obligation(
            lending_market.pubkey(), payer.pubkey(), program_id=self._program_id
        ).address
        logger.info(
            "Market %s ready: reserve %s, obligation %s",
            lending_market.pubkey(), reserve.pubkey(), obligation,
        )
        return MarketSetup(
            lending_market=lending_market.pubkey(),
            reserve=reserve.pubkey(),
            mint=mint,
            obligation=obligation,
            signatures=tuple(signatures),
        )
