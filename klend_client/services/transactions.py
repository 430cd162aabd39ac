"""Transaction orchestration: ordered instructions to one signed submission."""
from __future__ import annotations

import logging
from typing import Sequence

from solders.hash import Hash
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.transaction import Transaction

from ..errors import KlendClientError, MissingSignerError, SubmissionError
from ..interfaces.chain import ChainClient

logger = logging.getLogger(__name__)


def required_signers(instructions: Sequence[Instruction], payer: Pubkey) -> list[Pubkey]:
    """Signer keys the transaction needs, fee payer first, in first-seen order."""
    signers = [payer]
    for ix in instructions:
        for meta in ix.accounts:
            if meta.is_signer and meta.pubkey not in signers:
                signers.append(meta.pubkey)
    return signers


class TransactionOrchestrator:
    """Compose instructions into one atomic transaction and submit it.

    No retries: each submission yields exactly one signature or one error.
    """

    def __init__(self, chain_client: ChainClient) -> None:
        self._client = chain_client

    @staticmethod
    def compose(
        instructions: Sequence[Instruction],
        payer: Keypair,
        signers: Sequence[Keypair],
        recent_blockhash: Hash,
    ) -> Transaction:
        """Build and sign a transaction, keeping instruction order.

        Raises:
            KlendClientError: no instructions were given.
            MissingSignerError: a key flagged as signer has no keypair.
        """
        if not instructions:
            raise KlendClientError("Cannot compose an empty transaction")

        available = {kp.pubkey(): kp for kp in (payer, *signers)}
        needed = required_signers(instructions, payer.pubkey())
        missing = [str(key) for key in needed if key not in available]
        if missing:
            raise MissingSignerError(f"Missing signers: {', '.join(missing)}")

        return Transaction.new_signed_with_payer(
            list(instructions),
            payer.pubkey(),
            [available[key] for key in needed],
            recent_blockhash,
        )

    async def submit(
        self,
        instructions: Sequence[Instruction],
        payer: Keypair,
        signers: Sequence[Keypair] = (),
    ) -> str:
        """Sign and send ``instructions`` as one transaction.

        Returns:
            The confirmed transaction signature.

        Raises:
            SubmissionError: relayed unchanged from the chain client.
        """
        blockhash = await self._client.get_latest_blockhash()
        tx = self.compose(instructions, payer, signers, blockhash)
        logger.info(
            "Submitting %d instruction(s) with %d signer(s)",
            len(instructions), len(tx.signatures),
        )
        try:
            signature = await self._client.send_transaction(tx)
        except SubmissionError as e:
            logger.error("Transaction rejected: %s", e)
            raise
        logger.info("Transaction confirmed: %s", signature)
        return signature
