"""Solana JSON-RPC client with fallback support."""
import asyncio
import base64
import logging
import ssl
from typing import Any, Optional

import aiohttp
import certifi
from solders.hash import Hash
from solders.pubkey import Pubkey
from solders.transaction import Transaction

from ...config import ChainConfig
from ...errors import RpcError, SubmissionError

logger = logging.getLogger(__name__)

_COMMITMENT_RANK = {"processed": 0, "confirmed": 1, "finalized": 2}
CONFIRM_POLL_INTERVAL = 0.5


class SolanaClient:
    """Solana RPC client with automatic endpoint fallback for reads.

    Transactions are sent to the current endpoint only and never re-sent.
    """

    def __init__(self, config: ChainConfig) -> None:
        self.endpoints = list(config.rpc_endpoints)
        self.timeout = config.rpc_timeout
        self.commitment = config.commitment
        self.confirm_timeout = config.confirm_timeout
        self.current_rpc_index = 0

    async def _post(self, rpc_url: str, payload: dict[str, Any]) -> dict[str, Any]:
        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)
        async with aiohttp.ClientSession(connector=connector) as session:
            async with session.post(
                rpc_url,
                json=payload,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as response:
                return await response.json()

    async def rpc_call(self, method: str, params: list[Any]) -> Any:
        """Make RPC call with fallback to alternative endpoints."""
        payload = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params}

        last_error: Exception | None = None
        for attempt in range(len(self.endpoints)):
            rpc_index = (self.current_rpc_index + attempt) % len(self.endpoints)
            rpc_url = self.endpoints[rpc_index]

            try:
                result = await self._post(rpc_url, payload)
                if "error" in result:
                    raise RuntimeError(f"RPC Error: {result['error']}")

                if rpc_index != self.current_rpc_index:
                    logger.info("Switched to RPC endpoint: %s", rpc_url)
                    self.current_rpc_index = rpc_index

                return result.get("result")
            except Exception as e:
                last_error = e
                logger.warning("RPC endpoint %s failed: %s", rpc_url, e)
                if attempt < len(self.endpoints) - 1:
                    logger.info("Trying next endpoint...")
                continue

        raise RpcError(f"All RPC endpoints failed. Last error: {last_error}")

    async def get_minimum_balance_for_rent_exemption(self, size: int) -> int:
        """Lamports needed for an account of ``size`` bytes to be rent exempt."""
        result = await self.rpc_call(
            "getMinimumBalanceForRentExemption",
            [size, {"commitment": self.commitment}],
        )
        return int(result)

    async def get_latest_blockhash(self) -> Hash:
        result = await self.rpc_call(
            "getLatestBlockhash", [{"commitment": self.commitment}]
        )
        return Hash.from_string(result["value"]["blockhash"])

    async def get_account_info(self, address: Pubkey) -> Optional[dict[str, Any]]:
        """Raw account state, or None when the account does not exist."""
        result = await self.rpc_call(
            "getAccountInfo",
            [str(address), {"encoding": "base64", "commitment": self.commitment}],
        )
        return result.get("value") if result else None

    async def get_signature_status(self, signature: str) -> Optional[dict[str, Any]]:
        result = await self.rpc_call(
            "getSignatureStatuses",
            [[signature], {"searchTransactionHistory": False}],
        )
        statuses = result.get("value", []) if result else []
        return statuses[0] if statuses else None

    async def send_transaction(self, transaction: Transaction) -> str:
        """Submit a signed transaction and wait for the configured commitment.

        Returns:
            The transaction signature (base58).

        Raises:
            SubmissionError: the node or the program rejected the
                transaction; ``remote_error`` carries the payload verbatim.
            RpcError: the endpoint could not be reached.
        """
        encoded = base64.b64encode(bytes(transaction)).decode("ascii")
        payload = {
            "jsonrpc": "2.0",
            "id": 1,
            "method": "sendTransaction",
            "params": [
                encoded,
                {"encoding": "base64", "preflightCommitment": self.commitment},
            ],
        }
        rpc_url = self.endpoints[self.current_rpc_index]

        try:
            result = await self._post(rpc_url, payload)
        except Exception as e:
            logger.error("sendTransaction to %s failed: %s", rpc_url, e)
            raise RpcError(f"sendTransaction failed: {e}") from e

        if "error" in result:
            error = result["error"]
            raise SubmissionError(f"Transaction rejected: {error.get('message', error)}", error)

        signature = result["result"]
        logger.info("Sent transaction %s", signature)
        await self.confirm_transaction(signature)
        return signature

    async def confirm_transaction(self, signature: str) -> None:
        """Poll until ``signature`` reaches the configured commitment."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.confirm_timeout
        wanted = _COMMITMENT_RANK[self.commitment]

        while loop.time() < deadline:
            status = await self.get_signature_status(signature)
            if status:
                if status.get("err") is not None:
                    raise SubmissionError(
                        f"Transaction {signature} failed: {status['err']}", status["err"]
                    )
                reached = _COMMITMENT_RANK.get(status.get("confirmationStatus") or "", -1)
                if reached >= wanted:
                    logger.info(
                        "Transaction %s reached %s", signature, status["confirmationStatus"]
                    )
                    return
            await asyncio.sleep(CONFIRM_POLL_INTERVAL)

        raise SubmissionError(
            f"Transaction {signature} not confirmed within {self.confirm_timeout}s"
        )
