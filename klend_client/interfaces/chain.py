"""Chain client protocol: ledger RPC abstraction."""
from typing import Any, Optional, Protocol

from solders.hash import Hash
from solders.pubkey import Pubkey
from solders.transaction import Transaction


class ChainClient(Protocol):
    """Abstract interface for ledger RPC interactions."""

    async def get_minimum_balance_for_rent_exemption(self, size: int) -> int: ...

    async def get_latest_blockhash(self) -> Hash: ...

    async def get_account_info(self, address: Pubkey) -> Optional[dict[str, Any]]: ...

    async def send_transaction(self, transaction: Transaction) -> str: ...
