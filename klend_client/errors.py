"""Error taxonomy for the lending client."""
from __future__ import annotations

from typing import Any


class KlendClientError(Exception):
    """Base class for every error raised by this package."""


class DerivationError(KlendClientError):
    """No program address can be derived from a seed set."""


class EncodingError(KlendClientError, ValueError):
    """An input does not fit the fixed binary shape the program expects."""


class MissingSignerError(KlendClientError):
    """A signer required by an instruction is absent from the signer set."""


class RpcError(KlendClientError, RuntimeError):
    """Transport failure talking to the ledger RPC."""


class SubmissionError(KlendClientError):
    """The ledger rejected a transaction.

    ``remote_error`` holds the error payload exactly as reported.
    """

    def __init__(self, message: str, remote_error: Any = None) -> None:
        super().__init__(message)
        self.remote_error = remote_error
