"""
Transport layer for the remote ledger node.

The pipeline depends only on `LedgerTransport`: submit a signed transaction,
look a transaction up by address. `JsonRpcTransport` talks to a node over
HTTP; `StubTransport` is an in-memory ledger for tests and local development.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from ..models import SignedTransaction, TransactionRecord

if TYPE_CHECKING:
    from ..config import ClientConfig

__all__ = ["LedgerTransport", "SubmitResult", "get_transport"]

logger = logging.getLogger(__name__)

STUB_SCHEME = "stub://"


@dataclass
class SubmitResult:
    """
    Outcome of handing a signed transaction to the node.

    `already_known` means the node had already accepted a transaction with
    this address; it is an acceptance, not a rejection.
    """
    accepted: bool
    address: str = ""
    already_known: bool = False
    reason: Optional[str] = None

    @classmethod
    def validate(cls, result: "SubmitResult") -> bool:
        """
        Validate that accepted / already_known / reason are consistent.

        Raises:
            ValueError: If the combination is contradictory
        """
        if result.already_known and not result.accepted:
            raise ValueError("Invalid submit result: already_known=True with accepted=False")
        if result.accepted and result.reason:
            raise ValueError(f"Invalid submit result: accepted=True with reason {result.reason!r}")
        return True


class LedgerTransport(ABC):
    """
    Abstract base class for ledger node transports.

    Implementations must support concurrent independent requests.
    """

    @abstractmethod
    def submit(self, transaction: SignedTransaction) -> SubmitResult:
        """
        Send a signed transaction to the node.

        Returns:
            SubmitResult; synchronous rejections are reported, not raised

        Raises:
            LedgerConnectionError: If the node cannot be reached
            LedgerResponseError: If the node response is malformed
        """
        pass

    @abstractmethod
    def get_by_address(self, address: str) -> Optional[TransactionRecord]:
        """
        Look up a transaction by address.

        Returns:
            The record, or None if the node does not know the transaction (yet)

        Raises:
            LedgerConnectionError: If the node cannot be reached
            LedgerResponseError: If the node returns an error or malformed data
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Close any open connections or resources."""
        pass

    def __enter__(self) -> "LedgerTransport":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def get_transport(config: "ClientConfig") -> LedgerTransport:
    """
    Get the transport for a configuration.

    A `stub://` node URL selects the in-memory ledger; anything else uses
    JSON-RPC over HTTP.
    """
    if config.node_url.startswith(STUB_SCHEME):
        from .stub import StubTransport
        logger.info("Using in-memory stub ledger")
        return StubTransport(chain_name=config.chain_name)

    from .rpc import JsonRpcTransport
    logger.info(f"Using JSON-RPC transport for {config.node_url}")
    return JsonRpcTransport(
        config.node_url,
        retry_count=config.retry_count,
        timeout=config.request_timeout,
    )
