"""
In-memory ledger for tests and local development.

Accepts signed transactions after the same checks a node performs (address,
signatures, chain, TTL), dedups by address, and executes each transaction
after a configurable number of status reads.
"""
import logging
import threading
import time
from typing import Callable, Dict, List, Optional

from ..models import NativeTransfer, SignedTransaction, TransactionRecord, TransactionStatus
from ..payload import compute_address
from ..signer import verify
from . import LedgerTransport, SubmitResult

logger = logging.getLogger(__name__)

EXPIRED_MESSAGE = "Transaction expired"
# error_messages key for native transfers; other keys name contract entry points
NATIVE_TRANSFER_KEY = "native_transfer"


def _wall_clock_ms() -> int:
    return int(time.time() * 1000)


class StubTransport(LedgerTransport):
    """
    Thread-safe in-memory ledger.

    Example:
        >>> ledger = StubTransport(error_messages={"transfer": "User error: 60001"})
        >>> ledger.submit(signed).accepted
        True
    """

    def __init__(
        self,
        chain_name: Optional[str] = None,
        execute_after_polls: Optional[int] = 1,
        error_messages: Optional[Dict[str, str]] = None,
        clock: Optional[Callable[[], int]] = None
    ):
        """
        Initialize the ledger.

        Args:
            chain_name: Only accept transactions for this chain (any chain if None)
            execute_after_polls: Reads of a pending transaction before it executes;
                None keeps transactions pending forever
            error_messages: Contract entry point name (or NATIVE_TRANSFER_KEY) ->
                error message recorded on execution
            clock: Current time in ms, for TTL checks
        """
        self.chain_name = chain_name
        self.execute_after_polls = execute_after_polls
        self.error_messages = dict(error_messages or {})
        self._clock = clock or _wall_clock_ms
        self._lock = threading.RLock()
        self._transactions: Dict[str, SignedTransaction] = {}
        self._records: Dict[str, TransactionRecord] = {}
        self._polls: Dict[str, int] = {}
        self.submissions: List[str] = []
        self.closed = False

    def _expired(self, transaction: SignedTransaction) -> bool:
        payload = transaction.payload
        return self._clock() > payload.timestamp + payload.ttl

    def _reject(self, transaction: SignedTransaction, reason: str) -> SubmitResult:
        logger.warning(f"Stub ledger rejected {transaction.address}: {reason}")
        return SubmitResult(accepted=False, address=transaction.address, reason=reason)

    def submit(self, transaction: SignedTransaction) -> SubmitResult:
        with self._lock:
            self.submissions.append(transaction.address)

            if transaction.address in self._transactions:
                return SubmitResult(accepted=True, address=transaction.address, already_known=True)

            if compute_address(transaction.payload) != transaction.address:
                return self._reject(transaction, "Transaction hash does not match payload")
            if not verify(transaction):
                return self._reject(transaction, "Invalid approval signature")
            if self.chain_name and transaction.payload.chain_name != self.chain_name:
                return self._reject(
                    transaction,
                    f"Chain name mismatch: expected {self.chain_name}, got {transaction.payload.chain_name}",
                )
            if self._expired(transaction):
                return self._reject(transaction, EXPIRED_MESSAGE)

            self._transactions[transaction.address] = transaction
            self._records[transaction.address] = TransactionRecord(
                address=transaction.address,
                status=TransactionStatus.PENDING,
                args=transaction.payload.args,
            )
            self._polls[transaction.address] = 0
            logger.debug(f"Stub ledger accepted {transaction.address}")
            return SubmitResult(accepted=True, address=transaction.address)

    def get_by_address(self, address: str) -> Optional[TransactionRecord]:
        with self._lock:
            record = self._records.get(address)
            if record is None or record.is_terminal or address not in self._transactions:
                return record

            self._polls[address] = self._polls.get(address, 0) + 1
            if self.execute_after_polls is None or self._polls[address] < self.execute_after_polls:
                return record

            self._records[address] = self._execute(self._transactions[address], record)
            return self._records[address]

    def _execute(self, transaction: SignedTransaction, record: TransactionRecord) -> TransactionRecord:
        if self._expired(transaction):
            return record.model_copy(update={
                "status": TransactionStatus.FAILED,
                "error_message": EXPIRED_MESSAGE,
            })
        height = len([r for r in self._records.values() if r.is_terminal]) + 1
        return record.model_copy(update={
            "status": TransactionStatus.EXECUTED,
            "error_message": self._scripted_error(transaction),
            "block_height": height,
            "consumed": transaction.payload.fee,
        })

    def _scripted_error(self, transaction: SignedTransaction) -> Optional[str]:
        if isinstance(transaction.payload.target, NativeTransfer):
            return self.error_messages.get(NATIVE_TRANSFER_KEY)
        return self.error_messages.get(transaction.payload.entry_point)

    def set_record(self, record: TransactionRecord) -> None:
        """Overwrite the stored record for an address"""
        with self._lock:
            self._records[record.address] = record

    def close(self) -> None:
        self.closed = True
