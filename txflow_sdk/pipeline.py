"""
Submission pipeline: broadcast a signed transaction and wait for its outcome.

Each transaction moves through BUILT -> SIGNED -> BROADCAST and ends in
EXECUTED, FAILED or TIMED_OUT (or CANCELLED when the caller stops watching).
Polling is the only retry loop; it re-reads the status, never re-broadcasts.
"""
import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from ._rate_limited_log import rate_limited_log
from .exceptions import (
    BroadcastRejected, ConfirmationCancelled, ConfirmationTimeout, LedgerConnectionError,
    LedgerResponseError
)
from .models import SignedTransaction, TransactionRecord
from .result import is_success
from .transport import LedgerTransport, SubmitResult

logger = logging.getLogger(__name__)


class SubmissionState(str, Enum):
    BUILT = "built"
    SIGNED = "signed"
    BROADCAST = "broadcast"
    EXECUTED = "executed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


TERMINAL_STATES = frozenset({
    SubmissionState.EXECUTED,
    SubmissionState.FAILED,
    SubmissionState.TIMED_OUT,
    SubmissionState.CANCELLED,
})


@dataclass
class Submission:
    """Local state of one transaction"""
    transaction: SignedTransaction
    state: SubmissionState = SubmissionState.SIGNED
    record: Optional[TransactionRecord] = None
    history: List[SubmissionState] = field(default_factory=lambda: [SubmissionState.BUILT])

    def __post_init__(self):
        if not self.history or self.history[-1] != self.state:
            self.history.append(self.state)

    @property
    def address(self) -> str:
        return self.transaction.address

    def advance(self, state: SubmissionState) -> None:
        if self.state in TERMINAL_STATES:
            raise ValueError(f"Submission {self.address} is already {self.state.value}")
        self.state = state
        self.history.append(state)


class SubmissionPipeline:
    """
    Broadcasts signed transactions and polls until a terminal status.

    The poll interval starts at `poll_interval` seconds and grows by `backoff`
    up to `max_poll_interval`; sleeps never extend past the deadline.
    """

    def __init__(
        self,
        transport: LedgerTransport,
        poll_interval: float = 1.0,
        max_poll_interval: float = 10.0,
        backoff: float = 1.5,
        logger: Optional[logging.Logger] = None
    ):
        if poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive, got {poll_interval}")
        if max_poll_interval < poll_interval:
            raise ValueError("max_poll_interval must be >= poll_interval")
        if backoff < 1:
            raise ValueError(f"backoff must be >= 1, got {backoff}")

        self.transport = transport
        self.poll_interval = poll_interval
        self.max_poll_interval = max_poll_interval
        self.backoff = backoff
        self.logger = logger or logging.getLogger(__name__)

    def broadcast(self, signed: SignedTransaction) -> SubmitResult:
        """
        Hand a signed transaction to the node.

        "Already known" responses are accepted like fresh acceptances.

        Raises:
            BroadcastRejected: If the node refuses the transaction
            LedgerResponseError: If the node reports a different address
            LedgerConnectionError: If the node cannot be reached
        """
        result = self.transport.submit(signed)
        SubmitResult.validate(result)

        if not result.accepted:
            self.logger.error(f"Transaction {signed.address} rejected: {result.reason}")
            raise BroadcastRejected(
                f"Transaction rejected by node: {result.reason or 'no reason given'}",
                address=signed.address,
                reason=result.reason,
            )
        if result.address and result.address != signed.address:
            raise LedgerResponseError(
                f"Node reported address {result.address} for transaction {signed.address}"
            )

        if result.already_known:
            self.logger.info(f"Transaction {signed.address} already known to node")
        else:
            self.logger.info(f"Transaction sent: {signed.address}")
        return result

    def _sleep(self, seconds: float, cancel_event: Optional[threading.Event], address: str) -> None:
        if cancel_event is None:
            time.sleep(seconds)
        elif cancel_event.wait(seconds):
            raise ConfirmationCancelled(f"Confirmation of {address} cancelled", address=address)

    def await_confirmation(
        self,
        address: str,
        timeout: float,
        cancel_event: Optional[threading.Event] = None
    ) -> TransactionRecord:
        """
        Poll until the transaction leaves PENDING or the deadline passes.

        Args:
            address: Transaction address
            timeout: Seconds to wait for a terminal status
            cancel_event: Set by the caller to stop waiting

        Returns:
            Terminal transaction record

        Raises:
            ConfirmationTimeout: If the deadline passes first (outcome unknown)
            ConfirmationCancelled: If cancel_event is set (outcome unknown)
            LedgerResponseError: If the node returns an error
        """
        if timeout <= 0:
            raise ValueError(f"timeout must be positive, got {timeout}")

        deadline = time.monotonic() + timeout
        interval = self.poll_interval
        polls = 0

        while True:
            if cancel_event is not None and cancel_event.is_set():
                raise ConfirmationCancelled(f"Confirmation of {address} cancelled", address=address)

            polls += 1
            try:
                record = self.transport.get_by_address(address)
            except LedgerConnectionError as e:
                rate_limited_log(
                    f"Status read for {address} failed, retrying: {e}",
                    level="warning",
                    logger_instance=self.logger,
                    key=f"read-failed:{address}",
                )
                record = None

            if record is not None and record.is_terminal:
                self.logger.debug(f"Transaction {address} terminal after {polls} polls: {record.status.value}")
                return record

            rate_limited_log(
                f"Transaction {address} still pending",
                level="debug",
                logger_instance=self.logger,
                key=f"pending:{address}",
            )

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise ConfirmationTimeout(
                    f"No terminal status for {address} after {timeout}s",
                    address=address,
                    timeout=timeout,
                )
            self._sleep(min(interval, remaining), cancel_event, address)
            interval = min(interval * self.backoff, self.max_poll_interval)

    def submit(
        self,
        signed: SignedTransaction,
        timeout: float,
        cancel_event: Optional[threading.Event] = None
    ) -> Submission:
        """
        Broadcast and wait for the outcome.

        The returned Submission is EXECUTED or FAILED; timeouts and
        cancellations are raised after recording the state on the exception.
        """
        submission = Submission(transaction=signed)

        try:
            self.broadcast(signed)
        except BroadcastRejected as e:
            e.submission = submission
            raise
        submission.advance(SubmissionState.BROADCAST)

        try:
            record = self.await_confirmation(signed.address, timeout, cancel_event)
        except ConfirmationTimeout as e:
            submission.advance(SubmissionState.TIMED_OUT)
            e.submission = submission
            raise
        except ConfirmationCancelled as e:
            submission.advance(SubmissionState.CANCELLED)
            e.submission = submission
            raise

        submission.record = record
        if is_success(record):
            submission.advance(SubmissionState.EXECUTED)
        else:
            submission.advance(SubmissionState.FAILED)
        return submission
