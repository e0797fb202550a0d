"""
Exceptions for the txflow SDK.

Local validation errors (EncodingError, InvalidTarget, InvalidPricing,
SigningError) are raised before any network I/O. Pipeline errors describe
what was observed about a transaction after it left the process.
"""
from typing import Optional


class TxFlowError(Exception):
    """Base exception for all txflow SDK errors."""
    pass


class EncodingError(TxFlowError):
    """Raised when a value cannot be encoded as the declared argument type."""
    pass


class ArgumentNotFound(TxFlowError):
    """Raised when a named argument is absent from an argument list."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"{name} argument not found in transaction")


class InvalidTarget(TxFlowError):
    """Raised when a target descriptor is incomplete or inconsistent."""
    pass


class InvalidPricing(TxFlowError):
    """Raised when a pricing policy cannot be resolved to a single fee."""
    pass


class SigningError(TxFlowError):
    """Raised when a payload cannot be signed by the given identity."""
    pass


class PipelineError(TxFlowError):
    """Base exception for failures observed after signing."""

    def __init__(self, message: str, address: Optional[str] = None):
        self.address = address
        # Set by SubmissionPipeline.submit to the local state at failure
        self.submission = None
        super().__init__(message)


class BroadcastRejected(PipelineError):
    """Raised when the node refuses a signed transaction synchronously."""

    def __init__(self, message: str, address: Optional[str] = None, reason: Optional[str] = None):
        self.reason = reason
        super().__init__(message, address)


class ConfirmationTimeout(PipelineError):
    """
    Raised when no terminal status was observed before the deadline.

    The outcome is unknown: the transaction may still execute remotely.
    """

    def __init__(self, message: str, address: Optional[str] = None, timeout: Optional[float] = None):
        self.timeout = timeout
        super().__init__(message, address)


class ConfirmationCancelled(PipelineError):
    """Raised when the caller aborts confirmation polling. Outcome unknown."""
    pass


class ExecutionFailed(PipelineError):
    """Raised when the ledger reports a terminal, unsuccessful execution."""

    def __init__(self, error_message: Optional[str], address: Optional[str] = None):
        self.error_message = error_message
        super().__init__(error_message or "Transaction was not successful", address)


class LedgerError(TxFlowError):
    """Base exception for ledger transport errors."""
    pass


class LedgerConnectionError(LedgerError):
    """Raised when the ledger node cannot be reached."""
    pass


class LedgerResponseError(LedgerError):
    """Raised when the ledger node returns an error or malformed response."""

    def __init__(self, message: str, code: Optional[int] = None, data: Optional[object] = None):
        self.code = code
        self.data = data
        super().__init__(message)
