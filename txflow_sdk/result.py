"""
Interpretation of terminal transaction records.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, Mapping

from .args import decode
from .exceptions import ArgumentNotFound, ExecutionFailed
from .models import KeyRef, PublicKey, TransactionRecord, TransactionStatus
from .utils import bytes_to_hex

logger = logging.getLogger(__name__)


def is_success(record: TransactionRecord) -> bool:
    """A record is successful iff it EXECUTED and carries no error message"""
    return record.status == TransactionStatus.EXECUTED and record.error_message is None


class ExtractedArgs(Mapping):
    """Read-only mapping of argument name to decoded value"""

    def __init__(self, values: Dict[str, Any]):
        self._values = dict(values)

    def __getitem__(self, name: str) -> Any:
        return self._values[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def hex(self, name: str) -> str:
        """Hex form of a byte-valued argument"""
        value = self[name]
        if isinstance(value, (PublicKey, KeyRef)):
            return bytes_to_hex(value.to_bytes())
        if not isinstance(value, bytes):
            raise TypeError(f"Argument {name!r} is not a byte value")
        return bytes_to_hex(value)

    def render(self, name: str) -> str:
        """
        Human-readable form of an argument.

        Byte arrays render as comma-separated byte values, e.g. "15,0,0".
        """
        value = self[name]
        if isinstance(value, bytes):
            return ",".join(str(b) for b in value)
        return str(value)

    def __repr__(self) -> str:
        return f"ExtractedArgs({self._values!r})"


@dataclass(frozen=True)
class ConfirmedTransaction:
    """Successful outcome of a submission"""
    address: str
    record: TransactionRecord
    extracted: ExtractedArgs


def interpret(record: TransactionRecord, names: Iterable[str] = ("sr_id",)) -> ExtractedArgs:
    """
    Decode the requested arguments of a successful transaction.

    Args:
        record: Terminal transaction record
        names: Argument names to extract

    Returns:
        Extracted argument values

    Raises:
        ValueError: If the record is still pending
        ExecutionFailed: If the transaction did not succeed; carries the
            ledger's error message verbatim
        ArgumentNotFound: If a requested argument is missing
    """
    if not record.is_terminal:
        raise ValueError(f"Transaction {record.address} is still pending")

    if not is_success(record):
        logger.info(f"Transaction {record.address} failed: {record.error_message}")
        raise ExecutionFailed(record.error_message, address=record.address)

    values = {}
    for name in names:
        try:
            values[name] = decode(record.args, name)
        except ArgumentNotFound:
            logger.error(f"Transaction {record.address} has no {name} argument")
            raise
    return ExtractedArgs(values)
