"""
JSON-RPC transport for a ledger node over HTTP.
"""
import itertools
import logging
import urllib.parse
from typing import Any, Dict, FrozenSet, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..args import named_args_from_json
from ..exceptions import EncodingError, LedgerConnectionError, LedgerResponseError
from ..models import SignedTransaction, TransactionRecord, TransactionStatus
from ..payload import payload_to_json
from ..utils import bytes_to_hex
from . import LedgerTransport, SubmitResult

logger = logging.getLogger(__name__)

PUT_TRANSACTION = "account_put_transaction"
GET_TRANSACTION = "info_get_transaction"

# Node error codes for an unknown transaction hash
DEFAULT_NOT_FOUND_CODES = frozenset({-32000, -32024})
# Node error codes for a transaction it has already accepted
DEFAULT_DUPLICATE_CODES = frozenset({-32009})


def transaction_to_json(transaction: SignedTransaction) -> Dict[str, Any]:
    """JSON body of a signed transaction"""
    return {
        "hash": transaction.address,
        "payload": payload_to_json(transaction.payload),
        "approvals": [
            {"signer": approval.signer.to_hex(), "signature": bytes_to_hex(approval.signature)}
            for approval in transaction.approvals
        ],
    }


def parse_transaction_record(address: str, result: Dict[str, Any]) -> TransactionRecord:
    """
    Convert an `info_get_transaction` result into a TransactionRecord.

    No execution info means the transaction is still pending. A Version2
    execution result is EXECUTED, with its error message if the execution
    reverted. A Version1 result is EXECUTED on Success and FAILED on Failure.

    Raises:
        LedgerResponseError: If the result is malformed
    """
    if not isinstance(result, dict):
        raise LedgerResponseError(f"Unexpected transaction result: {type(result).__name__}")

    transaction = result.get("transaction") or {}
    body = transaction.get("Version1") or transaction
    fields = (body.get("payload") or {}).get("fields") or {}
    named = (fields.get("args") or {}).get("Named") or []
    try:
        args = named_args_from_json(named)
    except EncodingError as e:
        raise LedgerResponseError(f"Malformed transaction arguments: {e}")

    info = result.get("execution_info") or {}
    execution_result = info.get("execution_result")
    common = {
        "address": address,
        "args": args,
        "block_hash": info.get("block_hash"),
        "block_height": info.get("block_height"),
    }
    if not execution_result:
        return TransactionRecord(status=TransactionStatus.PENDING, **common)

    if "Version2" in execution_result:
        outcome = execution_result["Version2"] or {}
        consumed = outcome.get("consumed")
        return TransactionRecord(
            status=TransactionStatus.EXECUTED,
            error_message=outcome.get("error_message"),
            consumed=int(consumed) if consumed is not None else None,
            **common,
        )

    if "Version1" in execution_result:
        outcome = execution_result["Version1"] or {}
        if "Failure" in outcome:
            failure = outcome["Failure"] or {}
            return TransactionRecord(
                status=TransactionStatus.FAILED,
                error_message=failure.get("error_message"),
                **common,
            )
        if "Success" in outcome:
            return TransactionRecord(status=TransactionStatus.EXECUTED, **common)

    raise LedgerResponseError(f"Unrecognized execution result: {execution_result!r}")


class JsonRpcTransport(LedgerTransport):
    """
    JSON-RPC 2.0 client for a ledger node.

    Reads are retried on connection errors and 5xx responses. Submissions are
    only retried when the connection could not be established, so a request
    that reached the node is never sent twice.
    """

    def __init__(
        self,
        node_url: str,
        retry_count: int = 3,
        timeout: int = 30,
        not_found_codes: FrozenSet[int] = DEFAULT_NOT_FOUND_CODES,
        duplicate_codes: FrozenSet[int] = DEFAULT_DUPLICATE_CODES
    ):
        """
        Initialize the transport.

        Args:
            node_url: JSON-RPC endpoint (e.g. "https://node.testnet.casper.network/rpc")
            retry_count: Number of retries for HTTP requests
            timeout: Timeout for HTTP requests in seconds
            not_found_codes: Error codes meaning "unknown transaction"
            duplicate_codes: Error codes meaning "already accepted"
        """
        parsed = urllib.parse.urlparse(node_url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"Invalid node URL: {node_url!r}")

        self.node_url = node_url
        self.timeout = timeout
        self.not_found_codes = not_found_codes
        self.duplicate_codes = duplicate_codes
        self._ids = itertools.count(1)

        self.session = requests.Session()
        read_retries = Retry(
            total=retry_count,
            backoff_factor=0.5,
            status_forcelist=[500, 502, 503, 504],
            allowed_methods=["POST"],
            raise_on_status=False,
            connect=retry_count,
            read=retry_count,
            other=retry_count
        )
        self.session.mount("http://", HTTPAdapter(max_retries=read_retries))
        self.session.mount("https://", HTTPAdapter(max_retries=read_retries))

        self.submit_session = requests.Session()
        connect_only = Retry(total=retry_count, connect=retry_count, read=0, status=0, other=0)
        self.submit_session.mount("http://", HTTPAdapter(max_retries=connect_only))
        self.submit_session.mount("https://", HTTPAdapter(max_retries=connect_only))

    def _call(self, method: str, params: Dict[str, Any], session: Optional[requests.Session] = None) -> Any:
        request_id = next(self._ids)
        body = {"jsonrpc": "2.0", "id": request_id, "method": method, "params": params}
        logger.debug(f"RPC request {method} id={request_id}")

        try:
            response = (session or self.session).post(self.node_url, json=body, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"RPC request {method} failed: {e}")
            raise LedgerConnectionError(f"RPC request {method} failed: {str(e)}") from e

        if response.status_code >= 500:
            raise LedgerConnectionError(f"RPC request {method} failed with HTTP {response.status_code}")
        if response.status_code >= 400:
            raise LedgerResponseError(
                f"RPC request {method} failed with HTTP {response.status_code}: {response.text[:256]}"
            )

        try:
            data = response.json()
        except ValueError as e:
            raise LedgerResponseError(f"Invalid JSON response from node: {str(e)}")

        if not isinstance(data, dict):
            raise LedgerResponseError(f"Invalid JSON-RPC response type: {type(data).__name__}")
        error = data.get("error")
        if error is not None:
            if not isinstance(error, dict):
                error = {"message": str(error)}
            raise LedgerResponseError(
                f"RPC[{method}] code={error.get('code')} msg={error.get('message')!r}",
                code=error.get("code"),
                data=error.get("data"),
            )
        if "result" not in data:
            raise LedgerResponseError("Malformed JSON-RPC response: missing result", data=data)
        return data["result"]

    def submit(self, transaction: SignedTransaction) -> SubmitResult:
        params = {"transaction": {"Version1": transaction_to_json(transaction)}}
        try:
            result = self._call(PUT_TRANSACTION, params, session=self.submit_session)
        except LedgerResponseError as e:
            if e.code is None:
                raise
            if e.code in self.duplicate_codes:
                logger.info(f"Transaction {transaction.address} already known to node")
                return SubmitResult(accepted=True, address=transaction.address, already_known=True)
            logger.warning(f"Node rejected transaction {transaction.address}: {e}")
            return SubmitResult(accepted=False, address=transaction.address, reason=str(e))

        address = result.get("transaction_hash") if isinstance(result, dict) else result
        if isinstance(address, dict):
            address = address.get("Version1") or address.get("Deploy")
        if not isinstance(address, str):
            raise LedgerResponseError(f"Unexpected {PUT_TRANSACTION} result: {result!r}")
        return SubmitResult(accepted=True, address=address)

    def get_by_address(self, address: str) -> Optional[TransactionRecord]:
        params = {"transaction_hash": {"Version1": address}, "finalized_approvals": True}
        try:
            result = self._call(GET_TRANSACTION, params)
        except LedgerResponseError as e:
            if e.code in self.not_found_codes:
                return None
            raise
        return parse_transaction_record(address, result)

    def close(self) -> None:
        self.session.close()
        self.submit_session.close()
