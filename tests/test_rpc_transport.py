"""
Tests for the JSON-RPC transport, with the node mocked by requests_mock.
"""
import pytest
import requests

from txflow_sdk.exceptions import BroadcastRejected, LedgerConnectionError, LedgerResponseError
from txflow_sdk.models import TransactionStatus
from txflow_sdk.pipeline import SubmissionPipeline, SubmissionState
from txflow_sdk.transport.rpc import (
    GET_TRANSACTION, PUT_TRANSACTION, JsonRpcTransport, parse_transaction_record,
    transaction_to_json
)

from conftest import TEST_NODE_URL


@pytest.fixture
def transport():
    rpc = JsonRpcTransport(TEST_NODE_URL, retry_count=0, timeout=5)
    yield rpc
    rpc.close()


def _info_result(signed, execution_result=None, **info):
    result = {
        "api_version": "2.0.0",
        "transaction": {"Version1": transaction_to_json(signed)},
        "execution_info": None,
    }
    if execution_result is not None:
        result["execution_info"] = dict(
            {"block_hash": "aa" * 32, "block_height": 4242, "execution_result": execution_result},
            **info
        )
    return result


class TestSubmit:
    def test_request_body(self, transport, signed_transfer, requests_mock):
        requests_mock.post(TEST_NODE_URL, json={
            "jsonrpc": "2.0", "id": 1,
            "result": {"api_version": "2.0.0", "transaction_hash": {"Version1": signed_transfer.address}},
        })

        result = transport.submit(signed_transfer)

        assert result.accepted
        assert result.address == signed_transfer.address
        body = requests_mock.last_request.json()
        assert body["jsonrpc"] == "2.0"
        assert body["method"] == PUT_TRANSACTION
        sent = body["params"]["transaction"]["Version1"]
        assert sent["hash"] == signed_transfer.address
        assert sent["approvals"][0]["signer"] == signed_transfer.approvals[0].signer.to_hex()
        assert sent["approvals"][0]["signature"] == signed_transfer.approvals[0].signature.hex()
        assert sent["payload"]["chain_name"] == "casper-test"

    def test_duplicate_is_already_known(self, transport, signed_transfer, requests_mock):
        requests_mock.post(TEST_NODE_URL, json={
            "jsonrpc": "2.0", "id": 1,
            "error": {"code": -32009, "message": "Duplicate transaction"},
        })
        result = transport.submit(signed_transfer)
        assert result.accepted
        assert result.already_known
        assert result.address == signed_transfer.address

    def test_rejection_mentioning_already_is_not_duplicate(self, transport, signed_transfer, requests_mock):
        requests_mock.post(TEST_NODE_URL, json={
            "jsonrpc": "2.0", "id": 1,
            "error": {
                "code": -32008,
                "message": "Invalid transaction",
                "data": "The transaction's timestamp is already past its ttl",
            },
        })
        result = transport.submit(signed_transfer)
        assert not result.accepted
        assert not result.already_known
        assert "Invalid transaction" in result.reason

    def test_expired_rejection_raises_broadcast_rejected(self, transport, signed_transfer, requests_mock):
        requests_mock.post(TEST_NODE_URL, json={
            "jsonrpc": "2.0", "id": 1,
            "error": {
                "code": -32008,
                "message": "Invalid transaction",
                "data": "The transaction's timestamp is already past its ttl",
            },
        })
        with pytest.raises(BroadcastRejected) as exc_info:
            SubmissionPipeline(transport, poll_interval=0.01).submit(signed_transfer, timeout=0.5)
        assert exc_info.value.submission.state == SubmissionState.SIGNED
        assert requests_mock.call_count == 1

    def test_custom_duplicate_codes(self, signed_transfer, requests_mock):
        transport = JsonRpcTransport(TEST_NODE_URL, retry_count=0, duplicate_codes=frozenset({-32015}))
        requests_mock.post(TEST_NODE_URL, json={
            "jsonrpc": "2.0", "id": 1,
            "error": {"code": -32015, "message": "Transaction already exists"},
        })
        assert transport.submit(signed_transfer).already_known

    def test_rejection(self, transport, signed_transfer, requests_mock):
        requests_mock.post(TEST_NODE_URL, json={
            "jsonrpc": "2.0", "id": 1,
            "error": {"code": -32016, "message": "Invalid transaction", "data": "expired"},
        })
        result = transport.submit(signed_transfer)
        assert not result.accepted
        assert "Invalid transaction" in result.reason

    def test_server_error(self, transport, signed_transfer, requests_mock):
        requests_mock.post(TEST_NODE_URL, status_code=503)
        with pytest.raises(LedgerConnectionError):
            transport.submit(signed_transfer)

    def test_client_error(self, transport, signed_transfer, requests_mock):
        requests_mock.post(TEST_NODE_URL, status_code=404, text="not here")
        with pytest.raises(LedgerResponseError, match="HTTP 404"):
            transport.submit(signed_transfer)

    def test_connection_error(self, transport, signed_transfer, requests_mock):
        requests_mock.post(TEST_NODE_URL, exc=requests.exceptions.ConnectTimeout)
        with pytest.raises(LedgerConnectionError):
            transport.submit(signed_transfer)

    def test_invalid_json(self, transport, signed_transfer, requests_mock):
        requests_mock.post(TEST_NODE_URL, text="<html>")
        with pytest.raises(LedgerResponseError, match="Invalid JSON"):
            transport.submit(signed_transfer)

    def test_unexpected_result(self, transport, signed_transfer, requests_mock):
        requests_mock.post(TEST_NODE_URL, json={"jsonrpc": "2.0", "id": 1, "result": {"foo": 1}})
        with pytest.raises(LedgerResponseError):
            transport.submit(signed_transfer)


class TestGetByAddress:
    def test_pending(self, transport, signed_transfer, requests_mock):
        requests_mock.post(TEST_NODE_URL, json={"jsonrpc": "2.0", "id": 1, "result": _info_result(signed_transfer)})

        record = transport.get_by_address(signed_transfer.address)

        assert record.status == TransactionStatus.PENDING
        assert record.args == signed_transfer.payload.args
        body = requests_mock.last_request.json()
        assert body["method"] == GET_TRANSACTION
        assert body["params"] == {
            "transaction_hash": {"Version1": signed_transfer.address},
            "finalized_approvals": True,
        }

    def test_not_found(self, transport, requests_mock):
        requests_mock.post(TEST_NODE_URL, json={
            "jsonrpc": "2.0", "id": 1, "error": {"code": -32024, "message": "No such transaction"},
        })
        assert transport.get_by_address("ab" * 32) is None

    def test_other_error_raises(self, transport, requests_mock):
        requests_mock.post(TEST_NODE_URL, json={
            "jsonrpc": "2.0", "id": 1, "error": {"code": -32602, "message": "Invalid params"},
        })
        with pytest.raises(LedgerResponseError) as exc_info:
            transport.get_by_address("ab" * 32)
        assert exc_info.value.code == -32602

    def test_executed_with_revert(self, transport, signed_transfer, requests_mock):
        result = _info_result(signed_transfer, {"Version2": {
            "error_message": "User error: 60001", "consumed": "2500000000", "cost": "2500000000",
        }})
        requests_mock.post(TEST_NODE_URL, json={"jsonrpc": "2.0", "id": 1, "result": result})

        record = transport.get_by_address(signed_transfer.address)

        assert record.status == TransactionStatus.EXECUTED
        assert record.error_message == "User error: 60001"
        assert record.consumed == 2_500_000_000
        assert record.block_height == 4242


class TestParseTransactionRecord:
    def test_version2_success(self, signed_transfer):
        record = parse_transaction_record("ab", _info_result(signed_transfer, {"Version2": {"error_message": None}}))
        assert record.status == TransactionStatus.EXECUTED
        assert record.error_message is None

    def test_version1_success(self, signed_transfer):
        record = parse_transaction_record("ab", _info_result(signed_transfer, {"Version1": {"Success": {}}}))
        assert record.status == TransactionStatus.EXECUTED

    def test_version1_failure(self, signed_transfer):
        result = _info_result(signed_transfer, {"Version1": {"Failure": {"error_message": "Out of gas"}}})
        record = parse_transaction_record("ab", result)
        assert record.status == TransactionStatus.FAILED
        assert record.error_message == "Out of gas"

    def test_unknown_result(self, signed_transfer):
        with pytest.raises(LedgerResponseError, match="Unrecognized"):
            parse_transaction_record("ab", _info_result(signed_transfer, {"Version9": {}}))

    def test_malformed_args(self):
        result = {"transaction": {"Version1": {"payload": {"fields": {"args": {"Named": [["x"]]}}}}}}
        with pytest.raises(LedgerResponseError, match="Malformed transaction arguments"):
            parse_transaction_record("ab", result)

    def test_not_a_dict(self):
        with pytest.raises(LedgerResponseError):
            parse_transaction_record("ab", ["nope"])


class TestConstruction:
    def test_rejects_bad_url(self):
        with pytest.raises(ValueError):
            JsonRpcTransport("ftp://node.example.com")

    def test_sessions_mounted(self, transport):
        assert transport.session.get_adapter("https://x").max_retries.status_forcelist == [500, 502, 503, 504]
        assert transport.submit_session.get_adapter("https://x").max_retries.read == 0
