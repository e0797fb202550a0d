"""
Tests for TxFlowClient, including the native and CEP-18 transfer workflows.
"""
import logging
import threading
from unittest.mock import MagicMock

import pytest

from txflow_sdk.args import RuntimeArgs, new_sr_id
from txflow_sdk.client import TxFlowClient
from txflow_sdk.config import ClientConfig
from txflow_sdk.exceptions import (
    BroadcastRejected, ConfirmationCancelled, ConfirmationTimeout, EncodingError, ExecutionFailed,
    InvalidPricing, InvalidTarget, LedgerResponseError
)
from txflow_sdk.models import PricingPolicy, TransactionStatus
from txflow_sdk.payload import contract_call, native_transfer
from txflow_sdk.transport import LedgerTransport
from txflow_sdk.transport.stub import StubTransport

from conftest import (
    TEST_CEP18_PACKAGE, TEST_CEP18_RECIPIENT, TEST_RECIPIENT, TEST_REVERT_MESSAGE,
    TEST_TRANSFER_AMOUNT
)


class TestConstruction:
    def test_requires_signer(self, fast_config):
        with pytest.raises(ValueError, match="signer must be provided"):
            TxFlowClient(fast_config, None)

    def test_transport_from_config(self, fast_config, signer):
        client = TxFlowClient(fast_config, signer)
        assert isinstance(client.transport, StubTransport)
        assert client.pipeline.poll_interval == 0.01

    def test_context_manager_closes_transport(self, fast_config, signer):
        transport = MagicMock(spec=LedgerTransport)
        with TxFlowClient(fast_config, signer, transport=transport):
            pass
        transport.close.assert_called_once()


class TestNativeTransfer:
    def test_sr_id_round_trip(self, client, stub_ledger):
        confirmed = client.send_native_transfer(TEST_RECIPIENT, TEST_TRANSFER_AMOUNT, sr_id=15)

        assert confirmed.record.status == TransactionStatus.EXECUTED
        assert confirmed.extracted["sr_id"] == bytes([15] + [0] * 31)
        assert stub_ledger.submissions == [confirmed.address]

    def test_decoded_tag_renders_as_comma_separated_bytes(self, client):
        tag = new_sr_id(15)
        args = RuntimeArgs()
        args.insert("sr_id", tag)
        confirmed = client.submit_and_confirm(native_transfer(TEST_RECIPIENT, TEST_TRANSFER_AMOUNT), args)
        assert confirmed.extracted.render("sr_id") == ",".join(str(b) for b in tag.value)

    def test_default_native_pricing(self, client, stub_ledger):
        confirmed = client.send_native_transfer(TEST_RECIPIENT, 1, sr_id=1)
        assert confirmed.record.consumed == 100_000_000

    def test_extract_sr_id_later(self, client):
        confirmed = client.send_native_transfer(TEST_RECIPIENT, TEST_TRANSFER_AMOUNT, sr_id=15)
        extracted = client.extract_sr_id(confirmed.address)
        assert extracted["sr_id"][0] == 15

    def test_hash_logged_at_info(self, fast_config, signer, stub_ledger, caplog):
        logger = logging.getLogger("txflow_test")
        client = TxFlowClient(fast_config, signer, transport=stub_ledger, logger=logger)
        with caplog.at_level(logging.INFO, logger="txflow_test"):
            confirmed = client.send_native_transfer(TEST_RECIPIENT, 1, sr_id=2)
        assert any(confirmed.address in r.getMessage() and r.levelno == logging.INFO for r in caplog.records)


class TestCep18Transfer:
    def test_revert_surfaces_verbatim(self, fast_config, signer):
        ledger = StubTransport(error_messages={"transfer": TEST_REVERT_MESSAGE})
        client = TxFlowClient(fast_config, signer, transport=ledger)

        with pytest.raises(ExecutionFailed) as exc_info:
            client.send_cep18_transfer(TEST_CEP18_PACKAGE, TEST_CEP18_RECIPIENT, 1000, sr_id=63)

        assert exc_info.value.error_message == TEST_REVERT_MESSAGE
        record = client.get_transaction(exc_info.value.address)
        assert record.status == TransactionStatus.EXECUTED
        assert record.error_message == TEST_REVERT_MESSAGE
        assert record.consumed == 2_500_000_000

    def test_revert_script_leaves_native_transfers_alone(self, fast_config, signer):
        ledger = StubTransport(error_messages={"transfer": TEST_REVERT_MESSAGE})
        client = TxFlowClient(fast_config, signer, transport=ledger)

        confirmed = client.send_native_transfer(TEST_RECIPIENT, TEST_TRANSFER_AMOUNT, sr_id=15)
        assert confirmed.record.error_message is None

        with pytest.raises(ExecutionFailed):
            client.send_cep18_transfer(TEST_CEP18_PACKAGE, TEST_CEP18_RECIPIENT, 1000, sr_id=63)

    def test_success(self, client):
        confirmed = client.send_cep18_transfer(TEST_CEP18_PACKAGE, TEST_CEP18_RECIPIENT, 1000, sr_id=63)
        assert confirmed.extracted["sr_id"] == bytes([63] + [0] * 31)


class TestSubmitAndConfirm:
    def test_validation_happens_before_io(self, fast_config, signer):
        transport = MagicMock(spec=LedgerTransport)
        client = TxFlowClient(fast_config, signer, transport=transport)

        with pytest.raises(InvalidTarget):
            client.submit_and_confirm(contract_call("abcd", "transfer"))
        with pytest.raises(InvalidPricing):
            client.submit_and_confirm(native_transfer(TEST_RECIPIENT, 1), pricing=PricingPolicy.limited(0))
        with pytest.raises(EncodingError):
            client.send_native_transfer(TEST_RECIPIENT, 1, sr_id=300)

        transport.submit.assert_not_called()
        transport.get_by_address.assert_not_called()

    def test_rejection(self, fast_config, signer):
        ledger = StubTransport(chain_name="casper")
        client = TxFlowClient(fast_config, signer, transport=ledger)
        with pytest.raises(BroadcastRejected, match="Chain name mismatch"):
            client.send_native_transfer(TEST_RECIPIENT, 1, sr_id=1)

    def test_timeout_is_distinct_from_failure(self, fast_config, signer):
        ledger = StubTransport(execute_after_polls=None)
        client = TxFlowClient(fast_config, signer, transport=ledger)
        with pytest.raises(ConfirmationTimeout) as exc_info:
            client.send_native_transfer(TEST_RECIPIENT, 1, sr_id=1, timeout=0.1)
        assert not isinstance(exc_info.value, ExecutionFailed)

    def test_cancel_event(self, fast_config, signer):
        ledger = StubTransport(execute_after_polls=None)
        client = TxFlowClient(fast_config, signer, transport=ledger)
        cancel = threading.Event()
        cancel.set()
        with pytest.raises(ConfirmationCancelled):
            client.send_native_transfer(TEST_RECIPIENT, 1, sr_id=1, cancel_event=cancel)

    def test_get_transaction_not_found(self, client):
        with pytest.raises(LedgerResponseError, match="not found"):
            client.get_transaction("00" * 32)

    def test_uses_configured_chain_and_ttl(self, signer):
        config = ClientConfig(node_url="stub://local", chain_name="casper", ttl_ms=60_000)
        client = TxFlowClient(config, signer)
        payload = client.build(native_transfer(TEST_RECIPIENT, 1))
        assert payload.chain_name == "casper"
        assert payload.ttl == 60_000
        assert payload.initiator == signer.public_key
