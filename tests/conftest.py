"""
Pytest fixtures for the txflow SDK tests.
"""
import pytest

from txflow_sdk import _rate_limited_log
from txflow_sdk.args import RuntimeArgs, new_sr_id
from txflow_sdk.client import TxFlowClient
from txflow_sdk.config import ClientConfig
from txflow_sdk.models import KeyAlgorithm
from txflow_sdk.payload import (
    DEFAULT_CHAIN_NAME, DEFAULT_TTL_MS, NATIVE_TRANSFER_PRICING, build, native_transfer
)
from txflow_sdk.signer import LocalSigner, sign
from txflow_sdk.transport.stub import StubTransport

# Values from the testnet transfer workflow
TEST_SECRET_HEX = "9f1a3c5e7b2d4f6a8c0e1b3d5f7a9c2e4b6d8f0a1c3e5b7d9f2a4c6e8b0d1f3a"
TEST_RECIPIENT = "0202f5a92ab6da536e7b1a351406f3744224bec85d7acbab1497b65de48a1a707b64"
TEST_TRANSFER_AMOUNT = "4200000000"
TEST_CEP18_PACKAGE = "b72183e301022030195350876ce3226d0067aee1eb3695a5252ee2b85eabe741"
TEST_CEP18_RECIPIENT = "account-hash-040fe59024a78372bc1225cfd5ed258eacdbbc7c5d09d35767777dc10c5d14ca"
TEST_REVERT_MESSAGE = "User error: 60001"
TEST_NODE_URL = "https://node.example.com/rpc"


@pytest.fixture(autouse=True)
def _reset_rate_limited_log():
    _rate_limited_log.reset()
    yield
    _rate_limited_log.reset()


@pytest.fixture
def signer():
    """Deterministic Ed25519 signer"""
    return LocalSigner.from_hex(TEST_SECRET_HEX)


@pytest.fixture
def secp_signer():
    return LocalSigner.from_hex(TEST_SECRET_HEX, KeyAlgorithm.SECP256K1)


@pytest.fixture
def stub_ledger():
    return StubTransport(chain_name=DEFAULT_CHAIN_NAME)


@pytest.fixture
def fast_config():
    """Stub ledger config with short poll intervals"""
    return ClientConfig(
        node_url="stub://local",
        poll_interval=0.01,
        max_poll_interval=0.05,
        confirmation_timeout=2.0,
    )


@pytest.fixture
def client(fast_config, signer, stub_ledger):
    with TxFlowClient(fast_config, signer, transport=stub_ledger) as c:
        yield c


@pytest.fixture
def native_payload(signer):
    args = RuntimeArgs()
    args.insert("sr_id", new_sr_id(15))
    return build(
        native_transfer(TEST_RECIPIENT, TEST_TRANSFER_AMOUNT),
        NATIVE_TRANSFER_PRICING,
        args,
        ttl=DEFAULT_TTL_MS,
        chain_name=DEFAULT_CHAIN_NAME,
        initiator=signer.public_key,
    )


@pytest.fixture
def signed_transfer(native_payload, signer):
    return sign(native_payload, signer)
