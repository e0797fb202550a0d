"""
txflow SDK: build, sign, broadcast and confirm ledger transactions.
"""
from .version import __version__
from .args import RuntimeArgs, decode, encode, new_sr_id
from .client import TxFlowClient
from .config import ClientConfig
from .exceptions import (
    TxFlowError, EncodingError, ArgumentNotFound, InvalidTarget, InvalidPricing, SigningError,
    PipelineError, BroadcastRejected, ConfirmationTimeout, ConfirmationCancelled, ExecutionFailed,
    LedgerError, LedgerConnectionError, LedgerResponseError
)
from .models import (
    Argument, CLTypeTag, CLValue, ContractCall, ContractRefKind, KeyAlgorithm, KeyRef,
    NativeTransfer, PricingMode, PricingPolicy, PublicKey, SignedTransaction, TransactionRecord,
    TransactionStatus, UnsignedPayload
)
from .payload import build, cep18_transfer_args, compute_address, contract_call, native_transfer
from .pipeline import Submission, SubmissionPipeline, SubmissionState
from .result import ConfirmedTransaction, ExtractedArgs, interpret, is_success
from .signer import LocalSigner, Signer, sign, verify
from .transport import LedgerTransport, SubmitResult, get_transport
from .transport.rpc import JsonRpcTransport
from .transport.stub import StubTransport

__all__ = [
    "__version__",
    "TxFlowClient",
    "ClientConfig",
    "RuntimeArgs", "encode", "decode", "new_sr_id",
    "build", "native_transfer", "contract_call", "cep18_transfer_args", "compute_address",
    "sign", "verify", "Signer", "LocalSigner",
    "SubmissionPipeline", "Submission", "SubmissionState",
    "interpret", "is_success", "ExtractedArgs", "ConfirmedTransaction",
    "LedgerTransport", "SubmitResult", "get_transport", "JsonRpcTransport", "StubTransport",
    "Argument", "CLTypeTag", "CLValue", "ContractCall", "ContractRefKind", "KeyAlgorithm", "KeyRef",
    "NativeTransfer", "PricingMode", "PricingPolicy", "PublicKey", "SignedTransaction",
    "TransactionRecord", "TransactionStatus", "UnsignedPayload",
    "TxFlowError", "EncodingError", "ArgumentNotFound", "InvalidTarget", "InvalidPricing",
    "SigningError", "PipelineError", "BroadcastRejected", "ConfirmationTimeout",
    "ConfirmationCancelled", "ExecutionFailed", "LedgerError", "LedgerConnectionError",
    "LedgerResponseError",
]
