"""
TxFlowClient: build, sign, submit and confirm transactions in one call.
"""
import logging
import threading
from typing import Iterable, Optional, Union

from .args import RuntimeArgs, new_sr_id
from .config import ClientConfig
from .exceptions import LedgerResponseError
from .models import (
    Argument, CLValue, KeyRef, NativeTransfer, PricingPolicy, PublicKey, SignedTransaction,
    TargetDescriptor, TransactionRecord, UnsignedPayload
)
from .payload import (
    CONTRACT_CALL_PRICING, NATIVE_TRANSFER_PRICING, TRANSFER_ENTRY_POINT, build,
    cep18_transfer_args, contract_call, native_transfer
)
from .pipeline import SubmissionPipeline
from .result import ConfirmedTransaction, ExtractedArgs, interpret
from .signer import Signer, sign
from .transport import LedgerTransport, get_transport

ArgsInput = Union[RuntimeArgs, Iterable[Argument], None]


class TxFlowClient:
    """
    Client for submitting transactions to a ledger node and confirming them.

    Example:
        >>> client = TxFlowClient(ClientConfig(), LocalSigner.from_pem_file("secret_key.pem"))
        >>> confirmed = client.send_native_transfer(recipient, "4200000000", sr_id=15)
        >>> confirmed.extracted.render("sr_id")
        '15,0,0,...'
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        signer: Optional[Signer] = None,
        transport: Optional[LedgerTransport] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the client.

        Args:
            config: Client configuration (defaults to ClientConfig())
            signer: Signing identity; its public key is the transaction initiator
            transport: Ledger transport (defaults to one built from config)
            logger: Optional logger instance to use for debug/info logging

        Raises:
            ValueError: If no signer is provided
        """
        if signer is None:
            raise ValueError("signer must be provided")

        self.config = config or ClientConfig()
        self.signer = signer
        self.logger = logger or logging.getLogger(__name__)
        self.transport = transport or get_transport(self.config)
        self.pipeline = SubmissionPipeline(
            self.transport,
            poll_interval=self.config.poll_interval,
            max_poll_interval=self.config.max_poll_interval,
            backoff=self.config.poll_backoff,
            logger=self.logger,
        )

    @property
    def public_key(self) -> PublicKey:
        return self.signer.public_key

    def build(
        self,
        target: TargetDescriptor,
        args: ArgsInput = None,
        pricing: Optional[PricingPolicy] = None
    ) -> UnsignedPayload:
        """Build an unsigned payload with this client's chain, TTL and initiator"""
        if pricing is None:
            pricing = NATIVE_TRANSFER_PRICING if isinstance(target, NativeTransfer) else CONTRACT_CALL_PRICING
        return build(
            target,
            pricing,
            args,
            ttl=self.config.ttl_ms,
            chain_name=self.config.chain_name,
            initiator=self.public_key,
        )

    def sign(self, payload: UnsignedPayload) -> SignedTransaction:
        return sign(payload, self.signer)

    def submit_and_confirm(
        self,
        target: TargetDescriptor,
        args: ArgsInput = None,
        pricing: Optional[PricingPolicy] = None,
        timeout: Optional[float] = None,
        extract: Iterable[str] = ("sr_id",),
        cancel_event: Optional[threading.Event] = None
    ) -> ConfirmedTransaction:
        """
        Build, sign, broadcast and confirm a transaction.

        Args:
            target: NativeTransfer or ContractCall
            args: Named arguments
            pricing: Pricing policy (defaults depend on the target kind)
            timeout: Seconds to wait for confirmation (defaults to config)
            extract: Argument names to decode from the confirmed record
            cancel_event: Set to stop waiting for confirmation

        Returns:
            Confirmed transaction with the extracted arguments

        Raises:
            EncodingError, InvalidTarget, InvalidPricing: Before any network I/O
            SigningError: If the payload cannot be signed
            BroadcastRejected: If the node refuses the transaction
            ConfirmationTimeout: If no outcome was observed in time
            ConfirmationCancelled: If cancel_event was set
            ExecutionFailed: If the transaction executed unsuccessfully
        """
        # 1. Build and sign locally
        payload = self.build(target, args, pricing)
        signed = self.sign(payload)
        self.logger.debug(f"Signed {payload.entry_point} transaction {signed.address}")

        # 2. Broadcast and poll
        submission = self.pipeline.submit(
            signed,
            timeout if timeout is not None else self.config.confirmation_timeout,
            cancel_event,
        )
        record = submission.record

        # 3. Classify and extract
        extracted = interpret(record, extract)
        self.logger.info(f"Transaction {signed.address} executed successfully")
        return ConfirmedTransaction(address=signed.address, record=record, extracted=extracted)

    def send_native_transfer(
        self,
        recipient: Union[PublicKey, KeyRef, str],
        amount: Union[int, str],
        sr_id: Union[CLValue, int],
        timeout: Optional[float] = None,
        pricing: Optional[PricingPolicy] = None,
        cancel_event: Optional[threading.Event] = None
    ) -> ConfirmedTransaction:
        """Transfer native tokens, tagging the transfer with an sr_id"""
        args = RuntimeArgs()
        args.insert("sr_id", sr_id if isinstance(sr_id, CLValue) else new_sr_id(sr_id))
        return self.submit_and_confirm(
            native_transfer(recipient, amount),
            args,
            pricing=pricing,
            timeout=timeout,
            cancel_event=cancel_event,
        )

    def send_cep18_transfer(
        self,
        package_hash: str,
        recipient: Union[KeyRef, str],
        amount: Union[int, str],
        sr_id: Union[CLValue, int],
        timeout: Optional[float] = None,
        pricing: Optional[PricingPolicy] = None,
        cancel_event: Optional[threading.Event] = None
    ) -> ConfirmedTransaction:
        """Call `transfer` on a CEP-18 token package, tagging it with an sr_id"""
        return self.submit_and_confirm(
            contract_call(package_hash, TRANSFER_ENTRY_POINT),
            cep18_transfer_args(recipient, amount, sr_id),
            pricing=pricing,
            timeout=timeout,
            cancel_event=cancel_event,
        )

    def get_transaction(self, address: str) -> TransactionRecord:
        """
        Fetch a transaction record.

        Raises:
            LedgerResponseError: If the node does not know the transaction
        """
        record = self.transport.get_by_address(address)
        if record is None:
            raise LedgerResponseError(f"Transaction {address} not found")
        return record

    def extract_sr_id(self, address: str) -> ExtractedArgs:
        """Fetch a finalized transaction and decode its sr_id"""
        return interpret(self.get_transaction(address), ("sr_id",))

    def close(self) -> None:
        self.transport.close()

    def __enter__(self) -> "TxFlowClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()