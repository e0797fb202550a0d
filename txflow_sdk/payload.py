"""
Payload builder: assembles unsigned transaction payloads.

The builder validates the target and pricing policy, stamps the build time
and TTL, and produces an immutable `UnsignedPayload`. Its canonical bytes
(`serialize`) are what the transaction address is computed from.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional, Union

from .args import RuntimeArgs, encode, named_args_to_json, new_sr_id, serialize_args
from .exceptions import EncodingError, InvalidPricing, InvalidTarget
from .models import (
    Argument, CLTypeTag, CLValue, ContractCall, ContractRefKind, KeyRef, NativeTransfer,
    PricingMode, PricingPolicy, PublicKey, TargetDescriptor, UnsignedPayload
)
from .utils import blake2b_256, bytes_to_hex, hex_to_bytes, string, u8, u32, u64

logger = logging.getLogger(__name__)

DEFAULT_TTL_MS = 1_800_000  # 30 minutes
DEFAULT_CHAIN_NAME = "casper-test"
TRANSFER_ENTRY_POINT = "transfer"
STANDARD_SCHEDULING = "Standard"

# Payments used by the reference native transfer and CEP-18 transfer flows
NATIVE_TRANSFER_PRICING = PricingPolicy.limited(100_000_000, gas_price_tolerance=1)
CONTRACT_CALL_PRICING = PricingPolicy.limited(2_500_000_000, gas_price_tolerance=1)

_MAX_U64 = (1 << 64) - 1
_NATIVE_ARG_NAMES = ("target", "amount")

_REF_KIND_TAGS = {
    ContractRefKind.PACKAGE_HASH: 0,
    ContractRefKind.CONTRACT_HASH: 1,
    ContractRefKind.PACKAGE_NAME: 2,
    ContractRefKind.CONTRACT_NAME: 3,
}
_HASH_REF_KINDS = (ContractRefKind.PACKAGE_HASH, ContractRefKind.CONTRACT_HASH)


def _now_ms() -> int:
    return int(datetime.now(timezone.utc).timestamp() * 1000)


def resolve_fee(pricing: PricingPolicy) -> int:
    """
    Resolve a pricing policy to the single fee attached to the payload.

    LIMITED pays `amount`; FIXED pays `amount * gas_price_tolerance`.

    Raises:
        InvalidPricing: If the policy is inconsistent or out of range
    """
    if pricing.amount <= 0:
        raise InvalidPricing(f"Payment amount must be positive, got {pricing.amount}")
    if not 1 <= pricing.gas_price_tolerance <= 255:
        raise InvalidPricing(
            f"Gas price tolerance must be in 1..255, got {pricing.gas_price_tolerance}"
        )

    if pricing.mode == PricingMode.LIMITED:
        fee = pricing.amount
    elif pricing.mode == PricingMode.FIXED:
        if pricing.standard_payment is not None:
            raise InvalidPricing("standard_payment cannot be combined with fixed pricing")
        fee = pricing.amount * pricing.gas_price_tolerance
    else:
        raise InvalidPricing(f"Unknown pricing mode: {pricing.mode!r}")

    if fee > _MAX_U64:
        raise InvalidPricing(f"Resolved fee {fee} does not fit in u64")
    return fee


def validate_target(target: TargetDescriptor) -> None:
    """
    Check a target descriptor is complete.

    Raises:
        InvalidTarget: If a required field is missing or malformed
    """
    if isinstance(target, NativeTransfer):
        if target.recipient is None:
            raise InvalidTarget("Native transfer requires a recipient")
        if target.amount <= 0:
            raise InvalidTarget(f"Native transfer amount must be positive, got {target.amount}")
    elif isinstance(target, ContractCall):
        if not target.target_ref:
            raise InvalidTarget("Contract call requires a package or contract reference")
        if not target.entry_point:
            raise InvalidTarget("Contract call requires an entry point name")
        if target.ref_kind in _HASH_REF_KINDS:
            try:
                raw = hex_to_bytes(target.target_ref)
            except ValueError:
                raise InvalidTarget(f"Contract hash must be hex, got {target.target_ref!r}")
            if len(raw) != 32:
                raise InvalidTarget(f"Contract hash must be 32 bytes, got {len(raw)}")
    else:
        raise InvalidTarget(f"Unknown target type: {type(target).__name__}")


def native_transfer(recipient: Union[PublicKey, KeyRef, str], amount: Union[int, str]) -> NativeTransfer:
    """
    Describe a native transfer.

    Args:
        recipient: PublicKey, KeyRef, tagged public key hex or "account-hash-..." string
        amount: Amount in motes (int or decimal string)

    Raises:
        InvalidTarget: If recipient or amount cannot be parsed
    """
    if isinstance(recipient, str):
        try:
            if recipient.startswith(("account-hash-", "hash-")):
                recipient = KeyRef.from_formatted_string(recipient)
            else:
                recipient = PublicKey.from_hex(recipient)
        except ValueError as e:
            raise InvalidTarget(f"Invalid recipient: {e}")
    try:
        value = int(amount)
    except (TypeError, ValueError):
        raise InvalidTarget(f"Transfer amount must be an integer, got {amount!r}")
    return NativeTransfer(recipient=recipient, amount=value)


def contract_call(
    target_ref: str,
    entry_point: str,
    ref_kind: ContractRefKind = ContractRefKind.PACKAGE_HASH,
    version: Optional[int] = None
) -> ContractCall:
    """Describe a stored contract call"""
    return ContractCall(target_ref=target_ref, entry_point=entry_point, ref_kind=ref_kind, version=version)


def cep18_transfer_args(
    recipient: Union[KeyRef, str],
    amount: Union[int, str],
    sr_id: Union[CLValue, int]
) -> RuntimeArgs:
    """
    Arguments of a CEP-18 token `transfer` call, tagged with an sr_id.

    Raises:
        EncodingError: If any argument does not fit its type
    """
    args = RuntimeArgs()
    args.insert("recipient", encode(recipient, CLTypeTag.KEY))
    args.insert("amount", encode(amount, CLTypeTag.U256))
    args.insert("sr_id", sr_id if isinstance(sr_id, CLValue) else new_sr_id(sr_id))
    return args


def _native_args(target: NativeTransfer, args: RuntimeArgs) -> RuntimeArgs:
    recipient_kind = CLTypeTag.PUBLIC_KEY if isinstance(target.recipient, PublicKey) else CLTypeTag.KEY
    merged = RuntimeArgs()
    merged.insert("target", encode(target.recipient, recipient_kind))
    merged.insert("amount", encode(target.amount, CLTypeTag.U512))
    for arg in args:
        if arg.name in _NATIVE_ARG_NAMES:
            raise EncodingError(f"Argument name {arg.name!r} is reserved for native transfers")
        merged.insert(arg.name, arg.value)
    return merged


def build(
    target: TargetDescriptor,
    pricing: PricingPolicy,
    args: Union[RuntimeArgs, Iterable[Argument], None],
    ttl: int,
    chain_name: str,
    initiator: PublicKey
) -> UnsignedPayload:
    """
    Build an unsigned payload stamped with the current time.

    Args:
        target: NativeTransfer or ContractCall
        pricing: Pricing policy, resolved to a single fee here
        args: Named arguments; native transfers get `target` and `amount` prepended
        ttl: Time-to-live in milliseconds
        chain_name: Network name the payload is valid on
        initiator: Public key of the signing identity

    Returns:
        Immutable unsigned payload

    Raises:
        InvalidTarget: If the target is incomplete
        InvalidPricing: If the pricing policy is unresolvable
        EncodingError: If argument names collide
        ValueError: If ttl or chain_name are invalid
    """
    validate_target(target)
    fee = resolve_fee(pricing)
    if ttl <= 0:
        raise ValueError(f"ttl must be positive, got {ttl}")
    if not chain_name:
        raise ValueError("chain_name must be non-empty")

    runtime_args = args if isinstance(args, RuntimeArgs) else RuntimeArgs(args or ())
    if isinstance(target, NativeTransfer):
        runtime_args = _native_args(target, runtime_args)
        entry_point = TRANSFER_ENTRY_POINT
    else:
        entry_point = target.entry_point

    payload = UnsignedPayload(
        initiator=initiator,
        timestamp=_now_ms(),
        ttl=ttl,
        chain_name=chain_name,
        pricing=pricing,
        fee=fee,
        target=target,
        entry_point=entry_point,
        args=runtime_args.to_tuple(),
        scheduling=STANDARD_SCHEDULING,
    )
    logger.debug(f"Built payload for {entry_point} on {chain_name} with fee {fee}")
    return payload


# ---------------------------------------------------------------------------
# Canonical serialization
# ---------------------------------------------------------------------------

def _pricing_bytes(pricing: PricingPolicy, fee: int) -> bytes:
    if pricing.mode == PricingMode.LIMITED:
        return u8(0) + u64(fee) + u8(pricing.gas_price_tolerance) + u8(0 if pricing.standard_payment is False else 1)
    return u8(1) + u64(fee) + u8(pricing.gas_price_tolerance)


def _target_bytes(target: TargetDescriptor) -> bytes:
    if isinstance(target, NativeTransfer):
        return u8(0)
    out = u8(1) + u8(_REF_KIND_TAGS[target.ref_kind])
    if target.ref_kind in _HASH_REF_KINDS:
        out += hex_to_bytes(target.target_ref)
    else:
        out += string(target.target_ref)
    if target.version is None:
        out += u8(0)
    else:
        out += u8(1) + u32(target.version)
    return out


def serialize(payload: UnsignedPayload) -> bytes:
    """Canonical bytes of a payload; identical payloads give identical bytes"""
    return b"".join((
        payload.initiator.to_bytes(),
        u64(payload.timestamp),
        u64(payload.ttl),
        string(payload.chain_name),
        _pricing_bytes(payload.pricing, payload.fee),
        serialize_args(payload.args),
        _target_bytes(payload.target),
        string(payload.entry_point),
        string(payload.scheduling),
    ))


def compute_address(payload: UnsignedPayload) -> str:
    """Address of a payload: hex BLAKE2b-256 of its canonical bytes"""
    return bytes_to_hex(blake2b_256(serialize(payload)))


# ---------------------------------------------------------------------------
# JSON form
# ---------------------------------------------------------------------------

def _iso_timestamp(ms: int) -> str:
    dt = datetime.fromtimestamp(ms / 1000, tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _pricing_json(pricing: PricingPolicy) -> Dict[str, Any]:
    if pricing.mode == PricingMode.LIMITED:
        return {"PaymentLimited": {
            "payment_amount": pricing.amount,
            "gas_price_tolerance": pricing.gas_price_tolerance,
            "standard_payment": pricing.standard_payment is not False,
        }}
    return {"Fixed": {
        "payment_amount": pricing.amount,
        "gas_price_tolerance": pricing.gas_price_tolerance,
        "additional_computation_factor": 0,
    }}


def _target_json(target: TargetDescriptor) -> Any:
    if isinstance(target, NativeTransfer):
        return "Native"
    if target.ref_kind == ContractRefKind.PACKAGE_HASH:
        ref = {"ByPackageHash": {"addr": target.target_ref, "version": target.version}}
    elif target.ref_kind == ContractRefKind.PACKAGE_NAME:
        ref = {"ByPackageName": {"name": target.target_ref, "version": target.version}}
    elif target.ref_kind == ContractRefKind.CONTRACT_HASH:
        ref = {"ByHash": target.target_ref}
    else:
        ref = {"ByName": target.target_ref}
    return {"Stored": {"id": ref, "runtime": "VmCasperV1"}}


def payload_to_json(payload: UnsignedPayload) -> Dict[str, Any]:
    """JSON representation of a payload for the RPC transport"""
    if isinstance(payload.target, NativeTransfer):
        entry_point: Any = "Transfer"
    else:
        entry_point = {"Custom": payload.entry_point}
    return {
        "initiator_addr": {"PublicKey": payload.initiator.to_hex()},
        "timestamp": _iso_timestamp(payload.timestamp),
        "ttl": f"{payload.ttl}ms",
        "chain_name": payload.chain_name,
        "pricing_mode": _pricing_json(payload.pricing),
        "fields": {
            "args": {"Named": named_args_to_json(payload.args)},
            "target": _target_json(payload.target),
            "entry_point": entry_point,
            "scheduling": payload.scheduling,
        },
    }
