"""
Data models for the txflow SDK.
"""
from enum import Enum, IntEnum
from typing import Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict

from .utils import bytes_to_hex, hex_to_bytes, u8


class KeyAlgorithm(IntEnum):
    """Signature algorithm tag, used as the first byte of keys and signatures"""
    ED25519 = 1
    SECP256K1 = 2


PUBLIC_KEY_LENGTHS = {
    KeyAlgorithm.ED25519: 32,
    KeyAlgorithm.SECP256K1: 33,  # SEC1 compressed point
}


class PublicKey(BaseModel):
    """Public key of a signing identity, tagged with its algorithm"""
    model_config = ConfigDict(frozen=True)

    algorithm: KeyAlgorithm
    raw: bytes

    @classmethod
    def from_hex(cls, value: str) -> "PublicKey":
        """
        Parse a tagged hex public key (e.g. "01<64 hex>" or "02<66 hex>").

        Raises:
            ValueError: If the tag or length is invalid
        """
        data = hex_to_bytes(value)
        if not data:
            raise ValueError("Public key hex is empty")
        try:
            algorithm = KeyAlgorithm(data[0])
        except ValueError:
            raise ValueError(f"Unknown public key algorithm tag: {data[0]}")
        raw = data[1:]
        expected = PUBLIC_KEY_LENGTHS[algorithm]
        if len(raw) != expected:
            raise ValueError(
                f"{algorithm.name} public key must be {expected} bytes, got {len(raw)}"
            )
        return cls(algorithm=algorithm, raw=raw)

    def to_bytes(self) -> bytes:
        return u8(self.algorithm) + self.raw

    def to_hex(self) -> str:
        return bytes_to_hex(self.to_bytes())

    def __str__(self) -> str:
        return self.to_hex()


class KeyType(IntEnum):
    """Kind of global-state key referenced by a KeyRef"""
    ACCOUNT = 0
    HASH = 1


_KEY_PREFIXES = {
    KeyType.ACCOUNT: "account-hash-",
    KeyType.HASH: "hash-",
}


class KeyRef(BaseModel):
    """Reference to an account or contract hash in global state"""
    model_config = ConfigDict(frozen=True)

    key_type: KeyType
    raw: bytes

    @classmethod
    def from_formatted_string(cls, value: str) -> "KeyRef":
        """
        Parse "account-hash-<hex>" or "hash-<hex>".

        Raises:
            ValueError: If the prefix is unknown or the hash is not 32 bytes
        """
        for key_type, prefix in _KEY_PREFIXES.items():
            if value.startswith(prefix):
                raw = hex_to_bytes(value[len(prefix):])
                if len(raw) != 32:
                    raise ValueError(f"Key hash must be 32 bytes, got {len(raw)}")
                return cls(key_type=key_type, raw=raw)
        raise ValueError(f"Unsupported key format: {value!r}")

    def to_formatted_string(self) -> str:
        return _KEY_PREFIXES[self.key_type] + bytes_to_hex(self.raw)

    def to_bytes(self) -> bytes:
        return u8(self.key_type) + self.raw

    def __str__(self) -> str:
        return self.to_formatted_string()


class CLTypeTag(IntEnum):
    """Type tags for typed argument values"""
    BOOL = 0
    U8 = 3
    U32 = 4
    U64 = 5
    U128 = 6
    U256 = 7
    U512 = 8
    STRING = 10
    KEY = 11
    BYTE_ARRAY = 15
    PUBLIC_KEY = 22


class CLValue(BaseModel):
    """A typed argument value. `size` is only set for byte arrays."""
    model_config = ConfigDict(frozen=True)

    cl_type: CLTypeTag
    value: Union[bool, int, bytes, str, PublicKey, KeyRef]
    size: Optional[int] = None


class Argument(BaseModel):
    """Named argument of a transaction"""
    model_config = ConfigDict(frozen=True)

    name: str
    value: CLValue


class NativeTransfer(BaseModel):
    """Transfer of native tokens to a recipient"""
    model_config = ConfigDict(frozen=True)

    recipient: Union[PublicKey, KeyRef]
    amount: int


class ContractRefKind(str, Enum):
    PACKAGE_HASH = "package_hash"
    CONTRACT_HASH = "contract_hash"
    PACKAGE_NAME = "package_name"
    CONTRACT_NAME = "contract_name"


class ContractCall(BaseModel):
    """Call of an entry point on a stored contract"""
    model_config = ConfigDict(frozen=True)

    target_ref: str
    entry_point: str
    ref_kind: ContractRefKind = ContractRefKind.PACKAGE_HASH
    version: Optional[int] = None


TargetDescriptor = Union[NativeTransfer, ContractCall]


class PricingMode(str, Enum):
    LIMITED = "limited"
    FIXED = "fixed"


class PricingPolicy(BaseModel):
    """
    How the transaction pays for execution.

    LIMITED pays `amount` up front. FIXED pays `amount` scaled by the
    gas price tolerance. `standard_payment` only applies to LIMITED.
    """
    model_config = ConfigDict(frozen=True)

    mode: PricingMode
    amount: int
    gas_price_tolerance: int = 1
    standard_payment: Optional[bool] = None

    @classmethod
    def limited(cls, amount: int, gas_price_tolerance: int = 1, standard_payment: bool = True) -> "PricingPolicy":
        return cls(
            mode=PricingMode.LIMITED,
            amount=amount,
            gas_price_tolerance=gas_price_tolerance,
            standard_payment=standard_payment,
        )

    @classmethod
    def fixed(cls, amount: int, gas_price_tolerance: int = 1) -> "PricingPolicy":
        return cls(mode=PricingMode.FIXED, amount=amount, gas_price_tolerance=gas_price_tolerance)


class UnsignedPayload(BaseModel):
    """Unsigned, content-complete description of a transaction"""
    model_config = ConfigDict(frozen=True)

    initiator: PublicKey
    timestamp: int  # ms since epoch, UTC
    ttl: int  # ms
    chain_name: str
    pricing: PricingPolicy
    fee: int
    target: TargetDescriptor
    entry_point: str
    args: Tuple[Argument, ...]
    scheduling: str


class Approval(BaseModel):
    """Signature over a transaction address"""
    model_config = ConfigDict(frozen=True)

    signer: PublicKey
    signature: bytes


class SignedTransaction(BaseModel):
    """Payload bound to its signatures; `address` is the payload hash (hex)"""
    model_config = ConfigDict(frozen=True)

    payload: UnsignedPayload
    address: str
    approvals: Tuple[Approval, ...]


class TransactionStatus(str, Enum):
    PENDING = "pending"
    EXECUTED = "executed"
    FAILED = "failed"


class TransactionRecord(BaseModel):
    """Remote view of a submitted transaction"""
    model_config = ConfigDict(frozen=True)

    address: str
    status: TransactionStatus
    args: Tuple[Argument, ...] = ()
    error_message: Optional[str] = None
    block_hash: Optional[str] = None
    block_height: Optional[int] = None
    consumed: Optional[int] = None

    @property
    def is_terminal(self) -> bool:
        return self.status != TransactionStatus.PENDING
