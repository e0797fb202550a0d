"""
Argument codec: typed argument values, their canonical byte form and JSON form.

Examples:
    >>> from txflow_sdk.args import RuntimeArgs, encode, new_sr_id, decode
    >>> args = RuntimeArgs()
    >>> args.insert("amount", encode(1000, "U256"))
    >>> args.insert("sr_id", new_sr_id(63))
    >>> decode(args, "sr_id")[0]
    63
"""
import struct
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

from .exceptions import ArgumentNotFound, EncodingError
from .models import (
    Argument, CLTypeTag, CLValue, KeyRef, KeyType, PublicKey
)
from .utils import big_uint, bytes_to_hex, hex_to_bytes, length_prefixed, read_u32, string, u32, u8


SR_ID_LENGTH = 32

UINT_BITS = {
    CLTypeTag.U8: 8,
    CLTypeTag.U32: 32,
    CLTypeTag.U64: 64,
    CLTypeTag.U128: 128,
    CLTypeTag.U256: 256,
    CLTypeTag.U512: 512,
}

_FIXED_WIDTH = {
    CLTypeTag.U8: "<B",
    CLTypeTag.U32: "<I",
    CLTypeTag.U64: "<Q",
}

# JSON names of the simple types; ByteArray is {"ByteArray": n}
_JSON_NAMES = {
    CLTypeTag.BOOL: "Bool",
    CLTypeTag.U8: "U8",
    CLTypeTag.U32: "U32",
    CLTypeTag.U64: "U64",
    CLTypeTag.U128: "U128",
    CLTypeTag.U256: "U256",
    CLTypeTag.U512: "U512",
    CLTypeTag.STRING: "String",
    CLTypeTag.KEY: "Key",
    CLTypeTag.BYTE_ARRAY: "ByteArray",
    CLTypeTag.PUBLIC_KEY: "PublicKey",
}
_BY_JSON_NAME = {name.lower(): tag for tag, name in _JSON_NAMES.items()}

ArgsLike = Union["RuntimeArgs", Sequence[Argument]]


def _coerce_kind(kind: Union[CLTypeTag, str]) -> CLTypeTag:
    if isinstance(kind, CLTypeTag):
        return kind
    tag = _BY_JSON_NAME.get(str(kind).replace("_", "").lower())
    if tag is None:
        raise EncodingError(f"Unsupported argument type: {kind!r}")
    return tag


def _encode_uint(value: Any, tag: CLTypeTag) -> int:
    if isinstance(value, bool):
        raise EncodingError(f"{tag.name} value must be an integer, got bool")
    if isinstance(value, str):
        try:
            value = int(value, 10)
        except ValueError:
            raise EncodingError(f"{tag.name} value must be a decimal string, got {value!r}")
    if not isinstance(value, int):
        raise EncodingError(f"{tag.name} value must be an integer, got {type(value).__name__}")
    bits = UINT_BITS[tag]
    if value < 0 or value >= 1 << bits:
        raise EncodingError(f"Value {value} out of range for {tag.name}")
    return value


def encode(value: Any, kind: Union[CLTypeTag, str], size: Optional[int] = None) -> CLValue:
    """
    Encode a native value as a typed argument value.

    Args:
        value: Native value (int or decimal str for integers, bytes or hex for
            byte arrays, PublicKey or hex, KeyRef or formatted key string)
        kind: Type tag or its name ("U512", "ByteArray", "PublicKey", "Key", ...)
        size: Byte array width (default 32)

    Returns:
        Typed value

    Raises:
        EncodingError: If the value does not fit the declared type
    """
    tag = _coerce_kind(kind)

    if tag in UINT_BITS:
        return CLValue(cl_type=tag, value=_encode_uint(value, tag))

    if tag == CLTypeTag.BYTE_ARRAY:
        width = SR_ID_LENGTH if size is None else size
        if isinstance(value, str):
            try:
                value = hex_to_bytes(value)
            except ValueError as e:
                raise EncodingError(f"Invalid byte array hex: {e}")
        if isinstance(value, (list, tuple)):
            try:
                value = bytes(value)
            except (TypeError, ValueError) as e:
                raise EncodingError(f"Invalid byte array: {e}")
        if not isinstance(value, (bytes, bytearray, memoryview)):
            raise EncodingError(f"ByteArray value must be bytes-like, got {type(value).__name__}")
        value = bytes(value)
        if len(value) != width:
            raise EncodingError(f"ByteArray must be exactly {width} bytes, got {len(value)}")
        return CLValue(cl_type=tag, value=value, size=width)

    if tag == CLTypeTag.PUBLIC_KEY:
        if isinstance(value, str):
            try:
                value = PublicKey.from_hex(value)
            except ValueError as e:
                raise EncodingError(f"Invalid public key: {e}")
        if not isinstance(value, PublicKey):
            raise EncodingError(f"PublicKey value must be a PublicKey, got {type(value).__name__}")
        return CLValue(cl_type=tag, value=value)

    if tag == CLTypeTag.KEY:
        if isinstance(value, str):
            try:
                value = KeyRef.from_formatted_string(value)
            except ValueError as e:
                raise EncodingError(f"Invalid key: {e}")
        if not isinstance(value, KeyRef):
            raise EncodingError(f"Key value must be a KeyRef, got {type(value).__name__}")
        return CLValue(cl_type=tag, value=value)

    if tag == CLTypeTag.STRING:
        if not isinstance(value, str):
            raise EncodingError(f"String value must be str, got {type(value).__name__}")
        return CLValue(cl_type=tag, value=value)

    if tag == CLTypeTag.BOOL:
        if not isinstance(value, bool):
            raise EncodingError(f"Bool value must be bool, got {type(value).__name__}")
        return CLValue(cl_type=tag, value=value)

    raise EncodingError(f"Unsupported argument type: {tag!r}")


def new_sr_id(value: int) -> CLValue:
    """
    Create a 32-byte correlation tag with `value` in the first byte.

    Raises:
        EncodingError: If value does not fit in one byte
    """
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 255:
        raise EncodingError(f"sr_id seed must be an integer in 0..255, got {value!r}")
    tag = bytearray(SR_ID_LENGTH)
    tag[0] = value
    return encode(bytes(tag), CLTypeTag.BYTE_ARRAY, SR_ID_LENGTH)


# ---------------------------------------------------------------------------
# Canonical bytes
# ---------------------------------------------------------------------------

def to_bytes(cl_value: CLValue) -> bytes:
    """Serialize the value part of a typed value"""
    tag, value = cl_value.cl_type, cl_value.value
    if tag in _FIXED_WIDTH:
        return struct.pack(_FIXED_WIDTH[tag], value)
    if tag in UINT_BITS:
        return big_uint(value)
    if tag == CLTypeTag.BYTE_ARRAY:
        return bytes(value)
    if tag in (CLTypeTag.PUBLIC_KEY, CLTypeTag.KEY):
        return value.to_bytes()
    if tag == CLTypeTag.STRING:
        return string(value)
    if tag == CLTypeTag.BOOL:
        return u8(1 if value else 0)
    raise EncodingError(f"Unsupported argument type: {tag!r}")


def cl_type_bytes(cl_value: CLValue) -> bytes:
    """Serialize the type descriptor of a typed value"""
    if cl_value.cl_type == CLTypeTag.BYTE_ARRAY:
        return u8(cl_value.cl_type) + u32(cl_value.size or 0)
    return u8(cl_value.cl_type)


def from_bytes(cl_type: CLTypeTag, data: bytes, size: Optional[int] = None) -> CLValue:
    """
    Deserialize the value part of a typed value.

    Raises:
        EncodingError: If the bytes do not match the type
    """
    data = bytes(data)
    try:
        if cl_type in _FIXED_WIDTH:
            fmt = _FIXED_WIDTH[cl_type]
            if len(data) != struct.calcsize(fmt):
                raise ValueError(f"expected {struct.calcsize(fmt)} bytes, got {len(data)}")
            return CLValue(cl_type=cl_type, value=struct.unpack(fmt, data)[0])
        if cl_type in UINT_BITS:
            if not data or len(data) != data[0] + 1:
                raise ValueError("length prefix does not match data")
            return encode(int.from_bytes(data[1:], "little"), cl_type)
        if cl_type == CLTypeTag.BYTE_ARRAY:
            return encode(data, cl_type, len(data) if size is None else size)
        if cl_type == CLTypeTag.PUBLIC_KEY:
            return encode(data.hex(), cl_type)
        if cl_type == CLTypeTag.KEY:
            if len(data) != 33:
                raise ValueError(f"expected 33 bytes, got {len(data)}")
            return CLValue(cl_type=cl_type, value=KeyRef(key_type=KeyType(data[0]), raw=data[1:]))
        if cl_type == CLTypeTag.STRING:
            length, offset = read_u32(data)
            if len(data) != offset + length:
                raise ValueError("string length does not match data")
            return CLValue(cl_type=cl_type, value=data[offset:].decode("utf-8"))
        if cl_type == CLTypeTag.BOOL:
            if data not in (b"\x00", b"\x01"):
                raise ValueError("invalid bool byte")
            return CLValue(cl_type=cl_type, value=data == b"\x01")
    except EncodingError:
        raise
    except ValueError as e:
        raise EncodingError(f"Cannot decode {cl_type.name}: {e}")
    raise EncodingError(f"Unsupported argument type: {cl_type!r}")


# ---------------------------------------------------------------------------
# JSON form
# ---------------------------------------------------------------------------

def _parsed(cl_value: CLValue) -> Any:
    tag, value = cl_value.cl_type, cl_value.value
    if tag in (CLTypeTag.U128, CLTypeTag.U256, CLTypeTag.U512):
        return str(value)
    if tag == CLTypeTag.BYTE_ARRAY:
        return bytes_to_hex(value)
    if tag in (CLTypeTag.PUBLIC_KEY, CLTypeTag.KEY):
        return str(value)
    return value


def to_json(cl_value: CLValue) -> Dict[str, Any]:
    """JSON representation: {"cl_type": ..., "bytes": hex, "parsed": ...}"""
    if cl_value.cl_type == CLTypeTag.BYTE_ARRAY:
        cl_type: Any = {"ByteArray": cl_value.size}
    else:
        cl_type = _JSON_NAMES[cl_value.cl_type]
    return {
        "cl_type": cl_type,
        "bytes": bytes_to_hex(to_bytes(cl_value)),
        "parsed": _parsed(cl_value),
    }


def from_json(obj: Mapping[str, Any]) -> CLValue:
    """
    Decode the JSON representation. The authoritative content is `bytes`.

    Raises:
        EncodingError: If the type is unknown or the bytes are malformed
    """
    if not isinstance(obj, Mapping) or "cl_type" not in obj or "bytes" not in obj:
        raise EncodingError(f"Malformed argument value: {obj!r}")
    cl_type = obj["cl_type"]
    size = None
    if isinstance(cl_type, Mapping):
        if "ByteArray" not in cl_type:
            raise EncodingError(f"Unsupported argument type: {cl_type!r}")
        tag = CLTypeTag.BYTE_ARRAY
        size = int(cl_type["ByteArray"])
    else:
        tag = _coerce_kind(cl_type)
    try:
        data = hex_to_bytes(str(obj["bytes"]))
    except ValueError as e:
        raise EncodingError(f"Invalid argument bytes: {e}")
    return from_bytes(tag, data, size)


# ---------------------------------------------------------------------------
# Argument lists
# ---------------------------------------------------------------------------

class RuntimeArgs:
    """Ordered list of named arguments with unique names"""

    def __init__(self, args: Optional[Iterable[Argument]] = None):
        self._args: List[Argument] = []
        for arg in args or ():
            self.insert(arg.name, arg.value)

    @classmethod
    def from_map(cls, values: Mapping[str, CLValue]) -> "RuntimeArgs":
        return cls(Argument(name=name, value=value) for name, value in values.items())

    def insert(self, name: str, value: CLValue) -> None:
        """
        Append a named argument.

        Raises:
            EncodingError: If the name is empty or already present
        """
        if not name:
            raise EncodingError("Argument name must be non-empty")
        if self.get_by_name(name) is not None:
            raise EncodingError(f"Duplicate argument name: {name}")
        self._args.append(Argument(name=name, value=value))

    def get_by_name(self, name: str) -> Optional[CLValue]:
        for arg in self._args:
            if arg.name == name:
                return arg.value
        return None

    def names(self) -> List[str]:
        return [arg.name for arg in self._args]

    def to_tuple(self) -> Tuple[Argument, ...]:
        return tuple(self._args)

    def __iter__(self) -> Iterator[Argument]:
        return iter(self._args)

    def __len__(self) -> int:
        return len(self._args)

    def __contains__(self, name: object) -> bool:
        return any(arg.name == name for arg in self._args)


def decode(args: ArgsLike, name: str) -> Any:
    """
    Look up a named argument and return its raw value.

    Lookup is exact and case-sensitive.

    Raises:
        ArgumentNotFound: If no argument has that name
    """
    for arg in args:
        if arg.name == name:
            return arg.value.value
    raise ArgumentNotFound(name)


def serialize_args(args: ArgsLike) -> bytes:
    """Canonical bytes of an argument list: count, then (name, value, type) triples"""
    items = list(args)
    out = bytearray(u32(len(items)))
    for arg in items:
        out += string(arg.name)
        out += length_prefixed(to_bytes(arg.value))
        out += cl_type_bytes(arg.value)
    return bytes(out)


def named_args_to_json(args: ArgsLike) -> List[List[Any]]:
    return [[arg.name, to_json(arg.value)] for arg in args]


def named_args_from_json(items: Sequence[Sequence[Any]]) -> Tuple[Argument, ...]:
    """
    Decode a JSON list of [name, value] pairs.

    Raises:
        EncodingError: If an entry is malformed or a name repeats
    """
    args = RuntimeArgs()
    for item in items:
        if not isinstance(item, (list, tuple)) or len(item) != 2:
            raise EncodingError(f"Malformed named argument: {item!r}")
        args.insert(str(item[0]), from_json(item[1]))
    return args.to_tuple()
