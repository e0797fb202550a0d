"""
Utility functions for the txflow SDK: hashing, hex and bytesrepr primitives.
"""
import hashlib
import struct
from typing import Tuple, Union

HASH_LENGTH = 32


def blake2b_256(data: Union[bytes, bytearray]) -> bytes:
    """
    Compute a 32-byte BLAKE2b digest.

    Args:
        data: Bytes to hash

    Returns:
        32-byte digest
    """
    return hashlib.blake2b(bytes(data), digest_size=HASH_LENGTH).digest()


def strip_0x(value: str) -> str:
    """Remove an optional 0x prefix from a hex string"""
    return value[2:] if value.startswith(("0x", "0X")) else value


def hex_to_bytes(value: str) -> bytes:
    """
    Decode a hex string, with or without 0x prefix.

    Raises:
        ValueError: If the string is not valid hex
    """
    return bytes.fromhex(strip_0x(value.strip()))


def bytes_to_hex(data: bytes) -> str:
    """Lowercase hex without prefix"""
    return bytes(data).hex()


# bytesrepr primitives: little-endian, u32 length prefixes

def u8(value: int) -> bytes:
    return struct.pack("<B", value)


def u32(value: int) -> bytes:
    return struct.pack("<I", value)


def u64(value: int) -> bytes:
    return struct.pack("<Q", value)


def big_uint(value: int) -> bytes:
    """Length-prefixed minimal little-endian encoding used for U128/U256/U512."""
    if value == 0:
        return b"\x00"
    raw = value.to_bytes((value.bit_length() + 7) // 8, "little")
    return u8(len(raw)) + raw


def string(value: str) -> bytes:
    raw = value.encode("utf-8")
    return u32(len(raw)) + raw


def length_prefixed(data: bytes) -> bytes:
    return u32(len(data)) + bytes(data)


def read_u32(data: bytes, offset: int = 0) -> Tuple[int, int]:
    """
    Read a u32 from data at offset.

    Returns:
        Tuple of (value, new_offset)

    Raises:
        ValueError: If data is too short
    """
    if len(data) < offset + 4:
        raise ValueError("Not enough bytes for u32")
    return struct.unpack_from("<I", data, offset)[0], offset + 4
