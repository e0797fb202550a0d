"""
In-process signer backed by a private key held in memory.
"""
import logging
from pathlib import Path
from typing import Optional, Union

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, ed25519
from cryptography.hazmat.primitives.asymmetric.utils import decode_dss_signature, encode_dss_signature

from ..exceptions import SigningError
from ..models import KeyAlgorithm, PublicKey
from ..utils import hex_to_bytes, u8

logger = logging.getLogger(__name__)

SIGNATURE_LENGTH = 64

PrivateKey = Union[ed25519.Ed25519PrivateKey, ec.EllipticCurvePrivateKey]


class LocalSigner:
    """
    Signs messages with an Ed25519 or secp256k1 private key.

    Signatures are the algorithm tag byte followed by 64 raw bytes
    (Ed25519 signature, or r||s for ECDSA over SHA-256).
    """

    def __init__(self, private_key: PrivateKey):
        """
        Initialize the signer.

        Args:
            private_key: A `cryptography` Ed25519 or SECP256K1 private key

        Raises:
            SigningError: If the key type or curve is not supported
        """
        if isinstance(private_key, ed25519.Ed25519PrivateKey):
            self._algorithm = KeyAlgorithm.ED25519
            raw = private_key.public_key().public_bytes(
                serialization.Encoding.Raw, serialization.PublicFormat.Raw
            )
        elif isinstance(private_key, ec.EllipticCurvePrivateKey):
            if not isinstance(private_key.curve, ec.SECP256K1):
                raise SigningError(f"Unsupported elliptic curve: {private_key.curve.name}")
            self._algorithm = KeyAlgorithm.SECP256K1
            raw = private_key.public_key().public_bytes(
                serialization.Encoding.X962, serialization.PublicFormat.CompressedPoint
            )
        else:
            raise SigningError(f"Unsupported private key type: {type(private_key).__name__}")

        self._key = private_key
        self._public_key = PublicKey(algorithm=self._algorithm, raw=raw)

    @classmethod
    def generate(cls, algorithm: KeyAlgorithm = KeyAlgorithm.ED25519) -> "LocalSigner":
        """Create a signer with a fresh random key"""
        if algorithm == KeyAlgorithm.ED25519:
            return cls(ed25519.Ed25519PrivateKey.generate())
        if algorithm == KeyAlgorithm.SECP256K1:
            return cls(ec.generate_private_key(ec.SECP256K1()))
        raise SigningError(f"Unsupported key algorithm: {algorithm!r}")

    @classmethod
    def from_hex(cls, secret: str, algorithm: KeyAlgorithm = KeyAlgorithm.ED25519) -> "LocalSigner":
        """
        Load a raw 32-byte private key from hex.

        Raises:
            SigningError: If the key material is invalid
        """
        try:
            raw = hex_to_bytes(secret)
            if len(raw) != 32:
                raise ValueError(f"expected 32 bytes, got {len(raw)}")
            if algorithm == KeyAlgorithm.ED25519:
                return cls(ed25519.Ed25519PrivateKey.from_private_bytes(raw))
            if algorithm == KeyAlgorithm.SECP256K1:
                return cls(ec.derive_private_key(int.from_bytes(raw, "big"), ec.SECP256K1()))
        except ValueError as e:
            raise SigningError(f"Invalid private key: {e}")
        raise SigningError(f"Unsupported key algorithm: {algorithm!r}")

    @classmethod
    def from_pem(cls, pem: Union[str, bytes], password: Optional[bytes] = None) -> "LocalSigner":
        """
        Load a private key from PEM (PKCS#8 or SEC1 "EC PRIVATE KEY").

        Raises:
            SigningError: If the PEM cannot be parsed or holds no private key
        """
        data = pem.encode("utf-8") if isinstance(pem, str) else pem
        try:
            key = serialization.load_pem_private_key(data, password=password)
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise SigningError(f"Failed to load private key: {e}")
        return cls(key)

    @classmethod
    def from_pem_file(cls, path: Union[str, Path], password: Optional[bytes] = None) -> "LocalSigner":
        """Load a private key from a PEM file"""
        try:
            data = Path(path).read_bytes()
        except OSError as e:
            raise SigningError(f"Failed to read key file {path}: {e}")
        signer = cls.from_pem(data, password=password)
        logger.debug(f"Loaded {signer.algorithm.name} key from {path}")
        return signer

    @property
    def public_key(self) -> PublicKey:
        return self._public_key

    @property
    def algorithm(self) -> KeyAlgorithm:
        return self._algorithm

    def sign(self, message: bytes) -> bytes:
        """
        Sign a message.

        Args:
            message: Bytes to sign

        Returns:
            Tagged 65-byte signature
        """
        if self._algorithm == KeyAlgorithm.ED25519:
            signature = self._key.sign(message)
        else:
            der = self._key.sign(message, ec.ECDSA(hashes.SHA256()))
            r, s = decode_dss_signature(der)
            signature = r.to_bytes(32, "big") + s.to_bytes(32, "big")
        return u8(self._algorithm) + signature


def verify_signature(public_key: PublicKey, message: bytes, signature: bytes) -> bool:
    """
    Verify a tagged signature against a public key.

    Returns:
        True if the signature is valid, False otherwise
    """
    if len(signature) != SIGNATURE_LENGTH + 1 or signature[0] != public_key.algorithm:
        return False
    body = signature[1:]
    try:
        if public_key.algorithm == KeyAlgorithm.ED25519:
            ed25519.Ed25519PublicKey.from_public_bytes(public_key.raw).verify(body, message)
        else:
            verifier = ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256K1(), public_key.raw)
            r = int.from_bytes(body[:32], "big")
            s = int.from_bytes(body[32:], "big")
            verifier.verify(encode_dss_signature(r, s), message, ec.ECDSA(hashes.SHA256()))
    except (InvalidSignature, ValueError):
        return False
    return True
