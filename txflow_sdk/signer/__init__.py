"""
Signing of transaction payloads.

The address of a transaction is the BLAKE2b-256 hash of its payload bytes and
does not depend on any signature; signers sign the address bytes.
"""
import logging
from typing import Protocol, runtime_checkable

from ..exceptions import SigningError
from ..models import Approval, PublicKey, SignedTransaction, UnsignedPayload
from ..payload import compute_address
from .local import LocalSigner, verify_signature

__all__ = ["Signer", "LocalSigner", "sign", "verify", "verify_signature"]

logger = logging.getLogger(__name__)


@runtime_checkable
class Signer(Protocol):
    """Protocol for custom signers (HSM, remote signing service, ...)"""
    public_key: PublicKey

    def sign(self, message: bytes) -> bytes:
        """Return a tagged signature over message"""
        ...


def sign(payload: UnsignedPayload, signer: Signer) -> SignedTransaction:
    """
    Bind a payload to a signing identity.

    Args:
        payload: Unsigned payload; its initiator must be the signer's public key
        signer: Signing identity

    Returns:
        Signed transaction whose address is the payload hash

    Raises:
        SigningError: If the signer has no key material, does not match the
            initiator, or fails to sign
    """
    public_key = getattr(signer, "public_key", None)
    if not isinstance(public_key, PublicKey):
        raise SigningError("Signer does not expose a public key")
    if public_key != payload.initiator:
        raise SigningError(
            f"Signer public key {public_key.to_hex()} does not match payload initiator "
            f"{payload.initiator.to_hex()}"
        )

    address = compute_address(payload)
    try:
        signature = signer.sign(bytes.fromhex(address))
    except SigningError:
        raise
    except Exception as e:
        logger.error(f"Transaction signing failed: {e}")
        raise SigningError(f"Failed to sign transaction: {str(e)}") from e

    if not verify_signature(public_key, bytes.fromhex(address), signature):
        raise SigningError("Signer produced a signature that does not verify")

    return SignedTransaction(
        payload=payload,
        address=address,
        approvals=(Approval(signer=public_key, signature=signature),),
    )


def verify(transaction: SignedTransaction) -> bool:
    """
    Check a signed transaction: address matches payload, every approval verifies.
    """
    if compute_address(transaction.payload) != transaction.address:
        return False
    if not transaction.approvals:
        return False
    message = bytes.fromhex(transaction.address)
    return all(
        verify_signature(approval.signer, message, approval.signature)
        for approval in transaction.approvals
    )
