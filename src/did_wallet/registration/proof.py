"""DID ownership proofs.

Before a registrar anchors a DID, the holder proves control of the key the
DID is bound to by signing the message ``"Register DID: <did>"`` as an
EIP-191 personal message. Anyone can check the proof by recovering the
signer address from the signature.
"""
from __future__ import annotations

from dataclasses import dataclass

from did_wallet.keys.signer import Signer, recover_message_signer
from did_wallet.keys.vault import address_from_did, load_private_key

OWNERSHIP_MESSAGE_PREFIX = "Register DID: "


def ownership_message(did: str) -> str:
    """Return the message a holder signs to prove control of *did*."""
    return OWNERSHIP_MESSAGE_PREFIX + did


@dataclass(frozen=True)
class OwnershipProof:
    """Evidence that the holder of *address* controls *did*.

    Parameters
    ----------
    did:
        The DID being registered.
    address:
        Checksum address of the signing key.
    public_key:
        ``0x04``-prefixed uncompressed public key.
    message:
        The signed message.
    signature:
        ``0x``-prefixed hex signature over *message*.
    """

    did: str
    address: str
    public_key: str
    message: str
    signature: str

    def to_dict(self) -> dict[str, str]:
        """Serialize using the registrar's field names."""
        return {
            "did": self.did,
            "publicKey": self.public_key,
            "address": self.address,
            "signature": self.signature,
            "message": self.message,
        }


def build_ownership_proof(
    did: str, private_key: str | bytes, signer: Signer | None = None
) -> OwnershipProof:
    """Sign the ownership message for *did* with *private_key*.

    Raises
    ------
    SigningKeyInvalidError
        If *private_key* is malformed.
    """
    key = load_private_key(private_key)
    message = ownership_message(did)
    signed = (signer or Signer()).sign_bytes(key.to_bytes(), message)
    return OwnershipProof(
        did=did,
        address=signed.address,
        public_key="0x04" + key.public_key.to_bytes().hex(),
        message=message,
        signature=signed.signature,
    )


def verify_ownership(did: str, address: str, signature: str, message: str) -> bool:
    """Check a raw ownership claim.

    True when *message* is the ownership message for *did*, the signature
    recovers to *address*, and *address* is the one *did* is bound to.
    Malformed input yields False rather than raising.
    """
    if message != ownership_message(did):
        return False
    try:
        recovered = recover_message_signer(message, signature)
        did_address = address_from_did(did)
    except ValueError:
        return False
    return recovered.lower() == address.lower() == did_address


def verify_ownership_proof(proof: OwnershipProof) -> bool:
    """Check an :class:`OwnershipProof`; see :func:`verify_ownership`."""
    return verify_ownership(proof.did, proof.address, proof.signature, proof.message)
