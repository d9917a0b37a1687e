"""Signer — recoverable secp256k1 signatures.

Two proof purposes are supported:

- **Message signing** (:meth:`Signer.sign_bytes`) — an EIP-191 personal
  message signature, the format Ethereum wallets produce. Used for DID
  ownership proofs handed to the registrar.
- **Token signing** (:meth:`Signer.sign_token`) — an ``ES256K-R`` compact
  token: SHA-256 of ``header.payload`` signed with the recovery byte kept,
  so a verifier needs nothing but the token to learn the signer's address.

Both signature kinds are recoverable. Nonces are deterministic (RFC 6979),
so signing the same input twice yields the same signature.
"""
from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Any

from eth_account import Account
from eth_account.messages import encode_defunct
from eth_keys import keys

from did_wallet.errors import SigningKeyInvalidError
from did_wallet.keys.vault import address_from_did, load_private_key
from did_wallet.token import SIGNATURE_LENGTH, assemble, build_header, signing_input


@dataclass(frozen=True)
class MessageSignature:
    """A recoverable signature over a personal message.

    Parameters
    ----------
    message:
        The signed message, as given to :meth:`Signer.sign_bytes`.
    signature:
        ``0x``-prefixed hex of the 65-byte ``r || s || v`` signature.
    address:
        Checksum address of the signing key.
    """

    message: str | bytes
    signature: str
    address: str


def _signable(message: str | bytes) -> Any:
    if isinstance(message, str):
        return encode_defunct(text=message)
    return encode_defunct(primitive=bytes(message))


def _normalise_recovery(signature: bytes) -> bytes:
    """Map an Ethereum-style ``v`` of 27/28 to the raw recovery id 0/1."""
    v = signature[64]
    if v >= 27:
        return signature[:64] + bytes([v - 27])
    return signature


def recover_token_signer(text: str, signature: bytes) -> str:
    """Recover the checksum address that signed the token signing input *text*.

    Raises
    ------
    ValueError
        If the signature cannot be parsed or no public key is recoverable.
    """
    if len(signature) != SIGNATURE_LENGTH:
        raise ValueError(f"signature must be 65 bytes, got {len(signature)}")
    digest = hashlib.sha256(text.encode("utf-8")).digest()
    try:
        parsed = keys.Signature(signature_bytes=_normalise_recovery(signature))
        public_key = parsed.recover_public_key_from_msg_hash(digest)
    except Exception as exc:
        raise ValueError(f"signature recovery failed: {exc}") from exc
    return public_key.to_checksum_address()


def recover_message_signer(message: str | bytes, signature: str | bytes) -> str:
    """Recover the checksum address that produced a personal-message signature.

    Raises
    ------
    ValueError
        If the signature is malformed or recovery fails.
    """
    try:
        return Account.recover_message(_signable(message), signature=signature)
    except Exception as exc:
        raise ValueError(f"message signature recovery failed: {exc}") from exc


class Signer:
    """Produces recoverable signatures with a caller-held private key.

    The signer is stateless: the key is passed to each call and never
    retained. Every failure is a :class:`SigningKeyInvalidError` and is not
    worth retrying with the same input.

    Example
    -------
    ::

        signer = Signer()
        proof = signer.sign_bytes(pair.private_key, "hello")
        assert recover_message_signer("hello", proof.signature) == pair.address
    """

    def sign_bytes(self, private_key: str | bytes, message: str | bytes) -> MessageSignature:
        """Sign *message* as an EIP-191 personal message.

        Parameters
        ----------
        private_key:
            Hex or raw 32-byte private key.
        message:
            Text (UTF-8 encoded before signing) or raw bytes.

        Returns
        -------
        MessageSignature
        """
        key = load_private_key(private_key)
        signed = Account.sign_message(_signable(message), private_key=key.to_bytes())
        return MessageSignature(
            message=message,
            signature="0x" + bytes(signed.signature).hex(),
            address=key.public_key.to_checksum_address(),
        )

    def sign_token(self, private_key: str | bytes, payload: dict[str, Any], did: str) -> str:
        """Serialise and sign *payload* as a compact ``ES256K-R`` token.

        Parameters
        ----------
        private_key:
            Hex or raw 32-byte private key.
        payload:
            Claims to sign. Serialised in insertion order.
        did:
            DID asserted as the signer; written to the header ``kid``.

        Returns
        -------
        str
            ``header.payload.signature``.

        Raises
        ------
        SigningKeyInvalidError
            If the key is malformed, or its address is not the one *did*
            is bound to.
        """
        key = load_private_key(private_key)
        try:
            did_address = address_from_did(did)
        except ValueError as exc:
            raise SigningKeyInvalidError(str(exc)) from exc
        key_address = key.public_key.to_checksum_address().lower()
        if key_address != did_address:
            raise SigningKeyInvalidError(
                f"key controls {key_address}, not the address of {did!r}"
            )

        text = signing_input(build_header(did), payload)
        digest = hashlib.sha256(text.encode("utf-8")).digest()
        signature = key.sign_msg_hash(digest).to_bytes()
        return assemble(text, signature)
