"""Unit tests for did_wallet.keys.signer — message and token signing."""
from __future__ import annotations

import pytest

from did_wallet.errors import SigningKeyInvalidError
from did_wallet.keys.signer import (
    Signer,
    recover_message_signer,
    recover_token_signer,
)
from did_wallet.keys.vault import KeyPair, KeyVault
from did_wallet.token import ALGORITHM, decode_payload, parse_token

_KEY_A = "0x" + "a1" * 32
_KEY_B = "0x" + "b2" * 32


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def signer() -> Signer:
    return Signer()


@pytest.fixture()
def pair() -> KeyPair:
    return KeyVault().from_private_key(_KEY_A)


@pytest.fixture()
def did(pair: KeyPair) -> str:
    return KeyVault().derive_did(pair.address)


# ---------------------------------------------------------------------------
# sign_bytes
# ---------------------------------------------------------------------------


class TestSignBytes:
    def test_signature_is_65_byte_hex(self, signer: Signer, pair: KeyPair) -> None:
        signed = signer.sign_bytes(pair.private_key, "hello")
        assert signed.signature.startswith("0x")
        assert len(bytes.fromhex(signed.signature[2:])) == 65

    def test_carries_signer_address(self, signer: Signer, pair: KeyPair) -> None:
        assert signer.sign_bytes(pair.private_key, "hello").address == pair.address

    def test_recovers_signer_for_text(self, signer: Signer, pair: KeyPair) -> None:
        signed = signer.sign_bytes(pair.private_key, "Register DID: x")
        assert recover_message_signer("Register DID: x", signed.signature) == pair.address

    def test_recovers_signer_for_bytes(self, signer: Signer, pair: KeyPair) -> None:
        signed = signer.sign_bytes(pair.private_key, b"\x00\x01binary")
        assert recover_message_signer(b"\x00\x01binary", signed.signature) == pair.address

    def test_is_deterministic(self, signer: Signer, pair: KeyPair) -> None:
        first = signer.sign_bytes(pair.private_key, "same")
        second = signer.sign_bytes(pair.private_key, "same")
        assert first.signature == second.signature

    def test_different_message_recovers_other_address(self, signer: Signer, pair: KeyPair) -> None:
        signed = signer.sign_bytes(pair.private_key, "original")
        assert recover_message_signer("changed", signed.signature) != pair.address

    def test_garbage_signature_raises_value_error(self) -> None:
        with pytest.raises(ValueError):
            recover_message_signer("hello", "0x1234")

    def test_invalid_key_raises(self, signer: Signer) -> None:
        with pytest.raises(SigningKeyInvalidError):
            signer.sign_bytes("0xdeadbeef", "hello")


# ---------------------------------------------------------------------------
# sign_token
# ---------------------------------------------------------------------------


class TestSignToken:
    def test_token_has_three_segments(self, signer: Signer, pair: KeyPair, did: str) -> None:
        token = signer.sign_token(pair.private_key, {"iss": did}, did)
        assert token.count(".") == 2

    def test_header_names_algorithm_and_did(self, signer: Signer, pair: KeyPair, did: str) -> None:
        parts = parse_token(signer.sign_token(pair.private_key, {"iss": did}, did))
        assert parts.header["alg"] == ALGORITHM
        assert parts.header["kid"] == f"{did}#controller"

    def test_payload_round_trips(self, signer: Signer, pair: KeyPair, did: str) -> None:
        payload = {"iss": did, "claims": {"z": "1", "a": "2"}}
        token = signer.sign_token(pair.private_key, payload, did)
        assert decode_payload(token) == payload

    def test_signer_is_recoverable(self, signer: Signer, pair: KeyPair, did: str) -> None:
        parts = parse_token(signer.sign_token(pair.private_key, {"iss": did}, did))
        assert recover_token_signer(parts.signing_input, parts.signature) == pair.address

    def test_is_deterministic(self, signer: Signer, pair: KeyPair, did: str) -> None:
        payload = {"iss": did, "nbf": 1}
        assert signer.sign_token(pair.private_key, payload, did) == signer.sign_token(
            pair.private_key, payload, did
        )

    def test_rejects_key_that_does_not_control_did(self, signer: Signer, did: str) -> None:
        with pytest.raises(SigningKeyInvalidError, match="controls"):
            signer.sign_token(_KEY_B, {"iss": did}, did)

    def test_rejects_did_without_address(self, signer: Signer, pair: KeyPair) -> None:
        with pytest.raises(SigningKeyInvalidError):
            signer.sign_token(pair.private_key, {}, "did:web:example.com")

    def test_rejects_malformed_key(self, signer: Signer, did: str) -> None:
        with pytest.raises(SigningKeyInvalidError):
            signer.sign_token("not-a-key", {"iss": did}, did)


class TestRecoverTokenSigner:
    def test_wrong_length_raises(self) -> None:
        with pytest.raises(ValueError):
            recover_token_signer("a.b", b"\x00" * 64)

    def test_accepts_ethereum_style_recovery_byte(
        self, signer: Signer, pair: KeyPair, did: str
    ) -> None:
        parts = parse_token(signer.sign_token(pair.private_key, {"iss": did}, did))
        shifted = parts.signature[:64] + bytes([parts.signature[64] + 27])
        assert recover_token_signer(parts.signing_input, shifted) == pair.address
