"""Unit tests for did_wallet.registration — ownership proofs and the HTTP registrar."""
from __future__ import annotations

import json

import httpx
import pytest

from did_wallet.errors import RegistrarUnavailableError
from did_wallet.keys.vault import KeyPair, KeyVault
from did_wallet.registration.proof import (
    OwnershipProof,
    build_ownership_proof,
    ownership_message,
    verify_ownership,
    verify_ownership_proof,
)
from did_wallet.registration.registrar import HttpRegistrar, Registrar, TxReceipt

_KEY = "0x" + "5e" * 32
_BASE_URL = "https://registrar.test"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def pair() -> KeyPair:
    return KeyVault().from_private_key(_KEY)


@pytest.fixture()
def did(pair: KeyPair) -> str:
    return KeyVault().derive_did(pair.address)


@pytest.fixture()
def proof(pair: KeyPair, did: str) -> OwnershipProof:
    return build_ownership_proof(did, pair.private_key)


def _registrar(handler: object) -> HttpRegistrar:
    client = httpx.Client(transport=httpx.MockTransport(handler))  # type: ignore[arg-type]
    return HttpRegistrar(_BASE_URL, client=client)


# ---------------------------------------------------------------------------
# Ownership proofs
# ---------------------------------------------------------------------------


class TestOwnershipProof:
    def test_message_format(self, did: str) -> None:
        assert ownership_message(did) == f"Register DID: {did}"

    def test_proof_fields(self, proof: OwnershipProof, pair: KeyPair, did: str) -> None:
        assert proof.did == did
        assert proof.address == pair.address
        assert proof.public_key == pair.public_key
        assert proof.message == f"Register DID: {did}"

    def test_proof_verifies(self, proof: OwnershipProof) -> None:
        assert verify_ownership_proof(proof) is True

    def test_to_dict_uses_registrar_field_names(self, proof: OwnershipProof) -> None:
        assert set(proof.to_dict()) == {"did", "publicKey", "address", "signature", "message"}

    def test_altered_message_fails(self, proof: OwnershipProof) -> None:
        assert not verify_ownership(proof.did, proof.address, proof.signature, "Register DID: x")

    def test_other_did_fails(self, proof: OwnershipProof) -> None:
        other = "did:ethr:mainnet:0x" + "99" * 20
        assert not verify_ownership(other, proof.address, proof.signature, ownership_message(other))

    def test_other_address_fails(self, proof: OwnershipProof) -> None:
        assert not verify_ownership(proof.did, "0x" + "99" * 20, proof.signature, proof.message)

    def test_garbage_signature_fails(self, proof: OwnershipProof) -> None:
        assert not verify_ownership(proof.did, proof.address, "0x00", proof.message)


# ---------------------------------------------------------------------------
# HttpRegistrar
# ---------------------------------------------------------------------------


class TestHttpRegistrarSubmit:
    def test_posts_proof_and_returns_receipt(self, proof: OwnershipProof) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"txHash": "0xabc", "blockNumber": 42})

        receipt = _registrar(handler).submit_registration(
            proof.did, proof.public_key, proof.address, proof.signature, proof.message
        )
        assert receipt == TxReceipt(tx_hash="0xabc", block_number=42)
        assert seen[0].method == "POST"
        assert seen[0].url.path == "/register-on-chain"
        assert json.loads(seen[0].content) == proof.to_dict()

    def test_block_number_optional(self, proof: OwnershipProof) -> None:
        registrar = _registrar(lambda request: httpx.Response(200, json={"txHash": "0x1"}))
        receipt = registrar.submit_registration(**_kwargs(proof))
        assert receipt.block_number is None

    def test_http_error_raises(self, proof: OwnershipProof) -> None:
        registrar = _registrar(
            lambda request: httpx.Response(400, json={"error": "Invalid signature"})
        )
        with pytest.raises(RegistrarUnavailableError) as exc_info:
            registrar.submit_registration(**_kwargs(proof))
        assert exc_info.value.status_code == 400
        assert "Invalid signature" in exc_info.value.reason

    def test_transport_error_raises(self, proof: OwnershipProof) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(RegistrarUnavailableError) as exc_info:
            _registrar(handler).submit_registration(**_kwargs(proof))
        assert exc_info.value.status_code is None

    def test_non_json_body_raises(self, proof: OwnershipProof) -> None:
        registrar = _registrar(lambda request: httpx.Response(200, text="ok"))
        with pytest.raises(RegistrarUnavailableError):
            registrar.submit_registration(**_kwargs(proof))

    def test_missing_tx_hash_raises(self, proof: OwnershipProof) -> None:
        registrar = _registrar(lambda request: httpx.Response(200, json={"status": "queued"}))
        with pytest.raises(RegistrarUnavailableError, match="txHash"):
            registrar.submit_registration(**_kwargs(proof))

    def test_satisfies_protocol(self) -> None:
        assert isinstance(HttpRegistrar(_BASE_URL), Registrar)


class TestHttpRegistrarCheck:
    def test_check_registration(self, pair: KeyPair) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == f"/check-registration/{pair.address}"
            return httpx.Response(200, json={"registered": True, "blockNumber": 7})

        status = _registrar(handler).check_registration(pair.address)
        assert status == {"registered": True, "blockNumber": 7}

    def test_missing_flag_defaults_to_false(self, pair: KeyPair) -> None:
        status = _registrar(lambda request: httpx.Response(200, json={})).check_registration(
            pair.address
        )
        assert status["registered"] is False

    def test_server_error_raises(self, pair: KeyPair) -> None:
        registrar = _registrar(lambda request: httpx.Response(503, text="down"))
        with pytest.raises(RegistrarUnavailableError):
            registrar.check_registration(pair.address)


def _kwargs(proof: OwnershipProof) -> dict[str, str]:
    return {
        "did": proof.did,
        "public_key": proof.public_key,
        "address": proof.address,
        "signature": proof.signature,
        "message": proof.message,
    }
