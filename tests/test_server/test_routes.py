"""Tests for did_wallet.server.routes."""
from __future__ import annotations

import pytest

from did_wallet.config import VerifierPolicy
from did_wallet.credentials.issuer import Credential, CredentialIssuer
from did_wallet.credentials.presentation import PresentationBuilder
from did_wallet.keys.vault import KeyPair, KeyVault
from did_wallet.registration.proof import build_ownership_proof
from did_wallet.server import routes

_KEY = "0x" + "7a" * 32


@pytest.fixture(autouse=True)
def reset_server_state() -> None:
    """Reset module-level state before each test."""
    routes.reset_state()


@pytest.fixture()
def pair() -> KeyPair:
    return KeyVault().from_private_key(_KEY)


@pytest.fixture()
def did(pair: KeyPair) -> str:
    return KeyVault().derive_did(pair.address)


@pytest.fixture()
def credential(pair: KeyPair, did: str) -> Credential:
    return CredentialIssuer().issue({"role": "admin"}, did, did, pair.private_key)


class TestHandleVerifyCredential:
    def test_valid_credential(self, credential: Credential, did: str) -> None:
        status, data = routes.handle_verify_credential({"jwt": credential.token})
        assert status == 200
        assert data["verified"] is True
        assert data["subject_or_holder_did"] == did
        assert data["kind"] == "credential"

    def test_invalid_credential_is_still_200(self) -> None:
        status, data = routes.handle_verify_credential({"jwt": "garbage"})
        assert status == 200
        assert data["verified"] is False
        assert data["failure"] == "MalformedToken"
        assert data["error"]

    def test_expected_issuer(self, credential: Credential) -> None:
        other = "did:ethr:mainnet:0x" + "12" * 20
        status, data = routes.handle_verify_credential(
            {"jwt": credential.token, "expected_issuer": other}
        )
        assert data["failure"] == "IssuerMismatch"

    def test_missing_field_is_422(self) -> None:
        status, data = routes.handle_verify_credential({})
        assert status == 422
        assert data["error"] == "Validation error"


class TestHandleVerifyPresentation:
    def test_valid_presentation_with_alias(
        self, credential: Credential, pair: KeyPair, did: str
    ) -> None:
        vp = PresentationBuilder().present([credential], did, pair.private_key, challenge="c1")
        status, data = routes.handle_verify_presentation({"vpJwt": vp.token, "challenge": "c1"})
        assert status == 200
        assert data["verified"] is True
        assert len(data["credentials"]) == 1
        assert data["credentials"][0]["verified"] is True

    def test_snake_case_field_accepted(
        self, credential: Credential, pair: KeyPair, did: str
    ) -> None:
        vp = PresentationBuilder().present([credential], did, pair.private_key)
        status, data = routes.handle_verify_presentation({"vp_jwt": vp.token})
        assert status == 200
        assert data["verified"] is True

    def test_wrong_challenge(self, credential: Credential, pair: KeyPair, did: str) -> None:
        vp = PresentationBuilder().present([credential], did, pair.private_key, challenge="c1")
        _, data = routes.handle_verify_presentation({"vpJwt": vp.token, "challenge": "c2"})
        assert data["verified"] is False
        assert data["failure"] == "ChallengeMismatch"

    def test_configured_policy_applies(
        self, credential: Credential, pair: KeyPair, did: str
    ) -> None:
        routes.configure(VerifierPolicy(require_challenge=True))
        vp = PresentationBuilder().present([credential], did, pair.private_key)
        _, data = routes.handle_verify_presentation({"vpJwt": vp.token})
        assert data["failure"] == "ChallengeRequired"

    def test_missing_token_is_422(self) -> None:
        status, _ = routes.handle_verify_presentation({"challenge": "c1"})
        assert status == 422


class TestHandleVerifyOwnership:
    def test_valid_proof(self, pair: KeyPair, did: str) -> None:
        proof = build_ownership_proof(did, pair.private_key)
        body = {k: v for k, v in proof.to_dict().items() if k != "publicKey"}
        status, data = routes.handle_verify_ownership(body)
        assert status == 200
        assert data["verified"] is True

    def test_wrong_address(self, pair: KeyPair, did: str) -> None:
        proof = build_ownership_proof(did, pair.private_key)
        body = {
            "did": proof.did,
            "address": "0x" + "34" * 20,
            "signature": proof.signature,
            "message": proof.message,
        }
        _, data = routes.handle_verify_ownership(body)
        assert data["verified"] is False

    def test_missing_fields_is_422(self) -> None:
        status, _ = routes.handle_verify_ownership({"did": "did:ethr:mainnet:0x00"})
        assert status == 422


class TestHandleHealth:
    def test_health_returns_ok(self) -> None:
        status, data = routes.handle_health()
        assert status == 200
        assert data["status"] == "ok"
        assert data["service"] == "did-wallet-verifier"

    def test_health_reports_policy(self) -> None:
        routes.configure(VerifierPolicy(require_challenge=True))
        _, data = routes.handle_health()
        assert data["require_challenge"] is True
