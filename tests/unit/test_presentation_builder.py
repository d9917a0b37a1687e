"""Unit tests for did_wallet.credentials.presentation — presentation building."""
from __future__ import annotations

import pytest

from did_wallet.credentials.issuer import (
    CREDENTIALS_CONTEXT,
    PRESENTATION_TYPE,
    Credential,
    CredentialIssuer,
)
from did_wallet.credentials.presentation import PresentationBuilder
from did_wallet.errors import (
    EmptyCredentialSetError,
    MalformedTokenError,
    NoActiveIdentityError,
    SigningKeyInvalidError,
)
from did_wallet.keys.signer import Signer
from did_wallet.keys.vault import KeyPair, KeyVault
from did_wallet.token import decode_payload

_HOLDER_KEY = "0x" + "e5" * 32


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def builder() -> PresentationBuilder:
    return PresentationBuilder()


@pytest.fixture()
def pair() -> KeyPair:
    return KeyVault().from_private_key(_HOLDER_KEY)


@pytest.fixture()
def did(pair: KeyPair) -> str:
    return KeyVault().derive_did(pair.address)


@pytest.fixture()
def credentials(pair: KeyPair, did: str) -> list[Credential]:
    issuer = CredentialIssuer()
    return [
        issuer.issue({"role": "admin"}, did, did, pair.private_key),
        issuer.issue({"team": "core"}, did, did, pair.private_key),
    ]


# ---------------------------------------------------------------------------
# present
# ---------------------------------------------------------------------------


class TestPresent:
    def test_payload_layout(
        self, builder: PresentationBuilder, credentials: list[Credential], pair: KeyPair, did: str
    ) -> None:
        vp = builder.present(credentials, did, pair.private_key)
        payload = decode_payload(vp.token)
        assert payload["iss"] == did
        assert isinstance(payload["nbf"], int)
        assert payload["vp"]["@context"] == [CREDENTIALS_CONTEXT]
        assert payload["vp"]["type"] == [PRESENTATION_TYPE]
        assert "nonce" not in payload

    def test_preserves_credential_order(
        self, builder: PresentationBuilder, credentials: list[Credential], pair: KeyPair, did: str
    ) -> None:
        reversed_creds = list(reversed(credentials))
        vp = builder.present(reversed_creds, did, pair.private_key)
        embedded = decode_payload(vp.token)["vp"]["verifiableCredential"]
        assert embedded == [c.token for c in reversed_creds]
        assert vp.credential_tokens == tuple(embedded)

    def test_challenge_written_to_nonce(
        self, builder: PresentationBuilder, credentials: list[Credential], pair: KeyPair, did: str
    ) -> None:
        vp = builder.present(credentials, did, pair.private_key, challenge="c1")
        assert decode_payload(vp.token)["nonce"] == "c1"
        assert vp.challenge == "c1"

    def test_empty_challenge_counts_as_absent(
        self, builder: PresentationBuilder, credentials: list[Credential], pair: KeyPair, did: str
    ) -> None:
        vp = builder.present(credentials, did, pair.private_key, challenge="")
        assert "nonce" not in decode_payload(vp.token)
        assert vp.challenge is None

    def test_accepts_raw_tokens(
        self, builder: PresentationBuilder, credentials: list[Credential], pair: KeyPair, did: str
    ) -> None:
        vp = builder.present([c.token for c in credentials], did, pair.private_key)
        assert vp.credential_tokens == tuple(c.token for c in credentials)

    def test_does_not_reverify_credential_signatures(
        self, builder: PresentationBuilder, pair: KeyPair, did: str
    ) -> None:
        forged = Signer().sign_token(
            pair.private_key,
            {"iss": did, "sub": did, "vc": {"credentialSubject": {"a": "b"}}},
            did,
        )
        header, payload, signature = forged.split(".")
        tampered = f"{header}.{payload}.{signature[::-1]}"
        vp = builder.present([tampered], did, pair.private_key)
        assert vp.credential_tokens == (tampered,)

    def test_rejects_empty_set(self, builder: PresentationBuilder, pair: KeyPair, did: str) -> None:
        with pytest.raises(EmptyCredentialSetError):
            builder.present([], did, pair.private_key)

    def test_rejects_missing_identity(
        self, builder: PresentationBuilder, credentials: list[Credential], pair: KeyPair
    ) -> None:
        with pytest.raises(NoActiveIdentityError):
            builder.present(credentials, None, pair.private_key)

    def test_rejects_non_credential_token(
        self, builder: PresentationBuilder, credentials: list[Credential], pair: KeyPair, did: str
    ) -> None:
        vp = builder.present(credentials, did, pair.private_key)
        with pytest.raises(MalformedTokenError, match=r"credential\[1\]"):
            builder.present([credentials[0], vp.token], did, pair.private_key)

    def test_rejects_garbage(
        self, builder: PresentationBuilder, pair: KeyPair, did: str
    ) -> None:
        with pytest.raises(MalformedTokenError, match=r"credential\[0\]"):
            builder.present(["garbage"], did, pair.private_key)

    def test_rejects_foreign_holder(
        self, builder: PresentationBuilder, credentials: list[Credential], pair: KeyPair
    ) -> None:
        other = "did:ethr:mainnet:0x" + "ab" * 20
        with pytest.raises(SigningKeyInvalidError):
            builder.present(credentials, other, pair.private_key)
