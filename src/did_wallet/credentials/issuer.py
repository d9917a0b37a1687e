"""Verifiable Credential issuance.

Implements the JWT encoding of the W3C Verifiable Credentials Data Model
(https://www.w3.org/TR/vc-data-model/#json-web-token). A credential is
issued on the holder device and signed with the issuer's own key; the
result is a :class:`Credential` record whose ``token`` is portable on its
own.

Payload layout
--------------
::

    {
      "iss": "<issuer DID>",
      "sub": "<subject DID>",
      "nbf": <issued-at epoch seconds>,
      "jti": "<credential id>",
      "vc": {
        "@context": ["https://www.w3.org/2018/credentials/v1"],
        "type": ["VerifiableCredential"],
        "credentialSubject": {<claims>}
      },
      "exp": <optional epoch seconds>
    }
"""
from __future__ import annotations

import json
import logging
import uuid
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from did_wallet.errors import EmptyClaimsError, MalformedTokenError, NoActiveIdentityError
from did_wallet.keys.signer import Signer
from did_wallet.token import decode_payload

logger = logging.getLogger(__name__)

CREDENTIALS_CONTEXT = "https://www.w3.org/2018/credentials/v1"
CREDENTIAL_TYPE = "VerifiableCredential"
PRESENTATION_TYPE = "VerifiablePresentation"


# ------------------------------------------------------------------
# Credential
# ------------------------------------------------------------------


class Credential(BaseModel):
    """An issued credential as the holder keeps it.

    Immutable: changing a claim means issuing a new credential with a new
    ``id``.

    Parameters
    ----------
    id:
        Identifier unique on this device, also signed into the token as
        ``jti``.
    issuer_did:
        DID of the signer.
    subject_did:
        DID the claims are about.
    claims:
        Ordered string-to-string claims map.
    token:
        The signed compact token.
    issued_at:
        UTC issuance time, truncated to whole seconds to match ``nbf``.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    issuer_did: str
    subject_did: str
    claims: dict[str, str]
    token: str
    issued_at: datetime

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a plain dictionary suitable for storage."""
        return {
            "id": self.id,
            "issuer": self.issuer_did,
            "subject": self.subject_did,
            "data": dict(self.claims),
            "jwt": self.token,
            "issuedAt": self.issued_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Credential":
        """Reconstruct a Credential from :meth:`to_dict` output."""
        return cls(
            id=str(data["id"]),
            issuer_did=str(data["issuer"]),
            subject_did=str(data["subject"]),
            claims={str(k): str(v) for k, v in dict(data.get("data") or {}).items()},
            token=str(data["jwt"]),
            issued_at=datetime.fromisoformat(str(data["issuedAt"])),
        )

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_token(cls, token: str) -> "Credential":
        """Rebuild a Credential record from its token alone.

        The signature is NOT checked; use the verifier for that.

        Raises
        ------
        MalformedTokenError
            If the token is not a structurally valid credential token.
        """
        payload = decode_payload(token)
        vc = payload.get("vc")
        if not isinstance(vc, dict):
            raise MalformedTokenError("payload has no 'vc' object")
        subject = vc.get("credentialSubject")
        if not isinstance(subject, dict):
            raise MalformedTokenError("'vc.credentialSubject' must be an object")
        nbf = payload.get("nbf")
        if not isinstance(nbf, int) or isinstance(nbf, bool):
            raise MalformedTokenError("'nbf' must be an integer")
        issuer = payload.get("iss")
        sub = payload.get("sub")
        if not isinstance(issuer, str) or not isinstance(sub, str):
            raise MalformedTokenError("'iss' and 'sub' must be strings")
        credential_id = payload.get("jti")
        if not isinstance(credential_id, str) or not credential_id:
            raise MalformedTokenError("'jti' must be a non-empty string")
        return cls(
            id=credential_id,
            issuer_did=issuer,
            subject_did=sub,
            claims={str(k): str(v) for k, v in subject.items()},
            token=token,
            issued_at=datetime.fromtimestamp(nbf, tz=timezone.utc),
        )


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def _validate_claims(claims: Mapping[str, str]) -> dict[str, str]:
    if not isinstance(claims, Mapping):
        raise ValueError(f"claims must be a mapping, got {type(claims).__name__}")
    if len(claims) == 0:
        raise EmptyClaimsError()
    validated: dict[str, str] = {}
    for key, value in claims.items():
        if not isinstance(key, str) or not isinstance(value, str):
            raise ValueError(
                f"claims must map str to str, got {type(key).__name__} -> "
                f"{type(value).__name__} for {key!r}"
            )
        validated[key] = value
    return validated


def utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


# ------------------------------------------------------------------
# CredentialIssuer
# ------------------------------------------------------------------


class CredentialIssuer:
    """Builds and signs Verifiable Credential tokens.

    Parameters
    ----------
    signer:
        Signer used for the token. A default :class:`Signer` is created when
        omitted.

    Example
    -------
    ::

        issuer = CredentialIssuer()
        credential = issuer.issue(
            claims={"name": "Ada", "degree": "PhD"},
            issuer_did=did,
            subject_did=did,
            private_key=pair.private_key,
        )
    """

    def __init__(self, signer: Signer | None = None) -> None:
        self._signer = signer or Signer()

    def issue(
        self,
        claims: Mapping[str, str],
        issuer_did: str | None,
        subject_did: str,
        private_key: str | bytes | None,
        expires_at: datetime | None = None,
    ) -> Credential:
        """Issue a new credential.

        Parameters
        ----------
        claims:
            Non-empty ordered mapping of claim names to values.
        issuer_did:
            DID of the issuer; must be controlled by *private_key*.
        subject_did:
            DID the credential is about.
        private_key:
            The issuer's private key.
        expires_at:
            Optional expiry, written to the ``exp`` claim.

        Returns
        -------
        Credential

        Raises
        ------
        NoActiveIdentityError
            If *issuer_did* or *private_key* is missing.
        EmptyClaimsError
            If *claims* has no entries.
        SigningKeyInvalidError
            If the key is malformed or does not control *issuer_did*.
        """
        if not issuer_did or not private_key:
            raise NoActiveIdentityError("issuer DID and private key are required")
        if not subject_did:
            raise ValueError("subject_did must not be empty.")
        validated = _validate_claims(claims)

        issued_at = utc_now()
        credential_id = f"urn:uuid:{uuid.uuid4()}"
        payload: dict[str, Any] = {
            "iss": issuer_did,
            "sub": subject_did,
            "nbf": int(issued_at.timestamp()),
            "jti": credential_id,
            "vc": {
                "@context": [CREDENTIALS_CONTEXT],
                "type": [CREDENTIAL_TYPE],
                "credentialSubject": validated,
            },
        }
        if expires_at is not None:
            if expires_at.tzinfo is None:
                raise ValueError("expires_at must be timezone-aware.")
            payload["exp"] = int(expires_at.timestamp())

        token = self._signer.sign_token(private_key, payload, issuer_did)
        logger.info("Issued credential %s to subject %s", credential_id, subject_did)

        return Credential(
            id=credential_id,
            issuer_did=issuer_did,
            subject_did=subject_did,
            claims=validated,
            token=token,
            issued_at=issued_at,
        )
