"""did_wallet.credentials — issuance, presentation, and verification."""
from __future__ import annotations

from did_wallet.credentials.issuer import (
    CREDENTIAL_TYPE,
    CREDENTIALS_CONTEXT,
    PRESENTATION_TYPE,
    Credential,
    CredentialIssuer,
)
from did_wallet.credentials.presentation import Presentation, PresentationBuilder
from did_wallet.credentials.verifier import (
    CheckOutcome,
    FailureReason,
    TokenKind,
    VerificationResult,
    Verifier,
)

__all__ = [
    "CREDENTIALS_CONTEXT",
    "CREDENTIAL_TYPE",
    "PRESENTATION_TYPE",
    "CheckOutcome",
    "Credential",
    "CredentialIssuer",
    "FailureReason",
    "Presentation",
    "PresentationBuilder",
    "TokenKind",
    "VerificationResult",
    "Verifier",
]
