"""Pydantic request/response models for the did-wallet verifier server."""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class VerifyCredentialRequest(BaseModel):
    """Request body for POST /verify-vc."""

    jwt: str
    expected_issuer: Optional[str] = None


class VerifyPresentationRequest(BaseModel):
    """Request body for POST /verify-vp.

    ``vpJwt`` is accepted as an alias for ``vp_jwt``.
    """

    model_config = ConfigDict(populate_by_name=True)

    vp_jwt: str = Field(alias="vpJwt")
    challenge: Optional[str] = None
    expected_holder: Optional[str] = None


class VerifyOwnershipRequest(BaseModel):
    """Request body for POST /verify-ownership."""

    did: str
    address: str
    signature: str
    message: str


class CheckResponse(BaseModel):
    """One verification check."""

    rule: str
    passed: bool
    detail: str = ""


class VerificationResponse(BaseModel):
    """Response body for POST /verify-vc and POST /verify-vp."""

    verified: bool
    kind: Optional[str] = None
    subject_or_holder_did: Optional[str] = None
    failure: Optional[str] = None
    error: Optional[str] = None
    reasons: list[CheckResponse] = Field(default_factory=list)
    credentials: list[VerificationResponse] = Field(default_factory=list)


class OwnershipResponse(BaseModel):
    """Response body for POST /verify-ownership."""

    did: str
    address: str
    verified: bool


class HealthResponse(BaseModel):
    """Response body for GET /health."""

    status: str = "ok"
    service: str = "did-wallet-verifier"
    version: str = "0.1.0"
    require_challenge: bool = False


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    detail: str = ""


VerificationResponse.model_rebuild()

__all__ = [
    "VerifyCredentialRequest",
    "VerifyPresentationRequest",
    "VerifyOwnershipRequest",
    "CheckResponse",
    "VerificationResponse",
    "OwnershipResponse",
    "HealthResponse",
    "ErrorResponse",
]
