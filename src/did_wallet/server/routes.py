"""Verification endpoints as plain functions over decoded request bodies.

Handlers take the body ``dict`` (POST) or nothing (GET) and return
``(status, payload)``; :mod:`did_wallet.server.app` owns the transport.

A token that fails verification is still a successful request: the
response is 200 with ``verified: false`` and the failing check. Only
requests that do not match the expected body shape get a 422.
"""
from __future__ import annotations

import logging

from pydantic import ValidationError

from did_wallet import __version__
from did_wallet.config import VerifierPolicy
from did_wallet.credentials.verifier import VerificationResult, Verifier
from did_wallet.registration.proof import verify_ownership
from did_wallet.server.models import (
    ErrorResponse,
    HealthResponse,
    OwnershipResponse,
    VerificationResponse,
    VerifyCredentialRequest,
    VerifyOwnershipRequest,
    VerifyPresentationRequest,
)

logger = logging.getLogger(__name__)

# Shared by every request thread; replaced wholesale, never mutated.
_verifier: Verifier = Verifier()


def configure(policy: VerifierPolicy) -> None:
    """Replace the shared verifier with one using *policy*."""
    global _verifier
    _verifier = Verifier(policy=policy)


def reset_state() -> None:
    """Restore the default-policy verifier."""
    global _verifier
    _verifier = Verifier()


def _validation_error(exc: ValidationError) -> tuple[int, dict[str, object]]:
    return 422, ErrorResponse(error="Validation error", detail=str(exc)).model_dump()


def _result_to_response(result: VerificationResult) -> VerificationResponse:
    return VerificationResponse.model_validate(result.to_dict())


def handle_verify_credential(body: dict[str, object]) -> tuple[int, dict[str, object]]:
    """Handle POST /verify-vc.

    Parameters
    ----------
    body:
        Parsed JSON request body.

    Returns
    -------
    tuple[int, dict[str, object]]
        HTTP status code and response dictionary.
    """
    try:
        request = VerifyCredentialRequest.model_validate(body)
    except ValidationError as exc:
        return _validation_error(exc)

    result = _verifier.verify_credential(request.jwt, expected_issuer=request.expected_issuer)
    logger.info("verify-vc: verified=%s failure=%s", result.verified, result.failure)
    return 200, _result_to_response(result).model_dump()


def handle_verify_presentation(body: dict[str, object]) -> tuple[int, dict[str, object]]:
    """Handle POST /verify-vp.

    Parameters
    ----------
    body:
        Parsed JSON request body.

    Returns
    -------
    tuple[int, dict[str, object]]
        HTTP status code and response dictionary.
    """
    try:
        request = VerifyPresentationRequest.model_validate(body)
    except ValidationError as exc:
        return _validation_error(exc)

    result = _verifier.verify_presentation(
        request.vp_jwt,
        challenge=request.challenge,
        expected_holder=request.expected_holder,
    )
    logger.info("verify-vp: verified=%s failure=%s", result.verified, result.failure)
    return 200, _result_to_response(result).model_dump()


def handle_verify_ownership(body: dict[str, object]) -> tuple[int, dict[str, object]]:
    """Handle POST /verify-ownership.

    Checks a DID ownership proof the way a registrar does before anchoring.

    Parameters
    ----------
    body:
        Parsed JSON request body.

    Returns
    -------
    tuple[int, dict[str, object]]
        HTTP status code and response dictionary.
    """
    try:
        request = VerifyOwnershipRequest.model_validate(body)
    except ValidationError as exc:
        return _validation_error(exc)

    verified = verify_ownership(
        request.did, request.address, request.signature, request.message
    )
    response = OwnershipResponse(did=request.did, address=request.address, verified=verified)
    return 200, response.model_dump()


def handle_health() -> tuple[int, dict[str, object]]:
    """Handle GET /health.

    Returns
    -------
    tuple[int, dict[str, object]]
        HTTP status code and response dictionary.
    """
    response = HealthResponse(
        version=__version__,
        require_challenge=_verifier.policy.require_challenge,
    )
    return 200, response.model_dump()


__all__ = [
    "configure",
    "reset_state",
    "handle_verify_credential",
    "handle_verify_presentation",
    "handle_verify_ownership",
    "handle_health",
]
