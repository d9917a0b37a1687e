"""Verifier — single-pass verification of credential and presentation tokens.

Verification flow
-----------------
1. ``token_format`` — three segments, ES256K-R header, 65-byte signature.
2. ``signature``    — recover the signer address from the signature and
   compare it with the signer the header asserts (``kid``, falling back to
   the payload ``iss``). The payload is decoded only after this check, so a
   tampered payload always reports :attr:`FailureReason.SIGNATURE_INVALID`.
3. ``structure``    — payload shape, ``@context`` and ``type`` markers.
4. ``issuer_binding`` / ``holder_binding`` — the recovered address must be
   the address the claimed issuer (credential) or holder (presentation) DID
   is bound to.
5. ``not_before`` / ``expiry`` — temporal checks, per :class:`VerifierPolicy`.
6. ``challenge``    — presentations only; the supplied challenge must equal
   the payload ``nonce``.
7. ``credential[i]`` — presentations only; each embedded credential runs
   steps 1–5 in order.

The first failing check ends the run. Invalid tokens are an expected
outcome, so nothing here raises for bad input; every outcome is a
:class:`VerificationResult`.
"""
from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from did_wallet.config import VerifierPolicy
from did_wallet.credentials.issuer import (
    CREDENTIAL_TYPE,
    CREDENTIALS_CONTEXT,
    PRESENTATION_TYPE,
)
from did_wallet.errors import MalformedTokenError
from did_wallet.keys.signer import recover_token_signer
from did_wallet.keys.vault import address_from_did
from did_wallet.token import TokenParts, parse_token

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Result types
# ------------------------------------------------------------------


class FailureReason(str, Enum):
    """Why a token failed verification."""

    MALFORMED_TOKEN = "MalformedToken"
    SIGNATURE_INVALID = "SignatureInvalid"
    ISSUER_MISMATCH = "IssuerMismatch"
    HOLDER_MISMATCH = "HolderMismatch"
    NOT_YET_VALID = "NotYetValid"
    EXPIRED = "Expired"
    CHALLENGE_MISMATCH = "ChallengeMismatch"
    CHALLENGE_REQUIRED = "ChallengeRequired"


class TokenKind(str, Enum):
    """Which kind of token was verified."""

    CREDENTIAL = "credential"
    PRESENTATION = "presentation"


@dataclass(frozen=True)
class CheckOutcome:
    """The result of one verification rule.

    Parameters
    ----------
    rule:
        Name of the check, e.g. ``"signature"`` or ``"credential[1]"``.
    passed:
        Whether the check passed.
    detail:
        Human-readable context.
    """

    rule: str
    passed: bool
    detail: str = ""

    def to_dict(self) -> dict[str, object]:
        return {"rule": self.rule, "passed": self.passed, "detail": self.detail}


@dataclass(frozen=True)
class VerificationResult:
    """The outcome of verifying one token.

    Parameters
    ----------
    verified:
        ``True`` only when every check passed.
    subject_or_holder_did:
        The credential ``sub`` or the presentation holder, once the payload
        could be decoded; ``None`` otherwise.
    reasons:
        Check outcomes in evaluation order. When verification fails the
        last entry is the failing check.
    failure:
        The failure category, or ``None`` when verified.
    kind:
        Token kind, when it could be determined.
    payload:
        The decoded payload, when the signature check passed.
    embedded:
        For presentations, results for the embedded credentials verified
        so far, in presentation order.
    """

    verified: bool
    subject_or_holder_did: str | None
    reasons: tuple[CheckOutcome, ...]
    failure: FailureReason | None = None
    kind: TokenKind | None = None
    payload: dict[str, Any] = field(default_factory=dict)
    embedded: tuple["VerificationResult", ...] = ()

    @property
    def failed_check(self) -> CheckOutcome | None:
        """The check that ended the run, or ``None`` when verified."""
        if self.verified or not self.reasons:
            return None
        return self.reasons[-1]

    def to_dict(self) -> dict[str, object]:
        """Serialize to a plain dictionary."""
        failed = self.failed_check
        return {
            "verified": self.verified,
            "subject_or_holder_did": self.subject_or_holder_did,
            "kind": self.kind.value if self.kind else None,
            "failure": self.failure.value if self.failure else None,
            "error": failed.detail if failed else None,
            "reasons": [outcome.to_dict() for outcome in self.reasons],
            "credentials": [result.to_dict() for result in self.embedded],
        }


# ------------------------------------------------------------------
# Internal run state
# ------------------------------------------------------------------


class _Run:
    """Collects check outcomes for one verification call."""

    def __init__(self) -> None:
        self.outcomes: list[CheckOutcome] = []
        self.failure: FailureReason | None = None
        self.kind: TokenKind | None = None
        self.subject: str | None = None
        self.payload: dict[str, Any] = {}
        self.embedded: list[VerificationResult] = []

    def passed(self, rule: str, detail: str = "") -> None:
        self.outcomes.append(CheckOutcome(rule, True, detail))

    def failed(self, rule: str, reason: FailureReason, detail: str) -> None:
        self.outcomes.append(CheckOutcome(rule, False, detail))
        self.failure = reason

    def result(self) -> VerificationResult:
        return VerificationResult(
            verified=self.failure is None,
            subject_or_holder_did=self.subject,
            reasons=tuple(self.outcomes),
            failure=self.failure,
            kind=self.kind,
            payload=self.payload,
            embedded=tuple(self.embedded),
        )


@dataclass(frozen=True)
class _Opened:
    payload: dict[str, Any]
    signer_address: str
    kind: TokenKind


def _contains(value: object, expected: str) -> bool:
    if isinstance(value, str):
        return value == expected
    return isinstance(value, list) and expected in value


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


# ------------------------------------------------------------------
# Verifier
# ------------------------------------------------------------------


class Verifier:
    """Verifies credential and presentation tokens.

    The verifier needs no registry: a DID names its address, and the token
    signature names the signer's address.

    Parameters
    ----------
    policy:
        Temporal and challenge policy. Defaults to :class:`VerifierPolicy`.
    clock:
        Returns the current time as epoch seconds. Defaults to
        :func:`time.time`.
    logger:
        Logger for verification outcomes. Defaults to this module's logger.

    Example
    -------
    ::

        verifier = Verifier()
        result = verifier.verify_presentation(vp_token, challenge="c1")
        if not result.verified:
            print(result.failure, result.failed_check.detail)
    """

    def __init__(
        self,
        policy: VerifierPolicy | None = None,
        clock: Callable[[], float] | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._policy = policy or VerifierPolicy()
        self._clock = clock or time.time
        self._logger = logger or logging.getLogger(__name__)

    @property
    def policy(self) -> VerifierPolicy:
        return self._policy

    # ------------------------------------------------------------------
    # Public entry points
    # ------------------------------------------------------------------

    def verify_credential(
        self, token: str, expected_issuer: str | None = None
    ) -> VerificationResult:
        """Verify a credential token.

        Parameters
        ----------
        token:
            The compact credential token.
        expected_issuer:
            If given, the token must also be signed by the address this DID
            is bound to.
        """
        run = _Run()
        run.kind = TokenKind.CREDENTIAL
        opened = self._open(token, run)
        if opened is not None:
            if opened.kind is not TokenKind.CREDENTIAL:
                run.failed("structure", FailureReason.MALFORMED_TOKEN, "not a credential token")
            else:
                self._check_credential(opened, run, expected_issuer)
        return self._finish(run)

    def verify_presentation(
        self,
        token: str,
        challenge: str | None = None,
        expected_holder: str | None = None,
    ) -> VerificationResult:
        """Verify a presentation token and every credential it embeds.

        Parameters
        ----------
        token:
            The compact presentation token.
        challenge:
            The challenge this verifier issued, if any. An empty string
            counts as absent.
        expected_holder:
            If given, the presentation must be signed by the address this DID
            is bound to.
        """
        run = _Run()
        run.kind = TokenKind.PRESENTATION
        opened = self._open(token, run)
        if opened is not None:
            if opened.kind is not TokenKind.PRESENTATION:
                run.failed("structure", FailureReason.MALFORMED_TOKEN, "not a presentation token")
            else:
                self._check_presentation(opened, run, challenge or None, expected_holder)
        return self._finish(run)

    def verify(self, token: str, challenge: str | None = None) -> VerificationResult:
        """Verify a token of either kind, dispatching on its payload."""
        run = _Run()
        opened = self._open(token, run)
        if opened is not None:
            run.kind = opened.kind
            if opened.kind is TokenKind.PRESENTATION:
                self._check_presentation(opened, run, challenge or None, None)
            else:
                self._check_credential(opened, run, None)
        return self._finish(run)

    # ------------------------------------------------------------------
    # Steps shared by both kinds
    # ------------------------------------------------------------------

    def _open(self, token: str, run: _Run) -> _Opened | None:
        """Run the format and signature checks, then decode the payload."""
        try:
            parts = parse_token(token)
        except MalformedTokenError as exc:
            run.failed("token_format", FailureReason.MALFORMED_TOKEN, exc.reason)
            return None
        run.passed("token_format")

        asserted = parts.asserted_signer
        if asserted is None:
            asserted = self._issuer_from_payload(parts)
            if asserted is None:
                run.failed(
                    "token_format",
                    FailureReason.MALFORMED_TOKEN,
                    "token names no signer in 'kid' or 'iss'",
                )
                return None

        try:
            asserted_address = address_from_did(asserted)
        except ValueError as exc:
            run.failed("signature", FailureReason.SIGNATURE_INVALID, str(exc))
            return None
        try:
            recovered = recover_token_signer(parts.signing_input, parts.signature)
        except ValueError as exc:
            run.failed("signature", FailureReason.SIGNATURE_INVALID, str(exc))
            return None
        if recovered.lower() != asserted_address:
            run.failed(
                "signature",
                FailureReason.SIGNATURE_INVALID,
                f"signature recovers to {recovered}, token asserts {asserted}",
            )
            return None
        run.passed("signature", f"signed by {recovered}")

        try:
            payload = parts.payload()
        except MalformedTokenError as exc:
            run.failed("structure", FailureReason.MALFORMED_TOKEN, exc.reason)
            return None
        run.payload = payload

        if isinstance(payload.get("vp"), dict):
            kind = TokenKind.PRESENTATION
        elif isinstance(payload.get("vc"), dict):
            kind = TokenKind.CREDENTIAL
        else:
            run.failed("structure", FailureReason.MALFORMED_TOKEN, "payload has no 'vc' or 'vp'")
            return None
        return _Opened(payload=payload, signer_address=recovered.lower(), kind=kind)

    @staticmethod
    def _issuer_from_payload(parts: TokenParts) -> str | None:
        try:
            issuer = parts.payload().get("iss")
        except MalformedTokenError:
            return None
        return issuer if isinstance(issuer, str) and issuer else None

    def _check_binding(
        self,
        run: _Run,
        rule: str,
        reason: FailureReason,
        claimed: str,
        expected: str | None,
        signer_address: str,
    ) -> bool:
        for label, did in (("claimed", claimed), ("expected", expected)):
            if did is None:
                continue
            try:
                address = address_from_did(did)
            except ValueError as exc:
                run.failed(rule, reason, f"{label} DID: {exc}")
                return False
            if address != signer_address:
                run.failed(
                    rule,
                    reason,
                    f"{label} DID {did} is bound to {address}, token signed by {signer_address}",
                )
                return False
        run.passed(rule, claimed)
        return True

    def _check_temporal(self, run: _Run, payload: dict[str, Any]) -> bool:
        now = self._clock()
        skew = self._policy.clock_skew_seconds

        nbf = payload.get("nbf")
        if nbf is None:
            run.passed("not_before", "no issuance time")
        elif self._policy.enforce_not_before and nbf > now + skew:
            run.failed(
                "not_before",
                FailureReason.NOT_YET_VALID,
                f"valid from {int(nbf)}, now {int(now)}",
            )
            return False
        else:
            run.passed("not_before")

        exp = payload.get("exp")
        if exp is None:
            run.passed("expiry", "no expiry")
        elif self._policy.enforce_expiry and now - skew >= exp:
            run.failed("expiry", FailureReason.EXPIRED, f"expired at {int(exp)}, now {int(now)}")
            return False
        else:
            run.passed("expiry")
        return True

    # ------------------------------------------------------------------
    # Credential checks
    # ------------------------------------------------------------------

    @staticmethod
    def _credential_structure_error(payload: dict[str, Any]) -> str | None:
        vc = payload["vc"]
        if not isinstance(payload.get("iss"), str) or not payload["iss"]:
            return "'iss' must be a non-empty string"
        if not isinstance(payload.get("sub"), str) or not payload["sub"]:
            return "'sub' must be a non-empty string"
        for name in ("nbf", "exp"):
            if name in payload and not _is_number(payload[name]):
                return f"'{name}' must be a number"
        if not _contains(vc.get("@context"), CREDENTIALS_CONTEXT):
            return f"'vc.@context' must include {CREDENTIALS_CONTEXT}"
        if not _contains(vc.get("type"), CREDENTIAL_TYPE):
            return f"'vc.type' must include {CREDENTIAL_TYPE}"
        if not isinstance(vc.get("credentialSubject"), dict):
            return "'vc.credentialSubject' must be an object"
        return None

    def _check_credential(self, opened: _Opened, run: _Run, expected_issuer: str | None) -> None:
        payload = opened.payload
        error = self._credential_structure_error(payload)
        if error is not None:
            run.failed("structure", FailureReason.MALFORMED_TOKEN, error)
            return
        run.passed("structure")
        run.subject = payload["sub"]

        if not self._check_binding(
            run,
            "issuer_binding",
            FailureReason.ISSUER_MISMATCH,
            payload["iss"],
            expected_issuer,
            opened.signer_address,
        ):
            return
        self._check_temporal(run, payload)

    # ------------------------------------------------------------------
    # Presentation checks
    # ------------------------------------------------------------------

    @staticmethod
    def _presentation_structure_error(payload: dict[str, Any]) -> str | None:
        vp = payload["vp"]
        if not isinstance(payload.get("iss"), str) or not payload["iss"]:
            return "'iss' must be a non-empty string"
        for name in ("nbf", "exp"):
            if name in payload and not _is_number(payload[name]):
                return f"'{name}' must be a number"
        if "nonce" in payload and not isinstance(payload["nonce"], str):
            return "'nonce' must be a string"
        if not _contains(vp.get("@context"), CREDENTIALS_CONTEXT):
            return f"'vp.@context' must include {CREDENTIALS_CONTEXT}"
        if not _contains(vp.get("type"), PRESENTATION_TYPE):
            return f"'vp.type' must include {PRESENTATION_TYPE}"
        credentials = vp.get("verifiableCredential")
        if not isinstance(credentials, list) or not credentials:
            return "'vp.verifiableCredential' must be a non-empty list"
        if not all(isinstance(item, str) for item in credentials):
            return "'vp.verifiableCredential' must contain compact tokens"
        return None

    def _check_challenge(self, run: _Run, nonce: str | None, challenge: str | None) -> bool:
        if challenge is not None:
            if nonce != challenge:
                run.failed(
                    "challenge",
                    FailureReason.CHALLENGE_MISMATCH,
                    "presentation has no nonce" if nonce is None else "nonce does not match challenge",
                )
                return False
            run.passed("challenge", "nonce matches challenge")
            return True
        if nonce is not None:
            run.failed(
                "challenge",
                FailureReason.CHALLENGE_REQUIRED,
                "presentation is bound to a challenge but none was supplied",
            )
            return False
        if self._policy.require_challenge:
            run.failed(
                "challenge",
                FailureReason.CHALLENGE_REQUIRED,
                "policy requires a challenge-bound presentation",
            )
            return False
        run.passed("challenge", "no challenge")
        return True

    def _check_presentation(
        self,
        opened: _Opened,
        run: _Run,
        challenge: str | None,
        expected_holder: str | None,
    ) -> None:
        payload = opened.payload
        error = self._presentation_structure_error(payload)
        if error is not None:
            run.failed("structure", FailureReason.MALFORMED_TOKEN, error)
            return
        run.passed("structure")
        run.subject = payload["iss"]

        if not self._check_binding(
            run,
            "holder_binding",
            FailureReason.HOLDER_MISMATCH,
            payload["iss"],
            expected_holder,
            opened.signer_address,
        ):
            return
        if not self._check_temporal(run, payload):
            return
        if not self._check_challenge(run, payload.get("nonce"), challenge):
            return

        for index, credential_token in enumerate(payload["vp"]["verifiableCredential"]):
            embedded = self.verify_credential(credential_token)
            run.embedded.append(embedded)
            rule = f"credential[{index}]"
            if not embedded.verified:
                failed = embedded.failed_check
                detail = failed.detail if failed else ""
                run.failed(rule, embedded.failure or FailureReason.MALFORMED_TOKEN, detail)
                return
            run.passed(rule, embedded.subject_or_holder_did or "")

    # ------------------------------------------------------------------
    # Result
    # ------------------------------------------------------------------

    def _finish(self, run: _Run) -> VerificationResult:
        result = run.result()
        if result.verified:
            self._logger.debug(
                "Verified %s token for %s",
                result.kind.value if result.kind else "unknown",
                result.subject_or_holder_did,
            )
        else:
            failed = result.failed_check
            self._logger.debug(
                "Rejected %s token: %s at %s (%s)",
                result.kind.value if result.kind else "unknown",
                result.failure.value if result.failure else "unknown",
                failed.rule if failed else "-",
                failed.detail if failed else "",
            )
        return result
