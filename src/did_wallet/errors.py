"""Exception hierarchy for did-wallet.

Every error raised by signing, issuance, presentation, or registration is a
:class:`WalletError`. Verification never raises these for invalid tokens —
see :class:`~did_wallet.credentials.verifier.FailureReason` instead.
"""
from __future__ import annotations


class WalletError(Exception):
    """Base class for all did-wallet errors."""


class EntropyUnavailableError(WalletError):
    """Raised when the random source cannot supply key material."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Secure random source unavailable: {reason}")


class SigningKeyInvalidError(WalletError):
    """Raised when a private key is malformed or does not control the DID."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Invalid signing key: {reason}")


class NoActiveIdentityError(WalletError):
    """Raised when an operation needs a DID and key but none is available."""

    def __init__(self, detail: str = "no DID or private key available") -> None:
        self.detail = detail
        super().__init__(f"No active identity: {detail}")


class EmptyClaimsError(WalletError):
    """Raised when a credential is requested with an empty claims map."""

    def __init__(self) -> None:
        super().__init__("Credential claims must contain at least one entry.")


class EmptyCredentialSetError(WalletError):
    """Raised when a presentation is requested with zero credentials."""

    def __init__(self) -> None:
        super().__init__("A presentation requires at least one credential.")


class MalformedTokenError(WalletError):
    """Raised when a compact token cannot be split or decoded."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Malformed token: {reason}")


class RegistrarUnavailableError(WalletError):
    """Raised when the external registrar cannot complete a request.

    Parameters
    ----------
    reason:
        Human-readable description of the failure.
    status_code:
        HTTP status returned by the registrar, or ``None`` for transport
        failures where no response was received.
    """

    def __init__(self, reason: str, status_code: int | None = None) -> None:
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"Registrar unavailable: {reason}")
