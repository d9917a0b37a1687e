"""Configuration objects for did-wallet.

Both classes are frozen dataclasses validated in ``__post_init__`` so a bad
value fails at construction time rather than in the middle of a signing or
verification call.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field

_DID_SEGMENT_PATTERN = re.compile(r"^[A-Za-z0-9._-]+$")

DEFAULT_DID_METHOD = "ethr"
DEFAULT_NETWORK = "mainnet"


@dataclass(frozen=True)
class VerifierPolicy:
    """Policy switches for :class:`~did_wallet.credentials.verifier.Verifier`.

    Parameters
    ----------
    enforce_not_before:
        Reject tokens whose ``nbf`` lies in the future.
    enforce_expiry:
        Reject tokens whose ``exp`` lies in the past. Tokens without ``exp``
        never expire.
    require_challenge:
        Reject presentations that carry no nonce even when the verifier did
        not supply a challenge.
    clock_skew_seconds:
        Tolerance applied to both ``nbf`` and ``exp`` comparisons.
    """

    enforce_not_before: bool = True
    enforce_expiry: bool = True
    require_challenge: bool = False
    clock_skew_seconds: int = 0

    def __post_init__(self) -> None:
        if self.clock_skew_seconds < 0:
            raise ValueError(
                f"clock_skew_seconds must be >= 0, got {self.clock_skew_seconds}"
            )


@dataclass(frozen=True)
class WalletConfig:
    """Configuration for a holder wallet.

    Parameters
    ----------
    did_method:
        DID method segment, e.g. ``"ethr"``.
    network:
        Network segment placed between the method and the address.
    registrar_url:
        Base URL of the registrar back-end, or ``None`` to skip
        registration entirely.
    registrar_timeout:
        Timeout in seconds for a single registrar request.
    verification:
        Policy applied by verifiers created from this config.
    """

    did_method: str = DEFAULT_DID_METHOD
    network: str = DEFAULT_NETWORK
    registrar_url: str | None = None
    registrar_timeout: float = 10.0
    verification: VerifierPolicy = field(default_factory=VerifierPolicy)

    def __post_init__(self) -> None:
        for name in ("did_method", "network"):
            value = getattr(self, name)
            if not _DID_SEGMENT_PATTERN.match(value):
                raise ValueError(f"{name} {value!r} is not a valid DID segment")
        if self.registrar_timeout <= 0:
            raise ValueError(
                f"registrar_timeout must be > 0, got {self.registrar_timeout}"
            )
