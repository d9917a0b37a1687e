"""did_wallet.registration — ownership proofs and registrar adapters."""
from __future__ import annotations

from did_wallet.registration.proof import (
    OWNERSHIP_MESSAGE_PREFIX,
    OwnershipProof,
    build_ownership_proof,
    ownership_message,
    verify_ownership,
    verify_ownership_proof,
)
from did_wallet.registration.registrar import (
    HttpRegistrar,
    Registrar,
    RegistrationLookup,
    TxReceipt,
)

__all__ = [
    "OWNERSHIP_MESSAGE_PREFIX",
    "HttpRegistrar",
    "OwnershipProof",
    "Registrar",
    "RegistrationLookup",
    "TxReceipt",
    "build_ownership_proof",
    "ownership_message",
    "verify_ownership",
    "verify_ownership_proof",
]
