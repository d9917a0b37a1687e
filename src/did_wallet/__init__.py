"""did-wallet — self-sovereign identity wallet: DIDs, Verifiable Credentials, and Presentations.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
>>> import did_wallet
>>> did_wallet.__version__
'0.1.0'

Quick start
-----------
::

    from did_wallet import (
        # Keys
        KeyVault, Signer,
        # Credentials
        CredentialIssuer, PresentationBuilder, Verifier,
        # Holder workflow
        Wallet, MemoryStore,
    )

    vault = KeyVault()
    pair = vault.generate()
    did = vault.derive_did(pair.address)

    credential = CredentialIssuer().issue({"role": "admin"}, did, did, pair.private_key)
    vp = PresentationBuilder().present([credential], did, pair.private_key, challenge="c1")
    assert Verifier().verify_presentation(vp.token, challenge="c1").verified
"""
from __future__ import annotations

__version__: str = "0.1.0"

# ------------------------------------------------------------------
# Configuration and errors
# ------------------------------------------------------------------
from did_wallet.config import VerifierPolicy, WalletConfig
from did_wallet.errors import (
    EmptyClaimsError,
    EmptyCredentialSetError,
    EntropyUnavailableError,
    MalformedTokenError,
    NoActiveIdentityError,
    RegistrarUnavailableError,
    SigningKeyInvalidError,
    WalletError,
)

# ------------------------------------------------------------------
# Keys
# ------------------------------------------------------------------
from did_wallet.keys import (
    KeyPair,
    KeyVault,
    MessageSignature,
    Signer,
    address_from_did,
    derive_did,
)

# ------------------------------------------------------------------
# Credentials
# ------------------------------------------------------------------
from did_wallet.credentials import (
    CheckOutcome,
    Credential,
    CredentialIssuer,
    FailureReason,
    Presentation,
    PresentationBuilder,
    TokenKind,
    VerificationResult,
    Verifier,
)

# ------------------------------------------------------------------
# Registration
# ------------------------------------------------------------------
from did_wallet.registration import (
    HttpRegistrar,
    OwnershipProof,
    Registrar,
    RegistrationLookup,
    TxReceipt,
    build_ownership_proof,
    verify_ownership_proof,
)

# ------------------------------------------------------------------
# Storage and holder workflow
# ------------------------------------------------------------------
from did_wallet.storage import JsonFileStore, KeyValueStore, MemoryStore, WalletStorage
from did_wallet.wallet import (
    IdentityCreation,
    RegistrationOutcome,
    RegistrationStatus,
    Wallet,
    WalletInfo,
)

__all__ = [
    "__version__",
    # Configuration and errors
    "VerifierPolicy",
    "WalletConfig",
    "WalletError",
    "EntropyUnavailableError",
    "SigningKeyInvalidError",
    "NoActiveIdentityError",
    "EmptyClaimsError",
    "EmptyCredentialSetError",
    "MalformedTokenError",
    "RegistrarUnavailableError",
    # Keys
    "KeyPair",
    "KeyVault",
    "MessageSignature",
    "Signer",
    "address_from_did",
    "derive_did",
    # Credentials
    "CheckOutcome",
    "Credential",
    "CredentialIssuer",
    "FailureReason",
    "Presentation",
    "PresentationBuilder",
    "TokenKind",
    "VerificationResult",
    "Verifier",
    # Registration
    "HttpRegistrar",
    "OwnershipProof",
    "Registrar",
    "RegistrationLookup",
    "TxReceipt",
    "build_ownership_proof",
    "verify_ownership_proof",
    # Storage and holder workflow
    "JsonFileStore",
    "KeyValueStore",
    "MemoryStore",
    "WalletStorage",
    "IdentityCreation",
    "RegistrationOutcome",
    "RegistrationStatus",
    "Wallet",
    "WalletInfo",
]
