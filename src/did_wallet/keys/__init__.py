"""did_wallet.keys — key pairs, DID derivation, and recoverable signing."""
from __future__ import annotations

from did_wallet.keys.signer import (
    MessageSignature,
    Signer,
    recover_message_signer,
    recover_token_signer,
)
from did_wallet.keys.vault import (
    KeyPair,
    KeyVault,
    address_from_did,
    derive_did,
    load_private_key,
)

__all__ = [
    "KeyPair",
    "KeyVault",
    "MessageSignature",
    "Signer",
    "address_from_did",
    "derive_did",
    "load_private_key",
    "recover_message_signer",
    "recover_token_signer",
]
