"""WalletStorage — maps wallet records onto a :class:`KeyValueStore`.

Storage keys
------------
``ssi_private_key``, ``ssi_public_key``, ``ssi_address``, ``ssi_did``
    The holder identity.
``ssi_wallet_initialized``
    ``"true"`` once an identity has been saved.
``ssi_credentials``
    JSON array of stored credentials, in issuance order.
"""
from __future__ import annotations

import json
import logging

from did_wallet.credentials.issuer import Credential
from did_wallet.keys.vault import KeyPair
from did_wallet.storage.store import KeyValueStore

logger = logging.getLogger(__name__)

PRIVATE_KEY = "ssi_private_key"
PUBLIC_KEY = "ssi_public_key"
ADDRESS = "ssi_address"
DID = "ssi_did"
CREDENTIALS = "ssi_credentials"
WALLET_INITIALIZED = "ssi_wallet_initialized"

ALL_KEYS = (PRIVATE_KEY, PUBLIC_KEY, ADDRESS, DID, CREDENTIALS, WALLET_INITIALIZED)


class WalletStorage:
    """Typed access to the wallet's persisted records.

    Parameters
    ----------
    store:
        The backing key-value store.
    """

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    def save_identity(self, key_pair: KeyPair, did: str) -> None:
        """Persist the key pair and DID and mark the wallet initialised."""
        self._store.save(PRIVATE_KEY, key_pair.private_key)
        self._store.save(PUBLIC_KEY, key_pair.public_key)
        self._store.save(ADDRESS, key_pair.address)
        self._store.save(DID, did)
        self._store.save(WALLET_INITIALIZED, "true")
        logger.debug("Saved identity %s", did)

    def private_key(self) -> str | None:
        return self._store.get(PRIVATE_KEY)

    def public_key(self) -> str | None:
        return self._store.get(PUBLIC_KEY)

    def address(self) -> str | None:
        return self._store.get(ADDRESS)

    def did(self) -> str | None:
        return self._store.get(DID)

    def is_initialized(self) -> bool:
        return self._store.get(WALLET_INITIALIZED) == "true"

    # ------------------------------------------------------------------
    # Credentials
    # ------------------------------------------------------------------

    def load_credentials(self) -> list[Credential]:
        """Return stored credentials in the order they were added."""
        raw = self._store.get(CREDENTIALS)
        if not raw:
            return []
        entries = json.loads(raw)
        if not isinstance(entries, list):
            raise ValueError(f"{CREDENTIALS} does not hold a JSON array")
        return [Credential.from_dict(entry) for entry in entries]

    def save_credentials(self, credentials: list[Credential]) -> None:
        self._store.save(CREDENTIALS, json.dumps([c.to_dict() for c in credentials]))

    def add_credential(self, credential: Credential) -> None:
        credentials = self.load_credentials()
        credentials.append(credential)
        self.save_credentials(credentials)

    def remove_credential(self, credential_id: str) -> bool:
        """Remove the credential with *credential_id*.

        Returns
        -------
        bool
            True if a credential was removed.
        """
        credentials = self.load_credentials()
        remaining = [c for c in credentials if c.id != credential_id]
        if len(remaining) == len(credentials):
            return False
        self.save_credentials(remaining)
        return True

    # ------------------------------------------------------------------
    # Reset
    # ------------------------------------------------------------------

    def clear(self) -> None:
        """Delete every wallet record, identity and credentials alike."""
        for key in ALL_KEYS:
            self._store.delete(key)
        logger.info("Wallet storage cleared")
