"""Wallet — the holder workflow over keys, credentials, and storage.

Ties the core components together the way a holder app uses them:

- :meth:`Wallet.create_identity` generates a key pair, derives the DID,
  persists both, and then attempts registration. A registration failure is
  reported in the returned :class:`RegistrationOutcome`; the local identity
  is kept and :meth:`Wallet.register` can retry later.
- :meth:`Wallet.issue_credential` self-issues a credential and stores it.
- :meth:`Wallet.create_presentation` bundles stored credentials for one
  sharing event. Presentations are never stored.

Example
-------
::

    wallet = Wallet(MemoryStore())
    created = wallet.create_identity()
    credential = wallet.issue_credential({"role": "admin"})
    vp = wallet.create_presentation([credential.id], challenge="c1")
    assert wallet.verifier().verify_presentation(vp.token, "c1").verified
"""
from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime

from did_wallet.config import WalletConfig
from did_wallet.credentials.issuer import Credential, CredentialIssuer
from did_wallet.credentials.presentation import Presentation, PresentationBuilder
from did_wallet.credentials.verifier import Verifier
from did_wallet.errors import NoActiveIdentityError, RegistrarUnavailableError
from did_wallet.keys.signer import MessageSignature, Signer
from did_wallet.keys.vault import KeyVault
from did_wallet.registration.proof import build_ownership_proof
from did_wallet.registration.registrar import (
    HttpRegistrar,
    Registrar,
    RegistrationLookup,
    TxReceipt,
)
from did_wallet.storage.store import KeyValueStore
from did_wallet.storage.wallet_storage import WalletStorage

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Result types
# ------------------------------------------------------------------


@dataclass(frozen=True)
class RegistrationOutcome:
    """Result of a registration attempt.

    Parameters
    ----------
    attempted:
        False when no registrar is configured.
    registered:
        True when the registrar accepted the registration.
    receipt:
        The ledger receipt, when registered.
    error:
        Why registration did not happen, when it did not.
    """

    attempted: bool
    registered: bool
    receipt: TxReceipt | None = None
    error: str | None = None


@dataclass(frozen=True)
class RegistrationStatus:
    """Result of :meth:`Wallet.registration_status`.

    ``registered`` is ``None`` when the registrar could not be asked;
    ``error`` then says why.
    """

    registered: bool | None
    error: str | None = None


@dataclass(frozen=True)
class WalletInfo:
    """Public identity details; never includes the private key."""

    did: str
    address: str
    public_key: str

    def to_dict(self) -> dict[str, str]:
        return {"did": self.did, "address": self.address, "publicKey": self.public_key}


@dataclass(frozen=True)
class IdentityCreation:
    """Result of :meth:`Wallet.create_identity`."""

    info: WalletInfo
    registration: RegistrationOutcome

    @property
    def did(self) -> str:
        return self.info.did


# ------------------------------------------------------------------
# Wallet
# ------------------------------------------------------------------


class Wallet:
    """A holder wallet bound to one storage backend.

    Parameters
    ----------
    store:
        Backing key-value store.
    registrar:
        Registrar used for DID registration. When omitted and
        ``config.registrar_url`` is set, an :class:`HttpRegistrar` is
        created for that URL.
    config:
        Wallet configuration. Defaults to :class:`WalletConfig`.
    logger:
        Logger for lifecycle events. Defaults to this module's logger.
    vault:
        Key vault; defaults to one built from *config*.
    """

    def __init__(
        self,
        store: KeyValueStore,
        registrar: Registrar | None = None,
        config: WalletConfig | None = None,
        logger: logging.Logger | None = None,
        vault: KeyVault | None = None,
    ) -> None:
        self._config = config or WalletConfig()
        self._storage = WalletStorage(store)
        self._logger = logger or logging.getLogger(__name__)
        self._vault = vault or KeyVault(
            network=self._config.network, method=self._config.did_method
        )
        self._signer = Signer()
        self._issuer = CredentialIssuer(self._signer)
        self._builder = PresentationBuilder(self._signer)
        self._owns_registrar = False
        if registrar is None and self._config.registrar_url:
            registrar = HttpRegistrar(
                self._config.registrar_url,
                timeout=self._config.registrar_timeout,
                logger=self._logger,
            )
            self._owns_registrar = True
        self._registrar = registrar

    @property
    def config(self) -> WalletConfig:
        return self._config

    @property
    def storage(self) -> WalletStorage:
        return self._storage

    @property
    def registrar(self) -> Registrar | None:
        return self._registrar

    def close(self) -> None:
        """Close the registrar client, if this wallet created it."""
        if self._owns_registrar and isinstance(self._registrar, HttpRegistrar):
            self._registrar.close()

    def __enter__(self) -> "Wallet":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    def has_identity(self) -> bool:
        """Return True if an identity has been created and saved."""
        return self._storage.is_initialized() and self._storage.did() is not None

    def info(self) -> WalletInfo:
        """Return the public identity details.

        Raises
        ------
        NoActiveIdentityError
            If no identity exists.
        """
        did = self._storage.did()
        address = self._storage.address()
        public_key = self._storage.public_key()
        if not did or not address or not public_key:
            raise NoActiveIdentityError()
        return WalletInfo(did=did, address=address, public_key=public_key)

    def create_identity(self) -> IdentityCreation:
        """Generate, persist, and (best-effort) register a new identity.

        Any existing identity in the store is replaced.

        Raises
        ------
        EntropyUnavailableError
            If no key material could be generated. Nothing is persisted.
        """
        key_pair = self._vault.generate()
        did = self._vault.derive_did(key_pair.address)
        self._storage.save_identity(key_pair, did)
        self._logger.info("Created identity %s", did)

        outcome = self._register(did, key_pair.private_key)
        if outcome.attempted and not outcome.registered:
            self._logger.warning(
                "Identity %s created locally but registration failed: %s", did, outcome.error
            )
        return IdentityCreation(
            info=WalletInfo(did=did, address=key_pair.address, public_key=key_pair.public_key),
            registration=outcome,
        )

    def register(self) -> RegistrationOutcome:
        """Retry registration of the stored identity.

        Raises
        ------
        NoActiveIdentityError
            If no identity exists.
        """
        did, private_key = self._active_identity()
        return self._register(did, private_key)

    def _register(self, did: str, private_key: str) -> RegistrationOutcome:
        if self._registrar is None:
            return RegistrationOutcome(
                attempted=False, registered=False, error="no registrar configured"
            )
        proof = build_ownership_proof(did, private_key, self._signer)
        try:
            receipt = self._registrar.submit_registration(
                proof.did, proof.public_key, proof.address, proof.signature, proof.message
            )
        except RegistrarUnavailableError as exc:
            return RegistrationOutcome(attempted=True, registered=False, error=exc.reason)
        return RegistrationOutcome(attempted=True, registered=True, receipt=receipt)

    def registration_status(self) -> RegistrationStatus:
        """Ask the registrar whether the stored identity is registered.

        Raises
        ------
        NoActiveIdentityError
            If no identity exists.
        """
        address = self.info().address
        if not isinstance(self._registrar, RegistrationLookup):
            return RegistrationStatus(registered=None, error="no registrar configured")
        try:
            body = self._registrar.check_registration(address)
        except RegistrarUnavailableError as exc:
            return RegistrationStatus(registered=None, error=exc.reason)
        return RegistrationStatus(registered=bool(body["registered"]))

    def sign_message(self, message: str | bytes) -> MessageSignature:
        """Sign arbitrary data with the holder key as a personal message."""
        _, private_key = self._active_identity()
        signature = self._signer.sign_bytes(private_key, message)
        self._logger.info("Signed message with %s", signature.address)
        return signature

    def clear(self) -> None:
        """Delete the identity and every stored credential."""
        self._storage.clear()
        self._logger.info("Wallet cleared")

    def _active_identity(self) -> tuple[str, str]:
        did = self._storage.did()
        private_key = self._storage.private_key()
        if not did or not private_key:
            raise NoActiveIdentityError()
        return did, private_key

    # ------------------------------------------------------------------
    # Credentials
    # ------------------------------------------------------------------

    def issue_credential(
        self,
        claims: Mapping[str, str],
        subject_did: str | None = None,
        expires_at: datetime | None = None,
    ) -> Credential:
        """Issue a credential signed by the holder and store it.

        Parameters
        ----------
        claims:
            Non-empty ordered claims map.
        subject_did:
            Subject of the credential; defaults to the holder's own DID.
        expires_at:
            Optional timezone-aware expiry.

        Raises
        ------
        NoActiveIdentityError
            If no identity exists.
        EmptyClaimsError
            If *claims* is empty.
        """
        did, private_key = self._active_identity()
        credential = self._issuer.issue(
            claims,
            issuer_did=did,
            subject_did=subject_did or did,
            private_key=private_key,
            expires_at=expires_at,
        )
        self._storage.add_credential(credential)
        return credential

    def list_credentials(self) -> list[Credential]:
        """Return stored credentials in issuance order."""
        return self._storage.load_credentials()

    def get_credential(self, credential_id: str) -> Credential | None:
        for credential in self._storage.load_credentials():
            if credential.id == credential_id:
                return credential
        return None

    def delete_credential(self, credential_id: str) -> bool:
        """Delete a stored credential. Returns False if it did not exist."""
        removed = self._storage.remove_credential(credential_id)
        if removed:
            self._logger.info("Deleted credential %s", credential_id)
        return removed

    # ------------------------------------------------------------------
    # Presentations and verification
    # ------------------------------------------------------------------

    def create_presentation(
        self,
        credential_ids: Sequence[str] | None = None,
        challenge: str | None = None,
    ) -> Presentation:
        """Bundle stored credentials into a signed presentation.

        Parameters
        ----------
        credential_ids:
            Credentials to include, in presentation order. ``None`` selects
            every stored credential.
        challenge:
            Optional verifier challenge.

        Raises
        ------
        KeyError
            If an id does not name a stored credential.
        EmptyCredentialSetError
            If the selection is empty.
        NoActiveIdentityError
            If no identity exists.
        """
        did, private_key = self._active_identity()
        stored = self._storage.load_credentials()
        if credential_ids is None:
            selected = stored
        else:
            by_id = {credential.id: credential for credential in stored}
            selected = []
            for credential_id in credential_ids:
                if credential_id not in by_id:
                    raise KeyError(f"No stored credential with id={credential_id!r}")
                selected.append(by_id[credential_id])
        return self._builder.present(selected, did, private_key, challenge=challenge)

    def verifier(self) -> Verifier:
        """Return a verifier configured with this wallet's policy."""
        return Verifier(policy=self._config.verification, logger=self._logger)
