"""Registrar adapters.

A registrar anchors a DID on a ledger after checking the holder's
:class:`~did_wallet.registration.proof.OwnershipProof`. The wallet only
depends on the :class:`Registrar` protocol; :class:`HttpRegistrar` talks to
a back-end exposing::

    POST /register-on-chain            {did, publicKey, address, signature, message}
                                       -> {txHash, blockNumber}
    GET  /check-registration/{address} -> {registered, blockNumber?, ...}

No retries are attempted. Every transport error, non-2xx status, or
unexpected response body becomes a :class:`RegistrarUnavailableError`.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

import httpx

from did_wallet.errors import RegistrarUnavailableError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TxReceipt:
    """Ledger receipt for a submitted registration."""

    tx_hash: str
    block_number: int | None = None


@runtime_checkable
class Registrar(Protocol):
    """Anything that can anchor a DID registration."""

    def submit_registration(
        self,
        did: str,
        public_key: str,
        address: str,
        signature: str,
        message: str,
    ) -> TxReceipt:
        ...


@runtime_checkable
class RegistrationLookup(Protocol):
    """A registrar that can also report whether an address is registered."""

    def check_registration(self, address: str) -> dict[str, Any]:
        ...


class HttpRegistrar:
    """Registrar backed by an HTTP service.

    Parameters
    ----------
    base_url:
        Root URL of the registrar service.
    client:
        Optional pre-configured :class:`httpx.Client`. When omitted, a client
        bound to *base_url* is created and owned by this adapter.
    timeout:
        Per-request timeout in seconds, used for an owned client.
    logger:
        Logger for registration events.
    """

    def __init__(
        self,
        base_url: str,
        client: httpx.Client | None = None,
        timeout: float = 10.0,
        logger: logging.Logger | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.Client(base_url=self._base_url, timeout=timeout)
        self._logger = logger or logging.getLogger(__name__)

    @property
    def base_url(self) -> str:
        return self._base_url

    def close(self) -> None:
        """Close the underlying client if this adapter created it."""
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "HttpRegistrar":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        url = f"{self._base_url}{path}"
        try:
            response = self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise RegistrarUnavailableError(f"{method} {path} failed: {exc}") from exc

        if response.is_error:
            detail = response.text[:200]
            try:
                body = response.json()
                if isinstance(body, dict) and body.get("error"):
                    detail = str(body["error"])
            except ValueError:
                pass
            raise RegistrarUnavailableError(
                f"{method} {path} returned {response.status_code}: {detail}",
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise RegistrarUnavailableError(
                f"{method} {path} returned a non-JSON body",
                status_code=response.status_code,
            ) from exc
        if not isinstance(body, dict):
            raise RegistrarUnavailableError(
                f"{method} {path} returned {type(body).__name__}, expected an object",
                status_code=response.status_code,
            )
        return body

    def submit_registration(
        self,
        did: str,
        public_key: str,
        address: str,
        signature: str,
        message: str,
    ) -> TxReceipt:
        """Submit a signed ownership proof for anchoring.

        Returns
        -------
        TxReceipt

        Raises
        ------
        RegistrarUnavailableError
            On any transport, HTTP, or response-format failure.
        """
        self._logger.info("Submitting registration for %s to %s", did, self._base_url)
        body = self._request(
            "POST",
            "/register-on-chain",
            json={
                "did": did,
                "publicKey": public_key,
                "address": address,
                "signature": signature,
                "message": message,
            },
        )
        tx_hash = body.get("txHash")
        if not isinstance(tx_hash, str) or not tx_hash:
            raise RegistrarUnavailableError("registration response has no txHash")
        block_number = body.get("blockNumber")
        receipt = TxReceipt(
            tx_hash=tx_hash,
            block_number=int(block_number) if isinstance(block_number, int) else None,
        )
        self._logger.info("Registered %s in transaction %s", did, receipt.tx_hash)
        return receipt

    def check_registration(self, address: str) -> dict[str, Any]:
        """Look up whether *address* has been registered.

        Returns
        -------
        dict
            The registrar's response; always carries a boolean
            ``"registered"`` key.

        Raises
        ------
        RegistrarUnavailableError
            On any transport, HTTP, or response-format failure.
        """
        body = self._request("GET", f"/check-registration/{address}")
        body["registered"] = bool(body.get("registered", False))
        self._logger.debug("Registration status for %s: %s", address, body["registered"])
        return body
