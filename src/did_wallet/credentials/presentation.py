"""Verifiable Presentation building.

A presentation bundles one or more credential tokens under the holder's
signature, optionally bound to a verifier-supplied challenge (written to
the ``nonce`` claim). Presentations are built per sharing event and never
stored.

The builder checks that every input is structurally a credential token but
does not verify credential signatures; that is the verifier's job.
"""
from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from did_wallet.credentials.issuer import (
    CREDENTIALS_CONTEXT,
    PRESENTATION_TYPE,
    Credential,
    utc_now,
)
from did_wallet.errors import EmptyCredentialSetError, MalformedTokenError, NoActiveIdentityError
from did_wallet.keys.signer import Signer
from did_wallet.token import decode_payload

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Presentation:
    """A signed Verifiable Presentation.

    Parameters
    ----------
    holder_did:
        DID of the presenting holder.
    credential_tokens:
        Credential tokens in the order they were presented.
    challenge:
        The challenge the presentation is bound to, if any.
    token:
        The signed compact presentation token.
    """

    holder_did: str
    credential_tokens: tuple[str, ...]
    challenge: str | None
    token: str


def _credential_token(item: Credential | str, index: int) -> str:
    token = item.token if isinstance(item, Credential) else item
    try:
        payload = decode_payload(token)
    except MalformedTokenError as exc:
        raise MalformedTokenError(f"credential[{index}]: {exc.reason}") from exc
    if not isinstance(payload.get("vc"), dict):
        raise MalformedTokenError(f"credential[{index}]: payload has no 'vc' object")
    return token


class PresentationBuilder:
    """Aggregates credential tokens into a signed presentation.

    Parameters
    ----------
    signer:
        Signer used for the presentation token.
    """

    def __init__(self, signer: Signer | None = None) -> None:
        self._signer = signer or Signer()

    def present(
        self,
        credentials: Sequence[Credential | str],
        holder_did: str | None,
        private_key: str | bytes | None,
        challenge: str | None = None,
    ) -> Presentation:
        """Build and sign a presentation.

        Parameters
        ----------
        credentials:
            Credentials (or raw credential tokens) in presentation order.
        holder_did:
            DID of the holder; must be controlled by *private_key*.
        private_key:
            The holder's private key.
        challenge:
            Optional verifier challenge. An empty string counts as absent.

        Returns
        -------
        Presentation

        Raises
        ------
        EmptyCredentialSetError
            If *credentials* is empty.
        NoActiveIdentityError
            If *holder_did* or *private_key* is missing.
        MalformedTokenError
            If any input is not a structurally valid credential token.
        SigningKeyInvalidError
            If the key is malformed or does not control *holder_did*.
        """
        if not holder_did or not private_key:
            raise NoActiveIdentityError("holder DID and private key are required")
        if len(credentials) == 0:
            raise EmptyCredentialSetError()

        tokens = tuple(_credential_token(item, i) for i, item in enumerate(credentials))
        nonce = challenge or None

        payload: dict[str, Any] = {
            "iss": holder_did,
            "nbf": int(utc_now().timestamp()),
            "vp": {
                "@context": [CREDENTIALS_CONTEXT],
                "type": [PRESENTATION_TYPE],
                "verifiableCredential": list(tokens),
            },
        }
        if nonce is not None:
            payload["nonce"] = nonce

        token = self._signer.sign_token(private_key, payload, holder_did)
        logger.info(
            "Built presentation of %d credential(s) for %s (challenge=%s)",
            len(tokens),
            holder_did,
            "yes" if nonce else "no",
        )
        return Presentation(
            holder_did=holder_did,
            credential_tokens=tokens,
            challenge=nonce,
            token=token,
        )
