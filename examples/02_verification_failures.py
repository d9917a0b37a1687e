#!/usr/bin/env python3
"""Example: Verification Failures

Shows how the verifier reports tampered, foreign-signed, and expired
tokens, and how the check trail explains each rejection.

Usage:
    python examples/02_verification_failures.py

Requirements:
    pip install did-wallet
"""
from __future__ import annotations

import datetime
import time

import did_wallet
from did_wallet import CredentialIssuer, KeyVault, PresentationBuilder, Verifier
from did_wallet.token import b64url_decode, b64url_encode


def _tamper(token: str) -> str:
    header, payload, signature = token.split(".")
    forged = b64url_decode(payload).replace(b'"admin"', b'"owner"')
    return f"{header}.{b64url_encode(forged)}.{signature}"


def main() -> None:
    print(f"did-wallet version: {did_wallet.__version__}")

    vault = KeyVault(network="sepolia")
    holder = vault.generate()
    holder_did = vault.derive_did(holder.address)
    issuer = CredentialIssuer()
    verifier = Verifier()

    # Step 1: A valid credential and its check trail
    credential = issuer.issue({"role": "admin"}, holder_did, holder_did, holder.private_key)
    result = verifier.verify_credential(credential.token)
    print(f"Valid credential verified: {result.verified}")
    for outcome in result.reasons:
        print(f"  {'PASS' if outcome.passed else 'FAIL'}  {outcome.rule}")

    # Step 2: Editing a claim breaks the signature
    tampered = verifier.verify_credential(_tamper(credential.token))
    print(f"Tampered credential: {tampered.failure.value}")

    # Step 3: A presentation that embeds the tampered credential
    vp = PresentationBuilder().present(
        [credential.token, _tamper(credential.token)], holder_did, holder.private_key
    )
    vp_result = verifier.verify_presentation(vp.token)
    failed = vp_result.failed_check
    print(f"Presentation: {vp_result.failure.value} at {failed.rule if failed else '-'}")

    # Step 4: An expired credential
    expires = datetime.datetime.now(datetime.timezone.utc) + datetime.timedelta(seconds=30)
    short_lived = issuer.issue(
        {"pass": "day"}, holder_did, holder_did, holder.private_key, expires_at=expires
    )
    tomorrow = Verifier(clock=lambda: time.time() + 86400)
    print(f"Checked a day later: {tomorrow.verify_credential(short_lived.token).failure.value}")


if __name__ == "__main__":
    main()
