#!/usr/bin/env python3
"""Example: Quickstart

Demonstrates the holder workflow: create an identity, issue a credential,
present it against a verifier challenge, and verify the presentation.

Usage:
    python examples/01_quickstart.py

Requirements:
    pip install did-wallet
"""
from __future__ import annotations

import secrets

import did_wallet
from did_wallet import MemoryStore, Verifier, Wallet


def main() -> None:
    print(f"did-wallet version: {did_wallet.__version__}")

    # Step 1: Create an identity (no registrar configured, so nothing is anchored)
    wallet = Wallet(MemoryStore())
    created = wallet.create_identity()
    print(f"DID created: {created.did}")

    # Step 2: Issue a self-signed credential
    credential = wallet.issue_credential({"role": "admin"})
    print(f"Credential issued: {credential.id}")

    # Step 3: The verifier sends a challenge; the holder presents against it
    challenge = secrets.token_urlsafe(16)
    presentation = wallet.create_presentation([credential.id], challenge=challenge)
    print(f"Presentation token: {presentation.token[:40]}...")

    # Step 4: Verify with the right and the wrong challenge
    verifier = Verifier()
    result = verifier.verify_presentation(presentation.token, challenge=challenge)
    print(f"Verified with issued challenge: {result.verified}")

    replay = verifier.verify_presentation(presentation.token, challenge="another-challenge")
    print(f"Verified with a different challenge: {replay.verified} ({replay.failure.value})")

    print("\nQuickstart complete.")


if __name__ == "__main__":
    main()
