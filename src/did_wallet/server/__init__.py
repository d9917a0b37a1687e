"""HTTP verifier service for did-wallet.

Provides a lightweight stdlib-based HTTP API that verifies credential and
presentation tokens and DID ownership proofs, without requiring any
additional web framework dependencies.
"""
from __future__ import annotations

from did_wallet.server.app import VerifierHandler, create_server, run_server

__all__ = ["VerifierHandler", "create_server", "run_server"]
