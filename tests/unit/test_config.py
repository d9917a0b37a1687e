"""Unit tests for did_wallet.config — WalletConfig and VerifierPolicy."""
from __future__ import annotations

import pytest

from did_wallet.config import DEFAULT_DID_METHOD, DEFAULT_NETWORK, VerifierPolicy, WalletConfig


class TestVerifierPolicy:
    def test_defaults(self) -> None:
        policy = VerifierPolicy()
        assert policy.enforce_not_before is True
        assert policy.enforce_expiry is True
        assert policy.require_challenge is False
        assert policy.clock_skew_seconds == 0

    def test_negative_skew_rejected(self) -> None:
        with pytest.raises(ValueError, match="clock_skew_seconds"):
            VerifierPolicy(clock_skew_seconds=-5)

    def test_is_frozen(self) -> None:
        with pytest.raises(Exception):
            VerifierPolicy().require_challenge = True  # type: ignore[misc]


class TestWalletConfig:
    def test_defaults(self) -> None:
        config = WalletConfig()
        assert config.did_method == DEFAULT_DID_METHOD == "ethr"
        assert config.network == DEFAULT_NETWORK == "mainnet"
        assert config.registrar_url is None
        assert config.verification == VerifierPolicy()

    @pytest.mark.parametrize("network", ["", "main net", "a:b"])
    def test_invalid_network_rejected(self, network: str) -> None:
        with pytest.raises(ValueError, match="network"):
            WalletConfig(network=network)

    def test_invalid_method_rejected(self) -> None:
        with pytest.raises(ValueError, match="did_method"):
            WalletConfig(did_method="eth r")

    def test_non_positive_timeout_rejected(self) -> None:
        with pytest.raises(ValueError, match="registrar_timeout"):
            WalletConfig(registrar_timeout=0)
