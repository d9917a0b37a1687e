"""KeyVault — secp256k1 key generation and DID derivation.

Keys are plain secp256k1 scalars, the same curve Ethereum accounts use, so
every key pair has a 20-byte address (last 20 bytes of the Keccak-256 hash
of the uncompressed public key). The address is what a DID binds to::

    did:<method>:<network>:<address-lowercased>

Derivation is pure: the same address and network always produce the same
DID string, and :func:`address_from_did` reverses it.
"""
from __future__ import annotations

import re
import secrets
from collections.abc import Callable
from dataclasses import dataclass, field

from eth_keys import keys

from did_wallet.config import DEFAULT_DID_METHOD, DEFAULT_NETWORK
from did_wallet.errors import EntropyUnavailableError, SigningKeyInvalidError

_ADDRESS_PATTERN = re.compile(r"^0x[0-9a-fA-F]{40}$")
_PRIVATE_KEY_HEX_PATTERN = re.compile(r"^(0x)?[0-9a-fA-F]{64}$")

# Order of the secp256k1 group; valid private scalars lie in [1, n - 1].
_SECP256K1_N = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141

_MAX_DRAWS = 8

RandomSource = Callable[[int], bytes]


# ---------------------------------------------------------------------------
# KeyPair
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class KeyPair:
    """A secp256k1 key pair owned by the holder device.

    Parameters
    ----------
    private_key:
        ``0x``-prefixed hex of the 32-byte secret scalar. Excluded from
        ``repr`` so it never lands in logs or tracebacks.
    public_key:
        ``0x04``-prefixed hex of the 65-byte uncompressed public point.
    address:
        EIP-55 checksum address derived from the public key.
    """

    private_key: str = field(repr=False)
    public_key: str
    address: str

    def public_info(self) -> dict[str, str]:
        """Return the shareable half of the key pair."""
        return {"public_key": self.public_key, "address": self.address}


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


def load_private_key(private_key: str | bytes) -> keys.PrivateKey:
    """Parse a private key given as hex (with or without ``0x``) or raw bytes.

    Raises
    ------
    SigningKeyInvalidError
        If the value is not a 32-byte scalar in the valid curve range.
    """
    if isinstance(private_key, str):
        if not _PRIVATE_KEY_HEX_PATTERN.match(private_key):
            raise SigningKeyInvalidError("expected 32 bytes of hex")
        raw = bytes.fromhex(private_key[2:] if private_key.startswith("0x") else private_key)
    elif isinstance(private_key, (bytes, bytearray)):
        raw = bytes(private_key)
    else:
        raise SigningKeyInvalidError(f"unsupported key type {type(private_key).__name__}")

    if len(raw) != 32:
        raise SigningKeyInvalidError(f"expected 32 bytes, got {len(raw)}")
    if not 0 < int.from_bytes(raw, "big") < _SECP256K1_N:
        raise SigningKeyInvalidError("scalar outside the secp256k1 group order")
    try:
        return keys.PrivateKey(raw)
    except Exception as exc:
        raise SigningKeyInvalidError(str(exc)) from exc


def derive_did(
    address: str,
    network: str = DEFAULT_NETWORK,
    method: str = DEFAULT_DID_METHOD,
) -> str:
    """Derive the canonical DID for *address*.

    Parameters
    ----------
    address:
        ``0x``-prefixed 20-byte hex address, any letter case.
    network:
        Network segment of the DID.
    method:
        DID method segment.

    Returns
    -------
    str
        ``did:<method>:<network>:<address-lowercased>``.

    Raises
    ------
    ValueError
        If *address* is not a well-formed address.
    """
    if not _ADDRESS_PATTERN.match(address):
        raise ValueError(f"Not a valid address: {address!r}")
    return f"did:{method}:{network}:{address.lower()}"


def address_from_did(did: str) -> str:
    """Extract the lower-cased address a DID is bound to.

    Accepts both ``did:<method>:<network>:<address>`` and the shorter
    ``did:<method>:<address>`` form. A trailing ``#fragment`` is ignored.

    Raises
    ------
    ValueError
        If the DID does not end in a well-formed address.
    """
    base = did.split("#", 1)[0]
    parts = base.split(":")
    if len(parts) < 3 or parts[0] != "did":
        raise ValueError(f"Not a valid DID: {did!r}")
    address = parts[-1]
    if not _ADDRESS_PATTERN.match(address):
        raise ValueError(f"DID {did!r} is not bound to an address")
    return address.lower()


def _key_pair_from(private_key: keys.PrivateKey) -> KeyPair:
    public_key = private_key.public_key
    return KeyPair(
        private_key=private_key.to_hex(),
        public_key="0x04" + public_key.to_bytes().hex(),
        address=public_key.to_checksum_address(),
    )


# ---------------------------------------------------------------------------
# KeyVault
# ---------------------------------------------------------------------------


class KeyVault:
    """Generates key pairs and derives DIDs for a single DID method/network.

    The vault keeps no key material between calls; persistence belongs to
    the caller's storage.

    Parameters
    ----------
    network:
        Network segment used by :meth:`derive_did`.
    method:
        DID method segment used by :meth:`derive_did`.
    random_source:
        Callable returning *n* cryptographically secure random bytes.
        Defaults to :func:`secrets.token_bytes`.

    Example
    -------
    ::

        vault = KeyVault(network="testnet")
        pair = vault.generate()
        did = vault.derive_did(pair.address)
    """

    def __init__(
        self,
        network: str = DEFAULT_NETWORK,
        method: str = DEFAULT_DID_METHOD,
        random_source: RandomSource | None = None,
    ) -> None:
        self._network = network
        self._method = method
        self._random_source = random_source or secrets.token_bytes

    @property
    def network(self) -> str:
        return self._network

    @property
    def method(self) -> str:
        return self._method

    def generate(self) -> KeyPair:
        """Generate a fresh key pair from 32 bytes of secure randomness.

        Raises
        ------
        EntropyUnavailableError
            If the random source fails or returns fewer than 32 bytes.
        """
        for _ in range(_MAX_DRAWS):
            try:
                raw = self._random_source(32)
            except (OSError, NotImplementedError) as exc:
                raise EntropyUnavailableError(str(exc)) from exc
            if raw is None or len(raw) != 32:
                raise EntropyUnavailableError(
                    f"expected 32 bytes, got {0 if raw is None else len(raw)}"
                )
            if 0 < int.from_bytes(raw, "big") < _SECP256K1_N:
                return _key_pair_from(keys.PrivateKey(bytes(raw)))
        raise EntropyUnavailableError(
            f"no valid scalar after {_MAX_DRAWS} draws; random source is not uniform"
        )

    def from_private_key(self, private_key: str | bytes) -> KeyPair:
        """Rebuild the full key pair from a stored private key."""
        return _key_pair_from(load_private_key(private_key))

    def derive_did(self, address: str, network: str | None = None) -> str:
        """Derive the DID for *address* on this vault's (or the given) network."""
        return derive_did(address, network or self._network, self._method)
