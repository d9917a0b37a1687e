"""did_wallet.storage — storage backends and the wallet record layout."""
from __future__ import annotations

from did_wallet.storage.store import JsonFileStore, KeyValueStore, MemoryStore
from did_wallet.storage.wallet_storage import WalletStorage

__all__ = ["JsonFileStore", "KeyValueStore", "MemoryStore", "WalletStorage"]
