"""
Persistent Storage Module.

Provides SQLite-backed persistence for:
- Ledger relations (namespaced KV store)
- The ordered event log
"""

from nftledger.core.storage.sqlite_adapter import SQLiteAdapter
from nftledger.core.storage.storage_manager import StorageManager, SQLiteStore

__all__ = ["SQLiteAdapter", "StorageManager", "SQLiteStore"]
