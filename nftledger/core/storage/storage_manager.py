import json
from pathlib import Path
from typing import Any, Dict, Iterator, List, Tuple

from nftledger.core.state.events import LedgerEvent, event_from_dict
from nftledger.core.state.store import DEFAULT_NAMESPACE, DELETED, Key, StateStore
from nftledger.core.storage.sqlite_adapter import SQLiteAdapter
from nftledger.utils.logger import get_logger

logger = get_logger("storage.manager")


class StorageManager:
    """
    Manages the database file shared by one or more collections.

    Handles:
    - Key encoding (namespace + JSON key tuple)
    - Value and event serialization
    - Handing out namespaced SQLiteStore views
    """

    def __init__(self, data_dir: Path, db_name: str = "ledger.db"):
        self.data_dir = Path(data_dir)
        self.db_path = self.data_dir / db_name
        self.adapter = SQLiteAdapter(self.db_path)

        logger.info(f"StorageManager initialized at {self.db_path}")

    # =========================================================================
    # Encoding
    # =========================================================================

    @staticmethod
    def encode_key(namespace: str, key: Key) -> str:
        return f"{namespace}:{json.dumps(list(key), separators=(',', ':'))}"

    @staticmethod
    def decode_key(raw: str) -> Key:
        _, _, encoded = raw.partition(":")
        return tuple(json.loads(encoded))

    # =========================================================================
    # Namespaced Access
    # =========================================================================

    def store(self, namespace: str = DEFAULT_NAMESPACE) -> "SQLiteStore":
        """Get a state store for one namespace of this database."""
        return SQLiteStore(self, namespace)

    def load_value(self, namespace: str, key: Key) -> Any:
        raw = self.adapter.get(self.encode_key(namespace, key))
        return json.loads(raw) if raw is not None else None

    def load_items(self, namespace: str) -> List[Tuple[Key, Any]]:
        return [
            (self.decode_key(raw_key), json.loads(raw_value))
            for raw_key, raw_value in self.adapter.get_bucket(namespace)
        ]

    def load_events(self, namespace: str) -> List[LedgerEvent]:
        return [event_from_dict(json.loads(payload)) for _, payload in self.adapter.get_events(namespace)]

    def persist_batch(
        self,
        namespace: str,
        writes: Dict[Key, Any],
        events: List[LedgerEvent],
    ):
        """Atomically persist the writes and events of one ledger call."""
        puts = []
        deletes = []
        for key, value in writes.items():
            encoded = self.encode_key(namespace, key)
            if value is DELETED:
                deletes.append(encoded)
            else:
                puts.append((encoded, json.dumps(value)))

        self.adapter.apply_batch(
            namespace,
            puts,
            deletes,
            [(event.name, json.dumps(event.to_dict())) for event in events],
        )
        logger.debug(f"Persisted {len(puts)} puts, {len(deletes)} deletes, {len(events)} events in {namespace!r}")

    def close(self) -> None:
        self.adapter.close()


class SQLiteStore(StateStore):
    """
    StateStore persisted in SQLite.

    The keys of one namespace live in their own bucket, so several
    collections can share a database file.
    """

    def __init__(self, manager: StorageManager, namespace: str = DEFAULT_NAMESPACE):
        super().__init__(namespace)
        self.manager = manager

    @classmethod
    def open(cls, data_dir: Path, db_name: str = "ledger.db", namespace: str = DEFAULT_NAMESPACE) -> "SQLiteStore":
        """Open (or create) a database and return one namespace of it."""
        return cls(StorageManager(data_dir, db_name), namespace)

    def begin(self) -> None:
        # Holds the database write lock until finish(), across processes
        self.manager.adapter.begin()

    def finish(self, committed: bool) -> None:
        if committed:
            self.manager.adapter.commit()
        else:
            self.manager.adapter.rollback()

    def get(self, key: Key, default: Any = None) -> Any:
        value = self.manager.load_value(self.namespace, key)
        return default if value is None else value

    def apply(self, writes: Dict[Key, Any], events: List[LedgerEvent]) -> None:
        self.manager.persist_batch(self.namespace, writes, events)

    def events(self) -> List[LedgerEvent]:
        return self.manager.load_events(self.namespace)

    def items(self) -> Iterator[Tuple[Key, Any]]:
        return iter(self.manager.load_items(self.namespace))

    def close(self) -> None:
        self.manager.close()

    def __repr__(self) -> str:
        return f"SQLiteStore(path={str(self.manager.db_path)!r}, namespace={self.namespace!r})"
