"""
State Store - key-value persistence behind the token ledger.

Conceptual Background:
---------------------
The ledger keeps four relations plus collection metadata. They all live in
one key-value region addressed by composite keys:

    ("owners", token_id)                      -> address
    ("balances", address)                     -> int
    ("token_approvals", token_id)             -> address
    ("operator_approvals", owner, operator)   -> bool
    ("metadata", "name" | "symbol")           -> str

A store is scoped to a namespace so several collections can share one
physical backend without colliding.

Staged Transactions:
-------------------
Every ledger call runs inside a StagedTransaction. Reads fall through to
the store unless the key was written earlier in the same call; writes and
events are buffered and handed to ``StateStore.apply`` in one piece when
the call succeeds. Any exception discards the buffer, so a failed call
leaves no trace.

A transaction also brackets the call with ``StateStore.begin`` and
``StateStore.finish``. Stores shared by several ledgers (threads holding
different TokenLedger objects, or processes opening the same database file)
take their exclusive lock in ``begin``, so the reads a call makes cannot go
stale before its writes land.
"""

import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, Hashable, Iterator, List, Tuple

from nftledger.core.state.events import LedgerEvent
from nftledger.utils.logger import get_logger
from nftledger.utils.validation import validate_namespace

logger = get_logger("store")

Key = Tuple[Hashable, ...]

DEFAULT_NAMESPACE = "erc721"


class _Deleted:
    """Marker for a key removed inside a staged transaction."""

    def __repr__(self) -> str:
        return "DELETED"


DELETED = _Deleted()


# =============================================================================
# Store Interface
# =============================================================================


class StateStore(ABC):
    """
    Abstract key-value store with atomic batch application.

    Implementations must make ``apply`` all-or-nothing: either every write
    and event of the batch becomes visible, or none does.
    """

    def __init__(self, namespace: str = DEFAULT_NAMESPACE):
        is_valid, error = validate_namespace(namespace)
        if not is_valid:
            raise ValueError(error)
        self.namespace = namespace

    @abstractmethod
    def get(self, key: Key, default: Any = None) -> Any:
        """Read a committed value."""

    @abstractmethod
    def apply(self, writes: Dict[Key, Any], events: List[LedgerEvent]) -> None:
        """
        Atomically apply a batch.

        Args:
            writes: key -> value, or key -> DELETED for removal
            events: events to append, in order
        """

    @abstractmethod
    def events(self) -> List[LedgerEvent]:
        """All committed events in emission order."""

    @abstractmethod
    def items(self) -> Iterator[Tuple[Key, Any]]:
        """Iterate over every committed (key, value) pair."""

    def begin(self) -> None:
        """Acquire exclusive access for one staged transaction."""

    def finish(self, committed: bool) -> None:
        """
        Release the access taken by begin().

        Args:
            committed: True after a successful apply(), False on rollback
        """

    def transaction(self) -> "StagedTransaction":
        """Open a staged transaction over this store."""
        return StagedTransaction(self)

    def close(self) -> None:
        """Release backend resources."""


# =============================================================================
# Staged Transaction
# =============================================================================


class StagedTransaction:
    """
    Write-buffering overlay over a StateStore.

    Used as a context manager: commits on clean exit, discards on error.
    """

    def __init__(self, store: StateStore):
        self.store = store
        self.writes: Dict[Key, Any] = {}
        self.pending_events: List[LedgerEvent] = []
        self.closed = False
        store.begin()

    def get(self, key: Key, default: Any = None) -> Any:
        if key in self.writes:
            value = self.writes[key]
            return default if value is DELETED else value
        return self.store.get(key, default)

    def set(self, key: Key, value: Any) -> None:
        self._check_open()
        self.writes[key] = value

    def delete(self, key: Key) -> None:
        self._check_open()
        self.writes[key] = DELETED

    def emit(self, event: LedgerEvent) -> None:
        self._check_open()
        self.pending_events.append(event)

    def commit(self) -> None:
        self._check_open()
        self.closed = True
        try:
            if self.writes or self.pending_events:
                self.store.apply(self.writes, self.pending_events)
        except Exception:
            self.store.finish(committed=False)
            raise
        self.store.finish(committed=True)

    def rollback(self) -> None:
        if self.closed:
            return
        self.closed = True
        self.writes.clear()
        self.pending_events.clear()
        self.store.finish(committed=False)

    def _check_open(self) -> None:
        if self.closed:
            raise RuntimeError("Transaction already closed")

    def __enter__(self) -> "StagedTransaction":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is None:
            self.commit()
        else:
            logger.debug(f"Rolled back {len(self.writes)} staged writes: {exc}")
            self.rollback()
        return False


# =============================================================================
# In-Memory Store
# =============================================================================


class MemoryStore(StateStore):
    """Dict-backed store. Used for tests, demos and embedding."""

    def __init__(self, namespace: str = DEFAULT_NAMESPACE):
        super().__init__(namespace)
        self._data: Dict[Key, Any] = {}
        self._events: List[LedgerEvent] = []
        # Shared by every ledger over this store, held for a whole transaction
        self._lock = threading.RLock()

    def begin(self) -> None:
        self._lock.acquire()

    def finish(self, committed: bool) -> None:
        self._lock.release()

    def get(self, key: Key, default: Any = None) -> Any:
        return self._data.get(key, default)

    def apply(self, writes: Dict[Key, Any], events: List[LedgerEvent]) -> None:
        for key, value in writes.items():
            if value is DELETED:
                self._data.pop(key, None)
            else:
                self._data[key] = value
        self._events.extend(events)

    def events(self) -> List[LedgerEvent]:
        with self._lock:
            return list(self._events)

    def items(self) -> Iterator[Tuple[Key, Any]]:
        with self._lock:
            return iter(list(self._data.items()))

    def __repr__(self) -> str:
        return f"MemoryStore(namespace={self.namespace!r}, keys={len(self._data)}, events={len(self._events)})"


__all__ = [
    "StateStore",
    "StagedTransaction",
    "MemoryStore",
    "DELETED",
    "DEFAULT_NAMESPACE",
    "Key",
]
