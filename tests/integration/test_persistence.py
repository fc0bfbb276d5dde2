"""
Integration tests for SQLite-backed ledgers.

Tests cover:
1. State survives reopening the database
2. Namespaces sharing one file stay isolated
3. Failed calls leave the database untouched
4. Calls from ledgers sharing one file are serialized
5. The event log is persisted in emission order
"""

import threading

import pytest

from nftledger.core.access import Collection
from nftledger.core.errors import InsufficientApproval, NonexistentToken
from nftledger.core.state import Approval, TokenLedger, Transfer
from nftledger.core.storage import SQLiteStore, StorageManager
from nftledger.crypto import NULL_ADDRESS

ADMIN = "0x" + "ad" * 20
ALICE = "0x" + "a1" * 20
BOB = "0x" + "b2" * 20


@pytest.fixture
def open_store(tmp_path):
    """Open namespaces of one database file, closing them after the test."""
    opened = []

    def _open(namespace="erc721"):
        store = SQLiteStore.open(tmp_path, "ledger.db", namespace)
        opened.append(store)
        return store

    yield _open

    for store in opened:
        store.close()


class TestReopen:
    """State written by one process is visible to the next."""

    def test_tokens_and_approvals_survive(self, open_store):
        ledger = TokenLedger(open_store())
        ledger.initialize("Persistent", "PST")
        ledger.mint(ALICE, 1)
        ledger.mint(ALICE, 2)
        ledger.approve(ALICE, BOB, 1)
        ledger.set_approval_for_all(ALICE, BOB, True)

        reopened = TokenLedger(open_store())

        assert reopened.name() == "Persistent"
        assert reopened.owner_of(1) == ALICE
        assert reopened.balance_of(ALICE) == 2
        assert reopened.get_approved(1) == BOB
        assert reopened.is_approved_for_all(ALICE, BOB)
        assert reopened.snapshot() == ledger.snapshot()

    def test_large_token_id(self, open_store):
        token_id = 2**256 - 1
        TokenLedger(open_store()).mint(ALICE, token_id)

        assert TokenLedger(open_store()).owner_of(token_id) == ALICE

    def test_burn_removes_rows(self, open_store):
        ledger = TokenLedger(open_store())
        ledger.mint(ALICE, 1)
        ledger.burn(1)

        reopened = TokenLedger(open_store())
        with pytest.raises(NonexistentToken):
            reopened.owner_of(1)
        assert reopened.balance_of(ALICE) == 0
        assert reopened.snapshot() == {}

    def test_collection_owner_survives(self, open_store):
        Collection.create(open_store(), "Art", "ART", ADMIN).mint(ADMIN, ALICE, 7)

        collection = Collection.open(open_store())

        assert collection.authorizer.owner == ADMIN
        assert collection.owner_of(7) == ALICE


class TestNamespaces:
    """Several collections in one database file."""

    def test_isolated(self, open_store):
        art = TokenLedger(open_store("art"))
        music = TokenLedger(open_store("music"))

        art.mint(ALICE, 1)
        music.mint(BOB, 1)

        assert art.owner_of(1) == ALICE
        assert music.owner_of(1) == BOB
        assert art.balance_of(BOB) == 0
        assert len(art.events()) == 1
        assert len(music.events()) == 1

    def test_key_encoding(self):
        encoded = StorageManager.encode_key("art", ("owners", 5))

        assert encoded == 'art:["owners",5]'
        assert StorageManager.decode_key(encoded) == ("owners", 5)


class TestAtomicity:
    """A rejected call writes nothing."""

    def test_failed_transfer_leaves_db_untouched(self, open_store):
        ledger = TokenLedger(open_store())
        ledger.mint(ALICE, 1)
        before = ledger.snapshot()
        events_before = ledger.events()

        with pytest.raises(InsufficientApproval):
            ledger.transfer_from(BOB, ALICE, BOB, 1)

        reopened = TokenLedger(open_store())
        assert reopened.snapshot() == before
        assert reopened.events() == events_before
        reopened.check_invariants()


class TestSharedFile:
    """Ledgers opened separately on one database file."""

    def test_concurrent_calls_are_serialized(self, open_store, monkeypatch):
        """A call on another connection waits until the running call commits."""
        first_store = open_store()
        first = TokenLedger(first_store)
        second = TokenLedger(open_store())
        original_apply = first_store.apply
        racer = []

        def apply_after_racing_mint(writes, events):
            if not racer:
                racer.append(threading.Thread(target=second.mint, args=(ALICE, 2)))
                racer[0].start()
                racer[0].join(timeout=0.5)
                # Blocked on the database write lock
                assert racer[0].is_alive()
            original_apply(writes, events)

        monkeypatch.setattr(first_store, "apply", apply_after_racing_mint)

        first.mint(ALICE, 1)
        racer[0].join(timeout=10)

        assert not racer[0].is_alive()
        reopened = TokenLedger(open_store())
        assert reopened.balance_of(ALICE) == 2
        assert reopened.owner_of(2) == ALICE
        reopened.check_invariants()

    def test_failed_call_releases_write_lock(self, open_store):
        first = TokenLedger(open_store())
        second = TokenLedger(open_store())
        first.mint(ALICE, 1)

        with pytest.raises(InsufficientApproval):
            first.transfer_from(BOB, ALICE, BOB, 1)

        second.mint(BOB, 2)
        assert first.owner_of(2) == BOB


class TestEventLog:
    """Events are persisted in emission order."""

    def test_order(self, open_store):
        ledger = TokenLedger(open_store())
        ledger.mint(ALICE, 1)
        ledger.approve(ALICE, BOB, 1)
        ledger.transfer_from(BOB, ALICE, BOB, 1)

        assert TokenLedger(open_store()).events() == [
            Transfer(NULL_ADDRESS, ALICE, 1),
            Approval(ALICE, BOB, 1),
            Approval(ALICE, NULL_ADDRESS, 1),
            Transfer(ALICE, BOB, 1),
        ]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
