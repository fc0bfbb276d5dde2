"""
Access control and collection entry points.

The token ledger only checks the rights intrinsic to ERC-721 (owner,
approved address, operator). Who may mint and burn is a policy decision
of the deployment; it is expressed here as an Authorizer predicate and
enforced by Collection before delegating to the ledger.
"""

from abc import ABC, abstractmethod
from typing import Iterable, Optional, Union

from nftledger.core.errors import InvalidOwner, NotAuthorized
from nftledger.core.state.ledger import TokenLedger
from nftledger.core.state.store import StagedTransaction, StateStore
from nftledger.crypto import NULL_ADDRESS, normalize_address
from nftledger.utils.logger import get_logger

logger = get_logger("access")

AddressLike = Union[str, bytes]

ACTION_MINT = "mint"
ACTION_BURN = "burn"
ACTION_TRANSFER_OWNERSHIP = "transfer ownership"

OWNER_KEY = ("access", "owner")


# =============================================================================
# Authorizers
# =============================================================================


class Authorizer(ABC):
    """Predicate deciding whether a caller may perform a privileged action."""

    @abstractmethod
    def is_authorized(self, caller: str, action: str) -> bool:
        ...


class OwnerOnly(Authorizer):
    """Only the collection owner may mint and burn."""

    def __init__(self, owner: AddressLike):
        owner = normalize_address(owner)
        if owner == NULL_ADDRESS:
            raise InvalidOwner(owner=owner)
        self.owner = owner

    def is_authorized(self, caller: str, action: str) -> bool:
        return normalize_address(caller) == self.owner

    def save(self, tx: StagedTransaction) -> None:
        """Record the owner as part of an open transaction."""
        tx.set(OWNER_KEY, self.owner)

    @classmethod
    def load(cls, store: StateStore) -> Optional["OwnerOnly"]:
        """Restore the owner recorded in a store, None if never saved."""
        owner = store.get(OWNER_KEY)
        return cls(owner) if owner is not None else None

    def __repr__(self) -> str:
        return f"OwnerOnly(owner={self.owner})"


class AllowList(Authorizer):
    """Any listed address may perform any privileged action."""

    def __init__(self, addresses: Iterable[AddressLike]):
        self.addresses = frozenset(normalize_address(a) for a in addresses)

    def is_authorized(self, caller: str, action: str) -> bool:
        return normalize_address(caller) in self.addresses


# =============================================================================
# Collection
# =============================================================================


class Collection:
    """
    An NFT collection: a token ledger behind an authorization policy.

    Privileged calls take the caller explicitly; everything else is passed
    through to the ledger unchanged.
    """

    def __init__(self, ledger: TokenLedger, authorizer: Authorizer):
        self.ledger = ledger
        self.authorizer = authorizer

    @classmethod
    def create(
        cls,
        store: StateStore,
        name: str,
        symbol: str,
        owner: AddressLike,
        strict: bool = False,
    ) -> "Collection":
        """
        Initialize a new collection in an empty store, owned by `owner`.

        Raises:
            AlreadyInitialized: the store already holds a collection
        """
        authorizer = OwnerOnly(owner)
        ledger = TokenLedger(store, strict=strict)
        # Metadata and owner commit together or not at all
        with ledger.lock, store.transaction() as tx:
            ledger.initialize(name, symbol, tx=tx)
            authorizer.save(tx)
        logger.info(f"Created collection {name!r} owned by {authorizer.owner}")
        return cls(ledger, authorizer)

    @classmethod
    def open(cls, store: StateStore, strict: bool = False) -> "Collection":
        """
        Open an existing owner-controlled collection.

        Raises:
            ValueError: the store holds no collection
        """
        authorizer = OwnerOnly.load(store)
        if authorizer is None:
            raise ValueError(f"No collection in namespace {store.namespace!r}")
        return cls(TokenLedger(store, strict=strict), authorizer)

    def _require(self, caller: AddressLike, action: str) -> None:
        if not self.authorizer.is_authorized(caller, action):
            logger.debug(f"Rejected {action} by {caller}")
            raise NotAuthorized(caller=normalize_address(caller), action=action)

    # =========================================================================
    # Privileged
    # =========================================================================

    def mint(self, caller: AddressLike, to_address: AddressLike, token_id: int) -> None:
        self._require(caller, ACTION_MINT)
        self.ledger.mint(to_address, token_id)

    def burn(self, caller: AddressLike, token_id: int) -> None:
        self._require(caller, ACTION_BURN)
        self.ledger.burn(token_id)

    def transfer_ownership(self, caller: AddressLike, new_owner: AddressLike) -> None:
        """Hand collection ownership to another address (OwnerOnly policies)."""
        if not isinstance(self.authorizer, OwnerOnly):
            raise TypeError("Ownership transfer requires an OwnerOnly authorizer")
        authorizer = OwnerOnly(new_owner)
        with self.ledger.lock, self.ledger.store.transaction() as tx:
            # Check against the owner as stored now, not as loaded at open()
            stored = tx.get(OWNER_KEY)
            if stored is not None:
                self.authorizer = OwnerOnly(stored)
            self._require(caller, ACTION_TRANSFER_OWNERSHIP)
            authorizer.save(tx)
        self.authorizer = authorizer
        logger.info(f"Collection ownership transferred to {authorizer.owner}")

    # =========================================================================
    # Pass-through
    # =========================================================================

    def name(self) -> str:
        return self.ledger.name()

    def symbol(self) -> str:
        return self.ledger.symbol()

    def owner_of(self, token_id: int) -> str:
        return self.ledger.owner_of(token_id)

    def balance_of(self, owner: AddressLike) -> int:
        return self.ledger.balance_of(owner)

    def get_approved(self, token_id: int) -> str:
        return self.ledger.get_approved(token_id)

    def is_approved_for_all(self, owner: AddressLike, operator: AddressLike) -> bool:
        return self.ledger.is_approved_for_all(owner, operator)

    def approve(self, caller: AddressLike, to: AddressLike, token_id: int) -> None:
        self.ledger.approve(caller, to, token_id)

    def set_approval_for_all(self, caller: AddressLike, operator: AddressLike, approved: bool) -> None:
        self.ledger.set_approval_for_all(caller, operator, approved)

    def transfer_from(
        self,
        caller: AddressLike,
        from_address: AddressLike,
        to_address: AddressLike,
        token_id: int,
    ) -> None:
        self.ledger.transfer_from(caller, from_address, to_address, token_id)

    def supports_interface(self, interface_id: Union[int, bytes]) -> bool:
        return self.ledger.supports_interface(interface_id)


__all__ = [
    "Authorizer",
    "OwnerOnly",
    "AllowList",
    "Collection",
    "ACTION_MINT",
    "ACTION_BURN",
    "OWNER_KEY",
]
