"""
Token Ledger - ERC-721 ownership, approval and lifecycle state machine.

Conceptual Background:
---------------------
The ledger maintains four relations over an injected StateStore:

1. **Owner-of**: token id -> owner address. A token exists iff it has an entry.
2. **Balance-of**: address -> number of tokens owned. A cache of owner-of,
   updated incrementally on every ownership change, never recomputed.
3. **Token approval**: token id -> the single address allowed to move it.
   Cleared on every ownership change.
4. **Operator approval**: (owner, operator) -> bool. Blanket rights over all
   tokens of the owner, untouched by token movements.

Per token the state machine is:

    Nonexistent --mint--> Owned(to) --transfer--> Owned(to') --burn--> Nonexistent

Transaction Processing:
----------------------
Each mutating call holds the ledger lock and runs inside one staged store
transaction. Preconditions are checked before any write; if anything raises,
the staged writes and events are discarded, so a failed call never leaves
partial state behind.

Authorization for mint/burn is not checked here; see nftledger.core.access.
"""

import threading
from typing import Any, Dict, List, Optional, Union

from nftledger.core.errors import (
    AlreadyInitialized,
    AlreadyMinted,
    ApprovalToCurrentOwner,
    IncorrectOwner,
    InsufficientApproval,
    InvalidApprover,
    InvalidOperator,
    InvalidOwner,
    InvalidReceiver,
    InvalidSender,
    LedgerInvariantError,
    NonexistentToken,
    NotAuthorized,
)
from nftledger.core.state.events import Approval, ApprovalForAll, LedgerEvent, Transfer
from nftledger.core.state.store import StagedTransaction, StateStore
from nftledger.crypto import NULL_ADDRESS, keccak256, normalize_address
from nftledger.utils.logger import get_logger
from nftledger.utils.validation import (
    validate_address,
    validate_interface_id,
    validate_string,
    validate_token_id,
)

logger = get_logger("ledger")

AddressLike = Union[str, bytes]

# Relation names used as the first component of every store key
OWNERS = "owners"
BALANCES = "balances"
TOKEN_APPROVALS = "token_approvals"
OPERATOR_APPROVALS = "operator_approvals"
METADATA = "metadata"


def _selector(signature: str) -> int:
    return int.from_bytes(keccak256(signature.encode("ascii"))[:4], byteorder="big")


def _interface_id(*signatures: str) -> int:
    interface_id = 0
    for signature in signatures:
        interface_id ^= _selector(signature)
    return interface_id


# ERC-165 interface ids, derived from the function selectors they cover
INTERFACE_ID_ERC165 = _interface_id("supportsInterface(bytes4)")
INTERFACE_ID_ERC721 = _interface_id(
    "balanceOf(address)",
    "ownerOf(uint256)",
    "safeTransferFrom(address,address,uint256,bytes)",
    "safeTransferFrom(address,address,uint256)",
    "transferFrom(address,address,uint256)",
    "approve(address,uint256)",
    "setApprovalForAll(address,bool)",
    "getApproved(uint256)",
    "isApprovedForAll(address,address)",
)
INTERFACE_ID_ERC721_METADATA = _interface_id(
    "name()",
    "symbol()",
    "tokenURI(uint256)",
)
INTERFACE_ID_INVALID = 0xFFFFFFFF

# Metadata is not advertised: it requires tokenURI, which the ledger does not keep
SUPPORTED_INTERFACES = frozenset({
    INTERFACE_ID_ERC165,
    INTERFACE_ID_ERC721,
})


def _address(value: AddressLike, name: str) -> str:
    is_valid, error = validate_address(value, name)
    if not is_valid:
        raise ValueError(error)
    return normalize_address(value)


def _token_id(value: Any) -> int:
    is_valid, error = validate_token_id(value)
    if not is_valid:
        raise ValueError(error)
    return value


class TokenLedger:
    """
    ERC-721 token ledger.

    All addresses returned by the ledger are lowercase 0x-prefixed hex;
    inputs may be any case or 20 raw bytes.

    Attributes:
        store: Backing key-value store
        strict: Reject null sender/approver/operator addresses
    """

    def __init__(self, store: StateStore, strict: bool = False):
        """
        Initialize the ledger.

        Args:
            store: State store holding the relations
            strict: Enable the InvalidSender/InvalidApprover/InvalidOperator checks
        """
        self.store = store
        self.strict = strict
        self._lock = threading.RLock()

    @property
    def lock(self) -> threading.RLock:
        """Re-entrant lock serializing every call on this ledger."""
        return self._lock

    # =========================================================================
    # Metadata
    # =========================================================================

    def initialize(self, name: str, symbol: str, tx: Optional[StagedTransaction] = None) -> None:
        """
        Write collection name and symbol. Allowed once.

        Args:
            name: Collection name
            symbol: Collection symbol
            tx: Open transaction to write into, committed by the caller.
                Without one the metadata is committed on its own.

        Raises:
            AlreadyInitialized: if metadata was already written
        """
        for value, field_name in ((name, "name"), (symbol, "symbol")):
            is_valid, error = validate_string(value, field_name)
            if not is_valid:
                raise ValueError(error)

        with self._lock:
            if tx is not None:
                self._write_metadata(tx, name, symbol)
            else:
                with self.store.transaction() as own_tx:
                    self._write_metadata(own_tx, name, symbol)

        logger.info(f"Initialized collection {name!r} ({symbol}) in namespace {self.store.namespace!r}")

    @staticmethod
    def _write_metadata(tx: StagedTransaction, name: str, symbol: str) -> None:
        existing = tx.get((METADATA, "name"))
        if existing is not None:
            raise AlreadyInitialized(name=existing)
        tx.set((METADATA, "name"), name)
        tx.set((METADATA, "symbol"), symbol)

    @property
    def initialized(self) -> bool:
        return self.store.get((METADATA, "name")) is not None

    def name(self) -> str:
        """Collection name."""
        return self.store.get((METADATA, "name"), "")

    def symbol(self) -> str:
        """Collection symbol."""
        return self.store.get((METADATA, "symbol"), "")

    def supports_interface(self, interface_id: Union[int, bytes]) -> bool:
        """ERC-165 interface detection."""
        is_valid, error = validate_interface_id(interface_id)
        if not is_valid:
            raise ValueError(error)
        if isinstance(interface_id, (bytes, bytearray)):
            interface_id = int.from_bytes(interface_id, byteorder="big")
        return interface_id in SUPPORTED_INTERFACES

    # =========================================================================
    # Queries
    # =========================================================================

    def owner_of(self, token_id: int) -> str:
        """
        Get the owner of a token.

        Raises:
            NonexistentToken: if the token has no owner
        """
        token_id = _token_id(token_id)
        with self._lock:
            return self._require_owner(self.store, token_id)

    def exists(self, token_id: int) -> bool:
        """Whether the token currently has an owner."""
        token_id = _token_id(token_id)
        with self._lock:
            return self._owner(self.store, token_id) is not None

    def balance_of(self, owner: AddressLike) -> int:
        """
        Number of tokens held by an address.

        Raises:
            InvalidOwner: for the null address
        """
        owner = _address(owner, "owner")
        if owner == NULL_ADDRESS:
            raise InvalidOwner(owner=owner)
        with self._lock:
            return self.store.get((BALANCES, owner), 0)

    def get_approved(self, token_id: int) -> str:
        """
        Approved address for a token, NULL_ADDRESS if none.

        Does not check that the token exists: a nonexistent token reports
        NULL_ADDRESS. Call owner_of first for an existence-checked read.
        """
        token_id = _token_id(token_id)
        with self._lock:
            return self.store.get((TOKEN_APPROVALS, token_id), NULL_ADDRESS)

    def is_approved_for_all(self, owner: AddressLike, operator: AddressLike) -> bool:
        """Whether operator may manage every token of owner."""
        owner = _address(owner, "owner")
        operator = _address(operator, "operator")
        with self._lock:
            return bool(self.store.get((OPERATOR_APPROVALS, owner, operator), False))

    # =========================================================================
    # Approvals
    # =========================================================================

    def approve(self, caller: AddressLike, to: AddressLike, token_id: int) -> None:
        """
        Approve `to` to transfer one token. NULL_ADDRESS revokes.

        Raises:
            InvalidApprover: strict mode, caller is the null address
            NonexistentToken: token has no owner
            ApprovalToCurrentOwner: `to` already owns the token
            NotAuthorized: caller is neither owner nor operator of the owner
        """
        caller = _address(caller, "caller")
        to = _address(to, "to")
        token_id = _token_id(token_id)

        if self.strict and caller == NULL_ADDRESS:
            raise InvalidApprover(approver=caller)

        with self._lock, self.store.transaction() as tx:
            owner = self._require_owner(tx, token_id)

            if to == owner:
                raise ApprovalToCurrentOwner(owner=owner, token_id=token_id)

            if caller != owner and not self._is_operator(tx, owner, caller):
                raise NotAuthorized(caller=caller, action="approve")

            self._set_token_approval(tx, owner, to, token_id)

        logger.debug(f"Approved {to} for token {token_id} (owner {owner})")

    def set_approval_for_all(
        self,
        caller: AddressLike,
        operator: AddressLike,
        approved: bool,
    ) -> None:
        """
        Grant or revoke blanket operator rights over all of caller's tokens.

        Raises:
            InvalidOperator: strict mode, operator is the null address
        """
        caller = _address(caller, "caller")
        operator = _address(operator, "operator")
        approved = bool(approved)

        if self.strict and operator == NULL_ADDRESS:
            raise InvalidOperator(operator=operator)

        with self._lock, self.store.transaction() as tx:
            tx.set((OPERATOR_APPROVALS, caller, operator), approved)
            tx.emit(ApprovalForAll(caller, operator, approved))

        logger.debug(f"Operator {operator} {'approved' if approved else 'revoked'} for {caller}")

    # =========================================================================
    # Transfer
    # =========================================================================

    def transfer_from(
        self,
        caller: AddressLike,
        from_address: AddressLike,
        to_address: AddressLike,
        token_id: int,
    ) -> None:
        """
        Move a token from its owner to a new owner.

        Checks, in order:
        1. Token exists
        2. Caller is owner, approved address or operator
        3. `from_address` is the actual owner
        4. `to_address` is not the null address

        Raises:
            InvalidSender: strict mode, from_address is the null address
            NonexistentToken: token has no owner
            InsufficientApproval: caller may not move the token
            IncorrectOwner: from_address does not own the token
            InvalidReceiver: to_address is the null address
        """
        caller = _address(caller, "caller")
        from_address = _address(from_address, "from_address")
        to_address = _address(to_address, "to_address")
        token_id = _token_id(token_id)

        if self.strict and from_address == NULL_ADDRESS:
            raise InvalidSender(sender=from_address)

        with self._lock, self.store.transaction() as tx:
            owner = self._require_owner(tx, token_id)

            if not self._is_authorized(tx, owner, caller, token_id):
                raise InsufficientApproval(operator=caller, token_id=token_id)

            if owner != from_address:
                raise IncorrectOwner(sender=from_address, token_id=token_id, owner=owner)

            if to_address == NULL_ADDRESS:
                raise InvalidReceiver(receiver=to_address)

            self._clear_token_approval(tx, owner, token_id)
            self._decrement_balance(tx, from_address)
            self._increment_balance(tx, to_address)
            tx.set((OWNERS, token_id), to_address)
            tx.emit(Transfer(from_address, to_address, token_id))

        logger.debug(f"Transferred token {token_id}: {from_address} -> {to_address}")

    # =========================================================================
    # Mint / Burn
    # =========================================================================

    def mint(self, to_address: AddressLike, token_id: int) -> None:
        """
        Create a token owned by `to_address`.

        Raises:
            InvalidReceiver: to_address is the null address
            AlreadyMinted: token already exists
        """
        to_address = _address(to_address, "to_address")
        token_id = _token_id(token_id)

        if to_address == NULL_ADDRESS:
            raise InvalidReceiver(receiver=to_address)

        with self._lock, self.store.transaction() as tx:
            if self._owner(tx, token_id) is not None:
                raise AlreadyMinted(token_id=token_id)

            self._increment_balance(tx, to_address)
            tx.set((OWNERS, token_id), to_address)
            tx.emit(Transfer(NULL_ADDRESS, to_address, token_id))

        logger.info(f"Minted token {token_id} to {to_address}")

    def burn(self, token_id: int) -> None:
        """
        Destroy a token. Its id becomes indistinguishable from a never-minted one.

        Raises:
            NonexistentToken: token has no owner
        """
        token_id = _token_id(token_id)

        with self._lock, self.store.transaction() as tx:
            owner = self._require_owner(tx, token_id)

            self._clear_token_approval(tx, owner, token_id)
            self._decrement_balance(tx, owner)
            tx.delete((OWNERS, token_id))
            tx.emit(Transfer(owner, NULL_ADDRESS, token_id))

        logger.info(f"Burned token {token_id} (owner {owner})")

    # =========================================================================
    # Internal State Helpers
    # =========================================================================

    @staticmethod
    def _owner(view: Union[StateStore, StagedTransaction], token_id: int) -> Optional[str]:
        owner = view.get((OWNERS, token_id))
        if owner is None or owner == NULL_ADDRESS:
            return None
        return owner

    def _require_owner(self, view: Union[StateStore, StagedTransaction], token_id: int) -> str:
        owner = self._owner(view, token_id)
        if owner is None:
            raise NonexistentToken(token_id=token_id)
        return owner

    @staticmethod
    def _is_operator(view: Union[StateStore, StagedTransaction], owner: str, operator: str) -> bool:
        return bool(view.get((OPERATOR_APPROVALS, owner, operator), False))

    def _is_authorized(self, tx: StagedTransaction, owner: str, caller: str, token_id: int) -> bool:
        if caller == owner:
            return True
        if tx.get((TOKEN_APPROVALS, token_id), NULL_ADDRESS) == caller:
            return True
        return self._is_operator(tx, owner, caller)

    @staticmethod
    def _set_token_approval(tx: StagedTransaction, owner: str, approved: str, token_id: int) -> None:
        if approved == NULL_ADDRESS:
            tx.delete((TOKEN_APPROVALS, token_id))
        else:
            tx.set((TOKEN_APPROVALS, token_id), approved)
        tx.emit(Approval(owner, approved, token_id))

    def _clear_token_approval(self, tx: StagedTransaction, owner: str, token_id: int) -> None:
        self._set_token_approval(tx, owner, NULL_ADDRESS, token_id)

    @staticmethod
    def _increment_balance(tx: StagedTransaction, address: str) -> None:
        tx.set((BALANCES, address), tx.get((BALANCES, address), 0) + 1)

    @staticmethod
    def _decrement_balance(tx: StagedTransaction, address: str) -> None:
        balance = tx.get((BALANCES, address), 0)
        if balance <= 0:
            raise LedgerInvariantError(detail=f"balance of {address} would drop below zero")
        if balance == 1:
            tx.delete((BALANCES, address))
        else:
            tx.set((BALANCES, address), balance - 1)

    # =========================================================================
    # Inspection
    # =========================================================================

    def events(self) -> List[LedgerEvent]:
        """Every committed event, oldest first."""
        with self._lock:
            return self.store.events()

    def snapshot(self) -> Dict[tuple, Any]:
        """Plain copy of every stored relation entry."""
        with self._lock:
            return dict(self.store.items())

    def check_invariants(self) -> None:
        """
        Recount balances from owner-of and compare with the cached balances.

        Raises:
            LedgerInvariantError: if any cached balance disagrees
        """
        counted: Dict[str, int] = {}
        cached: Dict[str, int] = {}
        for key, value in self.snapshot().items():
            if key[0] == OWNERS:
                counted[value] = counted.get(value, 0) + 1
            elif key[0] == BALANCES:
                cached[key[1]] = value
        if counted != cached:
            raise LedgerInvariantError(detail=f"balances {cached} != owner counts {counted}")

    def __repr__(self) -> str:
        return f"TokenLedger(name={self.name()!r}, symbol={self.symbol()!r}, store={self.store!r})"

    def stats(self) -> dict:
        """Get ledger statistics."""
        state = self.snapshot()
        return {
            "name": self.name(),
            "symbol": self.symbol(),
            "namespace": self.store.namespace,
            "token_count": sum(1 for key in state if key[0] == OWNERS),
            "holder_count": sum(1 for key in state if key[0] == BALANCES),
            "pending_approvals": sum(1 for key in state if key[0] == TOKEN_APPROVALS),
            "event_count": len(self.events()),
            "strict": self.strict,
        }


__all__ = [
    "TokenLedger",
    "INTERFACE_ID_ERC165",
    "INTERFACE_ID_ERC721",
    "INTERFACE_ID_ERC721_METADATA",
    "INTERFACE_ID_INVALID",
    "OWNERS",
    "BALANCES",
    "TOKEN_APPROVALS",
    "OPERATOR_APPROVALS",
    "METADATA",
]
