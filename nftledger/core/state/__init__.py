"""Token ledger, events and state stores"""
from nftledger.core.state.events import (
    Transfer,
    Approval,
    ApprovalForAll,
    LedgerEvent,
    event_from_dict,
)
from nftledger.core.state.store import (
    StateStore,
    StagedTransaction,
    MemoryStore,
    DELETED,
    DEFAULT_NAMESPACE,
)
from nftledger.core.state.ledger import (
    TokenLedger,
    INTERFACE_ID_ERC165,
    INTERFACE_ID_ERC721,
    INTERFACE_ID_ERC721_METADATA,
    INTERFACE_ID_INVALID,
)

__all__ = [
    "Transfer",
    "Approval",
    "ApprovalForAll",
    "LedgerEvent",
    "event_from_dict",
    "StateStore",
    "StagedTransaction",
    "MemoryStore",
    "DELETED",
    "DEFAULT_NAMESPACE",
    "TokenLedger",
    "INTERFACE_ID_ERC165",
    "INTERFACE_ID_ERC721",
    "INTERFACE_ID_ERC721_METADATA",
    "INTERFACE_ID_INVALID",
]
