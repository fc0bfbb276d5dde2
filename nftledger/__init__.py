"""
NFT Ledger

An ERC-721 style non-fungible token registry:
- Token ledger (owner-of, balance-of, approvals)
- Mint / burn lifecycle behind a pluggable authorization predicate
- Append-only Transfer / Approval / ApprovalForAll event log
- In-memory and SQLite-backed state stores
"""

__version__ = "0.1.0"
