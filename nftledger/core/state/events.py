"""
Ledger events - the externally observable notifications.

Three kinds, each carrying its arguments in a fixed order:

    Transfer(from_address, to_address, token_id)
    Approval(owner, approved, token_id)
    ApprovalForAll(owner, operator, approved)

Mint is reported as a Transfer from NULL_ADDRESS and burn as a Transfer
to NULL_ADDRESS. Clearing a per-token approval is reported as an Approval
to NULL_ADDRESS.
"""

from dataclasses import dataclass, fields
from typing import Any, Dict, Tuple, Union


@dataclass(frozen=True)
class Transfer:
    """Token ownership moved (mint, transfer or burn)."""
    from_address: str
    to_address: str
    token_id: int

    name = "Transfer"

    def args(self) -> Tuple[Any, ...]:
        return (self.from_address, self.to_address, self.token_id)

    def to_dict(self) -> Dict[str, Any]:
        return {"event": self.name, **{f.name: getattr(self, f.name) for f in fields(self)}}


@dataclass(frozen=True)
class Approval:
    """Per-token approval set or cleared."""
    owner: str
    approved: str
    token_id: int

    name = "Approval"

    def args(self) -> Tuple[Any, ...]:
        return (self.owner, self.approved, self.token_id)

    def to_dict(self) -> Dict[str, Any]:
        return {"event": self.name, **{f.name: getattr(self, f.name) for f in fields(self)}}


@dataclass(frozen=True)
class ApprovalForAll:
    """Operator approval toggled."""
    owner: str
    operator: str
    approved: bool

    name = "ApprovalForAll"

    def args(self) -> Tuple[Any, ...]:
        return (self.owner, self.operator, self.approved)

    def to_dict(self) -> Dict[str, Any]:
        return {"event": self.name, **{f.name: getattr(self, f.name) for f in fields(self)}}


LedgerEvent = Union[Transfer, Approval, ApprovalForAll]

EVENT_TYPES = {cls.name: cls for cls in (Transfer, Approval, ApprovalForAll)}


def event_from_dict(data: Dict[str, Any]) -> LedgerEvent:
    """
    Rebuild an event from its to_dict() form.

    Raises:
        ValueError: if the event name is unknown
    """
    payload = dict(data)
    name = payload.pop("event", None)
    cls = EVENT_TYPES.get(name)
    if cls is None:
        raise ValueError(f"Unknown event type: {name!r}")
    return cls(**payload)


__all__ = [
    "Transfer",
    "Approval",
    "ApprovalForAll",
    "LedgerEvent",
    "EVENT_TYPES",
    "event_from_dict",
]
