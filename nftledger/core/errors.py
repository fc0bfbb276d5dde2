"""
Ledger errors.

Every failure of a ledger call raises one of these. Each class carries a
``fmt`` template; the keyword arguments passed at raise time fill the
template, are kept in ``kwargs`` and are also exposed as attributes so
callers can render precise diagnostics:

    try:
        ledger.owner_of(7)
    except NonexistentToken as e:
        print(e.token_id)
"""


class LedgerError(Exception):
    """
    Base exception for ledger operations. The fmt directive is
    overloaded by the inheriting classes.

    :ivar kwargs: The structured context of the failure
    """
    fmt = "An unspecified ledger error occurred"

    def __init__(self, **kwargs):
        msg = self.fmt.format(**kwargs)
        Exception.__init__(self, msg)
        self.kwargs = kwargs
        for key, value in kwargs.items():
            setattr(self, key, value)

    def __reduce__(self):
        return _rebuild, (type(self), self.kwargs)

    def __eq__(self, other):
        return type(self) is type(other) and self.kwargs == other.kwargs

    def __hash__(self):
        return hash((type(self), tuple(sorted(self.kwargs.items()))))


def _rebuild(cls, kwargs):
    return cls(**kwargs)


class NonexistentToken(LedgerError):
    """
    The token id has no owner (never minted, or burned).

    :ivar token_id: The queried token id
    """
    fmt = "Token {token_id} does not exist"


class IncorrectOwner(LedgerError):
    """
    A transfer named a ``from`` address that does not own the token.

    :ivar sender: The stated source address
    :ivar token_id: The token being transferred
    :ivar owner: The actual current owner
    """
    fmt = "Address {sender} is not the owner of token {token_id} (owner is {owner})"


class InvalidOwner(LedgerError):
    """
    The null address was used where an owning address is required.

    :ivar owner: The offending address
    """
    fmt = "Invalid owner address {owner}"


class InvalidReceiver(LedgerError):
    """
    The null address was used as a transfer or mint destination.

    :ivar receiver: The offending address
    """
    fmt = "Invalid receiver address {receiver}"


class InvalidSender(LedgerError):
    """
    The null address was used as a transfer source (strict mode).

    :ivar sender: The offending address
    """
    fmt = "Invalid sender address {sender}"


class InvalidApprover(LedgerError):
    """
    The null address attempted to approve (strict mode).

    :ivar approver: The offending address
    """
    fmt = "Invalid approver address {approver}"


class InvalidOperator(LedgerError):
    """
    The null address was named as an operator (strict mode).

    :ivar operator: The offending address
    """
    fmt = "Invalid operator address {operator}"


class InsufficientApproval(LedgerError):
    """
    The caller is neither owner, approved address nor operator for the token.

    :ivar operator: The caller
    :ivar token_id: The token being moved
    """
    fmt = "Address {operator} has insufficient approval for token {token_id}"


class NotAuthorized(LedgerError):
    """
    The caller lacks the permission required for an action.

    :ivar caller: The rejected caller
    :ivar action: The attempted action (approve, mint, burn)
    """
    fmt = "Address {caller} is not authorized to {action}"


class ApprovalToCurrentOwner(LedgerError):
    """
    An approval named the token's own owner as the approved address.

    :ivar owner: The current owner
    :ivar token_id: The token
    """
    fmt = "Cannot approve current owner {owner} for token {token_id}"


class AlreadyMinted(LedgerError):
    """
    Mint targeted a token id that already has an owner.

    :ivar token_id: The token id
    """
    fmt = "Token {token_id} already minted"


class AlreadyInitialized(LedgerError):
    """
    Collection metadata was already written.

    :ivar name: The existing collection name
    """
    fmt = "Collection already initialized as {name!r}"


class LedgerInvariantError(LedgerError):
    """
    Internal state violated a ledger invariant. Never expected in practice.

    :ivar detail: Description of the violation
    """
    fmt = "Ledger invariant violated: {detail}"


__all__ = [
    "LedgerError",
    "NonexistentToken",
    "IncorrectOwner",
    "InvalidOwner",
    "InvalidReceiver",
    "InvalidSender",
    "InvalidApprover",
    "InvalidOperator",
    "InsufficientApproval",
    "NotAuthorized",
    "ApprovalToCurrentOwner",
    "AlreadyMinted",
    "AlreadyInitialized",
    "LedgerInvariantError",
]
