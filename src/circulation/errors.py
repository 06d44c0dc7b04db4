"""Error types raised by the lending core.

Every failure the engine can report is a ``LendingError`` subclass:

- ``NotFoundError``: a referenced book, user, or active borrow does not exist
- ``ConflictError``: the transition is impossible given current state
- ``UnavailableError``: the unit of work could not be completed; nothing applied
"""

from enum import Enum
from typing import Optional


class NotFoundEntity(str, Enum):
    """Kinds of entity a lookup can miss."""

    BOOK = "book"
    USER = "user"
    ACTIVE_BORROW = "active_borrow"


class ConflictReason(str, Enum):
    """Reasons a transition is refused."""

    ALREADY_BORROWED = "already_borrowed"
    ALREADY_HELD_BY_SAME_USER = "already_held_by_same_user"
    DUPLICATE_EMAIL = "duplicate_email"


class LendingError(Exception):
    """Base exception for lending failures."""

    code = "error"
    retryable = False


class NotFoundError(LendingError):
    """Referenced entity does not exist."""

    code = "not_found"

    def __init__(self, entity: NotFoundEntity, identifier: Optional[object] = None):
        self.entity = entity
        self.identifier = identifier
        label = entity.value.replace("_", " ").capitalize()
        if identifier is None:
            message = f"{label} not found"
        else:
            message = f"{label} {identifier} not found"
        super().__init__(message)


class ConflictError(LendingError):
    """Transition refused because of the resource's current state."""

    code = "conflict"

    MESSAGES = {
        ConflictReason.ALREADY_BORROWED: "Book is already borrowed by someone else",
        ConflictReason.ALREADY_HELD_BY_SAME_USER: "You have already borrowed this book",
        ConflictReason.DUPLICATE_EMAIL: "A user with this email already exists",
    }

    def __init__(self, reason: ConflictReason, message: Optional[str] = None):
        self.reason = reason
        super().__init__(message or self.MESSAGES[reason])


class UnavailableError(LendingError):
    """Transient failure: lock contention or storage timeout.

    The operation was not applied, so it is safe to retry.
    """

    code = "unavailable"
    retryable = True

    def __init__(self, message: str = "Lending service temporarily unavailable"):
        super().__init__(message)
