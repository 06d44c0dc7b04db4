"""Book lending module.

Provides functionality for:
- Borrowing a book (Available -> Borrowed)
- Returning a book (Borrowed -> Available)
- Listing a user's active holdings and borrow history
"""

from .engine import BorrowEngine
from .facade import LendingFacade
from .locks import BookLockRegistry
from .schemas import LendingResult, ResultCode

__all__ = [
    "BorrowEngine",
    "LendingFacade",
    "BookLockRegistry",
    "LendingResult",
    "ResultCode",
]
