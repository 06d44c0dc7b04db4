"""Borrow ledger module.

Tracks which user holds which book and the full borrow history.
"""

from .models import BorrowRecord
from .store import LedgerStore

__all__ = ["BorrowRecord", "LedgerStore"]
