"""Database module for local SQLite storage."""

from .models import Book, User
from .schemas import (
    BookCreate,
    BookResponse,
    BorrowRecordResponse,
    Page,
    UserCreate,
    UserResponse,
    UserRole,
)
from .sqlite import Database, get_db

__all__ = [
    "Book",
    "User",
    "BookCreate",
    "BookResponse",
    "BorrowRecordResponse",
    "Page",
    "UserCreate",
    "UserResponse",
    "UserRole",
    "Database",
    "get_db",
]
