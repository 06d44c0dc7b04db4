"""Pydantic schemas for data validation.

These schemas define the shape of catalog, user and ledger data as it
enters and leaves the storage layer.
"""

import math
from datetime import datetime
from enum import Enum
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, Field, field_validator

T = TypeVar("T")

DEFAULT_PAGE_LIMIT = 10
MAX_PAGE_LIMIT = 100


class UserRole(str, Enum):
    """Role of a library user."""

    USER = "user"
    ADMIN = "admin"


# ============================================================================
# Book Schemas
# ============================================================================


class BookBase(BaseModel):
    """Base book fields."""

    title: str = Field(..., min_length=1, max_length=500, description="Book title")
    author: str = Field(..., min_length=1, max_length=500, description="Primary author")
    description: Optional[str] = None

    @field_validator("title", "author", mode="before")
    @classmethod
    def strip_text(cls, v):
        """Strip surrounding whitespace."""
        if isinstance(v, str):
            return v.strip()
        return v


class BookCreate(BookBase):
    """Schema for creating a new book."""

    pass


class BookResponse(BookBase):
    """Schema for book responses."""

    id: int
    available: bool
    created_at: datetime

    model_config = {"from_attributes": True}


# ============================================================================
# User Schemas
# ============================================================================


class UserCreate(BaseModel):
    """Schema for registering a user record."""

    email: str = Field(..., min_length=3, max_length=255)
    role: UserRole = Field(default=UserRole.USER)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v):
        """Lowercase and strip email addresses."""
        if isinstance(v, str):
            v = v.strip().lower()
            if "@" not in v:
                raise ValueError("email must contain '@'")
        return v


class UserResponse(BaseModel):
    """Schema for user responses."""

    id: int
    email: str
    role: UserRole
    created_at: datetime

    model_config = {"from_attributes": True}


# ============================================================================
# Borrow Record Schemas
# ============================================================================


class BorrowRecordResponse(BaseModel):
    """Schema for borrow record responses."""

    id: int
    user_id: int
    book_id: int
    borrowed_at: datetime
    returned_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

    @property
    def is_active(self) -> bool:
        """Whether the book is still held."""
        return self.returned_at is None


# ============================================================================
# Pagination
# ============================================================================


def clamp_pagination(page: int, limit: int) -> tuple[int, int]:
    """Normalize page and limit the way list endpoints accept them.

    A page below 1 becomes 1; a limit outside 1..100 falls back to 10.
    """
    if page < 1:
        page = 1
    if limit < 1 or limit > MAX_PAGE_LIMIT:
        limit = DEFAULT_PAGE_LIMIT
    return page, limit


class Page(BaseModel, Generic[T]):
    """One page of a listing."""

    data: list[T]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0
