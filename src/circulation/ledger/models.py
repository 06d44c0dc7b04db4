"""SQLAlchemy models for the borrow ledger.

Tables:
- borrow_records: Who holds which book, since when, and when it came back
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import ForeignKey, Index, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..db.models import Base, Book, User, utc_now_iso


class BorrowRecord(Base):
    """Borrow record - one loan of one book to one user."""

    __tablename__ = "borrow_records"
    __table_args__ = (
        # At most one open record per book
        Index(
            "ix_borrow_records_active_book",
            "book_id",
            unique=True,
            sqlite_where=text("returned_at IS NULL"),
            postgresql_where=text("returned_at IS NULL"),
        ),
        Index("ix_borrow_records_user_returned", "user_id", "returned_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False, index=True
    )
    book_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("books.id"), nullable=False, index=True
    )

    borrowed_at: Mapped[str] = mapped_column(String(32), nullable=False, default=utc_now_iso)
    returned_at: Mapped[Optional[str]] = mapped_column(String(32))

    # Relationships
    book: Mapped["Book"] = relationship("Book")
    user: Mapped["User"] = relationship("User")

    def __repr__(self) -> str:
        return (
            f"<BorrowRecord(id={self.id}, user_id={self.user_id}, "
            f"book_id={self.book_id}, active={self.is_active})>"
        )

    @property
    def is_active(self) -> bool:
        """Check if the book is still held."""
        return self.returned_at is None

    @property
    def borrowed_at_dt(self) -> datetime:
        return datetime.fromisoformat(self.borrowed_at)

    @property
    def returned_at_dt(self) -> Optional[datetime]:
        if self.returned_at is None:
            return None
        return datetime.fromisoformat(self.returned_at)
