"""Ledger store for borrow records."""

from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..db.sqlite import Database, get_db
from .models import BorrowRecord


class LedgerStore:
    """Reads and writes borrow records.

    Records are only ever inserted (on borrow) or closed (on return);
    nothing here deletes them.
    """

    def __init__(self, db: Optional[Database] = None):
        """Initialize ledger store.

        Args:
            db: Database instance
        """
        self.db = db or get_db()

    def save_borrow_record(self, session: Session, record: BorrowRecord) -> BorrowRecord:
        """Stage a record write in the caller's unit of work."""
        session.add(record)
        session.flush()
        return record

    def find_active_borrow(
        self, session: Session, user_id: int, book_id: int
    ) -> Optional[BorrowRecord]:
        """Find the open record for a (user, book) pair."""
        stmt = select(BorrowRecord).where(
            BorrowRecord.user_id == user_id,
            BorrowRecord.book_id == book_id,
            BorrowRecord.returned_at.is_(None),
        )
        return session.execute(stmt).scalars().first()

    def find_active_borrow_by_book(
        self, session: Session, book_id: int
    ) -> Optional[BorrowRecord]:
        """Find the open record for a book, whoever holds it."""
        stmt = select(BorrowRecord).where(
            BorrowRecord.book_id == book_id,
            BorrowRecord.returned_at.is_(None),
        )
        return session.execute(stmt).scalars().first()

    def list_active(self, session: Session, user_id: int) -> list[BorrowRecord]:
        """Open records for a user, most recently borrowed first."""
        stmt = (
            select(BorrowRecord)
            .where(
                BorrowRecord.user_id == user_id,
                BorrowRecord.returned_at.is_(None),
            )
            .order_by(BorrowRecord.borrowed_at.desc(), BorrowRecord.id.desc())
        )
        return list(session.execute(stmt).scalars().all())

    def list_history(
        self, user_id: int, session: Optional[Session] = None
    ) -> list[BorrowRecord]:
        """All records for a user, open and closed, newest first."""

        def _list(s: Session) -> list[BorrowRecord]:
            stmt = (
                select(BorrowRecord)
                .where(BorrowRecord.user_id == user_id)
                .order_by(BorrowRecord.borrowed_at.desc(), BorrowRecord.id.desc())
            )
            return list(s.execute(stmt).scalars().all())

        if session:
            return _list(session)
        with self.db.get_session() as s:
            records = _list(s)
            for record in records:
                s.expunge(record)
            return records

    def count_active(self, session: Optional[Session] = None) -> int:
        """Count open records across all users."""

        def _count(s: Session) -> int:
            stmt = (
                select(func.count())
                .select_from(BorrowRecord)
                .where(BorrowRecord.returned_at.is_(None))
            )
            return s.execute(stmt).scalar_one()

        if session:
            return _count(session)
        with self.db.get_session() as s:
            return _count(s)
