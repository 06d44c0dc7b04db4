"""Borrow transaction engine.

Moves a single book between the Available and Borrowed states:

    Available --borrow(u)--> Borrowed --return(u)--> Available

Each transition runs under the book's mutex and inside one database
transaction, so ``Book.available`` and the book's open borrow record change
together or not at all. Preconditions are evaluated after the lock is
taken, never before.
"""

import logging
import time
from typing import Callable, Optional, TypeVar

from sqlalchemy.exc import IntegrityError

from ..catalog.store import CatalogStore
from ..config import get_config
from ..db.models import utc_now_iso
from ..db.sqlite import Database, get_db
from ..errors import (
    ConflictError,
    ConflictReason,
    NotFoundEntity,
    NotFoundError,
    UnavailableError,
)
from ..ledger.models import BorrowRecord
from ..ledger.store import LedgerStore
from ..users.store import UserStore
from .locks import BookLockRegistry

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Shared by every engine in the process so that two engines over the same
# database still serialize on the same book.
_default_locks = BookLockRegistry()


class BorrowEngine:
    """Performs borrow and return transitions atomically."""

    def __init__(
        self,
        db: Optional[Database] = None,
        catalog: Optional[CatalogStore] = None,
        ledger: Optional[LedgerStore] = None,
        users: Optional[UserStore] = None,
        locks: Optional[BookLockRegistry] = None,
        lock_timeout: Optional[float] = None,
        retry_max: Optional[int] = None,
        retry_base_delay: Optional[float] = None,
    ):
        """Initialize the engine.

        Args:
            db: Database instance
            catalog: Book store (defaults to one over ``db``)
            ledger: Borrow record store (defaults to one over ``db``)
            users: User store (defaults to one over ``db``)
            locks: Per-book lock registry (defaults to the process-wide one)
            lock_timeout: Seconds to wait for a book's lock
            retry_max: Attempts made when the unit of work is unavailable
            retry_base_delay: First backoff delay in seconds, doubled per retry
        """
        config = get_config()
        self.db = db or get_db()
        self.catalog = catalog or CatalogStore(self.db)
        self.ledger = ledger or LedgerStore(self.db)
        self.users = users or UserStore(self.db)
        self.locks = locks if locks is not None else _default_locks
        self.lock_timeout = lock_timeout if lock_timeout is not None else config.lock_timeout
        self.retry_max = max(1, retry_max if retry_max is not None else config.retry_max)
        self.retry_base_delay = (
            retry_base_delay if retry_base_delay is not None else config.retry_base_delay
        )

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def borrow(self, user_id: int, book_id: int) -> BorrowRecord:
        """Lend a book to a user.

        Args:
            user_id: Borrowing user
            book_id: Book to borrow

        Returns:
            The newly created, active borrow record

        Raises:
            NotFoundError: Book or user does not exist
            ConflictError: Book is not available
            UnavailableError: Lock or storage unavailable after all retries
        """
        return self._with_retry(lambda: self._borrow_once(user_id, book_id), "borrow")

    def return_book(self, user_id: int, book_id: int) -> BorrowRecord:
        """Take a book back from the user currently holding it.

        Args:
            user_id: Returning user, must be the current holder
            book_id: Book being returned

        Returns:
            The closed borrow record

        Raises:
            NotFoundError: No active borrow of this book by this user
            UnavailableError: Lock or storage unavailable after all retries
        """
        return self._with_retry(lambda: self._return_once(user_id, book_id), "return")

    def list_active_holdings(self, user_id: int) -> list[BorrowRecord]:
        """Books a user currently holds, most recently borrowed first.

        Raises:
            NotFoundError: User does not exist
        """
        with self.db.unit_of_work() as session:
            if not self.users.user_exists(user_id, session=session):
                raise NotFoundError(NotFoundEntity.USER, user_id)
            records = self.ledger.list_active(session, user_id)
            for record in records:
                session.expunge(record)
            return records

    # -------------------------------------------------------------------------
    # Single attempts
    # -------------------------------------------------------------------------

    def _borrow_once(self, user_id: int, book_id: int) -> BorrowRecord:
        with self.locks.hold(book_id, self.lock_timeout):
            try:
                with self.db.unit_of_work() as session:
                    book = self.catalog.get_book_for_update(session, book_id)
                    if not book.available:
                        if self.ledger.find_active_borrow_by_book(session, book_id) is None:
                            logger.error(
                                "Invariant drift: book %s is flagged borrowed but has "
                                "no open borrow record",
                                book_id,
                            )
                        raise ConflictError(ConflictReason.ALREADY_BORROWED)

                    if self.ledger.find_active_borrow(session, user_id, book_id):
                        logger.error(
                            "Invariant drift: book %s is flagged available but user %s "
                            "has an open borrow of it",
                            book_id,
                            user_id,
                        )
                        raise ConflictError(ConflictReason.ALREADY_HELD_BY_SAME_USER)

                    holder = self.ledger.find_active_borrow_by_book(session, book_id)
                    if holder is not None:
                        logger.error(
                            "Invariant drift: book %s is flagged available but is held "
                            "by user %s (record %s)",
                            book_id,
                            holder.user_id,
                            holder.id,
                        )
                        raise ConflictError(ConflictReason.ALREADY_BORROWED)

                    if not self.users.user_exists(user_id, session=session):
                        raise NotFoundError(NotFoundEntity.USER, user_id)

                    book.available = False
                    self.catalog.save_book(session, book)

                    record = BorrowRecord(
                        user_id=user_id,
                        book_id=book_id,
                        borrowed_at=utc_now_iso(),
                        returned_at=None,
                    )
                    self.ledger.save_borrow_record(session, record)
                    session.expunge(record)
            except IntegrityError as e:
                # Another writer opened a record for this book first
                logger.info("Borrow of book %s lost a race: %s", book_id, e.orig)
                raise ConflictError(ConflictReason.ALREADY_BORROWED) from e

        logger.info("User %s borrowed book %s (record %s)", user_id, book_id, record.id)
        return record

    def _return_once(self, user_id: int, book_id: int) -> BorrowRecord:
        with self.locks.hold(book_id, self.lock_timeout):
            with self.db.unit_of_work() as session:
                try:
                    book = self.catalog.get_book_for_update(session, book_id)
                except NotFoundError:
                    raise NotFoundError(NotFoundEntity.ACTIVE_BORROW, book_id) from None

                record = self.ledger.find_active_borrow(session, user_id, book_id)
                if record is None:
                    raise NotFoundError(NotFoundEntity.ACTIVE_BORROW, book_id)

                if book.available:
                    logger.error(
                        "Invariant drift: book %s is flagged available while record %s "
                        "is open; closing the record",
                        book_id,
                        record.id,
                    )

                record.returned_at = max(utc_now_iso(), record.borrowed_at)
                self.ledger.save_borrow_record(session, record)

                book.available = True
                self.catalog.save_book(session, book)
                session.expunge(record)

        logger.info("User %s returned book %s (record %s)", user_id, book_id, record.id)
        return record

    def _with_retry(self, operation: Callable[[], T], action: str) -> T:
        """Run ``operation``, retrying with exponential backoff while unavailable.

        Only ``UnavailableError`` is retried: it guarantees nothing was
        applied, and every attempt re-reads state from scratch.
        """
        backoff = self.retry_base_delay

        for attempt in range(1, self.retry_max + 1):
            try:
                return operation()
            except UnavailableError:
                if attempt == self.retry_max:
                    logger.warning("%s gave up after %d attempts", action, attempt)
                    raise
                logger.info(
                    "%s unavailable (attempt %d/%d), retrying in %.2fs",
                    action,
                    attempt,
                    self.retry_max,
                    backoff,
                )
                time.sleep(backoff)
                backoff *= 2

        raise UnavailableError()
