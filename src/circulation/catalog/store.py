"""Catalog store for book records.

The lending engine only needs ``get_book_for_update`` and ``save_book``;
the remaining operations cover basic catalog maintenance.
"""

from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..db.models import Book
from ..db.schemas import BookCreate, BookResponse, Page, clamp_pagination
from ..db.sqlite import Database, get_db
from ..errors import NotFoundEntity, NotFoundError


class CatalogStore:
    """Reads and writes book records."""

    def __init__(self, db: Optional[Database] = None):
        """Initialize catalog store.

        Args:
            db: Database instance
        """
        self.db = db or get_db()

    # -------------------------------------------------------------------------
    # Unit-of-work operations
    # -------------------------------------------------------------------------

    def get_book_for_update(self, session: Session, book_id: int) -> Book:
        """Load a book for modification inside the caller's unit of work.

        Emits ``SELECT ... FOR UPDATE`` on backends that support row locks.

        Raises:
            NotFoundError: If the book does not exist
        """
        stmt = select(Book).where(Book.id == book_id).with_for_update()
        book = session.execute(stmt).scalar_one_or_none()
        if book is None:
            raise NotFoundError(NotFoundEntity.BOOK, book_id)
        return book

    def save_book(self, session: Session, book: Book) -> Book:
        """Stage a book write in the caller's unit of work."""
        session.add(book)
        session.flush()
        return book

    # -------------------------------------------------------------------------
    # Catalog maintenance
    # -------------------------------------------------------------------------

    def create_book(self, data: BookCreate, session: Optional[Session] = None) -> Book:
        """Create a new, available book.

        Args:
            data: Book creation data

        Returns:
            Created book
        """

        def _create(s: Session) -> Book:
            book = Book(
                title=data.title,
                author=data.author,
                description=data.description,
                available=True,
            )
            s.add(book)
            s.flush()
            return book

        if session:
            return _create(session)
        with self.db.get_session() as s:
            book = _create(s)
            s.expunge(book)
            return book

    def get_book(self, book_id: int, session: Optional[Session] = None) -> Optional[Book]:
        """Get a book by ID, or None."""

        def _get(s: Session) -> Optional[Book]:
            return s.get(Book, book_id)

        if session:
            return _get(session)
        with self.db.get_session() as s:
            book = _get(s)
            if book:
                s.expunge(book)
            return book

    def require_book(self, book_id: int) -> Book:
        """Get a book by ID.

        Raises:
            NotFoundError: If the book does not exist
        """
        book = self.get_book(book_id)
        if book is None:
            raise NotFoundError(NotFoundEntity.BOOK, book_id)
        return book

    def list_books(self, page: int = 1, limit: int = 10) -> Page[BookResponse]:
        """List books, newest first.

        Args:
            page: 1-based page number (values below 1 become 1)
            limit: Page size (values outside 1..100 become 10)

        Returns:
            One page of books with the total count
        """
        page, limit = clamp_pagination(page, limit)

        with self.db.get_session() as session:
            total = session.execute(select(func.count()).select_from(Book)).scalar_one()
            stmt = (
                select(Book)
                .order_by(Book.created_at.desc(), Book.id.desc())
                .offset((page - 1) * limit)
                .limit(limit)
            )
            books = session.execute(stmt).scalars().all()
            data = [BookResponse.model_validate(b) for b in books]

        return Page[BookResponse](data=data, total=total, page=page, limit=limit)
