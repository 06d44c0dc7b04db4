"""User store.

Only answers "does this user exist" for the lending engine; registration
here records an identity, not credentials.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..db.models import User
from ..db.schemas import UserCreate
from ..db.sqlite import Database, get_db
from ..errors import ConflictError, ConflictReason, NotFoundEntity, NotFoundError


class UserStore:
    """Looks up and registers users."""

    def __init__(self, db: Optional[Database] = None):
        """Initialize user store.

        Args:
            db: Database instance
        """
        self.db = db or get_db()

    def user_exists(self, user_id: int, session: Optional[Session] = None) -> bool:
        """Check whether a user exists."""

        def _exists(s: Session) -> bool:
            stmt = select(User.id).where(User.id == user_id)
            return s.execute(stmt).first() is not None

        if session:
            return _exists(session)
        with self.db.get_session() as s:
            return _exists(s)

    def get_user(self, user_id: int, session: Optional[Session] = None) -> User:
        """Get a user by ID.

        Raises:
            NotFoundError: If the user does not exist
        """

        def _get(s: Session) -> User:
            user = s.get(User, user_id)
            if user is None:
                raise NotFoundError(NotFoundEntity.USER, user_id)
            return user

        if session:
            return _get(session)
        with self.db.get_session() as s:
            user = _get(s)
            s.expunge(user)
            return user

    def get_user_by_email(self, email: str) -> Optional[User]:
        """Get a user by email (case-insensitive), or None."""
        with self.db.get_session() as session:
            stmt = select(User).where(User.email == email.strip().lower())
            user = session.execute(stmt).scalar_one_or_none()
            if user:
                session.expunge(user)
            return user

    def create_user(self, data: UserCreate) -> User:
        """Register a user.

        Raises:
            ConflictError: If the email is already registered
        """
        try:
            with self.db.get_session() as session:
                user = User(email=data.email, role=data.role.value)
                session.add(user)
                session.flush()
                session.expunge(user)
                return user
        except IntegrityError as e:
            raise ConflictError(ConflictReason.DUPLICATE_EMAIL) from e
