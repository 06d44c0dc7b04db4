"""Lending facade: the entry point callers use to borrow and return books."""

import logging
from typing import Callable, Optional, Union

from ..db.schemas import BorrowRecordResponse
from ..db.sqlite import Database
from ..errors import LendingError, NotFoundEntity, NotFoundError, UnavailableError
from ..ledger.models import BorrowRecord
from .engine import BorrowEngine
from .schemas import LendingResult

logger = logging.getLogger(__name__)

Payload = Union[BorrowRecord, list[BorrowRecord]]


class LendingFacade:
    """Passes calls to the engine and shapes the outcome as a ``LendingResult``.

    Only ``LendingError`` is turned into a failure result; anything else is
    a bug and propagates.
    """

    def __init__(self, engine: Optional[BorrowEngine] = None, db: Optional[Database] = None):
        """Initialize the facade.

        Args:
            engine: Borrow engine (defaults to one over ``db``)
            db: Database instance, used when no engine is given
        """
        self.engine = engine or BorrowEngine(db)

    def borrow(self, user_id: int, book_id: int) -> LendingResult:
        """Borrow a book for a user."""
        return self._run("borrow", lambda: self.engine.borrow(user_id, book_id))

    def return_book(self, user_id: int, book_id: int) -> LendingResult:
        """Return a book the user holds."""
        return self._run("return", lambda: self.engine.return_book(user_id, book_id))

    def list_active_holdings(self, user_id: int) -> LendingResult:
        """Books the user currently holds, most recently borrowed first."""
        return self._run("holdings", lambda: self.engine.list_active_holdings(user_id))

    def history(self, user_id: int) -> LendingResult:
        """Every borrow record of the user, newest first."""

        def _history() -> list[BorrowRecord]:
            if not self.engine.users.user_exists(user_id):
                raise NotFoundError(NotFoundEntity.USER, user_id)
            return self.engine.ledger.list_history(user_id)

        return self._run("history", _history)

    def _run(self, action: str, call: Callable[[], Payload]) -> LendingResult:
        try:
            payload = call()
        except UnavailableError as e:
            logger.warning("%s failed transiently: %s", action, e)
            return LendingResult.from_error(e)
        except LendingError as e:
            logger.info("%s refused: %s", action, e)
            return LendingResult.from_error(e)

        if isinstance(payload, list):
            return LendingResult.ok([BorrowRecordResponse.model_validate(r) for r in payload])
        return LendingResult.ok(BorrowRecordResponse.model_validate(payload))
