"""Per-book mutexes for serializing lending transitions."""

import logging
import threading
from contextlib import contextmanager
from typing import Generator

from ..errors import UnavailableError

logger = logging.getLogger(__name__)


class _Entry:
    __slots__ = ("lock", "users")

    def __init__(self):
        self.lock = threading.Lock()
        self.users = 0


class BookLockRegistry:
    """Mutexes keyed by book ID.

    Only calls on the same book contend. Entries are dropped once no
    thread holds or waits on them, so the registry stays as small as the
    set of books currently in a transition.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._entries: dict[int, _Entry] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)

    @contextmanager
    def hold(self, book_id: int, timeout: float) -> Generator[None, None, None]:
        """Hold the lock for ``book_id`` for the duration of the block.

        Raises:
            UnavailableError: If the lock is not acquired within ``timeout``
        """
        with self._guard:
            entry = self._entries.get(book_id)
            if entry is None:
                entry = self._entries[book_id] = _Entry()
            entry.users += 1

        acquired = entry.lock.acquire(timeout=timeout)
        try:
            if not acquired:
                logger.warning("Timed out after %.2fs waiting for book %s", timeout, book_id)
                raise UnavailableError(f"Book {book_id} is busy, try again")
            try:
                yield
            finally:
                entry.lock.release()
        finally:
            with self._guard:
                entry.users -= 1
                if entry.users == 0:
                    del self._entries[book_id]
