"""Book catalog module.

Provides functionality for:
- Adding books to the catalog
- Looking up and paging through books
- Locked reads of a book inside a lending transaction
"""

from .store import CatalogStore

__all__ = ["CatalogStore"]
