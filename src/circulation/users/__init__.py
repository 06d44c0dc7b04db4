"""User lookup module."""

from .store import UserStore

__all__ = ["UserStore"]
