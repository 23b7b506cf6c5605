"""Base contract for aggregate repositories.

Services are handed a repository through their constructor and never
query the ORM themselves.  Look-ups answer ``None`` for a missing or
malformed id; deciding that "missing" is an error belongs to the
service.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Generic, Iterable, Optional, TypeVar

T = TypeVar("T")


class IRepository(ABC, Generic[T]):
    @abstractmethod
    def get_by_id(self, id: str) -> Optional[T]:
        """The aggregate with primary key ``id``, relations preloaded."""

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> Iterable[T]:
        """Aggregates matching ORM-style ``filters``, evaluated lazily."""

    @abstractmethod
    def save(self, entity: T) -> T:
        """Insert or update ``entity`` inside a transaction."""
