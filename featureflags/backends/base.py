from abc import ABC
from abc import abstractmethod
from typing import Generic
from typing import Optional
from typing import TypeVar

T = TypeVar("T")


class BaseCacheBackend(ABC, Generic[T]):
    """Base class for all evaluation cache backends."""

    @abstractmethod
    def get(self, key: str) -> Optional[T]:
        """Retrieve a cached value, or None if it is missing or expired."""

    @abstractmethod
    def set(self, key: str, value: T) -> None:
        """Store a value in the cache."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove a value from the cache."""

    @abstractmethod
    def clear(self) -> None:
        """Clear all cached values."""

    @property
    @abstractmethod
    def size(self) -> int:
        """Number of stored entries."""

    def start(self) -> None:  # noqa: B027
        """Start background maintenance, if the backend has any."""

    @abstractmethod
    def shutdown(self) -> None:
        """Stop background maintenance and drop all entries."""
