"""Cache backend implementations for the feature flag client."""

from .base import BaseCacheBackend
from .memory import MemoryBackend

__all__ = [
    "BaseCacheBackend",
    "MemoryBackend",
]
