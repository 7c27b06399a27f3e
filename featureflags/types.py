"""Type definitions and type aliases for the feature flag client."""

from dataclasses import dataclass
from enum import Enum
from typing import Generic
from typing import TypeVar

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field

T = TypeVar("T")

# Cache key separator - flag keys are slugs, so "::" never occurs in them
CACHE_KEY_SEPARATOR = "::"

# Stands in for the user id of evaluations made without a user
NO_USER = "null"


class FlagType(str, Enum):
    """Value type declared by the evaluation service for a flag."""

    BOOLEAN = "BOOLEAN"
    STRING = "STRING"
    NUMBER = "NUMBER"


class EvaluationResult(BaseModel):
    """Outcome of evaluating one flag for one user."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    flag_key: str = Field(alias="flagKey")
    value: bool | int | float | str
    type: FlagType
    is_default: bool = Field(default=False, alias="isDefault")
    variant_id: str | None = Field(default=None, alias="variantId")


class BulkEvaluationResult(BaseModel):
    """All flags evaluated for one user in a single round-trip."""

    model_config = ConfigDict(frozen=True)

    flags: dict[str, EvaluationResult] = Field(default_factory=dict)


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """Cache entry stamped with its creation time.

    Args:
        value: The cached value
        created_at: Clock reading (seconds) taken when the entry was stored
    """

    value: T
    created_at: float

    def is_expired(self, ttl: float, now: float) -> bool:
        # An entry exactly ttl old is still valid
        return now - self.created_at > ttl


def build_cache_key(flag_key: str, user_id: str | None = None) -> str:
    """Build the cache key for a (flag, user) pair."""
    user = user_id if user_id is not None else NO_USER
    return f"{flag_key}{CACHE_KEY_SEPARATOR}{user}"
