"""featureflags: async feature flag evaluation client with a local TTL cache."""

from .backends import BaseCacheBackend as BaseCacheBackend
from .backends import MemoryBackend as MemoryBackend
from .client import FeatureFlagClient as FeatureFlagClient
from .config import ClientConfig as ClientConfig
from .dependencies import FlagClient as FlagClient
from .dependencies import flag_client_lifespan as flag_client_lifespan
from .dependencies import get_flag_client as get_flag_client
from .exceptions import AuthenticationError as AuthenticationError
from .exceptions import ClientNotFoundError as ClientNotFoundError
from .exceptions import FeatureFlagError as FeatureFlagError
from .exceptions import FlagNotFoundError as FlagNotFoundError
from .proxy import ClientProxy as ClientProxy
from .transport import HttpTransport as HttpTransport
from .types import BulkEvaluationResult as BulkEvaluationResult
from .types import EvaluationResult as EvaluationResult
from .types import FlagType as FlagType
from .types import build_cache_key as build_cache_key

__all__ = [
    "AuthenticationError",
    "BaseCacheBackend",
    "BulkEvaluationResult",
    "ClientConfig",
    "ClientNotFoundError",
    "ClientProxy",
    "EvaluationResult",
    "FeatureFlagClient",
    "FeatureFlagError",
    "FlagClient",
    "FlagNotFoundError",
    "FlagType",
    "HttpTransport",
    "MemoryBackend",
    "build_cache_key",
    "flag_client_lifespan",
    "get_flag_client",
]
