"""Feature flag evaluation client."""

from logging import getLogger
from typing import TypeVar

from pydantic import SecretStr

from featureflags.backends import BaseCacheBackend
from featureflags.backends import MemoryBackend
from featureflags.config import ClientConfig
from featureflags.exceptions import AuthenticationError
from featureflags.exceptions import FeatureFlagError
from featureflags.transport import HttpTransport
from featureflags.types import EvaluationResult
from featureflags.types import FlagType
from featureflags.types import build_cache_key

V = TypeVar("V", bool, str, float)

logger = getLogger(__name__)


class FeatureFlagClient:
    """Evaluate feature flags with a local TTL cache.

    Single-flag lookups read through the cache; ``get_all_flags`` fills it.
    Only ``AuthenticationError`` ever reaches the caller: every other failure
    (unknown flag, timeout, network or server error) yields the caller's
    default, so flag evaluation never depends on the API being healthy.

    Example:
        async with FeatureFlagClient("ff_production_abc123") as client:
            enabled = await client.get_boolean_flag("dark-mode", "user-42", False)

    Args:
        api_key: Environment API key, must start with ``ff_``
        base_url: Evaluation API base URL (falls back to FEATUREFLAGS_BASE_URL)
        cache_ttl: Cache TTL in milliseconds (default 30000)
        request_timeout: Request timeout in milliseconds (default 10000)
        config: Prebuilt configuration, cannot be combined with the options above
        transport: Transport to use instead of an ``HttpTransport``
        cache: Cache backend to use instead of a ``MemoryBackend``

    Raises:
        FeatureFlagError: If the API key is empty or lacks the ``ff_`` prefix
        TypeError: If ``config`` is passed together with any of the options
    """

    def __init__(
        self,
        api_key: str | SecretStr | None = None,
        base_url: str | None = None,
        cache_ttl: int | None = None,
        request_timeout: int | None = None,
        *,
        config: ClientConfig | None = None,
        transport: HttpTransport | None = None,
        cache: BaseCacheBackend[EvaluationResult] | None = None,
    ) -> None:
        options = (api_key, base_url, cache_ttl, request_timeout)
        if config is not None:
            if any(option is not None for option in options):
                msg = "config cannot be combined with the individual options"
                raise TypeError(msg)
        else:
            config = ClientConfig.build(
                api_key,
                base_url=base_url,
                cache_ttl=cache_ttl,
                request_timeout=request_timeout,
            )

        self.config = config
        if transport is None:
            transport = HttpTransport(
                config.base_url, config.api_key, config.request_timeout
            )
        if cache is None:
            cache = MemoryBackend(
                ttl=config.cache_ttl / 1000,
                cleanup_interval=config.cleanup_interval / 1000,
            )
        self.transport = transport
        self.cache = cache
        self._closed = False

        logger.info("FeatureFlagClient initialized with base_url: %s", config.base_url)

    @classmethod
    def from_env(
        cls,
        base_url: str | None = None,
        cache_ttl: int | None = None,
        request_timeout: int | None = None,
        *,
        transport: HttpTransport | None = None,
        cache: BaseCacheBackend[EvaluationResult] | None = None,
    ) -> "FeatureFlagClient":
        """Build a client whose API key comes from FEATUREFLAGS_API_KEY.

        Options not passed here are read from ``FEATUREFLAGS_``-prefixed
        environment variables, then fall back to the defaults.
        """
        config = ClientConfig.from_env(
            base_url=base_url, cache_ttl=cache_ttl, request_timeout=request_timeout
        )
        return cls(config=config, transport=transport, cache=cache)

    @property
    def closed(self) -> bool:
        return self._closed

    async def get_boolean_flag(
        self, flag_key: str, user_id: str | None = None, default_value: bool = False
    ) -> bool:
        """Evaluate a boolean flag.

        Returns ``default_value`` if the flag is missing, is not a boolean flag,
        or cannot be evaluated.

        Raises:
            AuthenticationError: If the API key is rejected
        """
        return await self._get_typed(flag_key, user_id, default_value, FlagType.BOOLEAN)

    async def get_string_flag(
        self, flag_key: str, user_id: str | None = None, default_value: str = ""
    ) -> str:
        """Evaluate a string flag. See ``get_boolean_flag``."""
        return await self._get_typed(flag_key, user_id, default_value, FlagType.STRING)

    async def get_number_flag(
        self,
        flag_key: str,
        user_id: str | None = None,
        default_value: float = 0,
    ) -> float:
        """Evaluate a number flag. See ``get_boolean_flag``."""
        return await self._get_typed(flag_key, user_id, default_value, FlagType.NUMBER)

    async def get_all_flags(
        self, user_id: str | None = None
    ) -> dict[str, EvaluationResult]:
        """Evaluate every flag for a user and cache each result.

        Any error other than ``AuthenticationError`` discards the whole
        attempt and returns an empty mapping.
        """
        if self._closed:
            logger.warning("Bulk evaluation on a closed client, returning no flags")
            return {}
        self.cache.start()

        try:
            bulk = await self.transport.evaluate_all_flags(user_id)
        except AuthenticationError:
            logger.error("Bulk evaluation rejected: invalid or missing API key")
            raise
        except FeatureFlagError as e:
            logger.warning(
                "Bulk evaluation failed, returning no flags: [%s] %s", e.code, e
            )
            return {}

        # A close() during the request already shut the cache down
        if not self._closed:
            for flag_key, result in bulk.flags.items():
                self.cache.set(build_cache_key(flag_key, user_id), result)

        return dict(bulk.flags)

    def invalidate_cache(self, flag_key: str, user_id: str | None = None) -> None:
        """Drop the cached evaluation of one (flag, user) pair."""
        self.cache.delete(build_cache_key(flag_key, user_id))

    def clear_cache(self) -> None:
        self.cache.clear()

    async def close(self) -> None:
        """Stop the cache sweep and release the HTTP connection pool.

        The client must not be used afterwards.
        """
        if self._closed:
            return
        self._closed = True
        self.cache.shutdown()
        await self.transport.aclose()
        logger.info("FeatureFlagClient closed")

    async def __aenter__(self) -> "FeatureFlagClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def _get_typed(
        self, flag_key: str, user_id: str | None, default_value: V, expected: FlagType
    ) -> V:
        result = await self._evaluate(flag_key, user_id)
        if result is None:
            return default_value

        value = result.value
        if expected is FlagType.NUMBER:
            # bool is an int subclass but never a valid number
            matches = isinstance(value, (int, float)) and not isinstance(value, bool)
        elif expected is FlagType.BOOLEAN:
            matches = isinstance(value, bool)
        else:
            matches = isinstance(value, str)

        if result.type is not expected or not matches:
            logger.warning(
                "Flag %s is %s (%r), expected %s; using default",
                flag_key,
                result.type.value,
                value,
                expected.value,
            )
            return default_value

        return value  # type: ignore[return-value]

    async def _evaluate(
        self, flag_key: str, user_id: str | None
    ) -> EvaluationResult | None:
        """Cache-first evaluation; None means "use the default"."""
        if self._closed:
            logger.warning(
                "Evaluation of %s on a closed client, using default", flag_key
            )
            return None
        self.cache.start()

        cache_key = build_cache_key(flag_key, user_id)
        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.debug("Cache hit for %s", cache_key)
            return cached

        logger.debug("Cache miss for %s", cache_key)
        try:
            result = await self.transport.evaluate_flag(flag_key, user_id)
        except AuthenticationError:
            logger.error(
                "Evaluation of %s rejected: invalid or missing API key", flag_key
            )
            raise
        except FeatureFlagError as e:
            logger.warning(
                "Evaluation of %s failed, using default: [%s] %s", flag_key, e.code, e
            )
            return None

        if not self._closed:
            self.cache.set(cache_key, result)
        return result
