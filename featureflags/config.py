"""Client configuration settings."""

from typing import Any

from pydantic import Field
from pydantic import SecretStr
from pydantic import ValidationError
from pydantic import field_validator
from pydantic_settings import BaseSettings
from pydantic_settings import SettingsConfigDict

from featureflags.exceptions import FeatureFlagError

API_KEY_PREFIX = "ff_"
DEFAULT_BASE_URL = "https://strong-lorena-07manan-b3c1d402.koyeb.app"
INVALID_API_KEY_MESSAGE = f'Invalid API key: must start with "{API_KEY_PREFIX}"'


class ClientConfig(BaseSettings):
    """Feature flag client configuration settings.

    Every field can be set from a ``FEATUREFLAGS_``-prefixed environment
    variable (``FEATUREFLAGS_API_KEY``, ``FEATUREFLAGS_BASE_URL``, ...);
    explicit arguments take precedence over the environment. Durations are in
    milliseconds to match the evaluation service's other SDKs.
    """

    model_config = SettingsConfigDict(env_prefix="FEATUREFLAGS_", extra="ignore")

    api_key: SecretStr = Field(
        ...,
        description="Environment API key, must start with 'ff_'",
    )
    base_url: str = Field(
        default=DEFAULT_BASE_URL,
        description="Evaluation API base URL (blank means default)",
    )
    cache_ttl: int = Field(
        default=30_000,
        ge=0,
        description="How long an evaluation stays cached, in milliseconds",
    )
    request_timeout: int = Field(
        default=10_000,
        gt=0,
        description="Per-request timeout in milliseconds",
    )
    cleanup_interval: int = Field(
        default=30_000,
        gt=0,
        description="Interval of the expired entry sweep in milliseconds",
    )

    @field_validator("api_key")
    @classmethod
    def _check_api_key_prefix(cls, value: SecretStr) -> SecretStr:
        if not value.get_secret_value().startswith(API_KEY_PREFIX):
            msg = f"API key must start with '{API_KEY_PREFIX}'"
            raise ValueError(msg)
        return value

    @field_validator("base_url", mode="before")
    @classmethod
    def _normalize_base_url(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip()
            return value.rstrip("/") if value else DEFAULT_BASE_URL
        return value

    @classmethod
    def build(
        cls,
        api_key: str | SecretStr | None,
        base_url: str | None = None,
        cache_ttl: int | None = None,
        request_timeout: int | None = None,
        cleanup_interval: int | None = None,
    ) -> "ClientConfig":
        """Build a config from an explicit API key.

        Options left unset (or a blank ``base_url``) come from the environment,
        then from the defaults.

        Raises:
            FeatureFlagError: If the API key is empty or lacks the ``ff_`` prefix
        """
        if api_key is None:
            raise FeatureFlagError(INVALID_API_KEY_MESSAGE, "invalid_api_key")
        return cls._create(
            {"api_key": api_key},
            base_url=base_url,
            cache_ttl=cache_ttl,
            request_timeout=request_timeout,
            cleanup_interval=cleanup_interval,
        )

    @classmethod
    def from_env(
        cls,
        base_url: str | None = None,
        cache_ttl: int | None = None,
        request_timeout: int | None = None,
        cleanup_interval: int | None = None,
    ) -> "ClientConfig":
        """Build a config whose API key comes from FEATUREFLAGS_API_KEY.

        Raises:
            FeatureFlagError: If the variable is missing or holds an invalid key
        """
        return cls._create(
            {},
            base_url=base_url,
            cache_ttl=cache_ttl,
            request_timeout=request_timeout,
            cleanup_interval=cleanup_interval,
        )

    @classmethod
    def _create(cls, values: dict[str, Any], **options: Any) -> "ClientConfig":
        if options.get("base_url") is not None and not options["base_url"].strip():
            options["base_url"] = None
        values.update({k: v for k, v in options.items() if v is not None})

        try:
            return cls(**values)
        except ValidationError as e:
            if any(error["loc"][:1] == ("api_key",) for error in e.errors()):
                raise FeatureFlagError(
                    INVALID_API_KEY_MESSAGE, "invalid_api_key"
                ) from e
            raise
