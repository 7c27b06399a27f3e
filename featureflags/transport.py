"""HTTP transport for the flag evaluation API."""

import asyncio
from logging import getLogger
from typing import Any
from typing import TypeVar
from urllib.parse import quote

import httpx
from pydantic import BaseModel
from pydantic import SecretStr

from featureflags.exceptions import AuthenticationError
from featureflags.exceptions import FeatureFlagError
from featureflags.exceptions import FlagNotFoundError
from featureflags.types import BulkEvaluationResult
from featureflags.types import EvaluationResult

M = TypeVar("M", bound=BaseModel)

logger = getLogger(__name__)


class HttpTransport:
    """Issue evaluation requests and classify their failures.

    Every request carries the ``X-API-Key`` header and is bounded by
    ``request_timeout`` milliseconds. Failures are raised as
    ``FeatureFlagError`` subclasses; nothing is cached here.

    Args:
        base_url: Evaluation API base URL
        api_key: Environment API key
        request_timeout: Request timeout in milliseconds
        transport: Optional httpx transport, used by tests to stub the API
    """

    def __init__(
        self,
        base_url: str,
        api_key: str | SecretStr,
        request_timeout: int,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if isinstance(api_key, SecretStr):
            api_key = api_key.get_secret_value()

        self.base_url = base_url.rstrip("/")
        self.request_timeout = request_timeout
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"X-API-Key": api_key, "Accept": "application/json"},
            timeout=httpx.Timeout(request_timeout / 1000),
            transport=transport,
        )

    async def evaluate_flag(
        self, flag_key: str, user_id: str | None = None
    ) -> EvaluationResult:
        """Evaluate a single flag, optionally for a user."""
        body = await self._request(f"/evaluate/{quote(flag_key, safe='')}", user_id)
        return self._parse(EvaluationResult, body)

    async def evaluate_all_flags(
        self, user_id: str | None = None
    ) -> BulkEvaluationResult:
        """Evaluate every flag of the environment, optionally for a user."""
        body = await self._request("/evaluate", user_id)
        return self._parse(BulkEvaluationResult, body)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, path: str, user_id: str | None) -> Any:
        params = {"user": user_id} if user_id else None
        logger.debug("GET %s%s user=%s", self.base_url, path, user_id)

        try:
            response = await asyncio.wait_for(
                self._client.get(path, params=params),
                timeout=self.request_timeout / 1000,
            )
        except (httpx.TimeoutException, asyncio.TimeoutError) as e:
            msg = f"Request timed out after {self.request_timeout}ms"
            raise FeatureFlagError(msg, "timeout") from e
        except httpx.RequestError as e:
            msg = f"Network error: {e}"
            raise FeatureFlagError(msg, "network_error") from e

        if response.is_success:
            try:
                return response.json()
            except ValueError as e:
                msg = f"API error ({response.status_code}): response is not valid JSON"
                raise FeatureFlagError(
                    msg, "internal_error", response.status_code
                ) from e

        message = self._error_message(response)
        if response.status_code == 401:
            raise AuthenticationError(message)
        if response.status_code == 404:
            raise FlagNotFoundError(message)

        msg = f"API error ({response.status_code}): {message}"
        raise FeatureFlagError(msg, "internal_error", response.status_code)

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        """Prefer the body's ``message``, then ``error``, then the reason phrase."""
        try:
            body = response.json()
        except ValueError:
            return response.reason_phrase

        if isinstance(body, dict):
            for field in ("message", "error"):
                if body.get(field) is not None:
                    return str(body[field])
        return response.reason_phrase

    @staticmethod
    def _parse(model: type[M], body: Any) -> M:
        try:
            return model.model_validate(body)
        except ValueError as e:
            msg = f"API error: unexpected response body ({e.__class__.__name__})"
            raise FeatureFlagError(msg, "internal_error") from e
