import os
from collections.abc import AsyncGenerator
from typing import Any

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI
from fastapi import Header
from fastapi.responses import JSONResponse

from featureflags.backends.memory import MemoryBackend
from featureflags.client import FeatureFlagClient
from featureflags.transport import HttpTransport
from featureflags.types import EvaluationResult

API_KEY = "ff_test_key123"
BASE_URL = "http://localhost:8081"

BOOLEAN_RESULT = {
    "flagKey": "dark-mode",
    "value": True,
    "type": "BOOLEAN",
    "isDefault": False,
    "variantId": "variant-1",
}
STRING_RESULT = {
    "flagKey": "theme",
    "value": "midnight",
    "type": "STRING",
    "isDefault": False,
    "variantId": "variant-2",
}
NUMBER_RESULT = {
    "flagKey": "max-items",
    "value": 50,
    "type": "NUMBER",
    "isDefault": False,
    "variantId": "variant-3",
}


class FakeClock:
    """Manually advanced monotonic clock, in seconds."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class StubAPI:
    """Scripted evaluation API for ``httpx.MockTransport``.

    Responses queued with ``respond`` are served in order; once the queue is
    empty every request gets a 404.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self._responses: list[Any] = []

    def respond(self, status_code: int = 200, json: Any = None, **kwargs: Any) -> None:
        self._responses.append(httpx.Response(status_code, json=json, **kwargs))

    def fail(self, exc: Exception) -> None:
        self._responses.append(exc)

    @property
    def calls(self) -> int:
        return len(self.requests)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self._responses:
            return httpx.Response(404, json={"error": "not_found"})

        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def transport(self, request_timeout: int = 10_000) -> HttpTransport:
        return HttpTransport(
            BASE_URL,
            API_KEY,
            request_timeout,
            transport=httpx.MockTransport(self.handler),
        )


def create_evaluation_app(
    flags: dict[str, dict[str, Any]], api_key: str = API_KEY
) -> FastAPI:
    """In-process stand-in for the evaluation API.

    Every request is recorded in ``app.state.requests`` as ``(path, user)``.
    """
    app = FastAPI()
    app.state.requests = []

    def unauthorized() -> JSONResponse:
        return JSONResponse(
            status_code=401,
            content={"error": "unauthorized", "message": "Invalid API key"},
        )

    @app.get("/evaluate/{flag_key}")
    async def evaluate_flag(
        flag_key: str,
        user: str | None = None,
        x_api_key: str | None = Header(default=None),
    ):
        app.state.requests.append((f"/evaluate/{flag_key}", user))
        if x_api_key != api_key:
            return unauthorized()
        if flag_key not in flags:
            return JSONResponse(
                status_code=404,
                content={"error": "not_found", "message": f"Flag not found: {flag_key}"},
            )
        return flags[flag_key]

    @app.get("/evaluate")
    async def evaluate_all(
        user: str | None = None,
        x_api_key: str | None = Header(default=None),
    ):
        app.state.requests.append(("/evaluate", user))
        if x_api_key != api_key:
            return unauthorized()
        return {"flags": flags}

    return app


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep FEATUREFLAGS_* variables of the host out of the tests."""
    for name in list(os.environ):
        if name.upper().startswith("FEATUREFLAGS_"):
            monkeypatch.delenv(name)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def stub_api() -> StubAPI:
    return StubAPI()


@pytest.fixture
def evaluation_app() -> FastAPI:
    return create_evaluation_app(
        {
            "dark-mode": BOOLEAN_RESULT,
            "theme": STRING_RESULT,
            "max-items": NUMBER_RESULT,
        }
    )


@pytest_asyncio.fixture
async def client(
    stub_api: StubAPI, clock: FakeClock
) -> AsyncGenerator[FeatureFlagClient, Any]:
    """Client with a 5 second cache TTL, talking to ``stub_api``."""
    cache: MemoryBackend[EvaluationResult] = MemoryBackend(ttl=5, clock=clock)
    client = FeatureFlagClient(
        API_KEY,
        base_url=BASE_URL,
        cache_ttl=5000,
        transport=stub_api.transport(),
        cache=cache,
    )
    yield client
    await client.close()
