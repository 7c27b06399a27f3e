"""End-to-end tests against an in-process evaluation API."""

from collections.abc import AsyncGenerator
from typing import Any

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI

from featureflags.backends.memory import MemoryBackend
from featureflags.client import FeatureFlagClient
from featureflags.exceptions import AuthenticationError
from featureflags.transport import HttpTransport

from .conftest import API_KEY
from .conftest import BASE_URL
from .conftest import FakeClock


def asgi_transport(app: FastAPI, api_key: str = API_KEY) -> HttpTransport:
    return HttpTransport(
        BASE_URL, api_key, 10_000, transport=httpx.ASGITransport(app=app)
    )


@pytest_asyncio.fixture
async def flag_client(
    evaluation_app: FastAPI, clock: FakeClock
) -> AsyncGenerator[FeatureFlagClient, Any]:
    client = FeatureFlagClient(
        API_KEY,
        cache_ttl=1000,
        transport=asgi_transport(evaluation_app),
        cache=MemoryBackend(ttl=1, clock=clock),
    )
    yield client
    await client.close()


@pytest.mark.asyncio
async def test_typed_getters(flag_client: FeatureFlagClient, evaluation_app: FastAPI):
    assert await flag_client.get_boolean_flag("dark-mode", "user-42") is True
    assert await flag_client.get_string_flag("theme", "user-42") == "midnight"
    assert await flag_client.get_number_flag("max-items", "user-42") == 50

    assert evaluation_app.state.requests == [
        ("/evaluate/dark-mode", "user-42"),
        ("/evaluate/theme", "user-42"),
        ("/evaluate/max-items", "user-42"),
    ]


@pytest.mark.asyncio
async def test_unknown_flag_uses_default(
    flag_client: FeatureFlagClient, evaluation_app: FastAPI
):
    assert await flag_client.get_string_flag("missing", None, "fallback") == "fallback"
    assert await flag_client.get_string_flag("missing", None, "fallback") == "fallback"

    assert len(evaluation_app.state.requests) == 2


@pytest.mark.asyncio
async def test_bulk_then_single_lookups_hit_cache(
    flag_client: FeatureFlagClient, evaluation_app: FastAPI, clock: FakeClock
):
    flags = await flag_client.get_all_flags("user-42")

    assert set(flags) == {"dark-mode", "theme", "max-items"}
    assert await flag_client.get_boolean_flag("dark-mode", "user-42") is True
    assert await flag_client.get_number_flag("max-items", "user-42") == 50
    assert evaluation_app.state.requests == [("/evaluate", "user-42")]

    clock.advance(2)
    assert await flag_client.get_boolean_flag("dark-mode", "user-42") is True
    assert evaluation_app.state.requests[-1] == ("/evaluate/dark-mode", "user-42")


@pytest.mark.asyncio
async def test_anonymous_evaluation(
    flag_client: FeatureFlagClient, evaluation_app: FastAPI
):
    await flag_client.get_all_flags()

    assert await flag_client.get_string_flag("theme") == "midnight"
    assert evaluation_app.state.requests == [("/evaluate", None)]


@pytest.mark.asyncio
async def test_wrong_api_key_raises(evaluation_app: FastAPI):
    client = FeatureFlagClient(
        "ff_wrong_key", transport=asgi_transport(evaluation_app, "ff_wrong_key")
    )

    with pytest.raises(AuthenticationError, match="Invalid API key"):
        await client.get_boolean_flag("dark-mode", "user-42")
    with pytest.raises(AuthenticationError):
        await client.get_all_flags("user-42")

    await client.close()
