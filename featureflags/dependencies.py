"""FastAPI integration for the feature flag client."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends

from .client import FeatureFlagClient
from .proxy import ClientProxy


def get_flag_client() -> FeatureFlagClient:
    """FastAPI dependency returning the installed feature flag client."""
    return ClientProxy.get_client()


FlagClient = Annotated[FeatureFlagClient, Depends(get_flag_client)]


@asynccontextmanager
async def flag_client_lifespan(
    client: FeatureFlagClient,
) -> AsyncIterator[FeatureFlagClient]:
    """Install ``client`` for the lifetime of an application and close it on teardown.

    Example:
        @asynccontextmanager
        async def lifespan(app: FastAPI):
            async with flag_client_lifespan(FeatureFlagClient.from_env()):
                yield

        app = FastAPI(lifespan=lifespan)
    """
    ClientProxy.set_client(client)
    try:
        client.cache.start()
        yield client
    finally:
        ClientProxy.set_client(None)
        await client.close()
