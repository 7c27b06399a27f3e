"""Client proxy for sharing one flag client across an application."""

from logging import getLogger

from .client import FeatureFlagClient
from .exceptions import ClientNotFoundError

_default_client: FeatureFlagClient | None = None
logger = getLogger(__name__)


class ClientProxy:
    """Holds the application's feature flag client."""

    @staticmethod
    def get_client() -> FeatureFlagClient:
        """Get the current client instance.

        Returns:
            The current feature flag client

        Raises:
            ClientNotFoundError: If no client has been set
        """
        if _default_client is None:
            msg = "Feature flag client is not set. Please set the client first."
            raise ClientNotFoundError(msg)

        return _default_client

    @staticmethod
    def set_client(client: FeatureFlagClient | None) -> None:
        """Set the client used by the FastAPI dependencies.

        Args:
            client: The client to share, or None to clear the current one
        """
        global _default_client
        logger.info(
            "Setting feature flag client to: <%s>",
            client.config.base_url if client else "None",
        )
        _default_client = client
