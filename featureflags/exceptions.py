from typing import Literal

ErrorCode = Literal[
    "invalid_api_key",
    "timeout",
    "network_error",
    "internal_error",
    "unknown_error",
    "unauthorized",
    "not_found",
]


class FeatureFlagError(Exception):
    """Base class for all exceptions raised by the feature flag client.

    Args:
        message: Human readable description of the failure
        code: Machine readable cause of the failure
        status_code: HTTP status of the response that caused it, if any
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = "unknown_error",
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, code={self.code!r})"


class AuthenticationError(FeatureFlagError):
    """Raised when the API key is rejected by the evaluation service."""

    def __init__(
        self,
        message: str = "Invalid or missing API key",
        status_code: int | None = 401,
    ) -> None:
        super().__init__(message, "unauthorized", status_code)


class FlagNotFoundError(FeatureFlagError):
    """Raised when the requested flag does not exist."""

    def __init__(self, message: str, status_code: int | None = 404) -> None:
        super().__init__(message, "not_found", status_code)


class ClientNotFoundError(Exception):
    """Raised when no client has been installed in the proxy."""
