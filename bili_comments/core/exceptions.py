"""Custom exception hierarchy for bili-comments."""

from typing import Optional


class BiliCommentsError(Exception):
    """Base exception for all bili-comments errors."""

    def __init__(self, message: str = "An error occurred in bili-comments"):
        self.message = message
        super().__init__(self.message)


class NetworkError(BiliCommentsError):
    """Base exception for network-related errors."""

    def __init__(self, message: str = "A network error occurred"):
        super().__init__(message)


class RequestFailedError(NetworkError):
    """Request still failing after all retry attempts."""

    def __init__(self, message: str = "Request failed"):
        super().__init__(message)


class RequestTimeoutError(NetworkError):
    """Request timed out on every retry attempt."""

    def __init__(self, message: str = "Request timed out, please try again later"):
        super().__init__(message)


class SigningKeyError(NetworkError):
    """Signing key fragments could not be obtained from the nav endpoint."""

    def __init__(self, message: str = "Failed to obtain WBI signing keys"):
        super().__init__(message)


class ApiError(BiliCommentsError):
    """Bilibili answered with a non-zero envelope code."""

    def __init__(self, code: int, message: str = "Bilibili API error", context: Optional[str] = None):
        self.code = code
        self.context = context
        prefix = f"{context} " if context else ""
        super().__init__(f"{prefix}Bilibili API error ({code}): {message}")


class InvalidInputError(BiliCommentsError):
    """Tool arguments rejected before any network call."""

    def __init__(self, message: str = "Invalid input"):
        super().__init__(message)


class DataError(BiliCommentsError):
    """Base exception for data-related errors."""

    def __init__(self, message: str = "A data error occurred"):
        super().__init__(message)


class ConfigError(DataError):
    """Configuration is invalid or missing."""

    def __init__(self, message: str = "Configuration error"):
        super().__init__(message)
