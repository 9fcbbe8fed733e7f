"""
Defines custom exceptions for the application to allow for more specific error handling.
"""


class TunelinkError(Exception):
    """Base exception for all application-specific errors."""

    def __init__(self, message: str = "") -> None:
        self.message = message
        super().__init__(message)


class ConfigurationError(TunelinkError):
    """Raised for issues related to configuration loading or validation."""


class InvalidInputError(TunelinkError):
    """Raised when a source URL is malformed or carries no usable track ID."""


class AuthenticationError(TunelinkError):
    """Raised when the session cookie is rejected or has expired."""


class NotFoundError(TunelinkError):
    """Raised when no platform link or track record exists for a request."""


class TrackNotFoundError(NotFoundError):
    """Raised when the platform has no track record for the requested ID."""


class MediaResolutionError(TunelinkError):
    """
    Raised when the media service reports an error instead of a stream URL.
    The provider's message is preserved verbatim.
    """


class TransportError(TunelinkError):
    """Raised for network failures and non-success HTTP statuses."""

    def __init__(self, message: str = "", status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class DecodeError(TransportError):
    """Raised when a response body cannot be decoded as the expected JSON."""


class CancellationError(TunelinkError):
    """Raised when the caller aborts a request through its cancel token."""


class TagEncodingError(TunelinkError):
    """Raised when a tag frame cannot be constructed from the given metadata."""


class AllPlatformsFailedError(TunelinkError):
    """
    Raised when every candidate platform failed to deliver the audio.

    Attributes:
        attempts: ``(platform, error)`` pairs in the order they were tried.
    """

    def __init__(
        self, message: str, attempts: list[tuple[str, Exception]] | None = None
    ) -> None:
        super().__init__(message)
        self.attempts = attempts or []

    @property
    def last_error(self) -> Exception | None:
        return self.attempts[-1][1] if self.attempts else None


class MetadataWarning(TunelinkError):
    """
    A non-fatal tagging problem, such as a failed cover fetch.

    Never raised; instances are collected on the tagging result.
    """
