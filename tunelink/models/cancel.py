"""Cancellation token for in-flight requests."""

import threading

from tunelink.exceptions import CancellationError


class CancelToken:
    """Thread-safe cancellation token using threading.Event.

    Tokens are single-use; once cancelled, create a new token for the
    next request.

    Example:
        >>> token = CancelToken()
        >>> # In the delivery surface:
        >>> token.cancel()
        >>> # In the download loop:
        >>> token.raise_if_cancelled()
        Traceback (most recent call last):
        ...
        tunelink.exceptions.CancellationError: Request was cancelled.
    """

    __slots__ = ("_event",)

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        """Signal that the request should be aborted. Safe from any thread."""
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        """Raise CancellationError if cancel() has been called."""
        if self._event.is_set():
            raise CancellationError("Request was cancelled.")
