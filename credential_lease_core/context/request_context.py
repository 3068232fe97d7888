"""
Request context carrying cancellation and deadline for one host request.

The host creates one RequestContext per inbound request and passes it down to
every remote call. Retry waits block on the context's event, so cancelling the
context wakes them immediately.
"""

import threading
import time
from typing import Optional

from ..exceptions import OperationCancelledError


class RequestContext:
    """Cancellation signal plus an optional absolute deadline (monotonic clock)."""

    def __init__(self, timeout: Optional[float] = None):
        """
        Args:
            timeout: Seconds from now after which the context counts as expired.
                     None means no deadline.
        """
        self._cancelled = threading.Event()
        self.deadline: Optional[float] = time.monotonic() + timeout if timeout is not None else None

    @classmethod
    def background(cls) -> "RequestContext":
        """A context that is never cancelled and has no deadline."""
        return cls()

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None without a deadline."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    @property
    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    def check(self, operation: str = "request") -> None:
        """Raise OperationCancelledError if cancelled or past the deadline."""
        if self.cancelled:
            raise OperationCancelledError(f"{operation} cancelled", operation=operation)
        if self.expired:
            raise OperationCancelledError(
                f"{operation} deadline exceeded", operation=operation, reason="deadline"
            )

    def wait(self, seconds: float, operation: str = "request") -> None:
        """
        Sleep for up to `seconds`, waking early on cancellation.

        Raises:
            OperationCancelledError: If the context is cancelled or the deadline
                passes before or during the wait
        """
        remaining = self.remaining()
        if remaining is not None and remaining < seconds:
            self._cancelled.wait(remaining)
            self.check(operation)
            raise OperationCancelledError(
                f"{operation} deadline exceeded", operation=operation, reason="deadline"
            )

        if self._cancelled.wait(seconds):
            self.check(operation)
