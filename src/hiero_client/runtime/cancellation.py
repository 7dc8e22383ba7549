"""
Cooperative cancellation for blocking executions.
"""

import threading
from typing import Optional

from .errors import ExecutionCancelledError


class CancellationToken:
    """
    A cancel flag an execution checks between and during attempts.

    The harness sleeps through `wait`, so cancelling wakes it immediately
    instead of after the current backoff delay.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        """Request cancellation. Safe to call from any thread, any number of times."""
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: Optional[float]) -> bool:
        """
        Sleep up to `timeout` seconds.

        Returns:
            True if cancellation was requested (before or during the wait)
        """
        if timeout is not None and timeout <= 0:
            return self._event.is_set()
        return self._event.wait(timeout)

    def raise_if_cancelled(self) -> None:
        """
        Raises:
            ExecutionCancelledError: If cancellation was requested
        """
        if self._event.is_set():
            raise ExecutionCancelledError()


__all__ = ["CancellationToken"]
