"""Cooperative cancellation for a fulfillment run."""

import threading
import time


class CancellationToken:
    """Cancelled explicitly with ``cancel()`` or implicitly once its deadline passes.

    The pipeline polls ``is_cancelled`` between stages; nothing is interrupted
    mid-call.
    """

    def __init__(self, timeout_seconds: float | None = None):
        self._event = threading.Event()
        self._deadline = None if timeout_seconds is None else time.monotonic() + timeout_seconds
        self.reason: str | None = None

    def cancel(self, reason: str = "Fulfillment cancelled") -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    @property
    def is_cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._deadline is not None and time.monotonic() >= self._deadline:
            self.cancel("Fulfillment deadline exceeded")
            return True
        return False
