"""Cooperative cancellation for an orchestration run."""

import threading

from council.errors import CancellationRequested


class CancellationToken:
    """Thread-safe flag checked by the orchestrator at every state transition."""

    def __init__(self):
        self._event = threading.Event()
        self.reason = ""

    def cancel(self, reason: str = "cancelled by caller") -> None:
        self.reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise CancellationRequested(self.reason)
