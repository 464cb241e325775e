"""
Cooperative cancellation token shared by every pipeline stage.

Cancellation is advisory: stages poll the token at loop boundaries and
after each await, and never interrupt a call that is already running.
"""
import threading


class CancellationToken:
    """A one-way flag that can be set from any thread."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        """Request cancellation."""
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def __repr__(self):
        return f"<CancellationToken(cancelled={self.is_cancelled})>"
