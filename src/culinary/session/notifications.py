"""Transient, self-expiring status messages."""

import time
from typing import Callable, Optional

from culinary.models.models import StatusKind, StatusMessage


class NotificationCenter:
    """Holds at most one status message at a time.

    A shown message replaces the previous one and expires ``duration``
    seconds later. Expiry is evaluated when ``current`` is read, so no timer
    task is needed.
    """

    def __init__(self, duration: float = 3.0, clock: Optional[Callable[[], float]] = None) -> None:
        if duration <= 0:
            raise ValueError(f"duration must be positive, got: {duration}")
        self.duration = duration
        self._clock = clock or time.monotonic
        self._message: Optional[StatusMessage] = None
        self._shown_at = 0.0

    def show(self, text: str, kind: StatusKind = StatusKind.INFO) -> StatusMessage:
        """Replace the current message."""
        self._message = StatusMessage(text=text, kind=kind)
        self._shown_at = self._clock()
        return self._message

    def clear(self) -> None:
        self._message = None

    @property
    def current(self) -> Optional[StatusMessage]:
        """The active message, or None once it has expired."""
        if self._message is None:
            return None
        if self._clock() - self._shown_at >= self.duration:
            self._message = None
        return self._message
