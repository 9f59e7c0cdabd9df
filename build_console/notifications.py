"""Transient operator notifications (toasts).

A notification stays visible for a fixed display window, then enters a
short removal transition before it is detached. Notifications stack;
there is no deduplication and no queue limit.
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import Callable
from dataclasses import dataclass

from build_console.timers import Clock, TimerGroup
from build_console.types import NotificationState

logger = logging.getLogger(__name__)

# Display window and removal transition (seconds)
DISPLAY_SECONDS = 4.0
TRANSITION_SECONDS = 0.2


@dataclass
class Notification:
    """A single toast message."""

    id: int
    message: str
    is_error: bool
    created_at: float
    state: NotificationState = NotificationState.VISIBLE


Listener = Callable[[Notification], None]


class NotificationQueue:
    """Queue of self-expiring notifications."""

    def __init__(
        self,
        clock: Clock,
        display_seconds: float = DISPLAY_SECONDS,
        transition_seconds: float = TRANSITION_SECONDS,
    ) -> None:
        self._clock = clock
        self._timers = TimerGroup(clock)
        self._display = display_seconds
        self._transition = transition_seconds
        self._ids = itertools.count(1)
        self._items: list[Notification] = []
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> None:
        """Call ``listener`` whenever a notification is added or changes state."""
        self._listeners.append(listener)

    def notify(self, message: str, is_error: bool = False) -> Notification:
        """Show a notification and schedule its expiry.

        Args:
            message: Text to show.
            is_error: Whether to frame the message as an error.

        Returns:
            The created notification.
        """
        note = Notification(
            id=next(self._ids),
            message=message,
            is_error=is_error,
            created_at=self._clock.now(),
        )
        if is_error:
            logger.warning("Notification: %s", message)
        else:
            logger.info("Notification: %s", message)

        self._items.append(note)
        self._emit(note)
        self._timers.call_later(self._display, lambda: self._hide(note))
        return note

    def _hide(self, note: Notification) -> None:
        note.state = NotificationState.HIDING
        self._emit(note)
        self._timers.call_later(self._transition, lambda: self._remove(note))

    def _remove(self, note: Notification) -> None:
        note.state = NotificationState.REMOVED
        if note in self._items:
            self._items.remove(note)
        self._emit(note)

    def _emit(self, note: Notification) -> None:
        for listener in self._listeners:
            listener(note)

    @property
    def visible(self) -> list[Notification]:
        """Notifications still attached (visible or in their removal transition)."""
        return list(self._items)

    def close(self) -> None:
        """Cancel pending expiry timers."""
        self._timers.cancel_all()


__all__ = [
    "DISPLAY_SECONDS",
    "Notification",
    "NotificationQueue",
    "TRANSITION_SECONDS",
]
