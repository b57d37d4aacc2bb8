"""Short-lived status messages with timed, idempotent removal."""

from __future__ import annotations

import asyncio
import itertools
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

log = logging.getLogger(__name__)

DEFAULT_DURATION_SECONDS = 3.0

POLICY_STACK = "stack"
POLICY_REPLACE = "replace"
POLICIES = (POLICY_STACK, POLICY_REPLACE)

_ids = itertools.count(1)


class NotificationKind(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class Notification:
    message: str
    kind: NotificationKind
    duration: float
    created_at: float = field(default_factory=time.time)
    id: int = field(default_factory=lambda: next(_ids))


class NotificationQueue:
    """Displays notifications in post order and removes each after ``duration``.

    With the ``stack`` policy every notification owns its own removal timer
    and several may be visible at once. With ``replace`` a new post evicts
    whatever is showing.
    """

    def __init__(
        self,
        *,
        duration: float = DEFAULT_DURATION_SECONDS,
        policy: str = POLICY_STACK,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        if policy not in POLICIES:
            raise ValueError(f"unknown notification policy: {policy!r} (available: {list(POLICIES)})")
        self.duration = duration
        self.policy = policy
        self._loop = loop
        self._active: list[Notification] = []
        self._timers: dict[int, asyncio.TimerHandle] = {}
        self._listeners: list[Callable[[], None]] = []

    def subscribe(self, listener: Callable[[], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def active(self) -> tuple[Notification, ...]:
        return tuple(self._active)

    def post(self, message: str, kind: NotificationKind | str = NotificationKind.SUCCESS) -> Notification:
        note = Notification(message=message, kind=NotificationKind(kind), duration=self.duration)
        if self.policy == POLICY_REPLACE:
            for old in list(self._active):
                self._remove(old.id)
        self._active.append(note)
        loop = self._loop or asyncio.get_running_loop()
        self._timers[note.id] = loop.call_later(note.duration, self._remove, note.id)
        log.debug("notification %s: %s", note.kind.value, message)
        self._changed()
        return note

    def success(self, message: str) -> Notification:
        return self.post(message, NotificationKind.SUCCESS)

    def error(self, message: str) -> Notification:
        return self.post(message, NotificationKind.ERROR)

    def dismiss(self, note: Notification) -> bool:
        return self._remove(note.id)

    def clear(self) -> None:
        for note in list(self._active):
            self._remove(note.id)

    def _remove(self, note_id: int) -> bool:
        timer = self._timers.pop(note_id, None)
        if timer is not None:
            timer.cancel()
        before = len(self._active)
        self._active = [n for n in self._active if n.id != note_id]
        if len(self._active) == before:
            return False
        self._changed()
        return True

    def _changed(self) -> None:
        for listener in list(self._listeners):
            listener()
