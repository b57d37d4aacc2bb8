"""Last-known server snapshots plus the client-local job filter."""

from __future__ import annotations

import itertools
import logging
import threading
from typing import Callable, Iterable

from .models import Config, Job, JobFilter, Stats

log = logging.getLogger(__name__)

SLOTS = ("jobs", "stats", "config")


class ViewStore:
    """Three independently replaced slots (jobs, stats, config) and a filter.

    Each ``replace_*`` call swaps the whole slot value at once. When a
    ``token`` from :meth:`next_token` is passed, a completion older than the
    last applied one for that slot is discarded and the call returns False.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._jobs: tuple[Job, ...] = ()
        self._stats: Stats | None = None
        self._config: Config | None = None
        self._filter = JobFilter.ALL
        self._counters = {slot: itertools.count(1) for slot in SLOTS}
        self._applied = {slot: 0 for slot in SLOTS}
        self._listeners: list[Callable[[str], None]] = []

    @property
    def jobs(self) -> tuple[Job, ...]:
        return self._jobs

    @property
    def stats(self) -> Stats | None:
        return self._stats

    @property
    def config(self) -> Config | None:
        return self._config

    @property
    def filter(self) -> JobFilter:
        return self._filter

    def subscribe(self, listener: Callable[[str], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def next_token(self, slot: str) -> int:
        with self._lock:
            return next(self._counters[slot])

    def replace_jobs(self, jobs: Iterable[Job], *, token: int | None = None) -> bool:
        return self._replace("jobs", tuple(jobs), token)

    def replace_stats(self, stats: Stats, *, token: int | None = None) -> bool:
        return self._replace("stats", stats, token)

    def replace_config(self, config: Config, *, token: int | None = None) -> bool:
        return self._replace("config", config, token)

    def set_filter(self, value: JobFilter | str) -> JobFilter:
        self._filter = JobFilter(value)
        self._notify("filter")
        return self._filter

    def visible_jobs(self) -> tuple[Job, ...]:
        jobs, current = self._jobs, self._filter
        if current is JobFilter.ALL:
            return jobs
        return tuple(job for job in jobs if current.matches(job.status))

    def snapshot(self) -> dict[str, object]:
        return {
            "filter": self._filter.value,
            "config": self._config.to_dict() if self._config else None,
            "stats": self._stats.to_dict() if self._stats else None,
            "jobs": [job.to_dict() for job in self.visible_jobs()],
        }

    def _replace(self, slot: str, value: object, token: int | None) -> bool:
        with self._lock:
            if token is not None:
                if token < self._applied[slot]:
                    return False
                self._applied[slot] = token
            setattr(self, "_" + slot, value)
        self._notify(slot)
        return True

    def _notify(self, what: str) -> None:
        # slot is already swapped; listener errors are logged, not raised
        for listener in list(self._listeners):
            try:
                listener(what)
            except Exception:
                log.exception("store listener failed after %s change", what)
