"""Periodic and on-demand refresh of the three store slots."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

from .api import ApiClient, FetchResult
from .notify import NotificationQueue
from .store import ViewStore

log = logging.getLogger(__name__)

DEFAULT_REFRESH_SECONDS = 5.0


@dataclass(frozen=True)
class RefreshOutcome:
    updated: tuple[str, ...]
    failed: tuple[str, ...]
    discarded: tuple[str, ...] = ()

    @property
    def partial(self) -> bool:
        return bool(self.updated) and bool(self.failed)


class Synchronizer:
    """Drives refresh cycles against the API and writes results into the store.

    ``start()`` performs an initial refresh and then spawns ``refresh_all()``
    every ``interval`` seconds without waiting for the previous cycle, so a
    slow cycle may overlap the next one. With ``discard_stale`` each slot
    fetch carries a store token and out-of-order completions are dropped.
    """

    def __init__(
        self,
        api: ApiClient,
        store: ViewStore,
        notifications: NotificationQueue | None = None,
        *,
        interval: float = DEFAULT_REFRESH_SECONDS,
        discard_stale: bool = False,
    ) -> None:
        self.api = api
        self.store = store
        self.notifications = notifications
        self.interval = interval
        self.discard_stale = discard_stale
        self._timer: asyncio.Task[None] | None = None
        self._inflight: set[asyncio.Task[RefreshOutcome]] = set()

    @property
    def running(self) -> bool:
        return self._timer is not None and not self._timer.done()

    async def refresh_all(self) -> RefreshOutcome:
        slots: list[tuple[str, Callable[[], Awaitable[FetchResult]], Callable[..., bool]]] = [
            ("config", self.api.get_config, self.store.replace_config),
            ("jobs", self.api.get_jobs, self.store.replace_jobs),
            ("stats", self.api.get_stats, self.store.replace_stats),
        ]
        results = await asyncio.gather(
            *(self._refresh_slot(slot, fetch, apply) for slot, fetch, apply in slots),
            return_exceptions=True,
        )

        updated: list[str] = []
        failed: list[str] = []
        discarded: list[str] = []
        for (slot, _, _), result in zip(slots, results):
            if isinstance(result, BaseException):
                if isinstance(result, asyncio.CancelledError):
                    raise result
                log.error("unexpected error refreshing %s", slot, exc_info=result)
                self._report(slot, str(result))
                failed.append(slot)
            elif result == "updated":
                updated.append(slot)
            elif result == "discarded":
                discarded.append(slot)
            else:
                failed.append(slot)

        outcome = RefreshOutcome(tuple(updated), tuple(failed), tuple(discarded))
        log.debug("refresh cycle: updated=%s failed=%s", outcome.updated, outcome.failed)
        return outcome

    async def _refresh_slot(
        self,
        slot: str,
        fetch: Callable[[], Awaitable[FetchResult]],
        apply: Callable[..., bool],
    ) -> str:
        token = self.store.next_token(slot) if self.discard_stale else None
        result = await fetch()
        if not result.ok:
            log.warning("failed to load %s: %s", slot, result.error)
            self._report(slot, str(result.error))
            return "failed"
        if not apply(result.value, token=token):
            log.debug("discarded stale %s response (token %s)", slot, token)
            return "discarded"
        return "updated"

    def _report(self, slot: str, detail: str) -> None:
        if self.notifications is not None:
            self.notifications.error(f"Failed to load {slot}: {detail}")

    def spawn_refresh(self) -> asyncio.Task[RefreshOutcome]:
        task = asyncio.get_running_loop().create_task(self.refresh_all())
        self._inflight.add(task)
        task.add_done_callback(self._refresh_done)
        return task

    def _refresh_done(self, task: asyncio.Task[RefreshOutcome]) -> None:
        self._inflight.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            log.error("refresh cycle crashed", exc_info=exc)

    def start(self) -> None:
        if self.running:
            raise RuntimeError("synchronizer already started")
        self._timer = asyncio.get_running_loop().create_task(self._tick_forever())

    async def _tick_forever(self) -> None:
        self.spawn_refresh()
        while True:
            await asyncio.sleep(self.interval)
            self.spawn_refresh()

    async def stop(self) -> None:
        timer, self._timer = self._timer, None
        if timer is not None:
            timer.cancel()
            try:
                await timer
            except asyncio.CancelledError:
                pass
        if self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)
