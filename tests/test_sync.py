from __future__ import annotations

import asyncio

import requests

from tests.fakes import BASE, FakeResponse, FakeSession, healthy_routes
from jobdash.api import ApiClient, FetchResult, TransportError
from jobdash.models import Config, Stats
from jobdash.notify import NotificationKind, NotificationQueue
from jobdash.store import ViewStore
from jobdash.sync import Synchronizer


def test_refresh_all_fills_every_slot(api: ApiClient) -> None:
    store = ViewStore()

    outcome = asyncio.run(Synchronizer(api, store).refresh_all())

    assert sorted(outcome.updated) == ["config", "jobs", "stats"]
    assert outcome.failed == ()
    assert store.config == Config(3)
    assert len(store.jobs) == 3
    assert store.stats is not None and store.stats.total == 9


def test_failing_stats_does_not_block_other_slots() -> None:
    routes = healthy_routes()
    routes[("GET", "/stats")] = requests.ConnectionError("refused")
    api = ApiClient(BASE, session=FakeSession(routes))
    store = ViewStore()
    previous = Stats(queued_count=7)
    store.replace_stats(previous)

    async def scenario():
        notes = NotificationQueue(duration=5)
        outcome = await Synchronizer(api, store, notes).refresh_all()
        messages = [(n.kind, n.message) for n in notes.active()]
        notes.clear()
        return outcome, messages

    outcome, messages = asyncio.run(scenario())

    assert outcome.failed == ("stats",)
    assert outcome.partial
    assert store.stats == previous
    assert store.config == Config(3)
    assert [job.id for job in store.jobs] == [1, 2, 3]
    assert len(messages) == 1
    kind, message = messages[0]
    assert kind is NotificationKind.ERROR
    assert message.startswith("Failed to load stats")


def test_malformed_jobs_keeps_previous_list() -> None:
    routes = healthy_routes()
    api = ApiClient(BASE, session=FakeSession(routes))
    store = ViewStore()
    asyncio.run(Synchronizer(api, store).refresh_all())
    before = store.jobs

    routes[("GET", "/jobs")] = FakeResponse(200, [{"id": 9, "status": "queued"}])
    api = ApiClient(BASE, session=FakeSession(routes))
    outcome = asyncio.run(Synchronizer(api, store).refresh_all())

    assert outcome.failed == ("jobs",)
    assert store.jobs == before


class ScriptedApi:
    """Returns queued results; each call can be held back until released."""

    def __init__(self) -> None:
        self.config_calls = 0
        self.gates: list[asyncio.Event] = []
        self.values: list[int] = []
        self.fail_reads = False

    async def get_config(self) -> FetchResult:
        idx = self.config_calls
        self.config_calls += 1
        if idx < len(self.gates):
            await self.gates[idx].wait()
            return FetchResult(value=Config(self.values[idx]))
        if self.fail_reads:
            return FetchResult(error=TransportError("down"))
        return FetchResult(value=Config(1))

    async def get_jobs(self) -> FetchResult:
        if self.fail_reads:
            return FetchResult(error=TransportError("down"))
        return FetchResult(value=())

    async def get_stats(self) -> FetchResult:
        if self.fail_reads:
            return FetchResult(error=TransportError("down"))
        return FetchResult(value=Stats())


def _out_of_order(discard_stale: bool) -> tuple[Config | None, list[tuple[str, ...]]]:
    async def scenario():
        api = ScriptedApi()
        api.gates = [asyncio.Event(), asyncio.Event()]
        api.values = [10, 20]
        store = ViewStore()
        sync = Synchronizer(api, store, discard_stale=discard_stale)

        first = asyncio.ensure_future(sync.refresh_all())
        await asyncio.sleep(0)
        second = asyncio.ensure_future(sync.refresh_all())
        await asyncio.sleep(0)

        api.gates[1].set()
        newer = await second
        api.gates[0].set()
        older = await first
        return store.config, [newer.updated, older.discarded]

    return asyncio.run(scenario())


def test_last_arrival_wins_by_default() -> None:
    config, _ = _out_of_order(discard_stale=False)
    assert config == Config(10)


def test_stale_guard_drops_out_of_order_completion() -> None:
    config, (newer_updated, older_discarded) = _out_of_order(discard_stale=True)

    assert config == Config(20)
    assert "config" in newer_updated
    assert older_discarded == ("config",)


def test_timer_keeps_firing_after_failures() -> None:
    async def scenario() -> tuple[int, bool]:
        api = ScriptedApi()
        api.fail_reads = True
        notes = NotificationQueue(duration=0.01)
        sync = Synchronizer(api, ViewStore(), notes, interval=0.02)
        sync.start()
        await asyncio.sleep(0.15)
        await sync.stop()
        return api.config_calls, sync.running

    calls, running = asyncio.run(scenario())
    assert calls >= 3
    assert not running


def test_stop_halts_the_timer() -> None:
    async def scenario() -> tuple[int, int]:
        api = ScriptedApi()
        sync = Synchronizer(api, ViewStore(), interval=0.02)
        sync.start()
        await asyncio.sleep(0.05)
        await sync.stop()
        stopped_at = api.config_calls
        await asyncio.sleep(0.1)
        return stopped_at, api.config_calls

    stopped_at, later = asyncio.run(scenario())
    assert stopped_at >= 1
    assert later == stopped_at


def test_start_twice_is_an_error() -> None:
    async def scenario() -> str:
        sync = Synchronizer(ScriptedApi(), ViewStore(), interval=1)
        sync.start()
        try:
            sync.start()
        except RuntimeError as exc:
            return str(exc)
        finally:
            await sync.stop()
        return ""

    assert "already started" in asyncio.run(scenario())


def test_listener_error_still_counts_slot_as_updated(api: ApiClient) -> None:
    store = ViewStore()

    def boom(what: str) -> None:
        raise RuntimeError("redraw failed")

    store.subscribe(boom)

    async def scenario():
        notes = NotificationQueue(duration=5)
        outcome = await Synchronizer(api, store, notes).refresh_all()
        messages = [n.message for n in notes.active()]
        notes.clear()
        return outcome, messages

    outcome, messages = asyncio.run(scenario())

    assert sorted(outcome.updated) == ["config", "jobs", "stats"]
    assert outcome.failed == ()
    assert messages == []
    assert store.config == Config(3)
