from __future__ import annotations

import asyncio

import pytest
import requests

from tests.fakes import BASE, FakeResponse, FakeSession, healthy_routes
from jobdash.api import ApiClient, ValidationError
from jobdash.commands import CommandHandlers
from jobdash.models import Config, JobFilter
from jobdash.notify import NotificationKind, NotificationQueue
from jobdash.store import ViewStore
from jobdash.sync import Synchronizer


def _run(session: FakeSession, action):
    """Build handlers on a fresh loop, run ``action`` and collect notifications."""

    async def scenario():
        api = ApiClient(BASE, session=session)
        store = ViewStore()
        notes = NotificationQueue(duration=5)
        handlers = CommandHandlers(api, store, Synchronizer(api, store, notes), notes)
        try:
            result = await action(handlers)
        finally:
            messages = [(n.kind, n.message) for n in notes.active()]
            notes.clear()
        return result, store, messages

    return asyncio.run(scenario())


@pytest.mark.parametrize("name,command", [("", "ls"), ("build", "")])
def test_submit_job_validation_makes_no_network_call(name: str, command: str) -> None:
    session = FakeSession(healthy_routes())

    with pytest.raises(ValidationError):
        _run(session, lambda h: h.submit_job(name, command))

    assert session.calls == []


def test_submit_job_success_refreshes_and_notifies() -> None:
    session = FakeSession(healthy_routes())

    ok, store, messages = _run(session, lambda h: h.submit_job("build", "make"))

    assert ok
    methods = [(m, p) for m, p, _ in session.calls]
    assert methods[0] == ("POST", "/jobs/create")
    assert sorted(methods[1:]) == [("GET", "/config"), ("GET", "/jobs"), ("GET", "/stats")]
    assert len(store.jobs) == 3
    assert messages == [(NotificationKind.SUCCESS, "Job created successfully!")]


def test_submit_job_failure_carries_server_detail() -> None:
    routes = healthy_routes()
    routes[("POST", "/jobs/create")] = FakeResponse(500, text="duplicate job name")
    session = FakeSession(routes)

    ok, store, messages = _run(session, lambda h: h.submit_job("build", "make"))

    assert not ok
    assert [(m, p) for m, p, _ in session.calls] == [("POST", "/jobs/create")]
    assert store.jobs == ()
    assert messages == [(NotificationKind.ERROR, "Failed to create job: duplicate job name")]


def test_submit_job_transport_failure_has_generic_message() -> None:
    routes = healthy_routes()
    routes[("POST", "/jobs/create")] = requests.ConnectionError("refused")

    ok, _, messages = _run(FakeSession(routes), lambda h: h.submit_job("build", "make"))

    assert not ok
    assert messages == [(NotificationKind.ERROR, "Failed to create job")]


def test_update_config_zero_is_rejected_locally() -> None:
    session = FakeSession(healthy_routes())

    with pytest.raises(ValidationError):
        _run(session, lambda h: h.update_config(0))

    assert session.calls == []


def test_update_config_success_updates_store() -> None:
    session = FakeSession(healthy_routes())

    ok, store, messages = _run(session, lambda h: h.update_config(4))

    assert ok
    assert store.config == Config(4)
    assert session.calls == [("PUT", "/config", {"max_concurrent_jobs": 4})]
    assert messages == [(NotificationKind.SUCCESS, "Config updated successfully!")]


def test_update_config_failure_leaves_store_unchanged() -> None:
    routes = healthy_routes()
    routes[("PUT", "/config")] = FakeResponse(500, text="")

    ok, store, messages = _run(FakeSession(routes), lambda h: h.update_config(4))

    assert not ok
    assert store.config is None
    assert messages == [(NotificationKind.ERROR, "Failed to update config")]


def test_change_filter_is_local_only() -> None:
    session = FakeSession(healthy_routes())

    async def action(h: CommandHandlers):
        await h.sync.refresh_all()
        before = (h.store.jobs, h.store.stats, h.store.config)
        calls = len(session.calls)
        h.change_filter("failed")
        return before, calls

    (before, calls), store, _ = _run(session, action)

    assert len(session.calls) == calls
    assert (store.jobs, store.stats, store.config) == before
    assert store.filter is JobFilter.FAILED
    assert [job.id for job in store.visible_jobs()] == [2]


def test_change_filter_rejects_unknown_value() -> None:
    async def action(h: CommandHandlers):
        h.change_filter("paused")

    with pytest.raises(ValidationError, match="unknown filter"):
        _run(FakeSession(), action)


def test_manual_refresh_confirms_even_when_everything_fails() -> None:
    routes = {
        ("GET", "/config"): requests.ConnectionError("x"),
        ("GET", "/jobs"): requests.ConnectionError("x"),
        ("GET", "/stats"): requests.ConnectionError("x"),
    }

    outcome, _, messages = _run(FakeSession(routes), lambda h: h.manual_refresh())

    assert sorted(outcome.failed) == ["config", "jobs", "stats"]
    assert messages[0] == (NotificationKind.SUCCESS, "Data refreshed!")
    assert sum(1 for kind, _ in messages if kind is NotificationKind.ERROR) == 3
