"""Wires the client components together and drives the terminal surfaces."""

from __future__ import annotations

import asyncio
import json
import re
import shlex
from typing import Any, Callable

from rich.console import Console, Group
from rich.live import Live
from rich.markup import escape

from .api import ApiClient
from .commands import CommandHandlers
from .config import DashboardConfig
from .models import JobFilter
from .notify import NotificationQueue
from .render import render_dashboard, render_notifications
from .store import ViewStore
from .sync import Synchronizer

_SUBMIT_SEPARATOR_RE = re.compile(r"(?:^|\s)--(?:\s|$)")

SHELL_HELP = """\
Commands:
  filter all|queued|running|completed|failed   Show only jobs with that status
  submit NAME -- COMMAND                       Create a job
  config N                                     Set max concurrent jobs
  refresh                                      Refresh now
  show                                         Redraw the dashboard
  help                                         Show this help
  quit                                         Leave the shell"""


class Dashboard:
    def __init__(self, cfg: DashboardConfig, *, session: Any | None = None) -> None:
        self.cfg = cfg
        self.api = ApiClient(cfg.api_base, timeout=cfg.timeout_seconds, session=session)
        self.store = ViewStore()
        self.notifications = NotificationQueue(duration=cfg.notify_seconds, policy=cfg.notify_policy)
        self.sync = Synchronizer(
            self.api,
            self.store,
            self.notifications,
            interval=cfg.refresh_seconds,
            discard_stale=cfg.discard_stale,
        )
        self.commands = CommandHandlers(self.api, self.store, self.sync, self.notifications)

    def render(self) -> Group:
        return render_dashboard(
            self.store.visible_jobs(),
            self.store.stats,
            self.store.config,
            active_filter=self.store.filter,
            notifications=self.notifications.active(),
        )

    def flush_notifications(self, console: Console) -> None:
        for line in render_notifications(self.notifications.active()):
            console.print(line)
        self.notifications.clear()

    def close(self) -> None:
        self.api.close()


async def run_watch(dashboard: Dashboard, console: Console, *, until: asyncio.Event | None = None) -> None:
    stop = until or asyncio.Event()
    with Live(dashboard.render(), console=console, refresh_per_second=4) as live:

        def _redraw(*_: object) -> None:
            live.update(dashboard.render())

        unsubscribers = [
            dashboard.store.subscribe(_redraw),
            dashboard.notifications.subscribe(_redraw),
        ]
        dashboard.sync.start()
        try:
            await stop.wait()
        finally:
            await dashboard.sync.stop()
            for unsubscribe in unsubscribers:
                unsubscribe()


async def run_shell(
    dashboard: Dashboard,
    console: Console,
    *,
    read_line: Callable[[], str] | None = None,
) -> None:
    reader = read_line or (lambda: console.input("[bold]jobdash>[/bold] "))
    dashboard.sync.start()
    try:
        while True:
            try:
                line = await asyncio.to_thread(reader)
            except EOFError:
                break
            if not await execute_line(dashboard, console, line):
                break
    finally:
        await dashboard.sync.stop()


async def execute_line(dashboard: Dashboard, console: Console, line: str) -> bool:
    """Run one shell command; returns False when the shell should exit."""
    parts = line.strip().split(None, 1)
    if not parts:
        return True

    cmd = parts[0].lower()
    tail = parts[1] if len(parts) > 1 else ""
    try:
        if cmd in ("quit", "exit"):
            return False
        if cmd == "help":
            console.print(SHELL_HELP, markup=False)
            return True
        if cmd == "submit":
            name, command = _split_submit(tail)
            await dashboard.commands.submit_job(name, command)
            console.print(dashboard.render())
            return True
        rest = shlex.split(tail)
        if cmd == "filter":
            dashboard.commands.change_filter(rest[0] if rest else JobFilter.ALL)
        elif cmd == "config":
            await dashboard.commands.update_config(rest[0] if rest else "")
        elif cmd == "refresh":
            await dashboard.commands.manual_refresh()
        elif cmd != "show":
            console.print(f"[red]Unknown command: {escape(cmd)}[/red] (try [bold]help[/bold])")
            return True
    except ValueError as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        return True

    console.print(dashboard.render())
    return True


def _split_submit(text: str) -> tuple[str, str]:
    """Split ``NAME -- COMMAND``; the command text is passed through verbatim."""
    match = _SUBMIT_SEPARATOR_RE.search(text)
    if match:
        name_part, command = text[: match.start()], text[match.end() :]
    else:
        name_part, _, command = text.strip().partition(" ")
    return " ".join(shlex.split(name_part)), command.strip()


async def run_show(dashboard: Dashboard, console: Console, *, as_json: bool = False) -> int:
    outcome = await dashboard.sync.refresh_all()
    if as_json:
        console.print_json(json.dumps(dashboard.store.snapshot()))
    else:
        console.print(dashboard.render())
    dashboard.notifications.clear()
    return 1 if not outcome.updated else 0


async def run_submit(dashboard: Dashboard, console: Console, name: str, command: str) -> int:
    ok = await dashboard.commands.submit_job(name, command)
    dashboard.flush_notifications(console)
    return 0 if ok else 1


async def run_set_config(dashboard: Dashboard, console: Console, value: str) -> int:
    ok = await dashboard.commands.update_config(value)
    dashboard.flush_notifications(console)
    return 0 if ok else 1
