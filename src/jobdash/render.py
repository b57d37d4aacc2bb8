"""Pure projection of dashboard state into rich renderables."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Sequence

from rich.console import Group, RenderableType
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .models import Config, Job, JobFilter, JobStatus, Stats
from .notify import Notification, NotificationKind

NEVER = "Never"
EMPTY_MESSAGE = "No jobs found"
_MISSING = "-"

STATUS_STYLES = {
    JobStatus.QUEUED: "yellow",
    JobStatus.RUNNING: "blue",
    JobStatus.COMPLETED: "green",
    JobStatus.FAILED: "red",
}

_NOTIFICATION_STYLES = {
    NotificationKind.SUCCESS: "green",
    NotificationKind.ERROR: "red",
}


def format_timestamp(value: datetime | None) -> str:
    if value is None:
        return NEVER
    return value.astimezone().strftime("%Y-%m-%d %H:%M:%S")


def render_stats(stats: Stats | None, config: Config | None) -> Text:
    def _count(label: str, value: int | None, style: str) -> str:
        shown = _MISSING if value is None else str(value)
        return f"[{style}]{label}[/{style}] [bold]{shown}[/bold]"

    parts = [
        _count("queued", stats.queued_count if stats else None, STATUS_STYLES[JobStatus.QUEUED]),
        _count("running", stats.running_count if stats else None, STATUS_STYLES[JobStatus.RUNNING]),
        _count("completed", stats.completed_count if stats else None, STATUS_STYLES[JobStatus.COMPLETED]),
        _count("failed", stats.failed_count if stats else None, STATUS_STYLES[JobStatus.FAILED]),
        _count("total", stats.total if stats else None, "white"),
    ]
    limit = _MISSING if config is None else str(config.max_concurrent_jobs)
    parts.append(f"[dim]max concurrent[/dim] [bold]{limit}[/bold]")
    return Text.from_markup("   ".join(parts))


def render_filter_tabs(active: JobFilter) -> Text:
    tabs = []
    for f in JobFilter:
        if f is active:
            tabs.append(f"[reverse bold] {f.value} [/reverse bold]")
        else:
            tabs.append(f"[dim] {f.value} [/dim]")
    return Text.from_markup(" ".join(tabs))


def render_jobs(jobs: Sequence[Job]) -> RenderableType:
    if not jobs:
        return Panel(Text(EMPTY_MESSAGE, style="dim italic", justify="center"), border_style="dim")

    table = Table(expand=True, header_style="bold")
    table.add_column("ID", no_wrap=True)
    table.add_column("Name")
    table.add_column("Command", overflow="fold")
    table.add_column("Status", no_wrap=True)
    table.add_column("Last Run", no_wrap=True)
    table.add_column("Created", no_wrap=True)
    for job in jobs:
        style = STATUS_STYLES[job.status]
        table.add_row(
            escape(str(job.id)),
            f"[bold]{escape(job.name)}[/bold]",
            escape(job.command),
            f"[{style}]{job.status.value}[/{style}]",
            format_timestamp(job.last_run),
            format_timestamp(job.created_at),
        )
    return table


def render_notifications(notes: Iterable[Notification]) -> list[RenderableType]:
    out: list[RenderableType] = []
    for note in notes:
        style = _NOTIFICATION_STYLES[note.kind]
        out.append(Text.from_markup(f"[bold {style}]●[/bold {style}] {escape(note.message)}"))
    return out


def render_dashboard(
    jobs: Sequence[Job],
    stats: Stats | None,
    config: Config | None,
    *,
    active_filter: JobFilter = JobFilter.ALL,
    notifications: Iterable[Notification] = (),
) -> Group:
    """Build the full dashboard view; never mutates its inputs."""
    return Group(
        render_stats(stats, config),
        render_filter_tabs(active_filter),
        render_jobs(jobs),
        *render_notifications(notifications),
    )
