"""CLI entry point for jobdash."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from . import __version__
from .api import ValidationError
from .app import Dashboard, run_set_config, run_shell, run_show, run_submit, run_watch
from .config import DashboardConfig, add_config_arguments
from .models import JobFilter

_FILTERS = [f.value for f in JobFilter]


def _build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    add_config_arguments(common)

    p = argparse.ArgumentParser(
        prog="jobdash",
        description="Monitor and control a remote job-queue service",
    )
    p.add_argument("--version", action="version", version=f"jobdash {__version__}")
    sub = p.add_subparsers(dest="command", metavar="COMMAND")

    watch = sub.add_parser("watch", parents=[common], help="Live auto-refreshing dashboard")
    watch.add_argument("--filter", choices=_FILTERS, default="all")

    sub.add_parser("shell", parents=[common], help="Interactive dashboard shell")

    show = sub.add_parser("show", parents=[common], help="Refresh once and print the dashboard")
    show.add_argument("--filter", choices=_FILTERS, default="all")
    show.add_argument("--json", action="store_true")

    submit = sub.add_parser("submit", parents=[common], help="Create a job")
    submit.add_argument("name")
    submit.add_argument("job_command", metavar="command")

    set_config = sub.add_parser("set-config", parents=[common], help="Set max concurrent jobs")
    set_config.add_argument("value")
    return p


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _dispatch(args: argparse.Namespace, dashboard: Dashboard, console: Console) -> int:
    if args.command == "watch":
        dashboard.commands.change_filter(args.filter)
        asyncio.run(run_watch(dashboard, console))
        return 0
    if args.command == "shell":
        console.print(f"[bold]jobdash[/bold] {__version__} - {escape(dashboard.cfg.api_base)}")
        console.print("Type [bold]help[/bold] for commands.")
        asyncio.run(run_shell(dashboard, console))
        return 0
    if args.command == "show":
        dashboard.commands.change_filter(args.filter)
        return asyncio.run(run_show(dashboard, console, as_json=args.json))
    if args.command == "submit":
        return asyncio.run(run_submit(dashboard, console, args.name, args.job_command))
    if args.command == "set-config":
        return asyncio.run(run_set_config(dashboard, console, args.value))
    raise ValueError(f"unknown command: {args.command!r}")


def main(argv: list[str] | None = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        sys.exit(0)

    cfg = DashboardConfig.from_args(args)
    _setup_logging(cfg.log_level)
    console = Console()
    dashboard = Dashboard(cfg)
    try:
        code = _dispatch(args, dashboard, console)
    except ValidationError as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        code = 2
    except KeyboardInterrupt:
        code = 0
    finally:
        dashboard.close()
    sys.exit(code)


if __name__ == "__main__":
    main()
