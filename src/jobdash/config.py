from __future__ import annotations

import argparse
import os
from dataclasses import dataclass

from .api import DEFAULT_API_BASE
from .notify import POLICIES, POLICY_STACK

_TRUE = {"1", "true", "yes", "on"}


def _env(name: str) -> str | None:
    val = os.environ.get(name)
    if val:
        return val
    return None


def _env_int(name: str, default: int) -> int:
    raw = _env(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_bool(name: str, default: bool = False) -> bool:
    raw = _env(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUE


@dataclass(frozen=True)
class DashboardConfig:
    api_base: str
    refresh_seconds: int
    notify_seconds: int
    timeout_seconds: int
    notify_policy: str
    discard_stale: bool
    log_level: str

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> DashboardConfig:
        policy = str(args.notify_policy)
        if policy not in POLICIES:
            policy = POLICY_STACK
        return cls(
            api_base=str(args.api_base).rstrip("/"),
            refresh_seconds=max(1, int(args.refresh_seconds)),
            notify_seconds=max(1, int(args.notify_seconds)),
            timeout_seconds=max(1, int(args.timeout)),
            notify_policy=policy,
            discard_stale=bool(args.discard_stale),
            log_level=str(args.log_level).upper(),
        )


def add_config_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--api-base",
        default=_env("JOBDASH_API_BASE") or DEFAULT_API_BASE,
        help="Base URL of the job-queue API",
    )
    parser.add_argument(
        "--refresh-seconds",
        type=int,
        default=_env_int("JOBDASH_REFRESH_SECONDS", 5),
    )
    parser.add_argument(
        "--notify-seconds",
        type=int,
        default=_env_int("JOBDASH_NOTIFY_SECONDS", 3),
    )
    parser.add_argument(
        "--timeout",
        type=int,
        default=_env_int("JOBDASH_TIMEOUT", 10),
    )
    parser.add_argument(
        "--notify-policy",
        choices=list(POLICIES),
        default=_env("JOBDASH_NOTIFY_POLICY") or POLICY_STACK,
    )
    parser.add_argument(
        "--discard-stale",
        action="store_true",
        default=_env_bool("JOBDASH_DISCARD_STALE"),
        help="Drop refresh responses that arrive after a newer one for the same slot",
    )
    parser.add_argument(
        "--log-level",
        default=_env("JOBDASH_LOG_LEVEL") or "WARNING",
    )
