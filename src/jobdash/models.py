"""Wire types for the job-queue API and their decoders."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

_FRACTION_RE = re.compile(r"\.(\d+)")


class JobStatus(str, Enum):
    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class JobFilter(str, Enum):
    ALL = "all"
    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    def matches(self, status: JobStatus) -> bool:
        return self is JobFilter.ALL or self.value == status.value


def parse_timestamp(value: object) -> datetime | None:
    """Parse an RFC 3339 timestamp; ``None`` means the event never happened.

    Fractional seconds are normalized to microseconds so that nanosecond
    precision from the server is accepted.
    """
    if value is None:
        return None
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"invalid timestamp: {value!r}")
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    text = _FRACTION_RE.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    try:
        dt = datetime.fromisoformat(text)
    except ValueError:
        raise ValueError(f"invalid timestamp: {value!r}") from None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _require(payload: dict[str, Any], key: str) -> Any:
    if key not in payload:
        raise ValueError(f"missing field: {key}")
    return payload[key]


def _count(payload: dict[str, Any], key: str) -> int:
    value = _require(payload, key)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"{key} must be a non-negative integer, got {value!r}")
    return value


@dataclass(frozen=True)
class Job:
    id: int | str
    name: str
    command: str
    status: JobStatus
    created_at: datetime
    last_run: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_dict(cls, payload: object) -> Job:
        if not isinstance(payload, dict):
            raise ValueError("job entry must be an object")
        job_id = _require(payload, "id")
        if isinstance(job_id, bool) or not isinstance(job_id, (int, str)):
            raise ValueError(f"invalid job id: {job_id!r}")
        status_raw = _require(payload, "status")
        try:
            status = JobStatus(status_raw)
        except ValueError:
            raise ValueError(f"unknown job status: {status_raw!r}") from None
        created_at = parse_timestamp(_require(payload, "created_at"))
        if created_at is None:
            raise ValueError("created_at must not be null")
        return cls(
            id=job_id,
            name=str(_require(payload, "name")),
            command=str(_require(payload, "command")),
            status=status,
            created_at=created_at,
            last_run=parse_timestamp(payload.get("last_run")),
            updated_at=parse_timestamp(payload.get("updated_at")),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "command": self.command,
            "status": self.status.value,
            "last_run": self.last_run.isoformat() if self.last_run else None,
            "created_at": self.created_at.isoformat(),
        }
        if self.updated_at is not None:
            out["updated_at"] = self.updated_at.isoformat()
        return out


def parse_jobs(payload: object) -> tuple[Job, ...]:
    if not isinstance(payload, list):
        raise ValueError("jobs payload must be a list")
    return tuple(Job.from_dict(item) for item in payload)


@dataclass(frozen=True)
class Stats:
    queued_count: int = 0
    running_count: int = 0
    completed_count: int = 0
    failed_count: int = 0
    total_count: int | None = None

    @property
    def total(self) -> int:
        if self.total_count is not None:
            return self.total_count
        return self.queued_count + self.running_count + self.completed_count + self.failed_count

    @classmethod
    def from_dict(cls, payload: object) -> Stats:
        if not isinstance(payload, dict):
            raise ValueError("stats payload must be an object")
        return cls(
            queued_count=_count(payload, "queued_count"),
            running_count=_count(payload, "running_count"),
            completed_count=_count(payload, "completed_count"),
            failed_count=_count(payload, "failed_count"),
            total_count=_count(payload, "total_count") if "total_count" in payload else None,
        )

    def to_dict(self) -> dict[str, int]:
        return {
            "queued_count": self.queued_count,
            "running_count": self.running_count,
            "completed_count": self.completed_count,
            "failed_count": self.failed_count,
            "total_count": self.total,
        }


@dataclass(frozen=True)
class Config:
    max_concurrent_jobs: int

    @classmethod
    def from_dict(cls, payload: object) -> Config:
        if not isinstance(payload, dict):
            raise ValueError("config payload must be an object")
        value = _require(payload, "max_concurrent_jobs")
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            raise ValueError(f"max_concurrent_jobs must be a positive integer, got {value!r}")
        return cls(max_concurrent_jobs=value)

    def to_dict(self) -> dict[str, int]:
        return {"max_concurrent_jobs": self.max_concurrent_jobs}
