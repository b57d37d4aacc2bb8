"""HTTP client for the job-queue API.

Every remote operation returns a :class:`FetchResult` instead of raising, so
callers only need to check ``result.ok``. Client-side input validation runs
before any request is issued and raises :class:`ValidationError`.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar

import requests
from requests import RequestException

from .models import Config, Job, Stats, parse_jobs

log = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_API_BASE = "http://localhost:8080/api"


class ValidationError(ValueError):
    """Input rejected on the client before any network call."""


class ApiError(Exception):
    pass


class TransportError(ApiError):
    """Network or connection failure."""


class ParseError(ApiError):
    """Response body could not be decoded into the expected shape."""


class ServerRejected(ApiError):
    def __init__(self, status: int, detail: str) -> None:
        self.status = status
        self.detail = detail
        super().__init__(f"HTTP {status}: {detail}" if detail else f"HTTP {status}")


@dataclass(frozen=True)
class FetchResult(Generic[T]):
    value: T | None = None
    error: ApiError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def validate_job_fields(name: str, command: str) -> tuple[str, str]:
    name = (name or "").strip()
    command = (command or "").strip()
    if not name or not command:
        raise ValidationError("Please fill in all fields: name and command are required")
    return name, command


def validate_max_concurrent(value: object) -> int:
    if isinstance(value, bool):
        raise ValidationError("Max concurrent jobs must be an integer")
    if isinstance(value, str):
        try:
            value = int(value.strip())
        except ValueError:
            raise ValidationError("Max concurrent jobs must be an integer") from None
    if not isinstance(value, int):
        raise ValidationError("Max concurrent jobs must be an integer")
    if value < 1:
        raise ValidationError("Max concurrent jobs must be at least 1")
    return value


class ApiClient:
    def __init__(
        self,
        base_url: str = DEFAULT_API_BASE,
        *,
        timeout: float = 10.0,
        session: Any | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session if session is not None else requests.Session()

    def close(self) -> None:
        close = getattr(self._session, "close", None)
        if close is not None:
            close()

    async def get_config(self) -> FetchResult[Config]:
        return await self._read("/config", Config.from_dict)

    async def get_stats(self) -> FetchResult[Stats]:
        return await self._read("/stats", Stats.from_dict)

    async def get_jobs(self) -> FetchResult[tuple[Job, ...]]:
        return await self._read("/jobs", parse_jobs)

    async def set_config(self, value: object) -> FetchResult[Config]:
        max_concurrent = validate_max_concurrent(value)
        config = Config(max_concurrent_jobs=max_concurrent)
        result = await self._write("PUT", "/config", config.to_dict())
        if not result.ok:
            return FetchResult(error=result.error)
        return FetchResult(value=config)

    async def create_job(self, name: str, command: str) -> FetchResult[None]:
        name, command = validate_job_fields(name, command)
        return await self._write("POST", "/jobs/create", {"name": name, "command": command})

    async def _send(self, method: str, path: str, body: dict[str, Any] | None) -> Any:
        url = self.base_url + path
        kwargs: dict[str, Any] = {"timeout": self.timeout}
        if body is not None:
            kwargs["json"] = body
        try:
            return await asyncio.to_thread(self._session.request, method, url, **kwargs)
        except RequestException as exc:
            raise TransportError(f"{method} {path} failed: {exc}") from exc

    async def _read(self, path: str, decode: Callable[[Any], T]) -> FetchResult[T]:
        try:
            response = await self._send("GET", path, None)
        except TransportError as exc:
            return FetchResult(error=exc)
        if not 200 <= response.status_code < 300:
            return FetchResult(error=ServerRejected(response.status_code, _detail(response)))
        try:
            return FetchResult(value=decode(response.json()))
        except ValueError as exc:
            return FetchResult(error=ParseError(f"GET {path}: {exc}"))

    async def _write(self, method: str, path: str, body: dict[str, Any]) -> FetchResult[None]:
        try:
            response = await self._send(method, path, body)
        except TransportError as exc:
            return FetchResult(error=exc)
        if not 200 <= response.status_code < 300:
            return FetchResult(error=ServerRejected(response.status_code, _detail(response)))
        log.debug("%s %s -> %s", method, path, response.status_code)
        return FetchResult()


def _detail(response: Any) -> str:
    text = getattr(response, "text", "") or ""
    return text.strip()
