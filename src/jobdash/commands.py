"""User intents: change filter, submit job, update config, manual refresh."""

from __future__ import annotations

import logging

from .api import ApiClient, ServerRejected, ValidationError, validate_job_fields, validate_max_concurrent
from .models import JobFilter
from .notify import NotificationQueue
from .store import ViewStore
from .sync import RefreshOutcome, Synchronizer

log = logging.getLogger(__name__)


class CommandHandlers:
    def __init__(
        self,
        api: ApiClient,
        store: ViewStore,
        sync: Synchronizer,
        notifications: NotificationQueue,
    ) -> None:
        self.api = api
        self.store = store
        self.sync = sync
        self.notifications = notifications

    def change_filter(self, value: JobFilter | str) -> JobFilter:
        try:
            target = JobFilter(value)
        except ValueError:
            choices = ", ".join(f.value for f in JobFilter)
            raise ValidationError(f"unknown filter {value!r} (choose from: {choices})") from None
        return self.store.set_filter(target)

    async def submit_job(self, name: str, command: str) -> bool:
        name, command = validate_job_fields(name, command)
        result = await self.api.create_job(name, command)
        if not result.ok:
            log.warning("create job %r failed: %s", name, result.error)
            self.notifications.error(_failure("Failed to create job", result.error))
            return False
        self.notifications.success("Job created successfully!")
        await self.sync.refresh_all()
        return True

    async def update_config(self, value: object) -> bool:
        max_concurrent = validate_max_concurrent(value)
        result = await self.api.set_config(max_concurrent)
        if not result.ok or result.value is None:
            log.warning("update config failed: %s", result.error)
            self.notifications.error(_failure("Failed to update config", result.error))
            return False
        token = self.store.next_token("config") if self.sync.discard_stale else None
        self.store.replace_config(result.value, token=token)
        self.notifications.success("Config updated successfully!")
        return True

    async def manual_refresh(self) -> RefreshOutcome:
        self.notifications.success("Data refreshed!")
        return await self.sync.refresh_all()


def _failure(prefix: str, error: object) -> str:
    if isinstance(error, ServerRejected) and error.detail:
        return f"{prefix}: {error.detail}"
    return prefix
