from dataclasses import dataclass
from typing import Any

from pydantic import Field

from apsync.domain.shared.command import Command, CommandHandler, Result
from apsync.domain.shared.error import ValidationError
from apsync.domain.sync.model.contact import BatchError, ContactInput
from apsync.domain.sync.service.contact import ContactSyncService


class SyncContact(Command):
    device_id: str
    email: str
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    source: str | None = None
    location_name: str | None = None
    custom_fields: dict[str, Any] = Field(default_factory=dict)

    def to_input(self) -> ContactInput:
        return ContactInput(**self.model_dump())


class ContactSynced(Result):
    email: str
    contact_id: str
    status: str
    audience_id: str
    tags: list[str]
    auto_mapped: bool


@dataclass
class SyncContactHandler(CommandHandler[SyncContact, ContactSynced]):
    service: ContactSyncService

    async def run(self, cmd: SyncContact) -> ContactSynced:
        outcome = await self.service.sync(cmd.to_input())
        return ContactSynced(
            email=outcome.email,
            contact_id=outcome.contact_id,
            status=outcome.status,
            audience_id=outcome.audience_id,
            tags=list(outcome.tags),
            auto_mapped=outcome.auto_mapped,
        )


class SyncContactsBatch(Command):
    contacts: list[SyncContact]


class BatchSynced(Result):
    total: int
    succeeded: int
    failed: int
    errors: list[BatchError]


@dataclass
class SyncContactsBatchHandler(CommandHandler[SyncContactsBatch, BatchSynced]):
    service: ContactSyncService
    batch_limit: int = 100

    async def run(self, cmd: SyncContactsBatch) -> BatchSynced:
        if not cmd.contacts:
            raise ValidationError("contacts must be a non-empty list", field="contacts")
        if len(cmd.contacts) > self.batch_limit:
            raise ValidationError(
                f"Maximum {self.batch_limit} contacts per batch", field="contacts"
            )
        result = await self.service.sync_batch([c.to_input() for c in cmd.contacts])
        return BatchSynced(
            total=result.total,
            succeeded=result.succeeded,
            failed=result.failed,
            errors=list(result.errors),
        )
