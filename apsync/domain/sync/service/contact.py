"""Routes captured contacts to the audience their access point is linked to."""

import asyncio
import logging
from dataclasses import dataclass

from apsync.domain.linking.model.mapping import LocationMapping
from apsync.domain.linking.model.value import DeviceId
from apsync.domain.linking.port.repository import MappingRepository
from apsync.domain.marketing.model import Contact
from apsync.domain.marketing.port import MarketingPlatform
from apsync.domain.shared.error import DomainError, ExternalServiceError, NotFoundError
from apsync.domain.sync.model.contact import (
    BatchError,
    BatchSyncResult,
    ContactInput,
    SyncOutcome,
    normalize_email,
)
from apsync.domain.sync.port.sync_log import SyncLogRepository

logger = logging.getLogger(__name__)


@dataclass
class ContactSyncService:
    mappings: MappingRepository
    marketing: MarketingPlatform
    sync_log: SyncLogRepository
    auto_map_threshold: float = 0.3
    concurrency: int = 5

    async def sync(self, contact: ContactInput) -> SyncOutcome:
        """Upsert one contact into the audience linked to its device.

        Raises:
            ValidationError: malformed device id or email.
            NotFoundError: the device is not linked and could not be auto-mapped.
            ExternalServiceError: the marketing platform call failed (logged).
        """
        device_id, email = _validate(contact)
        mapping, auto_mapped = await self._mapping_for(device_id, contact.location_name)
        try:
            outcome = await self._push(mapping, email, contact, auto_mapped)
        except ExternalServiceError as e:
            await self.sync_log.record(str(device_id), email, False, e.message)
            raise
        await self.sync_log.record(str(device_id), email, True)
        return outcome

    async def sync_batch(self, contacts: list[ContactInput]) -> BatchSyncResult:
        """Sync many contacts; one bad contact never fails the others.

        Lookups and writes run one at a time on the caller's session. Only the
        marketing platform calls run concurrently, bounded by ``concurrency``.
        """
        errors: list[BatchError] = []
        ready: list[tuple[int, DeviceId, str, ContactInput, LocationMapping, bool]] = []
        for index, contact in enumerate(contacts):
            try:
                device_id, email = _validate(contact)
                mapping, auto_mapped = await self._mapping_for(device_id, contact.location_name)
            except DomainError as e:
                errors.append(BatchError(index=index, email=contact.email, message=e.message))
                continue
            ready.append((index, device_id, email, contact, mapping, auto_mapped))

        semaphore = asyncio.Semaphore(self.concurrency)

        async def push(
            mapping: LocationMapping, email: str, contact: ContactInput, auto_mapped: bool
        ) -> str | None:
            async with semaphore:
                try:
                    await self._push(mapping, email, contact, auto_mapped)
                except ExternalServiceError as e:
                    return e.message
            return None

        async with asyncio.TaskGroup() as tg:
            tasks = [
                tg.create_task(push(mapping, email, contact, auto))
                for _, _, email, contact, mapping, auto in ready
            ]
        failures = [task.result() for task in tasks]

        for (index, device_id, email, _, _, _), failure in zip(ready, failures):
            await self.sync_log.record(str(device_id), email, failure is None, failure)
            if failure is not None:
                errors.append(BatchError(index=index, email=email, message=failure))

        errors.sort(key=lambda e: e.index)
        logger.info("Batch sync: total=%d failed=%d", len(contacts), len(errors))
        return BatchSyncResult(
            total=len(contacts),
            succeeded=len(contacts) - len(errors),
            failed=len(errors),
            errors=tuple(errors),
        )

    async def _mapping_for(
        self, device_id: DeviceId, location_name: str | None
    ) -> tuple[LocationMapping, bool]:
        mapping = await self.mappings.get_by_device(device_id)
        if mapping is not None:
            return mapping, False

        if location_name and location_name.strip():
            ranked = await self.mappings.find_by_fuzzy_name(
                location_name.strip(), self.auto_map_threshold
            )
            if ranked:
                template, score = ranked[0]
                mapping = await self.mappings.upsert_one(
                    template.to_input(device_id=device_id, source_tag=location_name.strip())
                )
                logger.info(
                    "Auto-mapped device=%s to account=%s (score=%.2f)",
                    device_id,
                    template.account_name,
                    score,
                )
                return mapping, True

        raise NotFoundError(
            "No Mailchimp connection found for this device", code="not_connected"
        )

    async def _push(
        self, mapping: LocationMapping, email: str, contact: ContactInput, auto_mapped: bool
    ) -> SyncOutcome:
        result = await self.marketing.upsert_contact(
            mapping.access_token,
            mapping.data_center,
            mapping.audience_id,
            Contact(
                email=email,
                first_name=contact.first_name,
                last_name=contact.last_name,
                phone=contact.phone,
                merge_fields=contact.custom_fields,
            ),
        )

        tags = list(dict.fromkeys(t for t in (mapping.source_tag, contact.source) if t))
        if tags:
            await self.marketing.add_tags(
                mapping.access_token, mapping.data_center, mapping.audience_id, email, tags
            )

        logger.info("Synced contact to audience=%s tags=%s", mapping.audience_id, tags)
        return SyncOutcome(
            email=email,
            contact_id=result.id,
            status=result.status,
            audience_id=mapping.audience_id,
            tags=tuple(tags),
            auto_mapped=auto_mapped,
        )


def _validate(contact: ContactInput) -> tuple[DeviceId, str]:
    return DeviceId.parse(contact.device_id), normalize_email(contact.email)
