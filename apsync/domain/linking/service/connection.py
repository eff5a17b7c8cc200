import logging
from dataclasses import dataclass

from apsync.domain.linking.model.mapping import LocationMapping
from apsync.domain.linking.model.value import DeviceId
from apsync.domain.linking.port.repository import MappingRepository
from apsync.domain.marketing.port import MarketingPlatform
from apsync.domain.shared.error import ExternalServiceError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


@dataclass
class ConnectionService:
    """Inspect and change an existing location mapping."""

    mappings: MappingRepository
    marketing: MarketingPlatform

    async def status(self, device_id: DeviceId) -> tuple[LocationMapping | None, bool]:
        """Return the mapping and whether its token still works.

        A platform outage reports the token as invalid rather than failing.
        """
        mapping = await self.mappings.get_by_device(device_id)
        if mapping is None:
            return None, False
        try:
            valid = await self.marketing.ping(mapping.access_token, mapping.data_center)
        except ExternalServiceError as e:
            logger.warning("Ping failed for device=%s: %s", device_id, e.message)
            valid = False
        return mapping, valid

    async def disconnect(self, device_id: DeviceId) -> LocationMapping:
        mapping = await self.mappings.get_by_device(device_id)
        if mapping is None or not await self.mappings.delete_by_device(device_id):
            raise NotFoundError(f"No connection for device {device_id}")
        logger.info("Disconnected device=%s account=%s", device_id, mapping.account_id)
        return mapping

    async def update(
        self,
        device_id: DeviceId,
        audience_id: str | None = None,
        source_tag: str | None = None,
    ) -> LocationMapping:
        """Move a device to another audience and/or retag it."""
        mapping = await self.mappings.get_by_device(device_id)
        if mapping is None:
            raise NotFoundError(f"No connection for device {device_id}")

        changes: dict[str, str | None] = {}
        if audience_id and audience_id != mapping.audience_id:
            audiences = await self.marketing.list_audiences(
                mapping.access_token, mapping.data_center
            )
            audience = next((a for a in audiences if a.id == audience_id), None)
            if audience is None:
                raise ValidationError("Unknown audience for this account", field="audience_id")
            changes["audience_id"] = audience.id
            changes["audience_name"] = audience.name
        if source_tag is not None:
            changes["source_tag"] = source_tag or None

        if not changes:
            return mapping
        updated = await self.mappings.upsert_one(mapping.to_input(**changes))
        logger.info("Updated connection device=%s fields=%s", device_id, sorted(changes))
        return updated
