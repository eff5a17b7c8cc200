from datetime import datetime

from pydantic import Field

from apsync.domain.linking.model.value import DeviceId
from apsync.domain.shared.model.value import Entity, ValueObject


class MappingInput(ValueObject):
    """Everything needed to upsert one location mapping."""

    device_id: DeviceId
    access_token: str = Field(repr=False)
    data_center: str
    account_id: str
    account_name: str | None = None
    audience_id: str
    audience_name: str | None = None
    source_tag: str | None = None


class LocationMapping(Entity):
    """Association of one device with one marketing audience.

    ``device_id`` is unique: writing an existing device replaces every mutable
    field and bumps ``updated_at``.
    """

    device_id: DeviceId
    access_token: str = Field(repr=False)
    data_center: str
    account_id: str
    account_name: str | None = None
    audience_id: str
    audience_name: str | None = None
    source_tag: str | None = None
    created_at: datetime
    updated_at: datetime

    def to_input(self, **changes) -> MappingInput:
        data = self.model_dump(exclude={"created_at", "updated_at"})
        data.update(changes)
        return MappingInput(**data)
