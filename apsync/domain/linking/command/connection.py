from dataclasses import dataclass
from datetime import datetime

from apsync.domain.linking.model.mapping import LocationMapping
from apsync.domain.linking.model.value import DeviceId
from apsync.domain.linking.service.connection import ConnectionService
from apsync.domain.shared.command import Command, CommandHandler, Result


class ConnectionView(Result):
    """A mapping as shown to callers; never includes the access token."""

    device_id: str
    account_id: str
    account_name: str | None
    audience_id: str
    audience_name: str | None
    source_tag: str | None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def of(cls, mapping: LocationMapping) -> "ConnectionView":
        return cls(
            device_id=str(mapping.device_id),
            account_id=mapping.account_id,
            account_name=mapping.account_name,
            audience_id=mapping.audience_id,
            audience_name=mapping.audience_name,
            source_tag=mapping.source_tag,
            created_at=mapping.created_at,
            updated_at=mapping.updated_at,
        )


class Disconnect(Command):
    device_id: str


class Disconnected(Result):
    device_id: str
    account_name: str | None


@dataclass
class DisconnectHandler(CommandHandler[Disconnect, Disconnected]):
    service: ConnectionService

    async def run(self, cmd: Disconnect) -> Disconnected:
        mapping = await self.service.disconnect(DeviceId.parse(cmd.device_id))
        return Disconnected(device_id=str(mapping.device_id), account_name=mapping.account_name)


class UpdateConnection(Command):
    device_id: str
    audience_id: str | None = None
    source_tag: str | None = None  # Empty string clears the tag


class ConnectionUpdated(Result):
    connection: ConnectionView


@dataclass
class UpdateConnectionHandler(CommandHandler[UpdateConnection, ConnectionUpdated]):
    service: ConnectionService

    async def run(self, cmd: UpdateConnection) -> ConnectionUpdated:
        mapping = await self.service.update(
            DeviceId.parse(cmd.device_id), cmd.audience_id, cmd.source_tag
        )
        return ConnectionUpdated(connection=ConnectionView.of(mapping))
