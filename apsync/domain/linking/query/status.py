from dataclasses import dataclass
from datetime import datetime

from apsync.domain.linking.model.value import DeviceId
from apsync.domain.linking.service.connection import ConnectionService
from apsync.domain.shared.command import Query, QueryHandler, Result


class GetConnectionStatus(Query):
    device_id: str


class ConnectionStatus(Result):
    connected: bool
    valid: bool | None = None
    account_name: str | None = None
    audience_name: str | None = None
    source_tag: str | None = None
    connected_at: datetime | None = None


@dataclass
class GetConnectionStatusHandler(QueryHandler[GetConnectionStatus, ConnectionStatus]):
    service: ConnectionService

    async def run(self, query: GetConnectionStatus) -> ConnectionStatus:
        mapping, valid = await self.service.status(DeviceId.parse(query.device_id))
        if mapping is None:
            return ConnectionStatus(connected=False)
        return ConnectionStatus(
            connected=True,
            valid=valid,
            account_name=mapping.account_name,
            audience_name=mapping.audience_name,
            source_tag=mapping.source_tag,
            connected_at=mapping.created_at,
        )
