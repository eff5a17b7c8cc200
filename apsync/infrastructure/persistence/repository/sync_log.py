from datetime import UTC, datetime

from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncSession

from apsync.domain.sync.port.sync_log import SyncLogRepository
from apsync.infrastructure.persistence.tables import sync_log_table


class PostgresSyncLogRepository(SyncLogRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def record(
        self,
        device_id: str,
        email: str,
        success: bool,
        error_message: str | None = None,
    ) -> None:
        stmt = insert(sync_log_table).values(
            device_id=device_id,
            email=email,
            success=success,
            error_message=error_message,
            created_at=datetime.now(UTC),
        )
        await self.session.execute(stmt)
