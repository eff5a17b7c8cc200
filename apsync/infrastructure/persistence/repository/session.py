"""Linking session store on SQLAlchemy Core."""

import logging
from datetime import UTC, datetime, timedelta
from typing import Any

from sqlalchemy import delete, insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from apsync.domain.linking.model.value import DeviceId
from apsync.domain.linking.port.repository import LinkingSessionStore
from apsync.domain.shared.error import DuplicateTokenError
from apsync.infrastructure.persistence.tables import linking_sessions_table

logger = logging.getLogger(__name__)


class PostgresLinkingSessionStore(LinkingSessionStore):
    def __init__(self, session: AsyncSession, ttl: timedelta) -> None:
        self.session = session
        self.ttl = ttl

    async def create(
        self, token: str, device_id: DeviceId | None, payload: dict[str, Any]
    ) -> None:
        now = datetime.now(UTC)
        stmt = insert(linking_sessions_table).values(
            token=token,
            device_id=str(device_id) if device_id is not None else None,
            payload=payload,
            created_at=now,
            expires_at=now + self.ttl,
        )
        try:
            await self.session.execute(stmt)
            await self.session.flush()
        except IntegrityError as e:
            await self.session.rollback()
            raise DuplicateTokenError("Linking session token already exists") from e

    async def consume(self, token: str) -> dict[str, Any] | None:
        # Single DELETE ... RETURNING: of two concurrent consumers only one gets the row
        stmt = (
            delete(linking_sessions_table)
            .where(
                linking_sessions_table.c.token == token,
                linking_sessions_table.c.expires_at > datetime.now(UTC),
            )
            .returning(linking_sessions_table.c.payload)
        )
        result = await self.session.execute(stmt)
        row = result.mappings().first()
        return dict(row["payload"]) if row else None

    async def sweep_expired(self) -> int:
        stmt = delete(linking_sessions_table).where(
            linking_sessions_table.c.expires_at <= datetime.now(UTC)
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0
