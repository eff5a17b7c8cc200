"""Location mapping repository on SQLAlchemy Core."""

import logging
from datetime import UTC, datetime

from sqlalchemy import delete, desc, func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from apsync.domain.linking.model.mapping import LocationMapping, MappingInput
from apsync.domain.linking.model.value import DeviceId
from apsync.domain.linking.port.repository import MappingRepository
from apsync.domain.shared.error import StorageError
from apsync.infrastructure.persistence.database import dialect_name
from apsync.infrastructure.persistence.tables import location_mappings_table
from apsync.util.trigram import trigram_similarity

logger = logging.getLogger(__name__)

FUZZY_LIMIT = 5

_MUTABLE = (
    "access_token",
    "data_center",
    "account_id",
    "account_name",
    "audience_id",
    "audience_name",
    "source_tag",
    "updated_at",
)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored as UTC
    return value if value.tzinfo else value.replace(tzinfo=UTC)


def _row_to_mapping(row: dict) -> LocationMapping:
    return LocationMapping(
        device_id=DeviceId(row["device_id"]),
        access_token=row["access_token"],
        data_center=row["data_center"],
        account_id=row["account_id"],
        account_name=row["account_name"],
        audience_id=row["audience_id"],
        audience_name=row["audience_name"],
        source_tag=row["source_tag"],
        created_at=_as_utc(row["created_at"]),
        updated_at=_as_utc(row["updated_at"]),
    )


def _input_to_dict(mapping: MappingInput, now: datetime) -> dict:
    return {
        "device_id": str(mapping.device_id),
        "access_token": mapping.access_token,
        "data_center": mapping.data_center,
        "account_id": mapping.account_id,
        "account_name": mapping.account_name,
        "audience_id": mapping.audience_id,
        "audience_name": mapping.audience_name,
        "source_tag": mapping.source_tag,
        "created_at": now,
        "updated_at": now,
    }


class PostgresMappingRepository(MappingRepository):
    """Upserts use ``INSERT ... ON CONFLICT (device_id) DO UPDATE ... RETURNING``.

    Works on PostgreSQL and SQLite; fuzzy name lookup uses ``pg_trgm`` on
    PostgreSQL and the equivalent Python scoring elsewhere.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    def _upsert_stmt(self, rows: list[dict]):
        insert = pg_insert if dialect_name(self.session) == "postgresql" else sqlite_insert
        stmt = insert(location_mappings_table).values(rows)
        return stmt.on_conflict_do_update(
            index_elements=[location_mappings_table.c.device_id],
            set_={name: stmt.excluded[name] for name in _MUTABLE},
        ).returning(*location_mappings_table.c)

    async def upsert_one(self, mapping: MappingInput) -> LocationMapping:
        row = _input_to_dict(mapping, datetime.now(UTC))
        result = await self.session.execute(self._upsert_stmt([row]))
        return _row_to_mapping(dict(result.mappings().one()))

    async def upsert_many(self, mappings: list[MappingInput]) -> list[LocationMapping]:
        if not mappings:
            return []
        now = datetime.now(UTC)
        # Last write wins for a device listed twice
        rows = {str(m.device_id): _input_to_dict(m, now) for m in mappings}
        try:
            result = await self.session.execute(self._upsert_stmt(list(rows.values())))
            saved = {r["device_id"]: _row_to_mapping(dict(r)) for r in result.mappings().all()}
        except SQLAlchemyError as e:
            logger.exception("Bulk mapping upsert failed, rolling back %d row(s)", len(rows))
            await self.session.rollback()
            raise StorageError("Failed to save location mappings") from e
        return [saved[device_id] for device_id in rows]

    async def get_by_device(self, device_id: DeviceId) -> LocationMapping | None:
        stmt = select(location_mappings_table).where(
            location_mappings_table.c.device_id == str(device_id)
        )
        result = await self.session.execute(stmt)
        row = result.mappings().first()
        return _row_to_mapping(dict(row)) if row else None

    async def delete_by_device(self, device_id: DeviceId) -> bool:
        stmt = delete(location_mappings_table).where(
            location_mappings_table.c.device_id == str(device_id)
        )
        result = await self.session.execute(stmt)
        return (result.rowcount or 0) > 0

    async def get_by_account_id(self, account_id: str) -> list[LocationMapping]:
        stmt = (
            select(location_mappings_table)
            .where(location_mappings_table.c.account_id == account_id)
            .order_by(location_mappings_table.c.device_id)
        )
        result = await self.session.execute(stmt)
        return [_row_to_mapping(dict(row)) for row in result.mappings().all()]

    async def find_by_fuzzy_name(
        self, name: str, threshold: float
    ) -> list[tuple[LocationMapping, float]]:
        if dialect_name(self.session) == "postgresql":
            score = func.similarity(location_mappings_table.c.account_name, name).label("score")
            stmt = (
                select(location_mappings_table, score)
                .where(score > threshold)
                .order_by(desc("score"))
                .limit(FUZZY_LIMIT)
            )
            result = await self.session.execute(stmt)
            return [
                (_row_to_mapping(dict(row)), float(row["score"]))
                for row in result.mappings().all()
            ]

        stmt = select(location_mappings_table).where(
            location_mappings_table.c.account_name.is_not(None)
        )
        result = await self.session.execute(stmt)
        scored = [
            (_row_to_mapping(dict(row)), trigram_similarity(row["account_name"], name))
            for row in result.mappings().all()
        ]
        ranked = sorted((p for p in scored if p[1] > threshold), key=lambda p: p[1], reverse=True)
        return ranked[:FUZZY_LIMIT]
