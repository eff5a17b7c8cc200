"""Site registry backed by the captive-portal platform's ``vivaspot_sites`` table.

The registry usually lives in a separate database with ``pg_trgm`` installed.
Against any other dialect (SQLite in development) rows are loaded and matched
in Python with :class:`InMemorySiteRegistry`.
"""

import logging
from typing import NewType

from sqlalchemy import desc, func, literal, or_, select, text
from sqlalchemy.ext.asyncio import AsyncEngine

from apsync.domain.linking.model.site import CandidateSite
from apsync.domain.linking.port.site_registry import SiteRegistry
from apsync.infrastructure.persistence.database import dialect_name
from apsync.infrastructure.persistence.tables import registry_sites_table as sites
from apsync.infrastructure.registry.memory import InMemorySiteRegistry

logger = logging.getLogger(__name__)

RegistryEngine = NewType("RegistryEngine", AsyncEngine)

_EMAIL_MATCH = text(
    "lower(:email) = ANY (SELECT lower(e) FROM unnest(vivaspot_sites.merchant_emails) AS e)"
)


def _row_to_site(row: dict) -> CandidateSite:
    return CandidateSite(
        site_id=str(row["id"]),
        display_name=row["restaurant_name"],
        address=row["address"],
        region=row["region"],
        group_name=row["hospitality_group"],
        device_ids=tuple(row["mac_addresses"] or ()),
        contact_emails=tuple(row["merchant_emails"] or ()),
    )


class PostgresSiteRegistry(SiteRegistry):
    def __init__(self, engine: RegistryEngine, limit: int = 10) -> None:
        self.engine = engine
        self.limit = limit

    async def _fetch(self, stmt) -> list[dict]:
        async with self.engine.connect() as conn:
            result = await conn.execute(stmt)
            return [dict(row) for row in result.mappings().all()]

    async def _fallback(self) -> InMemorySiteRegistry | None:
        if dialect_name(self.engine) == "postgresql":
            return None
        rows = await self._fetch(select(sites))
        return InMemorySiteRegistry([_row_to_site(r) for r in rows], limit=self.limit)

    async def find_by_email(self, email: str) -> list[CandidateSite]:
        if (memory := await self._fallback()) is not None:
            return await memory.find_by_email(email)
        stmt = select(sites).where(_EMAIL_MATCH.bindparams(email=email.strip()))
        return [_row_to_site(r) for r in await self._fetch(stmt)]

    async def find_by_exact_name(self, name: str) -> list[CandidateSite]:
        if (memory := await self._fallback()) is not None:
            return await memory.find_by_exact_name(name)
        needle = name.strip().lower()
        if not needle:
            return []
        stmt = select(sites).where(
            or_(
                func.lower(sites.c.restaurant_name) == needle,
                func.lower(sites.c.hospitality_group) == needle,
            )
        )
        return [_row_to_site(r) for r in await self._fetch(stmt)]

    async def rank_by_similarity(
        self, name: str, threshold: float
    ) -> list[tuple[CandidateSite, float]]:
        if (memory := await self._fallback()) is not None:
            return await memory.rank_by_similarity(name, threshold)
        score = func.similarity(sites.c.restaurant_name, name).label("match_score")
        stmt = select(sites, score).where(score > threshold).order_by(desc("match_score"))
        rows = await self._fetch(stmt.limit(self.limit))
        return [(_row_to_site(r), float(r["match_score"])) for r in rows]

    async def find_by_substring(self, name: str) -> list[CandidateSite]:
        if (memory := await self._fallback()) is not None:
            return await memory.find_by_substring(name)
        needle = name.strip().lower()
        if not needle:
            return []
        column = func.lower(sites.c.restaurant_name)
        stmt = (
            select(sites)
            .where(or_(column.contains(needle, autoescape=True), literal(needle).contains(column)))
            .limit(self.limit)
        )
        return [_row_to_site(r) for r in await self._fetch(stmt)]
