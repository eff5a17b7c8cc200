"""In-process site registry, scored with the same trigram rules as pg_trgm."""

from collections.abc import Callable, Iterable

from apsync.domain.linking.model.site import CandidateSite
from apsync.domain.linking.port.site_registry import SiteRegistry
from apsync.util.trigram import trigram_similarity


class InMemorySiteRegistry(SiteRegistry):
    def __init__(
        self,
        sites: Iterable[CandidateSite] = (),
        similarity: Callable[[str, str], float] = trigram_similarity,
        limit: int | None = None,
    ) -> None:
        self.sites = list(sites)
        self.similarity = similarity
        self.limit = limit

    def _limited(self, items: list) -> list:
        return items if self.limit is None else items[: self.limit]

    async def find_by_email(self, email: str) -> list[CandidateSite]:
        needle = email.strip().lower()
        return [s for s in self.sites if needle in (e.lower() for e in s.contact_emails)]

    async def find_by_exact_name(self, name: str) -> list[CandidateSite]:
        needle = name.strip().lower()
        if not needle:
            return []
        return [
            s
            for s in self.sites
            if s.display_name.lower() == needle or (s.group_name or "").lower() == needle
        ]

    async def rank_by_similarity(
        self, name: str, threshold: float
    ) -> list[tuple[CandidateSite, float]]:
        scored = [(s, self.similarity(s.display_name, name)) for s in self.sites]
        ranked = sorted(
            (pair for pair in scored if pair[1] > threshold),
            key=lambda pair: pair[1],
            reverse=True,
        )
        return self._limited(ranked)

    async def find_by_substring(self, name: str) -> list[CandidateSite]:
        needle = name.strip().lower()
        if not needle:
            return []
        return self._limited(
            [
                s
                for s in self.sites
                if needle in s.display_name.lower() or s.display_name.lower() in needle
            ]
        )
