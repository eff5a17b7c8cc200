"""Location resolution for a freshly authorized account.

Strategies run in a fixed order and the first that finds anything wins:

1. email: sites listing the account's login email as a contact
2. name: exact, fuzzy and substring matches on the account name, merged

Finding nothing is a normal outcome (``ResolutionMethod.NONE``), never an error.
"""

import logging
from dataclasses import dataclass

from apsync.domain.linking.model.site import MatchResult, Resolution
from apsync.domain.linking.model.value import MatchMethod, ResolutionMethod
from apsync.domain.linking.port.site_registry import SiteRegistry

logger = logging.getLogger(__name__)

CONTAINS_SCORE = 0.5


@dataclass
class MatchingEngine:
    registry: SiteRegistry
    similarity_threshold: float = 0.3

    async def resolve_candidates(
        self, account_name: str | None, login_email: str | None
    ) -> Resolution:
        if login_email and login_email.strip():
            sites = await self.registry.find_by_email(login_email.strip())
            if sites:
                logger.debug("Resolved %d site(s) by email", len(sites))
                matches = [MatchResult(site=s, score=1.0, method=MatchMethod.EXACT) for s in sites]
                return Resolution(
                    matches=tuple(_dedupe(matches)), method=ResolutionMethod.EMAIL
                )

        if account_name and account_name.strip():
            matches = await self._match_by_name(account_name.strip())
            if matches:
                logger.debug("Resolved %d site(s) by name", len(matches))
                return Resolution(matches=tuple(matches), method=ResolutionMethod.NAME)

        return Resolution.empty()

    async def _match_by_name(self, name: str) -> list[MatchResult]:
        exact = await self.registry.find_by_exact_name(name)
        ranked = await self.registry.rank_by_similarity(name, self.similarity_threshold)
        contained = await self.registry.find_by_substring(name)

        found = [MatchResult(site=s, score=1.0, method=MatchMethod.EXACT) for s in exact]
        found += [
            MatchResult(site=s, score=min(score, 1.0), method=MatchMethod.FUZZY)
            for s, score in sorted(ranked, key=lambda pair: pair[1], reverse=True)
        ]
        found += [
            MatchResult(site=s, score=CONTAINS_SCORE, method=MatchMethod.CONTAINS)
            for s in contained
        ]
        # sorted() is stable, so equal scores keep exact > fuzzy > contains order
        return sorted(_dedupe(found), key=lambda m: m.score, reverse=True)


def _dedupe(matches: list[MatchResult]) -> list[MatchResult]:
    """Keep the first match per site id."""
    by_site: dict[str, MatchResult] = {}
    for match in matches:
        by_site.setdefault(match.site.site_id, match)
    return list(by_site.values())

