from pydantic import Field

from apsync.domain.linking.model.value import MatchMethod, ResolutionMethod
from apsync.domain.shared.model.value import ValueObject


class CandidateSite(ValueObject):
    """One physical business location from the sites registry (read-only)."""

    site_id: str
    display_name: str
    address: str | None = None
    region: str | None = None
    group_name: str | None = None
    device_ids: tuple[str, ...] = ()
    contact_emails: tuple[str, ...] = ()


class MatchResult(ValueObject):
    site: CandidateSite
    score: float = Field(ge=0.0, le=1.0)
    method: MatchMethod


class Resolution(ValueObject):
    """Ranked candidates for one authorized account, best first."""

    matches: tuple[MatchResult, ...] = ()
    method: ResolutionMethod = ResolutionMethod.NONE

    @property
    def sites(self) -> list[CandidateSite]:
        return [m.site for m in self.matches]

    @classmethod
    def empty(cls) -> "Resolution":
        return cls(matches=(), method=ResolutionMethod.NONE)
