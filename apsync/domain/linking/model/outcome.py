"""What a linking step hands back to the caller."""

from typing import Annotated, Literal

from pydantic import Field

from apsync.domain.linking.model.site import MatchResult
from apsync.domain.linking.model.value import MatchMethod
from apsync.domain.marketing.model import Audience
from apsync.domain.shared.model.value import ValueObject


class Committed(ValueObject):
    kind: Literal["committed"] = "committed"
    account_name: str | None = None
    audience_id: str
    audience_name: str | None = None
    source_tag: str | None = None
    device_ids: tuple[str, ...]
    redirect_url: str | None = None


class AudienceChoice(ValueObject):
    kind: Literal["select_audience"] = "select_audience"
    token: str
    account_name: str | None = None
    audiences: tuple[Audience, ...]


class SiteOption(ValueObject):
    site_id: str
    display_name: str
    address: str | None = None
    region: str | None = None
    group_name: str | None = None
    device_count: int
    score: float
    method: MatchMethod

    @classmethod
    def from_match(cls, match: MatchResult) -> "SiteOption":
        site = match.site
        return cls(
            site_id=site.site_id,
            display_name=site.display_name,
            address=site.address,
            region=site.region,
            group_name=site.group_name,
            device_count=len(site.device_ids),
            score=round(match.score, 3),
            method=match.method,
        )


class LocationChoice(ValueObject):
    kind: Literal["select_location"] = "select_location"
    token: str
    account_name: str | None = None
    audience_name: str | None = None
    options: tuple[SiteOption, ...]


class ManualEntryRequired(ValueObject):
    kind: Literal["manual_entry"] = "manual_entry"
    token: str
    account_name: str | None = None
    audience_name: str | None = None
    site_name: str | None = None
    setup_url: str | None = None


LinkOutcome = Annotated[
    Committed | AudienceChoice | LocationChoice | ManualEntryRequired,
    Field(discriminator="kind"),
]
