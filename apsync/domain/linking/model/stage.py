"""Linking session payloads.

A session row stores one of these stages as opaque JSON. The orchestrator
decodes a consumed payload with the stage it expects; anything else (missing,
malformed, unknown or a different stage) is treated as an expired session.
"""

import logging
from typing import Annotated, Any, Literal, TypeVar

from pydantic import Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from apsync.domain.linking.model.mapping import MappingInput
from apsync.domain.linking.model.site import MatchResult
from apsync.domain.linking.model.value import DeviceId
from apsync.domain.marketing.model import Audience, AuthorizedAccount
from apsync.domain.shared.error import SessionExpiredError
from apsync.domain.shared.model.value import ValueObject

logger = logging.getLogger(__name__)


class LinkContext(ValueObject):
    """What the installer supplied when the connection was started."""

    device_id: DeviceId | None = None
    redirect_url: str | None = None
    source_tag: str | None = None

    def with_tag(self, source_tag: str | None) -> "LinkContext":
        if not source_tag:
            return self
        return self.model_copy(update={"source_tag": source_tag})


class LinkTarget(ValueObject):
    """The account and audience that devices get linked to."""

    account_id: str
    account_name: str | None = None
    audience_id: str
    audience_name: str | None = None
    access_token: str = Field(repr=False)
    data_center: str

    @classmethod
    def of(cls, account: AuthorizedAccount, audience: Audience) -> "LinkTarget":
        return cls(
            account_id=account.account_id,
            account_name=account.account_name,
            audience_id=audience.id,
            audience_name=audience.name,
            access_token=account.access_token,
            data_center=account.data_center,
        )

    def mapping_for(self, device_id: DeviceId, source_tag: str | None) -> MappingInput:
        return MappingInput(
            device_id=device_id,
            access_token=self.access_token,
            data_center=self.data_center,
            account_id=self.account_id,
            account_name=self.account_name,
            audience_id=self.audience_id,
            audience_name=self.audience_name,
            source_tag=source_tag,
        )


class ManualEntryHandoff(LinkTarget):
    """Link target for devices the installer will type in by hand."""

    site_name: str | None = None


class OAuthPending(ValueObject):
    stage: Literal["oauth"] = "oauth"
    context: LinkContext = LinkContext()
    audience_id: str | None = None


class AudiencePending(ValueObject):
    stage: Literal["audience"] = "audience"
    context: LinkContext
    account: AuthorizedAccount
    audiences: tuple[Audience, ...]

    def find_audience(self, audience_id: str) -> Audience | None:
        return next((a for a in self.audiences if a.id == audience_id), None)


class LocationPending(ValueObject):
    stage: Literal["location"] = "location"
    context: LinkContext
    account: AuthorizedAccount
    audience: Audience
    candidates: tuple[MatchResult, ...]

    def find_candidate(self, site_id: str) -> MatchResult | None:
        return next((m for m in self.candidates if m.site.site_id == site_id), None)


class ManualEntryPending(ValueObject):
    stage: Literal["manual"] = "manual"
    context: LinkContext
    handoff: ManualEntryHandoff


PendingStage = Annotated[
    OAuthPending | AudiencePending | LocationPending | ManualEntryPending,
    Field(discriminator="stage"),
]

_stage_adapter: TypeAdapter[PendingStage] = TypeAdapter(PendingStage)

S = TypeVar("S", OAuthPending, AudiencePending, LocationPending, ManualEntryPending)


def encode_stage(stage: PendingStage) -> dict[str, Any]:
    return _stage_adapter.dump_python(stage, mode="json")


def decode_stage(payload: dict[str, Any] | None, expected: type[S]) -> S:
    """Decode a consumed session payload, failing closed.

    Raises:
        SessionExpiredError: payload is None, malformed, or of another stage.
    """
    if payload is None:
        raise SessionExpiredError()
    try:
        stage = _stage_adapter.validate_python(payload)
    except PydanticValidationError as e:
        logger.warning("Discarding malformed linking session payload: %s", e)
        raise SessionExpiredError() from e
    if not isinstance(stage, expected):
        logger.warning(
            "Linking session stage mismatch: expected=%s got=%s",
            expected.__name__,
            type(stage).__name__,
        )
        raise SessionExpiredError()
    return stage
