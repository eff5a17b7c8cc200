"""Linking orchestrator.

Takes an authorized marketing account through audience choice, location
resolution and, when resolution is ambiguous, a human pick, until location
mappings are committed or the installer is handed off to manual entry.

Every step that needs another HTTP round trip persists a linking session and
returns its token; the follow-up call consumes it. Consumption is one-shot, so
replaying a step fails with ``SessionExpiredError`` just like an expired link.
"""

import logging
import re
from dataclasses import dataclass

from apsync.domain.linking.model.outcome import (
    AudienceChoice,
    Committed,
    LinkOutcome,
    LocationChoice,
    ManualEntryRequired,
    SiteOption,
)
from apsync.domain.linking.model.site import CandidateSite
from apsync.domain.linking.model.stage import (
    AudiencePending,
    LinkContext,
    LinkTarget,
    LocationPending,
    ManualEntryHandoff,
    ManualEntryPending,
    OAuthPending,
    PendingStage,
    decode_stage,
    encode_stage,
)
from apsync.domain.linking.model.value import DeviceId, new_session_token
from apsync.domain.linking.port.repository import LinkingSessionStore, MappingRepository
from apsync.domain.linking.service.matching import MatchingEngine
from apsync.domain.marketing.model import Audience, AuthorizedAccount
from apsync.domain.marketing.port import MarketingPlatform
from apsync.domain.shared.error import NoAudienceError, UpstreamAuthError, ValidationError
from apsync.util.url import build_url

logger = logging.getLogger(__name__)

_LIST_SEPARATORS = re.compile(r"[\n,]+")


def parse_device_list(raw: str) -> tuple[list[DeviceId], int]:
    """Parse a newline/comma separated device list.

    Returns the distinct valid ids in input order and the number of entries
    that were skipped as invalid. Blank entries are ignored.
    """
    valid: dict[DeviceId, None] = {}
    skipped = 0
    for entry in _LIST_SEPARATORS.split(raw):
        entry = entry.strip()
        if not entry:
            continue
        device_id = DeviceId.try_parse(entry)
        if device_id is None:
            skipped += 1
        else:
            valid.setdefault(device_id, None)
    return list(valid), skipped


@dataclass
class LinkingService:
    matching: MatchingEngine
    sessions: LinkingSessionStore
    mappings: MappingRepository
    marketing: MarketingPlatform
    manual_entry_url: str

    async def start_authorization(
        self, context: LinkContext, audience_id: str | None = None
    ) -> str:
        """Persist the OAuth state and return the provider consent URL."""
        token = await self._persist(OAuthPending(context=context, audience_id=audience_id))
        logger.info("Started authorization: device=%s", context.device_id)
        return self.marketing.authorization_url(token)

    async def complete_authorization(self, state: str, code: str) -> LinkOutcome:
        pending = decode_stage(await self.sessions.consume(state), OAuthPending)
        account, audiences = await self._authorize(code)
        logger.info(
            "Authorized account=%s name=%s audiences=%d",
            account.account_id,
            account.account_name,
            len(audiences),
        )

        if not audiences:
            raise NoAudienceError()

        audience = None
        if pending.audience_id:
            audience = next((a for a in audiences if a.id == pending.audience_id), None)
            if audience is None:
                logger.warning(
                    "Preselected audience %s not found on account %s",
                    pending.audience_id,
                    account.account_id,
                )
        if audience is None and len(audiences) == 1:
            audience = audiences[0]

        if audience is None:
            token = await self._persist(
                AudiencePending(
                    context=pending.context, account=account, audiences=tuple(audiences)
                )
            )
            return AudienceChoice(
                token=token, account_name=account.account_name, audiences=tuple(audiences)
            )

        return await self._resolve(account, audience, pending.context)

    async def select_audience(
        self, token: str, audience_id: str, source_tag: str | None = None
    ) -> LinkOutcome:
        pending = decode_stage(await self.sessions.consume(token), AudiencePending)
        audience = pending.find_audience(audience_id)
        if audience is None:
            raise ValidationError("Unknown audience for this account", field="audience_id")
        return await self._resolve(pending.account, audience, pending.context.with_tag(source_tag))

    async def select_location(
        self, token: str, site_id: str, source_tag: str | None = None
    ) -> LinkOutcome:
        pending = decode_stage(await self.sessions.consume(token), LocationPending)
        match = pending.find_candidate(site_id)
        if match is None:
            raise ValidationError("Unknown location for this link", field="site_id")
        return await self._link_site(
            LinkTarget.of(pending.account, pending.audience),
            match.site,
            pending.context.with_tag(source_tag),
        )

    async def save_manual_entry(
        self, token: str, raw_device_ids: str, source_tag: str | None = None
    ) -> tuple[Committed, int]:
        """Link hand-typed devices. Returns the commit and the skipped count.

        The device list is validated before the session is consumed, so a typo
        does not burn the link.
        """
        device_ids, skipped = parse_device_list(raw_device_ids)
        if not device_ids:
            raise ValidationError(
                "No valid device ids. Use the aa:bb:cc:dd:ee:ff format, one per line.",
                field="device_ids",
            )

        pending = decode_stage(await self.sessions.consume(token), ManualEntryPending)
        tag = source_tag or pending.context.source_tag or pending.handoff.site_name
        committed = await self._commit(
            pending.handoff, device_ids, tag, pending.context.redirect_url
        )
        if skipped:
            logger.info("Manual entry skipped %d invalid device id(s)", skipped)
        return committed, skipped

    async def _authorize(self, code: str) -> tuple[AuthorizedAccount, list[Audience]]:
        try:
            access_token = await self.marketing.exchange_code(code)
            metadata = await self.marketing.get_account_metadata(access_token)
            audiences = await self.marketing.list_audiences(access_token, metadata.data_center)
        except UpstreamAuthError:
            raise
        except Exception as e:
            logger.exception("Mailchimp authorization exchange failed")
            raise UpstreamAuthError(
                "Could not complete the Mailchimp authorization. Please try again."
            ) from e
        return AuthorizedAccount.from_metadata(metadata, access_token), audiences

    async def _resolve(
        self, account: AuthorizedAccount, audience: Audience, context: LinkContext
    ) -> LinkOutcome:
        resolution = await self.matching.resolve_candidates(
            account.account_name, account.login_email
        )
        logger.info(
            "Resolved account=%s method=%s candidates=%d",
            account.account_id,
            resolution.method,
            len(resolution.matches),
        )
        target = LinkTarget.of(account, audience)

        if not resolution.matches:
            if context.device_id is not None:
                return await self._commit(
                    target, [context.device_id], context.source_tag, context.redirect_url
                )
            return await self._hand_off(target, None, context)

        if len(resolution.matches) == 1:
            return await self._link_site(target, resolution.matches[0].site, context)

        token = await self._persist(
            LocationPending(
                context=context,
                account=account,
                audience=audience,
                candidates=resolution.matches,
            )
        )
        return LocationChoice(
            token=token,
            account_name=account.account_name,
            audience_name=audience.name,
            options=tuple(SiteOption.from_match(m) for m in resolution.matches),
        )

    async def _link_site(
        self, target: LinkTarget, site: CandidateSite, context: LinkContext
    ) -> LinkOutcome:
        valid: dict[DeviceId, None] = {}
        for raw in site.device_ids:
            device_id = DeviceId.try_parse(raw)
            if device_id is None:
                logger.warning(
                    "Skipping unrecognized registry device id %r for site %s", raw, site.site_id
                )
                continue
            valid.setdefault(device_id, None)
        device_ids = list(valid)
        if not device_ids:
            return await self._hand_off(target, site.display_name, context)
        tag = context.source_tag or site.display_name
        return await self._commit(target, device_ids, tag, context.redirect_url)

    async def _commit(
        self,
        target: LinkTarget,
        device_ids: list[DeviceId],
        source_tag: str | None,
        redirect_url: str | None,
    ) -> Committed:
        inputs = [target.mapping_for(d, source_tag) for d in device_ids]
        if len(inputs) == 1:
            saved = [await self.mappings.upsert_one(inputs[0])]
        else:
            saved = await self.mappings.upsert_many(inputs)
        logger.info(
            "Linked %d device(s) to audience=%s account=%s tag=%s",
            len(saved),
            target.audience_id,
            target.account_id,
            source_tag,
        )
        return Committed(
            account_name=target.account_name,
            audience_id=target.audience_id,
            audience_name=target.audience_name,
            source_tag=source_tag,
            device_ids=tuple(str(m.device_id) for m in saved),
            redirect_url=redirect_url,
        )

    async def _hand_off(
        self, target: LinkTarget, site_name: str | None, context: LinkContext
    ) -> ManualEntryRequired:
        handoff = ManualEntryHandoff(**target.model_dump(), site_name=site_name)
        token = await self._persist(ManualEntryPending(context=context, handoff=handoff))
        logger.info("Handing off to manual entry: account=%s site=%s", target.account_id, site_name)
        return ManualEntryRequired(
            token=token,
            account_name=target.account_name,
            audience_name=target.audience_name,
            site_name=site_name,
            setup_url=build_url(
                self.manual_entry_url,
                session=token,
                account=target.account_name,
                site=site_name,
            ),
        )

    async def _persist(self, stage: PendingStage) -> str:
        token = new_session_token()
        await self.sessions.create(token, stage.context.device_id, encode_stage(stage))
        return token
