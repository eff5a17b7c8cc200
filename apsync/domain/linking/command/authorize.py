"""Commands that start and finish the OAuth leg of a linking attempt."""

import logging
from dataclasses import dataclass

from apsync.domain.linking.model.outcome import LinkOutcome
from apsync.domain.linking.model.stage import LinkContext
from apsync.domain.linking.model.value import DeviceId
from apsync.domain.linking.service.linking import LinkingService
from apsync.domain.shared.command import Command, CommandHandler, Result
from apsync.domain.shared.error import UpstreamAuthError, ValidationError
from apsync.util.url import require_http_url

logger = logging.getLogger(__name__)


class StartAuthorization(Command):
    device_id: str | None = None
    redirect_url: str | None = None
    audience_id: str | None = None  # Skip the audience picker when present on the account
    source_tag: str | None = None


class AuthorizationStarted(Result):
    authorization_url: str


@dataclass
class StartAuthorizationHandler(CommandHandler[StartAuthorization, AuthorizationStarted]):
    service: LinkingService

    async def run(self, cmd: StartAuthorization) -> AuthorizationStarted:
        context = LinkContext(
            device_id=DeviceId.parse(cmd.device_id) if cmd.device_id else None,
            redirect_url=(
                require_http_url(cmd.redirect_url, field="redirect_url")
                if cmd.redirect_url
                else None
            ),
            source_tag=cmd.source_tag or None,
        )
        url = await self.service.start_authorization(context, cmd.audience_id or None)
        return AuthorizationStarted(authorization_url=url)


class CompleteAuthorization(Command):
    code: str | None = None
    state: str | None = None
    error: str | None = None  # Set by the provider when the user declines


class LinkStepResult(Result):
    outcome: LinkOutcome


@dataclass
class CompleteAuthorizationHandler(CommandHandler[CompleteAuthorization, LinkStepResult]):
    service: LinkingService

    async def run(self, cmd: CompleteAuthorization) -> LinkStepResult:
        if cmd.error:
            logger.warning("Mailchimp returned an OAuth error: %s", cmd.error)
            raise UpstreamAuthError(
                "Mailchimp did not authorize the connection. Please try again.",
                code="oauth_denied",
            )
        if not cmd.code or not cmd.state:
            raise ValidationError("Missing required parameters: code and state")

        outcome = await self.service.complete_authorization(cmd.state, cmd.code)
        return LinkStepResult(outcome=outcome)
