from dataclasses import dataclass

from pydantic import Field

from apsync.domain.linking.command.authorize import LinkStepResult
from apsync.domain.linking.service.linking import LinkingService
from apsync.domain.shared.command import Command, CommandHandler


class SelectAudience(Command):
    token: str = Field(min_length=1)
    audience_id: str = Field(min_length=1)
    source_tag: str | None = None


@dataclass
class SelectAudienceHandler(CommandHandler[SelectAudience, LinkStepResult]):
    service: LinkingService

    async def run(self, cmd: SelectAudience) -> LinkStepResult:
        outcome = await self.service.select_audience(
            cmd.token, cmd.audience_id, cmd.source_tag or None
        )
        return LinkStepResult(outcome=outcome)


class SelectLocation(Command):
    token: str = Field(min_length=1)
    site_id: str = Field(min_length=1)
    source_tag: str | None = None


@dataclass
class SelectLocationHandler(CommandHandler[SelectLocation, LinkStepResult]):
    service: LinkingService

    async def run(self, cmd: SelectLocation) -> LinkStepResult:
        outcome = await self.service.select_location(
            cmd.token, cmd.site_id, cmd.source_tag or None
        )
        return LinkStepResult(outcome=outcome)
