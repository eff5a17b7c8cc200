from dataclasses import dataclass

from pydantic import Field

from apsync.domain.linking.model.outcome import Committed
from apsync.domain.linking.service.linking import LinkingService
from apsync.domain.shared.command import Command, CommandHandler, Result


class SaveManualEntry(Command):
    """Link devices typed in on the manual-entry screen.

    ``device_ids`` is the raw text field: one id per line or comma separated.
    """

    token: str = Field(min_length=1)
    device_ids: str
    source_tag: str | None = None


class ManualEntrySaved(Result):
    committed: Committed
    skipped: int


@dataclass
class SaveManualEntryHandler(CommandHandler[SaveManualEntry, ManualEntrySaved]):
    service: LinkingService

    async def run(self, cmd: SaveManualEntry) -> ManualEntrySaved:
        committed, skipped = await self.service.save_manual_entry(
            cmd.token, cmd.device_ids, cmd.source_tag or None
        )
        return ManualEntrySaved(committed=committed, skipped=skipped)
