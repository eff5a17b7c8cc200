import logging
from dataclasses import dataclass
from typing import Any

from apsync.domain.linking.port.repository import LinkingSessionStore
from apsync.domain.shared.schedule import Schedule

logger = logging.getLogger(__name__)


@dataclass
class SweepExpiredSessions(Schedule):
    """Delete linking sessions whose TTL has passed."""

    store: LinkingSessionStore

    async def run(self, **params: Any) -> None:
        removed = await self.store.sweep_expired()
        if removed:
            logger.info("Swept %d expired linking session(s)", removed)
