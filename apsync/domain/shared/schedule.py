from abc import ABC, abstractmethod
from typing import Any


class Schedule(ABC):
    """Base class for scheduled tasks.

    Subclasses are dataclasses with DI-injected dependencies. The cron
    expression comes from config, not from the class.

    Example:
        @dataclass
        class SweepExpiredSessions(Schedule):
            store: LinkingSessionStore

            async def run(self, **params: Any) -> None:
                await self.store.sweep_expired()
    """

    @abstractmethod
    async def run(self, **params: Any) -> None:
        """Run the scheduled task with parameters from config."""
        ...
