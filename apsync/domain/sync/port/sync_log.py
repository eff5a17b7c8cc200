from abc import abstractmethod
from typing import Protocol

from apsync.domain.shared.port import Port


class SyncLogRepository(Port, Protocol):
    """Audit trail of contact sync attempts."""

    @abstractmethod
    async def record(
        self,
        device_id: str,
        email: str,
        success: bool,
        error_message: str | None = None,
    ) -> None: ...
