from abc import abstractmethod
from typing import Any, Protocol

from apsync.domain.linking.model.mapping import LocationMapping, MappingInput
from apsync.domain.linking.model.value import DeviceId
from apsync.domain.shared.port import Port


class MappingRepository(Port, Protocol):
    @abstractmethod
    async def upsert_one(self, mapping: MappingInput) -> LocationMapping:
        """Insert or replace the mapping for ``mapping.device_id``."""
        ...

    @abstractmethod
    async def upsert_many(self, mappings: list[MappingInput]) -> list[LocationMapping]:
        """Upsert every mapping, or none of them.

        Raises:
            StorageError: any row failed; the transaction was rolled back.
        """
        ...

    @abstractmethod
    async def get_by_device(self, device_id: DeviceId) -> LocationMapping | None: ...

    @abstractmethod
    async def delete_by_device(self, device_id: DeviceId) -> bool: ...

    @abstractmethod
    async def get_by_account_id(self, account_id: str) -> list[LocationMapping]: ...

    @abstractmethod
    async def find_by_fuzzy_name(
        self, name: str, threshold: float
    ) -> list[tuple[LocationMapping, float]]:
        """Mappings whose account name is similar to ``name``, best first, at most 5."""
        ...


class LinkingSessionStore(Port, Protocol):
    """TTL-bound storage for in-flight linking workflows.

    The payload is opaque to the store.
    """

    @abstractmethod
    async def create(
        self, token: str, device_id: DeviceId | None, payload: dict[str, Any]
    ) -> None:
        """Persist a new session.

        Raises:
            DuplicateTokenError: ``token`` is already in use.
        """
        ...

    @abstractmethod
    async def consume(self, token: str) -> dict[str, Any] | None:
        """Atomically delete an unexpired session and return its payload.

        Unknown, already consumed and expired tokens all return None.
        """
        ...

    @abstractmethod
    async def sweep_expired(self) -> int:
        """Delete expired sessions and return how many were removed."""
        ...
