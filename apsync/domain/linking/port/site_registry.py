from abc import abstractmethod
from typing import Protocol

from apsync.domain.linking.model.site import CandidateSite
from apsync.domain.shared.port import Port


class SiteRegistry(Port, Protocol):
    """Read-only access to the external registry of physical sites."""

    @abstractmethod
    async def find_by_email(self, email: str) -> list[CandidateSite]:
        """Sites whose contact emails contain ``email`` (case-insensitive)."""
        ...

    @abstractmethod
    async def find_by_exact_name(self, name: str) -> list[CandidateSite]:
        """Sites whose display name or group name equals ``name`` (case-insensitive)."""
        ...

    @abstractmethod
    async def rank_by_similarity(
        self, name: str, threshold: float
    ) -> list[tuple[CandidateSite, float]]:
        """Sites with trigram similarity above ``threshold``, best first."""
        ...

    @abstractmethod
    async def find_by_substring(self, name: str) -> list[CandidateSite]:
        """Sites whose display name contains ``name`` or is contained in it."""
        ...
