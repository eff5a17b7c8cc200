"""Marketing platform port, shared by the linking and sync domains."""

from abc import abstractmethod
from typing import Protocol

from apsync.domain.marketing.model import (
    AccountMetadata,
    Audience,
    Contact,
    ContactResult,
)
from apsync.domain.shared.port import Port


class MarketingPlatform(Port, Protocol):
    """Port for the third-party marketing platform (Mailchimp).

    Every network failure surfaces as ``ExternalServiceError``.
    """

    @abstractmethod
    def authorization_url(self, state: str) -> str:
        """Build the URL that starts the OAuth consent flow.

        Args:
            state: Linking session token, echoed back on the callback.
        """
        ...

    @abstractmethod
    async def exchange_code(self, code: str) -> str:
        """Exchange an authorization code for an access token."""
        ...

    @abstractmethod
    async def get_account_metadata(self, access_token: str) -> AccountMetadata: ...

    @abstractmethod
    async def list_audiences(self, access_token: str, data_center: str) -> list[Audience]: ...

    @abstractmethod
    async def upsert_contact(
        self,
        access_token: str,
        data_center: str,
        audience_id: str,
        contact: Contact,
    ) -> ContactResult:
        """Create the contact or update it in place, keyed by email."""
        ...

    @abstractmethod
    async def add_tags(
        self,
        access_token: str,
        data_center: str,
        audience_id: str,
        email: str,
        tags: list[str],
    ) -> None: ...

    @abstractmethod
    async def ping(self, access_token: str, data_center: str) -> bool:
        """Return True if the token is still accepted by the platform."""
        ...
