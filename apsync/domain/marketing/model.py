"""Models exchanged with the marketing platform."""

from typing import Any

from pydantic import Field

from apsync.domain.shared.model.value import ValueObject


class AccountMetadata(ValueObject):
    """Who an access token belongs to, as reported by the platform."""

    account_id: str
    account_name: str | None = None
    login_email: str | None = None
    data_center: str
    api_endpoint: str | None = None


class AuthorizedAccount(AccountMetadata):
    """Result of a completed OAuth exchange.

    Lives for one linking attempt. It is only ever persisted inside a linking
    session payload, so it disappears with the session.
    """

    access_token: str = Field(repr=False)

    @classmethod
    def from_metadata(cls, metadata: AccountMetadata, access_token: str) -> "AuthorizedAccount":
        return cls(**metadata.model_dump(), access_token=access_token)


class Audience(ValueObject):
    id: str
    name: str
    member_count: int = 0


class Contact(ValueObject):
    email: str
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    status: str = "subscribed"
    merge_fields: dict[str, Any] = Field(default_factory=dict)

    def all_merge_fields(self) -> dict[str, Any]:
        """Named fields, overridden by any explicit custom merge fields."""
        fields: dict[str, Any] = {}
        if self.first_name:
            fields["FNAME"] = self.first_name
        if self.last_name:
            fields["LNAME"] = self.last_name
        if self.phone:
            fields["PHONE"] = self.phone
        fields.update(self.merge_fields)
        return fields


class ContactResult(ValueObject):
    id: str
    email: str
    status: str
