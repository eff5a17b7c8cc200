import re
from typing import Any

from pydantic import Field

from apsync.domain.shared.error import ValidationError
from apsync.domain.shared.model.value import ValueObject

_EMAIL = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def normalize_email(raw: str) -> str:
    email = raw.strip()
    if not _EMAIL.match(email):
        raise ValidationError("Invalid email format", field="email")
    return email


class ContactInput(ValueObject):
    """A guest captured by the captive portal, as received on the webhook."""

    device_id: str
    email: str
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    source: str | None = None  # Extra tag, e.g. "wifi-signup"
    location_name: str | None = None  # Used to auto-map unknown devices
    custom_fields: dict[str, Any] = Field(default_factory=dict)


class SyncOutcome(ValueObject):
    email: str
    contact_id: str
    status: str
    audience_id: str
    tags: tuple[str, ...] = ()
    auto_mapped: bool = False


class BatchError(ValueObject):
    index: int
    email: str | None = None
    message: str


class BatchSyncResult(ValueObject):
    total: int
    succeeded: int
    failed: int
    errors: tuple[BatchError, ...] = ()
