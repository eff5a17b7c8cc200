import re
import secrets
from enum import StrEnum

from pydantic import ConfigDict, RootModel, field_validator
from pydantic import ValidationError as PydanticValidationError

from apsync.domain.shared.error import ValidationError

_SEPARATORS = re.compile(r"[:\-]")
_ACCEPTED = re.compile(
    r"^(?:[0-9A-Fa-f]{2}:){5}[0-9A-Fa-f]{2}$"
    r"|^(?:[0-9A-Fa-f]{2}-){5}[0-9A-Fa-f]{2}$"
    r"|^[0-9A-Fa-f]{12}$"
)

SESSION_TOKEN_BYTES = 32


class DeviceId(RootModel[str]):
    """Hardware address of one access point, normalized to ``aa:bb:cc:dd:ee:ff``.

    Accepts colon separated, dash separated or bare hex input in any case.
    """

    model_config = ConfigDict(frozen=True)

    @field_validator("root")
    @classmethod
    def normalize(cls, v: str) -> str:
        raw = v.strip()
        if not _ACCEPTED.match(raw):
            raise ValueError(f"Invalid device id: {v!r}")
        digits = _SEPARATORS.sub("", raw).lower()
        return ":".join(digits[i : i + 2] for i in range(0, 12, 2))

    @classmethod
    def parse(cls, raw: str, *, field: str = "device_id") -> "DeviceId":
        """Normalize ``raw`` or raise the domain ``ValidationError``."""
        try:
            return cls(raw)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid device id: {raw!r}", field=field) from e

    @classmethod
    def try_parse(cls, raw: str) -> "DeviceId | None":
        try:
            return cls(raw)
        except PydanticValidationError:
            return None

    def __str__(self) -> str:
        return self.root


class MatchMethod(StrEnum):
    EXACT = "exact"
    FUZZY = "fuzzy"
    CONTAINS = "contains"


class ResolutionMethod(StrEnum):
    EMAIL = "email"
    NAME = "name"
    NONE = "none"


def new_session_token() -> str:
    """256 bits from the OS CSPRNG, hex encoded."""
    return secrets.token_hex(SESSION_TOKEN_BYTES)
