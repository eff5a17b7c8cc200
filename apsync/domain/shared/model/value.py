from pydantic import BaseModel, ConfigDict


class ValueObject(BaseModel):
    """Immutable, compared by value."""

    model_config = ConfigDict(frozen=True)


class Entity(BaseModel):
    """Has identity; fields may change but are re-validated on assignment."""

    model_config = ConfigDict(validate_assignment=True)
