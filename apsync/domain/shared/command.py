"""Command/Query handler base classes.

Commands change state, queries only read it. Both are pydantic models so the
HTTP layer can accept them as request bodies directly; handlers are dataclasses
whose fields are resolved by the DI container.
"""

from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict


class Command(BaseModel):
    model_config = ConfigDict(frozen=True)


class Query(BaseModel):
    model_config = ConfigDict(frozen=True)


class Result(BaseModel): ...


C = TypeVar("C", bound=Command)
Q = TypeVar("Q", bound=Query)
R = TypeVar("R")


class CommandHandler(ABC, Generic[C, R]):
    """Base class for command handlers.

    Subclasses are declared with ``@dataclass`` and implement ``run``.
    """

    @abstractmethod
    async def run(self, cmd: C) -> R: ...


class QueryHandler(ABC, Generic[Q, R]):
    """Base class for query handlers."""

    @abstractmethod
    async def run(self, query: Q) -> R: ...
