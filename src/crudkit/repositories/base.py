"""Data-access handle contract shared by every CRUD context.

A CRUD context never talks to the database itself. It builds queries and
changesets, then hands them to a data-access handle ("repo") that satisfies
the ``Repo`` protocol below. The bundled implementation is
``crudkit.repositories.sql.SQLAlchemyRepo``.

Return conventions:
- ``get`` / ``get_by`` return the bare record, or None when absent
- ``all`` returns a list, ``count`` an int
- ``insert`` / ``update`` / ``delete`` return ``Success(record)`` or
  ``Failure(reason)`` where reason is the rejected changeset or an
  ``ErrorKind``
- database errors are raised as ``RepositoryError`` subclasses
"""

from collections.abc import Mapping
from enum import Enum
from typing import Any, Generic, Protocol, TypeVar, Union, runtime_checkable
import uuid

from sqlalchemy import Select
from sqlalchemy.orm import DeclarativeBase

from crudkit.changeset import Changeset
from crudkit.core.config import settings
from crudkit.exceptions import ConflictError, RepositoryError, UnknownFieldError
from crudkit.result import Failure, Success

ModelType = TypeVar("ModelType", bound=DeclarativeBase)

EntityId = Union[int, str, uuid.UUID]

__all__ = [
    "ConflictError",
    "EntityId",
    "ErrorKind",
    "ModelType",
    "PaginatedResult",
    "PaginationParams",
    "Repo",
    "RepositoryError",
    "UnknownFieldError",
    "WriteOutcome",
]


class ErrorKind(str, Enum):
    """Explicit failure kinds reported by data-access handles."""

    NOT_FOUND = "not_found"


# ============================================================================
# PAGINATION SUPPORT
# ============================================================================


class PaginationParams:
    """Pagination parameters for limited listings.

    Attributes:
        offset: Number of records to skip (default: 0, must be >= 0)
        limit: Number of records to return (must be 1..max_limit)

    Example:
        # Records 100-149
        pagination = PaginationParams(offset=100, limit=50)
        result = await posts.paginate(pagination)

    Raises:
        ValueError: If offset is negative or limit is out of range
    """

    def __init__(
        self,
        offset: int = 0,
        limit: int | None = None,
        max_limit: int | None = None,
    ) -> None:
        if limit is None:
            limit = settings.default_page_size
        if max_limit is None:
            max_limit = settings.max_page_size

        if offset < 0:
            raise ValueError("Offset must be non-negative")
        if limit <= 0 or limit > max_limit:
            raise ValueError(f"Limit must be between 1 and {max_limit}")

        self.offset = offset
        self.limit = limit

    def __repr__(self) -> str:
        return f"PaginationParams(offset={self.offset}, limit={self.limit})"


class PaginatedResult(Generic[ModelType]):
    """Paginated result container with metadata.

    Attributes:
        items: List of entities in this page
        total: Total count of matching entities (across all pages)
        offset: Current page offset
        limit: Current page limit
        has_next: True if more pages exist after this one
        has_prev: True if previous pages exist before this one
    """

    def __init__(
        self,
        items: list[ModelType],
        total: int,
        offset: int,
        limit: int
    ) -> None:
        self.items = items
        self.total = total
        self.offset = offset
        self.limit = limit
        self.has_next = offset + limit < total
        self.has_prev = offset > 0

    def __repr__(self) -> str:
        return (
            f"PaginatedResult(total={self.total}, offset={self.offset}, "
            f"limit={self.limit}, items={len(self.items)})"
        )


# ============================================================================
# DATA-ACCESS HANDLE PROTOCOL
# ============================================================================


WriteOutcome = Union[Success[Any], Failure]


@runtime_checkable
class Repo(Protocol):
    """Capabilities a CRUD context needs from its data-access handle."""

    async def insert(self, changeset: Changeset[Any]) -> WriteOutcome:
        ...

    async def get(self, schema: type[ModelType], entity_id: EntityId) -> ModelType | None:
        ...

    async def get_by(
        self, schema: type[ModelType], filters: Mapping[str, Any]
    ) -> ModelType | None:
        ...

    async def all(self, query: Select[Any]) -> list[Any]:
        ...

    async def count(self, query: Select[Any]) -> int:
        ...

    async def update(self, changeset: Changeset[Any]) -> WriteOutcome:
        ...

    async def delete(self, record: Any) -> WriteOutcome:
        ...
