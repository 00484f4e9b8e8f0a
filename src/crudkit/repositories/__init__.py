"""Data-access layer.

``Repo`` is the contract a CRUD context delegates to; ``SQLAlchemyRepo`` is
the bundled async SQLAlchemy implementation.
"""

from crudkit.repositories.base import (
    ConflictError,
    EntityId,
    ErrorKind,
    PaginatedResult,
    PaginationParams,
    Repo,
    RepositoryError,
    UnknownFieldError,
)
from crudkit.repositories.sql import SQLAlchemyRepo

__all__ = [
    "ConflictError",
    "EntityId",
    "ErrorKind",
    "PaginatedResult",
    "PaginationParams",
    "Repo",
    "RepositoryError",
    "SQLAlchemyRepo",
    "UnknownFieldError",
]
