"""crudkit: bind a CRUD surface to an entity descriptor and a data-access handle."""

__version__ = "0.1.0"

from crudkit.changeset import Changeset, ChangesetSchema
from crudkit.context import CrudBinding, CrudContext, crud_for
from crudkit.exceptions import (
    ConflictError,
    ContextNotSetError,
    CrudConfigurationError,
    MissingChangesetFunctionError,
    RepositoryError,
    SchemaNotSetError,
    UnexpectedResultError,
    UnknownFieldError,
)
from crudkit.repositories import (
    ErrorKind,
    PaginatedResult,
    PaginationParams,
    Repo,
    SQLAlchemyRepo,
)
from crudkit.result import Failure, Result, Success

__all__ = [
    "__version__",
    "Changeset",
    "ChangesetSchema",
    "ConflictError",
    "ContextNotSetError",
    "CrudBinding",
    "CrudConfigurationError",
    "CrudContext",
    "ErrorKind",
    "Failure",
    "MissingChangesetFunctionError",
    "PaginatedResult",
    "PaginationParams",
    "Repo",
    "RepositoryError",
    "Result",
    "SQLAlchemyRepo",
    "SchemaNotSetError",
    "Success",
    "UnexpectedResultError",
    "UnknownFieldError",
    "crud_for",
]
