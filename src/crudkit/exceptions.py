"""Exception hierarchy.

Two families live here:

- ``CrudConfigurationError`` and subclasses: the only errors CRUD operations
  let escape. They signal a context that was bound incorrectly and cannot be
  recovered by the caller.
- ``RepositoryError`` and subclasses: raised by data-access handles and
  query builders. CRUD operations turn them into ``Failure`` results.
"""


# ============================================================================
# DATA-ACCESS ERRORS
# ============================================================================


class RepositoryError(Exception):
    """Base exception for all data-access operations.

    Example:
        try:
            post = await repo.get(Post, 1)
        except RepositoryError as e:
            logger.error("Database operation failed", error=str(e))
    """
    pass


class ConflictError(RepositoryError):
    """Raised when a write conflicts with existing data.

    Typically a unique or foreign key constraint violation.
    """
    pass


class UnknownFieldError(RepositoryError):
    """Raised when a filter names a field the entity does not map."""

    def __init__(self, schema_name: str, field: str) -> None:
        super().__init__(f"{schema_name} has no field '{field}'")
        self.schema_name = schema_name
        self.field = field


# ============================================================================
# CONFIGURATION ERRORS
# ============================================================================


class CrudConfigurationError(Exception):
    """Base exception for a misconfigured CRUD context."""
    pass


class ContextNotSetError(CrudConfigurationError):
    """Raised when a context is bound without a data-access handle."""

    def __init__(self, message: str = "CRUD context requires a data-access handle (repo)") -> None:
        super().__init__(message)


class SchemaNotSetError(CrudConfigurationError):
    """Raised when a context is bound without an entity descriptor."""

    def __init__(self, message: str = "CRUD context requires an entity descriptor (schema)") -> None:
        super().__init__(message)


class MissingChangesetFunctionError(CrudConfigurationError):
    """Raised on the first write when the schema has no ``changeset`` function.

    Example:
        class Post(Base, IdMixin):
            @classmethod
            def changeset(cls, post: "Post", fields: dict) -> Changeset:
                return Changeset.cast(post, fields, ["title"])
    """

    def __init__(self, schema_name: str) -> None:
        super().__init__(
            f"{schema_name} must define a changeset(instance, fields) classmethod "
            "to be created or updated"
        )
        self.schema_name = schema_name


class UnexpectedResultError(CrudConfigurationError):
    """Raised when a data-access handle returns a shape outside its contract."""
    pass
