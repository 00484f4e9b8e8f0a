"""CRUD contexts: a fixed set of operations bound to one entity descriptor.

A context is bound to a data-access handle (``repo``) and an entity
descriptor (``schema``). Binding happens once, either through subclass
keywords or through the constructor, and fails immediately when either is
missing. Every operation returns ``Success`` or ``Failure``; only
configuration errors and invalid arguments raise.

Usage Example:
    from crudkit.core.logging import configure_logging
    from crudkit.core.tracing import configure_tracing

    # Once at application startup; without it structlog prints with its
    # default console configuration
    configure_logging()
    configure_tracing()

    repo = SQLAlchemyRepo.from_url("sqlite+aiosqlite:///./blog.db")

    class Posts(CrudContext[Post], repo=repo, schema=Post):
        pass

    posts = Posts()
    created = await posts.create(title="Hello", body="First post")
    await posts.update(created.value, title="Hello again")
    matches = await posts.find(title="hello")
    page = await posts.get_few(20, offset=40, published=True)
    await posts.delete(created.value.id)

    # Equivalent without subclassing
    posts = CrudContext(repo, Post)
"""

import types
from typing import Any, ClassVar, Generic, Optional
import uuid
from dataclasses import dataclass

from crudkit.changeset import Changeset, has_changeset_function
from crudkit.core.logging import get_logger
from crudkit.core.tracing import trace_database
from crudkit.exceptions import (
    ContextNotSetError,
    MissingChangesetFunctionError,
    SchemaNotSetError,
)
from crudkit.normalize import entity_name, normalize
from crudkit.query import FilterSpec, apply_filters, apply_search, base_query, field_map
from crudkit.repositories.base import (
    EntityId,
    ErrorKind,
    ModelType,
    PaginatedResult,
    PaginationParams,
    Repo,
    RepositoryError,
)
from crudkit.result import Failure, Result, Success


@dataclass(frozen=True)
class CrudBinding(Generic[ModelType]):
    """The data-access handle and entity descriptor a context delegates to.

    Raises:
        ContextNotSetError: If ``repo`` is None
        SchemaNotSetError: If ``schema`` is None
    """

    repo: Repo
    schema: type[ModelType]

    def __post_init__(self) -> None:
        if self.repo is None:
            raise ContextNotSetError()
        if self.schema is None:
            raise SchemaNotSetError()


class CrudContext(Generic[ModelType]):
    """CRUD operations for one entity descriptor.

    Subclass with ``repo=`` and ``schema=`` keywords to bind at class
    definition time; subclasses of a bound context inherit its binding. The
    constructor accepts the same pair for ad-hoc contexts.
    """

    _binding: ClassVar[Optional[CrudBinding[Any]]] = None

    def __init_subclass__(
        cls,
        *,
        repo: Optional[Repo] = None,
        schema: Optional[type[Any]] = None,
        **kwargs: Any,
    ) -> None:
        super().__init_subclass__(**kwargs)
        if repo is None and schema is None and cls._binding is not None:
            return
        cls._binding = CrudBinding(repo=repo, schema=schema)

    def __init__(
        self,
        repo: Optional[Repo] = None,
        schema: Optional[type[ModelType]] = None,
    ) -> None:
        if repo is None and schema is None and self._binding is not None:
            binding = self._binding
        else:
            binding = CrudBinding(repo=repo, schema=schema)

        self._repo: Repo = binding.repo
        self._schema: type[ModelType] = binding.schema
        self._logger = get_logger(f"{__name__}.{self._schema.__name__}")

    def __repr__(self) -> str:
        return f"{type(self).__name__}(schema={self._schema.__name__}, repo={self._repo!r})"

    @property
    def repo(self) -> Repo:
        """The bound data-access handle."""
        return self._repo

    @property
    def schema(self) -> type[ModelType]:
        """The bound entity descriptor."""
        return self._schema

    # ========================================================================
    # CREATE
    # ========================================================================

    @trace_database()
    async def create(self, fields: FilterSpec | None = None, /, **kwargs: Any) -> Result[ModelType]:
        """Validate ``fields`` through the schema's changeset and insert the record.

        Args:
            fields: Mapping or ``(field, value)`` pairs; merged with kwargs

        Returns:
            Success(record), or Failure(["Field: message", ...]) with one
            message per invalid field

        Raises:
            MissingChangesetFunctionError: If the schema has no changeset function

        Example:
            await posts.create({"title": "Hello"})
            await posts.create(title="Hello", body="...")
        """
        changeset = self._changeset(self._schema(), field_map(fields, **kwargs))
        try:
            outcome = await self._repo.insert(changeset)
        except RepositoryError as e:
            return self._failed("create", e)
        return self._report("create", normalize(outcome, self._schema))

    # ========================================================================
    # READ
    # ========================================================================

    @trace_database()
    async def get(self, entity_id: EntityId) -> Result[ModelType]:
        """Fetch one record by identifier.

        Returns:
            Success(record) or Failure("<Entity> not found")

        Raises:
            TypeError: If ``entity_id`` is not an int, str or UUID
        """
        if isinstance(entity_id, bool) or not isinstance(entity_id, (int, str, uuid.UUID)):
            raise TypeError(
                f"get() expects an int, str or UUID identifier, got {type(entity_id).__name__}; "
                "use get_by() for filters"
            )
        try:
            outcome = await self._repo.get(self._schema, entity_id)
        except RepositoryError as e:
            return self._failed("get", e)
        return self._report("get", normalize(outcome, self._schema))

    @trace_database()
    async def get_by(self, filters: FilterSpec | None = None, /, **kwargs: Any) -> Result[ModelType]:
        """Fetch the single record matching every field exactly.

        Example:
            await posts.get_by(slug="hello")
            await posts.get_by({"author_id": 3, "slug": "hello"})
        """
        try:
            outcome = await self._repo.get_by(self._schema, field_map(filters, **kwargs))
        except RepositoryError as e:
            return self._failed("get_by", e)
        return self._report("get_by", normalize(outcome, self._schema))

    @trace_database()
    async def get_all(
        self, filters: FilterSpec | None = None, /, **kwargs: Any
    ) -> Result[list[ModelType]]:
        """Fetch every record ordered by ascending id, optionally filtered.

        Returns:
            Success(list), empty when nothing matches
        """
        try:
            query = apply_filters(base_query(self._schema), self._schema, field_map(filters, **kwargs))
            items = await self._repo.all(query)
        except RepositoryError as e:
            return self._failed("get_all", e)
        return Success(items)

    @trace_database()
    async def get_few(
        self,
        limit: int,
        offset: int = 0,
        filters: FilterSpec | None = None,
        **kwargs: Any,
    ) -> Result[list[ModelType]]:
        """Fetch up to ``limit`` records ordered by ascending id.

        Args:
            limit: Maximum number of records; 0 returns an empty list
            offset: Number of leading records to skip
            filters: Optional exact-match filter, merged with kwargs

        Raises:
            ValueError: If limit or offset is negative

        Example:
            await posts.get_few(200)
            await posts.get_few(200, 50)
            await posts.get_few(200, 50, published=True)
        """
        if limit < 0:
            raise ValueError("Limit must be non-negative")
        if offset < 0:
            raise ValueError("Offset must be non-negative")

        try:
            query = apply_filters(base_query(self._schema), self._schema, field_map(filters, **kwargs))
            if limit == 0:
                return Success([])
            items = await self._repo.all(query.offset(offset).limit(limit))
        except RepositoryError as e:
            return self._failed("get_few", e)
        return Success(items)

    @trace_database()
    async def paginate(
        self,
        pagination: PaginationParams | None = None,
        filters: FilterSpec | None = None,
        **kwargs: Any,
    ) -> Result[PaginatedResult[ModelType]]:
        """Fetch one page of records with the total count and navigation flags.

        Example:
            page = (await posts.paginate(PaginationParams(offset=0, limit=20))).value
            if page.has_next:
                ...
        """
        if pagination is None:
            pagination = PaginationParams()
        try:
            query = apply_filters(base_query(self._schema), self._schema, field_map(filters, **kwargs))
            total = await self._repo.count(query)
            items = await self._repo.all(query.offset(pagination.offset).limit(pagination.limit))
        except RepositoryError as e:
            return self._failed("paginate", e)
        return Success(PaginatedResult(
            items=items,
            total=total,
            offset=pagination.offset,
            limit=pagination.limit
        ))

    @trace_database()
    async def find(
        self, filters: FilterSpec | None = None, /, **kwargs: Any
    ) -> Result[list[ModelType]]:
        """Fetch records whose fields contain the given text, ignoring case.

        Every pair narrows the result (AND). An empty filter returns every
        record.

        Example:
            await posts.find(title="python", body="async")
        """
        try:
            query = apply_search(base_query(self._schema), self._schema, field_map(filters, **kwargs))
            items = await self._repo.all(query)
        except RepositoryError as e:
            return self._failed("find", e)
        return Success(items)

    # ========================================================================
    # UPDATE
    # ========================================================================

    @trace_database()
    async def update(
        self,
        target: ModelType | EntityId,
        changes: FilterSpec | None = None,
        /,
        **kwargs: Any,
    ) -> Result[ModelType]:
        """Apply ``changes`` to a record, or to the record with id ``target``.

        An identifier is resolved first; when it matches nothing the lookup
        failure is returned and the changeset is never built.

        Example:
            await posts.update(post, title="New title")
            await posts.update(1, {"title": "New title"})
        """
        fields = field_map(changes, **kwargs)
        if isinstance(target, self._schema):
            return await self._update_record(target, fields)

        found = await self.get(target)
        if isinstance(found, Failure):
            return found
        return await self._update_record(found.value, fields)

    @trace_database()
    async def update_by(
        self,
        field: str,
        value: Any,
        changes: FilterSpec | None = None,
        /,
        **kwargs: Any,
    ) -> Result[ModelType]:
        """Apply ``changes`` to the record whose ``field`` equals ``value``.

        Example:
            await posts.update_by("slug", "hello", title="Hello!")
        """
        fields = field_map(changes, **kwargs)
        found = await self.get_by({field: value})
        if isinstance(found, Failure):
            return found
        return await self._update_record(found.value, fields)

    async def _update_record(self, record: ModelType, fields: dict[str, Any]) -> Result[ModelType]:
        changeset = self._changeset(record, fields)
        try:
            outcome = await self._repo.update(changeset)
        except RepositoryError as e:
            return self._failed("update", e)
        return self._report("update", normalize(outcome, self._schema))

    # ========================================================================
    # DELETE
    # ========================================================================

    @trace_database()
    async def delete(self, target: ModelType | EntityId) -> Result[ModelType]:
        """Delete a record, or the record with id ``target``.

        Returns:
            Success(deleted record), Failure("<Entity> not found") when an
            identifier matches nothing, or Failure("<Entity> is not found")
            when the record was already gone
        """
        if isinstance(target, self._schema):
            return await self._delete_record(target)

        found = await self.get(target)
        if isinstance(found, Failure):
            return found
        return await self._delete_record(found.value)

    async def _delete_record(self, record: ModelType) -> Result[ModelType]:
        try:
            outcome = await self._repo.delete(record)
        except RepositoryError as e:
            return self._failed("delete", e)

        if isinstance(outcome, Failure) and outcome.reason is ErrorKind.NOT_FOUND:
            return self._report("delete", Failure(f"{entity_name(record)} is not found"))
        return self._report("delete", normalize(outcome, self._schema))

    # ========================================================================
    # HELPERS
    # ========================================================================

    def _changeset(self, record: ModelType, fields: dict[str, Any]) -> Changeset[ModelType]:
        if not has_changeset_function(self._schema):
            raise MissingChangesetFunctionError(self._schema.__name__)
        return self._schema.changeset(record, fields)  # type: ignore[attr-defined]

    def _report(self, operation: str, result: Result[Any]) -> Result[Any]:
        if isinstance(result, Failure):
            self._logger.warning(
                "Operation failed",
                operation=operation,
                model=self._schema.__name__,
                reason=result.reason
            )
        return result

    def _failed(self, operation: str, error: RepositoryError) -> Failure:
        self._logger.error(
            "Data-access error",
            operation=operation,
            model=self._schema.__name__,
            error=str(error)
        )
        return Failure(str(error))


def crud_for(repo: Repo, schema: type[ModelType], name: str | None = None) -> type[CrudContext[ModelType]]:
    """Build a bound ``CrudContext`` subclass named ``<Schema>Context``.

    Example:
        Posts = crud_for(repo, Post)
        await Posts().get_all()
    """
    class_name = name or f"{getattr(schema, '__name__', 'Entity')}Context"
    return types.new_class(class_name, (CrudContext,), {"repo": repo, "schema": schema})
