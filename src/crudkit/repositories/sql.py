"""SQLAlchemy implementation of the data-access handle.

``SQLAlchemyRepo`` runs every operation in its own session and transaction
taken from an ``async_sessionmaker``: the transaction commits when the
operation returns and rolls back when it raises. Records come back detached
with their attributes loaded, ready to be passed to a later operation.

Usage Example:
    from crudkit.repositories import SQLAlchemyRepo

    repo = SQLAlchemyRepo.from_url("postgresql+asyncpg://app@db/app")
    post = await repo.get(Post, 1)
    posts = await repo.all(select(Post).order_by(Post.id))
    await repo.dispose()
"""

from collections.abc import Mapping
from typing import Any, NoReturn, Optional
import uuid

from sqlalchemy import Select, delete, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from crudkit.changeset import Changeset
from crudkit.core.database import (
    check_database_connection,
    close_database,
    create_engine,
    create_session_factory,
)
from crudkit.core.logging import get_logger
from crudkit.core.tracing import trace_database
from crudkit.query import apply_filters, column_for
from crudkit.repositories.base import (
    ConflictError,
    EntityId,
    ErrorKind,
    ModelType,
    RepositoryError,
    WriteOutcome,
)
from crudkit.result import Failure, Success


class SQLAlchemyRepo:
    """Data-access handle backed by an async SQLAlchemy session factory.

    Args:
        session_factory: Factory producing ``AsyncSession`` objects; build it
            with ``crudkit.core.database.create_session_factory`` so records
            survive the commit
        engine: Engine behind the factory, used by ``ping`` and ``dispose``;
            defaults to the factory's bind
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        engine: Optional[AsyncEngine] = None,
    ) -> None:
        self._session_factory = session_factory
        self._engine = engine
        self._logger = get_logger(f"{__name__}.SQLAlchemyRepo")

    @classmethod
    def from_url(cls, database_url: str | None = None, **engine_options: Any) -> "SQLAlchemyRepo":
        """Create an engine and session factory for ``database_url``.

        Falls back to ``settings.database_url`` when no URL is given.
        """
        engine = create_engine(database_url, **engine_options)
        return cls(create_session_factory(engine), engine=engine)

    @property
    def engine(self) -> AsyncEngine:
        engine = self._engine or self._session_factory.kw.get("bind")
        if engine is None:
            raise RepositoryError("Session factory is not bound to an engine")
        return engine

    # ========================================================================
    # WRITE OPERATIONS
    # ========================================================================

    @trace_database()
    async def insert(self, changeset: Changeset[Any]) -> WriteOutcome:
        """Insert ``changeset.data`` with its changes applied.

        Returns:
            Success(entity) with generated fields populated, or
            Failure(changeset) when the changeset is invalid

        Raises:
            ConflictError: If the insert violates a constraint
            RepositoryError: For other database errors
        """
        model_name = type(changeset.data).__name__
        if not changeset.valid:
            self._logger.debug(
                "Rejected invalid changeset",
                model=model_name,
                fields=list(changeset.errors)
            )
            return Failure(changeset)

        try:
            self._logger.debug(
                "Creating new entity",
                model=model_name,
                fields=list(changeset.changes)
            )

            entity = changeset.apply_changes()
            async with self._session_factory.begin() as session:
                session.add(entity)
                await session.flush()
                await session.refresh(entity)

            self._logger.info(
                "Entity created successfully",
                model=model_name,
                entity_id=getattr(entity, "id", None)
            )
            return Success(entity)

        except SQLAlchemyError as e:
            self._raise_write_error("create", model_name, e)

    @trace_database()
    async def update(self, changeset: Changeset[Any]) -> WriteOutcome:
        """Persist ``changeset.changes`` on the stored copy of ``changeset.data``.

        Returns:
            Success(entity) holding the refreshed row,
            Failure(changeset) when the changeset is invalid, or
            Failure(ErrorKind.NOT_FOUND) when the row no longer exists

        Raises:
            ConflictError: If the update violates a constraint
            RepositoryError: For other database errors
        """
        schema = type(changeset.data)
        entity_id = getattr(changeset.data, "id", None)
        if not changeset.valid:
            self._logger.debug(
                "Rejected invalid changeset",
                model=schema.__name__,
                entity_id=entity_id,
                fields=list(changeset.errors)
            )
            return Failure(changeset)

        try:
            self._logger.debug(
                "Updating entity",
                model=schema.__name__,
                entity_id=entity_id,
                fields=list(changeset.changes)
            )

            async with self._session_factory.begin() as session:
                entity = await session.get(schema, entity_id)
                if entity is None:
                    self._logger.debug(
                        "Entity not found for update",
                        model=schema.__name__,
                        entity_id=entity_id
                    )
                    return Failure(ErrorKind.NOT_FOUND)

                for field, value in changeset.changes.items():
                    setattr(entity, field, value)
                await session.flush()
                await session.refresh(entity)

            self._logger.info(
                "Entity updated successfully",
                model=schema.__name__,
                entity_id=entity_id
            )
            return Success(entity)

        except SQLAlchemyError as e:
            self._raise_write_error("update", schema.__name__, e)

    @trace_database()
    async def delete(self, record: Any) -> WriteOutcome:
        """Delete the row behind ``record``.

        Returns:
            Success(record), or Failure(ErrorKind.NOT_FOUND) when no row
            matched (already deleted or never stored)

        Raises:
            RepositoryError: For database errors
        """
        schema = type(record)
        entity_id = getattr(record, "id", None)
        try:
            self._logger.debug("Deleting entity", model=schema.__name__, entity_id=entity_id)

            query = delete(schema).where(column_for(schema, "id") == entity_id)
            async with self._session_factory.begin() as session:
                result = await session.execute(query)
                deleted = bool(getattr(result, "rowcount", 0) > 0)

            if not deleted:
                self._logger.debug(
                    "Entity not found for deletion",
                    model=schema.__name__,
                    entity_id=entity_id
                )
                return Failure(ErrorKind.NOT_FOUND)

            self._logger.info(
                "Entity deleted successfully",
                model=schema.__name__,
                entity_id=entity_id
            )
            return Success(record)

        except SQLAlchemyError as e:
            self._raise_write_error("delete", schema.__name__, e)

    # ========================================================================
    # READ OPERATIONS
    # ========================================================================

    @trace_database()
    async def get(self, schema: type[ModelType], entity_id: EntityId) -> ModelType | None:
        """Get a record by primary key, None if absent.

        String identifiers are converted to the column's Python type; one
        that cannot be converted matches nothing.
        """
        try:
            self._logger.debug("Getting entity by ID", model=schema.__name__, entity_id=entity_id)

            column = column_for(schema, "id")
            coerced = _coerce_id(column, entity_id)
            if coerced is None:
                return None

            async with self._session_factory() as session:
                result = await session.execute(select(schema).where(column == coerced))
                entity = result.scalar_one_or_none()

            self._logger.debug(
                "Entity found" if entity else "Entity not found",
                model=schema.__name__,
                entity_id=entity_id
            )
            return entity

        except SQLAlchemyError as e:
            self._logger.error(
                "Failed to get entity",
                model=schema.__name__,
                entity_id=entity_id,
                error=str(e)
            )
            raise RepositoryError(f"Failed to get entity: {e}") from e

    @trace_database()
    async def get_by(
        self, schema: type[ModelType], filters: Mapping[str, Any]
    ) -> ModelType | None:
        """Get the single record matching every filter, None if absent.

        Raises:
            RepositoryError: If several records match, or on database errors
        """
        try:
            self._logger.debug("Getting entity by filter", model=schema.__name__, filters=list(filters))

            query = apply_filters(select(schema), schema, filters).limit(2)
            async with self._session_factory() as session:
                result = await session.execute(query)
                entities = list(result.scalars().all())

        except SQLAlchemyError as e:
            self._logger.error(
                "Failed to get entity by filter",
                model=schema.__name__,
                error=str(e)
            )
            raise RepositoryError(f"Failed to get entity: {e}") from e

        if len(entities) > 1:
            raise RepositoryError(f"Expected at most one {schema.__name__}, found several")
        return entities[0] if entities else None

    @trace_database()
    async def all(self, query: Select[Any]) -> list[Any]:
        """Execute ``query`` and return every entity it selects."""
        try:
            async with self._session_factory() as session:
                result = await session.execute(query)
                items = list(result.scalars().all())

            self._logger.debug("Listed entities successfully", count=len(items))
            return items

        except SQLAlchemyError as e:
            self._logger.error("Failed to list entities", error=str(e))
            raise RepositoryError(f"Failed to list entities: {e}") from e

    @trace_database()
    async def count(self, query: Select[Any]) -> int:
        """Count the rows ``query`` would return, ignoring its ordering."""
        try:
            count_query = select(func.count()).select_from(query.order_by(None).subquery())
            async with self._session_factory() as session:
                result = await session.execute(count_query)
                total = result.scalar() or 0

            self._logger.debug("Counted entities successfully", total=total)
            return total

        except SQLAlchemyError as e:
            self._logger.error("Failed to count entities", error=str(e))
            raise RepositoryError(f"Failed to count entities: {e}") from e

    # ========================================================================
    # CONNECTION MANAGEMENT
    # ========================================================================

    async def ping(self) -> bool:
        """Return True when the database answers a trivial query."""
        return await check_database_connection(self.engine)

    async def dispose(self) -> None:
        """Close every pooled connection of the underlying engine."""
        await close_database(self.engine)

    def _raise_write_error(self, action: str, model_name: str, error: SQLAlchemyError) -> NoReturn:
        self._logger.error(
            f"Failed to {action} entity",
            model=model_name,
            error=str(error)
        )
        if isinstance(error, IntegrityError) or "unique" in str(error).lower():
            raise ConflictError(f"Entity conflicts with existing data: {error}") from error
        raise RepositoryError(f"Failed to {action} entity: {error}") from error


def _coerce_id(column: Any, entity_id: EntityId) -> EntityId | None:
    if not isinstance(entity_id, str):
        return entity_id
    try:
        python_type = column.type.python_type
    except NotImplementedError:
        return entity_id

    try:
        if python_type is int:
            return int(entity_id)
        if python_type is uuid.UUID:
            return uuid.UUID(entity_id)
    except ValueError:
        return None
    return entity_id
