"""Changesets: validated, field-level change sets for entity descriptors.

An entity descriptor becomes writable by exposing a ``changeset`` classmethod
that takes the target instance and a mapping of new field values and returns
a ``Changeset``. The CRUD context calls it before every insert and update;
the data-access handle persists ``changes`` only when the changeset is valid.

Example:
    class Post(Base, IdMixin):
        __tablename__ = "posts"

        title: Mapped[str] = mapped_column(String(200))
        body: Mapped[str | None] = mapped_column(Text, nullable=True)

        @classmethod
        def changeset(cls, post: "Post", fields: Mapping[str, Any]) -> Changeset:
            return (
                Changeset.cast(post, fields, ["title", "body"])
                .validate_required("title")
                .validate_length("title", min=3, max=200)
            )
"""

from collections.abc import Callable, Iterable, Mapping
from typing import Any, Generic, Protocol, TypeVar, runtime_checkable

from pydantic import BaseModel, ValidationError

ModelType = TypeVar("ModelType")

# field -> (message, metadata)
ErrorMap = dict[str, tuple[str, dict[str, Any]]]


class Changeset(Generic[ModelType]):
    """Accepted changes for ``data`` plus the errors found validating them.

    Validation helpers record at most one error per field (the first one
    wins) and return the changeset so they can be chained.

    Attributes:
        data: Instance the changes apply to (a fresh template on create)
        changes: Field values that differ from ``data``
        errors: Mapping of field name to ``(message, metadata)``
    """

    def __init__(
        self,
        data: ModelType,
        changes: Mapping[str, Any] | None = None,
        errors: ErrorMap | None = None,
    ) -> None:
        self.data = data
        self.changes: dict[str, Any] = dict(changes or {})
        self.errors: ErrorMap = dict(errors or {})

    def __repr__(self) -> str:
        return (
            f"Changeset(data={self.data!r}, changes={self.changes!r}, "
            f"errors={self.errors!r}, valid={self.valid})"
        )

    @property
    def valid(self) -> bool:
        return not self.errors

    @classmethod
    def cast(
        cls,
        data: ModelType,
        params: Mapping[str, Any] | None,
        permitted: Iterable[str],
    ) -> "Changeset[ModelType]":
        """Build a changeset keeping only the permitted fields of ``params``.

        Values equal to the current value on ``data`` are not recorded as
        changes. Fields outside ``permitted`` are ignored.
        """
        params = {str(key): value for key, value in (params or {}).items()}
        changes = {
            field: params[field]
            for field in permitted
            if field in params and getattr(data, field, None) != params[field]
        }
        return cls(data, changes)

    def get_change(self, field: str, default: Any = None) -> Any:
        return self.changes.get(field, default)

    def get_field(self, field: str, default: Any = None) -> Any:
        """Return the changed value of ``field``, falling back to ``data``."""
        if field in self.changes:
            return self.changes[field]
        return getattr(self.data, field, default)

    def put_change(self, field: str, value: Any) -> "Changeset[ModelType]":
        self.changes[field] = value
        return self

    def add_error(self, field: str, message: str, **metadata: Any) -> "Changeset[ModelType]":
        self.errors.setdefault(field, (message, metadata))
        return self

    def validate_required(self, *fields: str) -> "Changeset[ModelType]":
        for field in fields:
            value = self.get_field(field)
            if value is None or (isinstance(value, str) and not value.strip()):
                self.add_error(field, "can't be blank", validation="required")
        return self

    def validate_length(
        self,
        field: str,
        *,
        min: int | None = None,
        max: int | None = None,
    ) -> "Changeset[ModelType]":
        """Validate the length of a changed string or sequence."""
        value = self.get_change(field)
        if value is None:
            return self

        unit = "character(s)" if isinstance(value, str) else "item(s)"
        verb = "be" if isinstance(value, str) else "have"
        length = len(value)
        if min is not None and length < min:
            self.add_error(
                field,
                f"should {verb} at least {min} {unit}",
                validation="length", kind="min", count=min,
            )
        elif max is not None and length > max:
            self.add_error(
                field,
                f"should {verb} at most {max} {unit}",
                validation="length", kind="max", count=max,
            )
        return self

    def validate_inclusion(self, field: str, values: Iterable[Any]) -> "Changeset[ModelType]":
        value = self.get_change(field)
        allowed = list(values)
        if value is not None and value not in allowed:
            self.add_error(field, "is invalid", validation="inclusion", enum=allowed)
        return self

    def validate_change(
        self,
        field: str,
        validator: Callable[[str, Any], str | None],
    ) -> "Changeset[ModelType]":
        """Run ``validator(field, value)`` on a changed field.

        The validator returns an error message, or None when the value is
        acceptable.
        """
        if field not in self.changes:
            return self
        message = validator(field, self.changes[field])
        if message:
            self.add_error(field, message, validation="custom")
        return self

    def validate_model(self, model: type[BaseModel]) -> "Changeset[ModelType]":
        """Validate the resulting field values against a pydantic model.

        Current values of ``data`` are merged with ``changes`` for every field
        the model declares, so partial updates validate against the whole
        record. Coerced values replace the raw changes.
        """
        payload = {}
        for name in model.model_fields:
            value = self.get_field(name)
            if value is not None:
                payload[name] = value

        try:
            validated = model.model_validate(payload)
        except ValidationError as exc:
            for error in exc.errors():
                field = str(error["loc"][0]) if error["loc"] else "base"
                self.add_error(field, error["msg"], validation=error["type"])
            return self

        for field in list(self.changes):
            if field in model.model_fields:
                self.changes[field] = getattr(validated, field)
        return self

    def apply_changes(self) -> ModelType:
        """Write ``changes`` onto ``data`` and return it."""
        for field, value in self.changes.items():
            setattr(self.data, field, value)
        return self.data


@runtime_checkable
class ChangesetSchema(Protocol):
    """Entity descriptor that can validate new field values."""

    @classmethod
    def changeset(cls, instance: Any, fields: Mapping[str, Any]) -> Changeset[Any]:
        ...


def has_changeset_function(schema: Any) -> bool:
    return callable(getattr(schema, "changeset", None))
