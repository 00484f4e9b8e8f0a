"""Map data-access outcomes onto the public Success/Failure shape."""

from typing import Any

from crudkit.changeset import Changeset
from crudkit.exceptions import UnexpectedResultError
from crudkit.repositories.base import ErrorKind
from crudkit.result import Failure, Result, Success


def entity_name(schema_or_record: Any) -> str:
    """Short name of an entity descriptor, or of a record's descriptor."""
    schema = schema_or_record if isinstance(schema_or_record, type) else type(schema_or_record)
    return schema.__name__


def not_found(schema_or_record: Any) -> Failure:
    return Failure(f"{entity_name(schema_or_record)} not found")


def error_message(field: str, message: str) -> str:
    return f"{field.capitalize()}: {message}"


def error_messages(reason: Any) -> Any:
    """Flatten a failure reason into readable messages.

    - a changeset becomes one ``"Field: message"`` string per invalid field
    - a ``(kind, message)`` pair becomes ``[message]``
    - anything else is returned as is
    """
    if isinstance(reason, Changeset):
        return [error_message(field, message) for field, (message, _) in reason.errors.items()]
    if isinstance(reason, tuple) and len(reason) == 2:
        return [reason[1]]
    return reason


def normalize(outcome: Any, schema: type[Any]) -> Result[Any]:
    """Convert a delegate outcome into ``Success`` or ``Failure``.

    Bare instances of ``schema`` count as success: ``Repo.get`` and
    ``Repo.get_by`` return records unwrapped.

    Raises:
        UnexpectedResultError: If ``outcome`` is none of the shapes above
    """
    if outcome is None:
        return not_found(schema)
    if isinstance(outcome, Failure):
        if outcome.reason is ErrorKind.NOT_FOUND:
            return not_found(schema)
        return Failure(error_messages(outcome.reason))
    if isinstance(outcome, Success):
        return outcome
    if isinstance(outcome, schema):
        return Success(outcome)
    raise UnexpectedResultError(
        f"Data-access handle returned {type(outcome).__name__}, "
        f"expected {schema.__name__}, None, Success or Failure"
    )
