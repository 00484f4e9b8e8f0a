"""Query builders for listing and search operations.

Filter specifications are folded into a SELECT one field at a time, in the
iteration order of the mapping, each entry adding one conjunctive predicate:

- ``apply_filters``: exact match (``column = value``, ``IS NULL`` for None)
- ``apply_search``: case-insensitive substring match on the column cast to
  text; ``%`` and ``_`` in the value match literally

An empty specification leaves the query untouched.
"""

from collections.abc import Iterable, Mapping
from typing import Any, Union

from sqlalchemy import Select, Text, cast, select
from sqlalchemy.orm import InstrumentedAttribute

from crudkit.exceptions import UnknownFieldError

FilterSpec = Union[Mapping[str, Any], Iterable[tuple[str, Any]]]


def field_map(filters: FilterSpec | None = None, **kwargs: Any) -> dict[str, Any]:
    """Merge a mapping, a list of ``(field, value)`` pairs and keyword filters.

    Later entries win on duplicate fields; iteration order is preserved.
    """
    merged: dict[str, Any] = {}
    if filters is not None:
        items = filters.items() if isinstance(filters, Mapping) else filters
        for field, value in items:
            merged[str(field)] = value
    merged.update(kwargs)
    return merged


def column_for(schema: type[Any], field: str) -> InstrumentedAttribute[Any]:
    """Return the mapped attribute ``field`` of ``schema``.

    Raises:
        UnknownFieldError: If ``field`` is not a mapped column attribute
    """
    attribute = getattr(schema, field, None)
    if not isinstance(attribute, InstrumentedAttribute):
        raise UnknownFieldError(schema.__name__, field)
    return attribute


def base_query(schema: type[Any]) -> Select[Any]:
    """SELECT every record of ``schema`` ordered by ascending id."""
    return select(schema).order_by(column_for(schema, "id"))


def apply_filters(query: Select[Any], schema: type[Any], filters: Mapping[str, Any]) -> Select[Any]:
    for field, value in filters.items():
        query = query.where(column_for(schema, field) == value)
    return query


def apply_search(query: Select[Any], schema: type[Any], filters: Mapping[str, Any]) -> Select[Any]:
    for field, value in filters.items():
        query = query.where(
            cast(column_for(schema, field), Text).icontains(str(value), autoescape=True)
        )
    return query
