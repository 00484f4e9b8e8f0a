"""Declarative base and mixins for entity descriptors."""

from crudkit.models.base import Base, IdMixin, TimestampMixin, generate_repr

__all__ = [
    "Base",
    "IdMixin",
    "TimestampMixin",
    "generate_repr",
]
