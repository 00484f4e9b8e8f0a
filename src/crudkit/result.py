"""Uniform result shape returned by every CRUD operation.

Operations never raise for runtime outcomes such as a missing record or a
rejected changeset. They return ``Success(value)`` or ``Failure(reason)``
instead, where ``reason`` is a human-readable string or a list of
``"Field: message"`` strings.

Example:
    result = await posts.get(1)
    match result:
        case Success(value=post):
            print(post.title)
        case Failure(reason=reason):
            print(f"lookup failed: {reason}")
"""

from dataclasses import dataclass
from typing import Any, Generic, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class Success(Generic[T]):
    """Successful outcome carrying the operation's value."""

    value: T

    @property
    def ok(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Failure:
    """Failed outcome carrying a reason.

    At the public surface the reason is a ``str`` or a ``list[str]``. Inside
    a data-access handle it may also be a changeset or an ``ErrorKind``; the
    normalizer turns those into messages.
    """

    reason: Any

    @property
    def ok(self) -> bool:
        return False

    def unwrap(self) -> Any:
        raise ValueError(f"Called unwrap() on a failed result: {self.reason!r}")


Result = Union[Success[T], Failure]
