"""Test changeset casting and validation helpers."""

from types import SimpleNamespace

import pytest
from pydantic import BaseModel, Field

from crudkit.changeset import Changeset, ChangesetSchema, has_changeset_function

from tests.factories import Post, Tag


def record(**fields) -> SimpleNamespace:
    defaults = {"title": None, "tags": None, "status": None, "views": None}
    return SimpleNamespace(**{**defaults, **fields})


class TestCast:
    """Test Changeset.cast()."""

    def test_keeps_permitted_changes(self) -> None:
        changeset = Changeset.cast(record(), {"title": "Hello", "views": 3, "admin": True}, ["title", "views"])

        assert changeset.changes == {"title": "Hello", "views": 3}
        assert changeset.valid is True

    def test_drops_unchanged_values(self) -> None:
        changeset = Changeset.cast(record(title="Same"), {"title": "Same", "views": 1}, ["title", "views"])

        assert changeset.changes == {"views": 1}

    def test_accepts_none_params(self) -> None:
        assert Changeset.cast(record(), None, ["title"]).changes == {}

    def test_put_change(self) -> None:
        changeset = Changeset.cast(record(title="Draft"), {"title": "Final"}, ["title"])

        assert changeset.put_change("views", 0) is changeset
        assert changeset.changes == {"title": "Final", "views": 0}
        assert changeset.get_field("views") == 0

    def test_put_change_overrides_cast_value(self) -> None:
        changeset = Changeset.cast(record(), {"title": "  Hello  "}, ["title"])

        changeset.put_change("title", changeset.get_change("title").strip())

        assert changeset.apply_changes().title == "Hello"

    def test_apply_changes(self) -> None:
        data = record(title="Old")
        changeset = Changeset.cast(data, {"title": "New"}, ["title"])

        assert changeset.apply_changes() is data
        assert data.title == "New"


class TestValidators:
    """Test validation helpers."""

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_validate_required(self, value) -> None:
        changeset = Changeset.cast(record(), {"title": value}, ["title"]).validate_required("title")

        assert changeset.errors == {"title": ("can't be blank", {"validation": "required"})}
        assert changeset.valid is False

    def test_validate_required_uses_existing_value(self) -> None:
        changeset = Changeset.cast(record(title="Kept"), {}, ["title"]).validate_required("title")

        assert changeset.valid is True

    def test_validate_length_string(self) -> None:
        too_short = Changeset.cast(record(), {"title": "ab"}, ["title"]).validate_length("title", min=3)
        too_long = Changeset.cast(record(), {"title": "abcdef"}, ["title"]).validate_length("title", max=5)

        assert too_short.errors["title"][0] == "should be at least 3 character(s)"
        assert too_long.errors["title"][0] == "should be at most 5 character(s)"
        assert too_long.errors["title"][1]["kind"] == "max"

    def test_validate_length_sequence(self) -> None:
        changeset = Changeset.cast(record(), {"tags": ["a"]}, ["tags"]).validate_length("tags", min=2)

        assert changeset.errors["tags"][0] == "should have at least 2 item(s)"

    def test_validate_inclusion(self) -> None:
        changeset = (
            Changeset.cast(record(), {"status": "archived"}, ["status"])
            .validate_inclusion("status", ["draft", "published"])
        )

        assert changeset.errors["status"][0] == "is invalid"

    def test_validate_change(self) -> None:
        changeset = Changeset.cast(record(), {"views": -1}, ["views"]).validate_change(
            "views", lambda field, value: "must be non-negative" if value < 0 else None
        )

        assert changeset.errors["views"][0] == "must be non-negative"

    def test_first_error_wins(self) -> None:
        changeset = (
            Changeset.cast(record(), {"title": ""}, ["title"])
            .validate_required("title")
            .validate_length("title", min=3)
        )

        assert changeset.errors["title"][0] == "can't be blank"

    def test_validate_model(self) -> None:
        class Input(BaseModel):
            title: str = Field(min_length=3)
            views: int = 0

        valid = Changeset.cast(record(), {"title": "Hello", "views": "7"}, ["title", "views"]).validate_model(Input)
        invalid = Changeset.cast(record(), {"title": "Hi"}, ["title"]).validate_model(Input)

        assert valid.changes == {"title": "Hello", "views": 7}
        assert invalid.errors["title"][0] == "String should have at least 3 characters"
        assert invalid.errors["title"][1] == {"validation": "string_too_short"}


def test_has_changeset_function() -> None:
    assert has_changeset_function(Post) is True
    assert has_changeset_function(Tag) is False
    assert isinstance(Post, ChangesetSchema)
