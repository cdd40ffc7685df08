"""Unit tests for plugins/base.py - schemas and ResourceData."""

import pytest

from plugins.base import Field, FieldType, ResourceData, ResourceSchema

# ==================== Test Helpers ====================


SCHEMA = ResourceSchema(
    [
        Field("name", FieldType.STRING, required=True, force_new=True),
        Field("message", FieldType.STRING, optional=True),
        Field("enabled", FieldType.BOOL, optional=True, default=True),
        Field("tags", FieldType.MAP, optional=True),
        Field(
            "status",
            FieldType.STRING,
            optional=True,
            computed=True,
            allowed_values=["ENABLED", "PAUSED"],
        ),
        Field("arn", FieldType.STRING, computed=True),
    ]
)


def make_data(**kwargs):
    return ResourceData(SCHEMA, **kwargs)


# ==================== Schema Tests ====================


class TestResourceSchema:
    """Tests for ResourceSchema."""

    def test_get_field(self):
        assert SCHEMA.get_field("name").required is True

    def test_get_unknown_field_raises(self):
        with pytest.raises(KeyError, match="nope"):
            SCHEMA.get_field("nope")

    def test_settable_and_force_new(self):
        settable = [f.name for f in SCHEMA.settable_fields]
        assert settable == ["name", "message", "enabled", "tags", "status"]
        assert SCHEMA.force_new_fields == ["name"]
        assert SCHEMA.get_field("arn").read_only
        assert not SCHEMA.get_field("status").read_only

    def test_to_json_schema(self):
        schema = SCHEMA.to_json_schema()
        assert schema["required"] == ["name"]
        assert schema["additionalProperties"] is False
        assert "arn" not in schema["properties"]
        assert schema["properties"]["enabled"] == {"type": "boolean"}
        assert schema["properties"]["tags"]["type"] == "object"
        assert schema["properties"]["status"]["enum"] == ["ENABLED", "PAUSED"]


# ==================== ResourceData Tests ====================


class TestResourceDataIdentity:
    """Tests for identity handling."""

    def test_absent_by_default(self):
        data = make_data()
        assert data.id == ""
        assert not data.exists

    def test_set_id(self):
        data = make_data()
        data.set_id("abc")
        assert data.exists
        assert data.id == "abc"

    def test_clearing_id_clears_observed(self):
        data = make_data(identity="abc", observed={"arn": "abc"})
        data.set_id("")
        assert not data.exists
        assert data.state == {}


class TestResourceDataGet:
    """Tests for get and get_ok."""

    def test_get_desired_value(self):
        data = make_data(desired={"message": "hello"})
        assert data.get("message") == "hello"

    def test_get_zero_and_default(self):
        data = make_data()
        assert data.get("message") == ""
        assert data.get("tags") == {}
        assert data.get("enabled") is True

    def test_get_read_only_from_observed(self):
        data = make_data(desired={}, observed={"arn": "arn:1"})
        assert data.get("arn") == "arn:1"

    def test_get_computed_falls_back_to_observed(self):
        data = make_data(observed={"status": "PAUSED"})
        assert data.get("status") == "PAUSED"

    def test_get_ok_set_value(self):
        data = make_data(desired={"message": "hello"})
        assert data.get_ok("message") == ("hello", True)

    def test_get_ok_zero_value_is_unset(self):
        data = make_data(desired={"message": "", "tags": {}})
        assert data.get_ok("message") == ("", False)
        assert data.get_ok("tags") == ({}, False)

    def test_get_ok_missing_value(self):
        data = make_data()
        assert data.get_ok("message") == ("", False)

    def test_desired_is_copied(self):
        desired = {"tags": {"a": "1"}}
        data = make_data(desired=desired)
        data.desired["tags"]["a"] = "2"
        assert desired["tags"]["a"] == "1"


class TestResourceDataHasChange:
    """Tests for has_change."""

    def test_changed_value(self):
        data = make_data(desired={"tags": {"b": "2"}}, previous={"tags": {"a": "1"}})
        assert data.has_change("tags")

    def test_unchanged_value(self):
        data = make_data(desired={"message": "x"}, previous={"message": "x"})
        assert not data.has_change("message")

    def test_removed_field_is_a_change(self):
        data = make_data(desired={}, previous={"message": "x"})
        assert data.has_change("message")

    def test_unset_computed_field_never_changes(self):
        data = make_data(desired={}, previous={"status": "PAUSED"})
        assert not data.has_change("status")

    def test_zero_to_zero_is_not_a_change(self):
        data = make_data(desired={"tags": {}}, previous={})
        assert not data.has_change("tags")

    def test_compares_against_observed_without_previous(self):
        data = make_data(desired={"status": "PAUSED"}, observed={"status": "ENABLED"})
        assert data.has_change("status")


class TestResourceDataSet:
    """Tests for set, state and desired_from_observed."""

    def test_set_unknown_field_raises(self):
        data = make_data()
        with pytest.raises(KeyError):
            data.set("nope", 1)

    def test_state_is_a_copy(self):
        data = make_data()
        data.set("tags", {"a": "1"})
        state = data.state
        state["tags"]["a"] = "2"
        assert data.observed["tags"]["a"] == "1"

    def test_desired_from_observed_skips_read_only(self):
        data = make_data(
            observed={"name": "n", "status": "ENABLED", "arn": "arn:1", "tags": {}}
        )
        assert data.desired_from_observed() == {
            "name": "n",
            "status": "ENABLED",
            "tags": {},
        }
