"""Unit tests for validation.py - Schema validation."""

from validation import (
    validate_desired_state,
    validate_json_schema,
    validate_spec_against_schema,
)
from plugins.resources.detective_invitation_request import DetectiveInvitationRequest
from plugins.resources.macie2_member import Macie2Member


class TestValidateJsonSchema:
    """Tests for validate_json_schema."""

    def test_valid_schema(self):
        schema = {
            "type": "object",
            "properties": {"name": {"type": "string"}},
            "required": ["name"],
        }
        is_valid, error = validate_json_schema(schema)
        assert is_valid is True
        assert error is None

    def test_invalid_type(self):
        is_valid, error = validate_json_schema({"type": "not-a-type"})
        assert is_valid is False
        assert "Invalid schema" in error

    def test_generated_schemas_are_valid(self):
        for handler in (Macie2Member(), DetectiveInvitationRequest()):
            is_valid, error = validate_json_schema(handler.schema.to_json_schema())
            assert is_valid is True, error


class TestValidateSpecAgainstSchema:
    """Tests for validate_spec_against_schema."""

    SCHEMA = {
        "type": "object",
        "properties": {
            "name": {"type": "string"},
            "tags": {"type": "object", "additionalProperties": {"type": "string"}},
        },
        "required": ["name"],
    }

    def test_valid_spec(self):
        is_valid, error = validate_spec_against_schema({"name": "x"}, self.SCHEMA)
        assert is_valid is True
        assert error is None

    def test_missing_required(self):
        is_valid, error = validate_spec_against_schema({}, self.SCHEMA)
        assert is_valid is False
        assert "(root)" in error
        assert "'name' is a required property" in error

    def test_error_path_included(self):
        is_valid, error = validate_spec_against_schema(
            {"name": "x", "tags": {"team": 1}}, self.SCHEMA
        )
        assert is_valid is False
        assert error.startswith("tags.team:")

    def test_multiple_errors_joined(self):
        is_valid, error = validate_spec_against_schema(
            {"tags": {"team": 1}}, self.SCHEMA
        )
        assert is_valid is False
        assert "; " in error


class TestValidateDesiredState:
    """Tests for validate_desired_state against handler schemas."""

    def test_valid_member(self):
        is_valid, error = validate_desired_state(
            Macie2Member().schema,
            {
                "account_id": "123456789012",
                "email": "member@example.com",
                "invite": True,
                "status": "PAUSED",
                "tags": {"team": "security"},
            },
        )
        assert is_valid is True
        assert error is None

    def test_member_missing_email(self):
        is_valid, error = validate_desired_state(
            Macie2Member().schema, {"account_id": "123456789012"}
        )
        assert is_valid is False
        assert "email" in error

    def test_member_bad_status(self):
        is_valid, error = validate_desired_state(
            Macie2Member().schema,
            {"account_id": "1", "email": "a@b.c", "status": "DISABLED"},
        )
        assert is_valid is False
        assert error.startswith("status:")

    def test_computed_field_rejected(self):
        is_valid, error = validate_desired_state(
            Macie2Member().schema,
            {"account_id": "1", "email": "a@b.c", "arn": "arn:x"},
        )
        assert is_valid is False
        assert "arn" in error

    def test_bool_type_enforced(self):
        is_valid, error = validate_desired_state(
            DetectiveInvitationRequest().schema,
            {
                "graph_arn": "arn:g",
                "account": "1",
                "email": "a@b.c",
                "disable_email_notification": "yes",
            },
        )
        assert is_valid is False
        assert "disable_email_notification" in error
