"""
Schema Validation - desired state checks ahead of any AWS call.

Each resource schema renders itself as a Draft 7 JSON Schema; desired state
is checked against it so malformed input fails before create/update/replace
touches the service.
"""

import logging
from typing import Any, Dict, Iterable, Optional, Tuple

from jsonschema import Draft7Validator
from jsonschema.exceptions import SchemaError, ValidationError

from plugins.base import ResourceSchema

logger = logging.getLogger(__name__)

ValidationOutcome = Tuple[bool, Optional[str]]


def validate_json_schema(schema: Dict[str, Any]) -> ValidationOutcome:
    """
    Check that a schema is itself a valid Draft 7 JSON Schema.

    Args:
        schema: The schema to check

    Returns:
        Tuple of (is_valid, error_message)
    """
    try:
        Draft7Validator.check_schema(schema)
    except SchemaError as e:
        return False, f"Invalid schema: {e.message}"
    return True, None


def format_errors(errors: Iterable[ValidationError]) -> str:
    """Render validation errors as "path: message" pairs, ordered by path."""
    messages = []
    for error in sorted(errors, key=lambda e: [str(p) for p in e.absolute_path]):
        path = ".".join(str(p) for p in error.absolute_path) or "(root)"
        messages.append(f"{path}: {error.message}")
    return "; ".join(messages)


def validate_spec_against_schema(
    spec: Dict[str, Any], schema: Dict[str, Any]
) -> ValidationOutcome:
    """
    Validate desired state against a JSON Schema.

    Args:
        spec: The desired state to validate
        schema: The JSON Schema to validate against

    Returns:
        Tuple of (is_valid, error_message)
    """
    errors = list(Draft7Validator(schema).iter_errors(spec))
    if not errors:
        return True, None

    message = format_errors(errors)
    logger.debug(f"Desired state rejected: {message}")
    return False, message


def validate_desired_state(
    resource_schema: ResourceSchema, desired: Dict[str, Any]
) -> ValidationOutcome:
    """Validate desired state against a resource type's schema."""
    return validate_spec_against_schema(desired, resource_schema.to_json_schema())
