"""
JSON Schema validation of command input and output.
"""

from typing import Any, Dict

import jsonschema
from jsonschema.validators import validator_for


def validate_schema(schema: Dict[str, Any]) -> None:
    """
    Check that a schema is itself a valid JSON Schema.

    Raises:
        ValueError: If the schema is malformed.
    """
    try:
        validator_for(schema).check_schema(schema)
    except jsonschema.SchemaError as e:
        raise ValueError(f"Invalid JSON schema: {e.message}") from e


def validate(value: Any, schema: Dict[str, Any]) -> None:
    """
    Validate a value against a JSON Schema.

    Raises:
        jsonschema.ValidationError: If the value does not match.
    """
    jsonschema.validate(instance=value, schema=schema)


def describe_error(error: jsonschema.ValidationError) -> Dict[str, Any]:
    """Summarize a validation error for reporting."""
    return {
        "message": str(error.message),
        "path": list(error.path),
        "schema_path": list(error.schema_path),
    }
