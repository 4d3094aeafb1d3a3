"""JSON Schema validation wrapper."""

from __future__ import annotations

from dataclasses import dataclass

from jsonschema import Draft202012Validator

_VALIDATOR_TO_TYPE = {
    "required": "missing_required",
    "type": "invalid_type",
    "enum": "enum_violation",
    "pattern": "pattern_mismatch",
    "minLength": "min_length_violation",
    "minimum": "minimum_violation",
    "maximum": "maximum_violation",
    "minItems": "min_items_violation",
    "additionalProperties": "additional_property",
}


@dataclass
class ValidationIssue:
    """One machine-readable schema violation.

    ``field`` is the dotted path of the offending property; for missing
    required properties it includes the missing name.
    """

    type: str
    message: str
    field: str | None = None
    got: str | None = None
    allowed_values: list[str] | None = None


def validate_payload(schema: dict[str, object], payload: dict[str, object]) -> list[str]:
    validator = Draft202012Validator(schema)
    return [error.message for error in validator.iter_errors(payload)]


def validate_payload_structured(
    schema: dict[str, object],
    payload: dict[str, object],
) -> list[ValidationIssue]:
    """Validate ``payload`` and return issues ordered with missing fields first."""
    validator = Draft202012Validator(schema)
    issues: list[ValidationIssue] = []

    for error in validator.iter_errors(payload):
        path = [str(part) for part in error.absolute_path]
        issue_type = _VALIDATOR_TO_TYPE.get(str(error.validator), "validation_error")
        got = None
        allowed = None

        if error.validator == "required":
            missing = _missing_property(error.message)
            if missing:
                path.append(missing)
        elif error.validator == "enum":
            allowed = [str(v) for v in error.validator_value or []]
            got = str(error.instance)
        elif error.validator == "type":
            got = type(error.instance).__name__ if error.instance is not None else "null"

        issues.append(
            ValidationIssue(
                type=issue_type,
                message=error.message,
                field=".".join(path) if path else None,
                got=got,
                allowed_values=allowed,
            )
        )

    issues.sort(key=lambda issue: 0 if issue.type == "missing_required" else 1)
    return issues


def _missing_property(message: str) -> str | None:
    # jsonschema renders "'name' is a required property".
    if message.count("'") >= 2:
        return message.split("'")[1]
    return None
