"""Input guards for agent-supplied payloads."""

from typing import Any


# Validation limits
MAX_SCRIPT_LENGTH = 200_000
MAX_DATA_DEPTH = 20


class ValidationError(Exception):
    """Validation failed."""

    pass


def validate_script_size(script: str, max_length: int = MAX_SCRIPT_LENGTH) -> None:
    """
    Reject oversized batch scripts before parsing.

    Args:
        script: Script text
        max_length: Maximum allowed length in characters

    Raises:
        ValidationError: If the script is too long
    """
    if len(script) > max_length:
        raise ValidationError(
            f"Script length {len(script)} exceeds maximum {max_length} characters"
        )


def validate_data_depth(obj: Any, max_depth: int = MAX_DATA_DEPTH, current_depth: int = 0) -> None:
    """
    Validate nesting depth of script data to prevent runaway recursion.

    Args:
        obj: Object to validate
        max_depth: Maximum allowed nesting depth
        current_depth: Current depth (internal)

    Raises:
        ValidationError: If depth exceeds limit
    """
    if current_depth > max_depth:
        raise ValidationError(f"Data nesting depth {current_depth} exceeds maximum {max_depth}")

    if isinstance(obj, dict):
        for value in obj.values():
            validate_data_depth(value, max_depth, current_depth + 1)
    elif isinstance(obj, list):
        for item in obj:
            validate_data_depth(item, max_depth, current_depth + 1)
