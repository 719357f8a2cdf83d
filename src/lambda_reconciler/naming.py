"""Function and execution role naming.

Function names must satisfy both Lambda and IAM rules, because each function
gets an execution role named after it:
- Letters, digits, hyphens and underscores only (Lambda function names)
- At most 64 characters for the function name (Lambda limit)
- Derived role name ``<function><suffix>`` at most 64 characters (IAM limit)
"""

import re

from .exceptions import ValidationError

ROLE_SUFFIX = "-ExecRole"
"""Suffix appended to a function name to form its execution role name."""

FUNCTION_NAME_MAX_LENGTH = 64
ROLE_NAME_MAX_LENGTH = 64

NAME_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


def role_name_for(function_name: str, suffix: str = ROLE_SUFFIX) -> str:
    """Return the execution role name for a function."""
    return f"{function_name}{suffix}"


def validate_function_name(name: str, suffix: str = ROLE_SUFFIX) -> None:
    """
    Validate a function name from a change-set.

    Args:
        name: The function name
        suffix: Role suffix, used to check the derived role name length

    Raises:
        ValidationError: If the name is invalid
    """
    if not name:
        raise ValidationError("function name", name, "Name cannot be empty")

    if " " in name:
        raise ValidationError(
            "function name",
            name,
            "Contains spaces. Use hyphens instead (e.g., 'get-users' not 'get users')",
        )

    if not NAME_PATTERN.match(name):
        raise ValidationError(
            "function name",
            name,
            "Only alphanumeric characters, hyphens and underscores are allowed.",
        )

    if len(name) > FUNCTION_NAME_MAX_LENGTH:
        raise ValidationError(
            "function name",
            name,
            f"Too long. Name exceeds {FUNCTION_NAME_MAX_LENGTH} character limit.",
        )

    max_length = ROLE_NAME_MAX_LENGTH - len(suffix)
    if len(name) > max_length:
        raise ValidationError(
            "function name",
            name,
            f"Too long. Role name '{role_name_for(name, suffix)}' would exceed "
            f"{ROLE_NAME_MAX_LENGTH} character limit (IAM role constraints).",
        )
