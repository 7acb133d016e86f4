"""
Input validation for MCP tool arguments.

Checks page titles, project identifiers and file names before they reach
the sync engine, so a bad argument is reported as a validation error
rather than an I/O failure.
"""

import re

_IDENTIFIER = re.compile(r"^[a-z0-9][a-z0-9_\-]*$")


def format_validation_error(field_name: str, reason: str) -> str:
    """
    Generate consistent error message for validation failures.

    Args:
        field_name: Human-readable field name (e.g., "Page title")
        reason: Description of validation failure (e.g., "cannot be empty")

    Returns:
        Formatted error message string
    """
    return f"{field_name} {reason}"


def validate_title(title: str) -> tuple[bool, str]:
    """
    Validate a page title.

    Returns:
        Tuple of (is_valid, error_message).
        Returns (True, "") if valid, (False, reason) if invalid.

    Validation rules:
        - Cannot be empty or whitespace-only
        - Cannot contain '..' or path separators
    """
    if not title or not title.strip():
        return (False, format_validation_error("Page title", "cannot be empty"))
    if ".." in title:
        return (False, format_validation_error("Page title", "cannot contain '..'"))
    if "/" in title or "\\" in title:
        return (
            False,
            format_validation_error("Page title", "cannot contain path separators"),
        )
    return (True, "")


def validate_identifier(identifier: str) -> tuple[bool, str]:
    """
    Validate a project identifier.

    Identifiers are lower-case letters, digits, '-' and '_', starting
    with a letter or digit.
    """
    if not identifier or not identifier.strip():
        return (
            False,
            format_validation_error("Project identifier", "cannot be empty"),
        )
    if not _IDENTIFIER.match(identifier):
        return (
            False,
            format_validation_error(
                "Project identifier",
                "may only contain lower-case letters, digits, '-' and '_'",
            ),
        )
    return (True, "")


def validate_filename(filename: str) -> tuple[bool, str]:
    """
    Validate a file name relative to a project folder.

    Only plain names directly inside the folder are accepted.
    """
    if not filename or not filename.strip():
        return (False, format_validation_error("File name", "cannot be empty"))
    if "/" in filename or "\\" in filename or filename in (".", ".."):
        return (
            False,
            format_validation_error(
                "File name", "must name a file directly inside the project folder"
            ),
        )
    if filename.startswith("."):
        return (False, format_validation_error("File name", "cannot be hidden"))
    return (True, "")
