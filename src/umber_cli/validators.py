"""
Input validation functions for umber-cli.

Validates category names, topic titles, and post bodies before they are
sent to the forum API.
"""

# NodeBB's default maximumPostLength.
MAX_POST_LENGTH = 32768
MAX_TITLE_LENGTH = 255


def format_validation_error(field_name: str, reason: str) -> str:
    """
    Generate consistent error message for validation failures.

    Args:
        field_name: Human-readable field name (e.g., "Title")
        reason: Description of validation failure (e.g., "cannot be empty")

    Returns:
        Formatted error message string
    """
    return f"{field_name} {reason}"


def validate_category_name(name: str) -> tuple[bool, str]:
    """
    Validate a category name.

    Returns:
        Tuple of (is_valid, error_message).

    Validation rules:
        - Cannot be empty or whitespace-only
        - Cannot contain '/' (one category per directory segment)
    """
    if not name or not name.strip():
        return (
            False,
            format_validation_error("Category name", "cannot be empty"),
        )

    if "/" in name:
        return (
            False,
            format_validation_error("Category name", "cannot contain '/'"),
        )

    return (True, "")


def validate_title(
    title: str, max_length: int = MAX_TITLE_LENGTH
) -> tuple[bool, str]:
    """
    Validate a topic title.

    Returns:
        Tuple of (is_valid, error_message).
    """
    if not title or not title.strip():
        return (
            False,
            format_validation_error("Title", "cannot be empty"),
        )

    if len(title) > max_length:
        return (
            False,
            format_validation_error(
                "Title", f"exceeds maximum length of {max_length} characters"
            ),
        )

    return (True, "")


def validate_post_content(
    content: str, max_length: int = MAX_POST_LENGTH
) -> tuple[bool, str]:
    """
    Validate a post body.

    Args:
        content: The content to validate
        max_length: Maximum size in characters (default: 32768)

    Returns:
        Tuple of (is_valid, error_message).

    Validation rules:
        - Cannot be empty
        - Cannot exceed max_length characters
    """
    if not content:
        return (
            False,
            format_validation_error("Content", "cannot be empty"),
        )

    if len(content) > max_length:
        return (
            False,
            format_validation_error(
                "Content", f"exceeds maximum length of {max_length} characters"
            ),
        )

    return (True, "")
