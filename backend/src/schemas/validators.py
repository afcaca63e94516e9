"""
Shared validation functions for Pydantic schemas.

Length limits come from settings so that deployments can tune them without
code changes.
"""
import re
from typing import Any

from core.config import get_settings

# Category colors are 6-digit hex, stored lowercase, e.g. '#6366f1'
HEX_COLOR_PATTERN = re.compile(r"^#[0-9a-fA-F]{6}$")

# Largest value an INTEGER column holds
MAX_DB_INT = 2**31 - 1


def validate_and_normalize_tag(tag: str) -> str:
    """
    Normalize and validate a single tag.

    Args:
        tag: The tag string to validate.

    Returns:
        The normalized tag (lowercase, trimmed).

    Raises:
        ValueError: If tag is empty or too long.
    """
    settings = get_settings()
    normalized = tag.lower().strip()
    if not normalized:
        raise ValueError("Tag name cannot be empty")
    if len(normalized) > settings.max_tag_length:
        raise ValueError(
            f"Tag '{normalized[:20]}...' exceeds maximum length of "
            f"{settings.max_tag_length} characters.",
        )
    return normalized


def validate_and_normalize_tags(tags: Any) -> list[str]:
    """
    Normalize and validate a list of tags.

    Args:
        tags: List of tag strings to validate.

    Returns:
        List of normalized tags (lowercase, trimmed), with empty strings filtered out
        and duplicates removed (preserving first occurrence order).

    Raises:
        ValueError: If tags is not a list, any tag is too long, or there are too
            many distinct tags.
    """
    if not isinstance(tags, list):
        raise ValueError("Tags must be a list of strings")
    settings = get_settings()
    normalized = []
    seen: set[str] = set()
    for tag in tags:
        if not isinstance(tag, str):
            raise ValueError("Tags must be strings")
        trimmed = tag.lower().strip()
        if not trimmed:
            continue  # Skip empty tags silently
        validated = validate_and_normalize_tag(trimmed)
        if validated not in seen:
            seen.add(validated)
            normalized.append(validated)
    if len(normalized) > settings.max_tags:
        raise ValueError(
            f"A prompt can have at most {settings.max_tags} tags (got {len(normalized)}).",
        )
    return normalized


def validate_title(title: str) -> str:
    """Validate that a title is non-blank and within the maximum length. Returns it trimmed."""
    settings = get_settings()
    trimmed = title.strip()
    if not trimmed:
        raise ValueError("Title is required")
    if len(trimmed) > settings.max_title_length:
        raise ValueError(
            f"Title exceeds maximum length of {settings.max_title_length:,} characters "
            f"(got {len(trimmed):,} characters).",
        )
    return trimmed


def validate_content(content: str) -> str:
    """Validate that content is non-blank and within the maximum length."""
    settings = get_settings()
    if not content.strip():
        raise ValueError("Content is required")
    if len(content) > settings.max_content_length:
        raise ValueError(
            f"Content exceeds maximum length of {settings.max_content_length:,} characters "
            f"(got {len(content):,} characters).",
        )
    return content


def validate_hex_color(color: str) -> str:
    """Validate a '#rrggbb' color and return it lower-cased."""
    if not HEX_COLOR_PATTERN.match(color):
        raise ValueError(f"Invalid color '{color}'. Use a hex value like '#6366f1'.")
    return color.lower()
