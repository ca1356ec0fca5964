"""
Input validation utilities for event commands.
"""

import re
from typing import Optional

from utils.constants import MAX_MESSAGE_LENGTH
from utils.exceptions import ValidationError


def sanitize_text(text: str, max_length: Optional[int] = None) -> str:
    """
    Sanitize user input text.

    Args:
        text: Input text
        max_length: Optional maximum length

    Returns:
        Sanitized text
    """
    if not text:
        return ""

    # Remove control characters except newlines and tabs
    sanitized = re.sub(r"[\x00-\x08\x0B-\x0C\x0E-\x1F\x7F]", "", str(text))
    sanitized = sanitized.strip()

    if max_length and len(sanitized) > max_length:
        sanitized = sanitized[:max_length]

    return sanitized


def validate_message(message: str) -> str:
    """
    Validate and clean an event message.

    Raises:
        ValidationError: If the message is empty or too long
    """
    cleaned = sanitize_text(message)
    if not cleaned:
        raise ValidationError("Event message cannot be empty")
    if len(cleaned) > MAX_MESSAGE_LENGTH:
        raise ValidationError(
            f"Event message is too long ({len(cleaned)} > {MAX_MESSAGE_LENGTH} characters)"
        )
    return cleaned


def parse_position(reference: str) -> Optional[int]:
    """Return the 1-based list position in reference, or None if it is not numeric."""
    reference = reference.strip()
    if reference.isdigit():
        return int(reference)
    return None
