"""Shared validation utilities"""

import re
from typing import Optional

EMAIL_PATTERN = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Args:
        email: Email address string

    Returns:
        Lowercase, stripped email address

    Raises:
        ValueError: If email format is invalid
    """
    if not email:
        return email

    email = email.strip().lower()
    if not re.match(EMAIL_PATTERN, email):
        raise ValueError("Invalid email format")

    return email


def clean_tags(tags: Optional[list[str]]) -> list[str]:
    """Strip tags, drop empties and duplicates, keep first-seen order"""
    seen = []
    for tag in tags or []:
        tag = (tag or "").strip()
        if tag and tag not in seen:
            seen.append(tag)
    return seen
