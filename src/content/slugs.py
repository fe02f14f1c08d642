"""Slug derivation for content items."""

from __future__ import annotations

import re
import secrets
import string
import time
from collections.abc import Callable

MAX_SLUG_LENGTH = 50
SUFFIX_LENGTH = 8

_ALPHABET = string.ascii_lowercase + string.digits
_BASE36 = string.digits + string.ascii_lowercase


def generate_slug(title: str, max_length: int = MAX_SLUG_LENGTH) -> str:
    """Derive a URL-safe slug from a title.

    Keeps ASCII letters, digits and hyphens; whitespace runs become a
    single hyphen.  Titles that clean to nothing get a ``post-<base36>``
    slug from the current time.
    """
    slug = title.lower().strip()
    slug = re.sub(r"[^a-z0-9\s-]", "", slug)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug).strip("-")

    if not slug:
        slug = f"post-{_base36(int(time.time() * 1000))}"

    if len(slug) > max_length:
        slug = slug[:max_length].rstrip("-")

    return slug


def random_suffix(length: int = SUFFIX_LENGTH) -> str:
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))


def unique_slug(base: str, exists: Callable[[str], bool]) -> str:
    """Append a random suffix to ``base`` until ``exists`` reports it free."""
    while True:
        candidate = f"{base}-{random_suffix()}"
        if not exists(candidate):
            return candidate


def _base36(value: int) -> str:
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits)) or "0"
