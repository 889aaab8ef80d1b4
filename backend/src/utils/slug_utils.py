"""Short public identifiers for testimonials, groups and forms.

Slugs are 6 characters drawn uniformly from ``[a-z0-9]`` (about 31 bits).
``generate_unique_slug`` only checks candidates against a caller-supplied
namespace test; it does not persist anything. Uniqueness under concurrent
writers is enforced by the unique-key claim the caller makes afterwards
(see ``utils.unique_keys``).
"""

import logging
import re
import secrets
import time
from typing import Callable

logger = logging.getLogger(__name__)

SLUG_ALPHABET = "abcdefghijklmnopqrstuvwxyz0123456789"
BASE36_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"
SLUG_LENGTH = 6
MAX_SLUG_ATTEMPTS = 10

SLUG_PATTERN = re.compile(r"^[a-z0-9]{6}$")
# Owner-chosen project page slugs, e.g. "acme-coffee"
PUBLIC_SLUG_PATTERN = re.compile(r"^[a-z0-9-]+$")


def generate_slug(length: int = SLUG_LENGTH) -> str:
    """Generate a random slug from the lowercase alphanumeric alphabet."""
    return "".join(secrets.choice(SLUG_ALPHABET) for _ in range(length))


def to_base36(number: int) -> str:
    """Encode a non-negative integer in base 36."""
    if number == 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(BASE36_DIGITS[remainder])
    return "".join(reversed(digits))


def timestamp_suffix(now_ms: int | None = None) -> str:
    """Last two base-36 digits of the current millisecond timestamp."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return to_base36(now_ms)[-2:].rjust(2, "0")


def generate_unique_slug(
    exists_check: Callable[[str], bool],
    max_attempts: int = MAX_SLUG_ATTEMPTS,
) -> str:
    """Return the first random slug for which ``exists_check`` is False.

    After ``max_attempts`` collisions, falls back to a 4-character random
    prefix plus a 2-character timestamp suffix, returned without another
    check. Never raises.

    Args:
        exists_check: Uniqueness test scoped to the right namespace
            (project for testimonials and groups, global for forms)
        max_attempts: Number of checked candidates before the fallback

    Returns:
        A 6-character slug
    """
    for _ in range(max_attempts):
        candidate = generate_slug()
        if not exists_check(candidate):
            return candidate

    fallback = generate_slug()[:4] + timestamp_suffix()
    logger.warning(
        "Slug space congested after %d attempts, using fallback %s",
        max_attempts,
        fallback,
    )
    return fallback


def is_valid_slug(slug: str | None) -> bool:
    """Validate an externally supplied 6-character slug."""
    return bool(slug) and SLUG_PATTERN.fullmatch(slug) is not None


def slugify_name(name: str) -> str:
    """Derive a project page slug from a display name."""
    slug = name.lower()
    slug = re.sub(r"[^a-z0-9\s-]", "", slug)
    slug = re.sub(r"\s+", "-", slug.strip())
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")
