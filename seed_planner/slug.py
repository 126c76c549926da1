from __future__ import annotations

import logging
import re
from typing import Callable

logger = logging.getLogger("slug")

MAX_SLUG_LENGTH = 50
MAX_INCREMENT_ATTEMPTS = 1000
RESERVED_SLUGS: frozenset[str] = frozenset(
    {
        "admin", "api", "app", "auth", "billing", "dashboard", "docs", "help",
        "home", "login", "logout", "profile", "settings", "signup", "support",
        "team", "teams", "user", "users", "www", "mail", "email", "ftp", "blog",
        "news", "test", "demo", "staging", "prod", "production", "dev", "development",
    }
)
_RESERVED_PREFIXES: tuple[str, ...] = ("team", "org", "group", "company")
_NON_SLUG_CHARS = re.compile(r"[^a-z0-9]+")


def normalize_slug(value: str, *, max_length: int = MAX_SLUG_LENGTH) -> str:
    slug = _NON_SLUG_CHARS.sub("-", str(value).strip().lower()).strip("-")
    slug = slug[:max_length].rstrip("-")
    return slug or "organization"


def _avoid_reserved(slug: str, max_length: int) -> str:
    if slug not in RESERVED_SLUGS:
        return slug
    for prefix in _RESERVED_PREFIXES:
        candidate = f"{prefix}-{slug}"[:max_length]
        if candidate not in RESERVED_SLUGS:
            return candidate
    return f"{slug}-org"


def generate_unique_slug(
    base_name: str,
    *,
    is_taken: Callable[[str], bool] | None = None,
    max_length: int = MAX_SLUG_LENGTH,
) -> str:
    """Normalize, step around reserved words, then append -2, -3, ... while `is_taken` says so."""
    slug = _avoid_reserved(normalize_slug(base_name, max_length=max_length), max_length)
    if is_taken is None or not is_taken(slug):
        logger.debug("Generated slug '%s' from '%s'", slug, base_name)
        return slug

    for counter in range(2, MAX_INCREMENT_ATTEMPTS + 2):
        suffix = f"-{counter}"
        candidate = slug[: max_length - len(suffix)].rstrip("-") + suffix
        if not is_taken(candidate):
            logger.debug("Generated slug '%s' from '%s' after collision", candidate, base_name)
            return candidate

    raise ValueError(
        f"Slug generation / {base_name}: no free slug after {MAX_INCREMENT_ATTEMPTS} attempts. "
        "Fix: provide a more specific organization name."
    )
