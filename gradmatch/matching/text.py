from __future__ import annotations

import re

_SLUG_RE = re.compile(r"[^a-z0-9]+")


def contains_either(left: str | None, right: str | None) -> bool:
    """Case-insensitive substring containment in either direction. Empty strings never match."""
    a = (left or "").strip().lower()
    b = (right or "").strip().lower()
    if not a or not b:
        return False
    return a in b or b in a


def matched_terms(terms: list[str], targets: list[str]) -> list[str]:
    """Terms, in input order, that overlap at least one target."""
    return [term for term in terms if any(contains_either(term, target) for target in targets)]


def slugify(value: str) -> str:
    return _SLUG_RE.sub("-", (value or "").lower()).strip("-") or "unknown"
