"""Canonical form for Notion resource identifiers.

Notion hands out the same UUID both hyphenated and compact, in upper or
lower case, depending on where it was copied from (URL, API payload, UI).
Two identifiers denote the same resource when their canonical forms are
equal, so every comparison in this package goes through :func:`ids_match`.

Example
-------
>>> ids_match("1F2E3D4C-0000-0000-0000-00000000AAAA", "1f2e3d4c00000000000000000000aaaa")
True
"""
from __future__ import annotations

import re

_SEPARATOR = "-"
_CANONICAL_PATTERN = re.compile(r"^[0-9a-f]{32}$")


def normalize_id(resource_id: str) -> str:
    """Return the canonical form of *resource_id* (no hyphens, lower case)."""
    return resource_id.replace(_SEPARATOR, "").lower()


def ids_match(first: str, second: str) -> bool:
    """Return True if both identifiers denote the same resource."""
    return normalize_id(first) == normalize_id(second)


def is_well_formed_id(value: str) -> bool:
    """Return True if *value* normalizes to a 32-digit hexadecimal UUID."""
    return bool(_CANONICAL_PATTERN.match(normalize_id(value)))
