"""
Requirement identifier extraction and matching.

All free-text scanning goes through extract_references so that tests, branch
names and feature lists are counted with the same rules.
"""

from __future__ import annotations

import re


REQUIREMENT_ID_RE = re.compile(r"REQ-\d{3}(?!\d)")
BRANCH_REQUIREMENT_RE = re.compile(r"req-(\d+)", re.IGNORECASE)
_PREFIX_RE = re.compile(r"^req-")


def extract_references(text: str) -> set[str]:
    """
    Return the distinct requirement IDs mentioned in text.

    Matching is case-sensitive and needs exactly three digits:
    ``"See REQ-001 and req-001 and REQ-1"`` yields ``{"REQ-001"}``.
    """
    if not text:
        return set()
    return set(REQUIREMENT_ID_RE.findall(text))


def normalize_requirement_id(raw: str) -> str | None:
    """Map any ``req-N`` spelling to ``REQ-NNN``; None if there is no ID."""
    match = BRANCH_REQUIREMENT_RE.search(raw or "")
    if not match:
        return None
    return f"REQ-{match.group(1).zfill(3)}"


def requirement_ids_match(requirement_id: str, candidate: str) -> bool:
    """
    Tolerant comparison between a requirement ID and a loosely written reference.

    Both sides are lower-cased. Besides equality, a match is reported when one
    side, with any ``req-`` prefix removed, is a suffix of the other. This lets
    feature lists use ``"044"`` or ``"req-044"`` for ``REQ-044``.

    Known limitation: short numeric references also match longer IDs that end
    the same way (``"044"`` matches ``REQ-1044``, ``"4"`` matches ``REQ-004``
    and ``REQ-014``). The rule is kept as-is until stricter matching is agreed.
    """
    left = (requirement_id or "").strip().lower()
    right = (candidate or "").strip().lower()
    if not left or not right:
        return False
    if left == right:
        return True

    left_bare = _PREFIX_RE.sub("", left)
    right_bare = _PREFIX_RE.sub("", right)
    if right_bare and left.endswith(right_bare):
        return True
    if left_bare and right.endswith(left_bare):
        return True
    return False
