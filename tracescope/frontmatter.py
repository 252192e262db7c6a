"""
YAML frontmatter parsing for requirement files and feature READMEs.

Hand-authored frontmatter is often incomplete. Instead of raising on a missing
field, parsing returns a FrontmatterResult whose accessors fall back to
defaults, so callers decide which fields are mandatory.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

import yaml

_FRONTMATTER_RE = re.compile(r"\A(?:\ufeff)?---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|\Z)", re.DOTALL)


@dataclass
class FrontmatterResult:
    """
    Partial record parsed from a ``---`` fenced block.

    Scalars are kept as the strings written in the file: ``044`` stays
    ``"044"`` and ``2024-01-15`` stays ``"2024-01-15"``.
    """

    found: bool = False
    data: dict[str, Any] = field(default_factory=dict)
    error: str | None = None

    @property
    def is_valid(self) -> bool:
        return self.found and self.error is None

    def get_str(self, key: str, default: str | None = None) -> str | None:
        value = self.data.get(key)
        if _is_null(value) or isinstance(value, (list, dict)):
            return default
        return str(value)

    def get_list(self, key: str) -> list[str]:
        value = self.data.get(key)
        if _is_null(value) or isinstance(value, dict):
            return []
        if isinstance(value, list):
            return [str(v) for v in value if not _is_null(v) and not isinstance(v, (list, dict))]
        return [part.strip().strip("'\"") for part in str(value).split(",") if part.strip()]

    def get_bool(self, key: str, default: bool = False) -> bool:
        value = self.data.get(key)
        if _is_null(value) or isinstance(value, (list, dict)):
            return default
        return str(value).strip().lower() in {"true", "yes", "1", "on"}


_NULL_SCALARS = {"", "~", "null", "Null", "NULL"}


def _is_null(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() in _NULL_SCALARS)


def extract_block(text: str) -> str | None:
    """Return the raw text between the opening and closing fences."""
    match = _FRONTMATTER_RE.match(text)
    if not match:
        return None
    return match.group(1)


def parse_frontmatter(text: str) -> FrontmatterResult:
    """Parse the frontmatter block of a markdown document."""
    block = extract_block(text)
    if block is None:
        return FrontmatterResult()

    try:
        # BaseLoader: no YAML 1.1 implicit typing (octal 044, sexagesimal, dates)
        data = yaml.load(block, Loader=yaml.BaseLoader)
    except yaml.YAMLError as exc:
        return FrontmatterResult(found=True, error=str(exc).splitlines()[0] if str(exc) else "invalid YAML")

    if data is None:
        return FrontmatterResult(found=True)
    if not isinstance(data, dict):
        return FrontmatterResult(found=True, error=f"expected a mapping, got {type(data).__name__}")

    return FrontmatterResult(found=True, data={str(k): v for k, v in data.items()})
