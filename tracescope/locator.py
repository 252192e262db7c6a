"""
Implementation file discovery from commit history.

A path counts as an implementation file when it matches one of the inclusion
patterns (source directories or source extensions) and none of the exclusion
patterns (tests, docs, markdown, READMEs).
"""

from __future__ import annotations

import logging
import re
from typing import Iterable

from .config import DEFAULT_EXCLUDE_PATTERNS, DEFAULT_INCLUDE_PATTERNS
from .vcs import VersionControlGateway

logger = logging.getLogger(__name__)


class ImplementationLocator:
    def __init__(
        self,
        gateway: VersionControlGateway,
        include_patterns: Iterable[str] = DEFAULT_INCLUDE_PATTERNS,
        exclude_patterns: Iterable[str] = DEFAULT_EXCLUDE_PATTERNS,
    ):
        self.gateway = gateway
        self.include = [re.compile(p) for p in include_patterns]
        self.exclude = [re.compile(p) for p in exclude_patterns]

    def is_implementation_path(self, path: str) -> bool:
        normalized = path.replace("\\", "/")
        if not any(p.search(normalized) for p in self.include):
            return False
        return not any(p.search(normalized) for p in self.exclude)

    def find_implementation_files(self, requirement_id: str) -> list[str]:
        """Sorted, unique implementation paths touched by commits citing requirement_id."""
        try:
            commits = self.gateway.find_commits_referencing(requirement_id)
        except Exception as exc:
            logger.warning("Commit lookup for %s failed: %s", requirement_id, exc)
            return []

        touched = {path for commit in commits for path in commit.files}
        files = sorted(p for p in touched if self.is_implementation_path(p))
        logger.debug("%s: %d commits, %d implementation files", requirement_id, len(commits), len(files))
        return files
