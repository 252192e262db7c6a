"""
Version-control access for the traceability engine.

The engine only talks to history through VersionControlGateway, so tests can
hand in canned branch and commit data instead of running git.
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)

_REMOTE_PREFIX = "remotes/"
COMMIT_MARKER = "commit:"


@dataclass(frozen=True)
class CommitRecord:
    """A commit and the paths it touched."""

    sha: str
    files: list[str] = field(default_factory=list)


@runtime_checkable
class VersionControlGateway(Protocol):
    """Protocol every version-control backend must satisfy."""

    def list_branches(self) -> list[str]:
        """Return local and remote branch names, remote prefix stripped."""
        ...

    def find_commits_referencing(self, requirement_id: str) -> list[CommitRecord]:
        """Return commits whose message mentions requirement_id."""
        ...


def parse_branch_listing(output: str) -> list[str]:
    """
    Parse ``git branch -a`` output into bare branch names.

    ``* main``, ``  feature/x`` and ``  remotes/origin/feature/x`` all become
    plain names; symbolic refs such as ``remotes/origin/HEAD -> origin/main``
    are dropped. Order is preserved, duplicates removed.
    """
    seen: set[str] = set()
    branches: list[str] = []
    for raw in output.splitlines():
        line = raw.strip()
        if not line:
            continue
        if line.startswith("* ") or line.startswith("+ "):
            line = line[2:].strip()
        if "->" in line or line.startswith("("):
            continue
        if line.startswith(_REMOTE_PREFIX):
            parts = line.split("/", 2)
            if len(parts) < 3:
                continue
            line = parts[2]
        if line and line not in seen:
            seen.add(line)
            branches.append(line)
    return branches


def parse_log_output(output: str) -> list[CommitRecord]:
    """
    Parse ``git log --name-only`` output written with the commit marker format.

    Each commit starts with a ``commit:<sha>`` line followed by the paths it
    touched; commits are separated by blank lines.
    """
    commits: list[CommitRecord] = []
    sha: str | None = None
    files: list[str] = []
    for raw in output.splitlines():
        line = raw.strip()
        if not line:
            continue
        if line.startswith(COMMIT_MARKER):
            if sha is not None:
                commits.append(CommitRecord(sha=sha, files=files))
            sha, files = line[len(COMMIT_MARKER):], []
        elif sha is not None:
            files.append(line)
    if sha is not None:
        commits.append(CommitRecord(sha=sha, files=files))
    return commits


class GitGateway:
    """Shells out to the git CLI with a bounded timeout per call."""

    def __init__(self, repo_root: Path, timeout: float = 30.0, git_binary: str = "git"):
        self.repo_root = repo_root
        self.timeout = timeout
        self.git_binary = git_binary

    def _run(self, args: list[str]) -> str | None:
        cmd = [self.git_binary, *args]
        try:
            result = subprocess.run(
                cmd,
                cwd=str(self.repo_root),
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired:
            logger.warning("git %s timed out after %ss", " ".join(args), self.timeout)
            return None
        except OSError as exc:
            logger.warning("Could not run %s: %s", self.git_binary, exc)
            return None

        if result.returncode != 0:
            logger.warning(
                "git %s exited %d: %s",
                " ".join(args),
                result.returncode,
                result.stderr.strip()[:500],
            )
            return None
        return result.stdout

    def list_branches(self) -> list[str]:
        output = self._run(["branch", "-a", "--no-color"])
        if output is None:
            return []
        return parse_branch_listing(output)

    def find_commits_referencing(self, requirement_id: str) -> list[CommitRecord]:
        output = self._run(
            [
                "log",
                "--fixed-strings",
                f"--grep={requirement_id}",
                "--name-only",
                f"--pretty=format:{COMMIT_MARKER}%H",
            ]
        )
        if output is None:
            return []
        return parse_log_output(output)


class NullGateway:
    """Gateway for runs with git disabled: no branches, no commits."""

    def list_branches(self) -> list[str]:
        return []

    def find_commits_referencing(self, requirement_id: str) -> list[CommitRecord]:
        return []
