from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from tracescope.config import TracescopeConfig
from tracescope.engine import TraceabilityEngine
from tracescope.vcs import CommitRecord


FIXED_NOW = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeGateway:
    """In-memory stand-in for git: canned branches and commits per requirement ID."""

    def __init__(self, branches=None, commits=None):
        self.branches = list(branches or [])
        self.commits = dict(commits or {})
        self.queries: list[str] = []

    def list_branches(self) -> list[str]:
        return list(self.branches)

    def find_commits_referencing(self, requirement_id: str) -> list[CommitRecord]:
        self.queries.append(requirement_id)
        return list(self.commits.get(requirement_id, []))


def write_requirement(root: Path, name: str, body: str) -> Path:
    path = root / "docs" / "requirements" / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(body)
    return path


def write_feature(root: Path, domain: str, name: str, body: str) -> Path:
    path = root / "docs" / "features" / domain / name / "README.md"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(body)
    return path


@pytest.fixture
def sample_repo(tmp_path) -> Path:
    """
    Three requirements with different coverage:
    REQ-010 fully traced, REQ-020 untraced, REQ-030 with tests and a branch only.
    """
    write_requirement(
        tmp_path,
        "req-010-login.md",
        "---\n"
        "id: REQ-010\n"
        "title: User login\n"
        "epic: auth\n"
        "status: implemented\n"
        "priority: high\n"
        "complianceStandards: [ISO-13485]\n"
        "---\n\n# Login\n",
    )
    write_requirement(
        tmp_path,
        "req-020-export.md",
        "---\nid: REQ-020\ntitle: Data export\nstatus: draft\n---\n",
    )
    write_requirement(
        tmp_path,
        "req-030-audit.md",
        "---\nid: REQ-030\ntitle: Audit log\n---\n",
    )

    tests_dir = tmp_path / "tests"
    tests_dir.mkdir()
    (tests_dir / "auth.test.ts").write_text("describe('REQ-010 login', () => {});\n// covers REQ-030\n")
    (tests_dir / "helpers.ts").write_text("// REQ-020 is not a test file name\n")

    mapping = tmp_path / "docs" / "compliance" / "req-to-compliance.json"
    mapping.parent.mkdir(parents=True)
    mapping.write_text(
        json.dumps(
            {
                "framework_coverage": {
                    "ISO-13485": {"total_clauses": 40, "covered_clauses": 30, "coverage_percentage": 75}
                },
                "requirement_clauses": {"REQ-010": {"ISO-13485": ["7.3.2", "7.3.3"]}},
            }
        )
    )

    write_feature(
        tmp_path,
        "developer-tooling",
        "login-flow",
        "---\ntitle: Login Flow\nphase: implementing\nrequirements: [\"010\"]\n---\n",
    )
    return tmp_path


@pytest.fixture
def sample_gateway() -> FakeGateway:
    return FakeGateway(
        branches=["main", "feature/req-10-login", "feature/REQ-030-audit"],
        commits={
            "REQ-010": [
                CommitRecord(sha="a1", files=["src/auth/login.ts", "tests/auth.test.ts"]),
                CommitRecord(sha="b2", files=["src/auth/login.ts", "README.md"]),
            ]
        },
    )


@pytest.fixture
def sample_engine(sample_repo, sample_gateway) -> TraceabilityEngine:
    config = TracescopeConfig.load(sample_repo)
    return TraceabilityEngine(config, gateway=sample_gateway, clock=lambda: FIXED_NOW)
