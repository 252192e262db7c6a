"""
Artifact scanners for the traceability matrix.

Each scanner reads one kind of artifact into typed records:
- requirement files (frontmatter)
- test files (requirement references in their content)
- git branches (requirement IDs in branch names)
- the compliance mapping file (externally maintained coverage numbers)
- feature READMEs under docs/features/<domain>/<feature>/

A missing directory or file yields an empty collection and a warning; a single
unreadable or malformed artifact is skipped without stopping the scan.
"""

from __future__ import annotations

import json
import logging
import math
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .config import TracescopeConfig
from .frontmatter import parse_frontmatter
from .models import ComplianceFrameworkCoverage, FeatureRecord, GitBranchRef, Requirement, TestRecord
from .references import extract_references, normalize_requirement_id
from .vcs import VersionControlGateway

logger = logging.getLogger(__name__)


# Directories never descended into
IGNORE_DIRS = {
    ".git",
    "node_modules",
    "dist",
    "build",
    "__pycache__",
    ".tracescope",
    ".next",
    "venv",
    ".venv",
    "coverage",
    ".pytest_cache",
    ".mypy_cache",
    ".ruff_cache",
}


@dataclass(frozen=True)
class ComplianceData:
    """Contents of the compliance mapping file."""

    frameworks: dict[str, ComplianceFrameworkCoverage] = field(default_factory=dict)
    # REQ-ID -> framework -> clause IDs
    requirement_clauses: dict[str, dict[str, list[str]]] = field(default_factory=dict)


@dataclass(frozen=True)
class ScanResult:
    """Everything the scanners found, handed to the link builder as one unit."""

    requirements: dict[str, Requirement] = field(default_factory=dict)
    tests: dict[str, TestRecord] = field(default_factory=dict)
    git_branches: dict[str, list[str]] = field(default_factory=dict)
    compliance: ComplianceData = field(default_factory=ComplianceData)
    features: dict[str, FeatureRecord] = field(default_factory=dict)


def _mtime_iso(path: Path) -> str:
    mtime = path.stat().st_mtime
    return datetime.fromtimestamp(mtime, tz=timezone.utc).isoformat().replace("+00:00", "Z")


def find_files(root: Path, pattern: str | re.Pattern[str]) -> list[Path]:
    """Recursively find files whose name matches pattern, in sorted order."""
    if not root.is_dir():
        return []

    regex = re.compile(pattern) if isinstance(pattern, str) else pattern
    matches: list[Path] = []
    for path in root.rglob("*"):
        try:
            rel_path = path.relative_to(root)
        except ValueError:
            continue
        if any(part in IGNORE_DIRS for part in rel_path.parts):
            continue
        if path.is_file() and regex.search(path.name):
            matches.append(path)
    return sorted(matches)


def scan_requirements(requirements_dir: Path, file_pattern: str = r"req-.*\.md$") -> dict[str, Requirement]:
    """Parse requirement files into Requirement records keyed by ID."""
    requirements: dict[str, Requirement] = {}

    if not requirements_dir.is_dir():
        logger.warning("Requirements directory not found: %s", requirements_dir)
        return requirements

    for path in find_files(requirements_dir, file_pattern):
        try:
            content = path.read_text(encoding="utf-8", errors="replace")
            last_modified = _mtime_iso(path)
        except OSError as exc:
            logger.warning("Could not read requirement %s: %s", path, exc)
            continue

        frontmatter = parse_frontmatter(content)
        if frontmatter.error:
            logger.warning("Skipping %s: unparsable frontmatter (%s)", path, frontmatter.error)
            continue

        req_id = frontmatter.get_str("id")
        if not req_id:
            logger.debug("Skipping %s: no id in frontmatter", path)
            continue
        if req_id in requirements:
            logger.warning(
                "Duplicate requirement %s in %s (already defined in %s); keeping the first",
                req_id,
                path,
                requirements[req_id].file_path,
            )
            continue

        requirements[req_id] = Requirement(
            id=req_id,
            title=frontmatter.get_str("title", "Untitled") or "Untitled",
            epic=frontmatter.get_str("epic"),
            status=frontmatter.get_str("status"),
            priority=frontmatter.get_str("priority"),
            compliance_standards=frontmatter.get_list("complianceStandards"),
            dependencies=frontmatter.get_list("dependencies"),
            file_path=str(path),
            last_modified=last_modified,
        )

    return requirements


def scan_tests(tests_dir: Path, file_pattern: str) -> dict[str, TestRecord]:
    """Collect test files that mention at least one requirement ID."""
    tests: dict[str, TestRecord] = {}

    if not tests_dir.is_dir():
        logger.warning("Tests directory not found: %s", tests_dir)
        return tests

    for path in find_files(tests_dir, file_pattern):
        try:
            content = path.read_text(encoding="utf-8", errors="replace")
            last_modified = _mtime_iso(path)
        except OSError as exc:
            logger.warning("Could not read test file %s: %s", path, exc)
            continue

        refs = extract_references(content)
        if not refs:
            continue

        tests[str(path)] = TestRecord(
            file_path=str(path),
            requirement_refs=sorted(refs),
            last_modified=last_modified,
        )

    return tests


def branch_refs(names: list[str]) -> list[GitBranchRef]:
    """Pair each branch that names a requirement with its normalized ID."""
    refs: list[GitBranchRef] = []
    for name in names:
        req_id = normalize_requirement_id(name)
        if req_id is not None:
            refs.append(GitBranchRef(requirement_id=req_id, branch_name=name))
    return refs


def scan_git_branches(gateway: VersionControlGateway) -> dict[str, list[str]]:
    """Group branch names by the requirement ID embedded in them."""
    branches: dict[str, list[str]] = {}

    for ref in branch_refs(gateway.list_branches()):
        bucket = branches.setdefault(ref.requirement_id, [])
        if ref.branch_name not in bucket:
            bucket.append(ref.branch_name)

    return {req_id: sorted(names) for req_id, names in sorted(branches.items())}


def _as_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _as_number(value: Any) -> int | float:
    """Pass a supplied number through as-is; numeric strings are read, anything else is 0."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            try:
                value = float(text)
            except ValueError:
                return 0
    if isinstance(value, (int, float)) and math.isfinite(value):
        return value
    return 0


def load_compliance_frameworks(mapping_file: Path) -> ComplianceData:
    """
    Load the compliance mapping file.

    Expected shape::

        {
          "framework_coverage": {
            "ISO-13485": {"total_clauses": 40, "covered_clauses": 30, "coverage_percentage": 75}
          },
          "requirement_clauses": {"REQ-001": {"ISO-13485": ["7.3.2"]}}
        }

    ``requirement_clauses`` is optional.
    """
    if not mapping_file.is_file():
        logger.warning("Compliance mapping not found: %s", mapping_file)
        return ComplianceData()

    try:
        with open(mapping_file, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("Could not load compliance mapping %s: %s", mapping_file, exc)
        return ComplianceData()

    if not isinstance(data, dict):
        logger.warning("Compliance mapping %s is not a JSON object", mapping_file)
        return ComplianceData()

    frameworks: dict[str, ComplianceFrameworkCoverage] = {}
    for name, entry in (data.get("framework_coverage") or {}).items():
        if not isinstance(entry, dict):
            logger.warning("Ignoring malformed framework entry %r in %s", name, mapping_file)
            continue
        frameworks[name] = ComplianceFrameworkCoverage(
            framework_name=name,
            total_clauses=_as_int(entry.get("total_clauses")),
            covered_clauses=_as_int(entry.get("covered_clauses")),
            percentage=_as_number(entry.get("coverage_percentage")),
        )

    requirement_clauses: dict[str, dict[str, list[str]]] = {}
    for req_id, by_framework in (data.get("requirement_clauses") or {}).items():
        if not isinstance(by_framework, dict):
            continue
        requirement_clauses[req_id] = {
            framework: [str(c) for c in clauses]
            for framework, clauses in by_framework.items()
            if isinstance(clauses, list)
        }

    return ComplianceData(frameworks=frameworks, requirement_clauses=requirement_clauses)


def scan_features(
    features_dir: Path,
    project_root: Path,
    domains: list[str],
    skip_dirs: list[str],
) -> dict[str, FeatureRecord]:
    """Read feature READMEs from <features_dir>/<domain>/<feature>/README.md."""
    features: dict[str, FeatureRecord] = {}

    if not features_dir.is_dir():
        logger.warning("Features directory not found: %s", features_dir)
        return features

    allowed = set(domains)
    skipped = set(skip_dirs)

    for domain_path in sorted(features_dir.iterdir()):
        if not domain_path.is_dir() or domain_path.name not in allowed:
            continue

        for item_path in sorted(domain_path.iterdir()):
            if item_path.name in skipped or not item_path.is_dir():
                continue

            readme_path = item_path / "README.md"
            if not readme_path.is_file():
                continue

            try:
                content = readme_path.read_text(encoding="utf-8", errors="replace")
            except OSError as exc:
                logger.warning("Could not read feature %s: %s", readme_path, exc)
                continue

            frontmatter = parse_frontmatter(content)
            if frontmatter.error:
                logger.warning("Feature %s has unparsable frontmatter (%s); using defaults", readme_path, frontmatter.error)

            name = item_path.name
            if name in features:
                logger.warning(
                    "Feature %s appears in domains %s and %s; keeping the first",
                    name,
                    features[name].domain,
                    domain_path.name,
                )
                continue

            try:
                rel_path = str(item_path.relative_to(project_root))
            except ValueError:
                rel_path = str(item_path)

            features[name] = FeatureRecord(
                name=name,
                domain=domain_path.name,
                path=rel_path,
                title=frontmatter.get_str("title", name) or name,
                phase=frontmatter.get_str("phase") or frontmatter.get_str("status") or "unknown",
                requirements=frontmatter.get_list("requirements"),
                epic=frontmatter.get_str("epic", "") or "",
                priority=frontmatter.get_str("priority", "medium") or "medium",
                tests_pending=frontmatter.get_bool("tests_pending", False),
            )

    return features


def run_scanners(config: TracescopeConfig, gateway: VersionControlGateway) -> ScanResult:
    """Run every scanner; all of them finish before linking starts."""
    logger.debug("Scanning artifacts under %s", config.repo_root)
    return ScanResult(
        requirements=scan_requirements(config.requirements_dir, config.scan.requirement_pattern),
        tests=scan_tests(config.tests_dir, config.scan.test_pattern),
        git_branches=scan_git_branches(gateway),
        compliance=load_compliance_frameworks(config.compliance_mapping_file),
        features=scan_features(
            config.features_dir,
            config.repo_root,
            config.scan.feature_domains,
            config.scan.feature_skip_dirs,
        ),
    )
