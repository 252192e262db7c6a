"""
Configuration management for Tracescope.

Loads and validates:
- tracescope.yml: artifact locations, scan patterns, git settings and the
  validation threshold

The resulting TracescopeConfig is built once by the CLI and handed to every
component; nothing below the CLI reads configuration on its own.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml


CONFIG_FILENAME = "tracescope.yml"
MATRIX_FILENAME = "traceability-matrix.json"

DEFAULT_FEATURE_DOMAINS = [
    "ai-workflow-system",
    "developer-tooling",
    "compliance-framework",
    "dashboard-platform",
    "workflow-management",
    "content-management",
    "integrations",
    "admin-operations",
    "documentation-platform",
]

DEFAULT_FEATURE_SKIP_DIRS = [
    "planning",
    "design",
    "requirements",
    "tests",
    "research",
    "implementation",
    "archive",
]

DEFAULT_INCLUDE_PATTERNS = [
    r"^src/",
    r"^lib/",
    r"\.js$",
    r"\.ts$",
    r"\.jsx$",
    r"\.tsx$",
    r"\.py$",
    r"\.go$",
    r"\.rs$",
]

DEFAULT_EXCLUDE_PATTERNS = [
    r"(^|/)tests?/",
    r"\.test\.",
    r"\.spec\.",
    r"(^|/)test_[^/]*\.py$",
    r"(^|/)docs?/",
    r"(^|/)documentation/",
    r"README",
    r"\.md$",
]


@dataclass
class PathsConfig:
    """Artifact locations, relative to the repo root."""

    requirements: str = "docs/requirements"
    tests: str = "tests"
    compliance: str = "docs/compliance"
    compliance_mapping: str = "req-to-compliance.json"
    features: str = "docs/features"
    state_dir: str = ".tracescope"
    audit_export: str = "audit-export"


@dataclass
class ScanConfig:
    """File naming conventions and feature tree rules."""

    requirement_pattern: str = r"req-.*\.md$"
    test_pattern: str = r"\.(test|spec)\.(js|ts)$|^test_.*\.py$|_test\.py$"
    feature_domains: list[str] = field(default_factory=lambda: list(DEFAULT_FEATURE_DOMAINS))
    feature_skip_dirs: list[str] = field(default_factory=lambda: list(DEFAULT_FEATURE_SKIP_DIRS))


@dataclass
class GitConfig:
    """Version-control queries."""

    enabled: bool = True
    binary: str = "git"
    timeout: float = 30.0  # seconds per git invocation


@dataclass
class ImplementationConfig:
    """Path classifiers for implementation files found in commit history."""

    include_patterns: list[str] = field(default_factory=lambda: list(DEFAULT_INCLUDE_PATTERNS))
    exclude_patterns: list[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDE_PATTERNS))


@dataclass
class CoverageConfig:
    """Per-requirement validation threshold."""

    threshold: int = 80


@dataclass
class TracescopeConfig:
    """Complete Tracescope configuration."""

    paths: PathsConfig = field(default_factory=PathsConfig)
    scan: ScanConfig = field(default_factory=ScanConfig)
    git: GitConfig = field(default_factory=GitConfig)
    implementation: ImplementationConfig = field(default_factory=ImplementationConfig)
    coverage: CoverageConfig = field(default_factory=CoverageConfig)
    repo_root: Path = field(default_factory=Path.cwd)

    def resolve(self, relative: str) -> Path:
        """Resolve a configured path against the repo root."""
        path = Path(relative).expanduser()
        if not path.is_absolute():
            path = self.repo_root / path
        return path

    @property
    def requirements_dir(self) -> Path:
        return self.resolve(self.paths.requirements)

    @property
    def tests_dir(self) -> Path:
        return self.resolve(self.paths.tests)

    @property
    def compliance_mapping_file(self) -> Path:
        return self.resolve(self.paths.compliance) / self.paths.compliance_mapping

    @property
    def features_dir(self) -> Path:
        return self.resolve(self.paths.features)

    @property
    def state_dir(self) -> Path:
        return self.resolve(self.paths.state_dir)

    @property
    def matrix_path(self) -> Path:
        return self.state_dir / MATRIX_FILENAME

    @property
    def audit_export_dir(self) -> Path:
        return self.resolve(self.paths.audit_export)

    @classmethod
    def load(cls, repo_root: Path, config_path: Path | None = None) -> "TracescopeConfig":
        """Load configuration from repo root directory."""
        repo_root = repo_root.resolve()
        path = config_path or repo_root / CONFIG_FILENAME
        if not path.exists():
            return cls(repo_root=repo_root)

        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{path} must contain a YAML mapping, got {type(data).__name__}")
        return cls._parse(data, repo_root=repo_root)

    @classmethod
    def _parse(cls, data: dict[str, Any], repo_root: Path) -> "TracescopeConfig":
        config = cls(repo_root=repo_root)
        defaults_paths = PathsConfig()
        defaults_scan = ScanConfig()
        defaults_impl = ImplementationConfig()

        paths_data = data.get("paths") or {}
        config.paths = PathsConfig(
            requirements=paths_data.get("requirements", defaults_paths.requirements),
            tests=paths_data.get("tests", defaults_paths.tests),
            compliance=paths_data.get("compliance", defaults_paths.compliance),
            compliance_mapping=paths_data.get("compliance_mapping", defaults_paths.compliance_mapping),
            features=paths_data.get("features", defaults_paths.features),
            state_dir=paths_data.get("state_dir", defaults_paths.state_dir),
            audit_export=paths_data.get("audit_export", defaults_paths.audit_export),
        )

        scan_data = data.get("scan") or {}
        config.scan = ScanConfig(
            requirement_pattern=scan_data.get("requirement_pattern", defaults_scan.requirement_pattern),
            test_pattern=scan_data.get("test_pattern", defaults_scan.test_pattern),
            feature_domains=list(scan_data.get("feature_domains", defaults_scan.feature_domains)),
            feature_skip_dirs=list(scan_data.get("feature_skip_dirs", defaults_scan.feature_skip_dirs)),
        )

        git_data = data.get("git") or {}
        config.git = GitConfig(
            enabled=git_data.get("enabled", True),
            binary=git_data.get("binary", "git"),
            timeout=float(git_data.get("timeout", 30.0)),
        )

        impl_data = data.get("implementation") or {}
        config.implementation = ImplementationConfig(
            include_patterns=list(impl_data.get("include_patterns", defaults_impl.include_patterns)),
            exclude_patterns=list(impl_data.get("exclude_patterns", defaults_impl.exclude_patterns)),
        )

        coverage_data = data.get("coverage") or {}
        config.coverage = CoverageConfig(
            threshold=int(coverage_data.get("threshold", 80)),
        )

        return config


def get_repo_root() -> Path:
    """Find the repository root (directory containing .git)."""

    current = Path.cwd()
    while current != current.parent:
        if (current / ".git").exists():
            return current
        current = current.parent
    return Path.cwd()
