"""
Traceability matrix pipeline.

generate: scan -> link -> coverage -> sign -> persist
validate: per-requirement coverage against the configured threshold
audit_export: write the audit package from the persisted (or a fresh) matrix
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable

from . import __version__
from .config import TracescopeConfig
from .coverage import RequirementCoverage, calculate_coverage, calculate_requirement_coverage
from .exporters import export_json, write_audit_package
from .linker import build_traceability_links
from .locator import ImplementationLocator
from .models import Matrix, MatrixMetadata, Requirement, TraceabilityLink
from .scanners import run_scanners
from .signing import sign_matrix, verify_signature
from .vcs import GitGateway, NullGateway, VersionControlGateway

logger = logging.getLogger(__name__)


class TraceabilityError(Exception):
    """Base error for the traceability engine."""


class MatrixPersistenceError(TraceabilityError):
    """The matrix file could not be written or read back."""

    def __init__(self, message: str, path: Path | None = None):
        super().__init__(message)
        self.path = path


@dataclass(frozen=True)
class ValidationResult:
    requirement_id: str
    found: bool
    requirement: Requirement | None = None
    link: TraceabilityLink | None = None
    coverage: RequirementCoverage | None = None

    @property
    def passed(self) -> bool:
        return self.found and self.coverage is not None and self.coverage.passed

    def to_dict(self) -> dict[str, Any]:
        if not self.found:
            return {"requirementId": self.requirement_id, "found": False, "passed": False}
        return {
            "requirementId": self.requirement_id,
            "found": True,
            "title": self.requirement.title if self.requirement else None,
            "links": self.link.to_dict() if self.link else {},
            "coverage": self.coverage.to_dict() if self.coverage else {},
            "passed": self.passed,
        }


def _default_gateway(config: TracescopeConfig) -> VersionControlGateway:
    if not config.git.enabled:
        return NullGateway()
    return GitGateway(config.repo_root, timeout=config.git.timeout, git_binary=config.git.binary)


class TraceabilityEngine:
    """Builds, persists, validates and exports traceability matrices."""

    def __init__(
        self,
        config: TracescopeConfig,
        gateway: VersionControlGateway | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.config = config
        self.gateway = gateway or _default_gateway(config)
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.locator = ImplementationLocator(
            self.gateway,
            include_patterns=config.implementation.include_patterns,
            exclude_patterns=config.implementation.exclude_patterns,
        )

    @property
    def matrix_path(self) -> Path:
        return self.config.matrix_path

    def build(self) -> Matrix:
        """Build a signed matrix without touching disk."""
        scan = run_scanners(self.config, self.gateway)
        links = build_traceability_links(scan, self.locator)
        coverage = calculate_coverage(
            scan.requirements,
            scan.features,
            scan.compliance.frameworks,
            links,
        )
        generated_at = self.clock().isoformat().replace("+00:00", "Z")
        matrix = Matrix(
            metadata=MatrixMetadata(generated_at=generated_at, generator_version=__version__),
            requirements=dict(scan.requirements),
            tests=dict(scan.tests),
            git_branches=dict(scan.git_branches),
            compliance_frameworks=dict(scan.compliance.frameworks),
            features=dict(scan.features),
            traceability_links=links,
            coverage=coverage,
        )
        return sign_matrix(matrix, now=self.clock())

    def generate(self, save: bool = True) -> Matrix:
        matrix = self.build()
        logger.info(
            "Matrix built: %d requirements, %d test files, %d features",
            len(matrix.requirements),
            len(matrix.tests),
            len(matrix.features),
        )
        if save:
            self.save_matrix(matrix)
        return matrix

    def save_matrix(self, matrix: Matrix) -> Path:
        path = self.matrix_path
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(export_json(matrix), encoding="utf-8")
        except OSError as exc:
            raise MatrixPersistenceError(f"Cannot write traceability matrix to {path}: {exc}", path) from exc
        logger.info("Matrix saved to %s", path)
        return path

    def load_matrix(self) -> Matrix | None:
        """Read the persisted matrix; None when there is none or it is unreadable."""
        path = self.matrix_path
        if not path.exists():
            return None
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
            return Matrix.from_dict(data)
        except (OSError, json.JSONDecodeError, KeyError, TypeError, AttributeError) as exc:
            logger.warning("Ignoring unreadable matrix file %s: %s", path, exc)
            return None

    def load_or_generate(self) -> Matrix:
        matrix = self.load_matrix()
        if matrix is None:
            logger.warning("No existing matrix found, generating...")
            matrix = self.generate()
        return matrix

    def validate(self, requirement_id: str, matrix: Matrix | None = None) -> ValidationResult:
        matrix = matrix or self.load_or_generate()
        requirement = matrix.requirements.get(requirement_id)
        if requirement is None:
            return ValidationResult(requirement_id=requirement_id, found=False)

        link = matrix.link_for(requirement_id)
        coverage = calculate_requirement_coverage(requirement_id, link, self.config.coverage.threshold)
        return ValidationResult(
            requirement_id=requirement_id,
            found=True,
            requirement=requirement,
            link=link,
            coverage=coverage,
        )

    def audit_export(self, output_dir: Path | None = None, matrix: Matrix | None = None) -> dict[str, Path]:
        matrix = matrix or self.load_or_generate()
        target = output_dir or self.config.audit_export_dir
        written = write_audit_package(matrix, target)
        logger.info("Audit package written to %s", target)
        return written

    def verify(self) -> bool:
        """Check the persisted matrix against its own signature."""
        matrix = self.load_matrix()
        if matrix is None:
            return False
        return verify_signature(matrix)
