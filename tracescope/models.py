"""
Matrix records.

Every record serializes to the camelCase JSON shape of the persisted matrix
via ``to_dict`` and is rebuilt by ``from_dict``, so a matrix read back from
disk compares equal to the one that was written.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


GENERATOR_NAME = "tracescope-traceability-system"


@dataclass(frozen=True)
class Requirement:
    id: str
    title: str = "Untitled"
    epic: str | None = None
    status: str | None = None
    priority: str | None = None
    compliance_standards: list[str] = field(default_factory=list)
    dependencies: list[str] = field(default_factory=list)
    file_path: str = ""
    last_modified: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "epic": self.epic,
            "status": self.status,
            "priority": self.priority,
            "complianceStandards": list(self.compliance_standards),
            "dependencies": list(self.dependencies),
            "filePath": self.file_path,
            "lastModified": self.last_modified,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Requirement":
        return cls(
            id=data["id"],
            title=data.get("title", "Untitled"),
            epic=data.get("epic"),
            status=data.get("status"),
            priority=data.get("priority"),
            compliance_standards=list(data.get("complianceStandards", [])),
            dependencies=list(data.get("dependencies", [])),
            file_path=data.get("filePath", ""),
            last_modified=data.get("lastModified", ""),
        )


@dataclass(frozen=True)
class TestRecord:
    """A test file and the requirement IDs it mentions (sorted, unique)."""

    __test__ = False  # keep pytest from collecting this class

    file_path: str
    requirement_refs: list[str] = field(default_factory=list)
    last_modified: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "filePath": self.file_path,
            "requirementRefs": list(self.requirement_refs),
            "lastModified": self.last_modified,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TestRecord":
        return cls(
            file_path=data["filePath"],
            requirement_refs=list(data.get("requirementRefs", [])),
            last_modified=data.get("lastModified", ""),
        )


@dataclass(frozen=True)
class GitBranchRef:
    requirement_id: str
    branch_name: str


@dataclass(frozen=True)
class ComplianceFrameworkCoverage:
    """Externally supplied clause coverage for one framework."""

    framework_name: str
    total_clauses: int = 0
    covered_clauses: int = 0
    percentage: int | float = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "frameworkName": self.framework_name,
            "totalClauses": self.total_clauses,
            "coveredClauses": self.covered_clauses,
            "percentage": self.percentage,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ComplianceFrameworkCoverage":
        return cls(
            framework_name=data["frameworkName"],
            total_clauses=data.get("totalClauses", 0),
            covered_clauses=data.get("coveredClauses", 0),
            percentage=data.get("percentage", 0),
        )


@dataclass(frozen=True)
class FeatureRecord:
    name: str
    domain: str
    path: str
    title: str
    phase: str = "unknown"
    requirements: list[str] = field(default_factory=list)
    epic: str = ""
    priority: str = "medium"
    tests_pending: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "domain": self.domain,
            "path": self.path,
            "title": self.title,
            "phase": self.phase,
            "requirements": list(self.requirements),
            "epic": self.epic,
            "priority": self.priority,
            "testsPending": self.tests_pending,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FeatureRecord":
        return cls(
            name=data["name"],
            domain=data.get("domain", ""),
            path=data.get("path", ""),
            title=data.get("title", data["name"]),
            phase=data.get("phase", "unknown"),
            requirements=list(data.get("requirements", [])),
            epic=data.get("epic", ""),
            priority=data.get("priority", "medium"),
            tests_pending=bool(data.get("testsPending", False)),
        )


@dataclass(frozen=True)
class ComplianceLink:
    framework: str
    clauses: list[str] = field(default_factory=list)
    total_clauses: int = 0
    covered_clauses: int = 0
    percentage: int | float = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "framework": self.framework,
            "clauses": list(self.clauses),
            "totalClauses": self.total_clauses,
            "coveredClauses": self.covered_clauses,
            "percentage": self.percentage,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ComplianceLink":
        return cls(
            framework=data["framework"],
            clauses=list(data.get("clauses", [])),
            total_clauses=data.get("totalClauses", 0),
            covered_clauses=data.get("coveredClauses", 0),
            percentage=data.get("percentage", 0),
        )


@dataclass(frozen=True)
class FeatureLink:
    name: str
    domain: str
    phase: str

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "domain": self.domain, "phase": self.phase}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FeatureLink":
        return cls(name=data["name"], domain=data.get("domain", ""), phase=data.get("phase", "unknown"))


@dataclass(frozen=True)
class TraceabilityLink:
    """Everything connected to one requirement."""

    tests: list[str] = field(default_factory=list)
    branches: list[str] = field(default_factory=list)
    implementation_files: list[str] = field(default_factory=list)
    compliance_frameworks: list[ComplianceLink] = field(default_factory=list)
    features: list[FeatureLink] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "tests": list(self.tests),
            "branches": list(self.branches),
            "implementationFiles": list(self.implementation_files),
            "complianceFrameworks": [c.to_dict() for c in self.compliance_frameworks],
            "features": [f.to_dict() for f in self.features],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TraceabilityLink":
        return cls(
            tests=list(data.get("tests", [])),
            branches=list(data.get("branches", [])),
            implementation_files=list(data.get("implementationFiles", [])),
            compliance_frameworks=[ComplianceLink.from_dict(c) for c in data.get("complianceFrameworks", [])],
            features=[FeatureLink.from_dict(f) for f in data.get("features", [])],
        )


@dataclass(frozen=True)
class RequirementsCoverage:
    total: int = 0
    tested: int = 0
    percentage: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"total": self.total, "tested": self.tested, "percentage": self.percentage}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RequirementsCoverage":
        return cls(
            total=data.get("total", 0),
            tested=data.get("tested", 0),
            percentage=data.get("percentage", 0),
        )


@dataclass(frozen=True)
class FeaturesCoverage:
    total: int = 0
    with_requirements: int = 0
    with_tests: int = 0
    requirements_percentage: int = 0
    tests_percentage: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "withRequirements": self.with_requirements,
            "withTests": self.with_tests,
            "requirementsPercentage": self.requirements_percentage,
            "testsPercentage": self.tests_percentage,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FeaturesCoverage":
        return cls(
            total=data.get("total", 0),
            with_requirements=data.get("withRequirements", 0),
            with_tests=data.get("withTests", 0),
            requirements_percentage=data.get("requirementsPercentage", 0),
            tests_percentage=data.get("testsPercentage", 0),
        )


@dataclass(frozen=True)
class FrameworkCoverage:
    total_clauses: int = 0
    covered_clauses: int = 0
    percentage: int | float = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalClauses": self.total_clauses,
            "coveredClauses": self.covered_clauses,
            "percentage": self.percentage,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FrameworkCoverage":
        return cls(
            total_clauses=data.get("totalClauses", 0),
            covered_clauses=data.get("coveredClauses", 0),
            percentage=data.get("percentage", 0),
        )


@dataclass(frozen=True)
class CoverageSummary:
    requirements: RequirementsCoverage = field(default_factory=RequirementsCoverage)
    features: FeaturesCoverage = field(default_factory=FeaturesCoverage)
    compliance_frameworks: dict[str, FrameworkCoverage] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "requirements": self.requirements.to_dict(),
            "features": self.features.to_dict(),
            "complianceFrameworks": {
                name: cov.to_dict() for name, cov in sorted(self.compliance_frameworks.items())
            },
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CoverageSummary":
        return cls(
            requirements=RequirementsCoverage.from_dict(data.get("requirements", {})),
            features=FeaturesCoverage.from_dict(data.get("features", {})),
            compliance_frameworks={
                name: FrameworkCoverage.from_dict(cov)
                for name, cov in data.get("complianceFrameworks", {}).items()
            },
        )


@dataclass(frozen=True)
class MatrixMetadata:
    generated_at: str
    generator_version: str
    generated_by: str = GENERATOR_NAME

    def to_dict(self) -> dict[str, Any]:
        return {
            "generatedAt": self.generated_at,
            "generatorVersion": self.generator_version,
            "generatedBy": self.generated_by,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MatrixMetadata":
        return cls(
            generated_at=data.get("generatedAt", ""),
            generator_version=data.get("generatorVersion", ""),
            generated_by=data.get("generatedBy", GENERATOR_NAME),
        )


@dataclass(frozen=True)
class AuditTrail:
    signature: str
    timestamp: str
    algorithm: str = "sha256"

    def to_dict(self) -> dict[str, Any]:
        return {"signature": self.signature, "timestamp": self.timestamp, "algorithm": self.algorithm}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AuditTrail":
        return cls(
            signature=data.get("signature", ""),
            timestamp=data.get("timestamp", ""),
            algorithm=data.get("algorithm", "sha256"),
        )


@dataclass(frozen=True)
class Matrix:
    """Aggregate root of one traceability build."""

    metadata: MatrixMetadata
    requirements: dict[str, Requirement] = field(default_factory=dict)
    tests: dict[str, TestRecord] = field(default_factory=dict)
    git_branches: dict[str, list[str]] = field(default_factory=dict)
    compliance_frameworks: dict[str, ComplianceFrameworkCoverage] = field(default_factory=dict)
    features: dict[str, FeatureRecord] = field(default_factory=dict)
    traceability_links: dict[str, TraceabilityLink] = field(default_factory=dict)
    coverage: CoverageSummary = field(default_factory=CoverageSummary)
    audit_trail: AuditTrail | None = None

    def link_for(self, requirement_id: str) -> TraceabilityLink:
        return self.traceability_links.get(requirement_id) or TraceabilityLink()

    def to_dict(self, include_audit: bool = True) -> dict[str, Any]:
        data: dict[str, Any] = {
            "metadata": self.metadata.to_dict(),
            "requirements": {k: v.to_dict() for k, v in sorted(self.requirements.items())},
            "tests": {k: v.to_dict() for k, v in sorted(self.tests.items())},
            "gitBranches": {k: list(v) for k, v in sorted(self.git_branches.items())},
            "complianceFrameworks": {
                k: v.to_dict() for k, v in sorted(self.compliance_frameworks.items())
            },
            "features": {k: v.to_dict() for k, v in sorted(self.features.items())},
            "traceabilityLinks": {k: v.to_dict() for k, v in sorted(self.traceability_links.items())},
            "coverage": self.coverage.to_dict(),
        }
        if include_audit and self.audit_trail is not None:
            data["auditTrail"] = self.audit_trail.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Matrix":
        audit = data.get("auditTrail")
        return cls(
            metadata=MatrixMetadata.from_dict(data.get("metadata", {})),
            requirements={k: Requirement.from_dict(v) for k, v in data.get("requirements", {}).items()},
            tests={k: TestRecord.from_dict(v) for k, v in data.get("tests", {}).items()},
            git_branches={k: list(v) for k, v in data.get("gitBranches", {}).items()},
            compliance_frameworks={
                k: ComplianceFrameworkCoverage.from_dict(v)
                for k, v in data.get("complianceFrameworks", {}).items()
            },
            features={k: FeatureRecord.from_dict(v) for k, v in data.get("features", {}).items()},
            traceability_links={
                k: TraceabilityLink.from_dict(v) for k, v in data.get("traceabilityLinks", {}).items()
            },
            coverage=CoverageSummary.from_dict(data.get("coverage", {})),
            audit_trail=AuditTrail.from_dict(audit) if audit else None,
        )
