"""
Coverage metrics for the traceability matrix.

Aggregate summaries:
1. Requirements with at least one test
2. Features with linked requirements, and features whose requirements are tested
3. Compliance framework numbers, passed through from the mapping file

Per-requirement score (used by ``validate``): four checks worth 25% each.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any

from .models import (
    ComplianceFrameworkCoverage,
    CoverageSummary,
    FeatureRecord,
    FeaturesCoverage,
    FrameworkCoverage,
    RequirementsCoverage,
    TraceabilityLink,
)
from .references import requirement_ids_match


DEFAULT_THRESHOLD = 80

GAP_TESTS = "No test coverage"
GAP_BRANCHES = "No git branch tracking"
GAP_IMPLEMENTATION = "No implementation files identified"
GAP_COMPLIANCE = "No compliance framework mapping"


def percentage(part: int, total: int) -> int:
    """round(part / total * 100), halves rounded up; 0 when total is 0."""
    if total <= 0:
        return 0
    return int(math.floor(part / total * 100 + 0.5))


def coverage_tier(value: int) -> str:
    if value >= 80:
        return "high"
    if value >= 50:
        return "medium"
    return "low"


@dataclass(frozen=True)
class RequirementCoverage:
    requirement_id: str
    percentage: int
    gaps: list[str] = field(default_factory=list)
    checks: dict[str, bool] = field(default_factory=dict)
    threshold: int = DEFAULT_THRESHOLD

    @property
    def passed(self) -> bool:
        return self.percentage >= self.threshold

    @property
    def tier(self) -> str:
        return coverage_tier(self.percentage)

    def to_dict(self) -> dict[str, Any]:
        return {
            "requirementId": self.requirement_id,
            "percentage": self.percentage,
            "gaps": list(self.gaps),
            "checks": dict(self.checks),
            "threshold": self.threshold,
            "passed": self.passed,
        }


def calculate_requirement_coverage(
    requirement_id: str,
    link: TraceabilityLink | None,
    threshold: int = DEFAULT_THRESHOLD,
) -> RequirementCoverage:
    link = link or TraceabilityLink()
    checks = {
        "tests": bool(link.tests),
        "branches": bool(link.branches),
        "implementation": bool(link.implementation_files),
        "compliance": bool(link.compliance_frameworks),
    }
    gap_text = {
        "tests": GAP_TESTS,
        "branches": GAP_BRANCHES,
        "implementation": GAP_IMPLEMENTATION,
        "compliance": GAP_COMPLIANCE,
    }
    gaps = [gap_text[name] for name, ok in checks.items() if not ok]
    score = sum(1 for ok in checks.values() if ok)
    return RequirementCoverage(
        requirement_id=requirement_id,
        percentage=percentage(score, len(checks)),
        gaps=gaps,
        checks=checks,
        threshold=threshold,
    )


def _feature_has_tests(feature: FeatureRecord, links: dict[str, TraceabilityLink]) -> bool:
    for ref in feature.requirements:
        for req_id, link in links.items():
            if link.tests and requirement_ids_match(req_id, ref):
                return True
    return False


def calculate_coverage(
    requirements: dict[str, Any],
    features: dict[str, FeatureRecord],
    frameworks: dict[str, ComplianceFrameworkCoverage],
    links: dict[str, TraceabilityLink],
) -> CoverageSummary:
    total_requirements = len(requirements)
    tested = sum(1 for req_id in requirements if links.get(req_id) and links[req_id].tests)

    total_features = len(features)
    with_requirements = sum(1 for f in features.values() if f.requirements)
    with_tests = sum(1 for f in features.values() if _feature_has_tests(f, links))

    return CoverageSummary(
        requirements=RequirementsCoverage(
            total=total_requirements,
            tested=tested,
            percentage=percentage(tested, total_requirements),
        ),
        features=FeaturesCoverage(
            total=total_features,
            with_requirements=with_requirements,
            with_tests=with_tests,
            requirements_percentage=percentage(with_requirements, total_features),
            tests_percentage=percentage(with_tests, total_features),
        ),
        compliance_frameworks={
            name: FrameworkCoverage(
                total_clauses=fw.total_clauses,
                covered_clauses=fw.covered_clauses,
                percentage=fw.percentage,
            )
            for name, fw in sorted(frameworks.items())
        },
    )
