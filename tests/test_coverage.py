from __future__ import annotations

import pytest

from tracescope.coverage import (
    GAP_BRANCHES,
    GAP_COMPLIANCE,
    GAP_IMPLEMENTATION,
    GAP_TESTS,
    calculate_coverage,
    calculate_requirement_coverage,
    coverage_tier,
    percentage,
)
from tracescope.models import (
    ComplianceFrameworkCoverage,
    ComplianceLink,
    FeatureRecord,
    Requirement,
    TraceabilityLink,
)


FULL_LINK = TraceabilityLink(
    tests=["t.test.ts"],
    branches=["req-10"],
    implementation_files=["src/a.ts"],
    compliance_frameworks=[ComplianceLink(framework="ISO-13485")],
)


@pytest.mark.parametrize(
    "part,total,expected",
    [(0, 0, 0), (3, 0, 0), (0, 4, 0), (1, 3, 33), (2, 3, 67), (1, 8, 13), (1, 2, 50), (4, 4, 100)],
)
def test_percentage(part, total, expected):
    assert percentage(part, total) == expected


def test_coverage_tier_boundaries():
    assert coverage_tier(100) == "high"
    assert coverage_tier(80) == "high"
    assert coverage_tier(79) == "medium"
    assert coverage_tier(50) == "medium"
    assert coverage_tier(49) == "low"


def test_fully_traced_requirement_passes():
    result = calculate_requirement_coverage("REQ-010", FULL_LINK)

    assert result.percentage == 100
    assert result.gaps == []
    assert result.passed
    assert result.tier == "high"


def test_untraced_requirement_has_four_gaps():
    result = calculate_requirement_coverage("REQ-020", TraceabilityLink())

    assert result.percentage == 0
    assert result.gaps == [GAP_TESTS, GAP_BRANCHES, GAP_IMPLEMENTATION, GAP_COMPLIANCE]
    assert not result.passed


def test_missing_link_counts_as_untraced():
    assert calculate_requirement_coverage("REQ-020", None).percentage == 0


def test_partial_requirement_fails_threshold():
    link = TraceabilityLink(tests=["t.test.ts"], branches=["req-30"])

    result = calculate_requirement_coverage("REQ-030", link)

    assert result.percentage == 50
    assert result.gaps == [GAP_IMPLEMENTATION, GAP_COMPLIANCE]
    assert not result.passed


def test_threshold_is_configurable():
    link = TraceabilityLink(tests=["t.test.ts"], branches=["req-30"])

    assert calculate_requirement_coverage("REQ-030", link, threshold=50).passed


def test_calculate_coverage_summary():
    requirements = {"REQ-001": Requirement(id="REQ-001"), "REQ-002": Requirement(id="REQ-002")}
    links = {"REQ-001": FULL_LINK, "REQ-002": TraceabilityLink()}
    features = {
        "a": FeatureRecord(name="a", domain="d", path="p", title="a", requirements=["001"]),
        "b": FeatureRecord(name="b", domain="d", path="p", title="b", requirements=["REQ-002"]),
        "c": FeatureRecord(name="c", domain="d", path="p", title="c"),
    }
    frameworks = {"ISO-13485": ComplianceFrameworkCoverage("ISO-13485", 40, 30, 75)}

    summary = calculate_coverage(requirements, features, frameworks, links)

    assert summary.requirements.total == 2
    assert summary.requirements.tested == 1
    assert summary.requirements.percentage == 50
    assert summary.features.total == 3
    assert summary.features.with_requirements == 2
    assert summary.features.with_tests == 1
    assert summary.features.requirements_percentage == 67
    assert summary.features.tests_percentage == 33
    iso = summary.compliance_frameworks["ISO-13485"]
    assert (iso.total_clauses, iso.covered_clauses, iso.percentage) == (40, 30, 75)


def test_calculate_coverage_empty_inputs():
    summary = calculate_coverage({}, {}, {}, {})

    assert summary.requirements.percentage == 0
    assert summary.features.requirements_percentage == 0
    assert summary.features.tests_percentage == 0
    assert summary.compliance_frameworks == {}


def test_framework_percentages_pass_through_unrounded():
    frameworks = {"ISO-13485": ComplianceFrameworkCoverage("ISO-13485", 3, 2, 66.67)}

    summary = calculate_coverage({}, {}, frameworks, {})

    assert summary.compliance_frameworks["ISO-13485"].percentage == 66.67
