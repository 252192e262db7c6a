"""
Link building: one TraceabilityLink per scanned requirement.
"""

from __future__ import annotations

from .locator import ImplementationLocator
from .models import (
    ComplianceLink,
    FeatureLink,
    FeatureRecord,
    Requirement,
    TestRecord,
    TraceabilityLink,
)
from .references import requirement_ids_match
from .scanners import ComplianceData, ScanResult


def tests_for(requirement_id: str, tests: dict[str, TestRecord]) -> list[str]:
    return sorted(path for path, record in tests.items() if requirement_id in record.requirement_refs)


def compliance_for(requirement: Requirement, compliance: ComplianceData) -> list[ComplianceLink]:
    """Map the requirement's declared standards to known frameworks; unknown ones are dropped."""
    clauses_by_framework = compliance.requirement_clauses.get(requirement.id, {})
    links: list[ComplianceLink] = []
    seen: set[str] = set()
    for standard in requirement.compliance_standards:
        framework = compliance.frameworks.get(standard)
        if framework is None or standard in seen:
            continue
        seen.add(standard)
        links.append(
            ComplianceLink(
                framework=standard,
                clauses=list(clauses_by_framework.get(standard, [])),
                total_clauses=framework.total_clauses,
                covered_clauses=framework.covered_clauses,
                percentage=framework.percentage,
            )
        )
    return links


def features_for(requirement_id: str, features: dict[str, FeatureRecord]) -> list[FeatureLink]:
    return [
        FeatureLink(name=name, domain=feature.domain, phase=feature.phase)
        for name, feature in sorted(features.items())
        if any(requirement_ids_match(requirement_id, ref) for ref in feature.requirements)
    ]


def build_traceability_links(
    scan: ScanResult,
    locator: ImplementationLocator,
) -> dict[str, TraceabilityLink]:
    """Assemble the adjacency record of every requirement in the scan."""
    links: dict[str, TraceabilityLink] = {}
    for req_id, requirement in sorted(scan.requirements.items()):
        links[req_id] = TraceabilityLink(
            tests=tests_for(req_id, scan.tests),
            branches=list(scan.git_branches.get(req_id, [])),
            implementation_files=locator.find_implementation_files(req_id),
            compliance_frameworks=compliance_for(requirement, scan.compliance),
            features=features_for(req_id, scan.features),
        )
    return links
