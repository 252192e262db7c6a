"""
Audit report renderers.

Renders a finished matrix as JSON, CSV, HTML and a Markdown compliance summary.
Renderers only read the matrix.
"""

from __future__ import annotations

import csv
import io
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, select_autoescape

from .coverage import DEFAULT_THRESHOLD, calculate_requirement_coverage, coverage_tier
from .models import Matrix

logger = logging.getLogger(__name__)

HTML_FILENAME = "traceability-matrix.html"
CSV_FILENAME = "traceability-matrix.csv"
JSON_FILENAME = "traceability-matrix.json"
SUMMARY_FILENAME = "compliance-summary.md"

CSV_HEADERS = [
    "Requirement ID",
    "Title",
    "Status",
    "Tests",
    "Branches",
    "Compliance Frameworks",
    "Coverage %",
]


class ExportError(Exception):
    """Writing an audit artifact failed."""

    def __init__(self, message: str, path: Path | None = None):
        super().__init__(message)
        self.path = path


@dataclass(frozen=True)
class RequirementRow:
    id: str
    title: str
    status: str
    tests: int
    branches: int
    implementation_files: int
    compliance_frameworks: int
    coverage: int
    tier: str
    gaps: list[str]


def _template_env() -> Environment:
    template_dir = Path(__file__).resolve().parent / "templates"
    return Environment(
        loader=FileSystemLoader(str(template_dir)),
        autoescape=select_autoescape(enabled_extensions=("html", "html.j2"), default_for_string=False),
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )


def requirement_rows(matrix: Matrix, threshold: int = DEFAULT_THRESHOLD) -> list[RequirementRow]:
    rows: list[RequirementRow] = []
    for req_id, requirement in sorted(matrix.requirements.items()):
        link = matrix.link_for(req_id)
        coverage = calculate_requirement_coverage(req_id, link, threshold)
        rows.append(
            RequirementRow(
                id=req_id,
                title=requirement.title,
                status=requirement.status or "",
                tests=len(link.tests),
                branches=len(link.branches),
                implementation_files=len(link.implementation_files),
                compliance_frameworks=len(link.compliance_frameworks),
                coverage=coverage.percentage,
                tier=coverage_tier(coverage.percentage),
                gaps=coverage.gaps,
            )
        )
    return rows


def export_json(matrix: Matrix) -> str:
    return json.dumps(matrix.to_dict(), indent=2, sort_keys=True, ensure_ascii=False) + "\n"


def export_csv(matrix: Matrix) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for row in requirement_rows(matrix):
        writer.writerow(
            [
                row.id,
                row.title,
                row.status,
                row.tests,
                row.branches,
                row.compliance_frameworks,
                row.coverage,
            ]
        )
    return buffer.getvalue()


def _context(matrix: Matrix) -> dict[str, Any]:
    by_domain: dict[str, list[Any]] = {}
    for feature in sorted(matrix.features.values(), key=lambda f: (f.domain, f.name)):
        by_domain.setdefault(feature.domain, []).append(feature)
    return {
        "matrix": matrix,
        "metadata": matrix.metadata,
        "coverage": matrix.coverage,
        "rows": requirement_rows(matrix),
        "frameworks": sorted(matrix.coverage.compliance_frameworks.items()),
        "features_by_domain": by_domain,
        "audit": matrix.audit_trail,
    }


def export_html(matrix: Matrix) -> str:
    return _template_env().get_template("traceability-matrix.html.j2").render(**_context(matrix))


def export_compliance_summary(matrix: Matrix) -> str:
    return _template_env().get_template("compliance-summary.md.j2").render(**_context(matrix))


def write_audit_package(matrix: Matrix, output_dir: Path) -> dict[str, Path]:
    """Write the four audit artifacts into output_dir and return their paths."""
    artifacts = {
        "html": (output_dir / HTML_FILENAME, export_html(matrix)),
        "csv": (output_dir / CSV_FILENAME, export_csv(matrix)),
        "json": (output_dir / JSON_FILENAME, export_json(matrix)),
        "summary": (output_dir / SUMMARY_FILENAME, export_compliance_summary(matrix)),
    }

    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ExportError(f"Cannot create export directory {output_dir}: {exc}", output_dir) from exc

    written: dict[str, Path] = {}
    for kind, (path, content) in artifacts.items():
        try:
            path.write_text(content, encoding="utf-8")
        except OSError as exc:
            raise ExportError(f"Cannot write {path}: {exc}", path) from exc
        logger.debug("Wrote %s", path)
        written[kind] = path
    return written
