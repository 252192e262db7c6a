from __future__ import annotations

import json
from unittest.mock import patch

import pytest

from tracescope.config import TracescopeConfig
from tracescope.coverage import GAP_COMPLIANCE, GAP_IMPLEMENTATION
from tracescope.engine import MatrixPersistenceError, TraceabilityEngine
from tracescope.vcs import GitGateway, NullGateway

from conftest import FIXED_NOW, FakeGateway, write_feature, write_requirement


def test_generate_persists_matrix(sample_engine):
    matrix = sample_engine.generate()

    assert sample_engine.matrix_path.exists()
    data = json.loads(sample_engine.matrix_path.read_text())
    assert data["auditTrail"]["signature"] == matrix.audit_trail.signature
    assert data["metadata"]["generatedAt"] == "2024-05-01T12:00:00Z"


def test_generate_without_save(sample_engine):
    sample_engine.generate(save=False)

    assert not sample_engine.matrix_path.exists()


def test_generate_links_every_artifact(sample_engine):
    matrix = sample_engine.generate(save=False)
    link = matrix.link_for("REQ-010")

    assert [p.rsplit("/", 1)[-1] for p in link.tests] == ["auth.test.ts"]
    assert link.branches == ["feature/req-10-login"]
    assert link.implementation_files == ["src/auth/login.ts"]
    assert link.compliance_frameworks[0].framework == "ISO-13485"
    assert link.compliance_frameworks[0].clauses == ["7.3.2", "7.3.3"]
    assert [f.name for f in link.features] == ["login-flow"]
    assert matrix.coverage.features.with_tests == 1


def test_links_only_for_scanned_requirements(sample_engine):
    matrix = sample_engine.generate(save=False)

    assert set(matrix.traceability_links) == set(matrix.requirements)


def test_signature_is_stable_across_runs(sample_repo, sample_gateway):
    config = TracescopeConfig.load(sample_repo)
    first = TraceabilityEngine(config, gateway=sample_gateway, clock=lambda: FIXED_NOW).generate()
    later = FIXED_NOW.replace(year=2025)
    second = TraceabilityEngine(config, gateway=sample_gateway, clock=lambda: later).generate()

    assert first.audit_trail.signature == second.audit_trail.signature
    assert first.metadata.generated_at != second.metadata.generated_at


def test_validate_fully_covered(sample_engine):
    result = sample_engine.validate("REQ-010")

    assert result.found
    assert result.coverage.percentage == 100
    assert result.coverage.gaps == []
    assert result.passed


def test_validate_uncovered(sample_engine):
    result = sample_engine.validate("REQ-020")

    assert result.coverage.percentage == 0
    assert len(result.coverage.gaps) == 4
    assert not result.passed


def test_validate_partial(sample_engine):
    result = sample_engine.validate("REQ-030")

    assert result.coverage.percentage == 50
    assert result.coverage.gaps == [GAP_IMPLEMENTATION, GAP_COMPLIANCE]
    assert not result.passed


def test_validate_unknown_requirement(sample_engine):
    result = sample_engine.validate("REQ-404")

    assert not result.found
    assert not result.passed
    assert result.to_dict() == {"requirementId": "REQ-404", "found": False, "passed": False}


def test_validate_uses_persisted_matrix(sample_engine, sample_repo):
    sample_engine.generate()
    (sample_repo / "tests" / "auth.test.ts").unlink()

    assert sample_engine.validate("REQ-010").coverage.percentage == 100


def test_validate_generates_when_nothing_persisted(sample_engine):
    sample_engine.validate("REQ-010")

    assert sample_engine.matrix_path.exists()


def test_load_matrix_ignores_corrupt_file(sample_engine):
    sample_engine.matrix_path.parent.mkdir(parents=True)
    sample_engine.matrix_path.write_text("{not json")

    assert sample_engine.load_matrix() is None


def test_save_failure_raises_persistence_error(sample_engine):
    with patch("pathlib.Path.write_text", side_effect=PermissionError("denied")):
        with pytest.raises(MatrixPersistenceError) as exc_info:
            sample_engine.generate()

    assert exc_info.value.path == sample_engine.matrix_path


def test_audit_export_default_directory(sample_engine, sample_repo):
    written = sample_engine.audit_export()

    assert written["html"].parent == sample_repo.resolve() / "audit-export"
    assert all(path.exists() for path in written.values())


def test_verify_round_trip(sample_engine):
    assert not sample_engine.verify()

    sample_engine.generate()
    assert sample_engine.verify()

    data = json.loads(sample_engine.matrix_path.read_text())
    data["requirements"]["REQ-010"]["title"] = "Tampered"
    sample_engine.matrix_path.write_text(json.dumps(data))
    assert not sample_engine.verify()


def test_empty_repository_generates_empty_matrix(tmp_path):
    engine = TraceabilityEngine(TracescopeConfig.load(tmp_path), gateway=FakeGateway(), clock=lambda: FIXED_NOW)

    matrix = engine.generate()

    assert matrix.requirements == {}
    assert matrix.coverage.requirements.percentage == 0
    assert matrix.audit_trail.signature


def test_default_gateway_follows_git_setting(tmp_path):
    (tmp_path / "tracescope.yml").write_text("git:\n  enabled: false\n")
    assert isinstance(TraceabilityEngine(TracescopeConfig.load(tmp_path)).gateway, NullGateway)

    (tmp_path / "tracescope.yml").write_text("git:\n  timeout: 3\n")
    gateway = TraceabilityEngine(TracescopeConfig.load(tmp_path)).gateway
    assert isinstance(gateway, GitGateway)
    assert gateway.timeout == 3.0


def test_unquoted_feature_requirement_links_by_number(tmp_path):
    write_requirement(tmp_path, "req-044.md", "---\nid: REQ-044\ntitle: Dashboard\n---\n")
    write_requirement(tmp_path, "req-036.md", "---\nid: REQ-036\ntitle: Other\n---\n")
    write_feature(tmp_path, "developer-tooling", "dash", "---\ntitle: Dash\nrequirements: [044]\n---\n")
    engine = TraceabilityEngine(TracescopeConfig.load(tmp_path), gateway=FakeGateway(), clock=lambda: FIXED_NOW)

    matrix = engine.generate(save=False)

    assert matrix.features["dash"].requirements == ["044"]
    assert [f.name for f in matrix.link_for("REQ-044").features] == ["dash"]
    assert matrix.link_for("REQ-036").features == []
