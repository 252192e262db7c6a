"""
Tracescope CLI - Requirements traceability for audits.

Commands:
    init          - Write a sample tracescope.yml
    generate      - Build and persist the traceability matrix
    validate      - Check traceability for one requirement
    audit-export  - Write the audit package (HTML, CSV, JSON, Markdown)
    coverage      - Regenerate and show the coverage report
    verify        - Check the persisted matrix against its signature
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from . import __version__
from .config import CONFIG_FILENAME, TracescopeConfig, get_repo_root
from .engine import MatrixPersistenceError, TraceabilityEngine
from .exporters import ExportError
from .logging_setup import setup_logging
from .models import Matrix
from .signing import verify_signature


SAMPLE_CONFIG = """\
# Tracescope Configuration
# All paths are relative to the repository root.

paths:
  requirements: docs/requirements      # req-*.md files with YAML frontmatter
  tests: tests                         # scanned for REQ-### references
  compliance: docs/compliance          # directory holding the mapping file
  compliance_mapping: req-to-compliance.json
  features: docs/features              # <domain>/<feature>/README.md
  state_dir: .tracescope               # persisted matrix lives here
  audit_export: audit-export           # default audit-export output

scan:
  requirement_pattern: 'req-.*\\.md$'
  test_pattern: '\\.(test|spec)\\.(js|ts)$|^test_.*\\.py$|_test\\.py$'
  # feature_domains: [developer-tooling, compliance-framework]
  # feature_skip_dirs: [planning, design, tests, archive]

git:
  enabled: true
  binary: git
  timeout: 30        # seconds per git call; timeouts count as "no data"

# implementation:
#   include_patterns: ['^src/', '\\.py$']
#   exclude_patterns: ['(^|/)tests?/', '\\.md$']

coverage:
  threshold: 80      # validate fails below this percentage
"""


def _engine(ctx: click.Context) -> TraceabilityEngine:
    obj = ctx.ensure_object(dict)
    if "engine" not in obj:
        obj["engine"] = TraceabilityEngine(obj["config"], gateway=obj.get("gateway"))
    return obj["engine"]


def display_matrix_summary(matrix: Matrix) -> None:
    coverage = matrix.coverage
    click.echo("\n📊 Traceability Matrix Summary:")
    click.echo(f"  📋 Requirements: {len(matrix.requirements)}")
    click.echo(f"  📝 Test Files: {len(matrix.tests)}")
    click.echo(f"  🌿 Git Branches: {sum(len(b) for b in matrix.git_branches.values())}")
    click.echo(f"  🏛️ Compliance Frameworks: {len(matrix.compliance_frameworks)}")
    click.echo(f"  📦 Features: {len(matrix.features)}")

    click.echo("\n📈 Coverage Metrics:")
    click.echo(
        f"  📋 Requirements with Tests: {coverage.requirements.tested}/{coverage.requirements.total} "
        f"({coverage.requirements.percentage}%)"
    )
    click.echo(
        f"  📦 Features with Requirements: {coverage.features.with_requirements}/{coverage.features.total} "
        f"({coverage.features.requirements_percentage}%)"
    )
    click.echo(
        f"  📦 Features with Tests: {coverage.features.with_tests}/{coverage.features.total} "
        f"({coverage.features.tests_percentage}%)"
    )
    for name, fw in sorted(coverage.compliance_frameworks.items()):
        click.echo(f"  🏛️ {name}: {fw.covered_clauses}/{fw.total_clauses} ({fw.percentage}%)")

    if matrix.features:
        click.echo("\n📦 Features by Domain:")
        by_domain: dict[str, list] = {}
        for feature in matrix.features.values():
            by_domain.setdefault(feature.domain, []).append(feature)
        for domain, features in sorted(by_domain.items()):
            click.echo(f"  {domain}:")
            for f in sorted(features, key=lambda x: x.name):
                req_count = len(f.requirements)
                status = "⏳" if f.tests_pending else ("✅" if req_count > 0 else "○")
                click.echo(f"    {status} {f.name} ({f.phase}) - {req_count} req(s)")


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--root",
    "repo_root",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Repository root (default: nearest directory containing .git)",
)
@click.option("--config", "config_path", type=click.Path(dir_okay=False, path_type=Path), help="Path to tracescope.yml")
@click.option("-v", "--verbose", is_flag=True, help="Show debug logging")
@click.pass_context
def main(ctx: click.Context, repo_root: Path | None, config_path: Path | None, verbose: bool):
    """Tracescope - Requirements traceability matrix for audits."""
    root = (repo_root or get_repo_root()).resolve()
    try:
        config = TracescopeConfig.load(root, config_path)
    except (OSError, ValueError) as e:
        raise click.ClickException(f"Invalid configuration: {e}") from e

    setup_logging(verbose=verbose, log_file=config.state_dir / "tracescope.log" if config.state_dir.exists() else None)

    obj = ctx.ensure_object(dict)
    obj["config"] = config


def _ignore_entry(config: TracescopeConfig, path: Path) -> str | None:
    """``.gitignore`` line for a generated directory; None when it lives outside the repo."""
    try:
        return path.relative_to(config.repo_root).as_posix().rstrip("/") + "/"
    except ValueError:
        return None


@main.command()
@click.option("--force", is_flag=True, help="Overwrite existing configuration")
@click.pass_context
def init(ctx: click.Context, force: bool):
    """Initialize Tracescope in the current repository."""
    config: TracescopeConfig = ctx.obj["config"]
    repo_root = config.repo_root
    click.echo(f"Initializing Tracescope in: {repo_root}")

    state_dir = config.state_dir
    state_dir.mkdir(parents=True, exist_ok=True)
    click.echo(f"  Created: {state_dir}")

    config_path = repo_root / CONFIG_FILENAME
    if not config_path.exists() or force:
        config_path.write_text(SAMPLE_CONFIG, encoding="utf-8")
        click.echo(f"  Created: {config_path}")
    else:
        click.echo(f"  Skipped: {config_path} (already exists)")

    entries = [_ignore_entry(config, p) for p in (state_dir, config.audit_export_dir)]
    gitignore_path = repo_root / ".gitignore"
    existing = gitignore_path.read_text(encoding="utf-8").splitlines() if gitignore_path.exists() else []
    missing = [e for e in entries if e and e not in existing and e.rstrip("/") not in existing]
    if missing:
        with open(gitignore_path, "a", encoding="utf-8") as f:
            f.write("\n# Tracescope\n" + "\n".join(missing) + "\n")
        click.echo(f"  {'Updated' if existing else 'Created'}: {gitignore_path}")


@main.command()
@click.option("--json", "as_json", is_flag=True, help="Output the matrix as JSON")
@click.option("--no-save", is_flag=True, help="Do not persist the matrix")
@click.pass_context
def generate(ctx: click.Context, as_json: bool, no_save: bool):
    """Build the traceability matrix and save it."""
    engine = _engine(ctx)
    if not as_json:
        click.echo("🔗 Generating traceability matrix...")
    try:
        matrix = engine.generate(save=not no_save)
    except MatrixPersistenceError as e:
        raise click.ClickException(str(e)) from e

    if as_json:
        click.echo(json.dumps(matrix.to_dict(), indent=2, sort_keys=True))
        return

    click.echo("✅ Traceability matrix generated successfully")
    if not no_save:
        click.echo(f"📁 Saved to: {engine.matrix_path}")
    display_matrix_summary(matrix)


@main.command()
@click.argument("requirement_id")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def validate(ctx: click.Context, requirement_id: str, as_json: bool):
    """Validate traceability for a requirement (exit 1 below the threshold)."""
    engine = _engine(ctx)
    try:
        result = engine.validate(requirement_id)
    except MatrixPersistenceError as e:
        raise click.ClickException(str(e)) from e

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.passed else 1)

    if not result.found:
        click.echo(f"❌ Requirement {requirement_id} not found")
        sys.exit(1)

    link = result.link
    coverage = result.coverage
    click.echo(f"\n📋 {requirement_id}: {result.requirement.title}")
    click.echo("\n🔗 Traceability Links:")
    click.echo(f"  📝 Tests: {len(link.tests)}")
    for test in link.tests:
        click.echo(f"    - {test}")
    click.echo(f"  🌿 Git Branches: {len(link.branches)}")
    for branch in link.branches:
        click.echo(f"    - {branch}")
    click.echo(f"  📄 Implementation Files: {len(link.implementation_files)}")
    for path in link.implementation_files:
        click.echo(f"    - {path}")
    click.echo(f"  🏛️ Compliance Frameworks: {len(link.compliance_frameworks)}")
    for fw in link.compliance_frameworks:
        click.echo(f"    - {fw.framework}: {', '.join(fw.clauses) or 'N/A'}")
    if link.features:
        click.echo(f"  📦 Features: {len(link.features)}")
        for feature in link.features:
            click.echo(f"    - {feature.name} ({feature.domain}, {feature.phase})")

    click.echo(f"\n📊 Coverage: {coverage.percentage}%")
    if coverage.gaps:
        click.echo("\n⚠️  Coverage Gaps:")
        for gap in coverage.gaps:
            click.echo(f"  - {gap}")

    if coverage.passed:
        click.echo(f"\n✅ Meets the {coverage.threshold}% threshold")
        sys.exit(0)
    click.echo(f"\n❌ Below the {coverage.threshold}% threshold")
    sys.exit(1)


@main.command(name="audit-export")
@click.option("--output", "output_dir", type=click.Path(file_okay=False, path_type=Path), help="Output directory")
@click.pass_context
def audit_export(ctx: click.Context, output_dir: Path | None):
    """Write the audit export package."""
    engine = _engine(ctx)
    click.echo("📦 Generating audit export package...")
    try:
        written = engine.audit_export(output_dir)
    except (ExportError, MatrixPersistenceError) as e:
        raise click.ClickException(str(e)) from e

    click.echo("✅ Audit export package generated")
    for path in written.values():
        click.echo(f"  {path}")


@main.command(name="export", hidden=True)
@click.option("--output", "output_dir", type=click.Path(file_okay=False, path_type=Path), help="Output directory")
@click.pass_context
def export_alias(ctx: click.Context, output_dir: Path | None):
    """Alias for audit-export."""
    ctx.invoke(audit_export, output_dir=output_dir)


@main.command()
@click.option("--json", "as_json", is_flag=True, help="Output coverage as JSON")
@click.pass_context
def coverage(ctx: click.Context, as_json: bool):
    """Regenerate the matrix and show the coverage report."""
    engine = _engine(ctx)
    try:
        matrix = engine.generate()
    except MatrixPersistenceError as e:
        raise click.ClickException(str(e)) from e

    if as_json:
        click.echo(json.dumps(matrix.coverage.to_dict(), indent=2, sort_keys=True))
        return

    click.echo("\n📊 Coverage Report:")
    display_matrix_summary(matrix)


@main.command()
@click.pass_context
def verify(ctx: click.Context):
    """Check the persisted matrix against its audit signature."""
    engine = _engine(ctx)
    matrix = engine.load_matrix()
    if matrix is None:
        click.echo(f"❌ No matrix found at {engine.matrix_path}. Run: tracescope generate")
        sys.exit(1)

    if verify_signature(matrix):
        click.echo(f"✅ Signature valid: {matrix.audit_trail.signature}")
        return
    click.echo("❌ Signature mismatch: the matrix was modified after it was generated")
    sys.exit(1)


if __name__ == "__main__":
    main()
