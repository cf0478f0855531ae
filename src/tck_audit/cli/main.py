"""Main entry point for the tck-audit CLI.

Commands:
    tck-audit report: Reconcile test references against the audit document
        and write a coverage report.

Example:
    $ tck-audit --help
    $ tck-audit report --audit-file test-audit.xml --references target/references.json
    $ tck-audit report --references refs.yaml --format text --fail-under 80
"""

from __future__ import annotations

import sys
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_version
from pathlib import Path

import click
from pydantic import ValidationError

from tck_audit.auditor import run_audit
from tck_audit.cli.utils import ExitCode, error_exit, info, success, warn
from tck_audit.config import AuditSettings, get_settings
from tck_audit.errors import AggregationInvariantError, MalformedDocumentError, ReferenceFileError
from tck_audit.parser import load_audit_document
from tck_audit.references import load_references
from tck_audit.report.exporters import export_json, export_text
from tck_audit.telemetry import configure_logging

REPORT_FILE_STEM = "coverage-report"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def _get_version() -> str:
    """Get the tck-audit package version.

    Returns:
        Version string from package metadata, or 'unknown' if not installed.
    """
    try:
        return get_version("tck-audit")
    except PackageNotFoundError:
        return "unknown"


@click.group(
    name="tck-audit",
    help="tck-audit - Specification assertion coverage for test suites.",
    epilog="Use 'tck-audit <command> --help' for command-specific help.",
    context_settings={"help_option_names": ["-h", "--help"]},
)
@click.version_option(
    version=_get_version(),
    prog_name="tck-audit",
    message="%(prog)s %(version)s",
)
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Root command group for the tck-audit CLI."""
    ctx.ensure_object(dict)


def _load_settings(
    config_path: Path | None,
    *,
    audit_file: Path | None,
    output_dir: Path | None,
    not_implemented_group: str | None,
    lenient: bool,
    log_level: str | None,
) -> AuditSettings:
    try:
        return get_settings(
            config_path,
            audit_file=audit_file,
            output_dir=output_dir,
            not_implemented_group=not_implemented_group,
            strict_parsing=False if lenient else None,
            log_level=log_level,
        )
    except ValidationError as e:
        error_exit(f"Invalid configuration: {e.error_count()} error(s)\n{e}", exit_code=ExitCode.USAGE_ERROR)
    except ValueError as e:
        error_exit(f"Invalid configuration: {e}", exit_code=ExitCode.USAGE_ERROR)


@cli.command(name="report")
@click.option(
    "--audit-file",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="Audit document, XML or YAML (default: test-audit.xml).",
)
@click.option(
    "--references",
    "references_path",
    type=click.Path(path_type=Path, dir_okay=False),
    required=True,
    help="Reference file (JSON or YAML) produced by the annotation scanner.",
)
@click.option(
    "--output-dir",
    type=click.Path(path_type=Path, file_okay=False),
    default=None,
    help="Directory the report is written to (default: target).",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["json", "text"], case_sensitive=False),
    default="json",
    help="Report format (default: json).",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="YAML configuration file (default: tck-audit.yaml if present).",
)
@click.option(
    "--lenient",
    is_flag=True,
    default=False,
    help="Skip malformed sections instead of rejecting the whole document.",
)
@click.option(
    "--not-implemented-group",
    type=str,
    default=None,
    help="Test group marking a test for a not-yet-implemented feature.",
)
@click.option(
    "--fail-under",
    type=click.FloatRange(0.0, 100.0),
    default=None,
    help="Exit with an error if total coverage is below this percentage.",
)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default=None,
    help="Minimum log level (default: INFO).",
)
def report(
    audit_file: Path | None,
    references_path: Path,
    output_dir: Path | None,
    output_format: str,
    config_path: Path | None,
    lenient: bool,
    not_implemented_group: str | None,
    fail_under: float | None,
    log_level: str | None,
) -> None:
    """Generate a coverage report for a specification audit document.

    A missing audit document is not an error: nothing is generated and
    the command exits successfully.
    """
    settings = _load_settings(
        config_path,
        audit_file=audit_file,
        output_dir=output_dir,
        not_implemented_group=not_implemented_group,
        lenient=lenient,
        log_level=log_level.upper() if log_level else None,
    )
    try:
        configure_logging(settings.log_level, json_output=settings.json_logs)
    except ValueError as e:
        error_exit(str(e), exit_code=ExitCode.USAGE_ERROR)

    try:
        loaded = load_audit_document(settings.audit_file, strict=settings.strict_parsing)
    except MalformedDocumentError as e:
        error_exit(f"Malformed audit document: {e}", exit_code=ExitCode.VALIDATION_ERROR)

    if loaded.document is None:
        info(f"Audit file not found, skipping coverage report: {settings.audit_file}")
        return

    if not references_path.is_file():
        error_exit(
            "References file not found",
            exit_code=ExitCode.FILE_NOT_FOUND,
            path=str(references_path),
        )
    try:
        references = load_references(references_path)
    except ReferenceFileError as e:
        error_exit(f"Invalid references file: {e}", exit_code=ExitCode.VALIDATION_ERROR)

    try:
        coverage = run_audit(loaded.document, references, settings, loaded.parse_errors)
    except AggregationInvariantError as e:
        error_exit(f"Coverage aggregation failed: {e}", exit_code=ExitCode.GENERAL_ERROR)

    output_format = output_format.lower()
    output_path = settings.output_dir / f"{REPORT_FILE_STEM}.{'json' if output_format == 'json' else 'txt'}"
    try:
        if output_format == "json":
            export_json(coverage, output_path)
        else:
            export_text(coverage, output_path)
    except PermissionError:
        error_exit("Cannot write report", exit_code=ExitCode.PERMISSION_ERROR, path=str(output_path))
    except OSError as e:
        error_exit(f"Cannot write report: {e}", exit_code=ExitCode.GENERAL_ERROR, path=str(output_path))

    for record in coverage.parse_errors:
        warn(f"Skipped while parsing: {record.message}")
    if coverage.orphaned_references:
        warn(f"{len(coverage.orphaned_references)} reference(s) name assertions that do not exist")

    percentage = coverage.summary_percentage
    shown = "n/a" if percentage is None else f"{percentage:.1f}%"
    success(f"Coverage report written: {output_path} (coverage {shown}, status {coverage.status})")

    if fail_under is not None and percentage is not None and percentage < fail_under:
        error_exit(
            f"Coverage {shown} is below the required {fail_under:.1f}%",
            exit_code=ExitCode.GENERAL_ERROR,
        )


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the tck-audit CLI.

    Args:
        argv: Command-line arguments (uses sys.argv if None).
    """
    try:
        cli(args=argv, standalone_mode=False)
    except click.ClickException as e:
        e.show()
        sys.exit(e.exit_code)
    except click.Abort:
        click.echo("Aborted!", err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
