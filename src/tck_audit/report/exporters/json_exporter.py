"""JSON exporter for CoverageReport.

Output is pretty-printed and follows the CoverageReport model schema, so
renderers in other tools can consume it without re-deriving statistics.

Example:
    >>> from tck_audit.report.exporters.json_exporter import export_json
    >>> export_json(report, Path("target/coverage.json"))
    PosixPath('target/coverage.json')
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from tck_audit.report.model import CoverageReport

logger = structlog.get_logger(__name__)


def export_json(report: CoverageReport, output_path: Path) -> Path:
    """Export a CoverageReport to a JSON file.

    Args:
        report: CoverageReport from ReportBuilder.build().
        output_path: Path where the JSON file should be written.

    Returns:
        The output path where the file was written.

    Raises:
        OSError: If the file cannot be written.
    """
    log = logger.bind(component="json_exporter", output_path=str(output_path))

    output_path.parent.mkdir(parents=True, exist_ok=True)

    data = report.model_dump(mode="json")
    output_path.write_text(json.dumps(data, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")

    log.info(
        "json_export_complete",
        coverage=report.summary_percentage,
        diagnostics=report.warning_count,
    )
    return output_path
