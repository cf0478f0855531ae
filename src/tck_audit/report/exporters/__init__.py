"""Exporters for coverage reports.

- export_json: Export the report as JSON (CoverageReport schema)
- export_text / render_text: Plain-text summary for terminals and CI logs

Both exporters create the parent directory of the output path.

Example:
    >>> from tck_audit.report.exporters import export_json, export_text
    >>> export_json(report, Path("target/coverage.json"))
    >>> export_text(report, Path("target/coverage.txt"))
"""

from __future__ import annotations

from tck_audit.report.exporters.json_exporter import export_json
from tck_audit.report.exporters.text_exporter import export_text, render_text

__all__: list[str] = [
    "export_json",
    "export_text",
    "render_text",
]
