"""Plain-text exporter for CoverageReport.

The text summary shows the document total, one line per section indented
by level, then orphaned references and other diagnostics::

    Coverage: CDI 1.0
    Total: 7/10 covered (70.0%), 1 not implemented, 2 uncovered [warn]

    Sections:
      4 Decorators                          66.7%  2/3  [fail]
        4.2 Decorator resolution           100.0%  2/2  [pass]
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from tck_audit.aggregation import SectionStats
    from tck_audit.report.model import CoverageReport, SectionReport

logger = structlog.get_logger(__name__)

_INDENT = "  "
_LABEL_WIDTH = 40


def _percentage(value: float | None) -> str:
    return "n/a" if value is None else f"{value:.1f}%"


def _totals_line(stats: SectionStats, percentage: float | None, status: str) -> str:
    return (
        f"{stats.covered_count}/{stats.testable_count} covered ({_percentage(percentage)}), "
        f"{stats.not_implemented_count} not implemented, "
        f"{stats.uncovered_count} uncovered [{status}]"
    )


def _section_line(section: SectionReport) -> str:
    indent = _INDENT * section.level
    label = f"{indent}{section.id} {section.title}".rstrip()
    stats = section.cumulative
    return (
        f"{label:<{_LABEL_WIDTH}} {_percentage(section.cumulative_percentage):>6}  "
        f"{stats.covered_count}/{stats.testable_count}  [{section.status}]"
    )


def render_text(report: CoverageReport) -> str:
    """Render a CoverageReport as a plain-text summary.

    Args:
        report: The report to render.

    Returns:
        Multi-line summary ending with a newline.
    """
    title = " ".join(p for p in (report.specification_name, report.specification_version) if p)
    lines = [
        f"Coverage: {title or '(unnamed specification)'}",
        f"Total: {_totals_line(report.summary, report.summary_percentage, report.status)}",
        "",
        "Sections:",
    ]
    lines.extend(_section_line(section) for section in report.iter_sections())

    if report.orphaned_references:
        lines += ["", f"Orphaned references ({len(report.orphaned_references)}):"]
        for ref in report.orphaned_references:
            section_id, assertion_id = ref.key
            lines.append(f"{_INDENT}{ref.qualified_name} -> {section_id or '?'}/{assertion_id or '?'}")

    others = [d for d in report.diagnostics if d.kind != "orphaned_reference"]
    if others:
        lines += ["", f"Warnings ({len(others)}):"]
        lines.extend(f"{_INDENT}{d.code} {d.message}" for d in others)

    if report.parse_errors:
        lines += ["", f"Skipped while parsing ({len(report.parse_errors)}):"]
        lines.extend(f"{_INDENT}{e.message}" for e in report.parse_errors)

    return "\n".join(lines) + "\n"


def export_text(report: CoverageReport, output_path: Path) -> Path:
    """Export a CoverageReport as a plain-text summary file.

    Args:
        report: CoverageReport from ReportBuilder.build().
        output_path: Path where the text file should be written.

    Returns:
        The output path where the file was written.

    Raises:
        OSError: If the file cannot be written.
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(render_text(report), encoding="utf-8")

    logger.info(
        "text_export_complete",
        component="text_exporter",
        output_path=str(output_path),
        coverage=report.summary_percentage,
    )
    return output_path
