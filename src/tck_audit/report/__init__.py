"""Coverage report model, builder and exporters."""

from __future__ import annotations

from tck_audit.report.builder import ReportBuilder
from tck_audit.report.model import (
    AssertionReport,
    CoverageReport,
    CoveringTest,
    ParseErrorRecord,
    SectionReport,
)

__all__: list[str] = [
    "AssertionReport",
    "CoverageReport",
    "CoveringTest",
    "ParseErrorRecord",
    "ReportBuilder",
    "SectionReport",
]
