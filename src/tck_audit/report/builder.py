"""Assembly of the CoverageReport from the pipeline outputs."""

from __future__ import annotations

from collections.abc import Sequence

import structlog

from tck_audit.aggregation import AggregationResult
from tck_audit.config import AuditSettings
from tck_audit.errors import ParseError
from tck_audit.models import AuditDocument, AuditSection
from tck_audit.reconciliation import ReconciliationResult
from tck_audit.report.model import (
    AssertionReport,
    CoverageReport,
    CoveringTest,
    ParseErrorRecord,
    SectionReport,
)
from tck_audit.telemetry import traced

logger = structlog.get_logger(__name__)


class ReportBuilder:
    """Packages document, reconciliation and aggregation into a CoverageReport.

    Attributes:
        settings: Thresholds used to classify section status.
    """

    def __init__(self, settings: AuditSettings | None = None) -> None:
        self.settings = settings or AuditSettings()

    @traced(operation_name="tck_audit.build_report")
    def build(
        self,
        document: AuditDocument,
        reconciliation: ReconciliationResult,
        aggregation: AggregationResult,
        parse_errors: Sequence[ParseError] = (),
    ) -> CoverageReport:
        """Build the report.

        Args:
            document: The parsed audit document.
            reconciliation: Per-assertion coverage and diagnostics.
            aggregation: Own/cumulative stats for every section.
            parse_errors: Parse errors tolerated in lenient mode.

        Returns:
            Immutable CoverageReport with sections in document order.
        """
        reports: dict[str, SectionReport] = {}
        for section in document.iter_post_order():
            reports[section.id] = self._section_report(section, reconciliation, aggregation, reports)

        total = aggregation.total
        report = CoverageReport(
            specification_name=document.name,
            specification_version=document.version,
            not_implemented_group=reconciliation.not_implemented_group,
            pass_threshold=self.settings.pass_threshold,
            warn_threshold=self.settings.warn_threshold,
            summary=total,
            summary_percentage=total.coverage_percentage,
            status=self.settings.section_status(total.coverage_percentage),
            sections=tuple(reports[root_id] for root_id in document.root_ids),
            orphaned_references=reconciliation.orphaned_references,
            diagnostics=tuple(reconciliation.diagnostics),
            parse_errors=tuple(
                ParseErrorRecord(message=e.message, section=e.section_id, assertion=e.assertion_id)
                for e in parse_errors
            ),
        )
        logger.info(
            "coverage_report_built",
            component="ReportBuilder",
            sections=len(reports),
            coverage=report.summary_percentage,
            status=report.status,
            diagnostics=report.warning_count,
        )
        return report

    def _section_report(
        self,
        section: AuditSection,
        reconciliation: ReconciliationResult,
        aggregation: AggregationResult,
        built: dict[str, SectionReport],
    ) -> SectionReport:
        own = aggregation.own[section.id]
        cumulative = aggregation.cumulative[section.id]
        assertions = []
        for assertion in section.assertions:
            coverage = reconciliation.coverage_for(section.id, assertion.id)
            covered_by = coverage.covered_by if coverage is not None else ()
            assertions.append(
                AssertionReport(
                    id=assertion.id,
                    section_id=section.id,
                    text=assertion.text,
                    note=assertion.note,
                    group_text=assertion.group_text,
                    testable=assertion.testable,
                    state=coverage.state if coverage is not None else "uncovered",
                    covered_by=tuple(CoveringTest.from_reference(ref) for ref in covered_by),
                )
            )
        return SectionReport(
            id=section.id,
            title=section.title,
            level=section.level,
            parent_id=section.parent_id,
            own=own,
            cumulative=cumulative,
            own_percentage=own.coverage_percentage,
            cumulative_percentage=cumulative.coverage_percentage,
            status=self.settings.section_status(cumulative.coverage_percentage),
            assertions=tuple(assertions),
            children=tuple(built[child_id] for child_id in section.child_ids),
        )


__all__ = ["ReportBuilder"]
