"""CoverageAuditor: the end-to-end audit pipeline.

CoverageAuditor wires the pipeline stages together: the references are
indexed, reconciled against the audit document, aggregated through the
section tree and packaged into a CoverageReport. It is stateless; each
invocation processes its input and returns a new report.
"""

from __future__ import annotations

import time
from collections.abc import Iterable, Sequence

import structlog

from tck_audit.aggregation import Aggregator
from tck_audit.config import AuditSettings
from tck_audit.errors import ParseError
from tck_audit.models import AuditDocument, SpecReference
from tck_audit.reconciliation import ReconciliationEngine
from tck_audit.references import ReferenceIndex
from tck_audit.report.builder import ReportBuilder
from tck_audit.report.model import CoverageReport

logger = structlog.get_logger(__name__)


class CoverageAuditor:
    """Runs reconciliation, aggregation and report building.

    Attributes:
        settings: Settings controlling the not-implemented tag and thresholds.

    Example:
        >>> auditor = CoverageAuditor(AuditSettings())
        >>> report = auditor.audit(document, references)
        >>> report.summary_percentage
        66.66666666666667
    """

    def __init__(self, settings: AuditSettings | None = None) -> None:
        self.settings = settings or AuditSettings()
        self._engine = ReconciliationEngine(self.settings.not_implemented_group)
        self._aggregator = Aggregator()
        self._builder = ReportBuilder(self.settings)
        self._log = logger.bind(component="CoverageAuditor")

    def audit(
        self,
        document: AuditDocument,
        references: Iterable[SpecReference],
        parse_errors: Sequence[ParseError] = (),
    ) -> CoverageReport:
        """Audit a document against the references claimed by a test suite.

        Args:
            document: The parsed audit document.
            references: Flat references produced by the annotation scanner.
            parse_errors: Errors tolerated while parsing in lenient mode.

        Returns:
            The immutable CoverageReport.

        Raises:
            AggregationInvariantError: If aggregated counts do not add up.
        """
        start_time = time.perf_counter()
        self._log.info(
            "audit_started",
            specification=document.name,
            sections=len(document.sections),
            assertions=document.assertion_count,
        )

        index = ReferenceIndex.build(references)
        reconciliation = self._engine.reconcile(document, index)
        aggregation = self._aggregator.aggregate(document, reconciliation)
        aggregation.check_invariants(document)
        report = self._builder.build(document, reconciliation, aggregation, parse_errors)

        self._log.info(
            "audit_completed",
            coverage=report.summary_percentage,
            status=report.status,
            duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
        )
        return report


def run_audit(
    document: AuditDocument,
    references: Iterable[SpecReference],
    settings: AuditSettings | None = None,
    parse_errors: Sequence[ParseError] = (),
) -> CoverageReport:
    """Audit a document in one call.

    Args:
        document: The parsed audit document.
        references: Flat references produced by the annotation scanner.
        settings: Optional settings, defaults apply when omitted.
        parse_errors: Errors tolerated while parsing in lenient mode.

    Returns:
        The immutable CoverageReport.
    """
    return CoverageAuditor(settings).audit(document, references, parse_errors)


__all__ = ["CoverageAuditor", "run_audit"]
