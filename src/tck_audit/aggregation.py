"""Hierarchical coverage aggregation.

Counts are computed per section from its own testable assertions and then
rolled up through the tree in post-order, so no section is aggregated
before all of its descendants. Non-testable assertions never contribute.

Coverage percentage is None ("not applicable") for sections with nothing
testable underneath them, so that empty sections do not look fully
covered.
"""

from __future__ import annotations

from collections.abc import Iterable

import structlog
from pydantic import BaseModel, ConfigDict, Field

from tck_audit.errors import AggregationInvariantError
from tck_audit.models import AuditDocument, AuditSection, CoverageState
from tck_audit.reconciliation import ReconciliationResult
from tck_audit.telemetry import traced

logger = structlog.get_logger(__name__)


class SectionStats(BaseModel):
    """Coverage counts for a section (own or cumulative).

    Attributes:
        testable_count: Testable assertions counted.
        covered_count: Testable assertions in state COVERED.
        not_implemented_count: Testable assertions in state NOT_IMPLEMENTED.
        uncovered_count: Testable assertions in state UNCOVERED.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    testable_count: int = Field(default=0, ge=0)
    covered_count: int = Field(default=0, ge=0)
    not_implemented_count: int = Field(default=0, ge=0)
    uncovered_count: int = Field(default=0, ge=0)

    @property
    def coverage_percentage(self) -> float | None:
        """Return covered / testable as a percentage, None if nothing is testable."""
        if self.testable_count == 0:
            return None
        return self.covered_count / self.testable_count * 100.0

    @property
    def is_consistent(self) -> bool:
        """Return True if the three states add up to the testable count."""
        return (
            self.covered_count + self.uncovered_count + self.not_implemented_count
            == self.testable_count
        )

    def __add__(self, other: SectionStats) -> SectionStats:
        return SectionStats(
            testable_count=self.testable_count + other.testable_count,
            covered_count=self.covered_count + other.covered_count,
            not_implemented_count=self.not_implemented_count + other.not_implemented_count,
            uncovered_count=self.uncovered_count + other.uncovered_count,
        )

    @classmethod
    def total(cls, stats: Iterable[SectionStats]) -> SectionStats:
        """Sum any number of stats."""
        result = cls()
        for item in stats:
            result = result + item
        return result


class AggregationResult(BaseModel):
    """Own and cumulative stats for every section plus the document total.

    Attributes:
        own: Stats of each section's own assertions, keyed by section id.
        cumulative: Stats of each section including all descendants.
        total: Document-wide stats (sum over root sections).
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    own: dict[str, SectionStats] = Field(default_factory=dict)
    cumulative: dict[str, SectionStats] = Field(default_factory=dict)
    total: SectionStats = Field(default_factory=SectionStats)

    def check_invariants(self, document: AuditDocument) -> None:
        """Verify the rollup invariants for every section.

        Raises:
            AggregationInvariantError: If states do not add up to the
                testable count, or a cumulative count differs from own plus
                the children's cumulative counts.
        """
        for section in document.iter_sections():
            cumulative = self.cumulative[section.id]
            if not cumulative.is_consistent:
                raise AggregationInvariantError(
                    "Coverage states do not add up to the testable count",
                    section_id=section.id,
                )
            expected = self.own[section.id] + SectionStats.total(
                self.cumulative[child_id] for child_id in section.child_ids
            )
            if expected != cumulative:
                raise AggregationInvariantError(
                    "Cumulative counts differ from own plus children",
                    section_id=section.id,
                    details={"expected": expected.model_dump(), "actual": cumulative.model_dump()},
                )
        roots_total = SectionStats.total(self.cumulative[root_id] for root_id in document.root_ids)
        if roots_total != self.total:
            raise AggregationInvariantError(
                "Document total differs from the sum of root sections",
                section_id="",
            )


class Aggregator:
    """Computes hierarchical coverage stats from a reconciliation result."""

    def __init__(self) -> None:
        self._log = logger.bind(component="Aggregator")

    @traced(operation_name="tck_audit.aggregate")
    def aggregate(self, document: AuditDocument, reconciliation: ReconciliationResult) -> AggregationResult:
        """Aggregate coverage for every section.

        Args:
            document: The parsed audit document.
            reconciliation: Per-assertion coverage for the same document.

        Returns:
            AggregationResult with own, cumulative and total stats.
        """
        own: dict[str, SectionStats] = {}
        cumulative: dict[str, SectionStats] = {}

        for section in document.iter_post_order():
            own[section.id] = self._own_stats(section, reconciliation)
            cumulative[section.id] = own[section.id] + SectionStats.total(
                cumulative[child_id] for child_id in section.child_ids
            )

        # Re-key in document order for stable output
        ordered_ids = [s.id for s in document.iter_sections()]
        total = SectionStats.total(cumulative[root_id] for root_id in document.root_ids)

        self._log.info(
            "aggregation_completed",
            sections=len(ordered_ids),
            testable=total.testable_count,
            covered=total.covered_count,
            not_implemented=total.not_implemented_count,
            uncovered=total.uncovered_count,
        )
        return AggregationResult(
            own={sid: own[sid] for sid in ordered_ids},
            cumulative={sid: cumulative[sid] for sid in ordered_ids},
            total=total,
        )

    @staticmethod
    def _own_stats(section: AuditSection, reconciliation: ReconciliationResult) -> SectionStats:
        counts = {state: 0 for state in CoverageState}
        for assertion in section.testable_assertions:
            item = reconciliation.coverage_for(section.id, assertion.id)
            state = item.state if item is not None else CoverageState.UNCOVERED
            counts[state] += 1
        return SectionStats(
            testable_count=sum(counts.values()),
            covered_count=counts[CoverageState.COVERED],
            not_implemented_count=counts[CoverageState.NOT_IMPLEMENTED],
            uncovered_count=counts[CoverageState.UNCOVERED],
        )


__all__ = [
    "AggregationResult",
    "Aggregator",
    "SectionStats",
]
