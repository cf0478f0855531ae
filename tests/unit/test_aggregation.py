"""Unit tests for hierarchical coverage aggregation."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from tck_audit.aggregation import AggregationResult, Aggregator, SectionStats
from tck_audit.errors import AggregationInvariantError
from tck_audit.models import AuditAssertion, AuditDocument, AuditSection, SpecReference
from tck_audit.reconciliation import ReconciliationEngine
from tck_audit.references import ReferenceIndex

MakeRef = Callable[..., SpecReference]


def _aggregate(document: AuditDocument, refs: list[SpecReference]) -> AggregationResult:
    reconciliation = ReconciliationEngine().reconcile(document, ReferenceIndex.build(refs))
    return Aggregator().aggregate(document, reconciliation)


class TestSectionStats:
    """Tests for SectionStats arithmetic."""

    def test_percentage(self) -> None:
        """Percentage is covered over testable."""
        stats = SectionStats(testable_count=4, covered_count=1, uncovered_count=3)
        assert stats.coverage_percentage == 25.0

    def test_percentage_not_applicable_without_testable(self) -> None:
        """Nothing testable means no percentage, not 0% or 100%."""
        assert SectionStats().coverage_percentage is None

    def test_addition(self) -> None:
        """Stats add field by field."""
        total = SectionStats(testable_count=2, covered_count=1, uncovered_count=1) + SectionStats(
            testable_count=1, not_implemented_count=1
        )
        assert total == SectionStats(
            testable_count=3, covered_count=1, not_implemented_count=1, uncovered_count=1
        )

    def test_total_of_nothing(self) -> None:
        """Summing no stats gives zeros."""
        assert SectionStats.total([]) == SectionStats()

    def test_is_consistent(self) -> None:
        """States must add up to the testable count."""
        assert SectionStats(testable_count=1, covered_count=1).is_consistent
        assert not SectionStats(testable_count=2, covered_count=1).is_consistent


class TestAggregator:
    """Tests for Aggregator.aggregate()."""

    def test_non_testable_assertion_is_excluded(self) -> None:
        """4.2/a testable and 4.2/b not, no references: 0 of 1 covered."""
        document = AuditDocument.from_sections(
            [
                AuditSection(
                    id="4.2",
                    assertions=(
                        AuditAssertion(id="a", section_id="4.2", text="x"),
                        AuditAssertion(id="b", section_id="4.2", text="y", testable=False),
                    ),
                )
            ]
        )
        result = _aggregate(document, [])

        stats = result.cumulative["4.2"]
        assert stats == SectionStats(testable_count=1, uncovered_count=1)
        assert stats.coverage_percentage == 0.0

    def test_rollup_through_tree(self, sample_document: AuditDocument, make_reference: MakeRef) -> None:
        """Cumulative counts include descendants; own counts do not."""
        result = _aggregate(
            sample_document,
            [make_reference("4.2", "a"), make_reference("4.2", "c", groups=("not-implemented",))],
        )

        assert result.own["4"] == SectionStats(testable_count=1, uncovered_count=1)
        assert result.own["4.2"] == SectionStats(
            testable_count=2, covered_count=1, not_implemented_count=1
        )
        assert result.cumulative["4"] == SectionStats(
            testable_count=3, covered_count=1, not_implemented_count=1, uncovered_count=1
        )
        assert result.total == SectionStats(
            testable_count=4, covered_count=1, not_implemented_count=1, uncovered_count=2
        )
        assert result.total.coverage_percentage == 25.0

    def test_orphans_do_not_change_counts(self, sample_document: AuditDocument, make_reference: MakeRef) -> None:
        """Orphaned references never affect statistics."""
        assert _aggregate(sample_document, [make_reference("9.9", "z")]) == _aggregate(sample_document, [])

    def test_sections_in_document_order(self, sample_document: AuditDocument) -> None:
        """Results are keyed in document pre-order."""
        result = _aggregate(sample_document, [])
        assert list(result.own) == ["4", "4.2", "5"]
        assert list(result.cumulative) == ["4", "4.2", "5"]

    def test_empty_section_is_not_applicable(self) -> None:
        """A section without testable assertions has no percentage."""
        document = AuditDocument.from_sections([AuditSection(id="1")])
        result = _aggregate(document, [])
        assert result.cumulative["1"].coverage_percentage is None
        assert result.total.coverage_percentage is None

    def test_invariants_hold(self, sample_document: AuditDocument, make_reference: MakeRef) -> None:
        """check_invariants() passes for computed results."""
        result = _aggregate(sample_document, [make_reference("4.2", "a")])
        result.check_invariants(sample_document)


class TestCheckInvariants:
    """Tests for invariant violations."""

    def test_inconsistent_states(self, sample_document: AuditDocument) -> None:
        """States that do not add up are rejected."""
        good = _aggregate(sample_document, [])
        broken = good.model_copy(
            update={"cumulative": {**good.cumulative, "5": SectionStats(testable_count=1)}}
        )
        with pytest.raises(AggregationInvariantError) as exc_info:
            broken.check_invariants(sample_document)
        assert exc_info.value.section_id == "5"

    def test_cumulative_mismatch(self, sample_document: AuditDocument) -> None:
        """Cumulative must equal own plus children."""
        good = _aggregate(sample_document, [])
        broken = good.model_copy(
            update={"own": {**good.own, "4": SectionStats(testable_count=2, uncovered_count=2)}}
        )
        with pytest.raises(AggregationInvariantError, match="own plus children"):
            broken.check_invariants(sample_document)
