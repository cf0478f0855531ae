"""Reconciliation of references against the audit document.

The ReconciliationEngine classifies every assertion of the document:

- no reference: UNCOVERED
- only references tagged with the not-implemented group: NOT_IMPLEMENTED
- at least one untagged reference: COVERED (a ConflictingGroupWarning is
  recorded when tagged references exist as well)

Every reference whose key matches no assertion, and every reference with a
blank key, becomes exactly one OrphanedReferenceWarning. Reconciliation
never raises for data anomalies and does not modify its inputs, so running
it twice over the same inputs gives equal results.

Example:
    >>> engine = ReconciliationEngine(not_implemented_group="not-implemented")
    >>> result = engine.reconcile(document, ReferenceIndex.build(references))
    >>> result.coverage_for("4.2", "a").state
    <CoverageState.COVERED: 'covered'>
"""

from __future__ import annotations

import structlog
from pydantic import BaseModel, ConfigDict, Field

from tck_audit.config import DEFAULT_NOT_IMPLEMENTED_GROUP
from tck_audit.diagnostics import (
    ConflictingGroupWarning,
    DuplicateReferenceWarning,
    OrphanedReferenceWarning,
)
from tck_audit.models import (
    AssertionKey,
    AuditAssertion,
    AuditDocument,
    CoverageState,
    SpecReference,
)
from tck_audit.references import ReferenceIndex
from tck_audit.telemetry import traced

logger = structlog.get_logger(__name__)


class AssertionCoverage(BaseModel):
    """Reconciled coverage of a single assertion.

    Attributes:
        section_id: Owning section id.
        assertion_id: Assertion id.
        testable: Copied from the assertion; non-testable assertions are
            excluded from every count.
        state: Coverage classification.
        covered_by: Matching references, sorted by test method name.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    section_id: str
    assertion_id: str
    testable: bool = True
    state: CoverageState = CoverageState.UNCOVERED
    covered_by: tuple[SpecReference, ...] = Field(default=())

    @property
    def key(self) -> AssertionKey:
        """Return the compound (section_id, assertion_id) key."""
        return (self.section_id, self.assertion_id)


class ReconciliationResult(BaseModel):
    """Output of one reconciliation run.

    Attributes:
        coverage: Per-assertion coverage keyed by compound key, in document order.
        orphaned: One warning per orphaned reference.
        conflicts: Assertions whose references disagree on the not-implemented tag.
        duplicates: References that were supplied more than once.
        not_implemented_group: The tag used for classification.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    coverage: dict[AssertionKey, AssertionCoverage] = Field(default_factory=dict)
    orphaned: tuple[OrphanedReferenceWarning, ...] = Field(default=())
    conflicts: tuple[ConflictingGroupWarning, ...] = Field(default=())
    duplicates: tuple[DuplicateReferenceWarning, ...] = Field(default=())
    not_implemented_group: str = DEFAULT_NOT_IMPLEMENTED_GROUP

    def coverage_for(self, section_id: str, assertion_id: str) -> AssertionCoverage | None:
        """Return the coverage of one assertion, or None if it is unknown."""
        return self.coverage.get((section_id, assertion_id))

    @property
    def orphaned_references(self) -> tuple[SpecReference, ...]:
        """Return the orphaned references themselves."""
        return tuple(w.reference for w in self.orphaned)

    @property
    def diagnostics(self) -> list[OrphanedReferenceWarning | ConflictingGroupWarning | DuplicateReferenceWarning]:
        """Return all diagnostics: orphans, then conflicts, then duplicates."""
        return [*self.orphaned, *self.conflicts, *self.duplicates]


class ReconciliationEngine:
    """Matches indexed references against the assertions of a document.

    The engine is stateless; reconcile() can be called any number of times.

    Attributes:
        not_implemented_group: Group tag meaning "test exists, feature not implemented".
    """

    def __init__(self, not_implemented_group: str = DEFAULT_NOT_IMPLEMENTED_GROUP) -> None:
        self.not_implemented_group = not_implemented_group
        self._log = logger.bind(
            component="ReconciliationEngine",
            not_implemented_group=not_implemented_group,
        )

    @traced(operation_name="tck_audit.reconcile")
    def reconcile(self, document: AuditDocument, index: ReferenceIndex) -> ReconciliationResult:
        """Classify every assertion and collect anomalies.

        Args:
            document: The parsed audit document.
            index: References grouped by key.

        Returns:
            ReconciliationResult with per-assertion coverage and diagnostics.
        """
        coverage: dict[AssertionKey, AssertionCoverage] = {}
        conflicts: list[ConflictingGroupWarning] = []

        for assertion in document.iter_assertions():
            references = index.get(assertion.key)
            item, conflict = self._classify(assertion, references)
            coverage[assertion.key] = item
            if conflict is not None:
                conflicts.append(conflict)

        orphaned = self._collect_orphans(document, index)
        duplicates = tuple(
            DuplicateReferenceWarning(
                message=f"{ref.qualified_name} claims {ref.section}/{ref.assertion} {count} times",
                section=ref.key[0],
                assertion=ref.key[1],
                reference=ref,
                occurrences=count,
            )
            for ref, count in index.duplicates
        )

        self._log.info(
            "reconciliation_completed",
            assertions=len(coverage),
            orphaned=len(orphaned),
            conflicts=len(conflicts),
            duplicates=len(duplicates),
        )
        for warning in orphaned:
            self._log.warning(
                "orphaned_reference",
                reference=warning.reference.qualified_name,
                section=warning.section,
                assertion=warning.assertion,
                reason=warning.reason,
            )

        return ReconciliationResult(
            coverage=coverage,
            orphaned=orphaned,
            conflicts=tuple(conflicts),
            duplicates=duplicates,
            not_implemented_group=self.not_implemented_group,
        )

    def _classify(
        self,
        assertion: AuditAssertion,
        references: tuple[SpecReference, ...],
    ) -> tuple[AssertionCoverage, ConflictingGroupWarning | None]:
        covered_by = tuple(sorted(references, key=SpecReference.sort_key))
        if not covered_by:
            return self._coverage(assertion, CoverageState.UNCOVERED, covered_by), None

        tagged = [r for r in covered_by if r.has_group(self.not_implemented_group)]
        untagged = [r for r in covered_by if not r.has_group(self.not_implemented_group)]

        if not untagged:
            return self._coverage(assertion, CoverageState.NOT_IMPLEMENTED, covered_by), None

        conflict = None
        if tagged:
            conflict = ConflictingGroupWarning(
                message=(
                    f"Assertion {assertion.section_id}/{assertion.id} is covered, but "
                    f"{len(tagged)} of its tests are tagged '{self.not_implemented_group}'"
                ),
                section=assertion.section_id,
                assertion=assertion.id,
                group=self.not_implemented_group,
                tagged=tuple(r.qualified_name for r in tagged),
                untagged=tuple(r.qualified_name for r in untagged),
            )
        return self._coverage(assertion, CoverageState.COVERED, covered_by), conflict

    @staticmethod
    def _coverage(
        assertion: AuditAssertion,
        state: CoverageState,
        covered_by: tuple[SpecReference, ...],
    ) -> AssertionCoverage:
        return AssertionCoverage(
            section_id=assertion.section_id,
            assertion_id=assertion.id,
            testable=assertion.testable,
            state=state,
            covered_by=covered_by,
        )

    @staticmethod
    def _collect_orphans(
        document: AuditDocument,
        index: ReferenceIndex,
    ) -> tuple[OrphanedReferenceWarning, ...]:
        orphans: list[SpecReference] = []
        for key in index.keys():
            if not document.has_assertion(key):
                orphans.extend(index.get(key))
        orphans.extend(index.blank_references)
        orphans.sort(key=lambda r: (r.key, r.qualified_name, tuple(sorted(r.groups))))
        return tuple(OrphanedReferenceWarning.for_reference(ref) for ref in orphans)


__all__ = [
    "AssertionCoverage",
    "ReconciliationEngine",
    "ReconciliationResult",
]
