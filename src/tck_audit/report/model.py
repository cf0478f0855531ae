"""Coverage report models.

These models are the contract between the audit engine and any renderer
(HTML, JSON, plain text). They carry every statistic a renderer needs, so
nothing has to be re-derived, and contain no markup.

- CoveringTest: A test method that claims an assertion
- AssertionReport: Coverage state and covering tests of one assertion
- SectionReport: A section with own and cumulative stats and nested children
- CoverageReport: Top-level report with summary, orphans and diagnostics
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

from tck_audit.aggregation import SectionStats
from tck_audit.diagnostics import (
    ConflictingGroupWarning,
    DuplicateReferenceWarning,
    OrphanedReferenceWarning,
)
from tck_audit.models import CoverageState, SpecReference

SectionStatus = Literal["pass", "warn", "fail", "not_applicable"]

ReportDiagnostic = Annotated[
    OrphanedReferenceWarning | ConflictingGroupWarning | DuplicateReferenceWarning,
    Field(discriminator="kind"),
]


class CoveringTest(BaseModel):
    """A test method claiming an assertion."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    package_name: str
    class_name: str
    method_name: str
    qualified_name: str
    groups: tuple[str, ...] = ()

    @classmethod
    def from_reference(cls, reference: SpecReference) -> CoveringTest:
        """Create from a SpecReference."""
        return cls(
            package_name=reference.package_name,
            class_name=reference.class_name,
            method_name=reference.method_name,
            qualified_name=reference.qualified_name,
            groups=tuple(sorted(reference.groups)),
        )


class AssertionReport(BaseModel):
    """Coverage of a single assertion.

    Attributes:
        id: Assertion id.
        section_id: Owning section id.
        text: Normative requirement text.
        note: Audit note.
        group_text: Text of the enclosing assertion group.
        testable: Whether the assertion is counted.
        state: Coverage classification.
        covered_by: Tests claiming the assertion, sorted by qualified name.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str
    section_id: str
    text: str
    note: str | None = None
    group_text: str | None = None
    testable: bool = True
    state: CoverageState
    covered_by: tuple[CoveringTest, ...] = ()


class SectionReport(BaseModel):
    """A section with its statistics, assertions and child sections.

    Attributes:
        id: Section id.
        title: Display title.
        level: Depth in the tree (1 for roots).
        parent_id: Parent section id, None for roots.
        own: Stats of the section's own assertions.
        cumulative: Stats including all descendant sections.
        own_percentage: Own coverage percentage, None if not applicable.
        cumulative_percentage: Cumulative coverage percentage, None if not applicable.
        status: Cumulative percentage classified against the thresholds.
        assertions: Assertions in document order.
        children: Child sections in document order.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str
    title: str
    level: int = Field(..., ge=1)
    parent_id: str | None = None
    own: SectionStats
    cumulative: SectionStats
    own_percentage: float | None = None
    cumulative_percentage: float | None = None
    status: SectionStatus
    assertions: tuple[AssertionReport, ...] = ()
    children: tuple[SectionReport, ...] = ()

    def iter_tree(self) -> Iterator[SectionReport]:
        """Iterate this section and its descendants in document order."""
        yield self
        for child in self.children:
            yield from child.iter_tree()


class ParseErrorRecord(BaseModel):
    """A ParseError that was tolerated in lenient mode."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    message: str
    section: str | None = None
    assertion: str | None = None


class CoverageReport(BaseModel):
    """Top-level coverage report.

    Attributes:
        specification_name: Name of the audited specification.
        specification_version: Version of the audited specification.
        not_implemented_group: Group tag used for NOT_IMPLEMENTED.
        pass_threshold: Percentage at or above which a section passes.
        warn_threshold: Percentage at or above which a section warns.
        summary: Document-wide stats.
        summary_percentage: Document-wide coverage, None if not applicable.
        status: Document-wide status.
        sections: Root sections (each nesting its children).
        orphaned_references: References to assertions that do not exist.
        diagnostics: All reconciliation diagnostics.
        parse_errors: Parse errors tolerated in lenient mode.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        json_schema_extra={
            "title": "CoverageReport",
            "description": "Specification assertion coverage report",
        },
    )

    specification_name: str = ""
    specification_version: str = ""
    not_implemented_group: str
    pass_threshold: float
    warn_threshold: float
    summary: SectionStats
    summary_percentage: float | None = None
    status: SectionStatus
    sections: tuple[SectionReport, ...] = ()
    orphaned_references: tuple[SpecReference, ...] = ()
    diagnostics: tuple[ReportDiagnostic, ...] = ()
    parse_errors: tuple[ParseErrorRecord, ...] = ()

    def iter_sections(self) -> Iterator[SectionReport]:
        """Iterate all sections in document order."""
        for section in self.sections:
            yield from section.iter_tree()

    def find_section(self, section_id: str) -> SectionReport | None:
        """Return the section report with the given id, or None."""
        for section in self.iter_sections():
            if section.id == section_id:
                return section
        return None

    def find_assertion(self, section_id: str, assertion_id: str) -> AssertionReport | None:
        """Return the assertion report for a compound key, or None."""
        section = self.find_section(section_id)
        if section is None:
            return None
        for assertion in section.assertions:
            if assertion.id == assertion_id:
                return assertion
        return None

    def assertions_in_state(self, state: CoverageState) -> list[AssertionReport]:
        """Return testable assertions in the given state, in document order."""
        return [
            assertion
            for section in self.iter_sections()
            for assertion in section.assertions
            if assertion.testable and assertion.state == state
        ]

    @property
    def warning_count(self) -> int:
        """Return the number of diagnostics."""
        return len(self.diagnostics)


__all__ = [
    "AssertionReport",
    "CoverageReport",
    "CoveringTest",
    "ParseErrorRecord",
    "ReportDiagnostic",
    "SectionReport",
    "SectionStatus",
]
