"""Audit model: the parsed specification tree and the reference records.

This module defines the types shared by every stage of an audit run:
- AuditAssertion: A single normative requirement inside a section
- AuditSection: A node of the section tree (arena entry)
- AuditDocument: The whole section tree, stored as an arena keyed by id
- SpecReference: A test method's claim that it exercises an assertion
- CoverageState: Classification of an assertion after reconciliation

Sections never hold live references to each other. Parents and children
are stored as ids and resolved through the owning AuditDocument, which
keeps the tree acyclic and the models trivially serializable.

Example:
    >>> doc = AuditDocument.from_sections(
    ...     name="CDI",
    ...     version="1.0",
    ...     sections=[
    ...         AuditSection(
    ...             id="4.2",
    ...             title="Decorators",
    ...             assertions=(AuditAssertion(id="a", section_id="4.2", text="..."),),
    ...         )
    ...     ],
    ... )
    >>> doc.find_assertion("4.2", "a").text
    '...'
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer, model_validator

AssertionKey = tuple[str, str]
"""Compound key of an assertion: (section_id, assertion_id)."""


class CoverageState(str, Enum):
    """Coverage classification of a single assertion."""

    UNCOVERED = "uncovered"
    COVERED = "covered"
    NOT_IMPLEMENTED = "not_implemented"


class AuditAssertion(BaseModel):
    """A single normative requirement extracted from the specification.

    Attributes:
        id: Identifier, unique within the owning section.
        section_id: Id of the owning section.
        text: The normative requirement text.
        testable: False for documentation-only assertions, which are
            excluded from every coverage count.
        note: Optional audit note attached to the assertion.
        group_text: Shared text of the assertion group it was declared in.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(..., min_length=1, description="Assertion id within its section")
    section_id: str = Field(..., min_length=1, description="Owning section id")
    text: str = Field(default="", description="Normative requirement text")
    testable: bool = Field(default=True, description="Counted in coverage denominators")
    note: str | None = Field(default=None, description="Audit note")
    group_text: str | None = Field(default=None, description="Text of the enclosing group")

    @property
    def key(self) -> AssertionKey:
        """Return the compound (section_id, assertion_id) key."""
        return (self.section_id, self.id)


class AuditSection(BaseModel):
    """A section of the specification document.

    Attributes:
        id: Identifier, unique across the whole document.
        title: Display title.
        level: Depth in the tree, 1 for root sections.
        parent_id: Id of the parent section, None for roots.
        child_ids: Ids of the child sections in document order.
        assertions: Assertions owned by this section in document order.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(..., min_length=1, description="Section id, unique in the document")
    title: str = Field(default="", description="Display title")
    level: int = Field(default=1, ge=1, description="Depth in the tree (1 for roots)")
    parent_id: str | None = Field(default=None, description="Parent section id")
    child_ids: tuple[str, ...] = Field(default=(), description="Child section ids")
    assertions: tuple[AuditAssertion, ...] = Field(default=(), description="Owned assertions")

    @model_validator(mode="after")
    def validate_assertions(self) -> AuditSection:
        """Validate that assertions belong to this section and have unique ids.

        Raises:
            ValueError: If an assertion names another section or an id repeats.
        """
        seen: set[str] = set()
        for assertion in self.assertions:
            if assertion.section_id != self.id:
                msg = (
                    f"Assertion '{assertion.id}' declares section '{assertion.section_id}' "
                    f"but is owned by section '{self.id}'"
                )
                raise ValueError(msg)
            if assertion.id in seen:
                msg = f"Duplicate assertion id '{assertion.id}' in section '{self.id}'"
                raise ValueError(msg)
            seen.add(assertion.id)
        return self

    @property
    def testable_assertions(self) -> tuple[AuditAssertion, ...]:
        """Return the assertions counted in coverage denominators."""
        return tuple(a for a in self.assertions if a.testable)

    def get_assertion(self, assertion_id: str) -> AuditAssertion | None:
        """Return the assertion with the given id, or None."""
        for assertion in self.assertions:
            if assertion.id == assertion_id:
                return assertion
        return None


class AuditDocument(BaseModel):
    """The parsed specification: an arena of sections keyed by id.

    The sections dict is kept in document pre-order. Tree structure is
    expressed only through parent_id/child_ids, and the validator below
    guarantees that those ids describe a single acyclic forest.

    Attributes:
        name: Specification name.
        version: Specification version.
        sections: All sections keyed by id, in document pre-order.
        root_ids: Ids of the top-level sections in document order.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(default="", description="Specification name")
    version: str = Field(default="", description="Specification version")
    sections: dict[str, AuditSection] = Field(default_factory=dict, description="Section arena")
    root_ids: tuple[str, ...] = Field(default=(), description="Top-level section ids")

    @model_validator(mode="after")
    def validate_tree(self) -> AuditDocument:
        """Validate parent/child links form one acyclic forest.

        Every section must be reachable from exactly one root path, every
        child must point back to its parent, and levels must increase by
        one per generation.

        Raises:
            ValueError: If the links are inconsistent or contain a cycle.
        """
        for key, section in self.sections.items():
            if key != section.id:
                msg = f"Section stored under '{key}' has id '{section.id}'"
                raise ValueError(msg)

        visited: set[str] = set()
        stack: list[tuple[str, str | None, int]] = [
            (root_id, None, 1) for root_id in reversed(self.root_ids)
        ]
        while stack:
            section_id, parent_id, level = stack.pop()
            section = self.sections.get(section_id)
            if section is None:
                msg = f"Unknown section id '{section_id}' referenced in tree"
                raise ValueError(msg)
            if section_id in visited:
                msg = f"Section '{section_id}' is reachable more than once (cycle or shared child)"
                raise ValueError(msg)
            if section.parent_id != parent_id:
                msg = f"Section '{section_id}' has parent '{section.parent_id}', expected '{parent_id}'"
                raise ValueError(msg)
            if section.level != level:
                msg = f"Section '{section_id}' has level {section.level}, expected {level}"
                raise ValueError(msg)
            visited.add(section_id)
            stack.extend((child_id, section_id, level + 1) for child_id in reversed(section.child_ids))

        unreachable = [sid for sid in self.sections if sid not in visited]
        if unreachable:
            msg = f"Sections not reachable from any root: {', '.join(unreachable)}"
            raise ValueError(msg)
        return self

    @classmethod
    def from_sections(
        cls,
        sections: Iterable[AuditSection],
        *,
        name: str = "",
        version: str = "",
    ) -> AuditDocument:
        """Build a document from sections listed in document pre-order.

        Sections with no parent_id become roots. Child lists are taken from
        each section as given.

        Args:
            sections: Sections in document pre-order.
            name: Specification name.
            version: Specification version.

        Returns:
            Validated AuditDocument.
        """
        arena: dict[str, AuditSection] = {}
        for section in sections:
            arena[section.id] = section
        root_ids = tuple(s.id for s in arena.values() if s.parent_id is None)
        return cls(name=name, version=version, sections=arena, root_ids=root_ids)

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def get_section(self, section_id: str) -> AuditSection | None:
        """Return the section with the given id, or None."""
        return self.sections.get(section_id)

    def children(self, section_id: str) -> list[AuditSection]:
        """Return the direct children of a section in document order."""
        section = self.sections[section_id]
        return [self.sections[child_id] for child_id in section.child_ids]

    def roots(self) -> list[AuditSection]:
        """Return the top-level sections in document order."""
        return [self.sections[root_id] for root_id in self.root_ids]

    def iter_sections(self) -> Iterator[AuditSection]:
        """Iterate all sections in document pre-order."""
        stack = list(reversed(self.root_ids))
        while stack:
            section = self.sections[stack.pop()]
            yield section
            stack.extend(reversed(section.child_ids))

    def iter_post_order(self) -> Iterator[AuditSection]:
        """Iterate all sections with every section after all its descendants."""
        stack: list[tuple[str, bool]] = [(root_id, False) for root_id in reversed(self.root_ids)]
        while stack:
            section_id, expanded = stack.pop()
            section = self.sections[section_id]
            if expanded:
                yield section
                continue
            stack.append((section_id, True))
            stack.extend((child_id, False) for child_id in reversed(section.child_ids))

    def iter_assertions(self) -> Iterator[AuditAssertion]:
        """Iterate all assertions in document order."""
        for section in self.iter_sections():
            yield from section.assertions

    def find_assertion(self, section_id: str, assertion_id: str) -> AuditAssertion | None:
        """Return the assertion for a compound key, or None."""
        section = self.sections.get(section_id)
        if section is None:
            return None
        return section.get_assertion(assertion_id)

    def has_assertion(self, key: AssertionKey) -> bool:
        """Return True if the compound key names an assertion of this document."""
        return self.find_assertion(*key) is not None

    @property
    def assertion_count(self) -> int:
        """Return the total number of assertions in the document."""
        return sum(len(s.assertions) for s in self.sections.values())


class SpecReference(BaseModel):
    """A test method's claim that it exercises a specification assertion.

    SpecReferences are produced by an external annotation scanner and are
    consumed here unchanged. The model is hashable so references can be
    collected in sets.

    Attributes:
        package_name: Package (or module path) of the test class.
        class_name: Simple name of the test class.
        method_name: Name of the test method.
        section: Claimed section id.
        assertion: Claimed assertion id.
        groups: Tags attached to the test method.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    package_name: str = Field(default="", description="Package of the test class")
    class_name: str = Field(default="", description="Test class name")
    method_name: str = Field(default="", description="Test method name")
    section: str = Field(default="", description="Claimed section id")
    assertion: str = Field(default="", description="Claimed assertion id")
    groups: frozenset[str] = Field(default_factory=frozenset, description="Test group tags")

    @field_serializer("groups")
    def serialize_groups(self, groups: frozenset[str]) -> list[str]:
        """Serialize groups as a sorted list for stable output."""
        return sorted(groups)

    @property
    def key(self) -> AssertionKey:
        """Return the claimed (section, assertion) key, whitespace-stripped."""
        return (self.section.strip(), self.assertion.strip())

    @property
    def is_blank(self) -> bool:
        """Return True if the section or assertion id is empty or blank."""
        section_id, assertion_id = self.key
        return not section_id or not assertion_id

    @property
    def qualified_name(self) -> str:
        """Return the test method as 'package.Class#method'."""
        owner = ".".join(part for part in (self.package_name, self.class_name) if part)
        return f"{owner}#{self.method_name}"

    def has_group(self, group: str) -> bool:
        """Return True if the test carries the given group tag."""
        return group in self.groups

    def sort_key(self) -> tuple[Any, ...]:
        """Return a deterministic ordering key."""
        return (self.qualified_name, self.key, tuple(sorted(self.groups)))


__all__ = [
    "AssertionKey",
    "AuditAssertion",
    "AuditDocument",
    "AuditSection",
    "CoverageState",
    "SpecReference",
]
