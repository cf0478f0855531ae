"""Unit tests for the audit model (sections, assertions, references)."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from tck_audit.models import AuditAssertion, AuditDocument, AuditSection, SpecReference


class TestAuditSection:
    """Tests for AuditSection validation."""

    def test_rejects_assertion_from_other_section(self) -> None:
        """An assertion must name its owning section."""
        with pytest.raises(ValidationError, match="owned by section"):
            AuditSection(id="1", assertions=(AuditAssertion(id="a", section_id="2", text="x"),))

    def test_rejects_duplicate_assertion_ids(self) -> None:
        """Assertion ids are unique within a section."""
        assertion = AuditAssertion(id="a", section_id="1", text="x")
        with pytest.raises(ValidationError, match="Duplicate assertion id"):
            AuditSection(id="1", assertions=(assertion, assertion))

    def test_testable_assertions_excludes_documentation_only(self) -> None:
        """Non-testable assertions are not counted."""
        section = AuditSection(
            id="1",
            assertions=(
                AuditAssertion(id="a", section_id="1", text="x"),
                AuditAssertion(id="b", section_id="1", text="y", testable=False),
            ),
        )
        assert [a.id for a in section.testable_assertions] == ["a"]

    def test_is_frozen(self) -> None:
        """Sections are immutable."""
        section = AuditSection(id="1")
        with pytest.raises(ValidationError):
            section.title = "changed"  # type: ignore[misc]


class TestAuditDocument:
    """Tests for AuditDocument tree validation and navigation."""

    def test_iter_sections_is_pre_order(self, sample_document: AuditDocument) -> None:
        """Sections are visited in document order."""
        assert [s.id for s in sample_document.iter_sections()] == ["4", "4.2", "5"]

    def test_iter_post_order_visits_children_first(self, sample_document: AuditDocument) -> None:
        """No section is visited before its descendants."""
        assert [s.id for s in sample_document.iter_post_order()] == ["4.2", "4", "5"]

    def test_find_assertion_uses_compound_key(self, sample_document: AuditDocument) -> None:
        """The same assertion id exists in several sections."""
        assert sample_document.find_assertion("4.2", "a").text == "A decorator must be resolved."
        assert sample_document.find_assertion("5", "a").text == "Every bean has a scope."
        assert sample_document.find_assertion("9.9", "z") is None

    def test_has_assertion(self, sample_document: AuditDocument) -> None:
        """has_assertion() checks both parts of the key."""
        assert sample_document.has_assertion(("4.2", "c"))
        assert not sample_document.has_assertion(("4", "c"))

    def test_children_and_roots(self, sample_document: AuditDocument) -> None:
        """Navigation helpers resolve ids through the arena."""
        assert [s.id for s in sample_document.roots()] == ["4", "5"]
        assert [s.id for s in sample_document.children("4")] == ["4.2"]
        assert sample_document.get_section("4.2").parent_id == "4"

    def test_assertion_count(self, sample_document: AuditDocument) -> None:
        """All assertions are counted, testable or not."""
        assert sample_document.assertion_count == 5

    def test_rejects_wrong_parent_link(self) -> None:
        """A child must point back to the parent that lists it."""
        with pytest.raises(ValidationError, match="has parent"):
            AuditDocument(
                sections={
                    "1": AuditSection(id="1", child_ids=("1.1",)),
                    "1.1": AuditSection(id="1.1", level=2, parent_id=None),
                },
                root_ids=("1",),
            )

    def test_rejects_cycle(self) -> None:
        """A section listed twice in the tree is rejected."""
        with pytest.raises(ValidationError, match="more than once"):
            AuditDocument(
                sections={"1": AuditSection(id="1", child_ids=("1",))},
                root_ids=("1",),
            )

    def test_rejects_unreachable_section(self) -> None:
        """Every section must hang off a root."""
        with pytest.raises(ValidationError, match="not reachable"):
            AuditDocument(
                sections={
                    "1": AuditSection(id="1"),
                    "2": AuditSection(id="2"),
                },
                root_ids=("1",),
            )

    def test_rejects_wrong_level(self) -> None:
        """Levels increase by one per generation."""
        with pytest.raises(ValidationError, match="has level"):
            AuditDocument(
                sections={
                    "1": AuditSection(id="1", child_ids=("1.1",)),
                    "1.1": AuditSection(id="1.1", level=3, parent_id="1"),
                },
                root_ids=("1",),
            )


class TestSpecReference:
    """Tests for SpecReference."""

    def test_key_is_whitespace_stripped(self) -> None:
        """Keys are compared without surrounding whitespace."""
        ref = SpecReference(section=" 4.2 ", assertion="a ")
        assert ref.key == ("4.2", "a")

    @pytest.mark.parametrize(("section", "assertion"), [("", "a"), ("4.2", "  "), ("", "")])
    def test_is_blank(self, section: str, assertion: str) -> None:
        """An empty or blank part makes the key blank."""
        assert SpecReference(section=section, assertion=assertion).is_blank

    def test_qualified_name(self) -> None:
        """Qualified name joins package, class and method."""
        ref = SpecReference(package_name="org.example", class_name="FooTest", method_name="testBar")
        assert ref.qualified_name == "org.example.FooTest#testBar"

    def test_is_hashable(self) -> None:
        """Equal references collapse in a set."""
        first = SpecReference(section="1", assertion="a", groups=frozenset({"x"}))
        second = SpecReference(section="1", assertion="a", groups=frozenset({"x"}))
        assert len({first, second}) == 1

    def test_groups_serialize_sorted(self) -> None:
        """Groups are dumped as a sorted list."""
        ref = SpecReference(section="1", assertion="a", groups=frozenset({"b", "a"}))
        assert ref.model_dump(mode="json")["groups"] == ["a", "b"]
