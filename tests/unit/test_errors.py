"""Unit tests for the exception hierarchy."""

from __future__ import annotations

import pytest

from tck_audit.errors import (
    AggregationInvariantError,
    AuditError,
    MalformedDocumentError,
    ParseError,
    ReferenceFileError,
)


class TestAuditError:
    """Tests for the base error."""

    def test_str_includes_details(self) -> None:
        """Details are rendered after the message."""
        assert str(AuditError("Failed", {"path": "x"})) == "Failed (path=x)"

    def test_str_without_details(self) -> None:
        """Without details only the message is shown."""
        assert str(AuditError("Failed")) == "Failed"

    @pytest.mark.parametrize(
        "error",
        [
            ParseError("x"),
            MalformedDocumentError("x"),
            ReferenceFileError("x"),
            AggregationInvariantError("x", section_id="1"),
        ],
    )
    def test_hierarchy(self, error: AuditError) -> None:
        """All errors can be caught as AuditError."""
        assert isinstance(error, AuditError)


class TestParseError:
    """Tests for ParseError."""

    def test_location_in_details(self) -> None:
        """Section and assertion ids become details."""
        error = ParseError("Invalid testable value", section_id="4.2", assertion_id="a")
        assert error.section_id == "4.2"
        assert str(error) == "Invalid testable value (section=4.2, assertion=a)"


class TestMalformedDocumentError:
    """Tests for MalformedDocumentError."""

    def test_lists_parse_errors(self) -> None:
        """The first collected errors are listed."""
        errors = [ParseError(f"problem {i}", section_id=str(i)) for i in range(7)]
        text = str(MalformedDocumentError("Audit document has 7 parse errors", parse_errors=errors))

        assert "problem 0 (section=0)" in text
        assert "problem 4" in text
        assert "problem 5" not in text
        assert "... and 2 more errors" in text

    def test_source_in_details(self) -> None:
        """The source path is part of the message."""
        error = MalformedDocumentError("Bad", source="test-audit.xml")
        assert error.source == "test-audit.xml"
        assert str(error) == "Bad (source=test-audit.xml)"


class TestReferenceFileError:
    """Tests for ReferenceFileError."""

    def test_path_and_entry(self) -> None:
        """Path and entry index are recorded."""
        error = ReferenceFileError("Bad entry", path="refs.json", entry=0)
        assert error.entry == 0
        assert str(error) == "Bad entry (path=refs.json, entry=0)"
