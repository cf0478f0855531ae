"""Unit tests for loading audit documents from disk."""

from __future__ import annotations

from pathlib import Path

import pytest

from tck_audit.errors import MalformedDocumentError
from tck_audit.parser import detect_format, load_audit_document, parse_audit_document


class TestLoadAuditDocument:
    """Tests for load_audit_document()."""

    def test_missing_file_is_not_an_error(self, tmp_path: Path) -> None:
        """A missing audit file yields found=False and no document."""
        result = load_audit_document(tmp_path / "test-audit.xml")
        assert not result.found
        assert result.document is None
        assert result.parse_errors == ()

    def test_loads_xml(self, audit_file: Path) -> None:
        """XML files are parsed."""
        result = load_audit_document(audit_file)
        assert result.found
        assert result.document.assertion_count == 5

    def test_loads_yaml(self, tmp_path: Path, sample_audit_yaml: str) -> None:
        """The .yaml suffix selects the YAML parser."""
        path = tmp_path / "audit.yaml"
        path.write_text(sample_audit_yaml, encoding="utf-8")
        result = load_audit_document(path)
        assert result.document.name == "CDI"

    def test_malformed_file_raises(self, tmp_path: Path) -> None:
        """Files that exist but cannot be parsed raise."""
        path = tmp_path / "test-audit.xml"
        path.write_text("<specification>", encoding="utf-8")
        with pytest.raises(MalformedDocumentError) as exc_info:
            load_audit_document(path)
        assert exc_info.value.source == str(path)

    def test_lenient_keeps_parse_errors(self, tmp_path: Path) -> None:
        """Lenient loading returns the collected errors."""
        path = tmp_path / "test-audit.xml"
        path.write_text(
            '<specification><section id="1"><assertion id="a"/></section></specification>',
            encoding="utf-8",
        )
        result = load_audit_document(path, strict=False)
        assert result.found
        assert len(result.parse_errors) == 1


class TestFormats:
    """Tests for format selection."""

    @pytest.mark.parametrize(
        ("name", "expected"),
        [("test-audit.xml", "xml"), ("audit.yaml", "yaml"), ("audit.YML", "yaml"), ("audit", "xml")],
    )
    def test_detect_format(self, name: str, expected: str) -> None:
        """Format follows the file suffix, defaulting to XML."""
        assert detect_format(Path(name)) == expected

    def test_unknown_format(self) -> None:
        """Unsupported formats raise ValueError."""
        with pytest.raises(ValueError, match="Unsupported"):
            parse_audit_document("", fmt="toml")
