"""Unit tests for the reference index and reference exchange file."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path

import pytest

from tck_audit.errors import ReferenceFileError
from tck_audit.models import SpecReference
from tck_audit.references import ReferenceIndex, load_references, references_from_entries


class TestReferenceIndex:
    """Tests for ReferenceIndex.build()."""

    def test_groups_by_key(self, make_reference: Callable[..., SpecReference]) -> None:
        """Several tests may claim the same assertion."""
        first = make_reference("4.2", "a", "testOne")
        second = make_reference("4.2", "a", "testTwo")
        other = make_reference("5", "a", "testThree")

        index = ReferenceIndex.build([first, other, second])

        assert index.get(("4.2", "a")) == (first, second)
        assert index.get(("5", "a")) == (other,)
        assert index.get(("9", "z")) == ()
        assert list(index.keys()) == [("4.2", "a"), ("5", "a")]
        assert ("4.2", "a") in index
        assert len(index) == 2

    def test_duplicates_are_collapsed_and_counted(self, make_reference: Callable[..., SpecReference]) -> None:
        """The same reference supplied twice is indexed once."""
        ref = make_reference("4.2", "a")
        index = ReferenceIndex.build([ref, ref, ref])

        assert index.get(("4.2", "a")) == (ref,)
        assert index.duplicates == ((ref, 3),)

    def test_blank_keys_are_kept_apart(self, make_reference: Callable[..., SpecReference]) -> None:
        """Blank references are not indexed under any key."""
        blank = make_reference("", "a")
        index = ReferenceIndex.build([blank])

        assert len(index) == 0
        assert index.blank_references == (blank,)

    def test_whitespace_is_stripped_from_keys(self, make_reference: Callable[..., SpecReference]) -> None:
        """Keys with stray whitespace match the stripped key."""
        ref = make_reference(" 4.2", "a ")
        assert ReferenceIndex.build([ref]).get(("4.2", "a")) == (ref,)


class TestReferencesFromEntries:
    """Tests for flattening reference file entries."""

    def test_single_and_grouped_shapes_flatten(self) -> None:
        """Single and grouped annotations produce the same records."""
        refs = references_from_entries(
            [
                {
                    "package": "org.example",
                    "class": "FooTest",
                    "method": "testOne",
                    "groups": ["integration"],
                    "assertion": {"section": "4.2", "id": "a"},
                },
                {
                    "package": "org.example",
                    "class": "FooTest",
                    "method": "testTwo",
                    "assertions": [{"section": "4.2", "id": "b"}, {"section": 5, "id": "a"}],
                },
            ]
        )

        assert [r.key for r in refs] == [("4.2", "a"), ("4.2", "b"), ("5", "a")]
        assert refs[0].groups == frozenset({"integration"})
        assert refs[2].qualified_name == "org.example.FooTest#testTwo"

    def test_mapping_with_references_key(self) -> None:
        """A mapping wrapping the list is accepted."""
        refs = references_from_entries(
            {"references": [{"method": "m", "assertion": {"section": "1", "assertion": "a"}}]}
        )
        assert refs[0].key == ("1", "a")

    def test_empty_mapping(self) -> None:
        """A mapping without references yields nothing."""
        assert references_from_entries({}) == []

    @pytest.mark.parametrize(
        ("entries", "message"),
        [
            ("nope", "must be a list"),
            (["nope"], "must be a mapping"),
            ([{"method": "m"}], "neither 'assertion' nor 'assertions'"),
            ([{"method": "m", "assertions": "1/a"}], "'assertions' must be a list"),
            ([{"method": "m", "assertion": "1/a"}], "target must be a mapping"),
            ([{"method": "m", "groups": "x", "assertion": {"section": "1", "id": "a"}}], "'groups' must be a list"),
        ],
    )
    def test_invalid_shapes(self, entries: object, message: str) -> None:
        """Invalid content raises ReferenceFileError."""
        with pytest.raises(ReferenceFileError, match=message):
            references_from_entries(entries, "refs.json")


class TestLoadReferences:
    """Tests for load_references()."""

    def test_loads_json(self, tmp_path: Path) -> None:
        """JSON files are read with the json module."""
        path = tmp_path / "refs.json"
        path.write_text(json.dumps([{"method": "m", "assertion": {"section": "1", "id": "a"}}]))
        assert load_references(path)[0].key == ("1", "a")

    def test_loads_yaml(self, tmp_path: Path) -> None:
        """.yaml files are read with PyYAML."""
        path = tmp_path / "refs.yaml"
        path.write_text("- method: m\n  assertion: {section: '1', id: a}\n")
        assert load_references(path)[0].key == ("1", "a")

    def test_invalid_json(self, tmp_path: Path) -> None:
        """Syntax errors raise ReferenceFileError."""
        path = tmp_path / "refs.json"
        path.write_text("[")
        with pytest.raises(ReferenceFileError, match="Invalid reference file") as exc_info:
            load_references(path)
        assert exc_info.value.path == str(path)

    def test_missing_file(self, tmp_path: Path) -> None:
        """Unreadable files raise ReferenceFileError."""
        with pytest.raises(ReferenceFileError, match="Unable to read"):
            load_references(tmp_path / "missing.json")

    @pytest.mark.parametrize("name", ["refs.txt", "refs.xml", "refs"])
    def test_unsupported_suffix(self, tmp_path: Path, name: str) -> None:
        """Only .json, .yaml and .yml files are accepted."""
        path = tmp_path / name
        path.write_text("- method: m\n  assertion: {section: '1', id: a}\n")
        with pytest.raises(ReferenceFileError, match="Unsupported reference file format") as exc_info:
            load_references(path)
        assert exc_info.value.path == str(path)
