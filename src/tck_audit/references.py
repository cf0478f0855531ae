"""Reference index and reference exchange file.

ReferenceIndex groups the flat SpecReference list handed over by the
annotation scanner by (section, assertion) key. Several tests claiming the
same assertion is normal. Blank keys and repeated records are recorded
rather than rejected; the reconciliation engine turns them into
diagnostics.

The reference exchange file (JSON or YAML) is where single-assertion and
grouped-assertion annotations are flattened, so nothing downstream knows
there were two shapes::

    [
      {"package": "org.example.tck", "class": "DecoratorTest",
       "method": "testResolution", "groups": ["integration"],
       "assertion": {"section": "4.2", "id": "a"}},
      {"package": "org.example.tck", "class": "DecoratorTest",
       "method": "testChain",
       "assertions": [{"section": "4.2", "id": "b"}, {"section": "4.3", "id": "a"}]}
    ]
"""

from __future__ import annotations

import json
from collections import Counter
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import Any

import structlog
import yaml

from tck_audit.errors import ReferenceFileError
from tck_audit.models import AssertionKey, SpecReference
from tck_audit.telemetry import traced

logger = structlog.get_logger(__name__)

JSON_SUFFIXES = frozenset({".json"})
YAML_SUFFIXES = frozenset({".yaml", ".yml"})


class ReferenceIndex:
    """Lookup of SpecReferences by compound assertion key.

    Attributes:
        references: Distinct references in input order.
        blank_references: References with an empty section or assertion id.
        duplicates: References supplied more than once, with their counts.
    """

    def __init__(
        self,
        by_key: dict[AssertionKey, tuple[SpecReference, ...]],
        references: tuple[SpecReference, ...],
        blank_references: tuple[SpecReference, ...],
        duplicates: tuple[tuple[SpecReference, int], ...],
    ) -> None:
        self._by_key = by_key
        self.references = references
        self.blank_references = blank_references
        self.duplicates = duplicates

    @classmethod
    @traced(operation_name="tck_audit.index")
    def build(cls, references: Iterable[SpecReference]) -> ReferenceIndex:
        """Group references by key.

        Args:
            references: Flat sequence of references from the scanner.

        Returns:
            The populated index.
        """
        counts: Counter[SpecReference] = Counter()
        ordered: list[SpecReference] = []
        for reference in references:
            if counts[reference] == 0:
                ordered.append(reference)
            counts[reference] += 1

        grouped: dict[AssertionKey, list[SpecReference]] = {}
        blank: list[SpecReference] = []
        for reference in ordered:
            if reference.is_blank:
                blank.append(reference)
                continue
            grouped.setdefault(reference.key, []).append(reference)

        duplicates = tuple((ref, counts[ref]) for ref in ordered if counts[ref] > 1)
        index = cls(
            by_key={key: tuple(refs) for key, refs in grouped.items()},
            references=tuple(ordered),
            blank_references=tuple(blank),
            duplicates=duplicates,
        )
        logger.info(
            "reference_index_built",
            component="ReferenceIndex",
            references=len(ordered),
            keys=len(grouped),
            blank=len(blank),
            duplicates=len(duplicates),
        )
        return index

    def get(self, key: AssertionKey) -> tuple[SpecReference, ...]:
        """Return the references claiming a key (empty if none)."""
        return self._by_key.get(key, ())

    def keys(self) -> Iterator[AssertionKey]:
        """Iterate indexed keys in first-seen order."""
        return iter(self._by_key)

    def __contains__(self, key: object) -> bool:
        return key in self._by_key

    def __len__(self) -> int:
        return len(self._by_key)


# =============================================================================
# Reference exchange file
# =============================================================================


def _text(entry: dict[str, Any], *names: str) -> str:
    for name in names:
        value = entry.get(name)
        if value is not None:
            return str(value).strip()
    return ""


def _targets(entry: dict[str, Any], path: str, index: int) -> list[dict[str, Any]]:
    if "assertions" in entry:
        targets = entry["assertions"]
        if not isinstance(targets, list):
            raise ReferenceFileError("'assertions' must be a list", path=path, entry=index)
    elif "assertion" in entry:
        targets = [entry["assertion"]]
    else:
        raise ReferenceFileError("Entry has neither 'assertion' nor 'assertions'", path=path, entry=index)

    for target in targets:
        if not isinstance(target, dict):
            raise ReferenceFileError("Assertion target must be a mapping", path=path, entry=index)
    return targets


def references_from_entries(entries: Any, path: str = "<data>") -> list[SpecReference]:
    """Flatten reference file entries into SpecReferences.

    Args:
        entries: A list of test entries, or a mapping with a 'references' list.
        path: Source description for error messages.

    Returns:
        One SpecReference per (test method, claimed assertion) pair.

    Raises:
        ReferenceFileError: If the data does not have the expected shape.
    """
    if isinstance(entries, dict):
        entries = entries.get("references")
    if entries is None:
        return []
    if not isinstance(entries, list):
        raise ReferenceFileError("References must be a list", path=path)

    references: list[SpecReference] = []
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict):
            raise ReferenceFileError("Reference entry must be a mapping", path=path, entry=index)
        groups = entry.get("groups") or []
        if isinstance(groups, str) or not isinstance(groups, list):
            raise ReferenceFileError("'groups' must be a list", path=path, entry=index)

        for target in _targets(entry, path, index):
            references.append(
                SpecReference(
                    package_name=_text(entry, "package", "package_name"),
                    class_name=_text(entry, "class", "class_name"),
                    method_name=_text(entry, "method", "method_name"),
                    section=_text(target, "section"),
                    assertion=_text(target, "id", "assertion"),
                    groups=frozenset(str(g) for g in groups),
                )
            )
    return references


def load_references(path: Path) -> list[SpecReference]:
    """Load a reference exchange file (.json, .yaml or .yml).

    Args:
        path: Reference file path.

    Returns:
        Flat list of SpecReferences in file order.

    Raises:
        ReferenceFileError: If the suffix is not supported or the file
            cannot be read or parsed.
    """
    suffix = path.suffix.lower()
    if suffix not in JSON_SUFFIXES | YAML_SUFFIXES:
        raise ReferenceFileError(
            "Unsupported reference file format, expected .json, .yaml or .yml",
            path=str(path),
        )

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ReferenceFileError(f"Unable to read reference file: {e}", path=str(path)) from e

    try:
        if suffix in JSON_SUFFIXES:
            data = json.loads(content)
        else:
            data = yaml.safe_load(content)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ReferenceFileError(f"Invalid reference file: {e}", path=str(path)) from e

    references = references_from_entries(data, str(path))
    logger.info(
        "references_loaded",
        component="references",
        path=str(path),
        references=len(references),
    )
    return references


__all__ = [
    "ReferenceIndex",
    "load_references",
    "references_from_entries",
]
