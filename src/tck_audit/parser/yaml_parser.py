"""YAML audit document parser.

The YAML format mirrors the XML one with explicit nesting::

    name: CDI
    version: "1.0"
    sections:
      - id: "4.2"
        title: Decorators
        assertions:
          - id: a
            text: A decorator must ...
          - id: b
            text: Informative remark
            testable: false
        groups:
          - text: Decorator resolution
            assertions:
              - id: c
                text: ...
        sections:
          - id: "4.2.1"
            title: ...

Ids must be strings or integers; quote dotted ids such as "4.10" so YAML
does not read them as floats.
"""

from __future__ import annotations

from typing import Any

import yaml

from tck_audit.errors import ParseError
from tck_audit.models import AuditDocument
from tck_audit.parser._builder import DocumentBuilder, normalize_text, parse_bool


def _coerce_id(value: Any) -> str | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str):
        return value.strip() or None
    return None


class _YamlAuditParser:
    def __init__(self, builder: DocumentBuilder) -> None:
        self.builder = builder

    def parse_sections(self, entries: Any, parent_id: str | None) -> None:
        if entries is None:
            return
        if not isinstance(entries, list):
            if parent_id is None:
                raise self.builder.fail("'sections' must be a list")
            self.builder.add_error(ParseError("'sections' must be a list", section_id=parent_id))
            return
        for index, entry in enumerate(entries):
            if not isinstance(entry, dict):
                self.builder.add_error(
                    ParseError(
                        "Section entry must be a mapping",
                        section_id=parent_id,
                        details={"index": index},
                    )
                )
                continue
            self._parse_section(entry, parent_id)

    def _parse_section(self, entry: dict[str, Any], parent_id: str | None) -> None:
        raw_id = entry.get("id")
        section_id = _coerce_id(raw_id)
        if section_id is None and raw_id is not None:
            raise self.builder.fail(f"Section id {raw_id!r} must be a string")

        registered = self.builder.add_section(section_id, normalize_text(str(entry.get("title") or "")), parent_id)

        for key in entry:
            if key not in ("id", "title", "assertions", "groups", "sections", "level"):
                self.builder.add_error(ParseError(f"Unexpected key '{key}'", section_id=registered))

        self._parse_assertions(entry.get("assertions"), registered, None)

        groups = entry.get("groups")
        if groups is not None:
            if not isinstance(groups, list):
                self.builder.add_error(ParseError("'groups' must be a list", section_id=registered))
            else:
                for group in groups:
                    if not isinstance(group, dict):
                        self.builder.add_error(ParseError("Group entry must be a mapping", section_id=registered))
                        continue
                    group_text = normalize_text(str(group.get("text") or "")) or None
                    self._parse_assertions(group.get("assertions"), registered, group_text)

        self.parse_sections(entry.get("sections"), registered)

    def _parse_assertions(self, entries: Any, section_id: str, group_text: str | None) -> None:
        if entries is None:
            return
        if not isinstance(entries, list):
            self.builder.add_error(ParseError("'assertions' must be a list", section_id=section_id))
            return
        for index, entry in enumerate(entries):
            if not isinstance(entry, dict):
                self.builder.add_error(
                    ParseError(
                        "Assertion entry must be a mapping",
                        section_id=section_id,
                        details={"index": index},
                    )
                )
                continue
            self._parse_assertion(entry, section_id, group_text)

    def _parse_assertion(self, entry: dict[str, Any], section_id: str, group_text: str | None) -> None:
        raw_id = entry.get("id")
        assertion_id = _coerce_id(raw_id)
        if assertion_id is None:
            raise self.builder.fail(f"Assertion without valid id in section '{section_id}'")
        self.builder.claim_assertion_id(section_id, assertion_id)

        testable = parse_bool(entry.get("testable", True))
        if testable is None:
            self.builder.add_error(
                ParseError(
                    f"Invalid testable value {entry.get('testable')!r}",
                    section_id=section_id,
                    assertion_id=assertion_id,
                )
            )
            return

        text = normalize_text(str(entry.get("text") or ""))
        if not text:
            self.builder.add_error(
                ParseError("Assertion has no text", section_id=section_id, assertion_id=assertion_id)
            )
            return

        note = entry.get("note")
        self.builder.add_assertion(
            section_id,
            assertion_id,
            text=text,
            testable=testable,
            note=normalize_text(str(note)) if note else None,
            group_text=group_text,
        )


def parse_audit_yaml(
    source: str | bytes,
    *,
    strict: bool = True,
    source_name: str = "<string>",
) -> tuple[AuditDocument, list[ParseError]]:
    """Parse a YAML audit document.

    Args:
        source: The YAML document.
        strict: If True, any per-section ParseError is fatal.
        source_name: Description of the source used in error messages.

    Returns:
        Tuple of (document, collected parse errors).

    Raises:
        MalformedDocumentError: If the YAML is invalid, the top level is not
            a mapping with a ``sections`` key, an id is missing or
            duplicated, or (strict) any ParseError was collected.
    """
    builder = DocumentBuilder(source_name)
    try:
        data = yaml.safe_load(source)
    except yaml.YAMLError as e:
        raise builder.fail(f"Audit document is not valid YAML: {e}") from e

    if not isinstance(data, dict):
        raise builder.fail("Audit document must be a mapping with a 'sections' list")
    if "assertions" in data or "groups" in data:
        raise builder.fail("Assertions must be declared inside a section")
    if "sections" not in data:
        raise builder.fail("Audit document must be a mapping with a 'sections' list")

    _YamlAuditParser(builder).parse_sections(data["sections"], None)
    document = builder.finish(
        name=str(data.get("name") or ""),
        version=str(data.get("version") or ""),
        strict=strict,
    )
    return document, list(builder.errors)


__all__ = ["parse_audit_yaml"]
