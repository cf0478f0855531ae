"""XML audit document parser.

Reads the audit file format used by specification TCKs::

    <specification name="CDI" version="1.0">
      <section id="2" title="Concepts" level="1">
        <assertion id="a">
          <text>A bean comprises ...</text>
        </assertion>
        <group>
          <text>A bean type ...</text>
          <assertion id="b" testable="false"><text>...</text></assertion>
        </group>
      </section>
      <section id="2.1" title="Bean types" level="2">
        ...
      </section>
    </specification>

Sections nest either by element nesting or, as in flat audit files, by the
``level`` attribute: a section nests under the closest preceding sibling
with a smaller level. XML namespaces are ignored.
"""

from __future__ import annotations

from dataclasses import dataclass
from xml.etree import ElementTree as ET

from tck_audit.errors import ParseError
from tck_audit.models import AuditDocument
from tck_audit.parser._builder import DocumentBuilder, normalize_text, parse_bool

ROOT_TAG = "specification"


@dataclass
class _Container:
    """A place sections can be declared in: the document root or a section."""

    section_id: str | None
    declared_level: int


def _local(tag: object) -> str:
    """Strip the namespace from an element tag."""
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def _child_text(element: ET.Element, tag: str) -> str | None:
    for child in element:
        if _local(child.tag) == tag:
            return normalize_text("".join(child.itertext()))
    return None


class _XmlAuditParser:
    def __init__(self, builder: DocumentBuilder) -> None:
        self.builder = builder

    def parse_root(self, root: ET.Element) -> None:
        self._parse_children(root, _Container(section_id=None, declared_level=0))

    def _parse_children(self, element: ET.Element, container: _Container) -> None:
        # (declared level, section id) of preceding sibling sections
        stack: list[tuple[int, str]] = []
        for child in element:
            tag = _local(child.tag)
            if tag == "section":
                self._parse_section(child, container, stack)
            elif tag in ("assertion", "group"):
                if container.section_id is None:
                    assertion_id = child.get("id", "")
                    raise self.builder.fail(
                        f"<{tag}> outside any section" + (f" (id '{assertion_id}')" if assertion_id else "")
                    )
                self._parse_item(child, tag, container.section_id)
            elif tag in ("title", "text", "note", "") or container.section_id is None:
                # Section titles and notes, comments, unknown root metadata
                continue
            else:
                self.builder.add_error(
                    ParseError(f"Unexpected element <{tag}>", section_id=container.section_id)
                )

    def _parse_section(
        self,
        element: ET.Element,
        container: _Container,
        stack: list[tuple[int, str]],
    ) -> None:
        section_id = self.builder.claim_section_id((element.get("id") or "").strip(), container.section_id)
        raw_level = element.get("level")
        if raw_level is None:
            declared_level = container.declared_level + 1
        else:
            try:
                declared_level = int(raw_level)
            except ValueError:
                declared_level = 0
            if declared_level <= container.declared_level:
                # Section is skipped along with everything it contains
                self.builder.add_error(
                    ParseError(
                        f"Invalid section level '{raw_level}'",
                        section_id=section_id,
                        details={"container_level": container.declared_level},
                    )
                )
                self._claim_skipped(element, section_id)
                return

        while stack and stack[-1][0] >= declared_level:
            stack.pop()
        parent_id = stack[-1][1] if stack else container.section_id

        title = normalize_text(element.get("title") or _child_text(element, "title"))
        registered = self.builder.add_section(section_id, title, parent_id)
        stack.append((declared_level, registered))
        self._parse_children(element, _Container(section_id=registered, declared_level=declared_level))

    def _claim_skipped(self, element: ET.Element, section_id: str) -> None:
        """Claim the ids of sections nested in a skipped section."""
        for child in element:
            if _local(child.tag) == "section":
                nested_id = self.builder.claim_section_id((child.get("id") or "").strip(), section_id)
                self._claim_skipped(child, nested_id)

    def _parse_item(self, element: ET.Element, tag: str, section_id: str) -> None:
        if tag == "group":
            group_text = _child_text(element, "text") or None
            for child in element:
                child_tag = _local(child.tag)
                if child_tag == "assertion":
                    self._parse_assertion(child, section_id, group_text)
                elif child_tag not in ("text", "note", ""):
                    self.builder.add_error(
                        ParseError(f"Unexpected element <{child_tag}> in group", section_id=section_id)
                    )
        else:
            self._parse_assertion(element, section_id, None)

    def _parse_assertion(self, element: ET.Element, section_id: str, group_text: str | None) -> None:
        assertion_id = self.builder.claim_assertion_id(section_id, (element.get("id") or "").strip())

        raw_testable = element.get("testable")
        testable = True if raw_testable is None else parse_bool(raw_testable)
        if testable is None:
            self.builder.add_error(
                ParseError(
                    f"Invalid testable value '{raw_testable}'",
                    section_id=section_id,
                    assertion_id=assertion_id,
                )
            )
            return

        text = _child_text(element, "text")
        if not text:
            self.builder.add_error(
                ParseError("Assertion has no text", section_id=section_id, assertion_id=assertion_id)
            )
            return

        self.builder.add_assertion(
            section_id,
            assertion_id,
            text=text,
            testable=testable,
            note=_child_text(element, "note") or None,
            group_text=group_text,
        )


def parse_audit_xml(
    source: str | bytes,
    *,
    strict: bool = True,
    source_name: str = "<string>",
) -> tuple[AuditDocument, list[ParseError]]:
    """Parse an XML audit document.

    Args:
        source: The XML document.
        strict: If True, any per-section ParseError is fatal.
        source_name: Description of the source used in error messages.

    Returns:
        Tuple of (document, collected parse errors). The error list is
        always empty in strict mode.

    Raises:
        MalformedDocumentError: If the XML is not well-formed, the root is
            not <specification>, an id is missing or duplicated, an
            assertion is outside any section, or (strict) any ParseError.
    """
    builder = DocumentBuilder(source_name)
    try:
        root = ET.fromstring(source)
    except ET.ParseError as e:
        raise builder.fail(f"Audit document is not well-formed XML: {e}") from e

    if _local(root.tag) != ROOT_TAG:
        raise builder.fail(f"Expected <{ROOT_TAG}> root element, found <{_local(root.tag)}>")

    _XmlAuditParser(builder).parse_root(root)
    document = builder.finish(
        name=root.get("name", ""),
        version=root.get("version", ""),
        strict=strict,
    )
    return document, list(builder.errors)


__all__ = ["parse_audit_xml"]
