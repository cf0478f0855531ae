"""Incremental construction of an AuditDocument.

Both document formats feed the same builder, which owns the identity rules:
duplicate or missing ids are fatal immediately, while localized problems
are collected as ParseErrors and resolved by finish() according to the
strictness policy. Ids are claimed before an item is kept or skipped, so
an id stays taken even when its item is dropped in lenient mode.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import structlog

from tck_audit.errors import MalformedDocumentError, ParseError
from tck_audit.models import AuditAssertion, AuditDocument, AuditSection

logger = structlog.get_logger(__name__)


@dataclass
class _SectionDraft:
    """Mutable section record used only while parsing."""

    id: str
    title: str
    level: int
    parent_id: str | None
    child_ids: list[str] = field(default_factory=list)
    assertions: list[AuditAssertion] = field(default_factory=list)


class DocumentBuilder:
    """Collects sections and assertions in document order.

    Attributes:
        source: Description of the document being parsed (for messages).
        errors: ParseErrors collected so far.
    """

    def __init__(self, source: str = "<string>") -> None:
        self.source = source
        self.errors: list[ParseError] = []
        self._drafts: dict[str, _SectionDraft] = {}
        self._root_ids: list[str] = []
        # Ids seen so far, including items later skipped for a ParseError
        self._section_ids: set[str] = set()
        self._assertion_keys: set[tuple[str, str]] = set()

    def fail(self, message: str) -> MalformedDocumentError:
        """Return a fatal error for this document (caller raises it)."""
        return MalformedDocumentError(message, source=self.source)

    def claim_section_id(self, section_id: str | None, parent_id: str | None) -> str:
        """Reserve a section id before deciding whether to keep the section.

        Args:
            section_id: Section id as found in the document.
            parent_id: Id of the enclosing section (None at top level).

        Returns:
            The claimed section id.

        Raises:
            MalformedDocumentError: If the id is missing or already claimed.
        """
        if not section_id:
            where = f" under section '{parent_id}'" if parent_id else " at top level"
            raise self.fail(f"Section without id{where}")
        if section_id in self._section_ids:
            raise self.fail(f"Duplicate section id '{section_id}'")
        self._section_ids.add(section_id)
        return section_id

    def claim_assertion_id(self, section_id: str, assertion_id: str | None) -> str:
        """Reserve an assertion id within its section.

        Raises:
            MalformedDocumentError: If the id is missing or already claimed
                in the section.
        """
        if not assertion_id:
            raise self.fail(f"Assertion without id in section '{section_id}'")
        key = (section_id, assertion_id)
        if key in self._assertion_keys:
            raise self.fail(f"Duplicate assertion id '{assertion_id}' in section '{section_id}'")
        self._assertion_keys.add(key)
        return assertion_id

    def add_error(self, error: ParseError) -> None:
        """Record a localized problem and keep parsing."""
        logger.debug(
            "parse_error_collected",
            component="DocumentBuilder",
            source=self.source,
            error=str(error),
        )
        self.errors.append(error)

    def add_section(self, section_id: str | None, title: str, parent_id: str | None) -> str:
        """Register a section under a parent (None for a root).

        The id is claimed here unless claim_section_id() already did so.

        Args:
            section_id: Section id as found in the document.
            title: Display title.
            parent_id: Id of an already registered parent section.

        Returns:
            The registered section id.

        Raises:
            MalformedDocumentError: If the id is missing or already used.
        """
        if section_id not in self._section_ids:
            section_id = self.claim_section_id(section_id, parent_id)
        elif section_id in self._drafts:
            raise self.fail(f"Duplicate section id '{section_id}'")

        if parent_id is None:
            level = 1
            self._root_ids.append(section_id)
        else:
            parent = self._drafts[parent_id]
            level = parent.level + 1
            parent.child_ids.append(section_id)

        self._drafts[section_id] = _SectionDraft(
            id=section_id,
            title=title,
            level=level,
            parent_id=parent_id,
        )
        return section_id

    def add_assertion(
        self,
        section_id: str,
        assertion_id: str | None,
        *,
        text: str,
        testable: bool = True,
        note: str | None = None,
        group_text: str | None = None,
    ) -> None:
        """Register an assertion in a section.

        The id is claimed here unless claim_assertion_id() already did so.

        Raises:
            MalformedDocumentError: If the id is missing or repeats in the section.
        """
        draft = self._drafts[section_id]
        if not assertion_id or (section_id, assertion_id) not in self._assertion_keys:
            assertion_id = self.claim_assertion_id(section_id, assertion_id)
        elif any(a.id == assertion_id for a in draft.assertions):
            raise self.fail(f"Duplicate assertion id '{assertion_id}' in section '{section_id}'")
        draft.assertions.append(
            AuditAssertion(
                id=assertion_id,
                section_id=section_id,
                text=text,
                testable=testable,
                note=note,
                group_text=group_text,
            )
        )

    def level_of(self, section_id: str) -> int:
        """Return the tree depth of a registered section."""
        return self._drafts[section_id].level

    def finish(self, *, name: str = "", version: str = "", strict: bool = True) -> AuditDocument:
        """Freeze the collected sections into an AuditDocument.

        Args:
            name: Specification name.
            version: Specification version.
            strict: If True, any collected ParseError is fatal.

        Returns:
            The immutable document.

        Raises:
            MalformedDocumentError: In strict mode when ParseErrors were collected.
        """
        if strict and self.errors:
            count = len(self.errors)
            raise MalformedDocumentError(
                f"Audit document has {count} parse error{'s' if count != 1 else ''}",
                parse_errors=self.errors,
                source=self.source,
            )

        sections = {
            draft.id: AuditSection(
                id=draft.id,
                title=draft.title,
                level=draft.level,
                parent_id=draft.parent_id,
                child_ids=tuple(draft.child_ids),
                assertions=tuple(draft.assertions),
            )
            for draft in self._drafts.values()
        }
        document = AuditDocument(
            name=name,
            version=version,
            sections=sections,
            root_ids=tuple(self._root_ids),
        )
        logger.info(
            "audit_document_parsed",
            component="DocumentBuilder",
            source=self.source,
            sections=len(sections),
            assertions=document.assertion_count,
            parse_errors=len(self.errors),
        )
        return document


def normalize_text(value: str | None) -> str:
    """Collapse runs of whitespace into single spaces."""
    if not value:
        return ""
    return " ".join(value.split())


def parse_bool(value: object) -> bool | None:
    """Interpret a testable flag; None if the value is not a boolean."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
    return None
