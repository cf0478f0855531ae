"""Loading an audit document from disk.

A missing audit file is a normal outcome (the run is skipped and no report
is generated), so it is expressed as a DocumentLoadResult with found=False
rather than as an exception. A file that exists but cannot be understood
raises MalformedDocumentError.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import structlog

from tck_audit.errors import MalformedDocumentError, ParseError
from tck_audit.models import AuditDocument
from tck_audit.parser.xml_parser import parse_audit_xml
from tck_audit.parser.yaml_parser import parse_audit_yaml
from tck_audit.telemetry import traced

logger = structlog.get_logger(__name__)

YAML_SUFFIXES = frozenset({".yaml", ".yml"})


@dataclass(frozen=True)
class DocumentLoadResult:
    """Outcome of loading an audit document.

    Attributes:
        path: The path that was looked up.
        document: The parsed document, or None if no file was found.
        parse_errors: ParseErrors kept in lenient mode (empty when strict).
    """

    path: Path
    document: AuditDocument | None = None
    parse_errors: tuple[ParseError, ...] = field(default_factory=tuple)

    @property
    def found(self) -> bool:
        """Return True if a document was loaded."""
        return self.document is not None


def parse_audit_document(
    source: str | bytes,
    *,
    fmt: str = "xml",
    strict: bool = True,
    source_name: str = "<string>",
) -> tuple[AuditDocument, list[ParseError]]:
    """Parse an audit document in the given format ("xml" or "yaml")."""
    if fmt == "xml":
        return parse_audit_xml(source, strict=strict, source_name=source_name)
    if fmt == "yaml":
        return parse_audit_yaml(source, strict=strict, source_name=source_name)
    msg = f"Unsupported audit document format: {fmt}"
    raise ValueError(msg)


def detect_format(path: Path) -> str:
    """Return "yaml" for .yaml/.yml files and "xml" otherwise."""
    return "yaml" if path.suffix.lower() in YAML_SUFFIXES else "xml"


@traced(
    operation_name="tck_audit.parse",
    attributes_fn=lambda path, **_: {"tck_audit.audit_file": str(path)},
)
def load_audit_document(path: Path, *, strict: bool = True) -> DocumentLoadResult:
    """Load and parse an audit document.

    Args:
        path: Audit document path (.xml, .yaml or .yml).
        strict: If True, any per-section ParseError is fatal.

    Returns:
        DocumentLoadResult; ``found`` is False if the file does not exist.

    Raises:
        MalformedDocumentError: If the file exists but is malformed or unreadable.
    """
    log = logger.bind(component="loader", audit_file=str(path))

    if not path.is_file():
        log.warning("audit_file_not_found")
        return DocumentLoadResult(path=path)

    try:
        content = path.read_bytes()
    except OSError as e:
        raise MalformedDocumentError(f"Unable to read audit file: {e}", source=str(path)) from e

    document, errors = parse_audit_document(
        content,
        fmt=detect_format(path),
        strict=strict,
        source_name=str(path),
    )
    if errors:
        log.warning("audit_file_partially_parsed", parse_errors=len(errors))
    return DocumentLoadResult(path=path, document=document, parse_errors=tuple(errors))


__all__ = [
    "DocumentLoadResult",
    "detect_format",
    "load_audit_document",
    "parse_audit_document",
]
