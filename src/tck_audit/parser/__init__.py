"""Audit document parsers.

Turns an XML or YAML audit document into an immutable AuditDocument.

Example:
    >>> from tck_audit.parser import load_audit_document
    >>> result = load_audit_document(Path("test-audit.xml"))
    >>> if result.found:
    ...     print(result.document.assertion_count)
"""

from __future__ import annotations

from tck_audit.parser.loader import (
    DocumentLoadResult,
    detect_format,
    load_audit_document,
    parse_audit_document,
)
from tck_audit.parser.xml_parser import parse_audit_xml
from tck_audit.parser.yaml_parser import parse_audit_yaml

__all__: list[str] = [
    "DocumentLoadResult",
    "detect_format",
    "load_audit_document",
    "parse_audit_document",
    "parse_audit_xml",
    "parse_audit_yaml",
]
