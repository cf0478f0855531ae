"""Exception types for tck-audit.

This module defines the exception hierarchy raised while loading an audit
document or reference file. All exceptions inherit from AuditError to
enable catch-all error handling.

Reconciliation anomalies (orphaned references, conflicting group tags) are
never raised; they are collected as diagnostics, see tck_audit.diagnostics.

Exception Hierarchy:
    AuditError (base)
    ├── MalformedDocumentError - Document cannot be turned into a trustworthy tree
    ├── ParseError - Localized problem in a single section (collected)
    ├── ReferenceFileError - Reference exchange file unreadable or invalid
    └── AggregationInvariantError - Aggregated counts do not add up

Example:
    >>> from tck_audit.errors import AuditError, MalformedDocumentError
    >>> try:
    ...     result = load_audit_document(Path("test-audit.xml"))
    ... except MalformedDocumentError as e:
    ...     print(f"Audit file rejected: {e}")
    ... except AuditError as e:
    ...     print(f"Audit failed: {e}")
"""

from __future__ import annotations

from typing import Any


class AuditError(Exception):
    """Base exception for all tck-audit errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional error context.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize AuditError.

        Args:
            message: Human-readable error description.
            details: Optional dictionary with additional error context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


# =============================================================================
# Document Errors
# =============================================================================


class ParseError(AuditError):
    """A localized structural problem inside one section.

    ParseErrors are collected while the rest of the document keeps being
    parsed. Whether they abort the run is decided by the caller: in strict
    mode they are escalated into a MalformedDocumentError.

    Attributes:
        section_id: Section the problem was found in (None at document level).
        assertion_id: Assertion the problem was found in, if any.

    Example:
        >>> ParseError("Invalid testable value", section_id="4.2", assertion_id="a")
    """

    def __init__(
        self,
        message: str,
        section_id: str | None = None,
        assertion_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize ParseError.

        Args:
            message: Human-readable error description.
            section_id: Section the problem was found in.
            assertion_id: Assertion the problem was found in.
            details: Additional error context.
        """
        _details = details or {}
        if section_id is not None:
            _details["section"] = section_id
        if assertion_id is not None:
            _details["assertion"] = assertion_id
        super().__init__(message, _details)
        self.section_id = section_id
        self.assertion_id = assertion_id


class MalformedDocumentError(AuditError):
    """The audit document cannot be turned into a trustworthy section tree.

    Raised for syntax errors, missing or duplicated ids, assertions declared
    outside any section, and (in strict mode) any collected ParseError.

    Attributes:
        parse_errors: Collected per-section errors that caused the failure.
        source: Path or description of the offending document.
    """

    def __init__(
        self,
        message: str,
        parse_errors: list[ParseError] | None = None,
        source: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize MalformedDocumentError.

        Args:
            message: Human-readable error description.
            parse_errors: Collected ParseErrors escalated into this failure.
            source: Path or description of the offending document.
            details: Additional error context.
        """
        _details = details or {}
        if source is not None:
            _details["source"] = source
        super().__init__(message, _details)
        self.parse_errors = list(parse_errors or [])
        self.source = source

    def __str__(self) -> str:
        """Return the message followed by the first few collected errors."""
        text = super().__str__()
        max_show = 5
        for err in self.parse_errors[:max_show]:
            text += f"\n  - {err}"
        if len(self.parse_errors) > max_show:
            remaining = len(self.parse_errors) - max_show
            text += f"\n  ... and {remaining} more error{'s' if remaining != 1 else ''}"
        return text


# =============================================================================
# Reference Errors
# =============================================================================


class ReferenceFileError(AuditError):
    """The reference exchange file could not be read or has an invalid shape.

    Attributes:
        path: Path of the reference file.
        entry: Index of the offending entry, if known.
    """

    def __init__(
        self,
        message: str,
        path: str | None = None,
        entry: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize ReferenceFileError.

        Args:
            message: Human-readable error description.
            path: Path of the reference file.
            entry: Index of the offending entry.
            details: Additional error context.
        """
        _details = details or {}
        if path is not None:
            _details["path"] = path
        if entry is not None:
            _details["entry"] = entry
        super().__init__(message, _details)
        self.path = path
        self.entry = entry


# =============================================================================
# Aggregation Errors
# =============================================================================


class AggregationInvariantError(AuditError):
    """Aggregated section counts do not satisfy the rollup invariants."""

    def __init__(self, message: str, section_id: str, details: dict[str, Any] | None = None) -> None:
        _details = details or {}
        _details["section"] = section_id
        super().__init__(message, _details)
        self.section_id = section_id


__all__ = [
    "AggregationInvariantError",
    "AuditError",
    "MalformedDocumentError",
    "ParseError",
    "ReferenceFileError",
]
