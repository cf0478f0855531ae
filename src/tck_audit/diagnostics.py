"""Reconciliation diagnostics.

Diagnostics describe anomalies found while matching references against the
audit document. They are never raised: the reconciliation engine collects
them and the report carries them, because a coverage report is only useful
if it shows its gaps.

- OrphanedReferenceWarning: a reference names an assertion that does not exist
- ConflictingGroupWarning: references to one assertion disagree on the
  not-implemented tag
- DuplicateReferenceWarning: the same test method claims the same assertion
  more than once

Each diagnostic carries a stable code for lookup in CI output.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from tck_audit.models import SpecReference

ORPHANED_REFERENCE_CODE = "AUDIT-W101"
CONFLICTING_GROUP_CODE = "AUDIT-W102"
DUPLICATE_REFERENCE_CODE = "AUDIT-W103"


class AuditDiagnostic(BaseModel):
    """Base model for all reconciliation diagnostics.

    Attributes:
        code: AUDIT-WXXX diagnostic code.
        kind: Discriminator naming the diagnostic type.
        severity: Always "warning"; diagnostics never fail a run.
        message: Human-readable description.
        section: Section id the diagnostic refers to.
        assertion: Assertion id the diagnostic refers to.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    code: str = Field(..., description="AUDIT-WXXX diagnostic code")
    kind: str = Field(..., description="Diagnostic type")
    severity: Literal["warning"] = Field(default="warning", description="Severity level")
    message: str = Field(..., description="Human-readable description")
    section: str = Field(default="", description="Section id")
    assertion: str = Field(default="", description="Assertion id")


class OrphanedReferenceWarning(AuditDiagnostic):
    """A reference whose (section, assertion) key is not in the document."""

    code: str = ORPHANED_REFERENCE_CODE
    kind: Literal["orphaned_reference"] = "orphaned_reference"
    reason: Literal["unknown_assertion", "blank_key"] = Field(
        ...,
        description="Why the reference could not be matched",
    )
    reference: SpecReference = Field(..., description="The orphaned reference")

    @classmethod
    def for_reference(cls, reference: SpecReference) -> OrphanedReferenceWarning:
        """Create the warning for a reference, choosing the reason from its key."""
        section_id, assertion_id = reference.key
        if reference.is_blank:
            reason: Literal["unknown_assertion", "blank_key"] = "blank_key"
            message = f"{reference.qualified_name} references an assertion with a blank section or id"
        else:
            reason = "unknown_assertion"
            message = (
                f"{reference.qualified_name} references assertion "
                f"{section_id}/{assertion_id} which does not exist in the audit document"
            )
        return cls(
            message=message,
            section=section_id,
            assertion=assertion_id,
            reason=reason,
            reference=reference,
        )


class ConflictingGroupWarning(AuditDiagnostic):
    """References to one assertion disagree on the not-implemented tag.

    The assertion is classified as covered; the tagged references are
    listed so the stale tags can be cleaned up.
    """

    code: str = CONFLICTING_GROUP_CODE
    kind: Literal["conflicting_groups"] = "conflicting_groups"
    group: str = Field(..., description="The not-implemented group tag")
    tagged: tuple[str, ...] = Field(default=(), description="Test methods carrying the tag")
    untagged: tuple[str, ...] = Field(default=(), description="Test methods without the tag")


class DuplicateReferenceWarning(AuditDiagnostic):
    """A test method claims the same assertion more than once."""

    code: str = DUPLICATE_REFERENCE_CODE
    kind: Literal["duplicate_reference"] = "duplicate_reference"
    reference: SpecReference = Field(..., description="The repeated reference")
    occurrences: int = Field(..., ge=2, description="How many times it was supplied")


Diagnostic = OrphanedReferenceWarning | ConflictingGroupWarning | DuplicateReferenceWarning


__all__ = [
    "CONFLICTING_GROUP_CODE",
    "DUPLICATE_REFERENCE_CODE",
    "ORPHANED_REFERENCE_CODE",
    "AuditDiagnostic",
    "ConflictingGroupWarning",
    "Diagnostic",
    "DuplicateReferenceWarning",
    "OrphanedReferenceWarning",
]
