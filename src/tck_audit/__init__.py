"""tck-audit: Specification assertion coverage for conformance test suites.

This package provides:
- load_audit_document / parse_audit_xml / parse_audit_yaml: Audit document parsing
- AuditDocument, AuditSection, AuditAssertion: The immutable section tree
- SpecReference, ReferenceIndex, load_references: Test-to-assertion claims
- ReconciliationEngine: Classifies every assertion as covered, uncovered or
  not implemented and collects orphaned references
- Aggregator: Own and cumulative coverage statistics per section
- ReportBuilder, CoverageReport: Render-ready report model
- run_audit / CoverageAuditor: The whole pipeline in one call

Example:
    >>> from tck_audit import load_audit_document, load_references, run_audit
    >>> loaded = load_audit_document(Path("test-audit.xml"))
    >>> report = run_audit(loaded.document, load_references(Path("references.json")))
    >>> report.summary_percentage
    87.5
"""

from __future__ import annotations

from tck_audit.aggregation import AggregationResult, Aggregator, SectionStats
from tck_audit.auditor import CoverageAuditor, run_audit
from tck_audit.config import AuditSettings, get_settings
from tck_audit.diagnostics import (
    ConflictingGroupWarning,
    DuplicateReferenceWarning,
    OrphanedReferenceWarning,
)
from tck_audit.errors import (
    AggregationInvariantError,
    AuditError,
    MalformedDocumentError,
    ParseError,
    ReferenceFileError,
)
from tck_audit.models import (
    AuditAssertion,
    AuditDocument,
    AuditSection,
    CoverageState,
    SpecReference,
)
from tck_audit.parser import (
    DocumentLoadResult,
    load_audit_document,
    parse_audit_document,
    parse_audit_xml,
    parse_audit_yaml,
)
from tck_audit.reconciliation import AssertionCoverage, ReconciliationEngine, ReconciliationResult
from tck_audit.references import ReferenceIndex, load_references, references_from_entries
from tck_audit.report import CoverageReport, ReportBuilder, SectionReport

__version__ = "0.1.0"

__all__: list[str] = [
    "__version__",
    # Models
    "AuditAssertion",
    "AuditDocument",
    "AuditSection",
    "CoverageState",
    "SpecReference",
    # Parsing
    "DocumentLoadResult",
    "load_audit_document",
    "parse_audit_document",
    "parse_audit_xml",
    "parse_audit_yaml",
    # References
    "ReferenceIndex",
    "load_references",
    "references_from_entries",
    # Reconciliation and aggregation
    "AssertionCoverage",
    "ReconciliationEngine",
    "ReconciliationResult",
    "AggregationResult",
    "Aggregator",
    "SectionStats",
    # Report
    "CoverageReport",
    "ReportBuilder",
    "SectionReport",
    "CoverageAuditor",
    "run_audit",
    # Diagnostics
    "ConflictingGroupWarning",
    "DuplicateReferenceWarning",
    "OrphanedReferenceWarning",
    # Config
    "AuditSettings",
    "get_settings",
    # Errors
    "AggregationInvariantError",
    "AuditError",
    "MalformedDocumentError",
    "ParseError",
    "ReferenceFileError",
]
