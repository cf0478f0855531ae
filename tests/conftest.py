"""Root-level test configuration for tck-audit.

Shared fixtures: a small audit document (XML and YAML flavours) and a
reference factory.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from pathlib import Path

import pytest
import structlog

from tck_audit.models import AuditAssertion, AuditDocument, AuditSection, SpecReference
from tck_audit.telemetry import reset_tracer

SAMPLE_AUDIT_XML = """\
<?xml version="1.0" encoding="UTF-8"?>
<specification name="CDI" version="1.0">
  <section id="4" title="Inheritance and specialization" level="1">
    <assertion id="a">
      <text>A bean class may inherit type-level metadata.</text>
    </assertion>
  </section>
  <section id="4.2" title="Decorators" level="2">
    <assertion id="a">
      <text>A decorator must be resolved.</text>
    </assertion>
    <assertion id="b" testable="false">
      <text>Decorators are informative here.</text>
      <note>Documentation only</note>
    </assertion>
    <group>
      <text>Decorator chains</text>
      <assertion id="c">
        <text>Decorators are called in order.</text>
      </assertion>
    </group>
  </section>
  <section id="5" title="Scopes" level="1">
    <assertion id="a">
      <text>Every bean has a scope.</text>
    </assertion>
  </section>
</specification>
"""

SAMPLE_AUDIT_YAML = """\
name: CDI
version: "1.0"
sections:
  - id: "4"
    title: Inheritance and specialization
    assertions:
      - id: a
        text: A bean class may inherit type-level metadata.
    sections:
      - id: "4.2"
        title: Decorators
        assertions:
          - id: a
            text: A decorator must be resolved.
          - id: b
            text: Decorators are informative here.
            testable: false
            note: Documentation only
        groups:
          - text: Decorator chains
            assertions:
              - id: c
                text: Decorators are called in order.
  - id: "5"
    title: Scopes
    assertions:
      - id: a
        text: Every bean has a scope.
"""


@pytest.fixture(autouse=True)
def _reset_telemetry() -> Iterator[None]:
    """Reset cached tracers and structlog configuration between tests."""
    yield
    reset_tracer()
    structlog.reset_defaults()


@pytest.fixture
def sample_audit_xml() -> str:
    """XML audit document with sections 4, 4.2 (child of 4) and 5."""
    return SAMPLE_AUDIT_XML


@pytest.fixture
def sample_audit_yaml() -> str:
    """YAML audit document equivalent to sample_audit_xml."""
    return SAMPLE_AUDIT_YAML


@pytest.fixture
def audit_file(tmp_path: Path, sample_audit_xml: str) -> Path:
    """Sample XML audit document written to disk."""
    path = tmp_path / "test-audit.xml"
    path.write_text(sample_audit_xml, encoding="utf-8")
    return path


@pytest.fixture
def sample_document() -> AuditDocument:
    """The sample document built directly from models."""
    return AuditDocument.from_sections(
        [
            AuditSection(
                id="4",
                title="Inheritance and specialization",
                level=1,
                child_ids=("4.2",),
                assertions=(
                    AuditAssertion(id="a", section_id="4", text="A bean class may inherit type-level metadata."),
                ),
            ),
            AuditSection(
                id="4.2",
                title="Decorators",
                level=2,
                parent_id="4",
                assertions=(
                    AuditAssertion(id="a", section_id="4.2", text="A decorator must be resolved."),
                    AuditAssertion(
                        id="b",
                        section_id="4.2",
                        text="Decorators are informative here.",
                        testable=False,
                        note="Documentation only",
                    ),
                    AuditAssertion(
                        id="c",
                        section_id="4.2",
                        text="Decorators are called in order.",
                        group_text="Decorator chains",
                    ),
                ),
            ),
            AuditSection(
                id="5",
                title="Scopes",
                level=1,
                assertions=(AuditAssertion(id="a", section_id="5", text="Every bean has a scope."),),
            ),
        ],
        name="CDI",
        version="1.0",
    )


@pytest.fixture
def make_reference() -> Callable[..., SpecReference]:
    """Factory for SpecReferences with sensible defaults."""

    def _make(
        section: str,
        assertion: str,
        method: str = "testSomething",
        *,
        cls: str = "DecoratorTest",
        package: str = "org.example.tck",
        groups: tuple[str, ...] = (),
    ) -> SpecReference:
        return SpecReference(
            package_name=package,
            class_name=cls,
            method_name=method,
            section=section,
            assertion=assertion,
            groups=frozenset(groups),
        )

    return _make
