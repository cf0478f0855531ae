"""Logging and tracing for tck-audit.

- configure_logging / add_trace_context: structlog setup with trace correlation
- traced / get_tracer: OpenTelemetry spans around pipeline stages
"""

from __future__ import annotations

from tck_audit.telemetry.logging import add_trace_context, configure_logging
from tck_audit.telemetry.tracing import TRACER_NAME, get_tracer, reset_tracer, traced

__all__: list[str] = [
    "TRACER_NAME",
    "add_trace_context",
    "configure_logging",
    "get_tracer",
    "reset_tracer",
    "traced",
]
