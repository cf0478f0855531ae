"""OpenTelemetry instrumentation for audit pipeline stages.

This module provides a cached tracer and the @traced decorator that wraps
each pipeline stage (parse, index, reconcile, aggregate, build) in a span.
Only the OpenTelemetry API is used: spans go to whatever tracer provider
the host application configured, or to a no-op tracer otherwise.

Example:
    >>> from tck_audit.telemetry.tracing import traced
    >>>
    >>> @traced(operation_name="tck_audit.reconcile")
    ... def reconcile(document, index): ...
"""

from __future__ import annotations

import functools
import threading
from typing import TYPE_CHECKING, Any, ParamSpec, TypeVar, overload

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

if TYPE_CHECKING:
    from collections.abc import Callable

    from opentelemetry.trace import Tracer

P = ParamSpec("P")
R = TypeVar("R")

TRACER_NAME = "tck-audit"
"""OpenTelemetry instrumentation library name."""

OPERATION_ATTRIBUTE = "tck_audit.operation"

_tracers: dict[str, Tracer] = {}
_lock = threading.Lock()


def get_tracer(name: str = TRACER_NAME) -> Tracer:
    """Get or create the cached tracer for a name.

    Args:
        name: Instrumentation library name.

    Returns:
        Tracer from the global tracer provider.
    """
    if name in _tracers:
        return _tracers[name]
    with _lock:
        if name not in _tracers:
            _tracers[name] = trace.get_tracer(name)
        return _tracers[name]


def reset_tracer() -> None:
    """Clear cached tracers (test isolation)."""
    with _lock:
        _tracers.clear()


@overload
def traced(
    func: Callable[P, R],
    *,
    operation_name: str | None = ...,
    attributes_fn: Callable[..., dict[str, Any]] | None = ...,
) -> Callable[P, R]: ...


@overload
def traced(
    func: None = ...,
    *,
    operation_name: str | None = ...,
    attributes_fn: Callable[..., dict[str, Any]] | None = ...,
) -> Callable[[Callable[P, R]], Callable[P, R]]: ...


def traced(
    func: Callable[P, R] | None = None,
    *,
    operation_name: str | None = None,
    attributes_fn: Callable[..., dict[str, Any]] | None = None,
) -> Callable[P, R] | Callable[[Callable[P, R]], Callable[P, R]]:
    """Decorator creating an OpenTelemetry span around a function call.

    Can be used with or without parentheses. Exceptions are recorded on the
    span, which is marked as errored, and then re-raised unchanged.

    Args:
        func: The function to decorate (when used without parentheses).
        operation_name: Span name. Defaults to the function name.
        attributes_fn: Callable receiving the call arguments and returning
            span attributes.

    Returns:
        Decorated function that creates a span on each call.
    """

    def decorator(fn: Callable[P, R]) -> Callable[P, R]:
        @functools.wraps(fn)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            tracer = get_tracer()
            span_name = operation_name or fn.__name__

            with tracer.start_as_current_span(span_name) as span:
                span.set_attribute(OPERATION_ATTRIBUTE, fn.__name__)

                if attributes_fn:
                    for key, value in attributes_fn(*args, **kwargs).items():
                        span.set_attribute(key, value)

                try:
                    return fn(*args, **kwargs)
                except Exception as exc:
                    span.record_exception(exc)
                    span.set_status(Status(StatusCode.ERROR, str(exc)))
                    raise

        return wrapper

    if func is not None:
        return decorator(func)
    return decorator


__all__ = [
    "OPERATION_ATTRIBUTE",
    "TRACER_NAME",
    "get_tracer",
    "reset_tracer",
    "traced",
]
