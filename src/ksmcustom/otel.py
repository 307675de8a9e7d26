"""
OTel span event emission helpers for artifact generation.

Adds events to the current span when a caller (CI job, wrapper script)
traces the generation run.  Outside a recording span these are no-ops.

Usage::

    from ksmcustom.otel import emit_consistency_violation, emit_generation_result

    emit_generation_result(resource_count, result)
    for issue in result.issues:
        emit_consistency_violation(issue)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from opentelemetry import trace as otel_trace

if TYPE_CHECKING:
    from ksmcustom.artifacts.consistency import ConsistencyIssue, ConsistencyResult

logger = logging.getLogger(__name__)


def add_span_event(name: str, attributes: dict[str, str | int | float | bool]) -> None:
    """Add an event to the current OTel span if it is recording."""
    span = otel_trace.get_current_span()
    if span and span.is_recording():
        span.add_event(name=name, attributes=attributes)


def emit_generation_result(resource_count: int, result: "ConsistencyResult") -> None:
    """Emit a span event summarising one generation pass.

    Event name: ``ksmcustom.generation.complete``
    """
    attrs: dict[str, str | int | float | bool] = {
        "generation.resources": resource_count,
        "generation.metrics": result.total_metrics,
        "generation.rules": result.total_rules,
        "generation.consistent": result.passed,
        "generation.issues": len(result.issues),
    }
    add_span_event("ksmcustom.generation.complete", attrs)


def emit_consistency_violation(issue: "ConsistencyIssue") -> None:
    """Emit a span event for a single consistency issue.

    Event name: ``ksmcustom.consistency.violation``
    """
    attrs: dict[str, str | int | float | bool] = {
        "consistency.kind": issue.kind,
        "consistency.message": issue.message,
    }
    if issue.alert is not None:
        attrs["consistency.alert"] = issue.alert
    if issue.metric is not None:
        attrs["consistency.metric"] = issue.metric

    logger.warning("Consistency violation [%s] %s", issue.kind, issue.message)
    add_span_event("ksmcustom.consistency.violation", attrs)
