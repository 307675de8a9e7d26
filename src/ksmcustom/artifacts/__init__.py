"""
Emitted documents, the emitter that builds them, and the consistency check.

Public API::

    from ksmcustom.artifacts import (
        ArtifactEmitter,
        ArtifactBundle,
        ConsistencyChecker,
        ConsistencyResult,
        ArtifactConsistencyError,
        CustomResourceStateMetrics,
        RuleGroups,
        PrometheusRule,
        render_document,
    )
"""

from ksmcustom.artifacts.consistency import (
    ArtifactConsistencyError,
    ConsistencyChecker,
    ConsistencyError,
    ConsistencyIssue,
    ConsistencyResult,
)
from ksmcustom.artifacts.emitter import (
    ArtifactBundle,
    ArtifactEmitter,
    build_metrics_document,
    build_rule_group,
    render_document,
)
from ksmcustom.artifacts.schema import (
    CustomResourceStateMetrics,
    PrometheusRule,
    RuleGroups,
)

__all__ = [
    "ArtifactEmitter",
    "ArtifactBundle",
    "build_metrics_document",
    "build_rule_group",
    "render_document",
    "ConsistencyChecker",
    "ConsistencyError",
    "ConsistencyIssue",
    "ConsistencyResult",
    "ArtifactConsistencyError",
    "CustomResourceStateMetrics",
    "RuleGroups",
    "PrometheusRule",
]
