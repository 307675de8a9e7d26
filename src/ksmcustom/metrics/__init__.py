"""
Metric synthesis: condition taxonomy and path selectors to StateSet metrics.

Public API::

    from ksmcustom.metrics import (
        # Taxonomy
        ConditionType,
        ConditionField,
        ConditionReason,
        ConditionTaxonomy,
        DEFAULT_TAXONOMY,
        STATUS_VALUES,
        NOT_READY_REASONS,
        UnknownConditionTypeError,
        # Paths
        FieldSegment,
        PredicateSegment,
        PathSelector,
        build_condition_path,
        # Schema
        MetricDefinition,
        MetricFamily,
        # Synthesizer
        MetricSynthesizer,
        metric_name,
        qualified_metric_name,
        synthesize,
    )
"""

from ksmcustom.metrics.path import (
    FieldSegment,
    PathSelector,
    PredicateSegment,
    build_condition_path,
)
from ksmcustom.metrics.schema import MetricDefinition, MetricFamily
from ksmcustom.metrics.synthesizer import (
    MetricSynthesizer,
    metric_name,
    qualified_metric_name,
    synthesize,
)
from ksmcustom.metrics.taxonomy import (
    DEFAULT_TAXONOMY,
    NOT_READY_REASONS,
    STATUS_VALUES,
    ConditionField,
    ConditionReason,
    ConditionTaxonomy,
    ConditionType,
    UnknownConditionTypeError,
)

__all__ = [
    # Taxonomy
    "ConditionType",
    "ConditionField",
    "ConditionReason",
    "ConditionTaxonomy",
    "DEFAULT_TAXONOMY",
    "STATUS_VALUES",
    "NOT_READY_REASONS",
    "UnknownConditionTypeError",
    # Paths
    "FieldSegment",
    "PredicateSegment",
    "PathSelector",
    "build_condition_path",
    # Schema
    "MetricDefinition",
    "MetricFamily",
    # Synthesizer
    "MetricSynthesizer",
    "metric_name",
    "qualified_metric_name",
    "synthesize",
]
