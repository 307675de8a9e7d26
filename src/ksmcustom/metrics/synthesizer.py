"""
Metric synthesizer: condition taxonomy -> StateSet metric definitions.

For every condition type ``K`` two metrics are generated:

- ``status_<k>_reason`` with label ``reason`` over
  ``[status, conditions, [type=K], reason]``, enumerating K's reasons
- ``status_<k>`` with label ``status`` over
  ``[status, conditions, [type=K], status]``, enumerating ``True``/``False``

All reason metrics come first (in registry order), then all status
metrics.  Downstream snapshot and documentation consumers rely on this
order.

``metric_name()`` is the only place metric names are derived; the alert
composer calls it too, so alert expressions always reference metrics that
exist.

Usage::

    from ksmcustom.metrics.synthesizer import MetricSynthesizer

    family = MetricSynthesizer().synthesize_family(descriptor)
    [m.name for m in family.metrics]
    # ["status_synced_reason", "status_ready_reason", "status_synced", "status_ready"]
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional, Union

from ksmcustom.config import DEFAULT_METRIC_NAME_PREFIX, METRIC_NAME_PATTERN
from ksmcustom.metrics.path import PathSelector, build_condition_path
from ksmcustom.metrics.schema import MetricDefinition, MetricFamily
from ksmcustom.metrics.taxonomy import (
    DEFAULT_TAXONOMY,
    STATUS_VALUES,
    ConditionField,
    ConditionTaxonomy,
    ConditionType,
)
from ksmcustom.models import ResourceDescriptor

logger = logging.getLogger(__name__)

# Identity labels every family extracts from the resource metadata.
IDENTITY_LABELS: dict[str, tuple[str, ...]] = {
    "name": ("metadata", "name"),
    "namespace": ("metadata", "namespace"),
}


def metric_name(
    condition_type: Union[ConditionType, str],
    field: Union[ConditionField, str],
) -> str:
    """Derive the metric name for a condition type and field.

    ``status_<lower(type)>`` for the status field and
    ``status_<lower(type)>_reason`` for the reason field.
    """
    field = ConditionField(field)
    type_name = condition_type.value if isinstance(condition_type, ConditionType) else condition_type
    name = f"status_{type_name.lower()}"
    if field is ConditionField.REASON:
        name += "_reason"
    return name


def qualified_metric_name(prefix: str, name: str) -> str:
    """Series name as exposed by kube-state-metrics (``<prefix>_<name>``)."""
    return f"{prefix}_{name}" if prefix else name


class MetricSynthesizer:
    """Expands a condition taxonomy into metric definitions per resource.

    Args:
        taxonomy: Condition catalog to expand.
        metric_name_prefix: ``metricNamePrefix`` shared by every family.
    """

    def __init__(
        self,
        taxonomy: ConditionTaxonomy = DEFAULT_TAXONOMY,
        metric_name_prefix: str = DEFAULT_METRIC_NAME_PREFIX,
    ) -> None:
        if not METRIC_NAME_PATTERN.match(metric_name_prefix):
            raise ValueError(f"Invalid metric name prefix: {metric_name_prefix!r}")
        self._taxonomy = taxonomy
        self._prefix = metric_name_prefix

    @property
    def taxonomy(self) -> ConditionTaxonomy:
        return self._taxonomy

    @property
    def metric_name_prefix(self) -> str:
        return self._prefix

    def _selected_types(
        self, condition_types: Optional[Iterable[Union[ConditionType, str]]]
    ) -> list[str]:
        if condition_types is None:
            return list(self._taxonomy.condition_types)
        if isinstance(condition_types, str):
            raise TypeError(
                f"condition_types must be an iterable of names, not a string: {condition_types!r}"
            )
        # Registry order wins over caller order; unknown names fail here.
        requested = {self._taxonomy.require(k) for k in condition_types}
        if not requested:
            raise ValueError("condition_types selects no condition type")
        return [k for k in self._taxonomy.condition_types if k in requested]

    def reason_metric(self, condition_type: Union[ConditionType, str]) -> MetricDefinition:
        """StateSet metric over the reason of ``condition_type``."""
        name = self._taxonomy.require(condition_type)
        return MetricDefinition(
            name=metric_name(name, ConditionField.REASON),
            help=f"Reason of the {name} condition of the resource.",
            label_name=ConditionField.REASON.value,
            path=build_condition_path(ConditionField.REASON, name),
            enumerated_values=self._taxonomy.reasons(name),
            condition_type=name,
            field=ConditionField.REASON,
        )

    def status_metric(self, condition_type: Union[ConditionType, str]) -> MetricDefinition:
        """StateSet metric over the status of ``condition_type``."""
        name = self._taxonomy.require(condition_type)
        return MetricDefinition(
            name=metric_name(name, ConditionField.STATUS),
            help=f"Status of the {name} condition of the resource.",
            label_name=ConditionField.STATUS.value,
            path=build_condition_path(ConditionField.STATUS, name),
            enumerated_values=STATUS_VALUES,
            condition_type=name,
            field=ConditionField.STATUS,
        )

    def synthesize(
        self,
        descriptor: ResourceDescriptor,
        condition_types: Optional[Iterable[Union[ConditionType, str]]] = None,
    ) -> tuple[MetricDefinition, ...]:
        """Generate the metric definitions for ``descriptor``.

        Args:
            descriptor: Resource the metrics observe.
            condition_types: Optional subset of registered condition types.

        Returns:
            All reason metrics followed by all status metrics.

        Raises:
            UnknownConditionTypeError: If a requested type is not registered.
        """
        selected = self._selected_types(condition_types)
        metrics = [self.reason_metric(k) for k in selected]
        metrics.extend(self.status_metric(k) for k in selected)
        logger.debug(
            "Synthesized %d metrics for %s: %s",
            len(metrics),
            descriptor,
            ", ".join(m.name for m in metrics),
        )
        return tuple(metrics)

    def synthesize_family(
        self,
        descriptor: ResourceDescriptor,
        condition_types: Optional[Iterable[Union[ConditionType, str]]] = None,
    ) -> MetricFamily:
        """Generate the full metric family (labels, prefix, metrics) for ``descriptor``."""
        return MetricFamily(
            descriptor=descriptor,
            metric_name_prefix=self._prefix,
            labels_from_path={
                label: PathSelector.model_validate(list(path))
                for label, path in IDENTITY_LABELS.items()
            },
            metrics=self.synthesize(descriptor, condition_types),
        )


def synthesize(
    descriptor: ResourceDescriptor,
    taxonomy: ConditionTaxonomy = DEFAULT_TAXONOMY,
) -> tuple[MetricDefinition, ...]:
    """Generate metric definitions for ``descriptor`` with the default prefix."""
    return MetricSynthesizer(taxonomy).synthesize(descriptor)
