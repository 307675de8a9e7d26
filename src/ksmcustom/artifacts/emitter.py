"""
Artifact emitter: descriptors in, a consistent metrics/rules pair out.

``ArtifactEmitter.emit()`` runs the whole synthesis pass:

1. One metric family per resource descriptor (in input order)
2. The requested alert rules (or the default set)
3. Assembly into a ``CustomResourceStateMetrics`` document and a rule
   group document
4. A consistency check of the pair; any issue raises
   ``ArtifactConsistencyError`` and nothing is returned

Rendering never sorts keys, so identical input renders byte-identical
output.

Usage::

    from ksmcustom.artifacts.emitter import ArtifactEmitter

    emitter = ArtifactEmitter()
    bundle = emitter.emit(descriptors)
    metrics_yaml = emitter.render(bundle.metrics)
    rules_yaml = emitter.render(bundle.rules)
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Iterable, Literal, Optional, Sequence, Union

import yaml
from pydantic import BaseModel

from ksmcustom.alerts.composer import AlertComposer
from ksmcustom.alerts.schema import AlertRule
from ksmcustom.artifacts.consistency import (
    ArtifactConsistencyError,
    ConsistencyChecker,
    ConsistencyResult,
)
from ksmcustom.artifacts.schema import (
    CustomResourceStateMetrics,
    GroupVersionKind,
    Metric,
    MetricEach,
    ObjectMeta,
    PrometheusRule,
    Resource,
    ResourceList,
    Rule,
    RuleGroup,
    RuleGroups,
    StateSet,
)
from ksmcustom.config import KsmCustomConfig, get_config
from ksmcustom.metrics.schema import MetricDefinition, MetricFamily
from ksmcustom.metrics.synthesizer import MetricSynthesizer
from ksmcustom.metrics.taxonomy import DEFAULT_TAXONOMY, ConditionTaxonomy
from ksmcustom.models import AlertDeclaration, GeneratorInput, ResourceDescriptor
from ksmcustom.otel import emit_consistency_violation, emit_generation_result

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ArtifactBundle:
    """A consistent pair of emitted documents."""

    metrics: CustomResourceStateMetrics
    rules: Union[RuleGroups, PrometheusRule]
    families: tuple[MetricFamily, ...]
    alerts: tuple[AlertRule, ...]
    consistency: ConsistencyResult


def _metric_document(metric: MetricDefinition) -> Metric:
    return Metric(
        name=metric.name,
        help=metric.help,
        each=MetricEach(
            type=metric.kind,
            state_set=StateSet(
                label_name=metric.label_name,
                path=metric.path,
                values=list(metric.enumerated_values),
            ),
        ),
    )


def build_metrics_document(families: Iterable[MetricFamily]) -> CustomResourceStateMetrics:
    """Assemble metric families into a kube-state-metrics configuration."""
    resources = [
        Resource(
            group_version_kind=GroupVersionKind(
                group=family.descriptor.group,
                version=family.descriptor.version,
                kind=family.descriptor.kind,
            ),
            labels_from_path=dict(family.labels_from_path),
            metric_name_prefix=family.metric_name_prefix,
            metrics=[_metric_document(m) for m in family.metrics],
        )
        for family in families
    ]
    return CustomResourceStateMetrics(spec=ResourceList(resources=resources))


def build_rule_group(name: str, alerts: Iterable[AlertRule]) -> RuleGroups:
    """Assemble alert rules into a single named rule group."""
    rules = [
        Rule(
            alert=alert.alert_name,
            expr=alert.expression,
            pending_for=alert.pending_for,
            labels=dict(alert.labels),
            annotations=dict(alert.annotations),
        )
        for alert in alerts
    ]
    return RuleGroups(groups=[RuleGroup(name=name, rules=rules)])


class ArtifactEmitter:
    """Builds and renders the metrics configuration and its alert rules.

    Args:
        config: Settings to use (defaults to ``get_config()``).
        taxonomy: Condition catalog shared by synthesizer and composer.
    """

    def __init__(
        self,
        config: Optional[KsmCustomConfig] = None,
        taxonomy: ConditionTaxonomy = DEFAULT_TAXONOMY,
    ) -> None:
        self.config = config or get_config()
        self.synthesizer = MetricSynthesizer(
            taxonomy=taxonomy,
            metric_name_prefix=self.config.metric_name_prefix,
        )
        self.composer = AlertComposer(
            taxonomy=taxonomy,
            metric_name_prefix=self.config.metric_name_prefix,
            severity=self.config.alert_severity,
        )
        self.checker = ConsistencyChecker()

    def _wrap_rules(self, groups: RuleGroups) -> Union[RuleGroups, PrometheusRule]:
        if self.config.rules_format == "prometheusrule":
            return PrometheusRule(
                metadata=ObjectMeta(
                    name=self.config.prometheus_rule_name,
                    namespace=self.config.prometheus_rule_namespace,
                ),
                spec=groups,
            )
        return groups

    def compose_alerts(
        self, declarations: Optional[Sequence[AlertDeclaration]] = None
    ) -> list[AlertRule]:
        """Build the declared alerts, or the default set when none are declared."""
        default_for = self.config.default_pending_for
        if declarations is None:
            return self.composer.default_alerts(pending_for=default_for)
        return [self.composer.compose(d, default_pending_for=default_for) for d in declarations]

    def emit(
        self,
        descriptors: Sequence[ResourceDescriptor],
        alerts: Optional[Sequence[AlertDeclaration]] = None,
    ) -> ArtifactBundle:
        """Synthesize, compose, assemble and check both artifacts.

        Args:
            descriptors: Resources to generate metrics for, in output order.
            alerts: Alerts to build; the default set when None.

        Raises:
            ValueError: If ``descriptors`` is empty or has duplicates.
            UnknownConditionTypeError, InvalidAlertReasonError,
            InvalidDurationError: On authoring errors.
            ArtifactConsistencyError: If the assembled pair is inconsistent.
        """
        descriptors = list(descriptors)
        if not descriptors:
            raise ValueError("At least one resource descriptor is required")
        if len(set(descriptors)) != len(descriptors):
            raise ValueError("Resource descriptors must be unique")

        families = tuple(self.synthesizer.synthesize_family(d) for d in descriptors)
        rules = tuple(self.compose_alerts(alerts))

        metrics_doc = build_metrics_document(families)
        rules_doc = self._wrap_rules(build_rule_group(self.config.rule_group_name, rules))

        result = self.checker.check(metrics_doc, rules_doc)
        emit_generation_result(len(descriptors), result)
        if not result.passed:
            for issue in result.issues:
                emit_consistency_violation(issue)
            raise ArtifactConsistencyError(result)

        logger.info(
            "Generated %d metric(s) for %d resource(s) and %d alert rule(s)",
            sum(len(f.metrics) for f in families),
            len(families),
            len(rules),
        )
        return ArtifactBundle(
            metrics=metrics_doc,
            rules=rules_doc,
            families=families,
            alerts=rules,
            consistency=result,
        )

    def emit_input(self, generator_input: GeneratorInput) -> ArtifactBundle:
        """``emit()`` for a loaded input file."""
        return self.emit(generator_input.resources, generator_input.alerts)

    def render(
        self,
        document: BaseModel,
        fmt: Optional[Literal["yaml", "json"]] = None,
    ) -> str:
        """Serialize ``document`` deterministically (insertion order, no key sorting)."""
        fmt = fmt or self.config.output_format
        return render_document(document, fmt)


def render_document(document: BaseModel, fmt: Literal["yaml", "json"] = "yaml") -> str:
    """Serialize a document model as YAML or JSON."""
    data = document.model_dump(by_alias=True, exclude_none=True, mode="json")
    if fmt == "json":
        return json.dumps(data, indent=2) + "\n"
    if fmt == "yaml":
        return yaml.safe_dump(data, sort_keys=False, default_flow_style=False, width=1000)
    raise ValueError(f"Unsupported output format: {fmt}")
