"""
Cross-artifact consistency check.

The rule group is only meaningful if every series its expressions select
is produced by the metrics configuration.  ``ConsistencyChecker`` reads
the PromQL of each rule back (it does not trust the emitter) and checks:

- every selected metric is defined by some resource (``unknown_metric``)
- every label used in a matcher or in a ``by``/``on``/``group_left``
  clause is carried by the selected metrics (``unknown_label``)
- every value matched against a StateSet label is one of the metric's
  enumerated values, and every regex matches at least one of them
  (``unknown_value``)
- every regex matcher only uses syntax the Prometheus regex engine (RE2)
  accepts (``unsupported_regex``)
- every rule joins exactly one status metric with the reason metric of
  the same condition type (``mismatched_pair``)
- no resource defines the same metric twice (``duplicate_metric``)

Follows the validator + structured result pattern used elsewhere in the
package.

Usage::

    from ksmcustom.artifacts.consistency import ConsistencyChecker

    result = ConsistencyChecker().check(bundle.metrics, bundle.rules)
    if not result.passed:
        for issue in result.issues:
            print(issue.message)
"""

from __future__ import annotations

import logging
import re
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from ksmcustom.artifacts.schema import (
    CustomResourceStateMetrics,
    PrometheusRule,
    Rule,
    RuleGroups,
)
from ksmcustom.alerts.composer import re2_unsupported
from ksmcustom.metrics.path import FieldSegment, PathSelector
from ksmcustom.metrics.synthesizer import qualified_metric_name
from ksmcustom.metrics.taxonomy import ConditionField

logger = logging.getLogger(__name__)

# kube-state-metrics uses this prefix when metricNamePrefix is unset.
KSM_DEFAULT_PREFIX = "kube_customresource"

# Labels kube-state-metrics adds to every custom resource metric.
KSM_RESOURCE_LABELS: frozenset[str] = frozenset(
    {"customresource_group", "customresource_version", "customresource_kind"}
)

# Labels attached outside kube-state-metrics (scrape config, federation).
EXTERNAL_LABELS: frozenset[str] = frozenset({"cluster"})

_PROMQL_KEYWORDS: frozenset[str] = frozenset({
    "and", "or", "unless", "bool", "offset", "by", "without", "on", "ignoring",
    "group_left", "group_right", "inf", "nan",
})

_GROUPING_RE = re.compile(
    r"\b(?P<clause>by|without|on|ignoring|group_left|group_right)\s*\((?P<labels>[^)]*)\)"
)
_STRING = r'"(?:[^"\\]|\\.)*"'
_TOKEN_RE = re.compile(
    rf"(?P<string>{_STRING})"
    rf"|(?<![\w.:])(?P<ident>[a-zA-Z_:][a-zA-Z0-9_:]*)\s*"
    rf"(?P<block>\{{(?P<matchers>(?:[^}}\"]|{_STRING})*)\}})?"
    rf"(?P<call>\s*\()?"
)
_MATCHER_RE = re.compile(
    rf"\s*(?P<label>[a-zA-Z_][a-zA-Z0-9_]*)\s*(?P<op>=~|!~|!=|=)\s*(?P<value>{_STRING})\s*,?"
)


class ConsistencyError(Exception):
    """Raised when a rule expression cannot be parsed for checking."""


class ArtifactConsistencyError(Exception):
    """Raised when emitted metrics and rules do not agree."""

    def __init__(self, result: "ConsistencyResult") -> None:
        self.result = result
        details = "; ".join(issue.message for issue in result.issues)
        super().__init__(
            f"Artifacts are inconsistent ({len(result.issues)} issue(s)): {details}"
        )


# ---------------------------------------------------------------------------
# Result models
# ---------------------------------------------------------------------------


class ConsistencyIssue(BaseModel):
    """One mismatch between the rule group and the metrics configuration."""

    model_config = ConfigDict(extra="forbid")

    kind: Literal[
        "unknown_metric",
        "unknown_label",
        "unknown_value",
        "unsupported_regex",
        "mismatched_pair",
        "duplicate_metric",
    ]
    alert: Optional[str] = Field(None, description="Offending rule, if any")
    metric: Optional[str] = Field(None, description="Offending metric, if any")
    message: str


class ConsistencyResult(BaseModel):
    """Aggregated result of a consistency check."""

    model_config = ConfigDict(extra="forbid")

    passed: bool
    total_rules: int
    total_metrics: int
    issues: list[ConsistencyIssue] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Expression parsing
# ---------------------------------------------------------------------------


class LabelMatcher(BaseModel):
    model_config = ConfigDict(frozen=True)

    label: str
    op: Literal["=", "!=", "=~", "!~"]
    value: str


class VectorSelector(BaseModel):
    model_config = ConfigDict(frozen=True)

    metric: str
    matchers: tuple[LabelMatcher, ...] = ()


def _unquote(literal: str) -> str:
    return re.sub(r"\\(.)", r"\1", literal[1:-1])


def _parse_matchers(text: str) -> tuple[LabelMatcher, ...]:
    matchers = []
    pos = 0
    text = text.strip()
    while pos < len(text):
        match = _MATCHER_RE.match(text, pos)
        if not match:
            raise ConsistencyError(f"Cannot parse label matchers: {{{text}}}")
        matchers.append(
            LabelMatcher(
                label=match.group("label"),
                op=match.group("op"),
                value=_unquote(match.group("value")),
            )
        )
        pos = match.end()
    return tuple(matchers)


def parse_selectors(expr: str) -> list[VectorSelector]:
    """Extract the instant vector selectors of a PromQL expression.

    Covers the subset of PromQL the composer emits (aggregations,
    binary operators, vector matching); it is not a general parser.
    """
    stripped = _GROUPING_RE.sub(" ", expr)
    selectors = []
    for token in _TOKEN_RE.finditer(stripped):
        ident = token.group("ident")
        if ident is None or token.group("call") or ident.lower() in _PROMQL_KEYWORDS:
            continue
        matchers = _parse_matchers(token.group("matchers") or "")
        selectors.append(VectorSelector(metric=ident, matchers=matchers))
    return selectors


def grouping_labels(expr: str) -> list[str]:
    """Labels named in ``by``/``on``/``group_left`` (and similar) clauses."""
    labels: list[str] = []
    for clause in _GROUPING_RE.finditer(expr):
        labels.extend(l.strip() for l in clause.group("labels").split(",") if l.strip())
    return labels


# ---------------------------------------------------------------------------
# Checker
# ---------------------------------------------------------------------------


class _MetricIndex:
    """Qualified metric name -> carried labels, state-set values and role.

    The role is the ``(condition type, field)`` pair read from the
    StateSet path, e.g. ``("Ready", "reason")`` for
    ``[status, conditions, [type=Ready], reason]``; either side is None
    when the path does not have that shape.
    """

    def __init__(self) -> None:
        self.labels: dict[str, set[str]] = {}
        self.state_label: dict[str, str] = {}
        self.values: dict[str, list[str]] = {}
        self.roles: dict[str, tuple[Optional[str], Optional[str]]] = {}

    def add(
        self,
        name: str,
        labels: set[str],
        state_label: str,
        values: list[str],
        path: PathSelector,
    ) -> None:
        self.labels.setdefault(name, set()).update(labels | {state_label})
        self.state_label.setdefault(name, state_label)
        known = self.values.setdefault(name, [])
        known.extend(v for v in values if v not in known)
        self.roles.setdefault(name, _path_role(path))


_CONDITION_FIELDS = frozenset(f.value for f in ConditionField)


def _path_role(path: PathSelector) -> tuple[Optional[str], Optional[str]]:
    predicates = path.predicates
    condition_type = predicates[0].value if len(predicates) == 1 else None
    leaf = path.segments[-1]
    field = (
        leaf.name
        if isinstance(leaf, FieldSegment) and leaf.name in _CONDITION_FIELDS
        else None
    )
    return condition_type, field


class ConsistencyChecker:
    """Checks a rule group against the metrics configuration it queries."""

    def _index(
        self, metrics_doc: CustomResourceStateMetrics, issues: list[ConsistencyIssue]
    ) -> _MetricIndex:
        index = _MetricIndex()
        for resource in metrics_doc.spec.resources:
            prefix = resource.metric_name_prefix
            if prefix is None:
                prefix = KSM_DEFAULT_PREFIX
            base_labels = set(resource.labels_from_path) | KSM_RESOURCE_LABELS
            seen: set[str] = set()
            for metric in resource.metrics:
                name = qualified_metric_name(prefix, metric.name)
                if name in seen:
                    issues.append(ConsistencyIssue(
                        kind="duplicate_metric",
                        metric=name,
                        message=(
                            f"Metric '{name}' is defined twice for "
                            f"{resource.group_version_kind.kind}"
                        ),
                    ))
                seen.add(name)
                state_set = metric.each.state_set
                index.add(
                    name, base_labels, state_set.label_name, state_set.values, state_set.path
                )
        return index

    def _check_rule(
        self, rule: Rule, index: _MetricIndex, issues: list[ConsistencyIssue]
    ) -> None:
        try:
            selectors = parse_selectors(rule.expr)
        except ConsistencyError as e:
            raise ConsistencyError(f"Rule '{rule.alert}': {e}") from e

        carried: set[str] = set(EXTERNAL_LABELS)
        all_known = True
        for selector in selectors:
            if selector.metric not in index.labels:
                all_known = False
                issues.append(ConsistencyIssue(
                    kind="unknown_metric",
                    alert=rule.alert,
                    metric=selector.metric,
                    message=f"Rule '{rule.alert}' references undefined metric '{selector.metric}'",
                ))
                continue
            labels = index.labels[selector.metric] | EXTERNAL_LABELS
            carried |= labels
            for matcher in selector.matchers:
                self._check_matcher(rule, selector.metric, matcher, labels, index, issues)

        if not all_known:
            # Label and pairing checks are meaningless against an undefined metric.
            return
        self._check_pair(rule, selectors, index, issues)
        for label in grouping_labels(rule.expr):
            if label not in carried:
                issues.append(ConsistencyIssue(
                    kind="unknown_label",
                    alert=rule.alert,
                    message=(
                        f"Rule '{rule.alert}' groups or joins on label '{label}' "
                        "that none of its metrics carry"
                    ),
                ))

    @staticmethod
    def _check_pair(
        rule: Rule,
        selectors: list[VectorSelector],
        index: _MetricIndex,
        issues: list[ConsistencyIssue],
    ) -> None:
        """A rule joins one status metric with the reason metric of the same type."""
        roles = [index.roles[s.metric] for s in selectors]
        status_types = [t for t, f in roles if f == ConditionField.STATUS.value]
        reason_types = [t for t, f in roles if f == ConditionField.REASON.value]
        if (
            len(status_types) == 1
            and len(reason_types) == 1
            and len(roles) == 2
            and status_types[0] is not None
            and status_types[0] == reason_types[0]
        ):
            return
        metrics = ", ".join(s.metric for s in selectors) or "none"
        issues.append(ConsistencyIssue(
            kind="mismatched_pair",
            alert=rule.alert,
            message=(
                f"Rule '{rule.alert}' must join one status metric with the reason "
                f"metric of the same condition type, got: {metrics}"
            ),
        ))

    @staticmethod
    def _check_matcher(
        rule: Rule,
        metric: str,
        matcher: LabelMatcher,
        labels: set[str],
        index: _MetricIndex,
        issues: list[ConsistencyIssue],
    ) -> None:
        if matcher.label not in labels:
            issues.append(ConsistencyIssue(
                kind="unknown_label",
                alert=rule.alert,
                metric=metric,
                message=(
                    f"Rule '{rule.alert}' matches label '{matcher.label}' "
                    f"which metric '{metric}' does not carry"
                ),
            ))
            return

        compiled = None
        if matcher.op in ("=~", "!~"):
            try:
                compiled = re.compile(matcher.value)
            except re.error:
                compiled = None
            else:
                construct = re2_unsupported(matcher.value)
                if construct is not None:
                    issues.append(ConsistencyIssue(
                        kind="unsupported_regex",
                        alert=rule.alert,
                        metric=metric,
                        message=(
                            f"Rule '{rule.alert}' matches {matcher.label}{matcher.op}"
                            f"\"{matcher.value}\" using a {construct}, which the "
                            "Prometheus regex engine (RE2) rejects"
                        ),
                    ))
                    return

        if matcher.label != index.state_label[metric] or matcher.op not in ("=", "=~"):
            return

        values = index.values[metric]
        if matcher.op == "=":
            ok = matcher.value in values
        else:
            ok = compiled is not None and any(compiled.fullmatch(v) for v in values)
        if not ok:
            issues.append(ConsistencyIssue(
                kind="unknown_value",
                alert=rule.alert,
                metric=metric,
                message=(
                    f"Rule '{rule.alert}' matches {matcher.label}{matcher.op}\"{matcher.value}\" "
                    f"but '{metric}' only enumerates {', '.join(values)}"
                ),
            ))

    def check(
        self,
        metrics_doc: CustomResourceStateMetrics,
        rules_doc: Union[RuleGroups, PrometheusRule],
    ) -> ConsistencyResult:
        """Check every rule of ``rules_doc`` against ``metrics_doc``.

        Raises:
            ConsistencyError: If a rule expression cannot be parsed.
        """
        groups = rules_doc.spec if isinstance(rules_doc, PrometheusRule) else rules_doc
        issues: list[ConsistencyIssue] = []
        index = self._index(metrics_doc, issues)

        total_rules = 0
        for group in groups.groups:
            for rule in group.rules:
                total_rules += 1
                self._check_rule(rule, index, issues)

        result = ConsistencyResult(
            passed=not issues,
            total_rules=total_rules,
            total_metrics=len(index.labels),
            issues=issues,
        )
        if result.passed:
            logger.debug(
                "Consistency check passed: %d rule(s) against %d metric(s)",
                total_rules,
                result.total_metrics,
            )
        else:
            logger.warning(
                "Consistency check FAILED: %d issue(s) across %d rule(s)",
                len(issues),
                total_rules,
            )
        return result
