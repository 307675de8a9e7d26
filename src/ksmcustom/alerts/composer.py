"""
Alert composer: PromQL rules over the synthesized condition metrics.

Each alert joins a status metric with its reason counterpart::

    sum by (customresource_kind, name, namespace, cluster, status) (
      crossplane_status_ready{status="False"} == 1
    )
    * on (customresource_kind, name, namespace, cluster) group_left (reason)
    sum by (customresource_kind, name, namespace, cluster, reason) (
      crossplane_status_ready_reason{reason=~"Creating"} == 1
    )

The left side selects resources whose condition status is ``False``; the
``group_left`` join copies the active ``reason`` label onto the result.
The join relies on kube-state-metrics reporting at most one active
reason per resource at a time.  This composer cannot enforce that; a
second active reason makes the query fail with a many-to-many match
error rather than produce a wrong answer.

Metric names come from ``metric_name()``, the same function the
synthesizer uses, so every expression references metrics that exist.

Usage::

    from ksmcustom.alerts.composer import AlertComposer

    composer = AlertComposer()
    rule = composer.compose_not_ready(reason="Creating", pending_for="1h")
    rule.alert_name  # "CrossplaneClaimNotReady"
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from ksmcustom.alerts.schema import AlertRule
from ksmcustom.config import (
    DEFAULT_METRIC_NAME_PREFIX,
    METRIC_NAME_PATTERN,
    is_prometheus_duration,
)
from ksmcustom.metrics.synthesizer import metric_name, qualified_metric_name
from ksmcustom.metrics.taxonomy import (
    DEFAULT_TAXONOMY,
    ConditionField,
    ConditionTaxonomy,
    ConditionType,
)
from ksmcustom.models import AlertDeclaration, AlertType

logger = logging.getLogger(__name__)

DEFAULT_PENDING_FOR = "15m"
DEFAULT_SEVERITY = "warning"
WILDCARD_REASON = ".*"

# Labels a status series and its reason series have in common.
JOIN_LABELS: tuple[str, ...] = ("customresource_kind", "name", "namespace", "cluster")

NOT_READY_ALERT = "CrossplaneClaimNotReady"
NOT_SYNCED_ALERT = "CrossplaneClaimNotSynced"

# Cannot accompany Ready=False.
AVAILABLE_REASON = "Available"
FALSE_STATUS = "False"


class InvalidAlertReasonError(ValueError):
    """Raised when a not-ready reason filter is outside the allowed set."""

    def __init__(self, pattern: str, detail: str) -> None:
        self.pattern = pattern
        self.detail = detail
        super().__init__(f"Invalid reason filter {pattern!r}: {detail}")


class InvalidDurationError(ValueError):
    """Raised when a pending duration is not a Prometheus duration."""

    def __init__(self, value: str) -> None:
        self.value = value
        super().__init__(f"Invalid Prometheus duration: {value!r}")


# Group openers Python's re accepts but RE2, the engine behind PromQL =~, rejects.
_RE2_UNSUPPORTED_GROUPS: tuple[tuple[str, str], ...] = (
    ("?<=", "lookbehind"),
    ("?<!", "negative lookbehind"),
    ("?=", "lookahead"),
    ("?!", "negative lookahead"),
    ("?P=", "named backreference"),
    ("?(", "conditional group"),
    ("?>", "atomic group"),
    ("?#", "comment group"),
)


def re2_unsupported(pattern: str) -> Optional[str]:
    """Name the first construct in ``pattern`` that RE2 does not support.

    Returns None when the pattern only uses syntax both engines share.
    Assumes ``pattern`` already compiles with ``re``.
    """
    in_class = False
    after_quantifier = False
    i = 0
    while i < len(pattern):
        c = pattern[i]
        if c == "\\":
            escaped = pattern[i + 1:i + 2]
            if not in_class and escaped and escaped in "123456789":
                return f"backreference \\{escaped}"
            if escaped == "Z":
                return "\\Z anchor"
            i += 2
            after_quantifier = False
            continue
        if in_class:
            in_class = c != "]"
            i += 1
            continue
        if c == "[":
            in_class = True
            i += 1
            # A leading "]" (after an optional "^") is a literal.
            if pattern.startswith("^", i):
                i += 1
            if pattern.startswith("]", i):
                i += 1
            after_quantifier = False
            continue
        if c == "(":
            for opener, name in _RE2_UNSUPPORTED_GROUPS:
                if pattern.startswith(opener, i + 1):
                    return name
        if c == "+" and after_quantifier:
            return "possessive quantifier"
        after_quantifier = c in "*+?}"
        i += 1
    return None


def quote_label_value(value: str) -> str:
    """Quote ``value`` as a PromQL string literal."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _by(labels: tuple[str, ...]) -> str:
    return ", ".join(labels)


class AlertComposer:
    """Builds not-ready and not-synced alert rules.

    Args:
        taxonomy: Condition catalog the metrics were synthesized from.
        metric_name_prefix: Prefix the metrics were synthesized with.
        severity: Value of the ``severity`` label on every rule.
    """

    def __init__(
        self,
        taxonomy: ConditionTaxonomy = DEFAULT_TAXONOMY,
        metric_name_prefix: str = DEFAULT_METRIC_NAME_PREFIX,
        severity: str = DEFAULT_SEVERITY,
    ) -> None:
        if not METRIC_NAME_PATTERN.match(metric_name_prefix):
            raise ValueError(f"Invalid metric name prefix: {metric_name_prefix!r}")
        self._taxonomy = taxonomy
        self._prefix = metric_name_prefix
        self._severity = severity

    @property
    def not_ready_reasons(self) -> tuple[str, ...]:
        """Ready reasons a not-ready alert may filter on."""
        return tuple(
            r for r in self._taxonomy.reasons(ConditionType.READY) if r != AVAILABLE_REASON
        )

    def validate_reason(self, reason: Optional[str]) -> str:
        """Check a not-ready reason filter and return the regex to emit.

        ``None`` and ``.*`` select every reason.  Any other pattern must use
        syntax RE2 accepts, fully match at least one allowed reason and
        must not match ``Available``.

        Raises:
            InvalidAlertReasonError: If the pattern is rejected.
        """
        if reason is None or reason == WILDCARD_REASON:
            return WILDCARD_REASON
        try:
            compiled = re.compile(reason)
        except re.error as e:
            raise InvalidAlertReasonError(reason, f"not a valid regex ({e})") from e
        construct = re2_unsupported(reason)
        if construct is not None:
            raise InvalidAlertReasonError(
                reason, f"uses a {construct}, which the Prometheus regex engine (RE2) rejects"
            )
        if compiled.fullmatch(AVAILABLE_REASON):
            raise InvalidAlertReasonError(
                reason, f"matches '{AVAILABLE_REASON}', which cannot accompany status False"
            )
        allowed = self.not_ready_reasons
        if not any(compiled.fullmatch(r) for r in allowed):
            raise InvalidAlertReasonError(
                reason, f"matches none of the allowed reasons ({', '.join(allowed)})"
            )
        return reason

    def _metric(self, condition_type: str, field: ConditionField) -> str:
        return qualified_metric_name(self._prefix, metric_name(condition_type, field))

    def build_expression(
        self,
        condition_type: ConditionType | str,
        reason_pattern: Optional[str] = None,
    ) -> str:
        """Join the status and reason metrics of ``condition_type``.

        Args:
            condition_type: Registered condition type.
            reason_pattern: Regex over the ``reason`` label; no matcher when None.
        """
        type_name = self._taxonomy.require(condition_type)
        status_metric = self._metric(type_name, ConditionField.STATUS)
        reason_metric = self._metric(type_name, ConditionField.REASON)

        left = (
            f"sum by ({_by(JOIN_LABELS + ('status',))}) "
            f"({status_metric}{{status={quote_label_value(FALSE_STATUS)}}} == 1)"
        )
        reason_selector = reason_metric
        if reason_pattern is not None:
            reason_selector += f"{{reason=~{quote_label_value(reason_pattern)}}}"
        right = (
            f"sum by ({_by(JOIN_LABELS + ('reason',))}) "
            f"({reason_selector} == 1)"
        )
        return f"{left} * on ({_by(JOIN_LABELS)}) group_left (reason) {right}"

    def _reason_notes(self, condition_type: str, pattern: Optional[str]) -> str:
        compiled = re.compile(pattern) if pattern is not None else None
        notes = []
        for reason in self._taxonomy.reasons(condition_type):
            if reason == AVAILABLE_REASON and condition_type == ConditionType.READY.value:
                continue
            if compiled is not None and not compiled.fullmatch(reason):
                continue
            notes.append(f"{reason}: {self._taxonomy.describe(condition_type, reason)}.")
        return " ".join(notes)

    @staticmethod
    def _check_duration(pending_for: str) -> None:
        if not is_prometheus_duration(pending_for):
            raise InvalidDurationError(pending_for)

    def compose_not_ready(
        self,
        reason: Optional[str] = None,
        pending_for: str = DEFAULT_PENDING_FOR,
    ) -> AlertRule:
        """Alert on resources whose Ready condition is False.

        Args:
            reason: Regex over the Ready reason (default: every reason).
            pending_for: How long the condition must hold before firing.

        Raises:
            InvalidAlertReasonError: If ``reason`` could select ``Available``
                or selects no allowed reason.
            InvalidDurationError: If ``pending_for`` is not a duration.
        """
        self._check_duration(pending_for)
        pattern = self.validate_reason(reason)
        type_name = self._taxonomy.require(ConditionType.READY)
        rule = AlertRule(
            alert_name=NOT_READY_ALERT,
            expression=self.build_expression(type_name, pattern),
            pending_for=pending_for,
            labels={"severity": self._severity},
            annotations={
                "summary": "Crossplane resource is not ready.",
                "description": (
                    "{{ $labels.customresource_kind }} {{ $labels.namespace }}/{{ $labels.name }}"
                    " in cluster {{ $labels.cluster }} has not been ready for more than "
                    f"{pending_for} (reason: {{{{ $labels.reason }}}})."
                ),
                "reasons": self._reason_notes(type_name, pattern),
            },
            condition_type=type_name,
            status_metric=self._metric(type_name, ConditionField.STATUS),
            reason_metric=self._metric(type_name, ConditionField.REASON),
            reason_pattern=pattern,
        )
        logger.debug("Composed %s (reason=~%s, for=%s)", rule.alert_name, pattern, pending_for)
        return rule

    def compose_not_synced(self, pending_for: str = DEFAULT_PENDING_FOR) -> AlertRule:
        """Alert on resources whose Synced condition is False, whatever the reason.

        Raises:
            InvalidDurationError: If ``pending_for`` is not a duration.
        """
        self._check_duration(pending_for)
        type_name = self._taxonomy.require(ConditionType.SYNCED)
        rule = AlertRule(
            alert_name=NOT_SYNCED_ALERT,
            expression=self.build_expression(type_name),
            pending_for=pending_for,
            labels={"severity": self._severity},
            annotations={
                "summary": "Crossplane resource is not synced.",
                "description": (
                    "{{ $labels.customresource_kind }} {{ $labels.namespace }}/{{ $labels.name }}"
                    " in cluster {{ $labels.cluster }} has not been synced for more than "
                    f"{pending_for} (reason: {{{{ $labels.reason }}}})."
                ),
                "reasons": self._reason_notes(type_name, None),
            },
            condition_type=type_name,
            status_metric=self._metric(type_name, ConditionField.STATUS),
            reason_metric=self._metric(type_name, ConditionField.REASON),
        )
        logger.debug("Composed %s (for=%s)", rule.alert_name, pending_for)
        return rule

    def compose(self, declaration: AlertDeclaration, default_pending_for: str = DEFAULT_PENDING_FOR) -> AlertRule:
        """Build the rule requested by an input ``AlertDeclaration``."""
        pending_for = declaration.pending_for or default_pending_for
        if declaration.type is AlertType.NOT_READY:
            return self.compose_not_ready(reason=declaration.reason, pending_for=pending_for)
        return self.compose_not_synced(pending_for=pending_for)

    def default_alerts(self, pending_for: str = DEFAULT_PENDING_FOR) -> list[AlertRule]:
        """Default rule set: Unavailable, slow Creating/Deleting, and not synced."""
        return [
            self.compose_not_ready(reason="Unavailable", pending_for=pending_for),
            self.compose_not_ready(reason="Creating", pending_for="1h"),
            self.compose_not_ready(reason="Deleting", pending_for="1h"),
            self.compose_not_synced(pending_for=pending_for),
        ]


def compose_not_ready(
    reason: Optional[str] = None,
    pending_for: str = DEFAULT_PENDING_FOR,
) -> AlertRule:
    """``AlertComposer().compose_not_ready`` with the default taxonomy and prefix."""
    return AlertComposer().compose_not_ready(reason=reason, pending_for=pending_for)


def compose_not_synced(pending_for: str = DEFAULT_PENDING_FOR) -> AlertRule:
    """``AlertComposer().compose_not_synced`` with the default taxonomy and prefix."""
    return AlertComposer().compose_not_synced(pending_for=pending_for)
