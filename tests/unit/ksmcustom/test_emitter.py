"""Tests for artifact emission and rendering."""

from __future__ import annotations

import json

import pytest
import yaml

from ksmcustom.artifacts.consistency import ArtifactConsistencyError
from ksmcustom.artifacts.emitter import ArtifactEmitter, render_document
from ksmcustom.artifacts.schema import CustomResourceStateMetrics, PrometheusRule, RuleGroups
from ksmcustom.config import KsmCustomConfig
from ksmcustom.loader import MetricsDocumentLoader, RulesDocumentLoader
from ksmcustom.metrics.taxonomy import UnknownConditionTypeError
from ksmcustom.alerts.composer import InvalidAlertReasonError
from ksmcustom.models import AlertDeclaration


@pytest.fixture
def emitter() -> ArtifactEmitter:
    return ArtifactEmitter(KsmCustomConfig())


class TestEmit:
    def test_one_resource_per_descriptor_in_order(self, emitter, descriptors):
        bundle = emitter.emit(descriptors)
        kinds = [r.group_version_kind.kind for r in bundle.metrics.spec.resources]
        assert kinds == ["PostgreSQLInstance", "Bucket"]
        assert bundle.consistency.passed

    def test_resource_document_shape(self, emitter, postgres_descriptor):
        bundle = emitter.emit([postgres_descriptor])
        data = bundle.metrics.model_dump(by_alias=True, exclude_none=True)
        assert data["kind"] == "CustomResourceStateMetrics"
        resource = data["spec"]["resources"][0]
        assert resource["groupVersionKind"] == {
            "group": "database.example.org",
            "version": "v1alpha1",
            "kind": "PostgreSQLInstance",
        }
        assert resource["metricNamePrefix"] == "crossplane"
        assert resource["labelsFromPath"] == {
            "name": ["metadata", "name"],
            "namespace": ["metadata", "namespace"],
        }
        assert [m["name"] for m in resource["metrics"]] == [
            "status_synced_reason",
            "status_ready_reason",
            "status_synced",
            "status_ready",
        ]
        ready_reason = resource["metrics"][1]
        assert ready_reason["each"] == {
            "type": "StateSet",
            "stateSet": {
                "labelName": "reason",
                "path": ["status", "conditions", "[type=Ready]", "reason"],
                "list": ["Available", "Unavailable", "Creating", "Deleting"],
            },
        }

    def test_default_rule_group(self, emitter, descriptors):
        bundle = emitter.emit(descriptors)
        assert isinstance(bundle.rules, RuleGroups)
        assert len(bundle.rules.groups) == 1
        group = bundle.rules.groups[0]
        assert group.name == "crossplane"
        assert [r.alert for r in group.rules] == [
            "CrossplaneClaimNotReady",
            "CrossplaneClaimNotReady",
            "CrossplaneClaimNotReady",
            "CrossplaneClaimNotSynced",
        ]

    def test_declared_alerts(self, emitter, descriptors):
        bundle = emitter.emit(
            descriptors,
            [AlertDeclaration.model_validate({"type": "NotReady", "reason": "Creating", "for": "1h"})],
        )
        rule = bundle.rules.groups[0].rules[0]
        assert rule.alert == "CrossplaneClaimNotReady"
        assert rule.pending_for == "1h"
        assert 'reason=~"Creating"' in rule.expr

    def test_every_alert_metric_is_emitted(self, emitter, descriptors):
        bundle = emitter.emit(descriptors)
        emitted = {
            f"{r.metric_name_prefix}_{m.name}"
            for r in bundle.metrics.spec.resources
            for m in r.metrics
        }
        for alert in bundle.alerts:
            assert set(alert.referenced_metrics) <= emitted

    def test_empty_descriptors_rejected(self, emitter):
        with pytest.raises(ValueError, match="At least one"):
            emitter.emit([])

    def test_duplicate_descriptors_rejected(self, emitter, postgres_descriptor):
        with pytest.raises(ValueError, match="unique"):
            emitter.emit([postgres_descriptor, postgres_descriptor])

    def test_invalid_alert_reason_fails_fast(self, emitter, descriptors):
        with pytest.raises(InvalidAlertReasonError):
            emitter.emit(descriptors, [AlertDeclaration(type="NotReady", reason="Available")])

    def test_inconsistent_pair_rejected(self, emitter, descriptors, monkeypatch):
        original = emitter.composer.build_expression

        def broken(condition_type, reason_pattern=None):
            return original(condition_type, reason_pattern).replace("status_ready_reason", "status_ready_cause")

        monkeypatch.setattr(emitter.composer, "build_expression", broken)
        with pytest.raises(ArtifactConsistencyError) as exc:
            emitter.emit(descriptors)
        assert not exc.value.result.passed
        assert {i.kind for i in exc.value.result.issues} == {"unknown_metric"}

    def test_taxonomy_without_ready_fails(self, descriptors):
        from ksmcustom.metrics.taxonomy import ConditionReason, ConditionTaxonomy

        taxonomy = ConditionTaxonomy([("Synced", [ConditionReason("ReconcileSuccess", "")])])
        with pytest.raises(UnknownConditionTypeError):
            ArtifactEmitter(KsmCustomConfig(), taxonomy=taxonomy).emit(descriptors)


class TestConfigDriven:
    def test_prometheus_rule_format(self, descriptors):
        config = KsmCustomConfig(
            rules_format="prometheusrule",
            prometheus_rule_name="xp-alerts",
            prometheus_rule_namespace="monitoring",
        )
        bundle = ArtifactEmitter(config).emit(descriptors)
        assert isinstance(bundle.rules, PrometheusRule)
        data = bundle.rules.model_dump(by_alias=True, exclude_none=True)
        assert data["apiVersion"] == "monitoring.coreos.com/v1"
        assert data["kind"] == "PrometheusRule"
        assert data["metadata"]["name"] == "xp-alerts"
        assert data["metadata"]["namespace"] == "monitoring"
        assert data["spec"]["groups"][0]["name"] == "crossplane"

    def test_prefix_flows_to_both_artifacts(self, descriptors):
        bundle = ArtifactEmitter(KsmCustomConfig(metric_name_prefix="xp")).emit(descriptors)
        assert {r.metric_name_prefix for r in bundle.metrics.spec.resources} == {"xp"}
        assert all("xp_status_" in r.expr for r in bundle.rules.groups[0].rules)
        assert bundle.consistency.passed

    def test_severity_and_pending_for(self, descriptors):
        config = KsmCustomConfig(alert_severity="critical", default_pending_for="30m")
        bundle = ArtifactEmitter(config).emit(descriptors)
        rules = bundle.rules.groups[0].rules
        assert {r.labels["severity"] for r in rules} == {"critical"}
        assert rules[0].pending_for == "30m"
        assert rules[-1].pending_for == "30m"


class TestRender:
    def test_yaml_is_byte_identical_across_runs(self, descriptors):
        first = ArtifactEmitter(KsmCustomConfig())
        second = ArtifactEmitter(KsmCustomConfig())
        a, b = first.emit(descriptors), second.emit(descriptors)
        assert first.render(a.metrics) == second.render(b.metrics)
        assert first.render(a.rules) == second.render(b.rules)

    def test_yaml_preserves_key_order(self, emitter, postgres_descriptor):
        text = emitter.render(emitter.emit([postgres_descriptor]).metrics)
        assert text.index("kind:") < text.index("spec:")
        assert text.index("groupVersionKind:") < text.index("labelsFromPath:")
        assert text.index("labelsFromPath:") < text.index("metricNamePrefix:")
        assert text.index("status_synced_reason") < text.index("status_ready_reason")

    def test_yaml_round_trips_through_loaders(self, emitter, descriptors):
        bundle = emitter.emit(descriptors)
        metrics = MetricsDocumentLoader().load_from_string(emitter.render(bundle.metrics))
        rules = RulesDocumentLoader().load_from_string(emitter.render(bundle.rules))
        assert metrics.model_dump() == bundle.metrics.model_dump()
        assert rules.model_dump() == bundle.rules.model_dump()

    def test_rule_uses_for_key(self, emitter, descriptors):
        data = yaml.safe_load(emitter.render(emitter.emit(descriptors).rules))
        rule = data["groups"][0]["rules"][0]
        assert list(rule) == ["alert", "expr", "for", "labels", "annotations"]

    def test_json(self, emitter, postgres_descriptor):
        text = emitter.render(emitter.emit([postgres_descriptor]).metrics, fmt="json")
        data = json.loads(text)
        assert CustomResourceStateMetrics.model_validate(data).spec.resources

    def test_unknown_format(self, emitter, postgres_descriptor):
        with pytest.raises(ValueError):
            render_document(emitter.emit([postgres_descriptor]).metrics, "toml")
