"""Tests for input models and YAML loaders."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from ksmcustom.loader import (
    BaseYamlLoader,
    InputLoader,
    MetricsDocumentLoader,
    RulesDocumentLoader,
)
from ksmcustom.artifacts.schema import PrometheusRule, RuleGroups
from ksmcustom.models import AlertDeclaration, AlertType, GeneratorInput, ResourceDescriptor


class TestResourceDescriptor:
    def test_valid(self, postgres_descriptor):
        assert postgres_descriptor.api_version == "database.example.org/v1alpha1"
        assert str(postgres_descriptor) == "PostgreSQLInstance.v1alpha1.database.example.org"

    @pytest.mark.parametrize("group", ["", "Database.Example.org", "-bad.example.org", "a..b"])
    def test_bad_group(self, group):
        with pytest.raises(ValidationError):
            ResourceDescriptor(group=group, version="v1", kind="Thing")

    @pytest.mark.parametrize("version", ["1", "v0", "v1alpha", "V1", "v1gamma1"])
    def test_bad_version(self, version):
        with pytest.raises(ValidationError):
            ResourceDescriptor(group="example.org", version=version, kind="Thing")

    @pytest.mark.parametrize("kind", ["thing", "Thing-Claim", ""])
    def test_bad_kind(self, kind):
        with pytest.raises(ValidationError):
            ResourceDescriptor(group="example.org", version="v1", kind=kind)

    def test_extra_field_rejected(self):
        with pytest.raises(ValidationError):
            ResourceDescriptor(group="example.org", version="v1", kind="Thing", plural="things")

    def test_immutable_and_hashable(self, postgres_descriptor):
        with pytest.raises(ValidationError):
            postgres_descriptor.kind = "Other"
        assert len({postgres_descriptor, postgres_descriptor.model_copy()}) == 1


class TestAlertDeclaration:
    def test_for_alias(self):
        decl = AlertDeclaration.model_validate({"type": "NotSynced", "for": "30m"})
        assert decl.type is AlertType.NOT_SYNCED
        assert decl.pending_for == "30m"

    def test_reason_only_for_not_ready(self):
        with pytest.raises(ValidationError, match="not supported"):
            AlertDeclaration.model_validate({"type": "NotSynced", "reason": "ReconcileError"})

    def test_bad_duration(self):
        with pytest.raises(ValidationError):
            AlertDeclaration.model_validate({"type": "NotReady", "for": "soon"})

    def test_unknown_type(self):
        with pytest.raises(ValidationError):
            AlertDeclaration.model_validate({"type": "NotHealthy"})


class TestGeneratorInput:
    def test_alerts_optional(self):
        gi = GeneratorInput.model_validate(
            {"resources": [{"group": "example.org", "version": "v1", "kind": "Thing"}]}
        )
        assert gi.alerts is None

    def test_empty_resources_rejected(self):
        with pytest.raises(ValidationError):
            GeneratorInput.model_validate({"resources": []})

    def test_duplicate_resources_rejected(self):
        r = {"group": "example.org", "version": "v1", "kind": "Thing"}
        with pytest.raises(ValidationError, match="Duplicate resource"):
            GeneratorInput.model_validate({"resources": [r, dict(r)]})


class TestInputLoader:
    def test_load_from_string(self, sample_input_yaml):
        gi = InputLoader().load_from_string(sample_input_yaml)
        assert [r.kind for r in gi.resources] == ["PostgreSQLInstance", "Bucket"]
        assert [a.type for a in gi.alerts] == [AlertType.NOT_READY, AlertType.NOT_SYNCED]
        assert gi.alerts[0].pending_for == "1h"
        assert gi.alerts[1].pending_for is None

    def test_load_from_file(self, sample_input_file):
        assert len(InputLoader().load(sample_input_file).resources) == 2

    def test_caching(self, sample_input_file):
        loader = InputLoader()
        assert loader.load(sample_input_file) is loader.load(sample_input_file)

    def test_missing_file(self):
        with pytest.raises(FileNotFoundError):
            InputLoader().load(Path("/nonexistent/resources.yaml"))

    def test_non_mapping_root(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(TypeError):
            InputLoader().load(path)

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("resources: [\n")
        with pytest.raises(yaml.YAMLError):
            InputLoader().load(path)

    def test_schema_violation(self):
        with pytest.raises(ValidationError):
            InputLoader().load_from_string("resources:\n  - group: example.org\n")


class TestDocumentLoaders:
    def test_rule_groups(self):
        doc = RulesDocumentLoader().load_from_string(
            "groups:\n  - name: g\n    rules:\n      - alert: A\n        expr: up == 0\n        for: 5m\n"
        )
        assert isinstance(doc, RuleGroups)
        assert doc.groups[0].rules[0].pending_for == "5m"

    def test_prometheus_rule(self):
        doc = RulesDocumentLoader().load_from_string(
            "apiVersion: monitoring.coreos.com/v1\n"
            "kind: PrometheusRule\n"
            "metadata:\n  name: alerts\n"
            "spec:\n  groups: []\n"
        )
        assert isinstance(doc, PrometheusRule)

    def test_metrics_predicate_on_other_field_rejected(self):
        text = (
            "kind: CustomResourceStateMetrics\n"
            "spec:\n"
            "  resources:\n"
            "    - groupVersionKind: {group: example.org, version: v1, kind: Thing}\n"
            "      metrics:\n"
            "        - name: status_ready\n"
            "          help: h\n"
            "          each:\n"
            "            type: StateSet\n"
            "            stateSet:\n"
            "              labelName: status\n"
            "              path: [status, conditions, '[name=Ready]', status]\n"
            "              list: ['True', 'False']\n"
        )
        with pytest.raises(ValidationError):
            MetricsDocumentLoader().load_from_string(text)

    def test_artifact_loaders_reread_changed_file(self, tmp_path):
        path = tmp_path / "rules.yaml"
        path.write_text("groups:\n  - name: first\n")
        loader = RulesDocumentLoader()
        assert loader.load(path).groups[0].name == "first"
        path.write_text("groups:\n  - name: second\n")
        assert loader.load(path).groups[0].name == "second"

    def test_input_loader_keeps_cache(self, sample_input_file):
        InputLoader().load(sample_input_file)
        sample_input_file.write_text("resources: []\n")
        assert len(InputLoader().load(sample_input_file).resources) == 2


class TestBaseYamlLoader:
    def test_model_class_drives_validation(self):
        class DescriptorLoader(BaseYamlLoader[ResourceDescriptor]):
            _model_class = ResourceDescriptor

        loaded = DescriptorLoader().load_from_string("group: example.org\nversion: v1\nkind: Thing\n")
        assert isinstance(loaded, ResourceDescriptor)

    def test_subclasses_do_not_share_cache(self, sample_input_file):
        InputLoader().load(sample_input_file)
        assert InputLoader._cache
        assert not MetricsDocumentLoader._cache
