"""Tests for the condition taxonomy registry and path selectors."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from ksmcustom.metrics.path import (
    FieldSegment,
    PathSelector,
    PredicateSegment,
    build_condition_path,
    parse_segment,
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


# ---------------------------------------------------------------------------
# Taxonomy
# ---------------------------------------------------------------------------


class TestDefaultTaxonomy:
    def test_condition_type_order(self):
        assert DEFAULT_TAXONOMY.condition_types == ("Synced", "Ready")

    def test_synced_reasons(self):
        assert DEFAULT_TAXONOMY.reasons(ConditionType.SYNCED) == (
            "ReconcileSuccess",
            "ReconcileError",
            "ReconcilePaused",
        )

    def test_ready_reasons(self):
        assert DEFAULT_TAXONOMY.reasons("Ready") == (
            "Available",
            "Unavailable",
            "Creating",
            "Deleting",
        )

    def test_status_values(self):
        assert STATUS_VALUES == ("True", "False")

    def test_not_ready_reasons_exclude_available(self):
        assert NOT_READY_REASONS == ("Unavailable", "Creating", "Deleting")

    def test_every_reason_is_described(self):
        for condition_type in DEFAULT_TAXONOMY:
            for reason in DEFAULT_TAXONOMY.reasons(condition_type):
                assert DEFAULT_TAXONOMY.describe(condition_type, reason)

    def test_contains(self):
        assert ConditionType.READY in DEFAULT_TAXONOMY
        assert "Synced" in DEFAULT_TAXONOMY
        assert "Healthy" not in DEFAULT_TAXONOMY
        assert 42 not in DEFAULT_TAXONOMY

    def test_unknown_type_rejected(self):
        with pytest.raises(UnknownConditionTypeError) as exc:
            DEFAULT_TAXONOMY.reasons("Healthy")
        assert exc.value.condition_type == "Healthy"
        assert "Synced" in str(exc.value)

    def test_registry_is_read_only(self):
        with pytest.raises(TypeError):
            DEFAULT_TAXONOMY._catalog["Healthy"] = ()


class TestTaxonomyConstruction:
    def test_preserves_insertion_order(self):
        t = ConditionTaxonomy([
            ("Zeta", [ConditionReason("B", ""), ConditionReason("A", "")]),
            ("Alpha", [ConditionReason("X", "")]),
        ])
        assert t.condition_types == ("Zeta", "Alpha")
        assert t.reasons("Zeta") == ("B", "A")

    def test_duplicate_type_rejected(self):
        with pytest.raises(ValueError, match="Duplicate condition type"):
            ConditionTaxonomy([
                ("Ready", [ConditionReason("Available", "")]),
                (ConditionType.READY, [ConditionReason("Creating", "")]),
            ])

    def test_duplicate_reason_rejected(self):
        with pytest.raises(ValueError, match="Duplicate reasons"):
            ConditionTaxonomy([
                ("Ready", [ConditionReason("Available", ""), ConditionReason("Available", "")]),
            ])

    def test_empty_reasons_rejected(self):
        with pytest.raises(ValueError, match="no reasons"):
            ConditionTaxonomy([("Ready", [])])


# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------


class TestConditionPath:
    def test_reason_path(self):
        path = build_condition_path("reason", "Ready")
        assert path.render() == ["status", "conditions", "[type=Ready]", "reason"]

    def test_status_path_from_enums(self):
        path = build_condition_path(ConditionField.STATUS, ConditionType.SYNCED)
        assert path.render() == ["status", "conditions", "[type=Synced]", "status"]

    def test_predicate_is_third_segment(self):
        path = build_condition_path("status", "Ready")
        assert isinstance(path.segments[2], PredicateSegment)
        assert path.segments[2].field == "type"
        assert path.segments[2].value == "Ready"
        assert [type(s) for s in path.segments] == [
            FieldSegment, FieldSegment, PredicateSegment, FieldSegment,
        ]

    def test_unknown_field_rejected(self):
        with pytest.raises(ValueError):
            build_condition_path("message", "Ready")

    def test_serializes_to_rendered_list(self):
        path = build_condition_path("reason", "Synced")
        assert path.model_dump() == ["status", "conditions", "[type=Synced]", "reason"]
        assert str(path) == "status.conditions.[type=Synced].reason"


class TestPathParsing:
    def test_round_trip_from_rendered(self):
        rendered = ["status", "conditions", "[type=Ready]", "reason"]
        path = PathSelector.model_validate(rendered)
        assert path == build_condition_path("reason", "Ready")

    def test_plain_path(self):
        path = PathSelector.model_validate(["metadata", "name"])
        assert path.predicates == []

    def test_predicate_on_other_field_rejected(self):
        with pytest.raises(ValueError, match="only filter on 'type'"):
            parse_segment("[name=foo]")

    def test_nested_predicate_rejected(self):
        with pytest.raises(ValidationError):
            PathSelector.model_validate(["status", "[type=[type=Ready]]"])

    def test_malformed_predicate_rejected(self):
        with pytest.raises(ValidationError):
            PathSelector.model_validate(["status", "[type"])

    def test_empty_path_rejected(self):
        with pytest.raises(ValidationError):
            PathSelector.model_validate([])

    def test_segments_are_immutable(self):
        path = build_condition_path("reason", "Ready")
        with pytest.raises(ValidationError):
            path.segments = ()
