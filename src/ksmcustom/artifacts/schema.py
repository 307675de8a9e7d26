"""
Pydantic v2 models for the emitted documents.

Two document families are produced:

- ``CustomResourceStateMetrics``: the kube-state-metrics custom resource
  state configuration (``--custom-resource-state-config``).
- ``RuleGroups``: a Prometheus rule file (``groups: [...]``), optionally
  wrapped in a prometheus-operator ``PrometheusRule`` resource.

Field aliases match the wire names, so ``model_dump(by_alias=True)``
gives the document as written to disk and ``model_validate`` reads it
back.  All models use ``extra="forbid"`` so a hand-edited artifact with
unknown keys is rejected by ``ksmcustom check``.
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from ksmcustom.metrics.path import PathSelector


class _Document(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)


# ---------------------------------------------------------------------------
# kube-state-metrics custom resource state
# ---------------------------------------------------------------------------


class GroupVersionKind(_Document):
    group: str
    version: str
    kind: str


class StateSet(_Document):
    label_name: str = Field(..., alias="labelName")
    path: PathSelector
    values: list[str] = Field(..., alias="list", min_length=1)


class MetricEach(_Document):
    type: Literal["StateSet"] = "StateSet"
    state_set: StateSet = Field(..., alias="stateSet")


class Metric(_Document):
    name: str
    help: str
    each: MetricEach


class Resource(_Document):
    group_version_kind: GroupVersionKind = Field(..., alias="groupVersionKind")
    labels_from_path: dict[str, PathSelector] = Field(
        default_factory=dict, alias="labelsFromPath"
    )
    metric_name_prefix: Optional[str] = Field(None, alias="metricNamePrefix")
    metrics: list[Metric] = Field(default_factory=list)


class ResourceList(_Document):
    resources: list[Resource] = Field(default_factory=list)


class CustomResourceStateMetrics(_Document):
    kind: Literal["CustomResourceStateMetrics"] = "CustomResourceStateMetrics"
    spec: ResourceList


# ---------------------------------------------------------------------------
# Prometheus rules
# ---------------------------------------------------------------------------


class Rule(_Document):
    alert: str
    expr: str
    pending_for: Optional[str] = Field(None, alias="for")
    labels: dict[str, str] = Field(default_factory=dict)
    annotations: dict[str, str] = Field(default_factory=dict)


class RuleGroup(_Document):
    name: str = Field(..., min_length=1)
    rules: list[Rule] = Field(default_factory=list)


class RuleGroups(_Document):
    groups: list[RuleGroup] = Field(default_factory=list)


class ObjectMeta(_Document):
    name: str
    namespace: Optional[str] = None
    labels: dict[str, str] = Field(default_factory=dict)


class PrometheusRule(_Document):
    api_version: Literal["monitoring.coreos.com/v1"] = Field(
        "monitoring.coreos.com/v1", alias="apiVersion"
    )
    kind: Literal["PrometheusRule"] = "PrometheusRule"
    metadata: ObjectMeta
    spec: RuleGroups
