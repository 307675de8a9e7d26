"""
Pydantic v2 models for synthesized metric definitions.

A ``MetricDefinition`` describes one kube-state-metrics StateSet metric:
the condition field it reads, the label it writes the value into and the
ordered list of values it enumerates.  A ``MetricFamily`` groups all
definitions generated for one resource together with the labels and
name prefix they share.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from ksmcustom.metrics.path import PathSelector
from ksmcustom.metrics.taxonomy import ConditionField
from ksmcustom.models import ResourceDescriptor


class MetricDefinition(BaseModel):
    """A StateSet metric over one field of one condition type."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str = Field(..., min_length=1, description="Metric name without prefix")
    help: str = Field(..., description="Help text")
    kind: Literal["StateSet"] = "StateSet"
    label_name: str = Field(..., min_length=1, description="Label holding the state value")
    path: PathSelector = Field(..., description="Where the value lives in the resource")
    enumerated_values: tuple[str, ...] = Field(
        ..., min_length=1, description="Possible values, in emission order"
    )
    condition_type: str = Field(..., description="Condition type the metric observes")
    field: ConditionField = Field(..., description="Condition field the metric observes")


class MetricFamily(BaseModel):
    """All metric definitions generated for one resource descriptor."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    descriptor: ResourceDescriptor
    metric_name_prefix: str
    labels_from_path: dict[str, PathSelector] = Field(
        ..., description="Identity labels extracted from the resource"
    )
    metrics: tuple[MetricDefinition, ...]

    @property
    def metric_names(self) -> list[str]:
        return [m.name for m in self.metrics]
