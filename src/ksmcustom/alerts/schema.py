"""
Pydantic v2 models for composed alert rules.

``AlertRule`` keeps, next to the PromQL expression, the qualified names
of the two metrics the expression joins.  The consistency checker does
not trust these fields (it re-reads the expression), but they make
referential checks in tests and logs straightforward.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class AlertRule(BaseModel):
    """A single alerting rule over a status/reason metric pair."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    alert_name: str = Field(..., min_length=1, description="Alert name")
    expression: str = Field(..., min_length=1, description="PromQL expression")
    pending_for: str = Field(..., description="Duration before the alert fires")
    labels: dict[str, str] = Field(default_factory=dict)
    annotations: dict[str, str] = Field(default_factory=dict)
    condition_type: str = Field(..., description="Condition type the alert watches")
    status_metric: str = Field(..., description="Qualified name of the joined status metric")
    reason_metric: str = Field(..., description="Qualified name of the joined reason metric")
    reason_pattern: Optional[str] = Field(
        None, description="Regex applied to the reason label, None when unfiltered"
    )

    @property
    def referenced_metrics(self) -> tuple[str, str]:
        return (self.status_metric, self.reason_metric)
