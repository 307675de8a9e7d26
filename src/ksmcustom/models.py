"""
Pydantic models for generator input.

A generator run is described by a YAML document listing the custom
resource kinds to observe and, optionally, the alerts to build on top of
the generated metrics::

    resources:
      - group: database.example.org
        version: v1alpha1
        kind: PostgreSQLInstance
    alerts:
      - type: NotReady
        reason: Creating
        for: 1h
      - type: NotSynced
        for: 15m

When ``alerts`` is omitted the default alert set is generated.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ksmcustom.config import is_prometheus_duration

# Lowercase RFC 1123 subdomain, as used for API groups.
_GROUP_RE = re.compile(r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?(\.[a-z0-9]([-a-z0-9]*[a-z0-9])?)*$")
_VERSION_RE = re.compile(r"^v[1-9][0-9]*((alpha|beta)[1-9][0-9]*)?$")
_KIND_RE = re.compile(r"^[A-Z][A-Za-z0-9]*$")


class ResourceDescriptor(BaseModel):
    """Group/version/kind of a custom resource whose conditions are observed."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    group: str = Field(..., min_length=1, max_length=253, description="API group")
    version: str = Field(..., description="API version (e.g. v1alpha1)")
    kind: str = Field(..., description="Resource kind (UpperCamelCase)")

    @field_validator("group")
    @classmethod
    def validate_group(cls, v: str) -> str:
        if not _GROUP_RE.match(v):
            raise ValueError(f"Invalid API group: {v!r}")
        return v

    @field_validator("version")
    @classmethod
    def validate_version(cls, v: str) -> str:
        if not _VERSION_RE.match(v):
            raise ValueError(f"Invalid API version: {v!r}")
        return v

    @field_validator("kind")
    @classmethod
    def validate_kind(cls, v: str) -> str:
        if not _KIND_RE.match(v):
            raise ValueError(f"Invalid kind: {v!r}")
        return v

    @property
    def api_version(self) -> str:
        return f"{self.group}/{self.version}"

    def __str__(self) -> str:
        return f"{self.kind}.{self.version}.{self.group}"


class AlertType(str, Enum):
    """Kinds of alert the composer can build."""
    NOT_READY = "NotReady"
    NOT_SYNCED = "NotSynced"


class AlertDeclaration(BaseModel):
    """One alert requested in the generator input."""

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    type: AlertType = Field(..., description="Alert kind")
    reason: Optional[str] = Field(
        None, description="Regex over the Ready reason (NotReady only)"
    )
    pending_for: Optional[str] = Field(
        None, alias="for", description="Duration before the alert fires"
    )

    @field_validator("pending_for")
    @classmethod
    def validate_pending_for(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not is_prometheus_duration(v):
            raise ValueError(f"Invalid Prometheus duration: {v!r}")
        return v

    @model_validator(mode="after")
    def reason_only_for_not_ready(self) -> "AlertDeclaration":
        if self.reason is not None and self.type is not AlertType.NOT_READY:
            raise ValueError(f"'reason' is not supported for {self.type.value} alerts")
        return self


class GeneratorInput(BaseModel):
    """Root model of a generator input file."""

    model_config = ConfigDict(extra="forbid")

    resources: list[ResourceDescriptor] = Field(
        ..., min_length=1, description="Resources to generate metrics for, in output order"
    )
    alerts: Optional[list[AlertDeclaration]] = Field(
        None, description="Alerts to generate (default set when omitted)"
    )

    @field_validator("resources")
    @classmethod
    def unique_resources(cls, v: list[ResourceDescriptor]) -> list[ResourceDescriptor]:
        seen: set[ResourceDescriptor] = set()
        for descriptor in v:
            if descriptor in seen:
                raise ValueError(f"Duplicate resource: {descriptor}")
            seen.add(descriptor)
        return v
