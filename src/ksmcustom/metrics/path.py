"""
Path selectors into a resource's status document.

kube-state-metrics addresses values inside a custom resource with a list
of path segments.  A segment is either a plain field name or a filter on
an array of objects, written ``[type=Ready]``, which selects the element
whose ``type`` field equals ``Ready``.

Only ``type`` filters are supported and filters cannot be nested.

Usage::

    from ksmcustom.metrics.path import build_condition_path

    path = build_condition_path("reason", "Ready")
    path.render()  # ["status", "conditions", "[type=Ready]", "reason"]
"""

from __future__ import annotations

import re
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, model_serializer, model_validator

from ksmcustom.metrics.taxonomy import ConditionField, ConditionType

_PREDICATE_RE = re.compile(r"^\[(?P<field>[^=\[\]]+)=(?P<value>[^\[\]]*)\]$")


class FieldSegment(BaseModel):
    """A plain field name."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: Literal["field"] = "field"
    name: str = Field(..., min_length=1)

    @model_validator(mode="after")
    def _no_brackets(self) -> "FieldSegment":
        if "[" in self.name or "]" in self.name:
            raise ValueError(f"Field segment cannot contain brackets: {self.name!r}")
        return self

    def render(self) -> str:
        return self.name


class PredicateSegment(BaseModel):
    """Selects the array element whose ``type`` field equals ``value``."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: Literal["predicate"] = "predicate"
    field: Literal["type"] = "type"
    value: str = Field(..., min_length=1)

    @model_validator(mode="after")
    def _flat_value(self) -> "PredicateSegment":
        if any(c in self.value for c in "[]="):
            raise ValueError(f"Nested or malformed predicate value: {self.value!r}")
        return self

    def render(self) -> str:
        return f"[{self.field}={self.value}]"


PathSegment = Annotated[Union[FieldSegment, PredicateSegment], Field(discriminator="kind")]


def parse_segment(raw: str) -> Union[FieldSegment, PredicateSegment]:
    """Parse one rendered segment (``status`` or ``[type=Ready]``)."""
    if raw.startswith("["):
        match = _PREDICATE_RE.match(raw)
        if not match:
            raise ValueError(f"Malformed predicate segment: {raw!r}")
        if match.group("field") != "type":
            raise ValueError(
                f"Predicate segments may only filter on 'type', got {match.group('field')!r}"
            )
        return PredicateSegment(value=match.group("value"))
    return FieldSegment(name=raw)


class PathSelector(BaseModel):
    """Ordered, root-to-leaf sequence of path segments.

    Serializes to (and validates from) the list-of-strings form used in
    kube-state-metrics configuration.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    segments: tuple[PathSegment, ...] = Field(..., min_length=1)

    @model_validator(mode="before")
    @classmethod
    def _from_rendered(cls, data: Any) -> Any:
        if isinstance(data, (list, tuple)):
            return {
                "segments": tuple(parse_segment(s) if isinstance(s, str) else s for s in data)
            }
        return data

    @model_serializer
    def _to_rendered(self) -> list[str]:
        return self.render()

    def render(self) -> list[str]:
        return [segment.render() for segment in self.segments]

    @property
    def predicates(self) -> list[PredicateSegment]:
        return [s for s in self.segments if isinstance(s, PredicateSegment)]

    def __str__(self) -> str:
        return ".".join(self.render())


def build_condition_path(
    field: Union[ConditionField, str],
    condition_type: Union[ConditionType, str],
) -> PathSelector:
    """Build ``[status, conditions, [type=<condition_type>], <field>]``.

    Raises:
        ValueError: If ``field`` is not ``reason`` or ``status``.
    """
    field = ConditionField(field)
    type_name = condition_type.value if isinstance(condition_type, ConditionType) else condition_type
    return PathSelector(
        segments=(
            FieldSegment(name="status"),
            FieldSegment(name="conditions"),
            PredicateSegment(value=type_name),
            FieldSegment(name=field.value),
        )
    )
