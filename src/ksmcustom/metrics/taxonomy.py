"""
Condition taxonomy registry.

Crossplane resources report their state through ``status.conditions``.
Each condition has a ``type`` (``Synced``, ``Ready``), a boolean ``status``
and a ``reason`` drawn from a fixed vocabulary defined by crossplane-runtime.
This module holds that vocabulary as an immutable, insertion-ordered
catalog.

Order matters: the reason order of each condition type becomes the
``list`` of the generated StateSet metric, and the condition type order
decides the order metrics are emitted in.  Adding a condition type means
editing ``DEFAULT_TAXONOMY``; there is no runtime registration.

Usage::

    from ksmcustom.metrics.taxonomy import DEFAULT_TAXONOMY, ConditionType

    DEFAULT_TAXONOMY.condition_types      # ("Synced", "Ready")
    DEFAULT_TAXONOMY.reasons(ConditionType.READY)
    # ("Available", "Unavailable", "Creating", "Deleting")
"""

from __future__ import annotations

from enum import Enum
from types import MappingProxyType
from typing import Iterable, Iterator, Mapping, Union

__all__ = [
    "ConditionType",
    "ConditionField",
    "ConditionReason",
    "ConditionTaxonomy",
    "UnknownConditionTypeError",
    "STATUS_VALUES",
    "NOT_READY_REASONS",
    "DEFAULT_TAXONOMY",
]


class ConditionType(str, Enum):
    """Condition types tracked for every Crossplane resource."""
    SYNCED = "Synced"
    READY = "Ready"


class ConditionField(str, Enum):
    """Fields of a condition entry exported as StateSet metrics."""
    REASON = "reason"
    STATUS = "status"


# Shared by every condition type.
STATUS_VALUES: tuple[str, ...] = ("True", "False")


class UnknownConditionTypeError(KeyError):
    """Raised when a condition type is not part of the taxonomy."""

    def __init__(self, condition_type: str, known: Iterable[str]) -> None:
        self.condition_type = condition_type
        self.known = tuple(known)
        super().__init__(
            f"Unknown condition type '{condition_type}' "
            f"(registered: {', '.join(self.known)})"
        )

    def __str__(self) -> str:
        return self.args[0]


class ConditionReason:
    """A reason value together with the explanation shown in alerts."""

    __slots__ = ("value", "description")

    def __init__(self, value: str, description: str) -> None:
        self.value = value
        self.description = description

    def __repr__(self) -> str:
        return f"ConditionReason({self.value!r})"


def _type_name(condition_type: Union[ConditionType, str]) -> str:
    if isinstance(condition_type, ConditionType):
        return condition_type.value
    return str(condition_type)


class ConditionTaxonomy:
    """Immutable, ordered catalog of condition types and their reasons.

    Args:
        entries: ``(condition_type, reasons)`` pairs in emission order.

    Raises:
        ValueError: On duplicate condition types, duplicate reasons within
            a type, or a type without reasons.
    """

    def __init__(
        self,
        entries: Iterable[tuple[Union[ConditionType, str], Iterable[ConditionReason]]],
    ) -> None:
        catalog: dict[str, tuple[ConditionReason, ...]] = {}
        for condition_type, reasons in entries:
            name = _type_name(condition_type)
            if not name:
                raise ValueError("Condition type name cannot be empty")
            if name in catalog:
                raise ValueError(f"Duplicate condition type: {name}")
            reasons = tuple(reasons)
            if not reasons:
                raise ValueError(f"Condition type '{name}' has no reasons")
            values = [r.value for r in reasons]
            duplicates = sorted({v for v in values if values.count(v) > 1})
            if duplicates:
                raise ValueError(
                    f"Duplicate reasons for condition type '{name}': {', '.join(duplicates)}"
                )
            catalog[name] = reasons
        self._catalog: Mapping[str, tuple[ConditionReason, ...]] = MappingProxyType(catalog)

    @property
    def condition_types(self) -> tuple[str, ...]:
        """Registered condition type names in registry order."""
        return tuple(self._catalog)

    def __iter__(self) -> Iterator[str]:
        return iter(self._catalog)

    def __len__(self) -> int:
        return len(self._catalog)

    def __contains__(self, condition_type: object) -> bool:
        if isinstance(condition_type, (ConditionType, str)):
            return _type_name(condition_type) in self._catalog
        return False

    def require(self, condition_type: Union[ConditionType, str]) -> str:
        """Return the registered name of ``condition_type`` or raise."""
        name = _type_name(condition_type)
        if name not in self._catalog:
            raise UnknownConditionTypeError(name, self._catalog)
        return name

    def reasons(self, condition_type: Union[ConditionType, str]) -> tuple[str, ...]:
        """Ordered reason values valid for ``condition_type``."""
        return tuple(r.value for r in self._catalog[self.require(condition_type)])

    def describe(self, condition_type: Union[ConditionType, str], reason: str) -> str:
        """Explanation of ``reason`` for ``condition_type`` (empty if unknown)."""
        for r in self._catalog[self.require(condition_type)]:
            if r.value == reason:
                return r.description
        return ""

    def __repr__(self) -> str:
        body = ", ".join(
            f"{name}: [{', '.join(r.value for r in reasons)}]"
            for name, reasons in self._catalog.items()
        )
        return f"ConditionTaxonomy({{{body}}})"


DEFAULT_TAXONOMY = ConditionTaxonomy([
    (ConditionType.SYNCED, (
        ConditionReason("ReconcileSuccess", "the last reconciliation of the resource succeeded"),
        ConditionReason("ReconcileError", "the last reconciliation of the resource failed"),
        ConditionReason("ReconcilePaused", "reconciliation of the resource is paused"),
    )),
    (ConditionType.READY, (
        ConditionReason("Available", "the resource is available for use"),
        ConditionReason("Unavailable", "the resource exists but is not available for use"),
        ConditionReason("Creating", "the resource is being created"),
        ConditionReason("Deleting", "the resource is being deleted"),
    )),
])

# Ready reasons that can accompany status "False".  "Available" is excluded:
# an Available resource that is not ready is a contradiction.
NOT_READY_REASONS: tuple[str, ...] = tuple(
    r for r in DEFAULT_TAXONOMY.reasons(ConditionType.READY) if r != "Available"
)
