"""
Alert composition over the synthesized condition metrics.

Public API::

    from ksmcustom.alerts import (
        AlertRule,
        AlertComposer,
        InvalidAlertReasonError,
        InvalidDurationError,
        compose_not_ready,
        compose_not_synced,
    )
"""

from ksmcustom.alerts.composer import (
    JOIN_LABELS,
    NOT_READY_ALERT,
    NOT_SYNCED_ALERT,
    AlertComposer,
    InvalidAlertReasonError,
    InvalidDurationError,
    compose_not_ready,
    compose_not_synced,
)
from ksmcustom.alerts.schema import AlertRule

__all__ = [
    "AlertRule",
    "AlertComposer",
    "InvalidAlertReasonError",
    "InvalidDurationError",
    "compose_not_ready",
    "compose_not_synced",
    "JOIN_LABELS",
    "NOT_READY_ALERT",
    "NOT_SYNCED_ALERT",
]
