"""
Centralized configuration for ksm-custom.

Uses Pydantic BaseSettings for environment variable integration
and validation. All configurable values should be defined here.

Configuration sources (in order of precedence):
1. Explicit constructor arguments
2. Environment variables (KSMCUSTOM_*)
3. .env file
4. Default values

Example:
    from ksmcustom.config import get_config

    config = get_config()
    print(config.metric_name_prefix)  # From KSMCUSTOM_METRIC_NAME_PREFIX or default

    # Override at runtime
    config = get_config(rules_format="prometheusrule")
"""

from __future__ import annotations

import re
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_METRIC_NAME_PREFIX = "crossplane"

METRIC_NAME_PATTERN = re.compile(r"^[a-zA-Z_:][a-zA-Z0-9_:]*$")

# Prometheus duration: units in descending order, at least one present.
DURATION_PATTERN = re.compile(
    r"^(?=\d)((\d+)y)?((\d+)w)?((\d+)d)?((\d+)h)?((\d+)m)?((\d+)s)?((\d+)ms)?$"
)


def is_prometheus_duration(value: str) -> bool:
    """Return True if ``value`` is a valid Prometheus duration (e.g. ``15m``, ``1h30m``)."""
    return bool(value) and DURATION_PATTERN.match(value) is not None


class KsmCustomConfig(BaseSettings):
    """
    Central configuration for ksm-custom.

    All settings can be overridden via environment variables
    prefixed with KSMCUSTOM_.

    Example:
        export KSMCUSTOM_METRIC_NAME_PREFIX=crossplane
        export KSMCUSTOM_LOG_LEVEL=debug
    """

    model_config = SettingsConfigDict(
        env_prefix="KSMCUSTOM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Metrics
    metric_name_prefix: str = Field(
        default=DEFAULT_METRIC_NAME_PREFIX,
        description="metricNamePrefix shared by every metric of a resource",
    )

    # Alerts
    rule_group_name: str = Field(
        default="crossplane",
        description="Name of the generated Prometheus rule group",
    )
    default_pending_for: str = Field(
        default="15m",
        description="Default 'for' duration of generated alerts",
    )
    alert_severity: str = Field(
        default="warning",
        description="Value of the severity label attached to every alert",
    )
    rules_format: Literal["groups", "prometheusrule"] = Field(
        default="groups",
        description="Emit a bare rule-groups document or a PrometheusRule resource",
    )
    prometheus_rule_name: str = Field(
        default="crossplane-alerts",
        description="metadata.name of the PrometheusRule resource",
    )
    prometheus_rule_namespace: Optional[str] = Field(
        default=None,
        description="metadata.namespace of the PrometheusRule resource",
    )

    # Output
    output_dir: str = Field(
        default="./generated",
        description="Directory generated artifacts are written to",
    )
    output_format: Literal["yaml", "json"] = Field(
        default="yaml",
        description="Serialization format of generated artifacts",
    )

    # Logging
    log_level: Literal["debug", "info", "warning", "error"] = Field(
        default="info",
        description="Logging level for ksm-custom",
    )
    log_format: Literal["json", "text"] = Field(
        default="text",
        description="Log output format (json for Loki, text for console)",
    )

    @field_validator("metric_name_prefix")
    @classmethod
    def validate_prefix(cls, v: str) -> str:
        """Prefix must be usable as the start of a Prometheus metric name."""
        if not METRIC_NAME_PATTERN.match(v):
            raise ValueError(f"Invalid metric name prefix: {v!r}")
        return v

    @field_validator("default_pending_for")
    @classmethod
    def validate_duration(cls, v: str) -> str:
        if not is_prometheus_duration(v):
            raise ValueError(f"Invalid Prometheus duration: {v!r}")
        return v


# Global singleton
_config: Optional[KsmCustomConfig] = None


def get_config(**overrides) -> KsmCustomConfig:
    """
    Get the global configuration instance.

    Creates a singleton on first call. Subsequent calls return
    the same instance unless overrides are provided.

    Args:
        **overrides: Override any config values

    Returns:
        KsmCustomConfig instance
    """
    global _config

    if overrides or _config is None:
        _config = KsmCustomConfig(**overrides)

    return _config


def reset_config() -> None:
    """Reset the global configuration (for testing)."""
    global _config
    _config = None

