"""
YAML loaders for generator input and emitted artifacts.

Provides ``BaseYamlLoader[T]`` and the concrete loaders built on it:

- ``InputLoader``: generator input files (``GeneratorInput``), cached per path
- ``MetricsDocumentLoader``: emitted kube-state-metrics configurations
- ``RulesDocumentLoader``: emitted rule files or ``PrometheusRule`` resources

The two artifact loaders always read the file again: ``ksmcustom check``
must see the current disk state, not a copy from an earlier call.

Usage::

    from ksmcustom.loader import InputLoader

    loader = InputLoader()
    generator_input = loader.load(Path("resources.yaml"))
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, ClassVar, Generic, TypeVar, Union

import yaml
from pydantic import BaseModel

from ksmcustom.artifacts.schema import CustomResourceStateMetrics, PrometheusRule, RuleGroups
from ksmcustom.models import GeneratorInput

T = TypeVar("T")


class BaseYamlLoader(Generic[T]):
    """Generic base for YAML loaders with optional per-path caching.

    Subclasses set ``_model_class`` to the Pydantic model used for
    validation and ``_cache_enabled`` to False for files that change
    between loads.  Override ``_validate()`` when the model depends on
    the document, and ``_log_loaded()`` for domain-specific debug messages.
    """

    _model_class: type[BaseModel]  # Set by each subclass
    _cache_enabled: ClassVar[bool] = True
    _cache: ClassVar[dict[str, Any]] = {}
    _logger: ClassVar[logging.Logger]

    def __init_subclass__(cls, **kwargs: object) -> None:
        super().__init_subclass__(**kwargs)
        # Each subclass gets its own cache.
        cls._cache = {}
        cls._logger = logging.getLogger(cls.__module__)

    @classmethod
    def clear_cache(cls) -> None:
        """Clear the cache (useful in tests)."""
        cls._cache.clear()

    def _validate(self, raw: dict) -> T:
        return self._model_class.model_validate(raw)  # type: ignore[return-value]

    def load(self, path: Path) -> T:
        """Load and validate a YAML file.

        Raises:
            FileNotFoundError: If the file does not exist.
            TypeError: If the YAML root is not a mapping.
            yaml.YAMLError: If the file contains invalid YAML.
            pydantic.ValidationError: If the YAML does not match the schema.
        """
        key = str(path.resolve())
        if self._cache_enabled:
            cached = self._cache.get(key)
            if cached is not None:
                self._logger.debug("%s cache hit: %s", type(self).__name__, key)
                return cached

        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")

        with open(path) as fh:
            raw = yaml.safe_load(fh)

        if not isinstance(raw, dict):
            raise TypeError(
                f"Expected YAML mapping at root of {path}, got {type(raw).__name__}"
            )

        loaded = self._validate(raw)
        if self._cache_enabled:
            self._cache[key] = loaded
        self._log_loaded(loaded, key)
        return loaded

    def load_from_string(self, yaml_str: str) -> T:
        """Load and validate a YAML string.

        Raises:
            TypeError: If the YAML root is not a mapping.
            pydantic.ValidationError: If the YAML does not match the schema.
        """
        raw = yaml.safe_load(yaml_str)
        if not isinstance(raw, dict):
            raise TypeError(f"Expected YAML mapping, got {type(raw).__name__}")
        return self._validate(raw)

    def _log_loaded(self, loaded: T, key: str) -> None:
        self._logger.debug("Loaded %s from %s", type(self).__name__, key)


class InputLoader(BaseYamlLoader[GeneratorInput]):
    """Loads generator input files."""

    _model_class = GeneratorInput

    def _log_loaded(self, loaded: GeneratorInput, key: str) -> None:
        self._logger.debug(
            "Loaded generator input: resources=%d, alerts=%s (%s)",
            len(loaded.resources),
            "default" if loaded.alerts is None else len(loaded.alerts),
            key,
        )


class MetricsDocumentLoader(BaseYamlLoader[CustomResourceStateMetrics]):
    """Loads an emitted kube-state-metrics configuration."""

    _model_class = CustomResourceStateMetrics
    _cache_enabled = False


class RulesDocumentLoader(BaseYamlLoader[Union[RuleGroups, PrometheusRule]]):
    """Loads a rule file, or a ``PrometheusRule`` resource wrapping one."""

    _model_class = RuleGroups
    _cache_enabled = False

    def _validate(self, raw: dict) -> Union[RuleGroups, PrometheusRule]:
        if raw.get("kind") == "PrometheusRule":
            return PrometheusRule.model_validate(raw)
        return RuleGroups.model_validate(raw)
