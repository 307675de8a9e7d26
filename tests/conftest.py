"""
Pytest configuration and fixtures for ksm-custom tests.
"""

from __future__ import annotations

import logging
import os
import textwrap
from typing import Dict, Generator

import pytest

from ksmcustom.config import reset_config
from ksmcustom.loader import InputLoader, MetricsDocumentLoader, RulesDocumentLoader
from ksmcustom.metrics.taxonomy import ConditionReason, ConditionTaxonomy
from ksmcustom.models import ResourceDescriptor


# ============================================================================
# Environment Fixtures
# ============================================================================


@pytest.fixture(scope="session")
def test_env() -> Dict[str, str]:
    """Test environment variables."""
    return {
        "KSMCUSTOM_LOG_LEVEL": "debug",
    }


@pytest.fixture(autouse=True)
def set_test_env(test_env: Dict[str, str]) -> Generator[None, None, None]:
    """Set test environment variables and reset global state for each test."""
    original = {}
    for key, value in test_env.items():
        original[key] = os.environ.get(key)
        os.environ[key] = value
    # Settings from the developer's shell must not leak into tests.
    leaked = {k: os.environ.pop(k) for k in list(os.environ) if k.startswith("KSMCUSTOM_") and k not in test_env}
    reset_config()
    for loader in (InputLoader, MetricsDocumentLoader, RulesDocumentLoader):
        loader.clear_cache()

    yield

    reset_config()
    logging.getLogger("ksmcustom").handlers.clear()
    for key, value in original.items():
        if value is None:
            os.environ.pop(key, None)
        else:
            os.environ[key] = value
    os.environ.update(leaked)


# ============================================================================
# Model Fixtures
# ============================================================================


@pytest.fixture
def postgres_descriptor() -> ResourceDescriptor:
    """A claim kind."""
    return ResourceDescriptor(
        group="database.example.org", version="v1alpha1", kind="PostgreSQLInstance"
    )


@pytest.fixture
def bucket_descriptor() -> ResourceDescriptor:
    """A managed resource kind."""
    return ResourceDescriptor(group="s3.aws.upbound.io", version="v1beta1", kind="Bucket")


@pytest.fixture
def descriptors(postgres_descriptor, bucket_descriptor) -> list[ResourceDescriptor]:
    return [postgres_descriptor, bucket_descriptor]


@pytest.fixture
def example_taxonomy() -> ConditionTaxonomy:
    """Taxonomy with placeholder descriptions, same shape as the default."""
    return ConditionTaxonomy([
        ("Synced", [
            ConditionReason("ReconcileSuccess", "ok"),
            ConditionReason("ReconcileError", "error"),
            ConditionReason("ReconcilePaused", "paused"),
        ]),
        ("Ready", [
            ConditionReason("Available", "available"),
            ConditionReason("Unavailable", "unavailable"),
            ConditionReason("Creating", "creating"),
            ConditionReason("Deleting", "deleting"),
        ]),
    ])


# ============================================================================
# Input File Fixtures
# ============================================================================


SAMPLE_INPUT_YAML = textwrap.dedent("""\
    resources:
      - group: database.example.org
        version: v1alpha1
        kind: PostgreSQLInstance
      - group: s3.aws.upbound.io
        version: v1beta1
        kind: Bucket
    alerts:
      - type: NotReady
        reason: Creating
        for: 1h
      - type: NotSynced
""")


@pytest.fixture
def sample_input_yaml() -> str:
    return SAMPLE_INPUT_YAML


@pytest.fixture
def sample_input_file(tmp_path):
    path = tmp_path / "resources.yaml"
    path.write_text(SAMPLE_INPUT_YAML)
    return path
