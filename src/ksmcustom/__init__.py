"""
ksm-custom - State-set metrics and matching alerts for Crossplane resources.

This package compiles a list of custom resource kinds (group/version/kind)
into two correlated artifacts:

- A kube-state-metrics ``CustomResourceStateMetrics`` configuration that
  turns each resource's ``status.conditions`` into StateSet metrics
  (``crossplane_status_ready``, ``crossplane_status_ready_reason``, ...)
- A Prometheus rule group whose alerts join those metrics to find
  resources stuck in a not-ready or not-synced state

Both artifacts derive metric names, label names and enumerated values
from the same condition taxonomy, and every bundle is checked for
cross-artifact consistency before it is returned.

Example usage:
    from ksmcustom import ArtifactEmitter, ResourceDescriptor

    emitter = ArtifactEmitter()
    bundle = emitter.emit([
        ResourceDescriptor(group="database.example.org", version="v1alpha1", kind="PostgreSQLInstance"),
    ])
    print(emitter.render(bundle.metrics))
    print(emitter.render(bundle.rules))
"""

__version__ = "0.1.0"
__all__ = [
    "ArtifactEmitter",
    "ResourceDescriptor",
    "MetricSynthesizer",
    "AlertComposer",
    "ConsistencyChecker",
    "DEFAULT_TAXONOMY",
    "__version__",
]


# Lazy imports keep `ksmcustom --help` fast
def __getattr__(name: str):
    if name == "ArtifactEmitter":
        from ksmcustom.artifacts.emitter import ArtifactEmitter
        return ArtifactEmitter
    if name == "ResourceDescriptor":
        from ksmcustom.models import ResourceDescriptor
        return ResourceDescriptor
    if name == "MetricSynthesizer":
        from ksmcustom.metrics.synthesizer import MetricSynthesizer
        return MetricSynthesizer
    if name == "AlertComposer":
        from ksmcustom.alerts.composer import AlertComposer
        return AlertComposer
    if name == "ConsistencyChecker":
        from ksmcustom.artifacts.consistency import ConsistencyChecker
        return ConsistencyChecker
    if name == "DEFAULT_TAXONOMY":
        from ksmcustom.metrics.taxonomy import DEFAULT_TAXONOMY
        return DEFAULT_TAXONOMY
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
