"""ksmcustom CLI - Artifact generation command."""

from pathlib import Path
from typing import Optional

import click
import yaml
from pydantic import ValidationError

from ksmcustom.alerts.composer import InvalidAlertReasonError, InvalidDurationError
from ksmcustom.artifacts.consistency import ArtifactConsistencyError, ConsistencyError
from ksmcustom.artifacts.emitter import ArtifactEmitter
from ksmcustom.config import get_config
from ksmcustom.loader import InputLoader
from ksmcustom.logger import GenerationLogger
from ksmcustom.metrics.taxonomy import UnknownConditionTypeError

from ._io import sha256_checksum, write_artifact_set

METRICS_FILENAME = "custom-resource-state"
RULES_FILENAME = "prometheus-alerts"


@click.command()
@click.option(
    "--input", "-i", "input_path",
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Generator input YAML (resources and optional alerts)",
)
@click.option("--output", "-o", help="Output directory (default: from config)")
@click.option("--stdout", "to_stdout", is_flag=True, help="Print both documents instead of writing files")
@click.option("--format", "-f", "output_format", type=click.Choice(["yaml", "json"]), help="Output format")
@click.option("--metrics-prefix", help="metricNamePrefix for every resource")
@click.option(
    "--rules-format",
    type=click.Choice(["groups", "prometheusrule"]),
    help="Emit a rule file or a PrometheusRule resource",
)
@click.option(
    "--backup/--no-backup",
    default=False,
    help="Keep a .bak copy of overwritten files (default: disabled)",
)
def generate(
    input_path: Path,
    output: Optional[str],
    to_stdout: bool,
    output_format: Optional[str],
    metrics_prefix: Optional[str],
    rules_format: Optional[str],
    backup: bool,
):
    """Generate the metrics configuration and alert rules for a resource list.

    Both documents are built and cross-checked before anything is
    written; on any error no file is touched.

    Example:
        ksmcustom generate --input resources.yaml --output ./generated
    """
    overrides = {
        k: v
        for k, v in {
            "output_format": output_format,
            "metric_name_prefix": metrics_prefix,
            "rules_format": rules_format,
        }.items()
        if v is not None
    }
    try:
        config = get_config(**overrides)
    except ValidationError as e:
        raise click.ClickException(f"Invalid configuration: {e}")

    events = GenerationLogger(source=str(input_path))

    try:
        generator_input = InputLoader().load(input_path)
    except (yaml.YAMLError, TypeError, ValidationError) as e:
        events.log_rejected(reason="invalid input")
        raise click.ClickException(f"Invalid input file {input_path}: {e}")

    emitter = ArtifactEmitter(config)
    try:
        bundle = emitter.emit_input(generator_input)
    except ArtifactConsistencyError as e:
        events.log_rejected(
            reason="inconsistent artifacts",
            issues=[issue.message for issue in e.result.issues],
        )
        raise click.ClickException(str(e))
    except (
        UnknownConditionTypeError,
        InvalidAlertReasonError,
        InvalidDurationError,
        ConsistencyError,
        ValueError,
    ) as e:
        events.log_rejected(reason=str(e))
        raise click.ClickException(str(e))

    metrics_text = emitter.render(bundle.metrics)
    rules_text = emitter.render(bundle.rules)
    events.log_generated(
        resources=len(bundle.families),
        metrics=sum(len(f.metrics) for f in bundle.families),
        rules=len(bundle.alerts),
    )

    if to_stdout:
        separator = "---\n" if config.output_format == "yaml" else "\n"
        click.echo(metrics_text + separator + rules_text, nl=False)
        return

    output_dir = Path(output or config.output_dir)
    ext = "yaml" if config.output_format == "yaml" else "json"
    artifacts = (
        ("metrics", output_dir / f"{METRICS_FILENAME}.{ext}", metrics_text),
        ("rules", output_dir / f"{RULES_FILENAME}.{ext}", rules_text),
    )
    try:
        write_artifact_set([(path, content) for _, path, content in artifacts], backup=backup)
    except OSError as e:
        events.log_rejected(reason=f"write failed: {e}")
        raise click.ClickException(f"Cannot write artifacts to {output_dir}: {e}")

    for artifact, path, content in artifacts:
        events.log_written(path=str(path), artifact=artifact, checksum=sha256_checksum(content))
        click.echo(f"Wrote {path}")
