"""ksmcustom CLI - Consistency check of previously emitted artifacts."""

import json
import sys
from pathlib import Path

import click
import yaml
from pydantic import ValidationError

from ksmcustom.artifacts.consistency import ConsistencyChecker, ConsistencyError
from ksmcustom.loader import MetricsDocumentLoader, RulesDocumentLoader


@click.command()
@click.option(
    "--metrics", "-m", "metrics_path",
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="kube-state-metrics custom resource state configuration",
)
@click.option(
    "--rules", "-r", "rules_path",
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Rule file or PrometheusRule resource",
)
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON")
def check(metrics_path: Path, rules_path: Path, as_json: bool):
    """Verify that every alert expression queries metrics the configuration defines.

    Exits with status 1 when an inconsistency is found.

    Example:
        ksmcustom check -m generated/custom-resource-state.yaml \\
            -r generated/prometheus-alerts.yaml
    """
    try:
        metrics_doc = MetricsDocumentLoader().load(metrics_path)
        rules_doc = RulesDocumentLoader().load(rules_path)
    except (yaml.YAMLError, TypeError, ValidationError) as e:
        raise click.ClickException(f"Cannot read artifacts: {e}")

    try:
        result = ConsistencyChecker().check(metrics_doc, rules_doc)
    except ConsistencyError as e:
        raise click.ClickException(str(e))

    if as_json:
        click.echo(json.dumps(result.model_dump(), indent=2))
    else:
        for issue in result.issues:
            click.echo(f"[{issue.kind}] {issue.message}")
        status = "consistent" if result.passed else "INCONSISTENT"
        click.echo(
            f"{status}: {result.total_rules} rule(s) checked against "
            f"{result.total_metrics} metric(s), {len(result.issues)} issue(s)"
        )

    if not result.passed:
        sys.exit(1)
