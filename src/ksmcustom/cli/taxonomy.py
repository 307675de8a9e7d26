"""ksmcustom CLI - Show the condition taxonomy and the metrics derived from it."""

import click

from ksmcustom.config import get_config
from ksmcustom.metrics.synthesizer import metric_name, qualified_metric_name
from ksmcustom.metrics.taxonomy import DEFAULT_TAXONOMY, STATUS_VALUES, ConditionField


@click.command()
def taxonomy():
    """List condition types, their reasons and the metric names they produce."""
    prefix = get_config().metric_name_prefix
    for condition_type in DEFAULT_TAXONOMY.condition_types:
        click.echo(f"{condition_type}:")
        click.echo(
            f"  {qualified_metric_name(prefix, metric_name(condition_type, ConditionField.STATUS))}"
            f" [{', '.join(STATUS_VALUES)}]"
        )
        click.echo(
            f"  {qualified_metric_name(prefix, metric_name(condition_type, ConditionField.REASON))}"
        )
        for reason in DEFAULT_TAXONOMY.reasons(condition_type):
            click.echo(f"    {reason}: {DEFAULT_TAXONOMY.describe(condition_type, reason)}")
