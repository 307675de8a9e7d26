"""
ksmcustom CLI - Generate Crossplane condition metrics and alerts.

Commands:
    ksmcustom generate   Generate the metrics configuration and alert rules
    ksmcustom check      Cross-check emitted metrics and rules
    ksmcustom taxonomy   Show condition types, reasons and metric names
"""

import click

from ksmcustom.config import get_config
from ksmcustom.logger import configure_logging

from .check import check
from .generate import generate
from .taxonomy import taxonomy


@click.group()
@click.version_option(package_name="ksm-custom")
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"]),
    help="Logging level (default: from config)",
)
def main(log_level):
    """ksm-custom - State-set metrics and alerts for Crossplane resources."""
    config = get_config()
    configure_logging(level=log_level or config.log_level, fmt=config.log_format)


main.add_command(generate)
main.add_command(check)
main.add_command(taxonomy)


__all__ = ["main"]
