"""Traffic Manager sample CLI (tmdemo).

Usage:
    tmdemo run                      # Provision, exercise and delete everything
    tmdemo run --scenario demo.yaml # Same, with a custom scenario
    tmdemo scenario                 # Print the resolved scenario as YAML
    tmdemo cleanup rgNEMV_1234      # Delete a resource group left by an aborted run
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import click
from azure.core.exceptions import AzureError, ClientAuthenticationError

from .clients import create_clients
from .config import Config, ConfigurationError, LogFormat
from .credentials import CredentialConfigurationError, get_credential, resolve_subscription_id
from .main import main, setup_logging
from .scenario_loader import ScenarioLoadError, dump_scenario, load_scenario
from .workflow import delete_resource_group

logger = logging.getLogger(__name__)


def _load_config(**overrides: object) -> Config:
    try:
        return Config.from_env(**overrides)
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e


@click.group()
@click.version_option(version="0.1.0", prog_name="tmdemo")
def cli() -> None:
    """Traffic Manager sample (tmdemo).

    Provisions app service plans and web apps in several regions behind a
    Traffic Manager profile, exercises the profile, then deletes it all.

    \b
    Quick Start:
        tmdemo scenario    # Review what will be created
        tmdemo run         # Run the sample (purchases a domain!)
    """
    pass


@cli.command("run")
@click.option(
    "--scenario",
    "scenario_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML scenario overriding the built-in defaults",
)
@click.option("--location", help="Region of the resource group")
@click.option(
    "--log-format",
    type=click.Choice([f.value for f in LogFormat]),
    help="Console log format",
)
def run_command(scenario_file: Path | None, location: str | None, log_format: str | None) -> None:
    """Run the full provisioning and teardown sequence."""
    config = _load_config(
        scenario_file=scenario_file,
        resource_group_location=location,
        log_format=LogFormat(log_format) if log_format else None,
    )
    exit_code = asyncio.run(main(config))
    if exit_code != 0:
        raise SystemExit(exit_code)


@cli.command("scenario")
@click.option(
    "--scenario",
    "scenario_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML scenario overriding the built-in defaults",
)
def show_scenario(scenario_file: Path | None) -> None:
    """Print the resolved scenario as YAML (no Azure calls)."""
    try:
        scenario = load_scenario(scenario_file)
    except ScenarioLoadError as e:
        raise click.ClickException(str(e)) from e
    click.echo(dump_scenario(scenario), nl=False)


@cli.command("cleanup")
@click.argument("resource_group")
def cleanup(resource_group: str) -> None:
    """Delete a resource group left behind by an aborted run."""
    config = _load_config()
    setup_logging(config.log_format, config.log_level)

    try:
        credential = get_credential(config)
        subscription_id = resolve_subscription_id(credential, config)
    except CredentialConfigurationError as e:
        raise click.ClickException(str(e)) from e
    except ClientAuthenticationError as e:
        raise click.ClickException(f"Authentication failed: {e}") from e
    except AzureError as e:
        raise click.ClickException(f"Failed to resolve subscription: {e}") from e

    clients = create_clients(credential, subscription_id)
    try:
        deleted = asyncio.run(
            delete_resource_group(clients, resource_group, config.operation_timeout_seconds)
        )
    finally:
        clients.close()

    if not deleted:
        raise click.ClickException(f"Failed to delete resource group {resource_group}")
    click.secho(f"✓ Deleted {resource_group}", fg="green")


if __name__ == "__main__":
    cli()
