"""
Command line entry point.

    backup-rotator run      one rotation (cron friendly, exit code 0/1)
    backup-rotator plan     show what the next run would do
    backup-rotator serve    status server with the built-in scheduler
"""

import dataclasses
import json
import sys

import click

from rotator import configure_logging
from rotator.config import load_config
from rotator.controller import EXIT_FAILURE, execute_rotation, plan_rotation
from rotator.exceptions import CatalogUnavailable, ConfigError


config_option = click.option(
    '-c', '--config', 'config_path',
    type=click.Path(dir_okay=False),
    default=None,
    help='Path to the INI config file (default: $ROTATOR_CONFIG or /etc/backup-rotator.conf).'
)


def _load(config_path, verbose=None):
    """Load config and set up logging; exits 1 on ConfigError."""
    try:
        rotator_config = load_config(config_path)
    except ConfigError as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(EXIT_FAILURE)

    if verbose is not None:
        try:
            rotator_config = dataclasses.replace(rotator_config, verbose=verbose)
        except ConfigError as e:
            click.echo(f"Configuration error: {e}", err=True)
            sys.exit(EXIT_FAILURE)

    configure_logging(rotator_config.verbose, rotator_config.syslog, rotator_config.logfile)
    return rotator_config


@click.group()
@click.version_option(package_name='backup-rotator')
def main():
    """Tiered backup rotation for a content-addressed backup tool."""


@main.command()
@config_option
@click.option('-v', '--verbose', type=click.IntRange(0, 2), default=None,
              help='Override the configured verbosity (0, 1 or 2).')
def run(config_path, verbose):
    """Run one backup rotation."""
    rotator_config = _load(config_path, verbose)
    outcome = execute_rotation(rotator_config)

    for message in outcome.diagnostics:
        click.echo(f"warning: {message}", err=True)
    if outcome.fatal is not None:
        click.echo(f"error: {outcome.fatal.message}", err=True)

    sys.exit(outcome.exit_code)


@main.command()
@config_option
@click.option('--json', 'as_json', is_flag=True, help='Print the plan as JSON.')
def plan(config_path, as_json):
    """Show the tier and deletions of the next run without changing anything."""
    rotator_config = _load(config_path)

    try:
        result = plan_rotation(rotator_config)
    except CatalogUnavailable as e:
        click.echo(f"error: {e.message}", err=True)
        sys.exit(EXIT_FAILURE)

    if as_json:
        click.echo(json.dumps(result, indent=2))
        return

    click.echo(f"Host:    {result['host']}")
    click.echo(f"Catalog: {result['catalog_size']} archives")
    click.echo(f"Tier:    {result['tier']}")
    click.echo(f"Prefix:  {result['prefix']}")
    for archive in result['archives']:
        click.echo(f"  create {archive}")
    if result['to_delete']:
        for archive in result['to_delete']:
            click.echo(f"  delete {archive}")
    else:
        click.echo("Nothing to prune")


@main.command()
@config_option
@click.option('--host', default='127.0.0.1', show_default=True, help='Address to bind.')
@click.option('--port', default=5000, show_default=True, type=int, help='Port to listen on.')
def serve(config_path, host, port):
    """Run the status server and the rotation scheduler."""
    from rotator import create_app

    rotator_config = _load(config_path)
    app = create_app(rotator_config=rotator_config)
    app.run(host=host, port=port, use_reloader=False)


if __name__ == '__main__':
    main()
