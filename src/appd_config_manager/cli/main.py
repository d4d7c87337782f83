"""
CLI main execution functions.

This module contains the ``appd-config-manager`` command and the run
lifecycle around the export and migrate workflows: configuration loading,
optional Config Exporter launch, and cleanup of every resource the run
acquired, whatever the outcome.
"""

import logging
import signal
import sys
from dataclasses import dataclass, field
from typing import List, Optional

import click

from .. import __version__
from ..execution.export_operations import execute_export
from ..execution.exporter import ConfigExporterClient
from ..execution.exporter_process import ExporterProcess
from ..execution.migrate_operations import execute_migrate
from ..shared.api_client import AppDynamicsAPIClient, ControllerSession
from ..shared.config import MODES, load_settings, log_settings
from ..shared.exceptions import ConfigManagerError
from ..shared.logging import setup_logging
from .validators import validate_mode, validate_non_empty_string

logger = logging.getLogger(__name__)

CONTEXT_SETTINGS = dict(help_option_names=['-h', '--help'])


@dataclass
class RunResources:
    """Resources acquired during a run and released by :func:`cleanup`."""

    client: Optional[AppDynamicsAPIClient] = None
    exporter_process: Optional[ExporterProcess] = None
    sessions: List[ControllerSession] = field(default_factory=list)


def cleanup(resources: RunResources) -> None:
    """Stop the exporter if this run started it and remove temporary files."""
    if resources.exporter_process is not None:
        resources.exporter_process.stop()
    logger.info("Cleaning up temporary files")
    for session in resources.sessions:
        try:
            session.close()
        except OSError as e:
            logger.warning(f"Could not remove temporary file {session.cookie_path}: {e}")
    if resources.client is not None:
        resources.client.close()
    logger.info("Done.")


def _handle_sigterm(signum, frame):
    raise SystemExit(128 + signum)


def run(mode: str, config_file: str, run_command: Optional[str] = None, show_progress: bool = False) -> int:
    """Execute one export or migrate run.

    Args:
        mode: 'export' or 'migrate'
        config_file: Path to the configuration file
        run_command: Command launching the Config Exporter, if this run should start it
        show_progress: Whether to display progress bars

    Returns:
        0 on completion (even with per-entity failures), 1 on a fatal error
    """
    resources = RunResources()
    previous_handler = signal.signal(signal.SIGTERM, _handle_sigterm)
    try:
        settings = load_settings(config_file, mode)
        log_settings(settings)

        client = AppDynamicsAPIClient(timeout=settings.http_timeout)
        resources.client = client

        if run_command:
            exporter = ConfigExporterClient(settings.config_exporter_url, client)
            resources.exporter_process = ExporterProcess(run_command, exporter, settings.config_exporter_timeout)
            resources.exporter_process.start()
            resources.exporter_process.wait_until_ready()

        if settings.mode == 'export':
            source = ControllerSession.from_settings(settings.source)
            resources.sessions.append(source)
            execute_export(settings, client, source, show_progress=show_progress)
        else:
            execute_migrate(settings, client)
        return 0
    except ConfigManagerError as e:
        logger.error(str(e))
        return 1
    finally:
        cleanup(resources)
        signal.signal(signal.SIGTERM, previous_handler)


@click.command(context_settings=CONTEXT_SETTINGS)
@click.version_option(version=__version__, prog_name='appd-config-manager')
@click.option(
    '--verbose', '-v',
    is_flag=True,
    help='Print debug information'
)
@click.option(
    '--run', '-r', 'run_command',
    callback=validate_non_empty_string,
    help='Command to run the Config Exporter. Do not set if it is already running.'
)
@click.option(
    '--mode', '-m',
    required=True,
    type=click.Choice(MODES, case_sensitive=False),
    callback=validate_mode,
    help='export or migrate'
)
@click.option(
    '--config', '-c', 'config_file',
    required=True,
    callback=validate_non_empty_string,
    help='Path to config file'
)
@click.option(
    '--no-color',
    is_flag=True,
    help='Disable coloured console output'
)
@click.pass_context
def cli(ctx, verbose, run_command, mode, config_file, no_color):
    """
    Backups and migrations of AppDynamics configuration.

    Wrapper around the Config Exporter API: exports application, account and
    dashboard configuration of a controller, or migrates application
    configuration from a source controller to a destination controller.

    Examples:

    \b
    appd-config-manager -m export -c appd_cfg_manager.conf
    appd-config-manager -m migrate -c appd_cfg_manager.conf -r "java -jar config-exporter.jar"
    """
    setup_logging(verbose=verbose, no_color=no_color)
    show_progress = not verbose and sys.stderr.isatty()
    ctx.exit(run(mode, config_file, run_command, show_progress=show_progress))


def main():
    """Main CLI entry point."""
    return cli()


if __name__ == '__main__':
    sys.exit(main())
