"""
Export workflow.

Exports application and account level configuration of the source
controller, through the Config Exporter, into a timestamped output tree.
Dashboards are exported directly from the controller UI API.

Failures of a single entity or dashboard are logged as warnings and the
export carries on. Only missing preconditions (output directory, controller
id, OAuth token) abort the run.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Union

from ..core.config_entities import ACCOUNT_APPLICATION_ENTITIES, DASHBOARDS_ENTITY
from ..core.entities import EntityInfo, format_entities, get_entities_info
from ..shared.api_client import AppDynamicsAPIClient, ControllerSession
from ..shared.config import Settings
from ..shared.exceptions import AuthError, HttpError, OutputError
from ..shared.file_utils import (
    ACCOUNT_DIR,
    COOKIE_FILE,
    DASHBOARDS_DIR,
    create_run_directory,
    make_subdirectory,
    output_name,
    validate_config_output,
    write_output_file,
)
from .exporter import ACCOUNT_APPLICATION_ID, ConfigExporterClient
from .utils import create_progress_bar, resolve_controller_id

DASHBOARD_LIST_ENDPOINT = "/controller/restui/dashboards/getAllDashboardsByType/false"
DASHBOARD_EXPORT_ENDPOINT = "/CustomDashboardImportExportServlet"


@dataclass
class ExportSummary:
    """Outcome of an export run."""

    run_dir: Path
    exported: int = 0
    failed: int = 0
    dashboards_exported: int = 0
    dashboards_failed: int = 0
    failures: List[str] = field(default_factory=list)


@dataclass
class ExportContext:
    """Everything an export step needs, passed explicitly between steps."""

    settings: Settings
    client: AppDynamicsAPIClient
    exporter: ConfigExporterClient
    source: ControllerSession
    run_dir: Path
    summary: ExportSummary
    controller_id: Optional[int] = None
    show_progress: bool = False
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))


def authenticate_source(ctx: ExportContext) -> None:
    """Authenticate the source session for controller UI calls.

    With an API client secret configured an OAuth token is requested,
    otherwise the UI login cookie and CSRF token are captured. Either failure
    is only a warning: the dashboard calls that need it then fail one by one.
    """
    source = ctx.source
    if source.api_secret:
        ctx.logger.info(f"Retrieving AppDynamics OAuth token at {source.url}")
        try:
            ctx.client.get_oauth_token(source)
        except AuthError as e:
            ctx.logger.warning(f"Could not retrieve AppDynamics OAuth token: {e}")
        return
    ctx.logger.info(f"Retrieving AppDynamics login cookie at {source.url}")
    source.cookie_path = ctx.run_dir / COOKIE_FILE
    ctx.client.get_cookie(source)


def export_config_entity(ctx: ExportContext, name: str, application_id: Union[int, str], entity: str,
                         target_dir: Path) -> bool:
    """Export one configuration entity of one application (or of the account).

    Returns:
        True if the entity was written and looks like a valid export
    """
    output_file = target_dir / f"{entity}.json"
    ctx.logger.info(f"Exporting {entity}")
    try:
        # Fetch the entity document and write it as returned
        content = ctx.exporter.fetch_config_entity(ctx.controller_id, entity, application_id)
        write_output_file(output_file, content)
    except (HttpError, OSError) as e:
        ctx.logger.debug(f"Export of {entity} failed: {e}")
        return _entity_failed(ctx, name, application_id, entity)

    # An exporter error body is written too, so check the file content
    if not validate_config_output(output_file):
        return _entity_failed(ctx, name, application_id, entity)

    ctx.summary.exported += 1
    return True


def _entity_failed(ctx: ExportContext, name: str, application_id: Union[int, str], entity: str) -> bool:
    ctx.logger.warning(f"There was an issue exporting {entity} for application {name} ({application_id})")
    ctx.summary.failed += 1
    ctx.summary.failures.append(f"{name}/{entity}")
    return False


def export_application_config(ctx: ExportContext, applications: List[EntityInfo],
                              application_config: Iterable[str]) -> None:
    """Export every configured entity for every application."""
    application_config = list(application_config)
    progress = create_progress_bar(
        total=len(applications), desc="Exporting applications", unit="apps", disable=not ctx.show_progress
    )
    try:
        for application in applications:
            # One directory per application, named by name or id
            ctx.logger.info(f"Exporting configuration for application {application.name} ({application.id})")
            try:
                app_dir = make_subdirectory(
                    ctx.run_dir, output_name(application.name, application.id, ctx.settings.output_name_mode)
                )
            except OutputError as e:
                ctx.logger.warning(f"Skipping application {application.name} ({application.id}): {e}")
                ctx.summary.failed += len(application_config)
                progress.update(1)
                continue

            # A failed entity is logged and its siblings still run
            for entity in application_config:
                export_config_entity(ctx, application.name, application.id, entity, app_dir)
            progress.update(1)
    finally:
        progress.close()


def export_dashboard(ctx: ExportContext, dashboard: EntityInfo, dashboards_dir: Path) -> bool:
    """Export one dashboard. The content is written as returned, without validation."""
    output_file = dashboards_dir / f"{output_name(dashboard.name, dashboard.id, ctx.settings.output_name_mode)}.json"
    ctx.logger.info(f"Exporting dashboard {dashboard.name}")
    url = f"{ctx.source.url}{DASHBOARD_EXPORT_ENDPOINT}"
    try:
        response = ctx.client.request(ctx.source, True, 'GET', url, params={'dashboardId': dashboard.id})
        write_output_file(output_file, response.content)
    except (HttpError, OSError) as e:
        ctx.logger.warning(f"There was an issue exporting dashboard {dashboard.name} ({dashboard.id}): {e}")
        ctx.summary.dashboards_failed += 1
        return False
    ctx.summary.dashboards_exported += 1
    return True


def export_dashboards(ctx: ExportContext) -> None:
    """Export all dashboards whose name matches the dashboard regex."""
    ctx.logger.info("Exporting dashboards")
    dashboards_dir = make_subdirectory(ctx.run_dir, DASHBOARDS_DIR)

    ctx.logger.info("Retrieving AppDynamics dashboards details")
    try:
        dashboards = get_entities_info(
            ctx.client,
            f"{ctx.source.url}{DASHBOARD_LIST_ENDPOINT}",
            ctx.settings.dashboard_names,
            authenticated=True,
            session=ctx.source,
        )
    except HttpError as e:
        ctx.logger.warning(f"Could not retrieve AppDynamics dashboards: {e}")
        ctx.summary.dashboards_failed += 1
        return
    ctx.logger.info(f"Matched dashboards: {format_entities(dashboards)}")

    for dashboard in dashboards:
        export_dashboard(ctx, dashboard, dashboards_dir)


def export_account_config(ctx: ExportContext) -> None:
    """Export account level configuration.

    ``dashboards`` goes through the controller UI API, ``server``,
    ``analytics`` and ``database`` are exported as application config of the
    matching built-in monitoring application, and everything else is fetched
    with the exporter's ``account`` placeholder.
    """
    ctx.logger.info("Exporting account level configuration")
    account_dir = make_subdirectory(ctx.run_dir, ACCOUNT_DIR)

    for entity in ctx.settings.account_config:
        # Dashboards and the monitoring applications have their own export paths
        if entity == DASHBOARDS_ENTITY:
            export_dashboards(ctx)
        elif entity in ACCOUNT_APPLICATION_ENTITIES:
            definition = ACCOUNT_APPLICATION_ENTITIES[entity]
            try:
                applications = ctx.exporter.get_applications_info(ctx.controller_id, definition.application_names)
            except HttpError as e:
                ctx.logger.warning(f"Could not retrieve applications for account config {entity}: {e}")
                ctx.summary.failed += 1
                continue
            export_application_config(ctx, applications, definition.application_config)
        else:
            export_config_entity(ctx, ACCOUNT_APPLICATION_ID, ACCOUNT_APPLICATION_ID, entity, account_dir)


def execute_export(settings: Settings, client: AppDynamicsAPIClient, source: ControllerSession,
                   logger: Optional[logging.Logger] = None, show_progress: bool = False) -> ExportSummary:
    """Run the export workflow.

    Args:
        settings: Run settings
        client: HTTP client
        source: Source controller session (cleaned up by the caller)
        logger: Logger instance
        show_progress: Whether to display a progress bar over applications

    Returns:
        ExportSummary with the run directory and success/failure counts

    Raises:
        OutputError: If the output tree cannot be created
        WorkflowError: If the source controller is not registered with the exporter
        HttpError: If the application list cannot be retrieved
    """
    logger = logger or logging.getLogger(__name__)
    logger.info("Export Configuration: Start")

    run_dir = create_run_directory(settings.output_dir)
    exporter = ConfigExporterClient(settings.config_exporter_url, client)
    ctx = ExportContext(
        settings=settings,
        client=client,
        exporter=exporter,
        source=source,
        run_dir=run_dir,
        summary=ExportSummary(run_dir=run_dir),
        show_progress=show_progress,
        logger=logger,
    )

    # Controller UI calls are only needed for dashboards
    if settings.requires_login_cookie:
        authenticate_source(ctx)

    # Every exporter call below is addressed by controller id
    logger.info("Retrieving Source Controller id")
    ctx.controller_id = resolve_controller_id(exporter, settings.source.url, logger)

    if settings.application_config:
        logger.info("Retrieving AppDynamics application details")
        applications = exporter.get_applications_info(ctx.controller_id, settings.application_names)
        logger.info(f"Matched applications: {format_entities(applications)}")
        logger.info("Exporting AppDynamics application configuration")
        export_application_config(ctx, applications, settings.application_config)

    if settings.account_config:
        logger.info("Exporting AppDynamics account configuration")
        export_account_config(ctx)

    summary = ctx.summary
    logger.info(
        f"Export summary: {summary.exported} entities exported, {summary.failed} failed, "
        f"{summary.dashboards_exported} dashboards exported, {summary.dashboards_failed} failed"
    )
    logger.info(f"Output directory: {run_dir}")
    logger.info("Export Configuration: Completed")
    return summary
