"""
Migrate workflow.

Moves application configuration from source applications to the
destination applications of the same name through the Config Exporter's
migration endpoint. Account level migration is not implemented.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from ..core.config_entities import MigrationRequest, convert_config_names
from ..core.entities import EntityInfo, find_entity_by_name, format_entities
from ..shared.api_client import AppDynamicsAPIClient
from ..shared.config import Settings
from ..shared.exceptions import ConfigError, HttpError, WorkflowError
from .exporter import ConfigExporterClient
from .utils import resolve_controller_id


@dataclass
class MigrationSummary:
    """Outcome of a migrate run."""

    migrated: int = 0
    skipped: int = 0
    failed: int = 0
    skipped_applications: List[str] = field(default_factory=list)


def migrate_application_config(exporter: ConfigExporterClient, template: MigrationRequest,
                               src_applications: List[EntityInfo], dst_applications: List[EntityInfo],
                               logger: Optional[logging.Logger] = None,
                               summary: Optional[MigrationSummary] = None) -> MigrationSummary:
    """Migrate every source application to its same-named destination application.

    Source applications without an exact name match on the destination are
    skipped with a warning.
    """
    logger = logger or logging.getLogger(__name__)
    summary = summary or MigrationSummary()

    for src_app in src_applications:
        logger.info(f"Migrating configuration for application {src_app.name} ({src_app.id})")

        # Applications are paired by exact name only
        dst_app = find_entity_by_name(src_app.name, dst_applications)
        if dst_app is None:
            logger.warning(
                f"Could not migrate application: {src_app.name} not found on destination. "
                f"Please create the application first."
            )
            summary.skipped += 1
            summary.skipped_applications.append(src_app.name)
            continue
        logger.info(f"Found matching application {src_app.name} ({dst_app.id}) on destination")

        # Fill the shared template with this pair of application ids
        migration = template.for_applications(src_app.id, dst_app.id)
        try:
            response = exporter.migrate_application_config(migration)
        except HttpError as e:
            logger.warning(f"Migration of application {src_app.name} failed: {e}")
            summary.failed += 1
            continue
        logger.debug(f"Migration response for {src_app.name}: {response.text}")
        summary.migrated += 1

    return summary


def execute_migrate(settings: Settings, client: AppDynamicsAPIClient,
                    logger: Optional[logging.Logger] = None) -> MigrationSummary:
    """Run the migrate workflow.

    Every configured application entity is validated before the first
    network call.

    Raises:
        ConfigError: If the destination is missing or an entity name is unknown
        WorkflowError: If a controller id cannot be resolved, or account config is requested
        HttpError: If an application list cannot be retrieved
    """
    logger = logger or logging.getLogger(__name__)
    if settings.destination is None:
        raise ConfigError("Missing required config entry: appd_dst_url")

    logger.info("Migrate Configuration: Start")
    # Fail on an unknown entity name before any network call
    convert_config_names(settings.application_config)

    exporter = ConfigExporterClient(settings.config_exporter_url, client)

    logger.info("Retrieving Source Controller id")
    src_controller_id = resolve_controller_id(exporter, settings.source.url, logger)
    logger.info("Retrieving Destination Controller id")
    dst_controller_id = resolve_controller_id(exporter, settings.destination.url, logger)

    summary = MigrationSummary()
    if settings.application_config:
        template = MigrationRequest.template(
            src_controller_id,
            dst_controller_id,
            settings.application_config,
            overwrite=settings.overwrite_on_export,
            create_tier=settings.create_tier_on_export,
        )

        logger.info("Retrieving Source AppDynamics application details")
        src_applications = exporter.get_applications_info(src_controller_id, settings.application_names)
        logger.info(f"Matched applications: {format_entities(src_applications)}")

        logger.info("Retrieving Destination AppDynamics application details")
        dst_applications = exporter.get_applications_info(dst_controller_id, settings.application_names)
        logger.info(f"Matched applications: {format_entities(dst_applications)}")

        logger.info("Migrating AppDynamics application configuration")
        migrate_application_config(exporter, template, src_applications, dst_applications, logger, summary)

    # Account entities are only checked after the applications were migrated
    if settings.account_config:
        raise WorkflowError("Migrate Account Config is not yet implemented.")

    logger.info(
        f"Migration summary: {summary.migrated} migrated, {summary.skipped} skipped, {summary.failed} failed"
    )
    logger.info("Migrate Configuration: Completed")
    return summary
