"""
Execution functions for the config manager.

This module contains the export and migrate workflows and the Config
Exporter service helpers they rely on.
"""

from .export_operations import ExportSummary, execute_export
from .exporter import ConfigExporterClient
from .exporter_process import ExporterProcess
from .migrate_operations import MigrationSummary, execute_migrate
from .utils import create_progress_bar, resolve_controller_id

__all__ = [
    # Workflows
    "execute_export",
    "execute_migrate",
    "ExportSummary",
    "MigrationSummary",
    # Config Exporter
    "ConfigExporterClient",
    "ExporterProcess",
    # Utils
    "create_progress_bar",
    "resolve_controller_id",
]
