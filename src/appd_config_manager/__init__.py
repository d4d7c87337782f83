"""
AppDynamics Config Manager

Backups and migrations of AppDynamics configuration through the Config
Exporter API.
"""

__version__ = "0.2.0"

from .cli import main
from .core import EntityInfo, MigrationRequest, parse_entities
from .execution import execute_export, execute_migrate
from .shared import AppDynamicsAPIClient, ControllerSession, Settings, load_settings
from .shared.logging import setup_logging

__all__ = [
    # CLI functionality
    "main",
    # Core functionality
    "EntityInfo",
    "MigrationRequest",
    "parse_entities",
    # Workflows
    "execute_export",
    "execute_migrate",
    # Shared utilities
    "AppDynamicsAPIClient",
    "ControllerSession",
    "Settings",
    "load_settings",
    "setup_logging",
]
