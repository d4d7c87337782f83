"""
Shared utilities.

Configuration, HTTP client, output tree helpers, logging and exceptions
used across the config manager.
"""

from .api_client import AppDynamicsAPIClient, ControllerSession
from .config import ControllerSettings, Settings, load_settings
from .exceptions import (
    AuthError,
    ConfigError,
    ConfigManagerError,
    HttpError,
    OutputError,
    WorkflowError,
)
from .file_utils import create_run_directory, validate_config_output

__all__ = [
    "AppDynamicsAPIClient",
    "ControllerSession",
    "ControllerSettings",
    "Settings",
    "load_settings",
    "create_run_directory",
    "validate_config_output",
    "ConfigManagerError",
    "ConfigError",
    "HttpError",
    "AuthError",
    "OutputError",
    "WorkflowError",
]
