"""
Exceptions raised by the AppDynamics config manager.

Anything deriving from ConfigManagerError is fatal: the CLI logs it and
exits with status 1. Recoverable conditions are logged as warnings by the
workflows and never raised past them.
"""

from typing import Optional


class ConfigManagerError(Exception):
    """Base class for all fatal errors."""


class ConfigError(ConfigManagerError):
    """Missing, unreadable or invalid configuration."""


class OutputError(ConfigManagerError):
    """The output tree could not be created."""


class WorkflowError(ConfigManagerError):
    """A workflow precondition failed (controller id, exporter, unimplemented mode)."""


class HttpError(ConfigManagerError):
    """An HTTP request failed at the transport level or returned a non-2xx status."""

    def __init__(self, message: str, url: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class AuthError(HttpError):
    """Authentication against the controller failed."""
