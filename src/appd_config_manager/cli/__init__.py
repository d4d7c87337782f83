"""
Command Line Interface for the AppDynamics config manager.

This module contains CLI parsing, validation, and main execution logic.
"""

from .main import cli, main, run
from .validators import validate_mode, validate_non_empty_string

__all__ = [
    # Validators
    "validate_mode",
    "validate_non_empty_string",
    # Main execution
    "cli",
    "main",
    "run",
]
