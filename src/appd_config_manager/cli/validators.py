"""
CLI argument validators.

Click callbacks used by the command line options.
"""

import click


def validate_non_empty_string(ctx, param, value):
    """Click validator for non-empty string."""
    if value is None:
        return value

    if not value.strip():
        raise click.BadParameter(f"{param.name} cannot be empty")

    return value.strip()


def validate_mode(ctx, param, value):
    """Click validator normalising the run mode."""
    if value is None:
        return value
    return value.lower()
