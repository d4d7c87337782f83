"""
Execution utility functions.

Helpers shared by the export and migrate workflows.
"""

import logging
from typing import Optional

from tqdm import tqdm

from ..shared.exceptions import WorkflowError
from .exporter import ConfigExporterClient


def create_progress_bar(total: int, desc: str = "Processing", unit: str = "items", disable: bool = False,
                        position: int = None, leave: bool = True):
    """Create a tqdm progress bar with consistent styling.

    Args:
        total: Total number of items to process
        desc: Description for the progress bar
        unit: Unit of measurement (apps, entities, dashboards, etc.)
        disable: Whether to disable the progress bar
        position: Position for the progress bar (for multiple bars)
        leave: Whether to leave the progress bar after completion

    Returns:
        tqdm progress bar instance
    """
    return tqdm(
        total=total,
        desc=desc,
        unit=unit,
        disable=disable,
        position=position,
        leave=leave,
        bar_format='{l_bar}{bar}| {n_fmt}/{total_fmt} [{elapsed}<{remaining}, {rate_fmt}]',
        colour='green',
        ncols=120
    )


def resolve_controller_id(exporter: ConfigExporterClient, controller_url: str,
                          logger: Optional[logging.Logger] = None) -> int:
    """Look up a controller's id in the Config Exporter.

    Raises:
        WorkflowError: If the controller is not registered with the exporter
    """
    logger = logger or logging.getLogger(__name__)
    controller_id = exporter.get_controller_id(controller_url)
    if controller_id is None:
        raise WorkflowError(
            f"Could not retrieve the controller id via the Config Exporter API. Is {controller_url} configured?"
        )
    logger.debug(f"Controller {controller_url} has Config Exporter id {controller_id}")
    return controller_id
