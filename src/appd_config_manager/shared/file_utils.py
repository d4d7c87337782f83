"""
File utilities for the export output tree.

An export run writes everything below a timestamped directory::

    <output_dir>/<YYYYmmddHHMMSS>/
        <application name or id>/<entity>.json
        account/<entity>.json
        dashboards/<dashboard name or id>.json
"""

import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from .exceptions import OutputError

TIMESTAMP_FORMAT = '%Y%m%d%H%M%S'
ACCOUNT_DIR = "account"
DASHBOARDS_DIR = "dashboards"
COOKIE_FILE = ".appd_cookie"

# Marker present in every document the Config Exporter returns successfully.
VALID_EXPORT_MARKER = b"controllerUrl"

logger = logging.getLogger(__name__)


def create_run_directory(output_dir: Union[str, Path], timestamp: Optional[str] = None) -> Path:
    """Create ``<output_dir>/<timestamp>`` and return it.

    The output directory itself is created if it does not exist yet.

    Raises:
        OutputError: If either directory cannot be created
    """
    timestamp = timestamp or datetime.now().strftime(TIMESTAMP_FORMAT)
    base = Path(output_dir)
    try:
        base.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise OutputError(f"Could not create output directory: {base} ({e})")

    run_dir = base / timestamp
    try:
        run_dir.mkdir(exist_ok=True)
    except OSError as e:
        raise OutputError(f"Could not create output directory: {run_dir} ({e})")
    logger.debug(f"Created run directory: {run_dir}")
    return run_dir


def safe_filename(name: str) -> str:
    """Make an entity or dashboard name usable as a single path component."""
    cleaned = re.sub(r"[\\/]", "_", name).strip()
    if cleaned in ("", ".", ".."):
        return "_" * max(len(cleaned), 1)
    return cleaned


def output_name(name: str, entity_id: Union[int, str], output_name_mode: str = "name") -> str:
    """Return the directory/file stem for an entity according to the naming mode."""
    if output_name_mode == "id":
        return str(entity_id)
    return safe_filename(name)


def make_subdirectory(parent: Path, name: str) -> Path:
    """Create (if needed) and return ``parent/name``.

    Raises:
        OutputError: If the directory cannot be created
    """
    path = parent / name
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise OutputError(f"Could not create directory: {path} ({e})")
    return path


def write_output_file(path: Path, content: bytes) -> Path:
    """Write a fetched document to disk, creating the parent directory."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    logger.debug(f"Wrote {len(content)} bytes to {path}")
    return path


def validate_config_output(path: Path) -> bool:
    """Check that an exported entity file looks like a Config Exporter document."""
    try:
        return VALID_EXPORT_MARKER in Path(path).read_bytes()
    except OSError:
        return False
