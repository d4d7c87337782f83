"""
Configuration loading for the AppDynamics config manager.

The configuration file is a shell-style ``key=value`` file, the same format
the Config Exporter wrapper scripts have always used. Values may be quoted,
empty, or span several lines inside quotes (handy for long entity lists)::

    appd_src_url=https://source.saas.appdynamics.com
    appd_src_account=source
    appd_src_api_user=exporter
    appd_src_api_password='s3cret'
    appd_application_names='^MyApp$'
    appd_dashboard_names='.*'
    appd_application_config="
        health-rules,
        policies,
        actions"
    output_dir=./backups
    config_exporter_url=http://localhost:8080

The file is parsed with python-dotenv and turned into an immutable
:class:`Settings` instance that is passed explicitly to every workflow.
"""

import io
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Tuple

from dotenv import dotenv_values

from .exceptions import ConfigError

MODES = ("export", "migrate")
OUTPUT_NAME_MODES = ("name", "id")

DEFAULT_HTTP_TIMEOUT = 60.0
DEFAULT_EXPORTER_TIMEOUT = 60.0

# Checked in this order; the first missing key is reported.
REQUIRED_SOURCE_KEYS = (
    "appd_src_url",
    "appd_src_account",
    "appd_src_api_user",
    "appd_src_api_password",
    "appd_application_names",
    "appd_dashboard_names",
    "output_dir",
)
REQUIRED_DESTINATION_KEYS = (
    "appd_dst_url",
    "appd_dst_account",
    "appd_dst_api_user",
    "appd_dst_api_password",
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ControllerSettings:
    """Connection settings for one controller (source or destination)."""

    url: str
    account: str
    api_user: str
    api_password: str
    api_secret: Optional[str] = None
    proxy: Optional[str] = None


@dataclass(frozen=True)
class Settings:
    """Run settings, loaded once at startup and never mutated."""

    mode: str
    source: ControllerSettings
    application_names: str
    dashboard_names: str
    output_dir: Path
    config_exporter_url: str
    application_config: Tuple[str, ...] = ()
    account_config: Tuple[str, ...] = ()
    destination: Optional[ControllerSettings] = None
    overwrite_on_export: bool = False
    create_tier_on_export: bool = False
    output_name_mode: str = "name"
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    config_exporter_timeout: float = DEFAULT_EXPORTER_TIMEOUT

    @property
    def requires_login_cookie(self) -> bool:
        """True when an account entity needs a controller UI login (dashboards)."""
        return any("dashboard" in entity for entity in self.account_config)


def clean_entity_list(value: Optional[str]) -> Tuple[str, ...]:
    """Normalise a comma separated entity list.

    Newlines and whitespace are removed, tokens keep their order and
    duplicates are preserved. Empty tokens (e.g. a trailing comma) are dropped.
    """
    if not value:
        return ()
    compact = re.sub(r"\s+", "", value)
    return tuple(token for token in compact.split(",") if token)


def _parse_bool(config: Dict[str, Optional[str]], key: str) -> bool:
    value = (config.get(key) or "").strip().lower()
    if not value:
        return False
    if value in ("true", "false"):
        return value == "true"
    raise ConfigError(f"Invalid value for {key}: {config.get(key)!r} (expected true or false)")


def _parse_seconds(config: Dict[str, Optional[str]], key: str, default: float) -> float:
    value = (config.get(key) or "").strip()
    if not value:
        return default
    try:
        seconds = float(value)
    except ValueError:
        raise ConfigError(f"Invalid value for {key}: {value!r} (expected a number of seconds)")
    if seconds <= 0:
        raise ConfigError(f"Invalid value for {key}: {value!r} (must be positive)")
    return seconds


def _require(config: Dict[str, Optional[str]], key: str) -> str:
    value = config.get(key)
    if value is None or not value.strip():
        raise ConfigError(f"Missing required config entry: {key}")
    return value.strip()


def _require_pattern(config: Dict[str, Optional[str]], key: str) -> str:
    """Require a value that is later used as a regular expression."""
    value = _require(config, key)
    try:
        re.compile(value)
    except re.error as e:
        raise ConfigError(f"Invalid value for {key}: {value!r} (not a valid regular expression: {e})")
    return value


def read_config_file(config_path: str) -> Dict[str, Optional[str]]:
    """Read and parse a shell-style config file into a raw dictionary.

    Raises:
        ConfigError: If the file does not exist or cannot be read
    """
    path = Path(config_path)
    if not path.is_file():
        raise ConfigError(f"{config_path} is not readable")
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"{config_path} is not readable: {e}")
    return dict(dotenv_values(stream=io.StringIO(content)))


def _controller_settings(config: Dict[str, Optional[str]], prefix: str) -> ControllerSettings:
    return ControllerSettings(
        url=_require_pattern(config, f"appd_{prefix}_url").rstrip("/"),
        account=_require(config, f"appd_{prefix}_account"),
        api_user=_require(config, f"appd_{prefix}_api_user"),
        api_password=_require(config, f"appd_{prefix}_api_password"),
        api_secret=(config.get(f"appd_{prefix}_api_secret") or "").strip() or None,
        proxy=(config.get(f"appd_{prefix}_proxy") or "").strip() or None,
    )


def settings_from_mapping(config: Dict[str, Optional[str]], mode: str) -> Settings:
    """Validate a raw key/value mapping and build :class:`Settings`.

    Raises:
        ConfigError: On the first missing required key or invalid value
    """
    if mode not in MODES:
        raise ConfigError(f"Unknown mode: {mode}")

    for key in REQUIRED_SOURCE_KEYS:
        _require(config, key)

    application_config = clean_entity_list(config.get("appd_application_config"))
    account_config = clean_entity_list(config.get("appd_account_config"))
    if not application_config and not account_config:
        raise ConfigError("Missing required config entry: appd_application_config or appd_account_config")

    config_exporter_url = _require(config, "config_exporter_url").rstrip("/")

    destination = None
    if mode == "migrate":
        for key in REQUIRED_DESTINATION_KEYS:
            _require(config, key)
        destination = _controller_settings(config, "dst")

    output_name_mode = (config.get("output_name_mode") or "name").strip()
    if output_name_mode not in OUTPUT_NAME_MODES:
        raise ConfigError(f"Invalid value for output_name_mode: {output_name_mode!r} (expected name or id)")

    return Settings(
        mode=mode,
        source=_controller_settings(config, "src"),
        destination=destination,
        application_names=_require_pattern(config, "appd_application_names"),
        dashboard_names=_require_pattern(config, "appd_dashboard_names"),
        output_dir=Path(_require(config, "output_dir")).expanduser(),
        config_exporter_url=config_exporter_url,
        application_config=application_config,
        account_config=account_config,
        overwrite_on_export=_parse_bool(config, "overwrite_on_export"),
        create_tier_on_export=_parse_bool(config, "create_tier_on_export"),
        output_name_mode=output_name_mode,
        http_timeout=_parse_seconds(config, "http_timeout", DEFAULT_HTTP_TIMEOUT),
        config_exporter_timeout=_parse_seconds(config, "config_exporter_timeout", DEFAULT_EXPORTER_TIMEOUT),
    )


def load_settings(config_path: str, mode: str) -> Settings:
    """Load and validate the configuration file for the given mode.

    Args:
        config_path: Path to the shell-style configuration file
        mode: 'export' or 'migrate'

    Returns:
        Settings instance

    Raises:
        ConfigError: If the file is unreadable or a required entry is missing
    """
    config = read_config_file(config_path)
    settings = settings_from_mapping(config, mode)
    logger.debug(f"Loaded configuration from: {config_path}")
    return settings


def log_settings(settings: Settings) -> None:
    """Log the key settings of the run."""
    logger.info(f"Running AppDynamics Config Manager mode: {settings.mode}")
    logger.info(f"Using AppDynamics Source URL: {settings.source.url}")
    if settings.destination:
        logger.info(f"Using AppDynamics Destination URL: {settings.destination.url}")
    logger.info(f"Using output directory: {settings.output_dir}")
    logger.info(f"Using application name regex: {settings.application_names}")
    logger.info(f"Using dashboard name regex: {settings.dashboard_names}")
