"""
Configuration entity catalogue.

Maps the entity names used in the configuration file (and by the Config
Exporter's file endpoints) to the identifiers its migration endpoint
expects, and defines the account-level entities that are exported through
a dedicated monitoring application.
"""

from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..shared.exceptions import ConfigError

APP_CONFIG_MAP: Dict[str, str] = {
    "scopes": "CONFIG20_SCOPES",
    "rules": "CONFIG20_RULES",
    "backend-detection": "BACKEND_DETECTION",
    "exit-points": "CUSTOM_EXIT_POINTS",
    "info-points": "INFORMATION_POINTS",
    "health-rules": "HEALTH_RULES",
    "actions": "ACTIONS",
    "policies": "POLICIES",
    "metric-baselines": "METRIC_BASELINES",
    "bt-config": "BT_CONFIG",
    "data-collectors": "DATA_COLLECTORS",
    "call-graph-settings": "CALL_GRAPH_SETTINGS",
    "error-detection": "ERROR_DETECTION",
    "jmx-rules": "JMX_RULES",
    "appagent-properties": "APPAGENT_PROPERTIES",
    "service-endpoint-detection": "SERVICE_ENDPOINT_DETECTION",
    "slow-transaction-thresholds": "SLOW_TRANSACTION_THRESHOLDS",
    "eum-app-integration": "EUM_APP_INTEGRATION",
    "async-config": "ASYNC_CONFIG",
    "db-collectors": "DB_COLLECTORS",
    "analytics-searches": "ANALYTICS_SEARCH",
    "analytics-metrics": "ANALYTICS_METRICS",
    "browser-eum-config": "EUM_BROWSER_CONFIG",
    "mobile-eum-config": "EUM_MOBILE_CONFIG",
    "synthetic-jobs": "EUM_SYNTHETIC_JOBS",
}

DASHBOARDS_ENTITY = "dashboards"


@dataclass(frozen=True)
class AccountApplicationEntity:
    """Account entity exported as application config of a built-in monitoring app."""

    application_names: str
    application_config: Tuple[str, ...]


ACCOUNT_APPLICATION_ENTITIES: Dict[str, AccountApplicationEntity] = {
    "server": AccountApplicationEntity(
        "Server & Infrastructure Monitoring",
        ("health-rules", "actions", "policies", "metric-baselines"),
    ),
    "analytics": AccountApplicationEntity(
        "AppDynamics Analytics",
        ("health-rules", "actions", "policies", "metric-baselines", "analytics-searches", "analytics-metrics"),
    ),
    "database": AccountApplicationEntity(
        "Database Monitoring",
        ("health-rules", "actions", "policies", "metric-baselines", "db-collectors"),
    ),
}


def convert_config_names(entities: Iterable[str]) -> List[str]:
    """Translate application entity names into migration identifiers.

    Raises:
        ConfigError: If any entity name is not in APP_CONFIG_MAP
    """
    converted = []
    for entity in entities:
        if entity not in APP_CONFIG_MAP:
            raise ConfigError(f"Could not convert app config entity '{entity}'.")
        converted.append(APP_CONFIG_MAP[entity])
    return converted


@dataclass(frozen=True)
class MigrationRequest:
    """Body of a Config Exporter application migration request."""

    src_controller_id: int
    dest_controller_id: int
    config_names: Tuple[str, ...]
    overwrite: bool = False
    create_tier: bool = False
    src_application_id: Optional[int] = None
    dest_application_id: Optional[int] = None

    @classmethod
    def template(cls, src_controller_id: int, dest_controller_id: int, entities: Iterable[str],
                 overwrite: bool = False, create_tier: bool = False) -> "MigrationRequest":
        """Build the per-run request template, validating every entity name."""
        return cls(
            src_controller_id=src_controller_id,
            dest_controller_id=dest_controller_id,
            config_names=tuple(convert_config_names(entities)),
            overwrite=overwrite,
            create_tier=create_tier,
        )

    def for_applications(self, src_application_id: int, dest_application_id: int) -> "MigrationRequest":
        return replace(self, src_application_id=src_application_id, dest_application_id=dest_application_id)

    def to_payload(self) -> Dict[str, Any]:
        if self.src_application_id is None or self.dest_application_id is None:
            raise ValueError("Migration request has no application ids")
        return {
            "srcControllerId": self.src_controller_id,
            "destControllerId": self.dest_controller_id,
            "srcApplicationId": self.src_application_id,
            "destApplicationId": self.dest_application_id,
            "configNames": list(self.config_names),
            "properties": {
                "overwrite": self.overwrite,
                "createTier": self.create_tier,
            },
        }
