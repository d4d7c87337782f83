"""
Config Exporter service API.

Thin wrapper over the endpoints of the locally-run Config Exporter: the
registered controller list, the per-controller application list, the
entity file download and the application config migration.
"""

import logging
import re
from typing import Any, List, Optional, Union

import requests

from ..core.config_entities import MigrationRequest
from ..core.entities import EntityInfo, get_entities_info
from ..shared.api_client import AppDynamicsAPIClient
from ..shared.exceptions import ConfigError, HttpError

ACCOUNT_APPLICATION_ID = "account"


class ConfigExporterClient:
    """Client for the Config Exporter REST API.

    Exporter calls are never authenticated against a controller: the
    exporter holds its own credentials for every registered controller.
    """

    def __init__(self, base_url: str, client: AppDynamicsAPIClient, logger: Optional[logging.Logger] = None):
        self.base_url = base_url.rstrip('/')
        self.client = client
        self.logger = logger or logging.getLogger(__name__)

    def list_controllers(self) -> List[Any]:
        """Return the controllers registered with the exporter (``[{id, url}, ...]``)."""
        controllers = self.client.get_json(None, False, f"{self.base_url}/api/controllers")
        if not isinstance(controllers, list):
            raise HttpError(f"Unexpected controller list returned by {self.base_url}/api/controllers",
                            url=f"{self.base_url}/api/controllers")
        return controllers

    def get_controller_id(self, controller_url: str) -> Optional[int]:
        """Find the exporter's id for a controller by matching its registered URL.

        ``controller_url`` is used as a regular expression against each
        registered URL. The first match wins.

        Returns:
            Controller id, or None if the controller is not registered

        Raises:
            ConfigError: If ``controller_url`` is not a valid regular expression
        """
        try:
            pattern = re.compile(controller_url)
        except re.error as e:
            raise ConfigError(f"Invalid controller URL pattern {controller_url!r}: {e}")
        matches = [
            controller for controller in self.list_controllers()
            if isinstance(controller, dict) and controller.get("id") is not None
            and pattern.search(str(controller.get("url", "")))
        ]
        if not matches:
            return None
        if len(matches) > 1:
            self.logger.warning(
                f"Several Config Exporter controllers match {controller_url}, using id {matches[0]['id']}"
            )
        return int(matches[0]["id"])

    def get_applications_info(self, controller_id: int, regex: str) -> List[EntityInfo]:
        """List the applications of a registered controller whose name matches ``regex``."""
        url = f"{self.base_url}/api/controllers/{controller_id}/applications"
        return get_entities_info(self.client, url, regex, authenticated=False)

    def fetch_config_entity(self, controller_id: int, entity: str,
                            application_id: Union[int, str] = ACCOUNT_APPLICATION_ID) -> bytes:
        """Download one configuration entity document.

        Raises:
            HttpError: If the request fails
        """
        url = f"{self.base_url}/api/controllers/{controller_id}/files/{entity}"
        response = self.client.request(None, False, 'GET', url, params={'applicationId': application_id})
        return response.content

    def migrate_application_config(self, migration: MigrationRequest) -> requests.Response:
        """POST an application config migration request.

        Raises:
            HttpError: If the request fails
        """
        url = f"{self.base_url}/api/rest/app-config"
        return self.client.request(None, False, 'POST', url, json=migration.to_payload())
