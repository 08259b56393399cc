"""
Configuration Connector for the Authorization Model Engine.

Reads and updates configuration instances of the configuration service,
used to switch off sharing and resharing.
"""

import logging
from typing import Any, Dict, List

from ..models import ConfigurationCollection
from .base_connector import BaseConnector, ConnectorResult

logger = logging.getLogger(__name__)

CONFIGURATIONS_PATH = "/configuration/configurations"
AUTHORIZATION_DEFINITION = "sas.authorization"
AUTHORIZATION_MEDIA_TYPE = "application/vnd.sas.configuration.config.sas.authorization+json;version=3"


class ConfigurationConnector(BaseConnector):
    """Connector for configuration instances."""

    def list_configurations(self, definition: str) -> List[str]:
        """Return the IDs of all configuration instances of a definition."""
        payload, status = self.session.call(
            "GET", CONFIGURATIONS_PATH,
            query=[("definitionName", definition), ("limit", self.limit)],
        )
        search = self._decode(ConfigurationCollection, payload, CONFIGURATIONS_PATH, status)
        return [item.id for item in search.items] if search.count else []

    def update_configuration(self, config_id: str, values: Dict[str, Any],
                             media_type: str) -> ConnectorResult:
        logger.info(f"Changing configuration setting {config_id}: {values}")
        _, status = self.session.call(
            "PUT", f"{CONFIGURATIONS_PATH}/{config_id}",
            content_type=media_type, accept_type=media_type, body=values,
        )
        if not self._ok(status):
            error = f"Updating configuration {config_id} failed with status {status}"
            logger.error(error)
            return ConnectorResult(False, error, config_id, error=error)
        return ConnectorResult(True, f"Updated configuration {config_id}", config_id)

    def disable_sharing(self) -> List[ConnectorResult]:
        """Turn off sharing and resharing on every sas.authorization instance."""
        config_ids = self.list_configurations(AUTHORIZATION_DEFINITION)
        if not config_ids:
            logger.debug("Sharing and resharing setting not found")
            return []
        return [
            self.update_configuration(
                config_id,
                {"share.reshare.enabled": False, "share.enabled": False},
                AUTHORIZATION_MEDIA_TYPE,
            )
            for config_id in config_ids
        ]
