# connections_manager.py
"""
connections_manager.py
----------------------
Creates environments-service clients from settings.

Clients are not cached: each command invocation builds its own client
and closes it when done.
"""

import logging

from box import Box

from common.errors import ConfigurationError
from connectors.environment_interface import EnvironmentsClient
from connectors.rest_environment_connector import RestEnvironmentsClient

logger = logging.getLogger(__name__)


def get_client(settings: Box, client_type: str = "rest") -> EnvironmentsClient:
    """
    Create a client for the service described by ``settings``
    (backend_url, access_token, timeout).
    """
    if not settings.get("backend_url"):
        raise ConfigurationError("no backend URL configured; set backend_url or ESCOPEN_BACKEND_URL")

    if client_type == "rest":
        if not settings.get("access_token"):
            logger.warning("No access token configured for %s; requests are unauthenticated", settings.backend_url)
        client = RestEnvironmentsClient(
            settings.backend_url,
            access_token=settings.get("access_token"),
            timeout=settings.get("timeout", 30.0),
        )
    # Add other client types here as needed
    else:
        raise ValueError(f"Unsupported client type: {client_type}")

    logger.debug("Created client %s", client.info.to_dict())
    return client
