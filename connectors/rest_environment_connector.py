import logging
from datetime import timedelta
from typing import Any
from urllib.parse import quote

import httpx
from box import Box
from pydantic import ValidationError

from environments.lifetime import format_duration
from environments.models import Diagnostic, Environment, ErrorResponse, OpenResponse

logger = logging.getLogger(__name__)

API_PREFIX = "/api/preview/environments"


class RestEnvironmentsClient:
    """ An environments service client over its REST API.

    Args:
        backend_url (str): The base URL of the service.
            Must include scheme (http:// or https://) and optionally port.
            Examples: "http://localhost:8000", "https://api.pulumi.com"
        access_token (str | None): Token sent as ``Authorization: token <...>``.
        timeout (float): Per-request timeout in seconds.
        http_client (httpx.Client | None): Use this client instead of creating one
            (tests pass a FastAPI TestClient here).
    """

    def __init__(self, backend_url: str, access_token: str | None = None, timeout: float = 30.0,
                 http_client: httpx.Client | None = None):
        self.backend_url = backend_url.rstrip("/")
        self.access_token = access_token
        headers = {"Accept": "application/json"}
        if access_token:
            headers["Authorization"] = f"token {access_token}"
        if http_client is None:
            self._client = httpx.Client(base_url=self.backend_url, headers=headers, timeout=timeout)
            self._owns_client = True
        else:
            http_client.headers.update(headers)
            self._client = http_client
            self._owns_client = False

    def __enter__(self) -> "RestEnvironmentsClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def request(self, method: str, endpoint: str, **kwargs) -> httpx.Response:
        """
        Make an HTTP request to the service. Does not raise on error statuses.

        Args:
            method (str): The HTTP method (GET, POST, PUT, DELETE).
            endpoint (str): The API endpoint (path) to call.
            **kwargs: Additional arguments to pass to httpx request.
            example: client.request("GET", "/status")
        """
        url = f"{self.backend_url}/{endpoint.lstrip('/')}"
        logger.debug("%s %s", method, url)
        return self._client.request(method, url, **kwargs)

    @property
    def info(self) -> Box:
        return Box({
            "type": "rest",
            "backendURL": self.backend_url,
            "authenticated": bool(self.access_token),
        })

    def open_environment(self, org: str, env_name: str, lifetime: timedelta) -> tuple[str, list[Diagnostic]]:
        r = self.request("POST", f"{_env_path(org, env_name)}/open",
                         params={"duration": format_duration(lifetime)})
        if r.status_code == httpx.codes.BAD_REQUEST:
            diags = _error_diagnostics(r)
            if diags:
                logger.info("Open of %s/%s returned %d diagnostic(s)", org, env_name, len(diags))
                return "", diags
        r.raise_for_status()
        opened = OpenResponse.model_validate(r.json())
        return opened.id, opened.diagnostics

    def get_open_environment(self, org: str, env_name: str, session_id: str) -> Environment:
        r = self.request("GET", f"{_env_path(org, env_name)}/open/{quote(session_id, safe='')}")
        r.raise_for_status()
        return Environment.from_payload(r.json())

    def close(self) -> None:
        if self._owns_client:
            self._client.close()


def _env_path(org: str, env_name: str) -> str:
    return f"{API_PREFIX}/{quote(org, safe='')}/{quote(env_name, safe='')}"


def _error_diagnostics(response: httpx.Response) -> list[Diagnostic]:
    try:
        payload: Any = response.json()
        return ErrorResponse.model_validate(payload).diagnostics
    except (ValueError, ValidationError):
        return []
