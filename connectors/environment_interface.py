from datetime import timedelta
from typing import Protocol

from box import Box

from environments.models import Diagnostic, Environment


class EnvironmentsClient(Protocol):
    """
    Protocol for a client of an environments service.
    Implementations talk to the service and return wire models; they
    do not retry, and transport failures are raised as-is.
    Examples:
        session_id, diags = client.open_environment("acme", "prod", timedelta(hours=2))
        env = client.get_open_environment("acme", "prod", session_id)
    """

    def open_environment(self, org: str, env_name: str, lifetime: timedelta) -> tuple[str, list[Diagnostic]]:
        """
        Open an environment session valid for ``lifetime``.
        Returns the session id and any diagnostics. When diagnostics are
        returned the session id may be empty and must not be fetched.
        """
        ...

    def get_open_environment(self, org: str, env_name: str, session_id: str) -> Environment:
        """Fetch the fully resolved environment for an open session."""
        ...

    @property
    def info(self) -> Box:
        """
        Returns information about the client,
          such as type and backend URL, as a Box.
        """
        ...

    def close(self) -> None: ...
