"""Two-phase open of an environment: request a session, then fetch it."""

from __future__ import annotations

import enum
import logging
import threading
from dataclasses import dataclass, field
from datetime import timedelta
from typing import TYPE_CHECKING

from common.errors import OperationCancelled

from .models import Diagnostic, Environment

if TYPE_CHECKING:
    from connectors.environment_interface import EnvironmentsClient

logger = logging.getLogger(__name__)


class OpenPhase(enum.Enum):
    REQUESTING = "requesting"
    FETCHING = "fetching"
    REPORTING = "reporting"
    DONE = "done"


@dataclass
class OpenResult:
    """Outcome of an open: either an environment or diagnostics, never both."""

    environment: Environment | None = None
    diagnostics: list[Diagnostic] = field(default_factory=list)
    phase: OpenPhase = OpenPhase.DONE

    @property
    def ok(self) -> bool:
        return not self.diagnostics


def open_environment(
    client: EnvironmentsClient,
    org: str,
    env_name: str,
    lifetime: timedelta,
    cancel: threading.Event | None = None,
) -> OpenResult:
    """Open ``org/env_name`` for ``lifetime`` and fetch the resolved tree.

    Diagnostics from the open call end the flow in REPORTING without a
    fetch. Transport errors from either call propagate unchanged.
    """
    phase = OpenPhase.REQUESTING
    _check_cancelled(cancel, phase)
    logger.info("Opening environment %s/%s (lifetime %s)", org, env_name, lifetime)
    session_id, diags = client.open_environment(org, env_name, lifetime)
    if diags:
        logger.info("Environment %s/%s has %d diagnostic(s); not fetching", org, env_name, len(diags))
        return OpenResult(diagnostics=list(diags), phase=OpenPhase.REPORTING)

    phase = OpenPhase.FETCHING
    _check_cancelled(cancel, phase)
    logger.debug("Fetching open environment %s/%s session %s", org, env_name, session_id)
    env = client.get_open_environment(org, env_name, session_id)
    return OpenResult(environment=env, phase=OpenPhase.DONE)


def _check_cancelled(cancel: threading.Event | None, phase: OpenPhase) -> None:
    if cancel is not None and cancel.is_set():
        raise OperationCancelled(f"open cancelled while {phase.value}")


__all__ = ["OpenPhase", "OpenResult", "open_environment"]
