"""
settings.py
-----------
Layered settings for the escopen tools.

Built-in defaults, then a YAML file (``~/.escopen/config.yaml`` or the
file named by ``ESCOPEN_CONFIG``), then ``ESCOPEN_*`` environment variables.
The result is a Box, so values are reachable as ``settings.backend_url``
as well as ``settings["backend_url"]``.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Mapping

import yaml
from box import Box

from common.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULTS: dict[str, Any] = {
    "backend_url": "https://api.pulumi.com",
    "access_token": None,
    "default_org": None,
    "timeout": 30.0,
    "log_file": None,
}

# environment variable -> setting name
ENV_OVERRIDES = {
    "ESCOPEN_BACKEND_URL": "backend_url",
    "ESCOPEN_ACCESS_TOKEN": "access_token",
    "ESCOPEN_DEFAULT_ORG": "default_org",
    "ESCOPEN_TIMEOUT": "timeout",
    "ESCOPEN_LOG_FILE": "log_file",
}


def default_config_path(environ: Mapping[str, str] | None = None) -> Path:
    environ = os.environ if environ is None else environ
    if environ.get("ESCOPEN_CONFIG"):
        return Path(environ["ESCOPEN_CONFIG"]).expanduser()
    return Path("~/.escopen/config.yaml").expanduser()


def load_settings(path: str | Path | None = None, environ: Mapping[str, str] | None = None) -> Box:
    """Return the effective settings as a Box."""
    environ = os.environ if environ is None else environ
    settings = Box(DEFAULTS)

    config_path = Path(path).expanduser() if path is not None else default_config_path(environ)
    if config_path.exists():
        settings.update(_load_file(config_path))
        logger.debug("Loaded settings from %s", config_path)

    for var, name in ENV_OVERRIDES.items():
        if environ.get(var):
            settings[name] = environ[var]

    try:
        settings.timeout = float(settings.timeout)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"invalid timeout setting: {settings.timeout!r}") from exc
    if settings.backend_url:
        settings.backend_url = str(settings.backend_url).rstrip("/")
    return settings


def _load_file(path: Path) -> dict[str, Any]:
    try:
        payload = yaml.safe_load(path.read_text()) or {}
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"invalid settings file {path}: {exc}") from exc
    if not isinstance(payload, dict):
        raise ConfigurationError(f"invalid settings file {path}: expected a mapping")
    unknown = set(payload) - set(DEFAULTS)
    if unknown:
        logger.warning("Ignoring unknown settings in %s: %s", path, ", ".join(sorted(unknown)))
    return {k: v for k, v in payload.items() if k in DEFAULTS}
