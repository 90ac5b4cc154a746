"""Rendering of environments and property values to text streams."""

from __future__ import annotations

import json
import logging
from typing import TextIO

from common.errors import IncompatibleFormatError, UnknownFormatError

from .models import Environment
from .paths import PropertyPath, format_property_path, resolve
from .values import Value, quote

logger = logging.getLogger(__name__)

FORMATS = ("json", "detailed", "dotenv", "shell", "string")
WHOLE_TREE_FORMATS = ("dotenv", "shell")


def validate_format(fmt: str, path: PropertyPath) -> None:
    """Reject unknown formats and path-incompatible ones.

    Call before contacting the service.
    """
    if fmt not in FORMATS:
        raise UnknownFormatError(fmt)
    if fmt in WHOLE_TREE_FORMATS and len(path) != 0:
        raise IncompatibleFormatError(fmt)


def render_value(out: TextIO, env: Environment | None, path: PropertyPath, fmt: str) -> None:
    """Write ``env`` (narrowed to ``path``) to ``out`` in format ``fmt``."""
    if env is None:
        return

    root = env.root()
    val = root
    if len(path) != 0:
        val, found = resolve(root, path)
        if not found:
            logger.info("Property path %s not found; rendering an empty value", format_property_path(path))

    if fmt == "json":
        _write_json(out, val.to_json())
    elif fmt == "detailed":
        _write_json(out, val.to_detailed())
    elif fmt == "string":
        out.write(val.to_string() + "\n")
    elif fmt == "dotenv":
        for kvp in environment_variables(root):
            out.write(kvp + "\n")
    elif fmt == "shell":
        for kvp in environment_variables(root):
            out.write(f"export {kvp}\n")
    else:
        # validate_format runs first; this only guards direct callers
        raise UnknownFormatError(fmt)


def environment_variables(root: Value) -> list[str]:
    """``KEY="VALUE"`` lines for string members of ``environmentVariables``, sorted by key.

    Values are quoted with backslash escapes, so a value holding quotes or
    newlines stays on one line.
    """
    mapping = root.as_object()
    variables = mapping.get("environmentVariables") if mapping is not None else None
    if variables is None or variables.as_object() is None:
        return []

    environ = []
    for key, value in sorted(variables.items()):
        text = value.as_string()
        if text is not None:
            environ.append(f"{key}={quote(text)}")
    return environ


def _write_json(out: TextIO, body) -> None:
    out.write(json.dumps(body, indent=2, ensure_ascii=False) + "\n")


__all__ = [
    "FORMATS",
    "WHOLE_TREE_FORMATS",
    "environment_variables",
    "render_value",
    "validate_format",
]
