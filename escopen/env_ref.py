"""Parsing of ``[<org-name>/]<environment-name>`` references."""

from __future__ import annotations

from typing import NamedTuple

from common.errors import EnvironmentRefError


class EnvRef(NamedTuple):
    org: str
    name: str

    def __str__(self) -> str:
        return f"{self.org}/{self.name}"


def parse_env_ref(text: str, default_org: str | None = None) -> EnvRef:
    """Split ``text`` into org and environment name.

    Without an org prefix ``default_org`` is used.
    """
    if not text:
        raise EnvironmentRefError("no environment name specified")
    org, sep, name = text.partition("/")
    if not sep:
        org, name = default_org or "", text
        if not org:
            raise EnvironmentRefError(
                f"no organization given for environment {text!r} and no default_org configured; "
                "use <org-name>/<environment-name>"
            )
    if not org or not name or "/" in name:
        raise EnvironmentRefError(f"invalid environment reference {text!r}: expected [<org-name>/]<environment-name>")
    return EnvRef(org, name)
