"""Session lifetimes in ``HhMmSs`` notation (e.g. 2h, 1h30m, 15m, 90s)."""

from __future__ import annotations

import re
from datetime import timedelta

from common.errors import LifetimeError

_DURATION = re.compile(r"^(?:(?P<h>\d+)h)?(?:(?P<m>\d+)m)?(?:(?P<s>\d+)s)?$")


def parse_lifetime(text: str) -> timedelta:
    text = text.strip()
    match = _DURATION.match(text)
    if not text or match is None:
        raise LifetimeError(f"invalid lifetime {text!r}: expected the form HhMm (e.g. 2h, 1h30m, 15m)")
    lifetime = timedelta(
        hours=int(match["h"] or 0),
        minutes=int(match["m"] or 0),
        seconds=int(match["s"] or 0),
    )
    if lifetime <= timedelta(0):
        raise LifetimeError(f"invalid lifetime {text!r}: must be positive")
    return lifetime


def format_duration(lifetime: timedelta) -> str:
    """Wire notation for a duration: ``2h0m0s``, ``15m0s``, ``45s``."""
    total = int(lifetime.total_seconds())
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    if hours:
        return f"{hours}h{minutes}m{seconds}s"
    if minutes:
        return f"{minutes}m{seconds}s"
    return f"{seconds}s"
