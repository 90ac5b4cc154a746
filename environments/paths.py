"""Property paths: parsing and resolution against a value tree.

A path is a tuple of segments; a ``str`` segment is an object key and an
``int`` segment is an array index. Accepted syntax::

    a.b[0].c
    ["key with.dots"].x
    items[2]["quoted \\"key\\""]

Resolution never raises: any segment that does not fit the node it is
applied to is a lookup miss.
"""

from __future__ import annotations

import re
from typing import Tuple, Union

from common.errors import PropertyPathError

from .values import Value, ValueKind

Segment = Union[str, int]
PropertyPath = Tuple[Segment, ...]

_IDENTIFIER = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")
_INDEX = re.compile(r"^[0-9]+$")


def parse_property_path(text: str) -> PropertyPath:
    """Parse ``text`` into a PropertyPath.

    Raises PropertyPathError naming ``text`` and the cause on bad syntax.
    Stray separators (``a.``, ``a..b``, ``a.[0]``) and an unmatched ``]``
    are errors rather than being skipped or read as part of a name.
    """
    segments: list[Segment] = []
    rest = text
    if rest.startswith("."):
        raise PropertyPathError(text, "expected property path to start with a name or index")
    while rest:
        head = rest[0]
        if head == ".":
            if len(rest) == 1 or rest[1] in ".[":
                raise PropertyPathError(text, "expected property name after '.'")
            rest = rest[1:]
        elif head == "[":
            if len(rest) > 1 and rest[1] == '"':
                key, rest = _parse_quoted_key(text, rest)
                segments.append(key)
            else:
                close = rest.find("]")
                if close == -1:
                    raise PropertyPathError(text, "missing closing bracket in array index")
                segments.append(_parse_index(text, rest[1:close]))
                rest = rest[close + 1:]
        elif head == "]":
            raise PropertyPathError(text, "unexpected ']'")
        else:
            end = len(rest)
            for i, ch in enumerate(rest):
                if ch in ".[]":
                    end = i
                    break
            segments.append(rest[:end])
            rest = rest[end:]
    return tuple(segments)


def _parse_quoted_key(text: str, rest: str) -> tuple[str, str]:
    chars = []
    i = 2
    while True:
        if i >= len(rest):
            raise PropertyPathError(text, "missing closing quote in property name")
        ch = rest[i]
        if ch == '"':
            i += 1
            break
        if ch == "\\" and i + 1 < len(rest) and rest[i + 1] in '"\\':
            chars.append(rest[i + 1])
            i += 2
            continue
        chars.append(ch)
        i += 1
    if i >= len(rest) or rest[i] != "]":
        raise PropertyPathError(text, "missing closing bracket in property access")
    return "".join(chars), rest[i + 1:]


def _parse_index(text: str, literal: str) -> Segment:
    if literal == "*":
        # no wildcard expansion; "*" is looked up as a plain key
        return "*"
    if not _INDEX.match(literal):
        raise PropertyPathError(text, f"invalid array index {literal!r}")
    return int(literal)


def format_property_path(path: PropertyPath) -> str:
    """Render ``path`` back to text that parse_property_path reads as ``path``."""
    out = []
    for segment in path:
        if isinstance(segment, int):
            out.append(f"[{segment}]")
        elif _IDENTIFIER.match(segment):
            out.append(f".{segment}" if out else segment)
        else:
            escaped = segment.replace("\\", "\\\\").replace('"', '\\"')
            out.append(f'["{escaped}"]')
    return "".join(out)


def resolve(root: Value, path: PropertyPath) -> tuple[Value, bool]:
    """Follow ``path`` from ``root``.

    Returns ``(node, True)`` on success and ``(Value.undefined(), False)``
    as soon as a segment does not match the current node.
    """
    node = root
    for segment in path:
        if node.kind is ValueKind.OBJECT and isinstance(segment, str):
            child = node.data.get(segment)
        elif node.kind is ValueKind.ARRAY and isinstance(segment, int) and not isinstance(segment, bool):
            child = node.data[segment] if 0 <= segment < len(node.data) else None
        else:
            child = None
        if child is None:
            return Value.undefined(), False
        node = child
    return node, True


__all__ = [
    "PropertyPath",
    "Segment",
    "format_property_path",
    "parse_property_path",
    "resolve",
]
