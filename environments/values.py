"""Immutable value tree for resolved environment properties."""

from __future__ import annotations

import enum
import json
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterator, Mapping

from .models import Range


class ValueKind(enum.Enum):
    NULL = "null"
    BOOLEAN = "boolean"
    NUMBER = "number"
    STRING = "string"
    ARRAY = "array"
    OBJECT = "object"


@dataclass(frozen=True)
class Trace:
    """Provenance of a value: where it was defined, and the value it overrides."""

    definition: Range | None = None
    base: Value | None = None

    def to_detailed(self) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        if self.definition is not None:
            payload["def"] = self.definition.model_dump(mode="json")
        if self.base is not None:
            payload["base"] = self.base.to_detailed()
        return payload

    @classmethod
    def from_detailed(cls, payload: Mapping[str, Any] | None) -> Trace | None:
        if not payload:
            return None
        definition = payload.get("def")
        base = payload.get("base")
        return cls(
            definition=Range.model_validate(definition) if definition else None,
            base=Value.from_detailed(base) if base is not None else None,
        )


@dataclass(frozen=True)
class Value:
    """A node of the value tree.

    ``kind`` tags the payload held in ``data``:

    * NULL     -> None
    * BOOLEAN  -> bool
    * NUMBER   -> int | float
    * STRING   -> str
    * ARRAY    -> tuple[Value, ...]
    * OBJECT   -> read-only mapping of str to Value, in insertion order

    Build nodes with the class methods, not the constructor.
    """

    kind: ValueKind
    data: Any = None
    secret: bool = False
    unknown: bool = False
    trace: Trace | None = field(default=None, compare=False)

    # ------------------------------------------------------------------
    # constructors

    @classmethod
    def undefined(cls) -> Value:
        return cls(ValueKind.NULL)

    @classmethod
    def null(cls, **meta: Any) -> Value:
        return cls(ValueKind.NULL, None, **meta)

    @classmethod
    def boolean(cls, flag: bool, **meta: Any) -> Value:
        return cls(ValueKind.BOOLEAN, bool(flag), **meta)

    @classmethod
    def number(cls, number: int | float, **meta: Any) -> Value:
        if isinstance(number, bool) or not isinstance(number, (int, float)):
            raise TypeError(f"not a number: {number!r}")
        return cls(ValueKind.NUMBER, number, **meta)

    @classmethod
    def string(cls, text: str, **meta: Any) -> Value:
        if not isinstance(text, str):
            raise TypeError(f"not a string: {text!r}")
        return cls(ValueKind.STRING, text, **meta)

    @classmethod
    def array(cls, items: Any, **meta: Any) -> Value:
        return cls(ValueKind.ARRAY, tuple(_as_value(item) for item in items), **meta)

    @classmethod
    def object(cls, items: Mapping[str, Any], **meta: Any) -> Value:
        entries = {}
        for key, item in items.items():
            if not isinstance(key, str):
                raise TypeError(f"object keys must be strings, got {key!r}")
            entries[key] = _as_value(item)
        return cls(ValueKind.OBJECT, MappingProxyType(entries), **meta)

    @classmethod
    def from_python(cls, raw: Any) -> Value:
        """Build a tree from plain JSON-compatible Python data (no metadata)."""
        if isinstance(raw, Value):
            return raw
        if raw is None:
            return cls.null()
        if isinstance(raw, bool):
            return cls.boolean(raw)
        if isinstance(raw, (int, float)):
            return cls.number(raw)
        if isinstance(raw, str):
            return cls.string(raw)
        if isinstance(raw, Mapping):
            return cls.object(raw)
        if isinstance(raw, (list, tuple)):
            return cls.array(raw)
        raise TypeError(f"unsupported value type: {type(raw).__name__}")

    @classmethod
    def from_detailed(cls, payload: Any) -> Value:
        """Build a tree from the detailed wire form.

        Every node is an object ``{"value": ..., "secret": bool?,
        "unknown": bool?, "trace": {...}?}``; arrays and objects hold
        detailed nodes.
        """
        if not isinstance(payload, Mapping):
            raise ValueError(f"expected a detailed value object, got {type(payload).__name__}")
        meta = {
            "secret": bool(payload.get("secret", False)),
            "unknown": bool(payload.get("unknown", False)),
            "trace": Trace.from_detailed(payload.get("trace")),
        }
        raw = payload.get("value")
        if raw is None:
            return cls.null(**meta)
        if isinstance(raw, bool):
            return cls.boolean(raw, **meta)
        if isinstance(raw, (int, float)):
            return cls.number(raw, **meta)
        if isinstance(raw, str):
            return cls.string(raw, **meta)
        if isinstance(raw, list):
            return cls(ValueKind.ARRAY, tuple(cls.from_detailed(item) for item in raw), **meta)
        if isinstance(raw, Mapping):
            entries = {key: cls.from_detailed(item) for key, item in raw.items()}
            return cls(ValueKind.OBJECT, MappingProxyType(entries), **meta)
        raise ValueError(f"unsupported detailed value: {raw!r}")

    @classmethod
    def from_properties(cls, properties: Mapping[str, Any]) -> Value:
        """Root object for an environment's ``properties`` member."""
        return cls(
            ValueKind.OBJECT,
            MappingProxyType({key: cls.from_detailed(item) for key, item in properties.items()}),
        )

    # ------------------------------------------------------------------
    # accessors

    @property
    def is_null(self) -> bool:
        return self.kind is ValueKind.NULL

    def as_string(self) -> str | None:
        return self.data if self.kind is ValueKind.STRING else None

    def as_array(self) -> tuple[Value, ...] | None:
        return self.data if self.kind is ValueKind.ARRAY else None

    def as_object(self) -> Mapping[str, Value] | None:
        return self.data if self.kind is ValueKind.OBJECT else None

    def items(self) -> Iterator[tuple[str, Value]]:
        mapping = self.as_object()
        return iter(mapping.items()) if mapping is not None else iter(())

    # ------------------------------------------------------------------
    # projections

    def to_json(self) -> Any:
        """Plain JSON-compatible projection; metadata is dropped."""
        if self.kind is ValueKind.ARRAY:
            return [item.to_json() for item in self.data]
        if self.kind is ValueKind.OBJECT:
            return {key: item.to_json() for key, item in self.data.items()}
        if self.kind in (ValueKind.NULL, ValueKind.BOOLEAN, ValueKind.NUMBER, ValueKind.STRING):
            return self.data
        raise AssertionError(f"unhandled value kind {self.kind}")

    def to_detailed(self) -> dict[str, Any]:
        """Full representation, including secret/unknown flags and trace."""
        if self.kind is ValueKind.ARRAY:
            inner: Any = [item.to_detailed() for item in self.data]
        elif self.kind is ValueKind.OBJECT:
            inner = {key: item.to_detailed() for key, item in self.data.items()}
        elif self.kind in (ValueKind.NULL, ValueKind.BOOLEAN, ValueKind.NUMBER, ValueKind.STRING):
            inner = self.data
        else:
            raise AssertionError(f"unhandled value kind {self.kind}")
        payload: dict[str, Any] = {"value": inner}
        if self.secret:
            payload["secret"] = True
        if self.unknown:
            payload["unknown"] = True
        if self.trace is not None:
            trace = self.trace.to_detailed()
            if trace:
                payload["trace"] = trace
        return payload

    def to_string(self) -> str:
        """Flat human readable form.

        Strings are verbatim, arrays are comma separated, objects are
        ``"key"="value"`` pairs sorted by key, quoted with :func:`quote`.
        """
        if self.kind is ValueKind.NULL:
            return ""
        if self.kind is ValueKind.BOOLEAN:
            return "true" if self.data else "false"
        if self.kind is ValueKind.NUMBER:
            return json.dumps(self.data)
        if self.kind is ValueKind.STRING:
            return self.data
        if self.kind is ValueKind.ARRAY:
            return ",".join(item.to_string() for item in self.data)
        if self.kind is ValueKind.OBJECT:
            return ",".join(
                f"{quote(key)}={quote(self.data[key].to_string())}"
                for key in sorted(self.data)
            )
        raise AssertionError(f"unhandled value kind {self.kind}")


_ESCAPES = {
    "\a": "\\a",
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\v": "\\v",
    "\\": "\\\\",
    '"': '\\"',
}


def quote(text: str) -> str:
    """Double-quote ``text`` with backslash escapes.

    Quotes, backslashes and non-printable characters are escaped; printable
    non-ASCII characters are kept as is (``"é"`` stays ``"é"``).
    """
    out = ['"']
    for ch in text:
        escaped = _ESCAPES.get(ch)
        if escaped is not None:
            out.append(escaped)
        elif ch.isprintable():
            out.append(ch)
        elif ch < " " or ch == "\x7f":
            out.append(f"\\x{ord(ch):02x}")
        elif ord(ch) < 0x10000:
            out.append(f"\\u{ord(ch):04x}")
        else:
            out.append(f"\\U{ord(ch):08x}")
    out.append('"')
    return "".join(out)


def _as_value(item: Any) -> Value:
    return item if isinstance(item, Value) else Value.from_python(item)


__all__ = ["Trace", "Value", "ValueKind", "quote"]
