"""Pydantic models for the environments service wire format."""

from __future__ import annotations

from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field


class Pos(BaseModel):
    """A position in an environment definition."""

    model_config = ConfigDict(frozen=True)

    line: int = Field(0, ge=0, description="1-based line, 0 when unknown")
    column: int = Field(0, ge=0, description="1-based column, 0 when unknown")
    byte: int = Field(0, ge=0, description="0-based byte offset")


class Range(BaseModel):
    """A source range inside an environment definition."""

    model_config = ConfigDict(frozen=True)

    environment: str = ""
    begin: Pos = Field(default_factory=Pos)
    end: Pos = Field(default_factory=Pos)


class Diagnostic(BaseModel):
    """A problem found while opening or evaluating an environment."""

    model_config = ConfigDict(frozen=True)

    severity: str = Field(default="error")
    summary: str
    path: str | None = None
    range: Range | None = None

    def location(self) -> str | None:
        """``env:line:column`` when the range is known, otherwise the path."""
        if self.range is not None and self.range.begin.line > 0:
            name = self.range.environment or "<unknown>"
            return f"{name}:{self.range.begin.line}:{self.range.begin.column}"
        return self.path or None


class OpenResponse(BaseModel):
    """Body of a successful open call."""

    id: str
    diagnostics: list[Diagnostic] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    """Error body returned by the service; may carry diagnostics."""

    code: int = 0
    message: str = ""
    diagnostics: list[Diagnostic] = Field(default_factory=list)


class Environment(BaseModel):
    """A fully resolved environment as returned for an open session.

    Only ``properties`` is used here; other members of the document
    (``exprs``, ``schema``, ``executionContext``) are accepted and ignored.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    properties: dict[str, Any] = Field(default_factory=dict)

    def root(self):
        """Return the properties as a Value tree rooted at an object."""
        from .values import Value

        return Value.from_properties(self.properties)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any] | None) -> Environment:
        return cls.model_validate(dict(payload or {}))


__all__ = [
    "Diagnostic",
    "Environment",
    "ErrorResponse",
    "OpenResponse",
    "Pos",
    "Range",
]
