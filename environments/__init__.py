"""Environment values, property paths, open flow and rendering."""

from .models import Diagnostic, Environment, Pos, Range
from .opener import OpenPhase, OpenResult, open_environment
from .paths import PropertyPath, format_property_path, parse_property_path, resolve
from .render import FORMATS, environment_variables, render_value, validate_format
from .values import Trace, Value, ValueKind

__all__ = [
    "Diagnostic",
    "Environment",
    "FORMATS",
    "OpenPhase",
    "OpenResult",
    "Pos",
    "PropertyPath",
    "Range",
    "Trace",
    "Value",
    "ValueKind",
    "environment_variables",
    "format_property_path",
    "open_environment",
    "parse_property_path",
    "render_value",
    "resolve",
    "validate_format",
]
