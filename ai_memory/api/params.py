"""
Coercion of loosely typed request parameters.

Query strings arrive as text and JSON bodies may carry numbers as strings, so each
helper accepts either and falls back to the default when the value is missing or
unparseable.
"""

from typing import Any, Dict, Optional


def as_int(value: Any, default: int) -> int:
    if value is None or value == '' or isinstance(value, bool):
        return default
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return default


def as_float(value: Any, default: float) -> float:
    if value is None or value == '' or isinstance(value, bool):
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def as_bool(value: Any, default: bool = False) -> bool:
    if value is None or value == '':
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ('true', '1', 'yes')


def as_optional_str(value: Any) -> Optional[str]:
    """Non-empty string or None."""
    if isinstance(value, str) and value:
        return value
    return None


def body_or_empty(body: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    return body or {}
