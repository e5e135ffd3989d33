"""
JSON utilities for moving metadata in and out of graph properties.
"""

import json
from typing import Any, Dict

from .logging_config import get_logger

logger = get_logger(__name__)


def parse_metadata(value: Any) -> Dict[str, Any]:
    """Decode the metadata stored on a graph node.

    Nodes keep their metadata as a JSON string, older nodes may hold a map or nothing.

    Args:
        value: Raw property value

    Returns:
        Metadata dictionary (empty when missing or undecodable)
    """
    if not value:
        return {}
    if isinstance(value, dict):
        return value
    try:
        decoded = json.loads(value)
    except (TypeError, json.JSONDecodeError):
        logger.warning(f'Could not decode node metadata: {value!r:.80}')
        return {}
    return decoded if isinstance(decoded, dict) else {}


def dump_metadata(metadata: Dict[str, Any]) -> str:
    """Serialize metadata for storage as a single graph property."""
    return json.dumps(metadata or {}, default=str)


def _is_scalar(value: Any) -> bool:
    return value is None or isinstance(value, (str, int, float, bool))


def to_graph_properties(values: Dict[str, Any]) -> Dict[str, Any]:
    """Flatten a mapping into values Neo4j accepts as properties.

    Scalars and homogeneous scalar lists are kept, None is dropped, anything nested is JSON encoded.
    """
    properties = {}
    for key, value in (values or {}).items():
        if value is None:
            continue
        if _is_scalar(value):
            properties[key] = value
        elif isinstance(value, (list, tuple)) and all(_is_scalar(v) and v is not None for v in value) \
                and len({type(v) for v in value}) <= 1:
            properties[key] = list(value)
        else:
            properties[key] = json.dumps(value, default=str)
    return properties
