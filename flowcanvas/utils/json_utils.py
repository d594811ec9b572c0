"""
JSON Utilities
Helpers for free-form JSON config fields edited as text
"""
import json
from typing import Any, Tuple

from flowcanvas.core.logging import get_logger

logger = get_logger(__name__)


def parse_json_field(raw: Any, previous: Any, field_name: str = "value") -> Tuple[Any, bool]:
    """
    Parse a JSON field typed as text, keeping the last valid value on failure

    Args:
        raw: New value; strings are parsed as JSON, anything else is taken as-is
        previous: Last valid value
        field_name: Field name for logging

    Returns:
        (value, accepted) where accepted is False when the edit was discarded

    Examples:
        >>> parse_json_field('{"q": 1}', None)
        ({'q': 1}, True)
        >>> parse_json_field('{"q": ', {"q": 1})
        ({'q': 1}, False)
    """
    if not isinstance(raw, str):
        return raw, True

    try:
        return json.loads(raw), True
    except json.JSONDecodeError as e:
        logger.warning(f"Invalid JSON for {field_name}, keeping previous value: {e}")
        return previous, False
