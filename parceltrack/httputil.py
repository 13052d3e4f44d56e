"""Small helpers shared by the OAuth exchanges and carrier adapters."""

from typing import Any, Dict, List

import httpx


def json_or_empty(response: httpx.Response) -> Dict[str, Any]:
    """Decode a JSON object body, returning {} for empty or non-JSON bodies."""
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def first(*values: Any) -> Any:
    """First truthy value, or None."""
    for value in values:
        if value:
            return value
    return None


def as_dict_list(value: Any) -> List[Dict[str, Any]]:
    """Keep only the dict items of a list value."""
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]
