"""
Path lookup and depth-first search over loosely structured JSON.

Responses and embedded page blobs are treated as a generic tree of
dicts, lists and scalars as produced by json.loads; no schema is assumed.
"""

from typing import Any, Dict, List, Optional, Union

JSONValue = Union[Dict[str, Any], List[Any], str, int, float, bool, None]

# Guards against pathological nesting in untrusted payloads
MAX_SEARCH_DEPTH = 128


def deep_get(node: JSONValue, *path: str) -> JSONValue:
    """
    Follow a chain of object keys.

    Args:
        node: Root of the tree
        *path: Keys to descend through, in order

    Returns:
        The value at the end of the path, or None if any step is missing
        or is not an object
    """
    cur = node
    for key in path:
        if not isinstance(cur, dict) or key not in cur:
            return None
        cur = cur[key]
    return cur


def deep_get_dict(node: JSONValue, *path: str) -> Optional[Dict[str, Any]]:
    value = deep_get(node, *path)
    return value if isinstance(value, dict) else None


def deep_get_list(node: JSONValue, *path: str) -> Optional[List[Any]]:
    value = deep_get(node, *path)
    return value if isinstance(value, list) else None


def deep_get_str(node: JSONValue, *path: str) -> Optional[str]:
    value = deep_get(node, *path)
    return value if isinstance(value, str) else None


def find_first(node: JSONValue, key: str, max_depth: int = MAX_SEARCH_DEPTH) -> Optional[str]:
    """
    Depth-first search for the first property named ``key`` with a string value.

    Objects are checked for ``key`` themselves before their values are
    visited in insertion order; array elements are visited in order.
    Blank strings do not count as a hit. Subtrees deeper than
    ``max_depth`` are skipped.

    Args:
        node: Root of the tree
        key: Property name to look for
        max_depth: Maximum nesting depth to descend into

    Returns:
        The first matching string in document order, or None
    """
    if max_depth < 0:
        return None

    if isinstance(node, dict):
        value = node.get(key)
        if isinstance(value, str) and value.strip():
            return value
        children = node.values()
    elif isinstance(node, list):
        children = node
    else:
        return None

    for child in children:
        if isinstance(child, (dict, list)):
            found = find_first(child, key, max_depth - 1)
            if found:
                return found
    return None
