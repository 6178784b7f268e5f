"""
Query string helpers.

Strapi parses filters with the ``qs`` conventions, so nested objects and
lists are written with brackets: ``where[title_contains]=foo`` and
``id_in[0]=1&id_in[1]=2``.
"""

import re
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import parse_qsl, urlencode

_KEY_RE = re.compile(r"\[([^\[\]]*)\]")


def _scalar(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def flatten(params: Optional[Any], prefix: str = "") -> List[Tuple[str, str]]:
    """Flatten nested dicts/lists into bracketed (key, value) pairs."""
    if params is None:
        return []

    if isinstance(params, dict):
        items = params.items()
    elif isinstance(params, (list, tuple)):
        items = enumerate(params)
    else:
        return [(prefix, _scalar(params))]

    pairs = []
    for key, value in items:
        name = f"{prefix}[{key}]" if prefix else str(key)
        if isinstance(value, (dict, list, tuple)):
            pairs.extend(flatten(value, name))
        else:
            pairs.append((name, _scalar(value)))
    return pairs


def stringify(params: Optional[Any]) -> str:
    """Serialize params to a query string (without the leading ``?``)."""
    return urlencode(flatten(params))


def _split_key(key: str) -> List[str]:
    head, _, rest = key.partition("[")
    if not rest:
        return [key]
    return [head] + _KEY_RE.findall("[" + rest)


def _listify(node: Any) -> Any:
    """Turn dicts keyed 0..n-1 back into lists."""
    if isinstance(node, list):
        return [_listify(item) for item in node]
    if not isinstance(node, dict):
        return node
    node = {k: _listify(v) for k, v in node.items()}
    if node and all(k.isdigit() for k in node):
        indexes = sorted(node, key=int)
        if [int(i) for i in indexes] == list(range(len(indexes))):
            return [node[i] for i in indexes]
    return node


def _assign(node: Dict[str, Any], parts: List[str], value: str):
    """Store value under the bracket path `parts`."""
    part, rest = parts[0], parts[1:]

    if not rest:
        if part in node:
            existing = node[part]
            node[part] = existing + [value] if isinstance(existing, list) else [existing, value]
        else:
            node[part] = value
        return

    if rest[0] == "":
        # a[]=x appends, a[][b]=x appends a new object
        items = node.get(part)
        if not isinstance(items, list):
            items = [] if items is None else [items]
            node[part] = items
        if len(rest) == 1:
            items.append(value)
        else:
            child: Dict[str, Any] = {}
            items.append(child)
            _assign(child, rest[1:], value)
        return

    child = node.get(part)
    if not isinstance(child, dict):
        child = {}
        node[part] = child
    _assign(child, rest, value)


def parse(query_string: str, ignore_query_prefix: bool = True) -> Dict[str, Any]:
    """
    Parse a query string into nested dicts/lists.

    Repeated flat keys are collected into a list, ``a[]=x`` appends and
    ``a[][b]=x`` appends ``{"b": "x"}``.
    """
    if ignore_query_prefix and query_string.startswith("?"):
        query_string = query_string[1:]

    result: Dict[str, Any] = {}
    for key, value in parse_qsl(query_string, keep_blank_values=True):
        _assign(result, _split_key(key), value)

    return {key: _listify(value) for key, value in result.items()}
