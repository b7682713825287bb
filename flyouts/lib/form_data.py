"""Decode serialized form pairs into nested structures.

Browsers submit flat ``(name, value)`` pairs; the bracket syntax in the
names carries the structure:

    tags[]=a&tags[]=b             -> {"tags": ["a", "b"]}
    files[0][name]=a.pdf          -> {"files": [{"name": "a.pdf"}]}
    price[amount]=19.99           -> {"price": {"amount": "19.99"}}
    color=red&color=blue          -> {"color": ["red", "blue"]}
"""

from __future__ import annotations

import re
from typing import Any, Dict, Iterable, List, Mapping, Tuple, Union

__all__ = ["decode_form_pairs", "split_name"]

_NAME_PATTERN = re.compile(r"^([^\[\]]+)((?:\[[^\[\]]*\])*)$")
_SEGMENT_PATTERN = re.compile(r"\[([^\[\]]*)\]")

FormPairs = Union[Mapping[str, Any], Iterable[Tuple[str, Any]]]


def split_name(name: str) -> Tuple[str, List[str]]:
    """Split ``files[0][name]`` into ``("files", ["0", "name"])``.

    Malformed bracket syntax is treated as a plain name.
    """
    match = _NAME_PATTERN.match(name)
    if not match:
        return name, []
    return match.group(1), _SEGMENT_PATTERN.findall(match.group(2))


def _assign(node: Dict[str, Any], key: str, rest: List[str], value: Any) -> None:
    if not rest:
        if key in node:
            existing = node[key]
            node[key] = existing + [value] if isinstance(existing, list) else [existing, value]
        else:
            node[key] = value
        return

    head, tail = rest[0], rest[1:]
    if head == "":
        items = node.get(key)
        if not isinstance(items, list):
            items = [] if items is None else [items]
            node[key] = items
        if not tail:
            items.append(value)
            return
        # name[][field]: start a new row once the current row has the field
        if not items or not isinstance(items[-1], dict) or tail[0] in items[-1]:
            items.append({})
        _assign(items[-1], tail[0], tail[1:], value)
        return

    child = node.get(key)
    if not isinstance(child, dict):
        child = {}
        node[key] = child
    _assign(child, head, tail, value)


def _listify(value: Any) -> Any:
    """Turn dicts keyed only by integers into lists ordered by index."""
    if isinstance(value, list):
        return [_listify(item) for item in value]
    if not isinstance(value, dict):
        return value
    converted = {key: _listify(item) for key, item in value.items()}
    if converted and all(key.isdigit() for key in converted):
        return [converted[key] for key in sorted(converted, key=int)]
    return converted


def decode_form_pairs(pairs: FormPairs, unchecked: Iterable[str] = ()) -> Dict[str, Any]:
    """Decode serialized form pairs into a nested mapping.

    Args:
        pairs: ``(name, value)`` pairs, or a flat mapping of them
        unchecked: Checkbox names absent from the submission; they decode to ``"0"``

    Returns:
        Nested form data keyed by top-level field name
    """
    items = pairs.items() if isinstance(pairs, Mapping) else pairs
    result: Dict[str, Any] = {}

    for name, value in items:
        base, segments = split_name(str(name))
        _assign(result, base, segments, value)

    decoded = {key: _listify(value) for key, value in result.items()}
    for name in unchecked:
        base, _ = split_name(name)
        decoded.setdefault(base, "0")
    return decoded
