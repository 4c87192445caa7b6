from __future__ import annotations
from collections.abc import Mapping
from typing import Any, Dict, List, Union
import json
import re

import jsonschema
from fastapi.datastructures import FormData, QueryParams

from ..exceptions import FilterError

# ---------------------------------------------------------------------------
# JSON Schema for filter bodies
# ---------------------------------------------------------------------------

FILTER_BODY_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "title": "Filter Body",
    "$defs": {
        "FilterBody": {
            "type": "object",
            "properties": {
                "all": {"$ref": "#/$defs/FilterBody"},
                "any": {"$ref": "#/$defs/FilterBody"},
                "not": {"$ref": "#/$defs/FilterBody"},
            },
        },
    },
    "$ref": "#/$defs/FilterBody",
}

_REQUEST_CONTAINERS = (QueryParams, FormData)
_BRACKET_RE = re.compile(r"\[([^\]]*)\]")


def acceptable_body(candidate: Any) -> bool:
    """
    True for a mapping (including the request parameter containers), False for
    anything else: numbers, strings, lists, None.
    """
    return isinstance(candidate, (Mapping, *_REQUEST_CONTAINERS))


def _split_param_key(key: str) -> List[str]:
    """
    'filters[ones][only][]' -> ['filters', 'ones', 'only', '']
    """
    head, sep, rest = key.partition("[")
    if not sep or not head:
        return [key]
    return [head] + _BRACKET_RE.findall(sep + rest)


def _store_param(tree: Dict[str, Any], key: str, value: Any) -> None:
    parts = _split_param_key(key)
    is_list = len(parts) > 1 and parts[-1] == ""
    if is_list:
        parts = parts[:-1]
    node = tree
    for p in parts[:-1]:
        node = node.setdefault(p, {})
        if not isinstance(node, dict):
            raise FilterError(f"conflicting request parameter {key!r}")
    leaf = parts[-1]
    if is_list:
        bucket = node.setdefault(leaf, [])
        if not isinstance(bucket, list):
            raise FilterError(f"conflicting request parameter {key!r}")
        bucket.append(value)
    else:
        node[leaf] = value


def params_to_dict(params: Union[QueryParams, FormData]) -> Dict[str, Any]:
    """
    Expand a flat multi-dict using bracket notation into nested dicts and lists:
    ``ones[only][]=1&ones[only][]=2`` -> ``{"ones": {"only": ["1", "2"]}}``.
    """
    tree: Dict[str, Any] = {}
    for k, v in params.multi_items():
        _store_param(tree, k, v)
    return tree


def hash_body(body: Any) -> Dict[str, Any]:
    """
    Return *body* as a plain dict, or raise FilterError if it isn't acceptable.
    """
    if not acceptable_body(body):
        raise FilterError(f"the filter body is not a mapping: {body!r}")
    if isinstance(body, _REQUEST_CONTAINERS):
        return params_to_dict(body)
    return body if isinstance(body, dict) else dict(body)


def parse_filter_body_json(
    payload: Union[str, Dict[str, Any]],
    *,
    validate: bool = True,
) -> Dict[str, Any]:
    """
    Accept a JSON string or dict and return the filter body dict.
    """
    data = json.loads(payload) if isinstance(payload, str) else payload
    if validate:
        try:
            jsonschema.validate(instance=data, schema=FILTER_BODY_SCHEMA)
        except jsonschema.ValidationError as exc:
            raise FilterError(f"invalid filter body: {exc.message}") from exc
    return hash_body(data)


__all__ = [
    "FILTER_BODY_SCHEMA",
    "acceptable_body",
    "hash_body",
    "params_to_dict",
    "parse_filter_body_json",
]
