from __future__ import annotations
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterator, Optional, Union
import importlib
import json
import logging

import jsonschema
import yaml

from .. import settings
from ..exceptions import FilterConfigError

log = logging.getLogger("filterclause.config")

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class FilterType(str, Enum):
    REFERENCES = "references"
    POLYMORPHIC_REFERENCES = "polymorphic_references"
    BLOCK_LIST = "block_list"
    TIMESTAMP = "timestamp"
    CUSTOM = "custom"


class Combinator(str, Enum):
    ALL = "all"
    ANY = "any"
    NOT = "not"

    @property
    def joiner(self) -> str:
        return " OR " if self is Combinator.ANY else " AND "

    @classmethod
    def lookup(cls, key: Any) -> Optional["Combinator"]:
        """Return the combinator named by *key*, or None for a filter name."""
        if isinstance(key, cls):
            return key
        try:
            return cls(str(key))
        except ValueError:
            return None


# ---------------------------------------------------------------------------
# Filter descriptors
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FilterDescriptor:
    """
    Static description of one named filter: the strategy that generates its
    clause, the column it applies to, and the conversion options.
    """
    type: FilterType
    field: str = ""
    convert: Union[str, Callable[..., Any], None] = None
    class_name: Optional[str] = None
    generator: Optional[Callable[..., Any]] = None

    def __post_init__(self) -> None:
        if not isinstance(self.type, FilterType):
            try:
                object.__setattr__(self, "type", FilterType(self.type))
            except ValueError:
                raise FilterConfigError(f"unknown filter type {self.type!r}") from None
        if self.generator is not None and not callable(self.generator):
            raise FilterConfigError(f"generator for {self.field or self.type.value} is not callable")
        if self.type == FilterType.CUSTOM and self.generator is None:
            raise FilterConfigError("custom filters need a generator")
        if self.type == FilterType.BLOCK_LIST and not callable(self.convert):
            raise FilterConfigError(f"block_list filter on {self.field!r} needs a callable convert")
        if self.type != FilterType.CUSTOM and not self.field:
            raise FilterConfigError(f"{self.type.value} filter needs a field")

    @classmethod
    def from_dict(cls, name: str, data: Mapping[str, Any]) -> "FilterDescriptor":
        if not isinstance(data, Mapping):
            raise FilterConfigError(f"Bad filter descriptor for {name}: {data!r}")
        try:
            ftype = FilterType(data.get("type"))
        except ValueError:
            raise FilterConfigError(f"unknown filter type {data.get('type')!r} for {name}") from None
        try:
            return cls(
                type=ftype,
                field=str(data.get("field") or ""),
                convert=data.get("convert"),
                class_name=data.get("class_name"),
                generator=data.get("generator"),
            )
        except FilterConfigError as exc:
            raise FilterConfigError(f"{name}: {exc}") from exc

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"type": self.type.value, "field": self.field}
        if self.convert is not None:
            out["convert"] = self.convert
        if self.class_name is not None:
            out["class_name"] = self.class_name
        if self.generator is not None:
            out["generator"] = self.generator
        return out


class FilterConfig(Mapping):
    """
    Read-only mapping of filter name -> FilterDescriptor.

    Accepts either the bare mapping or one wrapped in a ``filters`` key, and
    descriptors given either as FilterDescriptor instances or as dicts.
    """

    def __init__(self, filters: Mapping[str, Any]):
        norm: Dict[str, FilterDescriptor] = {}
        for k, v in filters.items():
            norm[str(k)] = v if isinstance(v, FilterDescriptor) else FilterDescriptor.from_dict(str(k), v)
        self._filters = MappingProxyType(norm)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FilterConfig":
        if isinstance(data, FilterConfig):
            return data
        if not isinstance(data, Mapping):
            raise FilterConfigError(f"filter configuration must be a mapping, got {type(data).__name__}")
        inner = data.get("filters")
        if isinstance(inner, Mapping) and all(isinstance(v, (Mapping, FilterDescriptor)) for v in inner.values()):
            return cls(inner)
        return cls(data)

    def __getitem__(self, name: str) -> FilterDescriptor:
        return self._filters[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._filters)

    def __len__(self) -> int:
        return len(self._filters)

    def __repr__(self) -> str:
        return f"FilterConfig({list(self._filters)!r})"


# ---------------------------------------------------------------------------
# JSON Schema for configuration files
# ---------------------------------------------------------------------------

FILTER_CONFIG_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "title": "Filter Configuration",
    "$defs": {
        "FilterDescriptor": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "type": {"type": "string", "enum": [t.value for t in FilterType]},
                "field": {"type": "string", "minLength": 1},
                "convert": {"type": "string", "minLength": 1},
                "class_name": {"type": "string", "minLength": 1},
                # import path, e.g. "myapp.filters:lower_name"
                "generator": {"type": "string", "pattern": r"^[\w.]+:[\w.]+$"},
            },
            "required": ["type"],
            "allOf": [
                {
                    "if": {"properties": {"type": {"const": "custom"}}},
                    "then": {"required": ["generator"]},
                    "else": {"required": ["field"]},
                },
                {
                    "if": {"properties": {"type": {"const": "block_list"}}},
                    "then": {
                        "required": ["convert"],
                        "properties": {"convert": {"pattern": r"^[\w.]+:[\w.]+$"}},
                    },
                },
            ],
        },
    },
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "filters": {
            "type": "object",
            "additionalProperties": {"$ref": "#/$defs/FilterDescriptor"},
        },
    },
    "required": ["filters"],
}


def _resolve_import_path(path: str, *, what: str) -> Callable[..., Any]:
    """
    Resolve "package.module:attr" to the object it names.
    """
    module_name, _, attr = path.partition(":")
    try:
        obj: Any = importlib.import_module(module_name)
        for part in attr.split("."):
            obj = getattr(obj, part)
    except (ImportError, AttributeError) as exc:
        raise FilterConfigError(f"cannot import {what} {path!r}: {exc}") from exc
    if not callable(obj):
        raise FilterConfigError(f"{what} {path!r} is not callable")
    return obj


def _resolve_callables(filters: Mapping[str, Any]) -> Dict[str, Dict[str, Any]]:
    out: Dict[str, Dict[str, Any]] = {}
    for name, desc in filters.items():
        d = dict(desc)
        if isinstance(d.get("generator"), str):
            d["generator"] = _resolve_import_path(d["generator"], what=f"generator for {name}")
        if isinstance(d.get("convert"), str) and ":" in d["convert"]:
            d["convert"] = _resolve_import_path(d["convert"], what=f"convert for {name}")
        out[name] = d
    return out


def parse_filter_config_json(
    payload: Union[str, Dict[str, Any]],
    *,
    validate: bool = True,
) -> FilterConfig:
    """
    Accept a JSON string or dict in the configuration file format and return a
    FilterConfig, with import paths resolved to callables.
    """
    data = json.loads(payload) if isinstance(payload, str) else payload
    if validate:
        try:
            jsonschema.validate(instance=data, schema=FILTER_CONFIG_SCHEMA)
        except jsonschema.ValidationError as exc:
            raise FilterConfigError(f"invalid filter configuration: {exc.message}") from exc
    return FilterConfig(_resolve_callables(data.get("filters", {})))


def load_filter_config(path: Union[str, Path, None] = None, *, validate: bool = True) -> FilterConfig:
    """
    Load a filter configuration from a YAML or JSON file. Defaults to the
    FILTERCLAUSE_CONFIG_FILE setting.
    """
    cfg_path = Path(path or settings.CONFIG_FILE)
    if not cfg_path.exists():
        raise FilterConfigError(f"Filter configuration file not found: {cfg_path}")
    with cfg_path.open("r", encoding="utf-8") as f:
        if cfg_path.suffix.lower() in (".yaml", ".yml"):
            data = yaml.safe_load(f) or {}
        else:
            data = json.load(f)
    config = parse_filter_config_json(data, validate=validate)
    log.debug("loaded %d filters from %s", len(config), cfg_path)
    return config


__all__ = [
    "FilterType",
    "Combinator",
    "FilterDescriptor",
    "FilterConfig",
    "FILTER_CONFIG_SCHEMA",
    "parse_filter_config_json",
    "load_filter_config",
]
