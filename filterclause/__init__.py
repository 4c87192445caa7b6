"""
filterclause: compile declarative filter bodies into parameterized SQL.

Structure:
- filters/: filter descriptors, configuration loading, body normalization,
  reference resolution
- query/: the compiler, its bind table and the clause generators
- settings.py: environment configuration and logging setup
"""

from .exceptions import FilterError, FilterConfigError
from .filters import (
    Combinator,
    FilterConfig,
    FilterDescriptor,
    FilterType,
    acceptable_body,
    load_filter_config,
    parse_filter_body_json,
    parse_filter_config_json,
)
from .query import BindTable, CompiledFilter, FilterCompiler

__all__ = [
    "FilterError",
    "FilterConfigError",
    "Combinator",
    "FilterConfig",
    "FilterDescriptor",
    "FilterType",
    "acceptable_body",
    "load_filter_config",
    "parse_filter_body_json",
    "parse_filter_config_json",
    "BindTable",
    "CompiledFilter",
    "FilterCompiler",
]
