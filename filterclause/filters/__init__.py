"""
Filter configuration and filter bodies.

This module provides the filter descriptor models, configuration loading,
request body normalization and reference resolution used by the compiler.
"""

from .models import (
    FilterType,
    Combinator,
    FilterDescriptor,
    FilterConfig,
    FILTER_CONFIG_SCHEMA,
    parse_filter_config_json,
    load_filter_config,
)
from .body import (
    FILTER_BODY_SCHEMA,
    acceptable_body,
    hash_body,
    params_to_dict,
    parse_filter_body_json,
)
from .references import (
    split_fingerprint,
    parse_global_id,
    extract_identifier,
    extract_fingerprint,
    convert_list_of_references,
    convert_list_of_polymorphic_references,
)

__all__ = [
    "FilterType",
    "Combinator",
    "FilterDescriptor",
    "FilterConfig",
    "FILTER_CONFIG_SCHEMA",
    "parse_filter_config_json",
    "load_filter_config",
    "FILTER_BODY_SCHEMA",
    "acceptable_body",
    "hash_body",
    "params_to_dict",
    "parse_filter_body_json",
    "split_fingerprint",
    "parse_global_id",
    "extract_identifier",
    "extract_fingerprint",
    "convert_list_of_references",
    "convert_list_of_polymorphic_references",
]
