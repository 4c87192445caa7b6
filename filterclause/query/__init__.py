"""
Query clause generation for filterclause.

This module compiles filter bodies into parameterized WHERE clauses.
"""

from .compiler import (
    BindTable,
    CompiledFilter,
    FilterCompiler,
)
from .generators import (
    TIMESTAMP_OPERATORS,
    generate_partitioned_clause,
    generate_timestamp_clause,
    parse_timestamp,
)

__all__ = [
    "BindTable",
    "CompiledFilter",
    "FilterCompiler",
    "TIMESTAMP_OPERATORS",
    "generate_partitioned_clause",
    "generate_timestamp_clause",
    "parse_timestamp",
]
