"""
Exceptions raised by the filter compiler.
"""


class FilterError(Exception):
    """
    Raised for malformed filter values (an unknown timestamp comparison, a bad
    range, a custom filter value missing required keys) and for bodies that are
    not mappings.
    """


class FilterConfigError(FilterError):
    """Raised when a filter configuration cannot be built or loaded."""


__all__ = ["FilterError", "FilterConfigError"]
