from __future__ import annotations
from collections.abc import Mapping, Sequence
from datetime import date, datetime, time, timezone
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Union
import logging

from ..exceptions import FilterError
from ..filters.models import FilterDescriptor, FilterType
from ..filters.references import (
    convert_list_of_polymorphic_references,
    convert_list_of_references,
)

if TYPE_CHECKING:
    from .compiler import FilterCompiler

log = logging.getLogger("filterclause.generators")

# A generator returns a clause, None (no clause) or False (nothing can match).
Clause = Union[str, None, bool]

LIST_KEYS = ("only", "except")

# Lookup order is the priority when a value carries more than one key.
TIMESTAMP_OPERATORS: Dict[str, str] = {
    "at": "=",
    "not_at": "!=",
    "after": ">",
    "at_or_after": ">=",
    "before": "<",
    "at_or_before": "<=",
    "between": "BETWEEN",
    "not_between": "NOT BETWEEN",
}
_RANGE_CONDITIONS = ("between", "not_between")

# ---------------------------------------------------------------------------
# only / except lists
# ---------------------------------------------------------------------------

def _as_list(value: Any) -> List[Any]:
    if isinstance(value, (list, tuple, set, frozenset)):
        return list(value)
    return [value]


def _normalize_lists(value: Any, convert: Callable[[List[Any], str], Optional[List[Any]]]) -> Optional[Dict[str, List[Any]]]:
    """
    Run each present, non-null list of *value* through *convert*. Returns None
    if *value* is not a mapping.
    """
    if not isinstance(value, Mapping):
        return None
    out: Dict[str, List[Any]] = {}
    for k in LIST_KEYS:
        if value.get(k) is not None:
            converted = convert(_as_list(value[k]), k)
            out[k] = [] if converted is None else list(converted)
    return out


def normalize_lists_of_references(value: Any, class_name: Optional[str]) -> Optional[Dict[str, List[Any]]]:
    return _normalize_lists(value, lambda l, k: convert_list_of_references(l, class_name))


def normalize_lists_of_polymorphic_references(value: Any) -> Optional[Dict[str, List[Any]]]:
    return _normalize_lists(value, lambda l, k: convert_list_of_polymorphic_references(l))


def normalize_filter_lists(value: Any, convert: Callable[[List[Any], str], List[Any]]) -> Optional[Dict[str, List[Any]]]:
    return _normalize_lists(value, convert)


def adjust_only_except_lists(lists: Mapping[str, List[Any]]) -> Dict[str, List[Any]]:
    """
    Apply the set algebra: with an ``only`` list the result is ``only`` minus
    ``except``; otherwise ``except`` is returned on its own.
    """
    if "only" in lists:
        excluded = lists.get("except") or []
        return {"only": [e for e in lists["only"] if e not in excluded]}
    if "except" in lists:
        return {"except": list(lists["except"])}
    return {}


def generate_partitioned_clause(compiler: "FilterCompiler", name: str, desc: FilterDescriptor,
                                lists: Optional[Mapping[str, List[Any]]]) -> Clause:
    if lists is None:
        return None

    h = adjust_only_except_lists(lists)
    if "only" in h:
        if not h["only"]:
            if "except" not in lists:
                return None
            log.debug("filter %s: exclusions empty the inclusion list, nothing can match", name)
            return False
        p = compiler.allocate_parameter(h["only"])
        return f"({desc.field} IN (:{p}))"
    if h.get("except"):
        p = compiler.allocate_parameter(h["except"])
        return f"({desc.field} NOT IN (:{p}))"
    # excepting nothing allows everything
    return None


# ---------------------------------------------------------------------------
# timestamps
# ---------------------------------------------------------------------------

def parse_timestamp(value: Any) -> datetime:
    """
    Accept a datetime, a date, epoch seconds or an ISO-8601 string.
    """
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    if isinstance(value, str):
        s = value.strip()
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(s)
        except ValueError:
            pass
    raise FilterError(f"not a timestamp: {value!r}")


def _null_flag(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in ("true", "false"):
        return value.lower() == "true"
    return None


def generate_timestamp_clause(compiler: "FilterCompiler", name: str, desc: FilterDescriptor, value: Any) -> Clause:
    """
    Generate a comparison clause from one of the TIMESTAMP_OPERATORS keys, plus
    an optional ``null`` key that also matches (true) or excludes (false) NULLs.
    """
    if value is None:
        return None
    if not isinstance(value, Mapping):
        raise FilterError(f"timestamp filter {name} expects a mapping of comparisons, got {value!r}")

    for k in value:
        if k not in TIMESTAMP_OPERATORS and k != "null":
            raise FilterError(f"unknown timestamp comparison {k!r} for filter {name}")

    cmp = next((c for c in TIMESTAMP_OPERATORS if value.get(c) is not None), None)

    null_clause = None
    flag = _null_flag(value.get("null"))
    if flag is True:
        null_clause = f"({desc.field} IS NULL)"
    elif flag is False:
        null_clause = f"({desc.field} IS NOT NULL)"

    if cmp is None:
        return null_clause

    op = TIMESTAMP_OPERATORS[cmp]
    t = value[cmp]
    if cmp in _RANGE_CONDITIONS:
        if isinstance(t, (str, bytes)) or not isinstance(t, Sequence) or len(t) < 2:
            raise FilterError(f"the {cmp} timestamp comparison must have start and end times")
        lo, hi = parse_timestamp(t[0]), parse_timestamp(t[1])
        if lo.timestamp() > hi.timestamp():
            lo, hi = hi, lo
        p_lo = compiler.allocate_parameter(lo)
        p_hi = compiler.allocate_parameter(hi)
        main_clause = f"({desc.field} {op} :{p_lo} AND :{p_hi})"
    else:
        p = compiler.allocate_parameter(parse_timestamp(t))
        main_clause = f"({desc.field} {op} :{p})"

    if null_clause is None:
        return main_clause
    return f"({main_clause} OR {null_clause})"


# ---------------------------------------------------------------------------
# custom
# ---------------------------------------------------------------------------

def generate_custom_clause(compiler: "FilterCompiler", name: str, desc: FilterDescriptor, value: Any) -> Clause:
    if value is None:
        return None
    return desc.generator(compiler, name, desc, value)


# ---------------------------------------------------------------------------
# dispatch
# ---------------------------------------------------------------------------

def _list_clause(compiler: "FilterCompiler", name: str, desc: FilterDescriptor,
                 lists: Optional[Dict[str, List[Any]]]) -> Clause:
    if desc.generator is not None:
        return desc.generator(compiler, name, desc, lists)
    return generate_partitioned_clause(compiler, name, desc, lists)


def generate_simple_clause(compiler: "FilterCompiler", name: str, desc: FilterDescriptor, value: Any) -> Clause:
    """
    Generate the clause for filter *name* with its configured strategy. Any
    type without a strategy generates nothing.
    """
    match desc.type:
        case FilterType.REFERENCES:
            return _list_clause(compiler, name, desc, normalize_lists_of_references(value, desc.class_name))
        case FilterType.POLYMORPHIC_REFERENCES:
            return _list_clause(compiler, name, desc, normalize_lists_of_polymorphic_references(value))
        case FilterType.BLOCK_LIST:
            return _list_clause(compiler, name, desc, normalize_filter_lists(value, desc.convert))
        case FilterType.TIMESTAMP:
            if desc.generator is not None:
                return desc.generator(compiler, name, desc, value)
            return generate_timestamp_clause(compiler, name, desc, value)
        case FilterType.CUSTOM:
            return generate_custom_clause(compiler, name, desc, value)
    return None


__all__ = [
    "TIMESTAMP_OPERATORS",
    "adjust_only_except_lists",
    "generate_partitioned_clause",
    "generate_timestamp_clause",
    "generate_custom_clause",
    "generate_simple_clause",
    "normalize_filter_lists",
    "normalize_lists_of_references",
    "normalize_lists_of_polymorphic_references",
    "parse_timestamp",
]
