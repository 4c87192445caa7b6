from __future__ import annotations
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Optional, Tuple, Union
import logging
import re

from .. import settings
from ..filters.body import acceptable_body, hash_body
from ..filters.models import Combinator, FilterConfig
from .generators import Clause, generate_simple_clause

log = logging.getLogger("filterclause.compiler")

_PLACEHOLDER_RE = re.compile(r"(?<![:\w]):([A-Za-z_]\w*)")


class BindTable:
    """
    Collects bind values under generated names (p1, p2, ...). Names are never
    reused within one table.
    """
    def __init__(self, prefix: str = settings.PARAM_PREFIX, *, start_index: int = 1):
        self.prefix = prefix
        self.start_index = start_index
        self.next_idx = start_index
        self.values: Dict[str, Any] = {}

    @property
    def counter(self) -> int:
        return self.next_idx - self.start_index

    def add(self, value: Any) -> str:
        name = f"{self.prefix}{self.next_idx}"
        self.next_idx += 1
        self.values[name] = value
        return name

    def set(self, name: str, value: Any) -> None:
        self.values[name] = value

    def get(self, name: str) -> Any:
        return self.values.get(name)

    def clear(self) -> None:
        self.next_idx = self.start_index
        self.values = {}


@dataclass
class CompiledFilter:
    """
    Result of one compilation pass: the predicate (a clause string, None when
    no clause was generated, False when nothing can match) and its bind values.
    """
    clause: Clause
    params: Dict[str, Any] = field(default_factory=dict)

    @property
    def matches_nothing(self) -> bool:
        return self.clause is False

    def render(self, paramstyle: str = settings.PARAMSTYLE) -> Tuple[Clause, Dict[str, Any]]:
        """
        Return (clause, params) with placeholders in the given DB-API paramstyle:
          - 'named'    -> :p1
          - 'pyformat' -> %(p1)s
        """
        if paramstyle not in {"named", "pyformat"}:
            raise ValueError("paramstyle must be 'named' or 'pyformat'")
        if paramstyle == "named" or not isinstance(self.clause, str):
            return self.clause, dict(self.params)

        def repl(m: re.Match) -> str:
            name = m.group(1)
            return f"%({name})s" if name in self.params else m.group(0)

        # literal % must be doubled for pyformat drivers
        return _PLACEHOLDER_RE.sub(repl, self.clause.replace("%", "%%")), dict(self.params)

    def where_sql(self, paramstyle: str = settings.PARAMSTYLE, *, default_when_empty: str = "") -> str:
        """
        'WHERE <clause>', 'WHERE 1=0' when nothing can match, or
        *default_when_empty* when no clause was generated.
        """
        if self.clause is False:
            return "WHERE 1=0"
        clause, _ = self.render(paramstyle)
        if not clause:
            return default_when_empty
        return f"WHERE {clause}"


class _NoMatch(Exception):
    """Unwinds a compilation pass when a filter determines nothing can match."""

    def __init__(self, name: str):
        super().__init__(name)
        self.name = name


def _combine(parts: List[str], join: Combinator) -> Optional[str]:
    if not parts:
        return None
    if len(parts) == 1:
        return parts[0]
    return "(" + join.joiner.join(parts) + ")"


class FilterCompiler:
    """
    Compiles filter bodies into parameterized WHERE clauses.

    The compiler is built from a static configuration (filter name -> descriptor)
    and can be reused for many bodies. Each call to :meth:`generate` starts a
    fresh bind table, so read :attr:`params` (or use :meth:`compile`) before the
    next call. Instances are not thread safe: use one per thread, or
    :meth:`copy`, which shares the immutable configuration.

    A body is a mapping whose keys are either combinators (``all``, ``any``,
    ``not``) with a nested body as the value, or filter names with a value
    whose shape depends on the filter type::

        {
          "any": {
            "ones": {"only": ["Post/1", "Post/2"]},
            "all": {
              "polys": {"except": "Comment/1"},
              "blocked": {"only": [1, 2], "except": [1]},
            },
          }
        }

    generates ``((c_one IN (:p1)) OR ((c_poly NOT IN (:p2)) AND (c_blocked IN (:p3))))``.
    Filter names that are not in the configuration are ignored.
    """

    def __init__(self, config: Union[FilterConfig, Mapping[str, Any]], *, param_prefix: str = settings.PARAM_PREFIX):
        self.config = FilterConfig.from_dict(config)
        self.param_prefix = param_prefix
        self._table = BindTable(param_prefix)

    def copy(self) -> "FilterCompiler":
        return FilterCompiler(self.config, param_prefix=self.param_prefix)

    # --- bind table -----------------------------------------------------------

    @property
    def params(self) -> Mapping[str, Any]:
        return MappingProxyType(self._table.values)

    @property
    def counter(self) -> int:
        return self._table.counter

    def reset(self) -> None:
        self._table.clear()

    def allocate_parameter(self, value: Any = None) -> str:
        """Store *value* under a new parameter name and return the name."""
        return self._table.add(value)

    def set_parameter(self, name: str, value: Any) -> None:
        self._table.set(name, value)

    def get_parameter(self, name: str) -> Any:
        return self._table.get(name)

    # --- bodies ---------------------------------------------------------------

    @staticmethod
    def acceptable_body(candidate: Any) -> bool:
        return acceptable_body(candidate)

    def generate(self, body: Any, join: Union[Combinator, str] = Combinator.ALL) -> Clause:
        """
        Return the WHERE clause for *body*, None if it generates no clause, or
        False if one of its filters determined that nothing can match.
        Top-level filters are joined with *join* (``all`` or ``any``).
        """
        self.reset()
        if body is None:
            return None
        try:
            return self._generate(hash_body(body), Combinator(join))
        except _NoMatch as exc:
            log.debug("filter %s matches nothing; compilation aborted", exc.name)
            self.reset()
            return False

    def compile(self, body: Any, join: Union[Combinator, str] = Combinator.ALL) -> CompiledFilter:
        clause = self.generate(body, join)
        return CompiledFilter(clause=clause, params=dict(self._table.values))

    def _generate(self, body: Dict[str, Any], join: Combinator) -> Optional[str]:
        # a lone all/any key is just another nested clause; _combine returns it as is
        clauses: List[str] = []
        for key, value in body.items():
            comb = Combinator.lookup(key)
            if comb is None:
                c = self._generate_simple_clause(str(key), value)
            elif value is None:
                c = None
            elif comb is Combinator.NOT:
                c = self._generate(hash_body(value), Combinator.ALL)
                c = f"(NOT {c})" if c is not None else None
            else:
                c = self._generate(hash_body(value), comb)

            if c is False:
                raise _NoMatch(str(key))
            if c is not None:
                clauses.append(c)
        return _combine(clauses, join)

    def _generate_simple_clause(self, name: str, value: Any) -> Clause:
        desc = self.config.get(name)
        if desc is None:
            log.debug("ignoring unknown filter %s", name)
            return None
        return generate_simple_clause(self, name, desc, value)

    # --- adjust ---------------------------------------------------------------

    def adjust(self, body: Any, transform: Callable[["FilterCompiler", str, Any], Any]) -> Any:
        """
        Return a copy of *body* where the value of each filter is replaced by
        ``transform(compiler, name, value)``. Combinators are walked recursively.
        Bodies that aren't mappings are returned unchanged.
        """
        if not acceptable_body(body):
            return body
        out: Dict[str, Any] = {}
        for key, value in hash_body(body).items():
            if Combinator.lookup(key) is not None:
                out[key] = self.adjust(value, transform)
            else:
                out[key] = transform(self, key, value)
        return out


__all__ = [
    "BindTable",
    "CompiledFilter",
    "FilterCompiler",
]
