"""
Resolution of object references used by the references and
polymorphic_references filter types.

A reference can be:

- an object handle: anything with an ``id`` attribute (and, optionally, a
  ``fingerprint`` attribute or method);
- a fingerprint string, ``ClassName/id``;
- a global identifier, ``gid://app/ClassName/id``;
- a bare integer id, or a string of digits.

Anything that cannot be resolved is dropped from the converted list rather
than raising, so one bad element does not fail a whole query.
"""

from __future__ import annotations
from typing import Any, Iterable, Iterator, List, Optional, Set, Tuple
from urllib.parse import urlparse
import logging
import re

log = logging.getLogger("filterclause.references")

_FINGERPRINT_RE = re.compile(r"^([A-Za-z_][\w.:]*)/([0-9]+)$")


def split_fingerprint(fingerprint: str) -> Tuple[Optional[str], Optional[str]]:
    """
    Split ``ClassName/id`` into its two parts; returns (None, None) if the
    string is not a fingerprint.
    """
    m = _FINGERPRINT_RE.match(fingerprint.strip())
    if not m:
        return None, None
    return m.group(1), m.group(2)


def parse_global_id(gid: str) -> Tuple[Optional[str], Optional[str]]:
    """
    Split ``gid://app/ClassName/id`` into (ClassName, id).
    """
    uri = urlparse(gid.strip())
    if uri.scheme != "gid" or not uri.netloc:
        return None, None
    parts = [p for p in uri.path.split("/") if p]
    if len(parts) != 2 or not parts[1].isdigit():
        return None, None
    return parts[0], parts[1]


def _class_matches(cls: type, class_name: str) -> bool:
    for c in cls.__mro__:
        if c.__name__ == class_name or f"{c.__module__}.{c.__qualname__}" == class_name:
            return True
    return False


def _classes_named(name: str) -> Iterator[type]:
    """Yield every loaded class whose simple or qualified name is *name*."""
    seen: Set[type] = set()
    stack: List[type] = [object]
    while stack:
        for sub in type.__subclasses__(stack.pop()):
            if sub in seen:
                continue
            seen.add(sub)
            if sub.__name__ == name or f"{sub.__module__}.{sub.__qualname__}" == name:
                yield sub
            stack.append(sub)


def _name_matches(cname: str, class_name: str) -> bool:
    # a fingerprint naming a subclass of class_name is accepted
    if cname == class_name:
        return True
    return any(_class_matches(c, class_name) for c in _classes_named(cname))


def _checked_id(cname: Optional[str], oid: Any, class_name: Optional[str]) -> Optional[int]:
    if cname is None or oid is None:
        return None
    if class_name is not None and not _name_matches(cname, class_name):
        return None
    try:
        return int(oid)
    except (TypeError, ValueError):
        return None


def extract_identifier(ref: Any, class_name: Optional[str] = None) -> Optional[int]:
    """
    Resolve *ref* to a numeric id, or None if it can't be resolved or belongs
    to a class other than *class_name*. Bare ids are not class checked.
    """
    if ref is None or isinstance(ref, bool):
        return None
    if isinstance(ref, int):
        return ref
    if isinstance(ref, str):
        s = ref.strip()
        if s.isdigit():
            return int(s)
        if s.startswith("gid://"):
            cname, oid = parse_global_id(s)
        else:
            cname, oid = split_fingerprint(s)
        return _checked_id(cname, oid, class_name)
    if hasattr(ref, "id"):
        if class_name is not None and not _class_matches(type(ref), class_name):
            return None
        return _checked_id(type(ref).__name__, ref.id, None)
    return None


def extract_fingerprint(ref: Any) -> Optional[str]:
    """
    Resolve *ref* to a ``ClassName/id`` fingerprint, or None.
    """
    if isinstance(ref, str):
        s = ref.strip()
        if s.startswith("gid://"):
            cname, oid = parse_global_id(s)
        else:
            cname, oid = split_fingerprint(s)
        return f"{cname}/{oid}" if cname is not None else None
    fp = getattr(ref, "fingerprint", None)
    if fp is not None:
        fp = fp() if callable(fp) else fp
        return fp if isinstance(fp, str) else None
    oid = getattr(ref, "id", None)
    if oid is None or isinstance(ref, (int, float, bool)):
        return None
    return f"{type(ref).__name__}/{oid}"


def convert_list_of_references(refs: Optional[Iterable[Any]], class_name: Optional[str]) -> Optional[List[int]]:
    if refs is None:
        return None
    out: List[int] = []
    for r in refs:
        oid = extract_identifier(r, class_name)
        if oid is None:
            log.debug("dropping reference %r (class_name=%s)", r, class_name)
        else:
            out.append(oid)
    return out


def convert_list_of_polymorphic_references(refs: Optional[Iterable[Any]]) -> Optional[List[str]]:
    if refs is None:
        return None
    out: List[str] = []
    for r in refs:
        fp = extract_fingerprint(r)
        if fp is None:
            log.debug("dropping polymorphic reference %r", r)
        else:
            out.append(fp)
    return out


__all__ = [
    "split_fingerprint",
    "parse_global_id",
    "extract_identifier",
    "extract_fingerprint",
    "convert_list_of_references",
    "convert_list_of_polymorphic_references",
]
