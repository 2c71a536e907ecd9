"""
Header collection for raw_http_core.

HeaderMap is an immutable, case-insensitive mapping of header names to
ordered value lists. Each name keeps one original casing; names and
values are validated against the RFC 7230 grammar on every mutation.
"""

import re
from collections.abc import Mapping
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple, Union

from .exceptions import InvalidArgumentError

HeaderValue = Union[str, int, float]
HeaderValues = Union[HeaderValue, Sequence[HeaderValue]]

_TOKEN_RE = re.compile(r"^[!#$%&'*+.^_`|~0-9A-Za-z-]+$")
_FIELD_VALUE_RE = re.compile(r"^[ \t\x21-\x7e\x80-\xff]*$")


def validate_header_name(name: str) -> str:
    """
    Validate a header name against the RFC 7230 token grammar.
    
    Raises:
        InvalidArgumentError: If the name is not a valid token
    """
    if not isinstance(name, str) or not _TOKEN_RE.match(name):
        raise InvalidArgumentError("Header name must be an RFC 7230 compatible string.")
    return name


def validate_header_values(values: HeaderValues) -> Tuple[str, ...]:
    """
    Validate and trim one header value or a sequence of values.
    
    Numbers are converted to strings; surrounding spaces and tabs are
    stripped from every value.
    
    Returns:
        Tuple of normalized values
        
    Raises:
        InvalidArgumentError: If a value is not RFC 7230 compatible or the
            sequence is empty
    """
    if isinstance(values, (str, int, float)) and not isinstance(values, bool):
        values = [values]
    elif not isinstance(values, (list, tuple)):
        raise InvalidArgumentError("Header values must be RFC 7230 compatible strings.")
    
    if not values:
        raise InvalidArgumentError(
            "Header values must be a string or a list of strings, empty list given."
        )
    
    normalized = []
    for value in values:
        if isinstance(value, bool) or not isinstance(value, (str, int, float)):
            raise InvalidArgumentError("Header values must be RFC 7230 compatible strings.")
        value = str(value)
        if not _FIELD_VALUE_RE.match(value):
            raise InvalidArgumentError("Header values must be RFC 7230 compatible strings.")
        normalized.append(value.strip(" \t"))
    
    return tuple(normalized)


class HeaderMap(Mapping):
    """
    Immutable case-insensitive header mapping.
    
    Iteration yields names in their stored casing and insertion order.
    Lookups ignore case. Mutators return a new HeaderMap, or the same
    instance when the result would be identical.
    """
    
    __slots__ = ("_values", "_names")
    
    def __init__(self, headers: Optional[Union[Mapping, Iterable[Tuple[str, HeaderValues]]]] = None) -> None:
        self._values: Dict[str, Tuple[str, ...]] = {}
        self._names: Dict[str, str] = {}
        
        if headers is None:
            return
        
        items = headers.items() if isinstance(headers, Mapping) else headers
        for name, values in items:
            self._add(str(name) if isinstance(name, int) else name, values)
    
    def _add(self, name: str, values: HeaderValues) -> None:
        normalized = validate_header_values(values)
        validate_header_name(name)
        lower = name.lower()
        if lower in self._names:
            original = self._names[lower]
            self._values[original] = self._values[original] + normalized
        else:
            self._names[lower] = name
            self._values[name] = normalized
    
    def _copy(self) -> "HeaderMap":
        new = HeaderMap.__new__(HeaderMap)
        new._values = dict(self._values)
        new._names = dict(self._names)
        return new
    
    def __getitem__(self, name: str) -> List[str]:
        original = self._names.get(name.lower()) if isinstance(name, str) else None
        if original is None:
            raise KeyError(name)
        return list(self._values[original])
    
    def __iter__(self) -> Iterator[str]:
        return iter(self._values)
    
    def __len__(self) -> int:
        return len(self._values)
    
    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._names
    
    def __hash__(self) -> int:
        return hash(tuple(self._values.items()))
    
    def __repr__(self) -> str:
        return f"HeaderMap({dict(self._values)!r})"
    
    def get_line(self, name: str) -> str:
        """Get all values of a header joined by ``", "``."""
        return ", ".join(self.get(name, []))
    
    def with_header(self, name: str, values: HeaderValues, first: bool = False) -> "HeaderMap":
        """
        Return a copy with ``name`` replaced by ``values``.
        
        The new casing of ``name`` wins. With ``first`` the header is
        moved to the front.
        """
        normalized = validate_header_values(values)
        validate_header_name(name)
        lower = name.lower()
        existing = self._names.get(lower)
        if existing == name and self._values[existing] == normalized and (
            not first or next(iter(self._values)) == name
        ):
            return self
        
        new = self._copy()
        if existing is not None:
            del new._values[existing]
        new._names[lower] = name
        if first:
            new._values = {name: normalized, **new._values}
        else:
            new._values[name] = normalized
        return new
    
    def with_added_header(self, name: str, values: HeaderValues) -> "HeaderMap":
        """Return a copy with ``values`` appended to ``name``."""
        new = self._copy()
        new._add(name, values)
        return new
    
    def without_header(self, name: str) -> "HeaderMap":
        """Return a copy without ``name``."""
        lower = name.lower()
        if lower not in self._names:
            return self
        
        new = self._copy()
        del new._values[new._names.pop(lower)]
        return new
    
    def raw_items(self) -> List[Tuple[str, str]]:
        """Get one ``(name, value)`` pair per value, in order."""
        return [(name, value) for name, values in self._values.items() for value in values]
