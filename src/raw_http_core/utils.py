"""
Utility helpers for raw_http_core.

Small pure functions shared by the message model, the client and the
transport: header serialization, relative URL handling and option key
conversion.
"""

import re
from typing import Any, Dict, Iterable, Mapping, Sequence, Tuple
from urllib.parse import urljoin, urlsplit

from .exceptions import InvalidArgumentError

CRLF = "\r\n"

_CAMEL_HUMP_RE = re.compile(r"[A-Z][a-z]")


def serialize_headers(headers: Mapping[str, Sequence[str]]) -> str:
    """
    Serialize a header mapping into wire lines.
    
    Args:
        headers: Mapping of header name to its ordered values
        
    Returns:
        ``Name: v1, v2`` lines, each terminated by CRLF
    """
    return "".join(
        f"{name}: {', '.join(values)}{CRLF}" for name, values in headers.items()
    )


def is_relative_url(url: str) -> bool:
    """
    Check whether a URL lacks an authority component.
    
    Scheme-relative references (``//host/path``) count as absolute.
    """
    try:
        return not urlsplit(url).netloc
    except ValueError:
        return True


def extract_relative_url_components(url: str, base_path: str = "/") -> Tuple[str, str]:
    """
    Extract the path and query of a relative URL.
    
    Paths without a leading slash are resolved against ``base_path``.
    
    Args:
        url: Relative reference such as ``/new?page=2``
        base_path: Path of the URL the reference is relative to
        
    Returns:
        Tuple of (path, query), path defaulting to ``base_path``
        
    Raises:
        InvalidArgumentError: If the URL cannot be parsed
    """
    try:
        parts = urlsplit(url)
    except ValueError as e:
        raise InvalidArgumentError(f"Malformed URL: {url}", e) from e
    path = parts.path
    if path and not path.startswith("/"):
        path = urljoin(base_path or "/", path)
    return path or base_path or "/", parts.query


def camel_to_snake(key: str) -> str:
    """Convert ``verifyPeerName`` style keys into ``verify_peer_name``."""
    return _CAMEL_HUMP_RE.sub(lambda match: "_" + match.group(0).lower(), key)


def convert_option_keys(options: Mapping[str, Any]) -> Dict[str, Any]:
    """Return a copy of ``options`` with every key converted to snake_case."""
    return {camel_to_snake(key): value for key, value in options.items()}


def flatten_fields(
    data: Mapping[Any, Any], prefix: str = ""
) -> Iterable[Tuple[str, Any]]:
    """
    Flatten nested mappings and sequences into ``parent[child]`` keys.
    
    Strings, bytes and any other leaf values are yielded unchanged.
    """
    for key, value in data.items():
        name = f"{prefix}[{key}]" if prefix else str(key)
        if isinstance(value, Mapping):
            yield from flatten_fields(value, name)
        elif isinstance(value, (list, tuple)):
            yield from flatten_fields(dict(enumerate(value)), name)
        else:
            yield name, value
