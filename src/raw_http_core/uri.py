"""
URI value object for raw_http_core.

Parses, normalizes and re-serializes URIs following RFC 3986. Every
component is stored already percent-encoded and every mutator returns a
new URI, or the receiver itself when nothing changes.
"""

import re
from dataclasses import dataclass, replace
from typing import Dict, Optional, Tuple, Union
from urllib.parse import quote, urlsplit

from .exceptions import InvalidArgumentError

DEFAULT_PORTS: Dict[str, int] = {
    "http": 80,
    "https": 443,
}

_CHAR_UNRESERVED = r"a-zA-Z0-9_\-\.~"
_CHAR_SUB_DELIMS = r"!\$&'\(\)\*\+,;="
_CHAR_PATH = r"%:@\/"
_CHAR_QUERY_FRAGMENT = r"\?"

# Runs of characters outside the allowed class, or a '%' that does not
# start a valid escape sequence.
_PATH_RE = re.compile(
    rf"(?:[^{_CHAR_UNRESERVED}{_CHAR_SUB_DELIMS}{_CHAR_PATH}]+|%(?![A-Fa-f0-9]{{2}}))"
)
_QUERY_RE = re.compile(
    rf"(?:[^{_CHAR_UNRESERVED}{_CHAR_SUB_DELIMS}{_CHAR_PATH}{_CHAR_QUERY_FRAGMENT}]+"
    rf"|%(?![A-Fa-f0-9]{{2}}))"
)

_USER_RE = re.compile(
    rf"(?:[^{_CHAR_UNRESERVED}{_CHAR_SUB_DELIMS}%]+|%(?![A-Fa-f0-9]{{2}}))"
)
_PASSWORD_RE = re.compile(
    rf"(?:[^{_CHAR_UNRESERVED}{_CHAR_SUB_DELIMS}%:]+|%(?![A-Fa-f0-9]{{2}}))"
)

_HOST_RE = re.compile(r"^(?:\[[0-9A-Fa-f:.vV]+\]|[A-Za-z0-9\-._~!$&'()*+,;=%]*)$")


def _encode(value: str, pattern: "re.Pattern[str]") -> str:
    return pattern.sub(lambda match: quote(match.group(0), safe=""), value)


def _encode_user_info(user: str, password: Optional[str] = None) -> str:
    info = _encode(user, _USER_RE)
    if password:
        info += ":" + _encode(password, _PASSWORD_RE)
    return info


def _split_authority(netloc: str) -> Tuple[str, str]:
    """Split ``user:pass@host:port`` into user-info and host (brackets kept)."""
    user_info, _, host_port = netloc.rpartition("@")
    if host_port.startswith("["):
        host = host_port[: host_port.find("]") + 1]
    else:
        host = host_port.split(":", 1)[0]
    return user_info, host


@dataclass(frozen=True)
class URI:
    """
    Immutable RFC 3986 URI.
    
    ``port`` is None whenever it equals the scheme's well-known port, so
    the serialized authority never carries a default port.
    """
    
    scheme: str = ""
    user_info: str = ""
    host: str = ""
    port: Optional[int] = None
    path: str = ""
    query: str = ""
    fragment: str = ""
    
    @classmethod
    def parse(cls, uri: str) -> "URI":
        """
        Parse a URI string.
        
        Args:
            uri: URI reference to parse
            
        Returns:
            New URI instance
            
        Raises:
            InvalidArgumentError: If the URI is malformed
        """
        if not isinstance(uri, str):
            raise InvalidArgumentError("URI must be a string")
        if not uri:
            return cls()
        
        try:
            parts = urlsplit(uri)
            port = parts.port
        except ValueError as e:
            raise InvalidArgumentError(f"Unable to parse URI: {uri}", e) from e
        
        rest = uri[len(parts.scheme) + 1:] if parts.scheme else uri
        if rest.startswith("//") and not parts.netloc:
            raise InvalidArgumentError(f"Unable to parse URI: {uri}")
        
        user_info, host = _split_authority(parts.netloc)
        user, _, password = user_info.partition(":")
        if not _HOST_RE.match(host):
            raise InvalidArgumentError(f"Invalid host in URI: {uri}")
        scheme = parts.scheme.lower()
        return cls(
            scheme=scheme,
            user_info=_encode_user_info(user, password),
            host=host.lower(),
            port=cls._filter_port(scheme, port),
            path=_encode(parts.path, _PATH_RE),
            query=_encode(parts.query, _QUERY_RE),
            fragment=_encode(parts.fragment, _QUERY_RE),
        )
    
    @staticmethod
    def _filter_port(scheme: str, port: Optional[Union[int, str]]) -> Optional[int]:
        if port is None:
            return None
        
        try:
            port = int(port)
        except (TypeError, ValueError) as e:
            raise InvalidArgumentError(f"Invalid port: {port!r}", e) from e
        
        if not 0 <= port <= 0xFFFF:
            raise InvalidArgumentError(f"Invalid port: {port}. Must be between 0 and 65535")
        
        if DEFAULT_PORTS.get(scheme) == port:
            return None
        return port
    
    @property
    def authority(self) -> str:
        """Get ``[user-info@]host[:port]``, empty when there is no host."""
        if not self.host:
            return ""
        
        authority = self.host
        if self.user_info:
            authority = f"{self.user_info}@{authority}"
        if self.port is not None:
            authority = f"{authority}:{self.port}"
        return authority
    
    def __str__(self) -> str:
        authority = self.authority
        uri = ""
        if self.scheme:
            uri += f"{self.scheme}:"
        if authority:
            uri += f"//{authority}"
        if self.path:
            path = self.path
            if authority and not path.startswith("/"):
                path = "/" + path
            elif not authority and path.startswith("//"):
                path = "/" + path.lstrip("/")
            uri += path
        if self.query:
            uri += f"?{self.query}"
        if self.fragment:
            uri += f"#{self.fragment}"
        return uri
    
    def with_scheme(self, scheme: str) -> "URI":
        """Create a new URI with a different scheme."""
        if not isinstance(scheme, str):
            raise InvalidArgumentError("Scheme must be a string")
        
        scheme = scheme.lower()
        if scheme == self.scheme:
            return self
        return replace(self, scheme=scheme, port=self._filter_port(scheme, self.port))
    
    def with_user_info(self, user: str, password: Optional[str] = None) -> "URI":
        """Create a new URI with different user information."""
        if not isinstance(user, str):
            raise InvalidArgumentError("User must be a string")
        
        info = _encode_user_info(user, password)
        if info == self.user_info:
            return self
        return replace(self, user_info=info)
    
    def with_host(self, host: str) -> "URI":
        """Create a new URI with a different host."""
        if not isinstance(host, str):
            raise InvalidArgumentError("Host must be a string")
        
        host = host.lower()
        if not _HOST_RE.match(host):
            raise InvalidArgumentError(f"Invalid host: {host!r}")
        if host == self.host:
            return self
        return replace(self, host=host)
    
    def with_port(self, port: Optional[int]) -> "URI":
        """Create a new URI with a different port, None for the default."""
        port = self._filter_port(self.scheme, port)
        if port == self.port:
            return self
        return replace(self, port=port)
    
    def with_path(self, path: str) -> "URI":
        """Create a new URI with a different path."""
        if not isinstance(path, str):
            raise InvalidArgumentError("Path must be a string")
        
        path = _encode(path, _PATH_RE)
        if path == self.path:
            return self
        return replace(self, path=path)
    
    def with_query(self, query: str) -> "URI":
        """Create a new URI with a different query."""
        if not isinstance(query, str):
            raise InvalidArgumentError("Query must be a string")
        
        query = _encode(query, _QUERY_RE)
        if query == self.query:
            return self
        return replace(self, query=query)
    
    def with_fragment(self, fragment: str) -> "URI":
        """Create a new URI with a different fragment."""
        if not isinstance(fragment, str):
            raise InvalidArgumentError("Fragment must be a string")
        
        fragment = _encode(fragment, _QUERY_RE)
        if fragment == self.fragment:
            return self
        return replace(self, fragment=fragment)
