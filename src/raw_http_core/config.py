"""
Client configuration for raw_http_core.

All options are collected in one immutable object that is handed to
the client (and, through it, to every transport) once at construction.
"""

from dataclasses import dataclass, field, fields
from types import MappingProxyType
from typing import Any, Mapping, Optional

from .exceptions import InvalidArgumentError
from .utils import convert_option_keys


@dataclass(frozen=True)
class ClientOptions:
    """
    Immutable client and transport options.
    
    Attributes:
        follow_location: Follow 3xx responses carrying a Location header
        max_redirects: Redirect budget for a single ``send_request`` call
        wait_response: Read the reply at all; when False the prototype
            response is returned right after the request is written
        request_full_uri: Use the absolute URI as request target (proxies)
        ssl: TLS context options, camelCase or snake_case keys
        timeout: Connect timeout in seconds
        proxy: Explicit connection target ``<transport>://host:port``
        ssl_protocol: Explicit TLS sub-protocol name, e.g. ``tlsv1.2``
    """
    
    DEFAULT_TIMEOUT = 30.0
    DEFAULT_MAX_REDIRECTS = 5
    
    follow_location: bool = True
    max_redirects: int = DEFAULT_MAX_REDIRECTS
    wait_response: bool = True
    request_full_uri: bool = False
    ssl: Mapping[str, Any] = field(default_factory=dict)
    timeout: float = DEFAULT_TIMEOUT
    proxy: Optional[str] = None
    ssl_protocol: Optional[str] = None
    
    def __post_init__(self) -> None:
        """Validate options and freeze the TLS option mapping."""
        if not isinstance(self.max_redirects, int) or self.max_redirects < 0:
            raise InvalidArgumentError("max_redirects must be a non-negative integer")
        
        if self.timeout is None or self.timeout <= 0:
            raise InvalidArgumentError("timeout must be a positive number of seconds")
        
        if not isinstance(self.ssl, Mapping):
            raise InvalidArgumentError("ssl options must be a mapping")
        
        object.__setattr__(self, "ssl", MappingProxyType(dict(self.ssl)))
    
    @classmethod
    def from_mapping(cls, options: Optional[Mapping[str, Any]] = None) -> "ClientOptions":
        """
        Create ClientOptions from a plain mapping.
        
        Keys may use either snake_case (``max_redirects``) or camelCase
        (``maxRedirects``).
        
        Args:
            options: Mapping of option name to value
            
        Returns:
            New ClientOptions instance
            
        Raises:
            InvalidArgumentError: If an unknown option is supplied
        """
        converted = convert_option_keys(options or {})
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(converted) - known)
        if unknown:
            raise InvalidArgumentError(f"Unknown client options: {', '.join(unknown)}")
        
        return cls(**converted)
