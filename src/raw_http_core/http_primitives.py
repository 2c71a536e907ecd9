"""
HTTP primitives for raw_http_core.

This module defines the core data structures for HTTP requests and responses.
All classes are immutable: every ``with_*`` method returns a structural
copy with one field changed, or the same instance when nothing changes.
"""

import re
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Union

from .exceptions import InvalidArgumentError
from .headers import HeaderMap, HeaderValues
from .streams import StreamInterface, create_stream
from .uri import URI

StatusCode = int

REASON_PHRASES: Dict[int, str] = {
    100: "Continue",
    101: "Switching Protocols",
    102: "Processing",
    200: "OK",
    201: "Created",
    202: "Accepted",
    203: "Non-Authoritative Information",
    204: "No Content",
    205: "Reset Content",
    206: "Partial Content",
    207: "Multi-status",
    208: "Already Reported",
    300: "Multiple Choices",
    301: "Moved Permanently",
    302: "Found",
    303: "See Other",
    304: "Not Modified",
    305: "Use Proxy",
    306: "Switch Proxy",
    307: "Temporary Redirect",
    400: "Bad Request",
    401: "Unauthorized",
    402: "Payment Required",
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
    406: "Not Acceptable",
    407: "Proxy Authentication Required",
    408: "Request Time-out",
    409: "Conflict",
    410: "Gone",
    411: "Length Required",
    412: "Precondition Failed",
    413: "Request Entity Too Large",
    414: "Request-URI Too Large",
    415: "Unsupported Media Type",
    416: "Requested range not satisfiable",
    417: "Expectation Failed",
    418: "I'm a teapot",
    422: "Unprocessable Entity",
    423: "Locked",
    424: "Failed Dependency",
    425: "Unordered Collection",
    426: "Upgrade Required",
    428: "Precondition Required",
    429: "Too Many Requests",
    431: "Request Header Fields Too Large",
    451: "Unavailable For Legal Reasons",
    500: "Internal Server Error",
    501: "Not Implemented",
    502: "Bad Gateway",
    503: "Service Unavailable",
    504: "Gateway Time-out",
    505: "HTTP Version not supported",
    506: "Variant Also Negotiates",
    507: "Insufficient Storage",
    508: "Loop Detected",
    511: "Network Authentication Required",
}

_WHITESPACE_RE = re.compile(r"\s")


@dataclass(frozen=True)
class _Message:
    """
    Fields and behavior shared by Request and Response.

    Header names keep one original casing per case-insensitive name and
    the body is never None: an empty stream stands in for a missing body.
    """

    protocol_version: str = "1.1"
    headers: HeaderMap = field(default_factory=HeaderMap)
    body: Optional[StreamInterface] = None

    def __post_init__(self) -> None:
        """Validate message data after initialization."""
        if not isinstance(self.protocol_version, str):
            raise InvalidArgumentError("protocol_version must be a string")

        if not isinstance(self.headers, HeaderMap):
            object.__setattr__(self, "headers", HeaderMap(self.headers))

        if self.body is None:
            object.__setattr__(self, "body", create_stream())
        elif not isinstance(self.body, StreamInterface):
            raise InvalidArgumentError("body must be a stream")

    def with_protocol_version(self, version: str) -> Any:
        """Create a new message with a different protocol version."""
        if version == self.protocol_version:
            return self
        return replace(self, protocol_version=version)

    def has_header(self, name: str) -> bool:
        """Check if a header exists (case-insensitive)."""
        return name in self.headers

    def get_header(self, name: str) -> List[str]:
        """Get all values of a header (case-insensitive), empty if absent."""
        return self.headers.get(name, [])

    def get_header_line(self, name: str) -> str:
        """Get all values of a header joined by ``", "``."""
        return self.headers.get_line(name)

    def with_header(self, name: str, value: HeaderValues) -> Any:
        """Create a new message with a header replaced."""
        headers = self.headers.with_header(name, value)
        if headers is self.headers:
            return self
        return replace(self, headers=headers)

    def with_added_header(self, name: str, value: HeaderValues) -> Any:
        """Create a new message with values appended to a header."""
        if not isinstance(name, str) or not name:
            raise InvalidArgumentError("Header name must be an RFC 7230 compatible string.")
        return replace(self, headers=self.headers.with_added_header(name, value))

    def without_header(self, name: str) -> Any:
        """Create a new message without a header."""
        headers = self.headers.without_header(name)
        if headers is self.headers:
            return self
        return replace(self, headers=headers)

    def with_body(self, body: Any) -> Any:
        """
        Create a new message with a different body.

        The replaced stream is not closed; it now belongs to the caller.
        """
        body = create_stream(body)
        if body is self.body:
            return self
        return replace(self, body=body)


@dataclass(frozen=True)
class Request(_Message):
    """
    Immutable HTTP request representation.

    When no explicit request target is set, the target is derived from
    the URI on every read.
    """

    method: str = "GET"
    uri: URI = field(default_factory=URI)
    explicit_target: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate request data after initialization."""
        super().__post_init__()
        if not isinstance(self.method, str):
            raise InvalidArgumentError("Method must be a string")

        if isinstance(self.uri, str):
            object.__setattr__(self, "uri", URI.parse(self.uri))
        elif not isinstance(self.uri, URI):
            raise InvalidArgumentError("uri must be a URI or a string")

    @classmethod
    def create(
        cls,
        method: str,
        uri: Union[str, URI],
        headers: Optional[Any] = None,
        body: Any = None,
        version: str = "1.1",
    ) -> "Request":
        """
        Create a Request with proper type conversion.

        Args:
            method: HTTP method (GET, POST, etc.)
            uri: URI string or URI instance
            headers: Optional mapping or (name, value) pairs
            body: Optional body: str, bytes, stream or binary file object
            version: HTTP protocol version

        Returns:
            New Request instance with a Host header derived from the URI
            unless one was supplied
        """
        request = cls(
            protocol_version=version,
            headers=HeaderMap(headers),
            body=create_stream(body),
            method=method,
            uri=uri,
        )
        if not request.has_header("Host"):
            request = request._with_host_from_uri()
        return request

    @property
    def request_target(self) -> str:
        """Get the request target, derived from the URI unless set explicitly."""
        if self.explicit_target is not None:
            return self.explicit_target

        target = self.uri.path or "/"
        if self.uri.query:
            target += f"?{self.uri.query}"
        return target

    def with_request_target(self, target: str) -> "Request":
        """Create a new request with an explicit request target."""
        if not isinstance(target, str) or _WHITESPACE_RE.search(target):
            raise InvalidArgumentError(
                "Invalid request target provided; cannot contain whitespace"
            )
        if not target.isascii():
            raise InvalidArgumentError("Invalid request target provided; must be ASCII")
        if target == self.explicit_target:
            return self
        return replace(self, explicit_target=target)

    def with_method(self, method: str) -> "Request":
        """Create a new request with a different method."""
        if not isinstance(method, str):
            raise InvalidArgumentError("Method must be a string")
        if method == self.method:
            return self
        return replace(self, method=method)

    def with_uri(self, uri: Union[str, URI], preserve_host: bool = False) -> "Request":
        """
        Create a new request with a different URI.

        The Host header is recomputed from the new URI unless
        ``preserve_host`` is set and a Host header already exists.
        """
        if isinstance(uri, str):
            uri = URI.parse(uri)
        if uri is self.uri:
            return self

        new = replace(self, uri=uri)
        if not preserve_host or not self.has_header("Host"):
            new = new._with_host_from_uri()
        return new

    def _with_host_from_uri(self) -> "Request":
        host = self.uri.host
        if not host:
            return self
        if self.uri.port is not None:
            host = f"{host}:{self.uri.port}"

        name = next((n for n in self.headers if n.lower() == "host"), "Host")
        return replace(self, headers=self.headers.with_header(name, host, first=True))


@dataclass(frozen=True)
class Response(_Message):
    """
    Immutable HTTP response representation.

    The reason phrase defaults to the standard phrase for the status
    code, or an empty string for unknown codes.
    """

    status_code: StatusCode = 200
    reason_phrase: str = ""

    def __post_init__(self) -> None:
        """Validate response data after initialization."""
        super().__post_init__()
        if isinstance(self.status_code, bool) or not isinstance(self.status_code, int):
            raise InvalidArgumentError("Status code has to be an integer")

        if not 100 <= self.status_code <= 599:
            raise InvalidArgumentError("Status code has to be an integer between 100 and 599")

        if not self.reason_phrase:
            object.__setattr__(self, "reason_phrase", REASON_PHRASES.get(self.status_code, ""))

    @classmethod
    def create(
        cls,
        status_code: StatusCode = 200,
        headers: Optional[Any] = None,
        body: Any = None,
        version: str = "1.1",
        reason: Optional[str] = None,
    ) -> "Response":
        """
        Create a Response with proper validation.

        Args:
            status_code: HTTP status code
            headers: Optional mapping or (name, value) pairs
            body: Optional body: str, bytes, stream or binary file object
            version: HTTP protocol version
            reason: Reason phrase, looked up from the status code when None

        Returns:
            New Response instance
        """
        if reason is None:
            reason = REASON_PHRASES.get(status_code, "")

        return cls(
            protocol_version=version,
            headers=HeaderMap(headers),
            body=create_stream(body),
            status_code=status_code,
            reason_phrase=reason,
        )

    def with_status(self, status_code: Union[int, str], reason: Optional[str] = "") -> "Response":
        """
        Create a new response with a different status.

        An empty reason falls back to the standard phrase for the code.
        """
        if isinstance(status_code, bool) or not isinstance(status_code, (int, str)):
            raise InvalidArgumentError("Status code has to be an integer")
        try:
            status_code = int(status_code)
        except ValueError as e:
            raise InvalidArgumentError("Status code has to be an integer", e) from e

        if not reason:
            reason = REASON_PHRASES.get(status_code, "")
        if status_code == self.status_code and reason == self.reason_phrase:
            return self
        return replace(self, status_code=status_code, reason_phrase=reason)
