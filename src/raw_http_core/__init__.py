"""
raw_http_core - Blocking HTTP/1.1 client built on raw sockets

A small HTTP/1.1 client with immutable request and response messages,
pluggable body streams, plain TCP and TLS transports and redirect
following.
"""

__version__ = "0.1.0"
__author__ = "Developer"
__email__ = "dev@example.com"

# Import main components for easy access
from .exceptions import (
    HTTPCoreError,
    HTTPRuntimeError,
    InvalidArgumentError,
    NetworkError,
    RequestError,
    StreamError,
)
from .config import ClientOptions
from .uri import URI
from .headers import HeaderMap
from .streams import (
    FileStream,
    JsonStream,
    MultipartStream,
    OffsetStream,
    SocketStream,
    StreamInterface,
    TextStream,
    create_stream,
)
from .http_primitives import Request, Response
from .network import Transport
from .http11 import HTTP11Client

__all__ = [
    "HTTPCoreError",
    "HTTPRuntimeError",
    "InvalidArgumentError",
    "NetworkError",
    "RequestError",
    "StreamError",
    "ClientOptions",
    "URI",
    "HeaderMap",
    "StreamInterface",
    "SocketStream",
    "TextStream",
    "JsonStream",
    "FileStream",
    "OffsetStream",
    "MultipartStream",
    "create_stream",
    "Request",
    "Response",
    "Transport",
    "HTTP11Client",
]
