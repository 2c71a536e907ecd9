"""
Network components for raw_http_core.

This module provides the blocking socket transport and the helpers it
uses for TLS and connection target handling.
"""

from .transport import Transport, HEAD_TERMINATOR
from .utils import (
    create_ssl_context,
    get_preferred_tls_transport,
    get_tls_transports,
    is_tls_transport,
    parse_connection_target,
)

__all__ = [
    "Transport",
    "HEAD_TERMINATOR",
    "create_ssl_context",
    "get_preferred_tls_transport",
    "get_tls_transports",
    "is_tls_transport",
    "parse_connection_target",
]
