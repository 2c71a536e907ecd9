"""
Socket transport for raw_http_core.

A Transport owns one blocking client connection for the lifetime of one
request leg: it connects (optionally through TLS), writes raw bytes,
reads the response head and hands the rest of the connection out as a
body stream.
"""

import logging
import socket
from typing import Any, Optional

from ..config import ClientOptions
from ..exceptions import NetworkError
from ..http_primitives import Request
from ..streams import SocketStream
from .utils import (
    PLAIN_TRANSPORT,
    create_ssl_context,
    get_preferred_tls_transport,
    is_tls_transport,
    parse_connection_target,
)

logger = logging.getLogger(__name__)

HEAD_TERMINATOR = b"\r\n\r\n"


class Transport:
    """
    Blocking socket connection for a single request.

    The transport closes its socket exactly once, on ``close()``, on
    leaving a ``with`` block or when it is garbage collected. Body streams
    created from it keep it alive and share its descriptor.
    """

    def __init__(self, options: Optional[ClientOptions] = None, request: Optional[Request] = None) -> None:
        """
        Initialize Transport.

        Args:
            options: Client options (timeout, proxy, TLS settings)
            request: The request this transport services
        """
        self._options = options or ClientOptions()
        self._request = request
        self._connection: Optional[socket.socket] = None
        self._closed = False

    @property
    def request(self) -> Optional[Request]:
        """Get the request being serviced."""
        return self._request

    def set_request(self, request: Request) -> None:
        """Set the request being serviced."""
        self._request = request

    @property
    def is_connected(self) -> bool:
        """Check if the connection is open."""
        return self._connection is not None and not self._closed

    def build_target(self) -> str:
        """
        Build the connection target ``<transport>://<host>:<port>``.

        The configured proxy is used verbatim. Otherwise https requests
        use the configured or most capable TLS transport and everything
        else plain TCP, on the URI port or the scheme default.

        Raises:
            HTTPRuntimeError: If https is requested and no TLS transport
                is available
        """
        if self._options.proxy:
            return self._options.proxy

        uri = self._require_request().uri
        is_secure = uri.scheme == "https"
        if is_secure:
            transport = self._options.ssl_protocol or get_preferred_tls_transport()
        else:
            transport = PLAIN_TRANSPORT

        port = uri.port
        if not port:
            port = 443 if is_secure else 80

        host = uri.host
        if ":" in host and not host.startswith("["):
            host = f"[{host}]"
        return f"{transport}://{host}:{port}"

    def _require_request(self) -> Request:
        if self._request is None:
            raise NetworkError("No request set on transport")
        return self._request

    def connect(self) -> None:
        """
        Open the connection.

        Raises:
            NetworkError: If the connection cannot be established
            HTTPRuntimeError: If TLS is required but unavailable
        """
        target = self.build_target()
        transport, host, port = parse_connection_target(target)
        timeout = self._options.timeout

        logger.debug(f"Connecting to {target} (timeout: {timeout}s)")

        try:
            connection = socket.create_connection((host, port), timeout=timeout)
        except OSError as e:
            raise NetworkError(str(e) or "Unknown network error", self._request, e) from e

        if is_tls_transport(transport):
            try:
                context, peer_name = create_ssl_context(transport, self._options.ssl)
                server_hostname = peer_name or (self._request.uri.host if self._request else host)
                connection = context.wrap_socket(connection, server_hostname=server_hostname.strip("[]"))
            except OSError as e:
                connection.close()
                raise NetworkError(str(e) or "TLS handshake failed", self._request, e) from e
            except Exception:
                connection.close()
                raise

        # The head read is unbounded once the connection is up.
        connection.settimeout(None)
        self.close()
        self._connection = connection
        self._closed = False

    def _require_connection(self) -> socket.socket:
        if self._connection is None or self._closed:
            raise NetworkError("Transport is not connected", self._request)
        return self._connection

    def send(self, data: bytes) -> None:
        """
        Write raw bytes to the connection.

        Raises:
            NetworkError: If the write fails
        """
        if not data:
            return

        connection = self._require_connection()
        try:
            connection.sendall(data)
        except OSError as e:
            raise NetworkError(str(e) or "Cannot write to socket stream", self._request, e) from e

        logger.debug(f"Sent {len(data)} bytes")

    def read_message(self) -> bytes:
        """
        Read the message head from the connection.

        Reads one byte at a time and stops right after the blank line, so
        nothing past the head is consumed.

        Returns:
            The head with trailing CRLFs stripped, possibly empty

        Raises:
            NetworkError: If a read fails
        """
        connection = self._require_connection()
        message = bytearray()

        while True:
            try:
                symbol = connection.recv(1)
            except OSError as e:
                raise NetworkError("Cannot read data from socket stream", self._request, e) from e

            if not symbol:
                break
            message += symbol
            if message.endswith(HEAD_TERMINATOR):
                break

        logger.debug(f"Read {len(message)} bytes of message head")
        return bytes(message).rstrip(b"\r\n")

    def create_body_stream(self, content_length: Optional[int] = None) -> SocketStream:
        """
        Wrap the rest of the connection as a body stream.

        Args:
            content_length: Size hint, bounds the readable bytes

        Returns:
            SocketStream sharing this transport's connection
        """
        connection = self._require_connection()
        return SocketStream(connection.makefile("rb"), content_length=content_length, owner=self)

    def close(self) -> None:
        """Close the connection, once."""
        connection = getattr(self, "_connection", None)
        if connection is not None and not self._closed:
            self._closed = True
            connection.close()
            logger.debug("Transport connection closed")

    def __enter__(self) -> "Transport":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def __del__(self) -> None:
        self.close()
