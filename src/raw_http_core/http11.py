"""
HTTP/1.1 client implementation for raw_http_core.

This module implements the HTTP11Client class that frames requests,
drives a Transport for each request leg and follows redirects.
"""

import logging
import time
from typing import Callable, Optional, Union

import h11

from .config import ClientOptions
from .exceptions import HTTPCoreError, InvalidArgumentError, RequestError
from .headers import HeaderMap
from .http_primitives import Request, Response
from .network.transport import HEAD_TERMINATOR, Transport
from .streams import JsonStream, MultipartStream, StreamInterface
from .uri import URI
from .utils import CRLF, extract_relative_url_components, is_relative_url, serialize_headers

logger = logging.getLogger(__name__)

ResponseHead = Union[h11.Response, h11.InformationalResponse]
TransportFactory = Callable[[ClientOptions], Transport]


class HTTP11Client:
    """
    Blocking HTTP/1.1 client.

    Every request leg opens a fresh Transport and asks the server to
    close the connection afterwards. The final response body is read
    lazily from the still-open connection.

    A client holds no per-request state between calls, but a response
    body keeps its transport's socket open until it is closed or
    garbage collected.
    """

    BUFFER_SIZE = 4096
    DEFAULT_USER_AGENT = "raw_http_core HTTP/1.1 client"
    BODY_METHODS = ("POST", "PUT", "PATCH")
    REDIRECT_STATUS_CODES = range(300, 309)

    def __init__(
        self,
        response: Optional[Response] = None,
        options: Optional[ClientOptions] = None,
        transport_factory: TransportFactory = Transport,
    ) -> None:
        """
        Initialize HTTP/1.1 client.

        Args:
            response: Prototype response the parsed reply is written into;
                returned as is when ``wait_response`` is off
            options: Client options, defaults documented on ClientOptions
            transport_factory: Callable building a Transport from options
        """
        self._response = response or Response.create()
        self._options = options or ClientOptions()
        self._transport_factory = transport_factory

        logger.debug("HTTP/1.1 client initialized")

    @property
    def options(self) -> ClientOptions:
        """Get the client options."""
        return self._options

    def send_request(self, request: Request) -> Response:
        """
        Send a request and return its response.

        Redirects are followed in a bounded loop, each hop on a new
        connection.

        Args:
            request: The HTTP request to send

        Returns:
            The final HTTP response with a lazily read body

        Raises:
            RequestError: If the request is invalid, the response head is
                empty or malformed, or the redirect budget is exhausted
            NetworkError: If connecting, writing or reading fails
        """
        redirects_left = self._options.max_redirects
        start_time = time.time()

        while True:
            message = self._build_message(request)
            transport = self._transport_factory(self._options)
            transport.set_request(request)

            try:
                transport.connect()
                transport.send(message)
                self._send_body(transport, request.body)

                if not self._options.wait_response:
                    transport.close()
                    return self._response

                head = self._receive_head(transport, request)
                location = self._get_redirect_location(head)
                if location is None:
                    response = self._build_response(head, transport, request)
                    logger.debug(
                        f"{request.method} {request.uri} -> {response.status_code} "
                        f"({time.time() - start_time:.3f}s)"
                    )
                    return response

                transport.close()
            except HTTPCoreError as e:
                logger.error(f"{request.method} {request.uri} failed: {e}")
                transport.close()
                raise

            if redirects_left <= 0:
                raise RequestError("Too many redirects", request)
            redirects_left -= 1

            request = self._redirect(request, location)
            logger.debug(f"Redirected to {request.uri} ({redirects_left} redirects left)")

    def _build_message(self, request: Request) -> bytes:
        """
        Build the request head.

        Raises:
            RequestError: If the method is missing or forbids a body
        """
        method = request.method
        if not method:
            raise RequestError("Request method is not defined", request)

        body = request.body
        if body.get_size() and method not in self.BODY_METHODS:
            raise RequestError(f"Method {method} does not support body sending", request)

        protocol = request.protocol_version or "1.1"
        target = str(request.uri) if self._options.request_full_uri else request.request_target
        if not target:
            target = "/"

        headers = request.headers
        if "User-Agent" not in headers:
            headers = headers.with_header("User-Agent", self.DEFAULT_USER_AGENT)
        content_type = self._get_content_type(body)
        if content_type is not None:
            headers = headers.with_header("Content-Type", content_type)
        headers = headers.with_header("Content-Length", str(body.get_size() or 0))
        headers = headers.with_header("Connection", "close")

        message = f"{method} {target} HTTP/{protocol}{CRLF}{serialize_headers(headers)}{CRLF}"
        try:
            return message.encode("latin-1")
        except UnicodeEncodeError as e:
            raise RequestError("Request head contains non latin-1 characters", request, e) from e

    @staticmethod
    def _get_content_type(body: StreamInterface) -> Optional[str]:
        if isinstance(body, JsonStream):
            return "application/json; charset=UTF-8"
        if isinstance(body, MultipartStream):
            return f"multipart/form-data; boundary={body.boundary}"
        return None

    def _send_body(self, transport: Transport, body: StreamInterface) -> None:
        """Stream the body to the transport in BUFFER_SIZE chunks."""
        if body.seekable or isinstance(body, MultipartStream):
            body.rewind()

        while not body.eof:
            chunk = body.read(self.BUFFER_SIZE)
            if not chunk:
                break
            transport.send(chunk)

    def _receive_head(self, transport: Transport, request: Request) -> ResponseHead:
        """
        Read and parse the response head.

        The head is fed to an h11 client connection that has seen the
        request line, so h11 checks the status line and header grammar in
        the right protocol state. The body is never given to h11.

        Raises:
            RequestError: If the head is empty or malformed
        """
        message = transport.read_message()
        if not message:
            raise RequestError("Empty response header", request)

        host = request.get_header_line("Host") or request.uri.host or "localhost"
        connection = h11.Connection(h11.CLIENT)
        try:
            connection.send(
                h11.Request(method=request.method, target=request.request_target, headers=[("Host", host)])
            )
        except (h11.ProtocolError, UnicodeEncodeError) as e:
            raise RequestError(f"Invalid request line: {e}", request, e) from e

        try:
            connection.receive_data(message + HEAD_TERMINATOR)
            event = connection.next_event()
        except h11.ProtocolError as e:
            raise RequestError(f"Malformed response header: {e}", request, e) from e

        if not isinstance(event, (h11.Response, h11.InformationalResponse)):
            raise RequestError("Malformed response header", request)
        return event

    def _get_redirect_location(self, head: ResponseHead) -> Optional[str]:
        if not self._options.follow_location:
            return None
        if head.status_code not in self.REDIRECT_STATUS_CODES:
            return None

        for name, value in head.headers:
            if name == b"location" and value:
                return value.decode("latin-1")
        return None

    def _redirect(self, request: Request, location: str) -> Request:
        """
        Build the request for the next redirect hop.

        Relative locations rewrite only the path and query; absolute ones
        replace the URI and with it the Host header.
        """
        if is_relative_url(location):
            path, query = extract_relative_url_components(location, request.uri.path or "/")
            uri = request.uri.with_path(path).with_query(query)
        else:
            uri = URI.parse(location)
            if not uri.scheme:
                uri = uri.with_scheme(request.uri.scheme)

        request = request.with_uri(uri)
        if request.explicit_target is not None:
            request = request.with_request_target(self._target_from_uri(uri))
        return request

    @staticmethod
    def _target_from_uri(uri: URI) -> str:
        target = uri.path or "/"
        if uri.query:
            target += f"?{uri.query}"
        return target

    def _build_response(self, head: ResponseHead, transport: Transport, request: Request) -> Response:
        """
        Populate the prototype response from the parsed head.

        Raises:
            RequestError: If the head cannot be represented as a Response
        """
        headers = HeaderMap()
        try:
            for name, value in head.headers.raw_items():
                headers = headers.with_added_header(name.decode("latin-1"), value.decode("latin-1"))

            response = self._response.with_protocol_version(
                head.http_version.decode("ascii")
            ).with_status(head.status_code, head.reason.decode("latin-1"))
            for name, values in headers.items():
                response = response.with_header(name, values)
        except InvalidArgumentError as e:
            raise RequestError(f"Invalid response header: {e}", request, e) from e

        content_length = headers.get("Content-Length")
        body = transport.create_body_stream(int(content_length[0].split(",")[0]) if content_length else None)
        return response.with_body(body)
