"""
Streaming framework for raw_http_core.

This module provides the byte streams used both as request bodies and
as response bodies. Every variant implements StreamInterface and reports
its capabilities (readable, writable, seekable) at runtime; operations a
variant does not support raise StreamError.
"""

import io
import json
import logging
import os
import random
import string
from abc import ABC, abstractmethod
from typing import Any, BinaryIO, Iterator, List, Mapping, Optional, Union

from .exceptions import InvalidArgumentError, StreamError
from .headers import HeaderMap, HeaderValues
from .utils import CRLF, flatten_fields

logger = logging.getLogger(__name__)

BUFFER_SIZE = 4096

# (offset, signature, mime type)
_MIME_SIGNATURES = [
    (0, b"\x89PNG\r\n\x1a\n", "image/png"),
    (0, b"\xff\xd8\xff", "image/jpeg"),
    (0, b"GIF87a", "image/gif"),
    (0, b"GIF89a", "image/gif"),
    (0, b"%PDF-", "application/pdf"),
    (0, b"PK\x03\x04", "application/zip"),
    (0, b"\x1f\x8b", "application/gzip"),
    (0, b"BM", "image/bmp"),
    (0, b"OggS", "audio/ogg"),
    (0, b"ID3", "audio/mpeg"),
    (0, b"\x7fELF", "application/x-executable"),
    (8, b"WEBP", "image/webp"),
    (8, b"WAVE", "audio/x-wav"),
]

_TEXT_PREFIXES = [
    (b"<?xml", "text/xml"),
    (b"<!doctype html", "text/html"),
    (b"<html", "text/html"),
]


def sniff_mime_type(path: str, sample_size: int = 512) -> str:
    """
    Guess the MIME type of a file from its leading bytes.

    Args:
        path: Path of the file to inspect
        sample_size: Number of bytes to inspect

    Returns:
        Detected MIME type, ``application/octet-stream`` for unknown binary
    """
    try:
        with open(path, "rb") as f:
            sample = f.read(sample_size)
    except OSError:
        return "application/binary"

    if not sample:
        return "application/x-empty"

    for offset, signature, mime in _MIME_SIGNATURES:
        if sample[offset:offset + len(signature)] == signature:
            return mime

    head = sample.lstrip().lower()
    for prefix, mime in _TEXT_PREFIXES:
        if head.startswith(prefix):
            return mime

    if b"\x00" in sample:
        return "application/octet-stream"
    try:
        sample.decode("utf-8")
    except UnicodeDecodeError as e:
        # A multi-byte character cut by the sample boundary is still text.
        if e.start < len(sample) - 3:
            return "application/octet-stream"
    return "text/plain"


class StreamInterface(ABC):
    """
    Base interface for all streams.

    All streams must implement this interface to ensure
    consistent behavior across the library.
    """

    def __init__(self) -> None:
        self._headers = HeaderMap()

    @property
    def headers(self) -> HeaderMap:
        """Get the part headers carried by this stream (used by multipart)."""
        return self._headers

    def set_header(self, name: str, value: HeaderValues) -> None:
        """Set a part header, replacing any previous value."""
        self._headers = self._headers.with_header(name, value)

    @property
    @abstractmethod
    def readable(self) -> bool:
        """Whether read() is supported."""

    @property
    @abstractmethod
    def writable(self) -> bool:
        """Whether write() is supported."""

    @property
    @abstractmethod
    def seekable(self) -> bool:
        """Whether seek() and tell() are supported."""

    @property
    @abstractmethod
    def eof(self) -> bool:
        """Whether the end of data has been reached."""

    @abstractmethod
    def read(self, length: int) -> bytes:
        """Read up to ``length`` bytes, fewer at end of data."""

    @abstractmethod
    def get_size(self) -> Optional[int]:
        """Get the total size in bytes, best effort."""

    @abstractmethod
    def tell(self) -> int:
        """Get the current position."""

    @abstractmethod
    def seek(self, offset: int, whence: int = io.SEEK_SET) -> None:
        """Move to a new position."""

    @abstractmethod
    def write(self, data: bytes) -> int:
        """Write bytes, returning the number written."""

    @abstractmethod
    def close(self) -> None:
        """Close the stream and release the underlying resource."""

    @abstractmethod
    def detach(self) -> Optional[BinaryIO]:
        """Separate the underlying resource from the stream and return it."""

    def rewind(self) -> None:
        """Seek back to the beginning of the stream."""
        self.seek(0)

    def get_contents(self) -> bytes:
        """Read the remaining data up to the end of the stream."""
        chunks = []
        while not self.eof:
            chunk = self.read(BUFFER_SIZE)
            if not chunk:
                break
            chunks.append(chunk)
        return b"".join(chunks)

    def __iter__(self) -> Iterator[bytes]:
        while not self.eof:
            chunk = self.read(BUFFER_SIZE)
            if not chunk:
                return
            yield chunk

    def __bytes__(self) -> bytes:
        if self.seekable:
            self.rewind()
        return self.get_contents()

    def __enter__(self) -> "StreamInterface":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


class SocketStream(StreamInterface):
    """
    Stream over a binary file object.

    Wraps anything with a file-like binary interface: a socket file
    returned by ``socket.makefile("rb")``, an open file, a BytesIO.
    When the object cannot report its size, the ``content_length`` hint
    is used instead, and reads from non-seekable objects are bounded by it.
    """

    def __init__(
        self,
        stream: BinaryIO,
        content_length: Optional[int] = None,
        owner: Any = None,
    ) -> None:
        """
        Initialize SocketStream.

        Args:
            stream: Binary file object to wrap
            content_length: Optional size hint used when the descriptor
                reports no size of its own
            owner: Optional object the stream borrows its descriptor from;
                a reference is kept so the owner outlives the stream
        """
        super().__init__()
        if content_length is not None and content_length < 0:
            raise InvalidArgumentError("content_length must be non-negative")

        self._stream: Optional[BinaryIO] = stream
        self._content_length = content_length
        self._owner = owner
        self._position = 0
        self._eof = False

    def _require_stream(self) -> BinaryIO:
        if self._stream is None:
            raise StreamError("Stream is detached")
        return self._stream

    def _limit(self) -> Optional[int]:
        if self._content_length is None or self.seekable:
            return None
        return self._content_length

    @property
    def content_length(self) -> Optional[int]:
        """Get the size hint supplied at construction."""
        return self._content_length

    @property
    def closed(self) -> bool:
        """Whether the stream has been closed or detached."""
        return self._stream is None

    @property
    def readable(self) -> bool:
        return self._stream is not None and self._stream.readable()

    @property
    def writable(self) -> bool:
        return self._stream is not None and self._stream.writable()

    @property
    def seekable(self) -> bool:
        return self._stream is not None and self._stream.seekable()

    @property
    def eof(self) -> bool:
        if self._stream is None:
            return True

        limit = self._limit()
        if limit is not None:
            return self._position >= limit
        if self.seekable:
            return self._stream.tell() >= self.get_size()
        return self._eof

    def read(self, length: int) -> bytes:
        stream = self._require_stream()
        if not self.readable:
            raise StreamError("Stream is not readable")
        if length < 0:
            raise InvalidArgumentError("length must be non-negative")

        limit = self._limit()
        if limit is not None:
            length = min(length, max(limit - self._position, 0))
        if length == 0:
            return b""

        try:
            data = stream.read(length) or b""
        except OSError as e:
            raise StreamError("Cannot read from stream", e) from e

        self._position += len(data)
        if len(data) < length:
            self._eof = True
        return data

    def get_size(self) -> Optional[int]:
        stream = self._require_stream()

        size = 0
        try:
            size = os.fstat(stream.fileno()).st_size
        except (AttributeError, OSError):
            pass

        if not size and self._content_length is not None:
            size = self._content_length
        elif not size and self.seekable:
            position = stream.tell()
            size = stream.seek(0, io.SEEK_END)
            stream.seek(position)
        return size

    def tell(self) -> int:
        stream = self._require_stream()
        if not self.seekable:
            return self._position

        try:
            return stream.tell()
        except OSError as e:
            raise StreamError("Cannot get stream offset", e) from e

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> None:
        stream = self._require_stream()
        if not self.seekable:
            raise StreamError("Stream does not support seeking")

        try:
            stream.seek(offset, whence)
        except (OSError, ValueError) as e:
            raise StreamError(f"Cannot seek to offset {offset}", e) from e
        self._eof = False

    def write(self, data: bytes) -> int:
        stream = self._require_stream()
        if not self.writable:
            raise StreamError("Stream is not writable")

        try:
            written = stream.write(data)
        except OSError as e:
            raise StreamError("Cannot write to stream", e) from e

        written = len(data) if written is None else written
        self._position += written
        return written

    def close(self) -> None:
        stream = self.detach()
        if stream is not None:
            stream.close()
        self._owner = None

    def detach(self) -> Optional[BinaryIO]:
        stream, self._stream = self._stream, None
        return stream


class TextStream(SocketStream):
    """
    In-memory stream over a fixed byte buffer.

    Always readable and seekable, never writable: the content is fixed
    when the stream is created.
    """

    def __init__(
        self,
        text: Union[str, bytes, bytearray] = b"",
        mime: str = "text/plain",
        charset: str = "utf-8",
    ) -> None:
        """
        Initialize TextStream.

        Args:
            text: Content of the stream; ``str`` is encoded with ``charset``
            mime: MIME type carried as the Content-Type part header
            charset: Encoding used for ``str`` content
        """
        if isinstance(text, str):
            try:
                text = text.encode(charset)
            except (LookupError, UnicodeEncodeError) as e:
                raise InvalidArgumentError(f"Cannot encode text as {charset}", e) from e
        elif not isinstance(text, (bytes, bytearray)):
            raise InvalidArgumentError("text must be str or bytes")

        super().__init__(io.BytesIO(bytes(text)))
        self.set_header("Content-Type", mime)

    @property
    def writable(self) -> bool:
        return False


class JsonStream(TextStream):
    """Text stream holding the compact JSON encoding of a value."""

    # Characters that are hex-escaped so the payload can be embedded in HTML.
    _ESCAPES = {
        "<": "\\u003C",
        ">": "\\u003E",
        "&": "\\u0026",
        "'": "\\u0027",
    }

    def __init__(self, data: Any) -> None:
        try:
            encoded = json.dumps(data, separators=(",", ":"), allow_nan=False)
        except (TypeError, ValueError) as e:
            raise InvalidArgumentError(f"Unable to encode data to JSON: {e}", e) from e

        for char, escape in self._ESCAPES.items():
            encoded = encoded.replace(char, escape)
        super().__init__(encoded, mime="application/json")


class FileStream(SocketStream):
    """
    Read-only stream over a file on disk.

    The file's MIME type is sniffed from its content and carried as the
    Content-Type part header.
    """

    def __init__(self, path: Union[str, "os.PathLike[str]"], filename: str = "") -> None:
        """
        Initialize FileStream.

        Args:
            path: Path of the file to open
            filename: Client-visible filename, defaults to the basename
        """
        path = os.fspath(path)
        try:
            stream = open(path, "rb")
        except OSError as e:
            raise InvalidArgumentError(f"Cannot open file {path}: {e.strerror}", e) from e

        super().__init__(stream)
        self._path = path
        self._filename = filename or os.path.basename(path)
        mime = sniff_mime_type(path)
        self.set_header("Content-Type", mime)
        logger.debug(f"Opened file stream {path} ({mime})")

    @property
    def client_filename(self) -> str:
        """Get the filename reported in multipart bodies."""
        return self._filename

    @property
    def path(self) -> str:
        """Get the path the stream was opened from."""
        return self._path


class OffsetStream(StreamInterface):
    """
    View of another stream starting at a fixed byte offset.

    Position-reporting and position-taking operations are shifted by the
    offset; everything else is delegated to the decorated stream.
    """

    def __init__(self, stream: StreamInterface, offset: Optional[int] = 0) -> None:
        super().__init__()
        self._stream = stream
        self._offset = int(offset or 0)
        self._headers = stream.headers

    @property
    def offset(self) -> int:
        """Get the offset subtracted from every position."""
        return self._offset

    @property
    def readable(self) -> bool:
        return self._stream.readable

    @property
    def writable(self) -> bool:
        return self._stream.writable

    @property
    def seekable(self) -> bool:
        return self._stream.seekable

    @property
    def eof(self) -> bool:
        return self._stream.eof

    def _require_in_view(self, action: str) -> None:
        if self.tell() < 0:
            raise StreamError(f"Cannot {action} before offset {self._offset}")

    def read(self, length: int) -> bytes:
        self._require_in_view("read from stream")
        return self._stream.read(length)

    def get_contents(self) -> bytes:
        self._require_in_view("get contents from stream")
        return self._stream.get_contents()

    def get_size(self) -> Optional[int]:
        size = self._stream.get_size()
        return None if size is None else size - self._offset

    def tell(self) -> int:
        return self._stream.tell() - self._offset

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> None:
        if whence == io.SEEK_SET:
            offset += self._offset
        self._stream.seek(offset, whence)

    def write(self, data: bytes) -> int:
        self._require_in_view("write to stream")
        return self._stream.write(data)

    def close(self) -> None:
        self._stream.close()

    def detach(self) -> Optional[BinaryIO]:
        return self._stream.detach()


class MultipartStream(StreamInterface):
    """
    ``multipart/form-data`` body composed of child streams.

    Every field becomes a header block, its value (inline for scalars,
    streamed for stream values) and a trailing line break; the closing
    boundary follows the last field. Reads cross child boundaries
    transparently.
    """

    BOUNDARY_ALPHABET = string.ascii_letters + string.digits
    BOUNDARY_LENGTH = 12

    def __init__(self, fields: Mapping[Any, Any]) -> None:
        """
        Initialize MultipartStream.

        Args:
            fields: Mapping of field name to a scalar, a stream or a nested
                mapping/sequence (flattened to ``parent[child]`` names)

        Raises:
            StreamError: If a value is itself a MultipartStream
        """
        super().__init__()
        self._boundary: Optional[str] = None
        self._streams: List[StreamInterface] = []
        self._index = 0

        for name, value in flatten_fields(fields):
            if isinstance(value, MultipartStream):
                raise StreamError("MultipartStream is not allowed in nested multipart data")
            self._append_field(name, value)

        if self._streams:
            self._streams.append(TextStream(f"--{self.boundary}--"))

    def _append_field(self, name: str, value: Any) -> None:
        disposition = f'Content-Disposition: form-data; name="{name}"'
        if isinstance(value, FileStream):
            disposition += f'; filename="{value.client_filename}"'

        lines = [f"--{self.boundary}", disposition]
        if isinstance(value, StreamInterface):
            lines.extend(f"{header}: {', '.join(values)}" for header, values in value.headers.items())
        meta = (CRLF.join(lines) + CRLF + CRLF).encode("utf-8")

        if isinstance(value, StreamInterface):
            self._streams.append(TextStream(meta))
            self._streams.append(value)
        else:
            self._streams.append(TextStream(meta + self._encode_scalar(value)))
        self._streams.append(TextStream(CRLF))

    @staticmethod
    def _encode_scalar(value: Any) -> bytes:
        if value is None:
            return b""
        if isinstance(value, (bytes, bytearray)):
            return bytes(value)
        return str(value).encode("utf-8")

    @property
    def boundary(self) -> str:
        """Get the boundary token, generated on first access."""
        if self._boundary is None:
            self._boundary = "".join(
                random.SystemRandom().sample(self.BOUNDARY_ALPHABET, self.BOUNDARY_LENGTH)
            )
        return self._boundary

    @property
    def streams(self) -> List[StreamInterface]:
        """Get the ordered child streams."""
        return list(self._streams)

    @property
    def readable(self) -> bool:
        return True

    @property
    def writable(self) -> bool:
        return False

    @property
    def seekable(self) -> bool:
        return False

    @property
    def eof(self) -> bool:
        if not self._streams:
            return True
        return self._streams[self._index].eof and self._index == len(self._streams) - 1

    def read(self, length: int) -> bytes:
        data = bytearray()
        while len(data) < length and self._streams:
            current = self._streams[self._index]
            chunk = current.read(length - len(data))
            data += chunk
            if len(data) >= length or (chunk and not current.eof):
                continue
            if self._index == len(self._streams) - 1:
                break
            self._index += 1
        return bytes(data)

    def get_size(self) -> int:
        return sum(stream.get_size() or 0 for stream in self._streams)

    def tell(self) -> int:
        raise StreamError("Cannot get current position")

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> None:
        raise StreamError("Stream does not support seeking")

    def rewind(self) -> None:
        """
        Rewind every child and reset the cursor.

        Non-seekable children are left in place while they are still at
        their start.

        Raises:
            StreamError: If a non-seekable child has already been read
        """
        for stream in self._streams:
            if stream.seekable:
                stream.rewind()
            elif stream.tell():
                raise StreamError("Cannot rewind a consumed non-seekable part")
        self._index = 0

    def write(self, data: bytes) -> int:
        raise StreamError("Stream does not support writing")

    def close(self) -> None:
        for stream in self._streams:
            stream.close()

    def detach(self) -> None:
        for stream in self._streams:
            stream.detach()
        return None


def create_stream(body: Any = None) -> StreamInterface:
    """
    Factory function to create a stream from various body types.

    Args:
        body: None, str, bytes, an existing stream or a binary file object

    Returns:
        StreamInterface instance

    Raises:
        InvalidArgumentError: If the body type is not supported
    """
    if body is None:
        return TextStream(b"")
    if isinstance(body, StreamInterface):
        return body
    if isinstance(body, (str, bytes, bytearray)):
        return TextStream(body)
    if hasattr(body, "read"):
        return SocketStream(body)
    raise InvalidArgumentError(f"Unsupported body type: {type(body).__name__}")
