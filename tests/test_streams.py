"""
Unit tests for the streaming framework.

Tests every stream variant, the multipart composite and the
create_stream factory.
"""

import io
import json
import string

import pytest

from raw_http_core.exceptions import InvalidArgumentError, StreamError
from raw_http_core.streams import (
    FileStream,
    JsonStream,
    MultipartStream,
    OffsetStream,
    SocketStream,
    StreamInterface,
    TextStream,
    create_stream,
    sniff_mime_type,
)


class TestTextStream:
    """Test in-memory text streams."""
    
    def test_read_and_position(self) -> None:
        """Test reading advances the position until end of data."""
        stream = TextStream("hello")
        assert stream.get_size() == 5
        assert stream.read(2) == b"he"
        assert stream.tell() == 2
        assert not stream.eof
        assert stream.get_contents() == b"llo"
        assert stream.eof
    
    def test_capabilities(self) -> None:
        """Test text streams are readable and seekable but not writable."""
        stream = TextStream(b"data")
        assert stream.readable
        assert stream.seekable
        assert not stream.writable
        with pytest.raises(StreamError):
            stream.write(b"more")
    
    def test_rewind_and_bytes(self) -> None:
        """Test bytes() rewinds seekable streams."""
        stream = TextStream("abc")
        stream.read(3)
        assert bytes(stream) == b"abc"
        stream.rewind()
        assert stream.tell() == 0
    
    def test_iteration(self) -> None:
        """Test iterating yields the content in chunks."""
        stream = TextStream(b"x" * 10000)
        chunks = list(stream)
        assert len(chunks) == 3
        assert b"".join(chunks) == b"x" * 10000
    
    def test_content_type_header(self) -> None:
        """Test the MIME type is carried as a part header."""
        assert TextStream("a").headers["Content-Type"] == ["text/plain"]
        assert TextStream("a", mime="text/csv").headers["Content-Type"] == ["text/csv"]
    
    def test_charset(self) -> None:
        """Test str content is encoded with the given charset."""
        assert TextStream("é", charset="latin-1").get_contents() == b"\xe9"
        with pytest.raises(InvalidArgumentError):
            TextStream("é", charset="ascii")
    
    def test_set_header(self) -> None:
        """Test part headers can be replaced."""
        stream = TextStream("a")
        stream.set_header("Content-Type", "text/markdown")
        stream.set_header("X-Part", "1")
        assert stream.headers.get_line("content-type") == "text/markdown"
        assert stream.headers["x-part"] == ["1"]
    
    def test_context_manager(self) -> None:
        """Test leaving a with block closes the stream."""
        with TextStream("a") as stream:
            assert not stream.closed
        assert stream.closed
        assert stream.eof
        with pytest.raises(StreamError):
            stream.read(1)


class TestJsonStream:
    """Test JSON streams."""
    
    def test_compact_encoding(self) -> None:
        """Test JSON is encoded without whitespace."""
        stream = JsonStream({"a": [1, 2], "b": None})
        assert stream.get_contents() == b'{"a":[1,2],"b":null}'
        assert stream.headers["Content-Type"] == ["application/json"]
    
    def test_html_characters_escaped(self) -> None:
        """Test HTML-sensitive characters are hex-escaped."""
        content = JsonStream({"html": "<a href='/x'>&</a>"}).get_contents()
        assert content == b'{"html":"\\u003Ca href=\\u0027/x\\u0027\\u003E\\u0026\\u003C/a\\u003E"}'
        assert json.loads(content) == {"html": "<a href='/x'>&</a>"}
    
    @pytest.mark.parametrize("data", [float("nan"), object(), {"a": {1, 2}}])
    def test_unencodable(self, data) -> None:
        """Test unencodable data is rejected."""
        with pytest.raises(InvalidArgumentError):
            JsonStream(data)


class TestSocketStream:
    """Test streams over binary file objects."""
    
    def test_content_length_bounds_reads(self, non_seekable) -> None:
        """Test the size hint bounds reads from non-seekable objects."""
        stream = SocketStream(non_seekable(b"HELLOWORLD"), content_length=5)
        assert stream.get_size() == 5
        assert stream.get_contents() == b"HELLO"
        assert stream.eof
        assert stream.read(10) == b""
        assert stream.tell() == 5
    
    def test_reads_until_end_without_hint(self, non_seekable) -> None:
        """Test reads run to end of data without a size hint."""
        stream = SocketStream(non_seekable(b"HELLOWORLD"))
        assert not stream.eof
        assert stream.get_contents() == b"HELLOWORLD"
        assert stream.eof
    
    def test_not_seekable(self, non_seekable) -> None:
        """Test seeking a non-seekable object fails."""
        stream = SocketStream(non_seekable(b"data"))
        assert not stream.seekable
        with pytest.raises(StreamError):
            stream.seek(0)
        with pytest.raises(StreamError):
            stream.rewind()
    
    def test_seekable_object(self) -> None:
        """Test seekable objects report size and position natively."""
        stream = SocketStream(io.BytesIO(b"0123456789"))
        assert stream.get_size() == 10
        stream.seek(4)
        assert stream.read(3) == b"456"
        assert stream.tell() == 7
        stream.seek(-1, io.SEEK_END)
        assert stream.read(5) == b"9"
        assert stream.eof
    
    def test_write(self) -> None:
        """Test writing to a writable object."""
        buffer = io.BytesIO()
        stream = SocketStream(buffer)
        assert stream.writable
        assert stream.write(b"abc") == 3
        assert buffer.getvalue() == b"abc"
    
    def test_negative_length(self) -> None:
        """Test negative read lengths are rejected."""
        with pytest.raises(InvalidArgumentError):
            SocketStream(io.BytesIO(b"abc")).read(-1)
    
    def test_detach(self) -> None:
        """Test detaching hands back the object without closing it."""
        buffer = io.BytesIO(b"abc")
        stream = SocketStream(buffer)
        assert stream.detach() is buffer
        assert stream.detach() is None
        assert not buffer.closed
        assert stream.closed
        with pytest.raises(StreamError):
            stream.get_size()
    
    def test_close_releases_owner(self) -> None:
        """Test closing closes the object and drops the owner reference."""
        buffer = io.BytesIO(b"abc")
        stream = SocketStream(buffer, owner=object())
        stream.close()
        assert buffer.closed
        assert stream._owner is None
        stream.close()
    
    def test_read_error(self) -> None:
        """Test I/O errors surface as StreamError."""
        class BrokenReader(io.RawIOBase):
            def readable(self) -> bool:
                return True
            
            def read(self, size=-1):
                raise OSError("connection reset")
        
        with pytest.raises(StreamError, match="Cannot read from stream"):
            SocketStream(BrokenReader()).read(10)


class TestFileStream:
    """Test file-backed streams."""
    
    def test_read_file(self, text_file) -> None:
        """Test reading a file and its metadata."""
        with FileStream(text_file) as stream:
            assert stream.get_size() == 11
            assert stream.get_contents() == b"hello world"
            assert stream.client_filename == "x.txt"
            assert stream.path == str(text_file)
            assert stream.headers["Content-Type"] == ["text/plain"]
    
    def test_custom_filename(self, text_file) -> None:
        """Test overriding the client-visible filename."""
        with FileStream(text_file, filename="report.txt") as stream:
            assert stream.client_filename == "report.txt"
    
    def test_missing_file(self, tmp_path) -> None:
        """Test opening a missing file fails."""
        with pytest.raises(InvalidArgumentError):
            FileStream(tmp_path / "missing.bin")


class TestMimeSniffing:
    """Test MIME type detection."""
    
    @pytest.mark.parametrize(
        "content,expected",
        [
            (b"\x89PNG\r\n\x1a\n" + b"\x00" * 8, "image/png"),
            (b"%PDF-1.7\n", "application/pdf"),
            (b"GIF89a....", "image/gif"),
            (b"RIFF\x00\x00\x00\x00WEBPVP8 ", "image/webp"),
            (b"<?xml version='1.0'?><a/>", "text/xml"),
            (b"  <!DOCTYPE html><html></html>", "text/html"),
            (b"plain words\n", "text/plain"),
            (b"\x00\x01\x02\x03", "application/octet-stream"),
            (b"", "application/x-empty"),
        ],
    )
    def test_sniff(self, tmp_path, content, expected) -> None:
        """Test detection from leading bytes."""
        path = tmp_path / "sample"
        path.write_bytes(content)
        assert sniff_mime_type(str(path)) == expected
    
    def test_unreadable(self, tmp_path) -> None:
        """Test unreadable paths fall back to a generic type."""
        assert sniff_mime_type(str(tmp_path / "missing")) == "application/binary"


class TestOffsetStream:
    """Test the offset view decorator."""
    
    def test_positions_are_shifted(self) -> None:
        """Test tell, seek and size are relative to the offset."""
        stream = OffsetStream(TextStream("0123456789"), 3)
        assert stream.get_size() == 7
        assert stream.tell() == -3
        stream.seek(0)
        assert stream.tell() == 0
        assert stream.read(2) == b"34"
        assert stream.tell() == 2
        assert stream.get_contents() == b"56789"
    
    def test_refuses_access_before_offset(self) -> None:
        """Test reading or writing before the offset fails."""
        stream = OffsetStream(TextStream("0123456789"), 3)
        with pytest.raises(StreamError):
            stream.read(1)
        with pytest.raises(StreamError):
            stream.get_contents()
        with pytest.raises(StreamError):
            stream.write(b"x")
    
    def test_delegates_capabilities(self) -> None:
        """Test capability flags and headers come from the decorated stream."""
        inner = TextStream("abc", mime="text/csv")
        stream = OffsetStream(inner)
        assert isinstance(stream, StreamInterface)
        assert stream.readable and stream.seekable and not stream.writable
        assert stream.headers["Content-Type"] == ["text/csv"]
        assert stream.offset == 0
        stream.close()
        assert inner.closed


class TestMultipartStream:
    """Test the multipart/form-data composite."""
    
    def test_scalar_field_layout(self) -> None:
        """Test the exact bytes of a single scalar field."""
        stream = MultipartStream({"a": "1"})
        boundary = stream.boundary
        expected = (
            f"--{boundary}\r\n"
            'Content-Disposition: form-data; name="a"\r\n'
            "\r\n"
            "1\r\n"
            f"--{boundary}--"
        ).encode()
        assert stream.get_contents() == expected
        assert stream.eof
    
    def test_file_field(self, text_file) -> None:
        """Test two sections bounded by one boundary and the closing delimiter."""
        stream = MultipartStream({"a": "1", "file": FileStream(text_file)})
        boundary = stream.boundary
        size = stream.get_size()
        content = stream.get_contents().decode()
        
        assert content.count("Content-Disposition") == 2
        assert content.count(f"--{boundary}\r\n") == 2
        assert content.endswith(f"--{boundary}--")
        assert 'name="file"; filename="x.txt"\r\nContent-Type: text/plain\r\n\r\nhello world\r\n' in content
        assert size == len(content)
        assert size == sum(child.get_size() for child in stream.streams)
    
    def test_small_reads_cross_children(self, text_file) -> None:
        """Test reads smaller than a child cross child boundaries."""
        stream = MultipartStream({"a": "1", "file": FileStream(text_file)})
        expected = stream.get_contents()
        stream.rewind()
        
        chunks = []
        while not stream.eof:
            chunks.append(stream.read(3))
        assert b"".join(chunks) == expected
    
    def test_nested_fields_flattened(self) -> None:
        """Test nested mappings and sequences use parent[child] names."""
        stream = MultipartStream({"user": {"name": "ann", "tags": ["a", "b"]}})
        content = stream.get_contents().decode()
        assert 'name="user[name]"' in content
        assert 'name="user[tags][0]"' in content
        assert 'name="user[tags][1]"' in content
    
    def test_nested_multipart_rejected(self) -> None:
        """Test a multipart value is refused."""
        with pytest.raises(StreamError):
            MultipartStream({"inner": MultipartStream({"a": "1"})})
    
    def test_empty(self) -> None:
        """Test an empty field mapping gives an empty stream."""
        stream = MultipartStream({})
        assert stream.eof
        assert stream.get_size() == 0
        assert stream.read(10) == b""
    
    def test_boundary(self) -> None:
        """Test the boundary is 12 alphanumerics and stable."""
        stream = MultipartStream({})
        boundary = stream.boundary
        assert len(boundary) == 12
        assert set(boundary) <= set(string.ascii_letters + string.digits)
        assert stream.boundary == boundary
    
    def test_capabilities(self) -> None:
        """Test multipart streams are read-only and not seekable."""
        stream = MultipartStream({"a": "1"})
        assert stream.readable
        assert not stream.writable
        assert not stream.seekable
        with pytest.raises(StreamError):
            stream.tell()
        with pytest.raises(StreamError):
            stream.seek(0)
        with pytest.raises(StreamError):
            stream.write(b"x")
    
    def test_rewind(self) -> None:
        """Test rewinding replays the whole body."""
        stream = MultipartStream({"a": "1", "b": b"2"})
        first = stream.get_contents()
        stream.rewind()
        assert stream.get_contents() == first

    def test_rewind_keeps_unread_non_seekable_part(self, non_seekable) -> None:
        """Test an unread non-seekable part does not block rewinding."""
        stream = MultipartStream({"a": "1", "raw": SocketStream(non_seekable(b"data"))})
        stream.rewind()
        assert stream.get_contents().endswith(f"data\r\n--{stream.boundary}--".encode())

    def test_rewind_after_consuming_non_seekable_part(self, non_seekable) -> None:
        """Test a consumed non-seekable part cannot be replayed."""
        stream = MultipartStream({"raw": SocketStream(non_seekable(b"data"))})
        stream.get_contents()
        with pytest.raises(StreamError, match="consumed non-seekable"):
            stream.rewind()
    
    def test_close_fans_out(self, text_file) -> None:
        """Test closing closes every child."""
        file_stream = FileStream(text_file)
        stream = MultipartStream({"file": file_stream})
        stream.close()
        assert file_stream.closed


class TestCreateStream:
    """Test the create_stream factory."""
    
    def test_none_and_empty(self) -> None:
        """Test None and empty input give empty text streams."""
        for body in (None, "", b""):
            stream = create_stream(body)
            assert isinstance(stream, TextStream)
            assert stream.get_size() == 0
    
    def test_text(self) -> None:
        """Test str and bytes give text streams."""
        assert create_stream("abc").get_contents() == b"abc"
        assert create_stream(bytearray(b"abc")).get_contents() == b"abc"
    
    def test_existing_stream(self) -> None:
        """Test streams are returned as is."""
        stream = TextStream("abc")
        assert create_stream(stream) is stream
    
    def test_file_object(self) -> None:
        """Test binary file objects are wrapped."""
        assert isinstance(create_stream(io.BytesIO(b"abc")), SocketStream)
    
    def test_unsupported(self) -> None:
        """Test unsupported types are rejected."""
        with pytest.raises(InvalidArgumentError):
            create_stream(3.14)
