"""
Pytest configuration for raw_http_core tests.

This file contains shared fixtures and configuration
for all tests in the project. Network tests never touch the real
network: ``socket.create_connection`` is replaced by a scripted server
that hands out one end of a ``socket.socketpair()`` per connection.
"""

import io
import re
import socket
from typing import List, Optional, Tuple

import pytest

from raw_http_core.config import ClientOptions
from raw_http_core.network.transport import Transport


class NonSeekableBytesIO(io.BytesIO):
    """BytesIO that reports itself as non-seekable, like a socket file."""
    
    def seekable(self) -> bool:
        return False


class ScriptedServer:
    """
    Fake peer for socket-level tests.
    
    Each connection attempt pops the next scripted response, writes it to
    the server end of a fresh socket pair and half-closes it, so the
    client sees the response followed by end-of-data.
    """
    
    def __init__(self) -> None:
        self.responses: List[bytes] = []
        self.connections: List[Tuple[Tuple[str, int], Optional[float]]] = []
        self.peers: List[socket.socket] = []
    
    def add_response(self, data: bytes) -> None:
        self.responses.append(data)
    
    def create_connection(self, address, timeout=None, *args, **kwargs) -> socket.socket:
        if not self.responses:
            raise ConnectionRefusedError("No scripted response left")
        
        client, server = socket.socketpair()
        server.sendall(self.responses.pop(0))
        server.shutdown(socket.SHUT_WR)
        self.connections.append((address, timeout))
        self.peers.append(server)
        return client
    
    @property
    def addresses(self) -> List[Tuple[str, int]]:
        return [address for address, _ in self.connections]
    
    def read_request(self, index: int = 0) -> bytes:
        """Read the request the client wrote on connection ``index``."""
        peer = self.peers[index]
        peer.settimeout(2.0)
        
        data = b""
        while b"\r\n\r\n" not in data:
            chunk = peer.recv(4096)
            if not chunk:
                break
            data += chunk
        
        head, _, body = data.partition(b"\r\n\r\n")
        match = re.search(rb"^content-length: *(\d+)", head, re.IGNORECASE | re.MULTILINE)
        length = int(match.group(1)) if match else 0
        while len(body) < length:
            chunk = peer.recv(4096)
            if not chunk:
                break
            body += chunk
        return head + b"\r\n\r\n" + body
    
    def close(self) -> None:
        for peer in self.peers:
            peer.close()


class RecordingTransportFactory:
    """Transport factory that remembers every transport it builds."""
    
    def __init__(self) -> None:
        self.transports: List[Transport] = []
    
    def __call__(self, options: ClientOptions) -> Transport:
        transport = Transport(options)
        self.transports.append(transport)
        return transport


@pytest.fixture
def server(monkeypatch):
    """Scripted server replacing ``socket.create_connection``."""
    scripted = ScriptedServer()
    monkeypatch.setattr(socket, "create_connection", scripted.create_connection)
    yield scripted
    scripted.close()


@pytest.fixture
def transport_factory():
    """Transport factory recording every transport created."""
    return RecordingTransportFactory()


@pytest.fixture
def non_seekable():
    """Create non-seekable binary file objects."""
    def _create(data: bytes) -> NonSeekableBytesIO:
        return NonSeekableBytesIO(data)
    return _create


@pytest.fixture
def text_file(tmp_path):
    """A small text file named x.txt."""
    path = tmp_path / "x.txt"
    path.write_bytes(b"hello world")
    return path


@pytest.fixture
def sample_headers():
    """Sample headers for testing."""
    return {
        "Content-Type": "application/json",
        "Authorization": "Bearer token123",
        "Accept": ["text/html", "*/*"],
    }


@pytest.fixture
def ok_response():
    """Raw response with a five byte body."""
    return b"HTTP/1.1 200 OK\r\nContent-Length: 5\r\n\r\nHELLO"
