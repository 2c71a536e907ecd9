"""
Custom exceptions for raw_http_core.

This module defines the exception hierarchy used throughout
the library for error handling and debugging.
"""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .http_primitives import Request


class HTTPCoreError(Exception):
    """Base exception for all raw_http_core errors."""
    
    def __init__(self, message: str, cause: Optional[Exception] = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause


class InvalidArgumentError(HTTPCoreError, ValueError):
    """Raised when the caller supplies malformed input."""


class HTTPRuntimeError(HTTPCoreError, RuntimeError):
    """Raised when an internal precondition is violated."""


class StreamError(HTTPRuntimeError):
    """Raised when a stream is asked for an operation it does not support."""
    
    def __init__(self, message: str, cause: Optional[Exception] = None) -> None:
        super().__init__(f"Stream error: {message}", cause)


class NetworkError(HTTPCoreError):
    """Raised when the transport fails to connect, write or read."""
    
    def __init__(
        self,
        message: str,
        request: Optional["Request"] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        super().__init__(f"Network error: {message}", cause)
        self.request = request


class RequestError(HTTPCoreError):
    """Raised when a single request cannot be completed by protocol or policy."""
    
    def __init__(
        self,
        message: str,
        request: Optional["Request"] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        super().__init__(f"Request error: {message}", cause)
        self.request = request
