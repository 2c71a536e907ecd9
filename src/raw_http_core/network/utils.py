"""
Network utilities for raw_http_core.

This module provides helpers for the transport: discovery of the TLS
sub-protocols available on this platform, SSL context construction from
caller-supplied options and connection target parsing.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ..exceptions import HTTPRuntimeError, InvalidArgumentError
from ..utils import convert_option_keys

try:
    import ssl
except ImportError:  # interpreter built without OpenSSL
    ssl = None  # type: ignore[assignment]

logger = logging.getLogger(__name__)

PLAIN_TRANSPORT = "tcp"

# TLS sub-protocol name -> (minimum version, maximum version); None leaves
# the library default in place.
_TLS_PROTOCOLS: Dict[str, Tuple[Optional[str], Optional[str]]] = {
    "ssl": (None, None),
    "tls": (None, None),
    "tlsv1.2": ("TLSv1_2", "TLSv1_2"),
    "tlsv1.3": ("TLSv1_3", "TLSv1_3"),
}


def get_tls_transports() -> List[str]:
    """
    Get the TLS sub-protocol names supported on this platform.

    Returns:
        Sorted list of names, empty when the ssl module has no TLS support
    """
    if ssl is None:
        return []

    transports = ["ssl", "tls"]
    if getattr(ssl, "HAS_TLSv1_2", False):
        transports.append("tlsv1.2")
    if getattr(ssl, "HAS_TLSv1_3", False):
        transports.append("tlsv1.3")
    return sorted(transports)


def get_preferred_tls_transport() -> str:
    """
    Get the most capable TLS sub-protocol available.

    Raises:
        HTTPRuntimeError: If no TLS transport is available
    """
    transports = get_tls_transports()
    if not transports:
        raise HTTPRuntimeError("No SSL/TLS transports found on this platform")
    return transports[-1]


def is_tls_transport(name: str) -> bool:
    """Check whether a transport name denotes a TLS-class transport."""
    return name.startswith("ssl") or name.startswith("tls")


def parse_connection_target(target: str) -> Tuple[str, str, int]:
    """
    Parse a ``<transport>://<host>:<port>`` connection target.

    Args:
        target: Connection target, e.g. ``tcp://proxy.local:3128``

    Returns:
        Tuple of (transport, host, port)

    Raises:
        InvalidArgumentError: If the target is malformed
    """
    transport, separator, address = target.partition("://")
    if not separator:
        transport, address = PLAIN_TRANSPORT, target

    host, _, port = address.rstrip("/").rpartition(":")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]

    try:
        port_number = int(port)
    except ValueError as e:
        raise InvalidArgumentError(f"Invalid connection target: {target}", e) from e

    if not host or not 0 < port_number <= 0xFFFF:
        raise InvalidArgumentError(f"Invalid connection target: {target}")

    return transport.lower(), host, port_number


def create_ssl_context(
    protocol: str = "tls",
    options: Optional[Mapping[str, Any]] = None,
) -> Tuple["ssl.SSLContext", Optional[str]]:
    """
    Create an SSL context from caller-supplied TLS options.

    Option keys may be camelCase (``verifyPeer``) or snake_case
    (``verify_peer``). Unknown keys are logged and ignored.

    Disabling ``verify_peer`` or enabling ``allow_self_signed`` turns off
    certificate verification entirely and logs a warning.

    Args:
        protocol: TLS sub-protocol name pinning the protocol versions
        options: TLS options

    Returns:
        Tuple of (context, peer name override or None)

    Raises:
        InvalidArgumentError: If an option value cannot be applied
    """
    if ssl is None:
        raise HTTPRuntimeError("No SSL/TLS support on this platform")

    options = convert_option_keys(options or {})
    context = ssl.create_default_context()

    minimum, maximum = _TLS_PROTOCOLS.get(protocol, (None, None))
    if minimum is not None:
        context.minimum_version = getattr(ssl.TLSVersion, minimum)
    if maximum is not None:
        context.maximum_version = getattr(ssl.TLSVersion, maximum)

    peer_name = options.pop("peer_name", None)
    verify_peer = options.pop("verify_peer", True)
    verify_peer_name = options.pop("verify_peer_name", True)
    allow_self_signed = options.pop("allow_self_signed", False)

    try:
        if not verify_peer_name or not verify_peer or allow_self_signed:
            context.check_hostname = False
        if not verify_peer or allow_self_signed:
            logger.warning("TLS certificate verification is disabled")
            context.verify_mode = ssl.CERT_NONE

        cafile = options.pop("cafile", None)
        capath = options.pop("capath", None)
        if cafile or capath:
            context.load_verify_locations(cafile=cafile, capath=capath)

        local_cert = options.pop("local_cert", None)
        local_pk = options.pop("local_pk", None)
        passphrase = options.pop("passphrase", None)
        if local_cert:
            context.load_cert_chain(local_cert, keyfile=local_pk, password=passphrase)

        ciphers = options.pop("ciphers", None)
        if ciphers:
            context.set_ciphers(ciphers)

        alpn_protocols = options.pop("alpn_protocols", None)
        if alpn_protocols:
            context.set_alpn_protocols(list(alpn_protocols))

        if options.pop("disable_compression", True):
            context.options |= ssl.OP_NO_COMPRESSION
    except (OSError, ssl.SSLError, ValueError) as e:
        raise InvalidArgumentError(f"Invalid TLS options: {e}", e) from e

    for key in options:
        logger.warning(f"Ignoring unsupported TLS option: {key}")

    return context, peer_name
