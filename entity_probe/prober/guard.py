# entity_probe/prober/guard.py
"""
URL normalizer and SSRF guard.

Pure validation: no DNS lookups and no sockets. A URL that passes
:func:`normalize` is syntactically safe to resolve and fetch; whether it is
publicly routable is decided again after resolution.
"""
from __future__ import annotations

import ipaddress
import re
import socket
from typing import Final, Optional, Sequence
from urllib.parse import urlsplit, urlunsplit

from entity_probe.errors import InvalidInput
from entity_probe.models import NormalizedURL

__all__: Sequence[str] = ("MAX_URL_LENGTH", "is_private_ip", "normalize")

MAX_URL_LENGTH: Final[int] = 2048

_ALLOWED_SCHEMES: Final[frozenset[str]] = frozenset({"http", "https"})
_DEFAULT_PORTS: Final[dict[str, int]] = {"http": 80, "https": 443}

_PRIVATE_NETWORKS: Final = tuple(
    ipaddress.ip_network(net)
    for net in (
        "0.0.0.0/8",
        "10.0.0.0/8",
        "127.0.0.0/8",
        "169.254.0.0/16",
        "172.16.0.0/12",
        "192.168.0.0/16",
        "::/128",
        "::1/128",
        "fc00::/7",
        "fe80::/10",
    )
)

_SCHEME_RE = re.compile(r"^[a-z][a-z0-9+.\-]*://", re.IGNORECASE)
_HOST_RE = re.compile(r"^[a-z0-9_\-]+(\.[a-z0-9_\-]+)*\.?$")
# dotted or bare numbers in decimal, octal or hex: 2130706433, 0x7f.1, 127.1
_LEGACY_IPV4_RE = re.compile(r"^(0x[0-9a-f]*|\d+)(\.(0x[0-9a-f]*|\d+)){0,3}\.?$", re.IGNORECASE)


def is_private_ip(value: str) -> bool:
    """True when *value* is a literal IP inside a private, loopback, link-local or unspecified range."""
    try:
        ip = ipaddress.ip_address(value)
    except ValueError:
        return False
    if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped is not None:
        ip = ip.ipv4_mapped
    return any(ip in net for net in _PRIVATE_NETWORKS)


def _canonical_host(hostname: str) -> str:
    host = hostname.lower()

    if ":" in host:
        # bracketed IPv6 literal
        if "%" in host:
            raise InvalidInput("Invalid URL")
        try:
            return str(ipaddress.IPv6Address(host))
        except ValueError as exc:
            raise InvalidInput("Invalid URL") from exc

    if not host.isascii():
        try:
            host = host.encode("idna").decode("ascii")
        except UnicodeError as exc:
            raise InvalidInput("Invalid URL") from exc

    if _LEGACY_IPV4_RE.match(host):
        try:
            return socket.inet_ntoa(socket.inet_aton(host.rstrip(".")))
        except OSError as exc:
            raise InvalidInput("Invalid URL") from exc

    if not _HOST_RE.match(host):
        raise InvalidInput("Invalid URL")
    return host


def normalize(raw: Optional[str]) -> NormalizedURL:
    """Validate and canonicalize an untrusted URL string.

    A missing scheme defaults to ``https://``. Raises :class:`InvalidInput`
    for empty or oversized input, unparsable URLs, schemes other than
    http/https, embedded credentials, ``localhost`` names and literal
    private addresses.
    """
    text = (raw or "").strip()
    if not text:
        raise InvalidInput("url is required")
    if len(text) > MAX_URL_LENGTH:
        raise InvalidInput(f"url longer than {MAX_URL_LENGTH} characters")

    if not _SCHEME_RE.match(text):
        text = "https://" + text

    try:
        parts = urlsplit(text)
        port = parts.port
    except ValueError as exc:
        raise InvalidInput("Invalid URL") from exc

    scheme = parts.scheme.lower()
    if scheme not in _ALLOWED_SCHEMES:
        raise InvalidInput("Only http/https allowed")

    if parts.username or parts.password:
        raise InvalidInput("Credentials in URL not allowed")

    if not parts.hostname:
        raise InvalidInput("Invalid URL")
    host = _canonical_host(parts.hostname)

    bare = host.rstrip(".")
    if bare == "localhost" or bare.endswith(".localhost"):
        raise InvalidInput("Localhost not allowed")

    if is_private_ip(host):
        raise InvalidInput("Private IP not allowed")

    if port == _DEFAULT_PORTS[scheme]:
        port = None
    netloc = f"[{host}]" if ":" in host else host
    if port is not None:
        netloc = f"{netloc}:{port}"

    url = urlunsplit((scheme, netloc, parts.path or "/", parts.query, ""))
    return NormalizedURL(url=url, scheme=scheme, host=host, port=port)
