# entity_probe/errors.py
"""
Error kinds raised by the prober.

Every failure carries a stable ``code`` so callers can serialize it next to
a request identifier without inspecting the exception class.
"""
from __future__ import annotations


class ProbeError(Exception):
    """Base class for all probe failures."""

    code: str = "PROBE_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, str]:
        return {"code": self.code, "message": self.message}


class InvalidInput(ProbeError, ValueError):
    """Malformed or disallowed URL; raised before any network I/O."""

    code = "INVALID_INPUT"


class SsrfBlocked(ProbeError):
    """Host resolved (or redirected) to a private, loopback or link-local address."""

    code = "SSRF_BLOCKED"


class NetworkError(ProbeError):
    """Connection refused/reset or DNS lookup failure."""

    code = "NETWORK_ERROR"


class ProbeTimeout(ProbeError, TimeoutError):
    """Wall-clock deadline of a fetch attempt exceeded."""

    code = "TIMEOUT"


__all__ = ["ProbeError", "InvalidInput", "SsrfBlocked", "NetworkError", "ProbeTimeout"]
