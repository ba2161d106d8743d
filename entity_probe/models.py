# entity_probe/models.py
"""
Data models for the EntityProbe pipeline.
"""
from __future__ import annotations

from dataclasses import dataclass, field, fields
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional


@dataclass(frozen=True, slots=True)
class NormalizedURL:
    """Validated absolute http(s) URL with a lowercase host and no user-info."""

    url: str
    scheme: str
    host: str
    port: Optional[int] = None

    @property
    def is_https(self) -> bool:
        return self.scheme == "https"

    def __str__(self) -> str:
        return self.url


@dataclass(frozen=True, slots=True)
class FetchOutcome:
    """Terminal snapshot of one bounded fetch (after any redirect hops)."""

    status: int
    final_url: str
    content_type: str
    body_text: str
    bytes_downloaded: int
    response_time_ms: int
    redirects: int = 0
    truncated: bool = False

    @property
    def is_html(self) -> bool:
        return "text/html" in self.content_type


@dataclass(frozen=True, slots=True)
class Signals:
    """Textual hints found in a downloaded body."""

    has_title: bool = False
    has_contact_like_links: bool = False
    has_legal_like_links: bool = False
    parking_hit: bool = False


@dataclass(frozen=True, slots=True)
class ScoreInputs:
    """Everything the confidence score depends on."""

    reachable: bool
    http_status: Optional[int]
    ssl_valid: bool
    content_type_html: bool
    content_length_ok: bool
    has_title: bool
    has_contact_or_legal: bool
    suspected_parked: bool


@dataclass(frozen=True)
class ProbeResult:
    """Final, immutable output of one probe."""

    exists: bool
    reachable: bool
    http_status: Optional[int]
    final_url: Optional[str]
    response_time_ms: Optional[int]
    ssl_valid: Optional[bool]
    suspected_parked_domain: Optional[bool]
    confidence_score: float
    checked_at: str
    signals: Mapping[str, bool] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # read-only view over a private copy
        object.__setattr__(self, "signals", MappingProxyType(dict(self.signals)))

    def to_dict(self) -> Dict[str, Any]:
        data = {f.name: getattr(self, f.name) for f in fields(self) if f.name != "signals"}
        data["signals"] = dict(self.signals)
        return data


__all__ = ["NormalizedURL", "FetchOutcome", "Signals", "ScoreInputs", "ProbeResult"]
