# entity_probe/prober/scoring.py
"""
Deterministic confidence score.

Additive weights, clamped to ``[0, 1]``:

=================================  ======
reachable                          +0.35
HTTP status in 200..399            +0.15
https transport                    +0.10
HTML content type                  +0.10
at least 5000 bytes downloaded     +0.10
title present                      +0.10
contact or legal hint              +0.10
suspected parked domain            -0.25
=================================  ======
"""
from __future__ import annotations

from typing import Final, Optional, Sequence

from entity_probe.models import FetchOutcome, ScoreInputs, Signals

__all__: Sequence[str] = ("build_inputs", "score", "suspected_parked")

W_REACHABLE: Final[float] = 0.35
W_STATUS_OK: Final[float] = 0.15
W_HTTPS: Final[float] = 0.10
W_HTML: Final[float] = 0.10
W_LENGTH: Final[float] = 0.10
W_TITLE: Final[float] = 0.10
W_CONTACT_OR_LEGAL: Final[float] = 0.10
W_PARKED: Final[float] = -0.25

MIN_CONTENT_BYTES: Final[int] = 5000
PLACEHOLDER_MAX_BYTES: Final[int] = 8000


def suspected_parked(signals: Signals, bytes_downloaded: int) -> bool:
    """A parking phrase, or a short page without a title."""
    return signals.parking_hit or (not signals.has_title and bytes_downloaded < PLACEHOLDER_MAX_BYTES)


def build_inputs(outcome: FetchOutcome, signals: Signals, ssl_valid: bool) -> ScoreInputs:
    return ScoreInputs(
        reachable=True,
        http_status=outcome.status,
        ssl_valid=ssl_valid,
        content_type_html=outcome.is_html,
        content_length_ok=outcome.bytes_downloaded >= MIN_CONTENT_BYTES,
        has_title=signals.has_title,
        has_contact_or_legal=signals.has_contact_like_links or signals.has_legal_like_links,
        suspected_parked=suspected_parked(signals, outcome.bytes_downloaded),
    )


def _status_ok(status: Optional[int]) -> bool:
    return status is not None and 200 <= status <= 399


def score(inputs: ScoreInputs) -> float:
    total = 0.0
    if inputs.reachable:
        total += W_REACHABLE
    if _status_ok(inputs.http_status):
        total += W_STATUS_OK
    if inputs.ssl_valid:
        total += W_HTTPS
    if inputs.content_type_html:
        total += W_HTML
    if inputs.content_length_ok:
        total += W_LENGTH
    if inputs.has_title:
        total += W_TITLE
    if inputs.has_contact_or_legal:
        total += W_CONTACT_OR_LEGAL
    if inputs.suspected_parked:
        total += W_PARKED
    # weights are multiples of 0.05; rounding only strips float noise
    return round(max(0.0, min(1.0, total)), 2)
