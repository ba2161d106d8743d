# entity_probe/prober/signals.py
"""Lightweight textual signals extracted from a (possibly truncated) body."""
from __future__ import annotations

import re
from typing import Iterable, Sequence

from entity_probe.models import Signals

__all__: Sequence[str] = ("CONTACT_HINTS", "LEGAL_HINTS", "PARKING_PATTERNS", "extract")

PARKING_PATTERNS: Sequence[str] = (
    "domain for sale",
    "buy this domain",
    "this domain is for sale",
    "sedo",
    "afternic",
    "parked",
    "parking",
)

CONTACT_HINTS: Sequence[str] = (
    "contact",
    "contacto",
    "kontakt",
    "contatti",
    "contato",
    "nous contacter",
)

LEGAL_HINTS: Sequence[str] = (
    "privacy",
    "terms",
    "legal",
    "impressum",
    "aviso legal",
    "politica de privacidad",
    "términos",
    "condiciones",
)

# title element with at least one non-blank character; every attempt stops at the next "<"
_TITLE_RE = re.compile(r"<title\b[^<>]*>\s*[^<\s][^<]*</title>", re.IGNORECASE)


def _contains_any(text: str, needles: Iterable[str]) -> bool:
    return any(needle in text for needle in needles)


def extract(body_text: str) -> Signals:
    """Scan *body_text* for title, contact/legal hints and domain-parking phrases."""
    lower = (body_text or "").lower()
    return Signals(
        has_title=bool(_TITLE_RE.search(lower)),
        has_contact_like_links=_contains_any(lower, CONTACT_HINTS),
        has_legal_like_links=_contains_any(lower, LEGAL_HINTS),
        parking_hit=_contains_any(lower, PARKING_PATTERNS),
    )
