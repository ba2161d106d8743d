"""
entity_probe.prober: pipeline stages (guard, resolver, fetcher, signals, scoring).
"""
from .fetcher import Fetcher, create_session
from .guard import is_private_ip, normalize
from .resolver import CheckedConnectorResolver, DnsResolver, check_resolved
from .scoring import build_inputs, score, suspected_parked
from .signals import extract

__all__ = [
    "CheckedConnectorResolver",
    "DnsResolver",
    "Fetcher",
    "build_inputs",
    "check_resolved",
    "create_session",
    "extract",
    "is_private_ip",
    "normalize",
    "score",
    "suspected_parked",
]
