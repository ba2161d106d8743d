# entity_probe/__init__.py
"""
EntityProbe package initializer.
Defines package version and exposes the probe entry points.
"""
__version__ = "0.1.0"

from .engine import Prober, probe, probe_many
from .errors import InvalidInput, NetworkError, ProbeError, ProbeTimeout, SsrfBlocked
from .models import ProbeResult

__all__ = [
    "__version__",
    "InvalidInput",
    "NetworkError",
    "ProbeError",
    "ProbeResult",
    "ProbeTimeout",
    "Prober",
    "SsrfBlocked",
    "probe",
    "probe_many",
]
