"""
pyAMSReader: async reader for AMS power meter telemetry.

Decodes the COSEM push messages an Aidon meter sends on its HAN port and
exports the register values as Prometheus metrics.
"""

from __future__ import annotations

__version__ = "0.1.0"

__all__ = [
    "__version__",
]
