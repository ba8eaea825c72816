"""
d21s exporter - Prometheus exporter for Disruptive Technologies organizations

Republishes project sensor counts and data connector delivery statistics
from the Disruptive Technologies REST API as Prometheus gauges.
"""

__version__ = "1.0.0"

from .config.settings import Settings

__all__ = ["Settings", "__version__"]
