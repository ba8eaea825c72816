"""
Monitoring package initialization.

Exports:
- D21SCollector: Prometheus collector for project and data connector gauges.
- MetricDefinition, Observation: metric identities and scrape samples.
- parse_duration, duration_seconds: Go-style duration parsing.
"""

from .collector import D21SCollector, MetricDefinition, Observation
from .duration import duration_seconds, parse_duration

__all__ = [
    "D21SCollector",
    "MetricDefinition",
    "Observation",
    "parse_duration",
    "duration_seconds",
]
