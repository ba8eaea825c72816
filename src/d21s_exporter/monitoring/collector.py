"""
Prometheus collector translating d21s organization telemetry into gauges

Every scrape walks projects, then the data connectors of each project, then
the metrics of each connector. A failed call only drops the subtree below it.
"""

from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any, NamedTuple

from prometheus_client.core import GaugeMetricFamily
from prometheus_client.registry import Collector

from ..gateway.client import Gateway
from ..gateway.models import ConnectorMetrics, Project
from ..utils.logging import ContextualLogger, get_logger
from .duration import duration_seconds

NAMESPACE = "d21s"
DATACONNECTOR_SUBSYSTEM = "dataconnector"
PROJECT_SUBSYSTEM = "project"

LABEL_NAMES = ("name",)


def build_fq_name(namespace: str, subsystem: str, name: str) -> str:
    """Join the non-empty name parts with underscores"""
    return "_".join(part for part in (namespace, subsystem, name) if part)


@dataclass(frozen=True)
class MetricDefinition:
    """Identity of one exported gauge and how to read its value"""

    name: str
    help: str
    extractor: Callable[[Any], float]
    label_names: tuple[str, ...] = LABEL_NAMES
    kind: str = "gauge"

    def family(self) -> GaugeMetricFamily:
        return GaugeMetricFamily(self.name, self.help, labels=list(self.label_names))


class Observation(NamedTuple):
    """A single labeled value produced during a scrape"""

    definition: MetricDefinition
    label_values: tuple[str, ...]
    value: float


def _project_metrics() -> tuple[MetricDefinition, ...]:
    return (
        MetricDefinition(
            name=build_fq_name(NAMESPACE, PROJECT_SUBSYSTEM, "sensor_count"),
            help="The number of sensors within the Project.",
            extractor=lambda project: float(project.sensor_count),
        ),
        MetricDefinition(
            name=build_fq_name(NAMESPACE, PROJECT_SUBSYSTEM, "cloud_connector_count"),
            help="The number of Cloud Connectors within the Project.",
            extractor=lambda project: float(project.cloud_connector_count),
        ),
    )


def _dataconnector_metrics() -> tuple[MetricDefinition, ...]:
    return (
        MetricDefinition(
            name=build_fq_name(NAMESPACE, DATACONNECTOR_SUBSYSTEM, "success_count"),
            help="Number of successfull processed events within the last 24 hours.",
            extractor=lambda metrics: float(metrics.success_count),
        ),
        MetricDefinition(
            name=build_fq_name(NAMESPACE, DATACONNECTOR_SUBSYSTEM, "error_count"),
            help="Number of failed processed events within the last 24 hours.",
            extractor=lambda metrics: float(metrics.error_count),
        ),
        MetricDefinition(
            name=build_fq_name(NAMESPACE, DATACONNECTOR_SUBSYSTEM, "latency_99_p"),
            help="The 99th percentile latency of events sent within the last 24 hours.",
            extractor=lambda metrics: duration_seconds(metrics.latency99p),
        ),
    )


class D21SCollector(Collector):
    """Custom collector exposing project and data connector gauges.

    The definition tables are built once and never mutated, so a single
    instance can serve concurrent scrapes.
    """

    def __init__(self, gateway: Gateway, logger: ContextualLogger | None = None):
        self.gateway = gateway
        self.logger = logger or get_logger(__name__)
        self.project_metrics = _project_metrics()
        self.dataconnector_metrics = _dataconnector_metrics()

    @property
    def definitions(self) -> tuple[MetricDefinition, ...]:
        return self.project_metrics + self.dataconnector_metrics

    def describe(self) -> list[GaugeMetricFamily]:
        """Metric identities without samples; never touches the gateway"""
        return [definition.family() for definition in self.definitions]

    def observations(self) -> Iterator[Observation]:
        """Fetch the current state and yield one observation per gauge sample"""
        self.logger.debug("Starting scrape")

        try:
            projects = self.gateway.list_projects()
        except Exception as e:
            self.logger.error("error getting projects", error=str(e))
            return
        self.logger.debug("Projects fetched", count=len(projects))

        for project in projects:
            yield from self._observe(self.project_metrics, project, project.display_name)

            try:
                connectors = self.gateway.list_connectors(project.name)
            except Exception as e:
                self.logger.error(
                    "error getting connectors", project=project.name, error=str(e)
                )
                continue
            self.logger.debug(
                "Data connectors fetched", project=project.name, count=len(connectors)
            )

            for connector in connectors:
                try:
                    metrics = self.gateway.get_connector_metrics(connector.name)
                except Exception as e:
                    self.logger.error(
                        "error getting connector metrics",
                        connector=connector.name,
                        error=str(e),
                    )
                    continue
                yield from self._observe(
                    self.dataconnector_metrics, metrics, connector.display_name
                )

    def _observe(
        self,
        definitions: tuple[MetricDefinition, ...],
        source: Project | ConnectorMetrics,
        display_name: str,
    ) -> Iterator[Observation]:
        for definition in definitions:
            yield Observation(definition, (display_name,), definition.extractor(source))

    def collect(self) -> Iterator[GaugeMetricFamily]:
        """Run a scrape and yield one gauge family per definition.

        A label set seen twice in one scrape keeps its first position and the
        last value.
        """
        samples: dict[str, dict[tuple[str, ...], float]] = {
            definition.name: {} for definition in self.definitions
        }
        for observation in self.observations():
            samples[observation.definition.name][observation.label_values] = observation.value

        for definition in self.definitions:
            family = definition.family()
            for label_values, value in samples[definition.name].items():
                family.add_metric(list(label_values), value)
            yield family
