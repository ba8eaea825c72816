"""
Test configuration and fixtures for the d21s exporter
"""

# Standard library imports
from unittest.mock import MagicMock

# Third-party imports
import pytest

# Local imports
from d21s_exporter.config.settings import Settings
from d21s_exporter.gateway.client import GatewayError
from d21s_exporter.gateway.models import ConnectorMetrics, DataConnector, Project
from d21s_exporter.monitoring.collector import D21SCollector


class FakeGateway:
    """In-memory gateway; failures are configured per resource name"""

    def __init__(self, projects, connectors=None, metrics=None):
        self.projects = projects
        self.connectors = connectors or {}
        self.metrics = metrics or {}
        self.fail_projects = False
        self.failing_projects: set[str] = set()
        self.failing_connectors: set[str] = set()
        self.calls: list[tuple[str, str | None]] = []

    def list_projects(self):
        self.calls.append(("list_projects", None))
        if self.fail_projects:
            raise GatewayError("list projects", "connection refused")
        return list(self.projects)

    def list_connectors(self, project_name):
        self.calls.append(("list_connectors", project_name))
        if project_name in self.failing_projects:
            raise GatewayError("list data connectors", "forbidden", 403)
        return list(self.connectors.get(project_name, []))

    def get_connector_metrics(self, connector_name):
        self.calls.append(("get_connector_metrics", connector_name))
        if connector_name in self.failing_connectors:
            raise GatewayError("get data connector metrics", "internal error", 500)
        return self.metrics[connector_name]


@pytest.fixture
def test_settings() -> Settings:
    """Test settings configuration"""
    return Settings(
        d21s={
            "uri": "https://api.example.test/v2",
            "auth_uri": "https://identity.example.test/oauth2/token",
            "client_key": "key-id",
            "client_private_key": "secret",
            "client_mail": "exporter@serviceaccount.example.test",
        },
        logging={"level": "debug"},
    )


@pytest.fixture
def sample_projects() -> list[Project]:
    return [
        Project(
            name="projects/p1",
            displayName="Warehouse",
            sensorCount=12,
            cloudConnectorCount=2,
        ),
        Project(
            name="projects/p2",
            displayName="Office",
            sensorCount=3,
            cloudConnectorCount=1,
        ),
    ]


@pytest.fixture
def sample_connectors() -> dict[str, list[DataConnector]]:
    return {
        "projects/p1": [
            DataConnector(name="projects/p1/dataconnectors/c1", displayName="Warehouse Webhook"),
            DataConnector(name="projects/p1/dataconnectors/c2", displayName="Warehouse Archive"),
        ],
        "projects/p2": [
            DataConnector(name="projects/p2/dataconnectors/c3", displayName="Office Webhook"),
        ],
    }


@pytest.fixture
def sample_metrics() -> dict[str, ConnectorMetrics]:
    return {
        "projects/p1/dataconnectors/c1": ConnectorMetrics(
            successCount=1000, errorCount=4, latency99p="250ms"
        ),
        "projects/p1/dataconnectors/c2": ConnectorMetrics(
            successCount=20, errorCount=0, latency99p="1.5s"
        ),
        "projects/p2/dataconnectors/c3": ConnectorMetrics(
            successCount=7, errorCount=1, latency99p="not-a-duration"
        ),
    }


@pytest.fixture
def fake_gateway(sample_projects, sample_connectors, sample_metrics) -> FakeGateway:
    return FakeGateway(sample_projects, sample_connectors, sample_metrics)


@pytest.fixture
def mock_logger() -> MagicMock:
    """Mock logger recording every call"""
    return MagicMock()


@pytest.fixture
def collector(fake_gateway, mock_logger) -> D21SCollector:
    return D21SCollector(fake_gateway, logger=mock_logger)


@pytest.fixture
def make_gateway():
    """Factory for gateways with custom content"""
    return FakeGateway


def pytest_configure(config):
    """Configure pytest markers"""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")
