"""
Domain snapshots returned by the Disruptive Technologies REST API
"""

from pydantic import BaseModel, Field


class _APIModel(BaseModel):
    """Base for API payloads: camelCase on the wire, unknown fields ignored"""

    class Config:
        populate_by_name = True
        extra = "ignore"
        frozen = True


class Project(_APIModel):
    """A project within an organization"""
    name: str = Field(..., description="Resource name, e.g. projects/<id>")
    display_name: str = Field("", alias="displayName")
    organization: str | None = None
    organization_display_name: str | None = Field(None, alias="organizationDisplayName")
    sensor_count: int = Field(0, alias="sensorCount")
    cloud_connector_count: int = Field(0, alias="cloudConnectorCount")
    inventory: bool = False


class DataConnector(_APIModel):
    """A data connector forwarding events out of a project"""
    name: str = Field(..., description="Resource name, e.g. projects/<p>/dataconnectors/<id>")
    display_name: str = Field("", alias="displayName")
    type: str | None = None
    status: str | None = None


class ConnectorMetrics(_APIModel):
    """Aggregate delivery metrics of a data connector over the last 24 hours"""
    success_count: int = Field(0, alias="successCount")
    error_count: int = Field(0, alias="errorCount")
    latency99p: str = Field("", description="99th percentile latency as a duration string, e.g. 0.250s")
