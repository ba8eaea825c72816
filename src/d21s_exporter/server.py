"""
HTTP exposition endpoint for the d21s exporter
"""

import platform

from fastapi import FastAPI
from fastapi.responses import HTMLResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Info, generate_latest
from prometheus_client.registry import Collector

from . import __version__

LANDING_PAGE = """<html>
<head><title>D21S Exporter</title></head>
<body>
<h1>D21S Exporter</h1>
<p><a href="{metrics_path}">Metrics</a></p>
</body>
</html>
"""


def create_registry(collector: Collector) -> CollectorRegistry:
    """Build a registry holding the collector and the build info metric"""
    registry = CollectorRegistry()
    build_info = Info(
        "d21s_exporter_build",
        "Build information of the d21s exporter",
        registry=registry,
    )
    build_info.info({
        "version": __version__,
        "python_version": platform.python_version(),
    })
    registry.register(collector)
    return registry


def create_app(registry: CollectorRegistry, metrics_path: str = "/metrics") -> FastAPI:
    """Create the exporter application.

    Handlers are plain functions so FastAPI runs each scrape in its worker
    thread pool and concurrent scrapes do not block each other.
    """
    app = FastAPI(
        title="D21S Exporter",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    landing_page = LANDING_PAGE.format(metrics_path=metrics_path)

    @app.get(metrics_path)
    def metrics():
        """Prometheus metrics endpoint"""
        return Response(content=generate_latest(registry), media_type=CONTENT_TYPE_LATEST)

    @app.get("/", response_class=HTMLResponse)
    def root():
        return landing_page

    return app
