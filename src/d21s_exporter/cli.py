"""d21s exporter CLI -- typer-based entry point.

Flags mirror the environment/.env settings and take precedence over them.
"""

from __future__ import annotations

import platform

import typer
import uvicorn

from . import __version__
from .config.settings import (
    D21SSettings,
    LoggingSettings,
    Settings,
    WebSettings,
    settings,
)
from .gateway.client import ConfigurationError, D21SClient, UnavailableGateway
from .monitoring.collector import D21SCollector
from .server import create_app, create_registry
from .utils.logging import get_logger, setup_logging

app = typer.Typer(
    name="d21s-exporter",
    help="Expose Disruptive Technologies project and data connector metrics to Prometheus.",
    add_completion=False,
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(
            f"{settings.app_name}, version {__version__} "
            f"(python {platform.python_version()})"
        )
        raise typer.Exit()


def parse_listen_address(address: str) -> tuple[str, int]:
    """Split ``host:port``; an empty host listens on all interfaces"""
    host, sep, port = address.rpartition(":")
    if not sep or not port.isdigit():
        raise typer.BadParameter(f"invalid listen address {address!r}, expected host:port")
    host = host.strip("[]") or "0.0.0.0"
    return host, int(port)


def build_settings(
    base: Settings,
    listen_address: str | None = None,
    metrics_path: str | None = None,
    d21s_uri: str | None = None,
    d21s_auth_uri: str | None = None,
    client_private_key: str | None = None,
    client_key: str | None = None,
    client_mail: str | None = None,
    log_level: str | None = None,
    log_format: str | None = None,
    log_output: str | None = None,
) -> Settings:
    """Overlay command line values on the loaded settings"""

    def overlay(section, **values):
        merged = section.model_dump()
        merged.update({k: v for k, v in values.items() if v is not None})
        return type(section)(**merged)

    web: WebSettings = overlay(
        base.web, listen_address=listen_address, telemetry_path=metrics_path
    )
    d21s: D21SSettings = overlay(
        base.d21s,
        uri=d21s_uri,
        auth_uri=d21s_auth_uri,
        client_private_key=client_private_key,
        client_key=client_key,
        client_mail=client_mail,
    )
    logging_config: LoggingSettings = overlay(
        base.logging, level=log_level, format=log_format, output=log_output
    )
    return base.model_copy(update={"web": web, "d21s": d21s, "logging": logging_config})


def build_collector(config: Settings, logger) -> D21SCollector:
    """Create the collector, degrading to a failing gateway on bad credentials"""
    try:
        gateway = D21SClient.from_settings(config.d21s)
    except ConfigurationError as e:
        logger.error("failed creating d21s client", error=str(e))
        gateway = UnavailableGateway(str(e))
    return D21SCollector(gateway, logger=get_logger("d21s_exporter.collector"))


@app.command()
def run(
    listen_address: str | None = typer.Option(
        None, "--web.listen-address",
        help="Address to listen on for web interface and telemetry. [default: :9108]",
    ),
    metrics_path: str | None = typer.Option(
        None, "--web.telemetry-path",
        help="Path under which to expose metrics. [default: /metrics]",
    ),
    d21s_uri: str | None = typer.Option(None, "--d21s.uri", help="HTTP API address of d21s."),
    d21s_auth_uri: str | None = typer.Option(
        None, "--d21s.auth", help="HTTP API Auth address of d21s."
    ),
    client_private_key: str | None = typer.Option(
        None, "--d21s.client-private-key", help="Service Account private key"
    ),
    client_key: str | None = typer.Option(
        None, "--d21s.client-key", help="Service Account public key"
    ),
    client_mail: str | None = typer.Option(
        None, "--d21s.client-mail", help="Service Account email"
    ),
    log_level: str | None = typer.Option(
        None, "--log.level",
        help="Sets the loglevel. Valid levels are debug, info, warn, error",
    ),
    log_format: str | None = typer.Option(
        None, "--log.format",
        help="Sets the log format. Valid formats are json and logfmt",
    ),
    log_output: str | None = typer.Option(
        None, "--log.output",
        help="Sets the log output. Valid outputs are stdout and stderr",
    ),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """Serve the exporter until interrupted."""
    config = build_settings(
        settings,
        listen_address=listen_address,
        metrics_path=metrics_path,
        d21s_uri=d21s_uri,
        d21s_auth_uri=d21s_auth_uri,
        client_private_key=client_private_key,
        client_key=client_key,
        client_mail=client_mail,
        log_level=log_level,
        log_format=log_format,
        log_output=log_output,
    )
    setup_logging(config.logging)
    logger = get_logger("d21s_exporter")

    host, port = parse_listen_address(config.web.listen_address)
    collector = build_collector(config, logger)
    registry = create_registry(collector)
    web_app = create_app(registry, config.web.telemetry_path)

    logger.info("starting d21s_exporter", addr=config.web.listen_address)
    try:
        uvicorn.run(web_app, host=host, port=port, log_config=None)
    except (Exception, SystemExit) as e:
        # uvicorn exits through sys.exit when it cannot bind
        logger.error("http server quit", error=str(e))
        raise typer.Exit(1)


def main() -> None:
    """Entry point for the d21s-exporter console script."""
    app()


if __name__ == "__main__":
    main()
