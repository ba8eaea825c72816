"""
Configuration package initialization.

Exports key settings classes and the global settings instance for convenient imports.
"""

from .settings import (
    D21SSettings,
    LogFormat,
    LoggingSettings,
    LogLevel,
    LogOutput,
    Settings,
    WebSettings,
    settings,
)

__all__ = [
    "Settings",
    "settings",
    "WebSettings",
    "D21SSettings",
    "LoggingSettings",
    "LogLevel",
    "LogFormat",
    "LogOutput",
]
