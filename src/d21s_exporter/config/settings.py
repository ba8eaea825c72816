"""
Configuration settings for the d21s exporter
"""

from enum import Enum

from pydantic import Field, validator
from pydantic_settings import BaseSettings


class LogLevel(str, Enum):
    """Log levels accepted on the command line"""

    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


class LogFormat(str, Enum):
    """Log line renderers"""

    LOGFMT = "logfmt"
    JSON = "json"


class LogOutput(str, Enum):
    """Log destinations"""

    STDOUT = "stdout"
    STDERR = "stderr"


class WebSettings(BaseSettings):
    """HTTP listener configuration"""

    listen_address: str = Field(default=":9108")
    telemetry_path: str = Field(default="/metrics")

    @validator("telemetry_path")
    def validate_telemetry_path(cls, v):
        if not v.startswith("/"):
            return "/" + v
        return v

    class Config:
        env_prefix = "WEB_"


class D21SSettings(BaseSettings):
    """Disruptive Technologies API configuration"""

    uri: str = Field(default="https://api.disruptive-technologies.com/v2")
    auth_uri: str = Field(
        default="https://identity.disruptive-technologies.com/oauth2/token"
    )
    client_key: str = Field(default="")
    client_private_key: str = Field(default="")
    client_mail: str = Field(default="")
    timeout_seconds: float = Field(default=10.0, gt=0)

    class Config:
        env_prefix = "D21S_"


class LoggingSettings(BaseSettings):
    """Logging configuration

    Unknown values fall back to the defaults instead of failing startup.
    """

    level: LogLevel = Field(default=LogLevel.INFO)
    format: LogFormat = Field(default=LogFormat.LOGFMT)
    output: LogOutput = Field(default=LogOutput.STDOUT)

    @validator("level", pre=True)
    def validate_level(cls, v):
        return _lenient(LogLevel, v, LogLevel.INFO)

    @validator("format", pre=True)
    def validate_format(cls, v):
        return _lenient(LogFormat, v, LogFormat.LOGFMT)

    @validator("output", pre=True)
    def validate_output(cls, v):
        return _lenient(LogOutput, v, LogOutput.STDOUT)

    class Config:
        env_prefix = "LOG_"


def _lenient(enum_cls, value, default):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).lower())
    except ValueError:
        return default


class Settings(BaseSettings):
    """Main application settings"""

    app_name: str = Field(default="d21s_exporter")
    app_version: str = Field(default="1.0.0")

    web: WebSettings = Field(default_factory=WebSettings)
    d21s: D21SSettings = Field(default_factory=D21SSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"


# Global settings instance
settings = Settings()
