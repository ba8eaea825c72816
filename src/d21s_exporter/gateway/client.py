"""
Client for the Disruptive Technologies REST API

The collector depends only on the ``Gateway`` protocol; ``D21SClient`` is the
HTTP implementation and ``UnavailableGateway`` stands in for it when the client
could not be configured at startup.
"""

import threading
import time
from typing import Any, Protocol
from urllib.parse import urlparse

import httpx
import jwt
from pydantic import ValidationError

from ..config.settings import D21SSettings
from ..utils.logging import get_logger
from .models import ConnectorMetrics, DataConnector, Project

logger = get_logger(__name__)

JWT_BEARER_GRANT = "urn:ietf:params:oauth:grant-type:jwt-bearer"
TOKEN_LIFETIME_SECONDS = 3600
# Refresh this long before the access token actually expires
TOKEN_EXPIRY_MARGIN_SECONDS = 60


class GatewayError(Exception):
    """A call to the remote API failed"""

    def __init__(self, operation: str, message: str, status_code: int | None = None):
        self.operation = operation
        self.message = message
        self.status_code = status_code
        super().__init__(str(self))

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"{self.operation}: HTTP {self.status_code}: {self.message}"
        return f"{self.operation}: {self.message}"


class ConfigurationError(Exception):
    """The client cannot be built from the given settings"""


class Gateway(Protocol):
    """Operations the collector needs from the remote API.

    Implementations must be safe for concurrent use and report failures by
    raising, never by returning partial data.
    """

    def list_projects(self) -> list[Project]:
        ...

    def list_connectors(self, project_name: str) -> list[DataConnector]:
        ...

    def get_connector_metrics(self, connector_name: str) -> ConnectorMetrics:
        ...


class UnavailableGateway:
    """Gateway used when no working client could be built; every call fails"""

    def __init__(self, reason: str):
        self.reason = reason

    def _fail(self, operation: str):
        raise GatewayError(operation, f"client not configured: {self.reason}")

    def list_projects(self) -> list[Project]:
        self._fail("list projects")

    def list_connectors(self, project_name: str) -> list[DataConnector]:
        self._fail("list data connectors")

    def get_connector_metrics(self, connector_name: str) -> ConnectorMetrics:
        self._fail("get data connector metrics")


def _validate_url(value: str, label: str) -> str:
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ConfigurationError(f"invalid {label} URL: {value!r}")
    return value.rstrip("/")


class D21SClient:
    """Synchronous, thread-safe client authenticating as a service account.

    Access tokens are obtained with the OAuth2 JWT-bearer grant and cached
    until shortly before they expire.
    """

    def __init__(
        self,
        base_url: str,
        auth_url: str,
        key_id: str,
        secret: str,
        email: str,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ):
        missing = [
            label
            for label, value in (
                ("client key", key_id),
                ("client private key", secret),
                ("client mail", email),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError(f"missing service account {', '.join(missing)}")

        self.base_url = _validate_url(base_url, "API")
        self.auth_url = _validate_url(auth_url, "auth")
        self.key_id = key_id
        self.secret = secret
        self.email = email

        self._http = httpx.Client(timeout=timeout, transport=transport)
        self._token_lock = threading.Lock()
        self._access_token: str | None = None
        self._token_expires_at = 0.0

    @classmethod
    def from_settings(
        cls, config: D21SSettings, transport: httpx.BaseTransport | None = None
    ) -> "D21SClient":
        return cls(
            base_url=config.uri,
            auth_url=config.auth_uri,
            key_id=config.client_key,
            secret=config.client_private_key,
            email=config.client_mail,
            timeout=config.timeout_seconds,
            transport=transport,
        )

    def close(self) -> None:
        self._http.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    # Authentication

    def _build_assertion(self, now: int) -> str:
        return jwt.encode(
            {
                "iat": now,
                "exp": now + TOKEN_LIFETIME_SECONDS,
                "aud": self.auth_url,
                "iss": self.email,
            },
            self.secret,
            algorithm="HS256",
            headers={"kid": self.key_id},
        )

    def _token(self) -> str:
        with self._token_lock:
            now = time.time()
            if self._access_token and now < self._token_expires_at:
                return self._access_token

            assertion = self._build_assertion(int(now))
            try:
                response = self._http.post(
                    self.auth_url,
                    data={"assertion": assertion, "grant_type": JWT_BEARER_GRANT},
                )
            except httpx.HTTPError as e:
                raise GatewayError("authenticate", str(e)) from e

            if response.status_code != 200:
                raise GatewayError(
                    "authenticate", _error_message(response), response.status_code
                )

            try:
                payload = response.json()
                token = payload["access_token"]
                expires_in = float(payload.get("expires_in", TOKEN_LIFETIME_SECONDS))
            except (ValueError, KeyError, TypeError) as e:
                raise GatewayError("authenticate", f"malformed token response: {e}") from e

            self._access_token = token
            self._token_expires_at = now + max(expires_in - TOKEN_EXPIRY_MARGIN_SECONDS, 0)
            logger.debug("Access token refreshed", expires_in=expires_in)
            return token

    # Transport

    def _get(self, operation: str, path: str, params: dict[str, Any] | None = None) -> dict:
        token = self._token()
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            response = self._http.get(
                url, params=params, headers={"Authorization": f"Bearer {token}"}
            )
        except httpx.HTTPError as e:
            raise GatewayError(operation, str(e)) from e

        if response.status_code == 401:
            # Token revoked or expired early; force a new one on the next call
            with self._token_lock:
                self._access_token = None

        if not response.is_success:
            raise GatewayError(operation, _error_message(response), response.status_code)

        try:
            payload = response.json()
        except ValueError as e:
            raise GatewayError(operation, f"invalid JSON response: {e}") from e
        if not isinstance(payload, dict):
            raise GatewayError(operation, "unexpected response body")
        return payload

    def _list(self, operation: str, path: str, field: str) -> list[dict]:
        items: list[dict] = []
        page_token = ""
        while True:
            params = {"pageToken": page_token} if page_token else None
            payload = self._get(operation, path, params)
            items.extend(payload.get(field) or [])
            page_token = payload.get("nextPageToken") or ""
            if not page_token:
                return items

    # Gateway operations

    def list_projects(self) -> list[Project]:
        operation = "list projects"
        raw = self._list(operation, "projects", "projects")
        return _parse(operation, Project, raw)

    def list_connectors(self, project_name: str) -> list[DataConnector]:
        operation = "list data connectors"
        raw = self._list(operation, f"{project_name}/dataconnectors", "dataConnectors")
        return _parse(operation, DataConnector, raw)

    def get_connector_metrics(self, connector_name: str) -> ConnectorMetrics:
        operation = "get data connector metrics"
        payload = self._get(operation, f"{connector_name}:metrics")
        metrics = payload.get("metrics")
        if not isinstance(metrics, dict):
            raise GatewayError(operation, "unexpected response body")
        return _parse(operation, ConnectorMetrics, [metrics])[0]


def _parse(operation: str, model, raw: list[dict]) -> list:
    try:
        return [model.model_validate(item) for item in raw]
    except ValidationError as e:
        raise GatewayError(operation, f"malformed payload: {e}") from e


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(payload, dict):
        return str(payload.get("error") or payload.get("error_description") or payload)
    return str(payload)
