"""
Unit tests for the Disruptive Technologies API client
"""

from urllib.parse import parse_qs

import httpx
import jwt
import pytest

from d21s_exporter.gateway.client import (
    JWT_BEARER_GRANT,
    ConfigurationError,
    D21SClient,
    GatewayError,
    UnavailableGateway,
)

API = "https://api.example.test/v2"
AUTH = "https://identity.example.test/oauth2/token"


class FakeAPI:
    """Routes requests to canned responses and records them"""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.routes: dict[tuple[str, str], list[httpx.Response]] = {}
        self.token_requests = 0

    def add(self, path: str, *responses: httpx.Response, page_token: str = ""):
        self.routes[(path, page_token)] = list(responses)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if str(request.url) == AUTH:
            self.token_requests += 1
            return httpx.Response(
                200, json={"access_token": f"token-{self.token_requests}", "expires_in": 3600}
            )
        key = (request.url.path, request.url.params.get("pageToken", ""))
        responses = self.routes.get(key)
        if not responses:
            return httpx.Response(404, json={"error": "not found", "code": 404})
        return responses.pop(0) if len(responses) > 1 else responses[0]


@pytest.fixture
def api() -> FakeAPI:
    return FakeAPI()


@pytest.fixture
def client(api) -> D21SClient:
    client = D21SClient(
        base_url=API,
        auth_url=AUTH,
        key_id="key-id",
        secret="secret",
        email="exporter@serviceaccount.example.test",
        transport=httpx.MockTransport(api),
    )
    yield client
    client.close()


@pytest.mark.unit
class TestConfiguration:
    """Constructor validation"""

    @pytest.mark.parametrize("missing", ["key_id", "secret", "email"])
    def test_missing_credentials(self, missing):
        kwargs = {"key_id": "k", "secret": "s", "email": "e@example.test"}
        kwargs[missing] = ""
        with pytest.raises(ConfigurationError):
            D21SClient(base_url=API, auth_url=AUTH, **kwargs)

    @pytest.mark.parametrize("url", ["", "not a url", "ftp://api.example.test"])
    def test_invalid_base_url(self, url):
        with pytest.raises(ConfigurationError):
            D21SClient(base_url=url, auth_url=AUTH, key_id="k", secret="s", email="e")

    def test_from_settings(self, test_settings):
        client = D21SClient.from_settings(test_settings.d21s)
        try:
            assert client.base_url == "https://api.example.test/v2"
            assert client.key_id == "key-id"
        finally:
            client.close()

    def test_from_default_settings_fails_without_credentials(self):
        from d21s_exporter.config.settings import D21SSettings

        with pytest.raises(ConfigurationError):
            D21SClient.from_settings(D21SSettings(client_key="", client_private_key="", client_mail=""))


@pytest.mark.unit
class TestAuthentication:
    """JWT-bearer token exchange"""

    def test_token_request(self, client, api):
        api.add("/v2/projects", httpx.Response(200, json={"projects": []}))

        client.list_projects()

        token_request = api.requests[0]
        assert str(token_request.url) == AUTH
        form = parse_qs(token_request.content.decode())
        assert form["grant_type"] == [JWT_BEARER_GRANT]

        assertion = form["assertion"][0]
        assert jwt.get_unverified_header(assertion)["kid"] == "key-id"
        claims = jwt.decode(assertion, "secret", algorithms=["HS256"], audience=AUTH)
        assert claims["iss"] == "exporter@serviceaccount.example.test"
        assert claims["exp"] - claims["iat"] == 3600

        assert api.requests[1].headers["Authorization"] == "Bearer token-1"

    def test_token_is_cached(self, client, api):
        api.add("/v2/projects", httpx.Response(200, json={"projects": []}))

        client.list_projects()
        client.list_projects()

        assert api.token_requests == 1

    def test_token_refreshed_after_unauthorized(self, client, api):
        api.add(
            "/v2/projects",
            httpx.Response(401, json={"error": "token expired"}),
            httpx.Response(200, json={"projects": []}),
        )

        with pytest.raises(GatewayError) as exc_info:
            client.list_projects()
        assert exc_info.value.status_code == 401

        client.list_projects()
        assert api.token_requests == 2

    def test_token_failure(self, api):
        def handler(request):
            return httpx.Response(400, json={"error": "invalid_grant"})

        client = D21SClient(
            API, AUTH, "key-id", "secret", "e@example.test", transport=httpx.MockTransport(handler)
        )
        with pytest.raises(GatewayError) as exc_info:
            client.list_projects()

        assert exc_info.value.operation == "authenticate"
        assert exc_info.value.status_code == 400
        assert "invalid_grant" in str(exc_info.value)


@pytest.mark.unit
class TestOperations:
    """Projects, data connectors and connector metrics"""

    def test_list_projects_follows_pagination(self, client, api):
        api.add(
            "/v2/projects",
            httpx.Response(200, json={
                "projects": [{"name": "projects/p1", "displayName": "One", "sensorCount": 4}],
                "nextPageToken": "page-2",
            }),
        )
        api.add(
            "/v2/projects",
            httpx.Response(200, json={
                "projects": [{
                    "name": "projects/p2",
                    "displayName": "Two",
                    "sensorCount": 1,
                    "cloudConnectorCount": 3,
                    "organization": "organizations/o1",
                    "unknownField": True,
                }],
                "nextPageToken": "",
            }),
            page_token="page-2",
        )

        projects = client.list_projects()

        assert [p.name for p in projects] == ["projects/p1", "projects/p2"]
        assert projects[0].display_name == "One"
        assert projects[0].cloud_connector_count == 0
        assert projects[1].cloud_connector_count == 3

    def test_list_connectors(self, client, api):
        api.add(
            "/v2/projects/p1/dataconnectors",
            httpx.Response(200, json={"dataConnectors": [
                {"name": "projects/p1/dataconnectors/c1", "displayName": "Hook", "type": "HTTP_PUSH"},
            ]}),
        )

        connectors = client.list_connectors("projects/p1")

        assert len(connectors) == 1
        assert connectors[0].display_name == "Hook"
        assert connectors[0].type == "HTTP_PUSH"

    def test_get_connector_metrics(self, client, api):
        api.add(
            "/v2/projects/p1/dataconnectors/c1:metrics",
            httpx.Response(200, json={"metrics": {
                "successCount": 120, "errorCount": 3, "latency99p": "0.250s",
            }}),
        )

        metrics = client.get_connector_metrics("projects/p1/dataconnectors/c1")

        assert metrics.success_count == 120
        assert metrics.error_count == 3
        assert metrics.latency99p == "0.250s"

    def test_connector_metrics_missing_from_body(self, client, api):
        api.add("/v2/projects/p1/dataconnectors/c1:metrics", httpx.Response(200, json={}))

        with pytest.raises(GatewayError, match="unexpected response body") as exc_info:
            client.get_connector_metrics("projects/p1/dataconnectors/c1")

        assert exc_info.value.operation == "get data connector metrics"

    def test_http_error_status(self, client, api):
        with pytest.raises(GatewayError) as exc_info:
            client.list_connectors("projects/missing")

        assert exc_info.value.status_code == 404
        assert exc_info.value.operation == "list data connectors"
        assert "not found" in str(exc_info.value)

    def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = D21SClient(
            API, AUTH, "key-id", "secret", "e@example.test", transport=httpx.MockTransport(handler)
        )
        with pytest.raises(GatewayError, match="connection refused"):
            client.list_projects()

    def test_invalid_json(self, client, api):
        api.add("/v2/projects", httpx.Response(200, content=b"<html>"))

        with pytest.raises(GatewayError, match="invalid JSON"):
            client.list_projects()

    def test_malformed_payload(self, client, api):
        api.add("/v2/projects", httpx.Response(200, json={"projects": [{"displayName": "no name"}]}))

        with pytest.raises(GatewayError, match="malformed payload"):
            client.list_projects()


@pytest.mark.unit
class TestUnavailableGateway:
    """Degraded mode when no client could be built"""

    def test_every_call_fails(self):
        gateway = UnavailableGateway("missing service account client key")

        with pytest.raises(GatewayError, match="client not configured"):
            gateway.list_projects()
        with pytest.raises(GatewayError):
            gateway.list_connectors("projects/p1")
        with pytest.raises(GatewayError):
            gateway.get_connector_metrics("projects/p1/dataconnectors/c1")
