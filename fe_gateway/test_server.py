from unittest.mock import AsyncMock, patch

import httpx
import pytest
from fastapi.testclient import TestClient

from fe_gateway.models import BackendEndpoint
from fe_gateway.server import build_app, create_app

BACKEND_URL = "http://backend.test:9596"


class FakeBackend:
    """Records outbound calls and answers with a canned response."""

    def __init__(self, status_code=200, content=b"{}", error=None):
        self.status_code = status_code
        self.content = content
        self.error = error
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return httpx.Response(self.status_code, content=self.content)


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def test_client(backend):
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(backend))
    app = create_app(BackendEndpoint(BACKEND_URL), client=http_client)
    with TestClient(app) as client:
        yield client


def test_index(test_client, backend):
    response = test_client.get("/")

    assert response.status_code == 200
    assert response.text == "Hello world!\r\n"
    assert backend.requests == []


def test_hello_forwarded(test_client, backend):
    backend.content = b"3f1c2a9e-uuid"

    response = test_client.get("/hello")

    assert response.status_code == 200
    assert response.content == b"3f1c2a9e-uuid"
    assert str(backend.requests[0].url) == f"{BACKEND_URL}/hello"


def test_account_forwarded_verbatim(test_client, backend):
    backend.status_code = 206
    backend.content = b'{"accountId": "42", "balance": 10}'

    response = test_client.get("/customer/account?accountId=42")

    assert response.status_code == 206
    assert response.content == b'{"accountId": "42", "balance": 10}'
    assert str(backend.requests[0].url) == f"{BACKEND_URL}/customer/account?accountId=42"


def test_top_movements_query_order(test_client, backend):
    test_client.get(
        "/customer/account/movements/top",
        params={"asc": "1", "totalElements": "3", "accountId": "5"},
    )

    assert backend.requests[0].url.query == b"accountId=5&totalElements=3&asc=1"


def test_movements_defaults(test_client, backend):
    test_client.get("/customer/account/movements?accountId=7")

    assert backend.requests[0].url.query == b"accountId=7&sort=0&asc=0"


def test_balance_and_detail(test_client, backend):
    test_client.get("/customer/account/movements/balance?accountId=1")
    test_client.get("/customer/account/detail?accountId=1")
    test_client.get("/customer/accounts")

    assert [r.url.path for r in backend.requests] == [
        "/customer/account/movements/balance",
        "/customer/account/detail",
        "/customer/accounts",
    ]


def test_missing_account_id_is_400(test_client, backend):
    response = test_client.get("/customer/account")

    assert response.status_code == 400
    assert "accountId" in response.json()["detail"]
    assert backend.requests == []


def test_connection_refused_is_502(test_client, backend):
    backend.error = httpx.ConnectError("[Errno 111] Connection refused")

    response = test_client.get("/customer/account?accountId=42")

    assert response.status_code == 502
    assert response.json() == {"detail": "Bad gateway - cannot connect to backend"}
    assert len(backend.requests) == 1


def test_backend_error_status_relayed(test_client, backend):
    backend.status_code = 500
    backend.content = b"boom"

    response = test_client.get("/hello")

    assert response.status_code == 500
    assert response.content == b"boom"


def test_post_is_405(test_client, backend):
    response = test_client.post("/hello")

    assert response.status_code == 405
    assert response.headers["allow"] == "GET"
    assert backend.requests == []


def test_delete_unknown_path_is_405(test_client):
    assert test_client.delete("/nonexistent").status_code == 405


def test_unknown_get_is_404(test_client):
    assert test_client.get("/nonexistent").status_code == 404


def test_trailing_slash_is_404(test_client):
    assert test_client.get("/hello/", follow_redirects=False).status_code == 404


@pytest.mark.parametrize("path", ["/docs", "/redoc", "/openapi.json"])
def test_framework_docs_disabled(test_client, path):
    assert test_client.get(path).status_code == 404


def test_app_owns_client_when_not_given():
    app = create_app(BackendEndpoint(BACKEND_URL))

    with patch("fe_gateway.server.httpx.AsyncClient") as client_cls:
        client_cls.return_value.aclose = AsyncMock()
        with TestClient(app):
            assert app.state.dispatcher.forwarder.client is client_cls.return_value

    client_cls.assert_called_once_with()
    client_cls.return_value.aclose.assert_awaited_once()


def test_build_app_uses_environment(monkeypatch):
    monkeypatch.setenv("FE_CLIENT_URL", "http://configured:1234")

    with patch("fe_gateway.server.configure_tracing") as configure_tracing:
        app = build_app()

    configure_tracing.assert_called_once_with(app)
    with patch("fe_gateway.server.httpx.AsyncClient") as client_cls:
        client_cls.return_value.aclose = AsyncMock()
        with TestClient(app):
            assert app.state.dispatcher.endpoint.base_url == "http://configured:1234"


class TestConfigureTracing:
    def test_exporter_added_when_endpoint_set(self):
        from fe_gateway import server

        app = create_app(BackendEndpoint(BACKEND_URL))
        with patch.object(server, "OTLP_ENDPOINT", "http://collector:4317"), patch.object(
            server, "OTLP_HEADERS", "authorization=Bearer x"
        ), patch.object(server.trace, "set_tracer_provider"), patch.object(
            server.trace, "get_tracer_provider"
        ) as get_provider, patch.object(
            server, "OTLPSpanExporter"
        ) as exporter_cls, patch.object(
            server, "FastAPIInstrumentor"
        ) as instrumentor:
            server.configure_tracing(app)

        exporter_cls.assert_called_once_with(
            endpoint="http://collector:4317", headers=["authorization=Bearer x"]
        )
        get_provider.return_value.add_span_processor.assert_called_once()
        instrumentor.instrument_app.assert_called_once_with(app)

    def test_no_exporter_without_endpoint(self):
        from fe_gateway import server

        app = create_app(BackendEndpoint(BACKEND_URL))
        with patch.object(server, "OTLP_ENDPOINT", None), patch.object(
            server.trace, "set_tracer_provider"
        ), patch.object(server.trace, "get_tracer_provider") as get_provider, patch.object(
            server, "OTLPSpanExporter"
        ) as exporter_cls, patch.object(
            server, "FastAPIInstrumentor"
        ):
            server.configure_tracing(app)

        exporter_cls.assert_not_called()
        get_provider.return_value.add_span_processor.assert_not_called()
