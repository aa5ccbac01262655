import json

import httpx
import pytest
from fastapi.testclient import TestClient

from app.api_service import app
from app.routers.messaging import get_dispatcher
from config.settings import WebhookConfig, ZapiConfig
from messaging.dispatcher import MessageDispatcher


class Provider:
    def __init__(self, status=200):
        self.status = status
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        return httpx.Response(self.status, json={"queued": True})


@pytest.fixture
def provider():
    return Provider()


def _use(config, provider):
    http = httpx.Client(transport=httpx.MockTransport(provider))
    app.dependency_overrides[get_dispatcher] = lambda: MessageDispatcher(config, http=http)


@pytest.fixture
def client():
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_send_via_webhook(client, provider):
    _use(WebhookConfig(url="https://hooks.example.com/wa"), provider)
    r = client.post("/whatsapp/send-message", json={"phone": "11987654321", "message": "Oi", "metadata": {"a": 1}})
    assert r.status_code == 200
    assert r.json() == {"status": "sent", "provider": "webhook", "phone": "5511987654321"}
    assert r.headers["cache-control"] == "no-store"
    assert r.headers["x-request-id"]
    assert json.loads(provider.requests[0].content)["metadata"] == {"a": 1}


def test_aliases_to_and_text(client, provider):
    _use(ZapiConfig(instance_id="i", instance_token="t"), provider)
    r = client.post("/whatsapp/send-message", json={"to": "+55 (11) 98765-4321", "text": "Oi"})
    assert r.status_code == 200
    assert r.json()["provider"] == "zapi"


def test_malformed_json(client, provider):
    _use(WebhookConfig(url="https://hooks.example.com/wa"), provider)
    r = client.post("/whatsapp/send-message", content=b"{nope", headers={"content-type": "application/json"})
    assert r.status_code == 400
    assert r.json()["error"] == "invalid_payload"
    assert provider.requests == []


def test_non_object_json_is_invalid_phone(client, provider):
    _use(WebhookConfig(url="https://hooks.example.com/wa"), provider)
    r = client.post("/whatsapp/send-message", json=["11987654321"])
    assert r.status_code == 400
    assert r.json()["error"] == "invalid_phone"


def test_invalid_phone(client, provider):
    _use(WebhookConfig(url="https://hooks.example.com/wa"), provider)
    r = client.post("/whatsapp/send-message", json={"phone": "abc", "message": "Oi"})
    assert r.status_code == 400
    assert r.json()["error"] == "invalid_phone"


def test_invalid_message(client, provider):
    _use(WebhookConfig(url="https://hooks.example.com/wa"), provider)
    r = client.post("/whatsapp/send-message", json={"phone": "11987654321", "message": "   "})
    assert r.status_code == 400
    assert r.json()["error"] == "invalid_message"


def test_not_configured(client, provider):
    _use(None, provider)
    r = client.post("/whatsapp/send-message", json={"phone": "11987654321", "message": "Oi"})
    assert r.status_code == 503
    assert r.json()["error"] == "whatsapp_outbound_not_configured"
    assert provider.requests == []


def test_send_failed(client):
    failing = Provider(status=500)
    _use(ZapiConfig(instance_id="i", instance_token="t"), failing)
    r = client.post("/whatsapp/send-message", json={"phone": "11987654321", "message": "Oi"})
    assert r.status_code == 500
    body = r.json()
    assert body["error"] == "whatsapp_send_failed"
    assert body["message"].startswith("zapi_failed_send-text:500")
    assert len(failing.requests) == 8


def test_options_preflight(client):
    r = client.options("/whatsapp/send-message")
    assert r.status_code == 200
    assert r.text == "ok"


@pytest.mark.parametrize(
    "headers",
    [
        {"Origin": "https://crm.example.com", "Access-Control-Request-Method": "POST"},
        {
            "Origin": "https://crm.example.com",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "x-request-id",
        },
    ],
)
def test_browser_preflight_always_ok(client, headers):
    r = client.options("/whatsapp/send-message", headers=headers)
    assert r.status_code == 200
    assert r.text == "ok"
    assert r.headers["access-control-allow-origin"] == "*"
    assert r.headers["access-control-allow-methods"] == "POST, OPTIONS"


def test_json_responses_carry_cors_headers(client, provider):
    _use(WebhookConfig(url="https://hooks.example.com/wa"), provider)
    r = client.post("/whatsapp/send-message", json={"phone": "abc", "message": "Oi"})
    assert r.status_code == 400
    assert r.headers["access-control-allow-origin"] == "*"
    assert r.headers["cache-control"] == "no-store"


@pytest.mark.parametrize("method", ["GET", "PUT", "PATCH", "DELETE", "TRACE"])
def test_other_methods_not_allowed(client, method):
    r = client.request(method, "/whatsapp/send-message")
    assert r.status_code == 405
    assert r.json() == {"error": "method_not_allowed"}


def test_float_phone_renders_like_integer(client, provider):
    _use(WebhookConfig(url="https://hooks.example.com/wa"), provider)
    r = client.post("/whatsapp/send-message", json={"phone": 11987654321.0, "message": "Oi"})
    assert r.status_code == 200
    assert r.json()["phone"] == "5511987654321"


def test_health_reports_provider(client, provider):
    _use(WebhookConfig(url="https://hooks.example.com/wa"), provider)
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["provider"] == "webhook"
    assert r.json()["ok"] is True
