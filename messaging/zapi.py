from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import httpx

from config.settings import ZapiConfig
from messaging.base import ProviderError
from messaging.phone import local_phone
from messaging.response_reader import ResponseBody, read_body
from ops.metrics import Timer
from utils.redact import dest_hint

log = logging.getLogger("outbound.zapi")

PayloadBuilder = Callable[[str, str], Dict[str, Any]]

ENDPOINTS: Tuple[str, ...] = ("send-text", "send-message")

# Which field names an instance accepts depends on account and API version,
# so every known shape is tried in this order.
PAYLOAD_SHAPES: Tuple[Tuple[str, PayloadBuilder], ...] = (
    ("phone_message", lambda phone, message: {"phone": phone, "message": message}),
    ("phone_text", lambda phone, message: {"phone": phone, "text": message}),
    ("to_message", lambda phone, message: {"to": phone, "message": message}),
    ("local_phone_message", lambda phone, message: {"phone": local_phone(phone), "message": message}),
)


@dataclass(frozen=True)
class DeliveryAttempt:
    endpoint: str
    payload_shape: str
    http_status: int
    ok: bool

    def describe(self) -> str:
        return f"{self.endpoint}:{self.http_status}"


class ZapiError(ProviderError):
    def __init__(self, attempts: Sequence[DeliveryAttempt]):
        self.attempts = list(attempts)
        detail = ",".join(a.describe() for a in self.attempts)
        super().__init__(f"zapi_failed_{detail}" if detail else "zapi_failed")


class ZapiClient:
    name = "zapi"

    def __init__(
        self,
        config: ZapiConfig,
        http: Optional[httpx.Client] = None,
        timeout: float = 20.0,
        endpoints: Sequence[str] = ENDPOINTS,
        shapes: Sequence[Tuple[str, PayloadBuilder]] = PAYLOAD_SHAPES,
    ):
        self.config = config
        self.http = http or httpx.Client()
        self.timeout = timeout
        self.endpoints = tuple(endpoints)
        self.shapes = tuple(shapes)

    def endpoint_url(self, endpoint: str) -> str:
        base = self.config.base_url.rstrip("/")
        return f"{base}/instances/{self.config.instance_id}/token/{self.config.instance_token}/{endpoint}"

    def build_headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.config.client_token:
            headers["client-token"] = self.config.client_token
        return headers

    def send_message(self, phone: str, message: str, metadata: Dict[str, Any]) -> ResponseBody:
        """
        Walk (endpoint, shape) pairs in order, one POST each, and stop at the first 2xx.

        Strictly sequential: a later combination is only tried once the previous one
        was rejected, so the recipient never gets the message twice. Only the status
        code is trusted; response bodies are returned but never inspected.
        Transport errors propagate and end the search.
        """
        attempts: List[DeliveryAttempt] = []
        headers = self.build_headers()
        for endpoint in self.endpoints:
            url = self.endpoint_url(endpoint)
            for shape_name, build in self.shapes:
                t = Timer()
                r = self.http.post(
                    url,
                    json={**build(phone, message), "metadata": metadata},
                    headers=headers,
                    timeout=self.timeout,
                )
                body = read_body(r)
                attempt = DeliveryAttempt(
                    endpoint=endpoint,
                    payload_shape=shape_name,
                    http_status=r.status_code,
                    ok=r.is_success,
                )
                attempts.append(attempt)
                log.info(
                    "zapi_attempt_result",
                    extra={
                        "extra": {
                            "event": "zapi_attempt_result",
                            "dest": dest_hint(phone),
                            "endpoint": endpoint,
                            "payload_shape": shape_name,
                            "status_code": r.status_code,
                            "ok": attempt.ok,
                            "attempt": len(attempts),
                            "latency_ms": t.ms(),
                        }
                    },
                )
                if attempt.ok:
                    return body
        raise ZapiError(attempts)
