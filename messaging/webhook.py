from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from config.settings import WebhookConfig
from messaging.base import ProviderError
from messaging.response_reader import ResponseBody, read_body
from ops.metrics import Timer
from utils.redact import dest_hint

log = logging.getLogger("outbound.webhook")


class WebhookError(ProviderError):
    def __init__(self, status_code: int):
        super().__init__(f"webhook_http_{status_code}")
        self.status_code = status_code


class WebhookClient:
    name = "webhook"

    def __init__(self, config: WebhookConfig, http: Optional[httpx.Client] = None, timeout: float = 20.0):
        self.config = config
        self.http = http or httpx.Client()
        self.timeout = timeout

    def build_headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        token = self.config.token
        if token:
            header_name = self.config.auth_header_name
            headers[header_name] = f"Bearer {token}" if header_name.lower() == "authorization" else token
        return headers

    def build_body(self, phone: str, message: str, metadata: Dict[str, Any]) -> Dict[str, Any]:
        # Operator extras are merged last and may override the built fields.
        return {
            "phone": phone,
            "to": phone,
            "message": message,
            "text": message,
            "metadata": metadata,
            **self.config.extra,
        }

    def send_message(self, phone: str, message: str, metadata: Dict[str, Any]) -> ResponseBody:
        t = Timer()
        r = self.http.post(
            self.config.url,
            json=self.build_body(phone, message, metadata),
            headers=self.build_headers(),
            timeout=self.timeout,
        )
        body = read_body(r)
        log.info(
            "webhook_send_result",
            extra={
                "extra": {
                    "event": "webhook_send_result",
                    "dest": dest_hint(phone),
                    "ok": r.is_success,
                    "status_code": r.status_code,
                    "latency_ms": t.ms(),
                }
            },
        )
        # No retry: the operator's webhook is expected to be reliable.
        if not r.is_success:
            raise WebhookError(r.status_code)
        return body
