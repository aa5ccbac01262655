from __future__ import annotations

import logging
import os
from dataclasses import replace
from typing import Optional

import httpx

from config.settings import ProviderConfig, Settings, WebhookConfig, ZapiConfig, resolve_provider_config
from messaging.base import OutboundProvider, ProviderError
from messaging.phone import is_valid_phone, normalize_phone
from messaging.webhook import WebhookClient
from messaging.zapi import ZapiClient
from models.schema import DeliveryResult, SendRequest
from ops.metrics import Timer
from utils.redact import dest_hint

log = logging.getLogger("outbound.dispatcher")


class DispatchError(Exception):
    def __init__(self, error: str, message: str, status_code: int):
        super().__init__(error)
        self.error = error
        self.message = message
        self.status_code = status_code

    @classmethod
    def invalid_payload(cls) -> "DispatchError":
        return cls("invalid_payload", "Request body is not valid JSON.", 400)

    @classmethod
    def invalid_phone(cls) -> "DispatchError":
        return cls("invalid_phone", "Invalid WhatsApp phone number.", 400)

    @classmethod
    def invalid_message(cls) -> "DispatchError":
        return cls("invalid_message", "Message is empty.", 400)

    @classmethod
    def not_configured(cls) -> "DispatchError":
        return cls(
            "whatsapp_outbound_not_configured",
            "Outbound WhatsApp delivery is not configured on this server.",
            503,
        )

    @classmethod
    def send_failed(cls, detail: str) -> "DispatchError":
        return cls("whatsapp_send_failed", detail or "WhatsApp send failed.", 500)


class MessageDispatcher:
    """
    Validates a send request and hands it to exactly one provider.

    The provider is fixed when the dispatcher is built: the webhook when it is
    configured, Z-API otherwise, nothing if neither is. There is no fallback from
    one provider to another and no retry at this layer.
    """

    def __init__(self, config: ProviderConfig, http: Optional[httpx.Client] = None, timeout: float = 20.0):
        self.config = config
        self.http = http
        self.timeout = timeout
        self._provider: Optional[OutboundProvider] = None

    @classmethod
    def from_settings(cls, s: Settings, http: Optional[httpx.Client] = None) -> "MessageDispatcher":
        return cls(resolve_provider_config(s), http=http, timeout=s.OUTBOUND_TIMEOUT_SECONDS)

    @property
    def provider_name(self) -> Optional[str]:
        if isinstance(self.config, WebhookConfig):
            return WebhookClient.name
        if isinstance(self.config, ZapiConfig):
            return ZapiClient.name
        return None

    def select_provider(self) -> Optional[OutboundProvider]:
        if self._provider is None:
            if isinstance(self.config, WebhookConfig):
                self._provider = WebhookClient(self.config, http=self.http, timeout=self.timeout)
            elif isinstance(self.config, ZapiConfig):
                self._provider = ZapiClient(self.config, http=self.http, timeout=self.timeout)
        return self._provider

    def validate(self, req: SendRequest) -> SendRequest:
        phone = normalize_phone(req.phone)
        if not is_valid_phone(phone):
            raise DispatchError.invalid_phone()
        message = req.message.strip()
        if not message:
            raise DispatchError.invalid_message()
        return replace(req, phone=phone, message=message)

    def dispatch(self, req: SendRequest) -> DeliveryResult:
        rev = os.getenv("K_REVISION") or ""
        try:
            req = self.validate(req)
        except DispatchError as e:
            log.info(
                "message_send_rejected",
                extra={"extra": {"event": "message_send_rejected", "error": e.error, "revision": rev}},
            )
            raise

        provider = self.select_provider()
        if provider is None:
            log.warning(
                "provider_not_configured",
                extra={"extra": {"event": "provider_not_configured", "dest": dest_hint(req.phone), "revision": rev}},
            )
            raise DispatchError.not_configured()

        t = Timer()
        log.info(
            "message_send_attempt",
            extra={
                "extra": {
                    "event": "message_send_attempt",
                    "channel": "whatsapp",
                    "provider": provider.name,
                    "dest": dest_hint(req.phone),
                    "revision": rev,
                }
            },
        )
        try:
            provider.send_message(req.phone, req.message, req.metadata)
        except (ProviderError, httpx.HTTPError, httpx.InvalidURL) as e:
            log.error(
                "message_send_failed",
                extra={
                    "extra": {
                        "event": "message_send_failed",
                        "channel": "whatsapp",
                        "provider": provider.name,
                        "dest": dest_hint(req.phone),
                        "error_type": type(e).__name__,
                        "message": str(e),
                        "latency_ms": t.ms(),
                        "revision": rev,
                    }
                },
                exc_info=not isinstance(e, ProviderError),
            )
            raise DispatchError.send_failed(str(e)) from e

        log.info(
            "message_send_result",
            extra={
                "extra": {
                    "event": "message_send_result",
                    "channel": "whatsapp",
                    "provider": provider.name,
                    "dest": dest_hint(req.phone),
                    "ok": True,
                    "latency_ms": t.ms(),
                    "revision": rev,
                }
            },
        )
        return DeliveryResult(provider=provider.name, phone=req.phone)
