from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

log = logging.getLogger("outbound.settings")

DEFAULT_AUTH_HEADER = "Authorization"
DEFAULT_ZAPI_BASE_URL = "https://api.z-api.io"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Core
    ENVIRONMENT: str = Field(default="production")
    LOG_LEVEL: str = Field(default="INFO")

    # Generic operator webhook (highest priority when URL is set)
    WHATSAPP_OUTBOUND_WEBHOOK_URL: str = Field(default="")
    WHATSAPP_OUTBOUND_WEBHOOK_TOKEN: str = Field(default="")
    WHATSAPP_OUTBOUND_AUTH_HEADER: str = Field(default=DEFAULT_AUTH_HEADER)
    WHATSAPP_OUTBOUND_WEBHOOK_EXTRA_JSON: str = Field(default="")  # JSON object merged into the body

    # Z-API
    ZAPI_API_BASE_URL: str = Field(default=DEFAULT_ZAPI_BASE_URL)
    ZAPI_INSTANCE_ID: str = Field(default="")
    ZAPI_INSTANCE_TOKEN: str = Field(default="")
    ZAPI_CLIENT_TOKEN: str = Field(default="")

    # Per-attempt outbound HTTP timeout
    OUTBOUND_TIMEOUT_SECONDS: float = Field(default=20.0)

    @field_validator("*", mode="before")
    @classmethod
    def _strip_strings(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip()
        return v


@dataclass(frozen=True)
class WebhookConfig:
    url: str
    token: str = ""
    auth_header_name: str = DEFAULT_AUTH_HEADER
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ZapiConfig:
    instance_id: str
    instance_token: str
    base_url: str = DEFAULT_ZAPI_BASE_URL
    client_token: str = ""


ProviderConfig = Optional[Union[WebhookConfig, ZapiConfig]]


def parse_extra_json(raw: str) -> Dict[str, Any]:
    """Operator-supplied extra body fields. Anything but a JSON object yields {}."""
    raw = (raw or "").strip()
    if not raw:
        return {}
    try:
        value = json.loads(raw)
    except ValueError:
        log.warning(
            "webhook_extra_json_invalid",
            extra={"extra": {"event": "webhook_extra_json_invalid", "reason": "malformed"}},
        )
        return {}
    if not isinstance(value, dict):
        log.warning(
            "webhook_extra_json_invalid",
            extra={"extra": {"event": "webhook_extra_json_invalid", "reason": type(value).__name__}},
        )
        return {}
    return value


def resolve_provider_config(s: Settings) -> ProviderConfig:
    # Webhook wins whenever its URL is present, even if Z-API is also configured.
    if s.WHATSAPP_OUTBOUND_WEBHOOK_URL:
        return WebhookConfig(
            url=s.WHATSAPP_OUTBOUND_WEBHOOK_URL,
            token=s.WHATSAPP_OUTBOUND_WEBHOOK_TOKEN,
            auth_header_name=s.WHATSAPP_OUTBOUND_AUTH_HEADER or DEFAULT_AUTH_HEADER,
            extra=parse_extra_json(s.WHATSAPP_OUTBOUND_WEBHOOK_EXTRA_JSON),
        )
    if s.ZAPI_INSTANCE_ID and s.ZAPI_INSTANCE_TOKEN:
        return ZapiConfig(
            instance_id=s.ZAPI_INSTANCE_ID,
            instance_token=s.ZAPI_INSTANCE_TOKEN,
            base_url=s.ZAPI_API_BASE_URL or DEFAULT_ZAPI_BASE_URL,
            client_token=s.ZAPI_CLIENT_TOKEN,
        )
    return None


settings = Settings()
