from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict

ProviderName = Literal["webhook", "zapi"]


def _as_text(v: Any) -> str:
    # JSON scalars render the way JavaScript's String() does: 1.0 -> "1", true -> "true".
    if v is None:
        return ""
    if isinstance(v, bool):
        return "true" if v else "false"
    if isinstance(v, float) and v.is_integer():
        return str(int(v))
    return str(v)


@dataclass(frozen=True)
class SendRequest:
    phone: str
    message: str
    metadata: Dict[str, Any] = field(default_factory=dict)


class SendMessagePayload(BaseModel):
    """
    Inbound body of POST /whatsapp/send-message.

    Callers use either naming: phone|to and message|text. The first non-null
    alias wins (phone over to, message over text). Values are taken as-is here
    and only stringified when turned into a SendRequest.
    """

    model_config = ConfigDict(extra="ignore")

    phone: Any = None
    to: Any = None
    message: Any = None
    text: Any = None
    metadata: Any = None

    @classmethod
    def from_json(cls, data: Any) -> "SendMessagePayload":
        # Non-object JSON (list, string, number) is treated as an empty body.
        return cls.model_validate(data if isinstance(data, dict) else {})

    def to_send_request(self) -> SendRequest:
        phone = self.phone if self.phone is not None else self.to
        message = self.message if self.message is not None else self.text
        metadata = self.metadata if isinstance(self.metadata, dict) else {}
        return SendRequest(phone=_as_text(phone), message=_as_text(message), metadata=dict(metadata))


class DeliveryResult(BaseModel):
    status: Literal["sent"] = "sent"
    provider: ProviderName
    phone: str


class ErrorResponse(BaseModel):
    error: str
    message: Optional[str] = None
    request_id: Optional[str] = None
