from __future__ import annotations

from typing import Any, Dict, Protocol

from messaging.response_reader import ResponseBody


class ProviderError(RuntimeError):
    """A provider adapter gave up; str(e) is surfaced to the caller verbatim."""


class OutboundProvider(Protocol):
    name: str

    def send_message(self, phone: str, message: str, metadata: Dict[str, Any]) -> ResponseBody:
        """
        Deliver one text message to an already-normalized phone.
        Raises ProviderError when the provider rejects it, httpx.HTTPError on transport failure.
        """
        ...
