from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Literal

import httpx

log = logging.getLogger("outbound.response_reader")

BodyKind = Literal["json", "text", "empty"]


@dataclass(frozen=True)
class ResponseBody:
    """
    Best-effort payload of a provider response.

    kind == "empty" means the body could not be read or parsed; value is then "".
    Success or failure of a send is never decided from this object, only from
    the HTTP status code.
    """

    kind: BodyKind
    value: Any

    @classmethod
    def empty(cls) -> "ResponseBody":
        return cls(kind="empty", value="")


def read_body(response: httpx.Response) -> ResponseBody:
    content_type = response.headers.get("content-type", "")
    try:
        if "application/json" in content_type:
            return ResponseBody(kind="json", value=response.json())
        return ResponseBody(kind="text", value=response.text)
    except (ValueError, httpx.HTTPError, httpx.StreamError) as e:
        log.debug(
            "response_body_unreadable",
            extra={
                "extra": {
                    "event": "response_body_unreadable",
                    "status_code": response.status_code,
                    "content_type": content_type,
                    "error_type": type(e).__name__,
                }
            },
        )
        return ResponseBody.empty()
