from __future__ import annotations

import uuid
from contextvars import ContextVar, Token
from typing import Optional

_request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def new_request_id(inbound: Optional[str] = None) -> str:
    return (inbound or "").strip() or str(uuid.uuid4())


def bind_request_id(rid: str) -> Token:
    return _request_id_var.set(rid or "")


def reset_request_id(token: Token) -> None:
    _request_id_var.reset(token)


def get_request_id() -> str:
    return _request_id_var.get() or ""
