from __future__ import annotations

import logging
from functools import lru_cache

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, PlainTextResponse

from config.settings import settings
from messaging.dispatcher import DispatchError, MessageDispatcher
from models.schema import SendMessagePayload

log = logging.getLogger("outbound.router.messaging")
router = APIRouter()

SEND_MESSAGE_PATH = "/whatsapp/send-message"


@lru_cache
def get_dispatcher() -> MessageDispatcher:
    # Provider config is resolved once per process.
    return MessageDispatcher.from_settings(settings)


@router.post(SEND_MESSAGE_PATH)
async def send_message(request: Request, dispatcher: MessageDispatcher = Depends(get_dispatcher)):
    try:
        data = await request.json()
    except ValueError:
        raise DispatchError.invalid_payload()

    req = SendMessagePayload.from_json(data).to_send_request()
    # Outbound calls are blocking httpx requests.
    result = await run_in_threadpool(dispatcher.dispatch, req)
    return JSONResponse(status_code=200, content=result.model_dump(), headers={"Cache-Control": "no-store"})


@router.options(SEND_MESSAGE_PATH)
def send_message_preflight():
    return PlainTextResponse("ok")
