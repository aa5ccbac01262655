from __future__ import annotations

import os
import time
from typing import Any, Dict

from fastapi import APIRouter, Depends

from config.settings import settings
from messaging.dispatcher import MessageDispatcher
from app.routers.messaging import get_dispatcher

router = APIRouter()


@router.get("/health")
def health(dispatcher: MessageDispatcher = Depends(get_dispatcher)):
    # Reports configuration only; never calls a provider.
    payload: Dict[str, Any] = {
        "ok": True,
        "service": "whatsapp-outbound",
        "cloudrun_service": os.getenv("K_SERVICE") or "",
        "revision": os.getenv("K_REVISION") or "",
        "environment": settings.ENVIRONMENT,
        "provider": dispatcher.provider_name,
        "time_unix": time.time(),
    }
    return payload
