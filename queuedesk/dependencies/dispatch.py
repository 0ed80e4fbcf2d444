from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request

from queuedesk.dispatch.service import QueueDeskService


async def get_queue_service(request: Request) -> QueueDeskService:
    service = getattr(request.app.state, "queue_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Dispatch service is not configured")
    return service


QueueService = Annotated[QueueDeskService, Depends(get_queue_service)]
