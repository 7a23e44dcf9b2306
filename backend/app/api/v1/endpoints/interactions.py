"""Discord Interactions Endpoint。"""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from app.core.config import settings
from app.core.security import SIGNATURE_HEADER, TIMESTAMP_HEADER, SignatureVerifier
from app.services.dispatcher import InteractionDispatcher
from app.services.job_queue import CeleryJobQueue

router = APIRouter(prefix="/interactions", tags=["interactions"])

_dispatcher: InteractionDispatcher | None = None


def get_dispatcher() -> InteractionDispatcher:
    """提供 FastAPI 依賴注入的 InteractionDispatcher。"""

    global _dispatcher
    if _dispatcher is None:
        if not settings.discord_public_key:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail={"error": {"code": "DISCORD_CONFIGURATION_ERROR", "message": "尚未設定 DISCORD_PUBLIC_KEY"}},
            )
        # 延遲載入，避免 API 行程在匯入階段就建立 Celery 連線設定
        from app.core.celery_app import celery_app

        _dispatcher = InteractionDispatcher(
            verifier=SignatureVerifier(settings.discord_public_key),
            job_queue=CeleryJobQueue(celery_app, settings.worker_task_name),
            max_audio_bytes=settings.max_audio_bytes,
        )
    return _dispatcher


@router.post("", summary="接收 Discord Interaction")
async def receive_interaction(
    request: Request,
    dispatcher: InteractionDispatcher = Depends(get_dispatcher),
) -> Response:
    """驗證簽章後立即回覆，耗時處理交由背景作業。"""

    raw_body = await request.body()
    ack = await run_in_threadpool(
        dispatcher.handle,
        raw_body,
        request.headers.get(SIGNATURE_HEADER),
        request.headers.get(TIMESTAMP_HEADER),
    )
    if ack.body is None:
        return Response(status_code=ack.status_code)
    return JSONResponse(status_code=ack.status_code, content=ack.body)
