"""系統健康檢查端點。"""
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter

from app.core.config import settings

# router 專責提供系統層資訊路由
router = APIRouter(prefix="/system", tags=["system"])


@router.get("/health", summary="查詢系統健康狀態")
async def read_health() -> dict[str, Any]:
    """回傳服務狀態與外部整合的設定狀況，不揭露任何金鑰。"""

    integrations = {
        "discord": bool(settings.discord_public_key),
        "gemini": bool(settings.gemini_api_key),
        "github": bool(settings.github_token and settings.target_repo),
    }
    return {
        "status": "ok",
        "service": settings.project_name,
        "branch": settings.target_branch,
        "integrations": integrations,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
