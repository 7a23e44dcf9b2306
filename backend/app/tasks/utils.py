"""Celery 任務共用工具。"""
from __future__ import annotations

from celery import Celery
from loguru import logger

from app.core.config import settings
from app.tasks import orchestrator


def register_tasks(celery: Celery, task_name: str | None = None) -> None:
    """將任務邏輯註冊到 Celery 應用；不啟用自動重試。"""

    celery.task(name=task_name or settings.worker_task_name)(
        orchestrator.process_voice_memo
    )

    logger.debug("Registered Celery tasks: {}", list(celery.tasks.keys()))
