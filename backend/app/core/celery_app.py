"""Celery 應用初始化。"""
from __future__ import annotations

from celery import Celery

from app.core.config import settings
from app.tasks.utils import register_tasks


def create_celery_app() -> Celery:
    """建立 Celery 實例並載入設定。"""

    celery = Celery(
        "voicememo",
        broker=settings.celery_broker_url or settings.redis_url,
        backend=settings.celery_result_url or settings.redis_url,
    )

    celery.conf.update(
        task_default_queue="voice_memo",
        # 投遞發生在 Interaction 回應期限內，連線需快速失敗；讀取逾時需大於 BRPOP 的 1 秒輪詢
        broker_connection_timeout=settings.broker_connect_timeout_seconds,
        broker_transport_options={
            "socket_connect_timeout": settings.broker_connect_timeout_seconds,
            "socket_timeout": settings.broker_connect_timeout_seconds * 2,
        },
        task_ignore_result=True,
        task_track_started=False,
        worker_max_tasks_per_child=100,
    )

    register_tasks(celery, settings.worker_task_name)

    return celery


celery_app: Celery = create_celery_app()
