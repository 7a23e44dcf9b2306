"""背景作業投遞服務。"""
from __future__ import annotations

from typing import Protocol

from celery import Celery

from app.schemas.job import JobPayload
from app.tasks.logging import emit_log


class JobQueue(Protocol):
    def submit(self, payload: JobPayload) -> None: ...


class CeleryJobQueue:
    """以 `send_task` 投遞作業，只確認送出成功，不等待執行結果。"""

    def __init__(self, celery: Celery, task_name: str) -> None:
        self._celery = celery
        self._task_name = task_name

    def submit(self, payload: JobPayload) -> None:
        self._celery.send_task(self._task_name, args=(payload.to_message(),), retry=False)
        emit_log("dispatch", f"已投遞背景作業 task={self._task_name}")
