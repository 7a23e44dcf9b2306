"""任務層日誌工具。"""
from __future__ import annotations

from typing import Any

from loguru import logger


def emit_log(stage: str, message: str, **payload: Any) -> None:
    """輸出任務相關日誌，附加欄位綁定於 extra 便於追蹤。"""

    logger.bind(stage=stage, **payload).info(message)


def emit_error(stage: str, message: str, **payload: Any) -> None:
    """輸出含例外堆疊的錯誤日誌，僅記錄不拋出。"""

    logger.bind(stage=stage, **payload).opt(exception=True).error(message)
