"""Pydantic schemas for worker job payloads."""
from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class JobPayload(BaseModel):
    """Dispatcher 交給 Worker 的作業內容，只會被消費一次。"""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    audio_url: str = Field(alias="audioUrl")
    interaction_token: str = Field(alias="interactionToken")
    application_id: str = Field(alias="applicationId")
    channel_id: Optional[str] = Field(default=None, alias="channelId")

    def to_message(self) -> Dict[str, Any]:
        """轉為 Celery 傳遞用的 JSON 字典。"""

        return self.model_dump(by_alias=True)
