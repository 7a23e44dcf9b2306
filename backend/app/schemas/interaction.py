"""Discord Interaction 相關的 Pydantic Schema。"""
from __future__ import annotations

from enum import IntEnum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class InteractionType(IntEnum):
    """Discord 傳入的 Interaction 類型。"""

    PING = 1
    APPLICATION_COMMAND = 2


class InteractionResponseType(IntEnum):
    """回應 Discord 的 Interaction Response 類型。"""

    PONG = 1
    CHANNEL_MESSAGE_WITH_SOURCE = 4
    DEFERRED_CHANNEL_MESSAGE_WITH_SOURCE = 5


class Attachment(BaseModel):
    """訊息附件資訊。"""

    model_config = ConfigDict(extra="ignore")

    url: str
    content_type: Optional[str] = None
    size: int = 0

    @property
    def is_audio(self) -> bool:
        return bool(self.content_type) and self.content_type.startswith("audio/")


class ResolvedMessage(BaseModel):
    """被右鍵選取的目標訊息。"""

    model_config = ConfigDict(extra="ignore")

    attachments: List[Attachment] = Field(default_factory=list)


class ResolvedData(BaseModel):
    model_config = ConfigDict(extra="ignore")

    messages: Dict[str, ResolvedMessage] = Field(default_factory=dict)


class InteractionData(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    target_id: Optional[str] = None
    resolved: Optional[ResolvedData] = None


class Interaction(BaseModel):
    """Discord 傳入的指令請求，接收後不再變更。"""

    model_config = ConfigDict(extra="ignore", frozen=True)

    type: int
    token: Optional[str] = None
    application_id: Optional[str] = None
    channel_id: Optional[str] = None
    data: Optional[InteractionData] = None

    def target_attachments(self) -> List[Attachment]:
        """取得目標訊息的附件清單，缺少任何一層時回傳空清單。"""

        if self.data is None or self.data.resolved is None or not self.data.target_id:
            return []
        message = self.data.resolved.messages.get(self.data.target_id)
        if message is None:
            return []
        return list(message.attachments)

    def first_audio_attachment(self) -> Optional[Attachment]:
        """挑出第一個 `audio/` 類型的附件。"""

        return next((item for item in self.target_attachments() if item.is_audio), None)


class InteractionResponse(BaseModel):
    """回傳給 Discord 的確認訊息。"""

    type: InteractionResponseType
    data: Optional[Dict[str, Any]] = None

    @classmethod
    def pong(cls) -> "InteractionResponse":
        return cls(type=InteractionResponseType.PONG)

    @classmethod
    def deferred(cls) -> "InteractionResponse":
        return cls(type=InteractionResponseType.DEFERRED_CHANNEL_MESSAGE_WITH_SOURCE)

    @classmethod
    def message(cls, content: str) -> "InteractionResponse":
        return cls(
            type=InteractionResponseType.CHANNEL_MESSAGE_WITH_SOURCE,
            data={"content": content},
        )
