"""Discord 訊息發送服務：進度、最終結果與頻道廣播。"""
from __future__ import annotations

from typing import List, Optional

import httpx
from loguru import logger

from app.core.config import Settings

PROGRESS_PREFIX = "> 🔄 **進捗**: "
MESSAGE_LIMIT = 2000


class NotificationError(Exception):
    """訊息發送失敗，只記錄不往外拋。"""


def split_message(content: str, limit: int = MESSAGE_LIMIT) -> List[str]:
    """依 Discord 字數上限切分訊息，優先在換行處斷開。"""

    chunks: List[str] = []
    remaining = content
    while len(remaining) > limit:
        cut = remaining.rfind("\n", 0, limit)
        if cut <= 0:
            cut = limit
        chunks.append(remaining[:cut])
        remaining = remaining[cut:].lstrip("\n")
    if remaining or not chunks:
        chunks.append(remaining)
    return chunks


class DiscordNotifier:
    """無狀態的發送器；任何失敗皆記錄後吞下，不影響流程。"""

    def __init__(
        self,
        *,
        client: httpx.AsyncClient,
        bot_token: Optional[str] = None,
    ) -> None:
        self._client = client
        self._bot_token = bot_token

    async def send_progress(self, application_id: str, token: str, content: str) -> bool:
        return await self.send_followup(application_id, token, f"{PROGRESS_PREFIX}{content}")

    async def send_followup(self, application_id: str, token: str, content: str) -> bool:
        """透過 interaction token 綁定的 webhook 回覆原請求。"""

        url = f"/webhooks/{application_id}/{token}"
        try:
            for chunk in split_message(content):
                await self._post(url, chunk)
        except NotificationError as exc:
            logger.bind(stage="notify").warning("Followup 送出失敗: {}", exc)
            return False
        return True

    async def post_to_channel(self, channel_id: Optional[str], content: str) -> bool:
        """以 Bot 身分發送到指定頻道，未設定頻道或 Token 時略過。"""

        if not channel_id or not self._bot_token:
            return False
        url = f"/channels/{channel_id}/messages"
        headers = {"Authorization": f"Bot {self._bot_token}"}
        try:
            for chunk in split_message(content):
                await self._post(url, chunk, headers=headers)
        except NotificationError as exc:
            logger.bind(stage="notify", channel_id=channel_id).warning("頻道訊息送出失敗: {}", exc)
            return False
        return True

    async def _post(self, url: str, content: str, headers: Optional[dict] = None) -> None:
        try:
            response = await self._client.post(url, json={"content": content}, headers=headers)
        except httpx.HTTPError as exc:
            raise NotificationError(str(exc)) from exc
        if response.is_error:
            raise NotificationError(f"{response.status_code}: {response.text}")


def create_discord_client(settings: Settings) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=settings.discord_api_base,
        timeout=settings.http_timeout_seconds,
    )
