"""註冊 Discord 訊息右鍵選單指令。

執行方式::

    python -m app.commands
"""
from __future__ import annotations

import sys
from typing import Any, Dict

import httpx
from loguru import logger

from app.core.config import Settings, get_settings

COMMAND_NAME = "文字起こし"
MESSAGE_COMMAND_TYPE = 3

COMMAND_DATA: Dict[str, Any] = {
    "name": COMMAND_NAME,
    "type": MESSAGE_COMMAND_TYPE,
}


class CommandRegistrationError(Exception):
    """指令註冊失敗。"""


def register_command(settings: Settings, client: httpx.Client | None = None) -> Dict[str, Any]:
    """呼叫 Discord API 註冊全域指令並回傳 API 回應內容。"""

    if not settings.discord_application_id or not settings.discord_bot_token:
        raise CommandRegistrationError("DISCORD_APPLICATION_ID 或 DISCORD_BOT_TOKEN 未設定")

    http = client or httpx.Client(base_url=settings.discord_api_base, timeout=settings.http_timeout_seconds)
    try:
        response = http.post(
            f"/applications/{settings.discord_application_id}/commands",
            json=COMMAND_DATA,
            headers={"Authorization": f"Bot {settings.discord_bot_token}"},
        )
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise CommandRegistrationError(f"{exc.response.status_code}: {exc.response.text}") from exc
    except httpx.HTTPError as exc:
        raise CommandRegistrationError(str(exc)) from exc
    finally:
        if client is None:
            http.close()
    return response.json()


def main() -> int:
    try:
        data = register_command(get_settings())
    except CommandRegistrationError as exc:
        logger.error("コマンドの登録に失敗しました: {}", exc)
        return 1
    logger.info("コマンドの登録に成功しました: {}", data)
    return 0


if __name__ == "__main__":
    sys.exit(main())
