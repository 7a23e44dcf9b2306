"""Gemini generateContent REST 客戶端。"""
from __future__ import annotations

import base64
from typing import Any, Dict

import httpx

from app.core.config import Settings

DEFAULT_AUDIO_MIME = "audio/mp3"

MEMO_PROMPT = """
この音声ファイルを文字起こしし、以下のフォーマットでMarkdownとして出力してください。
1行目はタイトル（音声の内容を要約した短いタイトル）にしてください。

# [タイトル]

## キーワード
(ここにキーワードをカンマ区切りで最大5つ程度抽出してください)

## 要約
(ここに要約)

## 文字起こし
(ここに全文文字起こし)
"""


class InferenceError(Exception):
    """推論服務回傳錯誤或無法解析的內容。"""


class GeminiClient:
    """將音訊與提示詞送往 Gemini 並取回文字輸出。"""

    def __init__(self, *, client: httpx.AsyncClient, api_key: str, model: str) -> None:
        if not api_key:
            raise ValueError("GEMINI_API_KEY 未設定")
        self._client = client
        self._api_key = api_key
        self._model = model

    async def generate(self, audio: bytes, *, mime_type: str | None = None, prompt: str = MEMO_PROMPT) -> str:
        body: Dict[str, Any] = {
            "contents": [
                {
                    "parts": [
                        {"text": prompt},
                        {
                            "inline_data": {
                                "mime_type": mime_type or DEFAULT_AUDIO_MIME,
                                "data": base64.b64encode(audio).decode("ascii"),
                            }
                        },
                    ]
                }
            ]
        }
        try:
            response = await self._client.post(
                f"/models/{self._model}:generateContent",
                json=body,
                headers={"x-goog-api-key": self._api_key},
            )
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise InferenceError(f"Gemini API 呼叫失敗: {exc}") from exc

        return self._extract_text(payload)

    @staticmethod
    def _extract_text(payload: Dict[str, Any]) -> str:
        candidates = payload.get("candidates") or []
        if not candidates:
            reason = (payload.get("promptFeedback") or {}).get("blockReason", "unknown")
            raise InferenceError(f"Gemini 未回傳任何候選結果 (reason={reason})")

        parts = (candidates[0].get("content") or {}).get("parts") or []
        text = "".join(part.get("text", "") for part in parts if isinstance(part, dict))
        if not text.strip():
            raise InferenceError("Gemini 回傳內容為空")
        return text


def create_gemini_client(settings: Settings) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=settings.gemini_api_base,
        timeout=settings.http_timeout_seconds,
    )
