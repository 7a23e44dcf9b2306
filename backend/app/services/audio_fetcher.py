"""下載 Discord 附件音訊到暫存檔。"""
from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

import httpx


class AudioFetchError(Exception):
    """音訊下載失敗。"""


@dataclass(frozen=True)
class DownloadedAudio:
    path: Path
    mime_type: str | None

    def read_bytes(self) -> bytes:
        return self.path.read_bytes()

    def cleanup(self) -> None:
        """刪除暫存檔，不存在時忽略。"""

        self.path.unlink(missing_ok=True)


class AudioFetcher:
    def __init__(self, *, client: httpx.AsyncClient, tmp_dir: str | None = None) -> None:
        self._client = client
        self._tmp_dir = tmp_dir

    async def fetch(self, url: str) -> DownloadedAudio:
        """串流下載至暫存檔，失敗時清除殘留檔案。"""

        fd, raw_path = tempfile.mkstemp(prefix="audio_", dir=self._tmp_dir)
        path = Path(raw_path)
        try:
            with os.fdopen(fd, "wb") as handle:
                async with self._client.stream("GET", url) as response:
                    response.raise_for_status()
                    content_type = response.headers.get("content-type")
                    mime_type = content_type.split(";", 1)[0].strip() if content_type else None
                    async for chunk in response.aiter_bytes():
                        handle.write(chunk)
        except httpx.HTTPError as exc:
            path.unlink(missing_ok=True)
            raise AudioFetchError(f"音声ファイルのダウンロードに失敗しました: {exc}") from exc
        except OSError:
            path.unlink(missing_ok=True)
            raise

        return DownloadedAudio(path=path, mime_type=mime_type)
