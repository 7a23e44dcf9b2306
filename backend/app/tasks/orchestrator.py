"""語音備忘錄處理流程 orchestrator 邏輯。"""
from __future__ import annotations

import asyncio
from contextlib import AsyncExitStack
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Protocol

import httpx
from loguru import logger

from app.core.config import Settings, get_settings
from app.schemas.job import JobPayload
from app.services.audio_fetcher import AudioFetcher, DownloadedAudio
from app.services.commit_engine import AtomicCommitEngine, ChangeSet
from app.services.discord import DiscordNotifier, create_discord_client
from app.services.extractor import ExtractedMemo, extract_memo
from app.services.gemini import GeminiClient, create_gemini_client
from app.services.github_store import GitHubStore, create_github_client
from app.services.paths import DocumentPathPlanner, SummaryLocation
from app.tasks.logging import emit_error, emit_log

COMMIT_MESSAGE = "Add voice memo summary and update keywords: {title}"


class PipelineError(Exception):
    """Worker 流程中止，訊息會回報給使用者。"""


class KeywordIndexError(Exception):
    """單一關鍵字索引準備失敗，只影響該關鍵字。"""


class IndexReader(Protocol):
    async def read_file(self, path: str, *, ref: Optional[str] = None) -> Optional[str]: ...


def build_index_content(keyword: str, existing: Optional[str], backlink: str) -> Optional[str]:
    """回傳索引文件的新內容；已含相同條目時回傳 None 表示不需變更。"""

    if existing is None:
        return f"# {keyword}\n{backlink}"
    if backlink in existing.splitlines():
        return None
    separator = "" if existing.endswith("\n") else "\n"
    return f"{existing}{separator}{backlink}"


class VoiceMemoPipeline:
    """下載 → 推論 → 解析 → 原子提交 → 通知，依序執行且不重試。"""

    def __init__(
        self,
        *,
        fetcher: AudioFetcher,
        inference: GeminiClient,
        store: IndexReader,
        committer: AtomicCommitEngine,
        notifier: DiscordNotifier,
        planner: DocumentPathPlanner,
        branch: str,
        transcript_channel_id: Optional[str] = None,
        summary_channel_id: Optional[str] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._fetcher = fetcher
        self._inference = inference
        self._store = store
        self._committer = committer
        self._notifier = notifier
        self._planner = planner
        self._branch = branch
        self._transcript_channel_id = transcript_channel_id
        self._summary_channel_id = summary_channel_id
        self._clock = clock

    async def run(self, payload: JobPayload) -> None:
        """執行整個流程；任何中止錯誤只會轉成一則失敗訊息。"""

        emit_log("process", "啟動語音備忘錄處理", application_id=payload.application_id)
        try:
            await self._process(payload)
        except PipelineError as exc:
            emit_error("process", "Worker 處理失敗")
            await self._notifier.send_followup(
                payload.application_id,
                payload.interaction_token,
                f"❌ 処理中にエラーが発生しました: {exc}",
            )

    async def _process(self, payload: JobPayload) -> None:
        await self._progress(payload, "音声ファイルを検知。処理を開始します...")
        audio: Optional[DownloadedAudio] = None
        try:
            try:
                audio = await self._fetcher.fetch(payload.audio_url)

                await self._progress(payload, "ダウンロード完了。Gemini による解析を開始...")
                text = await self._inference.generate(audio.read_bytes(), mime_type=audio.mime_type)

                await self._progress(payload, "Gemini解析完了。GitHubへの保存（アトミックコミット）を開始...")
                memo = extract_memo(text, self._planner.keyword_link)
                location = self._planner.summary_location(memo.title, self._clock())
                change_set = await self.build_change_set(memo, location)

                await self._committer.commit(
                    self._branch,
                    change_set,
                    COMMIT_MESSAGE.format(title=memo.title),
                )
            except Exception as exc:  # noqa: B902 - 背景作業沒有呼叫端可往上拋
                raise PipelineError(str(exc)) from exc

            await self._progress(payload, "GitHubへの一括保存が完了しました。最終結果を投稿します...")
            await self._broadcast(memo)
            await self._notifier.send_followup(
                payload.application_id,
                payload.interaction_token,
                f"✅ **処理完了**: 「{memo.title}」を1つのコミットで保存・投稿しました。",
            )
            emit_log("process", "語音備忘錄處理完成", path=location.path, keywords=len(memo.keywords))
        finally:
            if audio is not None:
                audio.cleanup()

    async def build_change_set(self, memo: ExtractedMemo, location: SummaryLocation) -> ChangeSet:
        """組出摘要文件與各關鍵字索引；個別關鍵字失敗時略過該項。"""

        change_set = ChangeSet()
        change_set.add(location.path, memo.full_text)
        backlink = self._planner.backlink_line(location)

        for keyword in memo.keywords:
            index_path = self._planner.keyword_index_path(keyword)
            if index_path in change_set:
                continue
            try:
                content = await self._prepare_index(keyword, index_path, backlink)
            except KeywordIndexError:
                logger.bind(stage="keyword", keyword=keyword).opt(exception=True).warning(
                    "關鍵字索引準備失敗，略過此關鍵字"
                )
                continue
            if content is not None:
                change_set.add(index_path, content)
        return change_set

    async def _prepare_index(self, keyword: str, index_path: str, backlink: str) -> Optional[str]:
        try:
            existing = await self._store.read_file(index_path, ref=self._branch)
        except Exception as exc:  # noqa: B902 - 任何讀取錯誤都只影響單一關鍵字
            raise KeywordIndexError(f"{keyword}: {exc}") from exc
        return build_index_content(keyword, existing, backlink)

    async def _broadcast(self, memo: ExtractedMemo) -> None:
        await self._notifier.post_to_channel(
            self._transcript_channel_id,
            f"📄 **文字起こし全文: {memo.title}**\n\n{memo.full_text}",
        )
        await self._notifier.post_to_channel(
            self._summary_channel_id,
            f"📌 **要約: {memo.title}**\n\n{memo.summary}",
        )

    async def _progress(self, payload: JobPayload, message: str) -> None:
        await self._notifier.send_progress(payload.application_id, payload.interaction_token, message)


async def run_voice_memo_job(settings: Settings, message: Dict[str, Any]) -> None:
    """建立外部客戶端後執行流程，結束時關閉所有連線。"""

    payload = JobPayload.model_validate(message)
    async with AsyncExitStack() as stack:
        discord_client = await stack.enter_async_context(create_discord_client(settings))
        notifier = DiscordNotifier(client=discord_client, bot_token=settings.discord_bot_token)
        try:
            download_client = await stack.enter_async_context(
                httpx.AsyncClient(timeout=settings.http_timeout_seconds, follow_redirects=True)
            )
            gemini_client = await stack.enter_async_context(create_gemini_client(settings))
            github_client = await stack.enter_async_context(create_github_client(settings))
            store = GitHubStore(client=github_client, repository=settings.target_repo or "")
            pipeline = VoiceMemoPipeline(
                fetcher=AudioFetcher(client=download_client),
                inference=GeminiClient(
                    client=gemini_client,
                    api_key=settings.gemini_api_key or "",
                    model=settings.gemini_model,
                ),
                store=store,
                committer=AtomicCommitEngine(store),
                notifier=notifier,
                planner=DocumentPathPlanner(
                    memo_root=settings.memo_root,
                    keyword_root=settings.keyword_root,
                ),
                branch=settings.target_branch,
                transcript_channel_id=settings.transcript_channel_id,
                summary_channel_id=settings.summary_channel_id,
            )
        except ValueError as exc:
            # 設定缺漏時仍需回報使用者
            emit_error("process", "Worker 設定錯誤")
            await notifier.send_followup(
                payload.application_id,
                payload.interaction_token,
                f"❌ 処理中にエラーが発生しました: {exc}",
            )
            return

        await pipeline.run(payload)


def process_voice_memo(message: Dict[str, Any]) -> None:
    """Celery 任務進入點，於 worker 行程內同步跑完整個流程。"""

    asyncio.run(run_voice_memo_job(get_settings(), message))
