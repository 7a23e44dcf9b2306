"""Interaction 入口：驗證、檢查附件並投遞背景作業。

必須在 Discord 的回應期限（約 3 秒）內回覆，因此這裡只做驗證與投遞，
實際的下載、推論與提交都交給 Worker。
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional

from fastapi import status
from pydantic import ValidationError

from app.core.security import SignatureVerifier
from app.schemas.interaction import Interaction, InteractionResponse, InteractionType
from app.schemas.job import JobPayload
from app.services.job_queue import JobQueue
from app.tasks.logging import emit_error, emit_log

NO_AUDIO_MESSAGE = "❌ 音声ファイルが見つかりませんでした。"
TOO_LARGE_MESSAGE = "❌ ファイルサイズが{limit}MBを超えているため処理できません。"
SUBMISSION_FAILED_MESSAGE = "❌ システムエラーにより処理を開始できませんでした: {error}"


class DispatchError(Exception):
    """Dispatcher 的終止性錯誤，每種結果只回覆一次。"""

    error_code = "DISPATCH_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class AuthenticationError(DispatchError):
    error_code = "INVALID_SIGNATURE"


class AttachmentValidationError(DispatchError):
    error_code = "INVALID_ATTACHMENT"


class SubmissionError(DispatchError):
    error_code = "JOB_SUBMISSION_FAILED"


class MalformedInteractionError(DispatchError):
    error_code = "MALFORMED_INTERACTION"


@dataclass
class Ack:
    """同步回覆內容；`error` 記錄終止原因，成功時為 None。"""

    status_code: int
    body: Optional[Dict[str, Any]]
    error: Optional[DispatchError] = None

    @classmethod
    def respond(cls, response: InteractionResponse, error: Optional[DispatchError] = None) -> "Ack":
        return cls(
            status_code=status.HTTP_200_OK,
            body=response.model_dump(mode="json", exclude_none=True),
            error=error,
        )


class InteractionDispatcher:
    def __init__(
        self,
        *,
        verifier: SignatureVerifier,
        job_queue: JobQueue,
        max_audio_bytes: int,
    ) -> None:
        self._verifier = verifier
        self._job_queue = job_queue
        self._max_audio_bytes = max_audio_bytes

    def handle(self, raw_body: bytes, signature: Optional[str], timestamp: Optional[str]) -> Ack:
        """處理一筆 Interaction 並回傳立即回覆。"""

        if not self._verifier.verify(raw_body, signature, timestamp):
            error = AuthenticationError("invalid request signature")
            emit_log("dispatch", "Invalid signature", error_code=error.error_code)
            return Ack(
                status_code=status.HTTP_401_UNAUTHORIZED,
                body={"error": error.message},
                error=error,
            )

        try:
            interaction = Interaction.model_validate(json.loads(raw_body))
        except (ValueError, ValidationError) as exc:
            error = MalformedInteractionError(str(exc))
            emit_log("dispatch", "Interaction 格式錯誤", error_code=error.error_code)
            return Ack(
                status_code=status.HTTP_400_BAD_REQUEST,
                body={"error": "malformed interaction"},
                error=error,
            )

        if interaction.type == InteractionType.PING:
            return Ack.respond(InteractionResponse.pong())

        if interaction.type == InteractionType.APPLICATION_COMMAND:
            try:
                self._dispatch_command(interaction)
            except (AttachmentValidationError, SubmissionError) as exc:
                emit_log("dispatch", "Interaction 已拒絕", error_code=exc.error_code)
                return Ack.respond(InteractionResponse.message(exc.message), error=exc)
            return Ack.respond(InteractionResponse.deferred())

        return Ack(status_code=status.HTTP_404_NOT_FOUND, body=None)

    def _dispatch_command(self, interaction: Interaction) -> None:
        attachment = interaction.first_audio_attachment()
        if attachment is None:
            raise AttachmentValidationError(NO_AUDIO_MESSAGE)
        if attachment.size > self._max_audio_bytes:
            raise AttachmentValidationError(TOO_LARGE_MESSAGE.format(limit=self._max_audio_bytes // (1024 * 1024)))

        try:
            payload = JobPayload(
                audio_url=attachment.url,
                interaction_token=interaction.token or "",
                application_id=interaction.application_id or "",
                channel_id=interaction.channel_id,
            )
            self._job_queue.submit(payload)
        except Exception as exc:  # noqa: B902 - 投遞失敗需同步回報使用者
            emit_error("dispatch", "Worker 起動失敗")
            raise SubmissionError(SUBMISSION_FAILED_MESSAGE.format(error=exc)) from exc
