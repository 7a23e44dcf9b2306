"""測試 /v1/interactions 入口與 Dispatcher。"""
from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from fastapi.testclient import TestClient
import pytest

from app.api.v1.endpoints.interactions import get_dispatcher
from app.core.security import SignatureVerifier
from app.main import app
from app.schemas.job import JobPayload
from app.services.dispatcher import (
    AttachmentValidationError,
    AuthenticationError,
    InteractionDispatcher,
    SubmissionError,
)

MAX_BYTES = 20 * 1024 * 1024
TIMESTAMP = "1700000000"

PRIVATE_KEY = Ed25519PrivateKey.generate()
PUBLIC_KEY = PRIVATE_KEY.public_key().public_bytes(
    encoding=serialization.Encoding.Raw,
    format=serialization.PublicFormat.Raw,
).hex()


class FakeJobQueue:
    """記錄投遞內容的佇列替身。"""

    def __init__(self, error: Optional[Exception] = None) -> None:
        self.submitted: List[JobPayload] = []
        self._error = error

    def submit(self, payload: JobPayload) -> None:
        if self._error is not None:
            raise self._error
        self.submitted.append(payload)


def build_command(attachments: List[Dict[str, Any]]) -> Dict[str, Any]:
    """組出右鍵選單指令的 Interaction 內容。"""

    return {
        "type": 2,
        "token": "interaction-token",
        "application_id": "app-1",
        "channel_id": "channel-1",
        "data": {
            "name": "文字起こし",
            "type": 3,
            "target_id": "msg-1",
            "resolved": {"messages": {"msg-1": {"id": "msg-1", "attachments": attachments}}},
        },
    }


def audio_attachment(size: int = 1024, content_type: str = "audio/ogg") -> Dict[str, Any]:
    return {
        "id": "att-1",
        "filename": "memo.ogg",
        "url": "https://cdn.discordapp.com/attachments/memo.ogg",
        "content_type": content_type,
        "size": size,
    }


def signed_headers(body: bytes) -> Dict[str, str]:
    signature = PRIVATE_KEY.sign(TIMESTAMP.encode() + body).hex()
    return {"X-Signature-Ed25519": signature, "X-Signature-Timestamp": TIMESTAMP}


def build_dispatcher(queue: FakeJobQueue) -> InteractionDispatcher:
    return InteractionDispatcher(
        verifier=SignatureVerifier(PUBLIC_KEY),
        job_queue=queue,
        max_audio_bytes=MAX_BYTES,
    )


def dispatch(queue: FakeJobQueue, payload: Dict[str, Any]):
    body = json.dumps(payload).encode()
    headers = signed_headers(body)
    return build_dispatcher(queue).handle(body, headers["X-Signature-Ed25519"], headers["X-Signature-Timestamp"])


@pytest.fixture()
def queue() -> FakeJobQueue:
    return FakeJobQueue()


@pytest.fixture()
def client(queue: FakeJobQueue):
    app.dependency_overrides[get_dispatcher] = lambda: build_dispatcher(queue)
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.pop(get_dispatcher, None)


def test_invalid_signature_returns_401(client: TestClient, queue: FakeJobQueue) -> None:
    body = json.dumps(build_command([audio_attachment()])).encode()
    headers = signed_headers(b"something else")

    response = client.post("/v1/interactions", content=body, headers=headers)

    assert response.status_code == 401
    assert response.json() == {"error": "invalid request signature"}
    assert queue.submitted == []


def test_missing_signature_headers_return_401(client: TestClient, queue: FakeJobQueue) -> None:
    response = client.post("/v1/interactions", content=b'{"type":1}')

    assert response.status_code == 401
    assert queue.submitted == []


def test_ping_returns_pong(client: TestClient, queue: FakeJobQueue) -> None:
    body = b'{"type":1}'

    response = client.post("/v1/interactions", content=body, headers=signed_headers(body))

    assert response.status_code == 200
    assert response.json() == {"type": 1}
    assert queue.submitted == []


def test_audio_command_is_deferred_and_submitted(client: TestClient, queue: FakeJobQueue) -> None:
    body = json.dumps(build_command([audio_attachment()])).encode()

    response = client.post("/v1/interactions", content=body, headers=signed_headers(body))

    assert response.status_code == 200
    assert response.json() == {"type": 5}
    assert len(queue.submitted) == 1
    assert queue.submitted[0].to_message() == {
        "audioUrl": "https://cdn.discordapp.com/attachments/memo.ogg",
        "interactionToken": "interaction-token",
        "applicationId": "app-1",
        "channelId": "channel-1",
    }


def test_unknown_interaction_type_returns_404(client: TestClient, queue: FakeJobQueue) -> None:
    body = b'{"type":3}'

    response = client.post("/v1/interactions", content=body, headers=signed_headers(body))

    assert response.status_code == 404
    assert queue.submitted == []


def test_malformed_body_returns_400(client: TestClient) -> None:
    body = b"not json"

    response = client.post("/v1/interactions", content=body, headers=signed_headers(body))

    assert response.status_code == 400


def test_invalid_signature_is_authentication_error(queue: FakeJobQueue) -> None:
    body = json.dumps(build_command([audio_attachment()])).encode()

    ack = build_dispatcher(queue).handle(body, "00" * 64, TIMESTAMP)

    assert isinstance(ack.error, AuthenticationError)
    assert ack.status_code == 401
    assert queue.submitted == []


@pytest.mark.parametrize(
    "attachments",
    [
        [],
        [{"url": "https://cdn.test/a.png", "content_type": "image/png", "size": 10}],
        [{"url": "https://cdn.test/a.bin", "size": 10}],
    ],
)
def test_command_without_audio_is_rejected(queue: FakeJobQueue, attachments: List[Dict[str, Any]]) -> None:
    ack = dispatch(queue, build_command(attachments))

    assert isinstance(ack.error, AttachmentValidationError)
    assert ack.body == {"type": 4, "data": {"content": "❌ 音声ファイルが見つかりませんでした。"}}
    assert queue.submitted == []


def test_first_audio_attachment_is_selected(queue: FakeJobQueue) -> None:
    attachments = [
        {"url": "https://cdn.test/a.png", "content_type": "image/png", "size": 10},
        {"url": "https://cdn.test/first.mp3", "content_type": "audio/mpeg", "size": 10},
        {"url": "https://cdn.test/second.ogg", "content_type": "audio/ogg", "size": 10},
    ]

    ack = dispatch(queue, build_command(attachments))

    assert ack.error is None
    assert queue.submitted[0].audio_url == "https://cdn.test/first.mp3"


def test_attachment_over_limit_is_rejected(queue: FakeJobQueue) -> None:
    ack = dispatch(queue, build_command([audio_attachment(size=MAX_BYTES + 1)]))

    assert isinstance(ack.error, AttachmentValidationError)
    assert ack.body["data"]["content"] == "❌ ファイルサイズが20MBを超えているため処理できません。"
    assert queue.submitted == []


def test_attachment_at_limit_is_accepted(queue: FakeJobQueue) -> None:
    ack = dispatch(queue, build_command([audio_attachment(size=MAX_BYTES)]))

    assert ack.error is None
    assert ack.body == {"type": 5}
    assert len(queue.submitted) == 1


def test_submission_failure_is_reported_immediately() -> None:
    queue = FakeJobQueue(error=ConnectionError("broker down"))

    ack = dispatch(queue, build_command([audio_attachment()]))

    assert isinstance(ack.error, SubmissionError)
    assert ack.status_code == 200
    assert ack.body["type"] == 4
    assert "broker down" in ack.body["data"]["content"]


def test_rejection_is_logged_with_error_code(queue: FakeJobQueue, monkeypatch: pytest.MonkeyPatch) -> None:
    logged: List[Dict[str, Any]] = []
    monkeypatch.setattr(
        "app.services.dispatcher.emit_log",
        lambda stage, message, **extra: logged.append({"stage": stage, **extra}),
    )

    ack = dispatch(queue, build_command([audio_attachment(size=MAX_BYTES + 1)]))

    assert ack.error.error_code == "INVALID_ATTACHMENT"
    assert logged == [{"stage": "dispatch", "error_code": "INVALID_ATTACHMENT"}]
