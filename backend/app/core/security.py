"""Discord 請求簽章驗證工具。"""
from __future__ import annotations

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey

SIGNATURE_HEADER = "X-Signature-Ed25519"
TIMESTAMP_HEADER = "X-Signature-Timestamp"


class SignatureVerifier:
    """以 Ed25519 公鑰驗證 `timestamp + body` 的簽章。"""

    def __init__(self, public_key_hex: str) -> None:
        if not public_key_hex:
            raise ValueError("DISCORD_PUBLIC_KEY 未設定")
        self._public_key = Ed25519PublicKey.from_public_bytes(bytes.fromhex(public_key_hex))

    def verify(self, body: bytes, signature: str | None, timestamp: str | None) -> bool:
        """簽章合法時回傳 True，格式錯誤或不符皆回傳 False。"""

        if not signature or not timestamp:
            return False
        try:
            signature_bytes = bytes.fromhex(signature)
        except ValueError:
            return False

        try:
            self._public_key.verify(signature_bytes, timestamp.encode("utf-8") + body)
        except (InvalidSignature, ValueError):
            return False
        return True

