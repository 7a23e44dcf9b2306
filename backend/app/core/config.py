"""核心設定模組。"""
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """系統設定載入器，統一管理環境變數。"""

    api_v1_prefix: str = "/v1"
    project_name: str = "VoiceMemo Bot"

    discord_public_key: str | None = None
    discord_bot_token: str | None = None
    discord_application_id: str | None = None
    discord_api_base: str = "https://discord.com/api/v10"

    gemini_api_key: str | None = None
    gemini_model: str = "gemini-2.5-flash"
    gemini_api_base: str = "https://generativelanguage.googleapis.com/v1beta"

    github_token: str | None = None
    github_api_base: str = "https://api.github.com"
    target_repo: str | None = None
    target_branch: str = "main"

    transcript_channel_id: str | None = None
    summary_channel_id: str | None = None

    memo_root: str = "音声メモ"
    keyword_root: str = "キーワード"
    max_audio_bytes: int = 20 * 1024 * 1024
    http_timeout_seconds: float = 60.0

    redis_url: str = "redis://localhost:6379/0"
    celery_broker_url: str | None = None
    celery_result_url: str | None = None
    worker_task_name: str = "app.tasks.orchestrator.process_voice_memo"
    broker_connect_timeout_seconds: float = 1.0

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """建立單例設定，避免重複解析設定來源。"""

    return Settings()


# settings 物件提供全域使用的設定值
settings: Settings = get_settings()
