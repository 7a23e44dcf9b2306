"""GitHub Git Data API 的精簡非同步客戶端。"""
from __future__ import annotations

import base64
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from app.core.config import Settings


class StoreError(Exception):
    """版本庫 API 呼叫失敗。"""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class StoreNotFoundError(StoreError):
    """指定的路徑或物件不存在。"""


def _encode_path(path: str) -> str:
    """逐段百分比編碼，避免 `#`、`%` 等字元被當成 URL 語法。"""

    return "/".join(quote(segment, safe="") for segment in path.split("/"))


class GitHubStore:
    """封裝分支、樹、提交與參照的讀寫操作。"""

    def __init__(
        self,
        *,
        client: httpx.AsyncClient,
        repository: str,
    ) -> None:
        if not repository or "/" not in repository:
            raise ValueError("TARGET_REPO 必須為 owner/name 格式")
        self._client = client
        self._repository = repository

    async def get_branch_head(self, branch: str) -> str:
        data = await self._request("GET", f"git/ref/heads/{branch}")
        return data["object"]["sha"]

    async def get_commit_tree(self, commit_sha: str) -> str:
        data = await self._request("GET", f"git/commits/{commit_sha}")
        return data["tree"]["sha"]

    async def read_file(self, path: str, *, ref: Optional[str] = None) -> Optional[str]:
        """讀取檔案內容，不存在時回傳 None。"""

        params = {"ref": ref} if ref else None
        try:
            data = await self._request("GET", f"contents/{_encode_path(path)}", params=params)
        except StoreNotFoundError:
            return None
        if isinstance(data, list) or data.get("type") != "file":
            raise StoreError(f"{path} 不是一般檔案")
        # 超過 1MB 的檔案 contents API 不回傳內容（encoding 為 none）
        if data.get("encoding") != "base64":
            raise StoreError(f"{path} 無法透過 contents API 取得內容 (encoding={data.get('encoding')})")
        return base64.b64decode(data.get("content", "")).decode("utf-8")

    async def create_tree(self, base_tree: str, entries: List[Dict[str, Any]]) -> str:
        data = await self._request("POST", "git/trees", json={"base_tree": base_tree, "tree": entries})
        return data["sha"]

    async def create_commit(self, *, message: str, tree: str, parents: List[str]) -> str:
        data = await self._request(
            "POST",
            "git/commits",
            json={"message": message, "tree": tree, "parents": parents},
        )
        return data["sha"]

    async def update_branch(self, branch: str, commit_sha: str) -> None:
        """移動分支參照；不強制覆寫，分支已前進時由 API 拒絕。"""

        await self._request(
            "PATCH",
            f"git/refs/heads/{branch}",
            json={"sha": commit_sha, "force": False},
        )

    async def _request(self, method: str, endpoint: str, **kwargs: Any) -> Any:
        url = f"/repos/{self._repository}/{endpoint}"
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise StoreError(f"GitHub API 連線失敗: {exc}") from exc

        if response.status_code == 404:
            raise StoreNotFoundError(f"{endpoint} not found", status_code=404)
        if response.is_error:
            raise StoreError(
                f"GitHub API {method} {endpoint} 回傳 {response.status_code}: {response.text}",
                status_code=response.status_code,
            )
        return response.json()


def create_github_client(settings: Settings) -> httpx.AsyncClient:
    """建立帶有認證標頭的 GitHub HTTP 客戶端。"""

    headers = {
        "Accept": "application/vnd.github+json",
        "X-GitHub-Api-Version": "2022-11-28",
    }
    if settings.github_token:
        headers["Authorization"] = f"Bearer {settings.github_token}"
    return httpx.AsyncClient(
        base_url=settings.github_api_base,
        headers=headers,
        timeout=settings.http_timeout_seconds,
    )
