"""將多個文件包成單一提交寫入分支的原子提交引擎。"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, List, Protocol

from app.tasks.logging import emit_log

BLOB_FILE_MODE = "100644"


@dataclass(frozen=True)
class FileChange:
    path: str
    content: str


@dataclass
class ChangeSet:
    """同一次提交要寫入的所有文件，依加入順序排列且路徑不重複。"""

    changes: List[FileChange] = field(default_factory=list)

    def add(self, path: str, content: str) -> None:
        if path in self.paths:
            raise ValueError(f"ChangeSet 已包含路徑 {path}")
        self.changes.append(FileChange(path=path, content=content))

    @property
    def paths(self) -> List[str]:
        return [change.path for change in self.changes]

    def __contains__(self, path: object) -> bool:
        return path in self.paths

    def __iter__(self) -> Iterator[FileChange]:
        return iter(self.changes)

    def __len__(self) -> int:
        return len(self.changes)


class VersionedStore(Protocol):
    async def get_branch_head(self, branch: str) -> str: ...

    async def get_commit_tree(self, commit_sha: str) -> str: ...

    async def create_tree(self, base_tree: str, entries: list[dict]) -> str: ...

    async def create_commit(self, *, message: str, tree: str, parents: list[str]) -> str: ...

    async def update_branch(self, branch: str, commit_sha: str) -> None: ...


class CommitError(Exception):
    """原子提交任一步驟失敗，原因保留於 `__cause__`。"""


class AtomicCommitEngine:
    """以單一父提交建立新提交並移動分支參照，不做合併也不重試。"""

    def __init__(self, store: VersionedStore) -> None:
        self._store = store

    async def commit(self, branch: str, change_set: ChangeSet, message: str) -> str:
        """回傳新提交的 SHA；失敗時分支維持原狀。"""

        if not len(change_set):
            raise CommitError("ChangeSet 為空，沒有可提交的內容")

        try:
            head_sha = await self._store.get_branch_head(branch)
            base_tree = await self._store.get_commit_tree(head_sha)
            entries = [
                {
                    "path": change.path,
                    "mode": BLOB_FILE_MODE,
                    "type": "blob",
                    "content": change.content,
                }
                for change in change_set
            ]
            tree_sha = await self._store.create_tree(base_tree, entries)
            commit_sha = await self._store.create_commit(
                message=message,
                tree=tree_sha,
                parents=[head_sha],
            )
            # 分支若已被其他寫入者移動，此步驟會被拒絕
            await self._store.update_branch(branch, commit_sha)
        except Exception as exc:  # noqa: B902 - 統一包裝為提交失敗
            raise CommitError(f"GitHubへのアトミックコミットに失敗しました: {exc}") from exc

        emit_log(
            "commit",
            f"提交完成 branch={branch} sha={commit_sha}",
            files=len(change_set),
        )
        return commit_sha
