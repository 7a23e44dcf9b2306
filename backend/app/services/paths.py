"""語音備忘錄文件的命名與路徑規則。"""
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone

_UNSAFE_CHARS = re.compile(r'[\\/:*?"<>|]')


def sanitize_name(value: str) -> str:
    """將檔案系統不安全字元換成 `_`，重複套用結果不變。"""

    return _UNSAFE_CHARS.sub("_", value)


@dataclass(frozen=True)
class SummaryLocation:
    """單次處理產生的摘要文件位置。"""

    file_name: str
    path: str
    year: str
    month: str


class DocumentPathPlanner:
    """決定摘要文件與關鍵字索引文件的路徑及相互連結。"""

    def __init__(self, *, memo_root: str, keyword_root: str, extension: str = "md") -> None:
        self._memo_root = memo_root.strip("/")
        self._keyword_root = keyword_root.strip("/")
        self._extension = extension

    def summary_location(self, title: str, now: datetime | None = None) -> SummaryLocation:
        """依 UTC 時間與標題組出 `<root>/<yyyy>/<mm>/<timestamp>_<title>.<ext>`。"""

        moment = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
        stamp = moment.strftime("%Y%m%d%H%M%S")
        year = moment.strftime("%Y")
        month = moment.strftime("%m")
        file_name = f"{stamp}_{sanitize_name(title)}.{self._extension}"
        return SummaryLocation(
            file_name=file_name,
            path=f"{self._memo_root}/{year}/{month}/{file_name}",
            year=year,
            month=month,
        )

    def keyword_index_path(self, keyword: str) -> str:
        return f"{self._keyword_root}/{sanitize_name(keyword)}.{self._extension}"

    def keyword_link(self, keyword: str) -> str:
        """摘要文件內指向關鍵字索引的相對連結（摘要位於三層目錄下）。"""

        return f"[{keyword}](../../../{self.keyword_index_path(keyword)})"

    def backlink_line(self, location: SummaryLocation) -> str:
        """關鍵字索引內指回摘要文件的條目。"""

        return f"- [{location.file_name}](../{location.path})"
