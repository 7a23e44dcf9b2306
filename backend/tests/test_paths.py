"""文件路徑規則測試。"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

from app.services.paths import DocumentPathPlanner, sanitize_name

FIXED_NOW = datetime(2025, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


def _planner() -> DocumentPathPlanner:
    return DocumentPathPlanner(memo_root="音声メモ", keyword_root="キーワード")


def test_sanitize_replaces_unsafe_characters() -> None:
    assert sanitize_name('a\\b/c:d*e?f"g<h>i|j') == "a_b_c_d_e_f_g_h_i_j"


def test_sanitize_is_idempotent() -> None:
    """已清理過的字串再清理一次不會改變。"""

    once = sanitize_name('Q&A: "2025/01"?')
    assert sanitize_name(once) == once


def test_summary_location_uses_utc_timestamp() -> None:
    location = _planner().summary_location("Meeting: Notes", FIXED_NOW)

    assert location.file_name == "20250102030405_Meeting_ Notes.md"
    assert location.path == "音声メモ/2025/01/20250102030405_Meeting_ Notes.md"
    assert (location.year, location.month) == ("2025", "01")


def test_summary_location_converts_to_utc() -> None:
    """非 UTC 時間會先換算成 UTC 再決定年月資料夾。"""

    tokyo = timezone(timedelta(hours=9))
    location = _planner().summary_location("t", datetime(2025, 2, 1, 5, 0, 0, tzinfo=tokyo))

    assert location.path == "音声メモ/2025/01/20250131200000_t.md"


def test_keyword_link_and_backlink_share_sanitized_paths() -> None:
    planner = _planner()
    location = planner.summary_location("Title", FIXED_NOW)

    assert planner.keyword_index_path("C/C++") == "キーワード/C_C++.md"
    assert planner.keyword_link("C/C++") == "[C/C++](../../../キーワード/C_C++.md)"
    assert planner.backlink_line(location) == (
        "- [20250102030405_Title.md](../音声メモ/2025/01/20250102030405_Title.md)"
    )
