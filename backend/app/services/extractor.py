"""解析 Gemini 回傳的 Markdown，取出標題、關鍵字與摘要。

輸出格式約定（缺少任一段落時皆需容忍）::

    # <標題>
    ## キーワード
    <以逗號或換行分隔的關鍵字>
    ## 要約
    <摘要>
    ## 文字起こし
    <全文>
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Callable, List, Optional

DEFAULT_TITLE = "No Title"
SUMMARY_FALLBACK = "要約の抽出に失敗しました。"

KEYWORDS_HEADING = "キーワード"
SUMMARY_HEADING = "要約"
TRANSCRIPT_HEADING = "文字起こし"

_TITLE_PATTERN = re.compile(r"^#[ \t]+(.+)$", re.MULTILINE)
_KEYWORD_SEPARATORS = re.compile(r"[,，、\n\r]+")
_BULLET_PREFIX = re.compile(r"^[-*・]\s+")
_PLACEHOLDER = re.compile(r"^[-‐–—ー―・*]+$")


def _section_pattern(heading: str) -> re.Pattern[str]:
    # 段落範圍：該標題之後直到下一個標題或全文結尾
    return re.compile(
        rf"^##[ \t]*{re.escape(heading)}[ \t]*\n?(.*?)(?=^#|\Z)",
        re.MULTILINE | re.DOTALL,
    )


_KEYWORDS_SECTION = _section_pattern(KEYWORDS_HEADING)
_SUMMARY_SECTION = _section_pattern(SUMMARY_HEADING)
_TRANSCRIPT_SECTION = _section_pattern(TRANSCRIPT_HEADING)


@dataclass(frozen=True)
class ExtractedMemo:
    """單次推論輸出的結構化結果。"""

    title: str
    summary: str
    full_text: str
    keywords: List[str] = field(default_factory=list)
    transcript: Optional[str] = None


def extract_title(text: str) -> str:
    match = _TITLE_PATTERN.search(text)
    if match is None:
        return DEFAULT_TITLE
    title = match.group(1).strip()
    return title or DEFAULT_TITLE


def split_keywords(raw: str) -> List[str]:
    """拆解關鍵字段落，去除空白、佔位符與重複項目並保留出現順序。"""

    keywords: List[str] = []
    for token in _KEYWORD_SEPARATORS.split(raw):
        keyword = _BULLET_PREFIX.sub("", token.strip()).strip()
        if not keyword or _PLACEHOLDER.match(keyword):
            continue
        if keyword not in keywords:
            keywords.append(keyword)
    return keywords


def extract_section(pattern: re.Pattern[str], text: str) -> Optional[str]:
    match = pattern.search(text)
    if match is None:
        return None
    return match.group(1).strip()


def extract_summary(text: str) -> str:
    summary = extract_section(_SUMMARY_SECTION, text)
    return summary if summary is not None else SUMMARY_FALLBACK


def extract_memo(text: str, link_for: Callable[[str], str]) -> ExtractedMemo:
    """解析推論輸出；`link_for` 將關鍵字轉為指向索引文件的 Markdown 連結。"""

    title = extract_title(text)
    summary = extract_summary(text)
    transcript = extract_section(_TRANSCRIPT_SECTION, text)

    keyword_match = _KEYWORDS_SECTION.search(text)
    if keyword_match is None:
        return ExtractedMemo(
            title=title,
            summary=summary,
            full_text=text,
            keywords=[],
            transcript=transcript,
        )

    keywords = split_keywords(keyword_match.group(1))
    linked = ", ".join(link_for(keyword) for keyword in keywords)
    rewritten_block = f"## {KEYWORDS_HEADING}\n{linked}\n\n"
    full_text = text[: keyword_match.start()] + rewritten_block + text[keyword_match.end():]

    return ExtractedMemo(
        title=title,
        summary=summary,
        full_text=full_text,
        keywords=keywords,
        transcript=transcript,
    )
