"""Lenient key/value scanning of JSON-like language files."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

# "key" : "value"  /  "key" :   (값 생략 또는 문자열 아님)
_QUOTED = r'"([^"\\]*(?:\\.[^"\\]*)*)"'
PAIR_RE = re.compile(_QUOTED + r'\s*:\s*(?:"([^"\\]*(?:\\.[^"\\]*)*)"|)')


@dataclass(frozen=True)
class ScannedEntry:
    """스캔된 key 한 건.

    ``value`` is the raw text between the value quotes, or ``None`` when the
    key is not followed by a string. ``key_start``/``key_end`` cover the
    quoted key (quotes included) and are ``None`` for entries recovered by
    the strict-parse fallback.
    """

    key: str
    value: str | None
    key_start: int | None
    key_end: int | None
    raw_key: str = ""

    @property
    def has_span(self) -> bool:
        return self.key_start is not None


def _unescape(raw: str) -> str:
    """JSON escape 해석. 잘못된 escape는 원문 유지."""
    if "\\" not in raw:
        return raw
    try:
        return json.loads(f'"{raw}"')
    except (json.JSONDecodeError, ValueError):
        return raw


def scan_entries(text: str) -> Iterator[ScannedEntry]:
    """Yield every ``"key": "value"`` / ``"key":`` occurrence in *text*.

    Never raises: braces, commas and comments around the pairs are ignored,
    duplicates are reported as they occur.
    """
    for m in PAIR_RE.finditer(text):
        raw_key = m.group(1)
        start = m.start()
        yield ScannedEntry(
            key=_unescape(raw_key),
            value=m.group(2),
            key_start=start,
            key_end=start + len(raw_key) + 2,
            raw_key=raw_key,
        )


def scan_keys(text: str) -> list[ScannedEntry]:
    """Return one entry per distinct key, in source order.

    When the lenient scan finds nothing the text is parsed strictly and the
    top-level keys are returned without spans. A parse failure raises
    ``ValueError``.
    """
    seen: dict[str, ScannedEntry] = {}
    for entry in scan_entries(text):
        seen.setdefault(entry.key, entry)
    if seen:
        return list(seen.values())

    parsed = json.loads(text)
    if not isinstance(parsed, dict):
        return []
    return [
        ScannedEntry(
            key=key,
            value=value if isinstance(value, str) else None,
            key_start=None,
            key_end=None,
            raw_key=key,
        )
        for key, value in parsed.items()
    ]


def build_skeleton(text: str) -> str:
    """모든 key를 빈 문자열로 매핑한 번역 파일 내용 (indent=4)."""
    skeleton = {entry.key: "" for entry in scan_keys(text)}
    return json.dumps(skeleton, indent=4, ensure_ascii=False)


def write_skeleton(source_text: str, target: str | Path) -> Path:
    """Build the skeleton for *source_text* and write it to *target*.

    The content is built before the file is opened, so a scan failure
    leaves nothing behind.
    """
    content = build_skeleton(source_text)
    path = Path(target)
    path.write_text(content, encoding="utf-8")
    return path


def default_target_path(source: str | Path, name: str = "new_lang.json") -> Path:
    """새 언어 파일의 기본 저장 위치 (원본과 같은 디렉토리)."""
    source = Path(source)
    candidate = source.parent / name
    if not candidate.exists():
        return candidate
    stem, suffix = candidate.stem, candidate.suffix
    n = 2
    while (source.parent / f"{stem}_{n}{suffix}").exists():
        n += 1
    return source.parent / f"{stem}_{n}{suffix}"
