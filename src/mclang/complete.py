"""Completion items for formatting codes, triggered by ``&&``."""

from __future__ import annotations

from dataclasses import dataclass

from .codes import FormatCode

TRIGGER = "&&"
COMPLETION_LANGUAGES = frozenset({"json", "jsonc", "plaintext", "markdown"})


@dataclass(frozen=True)
class CompletionItem:
    label: str
    insert_text: str
    filter_text: str
    detail: str
    swatch: str | None = None

    @property
    def is_color(self) -> bool:
        return self.swatch is not None


ITEMS: tuple[CompletionItem, ...] = tuple(
    CompletionItem(
        label=code.sequence,
        insert_text=code.sequence,
        filter_text=TRIGGER + code.char,
        detail=code.label,
        swatch=code.color,
    )
    for code in FormatCode
)


def completions_for(line_prefix: str, language_id: str) -> list[CompletionItem]:
    """커서 앞 문자열이 ``&&``로 끝나면 전체 코드 목록, 아니면 빈 목록.

    The returned items replace the two trigger characters.
    """
    if language_id not in COMPLETION_LANGUAGES:
        return []
    if not line_prefix.endswith(TRIGGER):
        return []
    return list(ITEMS)
