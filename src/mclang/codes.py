"""Formatting code engine for section-sign markup."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import ClassVar, Iterator

MARKER = "§"


class FormatCode(Enum):
    """인라인 포맷 코드 (marker 다음 한 글자)."""

    BLACK = ("0", "Black", "#000000")
    DARK_BLUE = ("1", "Dark Blue", "#0000AA")
    DARK_GREEN = ("2", "Dark Green", "#00AA00")
    DARK_AQUA = ("3", "Dark Aqua", "#00AAAA")
    DARK_RED = ("4", "Dark Red", "#AA0000")
    DARK_PURPLE = ("5", "Dark Purple", "#AA00AA")
    GOLD = ("6", "Gold", "#FFAA00")
    GRAY = ("7", "Gray", "#AAAAAA")
    DARK_GRAY = ("8", "Dark Gray", "#555555")
    BLUE = ("9", "Blue", "#5555FF")
    GREEN = ("a", "Green", "#55FF55")
    AQUA = ("b", "Aqua", "#55FFFF")
    RED = ("c", "Red", "#FF5555")
    LIGHT_PURPLE = ("d", "Light Purple", "#FF55FF")
    YELLOW = ("e", "Yellow", "#FFFF55")
    WHITE = ("f", "White", "#FFFFFF")
    OBFUSCATED = ("k", "Obfuscated", None)
    BOLD = ("l", "Bold", None)
    STRIKETHROUGH = ("m", "Strikethrough", None)
    UNDERLINE = ("n", "Underline", None)
    ITALIC = ("o", "Italic", None)
    RESET = ("r", "Reset", None)

    def __init__(self, char: str, label: str, color: str | None) -> None:
        self.char = char
        self.label = label
        self.color = color

    @property
    def is_color(self) -> bool:
        return self.color is not None

    @property
    def sequence(self) -> str:
        return MARKER + self.char

    @classmethod
    def lookup(cls, ch: str) -> FormatCode | None:
        """코드 문자로 조회 (대소문자 무시). 알 수 없으면 None."""
        return _BY_CHAR.get(ch.lower())


_BY_CHAR: dict[str, FormatCode] = {code.char: code for code in FormatCode}

# modifier 코드 -> StyleState 필드명
_MODIFIER_FIELD = {
    FormatCode.BOLD: "bold",
    FormatCode.ITALIC: "italic",
    FormatCode.STRIKETHROUGH: "strikethrough",
    FormatCode.UNDERLINE: "underline",
    FormatCode.OBFUSCATED: "obfuscated",
}


@dataclass(frozen=True)
class StyleState:
    """지금까지 적용된 코드의 누적 효과: 색상 + 5개 modifier."""

    color: str | None = None
    bold: bool = False
    italic: bool = False
    strikethrough: bool = False
    underline: bool = False
    obfuscated: bool = False

    DEFAULT: ClassVar[StyleState]

    @property
    def is_default(self) -> bool:
        return self == StyleState.DEFAULT

    def apply(self, code: FormatCode | None) -> StyleState:
        """Return the state after *code*.

        A color resets every modifier, ``r`` resets everything, a modifier
        sets only its own flag and an unknown code changes nothing.
        """
        if code is None:
            return self
        if code.is_color:
            return StyleState(color=code.color)
        if code is FormatCode.RESET:
            return StyleState.DEFAULT
        return replace(self, **{_MODIFIER_FIELD[code]: True})


StyleState.DEFAULT = StyleState()


@dataclass(frozen=True)
class StyledRun:
    """[start, end) 구간과 그 구간에 적용되는 StyleState."""

    start: int
    end: int
    state: StyleState

    def text_of(self, source: str, base: int = 0) -> str:
        return source[self.start - base : self.end - base]


def iter_runs(
    text: str, *, keep_default: bool = False, base: int = 0
) -> Iterator[StyledRun]:
    """Yield the styled runs of *text* in order.

    Marker sequences are never part of a run. With ``keep_default`` the
    plain runs are emitted too, so the runs cover every visible character.
    Offsets are shifted by *base*.
    """
    n = len(text)
    state = StyleState.DEFAULT
    run_start = 0 if keep_default else -1
    i = 0
    while i < n:
        if text[i] != MARKER or i + 1 >= n:
            i += 1
            continue
        if run_start != -1 and i > run_start:
            yield StyledRun(base + run_start, base + i, state)
        state = state.apply(FormatCode.lookup(text[i + 1]))
        i += 2
        run_start = i if keep_default or not state.is_default else -1
    if run_start != -1 and run_start < n:
        if keep_default or not state.is_default:
            yield StyledRun(base + run_start, base + n, state)


def strip_codes(text: str) -> str:
    """포맷 코드를 제거한 표시 문자열."""
    return "".join(
        text[run.start : run.end] for run in iter_runs(text, keep_default=True)
    )
