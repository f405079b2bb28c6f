"""Language-file editor widget."""

from __future__ import annotations

import bisect
import re
import unicodedata
from dataclasses import dataclass
from typing import Any

from rich.style import Style
from rich.text import Text
from textual import events
from textual.message import Message
from textual.widget import Widget

from .refdiff import Finding, Severity
from .workspace import TextDocument

_MOVES = frozenset(
    ("left", "right", "up", "down", "home", "end", "pageup", "pagedown")
)


class LangEditor(Widget, can_focus=True):
    """A plain (non-modal) text editor for language files.

    Keys:
      arrows / Home / End / PgUp / PgDn   move (with shift: select)
      ctrl+a select all   ctrl+z undo   ctrl+y redo   Escape clear selection
      typing / Backspace / Delete / Enter / Tab

    Formatting codes inside strings are drawn with the decorations set by
    ``set_decorations``; findings from ``set_diagnostics`` are underlined.
    """

    DEFAULT_CSS = """
    LangEditor {
        height: 1fr;
        background: $surface;
        padding: 0 1;
    }
    """

    # -- Messages ----------------------------------------------------------

    @dataclass
    class TextChanged(Message):
        editor: LangEditor

    @dataclass
    class SelectionChanged(Message):
        editor: LangEditor

    @dataclass
    class Scrolled(Message):
        editor: LangEditor
        top_line: int

    @dataclass
    class CompletionRequested(Message):
        editor: LangEditor
        row: int
        col: int  # 커서 위치 (트리거 "&&" 바로 뒤)
        prefix: str

    # -- Init --------------------------------------------------------------

    def __init__(
        self,
        initial_content: str = "",
        *,
        document: TextDocument | None = None,
        column: int = 0,
        read_only: bool = False,
        name: str | None = None,
        id: str | None = None,
        classes: str | None = None,
    ) -> None:
        super().__init__(name=name, id=id, classes=classes)
        if document is not None and not initial_content:
            initial_content = document.text
        self.document: TextDocument | None = document
        self.column: int = column
        self.read_only: bool = read_only
        self.lines: list[str] = initial_content.split("\n") if initial_content else [""]
        self.cursor_row: int = 0
        self.cursor_col: int = 0
        self._anchor: tuple[int, int] | None = None  # 선택 시작 (row, col)
        self.status_msg: str = ""
        self.modified: bool = False
        self.undo_stack: list[tuple[list[str], int, int]] = []
        self.redo_stack: list[tuple[list[str], int, int]] = []
        self._scroll_top: int = 0
        self._text_version: int = 0
        self._completion_at: tuple[int, int] | None = None
        # Render caches
        self._style_cache: dict[int, list[Style]] = {}
        self._cache_dirty: bool = False
        self._char_width_cache: dict[str, int] = {}
        # 외부에서 계산된 decoration / 진단
        self._decorations: dict[Style, list[tuple[int, int]]] = {}
        self._deco_by_row: dict[int, list[tuple[int, int, Style]]] = {}
        self._diagnostics: list[Finding] = []
        self._diag_by_row: dict[int, list[tuple[int, int, Finding]]] = {}

    # -- Helpers -----------------------------------------------------------

    def _invalidate_caches(self) -> None:
        """Invalidate render caches when content changes."""
        self._cache_dirty = True
        self._text_version += 1

    def _save_undo(self) -> None:
        self.undo_stack.append((self.lines[:], self.cursor_row, self.cursor_col))
        if len(self.undo_stack) > 200:
            self.undo_stack.pop(0)
        if self.redo_stack:
            self.redo_stack.clear()
        self.modified = True
        self._invalidate_caches()

    def _clamp_cursor(self) -> None:
        self.cursor_row = max(0, min(self.cursor_row, len(self.lines) - 1))
        line_len = len(self.lines[self.cursor_row])
        self.cursor_col = max(0, min(self.cursor_col, line_len))

    def _char_width(self, ch: str) -> int:
        """Return display width of a character (2 for fullwidth/wide)."""
        if ch < "\u0100":
            return 1
        w = self._char_width_cache.get(ch)
        if w is None:
            w = 2 if unicodedata.east_asian_width(ch) in ("W", "F") else 1
            self._char_width_cache[ch] = w
        return w

    def _make_segments(self, line: str, avail: int) -> list[tuple[int, int]]:
        """Break *line* into segments fitting within *avail* display columns."""
        if not line:
            return [(0, 0)]
        if line.isascii():
            return [(s, min(s + avail, len(line))) for s in range(0, len(line), avail)]
        segs: list[tuple[int, int]] = []
        seg_start = 0
        w = 0
        for i, ch in enumerate(line):
            cw = self._char_width(ch)
            if w + cw > avail and i > seg_start:
                segs.append((seg_start, i))
                seg_start = i
                w = cw
            else:
                w += cw
        segs.append((seg_start, len(line)))
        return segs

    def _wrap_rows(self, line: str, avail: int) -> int:
        return len(self._make_segments(line, avail))

    def _visible_height(self) -> int:
        return max(1, self.content_region.height - 1)

    def _avail_width(self) -> int:
        ln_width = max(3, len(str(len(self.lines))))
        return self.content_region.width - ln_width - 1

    def _ensure_cursor_visible(self, avail: int) -> None:
        vh = self._visible_height()
        if self.cursor_row < self._scroll_top:
            self._scroll_top = self.cursor_row
        rows_before = sum(
            self._wrap_rows(self.lines[i], avail)
            for i in range(self._scroll_top, self.cursor_row)
        )
        while rows_before >= vh and self._scroll_top < self.cursor_row:
            rows_before -= self._wrap_rows(self.lines[self._scroll_top], avail)
            self._scroll_top += 1

    def _line_starts(self) -> list[int]:
        starts = [0]
        for line in self.lines[:-1]:
            starts.append(starts[-1] + len(line) + 1)
        return starts

    def _offset_to_pos(self, starts: list[int], offset: int) -> tuple[int, int]:
        row = max(0, bisect.bisect_right(starts, offset) - 1)
        return row, offset - starts[row]

    def _split_by_rows(self, starts: list[int], start: int, end: int):
        """offset 구간 [start, end)를 라인별 (row, col_start, col_end)로 분할."""
        row, col = self._offset_to_pos(starts, start)
        erow, ecol = self._offset_to_pos(starts, end)
        while row < erow:
            yield row, col, len(self.lines[row])
            row += 1
            col = 0
        if ecol > col:
            yield row, col, ecol

    # -- Public API --------------------------------------------------------

    def get_content(self) -> str:
        return "\n".join(self.lines)

    def set_content(self, content: str) -> None:
        self.lines = content.split("\n") if content else [""]
        self.cursor_row = 0
        self.cursor_col = 0
        self._anchor = None
        self._scroll_top = 0
        self.modified = False
        self._invalidate_caches()
        self.refresh()

    @property
    def top_line(self) -> int:
        return self._scroll_top

    def reveal_line(self, line: int) -> None:
        """Scroll so *line* is at the top without moving the cursor."""
        line = max(0, min(line, len(self.lines) - 1))
        if line != self._scroll_top:
            self._scroll_top = line
            self.post_message(self.Scrolled(self, line))
        self.refresh()

    def selection_range(self) -> tuple[int, int, int, int] | None:
        """선택 범위 (start_row, start_col, end_row, end_col), end는 exclusive."""
        if self._anchor is None:
            return None
        ar, ac = self._anchor
        cr, cc = self.cursor_row, self.cursor_col
        if (ar, ac) == (cr, cc):
            return None
        if (ar, ac) <= (cr, cc):
            return (ar, ac, cr, cc)
        return (cr, cc, ar, ac)

    def selected_text(self) -> str:
        sel = self.selection_range()
        if sel is None:
            return ""
        sr, sc, er, ec = sel
        if sr == er:
            return self.lines[sr][sc:ec]
        parts = [self.lines[sr][sc:]]
        parts.extend(self.lines[sr + 1 : er])
        parts.append(self.lines[er][:ec])
        return "\n".join(parts)

    def set_decorations(self, decorations: dict[Style, list[tuple[int, int]]]) -> None:
        """Replace every decoration with *decorations* (style -> offset ranges)."""
        self._decorations = {style: list(ranges) for style, ranges in decorations.items()}
        starts = self._line_starts()
        by_row: dict[int, list[tuple[int, int, Style]]] = {}
        for style, ranges in self._decorations.items():
            for start, end in ranges:
                for row, cs, ce in self._split_by_rows(starts, start, end):
                    by_row.setdefault(row, []).append((cs, ce, style))
        self._deco_by_row = by_row
        self._style_cache.clear()
        self.refresh()

    def set_diagnostics(self, findings: list[Finding]) -> None:
        """Replace the findings shown for this editor."""
        self._diagnostics = list(findings)
        starts = self._line_starts()
        by_row: dict[int, list[tuple[int, int, Finding]]] = {}
        for f in self._diagnostics:
            for row, cs, ce in self._split_by_rows(starts, f.start, f.end):
                by_row.setdefault(row, []).append((cs, ce, f))
        self._diag_by_row = by_row
        self._style_cache.clear()
        self.refresh()

    def diagnostic_at_cursor(self) -> Finding | None:
        for cs, ce, f in self._diag_by_row.get(self.cursor_row, []):
            if cs <= self.cursor_col <= ce:
                return f
        return None

    def replace_range(self, row: int, col_start: int, col_end: int, text: str) -> None:
        """한 라인 안의 [col_start, col_end)를 *text*로 교체하고 커서를 뒤로 이동."""
        if self.read_only:
            self.status_msg = "[readonly]"
            return
        self._save_undo()
        line = self.lines[row]
        self.lines[row] = line[:col_start] + text + line[col_end:]
        self.cursor_row = row
        self.cursor_col = col_start + len(text)
        self._anchor = None

    # =====================================================================
    # Rendering
    # =====================================================================

    _BRACKET = frozenset("{}[]")
    _DIGIT = frozenset("0123456789.-+eE")
    _KEYWORD_RE = re.compile(r"true|false|null")
    _SYNTAX = {
        "plain": Style(color="white"),
        "bracket": Style(color="white", bold=True),
        "key": Style(color="cyan"),
        "string": Style(color="green"),
        "number": Style(color="yellow"),
        "keyword": Style(color="magenta"),
    }
    _SELECTION = Style(bgcolor="dark_blue")
    _CURSOR = Style(reverse=True)
    _DIAG_STYLE = {
        Severity.ERROR: Style(underline=True, bgcolor="#5f0000"),
        Severity.WARNING: Style(underline=True, bgcolor="#5f5f00"),
    }

    def _compute_line_styles(self, line: str) -> list[Style]:
        """JSON syntax colours for every character in *line*."""
        n = len(line)
        if n == 0:
            return []
        syntax = self._SYNTAX
        styles = [syntax["plain"]] * n
        is_in_str = [False] * n

        # 문자열 영역과 첫 번째 따옴표 밖 콜론 위치를 한 번에 계산
        in_str = False
        first_colon = -1
        prev_ch = ""
        for i, ch in enumerate(line):
            if ch == '"' and prev_ch != "\\":
                in_str = not in_str
                is_in_str[i] = True
            elif in_str:
                is_in_str[i] = True
            elif ch == ":" and first_colon == -1:
                first_colon = i
            prev_ch = ch

        for i, ch in enumerate(line):
            if ch in self._BRACKET:
                styles[i] = syntax["bracket"]
            elif is_in_str[i]:
                before_colon = first_colon == -1 or i < first_colon
                styles[i] = syntax["key"] if before_colon else syntax["string"]
            elif ch in self._DIGIT:
                styles[i] = syntax["number"]

        for m in self._KEYWORD_RE.finditer(line):
            if not is_in_str[m.start()]:
                for j in range(m.start(), m.end()):
                    styles[j] = syntax["keyword"]
        return styles

    def _line_styles(self, line_idx: int) -> list[Style]:
        """syntax + decoration + 진단을 합친 라인 스타일 (캐시)."""
        cached = self._style_cache.get(line_idx)
        if cached is not None:
            return cached
        line = self.lines[line_idx]
        styles = self._compute_line_styles(line)
        n = len(styles)
        for cs, ce, style in self._deco_by_row.get(line_idx, []):
            for c in range(cs, min(ce, n)):
                styles[c] = styles[c] + style
        for cs, ce, finding in self._diag_by_row.get(line_idx, []):
            diag = self._DIAG_STYLE[finding.severity]
            for c in range(cs, min(ce, n)):
                styles[c] = styles[c] + diag
        self._style_cache[line_idx] = styles
        return styles

    def _status_text(self) -> str:
        if self.status_msg:
            return self.status_msg
        finding = self.diagnostic_at_cursor()
        return finding.message if finding else ""

    def render(self) -> Text:
        width = self.content_region.width
        height = self.content_region.height
        if height < 2 or width < 10:
            return Text("(too small)")

        if self._cache_dirty:
            self._style_cache.clear()
            self._cache_dirty = False

        content_height = height - 1
        lines = self.lines
        num_lines = len(lines)
        ln_width = max(3, len(str(num_lines)))
        prefix_w = ln_width + 1
        avail = max(1, width - prefix_w)
        self._scroll_top = max(0, min(self._scroll_top, num_lines - 1))

        cursor_row = self.cursor_row
        cursor_col = self.cursor_col
        show_cursor = self.has_focus
        sel = self.selection_range()
        gutter_pad = " " * prefix_w
        result = Text()
        append = result.append

        rows_used = 0
        line_idx = self._scroll_top
        while rows_used < content_height and line_idx < num_lines:
            line = lines[line_idx]
            line_len = len(line)
            line_styles = self._line_styles(line_idx)
            is_cursor_line = show_cursor and line_idx == cursor_row

            if sel is not None and sel[0] <= line_idx <= sel[2]:
                sr, sc, er, ec = sel
                c0 = sc if line_idx == sr else 0
                c1 = ec if line_idx == er else line_len
                line_styles = line_styles[:]
                for c in range(c0, min(c1, line_len)):
                    line_styles[c] = line_styles[c] + self._SELECTION

            segs = self._make_segments(line, avail)
            for si, (s_start, s_end) in enumerate(segs):
                if rows_used >= content_height:
                    break
                if si == 0:
                    append(f"{line_idx + 1:>{ln_width}} ", style="dim cyan")
                else:
                    append(gutter_pad)
                # 같은 스타일의 연속 문자는 묶어서 출력
                col = s_start
                while col < s_end:
                    if is_cursor_line and col == cursor_col:
                        append(line[col], style=line_styles[col] + self._CURSOR)
                        col += 1
                        continue
                    sty = line_styles[col]
                    end = col + 1
                    while (
                        end < s_end
                        and line_styles[end] == sty
                        and not (is_cursor_line and end == cursor_col)
                    ):
                        end += 1
                    append(line[col:end], style=sty)
                    col = end
                if is_cursor_line and cursor_col >= line_len and si == len(segs) - 1:
                    append(" ", style="reverse")
                append("\n")
                rows_used += 1
            line_idx += 1

        if rows_used < content_height:
            tilde_line = f"{'~':>{prefix_w - 1}} \n"
            while rows_used < content_height:
                append(tilde_line, style="dim blue")
                rows_used += 1

        # status bar
        name = self.document.file_name if self.document else "[new]"
        label = f" {name}{' +' if self.modified else ''} "
        append(label, style="bold white on dark_green")
        if self.read_only:
            append(" RO ", style="bold white on grey37")
        errors = sum(1 for f in self._diagnostics if f.severity is Severity.ERROR)
        warnings = len(self._diagnostics) - errors
        counts = f" E{errors} W{warnings} "
        append(counts, style="bold red" if errors else "dim")
        status = self._status_text()
        pos = f" Ln {cursor_row + 1}/{num_lines}, Col {cursor_col + 1} "
        ro_len = 4 if self.read_only else 0
        spacer = max(0, width - len(label) - ro_len - len(counts) - len(status) - len(pos) - 2)
        append(f"  {status}")
        if spacer:
            append(" " * spacer)
        append(pos, style="bold")
        return result

    # =====================================================================
    # Key handling
    # =====================================================================

    def _snapshot(self) -> tuple[Any, ...]:
        return (
            self._text_version,
            self.cursor_row,
            self.cursor_col,
            self._anchor,
            self._scroll_top,
        )

    def _collect_messages(self, before: tuple[Any, ...]) -> list[Message]:
        """키 처리 전후 상태를 비교해 보낼 메시지 목록을 만든다."""
        version, row, col, anchor, top = before
        messages: list[Message] = []
        if self._text_version != version:
            messages.append(self.TextChanged(self))
        if (self.cursor_row, self.cursor_col, self._anchor) != (row, col, anchor):
            messages.append(self.SelectionChanged(self))
        if self._scroll_top != top:
            messages.append(self.Scrolled(self, self._scroll_top))
        if self._completion_at is not None:
            crow, ccol = self._completion_at
            self._completion_at = None
            messages.append(
                self.CompletionRequested(self, crow, ccol, self.lines[crow][:ccol])
            )
        return messages

    def on_key(self, event: events.Key) -> None:
        event.prevent_default()
        event.stop()
        before = self._snapshot()
        self.status_msg = ""
        self._handle_key(event)
        self._clamp_cursor()
        avail = self._avail_width()
        if avail > 0:
            self._ensure_cursor_visible(avail)
        for message in self._collect_messages(before):
            self.post_message(message)
        self.refresh()

    def _scroll_by(self, delta: int) -> None:
        top = max(0, min(self._scroll_top + delta, len(self.lines) - 1))
        if top != self._scroll_top:
            self._scroll_top = top
            self.post_message(self.Scrolled(self, top))
            self.refresh()

    def on_mouse_scroll_down(self, event: events.MouseScrollDown) -> None:
        event.stop()
        self._scroll_by(3)

    def on_mouse_scroll_up(self, event: events.MouseScrollUp) -> None:
        event.stop()
        self._scroll_by(-3)

    def _handle_key(self, event) -> None:
        key = event.key
        char = event.character

        if key.startswith("shift+") and key[6:] in _MOVES:
            if self._anchor is None:
                self._anchor = (self.cursor_row, self.cursor_col)
            self._move(key[6:])
            return
        if key in _MOVES:
            self._anchor = None
            self._move(key)
            return
        if key == "escape":
            self._anchor = None
            return
        if key == "ctrl+a":
            self._anchor = (0, 0)
            self.cursor_row = len(self.lines) - 1
            self.cursor_col = len(self.lines[-1])
            return
        if key == "ctrl+z":
            self._undo()
            return
        if key == "ctrl+y":
            self._redo()
            return

        editing = key in ("backspace", "delete", "enter", "tab") or (
            char is not None and char.isprintable() and len(char) == 1
        )
        if not editing:
            return
        if self.read_only:
            self.status_msg = "[readonly]"
            return

        if key == "backspace":
            self._backspace()
        elif key == "delete":
            self._delete_forward()
        elif key == "enter":
            self._newline()
        elif key == "tab":
            self._insert_char("    ")
        else:
            self._insert_char(char)
            prefix = self.lines[self.cursor_row][: self.cursor_col]
            if prefix.endswith("&&"):
                self._completion_at = (self.cursor_row, self.cursor_col)

    def _move(self, key: str) -> None:
        row, col = self.cursor_row, self.cursor_col
        if key == "left":
            if col > 0:
                self.cursor_col -= 1
            elif row > 0:
                self.cursor_row -= 1
                self.cursor_col = len(self.lines[row - 1])
        elif key == "right":
            if col < len(self.lines[row]):
                self.cursor_col += 1
            elif row < len(self.lines) - 1:
                self.cursor_row += 1
                self.cursor_col = 0
        elif key == "up":
            self.cursor_row -= 1
        elif key == "down":
            self.cursor_row += 1
        elif key == "home":
            line = self.lines[row]
            indent = len(line) - len(line.lstrip())
            self.cursor_col = 0 if col == indent else indent
        elif key == "end":
            self.cursor_col = len(self.lines[row])
        elif key == "pageup":
            self.cursor_row -= self._visible_height()
        elif key == "pagedown":
            self.cursor_row += self._visible_height()
        self._clamp_cursor()

    def _delete_selection(self) -> bool:
        sel = self.selection_range()
        self._anchor = None
        if sel is None:
            return False
        sr, sc, er, ec = sel
        self._save_undo()
        self.lines[sr : er + 1] = [self.lines[sr][:sc] + self.lines[er][ec:]]
        self.cursor_row, self.cursor_col = sr, sc
        return True

    def _insert_char(self, text: str) -> None:
        if not self._delete_selection():
            self._save_undo()
        line = self.lines[self.cursor_row]
        self.lines[self.cursor_row] = line[: self.cursor_col] + text + line[self.cursor_col :]
        self.cursor_col += len(text)

    def _backspace(self) -> None:
        if self._delete_selection():
            return
        if self.cursor_col > 0:
            self._save_undo()
            line = self.lines[self.cursor_row]
            self.lines[self.cursor_row] = line[: self.cursor_col - 1] + line[self.cursor_col :]
            self.cursor_col -= 1
        elif self.cursor_row > 0:
            self._save_undo()
            prev = self.lines[self.cursor_row - 1]
            self.cursor_col = len(prev)
            self.lines[self.cursor_row - 1] = prev + self.lines[self.cursor_row]
            self.lines.pop(self.cursor_row)
            self.cursor_row -= 1

    def _delete_forward(self) -> None:
        if self._delete_selection():
            return
        line = self.lines[self.cursor_row]
        if self.cursor_col < len(line):
            self._save_undo()
            self.lines[self.cursor_row] = line[: self.cursor_col] + line[self.cursor_col + 1 :]
        elif self.cursor_row < len(self.lines) - 1:
            self._save_undo()
            self.lines[self.cursor_row] = line + self.lines[self.cursor_row + 1]
            self.lines.pop(self.cursor_row + 1)

    def _newline(self) -> None:
        if not self._delete_selection():
            self._save_undo()
        line = self.lines[self.cursor_row]
        indent = len(line) - len(line.lstrip()) if line.strip() else 0
        before = line[: self.cursor_col].rstrip()
        extra = "    " if before.endswith(("{", "[")) else ""
        self.lines[self.cursor_row] = line[: self.cursor_col]
        new_line = " " * indent + extra + line[self.cursor_col :].lstrip()
        self.cursor_row += 1
        self.lines.insert(self.cursor_row, new_line)
        self.cursor_col = indent + len(extra)

    def _undo(self) -> None:
        if not self.undo_stack:
            self.status_msg = "nothing to undo"
            return
        self.redo_stack.append((self.lines[:], self.cursor_row, self.cursor_col))
        lines, row, col = self.undo_stack.pop()
        self.lines = lines
        self.cursor_row = row
        self.cursor_col = col
        self._anchor = None
        self._invalidate_caches()
        self.status_msg = "undone"

    def _redo(self) -> None:
        if not self.redo_stack:
            self.status_msg = "nothing to redo"
            return
        self.undo_stack.append((self.lines[:], self.cursor_row, self.cursor_col))
        lines, row, col = self.redo_stack.pop()
        self.lines = lines
        self.cursor_row = row
        self.cursor_col = col
        self._anchor = None
        self._invalidate_caches()
        self.status_msg = "redone"
