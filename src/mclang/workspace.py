"""Documents, editor views and change notifications."""

from __future__ import annotations

import bisect
from pathlib import Path
from typing import Any, Callable

_LANGUAGES = {
    ".json": "json",
    ".jsonc": "jsonc",
    ".md": "markdown",
    ".markdown": "markdown",
}


def language_for(path: str | Path) -> str:
    return _LANGUAGES.get(Path(path).suffix.lower(), "plaintext")


class Subscription:
    """Signal 구독 핸들. ``dispose()``로 해제 (중복 호출 안전)."""

    def __init__(self, signal: Signal, callback: Callable[..., Any]) -> None:
        self._signal = signal
        self.callback = callback

    @property
    def active(self) -> bool:
        return self._signal is not None

    def dispose(self) -> None:
        if self._signal is not None:
            self._signal._remove(self)
            self._signal = None


class Signal:
    """Ordered list of callbacks, called synchronously by ``emit``."""

    def __init__(self, name: str = "") -> None:
        self.name = name
        self._subs: list[Subscription] = []

    def __len__(self) -> int:
        return len(self._subs)

    def subscribe(self, callback: Callable[..., Any]) -> Subscription:
        sub = Subscription(self, callback)
        self._subs.append(sub)
        return sub

    def _remove(self, sub: Subscription) -> None:
        if sub in self._subs:
            self._subs.remove(sub)

    def emit(self, *args: Any) -> None:
        # emit 도중 dispose 되어도 안전하도록 복사본 순회
        for sub in self._subs[:]:
            if sub.active:
                sub.callback(*args)


class TextDocument:
    """편집 중인 파일의 현재 텍스트."""

    def __init__(self, path: str | Path, text: str = "", language_id: str = "") -> None:
        self.path = str(Path(path))
        self.language_id = language_id or language_for(path)
        self.version = 0
        self._text = ""
        self._line_starts: list[int] = [0]
        self._set(text)

    @property
    def text(self) -> str:
        return self._text

    @property
    def file_name(self) -> str:
        return Path(self.path).name

    def _set(self, text: str) -> None:
        self._text = text
        starts = [0]
        for i, ch in enumerate(text):
            if ch == "\n":
                starts.append(i + 1)
        self._line_starts = starts

    def set_text(self, text: str) -> bool:
        """Replace the text. Returns False (no version bump) when unchanged."""
        if text == self._text:
            return False
        self._set(text)
        self.version += 1
        return True

    def position_at(self, offset: int) -> tuple[int, int]:
        """offset -> (row, col), 0-based."""
        offset = max(0, min(offset, len(self._text)))
        row = bisect.bisect_right(self._line_starts, offset) - 1
        return row, offset - self._line_starts[row]

    def offset_at(self, row: int, col: int) -> int:
        row = max(0, min(row, len(self._line_starts) - 1))
        return min(self._line_starts[row] + col, len(self._text))


class Workspace:
    """Open documents and visible editor views, plus their change signals.

    Editor views are duck-typed: ``document``, ``column``,
    ``selected_text()``, ``top_line``, ``reveal_line(line)`` and
    ``set_decorations(mapping)``.
    """

    def __init__(self) -> None:
        self.documents: dict[str, TextDocument] = {}
        self.visible_editors: list[Any] = []
        self.active_editor: Any = None
        self.did_open = Signal("did_open")
        self.did_change = Signal("did_change")
        self.did_change_active_editor = Signal("did_change_active_editor")
        self.did_change_visible_editors = Signal("did_change_visible_editors")
        self.did_change_selection = Signal("did_change_selection")
        self.did_change_visible_ranges = Signal("did_change_visible_ranges")

    def open_document(self, path: str | Path, text: str) -> TextDocument:
        key = str(Path(path))
        doc = self.documents.get(key)
        if doc is not None:
            return doc
        doc = TextDocument(key, text)
        self.documents[key] = doc
        self.did_open.emit(doc)
        return doc

    def change_document(self, doc: TextDocument, text: str) -> None:
        if doc.set_text(text):
            self.did_change.emit(doc)

    def set_visible_editors(self, editors: list[Any]) -> None:
        self.visible_editors = list(editors)
        self.did_change_visible_editors.emit(self.visible_editors)

    def set_active_editor(self, editor: Any) -> None:
        if editor is self.active_editor:
            return
        self.active_editor = editor
        self.did_change_active_editor.emit(editor)

    def notify_selection(self, editor: Any) -> None:
        self.did_change_selection.emit(editor)

    def notify_visible_range(self, editor: Any, top_line: int) -> None:
        self.did_change_visible_ranges.emit(editor, top_line)
