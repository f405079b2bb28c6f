"""Edit-driven recomputation of diagnostics, highlights and previews."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

from .refdiff import REFERENCE_NAME, Finding, Severity, ValidationResult, validate_file
from .render import StyleCache, annotate, render_preview_html
from .scanner import write_skeleton
from .workspace import Signal, Subscription, TextDocument, Workspace

logger = logging.getLogger(__name__)

SYNC_GUARD_DELAY = 0.05  # seconds

Scheduler = Callable[[float, Callable[[], None]], Any]


class DiagnosticCollection:
    """문서 path별 진단 목록. ``set``은 항상 통째로 교체."""

    def __init__(self) -> None:
        self._by_path: dict[str, list[Finding]] = {}
        self.changed = Signal("diagnostics_changed")

    def set(self, path: str, findings: list[Finding]) -> None:
        self._by_path[str(path)] = list(findings)
        self.changed.emit(str(path))

    def get(self, path: str) -> list[Finding]:
        return list(self._by_path.get(str(path), []))

    def paths(self) -> list[str]:
        return list(self._by_path)

    def clear(self) -> None:
        paths = list(self._by_path)
        self._by_path.clear()
        for path in paths:
            self.changed.emit(path)

    def count(self, severity: Severity | None = None) -> int:
        return sum(
            1
            for findings in self._by_path.values()
            for f in findings
            if severity is None or f.severity is severity
        )


class ScrollSync:
    """Mirror the active editor's top line into editors of other columns.

    ``in_progress`` stays set until the scheduler fires, so the scrolls it
    causes in the other editors are not mirrored back.
    """

    def __init__(
        self,
        workspace: Workspace,
        schedule: Scheduler | None = None,
        delay: float = SYNC_GUARD_DELAY,
    ) -> None:
        self.workspace = workspace
        self.enabled = False
        self.in_progress = False
        self.delay = delay
        self._schedule = schedule

    def toggle(self) -> bool:
        self.enabled = not self.enabled
        return self.enabled

    def _release(self) -> None:
        self.in_progress = False

    def on_visible_range(self, editor: Any, top_line: int) -> None:
        if not self.enabled or self.in_progress:
            return
        if self.workspace.active_editor is not editor:
            return
        self.in_progress = True
        for other in list(self.workspace.visible_editors):
            if other is not editor and other.column != editor.column:
                other.reveal_line(top_line)
        if self._schedule is None:
            self._release()
        else:
            self._schedule(self.delay, self._release)


class PreviewSession:
    """선택 영역 preview. 선택/문서 변경 시 다시 렌더, ``dispose()``로 구독 해제."""

    def __init__(
        self,
        workspace: Workspace,
        editor: Any,
        sink: Callable[[Any], None],
        render: Callable[[str], Any] = render_preview_html,
    ) -> None:
        self.workspace = workspace
        self.editor = editor
        self.sink = sink
        self.render = render
        self._subs: list[Subscription] = []

    @property
    def active(self) -> bool:
        return bool(self._subs)

    def start(self) -> None:
        self.update()
        self._subs = [
            self.workspace.did_change.subscribe(self._on_change),
            self.workspace.did_change_selection.subscribe(self._on_selection),
        ]

    def update(self) -> None:
        text = self.editor.selected_text() or " "
        self.sink(self.render(text))

    def _on_change(self, doc: TextDocument) -> None:
        if doc is self.editor.document:
            self.update()

    def _on_selection(self, editor: Any) -> None:
        if editor is self.editor:
            self.update()

    def dispose(self) -> None:
        for sub in self._subs:
            sub.dispose()
        self._subs = []


@dataclass
class CommandResult:
    ok: bool
    message: str
    path: Path | None = None


class Session:
    """Wire a workspace to validation, highlighting and scroll sync.

    Every pass recomputes from scratch and replaces its previous output.
    """

    def __init__(
        self,
        workspace: Workspace,
        *,
        reference_name: str = REFERENCE_NAME,
        styles: StyleCache | None = None,
        diagnostics: DiagnosticCollection | None = None,
        schedule: Scheduler | None = None,
    ) -> None:
        self.workspace = workspace
        self.reference_name = reference_name
        self.styles = styles if styles is not None else StyleCache()
        self.diagnostics = diagnostics if diagnostics is not None else DiagnosticCollection()
        self.scroll = ScrollSync(workspace, schedule)
        self.previews: list[PreviewSession] = []
        self._subs: list[Subscription] = []

    # -- lifecycle ---------------------------------------------------------

    def start(self) -> None:
        ws = self.workspace
        self._subs = [
            ws.did_open.subscribe(self.validate),
            ws.did_change.subscribe(self._on_change),
            ws.did_change_active_editor.subscribe(lambda _editor: self.highlight_visible()),
            ws.did_change_visible_editors.subscribe(lambda _editors: self.highlight_visible()),
            ws.did_change_visible_ranges.subscribe(self.scroll.on_visible_range),
        ]
        for doc in list(ws.documents.values()):
            self.validate(doc)
        self.highlight_visible()

    def dispose(self) -> None:
        for sub in self._subs:
            sub.dispose()
        self._subs = []
        for preview in self.previews:
            preview.dispose()
        self.previews = []

    def _on_change(self, doc: TextDocument) -> None:
        self.validate(doc)
        self.highlight_visible()

    # -- passes ------------------------------------------------------------

    def validate(self, doc: TextDocument) -> ValidationResult | None:
        """Run one validation pass for *doc* and post both finding lists."""
        if doc.language_id not in ("json", "jsonc"):
            return None
        try:
            result = validate_file(doc.path, doc.text, reference_name=self.reference_name)
        except Exception:
            logger.exception("validation of %s abandoned", doc.path)
            return None
        if result is None:
            return None
        self.diagnostics.set(doc.path, result.candidate_findings)
        self.diagnostics.set(result.reference_path, result.reference_findings)
        return result

    def highlight_visible(self) -> None:
        for editor in list(self.workspace.visible_editors):
            doc = editor.document
            if doc is None:
                continue
            try:
                ranges = annotate(doc.text, self.styles)
            except Exception:
                logger.exception("highlighting of %s abandoned", doc.path)
                continue
            editor.set_decorations(ranges)

    # -- commands ----------------------------------------------------------

    def create_language_file(
        self, target: str | Path, *, overwrite: bool = False
    ) -> CommandResult:
        """Write a skeleton of the active document to *target*.

        An existing *target* is only replaced with ``overwrite``; an open
        document for it then gets the new text too.
        """
        editor = self.workspace.active_editor
        if editor is None or editor.document is None:
            return CommandResult(False, "No active JSON file found.")
        target = Path(target)
        if target.exists() and not overwrite:
            return CommandResult(False, f"{target.name} already exists.", target)
        try:
            path = write_skeleton(editor.document.text, target)
            content = path.read_text(encoding="utf-8")
        except (OSError, ValueError) as e:
            logger.warning("create language file failed: %s", e)
            return CommandResult(False, "Error creating file.")
        doc = self.workspace.documents.get(str(path))
        if doc is not None:
            self.workspace.change_document(doc, content)
        return CommandResult(True, f"Created {path.name}", path)

    def toggle_scroll_sync(self) -> CommandResult:
        enabled = self.scroll.toggle()
        return CommandResult(True, f"Scroll Sync: {'ON' if enabled else 'OFF'}")

    def show_preview(
        self,
        sink: Callable[[Any], None],
        render: Callable[[str], Any] = render_preview_html,
    ) -> PreviewSession | None:
        editor = self.workspace.active_editor
        if editor is None:
            return None
        preview = PreviewSession(self.workspace, editor, sink, render)
        preview.start()
        self.previews.append(preview)
        return preview

    def close_preview(self, preview: PreviewSession) -> None:
        preview.dispose()
        if preview in self.previews:
            self.previews.remove(preview)
