"""Side-by-side editor for Minecraft language files."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from rich.text import Text
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Footer, Header, Input, OptionList, Static
from textual.widgets.option_list import Option

from .complete import CompletionItem, completions_for
from .refdiff import REFERENCE_NAME, Finding, Severity, load_reference, validate_file
from .render import render_preview_html, render_preview_text
from .scanner import default_target_path
from .session import PreviewSession, Session
from .widget import LangEditor
from .workspace import TextDocument, Workspace

logger = logging.getLogger(__name__)


def read_text(path: str | Path) -> str:
    """파일 읽기. 없는 파일은 빈 객체로 시작. 줄바꿈은 LF로 통일."""
    path = Path(path)
    if not path.exists():
        return "{}"
    return path.read_text(encoding="utf-8").replace("\r\n", "\n")


class PathPrompt(ModalScreen[str]):
    """저장 위치 입력. Enter로 확정, Escape로 취소 (빈 문자열)."""

    DEFAULT_CSS = """
    PathPrompt {
        align: center middle;
    }
    #prompt-box {
        width: 70%;
        height: auto;
        border: solid $accent;
        background: $surface;
        padding: 0 1;
    }
    """

    def __init__(self, title: str, default: str) -> None:
        super().__init__()
        self.title_text = title
        self.default = default

    def compose(self) -> ComposeResult:
        with Vertical(id="prompt-box"):
            yield Static(f"[b]{self.title_text}[/b]")
            yield Input(value=self.default, id="prompt-input")

    def on_mount(self) -> None:
        self.query_one("#prompt-input", Input).focus()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        self.dismiss(event.value.strip())

    def key_escape(self) -> None:
        self.dismiss("")


class ConfirmPrompt(ModalScreen[bool]):
    """y/n 확인. Escape는 n과 같음."""

    DEFAULT_CSS = """
    ConfirmPrompt {
        align: center middle;
    }
    #confirm-box {
        width: 60%;
        height: auto;
        border: solid $warning;
        background: $surface;
        padding: 0 1;
    }
    """

    def __init__(self, question: str) -> None:
        super().__init__()
        self.question = question

    def compose(self) -> ComposeResult:
        with Vertical(id="confirm-box"):
            yield Static(f"[b]{self.question}[/b]  (y/n)")

    def on_key(self, event) -> None:
        event.stop()
        if event.key == "y":
            self.dismiss(True)
        elif event.key in ("n", "escape"):
            self.dismiss(False)


class LangApp(App):
    """Edit language files side by side, validated against ``en_us.json``."""

    CSS = """
    Screen {
        layout: vertical;
    }
    #editors {
        height: 1fr;
    }
    .pane {
        width: 1fr;
        border: solid $accent;
    }
    .pane-title {
        height: 1;
        padding: 0 1;
    }
    #preview {
        display: none;
        width: 40%;
        border: solid $accent;
        padding: 0 1;
        background: #1e1e1e;
    }
    #preview.visible {
        display: block;
    }
    #findings {
        height: auto;
        max-height: 6;
        padding: 0 1;
        color: $text-muted;
        background: $surface;
        border-top: solid $accent 50%;
    }
    #completions {
        display: none;
        height: auto;
        max-height: 12;
        border: solid $accent;
    }
    #completions.visible {
        display: block;
    }
    """

    TITLE = "Language File Editor"
    ENABLE_COMMAND_PALETTE = False
    BINDINGS = [
        Binding("ctrl+s", "save", "Save", priority=True),
        Binding("ctrl+n", "create_lang_file", "New lang file", priority=True),
        Binding("ctrl+t", "toggle_scroll_sync", "Scroll sync", priority=True),
        Binding("ctrl+p", "preview", "Preview", priority=True),
        Binding("f6", "next_editor", "Next editor", priority=True),
        Binding("ctrl+q", "quit", "Quit", priority=True),
    ]

    def __init__(
        self,
        file_paths: list[str],
        reference_name: str = REFERENCE_NAME,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self.file_paths = file_paths
        self.reference_name = reference_name
        self.workspace = Workspace()
        self.session = Session(
            self.workspace,
            reference_name=reference_name,
            schedule=lambda delay, callback: self.set_timer(delay, callback),
        )
        self._editors: list[LangEditor] = []
        self._preview: PreviewSession | None = None
        self._completion_target: tuple[LangEditor, int, int] | None = None
        self._completion_items: list[CompletionItem] = []
        for path in file_paths:
            self.workspace.open_document(path, read_text(path))

    # -- Layout ------------------------------------------------------------

    def _make_pane(self, doc: TextDocument, column: int) -> Vertical:
        editor = LangEditor(document=doc, column=column)
        self._editors.append(editor)
        return Vertical(
            Static(f"[b]{doc.path}[/b]", classes="pane-title"),
            editor,
            classes="pane",
        )

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        with Horizontal(id="editors"):
            for column, doc in enumerate(self.workspace.documents.values()):
                yield self._make_pane(doc, column)
            yield Static("", id="preview")
        yield OptionList(id="completions")
        yield Static("", id="findings")
        yield Footer()

    def on_mount(self) -> None:
        self.session.diagnostics.changed.subscribe(self._on_diagnostics_changed)
        self.workspace.set_visible_editors(self._editors)
        if self._editors:
            self.workspace.set_active_editor(self._editors[0])
            self._editors[0].focus()
        self.session.start()
        self._update_findings()

    def on_unmount(self) -> None:
        self.session.dispose()

    # -- Workspace bridge --------------------------------------------------

    def _sync_document(self, editor: LangEditor) -> None:
        if editor.document is not None:
            self.workspace.change_document(editor.document, editor.get_content())

    def on_lang_editor_text_changed(self, event: LangEditor.TextChanged) -> None:
        self._sync_document(event.editor)

    def on_lang_editor_selection_changed(self, event: LangEditor.SelectionChanged) -> None:
        self.workspace.notify_selection(event.editor)

    def on_lang_editor_scrolled(self, event: LangEditor.Scrolled) -> None:
        self.workspace.notify_visible_range(event.editor, event.top_line)

    def on_descendant_focus(self, event) -> None:
        if isinstance(event.widget, LangEditor):
            self.workspace.set_active_editor(event.widget)
            self._update_findings()

    def _on_diagnostics_changed(self, path: str) -> None:
        findings = self.session.diagnostics.get(path)
        for editor in self._editors:
            if editor.document is not None and editor.document.path == path:
                editor.set_diagnostics(findings)
        self._update_findings()

    def _update_findings(self) -> None:
        """포커스된 에디터 문서의 진단 목록 표시."""
        editor = self.workspace.active_editor
        panel = self.query_one("#findings", Static)
        if editor is None or editor.document is None:
            panel.update("")
            return
        doc = editor.document
        findings = self.session.diagnostics.get(doc.path)
        if not findings:
            panel.update(f"[dim]{doc.file_name}: no problems[/dim]")
            return
        text = Text()
        for i, f in enumerate(findings[:5]):
            row, col = doc.position_at(f.start)
            style = "bold red" if f.severity is Severity.ERROR else "bold yellow"
            if i:
                text.append("\n")
            text.append(f"{f.severity.name.lower():<8}", style=style)
            text.append(f"{row + 1}:{col + 1}  {f.message}  ")
            text.append(f.key, style="dim")
        if len(findings) > 5:
            text.append(f"\n... {len(findings) - 5} more", style="dim")
        panel.update(text)

    # -- Completion --------------------------------------------------------

    def on_lang_editor_completion_requested(
        self, event: LangEditor.CompletionRequested
    ) -> None:
        editor = event.editor
        language = editor.document.language_id if editor.document else "plaintext"
        items = completions_for(event.prefix, language)
        if not items:
            return
        self._completion_target = (editor, event.row, event.col)
        self._completion_items = items
        option_list = self.query_one("#completions", OptionList)
        option_list.clear_options()
        option_list.add_options(
            [Option(self._completion_prompt(item), id=str(i)) for i, item in enumerate(items)]
        )
        option_list.add_class("visible")
        option_list.highlighted = 0
        option_list.focus()

    @staticmethod
    def _completion_prompt(item: CompletionItem) -> Text:
        text = Text()
        if item.swatch:
            text.append("■ ", style=item.swatch)
        else:
            text.append("  ")
        text.append(item.label, style="bold")
        text.append(f"  {item.detail}", style="dim")
        return text

    def _close_completions(self) -> None:
        self.query_one("#completions", OptionList).remove_class("visible")
        target = self._completion_target
        self._completion_target = None
        if target is not None:
            target[0].focus()

    def on_option_list_option_selected(self, event: OptionList.OptionSelected) -> None:
        target = self._completion_target
        if target is not None and event.option.id is not None:
            editor, row, col = target
            item = self._completion_items[int(event.option.id)]
            # 트리거 "&&" 두 글자를 코드로 교체
            editor.replace_range(row, col - 2, col, item.insert_text)
            self._sync_document(editor)
            editor.refresh()
        self._close_completions()

    def key_escape(self) -> None:
        if self._completion_target is not None:
            self._close_completions()

    # -- Actions -----------------------------------------------------------

    def _active_editor(self) -> LangEditor | None:
        editor = self.workspace.active_editor
        return editor if isinstance(editor, LangEditor) else None

    def action_save(self) -> None:
        editor = self._active_editor()
        if editor is None or editor.document is None:
            return
        try:
            Path(editor.document.path).write_text(editor.get_content(), encoding="utf-8")
        except OSError as e:
            logger.warning("save of %s failed: %s", editor.document.path, e)
            self.notify(f"Cannot save: {e.strerror}", severity="error")
            return
        editor.modified = False
        editor.refresh()
        self.notify(f"Saved {editor.document.file_name}")
        # 참조 파일을 저장하면 다른 문서도 다시 검증
        if editor.document.file_name == self.reference_name:
            for doc in self.workspace.documents.values():
                self.session.validate(doc)

    def action_create_lang_file(self) -> None:
        editor = self._active_editor()
        if editor is None or editor.document is None:
            self.notify("No active JSON file found.", severity="error")
            return
        default = str(default_target_path(editor.document.path))
        self.push_screen(
            PathPrompt("Save New Language File", default),
            self._create_lang_file,
        )

    def _create_lang_file(self, target: str | None, overwrite: bool = False) -> None:
        if not target:
            return
        result = self.session.create_language_file(target, overwrite=overwrite)
        if not result.ok:
            if result.path is not None and not overwrite:
                self.push_screen(
                    ConfirmPrompt(f"{result.path.name} already exists. Overwrite?"),
                    lambda yes: self._create_lang_file(target, True) if yes else None,
                )
                return
            self.notify(result.message, severity="error")
            return
        self.notify(result.message)
        self.open_beside(result.path)

    def open_beside(self, path: str | Path) -> None:
        """Open *path* in a new column and focus it."""
        doc = self.workspace.open_document(str(path), read_text(path))
        for editor in self._editors:
            if editor.document is doc:
                # 덮어쓴 파일이 이미 열려 있으면 버퍼도 교체
                if editor.get_content() != doc.text:
                    editor.set_content(doc.text)
                    editor.set_diagnostics(self.session.diagnostics.get(doc.path))
                    self.session.highlight_visible()
                editor.focus()
                return
        pane = self._make_pane(doc, len(self._editors))
        editor = self._editors[-1]
        container = self.query_one("#editors", Horizontal)
        container.mount(pane, before=self.query_one("#preview"))
        self.workspace.set_visible_editors(self._editors)
        self.call_after_refresh(editor.focus)

    def action_toggle_scroll_sync(self) -> None:
        result = self.session.toggle_scroll_sync()
        self.notify(result.message)

    def action_preview(self) -> None:
        panel = self.query_one("#preview", Static)
        if self._preview is not None:
            self.session.close_preview(self._preview)
            self._preview = None
            panel.remove_class("visible")
            return
        self._preview = self.session.show_preview(panel.update, render_preview_text)
        if self._preview is not None:
            panel.add_class("visible")

    def action_next_editor(self) -> None:
        if not self._editors:
            return
        current = self._active_editor()
        idx = self._editors.index(current) if current in self._editors else -1
        self._editors[(idx + 1) % len(self._editors)].focus()


# -- Command line ----------------------------------------------------------


def format_finding(doc: TextDocument, finding: Finding) -> str:
    row, col = doc.position_at(finding.start)
    return f"{doc.path}:{row + 1}:{col + 1}: {finding.severity.name.lower()}: {finding.message}"


def check_files(paths: list[str], reference_name: str = REFERENCE_NAME) -> int:
    """Print findings for *paths*. Returns 1 if any error was reported."""
    status = 0
    for path in paths:
        if not Path(path).exists():
            print(f"mclang: {path}: No such file", file=sys.stderr)
            status = 1
            continue
        try:
            text = read_text(path)
        except (OSError, UnicodeDecodeError) as e:
            print(f"mclang: {path}: {e}", file=sys.stderr)
            status = 1
            continue
        result = validate_file(path, text, reference_name=reference_name)
        if result is None:
            continue
        candidate = TextDocument(path, text)
        for finding in result.candidate_findings:
            print(format_finding(candidate, finding))
        if result.reference_findings:
            loaded = load_reference(result.reference_path)
            ref_text = loaded[0] if loaded else ""
            reference = TextDocument(result.reference_path, ref_text)
            for finding in result.reference_findings:
                print(format_finding(reference, finding))
        if result.has_errors:
            status = 1
    return status


def preview_files(paths: list[str]) -> int:
    """Print the HTML preview page of each file in *paths*."""
    status = 0
    for path in paths:
        if not Path(path).exists():
            print(f"mclang: {path}: No such file", file=sys.stderr)
            status = 1
            continue
        print(render_preview_html(read_text(path)), end="")
    return status


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="mclang",
        description="Minecraft language file editor in Textual",
    )
    parser.add_argument("files", nargs="+", help="language files to open")
    parser.add_argument(
        "--reference-name",
        default=REFERENCE_NAME,
        help=f"reference file name looked up beside each file (default: {REFERENCE_NAME})",
    )
    parser.add_argument(
        "--check",
        action="store_true",
        help="print findings and exit (1 when errors are found)",
    )
    parser.add_argument("--log-file", default="", help="write debug log to this file")
    parser.add_argument(
        "--preview-html",
        action="store_true",
        help="print the HTML preview page of each file and exit",
    )
    args = parser.parse_args()

    if args.log_file:
        logging.basicConfig(
            filename=args.log_file,
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

    if args.preview_html:
        sys.exit(preview_files(args.files))

    if args.check:
        sys.exit(check_files(args.files, args.reference_name))

    for f in args.files:
        path = Path(f)
        if path.exists() and not path.is_file():
            print(f"mclang: {f}: Not a file", file=sys.stderr)
            sys.exit(1)
    try:
        app = LangApp(args.files, reference_name=args.reference_name)
    except (OSError, UnicodeDecodeError) as exc:
        print(f"mclang: {exc}", file=sys.stderr)
        sys.exit(1)
    app.run()


if __name__ == "__main__":
    main()
