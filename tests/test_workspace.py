"""Tests for documents and change signals."""

from mclang.workspace import Signal, TextDocument, Workspace, language_for


class TestSignal:
    """구독/해제 테스트."""

    def test_emit_in_order(self):
        calls = []
        sig = Signal()
        sig.subscribe(lambda x: calls.append(("a", x)))
        sig.subscribe(lambda x: calls.append(("b", x)))
        sig.emit(1)
        assert calls == [("a", 1), ("b", 1)]

    def test_dispose_is_idempotent(self):
        calls = []
        sig = Signal()
        sub = sig.subscribe(calls.append)
        sub.dispose()
        sub.dispose()
        sig.emit(1)
        assert calls == []
        assert len(sig) == 0
        assert not sub.active

    def test_dispose_during_emit(self):
        calls = []
        sig = Signal()
        second = None

        def first(x):
            calls.append("first")
            second.dispose()

        sig.subscribe(first)
        second = sig.subscribe(lambda x: calls.append("second"))
        sig.emit(0)
        assert calls == ["first"]


class TestTextDocument:
    def test_language(self):
        assert language_for("a/en_us.json") == "json"
        assert language_for("x.JSONC") == "jsonc"
        assert language_for("README.md") == "markdown"
        assert language_for("notes.txt") == "plaintext"

    def test_version_bumps_only_on_change(self):
        doc = TextDocument("ko_kr.json", "{}")
        assert not doc.set_text("{}")
        assert doc.version == 0
        assert doc.set_text('{"a": ""}')
        assert doc.version == 1

    def test_positions(self):
        doc = TextDocument("x.json", 'ab\n"cd"\n\nz')
        assert doc.position_at(0) == (0, 0)
        assert doc.position_at(3) == (1, 0)
        assert doc.position_at(5) == (1, 2)
        assert doc.position_at(8) == (2, 0)
        assert doc.position_at(100) == (3, 1)
        assert doc.offset_at(1, 2) == 5
        assert doc.offset_at(3, 0) == 9

    def test_file_name(self):
        assert TextDocument("lang/ko_kr.json").file_name == "ko_kr.json"


class TestWorkspace:
    def test_open_once(self):
        ws = Workspace()
        opened = []
        ws.did_open.subscribe(opened.append)
        a = ws.open_document("lang/./ko_kr.json", "{}")
        b = ws.open_document("lang/ko_kr.json", "changed")
        assert a is b
        assert opened == [a]
        assert a.text == "{}"

    def test_change_emits_only_on_difference(self):
        ws = Workspace()
        changes = []
        ws.did_change.subscribe(changes.append)
        doc = ws.open_document("a.json", "{}")
        ws.change_document(doc, "{}")
        ws.change_document(doc, '{"a": ""}')
        assert changes == [doc]

    def test_active_editor_change_once(self):
        ws = Workspace()
        events = []
        ws.did_change_active_editor.subscribe(events.append)
        editor = object()
        ws.set_active_editor(editor)
        ws.set_active_editor(editor)
        assert events == [editor]
