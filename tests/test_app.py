"""Tests for the command-line modes."""

from mclang.app import check_files, format_finding, preview_files, read_text
from mclang.refdiff import Finding, Severity
from mclang.workspace import TextDocument


class TestReadText:
    def test_missing_file_starts_empty(self, tmp_path):
        assert read_text(tmp_path / "nope.json") == "{}"

    def test_crlf_normalized(self, tmp_path):
        path = tmp_path / "a.json"
        path.write_bytes(b'{\r\n"a": "A"\r\n}')
        assert read_text(path) == '{\n"a": "A"\n}'


class TestCheckFiles:
    """--check 출력 테스트."""

    def test_format_finding(self):
        doc = TextDocument("ko_kr.json", '{\n  "a": ""\n}')
        finding = Finding(doc.path, 4, 7, "Translation is empty", Severity.WARNING, "a")
        assert format_finding(doc, finding) == "ko_kr.json:2:3: warning: Translation is empty"

    def test_clean_file(self, tmp_path, capsys):
        (tmp_path / "en_us.json").write_text('{"a": "A"}', encoding="utf-8")
        (tmp_path / "ko_kr.json").write_text('{"a": "가"}', encoding="utf-8")
        assert check_files([str(tmp_path / "ko_kr.json")]) == 0
        assert capsys.readouterr().out == ""

    def test_errors_reported_on_both_files(self, tmp_path, capsys):
        (tmp_path / "en_us.json").write_text('{\n    "a": "A",\n    "b": "B"\n}', encoding="utf-8")
        (tmp_path / "ko_kr.json").write_text('{"a": "", "x": "X"}', encoding="utf-8")
        assert check_files([str(tmp_path / "ko_kr.json")]) == 1
        out = capsys.readouterr().out.splitlines()
        assert out == [
            f"{tmp_path / 'ko_kr.json'}:1:2: warning: Translation is empty",
            f"{tmp_path / 'ko_kr.json'}:1:11: error: Key not present in en_us.json",
            f"{tmp_path / 'en_us.json'}:3:5: error: Missing translation in ko_kr.json",
        ]

    def test_warnings_only_exit_zero(self, tmp_path, capsys):
        (tmp_path / "en_us.json").write_text('{"a": "A"}', encoding="utf-8")
        (tmp_path / "ko_kr.json").write_text('{"a": ""}', encoding="utf-8")
        assert check_files([str(tmp_path / "ko_kr.json")]) == 0
        assert "warning" in capsys.readouterr().out

    def test_without_reference_nothing_printed(self, tmp_path, capsys):
        (tmp_path / "ko_kr.json").write_text('{"a": ""}', encoding="utf-8")
        assert check_files([str(tmp_path / "ko_kr.json")]) == 0
        assert capsys.readouterr().out == ""

    def test_missing_file_reported(self, tmp_path, capsys):
        (tmp_path / "en_us.json").write_text('{"a": "A"}', encoding="utf-8")
        missing = tmp_path / "typo.json"
        assert check_files([str(missing)]) == 1
        captured = capsys.readouterr()
        assert captured.out == ""
        assert captured.err == f"mclang: {missing}: No such file\n"


class TestPreviewFiles:
    """--preview-html 출력 테스트."""

    def test_prints_page(self, tmp_path, capsys):
        path = tmp_path / "ko_kr.json"
        path.write_text('{"a": "§aHi"}', encoding="utf-8")
        assert preview_files([str(path)]) == 0
        out = capsys.readouterr().out
        assert out.startswith("<!DOCTYPE html>")
        assert '<span style="color: #55FF55;">Hi"}</span>' in out

    def test_missing_file(self, tmp_path, capsys):
        assert preview_files([str(tmp_path / "nope.json")]) == 1
        assert "No such file" in capsys.readouterr().err
