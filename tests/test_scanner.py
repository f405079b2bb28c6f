"""Tests for the lenient key/value scanner."""

import json

import pytest

from mclang.scanner import (
    build_skeleton,
    default_target_path,
    scan_entries,
    scan_keys,
    write_skeleton,
)


class TestScanEntries:
    """느슨한 스캔 테스트."""

    def test_simple_pairs(self):
        text = '{\n    "a": "A",\n    "b": "B"\n}'
        entries = list(scan_entries(text))
        assert [(e.key, e.value) for e in entries] == [("a", "A"), ("b", "B")]

    def test_key_span_covers_quoted_key(self):
        text = '{"item.sword": "Sword"}'
        entry = next(scan_entries(text))
        assert text[entry.key_start : entry.key_end] == '"item.sword"'

    def test_missing_value(self):
        entries = list(scan_entries('{"a": '))
        assert len(entries) == 1
        assert entries[0].key == "a"
        assert entries[0].value is None

    def test_non_string_value(self):
        entry = next(scan_entries('{"count": 3}'))
        assert entry.value is None

    def test_empty_value(self):
        entry = next(scan_entries('{"a": ""}'))
        assert entry.value == ""

    def test_trailing_comma_and_unclosed(self):
        text = '{\n  "a": "A",\n  "b": "B",\n'
        assert [e.key for e in scan_entries(text)] == ["a", "b"]

    def test_comments_and_garbage(self):
        text = '// header\n{ "a": "A", /* note */ "b": "B" ]]]'
        assert [e.key for e in scan_entries(text)] == ["a", "b"]

    def test_escaped_quotes(self):
        text = r'{"say \"hi\"": "He said \"hi\""}'
        entry = next(scan_entries(text))
        assert entry.key == 'say "hi"'
        assert entry.raw_key == r"say \"hi\""
        assert entry.value == r"He said \"hi\""
        assert text[entry.key_start : entry.key_end] == r'"say \"hi\""'

    def test_duplicates_reported(self):
        text = '{"a": "1", "a": "2"}'
        assert [e.value for e in scan_entries(text)] == ["1", "2"]

    def test_value_with_colon_not_a_key(self):
        text = '{"a": "x: y", "b": "z"}'
        assert [e.key for e in scan_entries(text)] == ["a", "b"]

    def test_never_raises(self):
        for text in ["", "{", '"', '"\\', "}}}:::", '"a":"b']:
            list(scan_entries(text))

    @pytest.mark.parametrize(
        "mapping",
        [
            {"a": "A", "b": "B"},
            {"block.minecraft.stone": "Stone", "gui.done": "§aDone"},
            {"quote \"k\"": "v", "path\\key": "w", "unicode": "한글"},
        ],
    )
    def test_agrees_with_json_parse(self, mapping):
        for text in (json.dumps(mapping), json.dumps(mapping, indent=4, ensure_ascii=False)):
            assert {e.key for e in scan_entries(text)} == set(json.loads(text))


class TestScanKeys:
    """key 목록 + strict parse fallback 테스트."""

    def test_dedup_keeps_first(self):
        entries = scan_keys('{"a": "1", "b": "2", "a": "3"}')
        assert [e.key for e in entries] == ["a", "b"]
        assert entries[0].value == "1"

    def test_fallback_to_strict_parse(self, monkeypatch):
        import mclang.scanner as scanner

        monkeypatch.setattr(scanner, "scan_entries", lambda text: iter(()))
        entries = scanner.scan_keys('{"k1": "v", "k2": 2}')
        assert [e.key for e in entries] == ["k1", "k2"]
        assert all(not e.has_span for e in entries)
        assert entries[1].value is None

    def test_fallback_non_object(self):
        assert scan_keys("[1, 2, 3]") == []

    def test_fallback_invalid_raises(self):
        with pytest.raises(ValueError):
            scan_keys("not json at all")


class TestSkeleton:
    """번역 skeleton 생성 테스트."""

    def test_order_preserved(self):
        result = build_skeleton('{"k1": "one", "k2": "two"}')
        assert result == '{\n    "k1": "",\n    "k2": ""\n}'
        assert list(json.loads(result)) == ["k1", "k2"]

    def test_unicode_kept(self):
        result = build_skeleton('{"한글": "값"}')
        assert '"한글"' in result

    def test_write(self, tmp_path):
        target = tmp_path / "ko_kr.json"
        path = write_skeleton('{"a": "A"}', target)
        assert path == target
        assert json.loads(target.read_text(encoding="utf-8")) == {"a": ""}

    def test_write_failure_leaves_no_file(self, tmp_path):
        target = tmp_path / "out.json"
        with pytest.raises(ValueError):
            write_skeleton("garbage", target)
        assert not target.exists()

    def test_default_target_path(self, tmp_path):
        source = tmp_path / "en_us.json"
        assert default_target_path(source) == tmp_path / "new_lang.json"
        (tmp_path / "new_lang.json").write_text("{}")
        assert default_target_path(source) == tmp_path / "new_lang_2.json"
