"""Tests for the formatting code engine."""

from mclang.codes import (
    MARKER,
    FormatCode,
    StyleState,
    StyledRun,
    iter_runs,
    strip_codes,
)


def _runs(text, **kwargs):
    return [(text[r.start : r.end], r.state) for r in iter_runs(text, **kwargs)]


class TestFormatCode:
    """코드 테이블 테스트."""

    def test_twenty_two_codes(self):
        assert len(FormatCode) == 22

    def test_lookup_is_case_insensitive(self):
        assert FormatCode.lookup("a") is FormatCode.GREEN
        assert FormatCode.lookup("A") is FormatCode.GREEN
        assert FormatCode.lookup("L") is FormatCode.BOLD

    def test_lookup_unknown(self):
        assert FormatCode.lookup("z") is None
        assert FormatCode.lookup("§") is None

    def test_color_codes_have_swatch(self):
        colors = [c for c in FormatCode if c.is_color]
        assert len(colors) == 16
        assert FormatCode.GOLD.color == "#FFAA00"
        assert FormatCode.BOLD.color is None

    def test_sequence(self):
        assert FormatCode.RESET.sequence == MARKER + "r"


class TestStyleState:
    """StyleState 전이 규칙 테스트."""

    def test_default(self):
        assert StyleState().is_default
        assert StyleState.DEFAULT == StyleState()

    def test_color_resets_modifiers(self):
        state = StyleState(color="#FF5555", bold=True, italic=True)
        state = state.apply(FormatCode.GREEN)
        assert state == StyleState(color="#55FF55")

    def test_modifier_keeps_others(self):
        state = StyleState(color="#55FF55").apply(FormatCode.BOLD)
        state = state.apply(FormatCode.UNDERLINE)
        assert state == StyleState(color="#55FF55", bold=True, underline=True)

    def test_reset_always_default(self):
        for code in FormatCode:
            state = StyleState.DEFAULT.apply(code).apply(FormatCode.OBFUSCATED)
            assert state.apply(FormatCode.RESET) == StyleState.DEFAULT

    def test_unknown_code_is_noop(self):
        state = StyleState(color="#FFFFFF", italic=True)
        assert state.apply(None) is state

    def test_structural_hash(self):
        a = StyleState(color="#55FF55", bold=True)
        b = StyleState.DEFAULT.apply(FormatCode.GREEN).apply(FormatCode.BOLD)
        assert a == b
        assert len({a, b}) == 1


class TestIterRuns:
    """run 분할 테스트."""

    def test_plain_text_has_no_styled_runs(self):
        assert list(iter_runs("plain text")) == []

    def test_plain_text_keep_default_single_run(self):
        runs = list(iter_runs("plain text", keep_default=True))
        assert runs == [StyledRun(0, 10, StyleState.DEFAULT)]

    def test_empty(self):
        assert list(iter_runs("")) == []
        assert list(iter_runs("", keep_default=True)) == []

    def test_reset_clears_color(self):
        value = "§aHello§r World"
        runs = list(iter_runs(value, keep_default=True))
        assert len(runs) == 2
        assert value[runs[0].start : runs[0].end] == "Hello"
        assert runs[0].state == StyleState(color="#55FF55")
        assert value[runs[1].start : runs[1].end] == " World"
        assert runs[1].state == StyleState.DEFAULT

    def test_annotation_mode_skips_default_runs(self):
        assert _runs("§aHello§r World") == [("Hello", StyleState(color="#55FF55"))]

    def test_marker_never_inside_run(self):
        text = "a§lb§oc"
        for segment, _state in _runs(text, keep_default=True):
            assert MARKER not in segment
        assert strip_codes(text) == "abc"

    def test_modifier_accumulates(self):
        runs = _runs("§cred§lbold")
        assert runs == [
            ("red", StyleState(color="#FF5555")),
            ("bold", StyleState(color="#FF5555", bold=True)),
        ]

    def test_trailing_marker_is_literal(self):
        runs = _runs("§aend§", keep_default=True)
        assert runs == [("end§", StyleState(color="#55FF55"))]

    def test_unknown_code_consumes_two_chars(self):
        runs = _runs("§ahi§zthere")
        assert runs == [
            ("hi", StyleState(color="#55FF55")),
            ("there", StyleState(color="#55FF55")),
        ]

    def test_consecutive_markers_no_empty_runs(self):
        runs = list(iter_runs("§a§lx"))
        assert len(runs) == 1
        assert runs[0].state == StyleState(color="#55FF55", bold=True)

    def test_base_offset(self):
        runs = list(iter_runs("§ax", base=10))
        assert runs == [StyledRun(12, 13, StyleState(color="#55FF55"))]

    def test_restartable(self):
        text = "§6gold§ritem"
        assert list(iter_runs(text)) == list(iter_runs(text))

    def test_runs_ordered_and_disjoint(self):
        text = "x§ay§lz§rw§9q"
        runs = list(iter_runs(text, keep_default=True))
        for prev, cur in zip(runs, runs[1:]):
            assert prev.end <= cur.start
        assert "".join(r.text_of(text) for r in runs) == "xyzwq"
