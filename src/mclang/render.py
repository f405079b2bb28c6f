"""Style-run rendering: editor annotations and the preview document.

The terminal app shows the preview with ``render_preview_text``.
``render_preview_html`` builds the same runs as a standalone HTML page for
hosts that can show a webview, and for ``mclang --preview-html``.
"""

from __future__ import annotations

import re

from rich.style import Style
from rich.text import Text

from .codes import MARKER, StyleState, iter_runs

# 마커를 포함한 문자열 리터럴 (따옴표 안쪽이 group 1)
STRING_WITH_MARKER_RE = re.compile(
    r'"([^"\\]*(?:\\.[^"\\]*)*' + MARKER + r'[^"\\]*(?:\\.[^"\\]*)*)"'
)
_LINE_SPLIT_RE = re.compile(r"\r?\n")

PREVIEW_FOREGROUND = "#FFFFFF"
OBFUSCATED_BACKGROUND = "#585858"


class StyleCache:
    """StyleState -> rich ``Style`` handle.

    Append-only: handles are created on first use and never evicted, so one
    cache can be shared by every editor.
    """

    def __init__(self) -> None:
        self._styles: dict[StyleState, Style] = {}

    def __len__(self) -> int:
        return len(self._styles)

    def __contains__(self, state: StyleState) -> bool:
        return state in self._styles

    def get(self, state: StyleState) -> Style:
        style = self._styles.get(state)
        if style is None:
            style = Style(
                color=state.color,
                bold=state.bold or None,
                italic=state.italic or None,
                strike=state.strikethrough or None,
                underline=state.underline or None,
                bgcolor=OBFUSCATED_BACKGROUND if state.obfuscated else None,
            )
            self._styles[state] = style
        return style

    def handles(self) -> list[Style]:
        return list(self._styles.values())


def iter_annotation_runs(text: str):
    """문서 전체에서 마커를 포함한 문자열 안의 styled run (절대 offset)."""
    for m in STRING_WITH_MARKER_RE.finditer(text):
        yield from iter_runs(m.group(1), base=m.start(1))


def annotate(text: str, cache: StyleCache) -> dict[Style, list[tuple[int, int]]]:
    """Annotation mode: group the styled ranges of *text* by style handle.

    Consumers must clear every handle they applied before, since a handle
    missing from the result means "no ranges" for that style now.
    """
    ranges: dict[Style, list[tuple[int, int]]] = {}
    for run in iter_annotation_runs(text):
        ranges.setdefault(cache.get(run.state), []).append((run.start, run.end))
    return ranges


def preview_lines(text: str) -> list[list[tuple[str, StyleState]]]:
    """Split *text* into lines of ``(segment, state)`` runs.

    Every line starts from the default state; plain runs are kept so no
    visible character is lost.
    """
    lines: list[list[tuple[str, StyleState]]] = []
    for line in _LINE_SPLIT_RE.split(text):
        lines.append(
            [
                (line[run.start : run.end], run.state)
                for run in iter_runs(line, keep_default=True)
            ]
        )
    return lines


def escape_html(segment: str) -> str:
    return segment.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def css_for(state: StyleState) -> str:
    parts = [f"color: {state.color or PREVIEW_FOREGROUND};"]
    if state.bold:
        parts.append("font-weight: bold;")
    if state.italic:
        parts.append("font-style: italic;")
    decorations = []
    if state.strikethrough:
        decorations.append("line-through")
    if state.underline:
        decorations.append("underline")
    if decorations:
        parts.append(f"text-decoration: {' '.join(decorations)};")
    if state.obfuscated:
        parts.append("opacity: 0.5;")
    return " ".join(parts)


_PAGE_TEMPLATE = """\
<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<style>
body {{ font-family: 'Minecraft', 'Consolas', monospace; padding: 20px; font-size: 14px; line-height: 1.5; color: #FFFFFF; }}
.controls {{ position: fixed; top: 10px; right: 10px; z-index: 1000; }}
button {{ cursor: pointer; padding: 8px 12px; background: #444; color: white; border: 1px solid #666; border-radius: 4px; font-size: 12px; }}
button:hover {{ background: #666; }}
.bg-dark {{ background-color: #1e1e1e; }}
.bg-light {{ background-color: #ffffff; }}
</style>
</head>
<body class="bg-dark">
<div class="controls"><button onclick="toggleTheme()">Toggle Theme (B/W)</button></div>
<div id="content">{body}</div>
<script>
function toggleTheme() {{
    document.body.classList.toggle('bg-dark');
    document.body.classList.toggle('bg-light');
}}
</script>
</body>
</html>
"""


def render_preview_body(text: str) -> str:
    """라인별 ``<div>``, run별 ``<span>``. 빈 라인은 ``&nbsp;``."""
    rows: list[str] = []
    for runs in preview_lines(text):
        spans = "".join(
            f'<span style="{css_for(state)}">{escape_html(segment)}</span>'
            for segment, state in runs
        )
        rows.append(f"<div>{spans or '&nbsp;'}</div>")
    return "".join(rows)


def render_preview_html(text: str) -> str:
    """Document mode: the full preview page for *text*."""
    return _PAGE_TEMPLATE.format(body=render_preview_body(text))


def render_preview_text(text: str, cache: StyleCache | None = None) -> Text:
    """터미널 preview 패널용 Rich Text (document mode와 같은 run 목록)."""
    cache = cache if cache is not None else StyleCache()
    base = Style(color=PREVIEW_FOREGROUND)
    result = Text()
    for i, runs in enumerate(preview_lines(text)):
        if i:
            result.append("\n")
        if not runs:
            result.append(" ")
            continue
        for segment, state in runs:
            result.append(segment, style=base + cache.get(state))
    return result
