"""Render issue and comment bodies into styled terminal lines.

The markup is the lightweight subset produced by `adf_to_text`: paragraphs,
fenced code blocks, blockquotes, headings, list items, rules and inline
emphasis. Output is a list of `rich.text.Text` lines, each at most `width`
cells wide except for verbatim code block lines.
"""

import re

from rich.text import Text

BODY_STYLE = "rgb(200,200,210)"
BOLD_STYLE = "bold white"
ITALIC_STYLE = "italic"
STRIKE_STYLE = "strike"
CODE_STYLE = "rgb(130,190,130)"
FENCE_STYLE = "rgb(80,80,100)"
LINK_STYLE = "underline rgb(100,180,255)"
QUOTE_STYLE = "rgb(80,130,180)"
BULLET_STYLE = "rgb(180,180,255)"
RULE_STYLE = "rgb(60,60,80)"
HEADING_STYLES = {
    1: "bold underline white",
    2: "bold rgb(180,180,255)",
    3: "bold rgb(180,180,200)",
}

QUOTE_MARKER = "> "
MIN_WIDTH = 8

_FENCE_RE = re.compile(r"^\s*```(?P<lang>[\w+#.-]*)\s*$")
_HEADING_RE = re.compile(r"^(?P<hashes>#{1,3}) (?P<text>.*)$")
_RULE_RE = re.compile(r"^\s*(?:-{3,}|\*{3,}|─{3,})\s*$")
_BULLET_RE = re.compile(r"^(?P<indent>\s*)[-*•] (?P<text>.*)$")
_NUMBERED_RE = re.compile(r"^(?P<indent>\s*)(?P<num>\d{1,4})[.)] (?P<text>.*)$")
_INLINE_RE = re.compile(
    r"\*\*(?P<bold>.+?)\*\*"
    r"|`(?P<code>[^`]+)`"
    r"|\[(?P<link_text>[^\]]*)\]\((?P<link_url>[^)\s]+)\)"
    r"|(?P<url>https?://\S+)"
    r"|(?<![\w*])\*(?P<star_italic>[^*\s][^*]*?)\*(?![\w*])"
    r"|(?<!\w)_(?P<italic>[^_\s][^_]*?)_(?!\w)"
    r"|~(?P<strike>[^~\s][^~]*?)~"
)
_URL_TRAILING = ".,);:!?"


def render(body: str, width: int) -> list[Text]:
    """Render `body` into styled lines no wider than `width`.

    Args:
        body: Issue description or comment text
        width: Available columns

    Returns:
        Styled lines; an empty body yields a single empty line
    """
    width = max(width, MIN_WIDTH)
    lines: list[Text] = []
    in_code = False

    for raw_line in body.splitlines():
        fence = _FENCE_RE.match(raw_line)
        if fence is not None:
            lang = fence.group("lang")
            if not in_code and lang:
                label = f"─── {lang} ───"
            else:
                label = "───"
            lines.append(Text(label, style=FENCE_STYLE))
            in_code = not in_code
            continue

        if in_code:
            lines.append(Text(raw_line, style=CODE_STYLE))
            continue

        if not raw_line.strip():
            if lines and lines[-1].plain:
                lines.append(Text(""))
            continue

        lines.extend(_render_block_line(raw_line, width))

    if not lines:
        lines.append(Text(""))
    return lines


def parse_inline(text: str, style: str = BODY_STYLE) -> Text:
    """Convert inline markup into a styled Text, dropping the markers.

    Args:
        text: Single line of text
        style: Style for unmarked text

    Returns:
        Styled Text; unmatched markers are kept literally
    """
    result = Text(style=style)
    position = 0
    for match in _INLINE_RE.finditer(text):
        if match.start() > position:
            result.append(text[position : match.start()])
        position = match.end()

        if match.group("bold") is not None:
            result.append(match.group("bold"), style=BOLD_STYLE)
        elif match.group("code") is not None:
            result.append(match.group("code"), style=CODE_STYLE)
        elif match.group("link_url") is not None:
            label = match.group("link_text") or match.group("link_url")
            result.append(label, style=LINK_STYLE)
        elif match.group("url") is not None:
            url = match.group("url").rstrip(_URL_TRAILING)
            result.append(url, style=LINK_STYLE)
            result.append(match.group("url")[len(url) :])
        elif match.group("star_italic") is not None:
            result.append(match.group("star_italic"), style=ITALIC_STYLE)
        elif match.group("italic") is not None:
            result.append(match.group("italic"), style=ITALIC_STYLE)
        else:
            result.append(match.group("strike"), style=STRIKE_STYLE)

    if position < len(text):
        result.append(text[position:])
    return result


def wrap(text: Text, width: int) -> list[Text]:
    """Greedy word wrap of a styled line.

    Breaks on whitespace; words longer than `width` are split. Styles are
    preserved because lines are sliced out of the styled text.

    Args:
        text: Styled line
        width: Maximum line width, at least 1

    Returns:
        Wrapped lines (at least one)
    """
    plain = text.plain
    if len(plain) <= width:
        return [text]

    lines: list[Text] = []
    line_start: int | None = None
    line_end = 0
    for word in re.finditer(r"\S+", plain):
        start, end = word.start(), word.end()
        if line_start is not None and end - line_start <= width:
            line_end = end
            continue
        if line_start is not None:
            lines.append(text[line_start:line_end])
        while end - start > width:
            lines.append(text[start : start + width])
            start += width
        line_start, line_end = start, end

    if line_start is not None:
        lines.append(text[line_start:line_end])
    if not lines:
        lines.append(Text(""))
    return lines


def _render_block_line(raw_line: str, width: int) -> list[Text]:
    heading = _HEADING_RE.match(raw_line)
    if heading is not None:
        level = len(heading.group("hashes"))
        return wrap(parse_inline(heading.group("text"), HEADING_STYLES[level]), width)

    if raw_line.startswith(">"):
        inner = raw_line[1:].removeprefix(" ")
        marker = Text(QUOTE_MARKER, style=QUOTE_STYLE)
        return _prefixed(marker, marker, parse_inline(inner), width)

    if _RULE_RE.match(raw_line):
        return [Text("─" * min(width, 40), style=RULE_STYLE)]

    bullet = _BULLET_RE.match(raw_line)
    if bullet is not None:
        indent = bullet.group("indent")
        first = Text.assemble(indent, ("• ", BULLET_STYLE))
        rest = Text(" " * (len(indent) + 2))
        return _prefixed(first, rest, parse_inline(bullet.group("text")), width)

    numbered = _NUMBERED_RE.match(raw_line)
    if numbered is not None:
        indent = numbered.group("indent")
        label = f"{numbered.group('num')}. "
        first = Text.assemble(indent, (label, BULLET_STYLE))
        rest = Text(" " * (len(indent) + len(label)))
        return _prefixed(first, rest, parse_inline(numbered.group("text")), width)

    return wrap(parse_inline(raw_line), width)


def _prefixed(first: Text, rest: Text, content: Text, width: int) -> list[Text]:
    available = max(width - len(first.plain), 1)
    wrapped = wrap(content, available)
    return [
        Text.assemble(first if i == 0 else rest, line) for i, line in enumerate(wrapped)
    ]
