"""Frame rendering: turns engine state into rich Text lines.

Rendering is a pure function of the engine, regenerated after every event.
The app only copies the frame's regions into its widgets.
"""

from __future__ import annotations

from dataclasses import dataclass

from rich.text import Text

from mindful_jira.core.filtering import IssueRow
from mindful_jira.core.rich_text import MIN_WIDTH
from mindful_jira.tui.engine import NavigationEngine, StatusLevel
from mindful_jira.tui.screens import (
    CommentEditor,
    FilterEditor,
    MentionPicker,
    NoteEditor,
    Origin,
    SearchInput,
    TicketDetail,
    TransitionPicker,
)
from mindful_jira.tui.text_buffer import TextBuffer

APP_NAME = "mindful-jira"
KEY_WIDTH = 12
STATUS_WIDTH = 14

TITLE_STYLE = "bold white"
LOADING_STYLE = "rgb(230,200,120)"
AUTH_MARKER_STYLE = "bold white on red"
HEADER_STYLE = "bold rgb(140,140,160)"
KEY_STYLE = "rgb(100,180,255)"
STATUS_STYLE = "rgb(160,200,160)"
NOTE_SNIPPET_STYLE = "italic rgb(230,200,120)"
MATCH_STYLE = "bold underline rgb(255,210,80)"
ORPHAN_STYLE = "dim italic"
CONTEXT_PARENT_STYLE = "dim"
HIGHLIGHT_ROW_STYLE = "on rgb(70,50,15)"
SELECTED_ROW_STYLE = "reverse"
PENDING_MARKER = "…"
HIGHLIGHT_MARKER = "★"
HINT_STYLE = "rgb(110,110,130)"
INFO_STYLE = "rgb(200,200,210)"
ERROR_STYLE = "bold red"
AUTH_STYLE = "bold white on red"
CURSOR_STYLE = "reverse"
INLINE_ERROR_STYLE = "bold red"
OVERLAY_TITLE_STYLE = "bold rgb(180,180,255)"

LIST_HINTS = (
    "enter open · / search · f filters · n note · h highlight · o sort · "
    "p parents · r refresh · ? help · q quit"
)
DETAIL_HINTS = (
    "esc back · n/p comment · c add · e edit · x delete · t transition · "
    "N note · y copy · l link · w browser"
)


@dataclass(frozen=True)
class Frame:
    """One rendered frame.

    Attributes:
        title: Title bar line
        body: Main area lines
        overlay: Lines of the active overlay, None when no overlay is open
        status: Status bar line
    """

    title: Text
    body: list[Text]
    overlay: list[Text] | None
    status: Text


def overlay_width(width: int) -> int:
    """Content width of the overlay box for a terminal `width` cells wide."""
    return max(min(width * 4 // 5, 100) - 4, MIN_WIDTH)


def render_frame(engine: NavigationEngine, width: int, height: int) -> Frame:
    """Render the engine's current state.

    Args:
        engine: Engine to render
        width: Terminal width in cells
        height: Terminal height in cells

    Returns:
        The frame to display
    """
    width = max(width, MIN_WIDTH)
    in_detail = _shows_detail(engine)

    body = _detail_body(engine) if in_detail else _list_body(engine, width)
    # Title and status bars take one line each.
    body = body[: max(height - 2, 0)]
    return Frame(
        title=_title(engine, in_detail),
        body=body,
        overlay=_overlay(engine, overlay_width(width)),
        status=_status_line(engine, in_detail),
    )


def _shows_detail(engine: NavigationEngine) -> bool:
    if engine.detail_view is None:
        return False
    match engine.screen:
        case TicketDetail() | CommentEditor() | TransitionPicker():
            return True
        case NoteEditor(origin=Origin.TICKET_DETAIL):
            return True
    return False


def _title(engine: NavigationEngine, in_detail: bool) -> Text:
    title = Text(f" {APP_NAME}", style=TITLE_STYLE)
    view = engine.detail_view
    if in_detail and view is not None:
        key = view.detail.issue.key if view.detail is not None else view.issue_id
        title.append(f"  │  {key}")
    else:
        remote = sum(1 for entry in engine.merged.values() if not entry.orphaned)
        orphans = len(engine.merged) - remote
        title.append(f"  │  {remote} issues")
        if orphans:
            title.append(f", {orphans} orphaned")
        title.append(f"  │  {engine.issue_filter.sort_key.display_label}")
        if engine.issue_filter.show_all_parents:
            title.append("  │  all parents")
    if engine.loading:
        title.append("  ⟳", style=LOADING_STYLE)
    if engine.auth_failed:
        title.append("  ", style=TITLE_STYLE)
        title.append(" AUTH FAILED ", style=AUTH_MARKER_STYLE)
    return title


def _list_body(engine: NavigationEngine, width: int) -> list[Text]:
    lines: list[Text] = []
    screen = engine.screen
    if isinstance(screen, SearchInput):
        bar = Text("/ ", style=KEY_STYLE)
        bar.append_text(_buffer_lines(screen.buffer, width - 2)[0])
        lines.append(bar)
    elif engine.issue_filter.query:
        bar = Text("/ ", style=KEY_STYLE)
        bar.append(engine.issue_filter.query)
        bar.append("   (esc clears)", style=HINT_STYLE)
        lines.append(bar)

    header = Text("  " + "KEY".ljust(KEY_WIDTH) + " " + "STATUS".ljust(STATUS_WIDTH) + " SUMMARY")
    header.stylize(HEADER_STYLE)
    lines.append(header)

    if not engine.rows:
        if not engine.loaded and engine.refresh_in_flight:
            lines.append(Text("Loading issues...", style=HINT_STYLE))
        elif engine.issue_filter.query:
            lines.append(Text("No issues match the search", style=HINT_STYLE))
        else:
            lines.append(Text("No issues", style=HINT_STYLE))
        return lines

    view = engine.list_view
    visible = engine.rows[view.scroll : view.scroll + engine.list_height]
    for offset, row in enumerate(visible):
        index = view.scroll + offset
        lines.append(
            issue_row_line(
                row,
                width=width,
                selected=index == view.selected_index,
                pending=engine.has_pending_write(row.issue.id),
            )
        )
    return lines


def issue_row_line(row: IssueRow, *, width: int, selected: bool, pending: bool) -> Text:
    """Render one issue list row, padded or truncated to `width`."""
    entry = row.issue
    line = Text(no_wrap=True, overflow="ellipsis")
    marker = HIGHLIGHT_MARKER if entry.highlighted else " "
    line.append(marker + (PENDING_MARKER if pending else " "))
    line.append("  " * row.depth)

    key = Text(entry.key, style=KEY_STYLE)
    for start, length in row.key_spans:
        key.stylize(MATCH_STYLE, start, start + length)
    key.pad_right(max(KEY_WIDTH - key.cell_len, 0))
    line.append_text(key)
    line.append(" ")
    line.append(entry.status[:STATUS_WIDTH].ljust(STATUS_WIDTH), style=STATUS_STYLE)
    line.append(" ")

    summary = Text(entry.summary)
    for start, length in row.summary_spans:
        summary.stylize(MATCH_STYLE, start, start + length)
    line.append_text(summary)

    if entry.note:
        first_line = entry.note.splitlines()[0]
        line.append(f"  ✎ {first_line}", style=NOTE_SNIPPET_STYLE)

    if entry.orphaned:
        line.stylize(ORPHAN_STYLE)
    elif entry.issue.is_context_parent:
        line.stylize(CONTEXT_PARENT_STYLE)

    line.truncate(width, overflow="ellipsis", pad=True)
    if entry.highlighted:
        line.stylize(HIGHLIGHT_ROW_STYLE)
    if selected:
        line.stylize(SELECTED_ROW_STYLE)
    return line


def _detail_body(engine: NavigationEngine) -> list[Text]:
    view = engine.detail_view
    if view is None:
        return []
    layout = engine.detail_layout()
    if layout is None:
        if view.error:
            return [Text(f"Could not load issue: {view.error}", style=ERROR_STYLE)]
        return [Text("Loading issue...", style=HINT_STYLE)]
    return layout.lines[view.scroll : view.scroll + engine.detail_height]


def _overlay(engine: NavigationEngine, width: int) -> list[Text] | None:
    match engine.screen:
        case FilterEditor() as screen:
            return _filter_editor_lines(screen, width)
        case CommentEditor() as screen:
            return _comment_editor_lines(screen, width)
        case TransitionPicker() as screen:
            return _transition_picker_lines(engine, screen)
        case NoteEditor() as screen:
            entry = engine.merged.get(screen.issue_id)
            label = entry.key if entry is not None else screen.issue_id
            lines = [Text(f"Note for {label}", style=OVERLAY_TITLE_STYLE), Text("")]
            lines.extend(_buffer_lines(screen.buffer, width))
            lines.append(Text(""))
            lines.append(Text("enter newline · ctrl+s save · esc cancel", style=HINT_STYLE))
            return lines
    return None


def _filter_editor_lines(screen: FilterEditor, width: int) -> list[Text]:
    lines = [Text("Status filters", style=OVERLAY_TITLE_STYLE), Text("")]
    if not screen.filters:
        lines.append(Text("No status filters", style=HINT_STYLE))
    for index, status_filter in enumerate(screen.filters):
        check = "[x]" if status_filter.excluded else "[ ]"
        line = Text(f"{check} {status_filter.name}")
        if status_filter.excluded:
            line.append("  hidden", style=HINT_STYLE)
        if index == screen.selected and screen.adding is None:
            line.stylize(SELECTED_ROW_STYLE)
        lines.append(line)
    if screen.adding is not None:
        prompt = Text("New status: ", style=KEY_STYLE)
        prompt.append_text(_buffer_lines(screen.adding, width - 12)[0])
        lines.append(prompt)
    lines.append(Text(""))
    parents = "on" if screen.show_all_parents else "off"
    lines.append(Text(f"Show parents assigned to others: {parents}"))
    lines.append(Text(""))
    if screen.adding is not None:
        lines.append(Text("enter add · esc cancel", style=HINT_STYLE))
    else:
        lines.append(
            Text(
                "space toggle · a add · d delete · p parents · enter apply · esc cancel",
                style=HINT_STYLE,
            )
        )
    return lines


def _comment_editor_lines(screen: CommentEditor, width: int) -> list[Text]:
    title = "Edit comment" if screen.comment_id is not None else "Add comment"
    lines = [Text(title, style=OVERLAY_TITLE_STYLE), Text("")]
    lines.extend(_buffer_lines(screen.buffer, width))
    lines.append(Text(""))
    if screen.error:
        lines.append(Text(screen.error, style=INLINE_ERROR_STYLE))
    if screen.mention is not None:
        lines.extend(_mention_picker_lines(screen.mention))
    elif screen.submitting:
        lines.append(Text("Submitting...", style=LOADING_STYLE))
    else:
        lines.append(
            Text("enter newline · @ mention · ctrl+s submit · esc cancel", style=HINT_STYLE)
        )
    return lines


def _mention_picker_lines(picker: MentionPicker) -> list[Text]:
    lines = [Text(f"Mention @{picker.query}", style=KEY_STYLE)]
    if not picker.query:
        lines.append(Text("Type a name to search", style=HINT_STYLE))
    elif not picker.candidates:
        lines.append(Text("No matching users", style=HINT_STYLE))
    for index, user in enumerate(picker.candidates):
        line = Text(f"  {user.display_name}")
        if index == picker.selected:
            line.stylize(SELECTED_ROW_STYLE)
        lines.append(line)
    lines.append(Text("enter insert · esc plain text", style=HINT_STYLE))
    return lines


def _transition_picker_lines(engine: NavigationEngine, screen: TransitionPicker) -> list[Text]:
    entry = engine.merged.get(screen.issue_id)
    label = entry.key if entry is not None else screen.issue_id
    lines = [Text(f"Move {label} to", style=OVERLAY_TITLE_STYLE), Text("")]
    if screen.loading:
        lines.append(Text("Loading transitions...", style=LOADING_STYLE))
        return lines
    for index, transition in enumerate(screen.transitions):
        line = Text(transition.name)
        if transition.to_status and transition.to_status != transition.name:
            line.append(f"  → {transition.to_status}", style=HINT_STYLE)
        if index == screen.selected:
            line.stylize(SELECTED_ROW_STYLE)
        lines.append(line)
    lines.append(Text(""))
    if screen.error:
        lines.append(Text(screen.error, style=INLINE_ERROR_STYLE))
    if screen.applying:
        lines.append(Text("Applying...", style=LOADING_STYLE))
    else:
        lines.append(Text("enter apply · esc cancel", style=HINT_STYLE))
    return lines


def _buffer_lines(buffer: TextBuffer, width: int) -> list[Text]:
    """Render a text buffer with a visible cursor, hard-wrapped at `width`."""
    width = max(width, 1)
    cursor_line, cursor_column = buffer.line_and_column
    lines: list[Text] = []
    for index, raw in enumerate(buffer.text.split("\n")):
        text = Text(raw)
        if index == cursor_line:
            if cursor_column < len(raw):
                text.stylize(CURSOR_STYLE, cursor_column, cursor_column + 1)
            else:
                text.append(" ", style=CURSOR_STYLE)
        for start in range(0, max(len(text), 1), width):
            lines.append(text[start : start + width])
    return lines


def _status_line(engine: NavigationEngine, in_detail: bool) -> Text:
    status = engine.status
    if status is None:
        return Text(" " + (DETAIL_HINTS if in_detail else LIST_HINTS), style=HINT_STYLE)
    style = {
        StatusLevel.INFO: INFO_STYLE,
        StatusLevel.ERROR: ERROR_STYLE,
        StatusLevel.AUTH: AUTH_STYLE,
    }[status.level]
    return Text(f" {status.text}", style=style)
