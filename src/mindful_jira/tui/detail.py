"""Line layout of the ticket detail screen."""

from __future__ import annotations

from dataclasses import dataclass

from rich.text import Text

from mindful_jira.core.rich_text import MIN_WIDTH, render, wrap
from mindful_jira.core.types import IssueDetail, MergedIssue

KEY_STYLE = "bold rgb(100,180,255)"
SUMMARY_STYLE = "bold white"
META_STYLE = "rgb(140,140,160)"
SECTION_STYLE = "bold rgb(180,180,255)"
NOTE_STYLE = "rgb(230,200,120)"
COMMENT_HEADER_STYLE = "rgb(160,200,160)"
SELECTED_COMMENT_STYLE = "bold reverse rgb(160,200,160)"
BODY_INDENT = "  "


@dataclass(frozen=True)
class DetailLayout:
    """Rendered detail lines and where each comment starts.

    Attributes:
        lines: All lines of the detail body
        comment_offsets: Line index of each comment header, in comment order
    """

    lines: list[Text]
    comment_offsets: tuple[int, ...]


def layout_detail(
    detail: IssueDetail,
    merged: MergedIssue | None,
    *,
    selected_comment: int | None,
    account_id: str,
    width: int,
) -> DetailLayout:
    """Lay out issue fields, note, description and comments as lines.

    Args:
        detail: Loaded issue detail
        merged: Merged view of the issue, for the private note
        selected_comment: Index of the selected comment
        account_id: Current user's account id, to mark own comments
        width: Available width in cells

    Returns:
        The laid-out detail
    """
    width = max(width, MIN_WIDTH)
    issue = detail.issue
    lines: list[Text] = []

    header = Text()
    header.append(issue.key, style=KEY_STYLE)
    meta = "  ·  ".join(part for part in (issue.issue_type, issue.status, issue.priority) if part)
    if meta:
        header.append(f"  {meta}", style=META_STYLE)
    lines.append(header)
    lines.extend(wrap(Text(issue.summary, style=SUMMARY_STYLE), width))
    lines.append(Text(""))

    if merged is not None and merged.note:
        lines.append(Text("Note", style=SECTION_STYLE))
        for line in render(merged.note, width - len(BODY_INDENT)):
            lines.append(Text(BODY_INDENT, style=NOTE_STYLE) + line)
        lines.append(Text(""))

    lines.append(Text("Description", style=SECTION_STYLE))
    lines.extend(render(detail.description, width))
    lines.append(Text(""))

    offsets: list[int] = []
    if detail.comments:
        lines.append(Text(f"Comments ({len(detail.comments)})", style=SECTION_STYLE))
    else:
        lines.append(Text("No comments", style=META_STYLE))

    for index, comment in enumerate(detail.comments):
        offsets.append(len(lines))
        label = f"#{index + 1} {comment.author} ({comment.created})"
        if comment.updated and comment.updated != comment.created:
            label += f" edited {comment.updated}"
        if account_id and comment.author_account_id == account_id:
            label += " · you"
        style = SELECTED_COMMENT_STYLE if index == selected_comment else COMMENT_HEADER_STYLE
        lines.append(Text(label, style=style))
        for line in render(comment.body, width - len(BODY_INDENT)):
            lines.append(Text(BODY_INDENT) + line)
        lines.append(Text(""))

    return DetailLayout(lines=lines, comment_offsets=tuple(offsets))


def ticket_text(detail: IssueDetail) -> str:
    """Plain-text export of a ticket for the clipboard."""
    issue = detail.issue
    parts = [f"{issue.key}\n{issue.summary}\n\n", "Description:\n", detail.description, "\n\n"]
    if detail.comments:
        parts.append(f"Comments ({len(detail.comments)}):\n")
        for index, comment in enumerate(detail.comments):
            parts.append(f"\n#{index + 1} {comment.author} ({comment.created})\n")
            parts.append(comment.body)
            parts.append("\n")
    return "".join(parts)
