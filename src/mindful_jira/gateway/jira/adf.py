"""Atlassian Document Format (ADF) conversion.

Jira Cloud stores descriptions and comments as ADF JSON trees. Incoming
documents are flattened into the lightweight markup understood by
`mindful_jira.core.rich_text`; outgoing comment text is wrapped into one
paragraph per line, with URLs turned into inline cards and placed mentions
into mention nodes.
"""

import re
from collections.abc import Sequence
from typing import Any

from mindful_jira.core.types import MentionInsert

_URL_RE = re.compile(r"https?://\S+")

_MARK_WRAPPERS = {
    "strong": ("**", "**"),
    "em": ("_", "_"),
    "code": ("`", "`"),
    "strike": ("~", "~"),
}


def adf_to_text(node: Any) -> str:
    """Flatten an ADF node into markup text.

    Args:
        node: ADF node (usually the "doc" root); None yields ""

    Returns:
        Markup text
    """
    if not isinstance(node, dict):
        return ""

    node_type = node.get("type")
    attrs = node.get("attrs") or {}

    if node_type == "paragraph":
        return _children_text(node) + "\n"
    if node_type == "heading":
        level = int(attrs.get("level", 1))
        return f"{'#' * min(max(level, 1), 3)} {_children_text(node)}\n"
    if node_type == "text":
        return _apply_marks(str(node.get("text", "")), node.get("marks"))
    if node_type == "hardBreak":
        return "\n"
    if node_type == "bulletList":
        return "".join(
            _list_item(item, "- ") for item in node.get("content", []) if isinstance(item, dict)
        )
    if node_type == "orderedList":
        start = int(attrs.get("order", 1))
        items = [item for item in node.get("content", []) if isinstance(item, dict)]
        return "".join(_list_item(item, f"{start + i}. ") for i, item in enumerate(items))
    if node_type == "listItem":
        return _list_item(node, "- ")
    if node_type == "blockquote":
        inner = _children_text(node)
        return "".join(f"> {line}\n" for line in inner.splitlines() if line.strip())
    if node_type == "codeBlock":
        language = attrs.get("language") or ""
        body = _children_text(node)
        if not body.endswith("\n"):
            body += "\n"
        return f"```{language}\n{body}```\n"
    if node_type == "mention":
        return str(attrs.get("text") or "@someone")
    if node_type == "emoji":
        return str(attrs.get("text") or attrs.get("shortName") or "")
    if node_type == "inlineCard":
        return str(attrs.get("url") or "[link]")
    if node_type in ("mediaGroup", "mediaSingle"):
        return "[media]\n"
    if node_type == "media":
        return "[media]"
    if node_type == "rule":
        return "---\n"
    if node_type in ("table", "tableRow"):
        return _children_text(node) + "\n"
    if node_type in ("tableCell", "tableHeader"):
        return _children_text(node).strip() + " | "
    return _children_text(node)


def text_to_adf(text: str, mentions: Sequence[MentionInsert] = ()) -> dict[str, Any]:
    """Wrap comment text into an ADF document.

    Args:
        text: Comment body; each line becomes a paragraph
        mentions: Mentions placed in `text`; each becomes a mention node that
            notifies the user. Mentions whose text no longer matches are sent
            as plain text.

    Returns:
        ADF "doc" node
    """
    placed = sorted(
        (m for m in mentions if text[m.start : m.end] == m.text and "\n" not in m.text),
        key=lambda m: m.start,
    )
    paragraphs = []
    line_start = 0
    for line in text.split("\n"):
        line_end = line_start + len(line)
        content: list[dict[str, Any]] = []
        position = line_start
        for mention in placed:
            if mention.start < position or mention.end > line_end:
                continue
            content.extend(_text_nodes(text[position : mention.start]))
            content.append(
                {
                    "type": "mention",
                    "attrs": {"id": mention.account_id, "text": mention.text, "accessLevel": ""},
                }
            )
            position = mention.end
        content.extend(_text_nodes(text[position:line_end]))
        paragraph: dict[str, Any] = {"type": "paragraph"}
        if content:
            paragraph["content"] = content
        paragraphs.append(paragraph)
        line_start = line_end + 1
    return {"type": "doc", "version": 1, "content": paragraphs}


def _children_text(node: dict[str, Any]) -> str:
    return "".join(adf_to_text(child) for child in node.get("content", []) or [])


def _list_item(node: dict[str, Any], marker: str) -> str:
    text = _children_text(node).rstrip("\n")
    lines = text.split("\n")
    indent = " " * len(marker)
    rest = "".join(f"\n{indent}{line}" if line else "\n" for line in lines[1:])
    return f"{marker}{lines[0]}{rest}\n"


def _apply_marks(text: str, marks: Any) -> str:
    if not isinstance(marks, list):
        return text
    result = text
    for mark in marks:
        if not isinstance(mark, dict):
            continue
        mark_type = mark.get("type")
        if mark_type == "link":
            href = (mark.get("attrs") or {}).get("href")
            if href and href != result:
                result = f"[{result}]({href})"
            continue
        wrapper = _MARK_WRAPPERS.get(str(mark_type))
        if wrapper is not None:
            result = f"{wrapper[0]}{result}{wrapper[1]}"
    return result


def _text_nodes(line: str) -> list[dict[str, Any]]:
    nodes: list[dict[str, Any]] = []
    position = 0
    for match in _URL_RE.finditer(line):
        if match.start() > position:
            nodes.append({"type": "text", "text": line[position : match.start()]})
        nodes.append({"type": "inlineCard", "attrs": {"url": match.group(0)}})
        position = match.end()
    if position < len(line):
        nodes.append({"type": "text", "text": line[position:]})
    return nodes
