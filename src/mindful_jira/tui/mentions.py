"""Keeping comment mentions attached to their text while it is edited."""

from collections.abc import Iterable

from mindful_jira.core.types import MentionInsert


def track_mentions(
    old_text: str, new_text: str, mentions: Iterable[MentionInsert]
) -> tuple[MentionInsert, ...]:
    """Reposition mentions after `old_text` was edited into `new_text`.

    The edit is taken to be the span between the common prefix and the
    common suffix of the two texts. Mentions before it stay put, mentions
    after it shift by the change in length, and mentions it touches are
    dropped so they go out as plain text.

    Args:
        old_text: Text before the edit
        new_text: Text after the edit
        mentions: Mentions positioned in `old_text`

    Returns:
        Mentions positioned in `new_text`
    """
    limit = min(len(old_text), len(new_text))
    prefix = 0
    while prefix < limit and old_text[prefix] == new_text[prefix]:
        prefix += 1
    suffix = 0
    while (
        suffix < limit - prefix
        and old_text[len(old_text) - 1 - suffix] == new_text[len(new_text) - 1 - suffix]
    ):
        suffix += 1
    edit_end = len(old_text) - suffix
    delta = len(new_text) - len(old_text)

    kept: list[MentionInsert] = []
    for mention in mentions:
        if mention.end <= prefix:
            moved = mention
        elif mention.start >= edit_end:
            moved = MentionInsert(mention.start + delta, mention.account_id, mention.display_name)
        else:
            continue
        if new_text[moved.start : moved.end] == moved.text:
            kept.append(moved)
    return tuple(kept)


def strip_with_mentions(
    text: str, mentions: Iterable[MentionInsert]
) -> tuple[str, tuple[MentionInsert, ...]]:
    """Strip surrounding whitespace from `text`, keeping mentions aligned."""
    stripped = text.strip()
    lead = len(text) - len(text.lstrip())
    kept = []
    for mention in mentions:
        moved = MentionInsert(mention.start - lead, mention.account_id, mention.display_name)
        if moved.start >= 0 and stripped[moved.start : moved.end] == moved.text:
            kept.append(moved)
    return stripped, tuple(kept)
