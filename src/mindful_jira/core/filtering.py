"""Pure filtering and sorting of merged issues for the issue list."""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from enum import Enum

from mindful_jira.core.fuzzy import rank_issues
from mindful_jira.core.reconcile import tree_order
from mindful_jira.core.types import IssueListQuery, MergedIssue, StatusFilter


class SortKey(Enum):
    """Available sort orders for sibling issues."""

    REMOTE = "remote"  # Default: Jira order (priority, then last updated)
    KEY = "key"
    STATUS = "status"

    @property
    def display_label(self) -> str:
        if self is SortKey.KEY:
            return "by key"
        if self is SortKey.STATUS:
            return "by status"
        return "by priority"

    def next(self) -> SortKey:
        members = list(SortKey)
        return members[(members.index(self) + 1) % len(members)]


@dataclass(frozen=True)
class IssueFilter:
    """Predicate and ordering applied to the merged issues.

    Attributes:
        status_filters: Known statuses and whether each is hidden
        show_all_parents: Also fetch parents assigned to other people
        query: Fuzzy search text; empty shows the full tree
        sort_key: Order of sibling issues
    """

    status_filters: tuple[StatusFilter, ...]
    show_all_parents: bool
    query: str
    sort_key: SortKey

    @staticmethod
    def default() -> IssueFilter:
        return IssueFilter(
            status_filters=(),
            show_all_parents=False,
            query="",
            sort_key=SortKey.REMOTE,
        )

    @property
    def excluded_statuses(self) -> frozenset[str]:
        return frozenset(sf.name.lower() for sf in self.status_filters if sf.excluded)

    def with_query(self, query: str) -> IssueFilter:
        return replace(self, query=query)

    def to_list_query(self) -> IssueListQuery:
        return IssueListQuery(
            excluded_statuses=tuple(sf.name for sf in self.status_filters if sf.excluded),
            show_all_parents=self.show_all_parents,
        )


@dataclass(frozen=True)
class IssueRow:
    """One displayed row of the issue list.

    Attributes:
        issue: The merged issue
        depth: Indentation level under its parent
        key_spans: Fuzzy-match highlight spans within the key
        summary_spans: Fuzzy-match highlight spans within the summary
    """

    issue: MergedIssue
    depth: int
    key_spans: tuple[tuple[int, int], ...] = ()
    summary_spans: tuple[tuple[int, int], ...] = ()


def visible_rows(
    merged: Mapping[str, MergedIssue],
    order: Iterable[str],
    issue_filter: IssueFilter,
) -> list[IssueRow]:
    """Apply the filter to the merged issues.

    Without a query the result is the parent/child tree in sort order. With a
    query the result is flat and ranked by fuzzy score, best first.

    Args:
        merged: Merged issues keyed by id
        order: Ids in remote order
        issue_filter: Filter to apply

    Returns:
        Rows to display
    """
    kept = _apply_status_filter(merged, issue_filter.excluded_statuses)
    ordered = sort_ids([i for i in order if i in kept], kept, issue_filter.sort_key)

    if issue_filter.query:
        matches = rank_issues(issue_filter.query, (kept[i] for i in ordered))
        return [
            IssueRow(
                issue=match.issue,
                depth=0,
                key_spans=match.key_spans,
                summary_spans=match.summary_spans,
            )
            for match in matches
        ]

    return [IssueRow(issue=issue, depth=depth) for issue, depth in tree_order(kept, ordered)]


def sort_ids(ids: list[str], merged: Mapping[str, MergedIssue], sort_key: SortKey) -> list[str]:
    """Sort issue ids by the given key. The input list is not modified."""
    if sort_key is SortKey.KEY:
        return sorted(ids, key=lambda i: _natural_key(merged[i].key))
    if sort_key is SortKey.STATUS:
        return sorted(ids, key=lambda i: merged[i].status.lower())
    return list(ids)


def _apply_status_filter(
    merged: Mapping[str, MergedIssue], excluded: frozenset[str]
) -> dict[str, MergedIssue]:
    """Drop issues in excluded statuses.

    Orphans are always kept. Context parents are kept only while at least
    one of their children is visible.
    """
    kept = {
        issue_id: entry
        for issue_id, entry in merged.items()
        if entry.orphaned
        or entry.issue.is_context_parent
        or entry.status.lower() not in excluded
    }
    return {
        issue_id: entry
        for issue_id, entry in kept.items()
        if not entry.issue.is_context_parent
        or any(child in kept and not kept[child].issue.is_context_parent for child in entry.child_ids)
    }


def _natural_key(key: str) -> tuple[str, int, str]:
    match = re.match(r"^(?P<project>[A-Za-z][A-Za-z0-9_]*)-(?P<number>\d+)$", key)
    if match is None:
        return (key.lower(), 0, key)
    return (match.group("project").lower(), int(match.group("number")), key)
