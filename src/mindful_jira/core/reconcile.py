"""Reconciliation of remote issues with local annotations.

`merge` is the pure core: given the latest remote issue list and the
confirmed annotations it produces one MergedIssue per known identifier.
`Reconciler` owns the current inputs and recomputes the merge on every change.
"""

import logging
from collections.abc import Iterable, Mapping

from mindful_jira.core.types import ORPHAN_SUMMARY, UNKNOWN_STATUS, Annotation, Issue, MergedIssue

logger = logging.getLogger(__name__)


def merge(
    remote_issues: Iterable[Issue],
    annotations: Mapping[str, Annotation],
    known: Mapping[str, MergedIssue] | None = None,
) -> dict[str, MergedIssue]:
    """Merge remote issues with local annotations.

    Issues present remotely carry their annotation (empty if none). Issues
    gone remotely but holding a non-empty annotation are kept as orphans so
    the note is not silently lost; the rest are dropped.

    Args:
        remote_issues: Latest remote issues, in display order
        annotations: Confirmed annotations keyed by issue id
        known: Previously merged issues, used to label orphans

    Returns:
        Mapping of issue id to MergedIssue. Remote issues come first in
        remote order, followed by orphans sorted by id.
    """
    known = known or {}
    merged: dict[str, MergedIssue] = {}

    for issue in remote_issues:
        merged[issue.id] = MergedIssue(
            issue=issue,
            annotation=annotations.get(issue.id, Annotation.empty()),
            orphaned=False,
        )

    for issue_id in sorted(annotations):
        annotation = annotations[issue_id]
        if issue_id in merged or annotation.is_empty:
            continue
        merged[issue_id] = MergedIssue(
            issue=_orphan_issue(issue_id, known.get(issue_id)),
            annotation=annotation,
            orphaned=True,
        )

    children = build_child_index(merged.values())
    return {
        issue_id: _with_children(entry, children.get(issue_id, ()))
        for issue_id, entry in merged.items()
    }


def build_child_index(issues: Iterable[MergedIssue]) -> dict[str, tuple[str, ...]]:
    """Build the parent id -> child ids index.

    Children whose parent is not among `issues` are left out of the index;
    they are laid out at top level by `tree_order`.

    Args:
        issues: Merged issues in display order

    Returns:
        Mapping of parent id to child ids in input order
    """
    entries = list(issues)
    present = {entry.id for entry in entries}
    index: dict[str, list[str]] = {}
    for entry in entries:
        parent_id = entry.parent_id
        if parent_id is None or parent_id == entry.id or parent_id not in present:
            continue
        index.setdefault(parent_id, []).append(entry.id)
    return {parent_id: tuple(child_ids) for parent_id, child_ids in index.items()}


def tree_order(
    merged: Mapping[str, MergedIssue],
    order: Iterable[str],
) -> list[tuple[MergedIssue, int]]:
    """Lay out merged issues depth-first under their parents.

    Roots are issues without a known parent. Every issue is emitted once;
    issues unreachable from a root (parent cycles) are emitted at top level.

    Args:
        merged: Merged issues keyed by id
        order: Issue ids in the order siblings should appear

    Returns:
        List of (issue, depth) pairs
    """
    ordered_ids = [issue_id for issue_id in order if issue_id in merged]
    position = {issue_id: i for i, issue_id in enumerate(ordered_ids)}
    result: list[tuple[MergedIssue, int]] = []
    visited: set[str] = set()

    def visit(issue_id: str, depth: int) -> None:
        if issue_id in visited:
            return
        visited.add(issue_id)
        entry = merged[issue_id]
        result.append((entry, depth))
        kids = [child for child in entry.child_ids if child in position]
        for child_id in sorted(kids, key=position.__getitem__):
            visit(child_id, depth + 1)

    for issue_id in ordered_ids:
        parent_id = merged[issue_id].parent_id
        if parent_id is None or parent_id not in merged:
            visit(issue_id, 0)

    # Cycles leave nodes without a reachable root.
    for issue_id in ordered_ids:
        if issue_id not in visited:
            logger.debug("Issue %s has a cyclic parent chain; showing at top level", issue_id)
            visit(issue_id, 0)

    return result


class Reconciler:
    """Owns the latest remote issues and confirmed annotations.

    Remote data and annotations are updated independently; every update
    recomputes the merged view so it never mixes stale and fresh entries.
    """

    def __init__(self, annotations: Mapping[str, Annotation] | None = None) -> None:
        self._remote: list[Issue] = []
        self._annotations: dict[str, Annotation] = {
            issue_id: annotation
            for issue_id, annotation in (annotations or {}).items()
            if not annotation.is_empty
        }
        self._merged: dict[str, MergedIssue] = merge(self._remote, self._annotations)

    @property
    def merged(self) -> Mapping[str, MergedIssue]:
        return self._merged

    @property
    def ordered_ids(self) -> list[str]:
        return list(self._merged)

    @property
    def remote_count(self) -> int:
        return len(self._remote)

    def get(self, issue_id: str) -> MergedIssue | None:
        return self._merged.get(issue_id)

    def annotation_for(self, issue_id: str) -> Annotation:
        return self._annotations.get(issue_id, Annotation.empty())

    def apply_remote(self, issues: Iterable[Issue]) -> None:
        """Replace the remote issue set wholesale."""
        self._remote = list(issues)
        self._recompute()

    def apply_annotation(self, issue_id: str, annotation: Annotation) -> None:
        """Record an annotation that the store has durably written."""
        if annotation.is_empty:
            self._annotations.pop(issue_id, None)
        else:
            self._annotations[issue_id] = annotation
        self._recompute()

    def purge(self, issue_id: str) -> None:
        """Forget the annotation of an issue whose empty annotation was stored."""
        self.apply_annotation(issue_id, Annotation.empty())

    def _recompute(self) -> None:
        self._merged = merge(self._remote, self._annotations, known=self._merged)


def _orphan_issue(issue_id: str, previous: MergedIssue | None) -> Issue:
    if previous is not None:
        source = previous.issue
        return Issue(
            id=issue_id,
            key=source.key,
            summary=source.summary,
            status=UNKNOWN_STATUS,
            parent_id=None,
            issue_type=source.issue_type,
            priority=source.priority,
            is_context_parent=False,
            fetched_at=source.fetched_at,
        )
    return Issue(
        id=issue_id,
        key=issue_id,
        summary=ORPHAN_SUMMARY,
        status=UNKNOWN_STATUS,
        parent_id=None,
        issue_type="",
        priority="",
        is_context_parent=False,
        fetched_at=None,
    )


def _with_children(entry: MergedIssue, child_ids: tuple[str, ...]) -> MergedIssue:
    if entry.child_ids == child_ids:
        return entry
    return MergedIssue(
        issue=entry.issue,
        annotation=entry.annotation,
        orphaned=entry.orphaned,
        child_ids=child_ids,
    )
