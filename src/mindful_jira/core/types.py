"""Domain types shared by the reconciler, the gateways and the TUI."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

UNKNOWN_STATUS = "?"
ORPHAN_SUMMARY = "(no longer assigned)"


@dataclass(frozen=True)
class Issue:
    """A Jira issue as last fetched from the remote service.

    Immutable: a refresh replaces the whole object rather than patching fields.

    Attributes:
        id: Stable remote-assigned identifier (Jira's numeric issue id)
        key: Human-readable key (e.g., "AUTH-12")
        summary: One-line summary
        status: Workflow status name
        parent_id: Identifier of the parent issue, None for top-level issues
        issue_type: Issue type name (e.g., "Story", "Sub-task")
        priority: Priority name
        is_context_parent: True when fetched only to group an assigned child
        fetched_at: When this snapshot was fetched
    """

    id: str
    key: str
    summary: str
    status: str
    parent_id: str | None
    issue_type: str
    priority: str
    is_context_parent: bool
    fetched_at: datetime | None


@dataclass(frozen=True)
class Annotation:
    """Private, locally persisted annotation for a single issue."""

    note: str = ""
    highlighted: bool = False

    @property
    def is_empty(self) -> bool:
        return not self.note and not self.highlighted

    @staticmethod
    def empty() -> Annotation:
        return Annotation(note="", highlighted=False)


@dataclass(frozen=True)
class MergedIssue:
    """Issue combined with its annotation: the view model the TUI renders.

    Attributes:
        issue: Latest known remote issue (a placeholder for orphans)
        annotation: Latest confirmed annotation
        orphaned: True when the issue is gone remotely but still annotated
        child_ids: Identifiers of known children, in remote order
    """

    issue: Issue
    annotation: Annotation
    orphaned: bool
    child_ids: tuple[str, ...] = field(default=())

    @property
    def id(self) -> str:
        return self.issue.id

    @property
    def key(self) -> str:
        return self.issue.key

    @property
    def summary(self) -> str:
        return self.issue.summary

    @property
    def status(self) -> str:
        if self.orphaned:
            return UNKNOWN_STATUS
        return self.issue.status

    @property
    def parent_id(self) -> str | None:
        if self.orphaned:
            return None
        return self.issue.parent_id

    @property
    def note(self) -> str:
        return self.annotation.note

    @property
    def highlighted(self) -> bool:
        return self.annotation.highlighted


@dataclass(frozen=True)
class Comment:
    """A comment on an issue, fetched with the issue detail."""

    id: str
    author: str
    author_account_id: str
    body: str
    created: str
    updated: str


@dataclass(frozen=True)
class IssueDetail:
    """Full issue content shown on the detail screen.

    Comments are ordered newest first.
    """

    issue: Issue
    description: str
    comments: tuple[Comment, ...]


@dataclass(frozen=True)
class Transition:
    """A workflow move currently legal for an issue."""

    id: str
    name: str
    to_status: str


@dataclass(frozen=True)
class JiraUser:
    """A user who can be mentioned in a comment."""

    account_id: str
    display_name: str


@dataclass(frozen=True)
class MentionInsert:
    """A mention placed in comment text.

    Attributes:
        start: Character offset of the "@" in the comment text
        account_id: Account id of the mentioned user
        display_name: Name shown after the "@"
    """

    start: int
    account_id: str
    display_name: str

    @property
    def end(self) -> int:
        return self.start + len(self.text)

    @property
    def text(self) -> str:
        return f"@{self.display_name}"


@dataclass(frozen=True)
class StatusFilter:
    """A status name and whether issues in that status are hidden."""

    name: str
    excluded: bool


@dataclass(frozen=True)
class IssueListQuery:
    """Parameters for listing the current user's issues.

    Attributes:
        excluded_statuses: Status names left out of the remote search
        show_all_parents: Fetch missing parents even when assigned to someone else
    """

    excluded_statuses: tuple[str, ...]
    show_all_parents: bool
