"""Fake Jira client for testing the engine and the TUI."""

from collections.abc import Sequence
from dataclasses import replace
from datetime import UTC, datetime

from mindful_jira.core.errors import JiraError, NotFound
from mindful_jira.core.types import (
    Comment,
    Issue,
    IssueDetail,
    IssueListQuery,
    JiraUser,
    MentionInsert,
    Transition,
)
from mindful_jira.gateway.jira.abc import JiraClient

FAKE_FETCHED_AT = datetime(2024, 1, 1, tzinfo=UTC)


class FakeJiraClient(JiraClient):
    """In-memory Jira with canned issues.

    Write operations mutate the canned data so a follow-up fetch observes
    them. `errors` maps an operation name (e.g. "post_comment") to the
    exception raised by every call of that operation.
    """

    def __init__(
        self,
        *,
        issues: list[Issue] | None = None,
        details: dict[str, IssueDetail] | None = None,
        transitions: dict[str, list[Transition]] | None = None,
        account_id: str = "me",
        users: list[JiraUser] | None = None,
        errors: dict[str, JiraError] | None = None,
    ) -> None:
        self._issues = list(issues or [])
        self._details = dict(details or {})
        self._transitions = dict(transitions or {})
        self._account_id = account_id
        self._users = list(users or [])
        self.errors: dict[str, JiraError] = dict(errors or {})
        self._list_queries: list[IssueListQuery] = []
        self._transition_fetches: list[str] = []
        self._applied_transitions: list[tuple[str, str]] = []
        self._posted_comments: list[tuple[str, str]] = []
        self._edited_comments: list[tuple[str, str, str]] = []
        self._deleted_comments: list[tuple[str, str]] = []
        self._comment_mentions: list[tuple[MentionInsert, ...]] = []
        self._user_searches: list[str] = []
        self._next_comment_id = 1000

    def set_issues(self, issues: list[Issue]) -> None:
        """Replace the canned assigned issues."""
        self._issues = list(issues)

    def current_account_id(self) -> str:
        self._maybe_fail("current_account_id")
        return self._account_id

    def list_assigned_issues(self, query: IssueListQuery) -> list[Issue]:
        self._list_queries.append(query)
        self._maybe_fail("list_assigned_issues")
        excluded = {status.lower() for status in query.excluded_statuses}
        return [issue for issue in self._issues if issue.status.lower() not in excluded]

    def fetch_issue(self, issue_id: str) -> IssueDetail:
        self._maybe_fail("fetch_issue")
        detail = self._details.get(issue_id)
        if detail is not None:
            return detail
        issue = self._find_issue(issue_id)
        return IssueDetail(issue=issue, description="", comments=())

    def fetch_transitions(self, issue_id: str) -> list[Transition]:
        self._transition_fetches.append(issue_id)
        self._maybe_fail("fetch_transitions")
        return list(self._transitions.get(issue_id, []))

    def apply_transition(self, issue_id: str, transition_id: str) -> None:
        self._maybe_fail("apply_transition")
        transition = next(
            (t for t in self._transitions.get(issue_id, []) if t.id == transition_id), None
        )
        if transition is None:
            raise NotFound(f"Transition {transition_id} not found for {issue_id}")
        self._applied_transitions.append((issue_id, transition_id))
        self._issues = [
            replace(issue, status=transition.to_status) if issue.id == issue_id else issue
            for issue in self._issues
        ]
        detail = self._details.get(issue_id)
        if detail is not None:
            self._details[issue_id] = replace(
                detail, issue=replace(detail.issue, status=transition.to_status)
            )

    def post_comment(
        self, issue_id: str, body: str, mentions: Sequence[MentionInsert] = ()
    ) -> None:
        self._maybe_fail("post_comment")
        self._posted_comments.append((issue_id, body))
        self._comment_mentions.append(tuple(mentions))
        self._next_comment_id += 1
        comment = make_comment(str(self._next_comment_id), body, author_account_id=self._account_id)
        detail = self._detail_for(issue_id)
        self._details[issue_id] = replace(detail, comments=(comment, *detail.comments))

    def edit_comment(
        self, issue_id: str, comment_id: str, body: str, mentions: Sequence[MentionInsert] = ()
    ) -> None:
        self._maybe_fail("edit_comment")
        self._edited_comments.append((issue_id, comment_id, body))
        self._comment_mentions.append(tuple(mentions))
        detail = self._detail_for(issue_id)
        self._details[issue_id] = replace(
            detail,
            comments=tuple(
                replace(c, body=body) if c.id == comment_id else c for c in detail.comments
            ),
        )

    def delete_comment(self, issue_id: str, comment_id: str) -> None:
        self._maybe_fail("delete_comment")
        self._deleted_comments.append((issue_id, comment_id))
        detail = self._detail_for(issue_id)
        self._details[issue_id] = replace(
            detail, comments=tuple(c for c in detail.comments if c.id != comment_id)
        )

    def search_users(self, query: str) -> list[JiraUser]:
        self._user_searches.append(query)
        self._maybe_fail("search_users")
        needle = query.lower()
        return [user for user in self._users if needle in user.display_name.lower()]

    def browse_url(self, key: str) -> str:
        return f"https://jira.example.com/browse/{key}"

    @property
    def list_queries(self) -> list[IssueListQuery]:
        """Queries passed to list_assigned_issues(). For test assertions only."""
        return self._list_queries

    @property
    def transition_fetches(self) -> list[str]:
        return self._transition_fetches

    @property
    def applied_transitions(self) -> list[tuple[str, str]]:
        return self._applied_transitions

    @property
    def posted_comments(self) -> list[tuple[str, str]]:
        return self._posted_comments

    @property
    def edited_comments(self) -> list[tuple[str, str, str]]:
        return self._edited_comments

    @property
    def deleted_comments(self) -> list[tuple[str, str]]:
        return self._deleted_comments

    @property
    def comment_mentions(self) -> list[tuple[MentionInsert, ...]]:
        """Mentions sent with each posted or edited comment, in call order."""
        return self._comment_mentions

    @property
    def user_searches(self) -> list[str]:
        return self._user_searches

    def _maybe_fail(self, operation: str) -> None:
        error = self.errors.get(operation)
        if error is not None:
            raise error

    def _find_issue(self, issue_id: str) -> Issue:
        for issue in self._issues:
            if issue.id == issue_id:
                return issue
        raise NotFound(f"Issue {issue_id} not found")

    def _detail_for(self, issue_id: str) -> IssueDetail:
        detail = self._details.get(issue_id)
        if detail is None:
            detail = IssueDetail(issue=self._find_issue(issue_id), description="", comments=())
        return detail


def make_issue(
    issue_id: str,
    summary: str = "Test issue",
    *,
    key: str | None = None,
    status: str = "In Progress",
    parent_id: str | None = None,
    issue_type: str = "Task",
    priority: str = "Medium",
    is_context_parent: bool = False,
) -> Issue:
    """Create an Issue for testing with sensible defaults.

    The key defaults to "TEST-{issue_id}".
    """
    return Issue(
        id=issue_id,
        key=key if key is not None else f"TEST-{issue_id}",
        summary=summary,
        status=status,
        parent_id=parent_id,
        issue_type=issue_type,
        priority=priority,
        is_context_parent=is_context_parent,
        fetched_at=FAKE_FETCHED_AT,
    )


def make_comment(
    comment_id: str,
    body: str = "A comment",
    *,
    author: str = "Me",
    author_account_id: str = "me",
) -> Comment:
    """Create a Comment for testing with sensible defaults."""
    return Comment(
        id=comment_id,
        author=author,
        author_account_id=author_account_id,
        body=body,
        created="2024-01-01",
        updated="2024-01-01",
    )
