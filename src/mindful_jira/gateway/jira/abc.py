"""Jira client abstraction.

Every operation is fallible and raises a `JiraError` subclass
(`NetworkFailure`, `AuthFailure`, `NotFound`, `ValidationFailure`).
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence

from mindful_jira.core.types import (
    Issue,
    IssueDetail,
    IssueListQuery,
    JiraUser,
    MentionInsert,
    Transition,
)


class JiraClient(ABC):
    """Abstract interface for the Jira operations the dashboard needs."""

    @abstractmethod
    def current_account_id(self) -> str:
        """Get the account id of the authenticated user."""
        ...

    @abstractmethod
    def list_assigned_issues(self, query: IssueListQuery) -> list[Issue]:
        """List issues assigned to the current user.

        Parents of assigned issues that are not themselves in the result are
        fetched as well and flagged `is_context_parent`.

        Args:
            query: Status exclusions and parent visibility

        Returns:
            Issues in Jira order (priority, then last updated)
        """
        ...

    @abstractmethod
    def fetch_issue(self, issue_id: str) -> IssueDetail:
        """Fetch one issue with its description and comments (newest first)."""
        ...

    @abstractmethod
    def fetch_transitions(self, issue_id: str) -> list[Transition]:
        """Fetch the workflow transitions currently legal for an issue."""
        ...

    @abstractmethod
    def apply_transition(self, issue_id: str, transition_id: str) -> None:
        """Move an issue through a workflow transition."""
        ...

    @abstractmethod
    def post_comment(
        self, issue_id: str, body: str, mentions: Sequence[MentionInsert] = ()
    ) -> None:
        """Add a comment to an issue, notifying the mentioned users."""
        ...

    @abstractmethod
    def edit_comment(
        self, issue_id: str, comment_id: str, body: str, mentions: Sequence[MentionInsert] = ()
    ) -> None:
        """Replace the body of an existing comment."""
        ...

    @abstractmethod
    def delete_comment(self, issue_id: str, comment_id: str) -> None:
        """Delete a comment."""
        ...

    @abstractmethod
    def search_users(self, query: str) -> list[JiraUser]:
        """Find users whose name or email matches `query`, for @mentions."""
        ...

    @abstractmethod
    def browse_url(self, key: str) -> str:
        """Get the web URL of an issue."""
        ...
