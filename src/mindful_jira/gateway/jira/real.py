"""Jira Cloud REST v3 client over urllib."""

import base64
import json
import logging
import socket
import urllib.error
import urllib.parse
import urllib.request
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any

from mindful_jira.config import JiraConfig
from mindful_jira.core.errors import (
    AuthFailure,
    JiraError,
    NetworkFailure,
    NotFound,
    ValidationFailure,
)
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
from mindful_jira.gateway.jira.adf import adf_to_text, text_to_adf

logger = logging.getLogger(__name__)

LIST_FIELDS = "summary,status,parent,issuetype,priority"
DETAIL_FIELDS = "summary,status,parent,issuetype,priority,description,comment"
MAX_RESULTS = 100
MAX_PAGES = 50
MAX_USER_RESULTS = 8
DEFAULT_TIMEOUT = 20.0


class RealJiraClient(JiraClient):
    """Production client using basic auth (email + API token)."""

    def __init__(self, config: JiraConfig, *, timeout: float = DEFAULT_TIMEOUT) -> None:
        self._config = config
        self._timeout = timeout
        credentials = f"{config.email}:{config.api_token}".encode()
        self._auth_header = "Basic " + base64.b64encode(credentials).decode("ascii")

    def current_account_id(self) -> str:
        data = self._request("GET", "/rest/api/3/myself")
        return str(data.get("accountId", ""))

    def list_assigned_issues(self, query: IssueListQuery) -> list[Issue]:
        jql = "assignee = currentUser()"
        if query.excluded_statuses:
            jql += f" AND status NOT IN ({_jql_list(query.excluded_statuses)})"
        jql += " ORDER BY priority DESC, updated DESC"
        issues = self._search(jql)

        # Parents referenced by id but absent from the result give children their grouping.
        known = {issue.id for issue in issues}
        missing = sorted({i.parent_id for i in issues if i.parent_id and i.parent_id not in known})
        if missing:
            parent_jql = f"id IN ({', '.join(missing)})"
            if not query.show_all_parents:
                parent_jql += " AND assignee = currentUser()"
            try:
                parents = self._search(parent_jql)
            except AuthFailure:
                raise
            except JiraError as e:
                # Children still show at top level without their parents.
                logger.debug("Could not fetch parent issues %s: %s", missing, e)
                parents = []
            issues.extend(_as_context_parent(parent) for parent in parents)

        return issues

    def fetch_issue(self, issue_id: str) -> IssueDetail:
        data = self._request(
            "GET",
            f"/rest/api/3/issue/{urllib.parse.quote(issue_id)}",
            params={"fields": DETAIL_FIELDS},
        )
        fields = data.get("fields") or {}
        description = fields.get("description")
        raw_comments = (fields.get("comment") or {}).get("comments") or []
        comments = [_parse_comment(raw) for raw in raw_comments if isinstance(raw, dict)]
        comments.reverse()
        return IssueDetail(
            issue=_parse_issue(data, fetched_at=_now()),
            description=adf_to_text(description).strip() if description else "(no description)",
            comments=tuple(comments),
        )

    def fetch_transitions(self, issue_id: str) -> list[Transition]:
        data = self._request("GET", f"/rest/api/3/issue/{urllib.parse.quote(issue_id)}/transitions")
        return [
            Transition(
                id=str(raw.get("id", "")),
                name=str(raw.get("name", "")),
                to_status=str((raw.get("to") or {}).get("name", "")),
            )
            for raw in data.get("transitions", [])
            if isinstance(raw, dict)
        ]

    def apply_transition(self, issue_id: str, transition_id: str) -> None:
        self._request(
            "POST",
            f"/rest/api/3/issue/{urllib.parse.quote(issue_id)}/transitions",
            payload={"transition": {"id": transition_id}},
        )

    def post_comment(
        self, issue_id: str, body: str, mentions: Sequence[MentionInsert] = ()
    ) -> None:
        self._request(
            "POST",
            f"/rest/api/3/issue/{urllib.parse.quote(issue_id)}/comment",
            payload={"body": text_to_adf(body, mentions)},
        )

    def edit_comment(
        self, issue_id: str, comment_id: str, body: str, mentions: Sequence[MentionInsert] = ()
    ) -> None:
        self._request(
            "PUT",
            f"/rest/api/3/issue/{urllib.parse.quote(issue_id)}/comment/{urllib.parse.quote(comment_id)}",
            payload={"body": text_to_adf(body, mentions)},
        )

    def delete_comment(self, issue_id: str, comment_id: str) -> None:
        self._request(
            "DELETE",
            f"/rest/api/3/issue/{urllib.parse.quote(issue_id)}/comment/{urllib.parse.quote(comment_id)}",
        )

    def search_users(self, query: str) -> list[JiraUser]:
        data = self._request_json(
            "GET",
            "/rest/api/3/user/search",
            params={"query": query, "maxResults": str(MAX_USER_RESULTS)},
        )
        if not isinstance(data, list):
            return []
        return [
            JiraUser(
                account_id=str(raw.get("accountId", "")),
                display_name=str(raw.get("displayName") or ""),
            )
            for raw in data
            if isinstance(raw, dict) and raw.get("accountId")
        ]

    def browse_url(self, key: str) -> str:
        return f"{self._config.base_url}/browse/{key}"

    def _search(self, jql: str) -> list[Issue]:
        """Run a JQL search, following `nextPageToken` until the last page."""
        issues: list[Issue] = []
        page_token: str | None = None
        for _ in range(MAX_PAGES):
            params = {"jql": jql, "fields": LIST_FIELDS, "maxResults": str(MAX_RESULTS)}
            if page_token is not None:
                params["nextPageToken"] = page_token
            data = self._request("GET", "/rest/api/3/search/jql", params=params)
            fetched_at = _now()
            issues.extend(
                _parse_issue(raw, fetched_at=fetched_at)
                for raw in data.get("issues", [])
                if isinstance(raw, dict)
            )
            page_token = data.get("nextPageToken")
            if not page_token or data.get("isLast") is True:
                return issues
        logger.debug("Stopped paging search after %d pages: %s", MAX_PAGES, jql)
        return issues

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        payload: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        decoded = self._request_json(method, path, params=params, payload=payload)
        return decoded if isinstance(decoded, dict) else {}

    def _request_json(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        payload: dict[str, Any] | None = None,
    ) -> Any:
        """Send a request and decode the JSON response.

        Raises:
            AuthFailure: On 401/403
            NotFound: On 404
            ValidationFailure: On 400/409/422
            NetworkFailure: On connection errors, timeouts and other statuses
        """
        url = f"{self._config.base_url}{path}"
        if params:
            url += "?" + urllib.parse.urlencode(params)
        headers = {"Authorization": self._auth_header, "Accept": "application/json"}
        data: bytes | None = None
        if payload is not None:
            data = json.dumps(payload).encode("utf-8")
            headers["Content-Type"] = "application/json"

        request = urllib.request.Request(url, data=data, headers=headers, method=method)
        logger.debug("%s %s", method, path)
        try:
            with urllib.request.urlopen(request, timeout=self._timeout) as response:
                body = response.read().decode("utf-8")
        except urllib.error.HTTPError as e:
            body = e.read().decode("utf-8", errors="replace") if e.fp else ""
            raise _error_for_status(e.code, _error_message(body) or str(e.reason)) from e
        except (urllib.error.URLError, socket.timeout, TimeoutError, ConnectionError) as e:
            raise NetworkFailure(f"HTTP request failed: {e}") from e

        if not body.strip():
            return {}
        try:
            decoded = json.loads(body)
        except json.JSONDecodeError as e:
            raise NetworkFailure(f"Failed to parse Jira response: {e}") from e
        return decoded


def _error_for_status(status_code: int, message: str) -> JiraError:
    text = f"Jira API error {status_code}: {message}"
    if status_code in (401, 403):
        return AuthFailure(text, status_code=status_code)
    if status_code == 404:
        return NotFound(text, status_code=status_code)
    if status_code in (400, 409, 422):
        return ValidationFailure(text, status_code=status_code)
    return NetworkFailure(text, status_code=status_code)


def _error_message(body: str) -> str:
    """Extract Jira's errorMessages/errors from an error response body."""
    try:
        data = json.loads(body)
    except json.JSONDecodeError:
        return body.strip()
    if not isinstance(data, dict):
        return body.strip()
    messages = [str(m) for m in data.get("errorMessages", [])]
    messages.extend(f"{k}: {v}" for k, v in (data.get("errors") or {}).items())
    return "; ".join(messages) if messages else body.strip()


def _parse_issue(raw: dict[str, Any], *, fetched_at: datetime) -> Issue:
    fields = raw.get("fields") or {}
    parent = fields.get("parent") or {}
    issue_type = fields.get("issuetype") or {}
    return Issue(
        id=str(raw.get("id", "")),
        key=str(raw.get("key", "")),
        summary=str(fields.get("summary") or ""),
        status=str((fields.get("status") or {}).get("name") or ""),
        parent_id=str(parent["id"]) if parent.get("id") else None,
        issue_type=str(issue_type.get("name") or ""),
        priority=str((fields.get("priority") or {}).get("name") or ""),
        is_context_parent=False,
        fetched_at=fetched_at,
    )


def _parse_comment(raw: dict[str, Any]) -> Comment:
    author = raw.get("author") or {}
    return Comment(
        id=str(raw.get("id", "")),
        author=str(author.get("displayName") or ""),
        author_account_id=str(author.get("accountId") or ""),
        body=adf_to_text(raw.get("body")).strip(),
        created=_format_date(raw.get("created")),
        updated=_format_date(raw.get("updated")),
    )


def _as_context_parent(issue: Issue) -> Issue:
    return Issue(
        id=issue.id,
        key=issue.key,
        summary=issue.summary,
        status=issue.status,
        parent_id=None,
        issue_type=issue.issue_type,
        priority=issue.priority,
        is_context_parent=True,
        fetched_at=issue.fetched_at,
    )


def _jql_list(values: tuple[str, ...]) -> str:
    return ", ".join('"' + value.replace('"', '\\"') + '"' for value in values)


def _format_date(value: Any) -> str:
    if not value:
        return ""
    return str(value)[:10]


def _now() -> datetime:
    return datetime.now(UTC)
