"""Execution of engine effects against the gateways.

`execute_effect` performs one effect's I/O and returns the completion event
to feed back into the engine. It blocks, so the app runs it on executor
threads; tests call it directly.
"""

import logging
from dataclasses import replace

from mindful_jira.config import save_config
from mindful_jira.context import DashContext
from mindful_jira.core.errors import JiraError, NetworkFailure, StorageFailure
from mindful_jira.tui.events import (
    AccountLoaded,
    AnnotationSaved,
    ApplyTransition,
    CommentDeleted,
    CommentSubmitted,
    CopyLink,
    CopyText,
    DeleteComment,
    DetailLoaded,
    Effect,
    Event,
    IssuesLoaded,
    LoadAccount,
    LoadDetail,
    LoadIssues,
    LoadTransitions,
    Notice,
    OpenInBrowser,
    SaveAnnotation,
    SaveFilters,
    SearchUsers,
    SubmitComment,
    TransitionApplied,
    TransitionsLoaded,
    UsersFound,
)

logger = logging.getLogger(__name__)


def execute_effect(effect: Effect, ctx: DashContext) -> Event | None:
    """Run one effect and describe its outcome.

    Remote failures are returned inside the completion event, never raised.

    Args:
        effect: Effect produced by the engine
        ctx: Gateways to act on

    Returns:
        Completion event, or None for effects without one
    """
    match effect:
        case LoadIssues(generation=generation, query=query):
            try:
                issues = ctx.jira.list_assigned_issues(query)
            except Exception as e:
                return IssuesLoaded(generation, (), _as_jira_error(e))
            return IssuesLoaded(generation, tuple(issues))

        case LoadAccount():
            try:
                account_id = ctx.jira.current_account_id()
            except Exception as e:
                return AccountLoaded("", _as_jira_error(e))
            return AccountLoaded(account_id)

        case LoadDetail(request_id=request_id, issue_id=issue_id):
            try:
                detail = ctx.jira.fetch_issue(issue_id)
            except Exception as e:
                return DetailLoaded(request_id, issue_id, None, _as_jira_error(e))
            return DetailLoaded(request_id, issue_id, detail)

        case LoadTransitions(request_id=request_id, issue_id=issue_id):
            try:
                transitions = ctx.jira.fetch_transitions(issue_id)
            except Exception as e:
                return TransitionsLoaded(request_id, issue_id, (), _as_jira_error(e))
            return TransitionsLoaded(request_id, issue_id, tuple(transitions))

        case ApplyTransition(request_id=request_id, issue_id=issue_id, transition=transition):
            try:
                ctx.jira.apply_transition(issue_id, transition.id)
            except Exception as e:
                return TransitionApplied(request_id, issue_id, transition, _as_jira_error(e))
            return TransitionApplied(request_id, issue_id, transition)

        case SubmitComment(
            request_id=request_id,
            issue_id=issue_id,
            comment_id=comment_id,
            body=body,
            mentions=mentions,
        ):
            try:
                if comment_id is None:
                    ctx.jira.post_comment(issue_id, body, mentions)
                else:
                    ctx.jira.edit_comment(issue_id, comment_id, body, mentions)
            except Exception as e:
                return CommentSubmitted(request_id, issue_id, comment_id, _as_jira_error(e))
            return CommentSubmitted(request_id, issue_id, comment_id)

        case DeleteComment(request_id=request_id, issue_id=issue_id, comment_id=comment_id):
            try:
                ctx.jira.delete_comment(issue_id, comment_id)
            except Exception as e:
                return CommentDeleted(request_id, issue_id, comment_id, _as_jira_error(e))
            return CommentDeleted(request_id, issue_id, comment_id)

        case SearchUsers(request_id=request_id, query=query):
            try:
                users = ctx.jira.search_users(query)
            except Exception as e:
                return UsersFound(request_id, (), _as_jira_error(e))
            return UsersFound(request_id, tuple(users))

        case SaveAnnotation(write_id=write_id, issue_id=issue_id, annotation=annotation):
            try:
                ctx.annotations.put(issue_id, annotation)
            except StorageFailure as e:
                return AnnotationSaved(write_id, issue_id, annotation, e)
            logger.debug("Annotation write %d for %s is durable", write_id, issue_id)
            return AnnotationSaved(write_id, issue_id, annotation)

        case SaveFilters(status_filters=status_filters, sort_key=sort_key):
            config = replace(ctx.config, status_filters=status_filters, sort_key=sort_key)
            try:
                save_config(ctx.config_dir, config)
            except OSError as e:
                return Notice(f"Could not save settings: {e}", is_error=True)
            return None

        case OpenInBrowser(key=key):
            ctx.browser.launch(ctx.jira.browse_url(key))
            return Notice(f"Opened {key} in browser")

        case CopyText(text=text, description=description):
            if ctx.clipboard.copy(text):
                return Notice(description)
            return Notice("Clipboard unavailable", is_error=True)

        case CopyLink(key=key):
            if ctx.clipboard.copy(ctx.jira.browse_url(key)):
                return Notice(f"Link to {key} copied to clipboard")
            return Notice("Clipboard unavailable", is_error=True)

    return None


def _as_jira_error(error: Exception) -> JiraError:
    # Error boundary: anything escaping a gateway call must reach the UI as
    # a completion, otherwise the engine would wait for it forever.
    if isinstance(error, JiraError):
        return error
    logger.exception("Unexpected error from Jira client")
    return NetworkFailure(f"Unexpected error: {error}")
