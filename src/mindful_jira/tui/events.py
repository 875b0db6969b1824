"""Commands, effects and events flowing through the navigation engine.

Key presses are translated to `Command`s by the keymap. The engine answers
every event with a list of `Effect`s describing work to run outside the
event loop (remote calls, annotation writes, clipboard, browser). The app
executes them and feeds their outcome back as completion events, so the
engine only ever sees one event at a time.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto

from mindful_jira.core.errors import JiraError, StorageFailure
from mindful_jira.core.filtering import SortKey
from mindful_jira.core.types import (
    Annotation,
    Issue,
    IssueDetail,
    IssueListQuery,
    JiraUser,
    MentionInsert,
    StatusFilter,
    Transition,
)


class Command(Enum):
    """User intents produced by key bindings."""

    QUIT = auto()
    REFRESH = auto()
    MOVE_UP = auto()
    MOVE_DOWN = auto()
    PAGE_UP = auto()
    PAGE_DOWN = auto()
    HOME = auto()
    END = auto()
    OPEN_DETAIL = auto()
    CLOSE = auto()
    OPEN_FILTER_EDITOR = auto()
    OPEN_SEARCH = auto()
    CLEAR_QUERY = auto()
    EDIT_NOTE = auto()
    TOGGLE_HIGHLIGHT = auto()
    TOGGLE_PARENTS = auto()
    CYCLE_SORT = auto()
    PURGE_ORPHAN = auto()
    COPY_KEY = auto()
    COPY_TICKET = auto()
    COPY_LINK = auto()
    OPEN_BROWSER = auto()
    NEXT_COMMENT = auto()
    PREV_COMMENT = auto()
    ADD_COMMENT = auto()
    EDIT_COMMENT = auto()
    DELETE_COMMENT = auto()
    OPEN_TRANSITIONS = auto()
    CONFIRM = auto()
    CANCEL = auto()
    TOGGLE_ITEM = auto()
    ADD_ITEM = auto()
    DELETE_ITEM = auto()
    CURSOR_LEFT = auto()
    CURSOR_RIGHT = auto()
    CURSOR_HOME = auto()
    CURSOR_END = auto()
    CURSOR_UP = auto()
    CURSOR_DOWN = auto()
    BACKSPACE = auto()
    DELETE_CHAR = auto()
    NEWLINE = auto()
    SHOW_HELP = auto()


# Effects


@dataclass(frozen=True)
class LoadIssues:
    generation: int
    query: IssueListQuery


@dataclass(frozen=True)
class LoadAccount:
    pass


@dataclass(frozen=True)
class LoadDetail:
    request_id: int
    issue_id: str


@dataclass(frozen=True)
class LoadTransitions:
    request_id: int
    issue_id: str


@dataclass(frozen=True)
class ApplyTransition:
    request_id: int
    issue_id: str
    transition: Transition


@dataclass(frozen=True)
class SubmitComment:
    """Post a new comment (comment_id None) or edit an existing one."""

    request_id: int
    issue_id: str
    comment_id: str | None
    body: str
    mentions: tuple[MentionInsert, ...] = ()


@dataclass(frozen=True)
class DeleteComment:
    request_id: int
    issue_id: str
    comment_id: str


@dataclass(frozen=True)
class SearchUsers:
    """Look up users for the mention picker."""

    request_id: int
    query: str


@dataclass(frozen=True)
class SaveAnnotation:
    write_id: int
    issue_id: str
    annotation: Annotation


@dataclass(frozen=True)
class SaveFilters:
    status_filters: tuple[StatusFilter, ...]
    sort_key: SortKey


@dataclass(frozen=True)
class OpenInBrowser:
    key: str


@dataclass(frozen=True)
class CopyText:
    text: str
    description: str


@dataclass(frozen=True)
class CopyLink:
    key: str


@dataclass(frozen=True)
class ShowHelp:
    pass


@dataclass(frozen=True)
class Quit:
    pass


Effect = (
    LoadIssues
    | LoadAccount
    | LoadDetail
    | LoadTransitions
    | ApplyTransition
    | SubmitComment
    | DeleteComment
    | SearchUsers
    | SaveAnnotation
    | SaveFilters
    | OpenInBrowser
    | CopyText
    | CopyLink
    | ShowHelp
    | Quit
)


# Events


@dataclass(frozen=True)
class KeyPressed:
    """A key press, with `key` already normalized by the keymap."""

    key: str
    character: str | None = None


@dataclass(frozen=True)
class TextPasted:
    """Text delivered at once by a bracketed paste."""

    text: str


@dataclass(frozen=True)
class Resize:
    width: int
    height: int


@dataclass(frozen=True)
class TimerTick:
    """Auto refresh interval elapsed."""


@dataclass(frozen=True)
class StatusExpired:
    serial: int


@dataclass(frozen=True)
class Notice:
    """A message to show in the status bar."""

    message: str
    is_error: bool = False


@dataclass(frozen=True)
class IssuesLoaded:
    generation: int
    issues: tuple[Issue, ...]
    error: JiraError | None = None


@dataclass(frozen=True)
class AccountLoaded:
    account_id: str
    error: JiraError | None = None


@dataclass(frozen=True)
class DetailLoaded:
    request_id: int
    issue_id: str
    detail: IssueDetail | None
    error: JiraError | None = None


@dataclass(frozen=True)
class TransitionsLoaded:
    request_id: int
    issue_id: str
    transitions: tuple[Transition, ...]
    error: JiraError | None = None


@dataclass(frozen=True)
class TransitionApplied:
    request_id: int
    issue_id: str
    transition: Transition
    error: JiraError | None = None


@dataclass(frozen=True)
class CommentSubmitted:
    request_id: int
    issue_id: str
    comment_id: str | None
    error: JiraError | None = None


@dataclass(frozen=True)
class CommentDeleted:
    request_id: int
    issue_id: str
    comment_id: str
    error: JiraError | None = None


@dataclass(frozen=True)
class UsersFound:
    request_id: int
    users: tuple[JiraUser, ...]
    error: JiraError | None = None


@dataclass(frozen=True)
class AnnotationSaved:
    write_id: int
    issue_id: str
    annotation: Annotation
    error: StorageFailure | None = None


Event = (
    KeyPressed
    | TextPasted
    | Resize
    | TimerTick
    | StatusExpired
    | Notice
    | IssuesLoaded
    | AccountLoaded
    | DetailLoaded
    | TransitionsLoaded
    | TransitionApplied
    | CommentSubmitted
    | CommentDeleted
    | UsersFound
    | AnnotationSaved
)
