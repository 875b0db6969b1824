"""Screen states of the dashboard.

The active screen is a tagged union over seven frozen dataclasses; the
engine dispatches on it with `match`. `IssueList` and `TicketDetail` own
long-lived views (`ListView`, `DetailView`) kept on the engine so overlays
can close back into them without losing scroll or selection. Overlays carry
their own transient state and remember which screen opened them.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto

from mindful_jira.core.types import (
    IssueDetail,
    JiraUser,
    MentionInsert,
    StatusFilter,
    Transition,
)
from mindful_jira.tui.text_buffer import TextBuffer


class ScreenKind(Enum):
    """Discriminator of the active screen, used to pick key bindings."""

    ISSUE_LIST = auto()
    TICKET_DETAIL = auto()
    FILTER_EDITOR = auto()
    FILTER_ADDING = auto()
    SEARCH_INPUT = auto()
    COMMENT_EDITOR = auto()
    TRANSITION_PICKER = auto()
    NOTE_EDITOR = auto()
    MENTION_PICKER = auto()


class Origin(Enum):
    """Screen an overlay returns to when it closes."""

    ISSUE_LIST = auto()
    TICKET_DETAIL = auto()


@dataclass(frozen=True)
class ListView:
    """Selection and scroll of the issue list.

    Attributes:
        selected_id: Id of the selected issue, followed across refreshes
        selected_index: Row index of the selection
        scroll: First visible row
    """

    selected_id: str | None
    selected_index: int
    scroll: int

    @staticmethod
    def initial() -> ListView:
        return ListView(selected_id=None, selected_index=0, scroll=0)


@dataclass(frozen=True)
class DetailView:
    """State of the ticket detail screen.

    Attributes:
        issue_id: Issue being shown
        detail: Loaded content, None until the first load completes
        loading: True while a load is in flight
        scroll: First visible line
        selected_comment: Index of the selected comment, None for no selection
        request_id: Id of the latest load request; older completions are stale
        error: Message of the last failed load
    """

    issue_id: str
    detail: IssueDetail | None
    loading: bool
    scroll: int
    selected_comment: int | None
    request_id: int
    error: str | None = None


@dataclass(frozen=True)
class IssueList:
    @property
    def kind(self) -> ScreenKind:
        return ScreenKind.ISSUE_LIST


@dataclass(frozen=True)
class TicketDetail:
    issue_id: str

    @property
    def kind(self) -> ScreenKind:
        return ScreenKind.TICKET_DETAIL


@dataclass(frozen=True)
class FilterEditor:
    """Editing the status filter list.

    Attributes:
        filters: Working copy of the status filters
        show_all_parents: Working copy of the parent-visibility toggle
        selected: Highlighted filter row
        adding: Buffer of a status name being added, None when not adding
    """

    filters: tuple[StatusFilter, ...]
    show_all_parents: bool
    selected: int
    adding: TextBuffer | None = None

    @property
    def kind(self) -> ScreenKind:
        if self.adding is not None:
            return ScreenKind.FILTER_ADDING
        return ScreenKind.FILTER_EDITOR


@dataclass(frozen=True)
class SearchInput:
    """Typing a fuzzy search query; the list filters live.

    Attributes:
        buffer: Query being typed
        previous_query: Query to restore on cancel
        previous_view: List selection to restore on cancel
    """

    buffer: TextBuffer
    previous_query: str
    previous_view: ListView

    @property
    def kind(self) -> ScreenKind:
        return ScreenKind.SEARCH_INPUT


@dataclass(frozen=True)
class MentionPicker:
    """User picker opened by typing "@" in a comment.

    Attributes:
        trigger_pos: Offset of the "@" that opened the picker
        query: Text typed after the "@"
        candidates: Users matching the query
        selected: Highlighted candidate
        request_id: Id of the latest user search; older results are stale
    """

    trigger_pos: int
    query: str = ""
    candidates: tuple[JiraUser, ...] = ()
    selected: int = 0
    request_id: int = 0


@dataclass(frozen=True)
class CommentEditor:
    """Writing a new comment or editing an existing one.

    Attributes:
        issue_id: Issue the comment belongs to
        comment_id: Comment being edited, None for a new comment
        buffer: Comment text
        submitting: True while the remote write is in flight
        error: Inline error from validation or the last failed submit
        request_id: Id of the in-flight submit
        mentions: Users mentioned so far, positioned in the buffer text
        mention: Open mention picker, None when closed
    """

    issue_id: str
    comment_id: str | None
    buffer: TextBuffer
    submitting: bool = False
    error: str | None = None
    request_id: int = 0
    mentions: tuple[MentionInsert, ...] = ()
    mention: MentionPicker | None = None

    @property
    def kind(self) -> ScreenKind:
        if self.mention is not None:
            return ScreenKind.MENTION_PICKER
        return ScreenKind.COMMENT_EDITOR


@dataclass(frozen=True)
class TransitionPicker:
    """Choosing a workflow transition, fetched fresh on every open.

    Attributes:
        issue_id: Issue to transition
        transitions: Transitions currently legal for the issue
        selected: Highlighted transition
        loading: True while transitions are being fetched
        applying: True while the chosen transition is being applied
        error: Inline error from the last failed apply
        request_id: Id of the latest fetch or apply request
    """

    issue_id: str
    transitions: tuple[Transition, ...]
    selected: int
    loading: bool
    applying: bool
    request_id: int
    error: str | None = None

    @property
    def kind(self) -> ScreenKind:
        return ScreenKind.TRANSITION_PICKER


@dataclass(frozen=True)
class NoteEditor:
    """Editing the private note of an issue.

    Attributes:
        issue_id: Annotated issue
        origin: Screen to return to
        buffer: Note text
    """

    issue_id: str
    origin: Origin
    buffer: TextBuffer

    @property
    def kind(self) -> ScreenKind:
        return ScreenKind.NOTE_EDITOR


Screen = (
    IssueList
    | TicketDetail
    | FilterEditor
    | SearchInput
    | CommentEditor
    | TransitionPicker
    | NoteEditor
)

OVERLAY_TYPES = (FilterEditor, CommentEditor, TransitionPicker, NoteEditor)
