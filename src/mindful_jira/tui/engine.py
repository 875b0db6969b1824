"""Navigation state machine of the dashboard.

`NavigationEngine` owns the reconciled issue model, the active screen and
the per-screen views. It is driven by one event at a time (`dispatch`) and
answers with effects for the app to execute; the outcome of each effect
comes back later as a completion event. The engine never performs I/O, so
every behavior here is testable without Textual, threads or fakes.

Ordering guarantees:
- At most one issue refresh is in flight. A plain refresh request made
  while one is pending is dropped; a refresh needed because the query
  changed supersedes the pending one, whose completion is then discarded.
- Detail, transition and comment completions carry a request id and are
  discarded when the user has since moved on.
- Annotation writes are applied to the model only when the store has
  confirmed them. Until then the pending value is what editors start from.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, replace
from enum import Enum, auto

from rich.text import Text

from mindful_jira.core.errors import AuthFailure, JiraError, NotFound, ValidationFailure
from mindful_jira.core.filtering import IssueFilter, IssueRow, visible_rows
from mindful_jira.core.reconcile import Reconciler
from mindful_jira.core.types import Annotation, Comment, MentionInsert, MergedIssue, StatusFilter
from mindful_jira.tui.detail import DetailLayout, layout_detail, ticket_text
from mindful_jira.tui.events import (
    AccountLoaded,
    AnnotationSaved,
    ApplyTransition,
    Command,
    CommentDeleted,
    CommentSubmitted,
    CopyLink,
    CopyText,
    DeleteComment,
    DetailLoaded,
    Effect,
    Event,
    IssuesLoaded,
    KeyPressed,
    LoadAccount,
    LoadDetail,
    LoadIssues,
    LoadTransitions,
    Notice,
    OpenInBrowser,
    Quit,
    Resize,
    SaveAnnotation,
    SaveFilters,
    SearchUsers,
    ShowHelp,
    StatusExpired,
    SubmitComment,
    TextPasted,
    TimerTick,
    TransitionApplied,
    TransitionsLoaded,
    UsersFound,
)
from mindful_jira.tui.keymap import SINGLE_LINE_KINDS, TEXT_ENTRY_KINDS, binding_for, insertable_text
from mindful_jira.tui.mentions import strip_with_mentions, track_mentions
from mindful_jira.tui.screens import (
    CommentEditor,
    DetailView,
    FilterEditor,
    IssueList,
    ListView,
    MentionPicker,
    NoteEditor,
    Origin,
    Screen,
    SearchInput,
    TicketDetail,
    TransitionPicker,
)
from mindful_jira.tui.text_buffer import TextBuffer

logger = logging.getLogger(__name__)

_LINE_BREAK_RE = re.compile(r"\r\n|\r|\n")

# Title bar, column header and status bar around the issue rows.
LIST_CHROME_LINES = 3
# Title bar and status bar around the detail body.
DETAIL_CHROME_LINES = 2

_BUFFER_EDITS: dict[Command, Callable[[TextBuffer], TextBuffer]] = {
    Command.CURSOR_LEFT: TextBuffer.left,
    Command.CURSOR_RIGHT: TextBuffer.right,
    Command.CURSOR_HOME: TextBuffer.home,
    Command.CURSOR_END: TextBuffer.end,
    Command.CURSOR_UP: TextBuffer.up,
    Command.CURSOR_DOWN: TextBuffer.down,
    Command.BACKSPACE: TextBuffer.backspace,
    Command.DELETE_CHAR: TextBuffer.delete,
    Command.NEWLINE: lambda buffer: buffer.insert("\n"),
}


class StatusLevel(Enum):
    INFO = auto()
    ERROR = auto()
    AUTH = auto()


@dataclass(frozen=True)
class StatusMessage:
    """Status bar message.

    Attributes:
        text: Message text
        level: Severity; AUTH messages stay until a refresh succeeds
        serial: Increments with every message, used to expire the right one
    """

    text: str
    level: StatusLevel
    serial: int

    @property
    def sticky(self) -> bool:
        return self.level is StatusLevel.AUTH


class NavigationEngine:
    """State machine driving the seven dashboard screens."""

    def __init__(
        self,
        *,
        annotations: Mapping[str, Annotation] | None = None,
        issue_filter: IssueFilter | None = None,
        width: int = 80,
        height: int = 24,
    ) -> None:
        self._reconciler = Reconciler(annotations)
        self._filter = issue_filter if issue_filter is not None else IssueFilter.default()
        self._screen: Screen = IssueList()
        self._rows: list[IssueRow] = []
        self._list_view = ListView.initial()
        self._detail_view: DetailView | None = None
        self._status: StatusMessage | None = None
        self._status_serial = 0
        self._width = width
        self._height = height
        self._account_id = ""
        self._refresh_generation = 0
        self._refresh_in_flight = False
        self._auth_failed = False
        self._loaded = False
        self._request_counter = 0
        self._write_counter = 0
        self._pending_writes: dict[str, list[tuple[int, Annotation]]] = {}
        self._rebuild_rows()

    # State exposed to rendering and tests

    @property
    def screen(self) -> Screen:
        return self._screen

    @property
    def rows(self) -> list[IssueRow]:
        return self._rows

    @property
    def list_view(self) -> ListView:
        return self._list_view

    @property
    def detail_view(self) -> DetailView | None:
        return self._detail_view

    @property
    def issue_filter(self) -> IssueFilter:
        return self._filter

    @property
    def merged(self) -> Mapping[str, MergedIssue]:
        return self._reconciler.merged

    @property
    def status(self) -> StatusMessage | None:
        return self._status

    @property
    def account_id(self) -> str:
        return self._account_id

    @property
    def auth_failed(self) -> bool:
        return self._auth_failed

    @property
    def loaded(self) -> bool:
        """True once the first refresh has succeeded."""
        return self._loaded

    @property
    def refresh_in_flight(self) -> bool:
        return self._refresh_in_flight

    @property
    def refresh_generation(self) -> int:
        return self._refresh_generation

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def loading(self) -> bool:
        if self._refresh_in_flight or self._pending_writes:
            return True
        if self._detail_view is not None and self._detail_view.loading:
            return True
        match self._screen:
            case TransitionPicker(loading=loading, applying=applying):
                return loading or applying
            case CommentEditor(submitting=submitting):
                return submitting
        return False

    @property
    def selected_row(self) -> IssueRow | None:
        if not self._rows:
            return None
        return self._rows[self._list_view.selected_index]

    @property
    def search_bar_visible(self) -> bool:
        return isinstance(self._screen, SearchInput) or bool(self._filter.query)

    @property
    def list_height(self) -> int:
        chrome = LIST_CHROME_LINES + (1 if self.search_bar_visible else 0)
        return max(self._height - chrome, 1)

    @property
    def detail_height(self) -> int:
        return max(self._height - DETAIL_CHROME_LINES, 1)

    def has_pending_write(self, issue_id: str) -> bool:
        return issue_id in self._pending_writes

    def latest_annotation(self, issue_id: str) -> Annotation:
        """Annotation including writes not yet confirmed by the store."""
        pending = self._pending_writes.get(issue_id)
        if pending:
            return pending[-1][1]
        return self._reconciler.annotation_for(issue_id)

    def detail_layout(self) -> DetailLayout | None:
        view = self._detail_view
        if view is None or view.detail is None:
            return None
        return layout_detail(
            view.detail,
            self._reconciler.get(view.issue_id),
            selected_comment=view.selected_comment,
            account_id=self._account_id,
            width=self._width,
        )

    # Entry points

    def start(self) -> list[Effect]:
        """Effects to run when the dashboard starts."""
        return [LoadAccount(), *self._request_refresh()]

    def dispatch(self, event: Event) -> list[Effect]:
        """Process one event and return the effects it triggers."""
        match event:
            case KeyPressed(key=key, character=character):
                return self._on_key(key, character)
            case TextPasted(text=text):
                return self._on_paste(text)
            case Resize(width=width, height=height):
                self._width = max(width, 1)
                self._height = max(height, 1)
                self._list_view = self._reselect(self._list_view)
                self._clamp_detail_scroll()
                return []
            case TimerTick():
                if self._auth_failed:
                    logger.debug("Auto refresh paused after authentication failure")
                    return []
                return self._request_refresh()
            case StatusExpired(serial=serial):
                if self._status is not None and self._status.serial == serial:
                    if not self._status.sticky:
                        self._status = None
                return []
            case Notice(message=message, is_error=is_error):
                self._set_status(message, StatusLevel.ERROR if is_error else StatusLevel.INFO)
                return []
            case IssuesLoaded():
                return self._on_issues_loaded(event)
            case AccountLoaded():
                return self._on_account_loaded(event)
            case DetailLoaded():
                return self._on_detail_loaded(event)
            case TransitionsLoaded():
                return self._on_transitions_loaded(event)
            case TransitionApplied():
                return self._on_transition_applied(event)
            case CommentSubmitted():
                return self._on_comment_submitted(event)
            case CommentDeleted():
                return self._on_comment_deleted(event)
            case UsersFound():
                return self._on_users_found(event)
            case AnnotationSaved():
                return self._on_annotation_saved(event)
        return []

    def press(self, key: str, character: str | None = None) -> list[Effect]:
        """Dispatch a key press. Single printable characters may omit `character`."""
        if character is None and len(key) == 1:
            character = key
        return self.dispatch(KeyPressed(key=key, character=character))

    # Key handling per screen

    def _on_key(self, key: str, character: str | None) -> list[Effect]:
        kind = self._screen.kind
        command = binding_for(kind, key)
        if command is None:
            text = insertable_text(kind, key, character)
            if text is None:
                return []
            return self._type_text(text)

        match self._screen:
            case IssueList():
                return self._issue_list_command(command)
            case TicketDetail():
                return self._detail_command(command)
            case FilterEditor() as screen:
                return self._filter_editor_command(screen, command)
            case SearchInput() as screen:
                return self._search_command(screen, command)
            case CommentEditor() as screen:
                return self._comment_command(screen, command)
            case TransitionPicker() as screen:
                return self._transition_command(screen, command)
            case NoteEditor() as screen:
                return self._note_command(screen, command)
        return []

    def _issue_list_command(self, command: Command) -> list[Effect]:
        row = self.selected_row
        match command:
            case Command.QUIT:
                return [Quit()]
            case Command.SHOW_HELP:
                return [ShowHelp()]
            case Command.REFRESH:
                return self._request_refresh()
            case Command.MOVE_UP:
                self._move_selection(-1)
            case Command.MOVE_DOWN:
                self._move_selection(1)
            case Command.PAGE_UP:
                self._move_selection(-self.list_height)
            case Command.PAGE_DOWN:
                self._move_selection(self.list_height)
            case Command.HOME:
                self._select_index(0)
            case Command.END:
                self._select_index(len(self._rows) - 1)
            case Command.OPEN_DETAIL:
                if row is not None:
                    return self._open_detail(row.issue.id)
            case Command.OPEN_FILTER_EDITOR:
                self._screen = FilterEditor(
                    filters=self._filter.status_filters,
                    show_all_parents=self._filter.show_all_parents,
                    selected=0,
                )
            case Command.OPEN_SEARCH:
                self._screen = SearchInput(
                    buffer=TextBuffer.of(self._filter.query),
                    previous_query=self._filter.query,
                    previous_view=self._list_view,
                )
            case Command.CLEAR_QUERY:
                if self._filter.query:
                    self._filter = self._filter.with_query("")
                    self._rebuild_rows()
            case Command.EDIT_NOTE:
                if row is not None:
                    self._open_note_editor(row.issue.id, Origin.ISSUE_LIST)
            case Command.TOGGLE_HIGHLIGHT:
                if row is not None:
                    return self._toggle_highlight(row.issue.id)
            case Command.TOGGLE_PARENTS:
                show_all = not self._filter.show_all_parents
                self._filter = replace(self._filter, show_all_parents=show_all)
                self._set_status("Showing all parents" if show_all else "Showing only my parents")
                return self._request_refresh(supersede=True)
            case Command.CYCLE_SORT:
                self._filter = replace(self._filter, sort_key=self._filter.sort_key.next())
                self._rebuild_rows()
                self._set_status(f"Sorted {self._filter.sort_key.display_label}")
                return [SaveFilters(self._filter.status_filters, self._filter.sort_key)]
            case Command.PURGE_ORPHAN:
                if row is not None:
                    return self._purge(row.issue)
            case Command.COPY_KEY:
                if row is not None:
                    return [CopyText(row.issue.key, f"Copied {row.issue.key}")]
            case Command.OPEN_BROWSER:
                if row is not None:
                    return [OpenInBrowser(row.issue.key)]
        return []

    def _detail_command(self, command: Command) -> list[Effect]:
        view = self._detail_view
        if view is None:
            self._screen = IssueList()
            return []
        match command:
            case Command.CLOSE:
                self._detail_view = None
                self._screen = IssueList()
            case Command.SHOW_HELP:
                return [ShowHelp()]
            case Command.REFRESH:
                return self._reload_detail()
            case Command.MOVE_DOWN:
                self._scroll_detail(1)
            case Command.MOVE_UP:
                self._scroll_detail(-1)
            case Command.PAGE_DOWN:
                self._scroll_detail(self.detail_height)
            case Command.PAGE_UP:
                self._scroll_detail(-self.detail_height)
            case Command.HOME:
                self._detail_view = replace(view, scroll=0)
            case Command.END:
                self._scroll_detail(len(self._detail_lines()))
            case Command.NEXT_COMMENT:
                self._select_comment(1)
            case Command.PREV_COMMENT:
                self._select_comment(-1)
            case Command.ADD_COMMENT:
                if view.detail is not None:
                    self._screen = CommentEditor(
                        issue_id=view.issue_id, comment_id=None, buffer=TextBuffer()
                    )
            case Command.EDIT_COMMENT:
                comment = self._own_selected_comment("edit")
                if comment is not None:
                    self._screen = CommentEditor(
                        issue_id=view.issue_id,
                        comment_id=comment.id,
                        buffer=TextBuffer.of(comment.body),
                    )
            case Command.DELETE_COMMENT:
                comment = self._own_selected_comment("delete")
                if comment is not None:
                    self._set_status("Deleting comment...")
                    return [DeleteComment(self._next_request_id(), view.issue_id, comment.id)]
            case Command.OPEN_TRANSITIONS:
                request_id = self._next_request_id()
                self._screen = TransitionPicker(
                    issue_id=view.issue_id,
                    transitions=(),
                    selected=0,
                    loading=True,
                    applying=False,
                    request_id=request_id,
                )
                return [LoadTransitions(request_id, view.issue_id)]
            case Command.OPEN_BROWSER:
                return [OpenInBrowser(self._detail_key(view))]
            case Command.COPY_TICKET:
                if view.detail is not None:
                    return [CopyText(ticket_text(view.detail), "Ticket copied to clipboard")]
            case Command.COPY_LINK:
                return [CopyLink(self._detail_key(view))]
            case Command.EDIT_NOTE:
                self._open_note_editor(view.issue_id, Origin.TICKET_DETAIL)
            case Command.TOGGLE_HIGHLIGHT:
                return self._toggle_highlight(view.issue_id)
        return []

    def _filter_editor_command(self, screen: FilterEditor, command: Command) -> list[Effect]:
        if screen.adding is not None:
            return self._filter_adding_command(screen, screen.adding, command)

        last = len(screen.filters) - 1
        match command:
            case Command.MOVE_DOWN:
                self._screen = replace(screen, selected=min(screen.selected + 1, max(last, 0)))
            case Command.MOVE_UP:
                self._screen = replace(screen, selected=max(screen.selected - 1, 0))
            case Command.TOGGLE_ITEM:
                if screen.filters:
                    filters = list(screen.filters)
                    current = filters[screen.selected]
                    filters[screen.selected] = replace(current, excluded=not current.excluded)
                    self._screen = replace(screen, filters=tuple(filters))
            case Command.ADD_ITEM:
                self._screen = replace(screen, adding=TextBuffer())
            case Command.DELETE_ITEM:
                if screen.filters:
                    filters = screen.filters[: screen.selected] + screen.filters[screen.selected + 1 :]
                    selected = min(screen.selected, max(len(filters) - 1, 0))
                    self._screen = replace(screen, filters=filters, selected=selected)
            case Command.TOGGLE_PARENTS:
                self._screen = replace(screen, show_all_parents=not screen.show_all_parents)
            case Command.CANCEL:
                self._screen = IssueList()
            case Command.CONFIRM:
                self._screen = IssueList()
                return self._apply_filters(screen.filters, screen.show_all_parents)
        return []

    def _filter_adding_command(
        self, screen: FilterEditor, adding: TextBuffer, command: Command
    ) -> list[Effect]:
        if command in _BUFFER_EDITS:
            return self._edit_text(_BUFFER_EDITS[command])
        match command:
            case Command.CANCEL:
                self._screen = replace(screen, adding=None)
            case Command.CONFIRM:
                name = adding.text.strip()
                existing = next(
                    (i for i, sf in enumerate(screen.filters) if sf.name.lower() == name.lower()),
                    None,
                )
                if not name:
                    self._screen = replace(screen, adding=None)
                elif existing is not None:
                    self._screen = replace(screen, adding=None, selected=existing)
                else:
                    filters = (*screen.filters, StatusFilter(name=name, excluded=True))
                    self._screen = replace(
                        screen, filters=filters, selected=len(filters) - 1, adding=None
                    )
        return []

    def _search_command(self, screen: SearchInput, command: Command) -> list[Effect]:
        if command in _BUFFER_EDITS:
            return self._edit_text(_BUFFER_EDITS[command])
        match command:
            case Command.CONFIRM:
                self._screen = IssueList()
            case Command.CANCEL:
                self._filter = self._filter.with_query(screen.previous_query)
                self._rows = self._compute_rows()
                self._list_view = self._reselect(screen.previous_view)
                self._screen = IssueList()
            case Command.MOVE_UP:
                self._move_selection(-1)
            case Command.MOVE_DOWN:
                self._move_selection(1)
        return []

    def _comment_command(self, screen: CommentEditor, command: Command) -> list[Effect]:
        if screen.mention is not None:
            return self._mention_command(screen, screen.mention, command)
        if command in _BUFFER_EDITS:
            return self._edit_text(_BUFFER_EDITS[command])
        if screen.submitting:
            return []
        match command:
            case Command.CANCEL:
                self._screen = TicketDetail(screen.issue_id)
            case Command.CONFIRM:
                body, mentions = strip_with_mentions(screen.buffer.text, screen.mentions)
                if not body:
                    self._screen = replace(screen, error="Comment cannot be empty")
                    return []
                request_id = self._next_request_id()
                self._screen = replace(screen, submitting=True, error=None, request_id=request_id)
                return [
                    SubmitComment(
                        request_id, screen.issue_id, screen.comment_id, body, mentions=mentions
                    )
                ]
        return []

    def _transition_command(self, screen: TransitionPicker, command: Command) -> list[Effect]:
        last = max(len(screen.transitions) - 1, 0)
        match command:
            case Command.CANCEL:
                if not screen.applying:
                    self._screen = TicketDetail(screen.issue_id)
            case Command.MOVE_DOWN:
                self._screen = replace(screen, selected=min(screen.selected + 1, last))
            case Command.MOVE_UP:
                self._screen = replace(screen, selected=max(screen.selected - 1, 0))
            case Command.CONFIRM:
                if screen.loading or screen.applying or not screen.transitions:
                    return []
                request_id = self._next_request_id()
                transition = screen.transitions[screen.selected]
                self._screen = replace(screen, applying=True, error=None, request_id=request_id)
                return [ApplyTransition(request_id, screen.issue_id, transition)]
        return []

    def _note_command(self, screen: NoteEditor, command: Command) -> list[Effect]:
        if command in _BUFFER_EDITS:
            return self._edit_text(_BUFFER_EDITS[command])
        match command:
            case Command.CANCEL:
                self._screen = self._origin_screen(screen.origin)
            case Command.CONFIRM:
                self._screen = self._origin_screen(screen.origin)
                current = self.latest_annotation(screen.issue_id)
                note = screen.buffer.text.strip()
                if note == current.note:
                    return []
                return self._save_annotation(screen.issue_id, replace(current, note=note))
        return []

    def _edit_text(self, edit: Callable[[TextBuffer], TextBuffer]) -> list[Effect]:
        match self._screen:
            case SearchInput() as screen:
                buffer = edit(screen.buffer)
                self._screen = replace(screen, buffer=buffer)
                if buffer.text != screen.buffer.text:
                    self._filter = self._filter.with_query(buffer.text)
                    self._rows = self._compute_rows()
                    # The best match moves to the top; select it.
                    self._list_view = self._view_at(0, 0) if self._rows else ListView.initial()
            case CommentEditor() as screen:
                if not screen.submitting:
                    buffer = edit(screen.buffer)
                    mentions = track_mentions(screen.buffer.text, buffer.text, screen.mentions)
                    self._screen = replace(screen, buffer=buffer, mentions=mentions, error=None)
            case NoteEditor() as screen:
                self._screen = replace(screen, buffer=edit(screen.buffer))
            case FilterEditor() as screen if screen.adding is not None:
                self._screen = replace(screen, adding=edit(screen.adding))
        return []

    def _type_text(self, text: str) -> list[Effect]:
        def insert(buffer: TextBuffer) -> TextBuffer:
            return buffer.insert(text)

        match self._screen:
            case CommentEditor(submitting=False, mention=MentionPicker()) as screen:
                if text.isspace():
                    # Names end at whitespace; what was typed stays plain text.
                    self._screen = replace(screen, mention=None)
                    return self._edit_text(insert)
                return self._edit_mention_query(insert)
            case CommentEditor(submitting=False) as screen if text == "@":
                trigger_pos = screen.buffer.cursor
                self._edit_text(insert)
                self._screen = replace(self._screen, mention=MentionPicker(trigger_pos=trigger_pos))
                return []
        return self._edit_text(insert)

    def _on_paste(self, text: str) -> list[Effect]:
        kind = self._screen.kind
        if kind not in TEXT_ENTRY_KINDS or not text:
            return []
        separator = " " if kind in SINGLE_LINE_KINDS else "\n"
        text = _LINE_BREAK_RE.sub(separator, text)
        if isinstance(self._screen, CommentEditor) and self._screen.mention is not None:
            self._screen = replace(self._screen, mention=None)
        return self._edit_text(lambda buffer: buffer.insert(text))

    # Mention picker

    def _mention_command(
        self, screen: CommentEditor, picker: MentionPicker, command: Command
    ) -> list[Effect]:
        match command:
            case Command.MOVE_UP:
                selected = max(picker.selected - 1, 0)
                self._screen = replace(screen, mention=replace(picker, selected=selected))
            case Command.MOVE_DOWN:
                selected = min(picker.selected + 1, max(len(picker.candidates) - 1, 0))
                self._screen = replace(screen, mention=replace(picker, selected=selected))
            case Command.CANCEL:
                self._screen = replace(screen, mention=None)
            case Command.BACKSPACE:
                if screen.buffer.cursor <= picker.trigger_pos + 1:
                    # Deleting the "@" closes the picker.
                    self._edit_text(TextBuffer.backspace)
                    self._screen = replace(self._screen, mention=None)
                    return []
                return self._edit_mention_query(TextBuffer.backspace)
            case Command.CONFIRM:
                return self._insert_mention(screen, picker)
        return []

    def _edit_mention_query(self, edit: Callable[[TextBuffer], TextBuffer]) -> list[Effect]:
        self._edit_text(edit)
        match self._screen:
            case CommentEditor(mention=MentionPicker() as picker) as screen:
                query = screen.buffer.text[picker.trigger_pos + 1 : screen.buffer.cursor]
                if not query:
                    # Results of a search still in flight no longer apply.
                    self._screen = replace(
                        screen,
                        mention=replace(picker, query="", candidates=(), selected=0, request_id=0),
                    )
                    return []
                request_id = self._next_request_id()
                self._screen = replace(
                    screen,
                    mention=replace(picker, query=query, selected=0, request_id=request_id),
                )
                return [SearchUsers(request_id, query)]
        return []

    def _insert_mention(self, screen: CommentEditor, picker: MentionPicker) -> list[Effect]:
        if not picker.candidates:
            self._screen = replace(screen, mention=None)
            return []
        user = picker.candidates[picker.selected]
        mention = MentionInsert(picker.trigger_pos, user.account_id, user.display_name)
        buffer = screen.buffer
        text = f"{buffer.text[: mention.start]}{mention.text} {buffer.text[buffer.cursor :]}"
        kept = track_mentions(buffer.text, text, screen.mentions)
        self._screen = replace(
            screen,
            buffer=TextBuffer(text=text, cursor=mention.end + 1),
            mentions=tuple(sorted((*kept, mention), key=lambda m: m.start)),
            mention=None,
            error=None,
        )
        return []

    # Completion events

    def _on_issues_loaded(self, event: IssuesLoaded) -> list[Effect]:
        if event.generation != self._refresh_generation:
            logger.debug(
                "Discarding stale refresh generation %d (current %d)",
                event.generation,
                self._refresh_generation,
            )
            return []
        self._refresh_in_flight = False
        if event.error is not None:
            self._report_error(event.error, "Refresh failed")
            return []

        logger.debug("Applying refresh generation %d: %d issues", event.generation, len(event.issues))
        self._auth_failed = False
        self._loaded = True
        if self._status is not None and self._status.sticky:
            self._status = None
        self._reconciler.apply_remote(event.issues)
        self._rebuild_rows()
        return []

    def _on_account_loaded(self, event: AccountLoaded) -> list[Effect]:
        if event.error is not None:
            self._report_error(event.error, "Could not identify the current user")
            return []
        self._account_id = event.account_id
        return []

    def _on_detail_loaded(self, event: DetailLoaded) -> list[Effect]:
        view = self._detail_view
        if view is None or view.request_id != event.request_id:
            logger.debug("Discarding stale detail load %d for %s", event.request_id, event.issue_id)
            return []
        if event.error is not None:
            if isinstance(event.error, NotFound):
                key = self._detail_key(view)
                self._close_detail()
                self._set_status(f"{key} no longer exists or is not visible to you", StatusLevel.ERROR)
                return self._request_refresh()
            self._detail_view = replace(view, loading=False, error=str(event.error))
            self._report_error(event.error, "Loading issue failed")
            return []

        detail = event.detail
        selected = view.selected_comment
        if detail is not None and selected is not None and selected >= len(detail.comments):
            selected = len(detail.comments) - 1 if detail.comments else None
        self._detail_view = replace(
            view, detail=detail, loading=False, error=None, selected_comment=selected
        )
        self._clamp_detail_scroll()
        return []

    def _on_transitions_loaded(self, event: TransitionsLoaded) -> list[Effect]:
        screen = self._screen
        if not isinstance(screen, TransitionPicker) or screen.request_id != event.request_id:
            logger.debug("Discarding stale transitions for %s", event.issue_id)
            return []
        if event.error is not None:
            self._screen = TicketDetail(screen.issue_id)
            self._report_error(event.error, "Loading transitions failed")
            return []
        if not event.transitions:
            self._screen = TicketDetail(screen.issue_id)
            self._set_status("No transitions available")
            return []
        self._screen = replace(screen, transitions=event.transitions, loading=False, selected=0)
        return []

    def _on_transition_applied(self, event: TransitionApplied) -> list[Effect]:
        screen = self._screen
        is_current = isinstance(screen, TransitionPicker) and screen.request_id == event.request_id
        if event.error is not None:
            if is_current and isinstance(event.error, ValidationFailure):
                self._screen = replace(screen, applying=False, error=str(event.error))
                return []
            if is_current:
                self._screen = TicketDetail(event.issue_id)
            self._report_error(event.error, "Transition failed")
            return []

        if is_current:
            self._screen = TicketDetail(event.issue_id)
        self._set_status(f"Moved to {event.transition.to_status or event.transition.name}")
        return [*self._reload_detail_if_showing(event.issue_id), *self._request_refresh(supersede=True)]

    def _on_comment_submitted(self, event: CommentSubmitted) -> list[Effect]:
        screen = self._screen
        is_current = (
            isinstance(screen, CommentEditor)
            and screen.submitting
            and screen.request_id == event.request_id
        )
        if event.error is not None:
            if is_current:
                self._screen = replace(screen, submitting=False, error=str(event.error))
            self._report_error(event.error, "Saving comment failed")
            if isinstance(event.error, NotFound) and event.comment_id is not None:
                return self._reload_detail_if_showing(event.issue_id)
            return []

        if is_current:
            self._screen = TicketDetail(event.issue_id)
        self._set_status("Comment updated" if event.comment_id else "Comment added")
        return self._reload_detail_if_showing(event.issue_id)

    def _on_comment_deleted(self, event: CommentDeleted) -> list[Effect]:
        if event.error is not None:
            self._report_error(event.error, "Deleting comment failed")
            if isinstance(event.error, NotFound):
                return self._reload_detail_if_showing(event.issue_id)
            return []
        self._set_status("Comment deleted")
        view = self._detail_view
        if view is not None and view.issue_id == event.issue_id:
            self._detail_view = replace(view, selected_comment=None)
        return self._reload_detail_if_showing(event.issue_id)

    def _on_users_found(self, event: UsersFound) -> list[Effect]:
        match self._screen:
            case CommentEditor(mention=MentionPicker() as picker) as screen if (
                picker.request_id == event.request_id
            ):
                if event.error is not None:
                    self._report_error(event.error, "User search failed")
                    return []
                self._screen = replace(
                    screen, mention=replace(picker, candidates=event.users, selected=0)
                )
                return []
        logger.debug("Discarding stale user search %d", event.request_id)
        return []

    def _on_annotation_saved(self, event: AnnotationSaved) -> list[Effect]:
        remaining = [
            (write_id, annotation)
            for write_id, annotation in self._pending_writes.get(event.issue_id, [])
            if write_id != event.write_id
        ]
        if remaining:
            self._pending_writes[event.issue_id] = remaining
        else:
            self._pending_writes.pop(event.issue_id, None)

        if event.error is not None:
            logger.debug("Annotation write %d for %s failed: %s", event.write_id, event.issue_id, event.error)
            self._set_status(f"Could not save annotation: {event.error}", StatusLevel.ERROR)
            return []

        entry = self._reconciler.get(event.issue_id)
        self._reconciler.apply_annotation(event.issue_id, event.annotation)
        self._rebuild_rows()
        if event.annotation.is_empty and entry is not None and entry.orphaned:
            self._set_status(f"Purged {entry.key}")
        return []

    # Helpers

    def _request_refresh(self, *, supersede: bool = False) -> list[Effect]:
        if self._refresh_in_flight and not supersede:
            logger.debug("Refresh %d still in flight; coalescing request", self._refresh_generation)
            return []
        self._refresh_generation += 1
        self._refresh_in_flight = True
        logger.debug("Requesting refresh generation %d", self._refresh_generation)
        return [LoadIssues(self._refresh_generation, self._filter.to_list_query())]

    def _apply_filters(
        self, status_filters: tuple[StatusFilter, ...], show_all_parents: bool
    ) -> list[Effect]:
        previous = self._filter
        self._filter = replace(
            previous, status_filters=status_filters, show_all_parents=show_all_parents
        )
        if self._filter == previous:
            return []
        self._rebuild_rows()
        effects: list[Effect] = []
        if status_filters != previous.status_filters:
            effects.append(SaveFilters(status_filters, self._filter.sort_key))
        if self._filter.to_list_query() != previous.to_list_query():
            effects.extend(self._request_refresh(supersede=True))
        return effects

    def _open_detail(self, issue_id: str) -> list[Effect]:
        request_id = self._next_request_id()
        self._detail_view = DetailView(
            issue_id=issue_id,
            detail=None,
            loading=True,
            scroll=0,
            selected_comment=None,
            request_id=request_id,
        )
        self._screen = TicketDetail(issue_id)
        return [LoadDetail(request_id, issue_id)]

    def _reload_detail(self) -> list[Effect]:
        view = self._detail_view
        if view is None:
            return []
        request_id = self._next_request_id()
        self._detail_view = replace(view, loading=True, error=None, request_id=request_id)
        return [LoadDetail(request_id, view.issue_id)]

    def _reload_detail_if_showing(self, issue_id: str) -> list[Effect]:
        if self._detail_view is None or self._detail_view.issue_id != issue_id:
            return []
        return self._reload_detail()

    def _close_detail(self) -> None:
        self._detail_view = None
        match self._screen:
            case TicketDetail() | CommentEditor() | TransitionPicker():
                self._screen = IssueList()
            case NoteEditor(origin=Origin.TICKET_DETAIL) as screen:
                self._screen = replace(screen, origin=Origin.ISSUE_LIST)

    def _detail_key(self, view: DetailView) -> str:
        if view.detail is not None:
            return view.detail.issue.key
        entry = self._reconciler.get(view.issue_id)
        return entry.key if entry is not None else view.issue_id

    def _detail_lines(self) -> list[Text]:
        layout = self.detail_layout()
        return layout.lines if layout is not None else []

    def _scroll_detail(self, delta: int) -> None:
        view = self._detail_view
        if view is None:
            return
        max_scroll = max(len(self._detail_lines()) - self.detail_height, 0)
        self._detail_view = replace(view, scroll=min(max(view.scroll + delta, 0), max_scroll))

    def _clamp_detail_scroll(self) -> None:
        self._scroll_detail(0)

    def _select_comment(self, delta: int) -> None:
        view = self._detail_view
        if view is None or view.detail is None or not view.detail.comments:
            return
        last = len(view.detail.comments) - 1
        if view.selected_comment is None:
            index = 0 if delta > 0 else last
        else:
            index = min(max(view.selected_comment + delta, 0), last)
        self._detail_view = replace(view, selected_comment=index)

        layout = self.detail_layout()
        if layout is None:
            return
        line = layout.comment_offsets[index]
        scroll = self._detail_view.scroll
        if line < scroll or line >= scroll + self.detail_height:
            max_scroll = max(len(layout.lines) - self.detail_height, 0)
            self._detail_view = replace(self._detail_view, scroll=min(line, max_scroll))

    def _own_selected_comment(self, action: str) -> Comment | None:
        view = self._detail_view
        if view is None or view.detail is None:
            return None
        if view.selected_comment is None:
            self._set_status(f"Select a comment to {action} (n / p)")
            return None
        comment = view.detail.comments[view.selected_comment]
        if not self._account_id or comment.author_account_id != self._account_id:
            self._set_status(f"You can only {action} your own comments")
            return None
        return comment

    def _open_note_editor(self, issue_id: str, origin: Origin) -> None:
        note = self.latest_annotation(issue_id).note
        self._screen = NoteEditor(issue_id=issue_id, origin=origin, buffer=TextBuffer.of(note))

    def _origin_screen(self, origin: Origin) -> Screen:
        if origin is Origin.TICKET_DETAIL and self._detail_view is not None:
            return TicketDetail(self._detail_view.issue_id)
        return IssueList()

    def _toggle_highlight(self, issue_id: str) -> list[Effect]:
        current = self.latest_annotation(issue_id)
        return self._save_annotation(issue_id, replace(current, highlighted=not current.highlighted))

    def _purge(self, entry: MergedIssue) -> list[Effect]:
        if not entry.orphaned:
            self._set_status(f"{entry.key} is still assigned; only orphaned annotations can be purged")
            return []
        return self._save_annotation(entry.id, Annotation.empty())

    def _save_annotation(self, issue_id: str, annotation: Annotation) -> list[Effect]:
        self._write_counter += 1
        self._pending_writes.setdefault(issue_id, []).append((self._write_counter, annotation))
        logger.debug("Queueing annotation write %d for %s", self._write_counter, issue_id)
        return [SaveAnnotation(self._write_counter, issue_id, annotation)]

    def _report_error(self, error: JiraError, context: str) -> None:
        if isinstance(error, AuthFailure):
            self._auth_failed = True
            self._set_status(
                f"{context}: authentication failed. Check your API token, then press r",
                StatusLevel.AUTH,
            )
            return
        self._set_status(f"{context}: {error}", StatusLevel.ERROR)

    def _set_status(self, text: str, level: StatusLevel = StatusLevel.INFO) -> None:
        self._status_serial += 1
        self._status = StatusMessage(text=text, level=level, serial=self._status_serial)

    def _next_request_id(self) -> int:
        self._request_counter += 1
        return self._request_counter

    # Issue list selection

    def _compute_rows(self) -> list[IssueRow]:
        return visible_rows(self._reconciler.merged, self._reconciler.ordered_ids, self._filter)

    def _rebuild_rows(self) -> None:
        self._rows = self._compute_rows()
        self._list_view = self._reselect(self._list_view)

    def _reselect(self, view: ListView) -> ListView:
        """Follow the selected issue by identity, else clamp the index."""
        if not self._rows:
            return ListView.initial()
        index = None
        if view.selected_id is not None:
            index = next(
                (i for i, row in enumerate(self._rows) if row.issue.id == view.selected_id), None
            )
        if index is None:
            index = min(max(view.selected_index, 0), len(self._rows) - 1)
        return self._view_at(index, view.scroll)

    def _view_at(self, index: int, scroll: int) -> ListView:
        height = self.list_height
        if index < scroll:
            scroll = index
        elif index >= scroll + height:
            scroll = index - height + 1
        scroll = min(max(scroll, 0), max(len(self._rows) - height, 0))
        return ListView(selected_id=self._rows[index].issue.id, selected_index=index, scroll=scroll)

    def _select_index(self, index: int) -> None:
        if not self._rows:
            return
        index = min(max(index, 0), len(self._rows) - 1)
        self._list_view = self._view_at(index, self._list_view.scroll)

    def _move_selection(self, delta: int) -> None:
        self._select_index(self._list_view.selected_index + delta)
