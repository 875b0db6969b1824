"""Tests for NavigationEngine, the dashboard state machine.

The engine never performs I/O, so these tests drive it with events and
assert on the effects it returns and the state it exposes.
"""

from mindful_jira.core.errors import AuthFailure, NetworkFailure, NotFound, StorageFailure, ValidationFailure
from mindful_jira.core.filtering import IssueFilter, SortKey
from mindful_jira.core.types import (
    Annotation,
    Issue,
    IssueDetail,
    JiraUser,
    MentionInsert,
    StatusFilter,
    Transition,
)
from mindful_jira.gateway.jira.fake import make_comment, make_issue
from mindful_jira.tui.engine import NavigationEngine, StatusLevel
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
    IssuesLoaded,
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
from mindful_jira.tui.screens import (
    CommentEditor,
    FilterEditor,
    IssueList,
    MentionPicker,
    NoteEditor,
    Origin,
    SearchInput,
    TicketDetail,
    TransitionPicker,
)

START = Transition(id="11", name="Start progress", to_status="In Progress")
RESOLVE = Transition(id="21", name="Resolve", to_status="Done")


def _loaded_engine(
    issues: list[Issue],
    *,
    annotations: dict[str, Annotation] | None = None,
    issue_filter: IssueFilter | None = None,
    height: int = 24,
) -> NavigationEngine:
    engine = NavigationEngine(annotations=annotations, issue_filter=issue_filter, height=height)
    load = next(e for e in engine.start() if isinstance(e, LoadIssues))
    engine.dispatch(IssuesLoaded(load.generation, tuple(issues)))
    engine.dispatch(AccountLoaded("me"))
    return engine


def _refresh(engine: NavigationEngine, issues: list[Issue]) -> None:
    [load] = engine.press("r")
    assert isinstance(load, LoadIssues)
    engine.dispatch(IssuesLoaded(load.generation, tuple(issues)))


def _background_refresh(engine: NavigationEngine, issues: list[Issue]) -> None:
    [load] = engine.dispatch(TimerTick())
    assert isinstance(load, LoadIssues)
    engine.dispatch(IssuesLoaded(load.generation, tuple(issues)))


def _type(engine: NavigationEngine, text: str) -> None:
    for char in text:
        engine.press("space" if char == " " else char, char)


def _selected_id(engine: NavigationEngine) -> str | None:
    return engine.list_view.selected_id


def _only(effects: list, effect_type: type):
    [effect] = effects
    assert isinstance(effect, effect_type)
    return effect


def _open_detail(engine: NavigationEngine, detail: IssueDetail) -> None:
    load = _only(engine.press("enter"), LoadDetail)
    engine.dispatch(DetailLoaded(load.request_id, load.issue_id, detail))


def _detail_with_comments() -> IssueDetail:
    return IssueDetail(
        issue=make_issue("1", "Login page"),
        description="Build the **login** page",
        comments=(
            make_comment("c1", "mine"),
            make_comment("c2", "theirs", author="Ada", author_account_id="ada"),
        ),
    )


class TestStartup:
    """Tests for the first refresh."""

    def test_start_loads_account_and_issues(self) -> None:
        engine = NavigationEngine()

        effects = engine.start()

        assert effects[0] == LoadAccount()
        load = effects[1]
        assert isinstance(load, LoadIssues)
        assert load.generation == 1
        assert engine.loading
        assert not engine.loaded

    def test_first_load_populates_rows_and_selects_first(self) -> None:
        engine = _loaded_engine([make_issue("1"), make_issue("2")])

        assert [row.issue.id for row in engine.rows] == ["1", "2"]
        assert _selected_id(engine) == "1"
        assert engine.loaded
        assert not engine.loading
        assert engine.account_id == "me"

    def test_annotations_show_before_first_load_as_orphans(self) -> None:
        engine = NavigationEngine(annotations={"9": Annotation(note="remember")})

        assert [row.issue.id for row in engine.rows] == ["9"]
        assert engine.rows[0].issue.orphaned


class TestRefresh:
    """Tests for refresh coalescing and superseding."""

    def test_refresh_while_in_flight_is_coalesced(self) -> None:
        engine = NavigationEngine()
        engine.start()

        assert engine.press("r") == []
        assert engine.dispatch(TimerTick()) == []
        assert engine.refresh_generation == 1

    def test_refresh_after_completion_starts_new_generation(self) -> None:
        engine = _loaded_engine([make_issue("1")])

        load = _only(engine.press("r"), LoadIssues)

        assert load.generation == 2
        assert engine.refresh_in_flight

    def test_toggle_parents_supersedes_in_flight_refresh(self) -> None:
        engine = NavigationEngine()
        engine.start()

        load = _only(engine.press("p"), LoadIssues)

        assert load.generation == 2
        assert load.query.show_all_parents is True

    def test_superseded_completion_is_discarded(self) -> None:
        engine = NavigationEngine()
        engine.start()
        engine.press("p")

        engine.dispatch(IssuesLoaded(1, (make_issue("stale"),)))

        assert engine.rows == []
        assert engine.refresh_in_flight

        engine.dispatch(IssuesLoaded(2, (make_issue("fresh"),)))

        assert [row.issue.id for row in engine.rows] == ["fresh"]
        assert not engine.refresh_in_flight

    def test_failed_refresh_keeps_previous_rows(self) -> None:
        engine = _loaded_engine([make_issue("1")])
        load = _only(engine.press("r"), LoadIssues)

        engine.dispatch(IssuesLoaded(load.generation, (), NetworkFailure("timed out")))

        assert [row.issue.id for row in engine.rows] == ["1"]
        assert engine.status is not None
        assert engine.status.level is StatusLevel.ERROR
        assert "timed out" in engine.status.text
        assert not engine.refresh_in_flight

    def test_refresh_query_carries_excluded_statuses(self) -> None:
        issue_filter = IssueFilter(
            status_filters=(StatusFilter("Done", True), StatusFilter("Review", False)),
            show_all_parents=False,
            query="",
            sort_key=SortKey.REMOTE,
        )
        engine = NavigationEngine(issue_filter=issue_filter)

        load = next(e for e in engine.start() if isinstance(e, LoadIssues))

        assert load.query.excluded_statuses == ("Done",)


class TestAuthFailure:
    """Tests for the sticky authentication failure state."""

    def _fail_auth(self, engine: NavigationEngine) -> None:
        load = _only(engine.dispatch(TimerTick()), LoadIssues)
        engine.dispatch(IssuesLoaded(load.generation, (), AuthFailure("401")))

    def test_auth_failure_pauses_auto_refresh(self) -> None:
        engine = _loaded_engine([make_issue("1")])

        self._fail_auth(engine)

        assert engine.auth_failed
        assert engine.status is not None
        assert engine.status.level is StatusLevel.AUTH
        assert engine.dispatch(TimerTick()) == []

    def test_auth_status_does_not_expire(self) -> None:
        engine = _loaded_engine([make_issue("1")])
        self._fail_auth(engine)
        serial = engine.status.serial  # type: ignore[union-attr]

        engine.dispatch(StatusExpired(serial))

        assert engine.status is not None

    def test_manual_refresh_success_clears_auth_failure(self) -> None:
        engine = _loaded_engine([make_issue("1")])
        self._fail_auth(engine)

        _refresh(engine, [make_issue("1"), make_issue("2")])

        assert not engine.auth_failed
        assert engine.status is None
        assert len(engine.rows) == 2
        assert _only(engine.dispatch(TimerTick()), LoadIssues)


class TestSelection:
    """Tests for list navigation and selection stability."""

    def test_move_and_clamp(self) -> None:
        engine = _loaded_engine([make_issue("1"), make_issue("2"), make_issue("3")])

        engine.press("k")
        assert _selected_id(engine) == "1"

        engine.press("j")
        engine.press("down")
        engine.press("j")
        assert _selected_id(engine) == "3"

        engine.press("g")
        assert _selected_id(engine) == "1"
        engine.press("G")
        assert _selected_id(engine) == "3"

    def test_selection_follows_issue_across_reorder(self) -> None:
        engine = _loaded_engine([make_issue("1"), make_issue("2"), make_issue("3")])
        engine.press("j")

        _refresh(engine, [make_issue("3"), make_issue("1"), make_issue("2")])

        assert _selected_id(engine) == "2"
        assert engine.list_view.selected_index == 2

    def test_selection_clamps_when_issue_disappears(self) -> None:
        engine = _loaded_engine([make_issue("1"), make_issue("2"), make_issue("3")])
        engine.press("G")

        _refresh(engine, [make_issue("1"), make_issue("2")])

        assert _selected_id(engine) == "2"

    def test_empty_refresh_clears_selection(self) -> None:
        engine = _loaded_engine([make_issue("1")])

        _refresh(engine, [])

        assert engine.selected_row is None
        assert engine.press("enter") == []

    def test_scroll_keeps_selection_visible(self) -> None:
        engine = _loaded_engine([make_issue(str(i)) for i in range(10)], height=6)
        assert engine.list_height == 3

        engine.press("G")
        assert engine.list_view.scroll == 7

        engine.press("pageup")
        assert engine.list_view.selected_index == 6
        assert engine.list_view.scroll == 6

        engine.press("g")
        assert engine.list_view.scroll == 0

    def test_resize_keeps_selected_row_visible(self) -> None:
        engine = _loaded_engine([make_issue(str(i)) for i in range(10)])
        engine.press("G")

        engine.dispatch(Resize(80, 5))

        view = engine.list_view
        assert view.scroll <= view.selected_index < view.scroll + engine.list_height


class TestSearch:
    """Tests for fuzzy search input."""

    ISSUES = [
        make_issue("1", "Fix login"),
        make_issue("2", "Write docs"),
        make_issue("3", "Login page"),
    ]

    def test_typing_filters_and_selects_best_match(self) -> None:
        engine = _loaded_engine(self.ISSUES)
        engine.press("j")

        engine.press("/")
        assert isinstance(engine.screen, SearchInput)
        _type(engine, "login")

        assert engine.issue_filter.query == "login"
        assert {row.issue.id for row in engine.rows} == {"1", "3"}
        assert engine.list_view.selected_index == 0
        assert _selected_id(engine) == engine.rows[0].issue.id

    def test_cancel_restores_query_and_selection(self) -> None:
        engine = _loaded_engine(self.ISSUES)
        engine.press("j")
        engine.press("/")
        _type(engine, "docs")

        engine.press("escape")

        assert isinstance(engine.screen, IssueList)
        assert engine.issue_filter.query == ""
        assert len(engine.rows) == 3
        assert _selected_id(engine) == "2"

    def test_confirm_keeps_query_and_escape_clears_it(self) -> None:
        engine = _loaded_engine(self.ISSUES)
        engine.press("/")
        _type(engine, "docs")

        engine.press("enter")

        assert isinstance(engine.screen, IssueList)
        assert [row.issue.id for row in engine.rows] == ["2"]
        assert engine.search_bar_visible

        engine.press("escape")

        assert engine.issue_filter.query == ""
        assert len(engine.rows) == 3

    def test_backspace_widens_results(self) -> None:
        engine = _loaded_engine(self.ISSUES)
        engine.press("/")
        _type(engine, "docsx")
        assert engine.rows == []

        engine.press("backspace")

        assert [row.issue.id for row in engine.rows] == ["2"]

    def test_letters_are_typed_not_interpreted(self) -> None:
        engine = _loaded_engine(self.ISSUES)
        engine.press("/")

        effects = engine.press("q")

        assert effects == []
        assert isinstance(engine.screen, SearchInput)
        assert engine.issue_filter.query == "q"


class TestNoteEditor:
    """Tests for editing the private note."""

    def test_confirm_saves_and_waits_for_store(self) -> None:
        engine = _loaded_engine([make_issue("1")])
        engine.press("n")
        assert isinstance(engine.screen, NoteEditor)
        _type(engine, "call Bob")
        engine.press("enter")
        _type(engine, "tomorrow")

        save = _only(engine.press("ctrl+s"), SaveAnnotation)

        assert isinstance(engine.screen, IssueList)
        assert save.annotation == Annotation(note="call Bob\ntomorrow", highlighted=False)
        assert engine.has_pending_write("1")
        assert engine.loading
        assert engine.merged["1"].note == ""
        assert engine.latest_annotation("1").note == "call Bob\ntomorrow"

        engine.dispatch(AnnotationSaved(save.write_id, "1", save.annotation))

        assert engine.merged["1"].note == "call Bob\ntomorrow"
        assert not engine.has_pending_write("1")

    def test_cancel_discards_edit(self) -> None:
        engine = _loaded_engine([make_issue("1")], annotations={"1": Annotation(note="old")})
        engine.press("n")
        assert engine.screen.buffer.text == "old"  # type: ignore[union-attr]
        _type(engine, " and new")

        assert engine.press("escape") == []

        assert isinstance(engine.screen, IssueList)
        assert engine.merged["1"].note == "old"

    def test_unchanged_note_is_not_saved(self) -> None:
        engine = _loaded_engine([make_issue("1")], annotations={"1": Annotation(note="same")})
        engine.press("n")

        assert engine.press("ctrl+s") == []

    def test_note_is_trimmed_and_keeps_highlight(self) -> None:
        engine = _loaded_engine([make_issue("1")], annotations={"1": Annotation(highlighted=True)})
        engine.press("n")
        _type(engine, "  padded  ")

        save = _only(engine.press("ctrl+s"), SaveAnnotation)

        assert save.annotation == Annotation(note="padded", highlighted=True)

    def test_storage_failure_keeps_previous_annotation(self) -> None:
        engine = _loaded_engine([make_issue("1")], annotations={"1": Annotation(note="old")})
        engine.press("n")
        engine.press("backspace")
        save = _only(engine.press("ctrl+s"), SaveAnnotation)

        engine.dispatch(
            AnnotationSaved(save.write_id, "1", save.annotation, StorageFailure("disk full"))
        )

        assert engine.merged["1"].note == "old"
        assert not engine.has_pending_write("1")
        assert engine.status is not None
        assert engine.status.level is StatusLevel.ERROR
        assert "disk full" in engine.status.text

    def test_editor_from_detail_returns_to_detail(self) -> None:
        engine = _loaded_engine([make_issue("1")])
        _open_detail(engine, _detail_with_comments())

        engine.press("N")
        assert isinstance(engine.screen, NoteEditor)
        assert engine.screen.origin is Origin.TICKET_DETAIL
        engine.press("escape")

        assert engine.screen == TicketDetail("1")

    def test_refresh_during_edit_keeps_buffer(self) -> None:
        engine = _loaded_engine([make_issue("1", "Login page")])
        engine.press("n")
        _type(engine, "draft")
        before = engine.screen

        _background_refresh(engine, [make_issue("1", "Login page v2"), make_issue("2")])

        assert engine.screen == before
        assert engine.merged["1"].issue.summary == "Login page v2"
        save = _only(engine.press("ctrl+s"), SaveAnnotation)
        assert save.issue_id == "1"
        assert save.annotation.note == "draft"

    def test_issue_removed_during_edit_still_saves_as_orphan(self) -> None:
        engine = _loaded_engine([make_issue("1"), make_issue("2")])
        engine.press("n")
        _type(engine, "draft")
        before = engine.screen

        _background_refresh(engine, [make_issue("2")])

        assert engine.screen == before
        save = _only(engine.press("ctrl+s"), SaveAnnotation)
        assert save.annotation.note == "draft"

        engine.dispatch(AnnotationSaved(save.write_id, "1", save.annotation))

        assert engine.merged["1"].orphaned
        assert engine.merged["1"].note == "draft"

    def test_refresh_before_write_confirmation_keeps_pending_note(self) -> None:
        engine = _loaded_engine([make_issue("1", "Login page")])
        engine.press("n")
        _type(engine, "draft")
        save = _only(engine.press("ctrl+s"), SaveAnnotation)

        _refresh(engine, [make_issue("1", "Login page v2")])

        assert engine.has_pending_write("1")
        assert engine.latest_annotation("1").note == "draft"
        engine.press("n")
        assert engine.screen.buffer.text == "draft"  # type: ignore[union-attr]
        engine.press("escape")

        engine.dispatch(AnnotationSaved(save.write_id, "1", save.annotation))

        assert engine.merged["1"].note == "draft"
        assert engine.merged["1"].issue.summary == "Login page v2"
        assert not engine.has_pending_write("1")

    def test_cursor_moves_between_lines(self) -> None:
        engine = _loaded_engine([make_issue("1")])
        engine.press("n")
        _type(engine, "abcd")
        engine.press("enter")
        _type(engine, "xy")

        engine.press("up")
        _type(engine, "!")

        assert engine.screen.buffer.text == "ab!cd\nxy"  # type: ignore[union-attr]
        assert engine.list_view.selected_index == 0


class TestHighlight:
    """Tests for toggling highlights."""

    def test_toggle_emits_write(self) -> None:
        engine = _loaded_engine([make_issue("1")])

        save = _only(engine.press("h"), SaveAnnotation)

        assert save.annotation == Annotation(note="", highlighted=True)

    def test_second_toggle_builds_on_pending_write(self) -> None:
        engine = _loaded_engine([make_issue("1")])
        first = _only(engine.press("h"), SaveAnnotation)

        second = _only(engine.press("h"), SaveAnnotation)

        assert second.write_id > first.write_id
        assert second.annotation.highlighted is False

        engine.dispatch(AnnotationSaved(first.write_id, "1", first.annotation))
        engine.dispatch(AnnotationSaved(second.write_id, "1", second.annotation))

        assert engine.merged["1"].highlighted is False
        assert not engine.has_pending_write("1")


class TestPurgeOrphan:
    """Tests for purging annotations of issues no longer assigned."""

    def test_purge_requires_orphan(self) -> None:
        engine = _loaded_engine([make_issue("1")], annotations={"1": Annotation(note="n")})

        assert engine.press("X") == []
        assert engine.status is not None
        assert "still assigned" in engine.status.text

    def test_purge_removes_orphan_after_write(self) -> None:
        engine = _loaded_engine([make_issue("1")], annotations={"9": Annotation(note="old")})
        engine.press("G")
        assert _selected_id(engine) == "9"

        save = _only(engine.press("X"), SaveAnnotation)
        assert save.annotation.is_empty
        assert "9" in engine.merged

        engine.dispatch(AnnotationSaved(save.write_id, "9", save.annotation))

        assert [row.issue.id for row in engine.rows] == ["1"]
        assert engine.status is not None
        assert engine.status.text == "Purged 9"


class TestFilterEditor:
    """Tests for editing status filters."""

    def _engine(self) -> NavigationEngine:
        issue_filter = IssueFilter(
            status_filters=(StatusFilter("Done", True),),
            show_all_parents=False,
            query="",
            sort_key=SortKey.REMOTE,
        )
        return _loaded_engine(
            [make_issue("1", status="In Progress"), make_issue("2", status="Done")],
            issue_filter=issue_filter,
        )

    def test_toggle_and_confirm_saves_and_refreshes(self) -> None:
        engine = self._engine()
        assert [row.issue.id for row in engine.rows] == ["1"]

        engine.press("f")
        assert isinstance(engine.screen, FilterEditor)
        engine.press("space")
        effects = engine.press("enter")

        assert isinstance(engine.screen, IssueList)
        save, load = effects
        assert save == SaveFilters((StatusFilter("Done", False),), SortKey.REMOTE)
        assert isinstance(load, LoadIssues)
        assert load.query.excluded_statuses == ()
        assert [row.issue.id for row in engine.rows] == ["1", "2"]

    def test_cancel_discards_changes(self) -> None:
        engine = self._engine()
        engine.press("f")
        engine.press("d")

        assert engine.press("escape") == []
        assert engine.issue_filter.status_filters == (StatusFilter("Done", True),)

    def test_add_status_filter(self) -> None:
        engine = self._engine()
        engine.press("f")
        engine.press("a")
        _type(engine, "Review")
        engine.press("enter")

        screen = engine.screen
        assert isinstance(screen, FilterEditor)
        assert screen.adding is None
        assert screen.filters[-1] == StatusFilter("Review", True)
        assert screen.selected == 1

    def test_adding_existing_name_selects_it(self) -> None:
        engine = self._engine()
        engine.press("f")
        engine.press("a")
        _type(engine, "done")
        engine.press("enter")

        screen = engine.screen
        assert isinstance(screen, FilterEditor)
        assert len(screen.filters) == 1

    def test_confirm_without_changes_has_no_effects(self) -> None:
        engine = self._engine()
        engine.press("f")

        assert engine.press("enter") == []

    def test_cycle_sort_saves_preference(self) -> None:
        engine = _loaded_engine([make_issue("b", key="A-10"), make_issue("a", key="A-2")])

        save = _only(engine.press("o"), SaveFilters)

        assert save.sort_key is SortKey.KEY
        assert [row.issue.key for row in engine.rows] == ["A-2", "A-10"]


class TestDetail:
    """Tests for the ticket detail screen."""

    def test_open_and_close(self) -> None:
        engine = _loaded_engine([make_issue("1")])

        load = _only(engine.press("enter"), LoadDetail)
        assert engine.screen == TicketDetail("1")
        assert engine.detail_view is not None
        assert engine.detail_view.loading

        engine.dispatch(DetailLoaded(load.request_id, "1", _detail_with_comments()))
        assert engine.detail_layout() is not None

        engine.press("escape")
        assert isinstance(engine.screen, IssueList)
        assert engine.detail_view is None

    def test_stale_detail_load_is_discarded(self) -> None:
        engine = _loaded_engine([make_issue("1"), make_issue("2")])
        first = _only(engine.press("enter"), LoadDetail)
        engine.press("escape")
        engine.press("j")
        second = _only(engine.press("enter"), LoadDetail)

        engine.dispatch(DetailLoaded(first.request_id, "1", _detail_with_comments()))

        assert engine.detail_view is not None
        assert engine.detail_view.issue_id == "2"
        assert engine.detail_view.detail is None
        assert engine.detail_view.request_id == second.request_id

    def test_not_found_returns_to_list_and_refreshes(self) -> None:
        engine = _loaded_engine([make_issue("1")])
        load = _only(engine.press("enter"), LoadDetail)

        effects = engine.dispatch(DetailLoaded(load.request_id, "1", None, NotFound("gone")))

        assert isinstance(engine.screen, IssueList)
        assert _only(effects, LoadIssues)
        assert engine.status is not None
        assert "TEST-1" in engine.status.text

    def test_other_load_error_stays_on_detail(self) -> None:
        engine = _loaded_engine([make_issue("1")])
        load = _only(engine.press("enter"), LoadDetail)

        engine.dispatch(DetailLoaded(load.request_id, "1", None, NetworkFailure("offline")))

        assert engine.screen == TicketDetail("1")
        assert engine.detail_view is not None
        assert engine.detail_view.error == "offline"

    def test_comment_navigation(self) -> None:
        engine = _loaded_engine([make_issue("1")])
        _open_detail(engine, _detail_with_comments())

        engine.press("n")
        assert engine.detail_view.selected_comment == 0  # type: ignore[union-attr]
        engine.press("n")
        engine.press("n")
        assert engine.detail_view.selected_comment == 1  # type: ignore[union-attr]
        engine.press("p")
        assert engine.detail_view.selected_comment == 0  # type: ignore[union-attr]

    def test_detail_actions_emit_effects(self) -> None:
        engine = _loaded_engine([make_issue("1")])
        _open_detail(engine, _detail_with_comments())

        assert engine.press("w") == [OpenInBrowser("TEST-1")]
        assert engine.press("l") == [CopyLink("TEST-1")]
        copy = _only(engine.press("y"), CopyText)
        assert copy.text.startswith("TEST-1")
        assert engine.press("?") == [ShowHelp()]

    def test_list_actions_emit_effects(self) -> None:
        engine = _loaded_engine([make_issue("1")])

        assert engine.press("y") == [CopyText("TEST-1", "Copied TEST-1")]
        assert engine.press("w") == [OpenInBrowser("TEST-1")]
        assert engine.press("?") == [ShowHelp()]
        assert engine.press("q") == [Quit()]

    def test_notice_sets_status(self) -> None:
        engine = _loaded_engine([make_issue("1")])

        engine.dispatch(Notice("Clipboard unavailable", is_error=True))

        assert engine.status is not None
        assert engine.status.level is StatusLevel.ERROR

        engine.dispatch(StatusExpired(engine.status.serial))

        assert engine.status is None


class TestComments:
    """Tests for adding, editing and deleting comments."""

    def _engine(self) -> NavigationEngine:
        engine = _loaded_engine([make_issue("1")])
        _open_detail(engine, _detail_with_comments())
        return engine

    def test_empty_comment_is_rejected_inline(self) -> None:
        engine = self._engine()
        engine.press("c")
        _type(engine, "   ")

        assert engine.press("ctrl+s") == []

        screen = engine.screen
        assert isinstance(screen, CommentEditor)
        assert screen.error == "Comment cannot be empty"

    def test_submit_new_comment_and_reload(self) -> None:
        engine = self._engine()
        engine.press("c")
        _type(engine, "looks good")

        submit = _only(engine.press("ctrl+s"), SubmitComment)
        assert submit.body == "looks good"
        assert submit.comment_id is None
        assert engine.screen.submitting  # type: ignore[union-attr]

        effects = engine.dispatch(CommentSubmitted(submit.request_id, "1", None))

        assert engine.screen == TicketDetail("1")
        assert _only(effects, LoadDetail)
        assert engine.status.text == "Comment added"  # type: ignore[union-attr]

    def test_failed_submit_keeps_buffer(self) -> None:
        engine = self._engine()
        engine.press("c")
        _type(engine, "draft")
        submit = _only(engine.press("ctrl+s"), SubmitComment)

        engine.dispatch(CommentSubmitted(submit.request_id, "1", None, NetworkFailure("offline")))

        screen = engine.screen
        assert isinstance(screen, CommentEditor)
        assert screen.buffer.text == "draft"
        assert screen.error == "offline"
        assert not screen.submitting

    def test_only_own_comments_can_be_edited(self) -> None:
        engine = self._engine()
        engine.press("n")
        engine.press("n")

        assert engine.press("e") == []
        assert engine.screen == TicketDetail("1")
        assert "own comments" in engine.status.text  # type: ignore[union-attr]

    def test_edit_own_comment(self) -> None:
        engine = self._engine()
        engine.press("n")
        engine.press("e")

        screen = engine.screen
        assert isinstance(screen, CommentEditor)
        assert screen.comment_id == "c1"
        assert screen.buffer.text == "mine"

        _type(engine, "!")
        submit = _only(engine.press("ctrl+s"), SubmitComment)
        assert submit.comment_id == "c1"
        assert submit.body == "mine!"

    def test_edit_requires_selection(self) -> None:
        engine = self._engine()

        assert engine.press("e") == []
        assert "Select a comment" in engine.status.text  # type: ignore[union-attr]

    def test_delete_own_comment(self) -> None:
        engine = self._engine()
        engine.press("n")

        delete = _only(engine.press("x"), DeleteComment)
        assert delete.comment_id == "c1"

        effects = engine.dispatch(CommentDeleted(delete.request_id, "1", "c1"))

        assert _only(effects, LoadDetail)
        assert engine.detail_view.selected_comment is None  # type: ignore[union-attr]


ADA = JiraUser(account_id="acc-ada", display_name="Ada Lovelace")
ALAN = JiraUser(account_id="acc-alan", display_name="Alan Turing")


class TestMentions:
    """Tests for the @mention picker in the comment editor."""

    def _editor(self, text: str = "") -> NavigationEngine:
        engine = _loaded_engine([make_issue("1")])
        _open_detail(engine, _detail_with_comments())
        engine.press("c")
        _type(engine, text)
        return engine

    def _search(self, engine: NavigationEngine, query: str) -> SearchUsers:
        effects: list = []
        for char in query:
            effects = engine.press(char)
        return _only(effects, SearchUsers)

    def _picker(self, engine: NavigationEngine) -> MentionPicker:
        screen = engine.screen
        assert isinstance(screen, CommentEditor)
        assert screen.mention is not None
        return screen.mention

    def test_at_sign_opens_picker_without_searching(self) -> None:
        engine = self._editor("hi ")

        assert engine.press("@") == []

        assert self._picker(engine) == MentionPicker(trigger_pos=3)
        assert engine.screen.buffer.text == "hi @"  # type: ignore[union-attr]

    def test_typing_searches_with_latest_query(self) -> None:
        engine = self._editor("@")

        search = self._search(engine, "ad")

        assert search.query == "ad"
        assert self._picker(engine).query == "ad"
        assert self._picker(engine).request_id == search.request_id

    def test_results_fill_candidates_and_stale_results_are_ignored(self) -> None:
        engine = self._editor("@")
        first = self._search(engine, "a")
        second = self._search(engine, "l")

        engine.dispatch(UsersFound(first.request_id, (ADA, ALAN)))
        assert self._picker(engine).candidates == ()

        engine.dispatch(UsersFound(second.request_id, (ALAN,)))
        assert self._picker(engine).candidates == (ALAN,)

    def test_enter_inserts_selected_user(self) -> None:
        engine = self._editor("ping @")
        search = self._search(engine, "a")
        engine.dispatch(UsersFound(search.request_id, (ADA, ALAN)))

        engine.press("down")
        assert engine.press("enter") == []

        screen = engine.screen
        assert isinstance(screen, CommentEditor)
        assert screen.mention is None
        assert screen.buffer.text == "ping @Alan Turing "
        assert screen.buffer.cursor == len("ping @Alan Turing ")
        assert screen.mentions == (MentionInsert(5, "acc-alan", "Alan Turing"),)

    def test_submit_carries_mentions(self) -> None:
        engine = self._editor("  @")
        search = self._search(engine, "ad")
        engine.dispatch(UsersFound(search.request_id, (ADA,)))
        engine.press("tab")
        _type(engine, "please review")

        submit = _only(engine.press("ctrl+s"), SubmitComment)

        assert submit.body == "@Ada Lovelace please review"
        assert submit.mentions == (MentionInsert(0, "acc-ada", "Ada Lovelace"),)

    def test_escape_keeps_text_plain(self) -> None:
        engine = self._editor("@")
        self._search(engine, "ad")

        assert engine.press("escape") == []

        screen = engine.screen
        assert isinstance(screen, CommentEditor)
        assert screen.mention is None
        assert screen.buffer.text == "@ad"
        assert screen.mentions == ()
        engine.press("escape")
        assert engine.screen == TicketDetail("1")

    def test_space_closes_picker(self) -> None:
        engine = self._editor("@")
        self._search(engine, "ad")

        _type(engine, " x")

        screen = engine.screen
        assert isinstance(screen, CommentEditor)
        assert screen.mention is None
        assert screen.buffer.text == "@ad x"

    def test_backspace_past_at_sign_closes_picker(self) -> None:
        engine = self._editor("x@")
        self._search(engine, "a")

        assert engine.press("backspace") == []
        assert self._picker(engine).query == ""

        engine.press("backspace")

        screen = engine.screen
        assert isinstance(screen, CommentEditor)
        assert screen.mention is None
        assert screen.buffer.text == "x"

    def test_backspace_requeries(self) -> None:
        engine = self._editor("@")
        self._search(engine, "ada")

        search = _only(engine.press("backspace"), SearchUsers)

        assert search.query == "ad"

    def test_search_failure_sets_status(self) -> None:
        engine = self._editor("@")
        search = self._search(engine, "a")

        engine.dispatch(UsersFound(search.request_id, (), NetworkFailure("offline")))

        assert engine.status is not None
        assert "User search failed" in engine.status.text
        assert self._picker(engine).candidates == ()

    def test_confirm_without_candidates_closes_picker(self) -> None:
        engine = self._editor("@")
        self._search(engine, "zz")

        engine.press("enter")

        screen = engine.screen
        assert isinstance(screen, CommentEditor)
        assert screen.mention is None
        assert screen.mentions == ()

    def test_editing_inside_mention_drops_it(self) -> None:
        engine = self._editor("@")
        search = self._search(engine, "ad")
        engine.dispatch(UsersFound(search.request_id, (ADA,)))
        engine.press("enter")
        _type(engine, "hi")

        for _ in range(3):
            engine.press("left")
        engine.press("backspace")

        screen = engine.screen
        assert isinstance(screen, CommentEditor)
        assert screen.buffer.text == "@Ada Lovelac hi"
        assert screen.mentions == ()

    def test_text_typed_before_mention_shifts_it(self) -> None:
        engine = self._editor("@")
        search = self._search(engine, "ad")
        engine.dispatch(UsersFound(search.request_id, (ADA,)))
        engine.press("enter")

        engine.press("home")
        _type(engine, "cc ")

        screen = engine.screen
        assert isinstance(screen, CommentEditor)
        assert screen.mentions == (MentionInsert(3, "acc-ada", "Ada Lovelace"),)


class TestPaste:
    """Tests for pasted text."""

    def test_paste_into_note_keeps_lines(self) -> None:
        engine = _loaded_engine([make_issue("1")])
        engine.press("n")

        engine.dispatch(TextPasted("first\r\nsecond"))

        assert engine.screen.buffer.text == "first\nsecond"  # type: ignore[union-attr]

    def test_paste_into_search_joins_lines(self) -> None:
        engine = _loaded_engine([make_issue("1", "login page"), make_issue("2", "other")])
        engine.press("/")

        engine.dispatch(TextPasted("login\npage"))

        assert engine.issue_filter.query == "login page"
        assert [row.issue.id for row in engine.rows] == ["1"]

    def test_paste_into_new_status_joins_lines(self) -> None:
        engine = _loaded_engine([make_issue("1")])
        engine.press("f")
        engine.press("a")

        engine.dispatch(TextPasted("In\rReview"))

        screen = engine.screen
        assert isinstance(screen, FilterEditor)
        assert screen.adding is not None
        assert screen.adding.text == "In Review"

    def test_paste_is_ignored_outside_text_entry(self) -> None:
        engine = _loaded_engine([make_issue("1")])

        assert engine.dispatch(TextPasted("q")) == []
        assert isinstance(engine.screen, IssueList)

    def test_paste_closes_mention_picker(self) -> None:
        engine = _loaded_engine([make_issue("1")])
        _open_detail(engine, _detail_with_comments())
        engine.press("c")
        engine.press("@")

        engine.dispatch(TextPasted("someone"))

        screen = engine.screen
        assert isinstance(screen, CommentEditor)
        assert screen.mention is None
        assert screen.buffer.text == "@someone"


class TestTransitions:
    """Tests for the transition picker."""

    def _picker(self) -> tuple[NavigationEngine, LoadTransitions]:
        engine = _loaded_engine([make_issue("1", status="To Do")])
        _open_detail(engine, _detail_with_comments())
        load = _only(engine.press("t"), LoadTransitions)
        return engine, load

    def test_transitions_are_fetched_each_time(self) -> None:
        engine, first = self._picker()
        engine.press("escape")

        second = _only(engine.press("t"), LoadTransitions)

        assert second.request_id != first.request_id
        assert isinstance(engine.screen, TransitionPicker)
        assert engine.screen.loading

    def test_stale_transitions_are_discarded(self) -> None:
        engine, first = self._picker()
        engine.press("escape")
        second = _only(engine.press("t"), LoadTransitions)

        engine.dispatch(TransitionsLoaded(first.request_id, "1", (START,)))

        assert engine.screen.transitions == ()  # type: ignore[union-attr]

        engine.dispatch(TransitionsLoaded(second.request_id, "1", (START, RESOLVE)))

        assert engine.screen.transitions == (START, RESOLVE)  # type: ignore[union-attr]

    def test_no_transitions_returns_to_detail(self) -> None:
        engine, load = self._picker()

        engine.dispatch(TransitionsLoaded(load.request_id, "1", ()))

        assert engine.screen == TicketDetail("1")
        assert engine.status.text == "No transitions available"  # type: ignore[union-attr]

    def test_apply_success_reloads_detail_and_list(self) -> None:
        engine, load = self._picker()
        engine.dispatch(TransitionsLoaded(load.request_id, "1", (START, RESOLVE)))
        engine.press("j")

        apply = _only(engine.press("enter"), ApplyTransition)
        assert apply.transition == RESOLVE
        assert engine.screen.applying  # type: ignore[union-attr]
        assert engine.press("escape") == []

        effects = engine.dispatch(TransitionApplied(apply.request_id, "1", RESOLVE))

        assert engine.screen == TicketDetail("1")
        assert {type(e) for e in effects} == {LoadDetail, LoadIssues}
        assert engine.status.text == "Moved to Done"  # type: ignore[union-attr]

    def test_validation_failure_stays_in_picker(self) -> None:
        engine, load = self._picker()
        engine.dispatch(TransitionsLoaded(load.request_id, "1", (START,)))
        apply = _only(engine.press("enter"), ApplyTransition)

        engine.dispatch(
            TransitionApplied(apply.request_id, "1", START, ValidationFailure("Resolution required"))
        )

        screen = engine.screen
        assert isinstance(screen, TransitionPicker)
        assert screen.error == "Resolution required"
        assert not screen.applying

    def test_other_failure_returns_to_detail(self) -> None:
        engine, load = self._picker()
        engine.dispatch(TransitionsLoaded(load.request_id, "1", (START,)))
        apply = _only(engine.press("enter"), ApplyTransition)

        engine.dispatch(TransitionApplied(apply.request_id, "1", START, NetworkFailure("offline")))

        assert engine.screen == TicketDetail("1")
        assert engine.status.level is StatusLevel.ERROR  # type: ignore[union-attr]
