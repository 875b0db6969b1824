"""Main Textual application of the dashboard."""

import asyncio
from concurrent.futures import Executor, ThreadPoolExecutor
from functools import partial
from pathlib import Path

from rich.text import Text
from textual import events
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container, Vertical
from textual.screen import ModalScreen
from textual.widgets import Label, Static

from mindful_jira.context import DashContext
from mindful_jira.core.filtering import IssueFilter
from mindful_jira.tui.effects import execute_effect
from mindful_jira.tui.engine import NavigationEngine
from mindful_jira.tui.events import (
    Effect,
    Event,
    KeyPressed,
    Quit,
    Resize,
    SaveAnnotation,
    SaveFilters,
    ShowHelp,
    StatusExpired,
    TextPasted,
    TimerTick,
)
from mindful_jira.tui.keymap import normalize_key
from mindful_jira.tui.render import render_frame

STATUS_TIMEOUT = 5.0


class HelpScreen(ModalScreen):
    """Modal screen showing keyboard shortcuts."""

    BINDINGS = [
        Binding("escape", "dismiss", "Close"),
        Binding("q", "dismiss", "Close"),
        Binding("question_mark", "dismiss", "Close"),
    ]

    DEFAULT_CSS = """
    HelpScreen {
        align: center middle;
    }

    #help-dialog {
        width: 64;
        height: auto;
        max-height: 90%;
        background: $surface;
        border: solid $primary;
        padding: 1 2;
    }

    #help-title {
        text-style: bold;
        text-align: center;
        width: 100%;
    }

    .help-section {
        margin-top: 1;
        height: auto;
    }

    .help-section-title {
        text-style: bold;
        color: $primary;
    }

    .help-binding {
        margin-left: 2;
    }
    """

    def compose(self) -> ComposeResult:
        with Vertical(id="help-dialog"):
            yield Label("mindful-jira - Keyboard Shortcuts", id="help-title")

            with Vertical(classes="help-section"):
                yield Label("Issue list", classes="help-section-title")
                yield Label("↑/k ↓/j  Move   Home/End  First/last", classes="help-binding")
                yield Label("Enter    Open ticket detail", classes="help-binding")
                yield Label("/        Fuzzy search (Esc clears)", classes="help-binding")
                yield Label("f        Edit status filters", classes="help-binding")
                yield Label("n        Edit private note", classes="help-binding")
                yield Label("h        Toggle highlight", classes="help-binding")
                yield Label("o        Cycle sort order", classes="help-binding")
                yield Label("p        Toggle parents assigned to others", classes="help-binding")
                yield Label("X        Purge orphaned annotation", classes="help-binding")
                yield Label("y / w    Copy key / open in browser", classes="help-binding")

            with Vertical(classes="help-section"):
                yield Label("Ticket detail", classes="help-section-title")
                yield Label("n / p    Next / previous comment", classes="help-binding")
                yield Label("c / e    Add / edit own comment (Ctrl+S submits)", classes="help-binding")
                yield Label("@        Mention a user while writing a comment", classes="help-binding")
                yield Label("x        Delete own comment", classes="help-binding")
                yield Label("t        Transition issue", classes="help-binding")
                yield Label("N        Edit private note", classes="help-binding")
                yield Label("y / l    Copy ticket / link", classes="help-binding")
                yield Label("Esc      Back to list", classes="help-binding")

            with Vertical(classes="help-section"):
                yield Label("General", classes="help-section-title")
                yield Label("←↑↓→     Move the cursor in text editors", classes="help-binding")
                yield Label("r        Refresh", classes="help-binding")
                yield Label("?        Show this help", classes="help-binding")
                yield Label("q        Quit", classes="help-binding")


class MindfulJiraApp(App):
    """Interactive dashboard of the current user's Jira issues.

    All state lives in a NavigationEngine. The app translates key presses
    and timers into engine events, runs the effects the engine returns on
    executor threads, and redraws from the engine after every event.
    """

    CSS_PATH = Path(__file__).parent / "styles" / "dash.tcss"
    ENABLE_COMMAND_PALETTE = False

    def __init__(self, ctx: DashContext, *, refresh_interval: float | None = None) -> None:
        """Initialize the dashboard app.

        Args:
            ctx: Gateways and configuration
            refresh_interval: Seconds between auto refreshes (0 to disable);
                defaults to the configured interval
        """
        super().__init__()
        self._ctx = ctx
        if refresh_interval is None:
            refresh_interval = ctx.config.refresh_interval
        self._refresh_interval = refresh_interval
        self._engine = NavigationEngine(
            annotations=ctx.annotations.load_all(),
            issue_filter=IssueFilter(
                status_filters=ctx.config.status_filters,
                show_all_parents=False,
                query="",
                sort_key=ctx.config.sort_key,
            ),
        )
        # One thread keeps local file writes in submission order.
        self._write_executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="local-writes"
        )
        self._mounted = False
        self._shown_status_serial = 0

    @property
    def engine(self) -> NavigationEngine:
        return self._engine

    def compose(self) -> ComposeResult:
        with Vertical(id="main"):
            yield Static(id="title")
            yield Static(id="body")
            yield Static(id="status")
        with Container(id="overlay-layer"):
            yield Static(id="overlay")

    def on_mount(self) -> None:
        self._mounted = True
        self._engine.dispatch(Resize(self.size.width, self.size.height))
        self._run_effects(self._engine.start())
        if self._refresh_interval > 0:
            self.set_interval(self._refresh_interval, self._on_refresh_timer)
        self._redraw()

    def on_unmount(self) -> None:
        # Let queued local writes reach the disk before exiting.
        self._write_executor.shutdown(wait=True)

    def on_resize(self, event: events.Resize) -> None:
        self._dispatch(Resize(event.size.width, event.size.height))

    def on_key(self, event: events.Key) -> None:
        if isinstance(self.screen, HelpScreen):
            return
        event.stop()
        event.prevent_default()
        key = normalize_key(event.key, event.character)
        self._dispatch(KeyPressed(key=key, character=event.character))

    def on_paste(self, event: events.Paste) -> None:
        # Bracketed paste delivers the whole text at once instead of key events.
        if isinstance(self.screen, HelpScreen):
            return
        event.stop()
        self._dispatch(TextPasted(event.text))

    def _on_refresh_timer(self) -> None:
        self._dispatch(TimerTick())

    def _dispatch(self, event: Event) -> None:
        effects = self._engine.dispatch(event)
        self._run_effects(effects)
        self._redraw()

    def _run_effects(self, effects: list[Effect]) -> None:
        for effect in effects:
            match effect:
                case Quit():
                    self.exit()
                case ShowHelp():
                    self.push_screen(HelpScreen())
                case SaveAnnotation() | SaveFilters():
                    self.run_worker(self._execute(effect, self._write_executor), group="writes")
                case _:
                    self.run_worker(self._execute(effect, None), group="remote")

    async def _execute(self, effect: Effect, executor: Executor | None) -> None:
        """Run an effect in a background thread and dispatch its completion."""
        loop = asyncio.get_running_loop()
        event = await loop.run_in_executor(executor, execute_effect, effect, self._ctx)
        if event is not None:
            self._dispatch(event)

    def _redraw(self) -> None:
        if not self._mounted:
            return
        frame = render_frame(self._engine, self.size.width, self.size.height)
        self.query_one("#title", Static).update(frame.title)
        self.query_one("#body", Static).update(Text("\n").join(frame.body))
        self.query_one("#status", Static).update(frame.status)

        overlay_layer = self.query_one("#overlay-layer", Container)
        if frame.overlay is None:
            overlay_layer.display = False
        else:
            self.query_one("#overlay", Static).update(Text("\n").join(frame.overlay))
            overlay_layer.display = True

        status = self._engine.status
        if status is not None and status.serial != self._shown_status_serial:
            self._shown_status_serial = status.serial
            if not status.sticky:
                self.set_timer(STATUS_TIMEOUT, partial(self._dispatch, StatusExpired(status.serial)))
