"""TUI runner abstraction for testability.

This module provides an ABC for running the Textual dashboard, enabling
CLI routing tests without starting the Textual event loop.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from mindful_jira.tui.app import MindfulJiraApp


class TuiRunner(ABC):
    """Abstract interface for running the dashboard."""

    @abstractmethod
    def run(self, app: MindfulJiraApp) -> None:
        """Run the dashboard.

        Args:
            app: The MindfulJiraApp instance to run
        """
        ...


class RealTuiRunner(TuiRunner):
    """Production implementation that runs the Textual event loop."""

    def run(self, app: MindfulJiraApp) -> None:
        app.run()


class FakeTuiRunner(TuiRunner):
    """Test implementation that captures apps without running the event loop."""

    def __init__(self) -> None:
        self._apps_run: list[MindfulJiraApp] = []

    def run(self, app: MindfulJiraApp) -> None:
        """Capture app without running event loop."""
        self._apps_run.append(app)

    @property
    def apps_run(self) -> list[MindfulJiraApp]:
        """Get the list of apps that were passed to run().

        This property is for test assertions only.
        """
        return self._apps_run
