"""Dependency bundle for the dashboard.

DashContext gathers every gateway the dashboard talks to, so the CLI, the
app and the tests all wire dependencies in one place.
"""

from dataclasses import dataclass
from pathlib import Path

from mindful_jira.config import ANNOTATIONS_FILENAME, JiraConfig, load_config
from mindful_jira.core.filtering import SortKey
from mindful_jira.gateway.annotations.abc import AnnotationStore
from mindful_jira.gateway.annotations.fake import FakeAnnotationStore
from mindful_jira.gateway.annotations.real import TomlAnnotationStore
from mindful_jira.gateway.browser.abc import BrowserLauncher
from mindful_jira.gateway.browser.fake import FakeBrowserLauncher
from mindful_jira.gateway.browser.real import RealBrowserLauncher
from mindful_jira.gateway.clipboard.abc import Clipboard
from mindful_jira.gateway.clipboard.fake import FakeClipboard
from mindful_jira.gateway.clipboard.real import RealClipboard
from mindful_jira.gateway.jira.abc import JiraClient
from mindful_jira.gateway.jira.fake import FakeJiraClient
from mindful_jira.gateway.jira.real import RealJiraClient
from mindful_jira.tui.runner import FakeTuiRunner, RealTuiRunner, TuiRunner


@dataclass(frozen=True)
class DashContext:
    """Everything the dashboard needs from the outside world.

    This design:
    - Keeps the app free of global state (config is passed, never looked up)
    - Enables CLI routing tests without starting Textual (via FakeTuiRunner)
    - Enables TUI behavior tests with Pilot (via for_test())
    """

    config: JiraConfig
    config_dir: Path
    jira: JiraClient
    annotations: AnnotationStore
    browser: BrowserLauncher
    clipboard: Clipboard
    tui_runner: TuiRunner

    @classmethod
    def for_production(cls, config_dir: Path) -> "DashContext":
        """Create the production context from the config directory.

        Args:
            config_dir: Directory holding config.toml and annotations.toml

        Returns:
            DashContext with real gateways

        Raises:
            ConfigError: If the configuration is missing or incomplete
            StorageFailure: If the annotation store cannot be opened
        """
        config = load_config(config_dir)
        return cls(
            config=config,
            config_dir=config_dir,
            jira=RealJiraClient(config),
            annotations=TomlAnnotationStore.open(config_dir / ANNOTATIONS_FILENAME),
            browser=RealBrowserLauncher(),
            clipboard=RealClipboard(),
            tui_runner=RealTuiRunner(),
        )

    @classmethod
    def for_test(
        cls,
        *,
        config: JiraConfig | None = None,
        config_dir: Path | None = None,
        jira: JiraClient | None = None,
        annotations: AnnotationStore | None = None,
        browser: BrowserLauncher | None = None,
        clipboard: Clipboard | None = None,
        tui_runner: TuiRunner | None = None,
    ) -> "DashContext":
        """Create a test context, filling unspecified gateways with fakes.

        Example:
            # For CLI routing tests (verify app created, no event loop)
            tui_runner = FakeTuiRunner()
            dash_ctx = DashContext.for_test(tui_runner=tui_runner)
            result = CliRunner().invoke(cli, [], obj=dash_ctx)
            assert len(tui_runner.apps_run) == 1

            # For TUI behavior tests with Pilot
            browser = FakeBrowserLauncher()
            dash_ctx = DashContext.for_test(jira=FakeJiraClient(issues=...), browser=browser)
            app = MindfulJiraApp(dash_ctx, refresh_interval=0)
            async with app.run_test() as pilot:
                await pilot.press("w")
            assert browser.launched_urls == ["https://jira.example.com/browse/TEST-1"]
        """
        return cls(
            config=config or placeholder_config(),
            config_dir=config_dir or Path("/nonexistent/mindful-jira"),
            jira=jira or FakeJiraClient(),
            annotations=annotations or FakeAnnotationStore(),
            browser=browser or FakeBrowserLauncher(),
            clipboard=clipboard or FakeClipboard(),
            tui_runner=tui_runner or FakeTuiRunner(),
        )


def placeholder_config() -> JiraConfig:
    """Config with placeholder credentials and no status filters."""
    return JiraConfig(
        jira_url="https://jira.example.com",
        email="me@example.com",
        api_token="token",
        status_filters=(),
        refresh_interval=0.0,
        sort_key=SortKey.REMOTE,
    )
