"""Fake BrowserLauncher implementation for testing."""

from mindful_jira.gateway.browser.abc import BrowserLauncher


class FakeBrowserLauncher(BrowserLauncher):
    """In-memory fake that captures URLs without opening a browser."""

    def __init__(self) -> None:
        self._launched_urls: list[str] = []

    def launch(self, url: str) -> None:
        self._launched_urls.append(url)

    @property
    def launched_urls(self) -> list[str]:
        """URLs passed to launch(), in order.

        This property is for test assertions only.
        """
        return self._launched_urls
