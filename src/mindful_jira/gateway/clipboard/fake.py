"""Fake Clipboard implementation for testing."""

from mindful_jira.gateway.clipboard.abc import Clipboard


class FakeClipboard(Clipboard):
    """In-memory clipboard that records copied text.

    Pass `available=False` to simulate a headless session.
    """

    def __init__(self, *, available: bool = True) -> None:
        self._available = available
        self._copied: list[str] = []

    def copy(self, text: str) -> bool:
        if not self._available:
            return False
        self._copied.append(text)
        return True

    @property
    def copied(self) -> list[str]:
        """Texts copied so far, in order.

        This property is for test assertions only.
        """
        return self._copied
