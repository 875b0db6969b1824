"""Clipboard abstraction for testability."""

from abc import ABC, abstractmethod


class Clipboard(ABC):
    """Abstract interface for copying text to the system clipboard."""

    @abstractmethod
    def copy(self, text: str) -> bool:
        """Copy text to the clipboard.

        Args:
            text: Text to copy

        Returns:
            True if the copy succeeded, False if no clipboard is available
        """
        ...
