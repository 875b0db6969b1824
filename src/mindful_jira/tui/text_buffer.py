"""Immutable editable text with a cursor, used by every text-entry screen."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class TextBuffer:
    """Text being edited and the cursor position within it.

    Attributes:
        text: Current contents
        cursor: Character offset of the cursor, 0 <= cursor <= len(text)
    """

    text: str = ""
    cursor: int = 0

    @staticmethod
    def of(text: str) -> TextBuffer:
        """Create a buffer with the cursor at the end of `text`."""
        return TextBuffer(text=text, cursor=len(text))

    def insert(self, chars: str) -> TextBuffer:
        text = self.text[: self.cursor] + chars + self.text[self.cursor :]
        return TextBuffer(text=text, cursor=self.cursor + len(chars))

    def backspace(self) -> TextBuffer:
        if self.cursor == 0:
            return self
        text = self.text[: self.cursor - 1] + self.text[self.cursor :]
        return TextBuffer(text=text, cursor=self.cursor - 1)

    def delete(self) -> TextBuffer:
        if self.cursor >= len(self.text):
            return self
        text = self.text[: self.cursor] + self.text[self.cursor + 1 :]
        return TextBuffer(text=text, cursor=self.cursor)

    def left(self) -> TextBuffer:
        return TextBuffer(text=self.text, cursor=max(self.cursor - 1, 0))

    def right(self) -> TextBuffer:
        return TextBuffer(text=self.text, cursor=min(self.cursor + 1, len(self.text)))

    def home(self) -> TextBuffer:
        """Move to the start of the current line."""
        line_start = self.text.rfind("\n", 0, self.cursor) + 1
        return TextBuffer(text=self.text, cursor=line_start)

    def end(self) -> TextBuffer:
        """Move to the end of the current line."""
        line_end = self.text.find("\n", self.cursor)
        if line_end == -1:
            line_end = len(self.text)
        return TextBuffer(text=self.text, cursor=line_end)

    def up(self) -> TextBuffer:
        """Move to the previous line, keeping the column where it fits."""
        line_start = self.text.rfind("\n", 0, self.cursor) + 1
        if line_start == 0:
            return self
        column = self.cursor - line_start
        previous_start = self.text.rfind("\n", 0, line_start - 1) + 1
        previous_length = line_start - 1 - previous_start
        return TextBuffer(text=self.text, cursor=previous_start + min(column, previous_length))

    def down(self) -> TextBuffer:
        """Move to the next line, keeping the column where it fits."""
        line_end = self.text.find("\n", self.cursor)
        if line_end == -1:
            return self
        column = self.cursor - (self.text.rfind("\n", 0, self.cursor) + 1)
        next_start = line_end + 1
        next_end = self.text.find("\n", next_start)
        if next_end == -1:
            next_end = len(self.text)
        return TextBuffer(text=self.text, cursor=next_start + min(column, next_end - next_start))

    @property
    def line_and_column(self) -> tuple[int, int]:
        before = self.text[: self.cursor]
        line = before.count("\n")
        column = self.cursor - (before.rfind("\n") + 1)
        return line, column
