"""Real Clipboard implementation using pyperclip.

pyperclip handles xclip/xsel on Linux, pbcopy on macOS, etc.
"""

from mindful_jira.gateway.clipboard.abc import Clipboard


class RealClipboard(Clipboard):
    """Production implementation using pyperclip for clipboard access."""

    def copy(self, text: str) -> bool:
        # Inline import: pyperclip looks for clipboard tools at import time
        import pyperclip

        if not pyperclip.is_available():
            return False
        pyperclip.copy(text)
        return True
