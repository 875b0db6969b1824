"""Per-screen key binding tables."""

from mindful_jira.tui.events import Command
from mindful_jira.tui.screens import ScreenKind

_NAVIGATION = {
    "j": Command.MOVE_DOWN,
    "down": Command.MOVE_DOWN,
    "k": Command.MOVE_UP,
    "up": Command.MOVE_UP,
    "home": Command.HOME,
    "g": Command.HOME,
    "end": Command.END,
    "G": Command.END,
    "pageup": Command.PAGE_UP,
    "pagedown": Command.PAGE_DOWN,
}

ISSUE_LIST_BINDINGS: dict[str, Command] = {
    **_NAVIGATION,
    "q": Command.QUIT,
    "r": Command.REFRESH,
    "enter": Command.OPEN_DETAIL,
    "f": Command.OPEN_FILTER_EDITOR,
    "/": Command.OPEN_SEARCH,
    "n": Command.EDIT_NOTE,
    "h": Command.TOGGLE_HIGHLIGHT,
    "p": Command.TOGGLE_PARENTS,
    "o": Command.CYCLE_SORT,
    "X": Command.PURGE_ORPHAN,
    "y": Command.COPY_KEY,
    "w": Command.OPEN_BROWSER,
    "escape": Command.CLEAR_QUERY,
    "?": Command.SHOW_HELP,
}

TICKET_DETAIL_BINDINGS: dict[str, Command] = {
    **_NAVIGATION,
    "escape": Command.CLOSE,
    "q": Command.CLOSE,
    "r": Command.REFRESH,
    "n": Command.NEXT_COMMENT,
    "p": Command.PREV_COMMENT,
    "c": Command.ADD_COMMENT,
    "e": Command.EDIT_COMMENT,
    "x": Command.DELETE_COMMENT,
    "t": Command.OPEN_TRANSITIONS,
    "w": Command.OPEN_BROWSER,
    "y": Command.COPY_TICKET,
    "l": Command.COPY_LINK,
    "N": Command.EDIT_NOTE,
    "h": Command.TOGGLE_HIGHLIGHT,
    "?": Command.SHOW_HELP,
}

FILTER_EDITOR_BINDINGS: dict[str, Command] = {
    "j": Command.MOVE_DOWN,
    "down": Command.MOVE_DOWN,
    "k": Command.MOVE_UP,
    "up": Command.MOVE_UP,
    "space": Command.TOGGLE_ITEM,
    "a": Command.ADD_ITEM,
    "d": Command.DELETE_ITEM,
    "delete": Command.DELETE_ITEM,
    "p": Command.TOGGLE_PARENTS,
    "enter": Command.CONFIRM,
    "escape": Command.CANCEL,
}

TRANSITION_PICKER_BINDINGS: dict[str, Command] = {
    "j": Command.MOVE_DOWN,
    "down": Command.MOVE_DOWN,
    "k": Command.MOVE_UP,
    "up": Command.MOVE_UP,
    "enter": Command.CONFIRM,
    "escape": Command.CANCEL,
    "q": Command.CANCEL,
}

_TEXT_EDITING = {
    "left": Command.CURSOR_LEFT,
    "right": Command.CURSOR_RIGHT,
    "home": Command.CURSOR_HOME,
    "end": Command.CURSOR_END,
    "backspace": Command.BACKSPACE,
    "delete": Command.DELETE_CHAR,
    "escape": Command.CANCEL,
}

SINGLE_LINE_BINDINGS: dict[str, Command] = {
    **_TEXT_EDITING,
    "enter": Command.CONFIRM,
}

SEARCH_INPUT_BINDINGS: dict[str, Command] = {
    **SINGLE_LINE_BINDINGS,
    "up": Command.MOVE_UP,
    "down": Command.MOVE_DOWN,
}

MULTI_LINE_BINDINGS: dict[str, Command] = {
    **_TEXT_EDITING,
    "up": Command.CURSOR_UP,
    "down": Command.CURSOR_DOWN,
    "enter": Command.NEWLINE,
    "ctrl+s": Command.CONFIRM,
}

MENTION_PICKER_BINDINGS: dict[str, Command] = {
    "up": Command.MOVE_UP,
    "down": Command.MOVE_DOWN,
    "enter": Command.CONFIRM,
    "tab": Command.CONFIRM,
    "escape": Command.CANCEL,
    "backspace": Command.BACKSPACE,
}

BINDINGS: dict[ScreenKind, dict[str, Command]] = {
    ScreenKind.ISSUE_LIST: ISSUE_LIST_BINDINGS,
    ScreenKind.TICKET_DETAIL: TICKET_DETAIL_BINDINGS,
    ScreenKind.FILTER_EDITOR: FILTER_EDITOR_BINDINGS,
    ScreenKind.FILTER_ADDING: SINGLE_LINE_BINDINGS,
    ScreenKind.SEARCH_INPUT: SEARCH_INPUT_BINDINGS,
    ScreenKind.COMMENT_EDITOR: MULTI_LINE_BINDINGS,
    ScreenKind.TRANSITION_PICKER: TRANSITION_PICKER_BINDINGS,
    ScreenKind.NOTE_EDITOR: MULTI_LINE_BINDINGS,
    ScreenKind.MENTION_PICKER: MENTION_PICKER_BINDINGS,
}

TEXT_ENTRY_KINDS = frozenset(
    {
        ScreenKind.FILTER_ADDING,
        ScreenKind.SEARCH_INPUT,
        ScreenKind.COMMENT_EDITOR,
        ScreenKind.NOTE_EDITOR,
        ScreenKind.MENTION_PICKER,
    }
)
SINGLE_LINE_KINDS = frozenset({ScreenKind.FILTER_ADDING, ScreenKind.SEARCH_INPUT})


def normalize_key(key: str, character: str | None) -> str:
    """Collapse a Textual key event to the name used in the binding tables.

    Printable characters are looked up by the character itself so that
    "X" and "/" match regardless of how the terminal reports modifiers.
    Space and control keys keep their Textual key names.
    """
    if character is not None and len(character) == 1 and character.isprintable():
        if character != " ":
            return character
    return key


def binding_for(kind: ScreenKind, key: str) -> Command | None:
    """Look up the command bound to a key on a screen.

    Args:
        kind: Active screen kind
        key: Normalized key name

    Returns:
        The bound command, or None when the key is unbound
    """
    return BINDINGS[kind].get(key)


def insertable_text(kind: ScreenKind, key: str, character: str | None) -> str | None:
    """Return the text an unbound key inserts on text-entry screens."""
    if kind not in TEXT_ENTRY_KINDS or character is None:
        return None
    if key in BINDINGS[kind]:
        return None
    if len(character) == 1 and character.isprintable():
        return character
    return None
