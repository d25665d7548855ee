"""Key bindings understood by the interactive session."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Tuple


class Action(enum.Enum):
    SUBMIT = "submit"
    CANCEL = "cancel"
    UP = "up"
    DOWN = "down"
    TOGGLE_HISTORY = "toggle_history"
    DELETE_HISTORY = "delete_history"
    BACKSPACE = "backspace"


@dataclass(frozen=True)
class Binding:
    action: Action
    keys: Tuple[str, ...]
    help_key: str
    help_text: str


@dataclass(frozen=True)
class KeyMap:
    submit: Binding
    cancel: Binding
    up: Binding
    down: Binding
    toggle_history: Binding
    delete_history: Binding
    backspace: Binding

    def bindings(self) -> Tuple[Binding, ...]:
        return (
            self.submit,
            self.cancel,
            self.up,
            self.down,
            self.toggle_history,
            self.delete_history,
            self.backspace,
        )


# Key names follow prompt_toolkit's conventions.
DEFAULT_KEYMAP = KeyMap(
    submit=Binding(Action.SUBMIT, ("enter",), "enter", "confirm"),
    cancel=Binding(Action.CANCEL, ("escape", "c-c"), "esc", "cancel"),
    up=Binding(Action.UP, ("up", "c-k"), "↑/ctrl+k", "up"),
    down=Binding(Action.DOWN, ("down", "c-j"), "↓/ctrl+j", "down"),
    toggle_history=Binding(Action.TOGGLE_HISTORY, ("c-t",), "ctrl+t", "toggle history"),
    delete_history=Binding(Action.DELETE_HISTORY, ("c-d",), "ctrl+d", "delete entry"),
    backspace=Binding(Action.BACKSPACE, ("backspace",), "backspace", "delete char"),
)
