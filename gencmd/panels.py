"""View state of the three session panels.

The panels hold no terminal state at all: they are immutable values
and every operation returns an updated copy.  Rendering them is the
job of :mod:`gencmd.ui`.

* :class:`PromptPanel` – a free-text input over a filterable list of
  history entries.  It decides whether the user wants to reuse an
  existing command or generate a new one.
* :class:`WaitPanel` – a spinner shown while commands are generated.
* :class:`SelectionPanel` – the list of generated candidates.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import List, Optional, Sequence, Tuple

from .history import HistoryEntry
from .keymap import Binding, KeyMap


@dataclass(frozen=True)
class InputPrompt:
    """What the user asked for on the prompt panel.

    A non-empty ``command`` means "reuse this pair as is"; an empty
    ``command`` with a non-empty ``prompt`` means "generate commands
    for this prompt".
    """

    prompt: str
    command: str = ""

    def empty(self) -> bool:
        return not self.prompt and not self.command

    def is_new(self) -> bool:
        return bool(self.prompt) and not self.command


def _matches(entry: HistoryEntry, query: str) -> bool:
    return query in f"{entry.prompt} {entry.command}"


@dataclass(frozen=True)
class PromptPanel:
    entries: Tuple[HistoryEntry, ...] = ()
    visible: Tuple[HistoryEntry, ...] = ()
    text: str = ""
    cursor: int = 0
    history_visible: bool = True

    @classmethod
    def create(cls, entries: Sequence[HistoryEntry]) -> "PromptPanel":
        entries = tuple(entries)
        return cls(entries=entries, visible=entries)

    @property
    def placeholder(self) -> str:
        if self.entries and self.history_visible:
            return "Search history or type a new prompt"
        return "Type a prompt"

    def highlighted(self) -> Optional[HistoryEntry]:
        if not self.history_visible or not self.visible:
            return None
        if 0 <= self.cursor < len(self.visible):
            return self.visible[self.cursor]
        return None

    def selected(self) -> InputPrompt:
        entry = self.highlighted()
        if entry is not None:
            return InputPrompt(prompt=entry.prompt, command=entry.command)
        # User typed a new prompt
        return InputPrompt(prompt=self.text)

    def set_text(self, text: str) -> "PromptPanel":
        if text == self.text:
            return self
        return replace(self, text=text)._filtered()

    def insert(self, text: str) -> "PromptPanel":
        return self.set_text(self.text + text)

    def backspace(self) -> "PromptPanel":
        return self.set_text(self.text[:-1])

    def cursor_up(self) -> "PromptPanel":
        if not self.history_visible or self.cursor <= 0:
            return self
        return replace(self, cursor=self.cursor - 1)

    def cursor_down(self) -> "PromptPanel":
        if not self.history_visible or self.cursor >= len(self.visible) - 1:
            return self
        return replace(self, cursor=self.cursor + 1)

    def toggle_history(self) -> "PromptPanel":
        return replace(self, history_visible=not self.history_visible)

    def delete_highlighted(self) -> Tuple["PromptPanel", Optional[HistoryEntry]]:
        """Drop the highlighted entry from the panel.

        :returns: The updated panel and the removed entry, or the panel
          unchanged and ``None`` when nothing is highlighted.
        """
        entry = self.highlighted()
        if entry is None:
            return self, None
        entries = tuple(e for e in self.entries if e != entry)
        visible = tuple(e for e in self.visible if e != entry)
        cursor = min(self.cursor, max(len(visible) - 1, 0))
        return replace(self, entries=entries, visible=visible, cursor=cursor), entry

    def help(self, keymap: KeyMap) -> List[Binding]:
        bindings = [keymap.submit, keymap.cancel]
        if self.highlighted() is not None:
            bindings.extend([keymap.up, keymap.down, keymap.delete_history])
        if self.entries:
            bindings.append(keymap.toggle_history)
        return bindings

    def _filtered(self) -> "PromptPanel":
        if not self.text:
            return replace(self, visible=self.entries, cursor=0)
        visible = tuple(e for e in self.entries if _matches(e, self.text))
        return replace(self, visible=visible, cursor=0)


SPINNER_FRAMES = ("⣾ ", "⣽ ", "⣻ ", "⢿ ", "⡿ ", "⣟ ", "⣯ ", "⣷ ")


@dataclass(frozen=True)
class WaitPanel:
    ticks: int = 0

    def tick(self) -> "WaitPanel":
        return replace(self, ticks=self.ticks + 1)

    def frame(self) -> str:
        return SPINNER_FRAMES[self.ticks % len(SPINNER_FRAMES)]

    def help(self, keymap: KeyMap) -> List[Binding]:
        return [keymap.cancel]


@dataclass(frozen=True)
class SelectionPanel:
    items: Tuple[str, ...] = field(default_factory=tuple)
    cursor: int = 0

    def set_items(self, items: Sequence[str]) -> "SelectionPanel":
        return replace(self, items=tuple(items), cursor=0)

    def cursor_up(self) -> "SelectionPanel":
        if self.cursor <= 0:
            return self
        return replace(self, cursor=self.cursor - 1)

    def cursor_down(self) -> "SelectionPanel":
        if self.cursor >= len(self.items) - 1:
            return self
        return replace(self, cursor=self.cursor + 1)

    def selected(self) -> str:
        if not self.items or not 0 <= self.cursor < len(self.items):
            return ""
        return self.items[self.cursor]

    def help(self, keymap: KeyMap) -> List[Binding]:
        return [keymap.up, keymap.down, keymap.submit, keymap.cancel]
