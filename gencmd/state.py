"""Session state machine.

A session starts in ``PROMPTING``, moves to ``GENERATING`` when the
user submits a new prompt, to ``SELECTING`` when the model returns
several candidates, and ends in ``TERMINAL`` with either a selected
command, an error, or the :class:`UserCancelled` outcome.

:func:`update` is the whole transition logic.  It takes the current
:class:`Session` and one message (a key press, a generation result,
...) and returns the next session together with the effects the
runtime must carry out: start a generation, write to the history,
delete from the history, quit.  It performs no I/O itself, so every
transition can be tested without a terminal.

History is written at most once per session and only for commands
that came out of a generation; reusing an entry from the history does
not record it again.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field, replace
from typing import List, Optional, Sequence, Tuple, Union

from .history import HistoryEntry
from .keymap import Action, Binding, KeyMap, DEFAULT_KEYMAP
from .panels import PromptPanel, SelectionPanel, WaitPanel


class UserCancelled(Exception):
    """The user cancelled the session.  Not an application error."""

    def __init__(self) -> None:
        super().__init__("user cancelled")


class SessionError(Exception):
    """The session ended without a usable command."""


class State(enum.Enum):
    PROMPTING = "prompting"
    GENERATING = "generating"
    SELECTING = "selecting"
    TERMINAL = "terminal"


# Messages


@dataclass(frozen=True)
class KeyPressed:
    action: Action


@dataclass(frozen=True)
class TextTyped:
    text: str


@dataclass(frozen=True)
class Generated:
    prompt: str
    commands: Tuple[str, ...]


@dataclass(frozen=True)
class GenerationFailed:
    prompt: str
    error: BaseException


@dataclass(frozen=True)
class DeleteFailed:
    entry: HistoryEntry
    error: BaseException


@dataclass(frozen=True)
class Tick:
    pass


Message = Union[KeyPressed, TextTyped, Generated, GenerationFailed, DeleteFailed, Tick]


# Effects


@dataclass(frozen=True)
class Generate:
    prompt: str


@dataclass(frozen=True)
class AppendHistory:
    entry: HistoryEntry


@dataclass(frozen=True)
class DeleteHistory:
    entry: HistoryEntry


@dataclass(frozen=True)
class Quit:
    pass


Effect = Union[Generate, AppendHistory, DeleteHistory, Quit]


@dataclass(frozen=True)
class Session:
    prompt: PromptPanel = field(default_factory=PromptPanel)
    wait: WaitPanel = field(default_factory=WaitPanel)
    select: SelectionPanel = field(default_factory=SelectionPanel)
    state: State = State.PROMPTING
    prompt_text: str = ""
    selected: str = ""
    error: Optional[BaseException] = None

    @property
    def done(self) -> bool:
        return self.state is State.TERMINAL

    @property
    def cancelled(self) -> bool:
        return isinstance(self.error, UserCancelled)

    def help(self, keymap: KeyMap = DEFAULT_KEYMAP) -> List[Binding]:
        if self.state is State.PROMPTING:
            return self.prompt.help(keymap)
        if self.state is State.GENERATING:
            return self.wait.help(keymap)
        if self.state is State.SELECTING:
            return self.select.help(keymap)
        return [keymap.cancel]


def new_session(history: Sequence[HistoryEntry]) -> Session:
    return Session(prompt=PromptPanel.create(history))


def update(session: Session, msg: Message) -> Tuple[Session, List[Effect]]:
    """Apply one message and return the next session and its effects."""
    if session.done:
        # Late results (e.g. a generation finishing after a cancel) are
        # dropped.
        return session, []

    if isinstance(msg, KeyPressed):
        return _handle_key(session, msg.action)
    if isinstance(msg, TextTyped):
        if session.state is State.PROMPTING:
            return replace(session, prompt=session.prompt.insert(msg.text)), []
        return session, []
    if isinstance(msg, Generated):
        if session.state is not State.GENERATING or msg.prompt != session.prompt_text:
            return session, []
        return _handle_completion(session, list(msg.commands))
    if isinstance(msg, GenerationFailed):
        if session.state is not State.GENERATING or msg.prompt != session.prompt_text:
            return session, []
        return _quit_with_error(session, msg.error)
    if isinstance(msg, DeleteFailed):
        return _quit_with_error(session, msg.error)
    if isinstance(msg, Tick):
        if session.state is State.GENERATING:
            return replace(session, wait=session.wait.tick()), []
        return session, []
    raise TypeError(f"unknown message: {msg!r}")


def _handle_key(session: Session, action: Action) -> Tuple[Session, List[Effect]]:
    if action is Action.CANCEL:
        return _quit_with_error(session, UserCancelled())

    if session.state is State.PROMPTING:
        panel = session.prompt
        if action is Action.SUBMIT:
            selected = panel.selected()
            if selected.is_new():
                return _run_generate(session, selected.prompt)
            if selected.empty():
                return session, []
            # User picked an existing command.
            return replace(session, selected=selected.command, state=State.TERMINAL), [Quit()]
        if action is Action.UP:
            return replace(session, prompt=panel.cursor_up()), []
        if action is Action.DOWN:
            return replace(session, prompt=panel.cursor_down()), []
        if action is Action.TOGGLE_HISTORY:
            return replace(session, prompt=panel.toggle_history()), []
        if action is Action.BACKSPACE:
            return replace(session, prompt=panel.backspace()), []
        if action is Action.DELETE_HISTORY:
            panel, entry = panel.delete_highlighted()
            if entry is None:
                return session, []
            return replace(session, prompt=panel), [DeleteHistory(entry)]
        return session, []

    if session.state is State.SELECTING:
        if action is Action.SUBMIT:
            return _select_command(session, session.select.selected())
        if action is Action.UP:
            return replace(session, select=session.select.cursor_up()), []
        if action is Action.DOWN:
            return replace(session, select=session.select.cursor_down()), []

    return session, []


def _run_generate(session: Session, prompt: str) -> Tuple[Session, List[Effect]]:
    session = replace(session, prompt_text=prompt, state=State.GENERATING)
    return session, [Generate(prompt)]


def _handle_completion(session: Session, commands: List[str]) -> Tuple[Session, List[Effect]]:
    if not commands:
        return _quit_with_error(session, SessionError("no commands generated"))
    if len(commands) > 1:
        select = session.select.set_items(commands)
        return replace(session, select=select, state=State.SELECTING), []
    return _select_command(session, commands[0])


def _select_command(session: Session, command: str) -> Tuple[Session, List[Effect]]:
    if not command:
        return _quit_with_error(session, SessionError("no command selected"))
    session = replace(session, selected=command, state=State.TERMINAL)
    entry = HistoryEntry(prompt=session.prompt_text, command=command)
    return session, [AppendHistory(entry), Quit()]


def _quit_with_error(session: Session, error: BaseException) -> Tuple[Session, List[Effect]]:
    return replace(session, error=error, selected="", state=State.TERMINAL), [Quit()]
