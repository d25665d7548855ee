"""Terminal UI for the interactive session.

:class:`SessionApp` is the thin runtime around :func:`gencmd.state.update`.
It renders the current :class:`~gencmd.state.Session` with a
full-screen prompt_toolkit application, turns key presses into
messages and executes the effects returned by each transition.

Everything runs on one asyncio event loop.  The only slow operation,
asking the model for commands, runs on a background thread and its
result is posted back to the loop as a message, so the UI keeps
responding (spinner, cancel) while the request is in flight.  On
cancel the request is simply abandoned.
"""

from __future__ import annotations

import asyncio
import sys
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional

import click
from loguru import logger
from prompt_toolkit.application import Application
from prompt_toolkit.application.current import get_app
from prompt_toolkit.formatted_text import StyleAndTextTuples
from prompt_toolkit.input import Input, create_input
from prompt_toolkit.key_binding import KeyBindings, KeyPressEvent
from prompt_toolkit.keys import Keys
from prompt_toolkit.layout import Layout
from prompt_toolkit.layout.containers import HSplit, Window
from prompt_toolkit.layout.controls import FormattedTextControl
from prompt_toolkit.output import Output, create_output
from prompt_toolkit.styles import Style

from .controller import BaseController
from .history import HistoryError
from .keymap import DEFAULT_KEYMAP, Binding, KeyMap
from .state import (
    AppendHistory,
    DeleteFailed,
    DeleteHistory,
    Effect,
    Generate,
    Generated,
    GenerationFailed,
    KeyPressed,
    Message,
    Quit,
    Session,
    State,
    TextTyped,
    Tick,
    new_session,
    update,
)
from .validator import is_dangerous

TICK_INTERVAL = 0.1

STYLE = Style.from_dict(
    {
        "title": "bg:#5f5fd7 #ffffd7",
        "item": "",
        "item.description": "#808080",
        "item.selected": "#d75fd7 bold",
        "item.selected.description": "#d75fd7",
        "item.dangerous": "#d70000",
        "input": "bold",
        "placeholder": "#808080",
        "spinner": "#ff5faf",
        "message": "",
        "help.key": "#909090 bold",
        "help.text": "#626262",
    }
)


class SessionApp:
    """Runs one interactive session against a controller."""

    def __init__(
        self,
        controller: BaseController,
        keymap: KeyMap = DEFAULT_KEYMAP,
        input: Optional[Input] = None,
        output: Optional[Output] = None,
    ) -> None:
        self.controller = controller
        self.keymap = keymap
        self.session: Session = new_session(controller.load_history())
        self.warnings: List[str] = []
        # History writes share one worker so a rewrite never races an append.
        self._history_writer = ThreadPoolExecutor(max_workers=1, thread_name_prefix="gencmd-history")
        self.app: Application = Application(
            layout=self._layout(),
            key_bindings=self._key_bindings(),
            style=STYLE,
            full_screen=True,
            input=input,
            output=output,
        )

    def dispatch(self, msg: Message) -> None:
        """Feed one message through the state machine and run its effects."""
        self.session, effects = update(self.session, msg)
        for effect in effects:
            self._run_effect(effect)
        self.app.invalidate()

    async def run_async(self) -> Session:
        ticker = asyncio.ensure_future(self._tick())
        try:
            await self.app.run_async()
        finally:
            ticker.cancel()
            self._history_writer.shutdown(wait=True)
        return self.session

    def _run_effect(self, effect: Effect) -> None:
        if isinstance(effect, Generate):
            self._start_generation(effect.prompt)
        elif isinstance(effect, AppendHistory):
            try:
                self._history_writer.submit(self.controller.append, effect.entry).result()
            except HistoryError as exc:
                logger.warning("Could not save history: {}", exc)
                self.warnings.append(f"could not save history: {exc}")
        elif isinstance(effect, DeleteHistory):
            self._start_delete(effect)
        elif isinstance(effect, Quit):
            if not self.app.is_done:
                self.app.exit()

    def _start_generation(self, prompt: str) -> None:
        loop = asyncio.get_running_loop()
        logger.debug("Starting generation for prompt {!r}", prompt)

        def work() -> None:
            try:
                commands = self.controller.generate(prompt)
            except Exception as exc:
                logger.opt(exception=exc).warning("Generation failed")
                msg: Message = GenerationFailed(prompt, exc)
            else:
                msg = Generated(prompt, tuple(commands))
            self._post(loop, msg)

        # Daemon thread: a cancelled session must not wait for the model.
        threading.Thread(target=work, name="gencmd-generate", daemon=True).start()

    def _start_delete(self, effect: DeleteHistory) -> None:
        loop = asyncio.get_running_loop()

        def work() -> None:
            try:
                self.controller.delete(effect.entry)
            except HistoryError as exc:
                logger.warning("Could not delete history entry: {}", exc)
                self._post(loop, DeleteFailed(effect.entry, exc))

        self._history_writer.submit(work)

    def _post(self, loop: asyncio.AbstractEventLoop, msg: Message) -> None:
        try:
            loop.call_soon_threadsafe(self.dispatch, msg)
        except RuntimeError:
            # The loop is gone: the session already ended.
            logger.debug("Dropping {} after the session ended", type(msg).__name__)

    async def _tick(self) -> None:
        while True:
            await asyncio.sleep(TICK_INTERVAL)
            if self.session.state is State.GENERATING:
                self.dispatch(Tick())

    def _key_bindings(self) -> KeyBindings:
        kb = KeyBindings()

        def bind(binding: Binding) -> None:
            for key in binding.keys:
                kb.add(key)(lambda event, b=binding: self.dispatch(KeyPressed(b.action)))

        for binding in self.keymap.bindings():
            bind(binding)

        @kb.add(Keys.Any)
        def _(event: KeyPressEvent) -> None:
            if event.data.isprintable():
                self.dispatch(TextTyped(event.data))

        @kb.add(Keys.BracketedPaste)
        def _(event: KeyPressEvent) -> None:
            text = " ".join(event.data.split("\n")).strip()
            if text:
                self.dispatch(TextTyped(text))

        return kb

    def _layout(self) -> Layout:
        title = Window(FormattedTextControl([("class:title", " gencmd ")]), height=1)
        body = Window(FormattedTextControl(self._render_body, focusable=True, show_cursor=False))
        help_bar = Window(FormattedTextControl(self._render_help), height=2)
        return Layout(HSplit([title, body, help_bar]), focused_element=body)

    def _render_body(self) -> StyleAndTextTuples:
        state = self.session.state
        if state is State.PROMPTING:
            return self._render_prompt()
        if state is State.GENERATING:
            return [
                ("", "\n  "),
                ("class:spinner", self.session.wait.frame()),
                ("class:message", "Generating commands...\n"),
            ]
        if state is State.SELECTING:
            return self._render_select()
        return []

    def _render_prompt(self) -> StyleAndTextTuples:
        panel = self.session.prompt
        result: StyleAndTextTuples = []
        if panel.history_visible and panel.entries:
            # Each entry takes two lines plus a separator.
            capacity = max(1, (get_app().output.get_size().rows - 6) // 3)
            start = max(0, panel.cursor - capacity + 1)
            for index, entry in enumerate(panel.visible[start:start + capacity], start):
                selected = index == panel.cursor
                style = "class:item.selected" if selected else "class:item"
                marker = "│ " if selected else "  "
                result.append((style, f"  {marker}{entry.prompt}\n"))
                result.append((style + ".description", f"  {marker}{entry.command}\n\n"))
            if not panel.visible:
                result.append(("class:placeholder", "  No matching history.\n\n"))
        result.append(("class:input", "\n> "))
        if panel.text:
            result.append(("class:input", panel.text))
        else:
            result.append(("class:placeholder", panel.placeholder))
        result.append(("", "\n"))
        return result

    def _render_select(self) -> StyleAndTextTuples:
        panel = self.session.select
        result: StyleAndTextTuples = [("class:message", "\n  Select completion\n\n")]
        for index, item in enumerate(panel.items):
            if index == panel.cursor:
                result.append(("class:item.selected", f"  > {item}"))
            else:
                result.append(("class:item", f"    {item}"))
            if is_dangerous(item):
                result.append(("class:item.dangerous", "  (destructive)"))
            result.append(("", "\n"))
        return result

    def _render_help(self) -> StyleAndTextTuples:
        result: StyleAndTextTuples = [("", "\n  ")]
        for i, binding in enumerate(self.session.help(self.keymap)):
            if i:
                result.append(("class:help.text", " • "))
            result.append(("class:help.key", binding.help_key))
            result.append(("class:help.text", " " + binding.help_text))
        return result


def run_ui(controller: BaseController, tty_path: Optional[str] = None) -> str:
    """Run an interactive session and return the selected command.

    The UI is drawn on standard error (or on ``tty_path``) so that
    standard output only ever carries the selected command.

    :raises UserCancelled: If the user cancelled.
    :raises Exception: Whatever error ended the session.
    """
    tty = open(tty_path, "r+", encoding="utf-8") if tty_path else None
    try:
        if tty is not None:
            app = SessionApp(controller, input=create_input(stdin=tty), output=create_output(stdout=tty))
        else:
            app = SessionApp(controller, output=create_output(stdout=sys.stderr))
        session = asyncio.run(app.run_async())
    finally:
        if tty is not None:
            tty.close()

    for warning in app.warnings:
        click.echo(f"Warning: {warning}", err=True)
    if session.error is not None:
        logger.info("Session ended: {}", session.error)
        raise session.error
    logger.info("Session ended with a selected command")
    return session.selected
