"""Controllers bridge the interactive session to storage and the model.

The UI only talks to a :class:`BaseController`.  :class:`Controller`
is backed by the on-disk :class:`~gencmd.history.HistoryStore` and the
configured model provider; :class:`FakeController` keeps everything in
memory and returns canned commands, which makes it suitable for tests
and for ``gencmd demo``.
"""

from __future__ import annotations

import time
from typing import List, Optional

from loguru import logger

from .config import Config
from .history import HistoryEntry, HistoryStore
from .providers import BaseProvider, get_provider


class BaseController:
    """Interface the session UI depends on."""

    def load_history(self) -> List[HistoryEntry]:
        """Return history entries, most recent first, without duplicates."""
        raise NotImplementedError

    def append(self, entry: HistoryEntry) -> None:
        """Record an accepted prompt/command pair."""
        raise NotImplementedError

    def delete(self, entry: HistoryEntry) -> None:
        """Remove a pair from the history and record it as rejected."""
        raise NotImplementedError

    def generate(self, prompt: str) -> List[str]:
        """Ask the model for candidate commands for ``prompt``."""
        raise NotImplementedError


class Controller(BaseController):
    def __init__(
        self,
        config: Config,
        store: Optional[HistoryStore] = None,
        provider: Optional[BaseProvider] = None,
    ) -> None:
        self.config = config
        self.store = store if store is not None else HistoryStore.default()
        self._provider = provider

    def load_history(self) -> List[HistoryEntry]:
        return self.store.load()

    def append(self, entry: HistoryEntry) -> None:
        self.store.append(entry)

    def delete(self, entry: HistoryEntry) -> None:
        self.store.delete(entry)

    def generate(self, prompt: str) -> List[str]:
        # The provider is created on first use so that a misconfigured
        # model only fails when a generation is actually requested.
        if self._provider is None:
            self._provider = get_provider(self.config.llm)
        started = time.monotonic()
        logger.info("Generating commands with provider {!r}", self.config.llm.provider)
        commands = self._provider.generate_commands(prompt)
        logger.info(
            "Generated {} command(s) in {:.2f}s", len(commands), time.monotonic() - started
        )
        return commands


DEMO_HISTORY = [
    HistoryEntry("list files", "ls -l"),
    HistoryEntry("print the third element of a comma separated string", "awk -F, '{print $3}'"),
    HistoryEntry("print the last element of a json array", "jq -c '.[-1]' file.json"),
    HistoryEntry("find all subdirectories", "find . -type d"),
    HistoryEntry("find the first 3 files in a directory", "ls -f | head -n 3"),
    HistoryEntry("return the second column of a csv", "awk -F, '{print $2}'"),
    HistoryEntry("delete all .bak files in subdirectories", "find . -name '*.bak' -delete"),
    HistoryEntry("kill all processes of a user", "pkill -u USER"),
    HistoryEntry("find python files in subdirectories", "find . -type f -name '*.py'"),
]

DEMO_COMMANDS = [
    "find . -name '*.jpg'",
    "find . -type f -name '*.jpg'",
    "find ./ -name '*.jpg'",
    "find . -iname '*.jpg'",
    "find ./ -type f -iname '*.jpg'",
]


class FakeController(BaseController):
    """In-memory controller returning canned commands.

    Every call is recorded so tests can assert on the side effects a
    session produced.
    """

    def __init__(
        self,
        history: Optional[List[HistoryEntry]] = None,
        commands: Optional[List[str]] = None,
        generate_delay: float = 0.0,
        generate_error: Optional[Exception] = None,
        delete_error: Optional[Exception] = None,
    ) -> None:
        self.history = list(history or [])
        self.commands = list(commands or [])
        self.generate_delay = generate_delay
        self.generate_error = generate_error
        self.delete_error = delete_error
        self.appended: List[HistoryEntry] = []
        self.rejected: List[HistoryEntry] = []
        self.prompts: List[str] = []

    @classmethod
    def demo(cls) -> "FakeController":
        return cls(history=DEMO_HISTORY, commands=DEMO_COMMANDS, generate_delay=2.0)

    def load_history(self) -> List[HistoryEntry]:
        return list(self.history)

    def append(self, entry: HistoryEntry) -> None:
        self.appended.append(entry)
        self.history = [entry] + [e for e in self.history if e != entry]

    def delete(self, entry: HistoryEntry) -> None:
        self.rejected.append(entry)
        if self.delete_error is not None:
            raise self.delete_error
        self.history = [e for e in self.history if e != entry]

    def generate(self, prompt: str) -> List[str]:
        self.prompts.append(prompt)
        if self.generate_delay:
            time.sleep(self.generate_delay)
        if self.generate_error is not None:
            raise self.generate_error
        return list(self.commands)
