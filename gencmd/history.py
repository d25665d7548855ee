"""Durable prompt/command history.

This module manages the two data files that gencmd keeps under the
user's data directory (``$XDG_DATA_HOME/gencmd`` by default):

* ``history.jsonl`` – one JSON object per line, each holding the
  ``prompt`` the user typed and the ``command`` that was finally
  selected for it.  Records are only ever appended; duplicates are
  resolved when the file is read back.
* ``rejected.jsonl`` – an audit trail with the same record shape.
  Every entry the user explicitly deletes from the history is
  appended here, whether or not it was actually present.

Deleting rewrites the history file through a temporary file in the
same directory which is synced and then renamed over the original, so
a crash in the middle of a rewrite never leaves a truncated log.
"""

from __future__ import annotations

import json
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Union

from loguru import logger

from .config import data_dir

HISTORY_FILE = "history.jsonl"
REJECTED_FILE = "rejected.jsonl"

PathLike = Union[str, Path]


class HistoryError(Exception):
    """Raised when a history or rejected log cannot be written."""


@dataclass(frozen=True)
class HistoryEntry:
    """A prompt together with the command selected for it."""

    prompt: str
    command: str

    def to_json(self) -> str:
        return json.dumps({"prompt": self.prompt, "command": self.command})

    @classmethod
    def from_json(cls, line: str) -> Optional["HistoryEntry"]:
        """Parse one log line, returning ``None`` for malformed records."""
        try:
            data = json.loads(line)
        except (ValueError, RecursionError):
            return None
        if not isinstance(data, dict):
            return None
        prompt = data.get("prompt")
        command = data.get("command")
        if not isinstance(prompt, str) or not isinstance(command, str):
            return None
        return cls(prompt=prompt, command=command)


class HistoryStore:
    """Append-only history log with a companion rejected log.

    :param history_path: Location of ``history.jsonl``.  ``None`` means
      the location is unavailable; reads return nothing and writes fail.
    :param rejected_path: Location of ``rejected.jsonl``.
    """

    def __init__(
        self,
        history_path: Optional[PathLike],
        rejected_path: Optional[PathLike] = None,
    ) -> None:
        self.history_path = Path(history_path) if history_path else None
        self.rejected_path = Path(rejected_path) if rejected_path else None

    @classmethod
    def default(cls) -> "HistoryStore":
        """Return a store backed by the files in the user's data directory."""
        try:
            base = data_dir()
        except OSError as exc:
            logger.warning("History disabled, data directory unavailable: {}", exc)
            return cls(None, None)
        return cls(base / HISTORY_FILE, base / REJECTED_FILE)

    def load(self) -> List[HistoryEntry]:
        """Return the history most-recent-first with duplicates removed.

        When the same entry was appended several times only its most
        recent occurrence is kept.  Never raises: a missing or unreadable
        file yields an empty list.
        """
        seen = set()
        result: List[HistoryEntry] = []
        for entry in reversed(self.load_raw()):
            if entry in seen:
                continue
            seen.add(entry)
            result.append(entry)
        return result

    def load_raw(self) -> List[HistoryEntry]:
        """Return every well-formed history record in file order."""
        return _read_log(self.history_path)

    def load_rejected(self) -> List[HistoryEntry]:
        """Return every well-formed rejected record in file order."""
        return _read_log(self.rejected_path)

    def append(self, entry: HistoryEntry) -> None:
        """Append ``entry`` to the history log.

        :raises HistoryError: If the path is unset or the write fails.
        """
        if self.history_path is None:
            raise HistoryError("history path is not set")
        _append_record(self.history_path, entry, "history")
        logger.debug("Appended history entry for prompt {!r}", entry.prompt)

    def delete(self, entry: HistoryEntry) -> None:
        """Remove every occurrence of ``entry`` from the history log.

        The entry is recorded in the rejected log first, even when it is
        not present in the history.

        :raises HistoryError: If either path is unset or any write fails.
        """
        if self.history_path is None or self.rejected_path is None:
            raise HistoryError("history or rejected paths not set")

        _append_record(self.rejected_path, entry, "rejected")

        entries = self.load_raw()
        if not entries:
            return
        kept = [e for e in entries if e != entry]
        self._rewrite(kept)
        logger.info(
            "Deleted {} history record(s) for prompt {!r}",
            len(entries) - len(kept),
            entry.prompt,
        )

    def _rewrite(self, entries: Iterable[HistoryEntry]) -> None:
        target = self.history_path
        try:
            fd, tmp_name = tempfile.mkstemp(
                prefix="tmp-history-", suffix=".jsonl", dir=str(target.parent)
            )
        except OSError as exc:
            raise HistoryError(f"creating tmp history file: {exc}") from exc

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as tmp:
                for entry in entries:
                    tmp.write(entry.to_json() + "\n")
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_name, target)
        except OSError as exc:
            _remove_quietly(tmp_name)
            raise HistoryError(f"rewriting history file: {exc}") from exc


def _read_log(path: Optional[Path]) -> List[HistoryEntry]:
    if path is None:
        return []
    entries: List[HistoryEntry] = []
    try:
        with path.open("rb") as f:
            for raw in f:
                try:
                    line = raw.decode("utf-8").strip()
                except UnicodeDecodeError:
                    continue
                if not line:
                    continue
                entry = HistoryEntry.from_json(line)
                if entry is None:
                    # Skip malformed entries
                    continue
                entries.append(entry)
    except OSError as exc:
        if path.exists():
            logger.warning("Could not read {}: {}", path, exc)
        return []
    return entries


def _append_record(path: Path, entry: HistoryEntry, name: str) -> None:
    try:
        fd = os.open(str(path), os.O_APPEND | os.O_CREAT | os.O_WRONLY, 0o600)
    except OSError as exc:
        raise HistoryError(f"opening {name} file: {exc}") from exc
    try:
        with os.fdopen(fd, "a", encoding="utf-8") as f:
            f.write(entry.to_json() + "\n")
    except OSError as exc:
        raise HistoryError(f"writing to {name} file: {exc}") from exc


def _remove_quietly(path: str) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
