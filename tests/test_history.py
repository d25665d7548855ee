"""Tests for the durable history store."""

import json
import os

import pytest

from gencmd.history import HistoryEntry, HistoryError, HistoryStore


def _lines(path):
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]


class TestHistoryEntry:
    def test_equality_is_structural(self):
        assert HistoryEntry("p", "c") == HistoryEntry("p", "c")
        assert HistoryEntry("p", "c") != HistoryEntry("p", "other")
        assert len({HistoryEntry("p", "c"), HistoryEntry("p", "c")}) == 1

    def test_json_round_trip_uses_two_fields(self):
        line = HistoryEntry("list files", "ls -l").to_json()
        assert json.loads(line) == {"prompt": "list files", "command": "ls -l"}
        assert HistoryEntry.from_json(line) == HistoryEntry("list files", "ls -l")

    @pytest.mark.parametrize(
        "line",
        ["not json", "[1, 2]", '"text"', '{"prompt": "p"}', '{"prompt": 1, "command": "c"}'],
    )
    def test_malformed_records_are_rejected(self, line):
        assert HistoryEntry.from_json(line) is None


class TestLoad:
    def test_load_dedups_most_recent_first(self, history_paths):
        store = HistoryStore(*history_paths)
        for prompt, command in [("p1", "c1"), ("p2", "c2"), ("p1", "c1"), ("p3", "c3")]:
            store.append(HistoryEntry(prompt, command))

        assert store.load() == [
            HistoryEntry("p3", "c3"),
            HistoryEntry("p1", "c1"),
            HistoryEntry("p2", "c2"),
        ]

    def test_same_prompt_different_command_is_kept(self, history_paths):
        store = HistoryStore(*history_paths)
        store.append(HistoryEntry("p", "a"))
        store.append(HistoryEntry("p", "b"))

        assert store.load() == [HistoryEntry("p", "b"), HistoryEntry("p", "a")]

    def test_missing_file_is_empty(self, history_paths):
        assert HistoryStore(*history_paths).load() == []

    def test_unset_path_is_empty(self):
        assert HistoryStore(None, None).load() == []

    def test_malformed_lines_are_skipped(self, history_paths):
        history, _ = history_paths
        history.write_text(
            '{"prompt": "p1", "command": "c1"}\n'
            "garbage\n"
            "\n"
            '{"prompt": "p2"}\n'
            + "[" * 100000
            + "\n"
            '{"prompt": "p2", "command": "c2"}\n',
            encoding="utf-8",
        )

        store = HistoryStore(*history_paths)
        assert store.load() == [HistoryEntry("p2", "c2"), HistoryEntry("p1", "c1")]
        assert store.load_raw() == [HistoryEntry("p1", "c1"), HistoryEntry("p2", "c2")]

    def test_invalid_utf8_line_is_skipped(self, history_paths):
        history, _ = history_paths
        store = HistoryStore(*history_paths)
        store.append(HistoryEntry("p1", "c1"))
        with history.open("ab") as f:
            f.write(b'{"prompt": "\xff\xfe", "command": "x"}\n')
        store.append(HistoryEntry("p2", "c2"))

        assert store.load() == [HistoryEntry("p2", "c2"), HistoryEntry("p1", "c1")]

    def test_delete_after_invalid_utf8_line(self, history_paths):
        history, _ = history_paths
        store = HistoryStore(*history_paths)
        store.append(HistoryEntry("p1", "c1"))
        with history.open("ab") as f:
            f.write(b"\xe2\x82\n")
        store.append(HistoryEntry("p2", "c2"))

        store.delete(HistoryEntry("p1", "c1"))

        assert store.load_raw() == [HistoryEntry("p2", "c2")]

    def test_deeply_nested_line_is_skipped(self, history_paths):
        history, _ = history_paths
        store = HistoryStore(*history_paths)
        store.append(HistoryEntry("p1", "c1"))
        with history.open("a", encoding="utf-8") as f:
            f.write("[" * 100000 + "\n")
        store.append(HistoryEntry("p2", "c2"))

        assert store.load() == [HistoryEntry("p2", "c2"), HistoryEntry("p1", "c1")]
        assert HistoryEntry.from_json("[" * 100000) is None

    def test_unreadable_path_is_empty(self, tmp_path):
        # A directory where the file should be cannot be read as a log.
        store = HistoryStore(tmp_path, tmp_path / "rejected.jsonl")
        assert store.load() == []


class TestAppend:
    def test_append_writes_one_record_per_line(self, history_paths):
        history, _ = history_paths
        store = HistoryStore(*history_paths)
        store.append(HistoryEntry("p1", "c1"))
        store.append(HistoryEntry("p1", "c1"))

        assert _lines(history) == [
            {"prompt": "p1", "command": "c1"},
            {"prompt": "p1", "command": "c1"},
        ]
        assert history.read_text(encoding="utf-8").endswith("\n")

    def test_append_creates_private_file(self, history_paths):
        history, _ = history_paths
        HistoryStore(*history_paths).append(HistoryEntry("p", "c"))
        assert history.stat().st_mode & 0o777 == 0o600

    def test_append_without_path_fails(self):
        with pytest.raises(HistoryError):
            HistoryStore(None).append(HistoryEntry("p", "c"))

    def test_append_to_missing_directory_fails(self, tmp_path):
        store = HistoryStore(tmp_path / "missing" / "history.jsonl")
        with pytest.raises(HistoryError) as exc_info:
            store.append(HistoryEntry("p", "c"))
        assert isinstance(exc_info.value.__cause__, OSError)


class TestDelete:
    def test_delete_removes_every_occurrence(self, history_paths):
        store = HistoryStore(*history_paths)
        for prompt, command in [("p1", "c1"), ("p2", "c2"), ("p1", "c1"), ("p3", "c3")]:
            store.append(HistoryEntry(prompt, command))

        store.delete(HistoryEntry("p1", "c1"))

        assert store.load_raw() == [HistoryEntry("p2", "c2"), HistoryEntry("p3", "c3")]
        assert HistoryEntry("p1", "c1") not in store.load()

    def test_delete_records_rejection_once(self, history_paths):
        store = HistoryStore(*history_paths)
        store.append(HistoryEntry("p1", "c1"))
        store.append(HistoryEntry("p1", "c1"))

        store.delete(HistoryEntry("p1", "c1"))

        assert store.load_rejected() == [HistoryEntry("p1", "c1")]

    def test_delete_missing_entry_is_still_rejected(self, history_paths):
        store = HistoryStore(*history_paths)
        store.append(HistoryEntry("p1", "c1"))

        store.delete(HistoryEntry("other", "cmd"))

        assert store.load_raw() == [HistoryEntry("p1", "c1")]
        assert store.load_rejected() == [HistoryEntry("other", "cmd")]

    def test_delete_from_empty_history(self, history_paths):
        history, rejected = history_paths
        store = HistoryStore(*history_paths)

        store.delete(HistoryEntry("p", "c"))

        assert not history.exists()
        assert _lines(rejected) == [{"prompt": "p", "command": "c"}]

    def test_rejections_accumulate(self, history_paths):
        store = HistoryStore(*history_paths)
        store.delete(HistoryEntry("p", "c"))
        store.delete(HistoryEntry("p", "c"))

        assert store.load_rejected() == [HistoryEntry("p", "c"), HistoryEntry("p", "c")]

    @pytest.mark.parametrize("which", ["history", "rejected"])
    def test_delete_requires_both_paths(self, history_paths, which):
        history, rejected = history_paths
        store = HistoryStore(None if which == "history" else history, None if which == "rejected" else rejected)

        with pytest.raises(HistoryError):
            store.delete(HistoryEntry("p", "c"))

        assert not history.exists()
        assert not rejected.exists()

    def test_delete_leaves_no_temp_files(self, history_paths, tmp_path):
        store = HistoryStore(*history_paths)
        store.append(HistoryEntry("p1", "c1"))
        store.append(HistoryEntry("p2", "c2"))

        store.delete(HistoryEntry("p1", "c1"))

        assert sorted(p.name for p in tmp_path.iterdir()) == ["history.jsonl", "rejected.jsonl"]

    def test_failed_rename_keeps_original(self, history_paths, tmp_path, monkeypatch):
        history, _ = history_paths
        store = HistoryStore(*history_paths)
        store.append(HistoryEntry("p1", "c1"))
        store.append(HistoryEntry("p2", "c2"))
        before = history.read_bytes()

        def fail_replace(src, dst):
            raise OSError("disk on fire")

        monkeypatch.setattr(os, "replace", fail_replace)

        with pytest.raises(HistoryError):
            store.delete(HistoryEntry("p1", "c1"))

        assert history.read_bytes() == before
        assert not [p for p in tmp_path.iterdir() if p.name.startswith("tmp-history-")]

    def test_rewrite_syncs_before_rename(self, history_paths, monkeypatch):
        store = HistoryStore(*history_paths)
        store.append(HistoryEntry("p1", "c1"))
        calls = []
        real_fsync, real_replace = os.fsync, os.replace

        def fsync(fd):
            calls.append("fsync")
            real_fsync(fd)

        def replace(src, dst):
            calls.append("replace")
            real_replace(src, dst)

        monkeypatch.setattr(os, "fsync", fsync)
        monkeypatch.setattr(os, "replace", replace)

        store.delete(HistoryEntry("p1", "c1"))

        assert calls == ["fsync", "replace"]
        assert store.load_raw() == []


class TestDefaultStore:
    def test_default_uses_data_dir(self, isolated_dirs):
        _, data = isolated_dirs
        store = HistoryStore.default()
        assert store.history_path == data / "history.jsonl"
        assert store.rejected_path == data / "rejected.jsonl"
