"""Tests for the prompt, wait and selection panels."""

from gencmd.history import HistoryEntry
from gencmd.keymap import DEFAULT_KEYMAP as KM
from gencmd.panels import SPINNER_FRAMES, InputPrompt, PromptPanel, SelectionPanel, WaitPanel

ENTRIES = [
    HistoryEntry("list files", "ls -l"),
    HistoryEntry("show disk usage", "du -sh ."),
    HistoryEntry("list processes", "ps aux"),
]


def _type(panel, text):
    for char in text:
        panel = panel.insert(char)
    return panel


class TestInputPrompt:
    def test_classification(self):
        assert InputPrompt("").empty()
        assert not InputPrompt("").is_new()
        assert InputPrompt("new").is_new()
        assert not InputPrompt("p", "c").is_new()
        assert not InputPrompt("p", "c").empty()


class TestPromptPanel:
    def test_initial_highlight_is_first_entry(self):
        panel = PromptPanel.create(ENTRIES)
        assert panel.highlighted() == ENTRIES[0]
        assert panel.selected() == InputPrompt("list files", "ls -l")

    def test_filter_matches_prompt_or_command(self):
        panel = _type(PromptPanel.create(ENTRIES), "list")
        assert panel.visible == (ENTRIES[0], ENTRIES[2])

        panel = PromptPanel.create(ENTRIES).set_text("du -sh")
        assert panel.visible == (ENTRIES[1],)

    def test_filter_is_case_sensitive(self):
        panel = PromptPanel.create(ENTRIES).set_text("LIST")
        assert panel.visible == ()

    def test_filter_resets_cursor(self):
        panel = PromptPanel.create(ENTRIES).cursor_down().cursor_down()
        assert panel.cursor == 2
        panel = panel.insert("l")
        assert panel.cursor == 0

    def test_clearing_text_shows_everything(self):
        panel = _type(PromptPanel.create(ENTRIES), "disk")
        while panel.text:
            panel = panel.backspace()
        assert panel.visible == tuple(ENTRIES)

    def test_backspace_on_empty_text_is_noop(self):
        panel = PromptPanel.create(ENTRIES)
        assert panel.backspace() == panel

    def test_no_match_selects_typed_text(self):
        panel = _type(PromptPanel.create(ENTRIES), "compress logs")
        assert panel.highlighted() is None
        assert panel.selected() == InputPrompt("compress logs")

    def test_cursor_is_bounded(self):
        panel = PromptPanel.create(ENTRIES)
        assert panel.cursor_up().cursor == 0
        for _ in range(10):
            panel = panel.cursor_down()
        assert panel.cursor == len(ENTRIES) - 1
        assert panel.highlighted() == ENTRIES[-1]

    def test_hidden_history_selects_text(self):
        panel = PromptPanel.create(ENTRIES).set_text("list files").toggle_history()
        assert panel.visible == (ENTRIES[0],)
        assert panel.highlighted() is None
        assert panel.selected() == InputPrompt("list files")
        assert panel.cursor_down() == panel

    def test_toggle_twice_restores(self):
        panel = PromptPanel.create(ENTRIES)
        assert panel.toggle_history().toggle_history() == panel

    def test_placeholder(self):
        assert PromptPanel.create(ENTRIES).placeholder == "Search history or type a new prompt"
        assert PromptPanel.create(ENTRIES).toggle_history().placeholder == "Type a prompt"
        assert PromptPanel.create([]).placeholder == "Type a prompt"

    def test_delete_highlighted(self):
        panel = PromptPanel.create(ENTRIES).cursor_down()
        panel, removed = panel.delete_highlighted()
        assert removed == ENTRIES[1]
        assert ENTRIES[1] not in panel.entries
        assert ENTRIES[1] not in panel.visible
        assert panel.highlighted() == ENTRIES[2]

    def test_delete_last_clamps_cursor(self):
        panel = PromptPanel.create(ENTRIES).cursor_down().cursor_down()
        panel, removed = panel.delete_highlighted()
        assert removed == ENTRIES[2]
        assert panel.cursor == 1

    def test_delete_with_nothing_highlighted(self):
        panel = PromptPanel.create([])
        assert panel.delete_highlighted() == (panel, None)

    def test_deleted_entry_stays_gone_after_refilter(self):
        panel = PromptPanel.create(ENTRIES).set_text("list")
        panel, removed = panel.delete_highlighted()
        assert removed == ENTRIES[0]
        panel = panel.set_text("")
        assert panel.visible == (ENTRIES[1], ENTRIES[2])

    def test_help_depends_on_highlight(self):
        full = PromptPanel.create(ENTRIES).help(KM)
        assert full == [KM.submit, KM.cancel, KM.up, KM.down, KM.delete_history, KM.toggle_history]

        no_match = PromptPanel.create(ENTRIES).set_text("zzz").help(KM)
        assert no_match == [KM.submit, KM.cancel, KM.toggle_history]

        assert PromptPanel.create([]).help(KM) == [KM.submit, KM.cancel]


class TestWaitPanel:
    def test_spinner_cycles(self):
        panel = WaitPanel()
        frames = []
        for _ in range(len(SPINNER_FRAMES) + 1):
            frames.append(panel.frame())
            panel = panel.tick()
        assert frames[: len(SPINNER_FRAMES)] == list(SPINNER_FRAMES)
        assert frames[-1] == SPINNER_FRAMES[0]

    def test_help_only_cancel(self):
        assert WaitPanel().help(KM) == [KM.cancel]


class TestSelectionPanel:
    def test_empty_selects_nothing(self):
        assert SelectionPanel().selected() == ""

    def test_cursor_moves_within_bounds(self):
        panel = SelectionPanel().set_items(["a", "b", "c"])
        assert panel.selected() == "a"
        assert panel.cursor_up().selected() == "a"
        panel = panel.cursor_down().cursor_down().cursor_down()
        assert panel.selected() == "c"
        assert panel.cursor_up().selected() == "b"

    def test_set_items_resets_cursor(self):
        panel = SelectionPanel().set_items(["a", "b"]).cursor_down()
        assert panel.set_items(["x", "y"]).selected() == "x"
