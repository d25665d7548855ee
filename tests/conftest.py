"""Shared fixtures: keep every test away from the real user directories."""

import pytest

PROVIDER_VARS = ["OPENAI_API_KEY", "OPENAI_BASE_URL", "OLLAMA_HOST"]


@pytest.fixture(autouse=True)
def isolated_dirs(tmp_path, monkeypatch):
    config_home = tmp_path / "config"
    data_home = tmp_path / "data"
    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_home))
    monkeypatch.setenv("XDG_DATA_HOME", str(data_home))
    for var in PROVIDER_VARS:
        # Set first so the original value, or its absence, is restored
        # after tests that load a .env file into the environment.
        monkeypatch.setenv(var, "")
        monkeypatch.delenv(var)
    return config_home / "gencmd", data_home / "gencmd"


@pytest.fixture
def history_paths(tmp_path):
    return tmp_path / "history.jsonl", tmp_path / "rejected.jsonl"
