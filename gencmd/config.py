"""Configuration handling for gencmd.

Configuration lives in ``$XDG_CONFIG_HOME/gencmd`` (``~/.config/gencmd``
when the variable is not set) and consists of:

* ``config.yaml`` – the LLM provider, model name, prompt template and
  logging level.  Missing keys fall back to :data:`DEFAULT_CONFIG`.
* ``.env`` – provider credentials (API keys, endpoints).  It is loaded
  into the process environment at start-up without overriding
  variables that are already set.
* ``key-bindings.bash`` / ``key-bindings.zsh`` – shell snippets that
  bind a key to run gencmd and paste the result on the command line.

Run data (history logs, log files) lives separately under
``$XDG_DATA_HOME/gencmd``.
"""

from __future__ import annotations

import copy
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml
from dotenv import dotenv_values, load_dotenv, set_key, unset_key

APP_NAME = "gencmd"

DEFAULT_PROMPT_TEMPLATE = """\
You are a command line expert. Translate the following request into
shell commands for a bash-compatible shell.

Reply with a JSON array of strings and nothing else. Each string must be
one complete command that can be pasted into the terminal as-is: no
markdown, no backticks, no explanations. Return up to five alternatives,
the most likely one first.

Request: $user_input
"""

DEFAULT_CONFIG: Dict[str, Any] = {
    "llm": {
        "auto_from_env": True,
        "provider": "mock",
        "model_name": "",
        "endpoint": None,
        "prompt_template": DEFAULT_PROMPT_TEMPLATE,
    },
    "logging": {
        "level": "INFO",
    },
}

# Environment variables that select a provider when ``auto_from_env`` is on,
# in order of precedence, with the model used when none is configured.
ENV_PROVIDERS = [
    ("OPENAI_API_KEY", "openai", "gpt-4.1-mini"),
    ("OLLAMA_HOST", "ollama", "qwen2.5-coder:7b"),
]


class ConfigError(Exception):
    """Raised when the configuration file is missing or malformed."""


def config_dir() -> Path:
    """Return the configuration directory, creating it if needed."""
    base = os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    path = Path(base) / APP_NAME
    path.mkdir(parents=True, exist_ok=True)
    return path


def data_dir() -> Path:
    """Return the data directory holding history and log files."""
    base = os.environ.get("XDG_DATA_HOME") or str(Path.home() / ".local" / "share")
    path = Path(base) / APP_NAME
    path.mkdir(parents=True, exist_ok=True)
    return path


def config_file() -> Path:
    return config_dir() / "config.yaml"


def env_file() -> Path:
    return config_dir() / ".env"


@dataclass
class LLMConfig:
    auto_from_env: bool = True
    provider: str = "mock"
    model_name: str = ""
    endpoint: Optional[str] = None
    prompt_template: str = DEFAULT_PROMPT_TEMPLATE


@dataclass
class Config:
    llm: LLMConfig = field(default_factory=LLMConfig)
    log_level: str = "INFO"
    path: Optional[Path] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any], path: Optional[Path] = None) -> "Config":
        merged = _merge(DEFAULT_CONFIG, data)
        llm = merged["llm"]
        cfg = cls(
            llm=LLMConfig(
                auto_from_env=bool(llm.get("auto_from_env", True)),
                provider=str(llm.get("provider") or ""),
                model_name=str(llm.get("model_name") or ""),
                endpoint=llm.get("endpoint"),
                prompt_template=str(llm.get("prompt_template") or DEFAULT_PROMPT_TEMPLATE),
            ),
            log_level=str(merged["logging"].get("level", "INFO")).upper(),
            path=path,
        )
        cfg.apply_env()
        return cfg

    def apply_env(self) -> None:
        """Pick the provider from the environment when allowed to."""
        if not self.llm.auto_from_env:
            return
        for var, provider, model in ENV_PROVIDERS:
            if os.environ.get(var):
                if self.llm.provider != provider:
                    self.llm.provider = provider
                    self.llm.model_name = ""
                if not self.llm.model_name:
                    self.llm.model_name = model
                return

    def to_dict(self) -> Dict[str, Any]:
        return {
            "llm": {
                "auto_from_env": self.llm.auto_from_env,
                "provider": self.llm.provider,
                "model_name": self.llm.model_name,
                "endpoint": self.llm.endpoint,
                "prompt_template": self.llm.prompt_template,
            },
            "logging": {"level": self.log_level},
        }

    def dump(self) -> str:
        """Render the effective configuration with explanatory comments."""
        lines = [f"# Configuration file: {self.path or config_file()}"]
        lines.append(f"# Environment file: {env_file()}")
        set_vars = [var for var, _, _ in ENV_PROVIDERS if os.environ.get(var)]
        for opts in PROVIDERS:
            for opt in opts.options:
                if os.environ.get(opt.env_var) and opt.env_var not in set_vars:
                    set_vars.append(opt.env_var)
        if set_vars:
            lines.append("# Provider variables set: " + ", ".join(set_vars))
        body = yaml.safe_dump(self.to_dict(), sort_keys=False, default_flow_style=False)
        return "\n".join(lines) + "\n" + body


def default_config() -> Config:
    return Config.from_dict({})


def load_config(path: Optional[Path] = None) -> Tuple[Config, Optional[ConfigError]]:
    """Load the YAML configuration.

    Returns the defaults together with a :class:`ConfigError` when the
    file cannot be used, so callers may warn and carry on.

    :returns: Tuple ``(config, error)``.
    """
    cfg_path = Path(path) if path else config_file()
    try:
        with cfg_path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as exc:
        return default_config(), ConfigError(f"failed to open config file: {exc}")
    except yaml.YAMLError as exc:
        return default_config(), ConfigError(f"failed to decode config file: {exc}")
    if data is None:
        data = {}
    if not isinstance(data, dict):
        return default_config(), ConfigError("failed to decode config file: not a mapping")
    return Config.from_dict(data, path=cfg_path), None


def load_env() -> None:
    """Load provider credentials from the ``.env`` file, if present."""
    path = env_file()
    if path.exists():
        load_dotenv(path, override=False)


@dataclass
class ProviderOption:
    name: str
    env_var: str
    description: str


@dataclass
class ProviderDoc:
    id: str
    name: str
    url: str
    options: List[ProviderOption] = field(default_factory=list)
    fixed_env: Dict[str, str] = field(default_factory=dict)


PROVIDERS: List[ProviderDoc] = [
    ProviderDoc(
        id="openai",
        name="OpenAI",
        url="https://platform.openai.com/api-keys",
        options=[
            ProviderOption("OpenAI API Key", "OPENAI_API_KEY", "API key for OpenAI"),
        ],
    ),
    ProviderDoc(
        id="lmstudio",
        name="LM Studio (OpenAI compatible server)",
        url="https://lmstudio.ai/docs/app/api",
        options=[
            ProviderOption(
                "LM Studio URL",
                "OPENAI_BASE_URL",
                "Base URL of the local server, e.g. http://localhost:1234/v1",
            ),
        ],
        fixed_env={"OPENAI_API_KEY": "lm-studio"},
    ),
    ProviderDoc(
        id="ollama",
        name="Ollama",
        url="https://ollama.com/download",
        options=[
            ProviderOption(
                "Ollama host",
                "OLLAMA_HOST",
                "Address of the Ollama server, e.g. 127.0.0.1:11434",
            ),
        ],
    ),
]


def save_provider_env(provider_id: str, values: Dict[str, str], path: Optional[Path] = None) -> Path:
    """Write the credentials of one provider to the ``.env`` file.

    Variables belonging to the other providers are removed so that
    environment based auto-selection picks the chosen one.

    :raises ConfigError: On an unknown provider or a missing value.
    """
    values = dict(values)
    required: List[ProviderOption] = []
    unwanted: List[str] = []
    found = False
    for doc in PROVIDERS:
        if doc.id == provider_id:
            found = True
            required = doc.options
            values.update(doc.fixed_env)
            continue
        unwanted.extend(opt.env_var for opt in doc.options)
        unwanted.extend(doc.fixed_env)

    if not found:
        raise ConfigError(f"unknown provider: {provider_id}")
    for opt in required:
        if not values.get(opt.env_var, "").strip():
            raise ConfigError(f"missing required environment variable: {opt.env_var}")

    env_path = Path(path) if path else env_file()
    env_path.parent.mkdir(parents=True, exist_ok=True)
    env_path.touch(mode=0o600, exist_ok=True)
    existing = dotenv_values(env_path)
    for key in unwanted:
        if key in existing and key not in values:
            unset_key(str(env_path), key)
            del existing[key]
    for key, value in values.items():
        set_key(str(env_path), key.strip(), value.strip(), quote_mode="always")
    return env_path


DEFAULT_DOTENV = """\
# Provider credentials for gencmd. Run "gencmd init --reset" to change them.
# OPENAI_API_KEY="..."
# OPENAI_BASE_URL="http://localhost:1234/v1"
# OLLAMA_HOST="127.0.0.1:11434"
"""


def init_config() -> List[Path]:
    """Create the default configuration files that do not exist yet.

    :returns: The paths that were created.
    """
    base = config_dir()
    files = {
        "config.yaml": yaml.safe_dump(DEFAULT_CONFIG, sort_keys=False),
        ".env": DEFAULT_DOTENV,
        "key-bindings.bash": _data_file("key-bindings.bash"),
        "key-bindings.zsh": _data_file("key-bindings.zsh"),
    }
    created = []
    for name, content in files.items():
        target = base / name
        if target.exists():
            continue
        target.write_text(content, encoding="utf-8")
        target.chmod(0o600)
        created.append(target)
    return created


def _data_file(name: str) -> str:
    return (Path(__file__).parent / "data" / name).read_text(encoding="utf-8")


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    result = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = _merge(result[key], value)
        else:
            result[key] = value
    return result
