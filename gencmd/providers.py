"""Model provider layer for gencmd.

This module contains abstractions over the providers that turn a
free‑form natural language prompt into shell commands.  All providers
implement the ``BaseProvider`` interface with a ``generate_commands``
method that accepts a prompt and returns an ordered list of candidate
commands, the most likely one first.  An empty list is a valid answer
("the model had no suggestion"); failures are reported by raising
:class:`ProviderError`.

Supported providers:

* ``MockProvider`` – returns commands from the bundled examples in
  ``gencmd/data/examples.json``.  Used when no LLM is configured.
* ``OllamaProvider`` – wraps the ``ollama`` command line tool to run
  local models.  ``generate_commands`` calls ``ollama run`` with the
  configured model name and the templated prompt.
* ``OpenAIProvider`` – talks to any OpenAI compatible chat completion
  endpoint (OpenAI itself, LM Studio, ...) through the ``openai``
  client library.

Providers never retry: a failed call surfaces to the caller as is.
"""

from __future__ import annotations

import json
import re
import subprocess
from pathlib import Path
from string import Template
from typing import Any, Dict, List, Optional

from loguru import logger

from .config import DEFAULT_PROMPT_TEMPLATE, LLMConfig
from .validator import clean_commands


class ProviderError(Exception):
    """Raised when a provider fails to generate commands."""


class BaseProvider:
    """Abstract base class for all providers."""

    def generate_commands(self, prompt: str) -> List[str]:
        """Return candidate shell commands for the given prompt.

        Subclasses must implement this method.  If a provider is
        unable to handle the prompt (e.g. due to missing models or an
        internal error) it should raise :class:`ProviderError`.
        """
        raise NotImplementedError


def template_prompt(template: str, prompt: str) -> str:
    """Substitute ``$user_input`` in ``template`` with the user's prompt.

    :raises ProviderError: If the template references unknown fields.
    """
    try:
        return Template(template or DEFAULT_PROMPT_TEMPLATE).substitute(user_input=prompt.strip())
    except (KeyError, ValueError) as exc:
        raise ProviderError(f"templating prompt: {exc}") from exc


def parse_commands(text: str) -> List[str]:
    """Extract the command list from a model response.

    The prompt asks for a JSON array of strings.  An object holding a
    ``commands`` array is accepted too.  Anything else is treated as
    plain text with one command per line.
    """
    text = (text or "").strip()
    if not text:
        raise ProviderError("no response from model")
    # Models like to wrap JSON in a fenced block.
    fenced = re.match(r"^```[\w-]*\s*\n(.*?)\n?```$", text, flags=re.DOTALL)
    if fenced:
        text = fenced.group(1).strip()
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        return clean_commands(text.splitlines())
    if isinstance(data, dict):
        data = data.get("commands")
    if isinstance(data, str):
        data = [data]
    if not isinstance(data, list):
        raise ProviderError("unexpected response format from model")
    return clean_commands(data)


class MockProvider(BaseProvider):
    """Provider that serves commands from the bundled examples.

    Matching logic is intentionally simple: it first tries an exact
    case‑insensitive match against the example prompts, then collects
    the commands of every example whose prompt appears within the
    input (or the other way round).  No match yields an empty list.
    """

    def __init__(self, model_name: str = "mock", examples_path: Optional[Path] = None) -> None:
        self.model_name = model_name
        self.examples = load_examples(examples_path)
        self.prompt_to_commands: Dict[str, List[str]] = {
            e["prompt"].strip().lower(): e["commands"] for e in self.examples
        }

    def generate_commands(self, prompt: str) -> List[str]:
        normalized = prompt.strip().lower()
        if not normalized:
            raise ProviderError("Empty prompt provided")
        if normalized in self.prompt_to_commands:
            return list(self.prompt_to_commands[normalized])
        matches: List[str] = []
        for example in self.examples:
            p_norm = example["prompt"].strip().lower()
            if p_norm in normalized or normalized in p_norm:
                for cmd in example["commands"]:
                    if cmd not in matches:
                        matches.append(cmd)
        return matches


def load_examples(path: Optional[Path] = None) -> List[Dict[str, Any]]:
    """Load the prompt examples used by :class:`MockProvider`.

    :returns: A list of dictionaries with ``prompt`` and ``commands``
      keys.  Malformed entries are skipped.
    """
    examples_path = path or Path(__file__).parent / "data" / "examples.json"
    try:
        with Path(examples_path).open("r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        raise ProviderError(f"Failed to load examples: {exc}") from exc
    examples = []
    for entry in data if isinstance(data, list) else []:
        if not isinstance(entry, dict):
            continue
        prompt = entry.get("prompt")
        commands = entry.get("commands")
        if isinstance(prompt, str) and prompt.strip() and isinstance(commands, list):
            examples.append({"prompt": prompt, "commands": [c for c in commands if isinstance(c, str)]})
    return examples


class OllamaProvider(BaseProvider):
    """Provider that interfaces with the Ollama CLI.

    Ollama (https://ollama.com/) runs large language models locally
    behind a simple command line interface.  This provider uses
    ``subprocess`` to invoke the ``ollama`` binary.  If the CLI or the
    requested model is unavailable, a :class:`ProviderError` is raised.
    """

    def __init__(self, model_name: str, prompt_template: str = DEFAULT_PROMPT_TEMPLATE) -> None:
        if not model_name:
            raise ProviderError("No model configured for the ollama provider")
        self.model_name = model_name
        self.prompt_template = prompt_template

    def _check_ollama(self) -> None:
        """Ensure the ollama CLI is installed and executable."""
        from shutil import which
        if which("ollama") is None:
            raise ProviderError(
                "Ollama CLI not found. Please install Ollama or configure another provider."
            )

    def generate_commands(self, prompt: str) -> List[str]:
        self._check_ollama()
        if not prompt.strip():
            raise ProviderError("Empty prompt provided")
        full_prompt = template_prompt(self.prompt_template, prompt)
        try:
            proc = subprocess.run(
                ["ollama", "run", "--format", "json", self.model_name, full_prompt],
                capture_output=True,
                text=True,
                check=True,
            )
        except subprocess.CalledProcessError as exc:
            detail = (exc.stderr or "").strip() or str(exc)
            raise ProviderError(f"Failed to call Ollama model: {detail}") from exc
        except OSError as exc:
            raise ProviderError(f"Failed to call Ollama model: {exc}") from exc
        return parse_commands(proc.stdout)


class OpenAIProvider(BaseProvider):
    """Provider for OpenAI compatible chat completion APIs.

    The API key and base URL are read by the ``openai`` client from
    ``OPENAI_API_KEY`` and ``OPENAI_BASE_URL`` unless an explicit
    ``endpoint`` is configured.  Pointing the base URL at LM Studio or
    another local server works the same way.
    """

    def __init__(
        self,
        model_name: str,
        endpoint: Optional[str] = None,
        prompt_template: str = DEFAULT_PROMPT_TEMPLATE,
    ) -> None:
        from openai import OpenAI, OpenAIError

        if not model_name:
            raise ProviderError("No model configured for the openai provider")
        self.model_name = model_name
        self.prompt_template = prompt_template
        try:
            self.client = OpenAI(base_url=endpoint) if endpoint else OpenAI()
        except OpenAIError as exc:
            raise ProviderError(f"creating OpenAI client: {exc}") from exc

    def generate_commands(self, prompt: str) -> List[str]:
        from openai import OpenAIError

        if not prompt.strip():
            raise ProviderError("Empty prompt provided")
        content = template_prompt(self.prompt_template, prompt)
        try:
            response = self.client.chat.completions.create(
                model=self.model_name,
                messages=[{"role": "user", "content": content}],
            )
        except OpenAIError as exc:
            raise ProviderError(f"generating command: {exc}") from exc
        if not response.choices:
            raise ProviderError("no response from model")
        return parse_commands(response.choices[0].message.content or "")


def get_provider(cfg: LLMConfig) -> BaseProvider:
    """Factory function to instantiate the configured provider.

    :param cfg: The ``llm`` section of the configuration.
    :returns: A provider instance.
    :raises ProviderError: If the provider name is unknown or the
      provider cannot be set up.
    """
    name = (cfg.provider or "").lower().strip()
    logger.debug("Using provider {!r} with model {!r}", name, cfg.model_name)
    if name == "ollama":
        return OllamaProvider(cfg.model_name, cfg.prompt_template)
    if name in ("openai", "lmstudio"):
        return OpenAIProvider(cfg.model_name, cfg.endpoint, cfg.prompt_template)
    if name == "mock":
        return MockProvider(cfg.model_name or "mock")
    raise ProviderError(f"unsupported model provider: {cfg.provider}")
