"""Command line interface for gencmd.

This module defines the ``gencmd`` command using the ``click`` library.
Invoked without a subcommand it opens the interactive session: search
the history or type a new prompt, pick one of the generated commands,
and the command is printed on standard output.  Subcommands:

``gencmd generate <prompt>``
    Generate commands without the interactive UI and print them one
    per line.  ``--first`` prints only the most likely one.

``gencmd demo``
    Run the interactive session against canned data, without an LLM.

``gencmd init``
    Create the default configuration files.  ``--reset`` asks for a
    provider and its credentials.

``gencmd config show``
    Print the effective configuration.

``gencmd history``
    Print the saved history, most recent first.  ``--rejected`` prints
    the entries that were deleted from it.

``gencmd version``
    Print the version.
"""

from __future__ import annotations

import sys
from typing import Optional

import click
from loguru import logger

from . import __version__
from .config import PROVIDERS, ConfigError, config_dir, init_config, load_config, load_env, save_provider_env
from .controller import BaseController, Controller, FakeController
from .history import HistoryStore
from .log import setup_logging
from .providers import ProviderError
from .state import UserCancelled

MISSING_CONFIG_MSG = """\
WARNING: Error loading configuration: {}
Please run "gencmd init" to create a default configuration."""

INIT_MSG = """
To enable key bindings, add the following line to your shell:
source {0}/key-bindings.bash

(or, for zsh users):
source {0}/key-bindings.zsh"""

tty_option = click.option(
    "--tty",
    "tty_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Path to the TTY device to use. Defaults to the current terminal.",
)


def _load():
    load_env()
    config, err = load_config()
    if err is not None:
        click.echo(MISSING_CONFIG_MSG.format(err), err=True)
    setup_logging(config.log_level)
    return config


def _run_interactive(controller: BaseController, tty_path: Optional[str]) -> None:
    from .ui import run_ui

    try:
        command = run_ui(controller, tty_path)
    except UserCancelled:
        # Do not print anything if the user cancelled the operation.
        sys.exit(1)
    except Exception as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)
    if command:
        click.echo(command)


@click.group(
    invoke_without_command=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)
@tty_option
@click.pass_context
def cli(ctx: click.Context, tty_path: Optional[str]) -> None:
    """gencmd – generate shell commands from natural language descriptions.

    This tool generates shell commands based on natural language
    prompts by using a large language model (LLM).
    """
    if ctx.invoked_subcommand is not None:
        return
    config = _load()
    _run_interactive(Controller(config), tty_path)


@cli.command(name="generate")
@click.argument("prompt", nargs=-1, required=True, type=str)
@click.option("--first", "-f", "first_only", is_flag=True, help="Output only the first generated command.")
def generate_cmd(prompt: tuple, first_only: bool) -> None:
    """Non-interactive generation of commands from a prompt."""
    prompt_text = " ".join(prompt).strip()
    if not prompt_text:
        raise click.UsageError("Please provide a prompt, e.g. gencmd generate list all files")
    config = _load()
    controller = Controller(config)
    try:
        commands = controller.generate(prompt_text)
    except ProviderError as exc:
        click.echo(f"Error: generating commands: {exc}", err=True)
        sys.exit(1)
    if not commands:
        click.echo("Error: no commands generated", err=True)
        sys.exit(1)
    if first_only:
        commands = commands[:1]
    for command in commands:
        click.echo(command)


@cli.command(name="demo")
@tty_option
def demo_cmd(tty_path: Optional[str]) -> None:
    """Simulate the interactive session without requiring an LLM."""
    setup_logging("INFO")
    _run_interactive(FakeController.demo(), tty_path)


@cli.command(name="init")
@click.option("--reset", is_flag=True, help="Reconfigure the provider.")
def init_cmd(reset: bool) -> None:
    """Initialise gencmd configuration, if not already done.

    This command is safe to run multiple times, as it will not
    overwrite existing configuration files.
    """
    try:
        created = init_config()
    except OSError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)
    for path in created:
        click.echo(f"Created {path}")
    if not created and not reset:
        click.echo("Configuration already initialised.")

    if reset or created:
        _configure_provider()
    click.echo(INIT_MSG.format(config_dir()))


def _configure_provider() -> None:
    click.echo("Select a provider:")
    for index, doc in enumerate(PROVIDERS, start=1):
        click.echo(f"  {index}. {doc.name} ({doc.url})")
    choice = click.prompt(
        "Provider",
        type=click.IntRange(1, len(PROVIDERS)),
        default=1,
    )
    doc = PROVIDERS[choice - 1]
    values = {}
    for opt in doc.options:
        values[opt.env_var] = click.prompt(f"{opt.name} ({opt.description})", hide_input=opt.env_var.endswith("_KEY"))
    try:
        path = save_provider_env(doc.id, values)
    except (ConfigError, OSError) as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)
    logger.info("Saved {} provider settings", doc.id)
    click.echo(f"Saved {doc.name} settings to {path}")


@cli.group(name="config")
def config_group() -> None:
    """Manage gencmd configuration."""


@config_group.command(name="show")
def config_show() -> None:
    """Show the computed configuration.

    The configuration is computed from the defaults, the configuration
    file and the provider environment variables.
    """
    load_env()
    config, err = load_config()
    if err is not None:
        click.echo(f"Error: failed to load configuration: {err}", err=True)
        sys.exit(1)
    click.echo(config.dump(), nl=False)


@cli.command(name="history")
@click.option("--rejected", is_flag=True, help="Show deleted entries instead.")
def history_cmd(rejected: bool) -> None:
    """Show previously selected commands."""
    store = HistoryStore.default()
    entries = store.load_rejected() if rejected else store.load()
    if not entries:
        click.echo("No history available.")
        return
    for idx, entry in enumerate(entries, start=1):
        click.echo(f"{idx}: {entry.command}  ←  {entry.prompt}")


@cli.command(name="version")
def version_cmd() -> None:
    """Print gencmd version and exit."""
    click.echo(__version__)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
