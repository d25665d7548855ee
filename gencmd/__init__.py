"""Top-level package for gencmd.

This package contains the implementation of a command line tool named
``gencmd`` which turns natural language descriptions into shell
commands.  The interactive session is driven by the state machine in
``state.py`` and rendered by ``ui.py``; ``history.py`` keeps the
durable record of accepted and rejected prompt/command pairs, and
``providers.py`` abstracts over the language model backends.

When this package is installed via pip you can invoke the CLI from
your shell using the ``gencmd`` entry point.  Alternatively you can
run ``python -m gencmd`` for local development.
"""

__version__ = "0.1.0"

__all__ = [
    "cli",
    "config",
    "controller",
    "history",
    "keymap",
    "log",
    "panels",
    "providers",
    "state",
    "ui",
    "validator",
]
