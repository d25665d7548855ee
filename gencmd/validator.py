"""Command clean-up and safety heuristics.

Model output is not always as tidy as the prompt asks for: commands
may come wrapped in Markdown fences or backticks, or padded with
blank lines.  :func:`clean_commands` normalises a raw candidate list
without changing the order chosen by the model.

:func:`is_dangerous` flags commands that contain obviously destructive
operations.  It is only used to highlight such candidates in the
selection list; gencmd never executes anything itself.
"""

import re
from typing import Iterable, List

DANGEROUS_PATTERNS = [
    r"\brm\s+-[a-zA-Z]*r[a-zA-Z]*f|\brm\s+-[a-zA-Z]*f[a-zA-Z]*r",  # rm -rf
    r"\bsudo\s+rm\b",  # privileged remove
    r"\bmkfs(\.\w+)?\b",  # format filesystem
    r":\(\)\s*\{\s*:\s*\|\s*:\s*&\s*\}\s*;\s*:",  # fork bomb
    r"\bdd\s+.*\bof=/dev/",  # raw writes to block devices
    r">\s*/dev/sd[a-z]",  # redirecting to block devices
    r"\b(shutdown|reboot|halt|poweroff)\b",
    r"\bchmod\s+-R\s+777\s+/",
]

_FENCE = re.compile(r"^```[\w-]*$")


def clean_command(command: str) -> str:
    """Strip whitespace, surrounding backticks and prompt symbols."""
    cmd = command.strip()
    if len(cmd) >= 2 and cmd.startswith("`") and cmd.endswith("`") and "`" not in cmd[1:-1]:
        cmd = cmd[1:-1].strip()
    if cmd.startswith("$ "):
        cmd = cmd[2:].strip()
    return cmd


def clean_commands(commands: Iterable[str]) -> List[str]:
    """Return the non-empty cleaned commands, preserving their order.

    Markdown code fence lines are dropped.
    """
    result = []
    for command in commands:
        if not isinstance(command, str):
            continue
        cmd = clean_command(command)
        if not cmd or _FENCE.match(cmd):
            continue
        result.append(cmd)
    return result


def is_dangerous(command: str) -> bool:
    """Return True if the command contains destructive operations."""
    for pattern in DANGEROUS_PATTERNS:
        if re.search(pattern, command, flags=re.IGNORECASE):
            return True
    return False
