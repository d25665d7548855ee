"""Data package for gencmd.

This subpackage contains static resources bundled with gencmd: the
prompt examples served by the mock provider (``examples.json``) and
the shell key binding snippets copied into the configuration
directory by ``gencmd init``.
"""

__all__ = []
