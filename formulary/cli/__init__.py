"""Formulary CLI — Typer-based command-line interface.

Provides the ``formulary`` command with subcommands for installing the
binary, resolving and listing descriptors, showing manifest metadata and
re-running the smoke test.

All output uses Rich for formatted terminal display.
"""
