"""pkgrelay CLI: Typer-based command-line interface.

Provides the ``pkgrelay`` command with subcommands for inspecting rules,
validating path templates, dispatching events and running getter
workflows.  All output uses Rich for formatted terminal display.
"""
