"""Subcommand modules for formctl.

Provides register_commands() which uses deferred imports to keep
``formctl --help`` fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register every standalone command on the root CLI group."""
    from formctl.commands.check import check
    from formctl.commands.compile import compile_cmd
    from formctl.commands.eval_cmd import eval_cmd
    from formctl.commands.options import options
    from formctl.commands.resolve import resolve
    from formctl.commands.rows import rows

    cli.add_command(resolve)
    cli.add_command(compile_cmd)
    cli.add_command(eval_cmd)
    cli.add_command(options)
    cli.add_command(rows)
    cli.add_command(check)
