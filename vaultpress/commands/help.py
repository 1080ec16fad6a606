"""Slash command for listing available commands."""

from __future__ import annotations

from typing import List

from ..slash_commands import (
    CommandError,
    SlashCommand,
    SlashCommandContext,
    render_help_table,
)


def _handler(context: SlashCommandContext, args: List[str]) -> str:
    if args:
        name = args[0].lstrip("/")
        command = context.router.get(name)
        if command is None:
            raise CommandError(f"[help] unknown command '/{name}'.")
        return f"/{command.name}: {command.description}"
    return render_help_table(context.router.commands())


def _complete(context: SlashCommandContext, args: List[str], fragment: str) -> List[str]:
    if args:
        return []
    return [name for name in context.router.command_names if name.startswith(fragment)]


COMMAND = SlashCommand(
    name="help",
    description="List available slash commands, or describe one with /help <command>.",
    handler=_handler,
    completer=_complete,
)
