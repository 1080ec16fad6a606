"""Slash command summarizing the vault, its publish target and open problems."""

from __future__ import annotations

from typing import List

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..publish import PublishSettings, PublishStateStore
from ..publish.runtime import state_path
from ..slash_commands import CommandError, SlashCommand, SlashCommandContext, render_rich


def _key_value_grid() -> Table:
    grid = Table.grid(padding=(0, 1))
    grid.add_column("Key", style="bold", no_wrap=True)
    grid.add_column("Value", overflow="fold")
    return grid


def _handler(context: SlashCommandContext, args: List[str]) -> str:
    if args:
        raise CommandError("[status] takes no arguments; see /publish status for the last run.")

    config = context.config
    settings = PublishSettings.from_config(config.merged)
    state = PublishStateStore(state_path(config.vault_dir, settings)).load()
    agent = config.agent_state.get("publish.agent") or {}
    problems = [diag for diag in config.diagnostics if diag.level != "info"]

    vault = _key_value_grid()
    vault.add_row("Vault", str(config.vault_dir))
    vault.add_row("Config", f"{config.status} ({len(config.files_loaded)} file(s))")
    vault.add_row("Log path", str(config.log_path or "(not initialized)"))
    vault.add_row("Mode", str(context.metadata.get("mode", "(unknown)")))

    target = _key_value_grid()
    target.add_row("Repository", settings.repository_url or "(not configured)")
    target.add_row("Branch", settings.branch)
    target.add_row("Folder", settings.folder or "(repository root)")
    target.add_row("Selected", f"{len(settings.selected_paths)} path(s)")
    missing = settings.missing_fields()
    target.add_row("Ready", "yes" if not missing else "missing " + ", ".join(missing))
    target.add_row(
        "Last success",
        state.last_success.isoformat(timespec="seconds") if state.last_success else "never",
    )
    if state.last_commit:
        target.add_row("Last commit", state.last_commit)
    if agent:
        check = str(agent.get("status", "unknown")).upper()
        detail = str(agent.get("detail") or "").strip()
        target.add_row("Startup check", f"{check} {detail}".strip())

    def _render(console: Console) -> None:
        console.print(Panel(vault, title="Vault", border_style="green", padding=(0, 1)))
        console.print(Panel(target, title="Publish Target", border_style="cyan", padding=(0, 1)))
        if not problems:
            console.print("[green]No warnings or errors.[/green]")
            return
        table = Table(show_header=True, header_style="bold red", box=box.SIMPLE, pad_edge=False)
        table.add_column("Lvl", style="red", no_wrap=True)
        table.add_column("Message", overflow="fold", ratio=2)
        table.add_column("Source", overflow="fold", ratio=1)
        for diag in problems:
            table.add_row(diag.level.upper(), diag.message, str(diag.source or config.vault_dir))
        console.print(Panel(table, title="Problems", border_style="red", padding=(0, 1)))

    return render_rich(_render)


COMMAND = SlashCommand(
    name="status",
    description="Show the vault, the publish target, and configuration problems.",
    handler=_handler,
)
