"""Slash command for managing the files and folders selected for publishing."""

from __future__ import annotations

from typing import List

from rich.console import Console
from rich.table import Table

from ..publish import PublishSettings, VaultStorage, search_paths
from ..publish.errors import LocalReadError
from ..publish.selection import normalize_selection
from ..slash_commands import CommandError, SlashCommand, SlashCommandContext, render_rich
from .config import (
    ConfigMutationError,
    load_override_data,
    override_file_path,
    reload_configuration,
    write_override_data,
)

COMPLETION_LIMIT = 20


def _selected(context: SlashCommandContext) -> List[str]:
    return list(PublishSettings.from_config(context.config.merged).selected_paths)


def _handler(context: SlashCommandContext, args: List[str]) -> str:
    if not args:
        return _show_paths(context)

    subcommand, rest = args[0].lower(), args[1:]

    if subcommand in {"list", "ls"}:
        return _show_paths(context)
    elif subcommand == "add":
        return _add_paths(context, rest)
    elif subcommand in {"remove", "rm"}:
        return _remove_paths(context, rest)
    elif subcommand in {"search", "find"}:
        return _search(context, " ".join(rest))
    else:
        raise CommandError(
            f"[paths] Unknown subcommand '{subcommand}'. "
            "Use /paths [list|add|remove|search]."
        )


def _show_paths(context: SlashCommandContext) -> str:
    selected = _selected(context)
    if not selected:
        return "[paths] Nothing selected. Add files or folders with /paths add <path>."

    storage = VaultStorage(context.config.vault_dir)

    def _render(console: Console) -> None:
        table = Table(title="Selected for publishing", show_header=True)
        table.add_column("Path", style="cyan", overflow="fold")
        table.add_column("Kind", no_wrap=True)
        for path in selected:
            try:
                kind = storage.kind(path)
            except LocalReadError:
                kind = None
            table.add_row(path, kind.value if kind else "[red]missing[/red]")
        console.print(table)

    return render_rich(_render)


def _save_selection(context: SlashCommandContext, selected: List[str]) -> None:
    override_path = override_file_path(context.config.vault_dir)
    try:
        data = load_override_data(override_path)
        publish_block = data.get("publish")
        if not isinstance(publish_block, dict):
            publish_block = {}
            data["publish"] = publish_block
        publish_block["selected_paths"] = selected
        write_override_data(override_path, data)
    except ConfigMutationError as exc:
        raise CommandError(str(exc)) from exc
    reload_configuration(context)


def _add_paths(context: SlashCommandContext, raw_paths: List[str]) -> str:
    if not raw_paths:
        raise CommandError("[paths] Usage: /paths add <path> [<path> ...]")

    storage = VaultStorage(context.config.vault_dir)
    selected = _selected(context)
    added: List[str] = []
    for raw in raw_paths:
        path = normalize_selection(raw)
        if not path:
            continue
        try:
            kind = storage.kind(path)
        except LocalReadError as exc:
            raise CommandError(f"[paths] {exc}") from exc
        if kind is None:
            raise CommandError(f"[paths] '{path}' does not exist in the vault.")
        if path not in selected:
            selected.append(path)
            added.append(path)

    if not added:
        return "[paths] Nothing new to add."
    _save_selection(context, selected)
    return f"[paths] Added {', '.join(added)} ({len(selected)} selected)."


def _remove_paths(context: SlashCommandContext, raw_paths: List[str]) -> str:
    if not raw_paths:
        raise CommandError("[paths] Usage: /paths remove <path> [<path> ...]")

    selected = _selected(context)
    targets = {normalize_selection(raw) for raw in raw_paths}
    remaining = [path for path in selected if path not in targets]
    removed = [path for path in selected if path in targets]
    if not removed:
        raise CommandError("[paths] None of those paths are selected.")
    _save_selection(context, remaining)
    return f"[paths] Removed {', '.join(removed)} ({len(remaining)} selected)."


def _search(context: SlashCommandContext, query: str) -> str:
    if not query.strip():
        raise CommandError("[paths] Usage: /paths search <text>")
    storage = VaultStorage(context.config.vault_dir)
    results = search_paths(storage, query, exclude=_selected(context))
    if not results:
        return f"[paths] No results for '{query}'."
    lines = [f"[paths] Matches for '{query}':"]
    lines.extend(f"  {path}" for path in results)
    return "\n".join(lines)


def _complete(context: SlashCommandContext, args: List[str], fragment: str) -> List[str]:
    """Complete subcommands, vault paths for ``add`` and selections for ``remove``."""

    if not args:
        return [name for name in ("list", "add", "remove", "search") if name.startswith(fragment)]

    subcommand = args[0].lower()
    needle = fragment.replace("\\", "/").lstrip("/").lower()
    selected = _selected(context)
    if subcommand == "add":
        storage = VaultStorage(context.config.vault_dir)
        matches: List[str] = []
        for path, _kind in storage.walk():
            if path in selected or not path.lower().startswith(needle):
                continue
            matches.append(path)
            if len(matches) >= COMPLETION_LIMIT:
                break
        return matches
    if subcommand in {"remove", "rm"}:
        return [path for path in selected if path.lower().startswith(needle)]
    return []


COMMAND = SlashCommand(
    name="paths",
    description="List, add, remove, or search the vault paths selected for publishing.",
    handler=_handler,
    completer=_complete,
)
