"""Slash command for publishing the vault selection to GitHub."""

from __future__ import annotations

from typing import List

from rich.console import Console
from rich.table import Table

from ..publish import PublishError, Publisher, PublishSettings
from ..publish.runtime import build_publisher
from ..slash_commands import CommandError, SlashCommand, SlashCommandContext, render_rich

DIFF_PREVIEW_ROWS = 50


def _handler(context: SlashCommandContext, args: List[str]) -> str:
    """Publish the selection or inspect what a publish would change."""

    if not args:
        return _show_status(context)

    subcommand = args[0].lower()

    if subcommand == "status":
        return _show_status(context)
    elif subcommand in {"now", "run", "push"}:
        return _run_publish(context)
    elif subcommand in {"diff", "plan"}:
        return _show_diff(context)
    elif subcommand == "help":
        return _show_help()
    else:
        raise CommandError(
            f"[publish] Unknown subcommand '{subcommand}'. Use /publish help for usage."
        )


def publisher_for(context: SlashCommandContext) -> Publisher:
    """Return the shared publisher, building one from configuration if needed."""

    publisher = context.metadata.get("publisher")
    if publisher is None:
        publisher = build_publisher(context.config)
        context.metadata["publisher"] = publisher
    return publisher


def _show_status(context: SlashCommandContext) -> str:
    publisher = publisher_for(context)
    settings: PublishSettings = publisher.settings
    scheduler = context.metadata.get("scheduler")

    def _render(console: Console) -> None:
        table = Table(title="Publish Status", show_header=False)
        table.add_column("Property", style="bold")
        table.add_column("Value", overflow="fold")

        table.add_row("Repository", settings.repository_url or "(not configured)")
        table.add_row("Branch", settings.branch or "(not configured)")
        table.add_row("Target folder", settings.folder or "(repository root)")
        table.add_row("Selected paths", str(len(settings.selected_paths)))
        missing = settings.missing_fields()
        table.add_row("Ready", "yes" if not missing else "no: " + ", ".join(missing))

        if scheduler is not None and scheduler.running:
            table.add_row("Schedule", f"every {settings.interval_minutes:g} min")
        elif settings.interval_minutes > 0:
            table.add_row("Schedule", f"every {settings.interval_minutes:g} min (not running)")
        else:
            table.add_row("Schedule", "disabled")

        last = publisher.last_success
        table.add_row("Last success", last.isoformat() if last else "(never)")
        table.add_row("Last commit", publisher.last_commit or "(none)")

        console.print(table)

    return render_rich(_render)


def _run_publish(context: SlashCommandContext) -> str:
    publisher = publisher_for(context)
    try:
        outcome = publisher.publish()
    except PublishError as exc:
        raise CommandError(f"[publish] Publish failed: {exc}") from exc

    if outcome.skipped:
        return "[publish] Skipped: another publish is already in progress."
    return f"[publish] {outcome.summary().capitalize()}."


def _show_diff(context: SlashCommandContext) -> str:
    publisher = publisher_for(context)
    try:
        plan = publisher.plan()
    except PublishError as exc:
        raise CommandError(f"[publish] Cannot compute changes: {exc}") from exc

    if not plan.has_changes:
        return (
            f"[publish] No changes: {len(plan.local_entries)} file(s) already match "
            f"{publisher.settings.branch} at {plan.commit_sha[:7]}."
        )

    def _render(console: Console) -> None:
        console.print(f"[bold]Pending changes[/bold] ({plan.summary()})\n")
        table = Table(show_header=True)
        table.add_column("Action", style="cyan", no_wrap=True)
        table.add_column("Path", overflow="fold")
        for mutation in plan.mutations[:DIFF_PREVIEW_ROWS]:
            style = "green" if mutation.kind.value == "upsert" else "red"
            table.add_row(f"[{style}]{mutation.kind.value}[/{style}]", mutation.path)
        console.print(table)
        if len(plan.mutations) > DIFF_PREVIEW_ROWS:
            console.print(f"[dim]... and {len(plan.mutations) - DIFF_PREVIEW_ROWS} more[/dim]")

    return render_rich(_render)


def _show_help() -> str:
    return "\n".join(
        [
            "[publish] Usage:",
            "  /publish           Show publish configuration and last result",
            "  /publish now       Publish the selection as one commit",
            "  /publish diff      List the changes a publish would make",
            "  /publish help      Show this message",
        ]
    )


COMMAND = SlashCommand(
    name="publish",
    description="Publish selected vault files to the configured GitHub branch.",
    handler=_handler,
)
