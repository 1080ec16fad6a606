"""Unit tests for slash command registry."""

from __future__ import annotations

from pathlib import Path

from vaultpress.commands import COMMANDS
from vaultpress.configuration import ConfigurationBundle
from vaultpress.slash_commands import (
    CommandError,
    CommandRouter,
    SlashCommand,
    SlashCommandContext,
    render_help_table,
    render_rich,
)


def test_router_handles_registered_command(tmp_path: Path):
    config = ConfigurationBundle(vault_dir=tmp_path, status="ready")
    router = CommandRouter(config)
    captured = {}

    def handler(context: SlashCommandContext, args: list[str]) -> str:
        captured["context"] = context
        return f"echo:{' '.join(args)}"

    router.register(SlashCommand(name="echo", description="Echo args", handler=handler))
    result = router.handle("ECHO", ["hello", "world"])

    assert result == "echo:hello world"
    assert captured["context"].config is config
    assert "echo" in router.command_names


def test_router_reports_unknown_command(tmp_path: Path):
    router = CommandRouter(ConfigurationBundle(vault_dir=tmp_path, status="ready"))

    result = router.handle("deploy", [])

    assert result == "[router] unknown command '/deploy'. Use /help to list commands."


def test_render_help_table_lists_commands(tmp_path: Path):
    config = ConfigurationBundle(vault_dir=tmp_path, status="ready")
    router = CommandRouter(config)
    router.register(SlashCommand(name="status", description="Show status", handler=lambda *_: ""))
    router.register(SlashCommand(name="help", description="Show help", handler=lambda *_: ""))

    output = render_help_table(router.commands())

    assert "/status" in output
    assert "Show status" in output


def test_render_rich_produces_ansi(tmp_path: Path):
    def _render(console):
        console.print("hello", style="bold red")

    ansi = render_rich(_render)

    assert "\x1b[" in ansi  # contains ANSI escape sequence


def test_complete_delegates_to_command_completer(tmp_path: Path):
    router = CommandRouter(ConfigurationBundle(vault_dir=tmp_path, status="ready"))
    seen = {}

    def completer(context, args, fragment):
        seen["args"] = args
        return [f"{fragment}-done"]

    router.register(
        SlashCommand(name="pick", description="Pick", handler=lambda *_: "", completer=completer)
    )
    router.register(SlashCommand(name="plain", description="Plain", handler=lambda *_: ""))

    assert router.complete("pick", ["add"], "no") == ["no-done"]
    assert seen["args"] == ["add"]
    assert router.complete("plain", [], "x") == []
    assert router.complete("missing", [], "x") == []


def test_dispatch_reports_command_errors_as_failures(tmp_path: Path):
    router = CommandRouter(ConfigurationBundle(vault_dir=tmp_path, status="ready"))

    def handler(context, args):
        raise CommandError("[flaky] nope")

    router.register(SlashCommand(name="flaky", description="Always fails", handler=handler))
    router.register(
        SlashCommand(name="chatty", description="Mentions failure", handler=lambda *_: "0 failed: fine")
    )

    assert router.dispatch("flaky", []) == (False, "[flaky] nope")
    assert router.handle("flaky", []) == "[flaky] nope"
    assert router.dispatch("chatty", []) == (True, "0 failed: fine")
    assert router.dispatch("deploy", [])[0] is False


def test_builtin_commands_registered(tmp_path: Path):
    router = CommandRouter(ConfigurationBundle(vault_dir=tmp_path, status="ready"))
    for command in COMMANDS:
        router.register(command)

    assert list(router.command_names) == ["config", "help", "paths", "publish", "status"]
    assert router.handle("help", ["publish"]).startswith("/publish: ")
    assert router.complete("help", [], "pa") == ["paths"]
    assert router.dispatch("help", ["deploy"]) == (False, "[help] unknown command '/deploy'.")
