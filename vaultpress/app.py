# vaultpress/app.py
"""
Interactive shell for publishing an Obsidian-style vault to GitHub.

``python -m vaultpress`` opens a slash-command prompt; any arguments run a
single command instead, e.g. ``python -m vaultpress publish now``.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
try:
    import readline
except ImportError:  # pragma: no cover
    readline = None
import shlex
from shutil import get_terminal_size
import sys
from typing import List, Optional, Sequence, Tuple

from .agents import REGISTRY
from .commands import COMMANDS
from .configuration import (
    ConfigurationBundle,
    Diagnostic,
    load_runtime_configuration,
    resolve_vault_dir,
)
from .logging_utils import setup_logging
from .publish import PublishOutcome, PublishScheduler
from .publish.runtime import build_publisher
from .slash_commands import CommandRouter

REPO_ROOT = Path(__file__).resolve().parent.parent
logger = logging.getLogger("vaultpress")
TRUE_STRINGS = {"1", "true", "yes", "on"}
FALSE_STRINGS = {"0", "false", "no", "off"}
EXIT_WORDS = {"quit", "exit"}


def _log_path_within_vault(log_path: Path, vault_dir: Path) -> bool:
    try:
        log_path.relative_to(vault_dir)
        return True
    except ValueError:
        return False


def print_banner(vault_dir: Path) -> None:
    """Print the runtime header so operators know which vault is loaded."""

    terminal_width = get_terminal_size(fallback=(80, 24)).columns

    def _wide_banner() -> str:
        inner_width = 78
        title = "VAULTPRESS"
        slogan = "vault ◇ diff ◇ commit"

        def _line(content: str = "") -> str:
            return f"║{content.center(inner_width)}║"

        lines = [
            "╔" + "═" * inner_width + "╗",
            _line(),
            _line(title),
            _line(slogan),
            _line(),
            "╚" + "═" * inner_width + "╝",
        ]
        return "\n".join(lines)

    banner = _wide_banner() if terminal_width >= 80 else "Vaultpress"

    print(banner)
    print(f"Vault: {vault_dir}")
    print()


def _parse_env_flag(value: str, *, default: bool = True) -> bool:
    normalized = value.strip().lower()
    if normalized in TRUE_STRINGS:
        return True
    if normalized in FALSE_STRINGS:
        return False
    return default


def _resolve_ui_verbose(config_bundle: ConfigurationBundle) -> bool:
    """Resolve whether the shell prints the banner and startup report."""

    env_value = os.environ.get("VAULTPRESS_UI_VERBOSE")
    if env_value is not None:
        return _parse_env_flag(env_value)

    merged = config_bundle.merged or {}
    ui_cfg = merged.get("ui") or {}
    verbose_setting = ui_cfg.get("verbose")
    if verbose_setting is None:
        return True
    return bool(verbose_setting)


def _resolve_log_settings(config_bundle: ConfigurationBundle) -> tuple[str, bool]:
    logging_cfg = (config_bundle.merged or {}).get("logging") or {}
    env_level = os.environ.get("VAULTPRESS_LOG_LEVEL")
    level = (env_level or logging_cfg.get("level") or "INFO").upper()
    structured = logging_cfg.get("structured")
    return level, True if structured is None else bool(structured)


def _report_scheduled_publish(
    outcome: Optional[PublishOutcome],
    error: Optional[Exception],
) -> None:
    if outcome is not None:
        logger.info("Scheduled publish: %s", outcome.summary())


def start_scheduler(router: CommandRouter) -> Optional[PublishScheduler]:
    """Start periodic publishing when the configuration allows it."""

    stop_scheduler(router)
    publisher = router.metadata.get("publisher")
    if publisher is None:
        publisher = build_publisher(router.config)
        router.metadata["publisher"] = publisher

    settings = publisher.settings
    if not settings.is_complete():
        logger.info(
            "Periodic publish not started; missing %s.",
            ", ".join(settings.missing_fields()),
        )
        return None

    scheduler = PublishScheduler(
        publisher,
        settings.interval_minutes,
        on_result=_report_scheduled_publish,
    )
    if not scheduler.start():
        return None
    router.metadata["scheduler"] = scheduler
    return scheduler


def stop_scheduler(router: CommandRouter) -> None:
    scheduler = router.metadata.pop("scheduler", None)
    if scheduler is not None:
        scheduler.stop()


def build_router(config: ConfigurationBundle, *, mode: str = "interactive") -> CommandRouter:
    """Register every slash command against the loaded configuration."""

    router = CommandRouter(
        config,
        metadata={
            "mode": mode,
            "repo_root": str(REPO_ROOT),
        },
    )
    for command in COMMANDS:
        router.register(command)
    return router


def emit_configuration_report(config: ConfigurationBundle) -> None:
    """Print diagnostics so operators can correct issues quickly."""

    problems = [diag for diag in config.diagnostics if diag.level != "info"]
    if not problems:
        print(
            f"[config] Loaded {len(config.files_loaded)} file(s) "
            f"from repo and vault config directories."
        )
        return

    print("[config] Diagnostics:")
    for diag in problems:
        prefix = diag.source or config.vault_dir
        print(f"  - ({diag.level.upper()}) {diag.message} [{prefix}]")


def split_command_line(command_line: str) -> List[str]:
    """Split a command line like a shell would, falling back to whitespace."""

    try:
        return shlex.split(command_line)
    except ValueError:
        return command_line.split()


def configure_autocomplete(router: CommandRouter) -> None:
    """Enable readline tab completion for commands and their arguments."""

    if readline is None:
        return

    def _candidates() -> List[str]:
        buffer = readline.get_line_buffer()
        if not buffer.startswith("/"):
            return []
        begin = readline.get_begidx()
        words = buffer[1:begin].split()
        fragment = buffer[begin:readline.get_endidx()]
        if not words:
            stem = fragment[1:] if fragment.startswith("/") else fragment
            return [f"/{cmd}" for cmd in router.command_names if cmd.startswith(stem)]
        return router.complete(words[0], words[1:], fragment)

    matches: List[str] = []

    def completer(text: str, state: int):
        if state == 0:
            matches[:] = _candidates()
        if state < len(matches):
            return matches[state]
        return None

    readline.set_completer(completer)
    readline.parse_and_bind("tab: complete")
    readline.set_completer_delims(" \t")


def execute_cli_command(
    command_line: str,
    router: CommandRouter,
    *,
    suppress_output: bool = False,
) -> Tuple[bool, str]:
    """Run one slash command (without its leading ``/``) and print the result.

    Returns ``(succeeded, output)``.
    """

    parts = split_command_line(command_line.strip())
    if not parts:
        return True, ""

    command, args = parts[0], parts[1:]
    ok, result = router.dispatch(command, args)
    if not suppress_output:
        print(result)
    if ok:
        logger.info("Executed CLI command: %s", command_line.strip())
    else:
        logger.warning("CLI command failed: %s", command_line.strip())
    return ok, result


def bootstrap_agents(config_bundle: ConfigurationBundle) -> None:
    """Run the enabled startup agents and keep their records on the bundle."""

    config_bundle.agent_state.update(REGISTRY.run(config_bundle))


def prepare_runtime(
    vault_dir: Optional[Path] = None,
    *,
    mode: str = "interactive",
    console_logging: bool = False,
) -> CommandRouter:
    """Load configuration, set up logging and agents, and build the router."""

    config_bundle = load_runtime_configuration(vault_dir or resolve_vault_dir())
    level, structured = _resolve_log_settings(config_bundle)
    log_path = setup_logging(
        config_bundle.vault_dir,
        level,
        structured=structured,
        console=console_logging,
    )
    config_bundle.log_path = log_path
    if not _log_path_within_vault(log_path, config_bundle.vault_dir):
        config_bundle.diagnostics.append(
            Diagnostic(
                level="warning",
                message=(
                    "Vault log directory is not writable; "
                    f"logging to fallback path '{log_path}'."
                ),
                source=log_path,
            )
        )
    logger.info("Logging initialized at %s", log_path)
    bootstrap_agents(config_bundle)
    return build_router(config_bundle, mode=mode)


def run_single_command(argv: Sequence[str], vault_dir: Optional[Path] = None) -> int:
    """Run ``argv`` as one slash command and return a process exit code."""

    router = prepare_runtime(vault_dir, mode="single command", console_logging=True)
    command_line = " ".join(shlex.quote(arg) for arg in argv)
    if command_line.startswith("/"):
        command_line = command_line[1:]
    ok, _ = execute_cli_command(command_line, router)
    return 0 if ok else 1


def run_shell(vault_dir: Optional[Path] = None) -> int:
    """Interactive slash-command loop with the periodic publisher running."""

    router = prepare_runtime(vault_dir)
    ui_verbose = _resolve_ui_verbose(router.config)
    if ui_verbose:
        print_banner(router.config.vault_dir)
        emit_configuration_report(router.config)
        print("Type /help for commands, /quit to leave.")
        print()
    else:
        print(f"[vaultpress] {router.config.vault_dir} ready (quiet mode)")
    logger.info("UI verbosity: %s", "enabled" if ui_verbose else "disabled")

    def _on_config_reload(bundle: ConfigurationBundle) -> None:
        router.metadata["publisher"] = build_publisher(bundle)
        start_scheduler(router)

    router.metadata["on_config_reload"] = _on_config_reload
    start_scheduler(router)
    configure_autocomplete(router)

    try:
        while True:
            try:
                raw_line = input("> ")
            except (EOFError, KeyboardInterrupt):
                print("\n[Exiting vaultpress]")
                break

            line = raw_line.strip()
            if not line:
                continue

            command_line = line[1:] if line.startswith("/") else line
            if command_line.lower() in EXIT_WORDS:
                print("[Goodbye]")
                break

            execute_cli_command(command_line, router)
    finally:
        stop_scheduler(router)
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Entry point for ``python -m vaultpress`` and the ``vaultpress`` script."""

    args = list(sys.argv[1:] if argv is None else argv)
    if args:
        return run_single_command(args)
    return run_shell()
