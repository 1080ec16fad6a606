"""Slash command registry."""

from __future__ import annotations

from .config import COMMAND as CONFIG_COMMAND
from .help import COMMAND as HELP_COMMAND
from .paths import COMMAND as PATHS_COMMAND
from .publish import COMMAND as PUBLISH_COMMAND
from .status import COMMAND as STATUS_COMMAND

COMMANDS = [
    STATUS_COMMAND,
    HELP_COMMAND,
    CONFIG_COMMAND,
    PATHS_COMMAND,
    PUBLISH_COMMAND,
]

__all__ = ["COMMANDS"]
