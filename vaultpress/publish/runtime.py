"""Wire a :class:`Publisher` from a loaded configuration bundle."""

from __future__ import annotations

from pathlib import Path
from typing import Mapping, Optional

from ..configuration import RUNTIME_DIRNAME, ConfigurationBundle
from .github import GitHubClient
from .publisher import Publisher
from .selection import VaultStorage
from .settings import PublishSettings
from .state import PublishStateStore


def state_path(vault_dir: Path, settings: PublishSettings) -> Path:
    path = Path(settings.state_file).expanduser()
    if path.is_absolute():
        return path
    return vault_dir / RUNTIME_DIRNAME / path


def build_publisher(
    bundle: ConfigurationBundle,
    client: Optional[GitHubClient] = None,
    env: Optional[Mapping[str, str]] = None,
) -> Publisher:
    settings = PublishSettings.from_config(bundle.merged)
    return Publisher(
        settings,
        VaultStorage(bundle.vault_dir),
        client=client,
        state_store=PublishStateStore(state_path(bundle.vault_dir, settings)),
        env=env,
    )


__all__ = ["build_publisher", "state_path"]
