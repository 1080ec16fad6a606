"""Resolve selected vault paths into the local side of a publish."""

from __future__ import annotations

from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
import logging
import posixpath
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from ..configuration import RUNTIME_DIRNAME
from .errors import LocalReadError

logger = logging.getLogger("vaultpress.publish.selection")

DEFAULT_SEARCH_LIMIT = 10
VAULT_ROOT = "/"


class ItemKind(str, Enum):
    """Kinds of selectable vault items."""

    FILE = "file"
    FOLDER = "folder"


@dataclass(frozen=True)
class SelectedItem:
    """A selected path after it has been looked up in the vault."""

    path: str
    kind: ItemKind


@dataclass(frozen=True)
class LocalEntry:
    """One local file and the repository path it publishes to."""

    local_path: str
    remote_path: str
    content: str


def normalize_path(path: str) -> str:
    """Return ``path`` with ``/`` separators, ``..`` collapsed and no outer slashes.

    The vault root (``/``, ``.``) normalizes to ``""``. A ``..`` that climbs
    above the root is kept so the storage layer can reject it.
    """

    cleaned = str(path).replace("\\", "/")
    if not cleaned.strip():
        return ""
    parts = [part for part in posixpath.normpath(cleaned).split("/") if part and part != "."]
    return "/".join(parts)


def normalize_selection(path: str) -> str:
    """Normalize a selected path, keeping the vault root as :data:`VAULT_ROOT`.

    Blank entries normalize to ``""`` and are meant to be skipped.
    """

    if not str(path).strip():
        return ""
    return normalize_path(path) or VAULT_ROOT


def normalize_folder(folder: Optional[str]) -> str:
    """Normalize the repository target folder; ``""`` means the branch root."""

    return normalize_path(folder or "")


def remote_path_for(local_path: str, folder: str) -> str:
    local = normalize_path(local_path)
    prefix = normalize_folder(folder)
    return f"{prefix}/{local}" if prefix else local


class LocalStorage(ABC):
    """Read access to the files a publish can select."""

    @abstractmethod
    def kind(self, path: str) -> Optional[ItemKind]:
        """Return the item kind at ``path`` or ``None`` when it does not exist."""

    @abstractmethod
    def read_file(self, path: str) -> str:
        """Return the text content of the file at ``path``."""

    @abstractmethod
    def list_descendants(self, folder: str) -> List[str]:
        """Return every file below ``folder``, recursively."""


class VaultStorage(LocalStorage):
    """Filesystem-backed storage rooted at the vault directory."""

    def __init__(self, vault_dir: Path) -> None:
        self.vault_dir = Path(vault_dir)

    def _resolve(self, path: str) -> Path:
        relative = normalize_path(path)
        root = self.vault_dir.resolve()
        target = (root / relative).resolve() if relative else root
        try:
            target.relative_to(root)
        except ValueError:
            raise LocalReadError(path, "path escapes the vault directory") from None
        return target

    def _relative(self, target: Path) -> str:
        return target.relative_to(self.vault_dir.resolve()).as_posix()

    def kind(self, path: str) -> Optional[ItemKind]:
        target = self._resolve(path)
        if target.is_file():
            return ItemKind.FILE
        if target.is_dir():
            return ItemKind.FOLDER
        return None

    def read_file(self, path: str) -> str:
        target = self._resolve(path)
        try:
            raw = target.read_bytes()
        except FileNotFoundError:
            raise LocalReadError(path, "file no longer exists") from None
        except OSError as exc:
            raise LocalReadError(path, exc.strerror or str(exc)) from exc
        # Decode without newline translation so hashes match the bytes on disk.
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError:
            raise LocalReadError(path, "content is not valid UTF-8 text") from None

    def list_descendants(self, folder: str) -> List[str]:
        target = self._resolve(folder)
        if not target.is_dir():
            raise LocalReadError(folder, "folder no longer exists")
        # Files under the runtime directory (overrides, state) are never published.
        runtime_dir = self.vault_dir.resolve() / RUNTIME_DIRNAME
        return sorted(
            self._relative(child)
            for child in target.rglob("*")
            if child.is_file() and runtime_dir not in child.parents
        )

    def walk(self) -> Iterator[Tuple[str, ItemKind]]:
        """Yield every non-hidden file and folder in the vault."""

        root = self.vault_dir.resolve()
        if not root.is_dir():
            return
        for child in sorted(root.rglob("*")):
            relative = self._relative(child)
            if _is_hidden(relative):
                continue
            if child.is_dir():
                yield relative, ItemKind.FOLDER
            elif child.is_file():
                yield relative, ItemKind.FILE


def _is_hidden(relative: str) -> bool:
    return any(part.startswith(".") for part in relative.split("/"))


def resolve_selection(paths: Iterable[str], storage: LocalStorage) -> List[SelectedItem]:
    """Look up every selected path; a missing path aborts the publish.

    :data:`VAULT_ROOT` selects the whole vault as one folder.
    """

    items: List[SelectedItem] = []
    for raw in paths:
        path = normalize_selection(raw)
        if not path:
            continue
        if path == VAULT_ROOT:
            items.append(SelectedItem(path="", kind=ItemKind.FOLDER))
            continue
        kind = storage.kind(path)
        if kind is None:
            raise LocalReadError(path, "selected path does not exist in the vault")
        items.append(SelectedItem(path=path, kind=kind))
    return items


def plan_local_paths(
    items: Sequence[SelectedItem],
    storage: LocalStorage,
    folder: str = "",
) -> Dict[str, str]:
    """Expand folders and map each file to its remote path.

    A file reachable more than once (directly and through a selected folder)
    keeps the last-seen mapping.
    """

    planned: Dict[str, str] = {}
    for item in items:
        if item.kind is ItemKind.FILE:
            candidates: Sequence[str] = [item.path]
        else:
            candidates = storage.list_descendants(item.path)
        for candidate in candidates:
            local_path = normalize_path(candidate)
            planned[remote_path_for(local_path, folder)] = local_path
    return planned


def collect_local_entries(
    selected_paths: Iterable[str],
    storage: LocalStorage,
    folder: str = "",
    max_workers: int = 4,
) -> List[LocalEntry]:
    """Build the deduplicated list of local entries for a publish."""

    items = resolve_selection(selected_paths, storage)
    planned = plan_local_paths(items, storage, folder)
    remote_paths = list(planned.keys())
    local_paths = [planned[remote] for remote in remote_paths]

    def _read(path: str) -> str:
        try:
            return storage.read_file(path)
        except LocalReadError:
            raise
        except (OSError, UnicodeDecodeError) as exc:
            raise LocalReadError(path, str(exc)) from exc

    if max_workers > 1 and len(local_paths) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            contents = list(executor.map(_read, local_paths))
    else:
        contents = [_read(path) for path in local_paths]

    entries = [
        LocalEntry(local_path=local, remote_path=remote, content=content)
        for remote, local, content in zip(remote_paths, local_paths, contents)
    ]
    logger.debug(
        "Collected %d local file(s) from %d selected item(s).",
        len(entries),
        len(items),
    )
    return entries


def search_paths(
    storage: VaultStorage,
    query: str,
    exclude: Iterable[str] = (),
    limit: int = DEFAULT_SEARCH_LIMIT,
) -> List[str]:
    """Case-insensitive substring search over vault files and folders."""

    needle = query.strip().lower()
    if not needle or limit <= 0:
        return []
    excluded = {normalize_path(path) for path in exclude}
    results: List[str] = []
    for path, _kind in storage.walk():
        if path in excluded or needle not in path.lower():
            continue
        results.append(path)
        if len(results) >= limit:
            break
    return results


__all__ = [
    "ItemKind",
    "SelectedItem",
    "LocalEntry",
    "LocalStorage",
    "VaultStorage",
    "normalize_path",
    "normalize_selection",
    "VAULT_ROOT",
    "normalize_folder",
    "remote_path_for",
    "resolve_selection",
    "plan_local_paths",
    "collect_local_entries",
    "search_paths",
]
