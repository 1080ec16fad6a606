"""Diff local entries against a remote tree listing."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from .hashing import git_blob_sha1
from .selection import LocalEntry, normalize_folder

logger = logging.getLogger("vaultpress.publish.reconcile")

REGULAR_FILE_MODE = "100644"


class MutationKind(str, Enum):
    UPSERT = "upsert"
    DELETE = "delete"


@dataclass(frozen=True)
class RemoteEntry:
    """A blob already present under the target folder on the branch."""

    remote_path: str
    content_hash: str


@dataclass(frozen=True)
class TreeMutation:
    """A single change to apply on top of the base tree."""

    kind: MutationKind
    path: str
    content: Optional[str] = None

    @classmethod
    def upsert(cls, path: str, content: str) -> "TreeMutation":
        return cls(kind=MutationKind.UPSERT, path=path, content=content)

    @classmethod
    def delete(cls, path: str) -> "TreeMutation":
        return cls(kind=MutationKind.DELETE, path=path)

    def to_tree_entry(self) -> Dict[str, Any]:
        entry: Dict[str, Any] = {
            "path": self.path,
            "mode": REGULAR_FILE_MODE,
            "type": "blob",
        }
        if self.kind is MutationKind.UPSERT:
            entry["content"] = self.content or ""
        else:
            # A null sha removes the path from the base tree.
            entry["sha"] = None
        return entry


def in_prefix(path: str, prefix: str) -> bool:
    """Whether ``path`` lies in the mirrored region rooted at ``prefix``."""

    if not prefix:
        return True
    return path == prefix or path.startswith(prefix + "/")


def remote_entries_from_tree(
    items: Iterable[Mapping[str, Any]],
    folder: str = "",
) -> Dict[str, RemoteEntry]:
    """Index the blob entries of a recursive tree listing that fall under ``folder``.

    An empty folder selects every blob on the branch.
    """

    prefix = normalize_folder(folder)
    entries: Dict[str, RemoteEntry] = {}
    for item in items:
        path = item.get("path")
        if item.get("type") != "blob" or not path:
            continue
        if not in_prefix(path, prefix):
            continue
        entries[path] = RemoteEntry(remote_path=path, content_hash=str(item.get("sha") or ""))
    return entries


def compute_mutations(
    local_entries: Sequence[LocalEntry],
    remote_entries: Mapping[str, RemoteEntry],
) -> List[TreeMutation]:
    """Return the minimal mutation list turning the remote region into a mirror."""

    mutations: List[TreeMutation] = []
    local_paths = set()

    for entry in local_entries:
        local_paths.add(entry.remote_path)
        remote = remote_entries.get(entry.remote_path)
        if remote is not None and remote.content_hash == git_blob_sha1(entry.content):
            continue
        mutations.append(TreeMutation.upsert(entry.remote_path, entry.content))

    for path in remote_entries:
        if path not in local_paths:
            mutations.append(TreeMutation.delete(path))

    logger.debug(
        "Reconciled %d local / %d remote file(s) into %d mutation(s).",
        len(local_entries),
        len(remote_entries),
        len(mutations),
    )
    return mutations


def to_tree_entries(mutations: Iterable[TreeMutation]) -> List[Dict[str, Any]]:
    return [mutation.to_tree_entry() for mutation in mutations]


def summarize(mutations: Sequence[TreeMutation]) -> str:
    upserts = sum(1 for m in mutations if m.kind is MutationKind.UPSERT)
    deletions = len(mutations) - upserts
    parts = []
    if upserts:
        parts.append(f"{upserts} to upload")
    if deletions:
        parts.append(f"{deletions} to delete")
    return ", ".join(parts) if parts else "no changes"


__all__ = [
    "MutationKind",
    "RemoteEntry",
    "TreeMutation",
    "REGULAR_FILE_MODE",
    "in_prefix",
    "remote_entries_from_tree",
    "compute_mutations",
    "to_tree_entries",
    "summarize",
]
