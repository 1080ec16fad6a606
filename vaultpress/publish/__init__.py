"""Publish a selection of vault files to a GitHub branch."""

from __future__ import annotations

from .errors import ConfigurationError, LocalReadError, PublishError, RemoteApiError
from .github import GitHubClient
from .hashing import git_blob_sha1
from .publisher import PublishOutcome, PublishPlan, Publisher
from .reconcile import (
    MutationKind,
    RemoteEntry,
    TreeMutation,
    compute_mutations,
    remote_entries_from_tree,
    to_tree_entries,
)
from .scheduler import PublishScheduler
from .selection import (
    ItemKind,
    LocalEntry,
    LocalStorage,
    SelectedItem,
    VaultStorage,
    collect_local_entries,
    search_paths,
)
from .settings import PublishSettings, RepositoryTarget, parse_repository_url
from .state import PublishState, PublishStateStore

__all__ = [
    # Errors
    "PublishError",
    "ConfigurationError",
    "LocalReadError",
    "RemoteApiError",
    # Hashing
    "git_blob_sha1",
    # Selection
    "ItemKind",
    "SelectedItem",
    "LocalEntry",
    "LocalStorage",
    "VaultStorage",
    "collect_local_entries",
    "search_paths",
    # Reconcile
    "MutationKind",
    "RemoteEntry",
    "TreeMutation",
    "compute_mutations",
    "remote_entries_from_tree",
    "to_tree_entries",
    # Remote
    "GitHubClient",
    # Publisher
    "Publisher",
    "PublishOutcome",
    "PublishPlan",
    "PublishScheduler",
    # Settings & state
    "PublishSettings",
    "RepositoryTarget",
    "parse_repository_url",
    "PublishState",
    "PublishStateStore",
]
