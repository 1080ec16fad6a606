"""Publish a vault selection to a repository branch as a single commit."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
import logging
import threading
from typing import Any, Callable, Dict, List, Mapping, Optional

from .github import GitHubClient
from .reconcile import (
    MutationKind,
    RemoteEntry,
    TreeMutation,
    compute_mutations,
    remote_entries_from_tree,
    summarize,
    to_tree_entries,
)
from .selection import LocalEntry, LocalStorage, collect_local_entries
from .settings import PublishSettings, RepositoryTarget
from .state import PublishState, PublishStateStore

logger = logging.getLogger("vaultpress.publish.publisher")

_TARGET_LOCKS: Dict[str, threading.Lock] = {}
_TARGET_LOCKS_GUARD = threading.Lock()


def _target_lock(key: str) -> threading.Lock:
    with _TARGET_LOCKS_GUARD:
        lock = _TARGET_LOCKS.get(key)
        if lock is None:
            lock = threading.Lock()
            _TARGET_LOCKS[key] = lock
        return lock


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class PublishPlan:
    """Dry-run result: what a publish would change on the branch."""

    commit_sha: str
    tree_sha: str
    local_entries: List[LocalEntry] = field(default_factory=list)
    remote_entries: Dict[str, RemoteEntry] = field(default_factory=dict)
    mutations: List[TreeMutation] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.mutations)

    @property
    def upserts(self) -> List[TreeMutation]:
        return [m for m in self.mutations if m.kind is MutationKind.UPSERT]

    @property
    def deletions(self) -> List[TreeMutation]:
        return [m for m in self.mutations if m.kind is MutationKind.DELETE]

    def summary(self) -> str:
        return summarize(self.mutations)


@dataclass
class PublishOutcome:
    """Result of a publish call."""

    changed: bool
    commit_sha: Optional[str] = None
    upserts: int = 0
    deletions: int = 0
    skipped: bool = False
    timestamp: Optional[datetime] = None

    def summary(self) -> str:
        if self.skipped:
            return "another publish is already in progress"
        if not self.changed:
            return "already up to date"
        return f"committed {self.commit_sha} ({self.upserts} uploaded, {self.deletions} deleted)"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "changed": self.changed,
            "commit_sha": self.commit_sha,
            "upserts": self.upserts,
            "deletions": self.deletions,
            "skipped": self.skipped,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }


class Publisher:
    """Mirror the selected vault files into the target folder of a branch.

    ``publish()`` reads the branch head, diffs the local selection against the
    head tree and, when anything differs, writes one tree, one commit and a
    non-force ref update. Failures propagate to the caller and leave the
    recorded success timestamp untouched.
    """

    def __init__(
        self,
        settings: PublishSettings,
        storage: LocalStorage,
        client: Optional[GitHubClient] = None,
        state_store: Optional[PublishStateStore] = None,
        clock: Optional[Callable[[], datetime]] = None,
        env: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.settings = settings
        self.storage = storage
        self.state_store = state_store
        self._client = client
        self._clock = clock or _utcnow
        self._env = env
        self._state = state_store.load() if state_store else PublishState()

    @property
    def last_success(self) -> Optional[datetime]:
        return self._state.last_success

    @property
    def last_commit(self) -> Optional[str]:
        return self._state.last_commit

    def plan(self) -> PublishPlan:
        """Compute the mutations a publish would apply, without writing."""

        target = self.settings.validate(self._env)
        return self._plan(target)

    def publish(self) -> PublishOutcome:
        target = self.settings.validate(self._env)
        lock_key = f"{target.host}/{target.slug}@{self.settings.branch}"
        lock = _target_lock(lock_key)
        if not lock.acquire(blocking=False):
            logger.warning("Publish to %s already in progress; skipping.", lock_key)
            return PublishOutcome(changed=False, skipped=True)
        try:
            return self._publish(target)
        finally:
            lock.release()

    def _publish(self, target: RepositoryTarget) -> PublishOutcome:
        plan = self._plan(target)

        if not plan.has_changes:
            timestamp = self._record_success(plan.commit_sha)
            logger.info("Nothing to publish to %s@%s.", target.slug, self.settings.branch)
            return PublishOutcome(changed=False, timestamp=timestamp)

        client = self._client_for(target)
        new_tree = client.create_tree(plan.tree_sha, to_tree_entries(plan.mutations))
        identity = self.settings.identity
        commit_sha = client.create_commit(
            self.settings.commit_message,
            new_tree,
            [plan.commit_sha],
            identity,
            identity,
        )
        client.update_ref(self.settings.branch, commit_sha, force=False)

        timestamp = self._record_success(commit_sha)
        outcome = PublishOutcome(
            changed=True,
            commit_sha=commit_sha,
            upserts=len(plan.upserts),
            deletions=len(plan.deletions),
            timestamp=timestamp,
        )
        logger.info(
            "Published to %s@%s: %s",
            target.slug,
            self.settings.branch,
            outcome.summary(),
        )
        return outcome

    def _plan(self, target: RepositoryTarget) -> PublishPlan:
        local_entries = collect_local_entries(
            self.settings.selected_paths,
            self.storage,
            folder=self.settings.folder,
            max_workers=self.settings.read_workers,
        )

        client = self._client_for(target)
        commit_sha = client.get_ref(self.settings.branch)
        tree_sha = client.get_commit(commit_sha)
        remote_entries = remote_entries_from_tree(client.get_tree(tree_sha), self.settings.folder)
        mutations = compute_mutations(local_entries, remote_entries)

        return PublishPlan(
            commit_sha=commit_sha,
            tree_sha=tree_sha,
            local_entries=local_entries,
            remote_entries=remote_entries,
            mutations=mutations,
        )

    def _client_for(self, target: RepositoryTarget) -> GitHubClient:
        if self._client is None:
            self._client = GitHubClient(
                target.owner,
                target.repo,
                self.settings.resolve_token(self._env),
                api_url=self.settings.effective_api_url(target),
                timeout=self.settings.timeout,
            )
        return self._client

    def _record_success(self, commit_sha: Optional[str]) -> datetime:
        timestamp = self._clock()
        self._state.last_success = timestamp
        if commit_sha:
            self._state.last_commit = commit_sha
        if self.state_store is not None:
            try:
                self.state_store.save(self._state)
            except OSError as exc:
                logger.error(
                    "Publish succeeded but state could not be saved to %s: %s",
                    self.state_store.path,
                    exc,
                )
        return timestamp


__all__ = ["Publisher", "PublishOutcome", "PublishPlan"]
