"""Shared fixtures: an in-memory stand-in for the GitHub Git Data API."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

from vaultpress.publish import RemoteApiError, git_blob_sha1


class FakeGitHub:
    """Keeps one branch as ``{path: content}`` snapshots keyed by commit sha."""

    def __init__(self, files: Optional[Dict[str, str]] = None, branch: str = "main") -> None:
        self.branch = branch
        self.trees: Dict[str, Dict[str, str]] = {}
        self.commits: Dict[str, Dict[str, Any]] = {}
        self.calls: List[str] = []
        self.fail_update_ref = False
        self.truncated = False
        root = self._store_tree(dict(files or {}))
        self.head = self._store_commit(root, [])

    @property
    def files(self) -> Dict[str, str]:
        return dict(self.trees[self.commits[self.head]["tree"]])

    @property
    def writes(self) -> List[str]:
        return [call for call in self.calls if call in {"create-tree", "create-commit", "update-ref"}]

    def _store_tree(self, files: Dict[str, str]) -> str:
        sha = f"tree{len(self.trees):04d}"
        self.trees[sha] = files
        return sha

    def _store_commit(self, tree: str, parents: List[str]) -> str:
        sha = f"commit{len(self.commits):04d}"
        self.commits[sha] = {"tree": tree, "parents": list(parents)}
        return sha

    def get_ref(self, branch: str) -> str:
        self.calls.append("get-ref")
        if branch != self.branch:
            raise RemoteApiError("get-ref", "Not Found", status=404)
        return self.head

    def get_commit(self, commit_sha: str) -> str:
        self.calls.append("get-commit")
        return self.commits[commit_sha]["tree"]

    def get_tree(self, tree_sha: str) -> List[Dict[str, Any]]:
        self.calls.append("get-tree")
        if self.truncated:
            raise RemoteApiError("get-tree", "tree listing was truncated by the API")
        items: List[Dict[str, Any]] = []
        folders = set()
        for path, content in sorted(self.trees[tree_sha].items()):
            parts = path.split("/")
            for depth in range(1, len(parts)):
                folders.add("/".join(parts[:depth]))
            items.append({"path": path, "mode": "100644", "type": "blob", "sha": git_blob_sha1(content)})
        items.extend({"path": folder, "mode": "040000", "type": "tree", "sha": "x"} for folder in folders)
        return items

    def create_tree(self, base_tree: str, entries: List[Dict[str, Any]]) -> str:
        self.calls.append("create-tree")
        self.last_tree_entries = list(entries)
        files = dict(self.trees[base_tree])
        for entry in entries:
            if "content" in entry:
                files[entry["path"]] = entry["content"]
            else:
                assert entry["sha"] is None
                files.pop(entry["path"], None)
        return self._store_tree(files)

    def create_commit(self, message, tree, parents, author, committer=None) -> str:
        self.calls.append("create-commit")
        self.last_commit_message = message
        return self._store_commit(tree, list(parents))

    def update_ref(self, branch: str, commit_sha: str, force: bool = False) -> None:
        self.calls.append("update-ref")
        assert force is False
        if self.fail_update_ref or self.head not in self.commits[commit_sha]["parents"]:
            raise RemoteApiError("update-ref", "Update is not a fast forward", status=422)
        self.head = commit_sha


@pytest.fixture(autouse=True)
def _restore_vaultpress_logger():
    logger = logging.getLogger("vaultpress")
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield
    for handler in list(logger.handlers):
        if handler not in handlers:
            logger.removeHandler(handler)
            handler.close()
    logger.setLevel(level)
    logger.propagate = propagate


@pytest.fixture
def fake_github() -> FakeGitHub:
    return FakeGitHub()


@pytest.fixture
def vault(tmp_path: Path) -> Path:
    vault_dir = tmp_path / "vault"
    (vault_dir / "docs").mkdir(parents=True)
    (vault_dir / "docs" / "a.md").write_text("alpha\n", encoding="utf-8")
    (vault_dir / "docs" / "b.md").write_text("beta\n", encoding="utf-8")
    (vault_dir / "index.md").write_text("# Index\n", encoding="utf-8")
    return vault_dir
