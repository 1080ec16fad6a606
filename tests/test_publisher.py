"""End-to-end publish behaviour against the in-memory GitHub fake."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from vaultpress.publish import (
    ConfigurationError,
    LocalReadError,
    PublishSettings,
    PublishStateStore,
    Publisher,
    RemoteApiError,
)
from vaultpress.publish.publisher import _target_lock
from vaultpress.publish.selection import VaultStorage

from conftest import FakeGitHub


class _Clock:
    def __init__(self) -> None:
        self.now = datetime(2026, 3, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.now += timedelta(minutes=1)
        return self.now


def _settings(**overrides) -> PublishSettings:
    values = {
        "repository_url": "https://github.com/acme/notes",
        "token": "ghp_test",
        "folder": "site",
        "selected_paths": ("docs", "index.md"),
    }
    values.update(overrides)
    return PublishSettings(**values)


def _publisher(vault: Path, remote: FakeGitHub, tmp_path: Path, **overrides) -> Publisher:
    return Publisher(
        _settings(**overrides),
        VaultStorage(vault),
        client=remote,
        state_store=PublishStateStore(tmp_path / "state.json"),
        clock=_Clock(),
        env={},
    )


def test_first_publish_mirrors_selection(vault: Path, tmp_path: Path):
    remote = FakeGitHub({"README.md": "keep me"})
    publisher = _publisher(vault, remote, tmp_path)

    outcome = publisher.publish()

    assert outcome.changed is True
    assert outcome.upserts == 3
    assert outcome.deletions == 0
    assert outcome.commit_sha == remote.head
    assert remote.files == {
        "README.md": "keep me",
        "site/docs/a.md": "alpha\n",
        "site/docs/b.md": "beta\n",
        "site/index.md": "# Index\n",
    }
    assert remote.writes == ["create-tree", "create-commit", "update-ref"]
    assert remote.last_commit_message == "Publish vault to GitHub"


def test_second_publish_is_a_no_op_but_records_success(vault: Path, tmp_path: Path):
    remote = FakeGitHub()
    publisher = _publisher(vault, remote, tmp_path)

    first = publisher.publish()
    head = remote.head
    remote.calls.clear()
    second = publisher.publish()

    assert second.changed is False
    assert remote.head == head
    assert remote.writes == []
    assert second.timestamp > first.timestamp
    assert publisher.last_success == second.timestamp
    assert PublishStateStore(tmp_path / "state.json").load().last_success == second.timestamp


def test_removed_local_file_is_deleted_remotely(vault: Path, tmp_path: Path):
    remote = FakeGitHub({"site/docs/a.md": "alpha\n", "site/docs/old.md": "stale"})
    publisher = _publisher(vault, remote, tmp_path, selected_paths=("docs/a.md",))

    plan = publisher.plan()
    assert [(m.kind.value, m.path) for m in plan.mutations] == [("delete", "site/docs/old.md")]

    outcome = publisher.publish()

    assert (outcome.upserts, outcome.deletions) == (0, 1)
    assert remote.files == {"site/docs/a.md": "alpha\n"}


def test_files_outside_folder_are_untouched(vault: Path, tmp_path: Path):
    remote = FakeGitHub({"site2/x.md": "other", "site/gone.md": "bye", "notes.md": "root"})
    publisher = _publisher(vault, remote, tmp_path)

    publisher.publish()

    files = remote.files
    assert files["site2/x.md"] == "other"
    assert files["notes.md"] == "root"
    assert "site/gone.md" not in files


def test_only_changed_files_are_uploaded(vault: Path, tmp_path: Path):
    remote = FakeGitHub()
    publisher = _publisher(vault, remote, tmp_path)
    publisher.publish()

    (vault / "docs" / "b.md").write_text("beta v2\n", encoding="utf-8")
    outcome = publisher.publish()

    assert (outcome.upserts, outcome.deletions) == (1, 0)
    assert remote.last_tree_entries == [
        {"path": "site/docs/b.md", "mode": "100644", "type": "blob", "content": "beta v2\n"}
    ]


def test_empty_folder_mirrors_the_whole_branch(vault: Path, tmp_path: Path):
    remote = FakeGitHub({"README.md": "unrelated"})
    publisher = _publisher(vault, remote, tmp_path, folder="", selected_paths=("index.md",))

    publisher.publish()

    assert remote.files == {"index.md": "# Index\n"}


def test_folder_and_file_overlap_uploads_once(vault: Path, tmp_path: Path):
    remote = FakeGitHub()
    publisher = _publisher(vault, remote, tmp_path, selected_paths=("docs", "docs/a.md"))

    outcome = publisher.publish()

    assert outcome.upserts == 2
    assert [entry["path"] for entry in remote.last_tree_entries].count("site/docs/a.md") == 1


def test_rejected_ref_update_keeps_previous_timestamp(vault: Path, tmp_path: Path):
    remote = FakeGitHub()
    publisher = _publisher(vault, remote, tmp_path)
    first = publisher.publish()
    head = remote.head

    (vault / "index.md").write_text("# Changed\n", encoding="utf-8")
    remote.fail_update_ref = True
    with pytest.raises(RemoteApiError) as excinfo:
        publisher.publish()

    assert excinfo.value.call == "update-ref"
    assert remote.head == head
    assert publisher.last_success == first.timestamp


def test_missing_selected_path_fails_before_any_remote_call(vault: Path, tmp_path: Path):
    remote = FakeGitHub()
    publisher = _publisher(vault, remote, tmp_path, selected_paths=("docs", "missing.md"))

    with pytest.raises(LocalReadError):
        publisher.publish()

    assert remote.calls == []
    assert publisher.last_success is None


def test_incomplete_settings_raise_configuration_error(vault: Path, tmp_path: Path):
    remote = FakeGitHub()
    publisher = _publisher(vault, remote, tmp_path, token="")

    with pytest.raises(ConfigurationError, match="GITHUB_TOKEN"):
        publisher.publish()

    assert remote.calls == []


def test_concurrent_publish_to_same_target_is_skipped(vault: Path, tmp_path: Path):
    remote = FakeGitHub()
    publisher = _publisher(vault, remote, tmp_path)
    lock = _target_lock("github.com/acme/notes@main")

    assert lock.acquire(blocking=False)
    try:
        outcome = publisher.publish()
    finally:
        lock.release()

    assert outcome.skipped is True
    assert remote.calls == []
    assert publisher.last_success is None
    assert publisher.publish().changed is True


def test_state_is_restored_by_a_new_publisher(vault: Path, tmp_path: Path):
    remote = FakeGitHub()
    first = _publisher(vault, remote, tmp_path).publish()

    again = _publisher(vault, remote, tmp_path)

    assert again.last_success == first.timestamp
    assert again.last_commit == first.commit_sha


def test_malformed_repository_url_fails_before_any_remote_call(vault: Path, tmp_path: Path):
    remote = FakeGitHub()
    publisher = _publisher(vault, remote, tmp_path, repository_url="not a repository")

    with pytest.raises(ConfigurationError, match="invalid repository URL"):
        publisher.publish()

    assert remote.calls == []
    assert not (tmp_path / "state.json").exists()


@pytest.mark.parametrize("failure", ["missing-branch", "truncated-tree"])
def test_read_failure_leaves_recorded_success_untouched(vault: Path, tmp_path: Path, failure: str):
    remote = FakeGitHub()
    first = _publisher(vault, remote, tmp_path).publish()
    state_file = tmp_path / "state.json"
    saved = state_file.read_text(encoding="utf-8")
    head = remote.head
    remote.calls.clear()

    if failure == "missing-branch":
        publisher = _publisher(vault, remote, tmp_path, branch="gh-pages")
        expected_call = "get-ref"
    else:
        remote.truncated = True
        publisher = _publisher(vault, remote, tmp_path)
        expected_call = "get-tree"

    with pytest.raises(RemoteApiError) as excinfo:
        publisher.publish()

    assert excinfo.value.call == expected_call
    assert remote.writes == []
    assert remote.head == head
    assert publisher.last_success == first.timestamp
    assert state_file.read_text(encoding="utf-8") == saved


def test_root_selection_mirrors_vault_without_runtime_dir(vault: Path, tmp_path: Path):
    (vault / ".vaultpress" / "config").mkdir(parents=True)
    (vault / ".vaultpress" / "config" / "99-cli-overrides.yml").write_text("publish: {}\n", encoding="utf-8")
    remote = FakeGitHub({"site/docs/a.md": "alpha\n", "site/old.md": "stale"})
    publisher = _publisher(vault, remote, tmp_path, selected_paths=("/",))

    outcome = publisher.publish()

    assert (outcome.upserts, outcome.deletions) == (2, 1)
    assert remote.files == {
        "site/docs/a.md": "alpha\n",
        "site/docs/b.md": "beta\n",
        "site/index.md": "# Index\n",
    }


def test_parent_segments_do_not_reach_remote_paths(vault: Path, tmp_path: Path):
    remote = FakeGitHub()
    publisher = _publisher(vault, remote, tmp_path, selected_paths=("docs/../index.md", "index.md"))

    outcome = publisher.publish()

    assert outcome.upserts == 1
    assert remote.files == {"site/index.md": "# Index\n"}
