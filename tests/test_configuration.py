"""Tests for the vault-aware configuration loader."""

from __future__ import annotations

from pathlib import Path

import pytest

from vaultpress import configuration


def _prepare_repo_defaults(tmp_path: Path, content: str = "runtime:\n  name: demo\n") -> Path:
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    (config_dir / "10-default.yml").write_text(content, encoding="utf-8")
    return config_dir


def _overrides(vault_dir: Path) -> Path:
    path = vault_dir / ".vaultpress" / "config"
    path.mkdir(parents=True)
    return path


def test_resolve_vault_dir_uses_env_expansion(tmp_path: Path):
    env = {"VAULT_DIR": str(tmp_path / "vault")}
    path = configuration.resolve_vault_dir(env=env)
    assert path == tmp_path / "vault"


def test_resolve_vault_dir_defaults_to_current_directory():
    assert configuration.resolve_vault_dir(env={"OTHER": "x"}) == Path(".")


def test_load_runtime_configuration_merges_repo_and_vault(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    repo_dir = _prepare_repo_defaults(
        tmp_path,
        content="publish:\n  branch: main\n  folder: site\n",
    )
    vault_dir = tmp_path / "vault"
    (_overrides(vault_dir) / "20-overrides.yml").write_text(
        "publish:\n  branch: pages\n  interval_minutes: 15\n",
        encoding="utf-8",
    )

    monkeypatch.setattr(configuration, "DEFAULT_CONFIG_DIR", repo_dir)

    bundle = configuration.load_runtime_configuration(vault_dir)

    assert bundle.status == "ready"
    assert bundle.merged["publish"]["branch"] == "pages"
    assert bundle.merged["publish"]["folder"] == "site"
    assert bundle.merged["publish"]["interval_minutes"] == 15
    assert len(bundle.files_loaded) == 2
    assert bundle.runtime_dir == vault_dir / ".vaultpress"


def test_schema_fills_publish_defaults(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(configuration, "DEFAULT_CONFIG_DIR", tmp_path / "no-config")
    vault_dir = tmp_path / "vault"
    vault_dir.mkdir()

    bundle = configuration.load_runtime_configuration(vault_dir)

    publish = bundle.merged["publish"]
    assert bundle.status == "ready"
    assert publish["branch"] == "main"
    assert publish["selected_paths"] == []
    assert publish["token_env"] == "GITHUB_TOKEN"
    assert bundle.merged["logging"]["level"] == "INFO"
    assert any(diag.level == "info" for diag in bundle.diagnostics)


def test_load_runtime_configuration_reports_missing_vault(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    repo_dir = _prepare_repo_defaults(tmp_path)
    missing_vault = tmp_path / "missing"
    monkeypatch.setattr(configuration, "DEFAULT_CONFIG_DIR", repo_dir)

    bundle = configuration.load_runtime_configuration(missing_vault)

    assert bundle.status == "missing"
    assert any(diag.level == "error" for diag in bundle.diagnostics)


def test_load_runtime_configuration_handles_bad_yaml(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    repo_dir = _prepare_repo_defaults(tmp_path)
    vault_dir = tmp_path / "vault"
    (_overrides(vault_dir) / "broken.yml").write_text("publish: [\n", encoding="utf-8")

    monkeypatch.setattr(configuration, "DEFAULT_CONFIG_DIR", repo_dir)

    bundle = configuration.load_runtime_configuration(vault_dir)

    assert bundle.status == "invalid"
    assert any("Failed to parse" in diag.message for diag in bundle.diagnostics)


def test_boolean_rejected_for_numeric_interval(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(configuration, "DEFAULT_CONFIG_DIR", tmp_path / "no-config")
    vault_dir = tmp_path / "vault"
    (_overrides(vault_dir) / "10-publish.yml").write_text(
        "publish:\n  interval_minutes: true\n",
        encoding="utf-8",
    )

    bundle = configuration.load_runtime_configuration(vault_dir)

    assert bundle.status == "invalid"
    assert bundle.merged["publish"]["interval_minutes"] == 60
    assert any("publish.interval_minutes" in diag.message for diag in bundle.diagnostics)
