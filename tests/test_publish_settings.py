from __future__ import annotations

import pytest

from vaultpress.publish import ConfigurationError, PublishSettings
from vaultpress.publish.settings import parse_repository_url


@pytest.mark.parametrize(
    "url",
    [
        "https://github.com/acme/notes",
        "https://github.com/acme/notes.git",
        "https://github.com/acme/notes/",
        "git@github.com:acme/notes.git",
        "github.com/acme/notes",
    ],
)
def test_parse_repository_url_accepts_common_forms(url):
    target = parse_repository_url(url)

    assert (target.host, target.owner, target.repo) == ("github.com", "acme", "notes")
    assert target.default_api_url() == "https://api.github.com"


def test_enterprise_host_uses_v3_api():
    target = parse_repository_url("https://git.example.com/team/wiki")

    assert target.default_api_url() == "https://git.example.com/api/v3"


@pytest.mark.parametrize("url", ["", "notes", "https://github.com/acme"])
def test_parse_repository_url_rejects_incomplete(url):
    with pytest.raises(ConfigurationError, match="invalid repository URL"):
        parse_repository_url(url)


def test_from_config_normalizes_values():
    settings = PublishSettings.from_config(
        {
            "publish": {
                "repository_url": " https://github.com/acme/notes ",
                "folder": "/site/",
                "selected_paths": ["docs\\guides", "", "index.md"],
                "interval_minutes": "15",
                "read_workers": 0,
            }
        }
    )

    assert settings.repository_url == "https://github.com/acme/notes"
    assert settings.folder == "site"
    assert settings.selected_paths == ("docs/guides", "index.md")
    assert settings.interval_minutes == 15.0
    assert settings.read_workers == 1
    assert settings.branch == "main"


def test_from_config_keeps_vault_root_selection():
    settings = PublishSettings.from_config(
        {"publish": {"selected_paths": ["/", " ", "./", "docs/../index.md"]}}
    )

    assert settings.selected_paths == ("/", "/", "index.md")


def test_token_prefers_config_then_env():
    settings = PublishSettings(repository_url="https://github.com/acme/notes", token_env="NOTES_TOKEN")

    assert settings.resolve_token({"NOTES_TOKEN": "from-env"}) == "from-env"
    settings.token = "from-config"
    assert settings.resolve_token({"NOTES_TOKEN": "from-env"}) == "from-config"


def test_validate_lists_missing_fields():
    settings = PublishSettings()

    with pytest.raises(ConfigurationError) as excinfo:
        settings.validate(env={})

    message = str(excinfo.value)
    assert "$GITHUB_TOKEN" in message
    assert "publish.repository_url" in message
    assert not settings.is_complete(env={})


def test_validate_returns_target():
    settings = PublishSettings(repository_url="https://github.com/acme/notes", token="t")

    target = settings.validate(env={})

    assert target.slug == "acme/notes"
    assert settings.effective_api_url(target) == "https://api.github.com"
    assert "token" not in settings.to_dict()
