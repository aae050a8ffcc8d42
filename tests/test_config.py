"""Tests for configuration loading."""

from pathlib import Path

import pytest

from repo_archiver.config import ConfigurationError, load_config

REQUIRED_ENV = {"ORG_USERNAME": "octocat", "ORG_TOKEN": "token", "ORG_NAME": "acme"}


def test_required_values_and_defaults():
    config = load_config(dict(REQUIRED_ENV))

    assert config.github.username == "octocat"
    assert config.github.token == "token"
    assert config.github.organization == "acme"
    assert config.github.page_size == 10
    assert config.drive.drive_id is None
    assert config.drive.folder_id is None
    assert config.drive.credentials_file == Path("credentials.json")
    assert config.drive.token_file == Path("token.json")
    assert config.log_level == "INFO"


def test_missing_required_values_are_all_reported():
    with pytest.raises(ConfigurationError) as exc_info:
        load_config({"ORG_USERNAME": "octocat"})

    message = str(exc_info.value)
    assert "ORG_TOKEN" in message
    assert "ORG_NAME" in message
    assert "ORG_USERNAME" not in message


def test_empty_value_counts_as_missing():
    env = dict(REQUIRED_ENV, ORG_TOKEN="")

    with pytest.raises(ConfigurationError, match="ORG_TOKEN"):
        load_config(env)


def test_optional_values_from_environment(tmp_path):
    env = dict(
        REQUIRED_ENV,
        PAGE_SIZE="25",
        DRIVE_ID="drive-1",
        DRIVE_FOLDER_ID="folder-9",
        WORK_DIR=str(tmp_path),
        LOG_LEVEL="debug",
    )

    config = load_config(env)

    assert config.github.page_size == 25
    assert config.drive.drive_id == "drive-1"
    assert config.drive.folder_id == "folder-9"
    assert config.work_dir == tmp_path
    assert config.log_level == "DEBUG"


@pytest.mark.parametrize("page_size", ["0", "-3", "101", "ten"])
def test_invalid_page_size_is_rejected(page_size):
    with pytest.raises(ConfigurationError):
        load_config(dict(REQUIRED_ENV, PAGE_SIZE=page_size))


def test_yaml_file_supplies_defaults_and_environment_wins(tmp_path):
    config_file = tmp_path / "archiver.yaml"
    config_file.write_text(
        "github:\n"
        "  username: from-file\n"
        "  token: file-token\n"
        "  organization: file-org\n"
        "  page_size: 50\n"
        "drive:\n"
        "  folder_id: file-folder\n",
        encoding="utf-8",
    )

    config = load_config({"ORG_NAME": "env-org"}, config_file)

    assert config.github.username == "from-file"
    assert config.github.organization == "env-org"
    assert config.github.page_size == 50
    assert config.drive.folder_id == "file-folder"


def test_missing_config_file(tmp_path):
    with pytest.raises(ConfigurationError, match="not found"):
        load_config(dict(REQUIRED_ENV), tmp_path / "missing.yaml")


def test_config_file_must_be_mapping(tmp_path):
    config_file = tmp_path / "archiver.yaml"
    config_file.write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(ConfigurationError, match="mapping"):
        load_config(dict(REQUIRED_ENV), config_file)


def test_token_is_not_in_repr():
    config = load_config(dict(REQUIRED_ENV, ORG_TOKEN="very-secret"))

    assert "very-secret" not in repr(config)
