"""Tests for configuration loading and validation."""

import pytest

from poolmap.services.config import (
    ConfigService,
    ConfigValidationException,
    Settings,
    DEFAULT_BASE_URL,
)


def write_config(tmp_path, text: str) -> str:
    path = tmp_path / "config.yaml"
    path.write_text(text)
    return str(path)


@pytest.fixture(autouse=True)
def clear_project_id(monkeypatch):
    monkeypatch.delenv("BLOCKFROST_PROJECT_ID", raising=False)


class TestLoadAndValidate:

    def test_missing_file_uses_defaults(self, tmp_path):
        service = ConfigService(str(tmp_path / "absent.yaml"))

        settings = service.load_settings()

        assert settings == Settings()
        assert settings.blockfrost.base_url == DEFAULT_BASE_URL
        assert settings.ingestion.batch_size == 50
        assert settings.poller.history_size == 3

    def test_valid_file(self, tmp_path):
        path = write_config(tmp_path, """
blockfrost:
  project_id: mainnetABC
  retry_count: 5
ingestion:
  batch_size: 25
  batch_delay_seconds: 0.5
cache:
  directory: /tmp/poolmap-cache
poller:
  enabled: false
""")

        settings = ConfigService(path).load_settings()

        assert settings.blockfrost.project_id == "mainnetABC"
        assert settings.blockfrost.retry_count == 5
        assert settings.blockfrost.retry_delay_seconds == 1.0
        assert settings.ingestion.batch_size == 25
        assert settings.ingestion.batch_delay_seconds == 0.5
        assert settings.cache.directory == "/tmp/poolmap-cache"
        assert settings.poller.enabled is False

    def test_empty_file(self, tmp_path):
        path = write_config(tmp_path, "")

        assert ConfigService(path).load_and_validate() == {}

    def test_unknown_key(self, tmp_path):
        path = write_config(tmp_path, "ingestion:\n  batch_sise: 10\n")

        with pytest.raises(ConfigValidationException) as exc_info:
            ConfigService(path).load_and_validate()

        assert exc_info.value.errors[0].path == "ingestion.batch_sise"

    def test_collects_every_error(self, tmp_path):
        path = write_config(tmp_path, """
ingestion:
  batch_size: 0
blockfrost:
  retry_count: "three"
logging:
  level: VERBOSE
""")

        with pytest.raises(ConfigValidationException) as exc_info:
            ConfigService(path).load_and_validate()

        paths = {error.path for error in exc_info.value.errors}
        assert paths == {"ingestion.batch_size", "blockfrost.retry_count", "logging.level"}

    def test_bool_is_not_a_number(self, tmp_path):
        path = write_config(tmp_path, "ingestion:\n  batch_size: true\n")

        with pytest.raises(ConfigValidationException):
            ConfigService(path).load_and_validate()

    def test_invalid_yaml(self, tmp_path):
        path = write_config(tmp_path, "ingestion: [unclosed\n")

        with pytest.raises(ConfigValidationException) as exc_info:
            ConfigService(path).load_and_validate()

        assert "Invalid YAML" in str(exc_info.value)

    def test_top_level_must_be_mapping(self, tmp_path):
        path = write_config(tmp_path, "- just\n- a list\n")

        with pytest.raises(ConfigValidationException):
            ConfigService(path).load_and_validate()


class TestCredential:

    def test_env_overrides_project_id(self, tmp_path, monkeypatch):
        path = write_config(tmp_path, "blockfrost:\n  project_id: from-file\n")
        monkeypatch.setenv("BLOCKFROST_PROJECT_ID", "from-env")

        settings = ConfigService(path).load_settings()

        assert settings.require_credential() == "from-env"

    def test_missing_credential(self, tmp_path):
        settings = ConfigService(str(tmp_path / "absent.yaml")).load_settings()

        with pytest.raises(ConfigValidationException) as exc_info:
            settings.require_credential()

        assert exc_info.value.errors[0].path == "blockfrost.project_id"

    def test_config_path_from_env(self, tmp_path, monkeypatch):
        path = write_config(tmp_path, "cache:\n  directory: elsewhere\n")
        monkeypatch.setenv("POOLMAP_CONFIG", path)

        assert ConfigService().load_settings().cache.directory == "elsewhere"
