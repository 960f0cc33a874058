"""Tests for Settings and load_settings."""

import json

import pytest

from vaultfill.shared.domain.exceptions import ConfigurationError
from vaultfill.shared.infrastructure.config import AuthType, BackendType, Settings, load_settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Isolate from the caller's environment and any .env file."""
    for name in Settings.model_fields:
        monkeypatch.delenv(name.upper(), raising=False)
    monkeypatch.delenv("PATH_PREFIX", raising=False)
    monkeypatch.chdir(tmp_path)


class TestSettings:
    """Test defaults and environment loading."""

    def test_defaults(self):
        settings = Settings()

        assert settings.avp_type == BackendType.VAULT
        assert settings.avp_auth_type == AuthType.TOKEN
        assert settings.avp_kv_version == 2
        assert settings.avp_path_prefix is None
        assert settings.fetch_retries == 3
        assert settings.is_development is False

    def test_environment(self, monkeypatch):
        monkeypatch.setenv("AVP_TYPE", "ibmsecretsmanager")
        monkeypatch.setenv("AVP_IBM_API_KEY", "key")
        monkeypatch.setenv("LOG_LEVEL", "debug")
        monkeypatch.setenv("APP_ENV", "Development")

        settings = Settings()

        assert settings.avp_type == BackendType.IBM_SECRETS_MANAGER
        assert settings.avp_ibm_api_key == "key"
        assert settings.log_level == "DEBUG"
        assert settings.is_development is True

    @pytest.mark.parametrize("variable", ["AVP_PATH_PREFIX", "PATH_PREFIX"])
    def test_path_prefix_aliases(self, monkeypatch, variable):
        monkeypatch.setenv(variable, "secret/data/")

        assert Settings().avp_path_prefix == "secret/data"

    def test_validate_backend_lists_missing_variables(self):
        settings = Settings(vault_addr="https://vault.test")

        with pytest.raises(ConfigurationError) as exc_info:
            settings.validate_backend()

        assert exc_info.value.context["missing"] == ["VAULT_TOKEN"]

    def test_validate_backend_k8s(self):
        settings = Settings(vault_addr="https://vault.test", avp_auth_type="k8s")

        with pytest.raises(ConfigurationError, match="AVP_K8S_ROLE"):
            settings.validate_backend()

    def test_complete_settings_validate(self):
        Settings(vault_addr="https://vault.test", vault_token="hvs.x").validate_backend()


class TestLoadSettings:
    """Test config file loading."""

    def test_without_file(self, monkeypatch):
        monkeypatch.setenv("VAULT_ADDR", "https://env.test")

        assert load_settings().vault_addr == "https://env.test"

    def test_yaml_file_overrides_environment(self, monkeypatch, tmp_path):
        monkeypatch.setenv("VAULT_ADDR", "https://env.test")
        config = tmp_path / "config.yaml"
        config.write_text("VAULT_ADDR: https://file.test\nAVP_AUTH_TYPE: approle\nAVP_KV_VERSION: 1\n")

        settings = load_settings(config)

        assert settings.vault_addr == "https://file.test"
        assert settings.avp_auth_type == AuthType.APPROLE
        assert settings.avp_kv_version == 1

    def test_json_file(self, tmp_path):
        config = tmp_path / "config.json"
        config.write_text(json.dumps({"AVP_TYPE": "ibmsecretsmanager", "PATH_PREFIX": "ibmcloud/arbitrary/groups"}))

        settings = load_settings(config)

        assert settings.avp_type == BackendType.IBM_SECRETS_MANAGER
        assert settings.avp_path_prefix == "ibmcloud/arbitrary/groups"

    def test_env_file(self, tmp_path):
        config = tmp_path / "vaultfill.env"
        config.write_text("VAULT_ADDR=https://dotenv.test\nAVP_PATH_PREFIX=kv/\n")

        settings = load_settings(str(config))

        assert settings.vault_addr == "https://dotenv.test"
        assert settings.avp_path_prefix == "kv"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_settings(tmp_path / "nope.yaml")

    def test_file_must_hold_a_mapping(self, tmp_path):
        config = tmp_path / "config.yaml"
        config.write_text("- VAULT_ADDR\n- VAULT_TOKEN\n")

        with pytest.raises(ConfigurationError, match="mapping"):
            load_settings(config)

    def test_unparsable_file(self, tmp_path):
        config = tmp_path / "config.yaml"
        config.write_text("VAULT_ADDR: [unclosed\n")

        with pytest.raises(ConfigurationError, match="could not parse"):
            load_settings(config)

    def test_invalid_value(self, tmp_path):
        config = tmp_path / "config.yaml"
        config.write_text("AVP_KV_VERSION: 3\n")

        with pytest.raises(ConfigurationError, match="invalid configuration"):
            load_settings(config)
