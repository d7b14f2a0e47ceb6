from datetime import timedelta

import pytest

from provider_registry.config import (
    RegistryConfig,
    get_default_config_path,
    load_config,
    parse_config,
)
from provider_registry.exceptions import ConfigFileError, ConfigValidationError

pytestmark = [pytest.mark.unit, pytest.mark.infrastructure]


class TestParseConfig:
    def test_defaults(self):
        config = parse_config(None)

        assert config.cache_ttl == timedelta(minutes=55)
        assert config.since_padding == timedelta(minutes=2)
        assert config.page_size == 100
        assert config.api_timeout == 10
        assert config.asset_download_timeout == 60
        assert config.request_timeout == 25
        assert config.allow_env_token is True
        assert config.provider_namespace_redirects == {}
        assert config.signing_keys == {}

    def test_overrides(self):
        config = parse_config(
            {
                "GITHUB_TOKEN": "tok",
                "ALLOW_ENV_TOKEN": False,
                "CACHE_TTL_MINUTES": 10,
                "SINCE_PADDING_MINUTES": 0,
                "PAGE_SIZE": 25,
                "PROVIDER_NAMESPACE_REDIRECTS": {"opentofu": "hashicorp"},
                "SIGNING_KEYS": {
                    "hashicorp": [{"key_id": "ABCD", "ascii_armor": "-----BEGIN"}]
                },
            }
        )

        assert config.github_token == "tok"
        assert config.allow_env_token is False
        assert config.cache_ttl == timedelta(minutes=10)
        assert config.since_padding == timedelta(0)
        assert config.page_size == 25
        assert config.effective_provider_namespace("opentofu") == "hashicorp"
        assert config.effective_provider_namespace("other") == "other"
        assert config.signing_keys["hashicorp"][0]["key_id"] == "ABCD"

    @pytest.mark.parametrize("page_size", [0, 101, "50", True])
    def test_invalid_page_size(self, page_size):
        with pytest.raises(ConfigValidationError) as exc_info:
            parse_config({"PAGE_SIZE": page_size})
        assert exc_info.value.field == "PAGE_SIZE"

    @pytest.mark.parametrize(
        "key", ["CACHE_TTL_MINUTES", "GITHUB_API_TIMEOUT", "REQUEST_TIMEOUT"]
    )
    def test_non_positive_numbers_rejected(self, key):
        with pytest.raises(ConfigValidationError) as exc_info:
            parse_config({key: 0})
        assert exc_info.value.field == key

    def test_negative_padding_rejected(self):
        with pytest.raises(ConfigValidationError):
            parse_config({"SINCE_PADDING_MINUTES": -1})

    def test_redirects_must_be_string_mapping(self):
        with pytest.raises(ConfigValidationError):
            parse_config({"PROVIDER_NAMESPACE_REDIRECTS": {"a": 1}})

    def test_signing_keys_require_fields(self):
        with pytest.raises(ConfigValidationError):
            parse_config({"SIGNING_KEYS": {"hashicorp": [{"key_id": "ABCD"}]}})

    def test_non_mapping_rejected(self):
        with pytest.raises(ConfigValidationError):
            parse_config(["not", "a", "mapping"])


class TestLoadConfig:
    def test_missing_file_returns_defaults(self, tmp_path):
        config = load_config(str(tmp_path / "absent.yaml"))
        assert config == RegistryConfig()

    def test_loads_yaml_file(self, tmp_path):
        path = tmp_path / "provider_registry.yaml"
        path.write_text("PAGE_SIZE: 10\nCACHE_DIR: /tmp/registry-cache\n")

        config = load_config(str(path))

        assert config.page_size == 10
        assert config.resolved_cache_dir() == "/tmp/registry-cache"

    def test_invalid_yaml_raises_config_file_error(self, tmp_path):
        path = tmp_path / "provider_registry.yaml"
        path.write_text("PAGE_SIZE: [unclosed\n")

        with pytest.raises(ConfigFileError):
            load_config(str(path))

    def test_env_override_of_default_path(self, tmp_path, monkeypatch):
        path = tmp_path / "custom.yaml"
        path.write_text("PAGE_SIZE: 5\n")
        monkeypatch.setenv("PROVIDER_REGISTRY_CONFIG", str(path))

        assert get_default_config_path() == str(path)
        assert load_config().page_size == 5

    def test_default_cache_dir_uses_platformdirs(self, tmp_path):
        config = load_config(str(tmp_path / "absent.yaml"))
        assert config.resolved_cache_dir().endswith("cache")
