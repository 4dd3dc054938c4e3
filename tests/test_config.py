"""Tests for client configuration loading."""

from __future__ import annotations

import pytest
import yaml
from pydantic import ValidationError

from flowmon.core.config import CONFIG_DIR, CONFIG_FILE, DEFAULT_CONFIG_YAML, ClientConfig, load_config


def write_config(root, content: str) -> None:
    config_dir = root / CONFIG_DIR
    config_dir.mkdir(exist_ok=True)
    (config_dir / CONFIG_FILE).write_text(content)


class TestClientConfig:
    """Tests for ClientConfig."""

    def test_defaults(self):
        config = ClientConfig()
        assert config.base_url == "http://localhost:8080/v1"
        assert config.poll_interval == 0.5
        assert config.max_consecutive_failures == 5

    def test_ssl_base_url(self):
        assert ClientConfig(ssl=True, host="h", port=443).base_url == "https://h:443/v1"

    def test_api_version_normalized(self):
        assert ClientConfig(api_version="/V2/").api_version == "v2"

    def test_empty_api_version_rejected(self):
        with pytest.raises(ValidationError):
            ClientConfig(api_version=" / ")

    def test_invalid_port_rejected(self):
        with pytest.raises(ValidationError):
            ClientConfig(port=70000)

    def test_backoff_below_one_rejected(self):
        with pytest.raises(ValidationError):
            ClientConfig(backoff_multiplier=0.5)

    def test_retry_delay(self):
        config = ClientConfig(poll_interval=0.5, max_poll_interval=5.0, backoff_multiplier=2.0)
        assert config.retry_delay(0) == 0.5
        assert config.retry_delay(1) == 1.0
        assert config.retry_delay(3) == 4.0
        assert config.retry_delay(10) == 5.0

    def test_retry_delay_never_below_poll_interval(self):
        config = ClientConfig(poll_interval=2.0, max_poll_interval=1.0)
        assert config.retry_delay(4) == 2.0

    def test_default_yaml_matches_model_defaults(self):
        data = yaml.safe_load(DEFAULT_CONFIG_YAML)
        assert ClientConfig(**data["client"]) == ClientConfig()


class TestLoadConfig:
    """Tests for load_config."""

    def test_no_file_gives_defaults(self, tmp_path):
        assert load_config(tmp_path, environ={}) == ClientConfig()

    def test_file_values_applied(self, tmp_path):
        write_config(tmp_path, "client:\n  host: workers\n  poll_interval: 1.5\n")
        config = load_config(tmp_path, environ={})
        assert config.host == "workers"
        assert config.poll_interval == 1.5

    def test_empty_file(self, tmp_path):
        write_config(tmp_path, "")
        assert load_config(tmp_path, environ={}) == ClientConfig()

    def test_env_overrides_file(self, tmp_path):
        write_config(tmp_path, "client:\n  host: workers\n  port: 9000\n")
        environ = {
            "WORKER_MANAGER_HOST": "env-host",
            "WORKER_MANAGER_PORT": "7000",
            "SSL_ON": "true",
            "API_VERSION": "V3",
        }
        config = load_config(tmp_path, environ=environ)
        assert config.base_url == "https://env-host:7000/v3"

    @pytest.mark.parametrize("value", ["1", "yes", "false", "TRUE "])
    def test_ssl_only_literal_true(self, tmp_path, value):
        config = load_config(tmp_path, environ={"SSL_ON": value})
        assert config.ssl is (value.strip().lower() == "true")

    def test_blank_env_ignored(self, tmp_path):
        assert load_config(tmp_path, environ={"WORKER_MANAGER_HOST": ""}).host == "localhost"

    def test_non_mapping_file_rejected(self, tmp_path):
        write_config(tmp_path, "- a\n- b\n")
        with pytest.raises(ValueError, match="expected a mapping"):
            load_config(tmp_path, environ={})

    def test_non_mapping_client_section_rejected(self, tmp_path):
        write_config(tmp_path, "client: [1, 2]\n")
        with pytest.raises(ValueError, match="'client' section"):
            load_config(tmp_path, environ={})

    def test_invalid_value_rejected(self, tmp_path):
        write_config(tmp_path, "client:\n  port: not-a-port\n")
        with pytest.raises(ValidationError):
            load_config(tmp_path, environ={})
