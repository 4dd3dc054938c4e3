"""Client configuration.

Settings are resolved in three layers, later layers winning:

1. Model defaults
2. ``.flowmon/config.yaml`` (``client:`` section) in the project directory
3. Environment variables understood by the workflow service deployment:
   ``WORKER_MANAGER_HOST``, ``WORKER_MANAGER_PORT``, ``SSL_ON``, ``API_VERSION``
"""

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

CONFIG_DIR = ".flowmon"
CONFIG_FILE = "config.yaml"

ENV_OVERRIDES = {
    "WORKER_MANAGER_HOST": "host",
    "WORKER_MANAGER_PORT": "port",
    "SSL_ON": "ssl",
    "API_VERSION": "api_version",
}

DEFAULT_CONFIG_YAML = """# Flowmon configuration for this project

client:
  # Workflow service location
  host: localhost
  port: 8080
  ssl: false
  api_version: v1

  # Per-request timeout (seconds)
  request_timeout: 10.0

  # Polling cadence while a run is in flight (seconds)
  poll_interval: 0.5
  max_poll_interval: 5.0
  backoff_multiplier: 2.0

  # Stop polling after this many failed ticks in a row
  max_consecutive_failures: 5
"""


class ClientConfig(BaseModel):
    """Connection and polling settings for the workflow service."""

    host: str = "localhost"
    port: int = Field(default=8080, ge=1, le=65535)
    ssl: bool = False
    api_version: str = "v1"

    request_timeout: float = Field(default=10.0, gt=0)
    poll_interval: float = Field(default=0.5, gt=0)
    max_poll_interval: float = Field(default=5.0, gt=0)
    backoff_multiplier: float = Field(default=2.0, ge=1.0)
    max_consecutive_failures: int = Field(default=5, ge=1)

    @field_validator("api_version")
    @classmethod
    def normalize_api_version(cls, v: str) -> str:
        v = v.strip().strip("/").lower()
        if not v:
            raise ValueError("api_version must not be empty")
        return v

    @property
    def base_url(self) -> str:
        protocol = "https" if self.ssl else "http"
        return f"{protocol}://{self.host}:{self.port}/{self.api_version}"

    def retry_delay(self, consecutive_failures: int) -> float:
        """Delay before the next tick after ``consecutive_failures`` failed ticks."""
        if consecutive_failures <= 0:
            return self.poll_interval
        delay = self.poll_interval * (self.backoff_multiplier**consecutive_failures)
        return min(delay, max(self.max_poll_interval, self.poll_interval))


def _env_overrides(environ: dict[str, str]) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    for env_name, field_name in ENV_OVERRIDES.items():
        raw = environ.get(env_name)
        if raw is None or raw == "":
            continue
        if field_name == "ssl":
            # Only the literal "true" enables TLS, matching the service deployment
            overrides[field_name] = raw.strip().lower() == "true"
        else:
            overrides[field_name] = raw
    return overrides


def load_config(
    repo_path: Path | None = None,
    environ: dict[str, str] | None = None,
) -> ClientConfig:
    """Load client configuration for a project directory.

    Args:
        repo_path: Project directory holding ``.flowmon/config.yaml``
            (defaults to the current directory)
        environ: Environment mapping (defaults to ``os.environ``)

    Returns:
        Validated ClientConfig

    Raises:
        pydantic.ValidationError: If any value is invalid
        ValueError: If the config file is not a mapping
    """
    repo_path = repo_path or Path.cwd()
    environ = dict(os.environ) if environ is None else environ

    values: dict[str, Any] = {}
    config_path = repo_path / CONFIG_DIR / CONFIG_FILE
    if config_path.exists():
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(
                f"Invalid config in '{config_path}': expected a mapping, "
                f"got {type(data).__name__}"
            )
        client_section = data.get("client") or {}
        if not isinstance(client_section, dict):
            raise ValueError(f"Invalid 'client' section in '{config_path}'")
        values.update(client_section)
        logger.debug(f"Loaded config from {config_path}")

    values.update(_env_overrides(environ))
    return ClientConfig(**values)
