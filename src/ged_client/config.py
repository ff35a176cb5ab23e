"""
Configuration management.

All configuration keys for the GED client are defined here; no other module
should invent config keys.

Key invariants:
- base_url is the API root; resource URIs are resolved relative to it
- identity is the caller's login, lower-cased before use
- Retries are off by default (single attempt per call)
"""

import os
from dataclasses import dataclass
from pathlib import Path

import yaml

DEFAULT_BASE_URL = "http://localhost:8000/api/"
DEFAULT_TIMEOUT = 30


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""

    pass


@dataclass
class GedConfig:
    """GED service configuration.

    - base_url: API root, e.g. https://ged.example.com/api/
    - api_key: sent as the x-apikey header during the handshake
    - identity: login used for the users/{identity} handshake; falls back to
      the client's placeholder identity when unset
    """

    base_url: str
    api_key: str
    identity: str | None = None
    timeout: int = DEFAULT_TIMEOUT
    # Transport-level retries (0 = single attempt)
    max_retries: int = 0
    verify_ssl: bool = True

    def validate(self) -> list[str]:
        """Validate configuration completeness.

        Returns:
            List of validation errors (empty if valid)
        """
        errors: list[str] = []

        if not self.base_url:
            errors.append("ged.base_url is required")
        elif not self.base_url.startswith(("http://", "https://")):
            errors.append("ged.base_url must start with http:// or https://")
        if not self.api_key:
            errors.append("ged.api_key is required")
        if self.timeout <= 0:
            errors.append("ged.timeout must be positive")
        if self.max_retries < 0:
            errors.append("ged.max_retries must be >= 0")

        return errors

    def ensure_valid(self) -> None:
        """Raise ConfigValidationError if validate() reports anything."""
        errors = self.validate()
        if errors:
            raise ConfigValidationError("; ".join(errors))


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name, "").lower()
    if value in ("true", "1", "yes"):
        return True
    if value in ("false", "0", "no"):
        return False
    return default


def load_config(config_path: Path) -> GedConfig:
    """
    Load configuration from YAML file.

    Environment variables can override config values:
    - GED_URL
    - GED_API_KEY
    - GED_IDENTITY
    - GED_TIMEOUT (seconds)
    - GED_MAX_RETRIES
    - GED_VERIFY_SSL (true/false)
    """
    if config_path.exists():
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
    else:
        data = {}

    ged_data = data.get("ged", {}) or {}

    return GedConfig(
        base_url=os.environ.get("GED_URL", ged_data.get("base_url", DEFAULT_BASE_URL)),
        api_key=os.environ.get("GED_API_KEY", ged_data.get("api_key", "")),
        identity=os.environ.get("GED_IDENTITY", ged_data.get("identity")),
        timeout=int(os.environ.get("GED_TIMEOUT", ged_data.get("timeout", DEFAULT_TIMEOUT))),
        max_retries=int(os.environ.get("GED_MAX_RETRIES", ged_data.get("max_retries", 0))),
        verify_ssl=_env_bool("GED_VERIFY_SSL", ged_data.get("verify_ssl", True)),
    )


def create_default_config(config_path: Path) -> None:
    """Create a default configuration file."""
    default_config = """# GED client configuration
#
# Environment variables override these values:
# GED_URL, GED_API_KEY, GED_IDENTITY, GED_TIMEOUT, GED_MAX_RETRIES, GED_VERIFY_SSL

ged:
  base_url: "http://localhost:8000/api/"   # API root, resource URIs are relative to it
  api_key: "YOUR_GED_API_KEY"              # Sent as x-apikey during the handshake
  identity: null                           # Caller login (lower-cased); null = placeholder identity
  timeout: 30                              # Request timeout (seconds)
  max_retries: 0                           # Transport retries (0 = single attempt)
  verify_ssl: true
"""

    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w") as f:
        f.write(default_config)
