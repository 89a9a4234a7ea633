"""Configuration types with environment variable support.

All settings can be configured via environment variables with the CROSSPAY_ prefix.
Example: CROSSPAY_API_KEY=sk_live_... sets api_key.
"""

from __future__ import annotations

import tomllib
from datetime import timedelta
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from crosspay.webhooks import VerificationContext

DEFAULT_BASE_URL = "https://api.crosspay.dev"


def load_config_from_file(path: str | Path) -> dict[str, Any]:
    """Load configuration from a YAML or TOML file.

    Args:
        path: Path to the configuration file (.yaml, .yml, or .toml)

    Returns:
        Configuration dictionary

    Raises:
        FileNotFoundError: If the config file doesn't exist
        ValueError: If the config file has encoding errors, invalid syntax, or unsupported format
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        content = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise ValueError(f"Config file encoding error in {path}: {e}") from e

    try:
        if path.suffix in (".yaml", ".yml"):
            return yaml.safe_load(content) or {}
        elif path.suffix == ".toml":
            return tomllib.loads(content)
        else:
            raise ValueError(f"Unsupported config format: {path.suffix}")
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {path}: {e}") from e
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"Invalid TOML in {path}: {e}") from e


def flatten_config(config: dict[str, Any], prefix: str = "") -> dict[str, Any]:
    result: dict[str, Any] = {}
    for key, value in config.items():
        full_key = f"{prefix}_{key}" if prefix else key
        if isinstance(value, dict):
            result.update(flatten_config(value, full_key))
        else:
            result[full_key] = value
    return result


class ClientConfig(BaseModel):
    """API client configuration."""

    api_key: str = Field(repr=False)
    base_url: str = DEFAULT_BASE_URL
    timeout: float = 30.0


class CrosspaySettings(BaseSettings):
    """Crosspay SDK settings.

    All settings can be overridden via environment variables:
    - CROSSPAY_API_KEY: Tenant API key
    - CROSSPAY_BASE_URL: API base URL
    - CROSSPAY_WEBHOOK_PUBLIC_KEY: PEM encoded webhook verification key
    - CROSSPAY_WEBHOOK_TOLERANCE_SECONDS: Webhook timestamp window
    - etc.
    """

    model_config = SettingsConfigDict(
        env_prefix="CROSSPAY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    api_key: str | None = Field(
        default=None,
        repr=False,
        description="Tenant API key sent in the api-key header.",
    )
    base_url: str = Field(
        default=DEFAULT_BASE_URL,
        description="Crosspay API base URL.",
    )
    timeout: float = Field(
        default=30.0,
        gt=0,
        description="HTTP request timeout (seconds).",
    )
    environment: str = Field(
        default="production",
        description="Default environment for entitlement lookups.",
    )
    webhook_public_key: str | None = Field(
        default=None,
        description="PEM encoded public key used to verify webhooks.",
    )
    webhook_tolerance_seconds: float = Field(
        default=300.0,
        ge=0,
        description="Maximum webhook timestamp skew in either direction (seconds).",
    )

    def client_config(self) -> ClientConfig:
        """Build the API client configuration.

        Raises:
            ValueError: If no API key is configured.
        """
        if not self.api_key:
            raise ValueError("No API key configured (set CROSSPAY_API_KEY)")
        return ClientConfig(api_key=self.api_key, base_url=self.base_url, timeout=self.timeout)

    def verification_context(self) -> VerificationContext:
        """Build the webhook verification context.

        Raises:
            ValueError: If no webhook public key is configured.
        """
        if not self.webhook_public_key:
            raise ValueError("No webhook public key configured (set CROSSPAY_WEBHOOK_PUBLIC_KEY)")
        return VerificationContext(
            public_key_pem=self.webhook_public_key,
            max_clock_skew=timedelta(seconds=self.webhook_tolerance_seconds),
        )

    def to_display_dict(self) -> dict[str, Any]:
        """Settings for display, with secrets masked."""
        return {
            "api_key": "***" if self.api_key else None,
            "base_url": self.base_url,
            "timeout": self.timeout,
            "environment": self.environment,
            "webhook_public_key": "set" if self.webhook_public_key else None,
            "webhook_tolerance_seconds": self.webhook_tolerance_seconds,
        }


_config: CrosspaySettings | None = None


def get_config() -> CrosspaySettings:
    """Get the global settings instance.

    Settings are loaded from environment variables on first access and cached.
    To reload settings (e.g., in tests), call clear_config() first.

    Example:
        config = get_config()
        print(config.base_url)
    """
    global _config
    if _config is None:
        _config = CrosspaySettings()
    return _config


def clear_config() -> None:
    """Clear the cached settings.

    Call this to force reloading of environment variables on next get_config() call.
    """
    global _config
    _config = None
