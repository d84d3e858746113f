"""Configuration management for Hetzner Cloud Fleet CLI."""

import os
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator

from hcloud_fleet.core.exceptions import ConfigurationError


DEFAULT_API_URL = "https://api.hetzner.cloud/v1"
ENV_FILE_VARIABLE = "HC_PRICE_ENV_FILE"
MISSING_TOKEN_MESSAGE = "Please export HCLOUD_TOKEN first (or place it in .env)."

# Environment variable -> Config field
ENVIRONMENT_FIELDS = {
    "HCLOUD_TOKEN": "token",
    "HCLOUD_API_URL": "api_url",
    "HCLOUD_PER_PAGE": "per_page",
    "HCLOUD_TIMEOUT": "timeout",
}


class Config(BaseModel):
    """Configuration model for Hetzner Cloud Fleet CLI."""

    token: str = Field(..., description="Hetzner Cloud API token")
    api_url: str = Field(default=DEFAULT_API_URL, description="Hetzner Cloud API base URL")
    per_page: int = Field(default=50, ge=1, le=50, description="Page size for listing requests")
    timeout: float = Field(default=30.0, gt=0, description="HTTP timeout in seconds")
    price_tier: str = Field(default="net", description="Price tier: net or gross")
    max_workers: int = Field(default=5, ge=1, description="Concurrent snapshot submissions")
    poll_interval: float = Field(default=2.0, ge=0, description="Seconds between action polls")
    max_wait: Optional[float] = Field(default=None, gt=0, description="Maximum seconds to wait per action")
    max_polls: Optional[int] = Field(default=None, ge=1, description="Maximum polls per action")

    @field_validator('token')
    @classmethod
    def validate_token(cls, v: str) -> str:
        """Reject blank tokens."""
        if not v or not v.strip():
            raise ValueError(MISSING_TOKEN_MESSAGE)
        return v.strip()

    @field_validator('api_url')
    @classmethod
    def validate_api_url(cls, v: str) -> str:
        """Validate API base URL format."""
        if not v.startswith(("http://", "https://")):
            raise ValueError(
                f"Invalid API URL: {v}. "
                "Expected format: https://api.hetzner.cloud/v1"
            )
        return v.rstrip("/")

    @field_validator('price_tier')
    @classmethod
    def validate_price_tier(cls, v: str) -> str:
        """Validate price tier."""
        tier = v.strip().lower()
        if tier not in ("net", "gross"):
            raise ValueError(f"Invalid price tier: {v}. Expected 'net' or 'gross'")
        return tier


class ConfigManager:
    """Loads configuration from the environment and an optional .env file."""

    def __init__(self, env_file: Optional[Path] = None):
        """Initialize configuration manager.

        Args:
            env_file: Optional explicit .env file. Defaults to the file named by
                      HC_PRICE_ENV_FILE, then ./.env.
        """
        self.env_file = env_file

    def find_env_file(self) -> Optional[Path]:
        """Locate the .env file to load, if any.

        Returns:
            Path to an existing env file, or None.
        """
        if self.env_file is not None:
            return Path(self.env_file)

        configured = os.environ.get(ENV_FILE_VARIABLE)
        if configured:
            return Path(configured)

        local = Path.cwd() / ".env"
        if local.is_file():
            return local

        return None

    def load_env_file(self) -> Optional[Path]:
        """Populate the environment from the env file without overriding it.

        Returns:
            The path that was loaded, or None.
        """
        env_file = self.find_env_file()
        if env_file is None or not env_file.is_file():
            return None

        load_dotenv(env_file, override=False)
        return env_file

    def load_config(self, **overrides: Any) -> Config:
        """Build the configuration from environment and overrides.

        Args:
            **overrides: Field values taking precedence over the environment.
                         None values are ignored.

        Returns:
            Validated Config object.

        Raises:
            ConfigurationError: If the token is missing or a value is invalid.
        """
        self.load_env_file()

        values: Dict[str, Any] = {}
        for variable, field_name in ENVIRONMENT_FIELDS.items():
            value = os.environ.get(variable)
            if value:
                values[field_name] = value

        values.update({key: value for key, value in overrides.items() if value is not None})

        if not values.get("token", "").strip():
            raise ConfigurationError(MISSING_TOKEN_MESSAGE)

        try:
            return Config(**values)
        except PydanticValidationError as e:
            messages = "; ".join(error["msg"] for error in e.errors())
            raise ConfigurationError(f"Invalid configuration: {messages}", details=str(e))
