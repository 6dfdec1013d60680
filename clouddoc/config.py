"""
Centralized configuration management.

Configuration is loaded from:
1. Environment variables
2. .env file in the working directory (if present)
3. Default values

Usage:
    from clouddoc.config import get_config
    config = get_config()
    print(config.store.bucket_name("inventory"))
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


def _load_dotenv(dotenv_path: Optional[Path] = None) -> None:
    """
    Minimal .env loader.

    Supports KEY=VALUE, ignores blank lines and comments (#).
    Does not override existing environment variables.
    """
    if dotenv_path is None:
        dotenv_path = Path.cwd() / ".env"

    if not dotenv_path.exists() or not dotenv_path.is_file():
        return

    for raw_line in dotenv_path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if not key:
            continue
        if os.getenv(key) in (None, ""):
            os.environ[key] = value


_load_dotenv()


def _get_bool_env(key: str, default: bool = False) -> bool:
    """Get boolean from environment variable."""
    value = os.getenv(key, "").strip().lower()
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("0", "false", "no", "off"):
        return False
    return default


def _get_int_env(key: str, default: int) -> int:
    """Get integer from environment variable."""
    value = os.getenv(key, "").strip()
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_float_env(key: str, default: float) -> float:
    value = os.getenv(key, "").strip()
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        return default


@dataclass
class AWSConfig:
    """Credentials and client settings shared by the SimpleDB and S3 clients."""
    # Explicit credentials are optional; boto3 falls back to AWS_PROFILE, IAM roles, etc.
    access_key_id: str = field(default_factory=lambda: os.getenv("AWS_ACCESS_KEY_ID", ""))
    secret_access_key: str = field(default_factory=lambda: os.getenv("AWS_SECRET_ACCESS_KEY", ""))
    session_token: str = field(default_factory=lambda: os.getenv("AWS_SESSION_TOKEN", ""))

    region: str = field(default_factory=lambda: os.getenv("AWS_REGION", "us-east-1"))

    connect_timeout: int = field(default_factory=lambda: _get_int_env("AWS_CONNECT_TIMEOUT", 10))
    read_timeout: int = field(default_factory=lambda: _get_int_env("AWS_READ_TIMEOUT", 60))
    max_retries: int = field(default_factory=lambda: _get_int_env("AWS_MAX_RETRIES", 3))

    @property
    def has_credentials(self) -> bool:
        """Check if explicit credentials are configured."""
        return bool(self.access_key_id and self.secret_access_key)

    @property
    def is_configured(self) -> bool:
        """Check if AWS access is configured (explicit keys or a named profile)."""
        return self.has_credentials or bool(os.getenv("AWS_PROFILE"))


@dataclass
class StoreConfig:
    """Naming and consistency settings for the backing domain and bucket."""
    # Database opened by Database.open() when no name is given
    database: str = field(default_factory=lambda: os.getenv("CLOUDDOC_DATABASE", ""))
    bucket_suffix: str = field(
        default_factory=lambda: os.getenv("CLOUDDOC_BUCKET_SUFFIX", "clouddoc.db")
    )
    consistent_read: bool = field(
        default_factory=lambda: _get_bool_env("CLOUDDOC_CONSISTENT_READ", True)
    )

    # Domain/bucket creation is eventually consistent; init() polls open() within this window
    propagation_timeout_sec: float = field(
        default_factory=lambda: _get_float_env("CLOUDDOC_PROPAGATION_TIMEOUT_SEC", 30.0)
    )
    propagation_poll_sec: float = field(
        default_factory=lambda: _get_float_env("CLOUDDOC_PROPAGATION_POLL_SEC", 1.0)
    )

    def bucket_name(self, database: str) -> str:
        """Bucket backing the given database."""
        return f"{database}.{self.bucket_suffix}"


@dataclass
class Config:
    """
    Main application configuration.

    All settings are loaded from environment variables with sensible defaults.
    Set DEBUG=1 in environment to enable debug logging.
    """

    logs_dir: Path = field(default=None)

    debug: bool = field(default_factory=lambda: _get_bool_env("DEBUG", False))
    log_to_file: bool = field(default_factory=lambda: _get_bool_env("LOG_TO_FILE", False))

    aws: AWSConfig = field(default_factory=AWSConfig)
    store: StoreConfig = field(default_factory=StoreConfig)

    def __post_init__(self):
        if self.logs_dir is None:
            self.logs_dir = Path.cwd() / os.getenv("LOG_DIR", "logs")


_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config


def reset_config() -> None:
    """Reset the global configuration (useful for testing)."""
    global _config
    _config = None
