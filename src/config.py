"""
Configuration module for the AWS security reconcilers.

Loads configuration from environment variables. Covers the AWS client
settings, the retry/poll windows used around mutating calls, and the
reconciler and CLI settings.
"""

import os
from dataclasses import dataclass, field
from typing import Optional

from retry import RetryPolicy


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}")


def _env_float(name: str, default: Optional[float]) -> Optional[float]:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {value!r}")


@dataclass
class AWSConfig:
    """AWS client configuration."""

    region: Optional[str] = None
    profile: Optional[str] = None
    endpoint_url: Optional[str] = None
    max_attempts: int = 5  # botocore transport-level retries

    @classmethod
    def from_env(cls):
        """Load from environment variables."""
        return cls(
            region=os.getenv("AWS_REGION") or os.getenv("AWS_DEFAULT_REGION"),
            profile=os.getenv("AWS_PROFILE") or None,
            endpoint_url=os.getenv("AWS_ENDPOINT_URL") or None,
            max_attempts=_env_int("AWS_MAX_ATTEMPTS", 5),
        )


@dataclass
class RetryConfig:
    """Retry window and polling configuration."""

    mutation_timeout: float = 240.0  # seconds (4 minutes per mutating call)
    min_delay: float = 0.5
    max_delay: float = 10.0
    invite_wait_timeout: float = 300.0
    poll_interval: float = 5.0

    @classmethod
    def from_env(cls):
        """Load from environment variables."""
        return cls(
            mutation_timeout=_env_float("RETRY_TIMEOUT", 240.0),
            min_delay=_env_float("RETRY_MIN_DELAY", 0.5),
            max_delay=_env_float("RETRY_MAX_DELAY", 10.0),
            invite_wait_timeout=_env_float("INVITE_WAIT_TIMEOUT", 300.0),
            poll_interval=_env_float("POLL_INTERVAL", 5.0),
        )

    def to_policy(self) -> RetryPolicy:
        """Build the RetryPolicy used by resource handlers."""
        return RetryPolicy(
            timeout=self.mutation_timeout,
            min_delay=self.min_delay,
            max_delay=self.max_delay,
            wait_timeout=self.invite_wait_timeout,
            poll_interval=self.poll_interval,
        )


@dataclass
class ReconcilerConfig:
    """Reconciler and CLI configuration."""

    operation_timeout: Optional[float] = None  # None = no overall deadline
    log_level: str = "INFO"
    state_file: str = field(default=".secctl/state.json")

    @classmethod
    def from_env(cls):
        """Load from environment variables."""
        return cls(
            operation_timeout=_env_float("OPERATION_TIMEOUT", None),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            state_file=os.getenv("SECCTL_STATE_FILE", ".secctl/state.json"),
        )


@dataclass
class Config:
    """Main configuration object."""

    aws: AWSConfig
    retry: RetryConfig
    reconciler: ReconcilerConfig

    @classmethod
    def from_env(cls):
        """Load all configuration from environment variables."""
        return cls(
            aws=AWSConfig.from_env(),
            retry=RetryConfig.from_env(),
            reconciler=ReconcilerConfig.from_env(),
        )

    @classmethod
    def default(cls):
        """Return default configuration."""
        return cls(
            aws=AWSConfig(),
            retry=RetryConfig(),
            reconciler=ReconcilerConfig(),
        )


# Global config instance
config: Optional[Config] = None


def load_config() -> Config:
    """Load configuration (singleton pattern)."""
    global config
    if config is None:
        config = Config.from_env()
    return config


def get_config() -> Config:
    """Get the current configuration."""
    if config is None:
        return load_config()
    return config


def reset_config() -> None:
    """Reset configuration (mainly for testing)."""
    global config
    config = None
