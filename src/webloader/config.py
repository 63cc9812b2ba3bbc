"""Configuration management for the web resource loader."""

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from .constants import DEFAULT_MAX_CONCURRENT_FETCHES, DEFAULT_TIMEOUT_SECONDS, DEFAULT_USER_AGENT


@dataclass
class FetchConfig:
    """HTTP fetch configuration."""

    timeout: float = DEFAULT_TIMEOUT_SECONDS
    verify_ssl: bool = True
    max_connections: int = 20  # Maximum total connections
    max_keepalive: int = 10  # Maximum keep-alive connections
    retry_attempts: int = 1  # Total attempts per URL on transport errors (1 = no retry)
    retry_backoff: float = 0.5  # Seconds before the first retry, doubled after each one
    follow_redirects: bool = True
    base_url: str | None = None  # Resolves relative resource URLs
    user_agent: str = DEFAULT_USER_AGENT


@dataclass
class PolicyConfig:
    """
    Policy configuration for load operations.

    Controls concurrency, fallback use and step sizing.
    """

    max_concurrent_fetches: int = DEFAULT_MAX_CONCURRENT_FETCHES
    use_fallback: bool = True
    max_step_size: int | None = None  # Split wider levels into several steps


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    format: str = "console"
    file: Path | None = None


@dataclass
class LoaderConfig:
    """
    Complete configuration for the web resource loader.

    This combines all configuration sections.
    """

    fetch: FetchConfig = field(default_factory=FetchConfig)
    policy: PolicyConfig = field(default_factory=PolicyConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_file(cls, config_path: Path) -> "LoaderConfig":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to YAML config file

        Returns:
            LoaderConfig instance

        Raises:
            ValueError: If the file is not valid YAML or not a mapping
        """
        try:
            with open(config_path) as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file {config_path}: {e}") from e

        if data is None:
            data = {}

        if not isinstance(data, dict):
            raise ValueError(
                f"Invalid configuration file structure in {config_path}: "
                f"expected dictionary, got {type(data).__name__}"
            )

        try:
            fetch = FetchConfig(**(data.get("fetch") or {}))
            policy = PolicyConfig(**(data.get("policy") or {}))

            logging_data = dict(data.get("logging") or {})
            # Convert file path string to Path if present
            if logging_data.get("file"):
                logging_data["file"] = Path(logging_data["file"])
            logging = LoggingConfig(**logging_data)
        except TypeError as e:
            raise ValueError(f"Unknown configuration key in {config_path}: {e}") from e

        return cls(fetch=fetch, policy=policy, logging=logging)

    def to_file(self, config_path: Path) -> None:
        """
        Save configuration to YAML file.

        Args:
            config_path: Path to save config file
        """
        data = {
            "fetch": dict(self.fetch.__dict__),
            "policy": dict(self.policy.__dict__),
            "logging": {
                k: str(v) if isinstance(v, Path) else v
                for k, v in self.logging.__dict__.items()
                if v is not None
            },
        }

        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)

    @classmethod
    def from_env(cls) -> "LoaderConfig":
        """
        Create configuration from environment variables.

        Environment variables:
            WEBLOADER_BASE_URL: Base URL for relative resource URLs
            WEBLOADER_TIMEOUT: Request timeout in seconds (default: 30)
            WEBLOADER_VERIFY_SSL: Verify TLS certificates (default: true)
            WEBLOADER_MAX_CONCURRENCY: Maximum concurrent fetches (default: 10)
            LOG_LEVEL: Logging level (default: INFO)
            LOG_FORMAT: console or json (default: console)

        Returns:
            LoaderConfig instance

        Raises:
            ValueError: If a numeric variable cannot be parsed
        """
        verify_ssl_str = os.environ.get("WEBLOADER_VERIFY_SSL", "true").lower()

        try:
            fetch = FetchConfig(
                base_url=os.environ.get("WEBLOADER_BASE_URL") or None,
                timeout=float(os.environ.get("WEBLOADER_TIMEOUT", DEFAULT_TIMEOUT_SECONDS)),
                verify_ssl=verify_ssl_str not in ("false", "0", "no", "off"),
            )
            policy = PolicyConfig(
                max_concurrent_fetches=int(
                    os.environ.get("WEBLOADER_MAX_CONCURRENCY", DEFAULT_MAX_CONCURRENT_FETCHES)
                ),
            )
        except ValueError as e:
            raise ValueError(f"Invalid numeric value in environment configuration: {e}") from e

        logging_config = LoggingConfig(
            level=os.environ.get("LOG_LEVEL", "INFO"),
            format=os.environ.get("LOG_FORMAT", "console"),
        )

        return cls(fetch=fetch, policy=policy, logging=logging_config)


def load_config(config_file: Path | None = None) -> LoaderConfig:
    """
    Load configuration from file or environment variables.

    Args:
        config_file: Optional path to YAML config file

    Returns:
        LoaderConfig instance

    Raises:
        FileNotFoundError: If config_file is specified but doesn't exist
    """
    if config_file:
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_file}")
        return LoaderConfig.from_file(config_file)
    return LoaderConfig.from_env()
