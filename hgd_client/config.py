"""
HGD client configuration system.

Priority order (highest to lowest):
1. Command-line arguments
2. Environment variables
3. Configuration file (YAML)
4. Default values
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from .protocol.constants import DEFAULT_PORT, DEFAULT_TIMEOUT

logger = logging.getLogger(__name__)


# Valid log levels
VALID_LOG_LEVELS = {"debug", "info", "warning", "error"}

# Environment variable mappings
ENV_MAPPINGS = {
    # Daemon
    "HGD_HOST": ("daemon", "host"),
    "HGD_PORT": ("daemon", "port"),
    "HGD_TIMEOUT": ("daemon", "timeout"),
    # Auth
    "HGD_USERNAME": ("auth", "username"),
    "HGD_PASSWORD": ("auth", "password"),
    # TLS
    "HGD_TLS": ("tls", "enabled"),
    "HGD_TLS_VERIFY": ("tls", "verify_server_cert"),
    "HGD_TLS_CA_FILE": ("tls", "ca_file"),
    "HGD_TLS_LEGACY": ("tls", "allow_legacy_tls"),
    # Logging
    "HGD_LOG_LEVEL": ("logging", "level"),
}

_INT_ENV_VARS = {"HGD_PORT"}
_FLOAT_ENV_VARS = {"HGD_TIMEOUT"}
_BOOL_ENV_VARS = {"HGD_TLS", "HGD_TLS_VERIFY", "HGD_TLS_LEGACY"}


class ConfigError(Exception):
    """Configuration error."""

    pass


@dataclass
class DaemonConfig:
    """Daemon address configuration."""

    host: str = ""
    port: int = DEFAULT_PORT
    timeout: float = DEFAULT_TIMEOUT  # 0 disables the timeout


@dataclass
class AuthConfig:
    """Daemon account configuration."""

    username: str = ""
    password: str = ""


@dataclass
class TLSConfig:
    """Encryption upgrade configuration."""

    enabled: bool = False
    verify_server_cert: bool = True
    ca_file: str = ""
    allow_legacy_tls: bool = False


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "info"


@dataclass
class Config:
    """Complete client configuration."""

    daemon: DaemonConfig = field(default_factory=DaemonConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)
    tls: TLSConfig = field(default_factory=TLSConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def validate_port(port: int) -> bool:
    """Validate port number."""
    return 1 <= port <= 65535


def validate_config(config: Config) -> None:
    """
    Validate configuration.

    Raises:
        ConfigError: If configuration is invalid
    """
    errors = []

    # Daemon
    if not config.daemon.host:
        errors.append("Daemon host is required")
    if not validate_port(config.daemon.port):
        errors.append(f"Invalid daemon port: {config.daemon.port}")
    if config.daemon.timeout < 0:
        errors.append(f"Invalid timeout: {config.daemon.timeout}")

    # Auth
    if config.auth.password and not config.auth.username:
        errors.append("A password was given without a username")

    # TLS
    if config.tls.ca_file and not Path(config.tls.ca_file).is_file():
        errors.append(f"CA file not found: {config.tls.ca_file}")

    # Logging
    if config.logging.level.lower() not in VALID_LOG_LEVELS:
        errors.append(
            f"Invalid log level: {config.logging.level}. "
            f"Valid values: {sorted(VALID_LOG_LEVELS)}"
        )

    if errors:
        raise ConfigError("Configuration validation failed:\n  - " + "\n  - ".join(errors))


def load_yaml_config(path: Path) -> dict:
    """
    Load configuration from YAML file.

    Args:
        path: Path to YAML file

    Returns:
        Configuration dictionary

    Raises:
        ConfigError: If file cannot be read or parsed
    """
    if not path.exists():
        logger.debug(f"Config file not found: {path}")
        return {}

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
            return data if data else {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Error parsing YAML config: {e}")
    except IOError as e:
        raise ConfigError(f"Error reading config file: {e}")


def _set_nested(d: dict, path: tuple, value: Any) -> None:
    """Set a nested dictionary value using a path tuple."""
    for key in path[:-1]:
        d = d.setdefault(key, {})
    d[path[-1]] = value


def load_env_config() -> dict:
    """
    Load configuration from environment variables.

    Returns:
        Configuration dictionary with values from environment
    """
    result: dict = {}

    for env_var, path in ENV_MAPPINGS.items():
        value: Any = os.environ.get(env_var)
        if value is None:
            continue

        if env_var in _INT_ENV_VARS:
            try:
                value = int(value)
            except ValueError:
                logger.warning(f"Invalid integer for {env_var}: {value}")
                continue
        elif env_var in _FLOAT_ENV_VARS:
            try:
                value = float(value)
            except ValueError:
                logger.warning(f"Invalid number for {env_var}: {value}")
                continue
        elif env_var in _BOOL_ENV_VARS:
            value = value.lower() in ("true", "1", "yes", "on")

        _set_nested(result, path, value)

    return result


def _deep_merge(base: dict, override: dict) -> None:
    """Recursively merge override into base."""
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value


def merge_configs(*configs: dict) -> dict:
    """
    Deep merge multiple configuration dictionaries.
    Later configs override earlier ones.
    """
    result: dict = {}
    for config in configs:
        _deep_merge(result, config)
    return result


def dict_to_config(d: dict) -> Config:
    """Convert a dictionary to Config dataclass."""
    config = Config()

    # Daemon
    if "daemon" in d:
        dm = d["daemon"]
        config.daemon.host = dm.get("host", config.daemon.host)
        config.daemon.port = dm.get("port", config.daemon.port)
        timeout = dm.get("timeout", config.daemon.timeout)
        # YAML null means no timeout
        config.daemon.timeout = 0.0 if timeout is None else timeout

    # Auth
    if "auth" in d:
        a = d["auth"]
        config.auth.username = a.get("username", config.auth.username)
        config.auth.password = a.get("password", config.auth.password)

    # TLS
    if "tls" in d:
        t = d["tls"]
        config.tls.enabled = t.get("enabled", config.tls.enabled)
        config.tls.verify_server_cert = t.get(
            "verify_server_cert", config.tls.verify_server_cert
        )
        config.tls.ca_file = t.get("ca_file", config.tls.ca_file)
        config.tls.allow_legacy_tls = t.get("allow_legacy_tls", config.tls.allow_legacy_tls)

    # Logging
    if "logging" in d:
        config.logging.level = d["logging"].get("level", config.logging.level)

    return config


def load_config(
    config_path: Optional[Path] = None,
    cli_args: Optional[dict] = None,
) -> Config:
    """
    Load configuration from all sources.

    Priority (highest to lowest):
    1. CLI arguments
    2. Environment variables
    3. Config file
    4. Defaults

    Args:
        config_path: Path to YAML config file
        cli_args: Dictionary of CLI arguments

    Returns:
        Merged Config object

    Raises:
        ConfigError: If configuration is invalid
    """
    configs = []

    if config_path:
        file_config = load_yaml_config(config_path)
        if file_config:
            configs.append(file_config)
            logger.debug(f"Loaded config from {config_path}")

    env_config = load_env_config()
    if env_config:
        configs.append(env_config)
        logger.debug("Loaded config from environment variables")

    if cli_args:
        configs.append(cli_args)
        logger.debug("Loaded config from CLI arguments")

    merged = merge_configs(*configs) if configs else {}

    # Defaults come from the dataclasses
    config = dict_to_config(merged)

    validate_config(config)

    return config
