"""Configuration loader for gcloud-secrets.

The configuration is a small KEY=VALUE file, by default
``~/.secrets-manager.conf``:

    SECRETS_CENTRAL_PROJECT=my-central-project
    DEFAULT_ENVIRONMENT=dev
"""
import os
import logging
from pathlib import Path
from typing import Dict, Optional

from .models import Config

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".secrets-manager.conf"
CONFIG_PATH_ENV = "SECRETS_MANAGER_CONFIG"
PROJECT_KEY = "SECRETS_CENTRAL_PROJECT"
ENVIRONMENT_KEY = "DEFAULT_ENVIRONMENT"


class ConfigError(Exception):
    """Configuration error exception."""
    pass


def get_config_path(path: Optional[str] = None) -> Path:
    """
    Resolve the config file path.

    Priority order:
    1. Explicit path argument
    2. SECRETS_MANAGER_CONFIG environment variable
    3. ~/.secrets-manager.conf
    """
    if path:
        return Path(path).expanduser()

    env_path = os.getenv(CONFIG_PATH_ENV)
    if env_path:
        logger.debug(f"Using {CONFIG_PATH_ENV} from environment: {env_path}")
        return Path(env_path).expanduser()

    return Path.home() / CONFIG_FILENAME


def _parse_config_text(content: str) -> Dict[str, str]:
    values = {}
    for line in content.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        name, value = line.split("=", 1)
        values[name.strip()] = value.strip()
    return values


def load_config(path: Optional[str] = None) -> Config:
    """
    Load configuration from the config file.

    Values missing from the file (or the whole file) fall back to the
    SECRETS_CENTRAL_PROJECT and DEFAULT_ENVIRONMENT environment variables.

    Raises:
        ConfigError: If the config file exists but cannot be read
    """
    config_path = get_config_path(path)
    values: Dict[str, str] = {}

    if config_path.exists():
        try:
            values = _parse_config_text(config_path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigError(f"Failed to read config file at {config_path}: {e}")
        logger.debug(f"Loaded configuration from {config_path}")
    else:
        logger.debug(f"No config file at {config_path}, using environment")

    central_project = values.get(PROJECT_KEY) or os.getenv(PROJECT_KEY, "")
    default_environment = values.get(ENVIRONMENT_KEY) or os.getenv(ENVIRONMENT_KEY) or None

    return Config(
        central_project=central_project.strip(),
        default_environment=default_environment.strip().lower() if default_environment else None,
    )


def require_project(config: Config) -> str:
    """
    Return the central project ID or explain how to set it.

    Raises:
        ConfigError: If no central project is configured
    """
    if not config.central_project:
        raise ConfigError(
            "Central project not configured. Set it up using one of these methods:\n\n"
            "1. Run init:\n"
            "   gcloud-secrets init <project-id>\n\n"
            f"2. Set the {PROJECT_KEY} environment variable\n"
        )
    return config.central_project


def save_config(config: Config, path: Optional[str] = None) -> Path:
    """Write configuration to the config file and return its path."""
    config_path = get_config_path(path)
    lines = [f"{PROJECT_KEY}={config.central_project}"]
    if config.default_environment:
        lines.append(f"{ENVIRONMENT_KEY}={config.default_environment}")

    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    logger.info(f"Configuration written to {config_path}")
    return config_path
