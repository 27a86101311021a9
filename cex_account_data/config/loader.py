"""
Configuration Loader.

Loads YAML configuration files with an optional environment overlay,
``.env`` support and environment variable substitution, then validates
the result into an ``AppConfig``.
"""

import os
from copy import deepcopy
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from .exceptions import (
    ConfigFileNotFoundError,
    ConfigParseError,
    ConfigValidationError,
)
from .models import AccountConfig, AppConfig, ExchangeConfig

# Environment variables read when no configuration file is given
ENV_API_KEY = "BINANCE_KEY"
ENV_API_SECRET = "BINANCE_SECRET"


class ConfigLoader:
    """
    Configuration loader with YAML support and environment overlays.

    Example:
        >>> loader = ConfigLoader()
        >>> config = loader.load("config/config.yaml", env="production")
        >>> config.accounts[0].name
        'main'
    """

    def __init__(self, env_file: Optional[str | Path] = None):
        """
        Initialize ConfigLoader.

        Args:
            env_file: Optional path to .env file. If not provided, a .env
                next to the config file or in the working directory is used.
        """
        self._env_file = Path(env_file) if env_file else None
        self._loaded_env = False

    def load(
        self,
        path: str | Path,
        env: Optional[str] = None,
    ) -> AppConfig:
        """
        Load configuration from YAML file with optional environment overlay.

        Loading flow:
        1. Load .env file (if exists)
        2. Load base config.yaml
        3. Deep merge config.{env}.yaml over it (if env given and file exists)
        4. Validate with pydantic (env vars substituted by the models)

        Args:
            path: Path to base configuration file
            env: Optional environment name (development, production, etc.)

        Returns:
            Validated AppConfig instance

        Raises:
            ConfigFileNotFoundError: If base config file not found
            ConfigParseError: If YAML parsing fails
            ConfigValidationError: If pydantic validation fails
        """
        path = Path(path)

        self._load_env_file(path.parent)

        config = self.load_yaml(path)

        if env:
            env_config_path = path.parent / f"{path.stem}.{env}{path.suffix}"
            if env_config_path.exists():
                config = self.merge_configs(config, self.load_yaml(env_config_path))

        return self.validate(config)

    def validate(self, data: dict[str, Any]) -> AppConfig:
        """
        Validate a raw configuration dict.

        Raises:
            ConfigValidationError: With one entry per pydantic error
        """
        try:
            return AppConfig(**data)
        except ValidationError as e:
            errors = [
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
                for err in e.errors()
            ]
            raise ConfigValidationError(errors) from e

    def load_yaml(self, path: str | Path) -> dict[str, Any]:
        """
        Load a YAML configuration file.

        Raises:
            ConfigFileNotFoundError: If file not found
            ConfigParseError: If YAML parsing fails or the root is not a mapping
        """
        path = Path(path)

        if not path.exists():
            raise ConfigFileNotFoundError(str(path))

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigParseError(str(path), str(e)) from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigParseError(str(path), "top level must be a mapping")
        return data

    def merge_configs(
        self,
        base: dict[str, Any],
        override: dict[str, Any],
    ) -> dict[str, Any]:
        """
        Deep merge two configuration dictionaries.

        Override values take precedence. Nested dictionaries are merged
        recursively; lists are replaced.

        Example:
            >>> loader.merge_configs({"a": {"b": 1, "c": 2}}, {"a": {"b": 10}})
            {'a': {'b': 10, 'c': 2}}
        """
        result = deepcopy(base)

        for key, value in override.items():
            if (
                key in result
                and isinstance(result[key], dict)
                and isinstance(value, dict)
            ):
                result[key] = self.merge_configs(result[key], value)
            else:
                result[key] = deepcopy(value)

        return result

    def _load_env_file(self, config_dir: Path) -> None:
        if self._loaded_env:
            return

        candidates = [config_dir / ".env", config_dir.parent / ".env", Path.cwd() / ".env"]
        if self._env_file:
            candidates.insert(0, self._env_file)

        for env_path in candidates:
            if env_path.exists():
                load_dotenv(env_path)
                self._loaded_env = True
                return


def load_config(
    path: str | Path,
    env: Optional[str] = None,
    env_file: Optional[str | Path] = None,
) -> AppConfig:
    """
    Load configuration from YAML file.

    Convenience function that creates a ConfigLoader and loads configuration.

    Args:
        path: Path to base configuration file
        env: Optional environment overlay name
        env_file: Optional path to .env file

    Returns:
        Validated AppConfig instance
    """
    return ConfigLoader(env_file=env_file).load(path, env=env)


def config_from_env(testnet: bool = False, name: str = "default") -> AppConfig:
    """
    Build a single-account configuration from BINANCE_KEY / BINANCE_SECRET.

    A ``.env`` in the working directory is honoured.

    Raises:
        ConfigValidationError: If either variable is missing
    """
    load_dotenv()
    api_key = os.environ.get(ENV_API_KEY, "")
    api_secret = os.environ.get(ENV_API_SECRET, "")

    missing = [var for var, value in ((ENV_API_KEY, api_key), (ENV_API_SECRET, api_secret)) if not value]
    if missing:
        raise ConfigValidationError([f"{var} is not set" for var in missing])

    return AppConfig(
        accounts=[
            AccountConfig(
                name=name,
                exchange=ExchangeConfig(api_key=api_key, api_secret=api_secret, testnet=testnet),
            )
        ],
    )
