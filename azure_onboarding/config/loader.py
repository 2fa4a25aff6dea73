"""
Configuration loader for onboarding runs.

Handles loading from multiple sources with proper priority:
CLI Args > Environment Variables > Config File > Defaults
"""

import os
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml
from dotenv import find_dotenv, load_dotenv
from pydantic import ValidationError

from azure_onboarding.exceptions import ConfigurationError

from .models import NotificationTarget, OnboardingSettings

# Standard Azure SDK variables honoured alongside the AZO_ ones
_AZURE_ENV_ALIASES = {
    "AZURE_SUBSCRIPTION_ID": "subscription_id",
    "AZURE_TENANT_ID": "tenant_id",
}


class ConfigLoader:
    """
    Loads and merges configuration from multiple sources.

    Priority order (highest to lowest):
    1. CLI arguments (passed directly to ``load``)
    2. Environment variables (AZO_*, plus AZURE_SUBSCRIPTION_ID / AZURE_TENANT_ID)
    3. Configuration file
    4. Default values
    """

    DEFAULT_CONFIG_FILE = Path.home() / ".config" / "azure-onboarding" / "settings.yaml"
    ENV_PREFIX = "AZO_"

    def __init__(
        self,
        config_path: Optional[Path] = None,
        environ: Optional[Mapping[str, str]] = None,
    ):
        """
        Initialize configuration loader.

        Args:
            config_path: Path to YAML configuration file. If None, uses
                AZO_CONFIG_PATH or the default location.
            environ: Environment mapping; defaults to ``os.environ``
        """
        self.environ = os.environ if environ is None else environ
        self.config_path = config_path or self._get_config_path_from_env()

    def _get_config_path_from_env(self) -> Path:
        env_path = self.environ.get("AZO_CONFIG_PATH")
        if env_path:
            return Path(env_path).expanduser()
        return self.DEFAULT_CONFIG_FILE

    def load(self, **overrides: Any) -> OnboardingSettings:
        """
        Load configuration from all sources and merge.

        Args:
            **overrides: Top-level settings from the command line. ``None``
                values are ignored so unset CLI options do not mask lower
                priority sources.

        Returns:
            Validated OnboardingSettings object

        Raises:
            ConfigurationError: If configuration is invalid
        """
        config_dict: dict[str, Any] = {}

        if self.config_path.exists():
            config_dict = self._deep_merge(config_dict, self._load_file(self.config_path))

        config_dict = self._deep_merge(config_dict, self._load_from_env())
        config_dict = self._deep_merge(
            config_dict, {k: v for k, v in overrides.items() if v is not None}
        )

        try:
            return OnboardingSettings.model_validate(config_dict)
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed: {e}") from e

    def _load_file(self, path: Path) -> dict[str, Any]:
        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Cannot read config file {path}: {e}") from e
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {path} must contain a mapping")
        return data

    def _load_from_env(self) -> dict[str, Any]:
        """
        Load configuration from environment variables.

        Environment variable format:
        - AZO_TEMPLATE_BASE_URL
        - AZO_DEPLOYMENT_PREFIX
        - AZO_RETRY__MAX_ATTEMPTS

        Double underscore (__) separates nested keys. Variables whose first
        segment is not a settings field (AZO_TIMEOUT_*, AZO_API_*) are left
        to the modules that own them. Values stay strings; pydantic coerces.
        """
        config: dict[str, Any] = {}
        known = set(OnboardingSettings.model_fields)

        for env_name, field_name in _AZURE_ENV_ALIASES.items():
            value = self.environ.get(env_name)
            if value:
                config[field_name] = value

        for key, value in self.environ.items():
            if not key.startswith(self.ENV_PREFIX):
                continue

            parts = key[len(self.ENV_PREFIX) :].lower().split("__")
            if parts[0] not in known:
                continue

            current = config
            for part in parts[:-1]:
                current = current.setdefault(part, {})
            current[parts[-1]] = value

        return config

    def _deep_merge(
        self, base: dict[str, Any], update: dict[str, Any]
    ) -> dict[str, Any]:
        """Merge ``update`` into a copy of ``base``, recursing into dicts."""
        result = base.copy()

        for key, value in update.items():
            if (
                key in result
                and isinstance(result[key], dict)
                and isinstance(value, dict)
            ):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result


def load_env_file() -> bool:
    """Load ``.env`` from the working directory (or a parent) without overriding set variables."""
    return load_dotenv(find_dotenv(usecwd=True))


def load_settings(config_path: Optional[Path] = None, **overrides: Any) -> OnboardingSettings:
    """Load ``.env`` then build settings. Convenience wrapper around ConfigLoader."""
    load_env_file()
    return ConfigLoader(config_path).load(**overrides)


def build_notification_target(
    url: Optional[str],
    token: Optional[str],
    environ: Optional[Mapping[str, str]] = None,
) -> Optional[NotificationTarget]:
    """
    Resolve the optional registration API target.

    CLI values win over AZO_API_URL / AZO_API_TOKEN. Returns None when
    neither URL nor token is configured.

    Raises:
        ConfigurationError: If only one of URL and token is set, or the URL is invalid
    """
    env = os.environ if environ is None else environ
    url = url or env.get("AZO_API_URL") or None
    token = token or env.get("AZO_API_TOKEN") or None

    if url is None and token is None:
        return None
    if url is None or token is None:
        raise ConfigurationError(
            "Both an API URL and an API token are required to send the registration",
            setting="api_url" if url is None else "api_token",
        )
    try:
        return NotificationTarget(url=url, token=token)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid notification target: {e}", setting="api_url") from e
