"""
Manages loading, validation, and migration of the INI configuration file.
"""

import configparser
import logging
import os
from pathlib import Path
from typing import Any, Mapping

from pydantic import ValidationError

from tunelink.exceptions import ConfigurationError
from tunelink.models.config import AppConfig

log = logging.getLogger(__name__)

# Environment variables that override the file, as used by deployments
ENV_OVERRIDES = {
    "DEEZER_ARL": "arl",
    "DEEZER_SECRET": "secret",
}

_FLOAT_KEYS = ("auth_timeout", "resolve_timeout", "cover_timeout", "stream_read_timeout")


class ConfigManager:
    """Handles all operations related to the application's INI config file."""

    def __init__(self, config_file_path: Path):
        self.config_file_path = config_file_path
        self._parser = configparser.ConfigParser(interpolation=None)

    def load_config(
        self,
        cli_options: dict[str, Any] | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> AppConfig:
        """
        Loads configuration from the INI file, applies environment and CLI
        overrides, and validates it.

        A missing file is not an error: the environment alone may carry the
        credentials.

        Args:
            cli_options: A dictionary of options provided via the command line.
            environ: Environment to read overrides from (defaults to os.environ).

        Returns:
            A validated AppConfig object.

        Raises:
            ConfigurationError: If the file cannot be parsed or validation fails.
        """
        config_data: dict[str, Any] = {}
        if self.config_file_path.is_file():
            try:
                self._parser.read(self.config_file_path, encoding="utf-8")
            except configparser.Error as e:
                raise ConfigurationError(
                    f"Error parsing configuration file: {e}"
                ) from e

            if self._migrate_if_needed():
                log.info(
                    "[yellow]Configuration file was updated with new default values."
                    "[/yellow]"
                )
            config_data = self._get_config_as_dict()
        else:
            log.debug(f"No configuration file at '{self.config_file_path}'")

        env = os.environ if environ is None else environ
        for env_key, field_name in ENV_OVERRIDES.items():
            if value := env.get(env_key):
                config_data[field_name] = value

        if cli_options:
            config_data.update({k: v for k, v in cli_options.items() if v is not None})

        try:
            return AppConfig(**config_data)
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed:\n{e}") from e

    def save_new_config(self, settings: dict[str, Any]) -> None:
        """
        Creates and saves a new configuration file.

        Args:
            settings: A dictionary of settings to save.
        """
        try:
            defaults = AppConfig(**settings)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid settings:\n{e}") from e

        config = configparser.ConfigParser(interpolation=None)
        config["DEFAULT"] = {
            key: self._to_ini_value(getattr(defaults, key))
            for key in sorted(AppConfig.get_ini_keys())
        }

        try:
            self.config_file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_file_path, "w", encoding="utf-8") as configfile:
                config.write(configfile)
        except OSError as e:
            raise ConfigurationError(f"Failed to save configuration file: {e}") from e

    @staticmethod
    def _to_ini_value(value: Any) -> str:
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)

    def _get_config_as_dict(self) -> dict[str, Any]:
        """Reads the 'DEFAULT' section of the INI file into a dictionary."""
        section = self._parser["DEFAULT"]
        data: dict[str, Any] = {
            key: section.get(key)
            for key in AppConfig.get_ini_keys()
            if key in section and key not in _FLOAT_KEYS and key != "embed_cover"
        }
        try:
            for key in _FLOAT_KEYS:
                if key in section:
                    data[key] = section.getfloat(key)
            if "embed_cover" in section:
                data["embed_cover"] = section.getboolean("embed_cover")
        except ValueError as e:
            raise ConfigurationError(f"Invalid value in configuration file: {e}") from e
        return data

    def _migrate_if_needed(self) -> bool:
        """
        Adds any missing keys to the config file with their default values.

        Returns:
            True if the configuration file was modified, False otherwise.
        """
        defaults = AppConfig()
        section = self._parser["DEFAULT"]
        needs_saving = False

        for key in sorted(AppConfig.get_ini_keys()):
            if key not in section:
                section[key] = self._to_ini_value(getattr(defaults, key))
                needs_saving = True
                log.debug(f"Migrating config: added missing key '{key}'.")

        if needs_saving:
            try:
                with open(self.config_file_path, "w", encoding="utf-8") as f:
                    self._parser.write(f)
            except OSError as e:
                log.error(f"Could not save migrated configuration file: {e}")
                return False

        return needs_saving
