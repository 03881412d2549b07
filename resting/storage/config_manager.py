"""
Manages loading and saving of the INI configuration file.
"""

import configparser
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from resting.exceptions import ConfigurationError
from resting.models.config import ClientConfiguration

log = logging.getLogger(__name__)


class ConfigManager:
    """Handles all operations related to the client's INI config file."""

    def __init__(self, config_file_path: Path):
        self.config_file_path = config_file_path
        self._parser = configparser.ConfigParser(interpolation=None)

    def load_config(
        self, cli_options: dict[str, Any] | None = None
    ) -> ClientConfiguration:
        """
        Loads configuration from the INI file, applies CLI overrides, and validates it.

        A missing file is not an error: defaults plus overrides are used.

        Args:
            cli_options: A dictionary of options provided via the command line.

        Returns:
            A validated ClientConfiguration object.

        Raises:
            ConfigurationError: If the config file is unreadable or validation fails.
        """
        config_from_file: dict[str, Any] = {}
        if self.config_file_path.is_file():
            try:
                self._parser.read(self.config_file_path, encoding="utf-8")
            except configparser.Error as e:
                raise ConfigurationError(
                    f"Error parsing configuration file: {e}"
                ) from e
            try:
                config_from_file = self._get_config_as_dict()
            except ValueError as e:
                raise ConfigurationError(
                    f"Invalid value in configuration file: {e}"
                ) from e
        else:
            log.debug(f"No configuration file at '{self.config_file_path}', using defaults.")

        if cli_options:
            config_from_file.update(
                {k: v for k, v in cli_options.items() if v is not None}
            )

        try:
            return ClientConfiguration(**config_from_file)
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed:\n{e}") from e

    def save_new_config(self, settings: dict[str, Any]) -> None:
        """
        Creates and saves a new configuration file.

        Args:
            settings: A dictionary of settings to save; missing keys get defaults.
        """
        config = configparser.ConfigParser(interpolation=None)
        config["DEFAULT"] = {}
        defaults = ClientConfiguration()

        for key in sorted(ClientConfiguration.get_ini_keys()):
            value = settings.get(key, getattr(defaults, key, None))

            if isinstance(value, bool):
                config["DEFAULT"][key] = "true" if value else "false"
            elif isinstance(value, dict):
                # One header per line; values may contain commas.
                config["DEFAULT"][key] = "\n".join(
                    f"{k}: {v}" for k, v in value.items()
                )
            elif value is None:
                config["DEFAULT"][key] = ""
            else:
                config["DEFAULT"][key] = str(value)

        try:
            self.config_file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_file_path, "w", encoding="utf-8") as configfile:
                config.write(configfile)
        except OSError as e:
            raise ConfigurationError(f"Failed to save configuration file: {e}") from e

    def _get_config_as_dict(self) -> dict[str, Any]:
        """Reads the 'DEFAULT' section of the INI file into a dictionary."""
        section = self._parser["DEFAULT"]
        result: dict[str, Any] = {}

        for key in ("total_timeout", "connect_timeout", "read_timeout"):
            if key in section:
                raw = section.get(key, "").strip()
                result[key] = float(raw) if raw else None
        if "max_connections" in section:
            result["max_connections"] = section.getint("max_connections")
        if "user_agent" in section:
            result["user_agent"] = section.get("user_agent")
        if "strict_decoding" in section:
            result["strict_decoding"] = section.getboolean("strict_decoding")
        if section.get("download_directory", "").strip():
            result["download_directory"] = Path(section.get("download_directory"))
        if "default_headers" in section:
            result["default_headers"] = parse_header_list(
                section.get("default_headers", "").splitlines()
            )
        return result


def parse_header_list(entries: list[str]) -> dict[str, str]:
    """
    Parses ``"Name: value"`` entries into a dictionary, skipping blanks.

    Raises:
        ConfigurationError: If an entry has no ':' separator or an empty name.
    """
    headers: dict[str, str] = {}
    for entry in entries:
        if not entry.strip():
            continue
        name, sep, value = entry.partition(":")
        if not sep or not name.strip():
            raise ConfigurationError(f"Invalid header '{entry}'. Use 'Name: value'.")
        headers[name.strip()] = value.strip()
    return headers
