"""
Manages loading, saving, and validating the server configuration using Pydantic.

This module defines the configuration schema as a Pydantic model (`Settings`)
and provides a manager class (`ConfigManager`) to handle persistence to a JSON file.
"""

import json
import time
import logging
from pathlib import Path
from typing import List

import aiofiles
from pydantic import BaseModel, Field, validator, ValidationError

from .constants import DEFAULT_HOST, DEFAULT_PORT


def default_download_directory() -> str:
    """Returns the user's Downloads folder, or a relative `downloads` fallback."""
    downloads = Path.home() / 'Downloads'
    return str(downloads) if downloads.is_dir() else 'downloads'


class Settings(BaseModel):
    """
    Defines the server's configuration schema.

    `download_directory` is the only setting the download core reads; it is
    used to build the default output template and to list/serve files.
    """
    download_directory: str = Field(default_factory=default_download_directory)
    host: str = DEFAULT_HOST
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535)
    log_level: str = 'INFO'

    @validator('log_level')
    def validate_log_level(cls, value: str) -> str:
        """Ensures log_level is a valid logging level string."""
        upper_value = value.upper()
        allowed_levels: List[str] = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if upper_value not in allowed_levels:
            raise ValueError(f"'{value}' is not a valid log level. Must be one of {allowed_levels}.")
        return upper_value

    @validator('download_directory')
    def validate_download_directory(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("download_directory cannot be empty.")
        return value


class ConfigManager:
    """Handles loading and saving the configuration file."""
    def __init__(self, config_path: Path):
        """
        Initializes the ConfigManager.

        Args:
            config_path: The path to the configuration file.
        """
        self.config_path = config_path
        self.logger = logging.getLogger(__name__)
        # Ensure the configuration directory exists
        self.config_path.parent.mkdir(parents=True, exist_ok=True)

    def load(self) -> Settings:
        """
        Loads config from file, merges with defaults, validates, and returns it.

        If the file doesn't exist a default one is written. If it is invalid,
        it is backed up and defaults are returned.

        Returns:
            A validated Settings object.
        """
        if not self.config_path.exists():
            self.logger.info(f"No config file found. Creating a default one at: {self.config_path}")
            default_settings = Settings()
            self.save(default_settings)
            return default_settings

        try:
            config_data = json.loads(self.config_path.read_text(encoding='utf-8'))
            return Settings.model_validate(config_data)
        except (ValidationError, json.JSONDecodeError, IOError) as e:
            self.logger.error(f"Error loading {self.config_path}: {e}. Backing up and using defaults.")
            try:
                backup_path = self.config_path.with_suffix(f".{int(time.time())}.bak")
                self.config_path.rename(backup_path)
                self.logger.info(f"Backed up corrupted config to {backup_path}")
            except IOError as backup_e:
                self.logger.error(f"Could not back up corrupted config file: {backup_e}")
            return Settings()

    def save(self, settings: Settings):
        """
        Saves the provided settings object to the config file.

        Args:
            settings: The Settings object to save.
        """
        try:
            self.config_path.write_text(settings.model_dump_json(indent=4), encoding='utf-8')
        except IOError as e:
            self.logger.error(f"Error saving config file to {self.config_path}: {e}")

    async def save_async(self, settings: Settings):
        """
        Saves settings without blocking the event loop.

        Raises:
            IOError: If the file cannot be written, so the caller can report it.
        """
        async with aiofiles.open(self.config_path, 'w', encoding='utf-8') as f_out:
            await f_out.write(settings.model_dump_json(indent=4))
        self.logger.info("Configuration updated and saved.")
