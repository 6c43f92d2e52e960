# koko_core/app_config.py
import configparser
import os
import logging
from typing import Type, Any, Optional, Tuple
from koko_core.config_defs import *

logger = logging.getLogger("koko.config")


class AppConfig:
    def __init__(self, config_file_path: Optional[str] = None):
        self.BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
        self.CONFIG_FILE_NAME = "koko_config.ini"
        self.CONFIG_DIR = os.path.join(self.BASE_DIR, "config")
        self.CONFIG_FILE_PATH = config_file_path or os.path.join(self.CONFIG_DIR, self.CONFIG_FILE_NAME)
        self._config_parser = configparser.ConfigParser()
        self._load_config_file()
        self._load_all_settings()

    def _load_config_file(self):
        if os.path.exists(self.CONFIG_FILE_PATH):
            try:
                self._config_parser.read(self.CONFIG_FILE_PATH, encoding="utf-8")
            except configparser.Error as e:
                logger.warning(f"Could not parse config file {self.CONFIG_FILE_PATH}: {e}. Using defaults.")
                self._config_parser = configparser.ConfigParser()
        else:
            logger.debug(f"Config file {self.CONFIG_FILE_PATH} not found. Using defaults.")

    def _get_config_value(self, section: str, key: str, fallback: Any, value_type: Type = str) -> Any:
        if self._config_parser.has_section(section) and self._config_parser.has_option(section, key):
            try:
                if value_type == bool:
                    return self._config_parser.getboolean(section, key)
                elif value_type == int:
                    return self._config_parser.getint(section, key)
                elif value_type == list:
                    val = self._config_parser.get(section, key)
                    return [item.strip() for item in val.split(",") if item.strip()] if val and val.strip() else []
                return self._config_parser.get(section, key)
            except (ValueError, configparser.Error):
                logger.warning(f"Invalid value for [{section}] {key}. Using fallback {fallback!r}.")
                return fallback
        return fallback

    def _load_all_settings(self):
        self.root_buffer_name = self._get_config_value("Session", "root_buffer_name", DEFAULT_ROOT_BUFFER_NAME, str).strip()
        if not self.root_buffer_name:
            logger.warning(f"Empty root_buffer_name in config. Using '{DEFAULT_ROOT_BUFFER_NAME}'.")
            self.root_buffer_name = DEFAULT_ROOT_BUFFER_NAME

        command_symbol = self._get_config_value("Session", "command_symbol", DEFAULT_COMMAND_SYMBOL, str).strip()
        if len(command_symbol) != 1:
            logger.warning(f"command_symbol must be a single character (got {command_symbol!r}). Using '{DEFAULT_COMMAND_SYMBOL}'.")
            command_symbol = DEFAULT_COMMAND_SYMBOL
        self.command_symbol = command_symbol

        prefixes = self._get_config_value("Session", "channel_prefixes", list(DEFAULT_CHANNEL_PREFIXES), list)
        self.channel_prefixes: Tuple[str, ...] = tuple(p for p in prefixes if len(p) == 1) or DEFAULT_CHANNEL_PREFIXES
        self.relabel_history_on_nick = self._get_config_value("Session", "relabel_history_on_nick", DEFAULT_RELABEL_HISTORY_ON_NICK, bool)

        self.log_enabled = self._get_config_value("Logging", "log_enabled", DEFAULT_LOG_ENABLED, bool)
        self.log_file = self._get_config_value("Logging", "log_file", DEFAULT_LOG_FILE, str)
        self.log_error_file = self._get_config_value("Logging", "log_error_file", DEFAULT_LOG_ERROR_FILE, str)
        log_level_raw = self._get_config_value("Logging", "log_level", DEFAULT_LOG_LEVEL, str)
        self.log_level_str = log_level_raw.split('#')[0].strip().upper()
        log_error_level_raw = self._get_config_value("Logging", "log_error_level", DEFAULT_LOG_ERROR_LEVEL, str)
        self.log_error_level_str = log_error_level_raw.split('#')[0].strip().upper()
        self.log_max_bytes = self._get_config_value("Logging", "log_max_bytes", DEFAULT_LOG_MAX_BYTES, int)
        self.log_backup_count = self._get_config_value("Logging", "log_backup_count", DEFAULT_LOG_BACKUP_COUNT, int)
        self.max_error_notices = self._get_config_value("Logging", "max_error_notices", DEFAULT_MAX_ERROR_NOTICES, int)

    def session_settings(self) -> SessionSettings:
        """Resolves the immutable session constants used by the controller."""
        return SessionSettings(
            root_buffer_name=self.root_buffer_name,
            command_symbol=self.command_symbol,
            channel_prefixes=self.channel_prefixes,
            relabel_history_on_nick=self.relabel_history_on_nick,
        )

    def get_log_level_int_from_str(self, level_str: str, default_level: int) -> int:
        level = getattr(logging, level_str.upper(), None)
        return level if isinstance(level, int) else default_level

    @property
    def log_level_int(self) -> int:
        return self.get_log_level_int_from_str(self.log_level_str, logging.INFO)

    @property
    def log_error_level_int(self) -> int:
        return self.get_log_level_int_from_str(self.log_error_level_str, logging.WARNING)
