# koko_core/config_defs.py
from dataclasses import dataclass
from typing import Tuple

# --- Default Fallback Constants ---
# These are used as fallbacks if values are not found in the INI file.

# Session
DEFAULT_ROOT_BUFFER_NAME = "Status"
DEFAULT_COMMAND_SYMBOL = "/"
DEFAULT_CHANNEL_PREFIXES: Tuple[str, ...] = ("#", "&", "!", "+")
DEFAULT_RELABEL_HISTORY_ON_NICK = True

# Author used for synthetic join/part/nick/delivery entries
SYSTEM_AUTHOR = "*"

# Logging
DEFAULT_LOG_ENABLED = True
DEFAULT_LOG_FILE = "koko.log"
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_ERROR_FILE = "koko_error.log"
DEFAULT_LOG_ERROR_LEVEL = "WARNING"
DEFAULT_LOG_MAX_BYTES = 1024 * 1024 * 5
DEFAULT_LOG_BACKUP_COUNT = 3

# Error notices kept for display
DEFAULT_MAX_ERROR_NOTICES = 50


@dataclass(frozen=True)
class SessionSettings:
    """
    Session constants resolved once at startup from `AppConfig`.

    Attributes:
        root_buffer_name (str): Name of the always-present system buffer.
        command_symbol (str): Single character marking input as a command.
        channel_prefixes (Tuple[str, ...]): Sigils that make a name a channel.
        relabel_history_on_nick (bool): Rewrite log authors when a nick changes.
    """
    root_buffer_name: str = DEFAULT_ROOT_BUFFER_NAME
    command_symbol: str = DEFAULT_COMMAND_SYMBOL
    channel_prefixes: Tuple[str, ...] = DEFAULT_CHANNEL_PREFIXES
    relabel_history_on_nick: bool = DEFAULT_RELABEL_HISTORY_ON_NICK
