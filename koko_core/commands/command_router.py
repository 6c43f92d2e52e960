# koko_core/commands/command_router.py
import logging
from dataclasses import dataclass
from enum import Enum, auto
from typing import Dict, Optional, Tuple, Union

from koko_core.config_defs import SessionSettings

logger = logging.getLogger("koko.router")


class LocalCommandType(Enum):
    PART_PRIVATE_CHAT = auto()
    PRIVATE_MESSAGE = auto()


COMMAND_DEFINITIONS: Dict[LocalCommandType, Dict[str, str]] = {
    LocalCommandType.PART_PRIVATE_CHAT: {
        "name": "part",
        "usage": "part",
        "description": "Closes the current private chat. In a channel, /part is sent to the server.",
    },
    LocalCommandType.PRIVATE_MESSAGE: {
        "name": "pm",
        "usage": "pm <nick> <message>",
        "description": "Opens a private chat with <nick> and sends it <message>.",
    },
}


@dataclass(frozen=True)
class LocalCommand:
    command: LocalCommandType
    args: Tuple[str, ...] = ()


@dataclass(frozen=True)
class RemoteCommand:
    raw: str


@dataclass(frozen=True)
class ChatMessage:
    raw: str


Classification = Union[LocalCommand, RemoteCommand, ChatMessage]


class CommandRouter:
    """Decides whether submitted input is a local command, a server command or chat text."""

    def __init__(self, settings: SessionSettings):
        self.settings = settings

    def usage(self, command: LocalCommandType) -> str:
        return f"{self.settings.command_symbol}{COMMAND_DEFINITIONS[command]['usage']}"

    def _is_private_chat(self, buffer_name: str) -> bool:
        return (
            bool(buffer_name)
            and buffer_name != self.settings.root_buffer_name
            and not buffer_name.startswith(self.settings.channel_prefixes)
        )

    def classify(
        self, raw_input: str, current_buffer_name: str, command_prefix: Optional[str] = None
    ) -> Optional[Classification]:
        """
        Returns None when the input must be dropped: chat text typed into
        the root buffer, which only accepts commands.
        """
        prefix = command_prefix or self.settings.command_symbol
        if raw_input.startswith(prefix):
            stripped = raw_input[len(prefix):]
            tokens = stripped.split(" ")
            if tokens == ["part"] and self._is_private_chat(current_buffer_name):
                return LocalCommand(LocalCommandType.PART_PRIVATE_CHAT)
            if tokens[0] == "pm":
                return LocalCommand(LocalCommandType.PRIVATE_MESSAGE, tuple(stripped.split(" ", 2)[1:]))
            return RemoteCommand(stripped)

        if current_buffer_name == self.settings.root_buffer_name:
            logger.debug(f"Dropping chat input in root buffer '{current_buffer_name}'")
            return None
        return ChatMessage(raw_input)
