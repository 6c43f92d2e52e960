# koko_core/client/session_controller.py
from __future__ import annotations

import asyncio
import functools
import logging
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional

from koko_core.bridge import OUTBOUND_COMMAND, OUTBOUND_MESSAGE
from koko_core.buffer_manager import BufferSet
from koko_core.commands.command_router import (
    ChatMessage,
    CommandRouter,
    LocalCommand,
    LocalCommandType,
    RemoteCommand,
)
from koko_core.config_defs import SessionSettings
from koko_core.error_handler import ERROR_TYPE_INTERNAL, ERROR_TYPE_IRC, ERROR_TYPE_NORMAL, ErrorHandler
from koko_core.errors import KokoError, UsageError
from koko_core.irc import event_protocol
from koko_core.roster import Roster
from koko_core.shortcut_manager import NEXT_TAB, PREVIOUS_TAB

if TYPE_CHECKING:
    from koko_core.bridge import Bridge
    from koko_core.shortcut_manager import ShortcutManager

logger = logging.getLogger("koko.session")

RenderListener = Callable[["SessionController"], Any]


class SessionController:
    """
    Owns the session state (local nick, buffers, rosters) and applies inbound
    events and local intents to it, one at a time.
    """

    def __init__(self, bridge: "Bridge", error_handler: ErrorHandler, settings: Optional[SessionSettings] = None):
        self.settings = settings or SessionSettings()
        self.bridge = bridge
        self.error_handler = error_handler

        self.nick: str = ""
        self.buffers = BufferSet(self.settings.root_buffer_name, self.settings.channel_prefixes)
        self.rosters = Roster()
        self.router = CommandRouter(self.settings)

        self.ui_needs_update = asyncio.Event()
        self.state_version = 0
        self.last_nick_change_channels: List[str] = []
        self._render_listeners: List[RenderListener] = []
        logger.info(f"SessionController initialized (root buffer '{self.settings.root_buffer_name}', command symbol '{self.settings.command_symbol}')")

    # --- Wiring ---
    def attach(self, shortcuts: Optional["ShortcutManager"] = None) -> None:
        """Subscribes to inbound bridge events, tab shortcuts and protocol errors."""
        for event_name in event_protocol.EVENT_HANDLERS:
            if event_name == event_protocol.PROTOCOL_ERROR_EVENT:
                continue
            self.bridge.on(event_name, functools.partial(self.handle_event, event_name), "SessionController")
        if shortcuts:
            shortcuts.on(NEXT_TAB, self._on_next_tab_shortcut, "SessionController")
            shortcuts.on(PREVIOUS_TAB, self._on_previous_tab_shortcut, "SessionController")
        self.error_handler.on(ERROR_TYPE_IRC, self.on_protocol_error)

    def add_render_listener(self, listener: RenderListener) -> None:
        self._render_listeners.append(listener)

    def request_render(self) -> None:
        self.state_version += 1
        self.ui_needs_update.set()
        for listener in list(self._render_listeners):
            try:
                listener(self)
            except Exception as e:
                logger.error(f"Render listener '{getattr(listener, '__name__', 'unknown')}' failed: {e}", exc_info=True)

    def is_self(self, nick: Optional[str]) -> bool:
        return bool(nick) and bool(self.nick) and nick.lower() == self.nick.lower()

    # --- Inbound ---
    async def handle_event(self, event_name: str, data: Dict[str, Any]) -> bool:
        handled = await event_protocol.handle_bridge_event(self, event_name, data)
        self.request_render()
        return handled

    async def on_protocol_error(self, error: Dict[str, Any]) -> bool:
        return await self.handle_event(event_protocol.PROTOCOL_ERROR_EVENT, error)

    async def _on_next_tab_shortcut(self, _data: Dict[str, Any]):
        await self.next_tab()

    async def _on_previous_tab_shortcut(self, _data: Dict[str, Any]):
        await self.previous_tab()

    # --- Local intents ---
    async def next_tab(self) -> None:
        self.buffers.set_current(self.buffers.next().name)
        self.request_render()

    async def previous_tab(self) -> None:
        self.buffers.set_current(self.buffers.previous().name)
        self.request_render()

    async def submit(self, raw: str) -> bool:
        """
        Routes one line of user input. Returns True if the session state or
        the bridge was touched, False if the input was dropped or failed.
        """
        target = self.buffers.current().name
        classification = self.router.classify(raw, target)
        if classification is None:
            logger.debug(f"Input dropped in root buffer: '{raw}'")
            return False

        try:
            if isinstance(classification, ChatMessage):
                await self.bridge.send(OUTBOUND_MESSAGE, {"raw": classification.raw, "context": {"target": target}})
                self.buffers.send(target, self.nick, classification.raw)
            elif isinstance(classification, RemoteCommand):
                await self.bridge.send(OUTBOUND_COMMAND, {"raw": classification.raw, "context": {"target": target}})
                logger.info(f"Forwarded command '{classification.raw}' (target {target})")
            elif isinstance(classification, LocalCommand):
                await self._run_local_command(classification)
            else:
                raise TypeError(f"Unhandled classification: {classification!r}")
        except KokoError as e:
            logger.info(f"Command '{raw}' rejected: {e}")
            error_type = ERROR_TYPE_NORMAL if isinstance(e, UsageError) else ERROR_TYPE_INTERNAL
            await self.error_handler.handle({"type": error_type, "error": e})
            return False
        except Exception as e:
            logger.error(f"Error processing input '{raw}': {e}", exc_info=True)
            await self.error_handler.handle({"type": ERROR_TYPE_INTERNAL, "error": e})
            return False

        self.request_render()
        return True

    async def _run_local_command(self, command: LocalCommand) -> None:
        if command.command == LocalCommandType.PRIVATE_MESSAGE:
            await self._start_private_chat(command.args)
        elif command.command == LocalCommandType.PART_PRIVATE_CHAT:
            self._part_private_chat()
        else:
            raise TypeError(f"Unhandled local command: {command.command}")

    async def _start_private_chat(self, args) -> None:
        if len(args) < 2 or not args[0] or not args[1]:
            raise UsageError(
                "Invalid command arguments: [nick,message]",
                usage=self.router.usage(LocalCommandType.PRIVATE_MESSAGE),
            )
        target, message = args[0], args[1]
        await self.bridge.send(OUTBOUND_MESSAGE, {"raw": message, "context": {"target": target}})
        self.buffers.send(target, self.nick, message)
        self.buffers.set_current(target)
        logger.info(f"Started private chat with {target}")

    def _part_private_chat(self) -> None:
        target = self.buffers.current().name
        self.buffers.remove(target)
        logger.info(f"Closed private chat with {target}")
