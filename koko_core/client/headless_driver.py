# koko_core/client/headless_driver.py
import asyncio
import json
import logging
from typing import TYPE_CHECKING, Any, Dict, TextIO

from koko_core.shortcut_manager import NEXT_TAB, PREVIOUS_TAB

if TYPE_CHECKING:
    from koko_core.bridge import Bridge
    from koko_core.client.session_controller import SessionController
    from koko_core.error_handler import ErrorHandler
    from koko_core.shortcut_manager import ShortcutManager

logger = logging.getLogger("koko.driver")


class HeadlessDriver:
    """
    Feeds a session from JSON lines, one object per line:

        {"event": "join", "data": {"channel": "#a", "nick": "me"}}
        {"error": {"command": "err_nosuchnick", "args": ["me", "bob", "No such nick"]}}
        {"intent": "submit", "raw": "/pm bob hi"}
        {"intent": "next-tab"}

    Lines are applied strictly in order; each one finishes before the next is read.
    """

    def __init__(
        self,
        controller: "SessionController",
        bridge: "Bridge",
        shortcuts: "ShortcutManager",
        error_handler: "ErrorHandler",
    ):
        self.controller = controller
        self.bridge = bridge
        self.shortcuts = shortcuts
        self.error_handler = error_handler
        self.lines_applied = 0
        self.lines_skipped = 0

    async def apply(self, item: Dict[str, Any]) -> bool:
        """Applies one decoded line. Returns False for lines of an unknown or ill-typed shape."""
        if "event" in item:
            data = item.get("data") or {}
            if not isinstance(item["event"], str) or not isinstance(data, dict):
                logger.warning(f"Event line needs a string 'event' and an object 'data': {item}")
                return False
            await self.bridge.emit(item["event"], data)
        elif "error" in item:
            error = item["error"] or {}
            if not isinstance(error, dict):
                logger.warning(f"Error line needs an object 'error': {item}")
                return False
            args = error.get("args") or []
            if not isinstance(args, list):
                logger.warning(f"Error line needs a list 'args': {item}")
                return False
            await self.error_handler.report_protocol_error(str(error.get("command", "")), [str(arg) for arg in args])
        elif item.get("intent") == "submit":
            await self.controller.submit(str(item.get("raw", "")))
        elif item.get("intent") in (NEXT_TAB, PREVIOUS_TAB):
            await self.shortcuts.trigger(item["intent"])
        else:
            logger.warning(f"Unrecognised input line: {item}")
            return False
        return True

    async def apply_line(self, line: str) -> bool:
        line = line.strip()
        if not line:
            return False
        try:
            item = json.loads(line)
        except json.JSONDecodeError as e:
            logger.warning(f"Skipping malformed line ({e}): {line[:100]}")
            self.lines_skipped += 1
            return False
        if not isinstance(item, dict):
            logger.warning(f"Skipping non-object line: {line[:100]}")
            self.lines_skipped += 1
            return False

        try:
            applied = await self.apply(item)
        except Exception as e:
            logger.error(f"Error applying line {line[:100]}: {e}", exc_info=True)
            applied = False
        if applied:
            self.lines_applied += 1
        else:
            self.lines_skipped += 1
        return applied

    async def run(self, stream: TextIO) -> None:
        logger.info("Headless driver started")
        while True:
            line = await asyncio.to_thread(stream.readline)
            if not line:
                break
            await self.apply_line(line)
        logger.info(f"Headless driver finished: {self.lines_applied} applied, {self.lines_skipped} skipped")
