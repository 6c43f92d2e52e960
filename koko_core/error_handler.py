# koko_core/error_handler.py
import asyncio
import logging
from collections import deque
from typing import Any, Callable, Deque, Dict, List, Sequence

from koko_core.config_defs import DEFAULT_MAX_ERROR_NOTICES

logger = logging.getLogger("koko.errors")

ERROR_TYPE_NORMAL = "normal"
ERROR_TYPE_INTERNAL = "internal"
ERROR_TYPE_IRC = "irc"


class ErrorHandler:
    """
    Error-reporting collaborator.

    Accepts `{type, error}` objects for user and internal errors and
    `{type: "irc", command, args}` objects for protocol errors, logs them,
    keeps user-visible notices, and forwards them to listeners of their type.
    """

    def __init__(self, max_notices: int = DEFAULT_MAX_ERROR_NOTICES):
        self._listeners: Dict[str, List[Callable[[Dict[str, Any]], Any]]] = {}
        self.notices: Deque[str] = deque(maxlen=max_notices)

    def on(self, error_type: str, listener: Callable[[Dict[str, Any]], Any]) -> None:
        self._listeners.setdefault(error_type, []).append(listener)

    async def handle(self, error: Dict[str, Any]) -> None:
        error_type = error.get("type", ERROR_TYPE_NORMAL)
        if error_type == ERROR_TYPE_IRC:
            logger.info(f"Protocol error {error.get('command')}: {error.get('args')}")
        elif error_type == ERROR_TYPE_NORMAL:
            notice = str(error.get("error", "Unknown error"))
            self.notices.append(notice)
            logger.warning(f"User error: {notice}")
        else:
            logger.error(f"{error_type.capitalize()} error: {error.get('error')}")

        for listener in list(self._listeners.get(error_type, [])):
            try:
                result = listener(error)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as e:
                logger.error(
                    f"Error listener '{getattr(listener, '__name__', 'unknown')}' failed for {error_type} error: {e}",
                    exc_info=True,
                )

    async def report_protocol_error(self, command: str, args: Sequence[str]) -> None:
        await self.handle({"type": ERROR_TYPE_IRC, "command": command, "args": list(args)})
