# koko_core/irc/event_protocol.py
import logging
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict

from koko_core.error_handler import ERROR_TYPE_INTERNAL
from koko_core.irc.handlers import (
    error_handlers,
    membership_handlers,
    message_handlers,
    state_change_handlers,
)

if TYPE_CHECKING:
    from koko_core.client.session_controller import SessionController

logger = logging.getLogger("koko.protocol")

HandlerFunction = Callable[["SessionController", Dict[str, Any]], Awaitable[None]]

PROTOCOL_ERROR_EVENT = "protocol_error"

EVENT_HANDLERS: Dict[str, HandlerFunction] = {
    "registered": state_change_handlers._handle_registered,
    "message": message_handlers._handle_message,
    "join": membership_handlers._handle_join,
    "part": membership_handlers._handle_part,
    "nick": state_change_handlers._handle_nick,
    "names": membership_handlers._handle_names,
    "quit": membership_handlers._handle_quit,
    PROTOCOL_ERROR_EVENT: error_handlers._handle_protocol_error,
}


async def handle_bridge_event(controller: "SessionController", event_name: str, data: Dict[str, Any]) -> bool:
    """
    Dispatches one inbound event to its handler.

    Returns True if the handler completed. A failing handler is logged and
    reported, never propagated, so later events are still processed.
    """
    handler = EVENT_HANDLERS.get(event_name)
    if handler is None:
        logger.warning(f"No handler for event: {event_name}. Data: {data}")
        return False

    try:
        await handler(controller, data if data is not None else {})
    except Exception as e:
        logger.error(f"Error in handler for event {event_name}: {e}", exc_info=True)
        await controller.error_handler.handle({"type": ERROR_TYPE_INTERNAL, "error": e, "event": event_name})
        return False
    return True
