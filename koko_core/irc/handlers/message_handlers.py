# koko_core/irc/handlers/message_handlers.py
import logging
from typing import TYPE_CHECKING, Any, Dict

if TYPE_CHECKING:
    from koko_core.client.session_controller import SessionController

logger = logging.getLogger("koko.handlers.message")


async def _handle_message(controller: "SessionController", data: Dict[str, Any]):
    """Handles message events. Private messages land in a buffer named after the sender."""
    target = data.get("to")
    source_nick = data.get("nick")
    text = data.get("text")
    if not target or not source_nick or text is None:
        logger.warning(f"message event missing to, nick or text: {data}")
        return

    buffers = controller.buffers
    buffer_name = target if buffers.is_channel(target) or buffers.is_root(target) else source_nick
    buffers.send(buffer_name, source_nick, text)
