# koko_core/irc/handlers/error_handlers.py
import logging
from typing import TYPE_CHECKING, Any, Dict

if TYPE_CHECKING:
    from koko_core.client.session_controller import SessionController

logger = logging.getLogger("koko.handlers.error")

NO_SUCH_NICK_CODES = frozenset({"err_nosuchnick", "401", "no such nick"})


async def _handle_protocol_error(controller: "SessionController", data: Dict[str, Any]):
    """Handles protocol errors forwarded by the error handler."""
    command = str(data.get("command", "")).lower()
    args = list(data.get("args") or [])

    if command in NO_SUCH_NICK_CODES:
        if len(args) < 2 or not args[1]:
            logger.warning(f"{command} without a target: {args}")
            return
        target = args[1]
        reason = args[2] if len(args) > 2 else None
        controller.buffers.system_message(target, "delivery_failure", {"target": target, "reason": reason})
        logger.info(f"Delivery to {target} failed: {reason or 'no such nick'}")
    else:
        logger.debug(f"Ignoring protocol error {command}: {args}")
