# koko_core/irc/handlers/state_change_handlers.py
import logging
from typing import TYPE_CHECKING, Any, Dict

if TYPE_CHECKING:
    from koko_core.client.session_controller import SessionController

logger = logging.getLogger("koko.handlers.state_change")


async def _handle_registered(controller: "SessionController", data: Dict[str, Any]):
    nick = data.get("nick")
    if not nick:
        logger.warning(f"registered event without nick: {data}")
        return
    if controller.nick:
        logger.warning(f"Registered again as {nick} (was {controller.nick})")
    controller.nick = nick
    logger.info(f"Registered with server as {nick}")


async def _handle_nick(controller: "SessionController", data: Dict[str, Any]):
    """Handles nick events from the bridge."""
    old_nick = data.get("oldnick")
    new_nick = data.get("newnick")
    if not old_nick or not new_nick:
        logger.warning(f"nick event without old or new nick: {data}")
        return

    channels = list(data.get("channels") or [])
    buffers = controller.buffers
    is_self = controller.is_self(old_nick)
    if is_self:
        controller.nick = new_nick
        # Also covers the buffer the user is typing in when it is not a joined channel.
        channels.append(buffers.root_name)
        logger.info(f"Own nick changed: {old_nick} -> {new_nick}")

    buffers.rename_nick_everywhere(old_nick, new_nick, relabel_history=controller.settings.relabel_history_on_nick)
    for channel_name in channels:
        controller.rosters.rename(channel_name, old_nick, new_nick)
        if channel_name not in buffers:
            logger.debug(f"No buffer for {channel_name}, skipping nick notice")
            continue
        notice = {"old_nick": old_nick, "new_nick": new_nick, "is_self": buffers.is_root(channel_name)}
        buffers.system_message(channel_name, "nick", notice)

    controller.last_nick_change_channels = channels
