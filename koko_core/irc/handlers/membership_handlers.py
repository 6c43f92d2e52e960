# koko_core/irc/handlers/membership_handlers.py
import logging
from typing import TYPE_CHECKING, Any, Dict

from koko_core.roster import RosterEntry

if TYPE_CHECKING:
    from koko_core.client.session_controller import SessionController

logger = logging.getLogger("koko.handlers.membership")


async def _handle_join(controller: "SessionController", data: Dict[str, Any]):
    """Handles join events from the bridge."""
    channel_name = data.get("channel")
    source_nick = data.get("nick")
    if not channel_name or not source_nick:
        logger.warning(f"join event without channel or nick: {data}")
        return

    buffers = controller.buffers
    if controller.is_self(source_nick):
        buffers.ensure(channel_name)
        buffers.set_current(channel_name)
        logger.info(f"Joined channel: {buffers.normalize_name(channel_name)}")
    else:
        controller.rosters.add(channel_name, source_nick)

    buffers.system_message(channel_name, "join", {"nick": source_nick, "join_text": data.get("message")})


async def _handle_part(controller: "SessionController", data: Dict[str, Any]):
    channel_name = data.get("channel")
    source_nick = data.get("nick")
    if not channel_name or not source_nick:
        logger.warning(f"part event without channel or nick: {data}")
        return

    buffers = controller.buffers
    if controller.is_self(source_nick):
        # Only the server's confirmation closes the buffer; a locally sent /part does not.
        if channel_name in buffers:
            buffers.remove(channel_name)
        else:
            logger.debug(f"Self part from {channel_name} with no open buffer")
        controller.rosters.clear(channel_name)
        logger.info(f"Left channel: {buffers.normalize_name(channel_name)}")
    else:
        buffers.system_message(
            channel_name,
            "part",
            {"nick": source_nick, "reason": data.get("reason"), "part_text": data.get("message")},
        )
        controller.rosters.remove(channel_name, source_nick)


async def _handle_quit(controller: "SessionController", data: Dict[str, Any]):
    """A quit is a part from every channel the server lists for the nick."""
    source_nick = data.get("nick")
    if not source_nick:
        logger.warning(f"quit event without nick: {data}")
        return

    for channel_name in list(data.get("channels") or []):
        part_data = {key: value for key, value in data.items() if key != "channels"}
        part_data["channel"] = channel_name
        await _handle_part(controller, part_data)


async def _handle_names(controller: "SessionController", data: Dict[str, Any]):
    channel_name = data.get("channel")
    names = data.get("names")
    if not channel_name or names is None:
        logger.warning(f"names event without channel or names: {data}")
        return

    entries = [
        RosterEntry(nick=nick, mode=mode or "", is_local_user=controller.is_self(nick))
        for nick, mode in names.items()
    ]
    controller.rosters.replace_all(channel_name, entries)
    logger.debug(f"Names for {channel_name}: {len(entries)} users")
