# koko_core/roster.py
import logging
from dataclasses import dataclass, replace
from typing import Dict, Iterable, List

logger = logging.getLogger("koko.roster")

# Highest rank first
MODE_ORDER = "~&@%+"


def _mode_rank(mode: str) -> int:
    if mode and mode[0] in MODE_ORDER:
        return MODE_ORDER.index(mode[0])
    return len(MODE_ORDER)


@dataclass(frozen=True)
class RosterEntry:
    nick: str
    mode: str = ""
    is_local_user: bool = False

    @property
    def display_name(self) -> str:
        return f"{self.mode}{self.nick}"


class Roster:
    """
    Per-channel participant lists. Channels and nicks are both matched
    case-insensitively; entries keep the nick as the server spelled it.
    """

    def __init__(self):
        self._channels: Dict[str, Dict[str, RosterEntry]] = {}

    @staticmethod
    def _key(channel: str) -> str:
        return channel.lower()

    @staticmethod
    def _nick_key(nick: str) -> str:
        return nick.lower()

    def add(self, channel: str, nick: str, mode: str = "", is_local_user: bool = False) -> bool:
        """Adds a participant with the default mode. Returns False if already present."""
        members = self._channels.setdefault(self._key(channel), {})
        if self._nick_key(nick) in members:
            logger.debug(f"'{nick}' already in roster of {channel}")
            return False
        members[self._nick_key(nick)] = RosterEntry(nick=nick, mode=mode, is_local_user=is_local_user)
        logger.debug(f"Added '{nick}' to roster of {channel}")
        return True

    def remove(self, channel: str, nick: str) -> bool:
        members = self._channels.get(self._key(channel))
        if not members or self._nick_key(nick) not in members:
            logger.debug(f"'{nick}' not in roster of {channel}, nothing to remove")
            return False
        del members[self._nick_key(nick)]
        logger.debug(f"Removed '{nick}' from roster of {channel}")
        return True

    def rename(self, channel: str, old_nick: str, new_nick: str) -> bool:
        """Moves a participant to a new nick, keeping mode and local-user flag."""
        members = self._channels.get(self._key(channel))
        if not members or self._nick_key(old_nick) not in members:
            return False
        entry = members.pop(self._nick_key(old_nick))
        members[self._nick_key(new_nick)] = replace(entry, nick=new_nick)
        logger.debug(f"Renamed '{old_nick}' -> '{new_nick}' in roster of {channel}")
        return True

    def replace_all(self, channel: str, entries: Iterable[RosterEntry]) -> None:
        self._channels[self._key(channel)] = {self._nick_key(entry.nick): entry for entry in entries}
        logger.debug(f"Roster of {channel} replaced ({len(self._channels[self._key(channel)])} entries)")

    def clear(self, channel: str) -> None:
        if self._channels.pop(self._key(channel), None) is not None:
            logger.debug(f"Cleared roster of {channel}")

    def get(self, channel: str) -> List[RosterEntry]:
        return list(self._channels.get(self._key(channel), {}).values())

    def sorted_entries(self, channel: str) -> List[RosterEntry]:
        """Entries ordered by mode rank (owner down to voice, then none), then by nick."""
        return sorted(self.get(channel), key=lambda entry: (_mode_rank(entry.mode), entry.nick.lower()))

    def channels(self) -> List[str]:
        return list(self._channels.keys())

    def __contains__(self, channel: str) -> bool:
        return self._key(channel) in self._channels
