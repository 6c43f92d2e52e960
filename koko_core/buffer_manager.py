# koko_core/buffer_manager.py
import logging
import time
from dataclasses import dataclass, field, replace
from enum import Enum, auto
from typing import Any, Dict, Iterator, List, Optional, Tuple

from koko_core.config_defs import DEFAULT_CHANNEL_PREFIXES, SYSTEM_AUTHOR
from koko_core.errors import DeliveryError, ProtectedBufferError, UnknownBufferError

logger = logging.getLogger("koko.buffers")


class BufferType(Enum):
    ROOT = auto()
    CHANNEL = auto()
    PRIVATE = auto()


@dataclass(frozen=True)
class LogEntry:
    author: str
    text: str
    kind: Optional[str] = None  # None for chat lines, system_message kind otherwise
    timestamp: float = field(default_factory=time.time, compare=False)


class Log:
    """Append-only, unbounded sequence of entries for one buffer."""

    def __init__(self):
        self._entries: List[LogEntry] = []

    def append(self, author: str, text: str, kind: Optional[str] = None) -> LogEntry:
        if author is None or text is None:
            raise TypeError("Log entries need both an author and a text")
        entry = LogEntry(author=author, text=text, kind=kind)
        self._entries.append(entry)
        return entry

    def relabel_author(self, old_author: str, new_author: str) -> int:
        """Rewrites the author of every entry posted by old_author (nicks ignore case). Returns the number rewritten."""
        relabeled = 0
        old_key = old_author.lower()
        for index, entry in enumerate(self._entries):
            if entry.author.lower() == old_key:
                self._entries[index] = replace(entry, author=new_author)
                relabeled += 1
        return relabeled

    @property
    def entries(self) -> List[LogEntry]:
        return list(self._entries)

    def last(self, count: int) -> List[LogEntry]:
        if count <= 0:
            return []
        return self._entries[-count:]

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[LogEntry]:
        return iter(list(self._entries))

    def __getitem__(self, index: int) -> LogEntry:
        return self._entries[index]


@dataclass
class Buffer:
    """Represents a single conversation buffer (root, channel, or private chat)."""
    name: str
    buffer_type: BufferType
    log: Log = field(default_factory=Log)
    is_current: bool = False
    unread_count: int = 0

    def __repr__(self):
        return f"<Buffer name='{self.name}' type={self.buffer_type.name} current={self.is_current} entries={len(self.log)} unread={self.unread_count}>"


class BufferSet:
    """
    Ordered collection of buffers with exactly one current buffer.

    The root buffer is created current at construction and can never be
    removed. Other buffers appear in the order they were first referenced.
    Channel names are compared case-insensitively and stored lower-cased.
    Private chats keep the case of the nick they were opened with but are
    looked up case-insensitively, like nicks. The root buffer always keeps
    its configured name.
    """

    def __init__(self, root_buffer_name: str, channel_prefixes: Tuple[str, ...] = DEFAULT_CHANNEL_PREFIXES):
        if not root_buffer_name:
            raise ValueError("The root buffer needs a name")
        self.root_name = root_buffer_name
        self.channel_prefixes = tuple(channel_prefixes)
        self._buffers: List[Buffer] = [Buffer(name=root_buffer_name, buffer_type=BufferType.ROOT, is_current=True)]
        logger.info(f"BufferSet initialized with root buffer '{root_buffer_name}'")

    def is_channel(self, name: str) -> bool:
        return bool(name) and name.startswith(self.channel_prefixes)

    def is_root(self, name: str) -> bool:
        if not name:
            return False
        if self.is_channel(self.root_name):
            return name.lower() == self.root_name.lower()
        return name == self.root_name

    def is_private(self, name: str) -> bool:
        return bool(name) and not self.is_root(name) and not self.is_channel(name)

    def normalize_name(self, name: str) -> str:
        if not name:
            return ""
        if self.is_root(name):
            return self.root_name
        if self.is_channel(name):
            return name.lower()
        return name

    def _index_of(self, name: str) -> int:
        normalized_name = self.normalize_name(name)
        for index, buffer in enumerate(self._buffers):
            if buffer.name == normalized_name:
                return index
            if buffer.buffer_type == BufferType.PRIVATE and buffer.name.lower() == normalized_name.lower():
                return index
        return -1

    def _current_index(self) -> int:
        for index, buffer in enumerate(self._buffers):
            if buffer.is_current:
                return index
        # Unreachable while the single-current invariant holds
        raise RuntimeError("BufferSet has no current buffer")

    def get(self, name: str) -> Optional[Buffer]:
        index = self._index_of(name)
        return self._buffers[index] if index >= 0 else None

    def names(self) -> List[str]:
        return [buffer.name for buffer in self._buffers]

    def __contains__(self, name: str) -> bool:
        return self._index_of(name) >= 0

    def __iter__(self) -> Iterator[Buffer]:
        return iter(list(self._buffers))

    def __len__(self) -> int:
        return len(self._buffers)

    def ensure(self, name: str) -> Buffer:
        """Returns the buffer called `name`, creating it (not current, empty log) if absent."""
        existing = self.get(name)
        if existing:
            return existing
        normalized_name = self.normalize_name(name)
        if not normalized_name:
            raise ValueError("Cannot create a buffer with an empty name")
        buffer_type = BufferType.CHANNEL if self.is_channel(normalized_name) else BufferType.PRIVATE
        buffer = Buffer(name=normalized_name, buffer_type=buffer_type)
        self._buffers.append(buffer)
        logger.debug(f"Created buffer: '{normalized_name}' (original: '{name}') of type {buffer_type.name}")
        return buffer

    def current(self) -> Buffer:
        return self._buffers[self._current_index()]

    def set_current(self, name: str) -> Buffer:
        index = self._index_of(name)
        if index < 0:
            logger.warning(f"Cannot switch to non-existent buffer: '{name}'")
            raise UnknownBufferError(name)
        previous = self._buffers[self._current_index()]
        previous.is_current = False
        target = self._buffers[index]
        target.is_current = True
        target.unread_count = 0
        if previous is not target:
            logger.debug(f"Switched current buffer: '{previous.name}' -> '{target.name}'")
        return target

    def remove(self, name: str) -> Buffer:
        """
        Deletes a buffer. If it was current, the buffer that followed it in
        insertion order becomes current, wrapping to the root buffer when the
        removed buffer was the last one.
        """
        if self.is_root(name):
            raise ProtectedBufferError(name)
        index = self._index_of(name)
        if index < 0:
            logger.warning(f"Buffer '{name}' not found, cannot remove.")
            raise UnknownBufferError(name)
        removed = self._buffers.pop(index)
        if removed.is_current:
            successor = self._buffers[index] if index < len(self._buffers) else self._buffers[0]
            successor.is_current = True
            successor.unread_count = 0
            logger.debug(f"Removed current buffer '{removed.name}', current is now '{successor.name}'")
        logger.info(f"Removed buffer: '{removed.name}'")
        return removed

    def next(self) -> Buffer:
        return self._buffers[(self._current_index() + 1) % len(self._buffers)]

    def previous(self) -> Buffer:
        return self._buffers[(self._current_index() - 1) % len(self._buffers)]

    def send(self, target: str, author: str, text: str, kind: Optional[str] = None) -> Buffer:
        buffer = self.ensure(target)
        buffer.log.append(author, text, kind)
        if not buffer.is_current:
            buffer.unread_count += 1
        return buffer

    def rename_nick_everywhere(self, old_nick: str, new_nick: str, relabel_history: bool = True) -> int:
        """
        Propagates a nick change into every buffer.

        Log entries authored by old_nick are relabelled when relabel_history
        is set, and a private chat named after old_nick is renamed unless a
        buffer called new_nick already exists. Returns the number of log
        entries relabelled.
        """
        relabeled = 0
        if relabel_history and old_nick != new_nick:
            for buffer in self._buffers:
                relabeled += buffer.log.relabel_author(old_nick, new_nick)

        private_chat = self.get(old_nick)
        if private_chat and private_chat.buffer_type == BufferType.PRIVATE and old_nick != new_nick:
            existing = self.get(new_nick)
            if existing is not None and existing is not private_chat:
                logger.info(f"Private chat for {old_nick} not renamed: buffer '{new_nick}' already exists")
            else:
                private_chat.name = new_nick
                logger.debug(f"Renamed private chat '{old_nick}' -> '{new_nick}'")

        logger.debug(f"Nick {old_nick} -> {new_nick}: relabelled {relabeled} log entries")
        return relabeled

    def system_message(self, channel: str, kind: str, payload: Dict[str, Any]) -> Buffer:
        text = self._format_system_message(channel, kind, payload)
        return self.send(channel, SYSTEM_AUTHOR, text, kind=kind)

    def _format_system_message(self, channel: str, kind: str, payload: Dict[str, Any]) -> str:
        channel_name = self.normalize_name(channel)
        if kind == "join":
            text = f"{payload['nick']} has joined {channel_name}"
            if payload.get("join_text"):
                text += f" ({payload['join_text']})"
            return text
        if kind == "part":
            text = f"{payload['nick']} has left {channel_name}"
            if payload.get("reason"):
                text += f" ({payload['reason']})"
            if payload.get("part_text") and payload.get("part_text") != payload.get("reason"):
                text += f" [{payload['part_text']}]"
            return text
        if kind == "nick":
            if payload.get("is_self"):
                return f"You are now known as {payload['new_nick']}"
            return f"{payload['old_nick']} is now known as {payload['new_nick']}"
        if kind == "delivery_failure":
            return str(DeliveryError(payload["target"], payload.get("reason")))
        raise ValueError(f"Unknown system message kind: {kind}")
