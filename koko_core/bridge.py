# koko_core/bridge.py
import asyncio
import json
import logging
from typing import Any, Callable, Dict, List, Optional, TextIO, Tuple

from koko_core.event_manager import EventManager

logger = logging.getLogger("koko.bridge")

# Inbound event names delivered by a transport
INBOUND_EVENTS = ("registered", "message", "join", "part", "nick", "names", "quit")

# Outbound command kinds accepted by a transport
OUTBOUND_MESSAGE = "message"
OUTBOUND_COMMAND = "command"


class Bridge:
    """
    Contract between the session core and a transport.

    Transports deliver inbound events with `emit`; the core subscribes with
    `on` and hands outbound commands to `send`.
    """

    def __init__(self):
        self.events = EventManager(name="bridge")

    def on(self, event_name: str, handler: Callable, owner: str = "core") -> None:
        self.events.subscribe(event_name, handler, owner)

    async def emit(self, event_name: str, data: Dict[str, Any]) -> int:
        if event_name not in INBOUND_EVENTS:
            logger.warning(f"Transport emitted unknown event '{event_name}'")
        return await self.events.dispatch_event(event_name, data)

    async def send(self, kind: str, payload: Dict[str, Any]) -> None:
        raise NotImplementedError


class QueueBridge(Bridge):
    """
    In-process bridge. Inbound events are queued and dispatched strictly one
    at a time by `pump`/`drain`; outbound commands are recorded in `sent`.
    """

    def __init__(self):
        super().__init__()
        self.inbound: "asyncio.Queue[Optional[Tuple[str, Dict[str, Any]]]]" = asyncio.Queue()
        self.sent: List[Tuple[str, Dict[str, Any]]] = []
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def push(self, event_name: str, data: Dict[str, Any]) -> None:
        self.inbound.put_nowait((event_name, data))

    def push_threadsafe(self, event_name: str, data: Dict[str, Any]) -> None:
        """Enqueues an event from a transport thread onto the pump's loop."""
        if self._loop is None:
            raise RuntimeError("QueueBridge.pump() must be running before events can be pushed from another thread")
        self._loop.call_soon_threadsafe(self.inbound.put_nowait, (event_name, data))

    def close(self) -> None:
        self.inbound.put_nowait(None)

    async def send(self, kind: str, payload: Dict[str, Any]) -> None:
        logger.debug(f"C >> {kind} {payload}")
        self.sent.append((kind, payload))

    async def _process(self, item: Tuple[str, Dict[str, Any]]) -> None:
        event_name, data = item
        logger.debug(f"S << {event_name} {data}")
        await self.emit(event_name, data)

    async def pump(self) -> None:
        """Dispatches queued events until `close` is called."""
        self._loop = asyncio.get_running_loop()
        while True:
            item = await self.inbound.get()
            try:
                if item is None:
                    logger.info("QueueBridge closed")
                    return
                await self._process(item)
            finally:
                self.inbound.task_done()

    async def drain(self) -> int:
        """Dispatches everything currently queued. Returns the number of events processed."""
        processed = 0
        while not self.inbound.empty():
            item = self.inbound.get_nowait()
            try:
                if item is None:
                    break
                await self._process(item)
                processed += 1
            finally:
                self.inbound.task_done()
        return processed


class JsonLinesBridge(Bridge):
    """Writes each outbound command as one JSON object per line."""

    def __init__(self, output: TextIO):
        super().__init__()
        self.output = output

    async def send(self, kind: str, payload: Dict[str, Any]) -> None:
        line = json.dumps({"kind": kind, **payload}, ensure_ascii=False)
        self.output.write(line + "\n")
        self.output.flush()
        logger.debug(f"C >> {line}")
