# koko_core/event_manager.py
import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger("koko.events")


class EventManager:
    """
    Name-tagged publish/subscribe.

    Handlers run in subscription order; coroutine handlers are awaited, so
    one event is completely processed before dispatch_event returns.
    """

    def __init__(self, name: str = "events"):
        self.name = name
        self.subscriptions: Dict[str, List[Dict[str, Any]]] = {}

    def subscribe(self, event_name: str, handler_function: Callable, owner: str = "core") -> None:
        if not callable(handler_function):
            logger.error(f"'{owner}' attempted to subscribe non-callable handler for event '{event_name}'.")
            return
        if event_name not in self.subscriptions:
            self.subscriptions[event_name] = []

        for sub in self.subscriptions[event_name]:
            if sub["handler"] == handler_function and sub["owner"] == owner:
                logger.warning(f"'{owner}' handler already subscribed to event '{event_name}'. Ignoring duplicate.")
                return

        self.subscriptions[event_name].append({"handler": handler_function, "owner": owner})
        logger.debug(
            f"[{self.name}] '{owner}' subscribed to event '{event_name}' with handler '{getattr(handler_function, '__name__', 'unknown')}'."
        )

    def on(self, event_name: str, handler_function: Callable, owner: str = "core") -> None:
        self.subscribe(event_name, handler_function, owner)

    def unsubscribe(self, event_name: str, handler_function: Callable, owner: str = "core") -> None:
        if event_name in self.subscriptions:
            self.subscriptions[event_name] = [
                sub
                for sub in self.subscriptions[event_name]
                if not (sub["handler"] == handler_function and sub["owner"] == owner)
            ]
            if not self.subscriptions[event_name]:
                del self.subscriptions[event_name]
        else:
            logger.debug(f"[{self.name}] No subscriptions for event '{event_name}' to remove.")

    async def dispatch_event(self, event_name: str, event_data: Optional[Dict[str, Any]] = None) -> int:
        """Calls every handler subscribed to event_name. Returns how many handlers ran."""
        event_data = event_data if event_data is not None else {}
        if event_name not in self.subscriptions:
            logger.debug(f"[{self.name}] No subscriptions found for event '{event_name}'.")
            return 0

        called = 0
        for subscription in list(self.subscriptions[event_name]):
            handler = subscription["handler"]
            try:
                if asyncio.iscoroutinefunction(handler):
                    await handler(event_data)
                else:
                    result = handler(event_data)
                    if asyncio.iscoroutine(result):
                        await result
                called += 1
            except Exception as e:
                logger.error(
                    f"[{self.name}] Error in handler '{getattr(handler, '__name__', 'unknown')}' from '{subscription['owner']}' for event '{event_name}': {e}",
                    exc_info=True,
                )
        return called
