# koko_core/shortcut_manager.py
import logging

from koko_core.event_manager import EventManager

logger = logging.getLogger("koko.shortcuts")

NEXT_TAB = "next-tab"
PREVIOUS_TAB = "previous-tab"


class ShortcutManager(EventManager):
    """Carries local UI intents (tab switching) to whoever subscribed to them."""

    def __init__(self):
        super().__init__(name="shortcuts")

    async def trigger(self, intent: str) -> int:
        if intent not in (NEXT_TAB, PREVIOUS_TAB):
            logger.warning(f"Unknown shortcut intent: '{intent}'")
            return 0
        return await self.dispatch_event(intent, {})
