# koko_core/client/headless_view.py
import logging
from typing import TYPE_CHECKING, Any, Dict, Optional, TextIO

from koko_core.buffer_manager import BufferType

if TYPE_CHECKING:
    from koko_core.client.session_controller import SessionController

logger = logging.getLogger("koko.view")


def render_snapshot(controller: "SessionController", max_log_lines: Optional[int] = None) -> Dict[str, Any]:
    """Plain-data description of what a UI would draw for the current state."""
    current = controller.buffers.current()
    entries = current.log.last(max_log_lines) if max_log_lines else current.log.entries
    names = []
    if current.buffer_type == BufferType.CHANNEL:
        names = [
            {"nick": entry.nick, "mode": entry.mode, "is_local_user": entry.is_local_user}
            for entry in controller.rosters.sorted_entries(current.name)
        ]
    return {
        "nick": controller.nick,
        "tabs": [
            {"name": buffer.name, "current": buffer.is_current, "unread": buffer.unread_count}
            for buffer in controller.buffers
        ],
        "names": names,
        "log": [{"author": entry.author, "text": entry.text, "kind": entry.kind} for entry in entries],
        "input_target": current.name,
    }


class HeadlessView:
    """Render listener for headless mode: logs a summary of every state change."""

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream
        self.renders = 0

    def __call__(self, controller: "SessionController") -> None:
        self.renders += 1
        snapshot = render_snapshot(controller, max_log_lines=1)
        tabs = " ".join(
            f"[{tab['name']}]" if tab["current"] else (f"{tab['name']}({tab['unread']})" if tab["unread"] else tab["name"])
            for tab in snapshot["tabs"]
        )
        last_line = ""
        if snapshot["log"]:
            entry = snapshot["log"][-1]
            last_line = f" | <{entry['author']}> {entry['text']}"
        summary = f"{tabs}{last_line}"
        logger.debug(f"Render #{self.renders} (v{controller.state_version}): {summary}")
        if self.stream:
            self.stream.write(summary + "\n")
            self.stream.flush()
