# koko_core/errors.py
from typing import Optional


class KokoError(Exception):
    """Base class for errors raised by the session core."""


class UsageError(KokoError):
    """A local command was typed with the wrong arguments."""

    def __init__(self, message: str, usage: Optional[str] = None):
        super().__init__(message)
        self.usage = usage

    def __str__(self) -> str:
        message = super().__str__()
        return f"{message}. Usage: {self.usage}" if self.usage else message


class BufferStateError(KokoError):
    """Base class for BufferSet invariant violations."""

    def __init__(self, name: str, message: str):
        super().__init__(message)
        self.name = name


class UnknownBufferError(BufferStateError):
    def __init__(self, name: str):
        super().__init__(name, f"No buffer named '{name}'")


class ProtectedBufferError(BufferStateError):
    def __init__(self, name: str):
        super().__init__(name, f"Buffer '{name}' cannot be removed")


class DeliveryError(KokoError):
    """
    The server reported that a message could not be delivered.

    Never raised; its string form is the text of the synthetic log entry
    written to the target's buffer.
    """

    def __init__(self, target: str, reason: Optional[str] = None):
        self.target = target
        self.reason = reason or "No such nick/channel"
        super().__init__(f"Message could not be delivered to {target}: {self.reason}")
