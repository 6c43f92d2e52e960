import pytest

from koko_core.bridge import QueueBridge
from koko_core.client.session_controller import SessionController
from koko_core.config_defs import SessionSettings
from koko_core.error_handler import ErrorHandler
from koko_core.shortcut_manager import ShortcutManager


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def settings():
    return SessionSettings(root_buffer_name="Status", command_symbol="/")


@pytest.fixture
def bridge():
    return QueueBridge()


@pytest.fixture
def error_handler():
    return ErrorHandler()


@pytest.fixture
def shortcuts():
    return ShortcutManager()


@pytest.fixture
def controller(bridge, error_handler, shortcuts, settings):
    session = SessionController(bridge, error_handler, settings)
    session.attach(shortcuts)
    return session
