"""Tests for input classification."""

import pytest

from koko_core.commands.command_router import (
    ChatMessage,
    CommandRouter,
    LocalCommand,
    LocalCommandType,
    RemoteCommand,
)
from koko_core.config_defs import SessionSettings


@pytest.fixture
def router():
    return CommandRouter(SessionSettings(root_buffer_name="Status", command_symbol="/"))


def test_chat_message_in_channel(router):
    assert router.classify("hello there", "#a") == ChatMessage("hello there")


def test_chat_message_in_root_is_dropped(router):
    assert router.classify("hello", "Status") is None


def test_commands_are_accepted_in_root(router):
    assert router.classify("/join #a", "Status") == RemoteCommand("join #a")


def test_remote_command_keeps_text(router):
    assert router.classify("/msg bob  spaced  out", "#a") == RemoteCommand("msg bob  spaced  out")


def test_part_in_private_chat_is_local(router):
    assert router.classify("/part", "bob") == LocalCommand(LocalCommandType.PART_PRIVATE_CHAT)


@pytest.mark.parametrize("buffer_name", ["#a", "Status"])
def test_part_outside_private_chat_goes_to_server(router, buffer_name):
    assert router.classify("/part", buffer_name) == RemoteCommand("part")


def test_part_with_arguments_goes_to_server(router):
    assert router.classify("/part bye", "bob") == RemoteCommand("part bye")


def test_pm_is_local_with_nick_and_message(router):
    result = router.classify("/pm alice hello world", "#a")
    assert result == LocalCommand(LocalCommandType.PRIVATE_MESSAGE, ("alice", "hello world"))


def test_pm_with_missing_arguments_is_still_local(router):
    assert router.classify("/pm alice", "#a") == LocalCommand(LocalCommandType.PRIVATE_MESSAGE, ("alice",))
    assert router.classify("/pm", "#a") == LocalCommand(LocalCommandType.PRIVATE_MESSAGE, ())


def test_explicit_prefix_overrides_settings(router):
    assert router.classify("!join #a", "#a", command_prefix="!") == RemoteCommand("join #a")
    assert router.classify("/join #a", "#a", command_prefix="!") == ChatMessage("/join #a")


def test_usage_uses_command_symbol():
    router = CommandRouter(SessionSettings(command_symbol="."))
    assert router.usage(LocalCommandType.PRIVATE_MESSAGE) == ".pm <nick> <message>"
