"""Tests for SessionController event transitions and local intents."""

import copy

import pytest

from koko_core.buffer_manager import LogEntry
from koko_core.config_defs import SYSTEM_AUTHOR, SessionSettings
from koko_core.bridge import QueueBridge
from koko_core.client.session_controller import SessionController
from koko_core.error_handler import ErrorHandler
from koko_core.errors import UsageError
from koko_core.roster import RosterEntry

pytestmark = pytest.mark.anyio


async def register(controller, nick="me"):
    await controller.handle_event("registered", {"nick": nick})
    return controller


def current_names(controller):
    return [buffer.name for buffer in controller.buffers if buffer.is_current]


def state_of(controller):
    """Comparable view of buffers (names, current, log texts) and rosters."""
    return {
        "buffers": [
            (buffer.name, buffer.is_current, [(entry.author, entry.text) for entry in buffer.log])
            for buffer in controller.buffers
        ],
        "rosters": {channel: sorted(controller.rosters.get(channel), key=lambda e: e.nick) for channel in controller.rosters.channels()},
        "nick": controller.nick,
    }


class TestRegistration:
    async def test_nick_empty_until_registered(self, controller):
        assert controller.nick == ""
        await register(controller)
        assert controller.nick == "me"

    async def test_initial_state(self, controller):
        assert controller.buffers.names() == ["Status"]
        assert current_names(controller) == ["Status"]


class TestMessages:
    async def test_channel_message(self, controller):
        await register(controller)
        await controller.handle_event("join", {"channel": "#a", "nick": "me"})
        before = len(controller.buffers.get("#a").log)

        await controller.handle_event("message", {"to": "#a", "nick": "bob", "text": "hi"})

        log = controller.buffers.get("#a").log
        assert len(log) == before + 1
        assert log[-1] == LogEntry("bob", "hi")

    async def test_private_message_goes_to_sender_buffer(self, controller):
        await register(controller)

        await controller.handle_event("message", {"to": "me", "nick": "alice", "text": "psst"})

        assert controller.buffers.names() == ["Status", "alice"]
        assert controller.buffers.get("alice").log[0] == LogEntry("alice", "psst")
        assert current_names(controller) == ["Status"]

    async def test_message_to_root_buffer(self, controller):
        await controller.handle_event("message", {"to": "Status", "nick": "server", "text": "welcome"})
        assert controller.buffers.get("Status").log[0] == LogEntry("server", "welcome")

    async def test_malformed_message_is_ignored(self, controller):
        await controller.handle_event("message", {"to": "#a", "nick": "bob"})
        assert controller.buffers.names() == ["Status"]


class TestJoinPart:
    async def test_self_join_creates_and_selects_buffer(self, controller):
        await register(controller)

        await controller.handle_event("join", {"channel": "#a", "nick": "me", "message": None})

        assert controller.buffers.names() == ["Status", "#a"]
        assert current_names(controller) == ["#a"]
        assert controller.buffers.get("#a").log[-1].text == "me has joined #a"

    async def test_self_join_is_case_insensitive(self, controller):
        await register(controller, "Me")
        await controller.handle_event("join", {"channel": "#a", "nick": "me"})
        assert current_names(controller) == ["#a"]

    async def test_other_join_adds_to_roster(self, controller):
        await register(controller)
        await controller.handle_event("join", {"channel": "#a", "nick": "me"})

        await controller.handle_event("join", {"channel": "#a", "nick": "bob", "message": "bob@host"})

        assert RosterEntry("bob") in controller.rosters.get("#a")
        assert current_names(controller) == ["#a"]
        entry = controller.buffers.get("#a").log[-1]
        assert entry.author == SYSTEM_AUTHOR
        assert entry.text == "bob has joined #a (bob@host)"

    async def test_other_part_updates_roster_and_log(self, controller):
        await register(controller)
        await controller.handle_event("join", {"channel": "#a", "nick": "me"})
        await controller.handle_event("join", {"channel": "#a", "nick": "bob"})

        await controller.handle_event("part", {"channel": "#a", "nick": "bob", "reason": "later", "message": None})

        assert controller.rosters.get("#a") == []
        assert controller.buffers.get("#a").log[-1].text == "bob has left #a (later)"

    async def test_self_join_then_part_restores_buffer_set(self, controller):
        await register(controller)
        await controller.handle_event("join", {"channel": "#keep", "nick": "me"})
        controller.buffers.set_current("Status")
        before = controller.buffers.names()

        await controller.handle_event("join", {"channel": "#a", "nick": "me"})
        await controller.handle_event("names", {"channel": "#a", "names": {"me": "", "bob": "@"}})
        await controller.handle_event("part", {"channel": "#a", "nick": "me", "reason": None})

        assert controller.buffers.names() == before
        assert "#a" not in controller.rosters
        assert len(current_names(controller)) == 1

    async def test_self_part_of_unknown_channel_is_harmless(self, controller):
        await register(controller)
        handled = await controller.handle_event("part", {"channel": "#never", "nick": "me"})
        assert handled
        assert controller.buffers.names() == ["Status"]

    async def test_local_part_command_does_not_remove_channel(self, controller, bridge):
        await register(controller)
        await controller.handle_event("join", {"channel": "#a", "nick": "me"})

        await controller.submit("/part")

        assert "#a" in controller.buffers
        assert bridge.sent[-1] == ("command", {"raw": "part", "context": {"target": "#a"}})

        await controller.handle_event("part", {"channel": "#a", "nick": "me"})
        assert "#a" not in controller.buffers


class TestQuit:
    async def test_quit_equals_sequential_parts(self, settings):
        async def build():
            session = SessionController(QueueBridge(), ErrorHandler(), settings)
            await register(session)
            for channel in ("#a", "#b"):
                await session.handle_event("join", {"channel": channel, "nick": "me"})
                await session.handle_event("names", {"channel": channel, "names": {"me": "@", "bob": ""}})
            return session

        via_quit = await build()
        via_parts = await build()

        await via_quit.handle_event("quit", {"nick": "bob", "channels": ["#a", "#b"], "reason": "gone"})
        for channel in ("#a", "#b"):
            await via_parts.handle_event("part", {"channel": channel, "nick": "bob", "reason": "gone"})

        assert state_of(via_quit) == state_of(via_parts)
        assert controller_has_no(via_quit, "bob")

    async def test_own_quit_equals_sequential_self_parts(self, settings):
        async def build():
            session = SessionController(QueueBridge(), ErrorHandler(), settings)
            await register(session)
            for channel in ("#a", "#b", "#c"):
                await session.handle_event("join", {"channel": channel, "nick": "me"})
                await session.handle_event("names", {"channel": channel, "names": {"me": "@", "bob": ""}})
            session.buffers.set_current("#a")
            return session

        via_quit = await build()
        via_parts = await build()

        await via_quit.handle_event("quit", {"nick": "me", "channels": ["#a", "#b"], "reason": "bye"})
        for channel in ("#a", "#b"):
            await via_parts.handle_event("part", {"channel": channel, "nick": "me", "reason": "bye"})

        assert state_of(via_quit) == state_of(via_parts)
        assert via_quit.buffers.names() == ["Status", "#c"]
        assert current_names(via_quit) == ["#c"]
        assert "#a" not in via_quit.rosters
        assert "#b" not in via_quit.rosters
        assert "#c" in via_quit.rosters

    async def test_quit_does_not_mutate_event(self, controller):
        await register(controller)
        data = {"nick": "bob", "channels": ["#a"], "reason": "gone"}
        original = copy.deepcopy(data)

        await controller.handle_event("quit", data)

        assert data == original


def controller_has_no(controller, nick):
    return all(nick not in [entry.nick for entry in controller.rosters.get(channel)] for channel in controller.rosters.channels())


class TestNames:
    async def test_names_tags_local_user(self, controller):
        await register(controller)
        await controller.handle_event("join", {"channel": "#a", "nick": "me"})

        await controller.handle_event("names", {"channel": "#a", "names": {"me": "@", "bob": "", "carol": "+"}})

        entries = {entry.nick: entry for entry in controller.rosters.get("#a")}
        assert entries == {
            "me": RosterEntry("me", "@", True),
            "bob": RosterEntry("bob", "", False),
            "carol": RosterEntry("carol", "+", False),
        }


class TestNickCase:
    async def test_part_matches_roster_nick_ignoring_case(self, controller):
        await register(controller)
        await controller.handle_event("join", {"channel": "#a", "nick": "me"})
        await controller.handle_event("names", {"channel": "#a", "names": {"me": "", "Bob": ""}})

        await controller.handle_event("part", {"channel": "#a", "nick": "bob"})

        assert [entry.nick for entry in controller.rosters.get("#a")] == ["me"]

    async def test_private_messages_share_one_buffer(self, controller):
        await register(controller)

        await controller.handle_event("message", {"to": "me", "nick": "Bob", "text": "hi"})
        await controller.handle_event("message", {"to": "me", "nick": "bob", "text": "again"})

        assert controller.buffers.names() == ["Status", "Bob"]
        assert len(controller.buffers.get("bob").log) == 2


class TestRootNamedLikeChannel:
    async def test_tabs_and_messages_reach_root(self, bridge, error_handler):
        session = SessionController(bridge, error_handler, SessionSettings(root_buffer_name="#Server"))
        await register(session)
        await session.handle_event("join", {"channel": "#a", "nick": "me"})

        await session.next_tab()
        assert current_names(session) == ["#Server"]

        await session.handle_event("message", {"to": "#server", "nick": "irc.example.net", "text": "motd"})
        assert session.buffers.names() == ["#Server", "#a"]
        assert session.buffers.get("#Server").log[-1].text == "motd"

        assert not await session.submit("hello")
        assert bridge.sent == []


class TestNickChange:
    async def test_own_nick_change_includes_root(self, controller):
        await register(controller, "old")
        for channel in ("#c1", "#c2"):
            await controller.handle_event("join", {"channel": channel, "nick": "old"})
            await controller.handle_event("names", {"channel": channel, "names": {"old": "@", "bob": ""}})

        await controller.handle_event("nick", {"oldnick": "old", "newnick": "new", "channels": ["#c1", "#c2"]})

        assert controller.nick == "new"
        assert controller.last_nick_change_channels == ["#c1", "#c2", "Status"]
        for channel in ("#c1", "#c2"):
            entries = {entry.nick: entry for entry in controller.rosters.get(channel)}
            assert entries["new"] == RosterEntry("new", "@", True)
            assert "old" not in entries
        assert controller.buffers.get("Status").log[-1].text == "You are now known as new"

    async def test_other_nick_change_keeps_local_nick(self, controller):
        await register(controller)
        await controller.handle_event("join", {"channel": "#a", "nick": "me"})
        await controller.handle_event("names", {"channel": "#a", "names": {"me": "", "bob": "+"}})
        await controller.handle_event("message", {"to": "#a", "nick": "bob", "text": "hi"})

        await controller.handle_event("nick", {"oldnick": "bob", "newnick": "rob", "channels": ["#a"]})

        assert controller.nick == "me"
        assert controller.last_nick_change_channels == ["#a"]
        assert RosterEntry("rob", "+") in controller.rosters.get("#a")
        texts = [(entry.author, entry.text) for entry in controller.buffers.get("#a").log]
        assert ("rob", "hi") in texts
        assert (SYSTEM_AUTHOR, "bob is now known as rob") in texts

    async def test_history_kept_when_relabel_disabled(self, bridge, error_handler):
        session = SessionController(bridge, error_handler, SessionSettings(relabel_history_on_nick=False))
        await register(session)
        await session.handle_event("join", {"channel": "#a", "nick": "me"})
        await session.handle_event("names", {"channel": "#a", "names": {"me": "", "bob": ""}})
        await session.handle_event("message", {"to": "#a", "nick": "bob", "text": "hi"})

        await session.handle_event("nick", {"oldnick": "bob", "newnick": "rob", "channels": ["#a"]})

        assert ("bob", "hi") in [(entry.author, entry.text) for entry in session.buffers.get("#a").log]
        assert RosterEntry("rob") in session.rosters.get("#a")

    async def test_nick_event_does_not_mutate_channels(self, controller):
        await register(controller)
        channels = ["#a"]
        await controller.handle_event("nick", {"oldnick": "me", "newnick": "you", "channels": channels})
        assert channels == ["#a"]


class TestProtocolErrors:
    async def test_no_such_nick_writes_delivery_notice(self, controller, error_handler):
        await register(controller)

        await error_handler.report_protocol_error("err_nosuchnick", ["me", "ghost", "No such nick/channel"])

        entry = controller.buffers.get("ghost").log[-1]
        assert entry.author == SYSTEM_AUTHOR
        assert entry.kind == "delivery_failure"
        assert entry.text == "Message could not be delivered to ghost: No such nick/channel"

    async def test_other_protocol_errors_are_ignored(self, controller, error_handler):
        await error_handler.report_protocol_error("err_chanoprivsneeded", ["me", "#a", "You're not channel operator"])
        assert controller.buffers.names() == ["Status"]


class TestTabs:
    async def test_next_and_previous_tab(self, controller, shortcuts):
        await register(controller)
        await controller.handle_event("join", {"channel": "#a", "nick": "me"})
        await controller.handle_event("join", {"channel": "#b", "nick": "me"})

        await shortcuts.trigger("next-tab")
        assert current_names(controller) == ["Status"]

        await controller.next_tab()
        assert current_names(controller) == ["#a"]

        await shortcuts.trigger("previous-tab")
        await controller.previous_tab()
        assert current_names(controller) == ["#b"]


class TestSubmit:
    async def test_chat_message_is_sent_and_echoed(self, controller, bridge):
        await register(controller)
        await controller.handle_event("join", {"channel": "#a", "nick": "me"})

        assert await controller.submit("hello all")

        assert bridge.sent == [("message", {"raw": "hello all", "context": {"target": "#a"}})]
        assert controller.buffers.get("#a").log[-1] == LogEntry("me", "hello all")

    async def test_chat_in_root_is_dropped(self, controller, bridge):
        version = controller.state_version

        assert not await controller.submit("hello")

        assert bridge.sent == []
        assert len(controller.buffers.get("Status").log) == 0
        assert controller.state_version == version

    async def test_remote_command_forwarded(self, controller, bridge):
        assert await controller.submit("/join #a")
        assert bridge.sent == [("command", {"raw": "join #a", "context": {"target": "Status"}})]
        assert controller.buffers.names() == ["Status"]

    async def test_remote_nick_command_does_not_change_nick(self, controller, bridge):
        await register(controller)
        await controller.submit("/nick other")
        assert controller.nick == "me"

    async def test_pm_opens_private_chat(self, controller, bridge):
        await register(controller)

        assert await controller.submit("/pm alice hello")

        assert bridge.sent == [("message", {"raw": "hello", "context": {"target": "alice"}})]
        assert not any(kind == "command" for kind, _ in bridge.sent)
        assert controller.buffers.names() == ["Status", "alice"]
        assert current_names(controller) == ["alice"]
        assert controller.buffers.get("alice").log[-1] == LogEntry("me", "hello")

    async def test_pm_without_message_reports_usage(self, controller, bridge, error_handler):
        await register(controller)
        reported = []
        error_handler.on("normal", reported.append)

        assert not await controller.submit("/pm alice")

        assert bridge.sent == []
        assert controller.buffers.names() == ["Status"]
        assert isinstance(reported[0]["error"], UsageError)
        assert error_handler.notices[-1] == "Invalid command arguments: [nick,message]. Usage: /pm <nick> <message>"

    async def test_part_closes_private_chat(self, controller, bridge):
        await register(controller)
        await controller.submit("/pm alice hello")
        bridge.sent.clear()

        assert await controller.submit("/part")

        assert controller.buffers.names() == ["Status"]
        assert current_names(controller) == ["Status"]
        assert bridge.sent == []


class TestRenderSignal:
    async def test_every_transition_requests_render(self, controller):
        renders = []
        controller.add_render_listener(lambda session: renders.append(session.state_version))

        await register(controller)
        await controller.handle_event("join", {"channel": "#a", "nick": "me"})
        await controller.submit("hi")
        await controller.next_tab()

        assert renders == [1, 2, 3, 4]
        assert controller.ui_needs_update.is_set()

    async def test_failing_render_listener_does_not_break_session(self, controller):
        def broken(_session):
            raise RuntimeError("draw failed")

        controller.add_render_listener(broken)
        await register(controller)
        assert controller.nick == "me"


class TestErrorIsolation:
    async def test_handler_failure_does_not_stop_later_events(self, controller, bridge, error_handler, monkeypatch):
        from koko_core.irc import event_protocol

        async def explode(_controller, _data):
            raise RuntimeError("boom")

        monkeypatch.setitem(event_protocol.EVENT_HANDLERS, "names", explode)
        internal = []
        error_handler.on("internal", internal.append)

        bridge.push("registered", {"nick": "me"})
        bridge.push("names", {"channel": "#a", "names": {}})
        bridge.push("join", {"channel": "#a", "nick": "me"})
        processed = await bridge.drain()

        assert processed == 3
        assert controller.nick == "me"
        assert current_names(controller) == ["#a"]
        assert str(internal[0]["error"]) == "boom"

    async def test_unknown_event_is_ignored(self, controller):
        assert not await controller.handle_event("topic", {"channel": "#a"})
