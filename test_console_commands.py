# test_console_commands.py -- console feedback orchestration and reply parsing
import asyncio

import pytest

import config
from console_commands import (
    ConsoleCommands,
    classify,
    parse_player_list,
    whitelist_add_rules,
    whitelist_remove_rules,
)
from console_waiters import WaiterRegistry
from panel_api import CommandResult


class FakeSession:
    """Console session that answers commands with scripted log lines."""

    def __init__(self, replies=None, connected=True, accept=True):
        self.registry  = WaiterRegistry()
        self.replies   = replies or {}
        self.connected = connected
        self.accept    = accept
        self.sent      = []

    def is_connected(self):
        return self.connected

    async def connect(self):
        pass

    async def wait_until_ready(self, timeout):
        return self.connected

    async def send_command(self, command):
        if not self.accept:
            return False
        self.sent.append(command)
        loop = asyncio.get_running_loop()
        for line in self.replies.get(command, []):
            loop.call_soon(self.registry.dispatch, line)
        return True


class FakePanel:
    def __init__(self, result=None):
        self.commands = []
        self.result   = result or CommandResult(success=True, status_code=204)

    async def send_command(self, command):
        self.commands.append(command)
        return self.result


@pytest.fixture
def short_timeouts(monkeypatch):
    monkeypatch.setattr(config, "WHITELIST_ADD_TIMEOUT", 0.05)
    monkeypatch.setattr(config, "WHITELIST_REMOVE_TIMEOUT", 0.05)
    monkeypatch.setattr(config, "LIST_PLAYERS_TIMEOUT", 0.05)
    monkeypatch.setattr(config, "AUTH_TIMEOUT", 0.05)


# ── whitelist add ─────────────────────────────────────────────────────────────

def test_add_confirmed_by_console():
    session = FakeSession({"whitelist add Steve": ["Added Steve to the whitelist"]})
    panel   = FakePanel()
    result  = asyncio.run(ConsoleCommands(session, panel).whitelist_add("Steve"))

    assert result.success
    assert result.kind == "added"
    assert result.raw == "Added Steve to the whitelist"
    assert result.via == "console"
    assert session.sent == ["whitelist add Steve"]
    assert panel.commands == []
    assert len(session.registry) == 0


def test_add_already_whitelisted():
    session = FakeSession({"whitelist add Steve": ["[12:00:01 INFO]: Player is already whitelisted"]})
    panel   = FakePanel()
    result  = asyncio.run(ConsoleCommands(session, panel).whitelist_add("Steve"))

    assert not result.success
    assert result.kind == "already_whitelisted"
    assert result.error == "Player is already whitelisted"
    assert panel.commands == []


def test_add_unknown_player():
    session = FakeSession({"whitelist add Nobody_": ["That player does not exist"]})
    result  = asyncio.run(ConsoleCommands(session, FakePanel()).whitelist_add("Nobody_"))

    assert not result.success
    assert result.kind == "player_not_found"


def test_add_timeout_falls_back_to_http_once(short_timeouts):
    # another player's confirmation must not count
    session = FakeSession({"whitelist add Steve": ["Added Alex to the whitelist"]})
    panel   = FakePanel()
    result  = asyncio.run(ConsoleCommands(session, panel).whitelist_add("Steve"))

    assert result.success
    assert result.via == "http"
    assert result.kind == "http"
    assert panel.commands == ["whitelist add Steve"]
    assert len(session.registry) == 0


def test_add_fallback_reports_http_failure(short_timeouts):
    session = FakeSession(connected=False)
    panel   = FakePanel(CommandResult(success=False, error="Server is offline", status_code=412))
    result  = asyncio.run(ConsoleCommands(session, panel).whitelist_add("Steve"))

    assert not result.success
    assert result.kind == "http_error"
    assert result.error == "Server is offline"
    assert session.sent == []
    assert panel.commands == ["whitelist add Steve"]


def test_add_send_failure_falls_back(short_timeouts):
    session = FakeSession(accept=False)
    panel   = FakePanel()
    result  = asyncio.run(ConsoleCommands(session, panel).whitelist_add("Steve"))

    assert result.via == "http"
    assert panel.commands == ["whitelist add Steve"]


# ── whitelist remove ──────────────────────────────────────────────────────────

def test_remove_confirmed_by_console():
    session = FakeSession({"whitelist remove Steve": ["Removed Steve from the whitelist"]})
    result  = asyncio.run(ConsoleCommands(session, FakePanel()).whitelist_remove("Steve"))

    assert result.success
    assert result.kind == "removed"


def test_remove_not_whitelisted():
    session = FakeSession({"whitelist remove Steve": ["Player is not whitelisted"]})
    result  = asyncio.run(ConsoleCommands(session, FakePanel()).whitelist_remove("Steve"))

    assert not result.success
    assert result.kind == "not_whitelisted"


def test_remove_timeout_has_no_http_fallback(short_timeouts):
    session = FakeSession()
    panel   = FakePanel()
    result  = asyncio.run(ConsoleCommands(session, panel).whitelist_remove("Steve"))

    assert not result.success
    assert result.kind == "timeout"
    assert panel.commands == []
    assert len(session.registry) == 0


# ── list ──────────────────────────────────────────────────────────────────────

def test_list_players_from_console():
    session = FakeSession({"list": ["[12:00:01 INFO]: There are 2 of a max of 20 players online: Alice, Bob"]})
    panel   = FakePanel()
    result  = asyncio.run(ConsoleCommands(session, panel).list_players())

    assert result.success
    assert result.players.online == 2
    assert result.players.max == 20
    assert result.players.players == ["Alice", "Bob"]
    assert panel.commands == []


def test_list_players_timeout(short_timeouts):
    panel  = FakePanel()
    result = asyncio.run(ConsoleCommands(FakeSession(), panel).list_players())

    assert not result.success
    assert result.players is None
    assert result.error
    assert panel.commands == []


# ── parsing ───────────────────────────────────────────────────────────────────

def test_parse_player_list_populated():
    players = parse_player_list("There are 3 of a max of 20 players online: Alice, Bob, Carol")
    assert (players.online, players.max) == (3, 20)
    assert players.players == ["Alice", "Bob", "Carol"]


def test_parse_player_list_empty_server():
    players = parse_player_list("There are 0 of a max of 20 players online")
    assert (players.online, players.max, players.players) == (0, 20, [])

    players = parse_player_list("There are 0 of a max of 20 players online: ")
    assert (players.online, players.max) == (0, 20)
    assert players.players == []


def test_parse_player_list_short_forms():
    assert parse_player_list("There are 0 of a max 10 players online").max == 10
    legacy = parse_player_list("There are 1/8 players online:Steve")
    assert (legacy.online, legacy.max, legacy.players) == (1, 8, ["Steve"])


def test_parse_player_list_unknown():
    assert parse_player_list("Unknown or incomplete command") is None


def test_classify_first_rule_wins():
    rules = whitelist_add_rules("Steve")
    assert classify("Added Steve to the whitelist", rules).kind == "added"
    assert classify("added steve to the whitelist", rules).kind == "added"
    assert classify("Added Alex to the whitelist", rules) is None

    remove = whitelist_remove_rules("Steve")
    assert classify("Player is not whitelisted", remove).kind == "not_whitelisted"


def test_username_is_escaped_in_rules():
    rules = whitelist_add_rules(".Steve")
    assert classify("Added .Steve to the whitelist", rules).kind == "added"
    assert classify("Added xSteve to the whitelist", rules) is None
