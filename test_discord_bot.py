# test_discord_bot.py -- slash command flows with fake interaction/collaborators
import asyncio

import pytest

import config
from console_commands import ConsoleResult
from discord_bot import build_bot


class FakeUser:
    id = 1234

    def __str__(self):
        return "admin#0001"


class FakeResponse:
    def __init__(self, interaction):
        self.interaction = interaction
        self.done        = False

    def is_done(self):
        return self.done

    async def defer(self, ephemeral=False):
        self.done = True

    async def send_message(self, content=None, ephemeral=False, embed=None):
        self.done = True
        self.interaction.messages.append(content)


class FakeInteraction:
    def __init__(self):
        self.user     = FakeUser()
        self.command  = None
        self.messages = []
        self.edits    = []
        self.response = FakeResponse(self)

    async def edit_original_response(self, content=None, embed=None):
        self.edits.append((content, embed))


class FakeConsole:
    def __init__(self, add=None, remove=None):
        self.add_result    = add or ConsoleResult(success=True, kind="added")
        self.remove_result = remove or ConsoleResult(success=True, kind="removed")
        self.calls         = []

    async def whitelist_add(self, username):
        self.calls.append(("add", username))
        return self.add_result

    async def whitelist_remove(self, username):
        self.calls.append(("remove", username))
        return self.remove_result


class FakePanel:
    def __init__(self, entries=None):
        self.entries = entries or []

    async def read_whitelist(self):
        return self.entries


class FakeStore:
    def __init__(self, rows=None):
        self.rows  = dict(rows or {})
        self.synced = None

    def is_whitelisted(self, username):
        return self.rows.get(username)

    def add(self, username, discord_id, discord_username):
        self.rows[username] = {"username": username, "added_at": "2024-03-09 07:05:00"}

    def remove(self, username):
        return self.rows.pop(username, None) is not None

    def sync_with_server_whitelist(self, entries):
        self.synced = entries
        return {"added": len(entries), "removed": 0}


@pytest.fixture(autouse=True)
def no_announcements(monkeypatch):
    monkeypatch.setattr(config, "DISCORD_CHANNEL_ID", 0)


def invoke(bot, name, *args):
    interaction = FakeInteraction()
    asyncio.run(bot.tree.get_command(name).callback(interaction, *args))
    return interaction


def test_commands_registered():
    bot = build_bot(FakeConsole(), FakePanel(), FakeStore())
    names = {c.name for c in bot.tree.get_commands()}
    assert names == {"whitelist", "unwhitelist", "whitelist-list", "whitelist-sync"}


def test_whitelist_success_records_player():
    console, store = FakeConsole(), FakeStore()
    bot = build_bot(console, FakePanel(), store)

    interaction = invoke(bot, "whitelist", "Steve")
    assert console.calls == [("add", "Steve")]
    assert "Steve" in store.rows
    assert "has been whitelisted" in interaction.edits[-1][0]


def test_whitelist_invalid_name_never_reaches_console():
    console = FakeConsole()
    bot = build_bot(console, FakePanel(), FakeStore())

    interaction = invoke(bot, "whitelist", "no spaces!")
    assert console.calls == []
    assert "Invalid username" in interaction.messages[0]


def test_whitelist_already_stored():
    console = FakeConsole()
    store   = FakeStore({"Steve": {"username": "Steve", "added_at": "2024-03-09 07:05:00"}})
    bot     = build_bot(console, FakePanel(), store)

    interaction = invoke(bot, "whitelist", "Steve")
    assert console.calls == []
    assert "09.03.2024 07:05" in interaction.messages[0]


def test_whitelist_console_failure_not_recorded():
    console = FakeConsole(add=ConsoleResult(success=False, kind="player_not_found",
                                            error="Player does not exist (check the username)"))
    store   = FakeStore()
    bot     = build_bot(console, FakePanel(), store)

    interaction = invoke(bot, "whitelist", "Steve")
    assert store.rows == {}
    assert "Player does not exist" in interaction.edits[-1][0]


def test_unwhitelist_drops_record():
    store = FakeStore({"Steve": {"username": "Steve", "added_at": "2024-03-09 07:05:00"}})
    bot   = build_bot(FakeConsole(), FakePanel(), store)

    interaction = invoke(bot, "unwhitelist", "Steve")
    assert store.rows == {}
    assert "removed from the whitelist" in interaction.edits[-1][0]


def test_whitelist_list_empty():
    bot = build_bot(FakeConsole(), FakePanel([]), FakeStore())
    interaction = invoke(bot, "whitelist-list")
    assert interaction.edits[-1][0] == "📋 The whitelist is empty."


def test_whitelist_sync_reports_counts():
    entries = [{"uuid": "1", "name": "Steve"}, {"uuid": "2", "name": "Alex"}]
    store   = FakeStore()
    bot     = build_bot(FakeConsole(), FakePanel(entries), store)

    interaction = invoke(bot, "whitelist-sync")
    assert store.synced == entries
    embed = interaction.edits[-1][1]
    assert [f.value for f in embed.fields] == ["2", "2", "0"]
