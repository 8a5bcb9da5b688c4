"""
status_monitor.py — Live server status message

Every STATUS_UPDATE_INTERVAL seconds:
  1. resources/state from the panel REST API (always)
  2. if running: roster from the console ("list"), else the query ping
     when configured, else "N/A"
  3. render one embed and edit the existing status message in place;
     a missing/deleted message is replaced and its new id remembered

A failed tick is logged and skipped; the previous message stays until the
next good one. Each tick builds a fresh snapshot.
"""
import asyncio
from typing import Optional

import config
from discord_helpers import build_status_embed, to_embed


class StatusMonitor:

    def __init__(self, client, channel_id: int, api, commands, query=None,
                 interval: int = None):
        self.client     = client
        self.channel_id = channel_id
        self.api        = api
        self.commands   = commands
        self.query      = query
        self.interval   = interval or config.STATUS_UPDATE_INTERVAL
        self.status_message_id: Optional[int] = None
        self._task: Optional[asyncio.Task] = None

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    def start(self):
        if self._task and not self._task.done():
            return
        print(f"[STATUS] Starting status monitor for channel {self.channel_id} "
              f"(every {self.interval}s)")
        self._task = asyncio.create_task(self._loop(), name="status-monitor")

    def stop(self):
        if self._task:
            self._task.cancel()
            self._task = None
            print("[STATUS] Status monitor stopped")

    async def _loop(self):
        while True:
            await self.update_status()
            await asyncio.sleep(self.interval)

    # ── One tick ──────────────────────────────────────────────────────────────

    async def _get_channel(self):
        channel = self.client.get_channel(self.channel_id)
        if channel is None:
            channel = await self.client.fetch_channel(self.channel_id)
        return channel

    async def collect_players(self):
        """Console roster first, query ping second; None when unknown."""
        result = await self.commands.list_players()
        if result.success:
            print(f"[STATUS] Players from console: {result.players.online}/{result.players.max}")
            return result.players

        print(f"[STATUS] Console player list failed ({result.error}), trying query")
        if self.query is not None and self.query.is_enabled():
            query_result = await self.query.get_players()
            if query_result.success:
                return query_result.players
        return None

    async def update_status(self):
        try:
            channel = await self._get_channel()
            if channel is None or not hasattr(channel, "send"):
                print(f"[STATUS] Status channel {self.channel_id} is not a text channel")
                return

            server  = await self.api.get_server_status()
            players = None
            if server.success and server.status.state == "running":
                players = await self.collect_players()

            embed = to_embed(build_status_embed(
                status=server.status if server.success else None,
                players=players,
                error=server.error,
                interval_seconds=self.interval,
            ))
            await self._publish(channel, embed)
        except Exception as e:
            print(f"[STATUS] Failed to update status: {e}")

    async def _publish(self, channel, embed):
        if self.status_message_id is not None:
            try:
                message = await channel.fetch_message(self.status_message_id)
                await message.edit(embed=embed)
                return
            except Exception as e:
                print(f"[STATUS] Status message unavailable ({e}), creating a new one")
                self.status_message_id = None

        message = await channel.send(embed=embed)
        self.status_message_id = message.id
