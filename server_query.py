"""
server_query.py — Minecraft Server List Ping accessor

Secondary player-count source for the status monitor when the console
websocket cannot answer "list". Disabled unless MINECRAFT_SERVER_HOST is set.
Uses mcstatus (SRV lookup honoured). The ping only returns a sample of names,
so players may be shorter than online on busy servers.
"""
from dataclasses import dataclass
from typing import Optional

from mcstatus import JavaServer

import config
from console_commands import PlayerList


@dataclass
class QueryResult:
    success: bool
    players: Optional[PlayerList] = None
    error: Optional[str] = None


class MinecraftQuery:

    def __init__(self, host: str = None, port: int = None, timeout: float = None):
        self.host    = host if host is not None else config.MINECRAFT_SERVER_HOST
        self.port    = port or config.MINECRAFT_SERVER_PORT
        self.timeout = timeout or config.QUERY_TIMEOUT
        self.enabled = bool(self.host)

        if self.enabled:
            print(f"[QUERY] Minecraft query enabled for {self.host}:{self.port}")
        else:
            print("[QUERY] MINECRAFT_SERVER_HOST not set, query fallback disabled")

    def is_enabled(self) -> bool:
        return self.enabled

    async def get_players(self) -> QueryResult:
        if not self.enabled:
            return QueryResult(success=False, error="Minecraft server not configured")

        try:
            server = await JavaServer.async_lookup(f"{self.host}:{self.port}", timeout=self.timeout)
            status = await server.async_status()
        except Exception as e:
            print(f"[QUERY] Failed to query {self.host}:{self.port}: {type(e).__name__}: {e}")
            return QueryResult(success=False, error=str(e) or type(e).__name__)

        sample = status.players.sample or []
        return QueryResult(
            success=True,
            players=PlayerList(
                online=status.players.online,
                max=status.players.max,
                players=[p.name for p in sample],
            ),
        )
