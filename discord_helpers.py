"""
Discord Helpers - Embed builders for the whitelist bot
Every builder returns a plain embed dict; to_embed() converts it for discord.py.
"""
from datetime import datetime, timezone
from typing import Dict, List, Optional

import discord

import config

COLOR_GREEN   = 0x57F287
COLOR_YELLOW  = 0xFEE75C
COLOR_RED     = 0xED4245
COLOR_BLURPLE = 0x5865F2

FOOTER = "Whitelist System"

# state -> (color, emoji, label)
STATE_STYLES = {
    "running":  (COLOR_GREEN,  "🟢", "Online"),
    "starting": (COLOR_YELLOW, "🟡", "Starting"),
    "stopping": (COLOR_YELLOW, "🟡", "Stopping"),
    "offline":  (COLOR_RED,    "🔴", "Offline"),
}

BLANK_FIELD = {"name": "\u200b", "value": "\u200b", "inline": True}


def to_embed(embed: Dict) -> discord.Embed:
    return discord.Embed.from_dict(embed)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def format_date(value) -> str:
    """dd.mm.yyyy HH:MM for datetimes or ISO / SQL timestamp strings."""
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    return value.strftime("%d.%m.%Y %H:%M")


# ── Status ─────────────────────────────────────────────────────────────────────

def format_uptime(milliseconds: int) -> str:
    """Largest nonzero unit pair: 2d 3h, 4h 5m, 6m 7s, 8s."""
    if not milliseconds:
        return "Just started"
    seconds = int(milliseconds // 1000)
    minutes, seconds = divmod(seconds, 60)
    hours, minutes   = divmod(minutes, 60)
    days, hours      = divmod(hours, 24)
    if days:
        return f"{days}d {hours}h"
    if hours:
        return f"{hours}h {minutes}m"
    if minutes:
        return f"{minutes}m {seconds}s"
    return f"{seconds}s"


def format_memory(used_bytes: int, limit_bytes: int) -> str:
    used_mb  = round(used_bytes / 1024 / 1024)
    limit_mb = round(limit_bytes / 1024 / 1024)
    percent  = round(used_bytes / limit_bytes * 100) if limit_bytes else 0
    return f"{used_mb} MB / {limit_mb} MB ({percent}%)"


def format_player_names(names: List[str], limit: int = None) -> str:
    limit = limit or config.MAX_PLAYERS_SHOWN
    if len(names) <= limit:
        return ", ".join(names)
    return f"{', '.join(names[:limit])} +{len(names) - limit} more"


def build_status_embed(status=None, players=None, error: Optional[str] = None,
                       interval_seconds: int = None) -> Dict:
    """
    Render one status snapshot.

    status:  panel_api.ServerStatus or None (fetch failed)
    players: console_commands.PlayerList or None (roster unknown -> "N/A")
    """
    interval_seconds = interval_seconds or config.STATUS_UPDATE_INTERVAL
    embed = {"title": "🖥️ Server Status", "timestamp": _now_iso()}

    if status is None:
        embed["color"]  = COLOR_RED
        embed["fields"] = [
            {"name": "Status",  "value": "🔴 Offline", "inline": True},
            {"name": "Players", "value": "0/0",        "inline": True},
            BLANK_FIELD,
        ]
        if error:
            embed["fields"].append({"name": "Error", "value": error, "inline": False})
        embed["footer"] = {"text": "Last updated"}
        return embed

    color, emoji, label = STATE_STYLES.get(status.state, STATE_STYLES["offline"])
    res = status.resources

    embed["color"]  = color
    embed["fields"] = [
        {"name": "Status",  "value": f"{emoji} {label}",                                   "inline": True},
        {"name": "Players", "value": f"{players.online}/{players.max}" if players else "N/A", "inline": True},
        {"name": "CPU",     "value": f"{round(res.cpu_absolute)}%",                         "inline": True},
        {"name": "Memory",  "value": format_memory(res.memory_bytes, res.memory_limit_bytes), "inline": True},
        {"name": "Uptime",  "value": format_uptime(res.uptime),                             "inline": True},
        BLANK_FIELD,
    ]

    if players and players.players:
        embed["fields"].append({
            "name": "Online Players",
            "value": format_player_names(players.players),
            "inline": False,
        })

    embed["footer"] = {"text": f"Updates every {interval_seconds} seconds • Last updated"}
    return embed


# ── Whitelist commands ────────────────────────────────────────────────────────

def build_whitelist_success_embed(username: str, discord_user_id: int, bedrock: bool = False) -> Dict:
    return {
        "title": "✅ Player whitelisted!",
        "color": COLOR_BLURPLE,
        "fields": [
            {"name": "Username", "value": username,                         "inline": True},
            {"name": "Edition",  "value": "Bedrock" if bedrock else "Java", "inline": True},
            {"name": "Added by", "value": f"<@{discord_user_id}>",          "inline": True},
            {"name": "Time",     "value": format_date(datetime.now()),      "inline": False},
        ],
        "footer": {"text": FOOTER},
        "timestamp": _now_iso(),
    }


def build_whitelist_error_embed(username: str, error: Optional[str]) -> Dict:
    return {
        "title": "❌ Whitelist failed",
        "color": COLOR_RED,
        "fields": [
            {"name": "Username", "value": username,                "inline": True},
            {"name": "Error",    "value": error or "Unknown error", "inline": False},
        ],
        "footer": {"text": FOOTER},
        "timestamp": _now_iso(),
    }


def build_unwhitelist_embed(username: str, discord_user_id: int) -> Dict:
    return {
        "title": "✅ Player removed from whitelist!",
        "color": COLOR_BLURPLE,
        "fields": [
            {"name": "Username",   "value": username,                    "inline": True},
            {"name": "Removed by", "value": f"<@{discord_user_id}>",     "inline": True},
            {"name": "Time",       "value": format_date(datetime.now()), "inline": True},
        ],
        "footer": {"text": FOOTER},
        "timestamp": _now_iso(),
    }


def build_whitelist_list_embed(entries: List[Dict], chunk_size: int = 25) -> Dict:
    """Server whitelist, numbered, chunk_size names per field."""
    fields = []
    for start in range(0, len(entries), chunk_size):
        chunk = entries[start:start + chunk_size]
        fields.append({
            "name": f"Players {start + 1}-{start + len(chunk)}",
            "value": "\n".join(f"{start + i + 1}. {e.get('name', '?')}" for i, e in enumerate(chunk)),
            "inline": False,
        })
    return {
        "title": "📋 Whitelist",
        "color": COLOR_BLURPLE,
        "description": f"**{len(entries)}** players on the whitelist",
        "fields": fields,
        "footer": {"text": FOOTER},
        "timestamp": _now_iso(),
    }


def build_sync_embed(server_count: int, added: int, removed: int) -> Dict:
    return {
        "title": "🔄 Whitelist synchronised!",
        "color": COLOR_GREEN,
        "fields": [
            {"name": "Players on server",   "value": str(server_count), "inline": True},
            {"name": "Added to database",   "value": str(added),        "inline": True},
            {"name": "Removed from database", "value": str(removed),    "inline": True},
        ],
        "footer": {"text": FOOTER},
        "timestamp": _now_iso(),
    }
