"""
Whitelist Bot Configuration
Single source of truth for Discord, Pterodactyl, query and timing parameters.
All values come from the environment (.env is loaded on import).
"""
import os
from dotenv import load_dotenv

load_dotenv()


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        print(f"[CONFIG] Invalid integer for {name}: {raw!r} (using {default})")
        return default


# ══════════════════════════════════════════════════════════════════════════════
# DISCORD CONFIGURATION
# ══════════════════════════════════════════════════════════════════════════════
DISCORD_TOKEN             = os.getenv("DISCORD_TOKEN", "")
DISCORD_CLIENT_ID         = os.getenv("DISCORD_CLIENT_ID", "")
DISCORD_CHANNEL_ID        = _int_env("DISCORD_CHANNEL_ID", 0)          # whitelist announcements
DISCORD_STATUS_CHANNEL_ID = _int_env("DISCORD_STATUS_CHANNEL_ID", 0)   # 0 = status monitor off

# ══════════════════════════════════════════════════════════════════════════════
# PTERODACTYL PANEL
# ══════════════════════════════════════════════════════════════════════════════
PTERODACTYL_URL       = os.getenv("PTERODACTYL_URL", "").rstrip("/")
PTERODACTYL_SERVER_ID = os.getenv("PTERODACTYL_SERVER_ID", "")
PTERODACTYL_API_KEY   = os.getenv("PTERODACTYL_API_KEY", "")

HTTP_TIMEOUT = 10               # seconds, every panel REST call

# ══════════════════════════════════════════════════════════════════════════════
# CONSOLE WEBSOCKET
# ══════════════════════════════════════════════════════════════════════════════
RECONNECT_DELAY       = 5       # seconds between reconnect attempts (no backoff)
TOKEN_REFRESH_SECONDS = 8 * 60  # re-auth 8 min into the 10 min token window
AUTH_TIMEOUT          = 5       # seconds to wait for "auth success" after connect

# Console feedback windows (seconds)
WHITELIST_ADD_TIMEOUT    = 10
WHITELIST_REMOVE_TIMEOUT = 10
LIST_PLAYERS_TIMEOUT     = 5

# ══════════════════════════════════════════════════════════════════════════════
# MINECRAFT QUERY (status fallback)
# ══════════════════════════════════════════════════════════════════════════════
MINECRAFT_SERVER_HOST = os.getenv("MINECRAFT_SERVER_HOST", "")
MINECRAFT_SERVER_PORT = _int_env("MINECRAFT_SERVER_PORT", 25565)
QUERY_TIMEOUT         = 5

# ══════════════════════════════════════════════════════════════════════════════
# STATUS MONITOR
# ══════════════════════════════════════════════════════════════════════════════
STATUS_UPDATE_INTERVAL = _int_env("STATUS_UPDATE_INTERVAL", 30)   # seconds
MAX_PLAYERS_SHOWN      = 15

# ══════════════════════════════════════════════════════════════════════════════
# DATABASE
# ══════════════════════════════════════════════════════════════════════════════
DB_PATH = os.getenv("DB_PATH", "whitelist.db")
