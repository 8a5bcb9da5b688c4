"""
Whitelist Store - who whitelisted whom
Local record of bot-driven whitelist changes, reconcilable with the
server's whitelist.json via sync_with_server_whitelist().
"""
from typing import Dict, List, Optional

import config
from db_connection import connection, ph, dict_cursor, serial_pk

SYNC_DISCORD_ID   = "SYNC"
SYNC_DISCORD_NAME = "Server Sync"


class WhitelistStore:

    def __init__(self, db_path: str = None):
        self.db_path = db_path or config.DB_PATH
        self._initialize_database()

    def _initialize_database(self):
        with connection(self.db_path) as conn:
            conn.cursor().execute(f"""
                CREATE TABLE IF NOT EXISTS whitelist (
                    id {serial_pk()},
                    username TEXT UNIQUE NOT NULL,
                    added_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    added_by_discord_id TEXT NOT NULL,
                    added_by_discord_username TEXT NOT NULL
                )
            """)
        print("[DB] Whitelist table ready")

    def is_whitelisted(self, username: str) -> Optional[Dict]:
        """Return the stored row for username, or None."""
        with connection(self.db_path) as conn:
            cursor = dict_cursor(conn)
            cursor.execute(f"SELECT * FROM whitelist WHERE username = {ph()}", (username,))
            row = cursor.fetchone()
        return dict(row) if row else None

    def add(self, username: str, discord_id: str, discord_username: str):
        p = ph()
        with connection(self.db_path) as conn:
            conn.cursor().execute(
                f"""
                INSERT INTO whitelist (username, added_by_discord_id, added_by_discord_username)
                VALUES ({p}, {p}, {p})
                """,
                (username, str(discord_id), discord_username),
            )
        print(f"[DB] Added {username} (by {discord_username})")

    def remove(self, username: str) -> bool:
        with connection(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(f"DELETE FROM whitelist WHERE username = {ph()}", (username,))
            removed = cursor.rowcount > 0
        if removed:
            print(f"[DB] Removed {username}")
        else:
            print(f"[DB] {username} was not in database")
        return removed

    def get_all(self) -> List[Dict]:
        with connection(self.db_path) as conn:
            cursor = dict_cursor(conn)
            cursor.execute("SELECT * FROM whitelist ORDER BY added_at DESC, id DESC")
            rows = [dict(r) for r in cursor.fetchall()]
        return rows

    def sync_with_server_whitelist(self, server_whitelist: List[Dict]) -> Dict[str, int]:
        """
        Make the store mirror the server's whitelist.json (case-insensitive).
        Rows missing locally are added as SYNC; rows gone from the server are
        deleted. Returns {"added": n, "removed": m}.
        """
        server_names = {e["name"].lower() for e in server_whitelist if e.get("name")}
        rows         = self.get_all()
        local_names  = {r["username"].lower() for r in rows}

        added = removed = 0
        for entry in server_whitelist:
            name = entry.get("name")
            if not name or name.lower() in local_names:
                continue
            try:
                self.add(name, SYNC_DISCORD_ID, SYNC_DISCORD_NAME)
                local_names.add(name.lower())
                added += 1
            except Exception as e:
                print(f"[DB] Failed to add {name} during sync: {e}")

        for row in rows:
            if row["username"].lower() not in server_names:
                try:
                    if self.remove(row["username"]):
                        removed += 1
                except Exception as e:
                    print(f"[DB] Failed to remove {row['username']} during sync: {e}")

        print(f"[DB] Whitelist sync complete: {added} added, {removed} removed")
        return {"added": added, "removed": removed}
