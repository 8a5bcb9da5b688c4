"""
console_commands.py — Console command + feedback orchestrator

Turns one logical server action into send + await + classify:
  1. make sure the console session is connected and authenticated
  2. register a waiter for every known reply to the action
  3. send the command over the websocket
  4. classify the matched line (first matching rule wins)

Degraded mode when the console does not confirm in time:
  - whitelist_add     -> exactly one plain HTTP command (no feedback)
  - whitelist_remove  -> failure result, no HTTP retry
  - list_players      -> failure result, no HTTP retry

Minecraft replies matched (case-insensitive, anywhere in the log line):
  Added Steve to the whitelist          Removed Steve from the whitelist
  Player is already whitelisted         Player is not whitelisted
  That player does not exist
  There are 2 of a max of 20 players online: Alice, Bob
"""
import re
from dataclasses import dataclass, field
from typing import List, Optional, Pattern, Tuple

import config

_LIST_RE = re.compile(
    r"There are (\d+)(?: of a max(?: of)? |/)(\d+) players online:?(.*)$",
    re.IGNORECASE,
)


@dataclass
class ConsoleResult:
    success: bool
    kind: str                        # added, already_whitelisted, timeout, http, ...
    error: Optional[str] = None
    raw: Optional[str] = None        # console line that decided the outcome
    via: str = "console"             # console | http


@dataclass
class PlayerList:
    online: int
    max: int
    players: List[str] = field(default_factory=list)


@dataclass
class PlayerListResult:
    success: bool
    players: Optional[PlayerList] = None
    error: Optional[str] = None
    raw: Optional[str] = None


# (pattern, kind, success, error)
Rule = Tuple[Pattern, str, bool, Optional[str]]


def _rule(pattern: str, kind: str, success: bool, error: str = None) -> Rule:
    return re.compile(pattern, re.IGNORECASE), kind, success, error


def whitelist_add_rules(username: str) -> List[Rule]:
    name = re.escape(username)
    return [
        _rule(rf"Added {name} to the whitelist", "added", True),
        _rule(r"already whitelisted", "already_whitelisted", False, "Player is already whitelisted"),
        _rule(r"player does not exist", "player_not_found", False,
              "Player does not exist (check the username)"),
    ]


def whitelist_remove_rules(username: str) -> List[Rule]:
    name = re.escape(username)
    return [
        _rule(rf"Removed {name} from the whitelist", "removed", True),
        _rule(r"not whitelisted", "not_whitelisted", False, "Player is not whitelisted"),
        _rule(r"player does not exist", "player_not_found", False,
              "Player does not exist (check the username)"),
    ]


def union_pattern(rules: List[Rule]) -> Pattern:
    """One regex matching any rule's reply."""
    return re.compile("|".join(f"(?:{r[0].pattern})" for r in rules), re.IGNORECASE)


def classify(line: str, rules: List[Rule]) -> Optional[ConsoleResult]:
    """Ordered rule match; None when no rule recognises the line."""
    for pattern, kind, success, error in rules:
        if pattern.search(line):
            return ConsoleResult(success=success, kind=kind, error=error, raw=line)
    return None


def parse_player_list(text: str) -> Optional[PlayerList]:
    """
    Parse "There are <N> of a max of <M> players online[: a, b, ...]".

    An explicit count of zero is an empty server. Text that does not match at
    all returns None: the roster is unknown, not empty.
    """
    match = _LIST_RE.search(text)
    if not match:
        return None
    names = [n.strip() for n in match.group(3).split(",")]
    return PlayerList(
        online=int(match.group(1)),
        max=int(match.group(2)),
        players=[n for n in names if n],
    )


class ConsoleCommands:

    def __init__(self, session, api):
        self.session = session
        self.api     = api

    # ── Plumbing ──────────────────────────────────────────────────────────────

    async def _ensure_session(self):
        if self.session.is_connected():
            return
        await self.session.connect()
        if not await self.session.wait_until_ready(config.AUTH_TIMEOUT):
            raise ConnectionError("console websocket is not authenticated")

    async def _await_line(self, command: str, pattern: Pattern, timeout: float) -> str:
        """Send command and return the first console line matching pattern."""
        await self._ensure_session()
        # Register before sending so the reply cannot slip past.
        waiter = self.session.registry.wait_for(pattern, timeout)
        if not await self.session.send_command(command):
            # The registry still expires the entry at its deadline.
            waiter.cancel()
            raise ConnectionError(f"could not send '{command}' over the console")
        return await waiter

    async def _run(self, command: str, rules: List[Rule], timeout: float) -> ConsoleResult:
        line   = await self._await_line(command, union_pattern(rules), timeout)
        result = classify(line, rules)
        print(f"[CONSOLE] '{command}' -> {result.kind}: {line}")
        return result

    # ── Actions ───────────────────────────────────────────────────────────────

    async def whitelist_add(self, username: str) -> ConsoleResult:
        """Whitelist via console feedback; falls back to the HTTP command."""
        command = f"whitelist add {username}"
        try:
            return await self._run(command, whitelist_add_rules(username), config.WHITELIST_ADD_TIMEOUT)
        except Exception as e:
            print(f"[CONSOLE] No console confirmation for '{command}' ({e}), using HTTP fallback")

        http = await self.api.send_command(command)
        return ConsoleResult(
            success=http.success,
            kind="http" if http.success else "http_error",
            error=http.error,
            via="http",
        )

    async def whitelist_remove(self, username: str) -> ConsoleResult:
        command = f"whitelist remove {username}"
        try:
            return await self._run(command, whitelist_remove_rules(username), config.WHITELIST_REMOVE_TIMEOUT)
        except Exception as e:
            print(f"[CONSOLE] No console confirmation for '{command}': {e}")
            return ConsoleResult(
                success=False,
                kind="timeout",
                error="No confirmation from the server console (is the server running?)",
            )

    async def list_players(self) -> PlayerListResult:
        try:
            line = await self._await_line("list", _LIST_RE, config.LIST_PLAYERS_TIMEOUT)
        except Exception as e:
            print(f"[CONSOLE] Player list unavailable: {e}")
            return PlayerListResult(success=False, error=str(e) or type(e).__name__)

        players = parse_player_list(line)
        return PlayerListResult(success=players is not None, players=players, raw=line)
