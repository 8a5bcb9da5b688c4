"""
console_session.py — Pterodactyl console websocket session

Keeps one authenticated websocket to the server console and forwards every
console output line to a WaiterRegistry.

Pterodactyl websocket protocol:
  - Credentials:   GET /api/client/servers/<id>/websocket -> {token, socket}
                   tokens live ~10 minutes
  - Frames:        {"event": "<name>", "args": ["..."]} both directions
  - Auth:          {"event": "auth", "args": [token]}  -> "auth success"
  - Command:       {"event": "send command", "args": ["whitelist add Steve"]}
  - Inbound:       "auth success", "token expiring", "token expired",
                   "console output", "status", "stats"

Design:
  - connect() never raises: credential/open failures schedule a reconnect
    after RECONNECT_DELAY seconds. Retries are unconditional (no backoff).
  - connect() leaves a socket alone while its auth frame is waiting for the
    ack (up to AUTH_TIMEOUT), and a socket it opens cancels any pending
    reconnect.
  - One reader task per socket; frames are handled strictly in arrival
    order, so every waiter sees a line before the next frame is read.
  - Refresh is armed on "auth success" at TOKEN_REFRESH_SECONDS and re-auths
    on the open socket. "token expiring" refreshes immediately. A failed
    refresh or "token expired" forces a full reconnect.
  - Reconnect and refresh are owned asyncio tasks; the previous task of the
    same kind is always cancelled before a new one is armed.
  - A socket that has been replaced does not schedule another reconnect when
    its reader ends.
  - disconnect() is explicit and idempotent; after it, nothing reconnects
    until connect() is called again.
"""
import asyncio
import json
from typing import Optional

import websockets
from websockets.protocol import State

import config
from console_waiters import WaiterRegistry


class ConsoleSession:

    def __init__(self, api, registry: WaiterRegistry = None,
                 reconnect_delay: float = None, refresh_interval: float = None,
                 connect_fn=None):
        self.api              = api
        self.registry         = registry if registry is not None else WaiterRegistry()
        self.reconnect_delay  = reconnect_delay if reconnect_delay is not None else config.RECONNECT_DELAY
        self.refresh_interval = refresh_interval if refresh_interval is not None else config.TOKEN_REFRESH_SECONDS
        self._connect_fn      = connect_fn or websockets.connect

        self.authenticated = False
        self._ws           = None
        self._reader_task: Optional[asyncio.Task]    = None
        self._reconnect_task: Optional[asyncio.Task] = None
        self._refresh_task: Optional[asyncio.Task]   = None
        self._connect_lock = asyncio.Lock()
        self._ready        = asyncio.Event()
        self._closed       = False
        self._auth_deadline: Optional[float] = None   # loop time; set while an auth frame awaits its ack

    # ── Public API ────────────────────────────────────────────────────────────

    def is_connected(self) -> bool:
        """True iff authenticated and the socket is open."""
        return self.authenticated and self._ws is not None and self._ws.state is State.OPEN

    def _auth_pending(self) -> bool:
        """Socket open, auth frame sent, ack still inside AUTH_TIMEOUT."""
        return (
            self._auth_deadline is not None
            and self._ws is not None
            and self._ws.state is State.OPEN
            and asyncio.get_running_loop().time() < self._auth_deadline
        )

    async def connect(self):
        """
        Fetch credentials, open the socket and send the auth frame.

        No-op while connected or while the current socket's handshake is
        still in flight; callers then use wait_until_ready().
        """
        self._closed = False
        async with self._connect_lock:
            if self.is_connected() or self._auth_pending():
                return
            try:
                creds = await self.api.get_websocket_credentials()
                await self._close_socket()
                self._ready.clear()
                ws = await self._connect_fn(
                    creds["socket"],
                    origin=self.api.url,
                    ping_interval=20,
                    ping_timeout=10,
                    close_timeout=5,
                )
            except Exception as e:
                print(f"[CONSOLE] Failed to connect websocket: {e}")
                self._schedule_reconnect()
                return

            if self._closed:
                # disconnect() ran while the socket was opening
                await ws.close()
                return

            self._ws = ws
            # A reconnect armed before this socket opened is now redundant.
            self._cancel_task("_reconnect_task")
            print("[CONSOLE] Websocket connection established")
            self._reader_task = asyncio.create_task(self._reader(ws), name="console-reader")
            self._auth_deadline = asyncio.get_running_loop().time() + config.AUTH_TIMEOUT
            await self._send({"event": "auth", "args": [creds["token"]]})

    async def wait_until_ready(self, timeout: float = None) -> bool:
        """Wait for "auth success" on the current socket; False on timeout."""
        if self.is_connected():
            return True
        try:
            await asyncio.wait_for(self._ready.wait(), timeout or config.AUTH_TIMEOUT)
        except asyncio.TimeoutError:
            return False
        return self.is_connected()

    async def send_command(self, command: str) -> bool:
        """Emit a console command frame. Logged no-op unless authenticated."""
        if not self.authenticated:
            print("[CONSOLE] Cannot send command: not authenticated")
            return False
        sent = await self._send({"event": "send command", "args": [command]})
        if sent:
            print(f"[CONSOLE] Sent command via websocket: {command}")
        return sent

    async def disconnect(self):
        """Tear down timers, socket and pending waiters. Safe to call twice."""
        self._closed = True
        self._cancel_task("_reconnect_task")
        self._cancel_task("_refresh_task")
        self._reset_auth()
        await self._close_socket()
        self.registry.clear()
        print("[CONSOLE] Console session disconnected")

    # ── Frames ────────────────────────────────────────────────────────────────

    async def _send(self, message: dict) -> bool:
        ws = self._ws
        if ws is None or ws.state is not State.OPEN:
            print("[CONSOLE] Cannot send message: websocket not connected")
            return False
        try:
            await ws.send(json.dumps(message))
        except websockets.exceptions.ConnectionClosed as e:
            print(f"[CONSOLE] Send failed, socket closed: {e}")
            return False
        return True

    async def _reader(self, ws):
        try:
            async for raw in ws:
                self._handle_frame(raw)
        except websockets.exceptions.ConnectionClosed as e:
            print(f"[CONSOLE] Websocket closed: {e}")
        except Exception as e:
            print(f"[CONSOLE] Websocket error: {e}")

        # Superseded sockets end quietly; only the live one triggers recovery.
        if ws is not self._ws:
            return
        self._reset_auth()
        self._ws = None
        self._cancel_task("_refresh_task")
        if not self._closed:
            print("[CONSOLE] Websocket connection lost")
            self._schedule_reconnect()

    def _handle_frame(self, raw):
        try:
            message = json.loads(raw)
            event   = message.get("event")
            args    = message.get("args") or []
        except (ValueError, AttributeError) as e:
            print(f"[CONSOLE] Failed to parse websocket message: {e}")
            return
        self._handle_event(event, args)

    def _handle_event(self, event: str, args: list):
        if event == "auth success":
            print("[CONSOLE] Websocket authenticated")
            self.authenticated  = True
            self._auth_deadline = None
            self._ready.set()
            self._schedule_refresh(self.refresh_interval)

        elif event == "token expiring":
            print("[CONSOLE] Token expiring, refreshing...")
            self._schedule_refresh(0)

        elif event == "token expired":
            print("[CONSOLE] Token expired, reconnecting")
            self._reset_auth()
            self._schedule_reconnect(0)

        elif event == "console output":
            if args:
                self.registry.dispatch(str(args[0]))

        elif event == "status":
            if args:
                print(f"[CONSOLE] Server status: {args[0]}")

        # "stats" and unknown events are ignored

    def _reset_auth(self):
        self.authenticated  = False
        self._auth_deadline = None
        self._ready.clear()

    # ── Timers ────────────────────────────────────────────────────────────────

    def _cancel_task(self, attr: str):
        task = getattr(self, attr)
        setattr(self, attr, None)
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()

    def _schedule_reconnect(self, delay: float = None):
        if self._closed:
            return
        self._cancel_task("_reconnect_task")
        delay = self.reconnect_delay if delay is None else delay
        self._reconnect_task = asyncio.create_task(self._reconnect_after(delay), name="console-reconnect")

    async def _reconnect_after(self, delay: float):
        await asyncio.sleep(delay)
        # Detach first: connect() may arm the next reconnect on failure.
        self._reconnect_task = None
        if self.is_connected():
            # Someone else reconnected in the meantime; keep their refresh timer.
            return
        self._cancel_task("_refresh_task")
        print("[CONSOLE] Attempting to reconnect websocket...")
        await self.connect()

    def _schedule_refresh(self, delay: float):
        self._cancel_task("_refresh_task")
        self._refresh_task = asyncio.create_task(self._refresh_after(delay), name="console-refresh")

    async def _refresh_after(self, delay: float):
        await asyncio.sleep(delay)
        self._refresh_task = None
        await self._refresh_token()

    async def _refresh_token(self):
        """Re-auth on the open socket; any failure means a full reconnect."""
        try:
            creds = await self.api.get_websocket_credentials()
            if not await self._send({"event": "auth", "args": [creds["token"]]}):
                raise ConnectionError("socket not open")
        except Exception as e:
            print(f"[CONSOLE] Failed to refresh token: {e}")
            self._reset_auth()
            self._schedule_reconnect(0)
            return
        print("[CONSOLE] Websocket token refreshed")
        # "auth success" re-arms the regular refresh; arm it here too in case
        # the panel does not ack a re-auth.
        if self._refresh_task is None:
            self._schedule_refresh(self.refresh_interval)

    async def _close_socket(self):
        ws, self._ws = self._ws, None
        reader, self._reader_task = self._reader_task, None
        self._auth_deadline = None
        if ws is not None:
            try:
                await ws.close()
            except Exception as e:
                print(f"[CONSOLE] Error closing websocket: {e}")
        if reader is not None and reader is not asyncio.current_task() and not reader.done():
            reader.cancel()
