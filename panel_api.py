"""
panel_api.py — Pterodactyl client API accessor

Plain request/response calls against the panel's client API:
  - websocket credentials   GET  /api/client/servers/<id>/websocket
  - console command         POST /api/client/servers/<id>/command     (204 = ok)
  - resources / state       GET  /api/client/servers/<id>/resources
  - file read / write       GET  /files/contents, POST /files/write

All calls are bearer-token authenticated with a HTTP_TIMEOUT second timeout.
requests is blocking, so every call runs through asyncio.to_thread() to keep
the bot's event loop free.

Failure contract:
  - send_command() and get_server_status() NEVER raise: failures come back
    as CommandResult / StatusResult with a readable error.
  - get_websocket_credentials() and the file helpers raise PanelError; their
    callers (console session, bot commands) log and degrade.
"""
import asyncio
import json
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import requests

import config

PANEL_ACCEPT = "Application/vnd.pterodactyl.v1+json"


class PanelError(Exception):
    """A panel call failed; status_code is 0 for transport failures."""

    def __init__(self, message: str, status_code: int = 0):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class CommandResult:
    success: bool
    error: Optional[str] = None
    status_code: Optional[int] = None


@dataclass
class ServerResources:
    memory_bytes: int = 0
    memory_limit_bytes: int = 0
    cpu_absolute: float = 0.0
    disk_bytes: int = 0
    network_rx_bytes: int = 0
    network_tx_bytes: int = 0
    uptime: int = 0                     # milliseconds


@dataclass
class ServerStatus:
    state: str                          # running | offline | starting | stopping
    resources: ServerResources = field(default_factory=ServerResources)


@dataclass
class StatusResult:
    success: bool
    status: Optional[ServerStatus] = None
    error: Optional[str] = None


class PanelAPI:

    def __init__(self, url: str = None, server_id: str = None, api_key: str = None,
                 timeout: float = None):
        self.url       = (url if url is not None else config.PTERODACTYL_URL).rstrip("/")
        self.server_id = server_id if server_id is not None else config.PTERODACTYL_SERVER_ID
        self.api_key   = api_key if api_key is not None else config.PTERODACTYL_API_KEY
        self.timeout   = timeout or config.HTTP_TIMEOUT

        if not self.url or not self.server_id or not self.api_key:
            raise ValueError("Missing required Pterodactyl settings (URL, server id, API key)")

        print(f"[PANEL] Pterodactyl API initialized for server {self.server_id}")

    # ── Internals ─────────────────────────────────────────────────────────────

    def _endpoint(self, path: str) -> str:
        return f"{self.url}/api/client/servers/{self.server_id}/{path}"

    def _headers(self, accept: str = PANEL_ACCEPT) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Accept":        accept,
            "Content-Type":  "application/json",
        }

    async def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        kwargs.setdefault("headers", self._headers())
        kwargs.setdefault("timeout", self.timeout)
        return await asyncio.to_thread(requests.request, method, self._endpoint(path), **kwargs)

    # ── Websocket credentials ─────────────────────────────────────────────────

    async def get_websocket_credentials(self) -> Dict[str, str]:
        """Return {"token", "socket"} for the console websocket (valid ~10 min)."""
        try:
            response = await self._request("GET", "websocket")
            response.raise_for_status()
            data = response.json().get("data") or {}
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else 0
            print(f"[PANEL] Failed to get websocket token: HTTP {status}")
            raise PanelError(f"websocket token request failed ({status})", status) from e
        except (requests.exceptions.RequestException, ValueError) as e:
            print(f"[PANEL] Failed to get websocket token: {e}")
            raise PanelError(f"websocket token request failed: {e}") from e

        if not data.get("token") or not data.get("socket"):
            raise PanelError("invalid websocket token response")
        return {"token": data["token"], "socket": data["socket"]}

    # ── Console command (non-streaming) ───────────────────────────────────────

    async def send_command(self, command: str) -> CommandResult:
        """POST a console command; HTTP 204 is success. Never raises."""
        print(f"[PANEL] Sending command: {command}")
        try:
            response = await self._request("POST", "command", json={"command": command})
        except requests.exceptions.RequestException as e:
            return self._transport_failure(e, command)

        if response.status_code == 204:
            print(f"[PANEL] Command accepted: {command}")
            return CommandResult(success=True, status_code=204)

        print(f"[PANEL] Command '{command}' failed: HTTP {response.status_code} {response.text[:200]}")
        return CommandResult(
            success=False,
            error=self._describe_status(response.status_code),
            status_code=response.status_code,
        )

    @staticmethod
    def _describe_status(status_code: int) -> str:
        if status_code == 412:
            return "Server is offline"
        if status_code == 403:
            return "Access denied (check API key)"
        if status_code == 400:
            return "Invalid request to panel"
        if 200 <= status_code < 300:
            return f"Unexpected status code: {status_code}"
        return f"Panel API error ({status_code})"

    @staticmethod
    def _transport_failure(error: Exception, command: str) -> CommandResult:
        if isinstance(error, requests.exceptions.Timeout):
            print(f"[PANEL] Timeout sending '{command}': server not responding")
            return CommandResult(success=False, error="Server not responding (timeout)", status_code=0)
        print(f"[PANEL] Network error sending '{command}': {error}")
        return CommandResult(success=False, error=f"Network error: {error}", status_code=0)

    # ── Resources / state ─────────────────────────────────────────────────────

    async def get_server_status(self) -> StatusResult:
        """Fetch current state + resource usage. Never raises."""
        try:
            response = await self._request("GET", "resources")
        except requests.exceptions.RequestException as e:
            return StatusResult(success=False, error=str(e) or "Failed to fetch server status")

        if response.status_code == 403:
            return StatusResult(success=False, error="API access denied")
        if response.status_code != 200:
            return StatusResult(success=False, error=self._describe_status(response.status_code))

        try:
            attrs = response.json().get("attributes") or {}
            res   = attrs.get("resources") or {}
            status = ServerStatus(
                state=attrs["current_state"],
                resources=ServerResources(
                    memory_bytes=res.get("memory_bytes", 0),
                    memory_limit_bytes=res.get("memory_limit_bytes", 0),
                    cpu_absolute=res.get("cpu_absolute", 0.0),
                    disk_bytes=res.get("disk_bytes", 0),
                    network_rx_bytes=res.get("network_rx_bytes", 0),
                    network_tx_bytes=res.get("network_tx_bytes", 0),
                    uptime=res.get("uptime", 0),
                ),
            )
        except (ValueError, KeyError, AttributeError):
            return StatusResult(success=False, error="Unexpected API response format")

        return StatusResult(success=True, status=status)

    # ── Server files ──────────────────────────────────────────────────────────

    async def read_file(self, path: str) -> str:
        """Return the text content of a server file. Raises PanelError."""
        try:
            response = await self._request(
                "GET", "files/contents",
                params={"file": path},
                headers=self._headers(accept="text/plain"),
            )
        except requests.exceptions.RequestException as e:
            print(f"[PANEL] File read error for {path}: {e}")
            raise PanelError(f"Failed to read file: {e}") from e

        if response.status_code == 404:
            raise PanelError(f"File not found: {path}", 404)
        if response.status_code != 200:
            print(f"[PANEL] File read error for {path}: HTTP {response.status_code} {response.text[:500]}")
            raise PanelError(f"Failed to read file: HTTP {response.status_code}", response.status_code)

        response.encoding = response.encoding or "utf-8"
        return response.text

    async def write_file(self, path: str, content: str):
        """Overwrite a server file with content. Raises PanelError."""
        headers = self._headers()
        headers["Content-Type"] = "text/plain"
        try:
            response = await self._request(
                "POST", "files/write",
                params={"file": path},
                data=content.encode("utf-8"),
                headers=headers,
            )
        except requests.exceptions.RequestException as e:
            print(f"[PANEL] File write error for {path}: {e}")
            raise PanelError(f"Failed to write file: {e}") from e

        if response.status_code not in (200, 204):
            raise PanelError(f"Failed to write file: HTTP {response.status_code}", response.status_code)
        print(f"[PANEL] Wrote {len(content)} chars to {path}")

    async def read_whitelist(self) -> List[Dict[str, str]]:
        """Parse /whitelist.json into [{"uuid", "name"}, ...]."""
        print("[PANEL] Reading whitelist.json from server...")
        content = await self.read_file("/whitelist.json")
        try:
            whitelist = json.loads(content)
        except ValueError as e:
            raise PanelError(f"whitelist.json is not valid JSON: {e}") from e
        if not isinstance(whitelist, list):
            raise PanelError("whitelist.json is not a list")
        print(f"[PANEL] whitelist.json: {len(whitelist)} entries")
        return whitelist

    async def is_whitelisted_on_server(self, username: str) -> bool:
        wanted = username.lower()
        return any(entry.get("name", "").lower() == wanted for entry in await self.read_whitelist())

    async def read_server_properties(self) -> Dict[str, str]:
        """Parse /server.properties (key=value, '#' comments)."""
        content = await self.read_file("/server.properties")
        properties = {}
        for line in content.splitlines():
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            key, sep, value = line.partition("=")
            if sep and key.strip():
                properties[key.strip()] = value.strip()
        print(f"[PANEL] server.properties: {len(properties)} entries")
        return properties
