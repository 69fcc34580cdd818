from __future__ import annotations

from dataclasses import dataclass

import httpx
from loguru import logger

DEFAULT_GAME_API_URL = "http://localhost:3000"
_TIMEOUT_SECONDS = 60


@dataclass(frozen=True)
class GameSession:
    """Result of starting a game. An empty ``session_id`` means the start failed."""

    session_id: str
    text: str

    @property
    def ok(self) -> bool:
        return bool(self.session_id)


class SessionNotFoundError(Exception):
    pass


class GameSessionClient:
    """HTTP client for the interactive fiction game API.

    Transport failures never raise: they come back as human-readable error text.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_GAME_API_URL,
        *,
        timeout: float = _TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    @property
    def base_url(self) -> str:
        return self._base_url

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self._base_url, timeout=self._timeout, transport=self._transport)

    async def start(self, game_name: str) -> GameSession:
        try:
            async with self._client() as client:
                response = await client.post("/sessions/", json={"gameName": game_name})
            response.raise_for_status()
            data = response.json()
            return GameSession(session_id=data["sessionId"], text=data["output"])
        except (httpx.HTTPError, ValueError, KeyError) as ex:
            logger.error(f"Error starting game {game_name!r}: {ex}")
            return GameSession(
                session_id="",
                text=f'Error: Failed to start game "{game_name}". Please try again.',
            )

    async def send_command(self, session_id: str, command: str) -> str:
        try:
            async with self._client() as client:
                response = await client.post(f"/sessions/{session_id}/command", json={"command": command})
            if response.status_code == 404:
                raise SessionNotFoundError(
                    "Game session not found. The session may have expired. Please start a new game."
                )
            response.raise_for_status()
            return response.json()["output"]
        except (httpx.HTTPError, SessionNotFoundError, ValueError, KeyError) as ex:
            logger.error(f"Error sending command {command!r} to session {session_id!r}: {ex}")
            return f'Error: Failed to send command "{command}" to the game. Please try again.'
