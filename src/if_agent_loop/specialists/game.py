from __future__ import annotations

from dataclasses import dataclass

from loguru import logger
from pydantic import BaseModel, Field

from if_agent_loop.agent import ToolDispatchAgent
from if_agent_loop.agent_config import AgentConfig
from if_agent_loop.events import EventEmitter, NullEventEmitter
from if_agent_loop.game_client import GameSessionClient
from if_agent_loop.game_text import extract_score, is_game_over
from if_agent_loop.provider import LanguageModel
from if_agent_loop.system_prompt import GAME_AGENT_PROMPT
from if_agent_loop.tool import FunctionTool

NOT_STARTED = "Game not started. Please start the game first."


@dataclass(frozen=True)
class GameState:
    score: int
    moves: int
    started: bool
    game_over: bool


class SendGameCommandParams(BaseModel):
    command: str = Field(description="The command to send to the game")


class GameAgent:
    """Game specialist: owns one game session and exposes it as the send_game_command tool.

    Moves count one per command sent, whether or not the game reports them.
    """

    def __init__(
        self,
        model: LanguageModel,
        client: GameSessionClient,
        *,
        game_path: str = "zork1.z3",
        dialogue_limit: int = 50,
        events: EventEmitter | None = None,
        system_prompt: str = GAME_AGENT_PROMPT,
    ) -> None:
        self._client = client
        self._game_path = game_path
        self._events = events or NullEventEmitter()
        self._session_id = ""
        self._started = False
        self._score = 0
        self._moves = 0
        self._game_over = False
        self.agent = ToolDispatchAgent(
            AgentConfig(
                model=model,
                name="Game Agent",
                system_prompt=system_prompt,
                tools=[
                    FunctionTool(
                        "send_game_command",
                        "Send a command to the interactive fiction game",
                        SendGameCommandParams,
                        self._send_game_command,
                    )
                ],
                dialogue_limit=dialogue_limit,
                events=self._events,
            )
        )

    @property
    def game_state(self) -> GameState:
        return GameState(score=self._score, moves=self._moves, started=self._started, game_over=self._game_over)

    async def process_message(self, message: str) -> str:
        return await self.agent.process_message(message)

    async def start_game(self) -> str:
        session = await self._client.start(self._game_path)
        self._session_id = session.session_id
        self._started = session.ok
        self._events.emit(self.agent.name, "game.started", {"game": self._game_path, "ok": session.ok})
        if not session.ok:
            logger.error(f"Error starting game {self._game_path}: {session.text}")
            return session.text
        return await self.process_message(session.text)

    async def send_command(self, command: str) -> str:
        if not self._started or not self._session_id:
            return NOT_STARTED

        self._moves += 1
        self._events.emit(self.agent.name, "game.command", {"command": command})
        text = await self._client.send_command(self._session_id, command)
        self._events.emit(self.agent.name, "game.response", {"text": text})

        score = extract_score(text)
        if score is not None:
            self._score = score
        if is_game_over(text):
            self._game_over = True
            self._events.emit(self.agent.name, "game.ended", {"score": self._score, "moves": self._moves})
        return text

    async def _send_game_command(self, params: SendGameCommandParams) -> str:
        return await self.send_command(params.command)
