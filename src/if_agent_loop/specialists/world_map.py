from __future__ import annotations

import json
import time
from collections import deque
from dataclasses import dataclass, field

from loguru import logger
from pydantic import BaseModel, Field

from if_agent_loop.agent import ToolDispatchAgent
from if_agent_loop.agent_config import AgentConfig
from if_agent_loop.events import EventEmitter, NullEventEmitter
from if_agent_loop.provider import LanguageModel
from if_agent_loop.specialists.common import to_payload
from if_agent_loop.system_prompt import MAP_AGENT_PROMPT
from if_agent_loop.tool import FunctionTool, Tool


@dataclass
class Exit:
    direction: str
    destination_id: str | None = None
    description: str | None = None
    blocked: bool | None = None
    block_reason: str | None = None


@dataclass
class Item:
    name: str
    description: str | None = None
    takeable: bool | None = None
    taken: bool = False


@dataclass
class Location:
    id: str
    name: str
    description: str
    exits: list[Exit] = field(default_factory=list)
    items: list[Item] = field(default_factory=list)
    visited: bool = False
    notes: list[str] = field(default_factory=list)
    created_at: float = field(default_factory=time.time)
    last_visited_at: float | None = None

    def find_exit(self, direction: str) -> Exit | None:
        return next((e for e in self.exits if e.direction.lower() == direction.lower()), None)

    def find_item(self, name: str) -> Item | None:
        return next((i for i in self.items if i.name.lower() == name.lower() and not i.taken), None)


class WorldMap:
    def __init__(self, max_locations: int = 100):
        self._max_locations = max_locations
        # Insertion ordered, oldest first.
        self._locations: dict[str, Location] = {}
        self._counter = 0
        self._current_id: str | None = None

    def all(self) -> list[Location]:
        return list(self._locations.values())

    def add_location(
        self,
        name: str,
        description: str,
        exits: list[Exit] | None = None,
        items: list[Item] | None = None,
        notes: list[str] | None = None,
    ) -> Location:
        self._counter += 1
        location = Location(
            id=f"loc_{self._counter}",
            name=name,
            description=description,
            exits=list(exits or []),
            items=[Item(i.name, i.description, i.takeable, taken=False) for i in items or []],
            notes=list(notes or []),
        )
        self._locations[location.id] = location
        logger.info(f"Added location: {name}")

        while len(self._locations) > self._max_locations:
            removed = self._locations.pop(next(iter(self._locations)))
            logger.info(f"Removed old location: {removed.name}")

        return location

    def _require(self, location_id: str) -> Location | None:
        location = self._locations.get(location_id)
        if location is None:
            logger.warning(f"Location with ID {location_id} not found")
        return location

    def update_location(
        self,
        location_id: str,
        name: str | None = None,
        description: str | None = None,
        notes: list[str] | None = None,
    ) -> Location | None:
        location = self._require(location_id)
        if location is None:
            return None
        if name is not None:
            location.name = name
        if description is not None:
            location.description = description
        if notes:
            location.notes.extend(notes)
        return location

    def add_exit(self, location_id: str, exit: Exit) -> Location | None:
        location = self._require(location_id)
        if location is None:
            return None
        existing = location.find_exit(exit.direction)
        if existing is not None:
            location.exits[location.exits.index(existing)] = exit
            logger.info(f"Updated exit {exit.direction} from {location.name}")
        else:
            location.exits.append(exit)
            logger.info(f"Added exit {exit.direction} from {location.name}")
        return location

    def update_exit(
        self,
        location_id: str,
        direction: str,
        destination_id: str | None = None,
        description: str | None = None,
        blocked: bool | None = None,
        block_reason: str | None = None,
    ) -> Location | None:
        location = self._require(location_id)
        if location is None:
            return None
        exit = location.find_exit(direction)
        if exit is None:
            logger.warning(f"Exit {direction} not found in location {location_id}")
            return None
        if destination_id is not None:
            exit.destination_id = destination_id
        if description is not None:
            exit.description = description
        if blocked is not None:
            exit.blocked = blocked
        if block_reason is not None:
            exit.block_reason = block_reason
        return location

    def add_item(
        self,
        location_id: str,
        name: str,
        description: str | None = None,
        takeable: bool | None = None,
    ) -> Location | None:
        location = self._require(location_id)
        if location is None:
            return None
        existing = location.find_item(name)
        if existing is not None:
            existing.name = name
            existing.description = description
            existing.takeable = takeable
        else:
            location.items.append(Item(name=name, description=description, takeable=takeable))
        return location

    def remove_item(self, location_id: str, item_name: str, taken: bool = True) -> Location | None:
        location = self._require(location_id)
        if location is None:
            return None
        item = location.find_item(item_name)
        if item is None:
            logger.warning(f"Item {item_name} not found in location {location_id}")
            return None
        if taken:
            item.taken = True
        else:
            location.items.remove(item)
        return location

    def set_current_location(self, location_id: str) -> Location | None:
        location = self._require(location_id)
        if location is None:
            return None
        self._current_id = location_id
        location.visited = True
        location.last_visited_at = time.time()
        logger.info(f"Set current location to {location.name}")
        return location

    def get_location(self, location_id: str) -> Location | None:
        return self._require(location_id)

    def get_current_location(self) -> Location | None:
        if self._current_id is None:
            logger.warning("Current location not set")
            return None
        return self._require(self._current_id)

    def shortest_path(self, from_id: str, to_id: str) -> list[tuple[str, str]] | None:
        """BFS over known, unblocked exits. Returns (direction, location id) steps, or None."""
        queue: deque[tuple[str, list[tuple[str, str]]]] = deque([(from_id, [])])
        seen = {from_id}
        while queue:
            location_id, path = queue.popleft()
            if location_id == to_id:
                return path
            location = self._locations.get(location_id)
            if location is None:
                continue
            for exit in location.exits:
                if exit.destination_id and not exit.blocked and exit.destination_id not in seen:
                    seen.add(exit.destination_id)
                    queue.append((exit.destination_id, [*path, (exit.direction, exit.destination_id)]))
        return None

    def describe_path(self, from_location: Location, to_location: Location, path: list[tuple[str, str]]) -> str:
        header = f'Path from "{from_location.name}" to "{to_location.name}":\n\n'
        if not path:
            return header + "You are already at the destination."
        steps = []
        for index, (direction, location_id) in enumerate(path, start=1):
            location = self._locations.get(location_id)
            steps.append(f"{index}. Go {direction} to {location.name if location else 'unknown location'}")
        return header + "\n".join(steps)

    @staticmethod
    def no_path_prompt(from_location: Location, to_location: Location) -> str:
        def exits(location: Location) -> str:
            return ", ".join(f"{e.direction}{' (blocked)' if e.blocked else ''}" for e in location.exits)

        return (
            f'I\'m trying to find a path from "{from_location.name}" to "{to_location.name}" '
            "in the game world, but couldn't find a direct path.\n\n"
            "Here's what I know about the starting location:\n"
            f"- Name: {from_location.name}\n"
            f"- Description: {from_location.description}\n"
            f"- Exits: {exits(from_location)}\n\n"
            "And the destination:\n"
            f"- Name: {to_location.name}\n"
            f"- Description: {to_location.description}\n"
            f"- Exits: {exits(to_location)}\n\n"
            "Please analyze the situation and suggest:\n"
            "1. Why a path might not exist (e.g., missing connections, blocked paths)\n"
            "2. What areas to explore to potentially find a connection\n"
            "3. Any other strategies that might help reach the destination"
        )

    def digest(self) -> list[dict]:
        digest = []
        for location in self._locations.values():
            connections = []
            for exit in location.exits:
                destination = self._locations.get(exit.destination_id) if exit.destination_id else None
                if destination is not None:
                    connections.append(f"{exit.direction}: {destination.name}{' (blocked)' if exit.blocked else ''}")
            digest.append({
                "name": location.name,
                "visited": location.visited,
                "connections": connections,
                "items": [item.name for item in location.items if not item.taken],
                "is_current": location.id == self._current_id,
            })
        return digest

    def map_prompt(self) -> str:
        return (
            "Please create a text-based map representation of the following game world locations:\n\n"
            f"{json.dumps(self.digest(), indent=2)}\n\n"
            "The map should:\n"
            "1. Show the spatial relationship between locations\n"
            "2. Highlight the current location (if set)\n"
            "3. Indicate which locations have been visited\n"
            "4. Show major items at each location\n"
            "5. Use ASCII art or similar text-based visualization\n\n"
            "Make the map as clear and readable as possible."
        )


class ExitParams(BaseModel):
    direction: str = Field(description="Direction of the exit (e.g. north, up)")
    destination_id: str | None = Field(default=None, description="ID of the location the exit leads to")
    description: str | None = Field(default=None, description="Description of the exit")
    blocked: bool | None = Field(default=None, description="Whether the exit is blocked")
    block_reason: str | None = Field(default=None, description="Why the exit is blocked")


class ItemParams(BaseModel):
    name: str = Field(description="Name of the item")
    description: str | None = Field(default=None, description="Description of the item")
    takeable: bool | None = Field(default=None, description="Whether the item can be taken")


class AddLocationParams(BaseModel):
    name: str = Field(description="Name of the location")
    description: str = Field(description="Description of the location")
    exits: list[ExitParams] | None = Field(default=None, description="Known exits")
    items: list[ItemParams] | None = Field(default=None, description="Items seen here")
    notes: list[str] | None = Field(default=None, description="Notes about the location")


class UpdateLocationParams(BaseModel):
    location_id: str = Field(description="ID of the location")
    name: str | None = Field(default=None, description="New name")
    description: str | None = Field(default=None, description="New description")
    notes: list[str] | None = Field(default=None, description="Notes to append")


class LocationExitParams(ExitParams):
    location_id: str = Field(description="ID of the location the exit leaves from")


class LocationItemParams(ItemParams):
    location_id: str = Field(description="ID of the location holding the item")


class RemoveItemParams(BaseModel):
    location_id: str = Field(description="ID of the location")
    item_name: str = Field(description="Name of the item")
    taken: bool = Field(default=True, description="Mark as taken instead of deleting")


class LocationIdParams(BaseModel):
    location_id: str = Field(description="ID of the location")


class FindPathParams(BaseModel):
    from_location_id: str = Field(description="ID of the starting location")
    to_location_id: str = Field(description="ID of the destination")


class NoParams(BaseModel):
    pass


def _exit(p: ExitParams) -> Exit:
    return Exit(p.direction, p.destination_id, p.description, p.blocked, p.block_reason)


class MapAgent:
    """Map specialist: a dispatch agent over a WorldMap."""

    def __init__(
        self,
        model: LanguageModel,
        *,
        max_locations: int = 100,
        dialogue_limit: int = 50,
        events: EventEmitter | None = None,
        system_prompt: str = MAP_AGENT_PROMPT,
    ) -> None:
        self.world = WorldMap(max_locations)
        self.agent = ToolDispatchAgent(
            AgentConfig(
                model=model,
                name="Map Agent",
                system_prompt=system_prompt,
                tools=self._build_tools(),
                dialogue_limit=dialogue_limit,
                events=events or NullEventEmitter(),
            )
        )

    async def process_message(self, message: str) -> str:
        return await self.agent.process_message(message)

    async def find_path(self, from_id: str, to_id: str) -> str:
        start = self.world.get_location(from_id)
        end = self.world.get_location(to_id)
        if start is None:
            return f"Starting location with ID {from_id} not found"
        if end is None:
            return f"Destination location with ID {to_id} not found"
        path = self.world.shortest_path(from_id, to_id)
        if path is not None:
            return self.world.describe_path(start, end, path)
        analysis = await self.agent.analyze(self.world.no_path_prompt(start, end))
        return f'No direct path found from "{start.name}" to "{end.name}".\n\n{analysis}'

    async def generate_map(self) -> str:
        if not self.world.all():
            return "No locations have been mapped yet."
        return await self.agent.analyze(self.world.map_prompt())

    def _build_tools(self) -> list[Tool]:
        world = self.world

        def missing(location_id: str) -> str:
            return f"Location with ID {location_id} not found"

        async def add_location(p: AddLocationParams):
            items = [Item(i.name, i.description, i.takeable) for i in p.items or []]
            exits = [_exit(e) for e in p.exits or []]
            return to_payload(world.add_location(p.name, p.description, exits, items, p.notes), "")

        async def update_location(p: UpdateLocationParams):
            return to_payload(world.update_location(p.location_id, p.name, p.description, p.notes), missing(p.location_id))

        async def add_exit(p: LocationExitParams):
            return to_payload(world.add_exit(p.location_id, _exit(p)), missing(p.location_id))

        async def update_exit(p: LocationExitParams):
            return to_payload(
                world.update_exit(p.location_id, p.direction, p.destination_id, p.description, p.blocked, p.block_reason),
                f"Exit {p.direction} not found in location {p.location_id}",
            )

        async def add_item(p: LocationItemParams):
            return to_payload(world.add_item(p.location_id, p.name, p.description, p.takeable), missing(p.location_id))

        async def remove_item(p: RemoveItemParams):
            return to_payload(
                world.remove_item(p.location_id, p.item_name, p.taken),
                f"Item {p.item_name} not found in location {p.location_id}",
            )

        async def set_current_location(p: LocationIdParams):
            return to_payload(world.set_current_location(p.location_id), missing(p.location_id))

        async def get_location(p: LocationIdParams):
            return to_payload(world.get_location(p.location_id), missing(p.location_id))

        async def get_current_location(p: NoParams):
            return to_payload(world.get_current_location(), "Current location not set")

        async def find_path(p: FindPathParams):
            return await self.find_path(p.from_location_id, p.to_location_id)

        async def generate_map(p: NoParams):
            return await self.generate_map()

        return [
            FunctionTool("add_location", "Add a new location to the map", AddLocationParams, add_location),
            FunctionTool("update_location", "Update an existing location", UpdateLocationParams, update_location),
            FunctionTool("add_exit", "Add or replace an exit from a location", LocationExitParams, add_exit),
            FunctionTool("update_exit", "Update fields of an existing exit", LocationExitParams, update_exit),
            FunctionTool("add_item", "Add or update an item at a location", LocationItemParams, add_item),
            FunctionTool("remove_item", "Mark an item as taken or delete it", RemoveItemParams, remove_item),
            FunctionTool("set_current_location", "Set where the player is now", LocationIdParams, set_current_location),
            FunctionTool("get_location", "Get details about a location", LocationIdParams, get_location),
            FunctionTool("get_current_location", "Get the player's current location", NoParams, get_current_location),
            FunctionTool("find_path", "Find a route between two locations", FindPathParams, find_path),
            FunctionTool("generate_map", "Draw a text map of known locations", NoParams, generate_map),
        ]
