import asyncio
import unittest

from if_agent_loop.specialists.world_map import Exit, Item, MapAgent, WorldMap
from tests.fakes import scripted_model


def _three_rooms(world: WorldMap | None = None) -> WorldMap:
    world = world or WorldMap()
    house = world.add_location("West of House", "An open field.")
    forest = world.add_location("Forest", "Trees everywhere.")
    clearing = world.add_location("Clearing", "A small clearing.")
    world.add_exit(house.id, Exit("north", forest.id))
    world.add_exit(forest.id, Exit("east", clearing.id))
    world.add_exit(forest.id, Exit("south", house.id))
    return world


class WorldMapTests(unittest.TestCase):
    def test_add_exit_upserts_by_direction(self) -> None:
        world = WorldMap()
        room = world.add_location("Cellar", "Dark.")
        world.add_exit(room.id, Exit("up"))
        world.add_exit(room.id, Exit("UP", destination_id="loc_9"))
        self.assertEqual(1, len(room.exits))
        self.assertEqual("loc_9", room.exits[0].destination_id)

    def test_update_exit(self) -> None:
        world = _three_rooms()
        world.update_exit("loc_1", "north", blocked=True, block_reason="Fallen tree")
        exit = world.get_location("loc_1").find_exit("north")
        self.assertTrue(exit.blocked)
        self.assertEqual("Fallen tree", exit.block_reason)
        self.assertIsNone(world.update_exit("loc_1", "west"))

    def test_remove_item_marks_taken_or_deletes(self) -> None:
        world = WorldMap()
        room = world.add_location("Living Room", "Cozy.", items=[Item("lamp"), Item("rug")])
        world.remove_item(room.id, "Lamp")
        world.remove_item(room.id, "rug", taken=False)
        self.assertEqual(["lamp"], [i.name for i in room.items])
        self.assertTrue(room.items[0].taken)
        self.assertIsNone(world.remove_item(room.id, "lamp"))

    def test_add_item_upserts_untaken(self) -> None:
        world = WorldMap()
        room = world.add_location("Kitchen", "Smells of garlic.")
        world.add_item(room.id, "sack", "brown sack")
        world.add_item(room.id, "Sack", "elongated brown sack", takeable=True)
        self.assertEqual(1, len(room.items))
        self.assertEqual("elongated brown sack", room.items[0].description)

    def test_oldest_location_is_evicted(self) -> None:
        world = WorldMap(max_locations=2)
        world.add_location("a", "")
        world.add_location("b", "")
        world.add_location("c", "")
        self.assertEqual(["b", "c"], [loc.name for loc in world.all()])

    def test_current_location(self) -> None:
        world = _three_rooms()
        self.assertIsNone(world.get_current_location())
        world.set_current_location("loc_2")
        current = world.get_current_location()
        self.assertEqual("Forest", current.name)
        self.assertTrue(current.visited)

    def test_shortest_path(self) -> None:
        world = _three_rooms()
        self.assertEqual([("north", "loc_2"), ("east", "loc_3")], world.shortest_path("loc_1", "loc_3"))
        self.assertEqual([], world.shortest_path("loc_1", "loc_1"))
        self.assertIsNone(world.shortest_path("loc_3", "loc_1"))

    def test_shortest_path_skips_blocked_exits(self) -> None:
        world = _three_rooms()
        world.update_exit("loc_1", "north", blocked=True)
        self.assertIsNone(world.shortest_path("loc_1", "loc_3"))

    def test_digest(self) -> None:
        world = _three_rooms()
        world.set_current_location("loc_1")
        first = world.digest()[0]
        self.assertEqual(["north: Forest"], first["connections"])
        self.assertTrue(first["is_current"])


class MapAgentTests(unittest.TestCase):
    def test_find_path_describes_route(self) -> None:
        agent = MapAgent(scripted_model())
        _three_rooms(agent.world)
        text = asyncio.run(agent.find_path("loc_1", "loc_3"))
        self.assertEqual(
            'Path from "West of House" to "Clearing":\n\n1. Go north to Forest\n2. Go east to Clearing',
            text,
        )

    def test_find_path_same_location(self) -> None:
        agent = MapAgent(scripted_model())
        _three_rooms(agent.world)
        text = asyncio.run(agent.find_path("loc_2", "loc_2"))
        self.assertTrue(text.endswith("You are already at the destination."))

    def test_find_path_missing_locations(self) -> None:
        agent = MapAgent(scripted_model())
        _three_rooms(agent.world)
        self.assertEqual("Starting location with ID loc_9 not found", asyncio.run(agent.find_path("loc_9", "loc_1")))
        self.assertEqual(
            "Destination location with ID loc_9 not found",
            asyncio.run(agent.find_path("loc_1", "loc_9")),
        )

    def test_find_path_without_route_asks_model(self) -> None:
        model = scripted_model(texts=["Explore the forest more."])
        agent = MapAgent(model)
        _three_rooms(agent.world)
        text = asyncio.run(agent.find_path("loc_3", "loc_1"))
        self.assertEqual('No direct path found from "Clearing" to "West of House".\n\nExplore the forest more.', text)

    def test_generate_map(self) -> None:
        model = scripted_model(texts=["[House]--[Forest]"])
        agent = MapAgent(model)
        self.assertEqual("No locations have been mapped yet.", asyncio.run(agent.generate_map()))
        agent.world.add_location("House", "White house")
        self.assertEqual("[House]--[Forest]", asyncio.run(agent.generate_map()))
        self.assertIn('"name": "House"', model.provider.calls[0]["messages"][-1].content)


if __name__ == "__main__":
    unittest.main()
