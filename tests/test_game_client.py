import asyncio
import json
import unittest

import httpx

from if_agent_loop.game_client import GameSessionClient


def _client(handler) -> GameSessionClient:
    return GameSessionClient("http://game.test", transport=httpx.MockTransport(handler))


class GameSessionClientTests(unittest.TestCase):
    def test_start_posts_game_name(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"sessionId": "abc", "output": "West of House"})

        session = asyncio.run(_client(handler).start("zork1.z3"))

        self.assertTrue(session.ok)
        self.assertEqual("abc", session.session_id)
        self.assertEqual("West of House", session.text)
        self.assertEqual("/sessions/", seen[0].url.path)
        self.assertEqual({"gameName": "zork1.z3"}, json.loads(seen[0].content))

    def test_start_failure_returns_sentinel(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="boom")

        session = asyncio.run(_client(handler).start("zork1.z3"))

        self.assertFalse(session.ok)
        self.assertEqual("", session.session_id)
        self.assertEqual('Error: Failed to start game "zork1.z3". Please try again.', session.text)

    def test_send_command(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"output": "Taken."})

        text = asyncio.run(_client(handler).send_command("abc", "take lamp"))

        self.assertEqual("Taken.", text)
        self.assertEqual("/sessions/abc/command", seen[0].url.path)
        self.assertEqual({"command": "take lamp"}, json.loads(seen[0].content))

    def test_expired_session_becomes_error_text(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, json={"error": "not found"})

        text = asyncio.run(_client(handler).send_command("gone", "look"))
        self.assertEqual('Error: Failed to send command "look" to the game. Please try again.', text)

    def test_transport_error_becomes_error_text(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        text = asyncio.run(_client(handler).send_command("abc", "look"))
        self.assertTrue(text.startswith("Error: Failed to send command"))

    def test_malformed_body_becomes_error_text(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"unexpected": True})

        session = asyncio.run(_client(handler).start("zork1.z3"))
        self.assertFalse(session.ok)


if __name__ == "__main__":
    unittest.main()
