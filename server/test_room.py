"""
Test suite for Room and RoomManager.

Covers:
- Game code generation and uniqueness
- Case-insensitive lookup
- Subscribe/unsubscribe of WebSocket connections
- Per-player state broadcast and send_to
- Cross-room player search

Run with: pytest test_room.py -v
"""

import pytest

from game import GameEventType
from room import Room, RoomManager


# =============================================================================
# Mock helpers
# =============================================================================

class MockWebSocket:
    """Mock WebSocket that collects sent messages."""

    def __init__(self):
        self.messages: list[dict] = []

    async def send_json(self, data: dict):
        self.messages.append(data)


class BrokenWebSocket:
    """WebSocket whose peer has gone away."""

    async def send_json(self, data: dict):
        raise RuntimeError("connection closed")


def make_started_room(*names: str) -> Room:
    room = Room(code="TEST")
    room.game.start(names[0], seed=3)
    for name in names[1:]:
        room.game.add_player(name)
    return room


# =============================================================================
# RoomManager tests
# =============================================================================

class TestRoomManagerCreate:

    def test_create_room_returns_room(self):
        rm = RoomManager()
        room = rm.create_room()
        assert len(room.code) == 4
        assert room.code.isalpha() and room.code.isupper()
        assert room.code in rm.rooms

    def test_code_is_game_id(self):
        rm = RoomManager()
        room = rm.create_room()
        assert room.game.game_id == room.code

    def test_code_length_configurable(self):
        rm = RoomManager(code_length=6)
        assert len(rm.create_room().code) == 6

    def test_create_multiple_rooms_unique_codes(self):
        rm = RoomManager()
        codes = {rm.create_room().code for _ in range(20)}
        assert len(codes) == 20

    def test_each_room_has_its_own_lock(self):
        rm = RoomManager()
        a, b = rm.create_room(), rm.create_room()
        assert a.game_lock is not b.game_lock

    def test_remove_room(self):
        rm = RoomManager()
        code = rm.create_room().code
        rm.remove_room(code)
        assert code not in rm.rooms

    def test_remove_room_case_insensitive(self):
        rm = RoomManager()
        code = rm.create_room().code
        rm.remove_room(code.lower())
        assert rm.get_room(code) is None

    def test_remove_missing_room_is_noop(self):
        rm = RoomManager()
        rm.remove_room("ZZZZ")
        assert rm.rooms == {}


class TestRoomManagerLookup:

    def test_get_room_case_insensitive(self):
        rm = RoomManager()
        room = rm.create_room()
        assert rm.get_room(room.code.lower()) is room

    def test_get_unknown_room(self):
        rm = RoomManager()
        assert rm.get_room("NOPE") is None

    def test_find_player_room(self):
        rm = RoomManager()
        rm.create_room()
        room = rm.create_room()
        player_id = room.game.start("Alice")
        assert rm.find_player_room(player_id) is room

    def test_find_player_room_not_found(self):
        rm = RoomManager()
        rm.create_room()
        assert rm.find_player_room("ghost") is None


# =============================================================================
# Room tests
# =============================================================================

class TestRoomConnections:

    def test_player_count_follows_game(self):
        room = make_started_room("Alice", "Bob")
        assert room.player_count() == 2

    def test_subscribe_replaces_previous_socket(self):
        room = Room(code="TEST")
        first, second = MockWebSocket(), MockWebSocket()
        room.subscribe("p1", first)
        room.subscribe("p1", second)
        assert room.connections == {"p1": second}

    def test_unsubscribe_stale_socket_keeps_new_one(self):
        room = Room(code="TEST")
        old, new = MockWebSocket(), MockWebSocket()
        room.subscribe("p1", old)
        room.subscribe("p1", new)
        room.unsubscribe("p1", old)
        assert room.connections["p1"] is new

    def test_unsubscribe_without_socket(self):
        room = Room(code="TEST")
        room.subscribe("p1", MockWebSocket())
        room.unsubscribe("p1")
        assert room.connections == {}


class TestRoomMessaging:

    @pytest.mark.asyncio
    async def test_send_to(self):
        room = Room(code="TEST")
        ws = MockWebSocket()
        room.subscribe("p1", ws)
        await room.send_to("p1", {"type": "ping"})
        assert ws.messages == [{"type": "ping"}]

    @pytest.mark.asyncio
    async def test_send_to_unsubscribed_player(self):
        room = Room(code="TEST")
        await room.send_to("nobody", {"type": "ping"})

    @pytest.mark.asyncio
    async def test_send_failure_drops_connection(self):
        room = Room(code="TEST")
        room.subscribe("p1", BrokenWebSocket())
        await room.send_to("p1", {"type": "ping"})
        assert "p1" not in room.connections

    @pytest.mark.asyncio
    async def test_broadcast_is_per_player(self):
        room = make_started_room("Alice", "Bob")
        alice, bob = room.game.players
        room.game.apply_event(alice.id, GameEventType.DEAL)
        alice_ws, bob_ws = MockWebSocket(), MockWebSocket()
        room.subscribe(alice.id, alice_ws)
        room.subscribe(bob.id, bob_ws)

        await room.broadcast_state()

        alice_view = alice_ws.messages[-1]["game_state"]
        bob_view = bob_ws.messages[-1]["game_state"]
        assert alice_view["player_id"] == alice.id
        assert alice_view["players"][0]["card"]["id"] == alice.current_card.id
        assert "id" not in bob_view["players"][0]["card"]
        assert bob_view["players"][1]["card"]["id"] == bob.current_card.id

    @pytest.mark.asyncio
    async def test_broadcast_exclude(self):
        room = make_started_room("Alice", "Bob")
        alice, bob = room.game.players
        alice_ws, bob_ws = MockWebSocket(), MockWebSocket()
        room.subscribe(alice.id, alice_ws)
        room.subscribe(bob.id, bob_ws)

        await room.broadcast_state(exclude=bob.id)

        assert len(alice_ws.messages) == 1
        assert alice_ws.messages[0]["type"] == "game_state"
        assert bob_ws.messages == []

    @pytest.mark.asyncio
    async def test_broadcast_limits_actions(self):
        room = make_started_room("Alice", "Bob", "Carol")
        ws = MockWebSocket()
        room.subscribe(room.game.players[0].id, ws)
        await room.broadcast_state(max_actions=1)
        assert len(ws.messages[0]["game_state"]["actions"]) == 1
