"""
Tests for the REST and health endpoints.

Exercises the full FastAPI app (lifespan included) through TestClient.

Run with: pytest tests/test_api.py -v
"""

import pytest
from fastapi.testclient import TestClient

from main import app


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


def start_game(client, name="Alice") -> dict:
    response = client.post("/api/games", json={"player_name": name})
    assert response.status_code == 200
    return response.json()


def own_card(game: dict, player_id: str) -> dict:
    return next(p for p in game["players"] if p.get("id") == player_id)["card"]


class TestStartGame:

    def test_start(self, client):
        body = start_game(client)
        assert len(body["game_id"]) == 4
        assert body["game"]["players"][0]["id"] == body["new_player_id"]
        assert body["game"]["players"][0]["is_dealer"] is True
        assert body["game"]["deck_remaining"] == 13

    def test_empty_name_rejected(self, client):
        response = client.post("/api/games", json={"player_name": ""})
        assert response.status_code == 422

    def test_missing_name_rejected(self, client):
        response = client.post("/api/games", json={})
        assert response.status_code == 422


class TestAddPlayer:

    def test_join(self, client):
        started = start_game(client)
        response = client.post(
            f"/api/games/{started['game_id']}/players",
            json={"player_name": "Bob"},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["game_id"] == started["game_id"]
        assert [p["name"] for p in body["game"]["players"]] == ["Alice", "Bob"]

    def test_join_unknown_game(self, client):
        response = client.post("/api/games/ZZZZ/players", json={"player_name": "Bob"})
        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "GAME_NOT_FOUND"


class TestGetGame:

    def test_get_as_player(self, client):
        started = start_game(client)
        response = client.get(
            f"/api/games/{started['game_id']}",
            params={"player_id": started["new_player_id"]},
        )
        assert response.status_code == 200
        assert response.json()["game"]["player_id"] == started["new_player_id"]

    def test_get_lowercase_code(self, client):
        started = start_game(client)
        response = client.get(f"/api/games/{started['game_id'].lower()}")
        assert response.status_code == 200
        assert response.json()["game"]["game_id"] == started["game_id"]

    def test_get_unknown_game(self, client):
        assert client.get("/api/games/ZZZZ").status_code == 404


class TestGameEvents:

    def test_deal_and_turn(self, client):
        started = start_game(client)
        game_id, player_id = started["game_id"], started["new_player_id"]

        dealt = client.post(
            f"/api/games/{game_id}/events",
            json={"player_id": player_id, "event_type": "deal"},
        ).json()
        assert dealt["outcome"] == {"accepted": True, "reason": None}
        card = own_card(dealt["game"], player_id)
        assert "rank" not in card

        turned = client.post(
            f"/api/games/{game_id}/events",
            json={"player_id": player_id, "event_type": "turn_card", "target_id": card["id"]},
        ).json()
        assert turned["outcome"]["accepted"] is True
        assert turned["game"]["round_complete"] is True
        assert "rank" in own_card(turned["game"], player_id)

    def test_rule_rejection_is_200(self, client):
        started = start_game(client)
        game_id = started["game_id"]
        bob = client.post(f"/api/games/{game_id}/players", json={"player_name": "Bob"}).json()

        response = client.post(
            f"/api/games/{game_id}/events",
            json={"player_id": bob["new_player_id"], "event_type": "deal"},
        )

        assert response.status_code == 200
        assert response.json()["outcome"] == {"accepted": False, "reason": "not_dealer"}

    def test_unknown_player(self, client):
        started = start_game(client)
        response = client.post(
            f"/api/games/{started['game_id']}/events",
            json={"player_id": "ghost", "event_type": "deal"},
        )
        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "UNKNOWN_PLAYER"

    def test_invalid_event_type(self, client):
        started = start_game(client)
        response = client.post(
            f"/api/games/{started['game_id']}/events",
            json={"player_id": started["new_player_id"], "event_type": "raise"},
        )
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "INVALID_EVENT"


class TestHealth:

    def test_health(self, client):
        assert client.get("/health").json()["status"] == "ok"

    def test_ready(self, client):
        response = client.get("/ready")
        assert response.status_code == 200
        assert response.json()["checks"]["game_store"]["status"] == "ok"

    def test_metrics(self, client):
        start_game(client)
        games = client.get("/metrics").json()["games"]
        assert games["active"] >= 1
        assert games["total_players"] >= 1


class TestRequestId:

    def test_generated(self, client):
        response = client.get("/health")
        assert response.headers["X-Request-ID"]

    def test_propagated(self, client):
        response = client.get("/health", headers={"X-Request-ID": "abc-123"})
        assert response.headers["X-Request-ID"] == "abc-123"


class TestPlayerIdsInView:

    def test_spectator_sees_no_player_ids(self, client):
        started = start_game(client)
        client.post(f"/api/games/{started['game_id']}/players", json={"player_name": "Bob"})

        game = client.get(f"/api/games/{started['game_id']}").json()["game"]

        assert all("id" not in seat for seat in game["players"])
        assert "dealer_id" not in game

    def test_player_sees_only_own_id(self, client):
        started = start_game(client)
        bob = client.post(f"/api/games/{started['game_id']}/players", json={"player_name": "Bob"}).json()

        seats = bob["game"]["players"]

        assert [seat.get("id") for seat in seats] == [None, bob["new_player_id"]]
