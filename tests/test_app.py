import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from chatroom import Settings, create_gateway
from main import create_app


@pytest.fixture
def client():
    app = create_app(Settings(auth_tokens={"tok-a": "alice", "tok-b": "bob"}, allow_anonymous=False))
    with TestClient(app) as test_client:
        yield test_client


def _join(ws, room_id):
    ws.send_json({"event": "join", "room_id": room_id})
    reply = ws.receive_json()
    assert reply["event"] == "ack"
    assert reply["action"] == "join"
    return reply


class TestWebSocketEndpoint:

    def test_two_clients_chat_in_lobby(self, client):
        with client.websocket_connect("/ws?token=tok-a") as alice, \
                client.websocket_connect("/ws?token=tok-b") as bob:
            alice_hello = alice.receive_json()
            bob_hello = bob.receive_json()
            assert alice_hello["event"] == "connected"
            assert alice_hello["user"] == "alice"
            assert bob_hello["user"] == "bob"

            _join(alice, "chat_room:lobby")
            _join(bob, "chat_room:lobby")

            alice.send_json({"event": "message", "room_id": "chat_room:lobby", "payload": "hi"})
            ack = alice.receive_json()
            assert ack["action"] == "message"
            assert ack["recipients"] == 1

            pushed = bob.receive_json()
            assert pushed["event"] == "message"
            assert pushed["sender"] == alice_hello["connection_id"]
            assert pushed["user"] == "alice"
            assert pushed["payload"] == "hi"

            bob.send_json({"event": "heartbeat"})
            assert bob.receive_json()["event"] == "heartbeat"

        rooms = client.get("/rooms").json()["rooms"]
        assert rooms == []

        history = client.get("/rooms/chat_room:lobby/messages").json()
        assert [m["payload"] for m in history["messages"]] == ["hi"]

    def test_message_without_join_is_rejected(self, client):
        with client.websocket_connect("/ws?token=tok-a") as alice:
            alice.receive_json()
            alice.send_json({"event": "message", "room_id": "chat_room:lobby", "payload": "hi"})

            reply = alice.receive_json()
            assert reply["event"] == "error"
            assert reply["reason"] == "not_subscribed"

    def test_invalid_json_keeps_connection_open(self, client):
        with client.websocket_connect("/ws?token=tok-a") as alice:
            alice.receive_json()
            alice.send_text("{not json")
            assert alice.receive_json()["reason"] == "invalid_frame"

            _join(alice, "sports")

    def test_auth_failure_closes_with_policy_violation(self, client):
        with client.websocket_connect("/ws?token=nope") as ws:
            reply = ws.receive_json()
            assert reply["event"] == "error"
            assert reply["reason"] == "auth_failure"

            with pytest.raises(WebSocketDisconnect) as exc_info:
                ws.receive_json()
            assert exc_info.value.code == 1008

    def test_disconnect_cleans_up(self, client):
        with client.websocket_connect("/ws?token=tok-a") as alice:
            alice.receive_json()
            _join(alice, "lobby")
            assert client.get("/health").json()["connections"]["active_connections"] == 1

        stats = client.get("/stats").json()
        assert stats["connections"]["active_connections"] == 0
        assert stats["rooms"]["total_rooms"] == 0
        assert stats["rooms"]["rooms_created"] == 1


class TestHttpEndpoints:

    def test_health(self, client):
        body = client.get("/health").json()
        assert body["status"] == "healthy"

    def test_history_validation(self, client):
        assert client.get("/rooms/bad room/messages").status_code == 400

    def test_history_disabled(self):
        settings = Settings(history_enabled=False)
        app = create_app(settings, gateway=create_gateway(settings))
        with TestClient(app) as test_client:
            assert test_client.get("/rooms/lobby/messages").status_code == 404
