# tests/test_app.py
"""End-to-end over the real FastAPI app (WebSocket + HTTP)."""
import pytest
from fastapi.testclient import TestClient

from main import create_app


def send(ws, event, data=None):
    ws.send_json({"event": event, "data": data})


def recv(ws):
    frame = ws.receive_json()
    return frame["event"], frame["data"]


@pytest.fixture
def client():
    # entering the client keeps one event loop for every WebSocket in the test
    with TestClient(create_app({"email_notifications": False})) as c:
        yield c


def test_register_and_message_roundtrip(client):
    with client.websocket_connect("/ws") as alice, client.websocket_connect("/ws") as bob:
        send(alice, "register", {"number": "1234", "nickname": "Alice"})
        assert recv(alice)[0] == "registered"
        send(bob, "register", {"number": "5678", "nickname": "Bob"})
        assert recv(bob)[0] == "registered"

        send(alice, "sendMessage", {"to": "5678", "text": "hi"})
        event, sent = recv(alice)
        assert event == "messageSent"
        event, received = recv(bob)
        assert event == "messageReceived"
        assert received == sent
        assert (received["from"], received["to"], received["text"]) == ("1234", "5678", "hi")

        send(bob, "getChatHistory", "1234")
        event, history = recv(bob)
        assert event == "chatHistory"
        assert history["messages"] == [sent]


def test_sign_in_handoff_over_websockets(client):
    with client.websocket_connect("/ws") as first, client.websocket_connect("/ws") as second:
        send(first, "register", {"number": "1234", "nickname": "Alice"})
        assert recv(first)[0] == "registered"

        send(second, "register", {"number": "1234"})
        assert recv(second)[0] == "awaitingAuthorization"
        event, data = recv(first)
        assert event == "signInRequest"

        send(first, "approveSignIn", {"requestId": data["requestId"]})
        event, data = recv(second)
        assert event == "signInApproved"
        assert data["user"]["nickname"] == "Alice"

        send(second, "updateProfile", {"lastname": "Liddell"})
        event, data = recv(second)
        assert event == "profileUpdated"
        assert data["user"]["lastname"] == "Liddell"


def test_malformed_frame_and_unregistered_errors(client):
    with client.websocket_connect("/ws") as ws:
        ws.send_text("not json")
        assert recv(ws) == ("error", {"message": "Malformed frame"})
        send(ws, "sendMessage", {"to": "1234", "text": "x"})
        assert recv(ws) == ("error", {"message": "Not registered"})


def test_disconnect_frees_the_number(client):
    with client.websocket_connect("/ws") as ws:
        send(ws, "register", {"number": "4321", "nickname": "Temp"})
        assert recv(ws)[0] == "registered"

    health = client.get("/health").json()
    assert health["users"] == 1
    assert health["sessions"] == 0

    with client.websocket_connect("/ws") as ws:
        send(ws, "register", {"number": "4321"})
        event, data = recv(ws)
        assert event == "registered"
        assert data["user"]["nickname"] == "Temp"


def test_user_lookup_endpoint(client):
    with client.websocket_connect("/ws") as ws:
        send(ws, "register", {"number": "1234", "nickname": "Alice", "email": "a@example.com"})
        recv(ws)
        r = client.get("/api/user/1234")
        assert r.status_code == 200
        assert r.json() == {"number": "1234", "nickname": "Alice", "lastname": "", "photo": ""}

    r = client.get("/api/user/0000")
    assert r.status_code == 404
    assert r.json()["detail"] == "User not found"


def test_encode_decode_endpoints(client):
    r = client.post("/api/encode", json={"text": "HI THERE"})
    assert r.status_code == 200
    encoded = r.json()["encoded"]
    assert encoded == "8-9-0-20-8-5-18-5"

    r = client.post("/api/decode", json={"encoded": encoded})
    assert r.json() == {"decoded": "HI THERE"}

    assert client.post("/api/encode", json={}).status_code == 400
    assert client.post("/api/decode", json={"encoded": ""}).status_code == 400
    r = client.post("/api/decode", json={"encoded": "1-x"})
    assert r.status_code == 400
    assert r.json()["detail"] == "Invalid encoded format"


def test_each_app_has_its_own_state():
    with TestClient(create_app({})) as one, TestClient(create_app({})) as two:
        with one.websocket_connect("/ws") as ws:
            send(ws, "register", {"number": "1234"})
            recv(ws)
            assert one.get("/health").json()["users"] == 1
            assert two.get("/health").json()["users"] == 0
