import pytest
from conftest import run
from starlette.websockets import WebSocketDisconnect

from app.core.config import settings
from app.core.security import create_access_token
from app.models.conversation import conversation_key
from app.models.notification import new_notification_document
from app.realtime.hub import hub
from utils.time_utils import utc_now


def ws_url(path, user):
    return f"{path}?token={user['token']}&session_id={user['session_id']}"


def event(ws, name, data=None):
    ws.send_json({"event": name, "data": data or {}})
    return ws.receive_json()


def test_socket_without_token_is_closed(client):
    with pytest.raises(WebSocketDisconnect) as exc:
        with client.websocket_connect("/ws/chat"):
            pass
    assert exc.value.code == 1008


def test_socket_with_stale_session_is_closed(client, make_user):
    user = make_user("alice")
    stale = create_access_token(user["id"], "stale-session")
    with pytest.raises(WebSocketDisconnect) as exc:
        with client.websocket_connect(f"/ws/notifications?token={stale}&session_id=stale-session"):
            pass
    assert exc.value.code == 1008


def test_notification_socket(client, make_user, db):
    alice = make_user("alice")
    doc = new_notification_document(alice["doc"]["_id"], "system", "Hi", "There", utc_now())
    notification_id = str(run(db.notifications.insert_one(doc)).inserted_id)

    with client.websocket_connect(ws_url("/ws/notifications", alice)) as ws:
        assert ws.receive_json() == {"event": "connected", "data": {"user_id": alice["id"]}}
        assert hub.is_online(alice["id"])

        reply = event(ws, "test_connection")
        assert reply["event"] == "test_response"
        assert reply["data"]["user_id"] == alice["id"]

        reply = event(ws, "mark_notifications_read", {"notification_ids": [notification_id]})
        assert reply == {"event": "notifications_marked", "data": {"marked_count": 1, "unread": 0}}

    assert not hub.is_online(alice["id"])


def test_chat_socket_basics(client, make_user):
    alice = make_user("alice")
    with client.websocket_connect(ws_url("/ws/chat", alice)) as ws:
        assert ws.receive_json()["event"] == "connected"
        assert hub.presence[alice["id"]] == "online"

        assert event(ws, "ping")["event"] == "pong"
        assert event(ws, "heartbeat")["event"] == "heartbeat_ack"

        unknown = event(ws, "dance")
        assert unknown["event"] == "error"
        assert unknown["data"]["message"] == "Unknown event: dance"

        ws.send_text("{not json")
        assert ws.receive_json() == {"event": "error", "data": {"message": "Invalid JSON frame"}}

        presence = event(ws, "set_presence", {"status": "away"})
        assert presence["event"] == "user_presence"
        assert presence["data"]["status"] == "away"

    assert alice["id"] not in hub.presence


def test_chat_socket_send_message(client, make_user, db):
    alice = make_user("alice")
    bob = make_user("bob")
    with client.websocket_connect(ws_url("/ws/chat", alice)) as ws:
        ws.receive_json()
        reply = event(ws, "send_message", {"receiver_id": bob["id"], "content": "hey", "client_message_id": "tmp-1"})
        assert reply["event"] == "message_sent"
        assert reply["data"]["client_message_id"] == "tmp-1"
        assert reply["data"]["conversation_id"] == conversation_key(alice["doc"]["_id"], bob["doc"]["_id"])
        # bob has no socket open
        assert reply["data"]["delivered"] is False

        failed = event(ws, "send_message", {"receiver_id": bob["id"], "content": ""})
        assert failed["event"] == "error"
        assert failed["data"]["code"] == "BAD_REQUEST"

    assert run(db.messages.count_documents({})) == 1


def test_chat_socket_join_and_read(client, make_user, db):
    alice = make_user("alice")
    bob = make_user("bob")
    carol = make_user("carol")
    client.post("/api/chat/messages", headers=bob["headers"], json={"receiver_id": alice["id"], "content": "hi"})
    conversation_id = conversation_key(alice["doc"]["_id"], bob["doc"]["_id"])

    with client.websocket_connect(ws_url("/ws/chat", carol)) as ws:
        ws.receive_json()
        denied = event(ws, "join_conversation", {"conversation_id": conversation_id})
        assert denied["event"] == "error"

    with client.websocket_connect(ws_url("/ws/chat", alice)) as ws:
        ws.receive_json()
        joined = event(ws, "join_conversation", {"conversation_id": conversation_id})
        assert joined == {"event": "joined_conversation", "data": {"conversation_id": conversation_id}}
        assert len(hub.rooms[conversation_id]) == 1

        marked = event(ws, "mark_read", {"user_id": bob["id"]})
        assert marked == {"event": "marked_read", "data": {"user_id": bob["id"], "count": 1}}

    assert conversation_id not in hub.rooms
    assert run(db.messages.count_documents({"status.read": True})) == 1


def test_malformed_frames_keep_socket_open(client, make_user):
    alice = make_user("alice")
    with client.websocket_connect(ws_url("/ws/chat", alice)) as ws:
        ws.receive_json()

        ws.send_json({"event": "mark_read", "data": ["x"]})
        reply = ws.receive_json()
        assert reply["event"] == "error"
        assert reply["data"]["message"] == "Event data must be an object"

        ws.send_bytes(b"\x00\x01")
        assert ws.receive_json() == {"event": "error", "data": {"message": "Binary frames are not supported"}}

        ws.send_json(["not", "a", "frame"])
        assert ws.receive_json()["data"]["message"] == "Frame must be an object"

        invalid = event(ws, "send_message", {"content": "no receiver"})
        assert invalid["event"] == "error"
        assert invalid["data"]["code"] == "VALIDATION_ERROR"

        denied = event(ws, "join_conversation", {"conversation_id": ["a", "b"]})
        assert denied["event"] == "error"

        assert event(ws, "ping")["event"] == "pong"


def test_idle_socket_is_closed(client, make_user, monkeypatch):
    alice = make_user("alice")
    monkeypatch.setattr(settings, "HEARTBEAT_TIMEOUT_SECONDS", 0.2)
    with client.websocket_connect(ws_url("/ws/chat", alice)) as ws:
        ws.receive_json()
        with pytest.raises(WebSocketDisconnect) as exc:
            ws.receive_json()
    assert exc.value.code == 1000
    assert not hub.in_chat(alice["id"])


def test_typing_presence_and_leave(client, make_user):
    alice = make_user("alice")
    bob = make_user("bob")
    client.post("/api/chat/conversations", headers=alice["headers"], json={"user_id": bob["id"]})
    conversation_id = conversation_key(alice["doc"]["_id"], bob["doc"]["_id"])

    with client.websocket_connect(ws_url("/ws/chat", alice)) as ws_alice:
        ws_alice.receive_json()
        with client.websocket_connect(ws_url("/ws/chat", bob)) as ws_bob:
            ws_bob.receive_json()
            online = ws_alice.receive_json()
            assert online == {"event": "user_presence", "data": {"user_id": bob["id"], "status": "online"}}

            assert event(ws_alice, "join_conversation", {"conversation_id": conversation_id})["event"] == "joined_conversation"
            assert event(ws_bob, "join_conversation", {"conversation_id": conversation_id})["event"] == "joined_conversation"

            ws_alice.send_json({"event": "typing", "data": {"conversation_id": conversation_id, "is_typing": True}})
            typing = ws_bob.receive_json()
            assert typing["event"] == "user_typing"
            assert typing["data"] == {"conversation_id": conversation_id, "user_id": alice["id"], "is_typing": True}

            ws_bob.send_json({"event": "set_presence", "data": {"status": "busy"}})
            assert ws_bob.receive_json()["data"]["status"] == "busy"
            busy = ws_alice.receive_json()
            assert busy["event"] == "user_presence"
            assert (busy["data"]["user_id"], busy["data"]["status"]) == (bob["id"], "busy")
            assert hub.presence[bob["id"]] == "busy"

            left = event(ws_bob, "leave_conversation", {"conversation_id": conversation_id})
            assert left == {"event": "left_conversation", "data": {"conversation_id": conversation_id}}
            assert len(hub.rooms[conversation_id]) == 1

        offline = ws_alice.receive_json()
        assert offline == {"event": "user_presence", "data": {"user_id": bob["id"], "status": "offline"}}
        assert bob["id"] not in hub.presence


def test_closing_chat_socket_goes_offline_with_notification_tab_open(client, make_user):
    alice = make_user("alice")
    bob = make_user("bob")

    with client.websocket_connect(ws_url("/ws/chat", bob)) as ws_bob:
        ws_bob.receive_json()
        with client.websocket_connect(ws_url("/ws/notifications", alice)) as ws_feed:
            ws_feed.receive_json()
            with client.websocket_connect(ws_url("/ws/chat", alice)) as ws_chat:
                ws_chat.receive_json()
                assert ws_bob.receive_json()["data"] == {"user_id": alice["id"], "status": "online"}

            offline = ws_bob.receive_json()
            assert offline["data"] == {"user_id": alice["id"], "status": "offline"}
            assert hub.is_online(alice["id"])
            assert not hub.in_chat(alice["id"])

            # Only the notification feed is open, so the message is not delivered
            reply = event(ws_bob, "send_message", {"receiver_id": alice["id"], "content": "still there?"})
            assert reply["data"]["delivered"] is False
            assert event(ws_feed, "test_connection")["event"] == "test_response"


def test_new_message_reaches_receiver_chat_socket(client, make_user, db):
    alice = make_user("alice")
    bob = make_user("bob")

    with client.websocket_connect(ws_url("/ws/chat", alice)) as ws_alice:
        ws_alice.receive_json()
        with client.websocket_connect(ws_url("/ws/chat", bob)) as ws_bob:
            ws_bob.receive_json()
            ws_alice.receive_json()

            reply = event(ws_bob, "send_message", {"receiver_id": alice["id"], "content": "hello"})
            assert reply["data"]["delivered"] is True

            pushed = ws_alice.receive_json()
            assert pushed["event"] == "new_message"
            assert pushed["data"]["content"] == "hello"

    assert run(db.messages.count_documents({"status.delivered": True})) == 1
