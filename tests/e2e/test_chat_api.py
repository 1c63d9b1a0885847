"""
E2E tests for the chat API and the real-time channel
"""
from unittest.mock import patch

import pytest
from starlette.websockets import WebSocketDisconnect

from agentchat.core import security
from agentchat.exceptions import StoreError
from agentchat.services.conversation_store import ConversationStore
from agentchat.services.message_pipeline import FALLBACK_REPLY
from agentchat.services.response_generator import GenerationResult

from conftest import make_user


def create_conversation(client, headers, title="Demo"):
    response = client.post("/api/chat/conversations", json={"title": title}, headers=headers)
    assert response.status_code == 201
    return response.json()["conversation"]


@pytest.mark.e2e
class TestConversationsApi:

    def test_requires_authentication(self, client):
        response = client.get("/api/chat/conversations")
        assert response.status_code == 401

    def test_invalid_token(self, client):
        response = client.get(
            "/api/chat/conversations", headers={"Authorization": "Bearer not-a-token"}
        )
        assert response.status_code == 401

    def test_create_and_get(self, client, auth_headers):
        conversation = create_conversation(client, auth_headers)

        response = client.get(f"/api/chat/conversations/{conversation['id']}", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()["conversation"]
        assert data["title"] == "Demo"
        assert data["messages"] == []

    @pytest.mark.parametrize("body", [{}, {"title": "   "}, {"title": "x" * 201}])
    def test_create_invalid_title(self, client, auth_headers, body):
        response = client.post("/api/chat/conversations", json=body, headers=auth_headers)

        assert response.status_code == 400
        assert "Title" in response.json()["detail"]

    def test_list_with_pagination(self, client, auth_headers):
        for i in range(3):
            create_conversation(client, auth_headers, f"Chat {i}")

        response = client.get("/api/chat/conversations?page=1&limit=2", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert [c["title"] for c in data["conversations"]] == ["Chat 2", "Chat 1"]
        assert data["pagination"] == {"page": 1, "limit": 2, "total": 3, "hasMore": True}

        last_page = client.get("/api/chat/conversations?page=2&limit=2", headers=auth_headers).json()
        assert last_page["pagination"]["hasMore"] is False
        assert len(last_page["conversations"]) == 1

    def test_list_only_own_conversations(self, client, auth_headers, store, other_user):
        store.create(other_user.id, "Bob's")
        create_conversation(client, auth_headers, "Alice's")

        data = client.get("/api/chat/conversations", headers=auth_headers).json()

        assert [c["title"] for c in data["conversations"]] == ["Alice's"]

    def test_foreign_conversation_is_not_found(self, client, auth_headers, store, other_user):
        foreign = store.create(other_user.id, "Bob's")

        assert client.get(f"/api/chat/conversations/{foreign.id}", headers=auth_headers).status_code == 404
        assert client.put(
            f"/api/chat/conversations/{foreign.id}", json={"title": "Mine"}, headers=auth_headers
        ).status_code == 404
        assert client.delete(f"/api/chat/conversations/{foreign.id}", headers=auth_headers).status_code == 404
        assert store.get_by_id(foreign.id, other_user.id).title == "Bob's"

    def test_rename_moves_to_front(self, client, auth_headers):
        older = create_conversation(client, auth_headers, "Older")
        create_conversation(client, auth_headers, "Newer")

        response = client.put(
            f"/api/chat/conversations/{older['id']}", json={"title": "Renamed"}, headers=auth_headers
        )

        assert response.status_code == 200
        assert response.json()["conversation"]["title"] == "Renamed"
        listed = client.get("/api/chat/conversations", headers=auth_headers).json()["conversations"]
        assert listed[0]["id"] == older["id"]

    def test_delete(self, client, auth_headers):
        conversation = create_conversation(client, auth_headers)

        response = client.delete(f"/api/chat/conversations/{conversation['id']}", headers=auth_headers)

        assert response.status_code == 200
        assert client.get(
            f"/api/chat/conversations/{conversation['id']}", headers=auth_headers
        ).status_code == 404


@pytest.mark.e2e
class TestSendMessageApi:

    def test_send_message(self, client, auth_headers):
        """Demo conversation: Hello yields a user and an assistant message"""
        conversation = create_conversation(client, auth_headers)

        response = client.post(
            f"/api/chat/conversations/{conversation['id']}/messages",
            json={"message": "Hello"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        messages = response.json()["conversation"]["messages"]
        assert [(m["role"], m["content"]) for m in messages] == [
            ("user", "Hello"),
            ("assistant", "Echo: Hello"),
        ]

        summary = client.get("/api/chat/conversations", headers=auth_headers).json()["conversations"][0]
        assert summary["messageCount"] == 2
        assert summary["lastMessage"]["role"] == "assistant"

    def test_generator_receives_configured_providers(self, client, auth_headers, stub_generator):
        client.post("/api/api-configs", json={
            "providerName": "openai",
            "endpointUrl": "https://api.openai.com/v1",
            "authType": "bearer",
            "credentials": {"bearerToken": "sk-test"},
        }, headers=auth_headers)
        conversation = create_conversation(client, auth_headers)

        client.post(
            f"/api/chat/conversations/{conversation['id']}/messages",
            json={"message": "Which api?"},
            headers=auth_headers,
        )

        _, requester = stub_generator.calls[0]
        assert requester.api_providers == ["openai"]

    def test_send_with_attachment(self, client, auth_headers):
        conversation = create_conversation(client, auth_headers)

        response = client.post(
            f"/api/chat/conversations/{conversation['id']}/messages",
            json={"message": "See file", "attachments": [{"type": "file", "url": "http://x/a.txt"}]},
            headers=auth_headers,
        )

        assert response.status_code == 200
        attachment = response.json()["conversation"]["messages"][0]["attachments"][0]
        assert attachment["type"] == "file"
        assert attachment["id"]

    def test_oversized_message_rejected(self, client, auth_headers):
        conversation = create_conversation(client, auth_headers)

        response = client.post(
            f"/api/chat/conversations/{conversation['id']}/messages",
            json={"message": "x" * 10001},
            headers=auth_headers,
        )

        assert response.status_code == 400
        stored = client.get(f"/api/chat/conversations/{conversation['id']}", headers=auth_headers).json()
        assert stored["conversation"]["messages"] == []

    @pytest.mark.parametrize("body", [{}, {"message": "   "}])
    def test_empty_message_rejected(self, client, auth_headers, body):
        conversation = create_conversation(client, auth_headers)

        response = client.post(
            f"/api/chat/conversations/{conversation['id']}/messages", json=body, headers=auth_headers
        )

        assert response.status_code == 400

    def test_foreign_conversation(self, client, auth_headers, store, other_user, stub_generator):
        foreign = store.create(other_user.id, "Bob's")

        response = client.post(
            f"/api/chat/conversations/{foreign.id}/messages",
            json={"message": "Hi"},
            headers=auth_headers,
        )

        assert response.status_code == 404
        assert response.json()["detail"] == "Conversation not found"
        assert stub_generator.calls == []

    def test_deleted_conversation(self, client, auth_headers):
        conversation = create_conversation(client, auth_headers)
        client.delete(f"/api/chat/conversations/{conversation['id']}", headers=auth_headers)

        response = client.post(
            f"/api/chat/conversations/{conversation['id']}/messages",
            json={"message": "Hi"},
            headers=auth_headers,
        )

        assert response.status_code == 404

    def test_generator_failure_returns_fallback(self, client, auth_headers, stub_generator):
        stub_generator.result = GenerationResult.failure("model offline")
        conversation = create_conversation(client, auth_headers)

        response = client.post(
            f"/api/chat/conversations/{conversation['id']}/messages",
            json={"message": "Hello"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        reply = response.json()["conversation"]["messages"][-1]
        assert reply["content"] == FALLBACK_REPLY
        assert reply["attachments"] == []

    def test_store_failure_is_500(self, client, auth_headers):
        conversation = create_conversation(client, auth_headers)

        with patch.object(
            ConversationStore, "append_message", side_effect=StoreError("Failed to save conversation")
        ):
            response = client.post(
                f"/api/chat/conversations/{conversation['id']}/messages",
                json={"message": "Hello"},
                headers=auth_headers,
            )

        assert response.status_code == 500
        assert response.json()["detail"] == "Failed to save conversation"


@pytest.mark.e2e
class TestRealtimeChannel:

    def test_bad_token_is_rejected(self, client):
        with pytest.raises(WebSocketDisconnect) as exc_info:
            with client.websocket_connect("/api/chat/ws?token=bogus"):
                pass

        assert exc_info.value.code == 4401

    def test_missing_token_is_rejected(self, client):
        with pytest.raises(WebSocketDisconnect):
            with client.websocket_connect("/api/chat/ws"):
                pass

    def test_reply_is_pushed_to_open_session(self, live_client, auth_headers, user, broadcaster):
        token = auth_headers["Authorization"].split(" ", 1)[1]
        conversation = create_conversation(live_client, auth_headers)

        with live_client.websocket_connect(f"/api/chat/ws?token={token}") as websocket:
            assert websocket.receive_json() == {"event": "connected", "data": {"userId": user.id}}
            assert broadcaster.connection_count(user.id) == 1

            response = live_client.post(
                f"/api/chat/conversations/{conversation['id']}/messages",
                json={"message": "Hello"},
                headers=auth_headers,
            )
            event = websocket.receive_json()

        assert event["event"] == "message-received"
        assert event["data"]["conversationId"] == conversation["id"]
        assert event["data"]["message"] == response.json()["conversation"]["messages"][-1]

    def test_other_users_session_stays_subscribed(self, live_client, auth_headers, user, test_db, broadcaster):
        carol = make_user(test_db, "carol@example.com", "Carol")
        carol_token = security.create_access_token({"sub": carol.id})
        conversation = create_conversation(live_client, auth_headers)

        with live_client.websocket_connect(f"/api/chat/ws?token={carol_token}") as websocket:
            assert websocket.receive_json()["data"]["userId"] == carol.id
            response = live_client.post(
                f"/api/chat/conversations/{conversation['id']}/messages",
                json={"message": "Hello"},
                headers=auth_headers,
            )
            assert response.status_code == 200
            assert broadcaster.connection_count(carol.id) == 1
            assert broadcaster.connection_count(user.id) == 0
