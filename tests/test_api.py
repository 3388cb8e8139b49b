"""
End-to-end tests through the HTTP API
"""

import uuid
from datetime import datetime, timedelta


def register(client, username, password="pw", interests=None):
    response = client.post(
        "/api/v1/auth/register",
        json={"username": username, "password": password, "interests": interests or []},
    )
    assert response.status_code == 201, response.text
    return response.json()["userId"]


def login(client, username, password="pw"):
    response = client.post("/api/v1/auth/login", json={"username": username, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['token']}"}


class TestAuthRoutes:

    def test_register_and_login(self, client):
        user_id = register(client, "alice", interests=["x"])

        response = client.post("/api/v1/auth/login", json={"username": "alice", "password": "pw"})

        body = response.json()
        assert body["userId"] == user_id
        assert body["username"] == "alice"
        assert body["token"]

    def test_duplicate_registration(self, client):
        register(client, "alice")

        response = client.post("/api/v1/auth/register", json={"username": "alice", "password": "x"})

        assert response.status_code == 400
        assert response.json()["detail"] == "User already exists"

    def test_bad_login(self, client):
        register(client, "alice")

        response = client.post("/api/v1/auth/login", json={"username": "alice", "password": "wrong"})

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid credentials"


class TestFriendRoutes:

    def test_routes_require_a_token(self, client):
        assert client.get("/api/v1/friends/search", params={"username": "a"}).status_code == 401

        response = client.get(
            "/api/v1/friends/search",
            params={"username": "a"},
            headers={"Authorization": "Bearer not-a-token"},
        )
        assert response.status_code == 401

    def test_request_accept_flow(self, client):
        alice = register(client, "alice", interests=["x", "y"])
        bob = register(client, "bob", interests=["x"])
        headers = login(client, "alice")

        response = client.post("/api/v1/friends/request", json={"userId": alice, "friendId": bob}, headers=headers)
        assert response.json() == {"msg": "Friend request sent"}

        duplicate = client.post("/api/v1/friends/request", json={"userId": alice, "friendId": bob}, headers=headers)
        assert duplicate.status_code == 400
        assert duplicate.json()["detail"] == "Friend request already sent."

        pending = client.get(f"/api/v1/friends/{bob}/friend-requests", headers=headers).json()
        assert pending == {"friendRequests": [{"id": alice, "username": "alice"}]}

        response = client.post("/api/v1/friends/accept", json={"userId": bob, "friendId": alice}, headers=headers)
        assert response.json() == {"msg": "Friend request accepted."}

        replay = client.post("/api/v1/friends/accept", json={"userId": bob, "friendId": alice}, headers=headers)
        assert replay.status_code == 400

        friends = client.get(f"/api/v1/friends/{alice}/friends", headers=headers).json()
        assert friends == {"friends": [{"id": bob, "username": "bob"}]}
        assert client.get(f"/api/v1/friends/{bob}/friend-requests", headers=headers).json() == {"friendRequests": []}

        notifications = client.get(f"/api/v1/friends/{alice}/notifications", headers=headers).json()["notifications"]
        assert [n["message"] for n in notifications] == ["bob has accepted your friend request."]
        sent_at = datetime.fromisoformat(notifications[0]["timestamp"].replace("Z", "+00:00"))
        assert sent_at.utcoffset() == timedelta(0)

    def test_recommendations_payload(self, client):
        alice = register(client, "alice", interests=["x", "y"])
        bob = register(client, "bob", interests=["x"])
        carol = register(client, "carol")
        headers = login(client, "alice")
        for requester, target in ((alice, bob), (bob, carol)):
            client.post("/api/v1/friends/request", json={"userId": requester, "friendId": target}, headers=headers)
            client.post("/api/v1/friends/accept", json={"userId": target, "friendId": requester}, headers=headers)

        response = client.get(f"/api/v1/friends/{alice}/recommendations", headers=headers)

        assert response.status_code == 200
        assert response.json() == {
            "recommendations": [
                {"id": carol, "username": "carol", "commonInterests": 0, "mutualFriends": 1},
            ]
        }

    def test_reject_and_unfriend(self, client):
        alice = register(client, "alice")
        bob = register(client, "bob")
        headers = login(client, "bob")

        client.post("/api/v1/friends/request", json={"userId": alice, "friendId": bob}, headers=headers)
        response = client.post("/api/v1/friends/reject", json={"userId": bob, "friendId": alice}, headers=headers)
        assert response.json() == {"msg": "Friend request rejected."}

        response = client.post("/api/v1/friends/unfriend", json={"userId": bob, "friendId": alice}, headers=headers)
        assert response.status_code == 400
        assert response.json()["detail"] == "You are not friends."

    def test_error_mapping(self, client):
        alice = register(client, "alice")
        headers = login(client, "alice")

        own = client.post("/api/v1/friends/request", json={"userId": alice, "friendId": alice}, headers=headers)
        assert own.status_code == 400

        malformed = client.post("/api/v1/friends/request", json={"userId": alice, "friendId": "abc"}, headers=headers)
        assert malformed.status_code == 400
        assert malformed.json()["detail"] == "Invalid user ID"

        missing = client.post(
            "/api/v1/friends/request",
            json={"userId": alice, "friendId": str(uuid.uuid4())},
            headers=headers,
        )
        assert missing.status_code == 404

        assert client.get(f"/api/v1/friends/{uuid.uuid4()}/notifications", headers=headers).status_code == 404
        assert client.get("/api/v1/friends/abc/friends", headers=headers).status_code == 400

    def test_search_and_user_listing(self, client):
        alice = register(client, "Alice")
        register(client, "malice")
        register(client, "bob")
        headers = login(client, "Alice")

        found = client.get("/api/v1/friends/search", params={"username": "alic"}, headers=headers).json()
        assert [u["username"] for u in found] == ["Alice", "malice"]

        others = client.get(f"/api/v1/friends/{alice}/users", headers=headers).json()["users"]
        assert [u["username"] for u in others] == ["bob", "malice"]

    def test_root(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["status"] == "running"
