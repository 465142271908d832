"""Tests for POST /auth/google."""

from sqlmodel import select

from app.database import async_session
from app.models import User


def _count_users(client, uid):
    async def count():
        async with async_session() as session:
            result = await session.exec(select(User).where(User.uid == uid))
            return len(result.all())

    return client.portal.call(count)


def test_first_sight_creates_user(client):
    response = client.post(
        "/auth/google",
        json={"uid": "g-123", "email": "ada@example.com", "displayName": "Ada"},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["uid"] == "g-123"
    assert body["email"] == "ada@example.com"
    assert body["displayName"] == "Ada"
    assert "id" in body and "createdAt" in body
    assert _count_users(client, "g-123") == 1


def test_known_uid_returns_original_record(client):
    first = client.post(
        "/auth/google",
        json={"uid": "g-123", "email": "ada@example.com", "displayName": "Ada"},
    ).json()

    second = client.post(
        "/auth/google",
        json={"uid": "g-123", "email": "new@example.com", "displayName": "Ada L."},
    )
    assert second.status_code == 200
    assert second.json() == first
    assert _count_users(client, "g-123") == 1


def test_distinct_uids_get_distinct_users(client):
    a = client.post("/auth/google", json={"uid": "a"}).json()
    b = client.post("/auth/google", json={"uid": "b"}).json()
    assert a["id"] != b["id"]
    assert a["email"] is None


def test_snake_case_body_is_accepted(client):
    response = client.post("/auth/google", json={"uid": "g-9", "display_name": "Grace"})
    assert response.json()["displayName"] == "Grace"


def test_missing_uid_upserts_the_uidless_user(client):
    first = client.post("/auth/google", json={"email": "x@example.com"})
    assert first.status_code == 200
    assert first.json()["uid"] is None
    assert first.json()["email"] == "x@example.com"

    second = client.post("/auth/google", json={"email": "other@example.com"})
    assert second.status_code == 200
    assert second.json() == first.json()


def test_bodyless_request_returns_the_uidless_user(client):
    created = client.post("/auth/google", json={"displayName": "Nobody"}).json()
    response = client.post("/auth/google")
    assert response.status_code == 200
    assert response.json() == created


def test_wrongly_typed_uid_is_a_client_error(client):
    response = client.post("/auth/google", json={"uid": ["g-1"]})
    assert response.status_code == 400
    assert response.json()["message"].startswith("Invalid request body")


def test_user_writes_are_not_broadcast(client):
    with client.websocket_connect("/ws") as ws:
        client.post("/auth/google", json={"uid": "quiet"})
        client.post("/tasks", json={"title": "t", "category": "c"})
        # The first frame is the task insert, not the user insert
        assert ws.receive_json()["data"]["data"]["ns"] == {"coll": "tasks"}

