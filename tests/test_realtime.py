"""Tests for taskUpdated broadcasts over the /ws channel."""

import uuid


def _next_change(ws):
    frame = ws.receive_json()
    assert frame["event"] == "taskUpdated"
    assert frame["data"]["type"] == frame["data"]["data"]["operationType"]
    return frame["data"]


def test_insert_update_delete_each_broadcast_once(client, published):
    before = published()
    with client.websocket_connect("/ws") as ws:
        task = client.post("/tasks", json={"title": "Plan sprint", "category": "To-Do"}).json()
        client.put(
            f"/tasks/{task['id']}",
            json={"title": "Plan sprint 12", "description": "", "category": "To-Do"},
        )
        client.delete(f"/tasks/{task['id']}")

        inserted = _next_change(ws)
        updated = _next_change(ws)
        deleted = _next_change(ws)

    assert [inserted["type"], updated["type"], deleted["type"]] == ["insert", "update", "delete"]
    assert published() - before == 3

    assert inserted["data"]["documentKey"] == {"_id": task["id"]}
    assert inserted["data"]["fullDocument"]["title"] == "Plan sprint"
    assert inserted["data"]["fullDocument"]["description"] == ""

    assert updated["data"]["updateDescription"] == {
        "updatedFields": {"title": "Plan sprint 12"},
        "removedFields": [],
    }
    assert deleted["data"]["documentKey"] == {"_id": task["id"]}
    assert "fullDocument" not in deleted["data"]


def test_patch_broadcasts_changed_category(client, make_task):
    task = make_task()
    with client.websocket_connect("/ws") as ws:
        client.patch(f"/tasks/{task['id']}", json={"category": "Done"})
        change = _next_change(ws)

    assert change["type"] == "update"
    assert change["data"]["updateDescription"]["updatedFields"] == {"category": "Done"}


def test_patch_without_change_broadcasts_nothing(client, make_task):
    task = make_task(category="Done")
    with client.websocket_connect("/ws") as ws:
        assert client.patch(f"/tasks/{task['id']}", json={"category": "Done"}).status_code == 200
        client.delete(f"/tasks/{task['id']}")
        # The no-op patch produced no frame ahead of the delete
        assert _next_change(ws)["type"] == "delete"


def test_failed_mutations_broadcast_nothing(client, make_task):
    task = make_task()
    with client.websocket_connect("/ws") as ws:
        client.post("/tasks", json={"title": "no category"})
        client.put(f"/tasks/{uuid.uuid4()}", json={"title": "t", "category": "c"})
        client.delete(f"/tasks/{uuid.uuid4()}")
        client.delete(f"/tasks/{task['id']}")
        assert _next_change(ws)["type"] == "delete"


def test_every_connected_client_receives_the_event(client):
    with client.websocket_connect("/ws") as first, client.websocket_connect("/ws") as second:
        client.post("/tasks", json={"title": "Shared", "category": "To-Do"})
        a = _next_change(first)
        b = _next_change(second)

    assert a == b


def test_client_messages_are_ignored(client):
    with client.websocket_connect("/ws") as ws:
        ws.send_text("hello")
        ws.send_json({"event": "taskUpdated"})
        client.post("/tasks", json={"title": "Still works", "category": "To-Do"})
        assert _next_change(ws)["type"] == "insert"


def test_disconnected_client_is_forgotten(client):
    from app.realtime.connections import manager

    with client.websocket_connect("/ws"):
        pass
    client.post("/tasks", json={"title": "After", "category": "To-Do"})
    assert len(manager) == 0
