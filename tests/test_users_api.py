from datetime import datetime, timezone

from taskboard_app import models


def test_create_user_normalizes_email_and_name(client):
    r = client.post("/users", json={"email": "  Demo@Example.com ", "name": "  Demo User  "})
    assert r.status_code == 400, r.text  # leading/trailing whitespace fails the email pattern

    r = client.post("/users", json={"email": "Demo@Example.COM", "name": "  Demo User  "})
    assert r.status_code == 201, r.text
    u = r.json()
    assert u["email"] == "demo@example.com"
    assert u["name"] == "Demo User"
    assert u["_count"] == {"tasks": 0}
    assert len(u["id"]) >= 10
    assert "createdAt" in u and "updatedAt" in u


def test_blank_name_becomes_null(client):
    r = client.post("/users", json={"email": "blank@example.com", "name": "   "})
    assert r.status_code == 201, r.text
    assert r.json()["name"] is None


def test_duplicate_email_differing_by_case_conflicts(client):
    r1 = client.post("/users", json={"email": "Demo@Example.com"})
    assert r1.status_code == 201, r1.text
    r2 = client.post("/users", json={"email": "demo@example.com"})
    assert r2.status_code == 409
    assert r2.json() == {"error": "Email already exists"}


def test_user_validation_messages(client):
    cases = [
        ({}, "Valid email is required"),
        ({"email": ""}, "Valid email is required"),
        ({"email": 42}, "Valid email is required"),
        ({"email": "not-an-email"}, "Invalid email format"),
        ({"email": "a@b"}, "Invalid email format"),
        ({"email": "a b@c.d"}, "Invalid email format"),
        ({"email": "ok@example.com", "name": 7}, "Name must be a string"),
    ]
    for body, message in cases:
        r = client.post("/users", json=body)
        assert r.status_code == 400, (body, r.text)
        assert r.json() == {"error": message}, body


def test_non_object_body_is_a_validation_error(client):
    r = client.post("/users", content="not json", headers={"content-type": "application/json"})
    assert r.status_code == 400
    assert "error" in r.json()


def test_list_users_newest_first_with_task_counts(client, db, api_user, api_task):
    first = api_user(email="first@example.com")
    second = api_user(email="second@example.com")
    # pin creation times so the order does not depend on clock resolution
    db.get(models.User, first["id"]).created_at = datetime(2024, 1, 1, tzinfo=timezone.utc)
    db.get(models.User, second["id"]).created_at = datetime(2024, 1, 2, tzinfo=timezone.utc)
    db.commit()
    api_task("a", userId=first["id"])
    api_task("b", userId=first["id"])

    r = client.get("/users")
    assert r.status_code == 200
    users = r.json()
    assert [u["email"] for u in users] == ["second@example.com", "first@example.com"]
    assert users[0]["_count"]["tasks"] == 0
    assert users[1]["_count"]["tasks"] == 2


def test_delete_user_cascades_to_tasks(client, api_user, api_task):
    owner = api_user()
    other = api_user()
    t1 = api_task("one", userId=owner["id"])
    t2 = api_task("two", userId=owner["id"])
    kept = api_task("kept", userId=other["id"])

    r = client.delete(f"/users/{owner['id']}")
    assert r.status_code == 200
    assert r.json() == {"message": "User deleted successfully"}

    assert client.get(f"/tasks/{t1['id']}").status_code == 404
    assert client.get(f"/tasks/{t2['id']}").status_code == 404
    assert client.get(f"/tasks/{kept['id']}").status_code == 200
    assert [t["id"] for t in client.get("/tasks").json()] == [kept["id"]]


def test_delete_missing_user_is_404(client):
    r = client.delete("/users/does-not-exist-123")
    assert r.status_code == 404
    assert r.json() == {"error": "User not found"}
