"""
Tests for the legacy users endpoints.
"""


async def test_no_users(client):
    resp = await client.get("/api/users")
    assert resp.status_code == 200
    assert resp.json() == []


async def test_create_user(client):
    resp = await client.post("/api/users", json={"name": "Ada", "email": "ada@example.com"})
    assert resp.status_code == 201
    data = resp.json()
    assert data["id"]
    assert data["name"] == "Ada"
    assert data["email"] == "ada@example.com"
    assert data["created_at"]


async def test_list_users_newest_first(client):
    await client.post("/api/users", json={"name": "Ada", "email": "ada@example.com"})
    await client.post("/api/users", json={"name": "Grace", "email": "grace@example.com"})

    resp = await client.get("/api/users")
    assert [u["name"] for u in resp.json()] == ["Grace", "Ada"]


async def test_create_user_missing_fields(client):
    resp = await client.post("/api/users", json={"name": "Ada"})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Name and email are required"}


async def test_create_user_missing_name(client):
    resp = await client.post("/api/users", json={"name": "", "email": "ada@example.com"})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Name and email are required"}


async def test_create_user_duplicate_email(client):
    await client.post("/api/users", json={"name": "Ada", "email": "ada@example.com"})

    resp = await client.post("/api/users", json={"name": "Other", "email": "ada@example.com"})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Email already exists"}
