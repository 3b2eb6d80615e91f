"""Auth Routes — register, login, logout, status over HTTP.

Invariants:
    - Register returns 201, duplicate 409, bad input 400 before the store is reached
    - Login failure is a uniform 401 for unknown user and wrong password
    - Session cookie is an opaque token, not the username
"""


async def test_register_returns_201(client, store):
    res = await client.post(
        "/api/auth/register", json={"username": "alice", "password": "secret1"},
    )
    assert res.status_code == 201
    assert res.json() == {"message": "User registered successfully"}
    assert store.list_usernames() == ["alice"]


async def test_duplicate_register_returns_409(client, store):
    payload = {"username": "alice", "password": "secret1"}
    await client.post("/api/auth/register", json=payload)
    res = await client.post("/api/auth/register", json=payload)
    assert res.status_code == 409
    assert res.json()["error"]["code"] == "ALREADY_EXISTS"
    assert len(store.identities) == 1


async def test_register_validation_returns_400(client, store):
    res = await client.post(
        "/api/auth/register", json={"username": "al", "password": "123"},
    )
    assert res.status_code == 400
    body = res.json()["error"]
    assert body["code"] == "VALIDATION_ERROR"
    assert {d["field"] for d in body["details"]} == {"body.username", "body.password"}
    assert "123" not in res.text
    assert store.list_usernames() == []


async def test_login_sets_opaque_session_cookie(client, login):
    res = await login("alice")
    assert res.json() == {"message": "Login successful", "user": "alice"}
    token = res.cookies.get("session")
    assert token and token != "alice"
    set_cookie = res.headers["set-cookie"].lower()
    assert "httponly" in set_cookie
    assert "samesite=strict" in set_cookie


async def test_login_failures_are_uniform(client):
    await client.post(
        "/api/auth/register", json={"username": "alice", "password": "secret1"},
    )
    wrong = await client.post(
        "/api/auth/login", json={"username": "alice", "password": "wrong12"},
    )
    unknown = await client.post(
        "/api/auth/login", json={"username": "mallory", "password": "secret1"},
    )
    assert wrong.status_code == unknown.status_code == 401
    assert wrong.json()["error"]["message"] == unknown.json()["error"]["message"]
    assert "session" not in wrong.cookies


async def test_status_reflects_session(client, login):
    assert (await client.get("/api/auth/status")).json() == {"user": None}
    await login("alice")
    assert (await client.get("/api/auth/status")).json() == {"user": "alice"}


async def test_logout_revokes_session(client, login):
    res = await login("alice")
    token = res.cookies["session"]

    out = await client.post("/api/auth/logout")
    assert out.status_code == 200

    # Replaying the old token after logout must not resolve
    client.cookies.set("session", token)
    assert (await client.get("/api/auth/status")).json() == {"user": None}


async def test_forged_cookie_is_not_a_session(client, login):
    await login("alice")
    client.cookies.clear()
    client.cookies.set("session", "alice")
    assert (await client.get("/api/users")).status_code == 401
