from auth import hash_password, verify_password


def test_password_hash_roundtrip():
    stored = hash_password("admin123")
    assert "." in stored
    assert verify_password("admin123", stored)
    assert not verify_password("admin124", stored)
    assert not verify_password("admin123", "garbage")
    assert hash_password("admin123") != stored


def test_register_sets_session_cookie(client):
    res = client.post("/api/register", json={"username": "carol", "email": "carol@example.com", "password": "hunter22"})
    assert res.status_code == 201
    body = res.json()
    assert body["user"]["username"] == "carol"
    assert body["user"]["is_admin"] is False
    assert "password_hash" not in body["user"]
    assert "session" in res.cookies

    # the cookie alone authenticates follow-up requests
    me = client.get("/api/user")
    assert me.status_code == 200
    assert me.json()["email"] == "carol@example.com"


def test_register_rejects_duplicates(client, alice):
    res = client.post("/api/register", json={"username": "alice", "email": "other@example.com", "password": "hunter22"})
    assert res.status_code == 400
    res = client.post("/api/register", json={"username": "alice2", "email": "ALICE@example.com", "password": "hunter22"})
    assert res.status_code == 400


def test_register_validates_payload(client):
    res = client.post("/api/register", json={"username": "dave", "email": "not-an-email", "password": "hunter22"})
    assert res.status_code == 400
    assert isinstance(res.json()["detail"], list)


def test_login_and_logout(client, alice):
    res = client.post("/api/login", json={"username": "alice", "password": "secret123"})
    assert res.status_code == 200
    token = res.json()["token"]
    assert client.get("/api/user", headers={"Authorization": f"Bearer {token}"}).status_code == 200

    assert client.post("/api/logout").status_code == 200
    client.cookies.clear()
    assert client.get("/api/user").status_code == 401


def test_login_bad_credentials(client, alice):
    assert client.post("/api/login", json={"username": "alice", "password": "nope"}).status_code == 401
    assert client.post("/api/login", json={"username": "nobody", "password": "nope"}).status_code == 401


def test_invalid_token_is_rejected(client):
    res = client.get("/api/user", headers={"Authorization": "Bearer not.a.jwt"})
    assert res.status_code == 401
    assert res.json()["detail"] == "Invalid token"
