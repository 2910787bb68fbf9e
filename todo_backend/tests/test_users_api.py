EMAIL = "jen@example.com"
PASSWORD = "userTwoPass"


def _register(client, email=EMAIL, password=PASSWORD):
    return client.post("/users", json={"email": email, "password": password})


def test_register_user(client, count_users):
    resp = _register(client)
    assert resp.status_code == 200
    assert resp.headers["x-auth"]
    body = resp.json()
    assert body["email"] == EMAIL
    assert set(body) == {"_id", "email"}
    assert count_users() == 1


def test_register_invalid_input(client, count_users):
    assert _register(client, email="not-an-email").status_code == 400
    assert _register(client, password="123").status_code == 400
    assert client.post("/users", json={}).status_code == 400
    assert count_users() == 0


def test_register_duplicate_email(client, count_users):
    assert _register(client).status_code == 200
    resp = _register(client, password="differentPass")
    assert resp.status_code == 400
    assert "x-auth" not in resp.headers
    assert count_users() == 1


def test_me_with_token(client):
    token = _register(client).headers["x-auth"]
    resp = client.get("/users/me", headers={"x-auth": token})
    assert resp.status_code == 200
    assert resp.json()["email"] == EMAIL
    assert "password_hash" not in resp.json()
    assert "tokens" not in resp.json()


def test_me_without_token(client):
    resp = client.get("/users/me")
    assert resp.status_code == 401


def test_me_with_bad_token(client):
    _register(client)
    assert client.get("/users/me", headers={"x-auth": "garbage"}).status_code == 401


def test_login(client):
    user_id = _register(client).json()["_id"]
    resp = client.post("/users/login", json={"email": EMAIL, "password": PASSWORD})
    assert resp.status_code == 200
    assert resp.json()["_id"] == user_id
    token = resp.headers["x-auth"]
    assert client.get("/users/me", headers={"x-auth": token}).json()["_id"] == user_id


def test_login_rejects_bad_credentials_uniformly(client):
    _register(client)
    wrong_password = client.post("/users/login", json={"email": EMAIL, "password": "nope-nope"})
    unknown_email = client.post("/users/login", json={"email": "who@example.com", "password": PASSWORD})
    assert wrong_password.status_code == 400
    assert unknown_email.status_code == 400
    assert wrong_password.json() == unknown_email.json()
    assert "x-auth" not in wrong_password.headers


def test_logout_removes_token(client):
    token = _register(client).headers["x-auth"]
    other = client.post("/users/login", json={"email": EMAIL, "password": PASSWORD}).headers["x-auth"]

    resp = client.delete("/users/me/token", headers={"x-auth": token})
    assert resp.status_code == 200
    assert resp.content == b""

    assert client.get("/users/me", headers={"x-auth": token}).status_code == 401
    assert client.get("/users/me", headers={"x-auth": other}).status_code == 200


def test_logout_without_token(client):
    assert client.delete("/users/me/token").status_code == 401


def test_register_oversized_password(client, count_users):
    resp = _register(client, email="long@example.com", password="x" * 5000)
    assert resp.status_code == 400
    assert count_users() == 0
