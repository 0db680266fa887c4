from datetime import timedelta

from mbkm.core.auth import create_access_token

REGISTER = {
    "name": "Budi Santoso",
    "email": "budi@example.com",
    "username": "budi",
    "password": "secret123",
}


def test_liveness(client):
    response = client.get("/api/v1/test")
    assert response.status_code == 200
    assert response.json() == {"code": 200, "message": "ok"}


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["postgres"] == "connected"


def test_register_student_returns_token(client, fetch_row):
    response = client.post("/api/v1/register", json=REGISTER)
    assert response.status_code == 201
    body = response.json()
    assert body["token"]
    assert body["role"] == "student"
    assert body["user"]["username"] == "budi"
    assert "password" not in body["user"]

    user = fetch_row("SELECT * FROM users WHERE username = 'budi'")
    assert user["password"] != "secret123"
    assert user["team_id"] is not None


def test_register_company_creates_profile(client, fetch_row):
    payload = {**REGISTER, "role": "mitra", "company_name": "PT Maju"}
    response = client.post("/api/v1/register", json=payload)
    assert response.status_code == 201
    assert response.json()["role"] == "company"

    user_id = response.json()["user"]["id"]
    company = fetch_row("SELECT * FROM companies WHERE user_id = :uid", uid=user_id)
    assert company["company_name"] == "PT Maju"


def test_register_duplicate_is_field_error(client):
    client.post("/api/v1/register", json=REGISTER)
    response = client.post("/api/v1/register", json={**REGISTER, "username": "other"})
    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert "email" in body["errors"]


def test_register_validation_is_400(client):
    response = client.post("/api/v1/register", json={**REGISTER, "password": "123"})
    assert response.status_code == 400
    assert "password" in response.json()["errors"]

    response = client.post("/api/v1/register", json={**REGISTER, "role": "superadmin"})
    assert response.status_code == 400


def test_login(client, make_user):
    make_user(username="ani", email="ani@example.com")

    response = client.post("/api/v1/login", json={"username": "ani", "password": "secret123"})
    assert response.status_code == 200
    assert response.json()["role"] == "student"

    response = client.post("/api/v1/login", json={"username": "ani", "password": "wrong-pass"})
    assert response.status_code == 401

    response = client.post("/api/v1/login", json={"username": "nobody", "password": "secret123"})
    assert response.status_code == 400
    assert "username" in response.json()["errors"]


def test_profile_requires_valid_token(client, make_user, auth_header):
    assert client.get("/api/v1/profile").status_code == 401
    assert client.get("/api/v1/profile", headers={"Authorization": "Bearer junk"}).status_code == 401

    user = make_user()
    expired = create_access_token(
        {"id": user["id"], "username": user["username"], "role": "student"},
        expires_delta=timedelta(minutes=-5),
    )
    assert client.get("/api/v1/profile", headers={"Authorization": f"Bearer {expired}"}).status_code == 401

    response = client.get("/api/v1/profile", headers=auth_header(user))
    assert response.status_code == 200
    body = response.json()
    assert body["user"]["id"] == user["id"]
    assert body["report"] is None and body["job"] is None


def test_token_of_deleted_user_is_rejected(client, make_user, auth_header):
    admin = make_user(1)
    user = make_user()
    headers = auth_header(user)
    assert client.delete(f"/api/v1/users/{user['id']}", headers=auth_header(admin)).status_code == 204
    assert client.get("/api/v1/profile", headers=headers).status_code == 401


def test_logout(client, make_user, auth_header):
    response = client.get("/api/v1/logout", headers=auth_header(make_user()))
    assert response.status_code == 200
    assert response.json()["success"] is True
