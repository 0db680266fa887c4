from mbkm.core.permissions import RoleId


def test_user_crud_by_superadmin(client, make_user, auth_header):
    admin = auth_header(make_user(RoleId.SUPERADMIN))

    created = client.post("/api/v1/users", json={
        "name": "Dosen Satu", "email": "dosen1@example.com", "username": "dosen1",
        "password": "secret123", "role": "dosen",
    }, headers=admin)
    assert created.status_code == 201
    user = created.json()["data"]
    assert [r["id"] for r in user["roles"]] == [RoleId.DOSEN]
    assert "password" not in user

    duplicate = client.post("/api/v1/users", json={
        "name": "Other", "email": "dosen1@example.com", "password": "secret123",
    }, headers=admin)
    assert duplicate.status_code == 400
    assert "email" in duplicate.json()["errors"]

    updated = client.put(f"/api/v1/users/{user['id']}", json={"status": "Aktif", "roles": [5, 6]}, headers=admin)
    assert updated.status_code == 200
    assert updated.json()["data"]["status"] == "Aktif"
    assert [r["id"] for r in updated.json()["data"]["roles"]] == [5, 6]

    bad_role = client.put(f"/api/v1/users/{user['id']}", json={"roles": [42]}, headers=admin)
    assert bad_role.status_code == 400

    assert client.delete(f"/api/v1/users/{user['id']}", headers=admin).status_code == 204
    assert client.get(f"/api/v1/users/{user['id']}", headers=admin).status_code == 404


def test_user_writes_need_superadmin(client, make_user, auth_header):
    cdc = auth_header(make_user(RoleId.CDC))
    response = client.post("/api/v1/users", json={
        "name": "X", "email": "x@example.com", "password": "secret123",
    }, headers=cdc)
    assert response.status_code == 403
    assert client.get("/api/v1/users", headers=cdc).status_code == 200


def test_lecturers_with_can_approve(client, make_user, make_apply_job, auth_header):
    supervising = make_user(RoleId.DOSEN, status="Aktif")
    other = make_user(RoleId.DOSEN, status="Tidak Aktif")
    apply_job_id = make_apply_job(make_user(), responsible_lecturer_id=supervising["id"])
    headers = auth_header(supervising)

    body = client.get(f"/api/v1/lecturers?apply_job_id={apply_job_id}", headers=headers).json()
    assert body["count"] == 2
    flags = {row["id"]: row["lecturer_can_approve"] for row in body["data"]}
    assert flags == {supervising["id"]: True, other["id"]: False}

    active = client.get("/api/v1/lecturers?status=Aktif", headers=headers).json()
    assert [row["id"] for row in active["data"]] == [supervising["id"]]


def test_students_status_aliases(client, make_user, auth_header):
    make_user(status="Aktif")
    graduated = make_user(status="Tidak Aktif")
    headers = auth_header(make_user(RoleId.CDC))

    assert client.get("/api/v1/students", headers=headers).json()["count"] == 2
    body = client.get("/api/v1/students?status=Lulus", headers=headers).json()
    assert [row["id"] for row in body["data"]] == [graduated["id"]]


def test_roles_and_permissions(client, make_user, auth_header):
    admin = auth_header(make_user(RoleId.SUPERADMIN))

    permission = client.post("/api/v1/permissions", json={"title": "job_access"}, headers=admin)
    assert permission.status_code == 201
    permission_id = permission.json()["data"]["id"]

    role = client.post("/api/v1/roles", json={"title": "alumni", "permissions": [permission_id]}, headers=admin)
    assert role.status_code == 201
    role_data = role.json()["data"]
    assert role_data["id"] == 7
    assert [p["title"] for p in role_data["permissions"]] == ["job_access"]

    assert client.get("/api/v1/roles", headers=admin).json()["count"] == 7

    renamed = client.put(f"/api/v1/roles/{role_data['id']}", json={"title": "alumnus"}, headers=admin)
    assert renamed.json()["data"]["title"] == "alumnus"
    assert len(renamed.json()["data"]["permissions"]) == 1

    assert client.post("/api/v1/roles", json={"title": "x"}, headers=auth_header(make_user())).status_code == 403
    assert client.delete(f"/api/v1/permissions/{permission_id}", headers=admin).status_code == 204
    assert client.get(f"/api/v1/roles/{role_data['id']}", headers=admin).json()["data"]["permissions"] == []


def test_assign_role_replaces_roles(client, make_user, auth_header, fetch_row):
    admin = auth_header(make_user(RoleId.SUPERADMIN))
    user = make_user()

    response = client.post("/api/v1/roles/assign", json={"user_id": user["id"], "role_id": 6}, headers=admin)
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["role"] == "prodi"
    assert [r["id"] for r in data["roles"]] == [6]

    assert client.post("/api/v1/roles/assign", json={"user_id": 999, "role_id": 6}, headers=admin).status_code == 404
