from mbkm.core.permissions import RoleId

URL = "/api/v1/settings/bobot-nilai"
WEIGHTS = {
    "id_program_studi": 1,
    "bobot_nilai_perusahaan": 40,
    "bobot_nilai_pembimbing": 30,
    "bobot_nilai_penguji": 30,
}


def test_unset_weights_are_404_with_null_data(client, make_user, auth_header):
    response = client.get(URL, headers=auth_header(make_user()))
    assert response.status_code == 404
    assert response.json() == {"data": None}


def test_upsert(client, make_user, auth_header):
    headers = auth_header(make_user(RoleId.SUPERADMIN))

    created = client.post(URL, json=WEIGHTS, headers=headers)
    assert created.status_code == 201
    assert created.json()["data"]["bobot_nilai_perusahaan"] == 40

    updated = client.post(URL, json={**WEIGHTS, "bobot_nilai_perusahaan": 50}, headers=headers)
    assert updated.status_code == 200
    assert updated.json()["data"]["id"] == created.json()["data"]["id"]

    response = client.get(URL, params={"prodi_id": 1}, headers=headers)
    assert response.json()["data"]["bobot_nilai_perusahaan"] == 50
    assert client.get(URL, params={"prodi_id": 2}, headers=headers).status_code == 404


def test_negative_weight_rejected(client, make_user, auth_header):
    headers = auth_header(make_user(RoleId.PRODI))
    response = client.post(URL, json={**WEIGHTS, "bobot_nilai_penguji": -1}, headers=headers)
    assert response.status_code == 400
    assert "bobot_nilai_penguji" in response.json()["errors"]


def test_student_cannot_change_weights(client, make_user, auth_header):
    assert client.post(URL, json=WEIGHTS, headers=auth_header(make_user())).status_code == 403
