from mbkm.core.permissions import RoleId


def test_company_crud_and_ownership(client, make_user, make_job, auth_header, fetch_row):
    owner = make_user(RoleId.COMPANY)
    stranger = make_user(RoleId.COMPANY)
    headers = auth_header(owner)

    created = client.post("/api/v1/companies", json={"company_name": "PT Maju"}, headers=headers)
    assert created.status_code == 201
    company_id = created.json()["data"]["id"]
    job_id = make_job(company_id=company_id)

    response = client.put(f"/api/v1/companies/{company_id}", json={"company_size": "50"}, headers=auth_header(stranger))
    assert response.status_code == 403

    response = client.put(f"/api/v1/companies/{company_id}", json={"company_size": "50"}, headers=headers)
    assert response.json()["data"]["company_size"] == "50"
    assert client.get("/api/v1/companies", headers=headers).json()["count"] == 1

    assert client.delete(f"/api/v1/companies/{company_id}", headers=headers).status_code == 204
    assert client.get(f"/api/v1/companies/{company_id}", headers=headers).status_code == 404
    assert fetch_row("SELECT company_id FROM jobs WHERE id = :id", id=job_id)["company_id"] is None


def test_articles(client, make_user, auth_header):
    headers = auth_header(make_user(RoleId.CDC))
    assert client.post("/api/v1/articles", json={"title": "Tips"}).status_code == 401

    created = client.post("/api/v1/articles", json={"title": "Tips", "content": "..."}, headers=headers)
    assert created.status_code == 201
    article_id = created.json()["data"]["id"]

    assert client.get(f"/api/v1/articles/{article_id}").json()["data"]["views"] == 1
    assert client.get(f"/api/v1/articles/{article_id}").json()["data"]["views"] == 2
    assert client.get("/api/v1/articles").json()["count"] == 1

    updated = client.put(f"/api/v1/articles/{article_id}", json={"title": "Tips Magang"}, headers=headers)
    assert updated.json()["data"]["title"] == "Tips Magang"

    assert client.delete(f"/api/v1/articles/{article_id}", headers=headers).json()["success"] is True
    assert client.get(f"/api/v1/articles/{article_id}").status_code == 404
