from datetime import datetime

from mbkm.api.routes.dashboard_routes import MONTH_LABELS, monthly_chart
from mbkm.core.permissions import RoleId


def test_monthly_chart_buckets_by_month_and_status():
    rows = [
        {"status": "Melamar", "created_at": datetime(2026, 1, 15)},
        {"status": "Melamar", "created_at": "2026-01-20 10:00:00"},
        {"status": "Aktif", "created_at": "2026-03-02 08:00:00"},
        {"status": "Unknown", "created_at": "2026-03-02 08:00:00"},
        {"status": "Selesai", "created_at": None},
    ]
    chart = monthly_chart(rows)
    assert chart["labels"] == MONTH_LABELS
    datasets = {d["label"]: d["data"] for d in chart["datasets"]}
    assert datasets["Melamar"][0] == 2
    assert datasets["Aktif"][2] == 1
    assert sum(datasets["Selesai"]) == 0
    assert all(len(data) == 12 for data in datasets.values())


def test_overview(client, make_user, make_apply_job, make_job, auth_header):
    make_apply_job(make_user(), status="Aktif")
    make_apply_job(make_user(), status="Melamar")
    make_job(status="Ditutup")
    headers = auth_header(make_user(RoleId.CDC))

    response = client.get("/api/v1/dashboard/overview", headers=headers)
    assert response.status_code == 200
    body = response.json()
    assert body["total_job"] == 3
    assert body["total_student"] == 2
    assert body["total_aktif_magang"] == 1
    assert body["total_company"] == 0

    datasets = {d["label"]: d["data"] for d in body["chart_data"]["datasets"]}
    assert sum(datasets["Aktif"]) == 1
    assert sum(datasets["Melamar"]) == 1

    latest = body["latest_data"]
    assert len(latest["jobs"]) == 2
    assert len(latest["apply_job_students"]) == 2
    assert latest["apply_job_students"][0]["users"]


def test_overview_requires_login(client):
    assert client.get("/api/v1/dashboard/overview").status_code == 401
