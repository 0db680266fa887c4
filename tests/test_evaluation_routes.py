import pytest

from mbkm.core.permissions import RoleId


@pytest.fixture()
def graded_setup(client, make_user, make_apply_job, auth_header):
    student = make_user(id_program_studi=3)
    lecturer = make_user(RoleId.DOSEN)
    examiner = make_user(RoleId.DOSEN)
    company = make_user(RoleId.COMPANY)
    apply_job_id = make_apply_job(
        student, status="Aktif",
        responsible_lecturer_id=lecturer["id"], examiner_lecturer_id=examiner["id"],
    )
    client.post("/api/v1/reports", data={"apply_job_id": str(apply_job_id)}, headers=auth_header(student))
    return {
        "apply_job_id": apply_job_id,
        "student": auth_header(student),
        "lecturer": auth_header(lecturer),
        "examiner": auth_header(examiner),
        "company": auth_header(company),
        "prodi": auth_header(make_user(RoleId.PRODI)),
    }


def _set_weights(client, headers, prodi_id, company, lecturer, examiner):
    return client.post("/api/v1/settings/bobot-nilai", json={
        "id_program_studi": prodi_id,
        "bobot_nilai_perusahaan": company,
        "bobot_nilai_pembimbing": lecturer,
        "bobot_nilai_penguji": examiner,
    }, headers=headers)


def _grade(client, headers, apply_job_id, score, **extra):
    return client.post(
        "/api/v1/evaluations", json={"apply_job_id": apply_job_id, "grade_score": score, **extra}, headers=headers
    )


def test_final_grade_after_all_three_graders(client, graded_setup):
    s = graded_setup
    aid = s["apply_job_id"]
    assert _set_weights(client, s["prodi"], 3, 1, 1, 1).status_code == 201

    response = _grade(client, s["company"], aid, 90)
    assert response.status_code == 200
    body = response.json()
    assert body["data"]["company_grade"] == "A"
    assert body["data"]["status"] == "Sudah Dinilai"
    assert body["meta"]["grade"] == "-"
    assert body["data"]["grade"] is None

    _grade(client, s["lecturer"], aid, 80)
    body = _grade(client, s["examiner"], aid, 70, is_examiner=True).json()
    assert body["meta"]["total_score"] == pytest.approx(80)
    assert body["meta"]["grade"] == "B"
    assert body["data"]["grade"] == "B"
    assert body["data"]["examiner_grade_score"] == 70

    detail = client.get(f"/api/v1/evaluations/{aid}", headers=s["student"]).json()
    assert detail["data"]["grade"] == "B"
    assert detail["meta"]["company_score"] == pytest.approx(30)
    assert detail["data"]["apply_job"]["id"] == aid


def test_explicit_letter_and_prodi_grade(client, graded_setup):
    s = graded_setup
    aid = s["apply_job_id"]

    body = _grade(client, s["lecturer"], aid, 84, grade="A-", grade_description="Rajin").json()
    assert body["data"]["lecturer_grade"] == "A-"
    assert body["data"]["lecturer_grade_description"] == "Rajin"

    body = _grade(client, s["prodi"], aid, 75).json()
    assert body["data"]["prodi_grade_score"] == 75
    # no weights configured yet
    assert body["meta"] is None


def test_zero_weights_give_no_meta(client, graded_setup):
    s = graded_setup
    aid = s["apply_job_id"]
    _set_weights(client, s["prodi"], 3, 0, 0, 0)
    for role in ("company", "lecturer"):
        _grade(client, s[role], aid, 90)
    body = _grade(client, s["examiner"], aid, 90, is_examiner=True).json()
    assert body["meta"] is None
    assert body["data"]["grade"] is None


def test_fallback_to_first_configured_weights(client, graded_setup):
    s = graded_setup
    aid = s["apply_job_id"]
    _set_weights(client, s["prodi"], 8, 2, 1, 1)

    detail = client.get(f"/api/v1/evaluations/{aid}", headers=s["student"]).json()
    assert detail["meta"] == {"company_score": 0, "lecturer_score": 0, "examiner_score": 0, "total_score": 0, "grade": "-"}


def test_grading_permissions(client, graded_setup, make_user, auth_header):
    s = graded_setup
    assert _grade(client, s["student"], s["apply_job_id"], 90).status_code == 403
    assert _grade(client, auth_header(make_user(RoleId.SUPERADMIN)), s["apply_job_id"], 90).status_code == 403
    assert _grade(client, s["company"], 999, 90).status_code == 404


def test_list_and_missing(client, graded_setup):
    s = graded_setup
    assert client.get("/api/v1/evaluations?status=Belum Dinilai", headers=s["student"]).json()["count"] == 1
    assert client.get("/api/v1/evaluations/999", headers=s["student"]).status_code == 404


def test_examiner_slot_follows_assignment(client, graded_setup, fetch_row):
    s = graded_setup
    aid = s["apply_job_id"]

    response = _grade(client, s["lecturer"], aid, 60, is_examiner=True)
    assert response.status_code == 403
    assert fetch_row("SELECT examiner_grade_score FROM evaluations WHERE apply_job_id = :aid", aid=aid)[
        "examiner_grade_score"
    ] is None

    body = _grade(client, s["examiner"], aid, 70).json()
    assert body["data"]["examiner_grade_score"] == 70
    assert body["data"]["lecturer_grade_score"] is None


def test_lecturer_holding_both_assignments_picks_slot(client, make_user, make_apply_job, auth_header):
    lecturer = make_user(RoleId.DOSEN)
    aid = make_apply_job(
        make_user(), status="Aktif",
        responsible_lecturer_id=lecturer["id"], examiner_lecturer_id=lecturer["id"],
    )
    headers = auth_header(lecturer)

    assert _grade(client, headers, aid, 80).json()["data"]["lecturer_grade_score"] == 80
    body = _grade(client, headers, aid, 65, is_examiner=True).json()
    assert body["data"]["examiner_grade_score"] == 65
    assert body["data"]["lecturer_grade_score"] == 80
