"""
Report Routes (internship reports)

GET /reports - List reports (filter: status)
POST /reports - Create report + evaluation stub + upload, in one transaction
GET /reports/{apply_job_id} - Report of an application, with activities
POST /reports/{apply_job_id}/check - Mark the report checked for the caller's role
DELETE /reports/{report_id} - Delete report
"""

from fastapi import APIRouter, Depends, File, Form, Query, Response, UploadFile
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy import text
from typing import Optional

from mbkm.db.postgres import get_db_session, fetch_one, fetch_all
from mbkm.db.queries import apply_job_detail, page_offset
from mbkm.core.auth import get_current_user, require_permission
from mbkm.core.errors import NotFoundError, PermissionDeniedError
from mbkm.core.logging import get_logger
from mbkm.core.permissions import grader_slots
from mbkm.utils.file_upload import read_upload, save_upload, delete_upload

router = APIRouter(prefix="/reports", tags=["Reports"])
logger = get_logger(__name__)

REPORT_DRAFT = "Draft"
REPORT_IN_PROGRESS = "Berjalan"
REPORT_DONE = "Selesai"
EVALUATION_PENDING = "Belum Dinilai"


def _report_by_apply_job(db, apply_job_id: int) -> Optional[dict]:
    return fetch_one(db, "SELECT * FROM reports WHERE apply_job_id = :aid", {"aid": apply_job_id})


@router.get("")
async def list_reports(
    page: int = Query(1, ge=1),
    per_page: int = Query(10, ge=1, le=100),
    status: Optional[str] = Query(None),
    user: dict = Depends(get_current_user),
):
    where, params = "", {}
    if status:
        where, params = " WHERE status = :status", {"status": status}

    with get_db_session() as db:
        count = db.execute(text(f"SELECT COUNT(*) FROM reports{where}"), params).scalar()
        rows = fetch_all(
            db, f"SELECT * FROM reports{where} ORDER BY id DESC LIMIT :limit OFFSET :offset",
            {**params, "limit": per_page, "offset": page_offset(page, per_page)}
        )
        for row in rows:
            row["apply_job"] = apply_job_detail(db, row["apply_job_id"])

    return {"data": rows, "count": count}


@router.post("", status_code=201)
async def create_report(
    apply_job_id: int = Form(...),
    file: Optional[UploadFile] = File(None),
    user: dict = Depends(get_current_user),
):
    """
    Create the report of an application.

    The report row (status Draft, start date = application date), the
    evaluation stub (Belum Dinilai) and the uploaded file are stored
    together: if any step fails nothing is kept. An existing report is
    returned as is with 200.
    """
    content = None
    if file is not None and file.filename:
        content = await read_upload(file)

    saved_path = None
    try:
        with get_db_session() as db:
            existing = _report_by_apply_job(db, apply_job_id)
            if existing:
                return JSONResponse(
                    status_code=200,
                    content=jsonable_encoder({"message": "Report already exists", "data": existing})
                )

            if not fetch_one(db, "SELECT id FROM apply_jobs WHERE id = :id", {"id": apply_job_id}):
                raise NotFoundError("Apply job not found")

            result = db.execute(
                text("""
                    INSERT INTO reports (apply_job_id, report_job_user, start_date, status)
                    SELECT id, job_user, created_at, :status FROM apply_jobs WHERE id = :aid
                    RETURNING id
                """),
                {"aid": apply_job_id, "status": REPORT_DRAFT}
            )
            report_id = result.fetchone()[0]

            db.execute(
                text("""
                    INSERT INTO evaluations (apply_job_id, status) VALUES (:aid, :status)
                    ON CONFLICT (apply_job_id) DO NOTHING
                """),
                {"aid": apply_job_id, "status": EVALUATION_PENDING}
            )

            if content is not None:
                saved_path = save_upload(content, f"report_{report_id}_{file.filename}")
                db.execute(
                    text("UPDATE reports SET file_laporan = :path WHERE id = :id"),
                    {"path": saved_path, "id": report_id}
                )

            report = fetch_one(db, "SELECT * FROM reports WHERE id = :id", {"id": report_id})
    except Exception:
        delete_upload(saved_path)
        raise

    logger.info("Created report %s for apply_job %s", report_id, apply_job_id)
    return {"data": report}


@router.get("/{apply_job_id}")
async def get_report(apply_job_id: int, user: dict = Depends(get_current_user)):
    """Report detail, looked up by application id."""
    with get_db_session() as db:
        report = _report_by_apply_job(db, apply_job_id)
        if not report:
            raise NotFoundError("Report not found")
        report["apply_job"] = apply_job_detail(db, apply_job_id)
        report["activity_details"] = fetch_all(
            db, "SELECT * FROM activity_details WHERE report_job_id = :rid ORDER BY date, id",
            {"rid": report["id"]}
        )
    return {"data": report}


@router.post("/{apply_job_id}/check")
async def check_report(apply_job_id: int, user: dict = Depends(require_permission("report.check"))):
    """
    Record that the caller checked the report.

    Company checks the company slot, a lecturer checks the examiner slot when
    they are the application's examiner (else the supervising slot), prodi
    checks the prodi slot. The report is Selesai once company, lecturer and
    examiner have all checked, otherwise Berjalan.
    """
    with get_db_session() as db:
        report = _report_by_apply_job(db, apply_job_id)
        if not report:
            raise NotFoundError("Report not found")

        apply_job = fetch_one(
            db, "SELECT examiner_lecturer_id FROM apply_jobs WHERE id = :id", {"id": apply_job_id}
        )
        is_examiner = bool(apply_job) and apply_job["examiner_lecturer_id"] == user["user_id"]
        slots = grader_slots(user["role_ids"], as_examiner=is_examiner)
        if not slots:
            raise PermissionDeniedError("Your role cannot check reports")

        sets = []
        for slot in slots:
            sets.append(f"{slot}_checked_id = :uid")
            sets.append(f"{slot}_checked_at = CURRENT_TIMESTAMP")
        db.execute(
            text(f"UPDATE reports SET {', '.join(sets)}, updated_at = CURRENT_TIMESTAMP WHERE id = :id"),
            {"uid": user["user_id"], "id": report["id"]}
        )
        db.execute(
            text("""
                UPDATE reports SET status = CASE
                    WHEN company_checked_id IS NOT NULL AND lecturer_checked_id IS NOT NULL
                         AND examiner_checked_id IS NOT NULL THEN :done
                    ELSE :in_progress END
                WHERE id = :id
            """),
            {"done": REPORT_DONE, "in_progress": REPORT_IN_PROGRESS, "id": report["id"]}
        )
        report = _report_by_apply_job(db, apply_job_id)

    logger.info("Report %s checked by user %s as %s", report["id"], user["user_id"], ", ".join(slots))
    return {"status": True, "data": report}


@router.delete("/{report_id}", status_code=204)
async def delete_report(report_id: int, user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        report = fetch_one(db, "SELECT id, file_laporan FROM reports WHERE id = :id", {"id": report_id})
        if not report:
            raise NotFoundError("Report not found")
        db.execute(text("DELETE FROM activity_details WHERE report_job_id = :id"), {"id": report_id})
        db.execute(text("DELETE FROM reports WHERE id = :id"), {"id": report_id})
    delete_upload(report["file_laporan"])
    return Response(status_code=204)
