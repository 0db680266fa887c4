"""
Apply Job Routes (job applications)

GET /apply-jobs - List applications (filters: status, company_id)
GET /apply-jobs/{id} - Application detail
POST /apply-jobs - Apply to a job (status Melamar)
PUT /apply-jobs/{id} - Update status / lecturers
DELETE /apply-jobs/{id} - Delete application
POST /apply-jobs/{id}/approve|reject|activate|done - Status workflow
POST /apply-jobs/{id}/set-lecturer - Assign lecturers (activates approved applications)
GET /apply-jobs/user/{user_id} - Applications of one user
"""

import uuid

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy import text
from typing import Optional

from mbkm.db.postgres import get_db_session, fetch_one, fetch_all
from mbkm.db.queries import apply_job_detail, attach_apply_job_relations, page_offset
from mbkm.core.auth import get_current_user, require_permission
from mbkm.core.errors import NotFoundError
from mbkm.core.logging import get_logger
from mbkm.services.workflow import ApplyStatus, action_for, assign_lecturers, transition_apply_job
from mbkm.schemas.schemas import ApplyJobCreate, ApplyJobUpdate, SetLecturerRequest

router = APIRouter(prefix="/apply-jobs", tags=["Apply Jobs"])
logger = get_logger(__name__)


def _detail_or_404(db, apply_job_id: int) -> dict:
    apply_job = apply_job_detail(db, apply_job_id)
    if apply_job is None:
        raise NotFoundError("Apply job not found")
    return apply_job


@router.get("")
async def list_apply_jobs(
    page: int = Query(1, ge=1),
    per_page: int = Query(10, ge=1, le=100),
    status: Optional[str] = Query(None),
    company_id: Optional[int] = Query(None),
    user: dict = Depends(get_current_user),
):
    """List applications, newest first."""
    where, params = [], {}
    if status:
        where.append("a.status = :status")
        params["status"] = status
    if company_id is not None:
        where.append("""EXISTS (
            SELECT 1 FROM apply_job_job ajj JOIN jobs j ON j.id = ajj.job_id
            WHERE ajj.apply_job_id = a.id AND j.company_id = :company_id
        )""")
        params["company_id"] = company_id
    clause = " WHERE " + " AND ".join(where) if where else ""

    with get_db_session() as db:
        count = db.execute(text(f"SELECT COUNT(*) FROM apply_jobs a{clause}"), params).scalar()
        rows = fetch_all(
            db,
            f"SELECT a.* FROM apply_jobs a{clause} ORDER BY a.created_at DESC, a.id DESC LIMIT :limit OFFSET :offset",
            {**params, "limit": per_page, "offset": page_offset(page, per_page)}
        )
        data = [attach_apply_job_relations(db, r) for r in rows]

    return {"data": data, "count": count}


@router.get("/user/{user_id}")
async def list_user_apply_jobs(user_id: int, user: dict = Depends(get_current_user)):
    """Applications a user is linked to."""
    with get_db_session() as db:
        rows = fetch_all(db, """
            SELECT a.* FROM apply_jobs a
            JOIN apply_job_user aju ON aju.apply_job_id = a.id
            WHERE aju.user_id = :uid
            ORDER BY a.created_at DESC, a.id DESC
        """, {"uid": user_id})
        data = [attach_apply_job_relations(db, r) for r in rows]

    return {"data": data, "count": len(data)}


@router.get("/{apply_job_id}")
async def get_apply_job(apply_job_id: int, user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        return {"data": _detail_or_404(db, apply_job_id)}


@router.post("", status_code=201)
async def create_apply_job(application: ApplyJobCreate, user: dict = Depends(get_current_user)):
    """
    Apply to a job.

    Body `jobs` is the job id (number, numeric string or one-element list).
    Creates the application in 'Melamar' and links the caller and the job.
    """
    with get_db_session() as db:
        if not fetch_one(db, "SELECT id FROM jobs WHERE id = :id", {"id": application.jobs}):
            raise NotFoundError("Job not found")

        result = db.execute(
            text("""
                INSERT INTO apply_jobs (job_user, status, created_by_id)
                VALUES (:job_user, :status, :uid) RETURNING id
            """),
            {"job_user": str(uuid.uuid4()), "status": ApplyStatus.APPLIED, "uid": user["user_id"]}
        )
        apply_job_id = result.fetchone()[0]

        db.execute(
            text("INSERT INTO apply_job_user (apply_job_id, user_id) VALUES (:aid, :uid) ON CONFLICT DO NOTHING"),
            {"aid": apply_job_id, "uid": user["user_id"]}
        )
        db.execute(
            text("INSERT INTO apply_job_job (apply_job_id, job_id) VALUES (:aid, :jid) ON CONFLICT DO NOTHING"),
            {"aid": apply_job_id, "jid": application.jobs}
        )
        data = _detail_or_404(db, apply_job_id)

    logger.info("User %s applied to job %s (apply_job %s)", user["user_id"], application.jobs, apply_job_id)
    return {"success": True, "message": "Apply job created successfully", "data": data}


@router.put("/{apply_job_id}")
async def update_apply_job(
    apply_job_id: int, update: ApplyJobUpdate,
    user: dict = Depends(require_permission("apply_job.assign")),
):
    """
    Administrative update of status and lecturer ids. Only given fields change.

    A new status must be one workflow step away from the current one.
    """
    values = update.model_dump(mode="json", exclude_none=True)
    target = values.pop("status", None)

    with get_db_session() as db:
        current = _detail_or_404(db, apply_job_id)["status"]
        if target is not None and target != current:
            transition_apply_job(db, apply_job_id, action_for(current, target))

        updates = []
        params = {"id": apply_job_id}
        for field, value in values.items():
            updates.append(f"{field} = :{field}")
            params[field] = value

        if updates:
            db.execute(
                text(f"UPDATE apply_jobs SET {', '.join(updates)}, updated_at = CURRENT_TIMESTAMP WHERE id = :id"),
                params
            )
        data = _detail_or_404(db, apply_job_id)

    return {"success": True, "data": data}


@router.delete("/{apply_job_id}", status_code=204)
async def delete_apply_job(apply_job_id: int, user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        _detail_or_404(db, apply_job_id)
        db.execute(text("DELETE FROM apply_job_user WHERE apply_job_id = :id"), {"id": apply_job_id})
        db.execute(text("DELETE FROM apply_job_job WHERE apply_job_id = :id"), {"id": apply_job_id})
        db.execute(text("DELETE FROM apply_jobs WHERE id = :id"), {"id": apply_job_id})
    return Response(status_code=204)


TRANSITION_MESSAGES = {
    "approve": "Application approved",
    "reject": "Application rejected",
    "activate": "Application activated",
    "done": "Application completed",
}


def _transition(apply_job_id: int, action: str) -> dict:
    with get_db_session() as db:
        transition_apply_job(db, apply_job_id, action)
        data = _detail_or_404(db, apply_job_id)
    return {"success": True, "message": TRANSITION_MESSAGES[action], "data": data}


@router.post("/{apply_job_id}/approve")
async def approve_apply_job(apply_job_id: int, user: dict = Depends(require_permission("apply_job.transition"))):
    """Melamar -> Disetujui."""
    return _transition(apply_job_id, "approve")


@router.post("/{apply_job_id}/reject")
async def reject_apply_job(apply_job_id: int, user: dict = Depends(require_permission("apply_job.transition"))):
    """Melamar -> Ditolak."""
    return _transition(apply_job_id, "reject")


@router.post("/{apply_job_id}/activate")
async def activate_apply_job(apply_job_id: int, user: dict = Depends(require_permission("apply_job.transition"))):
    """Disetujui -> Aktif."""
    return _transition(apply_job_id, "activate")


@router.post("/{apply_job_id}/done")
async def finish_apply_job(apply_job_id: int, user: dict = Depends(require_permission("apply_job.transition"))):
    """Aktif -> Selesai."""
    return _transition(apply_job_id, "done")


@router.post("/{apply_job_id}/set-lecturer")
async def set_lecturer(
    apply_job_id: int, request: SetLecturerRequest,
    user: dict = Depends(require_permission("apply_job.assign")),
):
    """Assign supervising and examining lecturers. A Disetujui application becomes Aktif."""
    with get_db_session() as db:
        assign_lecturers(db, apply_job_id, request.lecturer_id, request.examiner_id)
        data = _detail_or_404(db, apply_job_id)
    return {"success": True, "data": data}
