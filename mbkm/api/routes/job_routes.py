"""
Job Routes

GET /public/jobs - Public listing (Tersedia only)
GET /public/jobs/{job_id} - Public job detail
GET /jobs - List jobs visible to the caller (optional auth)
GET /jobs/{job_id} - Job detail
POST /jobs - Create job posting (starts in Perlu Ditinjau)
PUT /jobs/{job_id} - Update job (owner or staff)
DELETE /jobs/{job_id} - Delete job (owner or staff)
POST /jobs/{job_id}/approve|reject|close - Review workflow (superadmin / cdc)
GET /jobs/{job_id}/list - Candidates who applied to a job
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy import text
from typing import Optional

from mbkm.db.postgres import get_db_session, fetch_one, fetch_all
from mbkm.db.queries import page_offset, USER_BRIEF_COLUMNS
from mbkm.core.auth import get_current_user, get_optional_user, require_permission
from mbkm.core.errors import NotFoundError, PermissionDeniedError
from mbkm.core.permissions import is_staff
from mbkm.services.workflow import JobStatus, review_job
from mbkm.schemas.schemas import JobCreate, JobUpdate, MessageResponse

router = APIRouter(prefix="/jobs", tags=["Jobs"])
public_router = APIRouter(prefix="/public", tags=["Jobs"])

JOB_SELECT = """
    SELECT j.*, u.name AS created_by_name
    FROM jobs j LEFT JOIN users u ON u.id = j.created_by_id
"""

JOB_FIELDS = [
    "title", "company", "location", "duration", "description", "benefits",
    "job_type", "salary", "vacancy_type", "mata_kuliah", "deadline",
]

# statuses staff can see in the review listing
STAFF_VISIBLE = (JobStatus.IN_REVIEW, JobStatus.AVAILABLE, JobStatus.REJECTED)


def _get_job(db, job_id: int) -> dict:
    job = fetch_one(db, JOB_SELECT + " WHERE j.id = :id", {"id": job_id})
    if not job:
        raise NotFoundError("Job not found")
    return job


def _list_jobs(where: list, params: dict, page: int, per_page: int) -> dict:
    clause = " WHERE " + " AND ".join(where) if where else ""
    with get_db_session() as db:
        count = db.execute(text(f"SELECT COUNT(*) FROM jobs j{clause}"), params).scalar()
        rows = fetch_all(
            db,
            JOB_SELECT + clause + " ORDER BY j.updated_at DESC, j.id DESC LIMIT :limit OFFSET :offset",
            {**params, "limit": per_page, "offset": page_offset(page, per_page)}
        )
    return {"data": rows, "count": count}


# ============================================================
# PUBLIC
# ============================================================

@public_router.get("/jobs")
async def list_public_jobs(
    page: int = Query(1, ge=1),
    per_page: int = Query(10, ge=1, le=100),
    company_id: Optional[int] = Query(None),
):
    """Available job postings, no login needed."""
    where, params = ["j.status = :available"], {"available": JobStatus.AVAILABLE}
    if company_id is not None:
        where.append("j.company_id = :company_id")
        params["company_id"] = company_id
    return _list_jobs(where, params, page, per_page)


@public_router.get("/jobs/{job_id}")
async def get_public_job(job_id: int):
    with get_db_session() as db:
        job = fetch_one(
            db, JOB_SELECT + " WHERE j.id = :id AND j.status = :available",
            {"id": job_id, "available": JobStatus.AVAILABLE}
        )
    if not job:
        raise NotFoundError("Job not found")
    return {"data": job}


# ============================================================
# JOBS
# ============================================================

@router.get("")
async def list_jobs(
    page: int = Query(1, ge=1),
    per_page: int = Query(10, ge=1, le=100),
    company_id: Optional[int] = Query(None),
    status: Optional[str] = Query(None),
    user: Optional[dict] = Depends(get_optional_user),
):
    """
    List jobs visible to the caller.

    Staff (superadmin, cdc) see postings under review, available and rejected.
    Other users see available postings plus their own. Anonymous callers see
    available postings only.
    """
    where, params = [], {}
    if user is None:
        where.append("j.status = :available")
        params["available"] = JobStatus.AVAILABLE
    elif is_staff(user["role_ids"]):
        where.append("j.status IN (:s0, :s1, :s2)")
        params.update({f"s{i}": s for i, s in enumerate(STAFF_VISIBLE)})
    else:
        where.append("(j.status = :available OR j.created_by_id = :uid)")
        params.update({"available": JobStatus.AVAILABLE, "uid": user["user_id"]})

    if company_id is not None:
        where.append("j.company_id = :company_id")
        params["company_id"] = company_id
    if status:
        where.append("j.status = :status")
        params["status"] = status

    return _list_jobs(where, params, page, per_page)


@router.get("/{job_id}")
async def get_job(job_id: int, user: Optional[dict] = Depends(get_optional_user)):
    with get_db_session() as db:
        job = _get_job(db, job_id)
    return {"data": job}


@router.post("", status_code=201)
async def create_job(job: JobCreate, user: dict = Depends(get_current_user)):
    """
    Create a job posting in 'Perlu Ditinjau'.

    For non-staff users the company name, location and company_id come from
    their company profile when they have one.
    """
    values = job.model_dump(mode="json")
    company_id = None

    with get_db_session() as db:
        if not is_staff(user["role_ids"]):
            company = fetch_one(
                db, "SELECT id, company_name, company_address FROM companies WHERE user_id = :uid ORDER BY id LIMIT 1",
                {"uid": user["user_id"]}
            )
            if company:
                company_id = company["id"]
                values["company"] = company["company_name"]
                if company["company_address"]:
                    values["location"] = company["company_address"]

        result = db.execute(
            text(f"""
                INSERT INTO jobs ({', '.join(JOB_FIELDS)}, status, company_id, created_by_id)
                VALUES ({', '.join(':' + f for f in JOB_FIELDS)}, :status, :company_id, :created_by_id)
                RETURNING id
            """),
            {**values, "status": JobStatus.IN_REVIEW, "company_id": company_id, "created_by_id": user["user_id"]}
        )
        job_id = result.fetchone()[0]
        created = _get_job(db, job_id)

    return {"data": created}


def _check_owner(job: dict, user: dict) -> None:
    if job["created_by_id"] != user["user_id"] and not is_staff(user["role_ids"]):
        raise PermissionDeniedError("Only the job owner can change this job")


@router.put("/{job_id}")
async def update_job(job_id: int, update: JobUpdate, user: dict = Depends(get_current_user)):
    """Update a job posting. Only given fields are changed."""
    with get_db_session() as db:
        _check_owner(_get_job(db, job_id), user)

        updates = []
        params = {"id": job_id}
        for field, value in update.model_dump(mode="json", exclude_none=True).items():
            updates.append(f"{field} = :{field}")
            params[field] = value

        if updates:
            db.execute(
                text(f"UPDATE jobs SET {', '.join(updates)}, updated_at = CURRENT_TIMESTAMP WHERE id = :id"),
                params
            )
        job = _get_job(db, job_id)

    return {"data": job}


@router.delete("/{job_id}", response_model=MessageResponse)
async def delete_job(job_id: int, user: dict = Depends(get_current_user)):
    """Delete a job posting. Cascades to application links."""
    with get_db_session() as db:
        _check_owner(_get_job(db, job_id), user)
        db.execute(text("DELETE FROM jobs WHERE id = :id"), {"id": job_id})

    return MessageResponse(message="Data berhasil dihapus")


def _review(job_id: int, action: str) -> dict:
    with get_db_session() as db:
        changed = review_job(db, job_id, action)
        job = _get_job(db, job_id)
    return {"status": changed, "data": job}


@router.post("/{job_id}/approve")
async def approve_job(job_id: int, user: dict = Depends(require_permission("job.review"))):
    """Perlu Ditinjau -> Tersedia. status is false when the job is in another state."""
    return _review(job_id, "approve")


@router.post("/{job_id}/reject")
async def reject_job(job_id: int, user: dict = Depends(require_permission("job.review"))):
    """Perlu Ditinjau -> Ditolak."""
    return _review(job_id, "reject")


@router.post("/{job_id}/close")
async def close_job(job_id: int, user: dict = Depends(require_permission("job.review"))):
    """Tersedia -> Ditutup."""
    return _review(job_id, "close")


@router.get("/{job_id}/list")
async def list_candidates(job_id: int, user: dict = Depends(get_current_user)):
    """Every (user, application) pair that applied to the job."""
    with get_db_session() as db:
        _get_job(db, job_id)
        rows = fetch_all(db, f"""
            SELECT a.id AS apply_job_id, {USER_BRIEF_COLUMNS}
            FROM apply_job_job ajj
            JOIN apply_jobs a ON a.id = ajj.apply_job_id
            JOIN apply_job_user aju ON aju.apply_job_id = a.id
            JOIN users u ON u.id = aju.user_id
            WHERE ajj.job_id = :jid
            ORDER BY a.id, u.id
        """, {"jid": job_id})
        apply_jobs = {
            r["id"]: r for r in fetch_all(db, """
                SELECT a.* FROM apply_jobs a
                JOIN apply_job_job ajj ON ajj.apply_job_id = a.id
                WHERE ajj.job_id = :jid
            """, {"jid": job_id})
        }

    candidates = []
    for r in rows:
        aid = r.pop("apply_job_id")
        candidates.append({"user": r, "apply_job": apply_jobs.get(aid)})
    return {"data": candidates, "count": len(candidates)}
