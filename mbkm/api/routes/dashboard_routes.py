"""
Dashboard Routes

GET /dashboard/overview - Totals, monthly application chart, latest records
"""

from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy import text

from mbkm.db.postgres import get_db_session, fetch_all
from mbkm.db.queries import USER_BRIEF_COLUMNS
from mbkm.core.auth import get_current_user
from mbkm.services.workflow import ApplyStatus, JobStatus

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])

MONTH_LABELS = ["Jan", "Feb", "Mar", "Apr", "Mei", "Jun", "Jul", "Agu", "Sep", "Okt", "Nov", "Des"]
CHART_STATUSES = [
    ApplyStatus.APPLIED, ApplyStatus.APPROVED, ApplyStatus.ACTIVE, ApplyStatus.DONE, ApplyStatus.REJECTED,
]
LATEST_LIMIT = 5


def _month(value) -> int:
    # SQLite hands timestamps back as text, PostgreSQL as datetime
    if isinstance(value, datetime):
        return value.month
    return int(str(value)[5:7])


def monthly_chart(rows: list) -> dict:
    """Build chart labels and one 12-month dataset per application status."""
    counts = {status: [0] * 12 for status in CHART_STATUSES}
    for row in rows:
        if row["status"] in counts and row["created_at"] is not None:
            counts[row["status"]][_month(row["created_at"]) - 1] += 1
    return {
        "labels": MONTH_LABELS,
        "datasets": [{"label": status, "data": counts[status]} for status in CHART_STATUSES],
    }


@router.get("/overview")
async def overview(user: dict = Depends(get_current_user)):
    year = datetime.now().year

    with get_db_session() as db:
        total_company = db.execute(text("SELECT COUNT(*) FROM companies")).scalar()
        total_job = db.execute(text("SELECT COUNT(*) FROM jobs")).scalar()
        total_student = db.execute(text("SELECT COUNT(*) FROM users WHERE role = 'student'")).scalar()
        total_active = db.execute(
            text("SELECT COUNT(*) FROM apply_jobs WHERE status = :status"), {"status": ApplyStatus.ACTIVE}
        ).scalar()

        chart_rows = fetch_all(db, """
            SELECT status, created_at FROM apply_jobs
            WHERE created_at >= :start AND created_at < :end
        """, {"start": f"{year}-01-01", "end": f"{year + 1}-01-01"})

        latest_jobs = fetch_all(db, """
            SELECT * FROM jobs WHERE status IN (:s0, :s1, :s2)
            ORDER BY created_at DESC, id DESC LIMIT :limit
        """, {"s0": JobStatus.IN_REVIEW, "s1": JobStatus.AVAILABLE, "s2": JobStatus.REJECTED, "limit": LATEST_LIMIT})
        latest_companies = fetch_all(
            db, "SELECT * FROM companies ORDER BY created_at DESC, id DESC LIMIT :limit", {"limit": LATEST_LIMIT}
        )
        latest_apply_jobs = fetch_all(
            db, "SELECT * FROM apply_jobs ORDER BY created_at DESC, id DESC LIMIT :limit", {"limit": LATEST_LIMIT}
        )
        for apply_job in latest_apply_jobs:
            apply_job["users"] = fetch_all(db, f"""
                SELECT {USER_BRIEF_COLUMNS} FROM users u
                JOIN apply_job_user aju ON aju.user_id = u.id
                WHERE aju.apply_job_id = :aid
            """, {"aid": apply_job["id"]})

    return {
        "total_company": total_company,
        "total_job": total_job,
        "total_student": total_student,
        "total_aktif_magang": total_active,
        "chart_data": monthly_chart(chart_rows),
        "latest_data": {
            "jobs": latest_jobs,
            "companies": latest_companies,
            "apply_job_students": latest_apply_jobs,
        },
    }
