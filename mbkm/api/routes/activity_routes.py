"""
Activity Detail Routes (daily internship log entries of a report)

GET /activity-details - List entries (filter: report_job_id)
POST /activity-details - Add an entry to a report
GET /activity-details/{activity_id} - Entry detail
PUT /activity-details/{activity_id} - Update entry
DELETE /activity-details/{activity_id} - Delete entry
"""

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy import text
from typing import Optional

from mbkm.db.postgres import get_db_session, fetch_one, fetch_all
from mbkm.db.queries import page_offset
from mbkm.core.auth import get_current_user
from mbkm.core.errors import NotFoundError
from mbkm.schemas.schemas import ActivityCreate, ActivityUpdate

router = APIRouter(prefix="/activity-details", tags=["Activity Details"])


def _get_activity(db, activity_id: int) -> dict:
    row = fetch_one(db, "SELECT * FROM activity_details WHERE id = :id", {"id": activity_id})
    if not row:
        raise NotFoundError("Activity not found")
    return row


@router.get("")
async def list_activities(
    page: int = Query(1, ge=1),
    per_page: int = Query(10, ge=1, le=100),
    report_job_id: Optional[int] = Query(None),
    user: dict = Depends(get_current_user),
):
    where, params = "", {}
    if report_job_id is not None:
        where, params = " WHERE report_job_id = :rid", {"rid": report_job_id}

    with get_db_session() as db:
        count = db.execute(text(f"SELECT COUNT(*) FROM activity_details{where}"), params).scalar()
        rows = fetch_all(
            db, f"SELECT * FROM activity_details{where} ORDER BY date DESC, id DESC LIMIT :limit OFFSET :offset",
            {**params, "limit": per_page, "offset": page_offset(page, per_page)}
        )
    return {"data": rows, "count": count}


@router.post("", status_code=201)
async def create_activity(activity: ActivityCreate, user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        if not fetch_one(db, "SELECT id FROM reports WHERE id = :id", {"id": activity.report_job_id}):
            raise NotFoundError("Report not found")

        result = db.execute(
            text("""
                INSERT INTO activity_details (report_job_id, date, activity_details)
                VALUES (:report_job_id, :date, :activity_details) RETURNING id
            """),
            activity.model_dump(mode="json")
        )
        data = _get_activity(db, result.fetchone()[0])
    return {"data": data}


@router.get("/{activity_id}")
async def get_activity(activity_id: int, user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        return {"data": _get_activity(db, activity_id)}


@router.put("/{activity_id}")
async def update_activity(activity_id: int, update: ActivityUpdate, user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        _get_activity(db, activity_id)

        updates = []
        params = {"id": activity_id}
        for field, value in update.model_dump(mode="json", exclude_none=True).items():
            updates.append(f"{field} = :{field}")
            params[field] = value

        if updates:
            db.execute(
                text(f"UPDATE activity_details SET {', '.join(updates)}, updated_at = CURRENT_TIMESTAMP WHERE id = :id"),
                params
            )
        data = _get_activity(db, activity_id)
    return {"data": data}


@router.delete("/{activity_id}", status_code=204)
async def delete_activity(activity_id: int, user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        result = db.execute(text("DELETE FROM activity_details WHERE id = :id"), {"id": activity_id})
        if result.rowcount == 0:
            raise NotFoundError("Activity not found")
    return Response(status_code=204)
