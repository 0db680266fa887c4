"""
Evaluation Routes (grading)

GET /evaluations - List evaluations (filter: status)
POST /evaluations - Submit the caller's grade for an application
GET /evaluations/{apply_job_id} - Evaluation with the weighted final grade in `meta`
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy import text
from typing import Optional

from mbkm.db.postgres import get_db_session, fetch_one, fetch_all
from mbkm.db.queries import apply_job_detail, page_offset, weights_for_apply_job
from mbkm.core.auth import get_current_user, require_permission
from mbkm.core.errors import NotFoundError, PermissionDeniedError
from mbkm.core.logging import get_logger
from mbkm.core.permissions import EVALUATION_COLUMNS, RoleId, grader_slots
from mbkm.services.grading import NO_GRADE, GradeWeights, calculate_final_grade, grade_letter
from mbkm.schemas.schemas import GradeSubmission

router = APIRouter(prefix="/evaluations", tags=["Evaluations"])
logger = get_logger(__name__)

EVALUATION_PENDING = "Belum Dinilai"
EVALUATION_GRADED = "Sudah Dinilai"


def _get_evaluation(db, apply_job_id: int) -> Optional[dict]:
    return fetch_one(db, "SELECT * FROM evaluations WHERE apply_job_id = :aid", {"aid": apply_job_id})


def _final_grade(db, evaluation: dict) -> Optional[dict]:
    """Weighted breakdown for an evaluation row, or None when no weights apply."""
    weights_row = weights_for_apply_job(db, evaluation["apply_job_id"])
    if weights_row is None:
        return None
    breakdown = calculate_final_grade(
        evaluation["company_grade_score"],
        evaluation["lecturer_grade_score"],
        evaluation["examiner_grade_score"],
        GradeWeights.from_row(weights_row),
    )
    return breakdown.to_dict() if breakdown else None


def _grades_as_examiner(apply_job: dict, user: dict, requested: bool) -> bool:
    is_examiner = apply_job["examiner_lecturer_id"] == user["user_id"]
    if is_examiner and apply_job["responsible_lecturer_id"] == user["user_id"]:
        return requested
    if requested and not is_examiner and RoleId.DOSEN in user["role_ids"]:
        raise PermissionDeniedError("You are not the examiner of this application")
    return is_examiner


@router.get("")
async def list_evaluations(
    page: int = Query(1, ge=1),
    per_page: int = Query(10, ge=1, le=100),
    status: Optional[str] = Query(None),
    user: dict = Depends(get_current_user),
):
    where, params = "", {}
    if status:
        where, params = " WHERE status = :status", {"status": status}

    with get_db_session() as db:
        count = db.execute(text(f"SELECT COUNT(*) FROM evaluations{where}"), params).scalar()
        rows = fetch_all(
            db, f"SELECT * FROM evaluations{where} ORDER BY id DESC LIMIT :limit OFFSET :offset",
            {**params, "limit": per_page, "offset": page_offset(page, per_page)}
        )
        for row in rows:
            row["apply_job"] = apply_job_detail(db, row["apply_job_id"])

    return {"data": rows, "count": count}


@router.get("/{apply_job_id}")
async def get_evaluation(apply_job_id: int, user: dict = Depends(get_current_user)):
    """Evaluation of an application. `meta` holds the weighted contributions, total and letter."""
    with get_db_session() as db:
        evaluation = _get_evaluation(db, apply_job_id)
        if not evaluation:
            raise NotFoundError("Evaluation not found")
        meta = _final_grade(db, evaluation)
        evaluation["apply_job"] = apply_job_detail(db, apply_job_id)

    return {"data": evaluation, "meta": meta}


@router.post("")
async def submit_grade(submission: GradeSubmission, user: dict = Depends(require_permission("evaluation.grade"))):
    """
    Store the caller's grade.

    Company writes the company grade, prodi writes the prodi grade. A
    lecturer writes the examiner grade when they are the application's
    examiner, else the supervising-lecturer grade; `is_examiner` only picks
    between the two when one lecturer holds both assignments. The letter
    defaults to the score's letter. The stored final grade is refreshed
    once all three graders have scored.
    """
    letter = submission.grade or grade_letter(submission.grade_score)

    with get_db_session() as db:
        apply_job = fetch_one(
            db,
            "SELECT responsible_lecturer_id, examiner_lecturer_id FROM apply_jobs WHERE id = :id",
            {"id": submission.apply_job_id}
        )
        if not apply_job:
            raise NotFoundError("Apply job not found")

        as_examiner = _grades_as_examiner(apply_job, user, submission.is_examiner)
        slots = grader_slots(user["role_ids"], as_examiner=as_examiner)
        if not slots:
            raise PermissionDeniedError("Your role cannot grade")

        db.execute(
            text("""
                INSERT INTO evaluations (apply_job_id, status) VALUES (:aid, :status)
                ON CONFLICT (apply_job_id) DO NOTHING
            """),
            {"aid": submission.apply_job_id, "status": EVALUATION_PENDING}
        )

        sets = ["status = :status"]
        for slot in slots:
            id_column, prefix = EVALUATION_COLUMNS[slot]
            sets += [
                f"{id_column} = :uid",
                f"{prefix}_grade = :grade",
                f"{prefix}_grade_score = :score",
                f"{prefix}_grade_description = :description",
                f"{prefix}_grade_date = CURRENT_TIMESTAMP",
            ]
        db.execute(
            text(f"UPDATE evaluations SET {', '.join(sets)}, updated_at = CURRENT_TIMESTAMP WHERE apply_job_id = :aid"),
            {
                "status": EVALUATION_GRADED, "uid": user["user_id"], "grade": letter,
                "score": submission.grade_score, "description": submission.grade_description,
                "aid": submission.apply_job_id,
            }
        )

        evaluation = _get_evaluation(db, submission.apply_job_id)
        meta = _final_grade(db, evaluation)
        if meta and meta["grade"] != NO_GRADE:
            db.execute(
                text("UPDATE evaluations SET grade = :grade WHERE id = :id"),
                {"grade": meta["grade"], "id": evaluation["id"]}
            )
            evaluation["grade"] = meta["grade"]

    logger.info(
        "User %s graded apply_job %s as %s: %s (%s)",
        user["user_id"], submission.apply_job_id, ", ".join(slots), submission.grade_score, letter
    )
    return {"status": True, "data": evaluation, "meta": meta}
